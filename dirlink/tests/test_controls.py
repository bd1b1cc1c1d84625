"""
Tests for the LDAP controls and extended requests.
"""

import unittest

from pyasn1.codec.ber import decoder

from dirlink.controls import (
    FAST_BIND_OID,
    PAGED_RESULTS_OID,
    SEARCH_OPTIONS_OID,
    FastBindRequest,
    SearchOption,
    SearchOptionsControl,
    SearchOptionsValue,
    build_search_options_value,
    find_paged_results_control,
    paged_results_control,
)


class TestSearchOptionsControl(unittest.TestCase):
    """Test the search options control."""

    def test_domain_scope_encoding(self):
        """Test the BER encoding of SEQUENCE { flags INTEGER }."""
        self.assertEqual(
            build_search_options_value(SearchOption.DOMAIN_SCOPE), b"\x30\x03\x02\x01\x01"
        )

    def test_phantom_root_decodes(self):
        """Test that the encoded value decodes back to the flags."""
        value, _ = decoder.decode(
            build_search_options_value(SearchOption.PHANTOM_ROOT),
            asn1Spec=SearchOptionsValue(),
        )
        self.assertEqual(int(value["flags"]), 2)

    def test_control(self):
        """Test the control's type, criticality and value."""
        control = SearchOptionsControl()
        self.assertEqual(control.controlType, SEARCH_OPTIONS_OID)
        self.assertFalse(control.criticality)
        self.assertEqual(control.option, SearchOption.DOMAIN_SCOPE)
        self.assertEqual(control.encodeControlValue(), b"\x30\x03\x02\x01\x01")


class TestPagedResultsControl(unittest.TestCase):
    """Test paged results control helpers."""

    def test_fresh_control(self):
        """Test that each call builds a new critical control."""
        first = paged_results_control(500)
        second = paged_results_control(500, b"cookie")
        self.assertIsNot(first, second)
        self.assertTrue(first.criticality)
        self.assertEqual(first.size, 500)
        self.assertEqual(first.cookie, b"")
        self.assertEqual(second.cookie, b"cookie")

    def test_find_paged_results_control(self):
        """Test picking the paged control out of the response controls."""
        other = SearchOptionsControl()
        paged = paged_results_control(0, b"C1")
        self.assertIs(find_paged_results_control([other, paged]), paged)
        self.assertEqual(paged.controlType, PAGED_RESULTS_OID)

    def test_find_paged_results_control_missing(self):
        """Test that no paged control yields None."""
        self.assertIsNone(find_paged_results_control([]))
        self.assertIsNone(find_paged_results_control(None))


class TestFastBindRequest(unittest.TestCase):
    """Test the fast concurrent bind extended request."""

    def test_request(self):
        """Test the request name and the absent request value."""
        request = FastBindRequest()
        self.assertEqual(request.requestName, FAST_BIND_OID)
        self.assertIsNone(request.encodedRequestValue())


if __name__ == "__main__":
    unittest.main()
