"""
Tests for PagedSearchEngine.
"""

import unittest
from unittest.mock import Mock

import ldap
from django.conf import settings
from django.test import override_settings
from ldap.controls import SimplePagedResultsControl

from dirlink.controls import SEARCH_OPTIONS_OID, SearchOption, SearchOptionsControl
from dirlink.paging import MATCH_ALL, PagedSearchEngine, PageState, SearchRequest

if not settings.configured:
    settings.configure(USE_TZ=True)


def page(rows, cookie):
    """Build a result4() return value carrying ``rows`` and a paged control."""
    ctrls = []
    if cookie is not None:
        ctrls.append(SimplePagedResultsControl(True, size=0, cookie=cookie))
    return (ldap.RES_SEARCH_RESULT, rows, 1, ctrls, None, None)


def row(dn, **attrs):
    return (dn, {name: [v.encode() for v in values] for name, values in attrs.items()}, [])


def sent_cookies(connection):
    """Return the paged results cookie sent on each search_ext() call."""
    cookies = []
    for call in connection.search_ext.call_args_list:
        paged = [
            c
            for c in call.kwargs["serverctrls"]
            if c.controlType == SimplePagedResultsControl.controlType
        ]
        cookies.append(paged[0].cookie)
    return cookies


class TestPagedSearchEngine(unittest.TestCase):
    """Test paged search round trips."""

    def setUp(self):
        """Set up test fixtures."""
        self.connection = Mock()
        self.connection.search_ext.return_value = 1
        self.request = SearchRequest("DC=example,DC=com", filterstr="(cn=*)")

    def test_three_pages(self):
        """Test that cookies C1, C2, empty take exactly three round trips."""
        self.connection.result4.side_effect = [
            page([row("CN=a,DC=example,DC=com", cn=["a"])], b"C1"),
            page([row("CN=b,DC=example,DC=com", cn=["b"])], b"C2"),
            page([row("CN=c,DC=example,DC=com", cn=["c"])], b""),
        ]
        engine = PagedSearchEngine(self.connection, self.request, page_size=1)
        results = engine.run()
        self.assertEqual(self.connection.search_ext.call_count, 3)
        self.assertEqual([e.dn for e in results], [
            "CN=a,DC=example,DC=com",
            "CN=b,DC=example,DC=com",
            "CN=c,DC=example,DC=com",
        ])
        self.assertEqual(sent_cookies(self.connection), [b"", b"C1", b"C2"])

    def test_single_page_no_cookie(self):
        """Test that a response without a paged control ends the search."""
        self.connection.result4.return_value = page([row("CN=a,DC=example,DC=com")], None)
        results = PagedSearchEngine(self.connection, self.request).run()
        self.assertEqual(self.connection.search_ext.call_count, 1)
        self.assertEqual(len(results), 1)

    def test_empty_result(self):
        """Test that a search matching nothing returns an empty list."""
        self.connection.result4.return_value = page([], b"")
        self.assertEqual(PagedSearchEngine(self.connection, self.request).run(), [])
        self.assertEqual(self.connection.search_ext.call_count, 1)

    def test_request_parameters(self):
        """Test the base, scope, filter, attributes and controls sent."""
        request = SearchRequest(
            "OU=People,DC=example,DC=com",
            ldap.SCOPE_ONELEVEL,
            filterstr="(sn=Smith)",
            attributes=("cn", "mail"),
            sizelimit=50,
        )
        self.connection.result4.return_value = page([], b"")
        PagedSearchEngine(self.connection, request, page_size=25).run()
        call = self.connection.search_ext.call_args
        self.assertEqual(
            call.args,
            ("OU=People,DC=example,DC=com", ldap.SCOPE_ONELEVEL, "(sn=Smith)", ["cn", "mail"]),
        )
        self.assertEqual(call.kwargs["sizelimit"], 50)
        ctrls = call.kwargs["serverctrls"]
        self.assertEqual(ctrls[0].controlType, SEARCH_OPTIONS_OID)
        self.assertEqual(ctrls[1].size, 25)
        self.connection.result4.assert_called_once_with(1, all=1, add_ctrls=1)

    def test_no_search_options_control(self):
        """Test that scope_option=None leaves the search options control out."""
        self.connection.result4.return_value = page([], b"")
        PagedSearchEngine(self.connection, self.request, scope_option=None).run()
        ctrls = self.connection.search_ext.call_args.kwargs["serverctrls"]
        self.assertEqual(len(ctrls), 1)
        self.assertEqual(ctrls[0].controlType, SimplePagedResultsControl.controlType)

    def test_fresh_controls_each_round_trip(self):
        """Test that no control object is shared between round trips."""
        engine = PagedSearchEngine(
            self.connection, self.request, scope_option=SearchOption.PHANTOM_ROOT
        )
        first = engine.controls_for(PageState())
        second = engine.controls_for(PageState(cookie=b"C1", round_trips=1))
        self.assertIsInstance(first[0], SearchOptionsControl)
        self.assertEqual(first[0].option, SearchOption.PHANTOM_ROOT)
        self.assertIsNot(first[1], second[1])
        self.assertEqual(first[1].cookie, b"")
        self.assertEqual(second[1].cookie, b"C1")

    def test_round_trip_state(self):
        """Test that round_trip() returns a new state and leaves the old one alone."""
        self.connection.result4.return_value = page([], b"C9")
        engine = PagedSearchEngine(self.connection, self.request)
        start = PageState()
        _, state = engine.round_trip(start)
        self.assertEqual(state, PageState(cookie=b"C9", round_trips=1, done=False))
        self.assertEqual(start, PageState())

    def test_referrals_skipped(self):
        """Test that search continuation references are not returned as entries."""
        self.connection.result4.return_value = page(
            [
                row("CN=a,DC=example,DC=com", cn=["a"]),
                (None, ["ldap://other.example.com/DC=other,DC=com"], []),
            ],
            b"",
        )
        results = PagedSearchEngine(self.connection, self.request).run()
        self.assertEqual([e.dn for e in results], ["CN=a,DC=example,DC=com"])

    def test_entry_attributes(self):
        """Test that entries carry case-insensitive attributes."""
        self.connection.result4.return_value = page(
            [row("CN=a,DC=example,DC=com", sAMAccountName=["alice"])], b""
        )
        entry = PagedSearchEngine(self.connection, self.request).run()[0]
        self.assertEqual(entry.get("samaccountname").text_values(), ["alice"])
        self.assertEqual(list(entry.attributes), ["sAMAccountName"])

    def test_failure_discards_partial_results(self):
        """Test that run() raises when a later round trip fails."""
        self.connection.result4.side_effect = [
            page([row("CN=a,DC=example,DC=com")], b"C1"),
            ldap.SERVER_DOWN({"result": -1, "desc": "Can't contact LDAP server"}),
        ]
        with self.assertRaises(ldap.SERVER_DOWN):
            PagedSearchEngine(self.connection, self.request).run()

    def test_pages_keeps_earlier_pages(self):
        """Test that pages() hands out each page before a later failure."""
        self.connection.result4.side_effect = [
            page([row("CN=a,DC=example,DC=com")], b"C1"),
            ldap.SERVER_DOWN({"result": -1, "desc": "Can't contact LDAP server"}),
        ]
        pages = PagedSearchEngine(self.connection, self.request).pages()
        self.assertEqual([e.dn for e in next(pages)], ["CN=a,DC=example,DC=com"])
        with self.assertRaises(ldap.SERVER_DOWN):
            next(pages)

    def test_invalid_page_size(self):
        """Test that a non-positive page size is rejected."""
        with self.assertRaises(ValueError):
            PagedSearchEngine(self.connection, self.request, page_size=0)

    def test_page_size_above_maximum(self):
        """Test that a page size above DIRLINK_MAX_PAGE_SIZE is rejected."""
        with self.assertRaises(ValueError):
            PagedSearchEngine(self.connection, self.request, page_size=10**9)
        with override_settings(DIRLINK_MAX_PAGE_SIZE=500):
            with self.assertRaises(ValueError):
                PagedSearchEngine(self.connection, self.request, page_size=501)
            self.assertEqual(
                PagedSearchEngine(self.connection, self.request, page_size=500).page_size,
                500,
            )

    def test_page_size_below_minimum(self):
        """Test that a page size below DIRLINK_MIN_PAGE_SIZE is rejected."""
        with override_settings(DIRLINK_MIN_PAGE_SIZE=10):
            with self.assertRaises(ValueError):
                PagedSearchEngine(self.connection, self.request, page_size=9)
        self.connection.search_ext.assert_not_called()

    def test_default_page_size(self):
        """Test that the default page size comes from configuration."""
        engine = PagedSearchEngine(self.connection, SearchRequest("DC=example,DC=com"))
        self.assertEqual(engine.page_size, 1000)
        self.assertEqual(engine.request.filterstr, MATCH_ALL)


if __name__ == "__main__":
    unittest.main()
