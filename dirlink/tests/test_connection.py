"""
Tests for DirectoryIdentifier, Credential and the configuration hooks.
"""

import tempfile
import unittest
from unittest.mock import Mock, call

import ldap

from dirlink.connection import (
    Credential,
    DirectoryIdentifier,
    configure_from_settings,
    require_secure_transport,
)


class TestDirectoryIdentifier(unittest.TestCase):
    """Test DirectoryIdentifier."""

    def test_single_host(self):
        """Test the URI of a single host."""
        self.assertEqual(DirectoryIdentifier("dc1.example.com").uri, "ldaps://dc1.example.com")

    def test_several_hosts_with_port(self):
        """Test that several hosts render as a URI list."""
        identifier = DirectoryIdentifier(
            ("dc1.example.com", "dc2.example.com"), port=389, scheme="LDAP"
        )
        self.assertEqual(
            identifier.uri, "ldap://dc1.example.com:389 ldap://dc2.example.com:389"
        )

    def test_from_url(self):
        """Test parsing a URL list."""
        identifier = DirectoryIdentifier.from_url(
            "ldaps://dc1.example.com:636 ldaps://dc2.example.com:636"
        )
        self.assertEqual(identifier.hosts, ("dc1.example.com", "dc2.example.com"))
        self.assertEqual(identifier.port, 636)
        self.assertEqual(identifier.scheme, "ldaps")

    def test_from_url_without_port(self):
        """Test that a URL without a port leaves the port unset."""
        identifier = DirectoryIdentifier.from_url("ldap://localhost")
        self.assertIsNone(identifier.port)
        self.assertEqual(identifier.uri, "ldap://localhost")

    def test_from_url_mixed_schemes(self):
        """Test that URL lists must agree on the scheme."""
        with self.assertRaises(ValueError):
            DirectoryIdentifier.from_url("ldap://a.example.com ldaps://b.example.com")

    def test_invalid(self):
        """Test that empty hosts and unknown schemes are rejected."""
        with self.assertRaises(ValueError):
            DirectoryIdentifier(())
        with self.assertRaises(ValueError):
            DirectoryIdentifier("dc1.example.com", scheme="http")


class TestCredential(unittest.TestCase):
    """Test Credential."""

    def test_password_not_in_repr(self):
        """Test that the password never shows up in repr()."""
        credential = Credential("svc@example.com", "hunter2")
        self.assertIn("svc@example.com", repr(credential))
        self.assertNotIn("hunter2", repr(credential))


class TestRequireSecureTransport(unittest.TestCase):
    """Test the default configuration hook."""

    def test_starttls_for_ldap(self):
        """Test that ldap:// connections are upgraded with StartTLS."""
        connection = Mock()
        connection.get_option.return_value = "ldap://dc1.example.com"
        require_secure_transport(connection)
        connection.set_option.assert_any_call(
            ldap.OPT_X_TLS_REQUIRE_CERT, ldap.OPT_X_TLS_DEMAND
        )
        connection.start_tls_s.assert_called_once_with()

    def test_no_starttls_for_ldaps(self):
        """Test that ldaps:// connections are left alone."""
        connection = Mock()
        connection.get_option.return_value = "ldaps://dc1.example.com"
        require_secure_transport(connection)
        connection.start_tls_s.assert_not_called()


class TestConfigureFromSettings(unittest.TestCase):
    """Test building a configuration hook from a server settings entry."""

    def test_options(self):
        """Test the options applied to the connection."""
        hook = configure_from_settings(
            {
                "url": "ldap://localhost",
                "tls_verify": "never",
                "timeout": 5,
                "sizelimit": 100,
                "follow_referrals": True,
                "use_starttls": False,
            }
        )
        connection = Mock()
        connection.get_option.return_value = "ldap://localhost"
        hook(connection)
        connection.set_option.assert_has_calls(
            [
                call(ldap.OPT_REFERRALS, 1),
                call(ldap.OPT_NETWORK_TIMEOUT, 5.0),
                call(ldap.OPT_SIZELIMIT, 100),
                call(ldap.OPT_X_TLS_REQUIRE_CERT, ldap.OPT_X_TLS_NEVER),
                call(ldap.OPT_X_TLS_NEWCTX, 0),
            ]
        )
        connection.start_tls_s.assert_not_called()

    def test_defaults(self):
        """Test that defaults verify certificates and use StartTLS."""
        connection = Mock()
        connection.get_option.return_value = "ldap://localhost"
        configure_from_settings({"url": "ldap://localhost"})(connection)
        connection.set_option.assert_any_call(ldap.OPT_REFERRALS, 0)
        connection.set_option.assert_any_call(
            ldap.OPT_X_TLS_REQUIRE_CERT, ldap.OPT_X_TLS_DEMAND
        )
        connection.start_tls_s.assert_called_once_with()

    def test_ca_certfile(self):
        """Test that an existing CA file is passed through."""
        with tempfile.NamedTemporaryFile(suffix=".pem") as ca:
            connection = Mock()
            connection.get_option.return_value = "ldaps://localhost"
            configure_from_settings({"tls_ca_certfile": ca.name})(connection)
            connection.set_option.assert_any_call(ldap.OPT_X_TLS_CACERTFILE, ca.name)

    def test_invalid_tls_verify(self):
        """Test that an unknown tls_verify value is rejected."""
        with self.assertRaises(ValueError):
            configure_from_settings({"tls_verify": "sometimes"})

    def test_missing_certfile(self):
        """Test that a missing certificate file is rejected."""
        with self.assertRaises(OSError):
            configure_from_settings({"tls_ca_certfile": "/nonexistent/ca.pem"})
        with tempfile.TemporaryDirectory() as directory, self.assertRaises(OSError):
            configure_from_settings({"tls_keyfile": directory})


if __name__ == "__main__":
    unittest.main()
