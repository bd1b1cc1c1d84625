"""
Tests for filter escaping.
"""

import unittest

from dirlink.utils import escape_filter


class TestEscapeFilter(unittest.TestCase):
    """Test escape_filter()."""

    def test_special_characters(self):
        """Test every escaped character in one value."""
        self.assertEqual(escape_filter("a*(b)\\c/\x00"), "a\\2a\\28b\\29\\5cc\\2f\\00")

    def test_plain_text_unchanged(self):
        """Test that ordinary characters, including non-ASCII, are kept."""
        self.assertEqual(escape_filter("Zoë O'Brien-Smith"), "Zoë O'Brien-Smith")
        self.assertEqual(escape_filter(""), "")

    def test_not_idempotent(self):
        """Test that escaping twice escapes the backslashes again."""
        self.assertEqual(escape_filter(escape_filter("*")), "\\5c2a")

    def test_none(self):
        """Test that None is rejected."""
        with self.assertRaises(TypeError):
            escape_filter(None)


if __name__ == "__main__":
    unittest.main()
