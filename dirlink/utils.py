"""
Helpers for composing LDAP search filters from untrusted input.
"""

#: Characters that carry meaning inside a filter, and their escapes
FILTER_ESCAPES: dict[str, str] = {
    "\\": "\\5c",
    "*": "\\2a",
    "(": "\\28",
    ")": "\\29",
    "\x00": "\\00",
    "/": "\\2f",
}


def escape_filter(value: str) -> str:
    """
    Escape ``value`` for safe use inside an LDAP search filter.

    Backslash, asterisk, both parentheses, NUL and forward slash are replaced
    with their two-hex-digit escapes; every other character is kept.  This is
    not idempotent: escaping an already escaped string escapes its
    backslashes again.

    Nothing in :py:class:`dirlink.session.DirectorySession` calls this for
    you; run it over every untrusted fragment before building a filter.

    Args:
        value: the raw filter fragment

    Raises:
        TypeError: ``value`` is ``None``

    Returns:
        The escaped fragment.

    """
    if value is None:
        msg = "escape_filter() argument must be str, not None"
        raise TypeError(msg)
    return "".join(FILTER_ESCAPES.get(ch, ch) for ch in value)
