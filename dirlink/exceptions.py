"""
dirlink exceptions.
"""

from typing import Any


class CodecError(ValueError):
    """
    Raised when a stored attribute value cannot be decoded as the requested
    type: the value is absent where one is required, it has the wrong
    textual format, or it has the wrong byte length.

    Args:
        attribute: the name of the attribute being decoded, if known
        value: the offending raw value, or ``None`` if the attribute was absent
        reason: a short human readable explanation

    """

    def __init__(self, attribute: str | None, value: Any, reason: str) -> None:
        self.attribute = attribute
        self.value = value
        self.reason = reason
        super().__init__(f"{attribute or '<unnamed>'}: {reason} (value={value!r})")
