"""
Attribute value decoding.

This module converts the untyped, multi-valued attribute values a directory
server returns into Python values.  Each target type has its own named
``decode_*`` function; there is no implicit dispatch on the requested type.

Scalar decoders read the *first* value of the attribute.  Collection decoders
return *all* values, in the order the server sent them.

Absent values are handled per type:

* :py:func:`decode_bytes` and :py:func:`decode_string` return ``None``
* :py:func:`decode_strings` returns ``[]``
* :py:func:`decode_guid` returns :py:data:`EMPTY_GUID`
* everything else raises :py:class:`~dirlink.exceptions.CodecError`

The mirror encoders live in :py:mod:`dirlink.modifications`.
"""

import datetime
import re
import uuid
from collections.abc import Iterable

import pytz

from .exceptions import CodecError

#: The GUID returned for an attribute that has no binary value
EMPTY_GUID: uuid.UUID = uuid.UUID(int=0)

#: Tokens stored for booleans, compared case-insensitively when decoding
LDAP_TRUE: str = "TRUE"
LDAP_FALSE: str = "FALSE"

INT32_MIN: int = -(2**31)
INT32_MAX: int = 2**31 - 1
INT64_MIN: int = -(2**63)
INT64_MAX: int = 2**63 - 1

#: The Windows FILETIME epoch (January 1, 1601 UTC)
FILETIME_EPOCH: datetime.datetime = datetime.datetime(1601, 1, 1, tzinfo=pytz.UTC)
#: The number of 100-nanosecond ticks per second
TICKS_PER_SECOND: int = 10_000_000
TICKS_PER_MICROSECOND: int = 10

GUID_LENGTH: int = 16

_INTEGER_RE = re.compile(r"^\s*[+-]?\d+\s*$", re.ASCII)
_GENERALIZED_TIME_RE = re.compile(
    r"^(?P<year>\d{4})(?P<month>\d{2})(?P<day>\d{2})"
    r"(?P<hour>\d{2})(?P<minute>\d{2})(?P<second>\d{2})"
    r"\.(?P<fraction>\d+)"
    r"(?P<zone>Z|[+-]\d{2}:?\d{2})$",
    re.ASCII,
)


class AttributeValue:
    """
    A named, multi-valued attribute as returned by the directory.

    The values are either all ``bytes`` (the binary family; this is what
    python-ldap hands back) or all ``str`` (the text family).  The text view
    of a binary attribute is its values decoded as UTF-8.  A text attribute
    has no binary view.

    Args:
        name: the attribute name, as the server spelled it
        values: the attribute values in server order

    Raises:
        TypeError: ``values`` mixes ``bytes`` and ``str``, or holds anything else

    """

    def __init__(self, name: str, values: Iterable[bytes | str] = ()) -> None:
        self.name = name
        self.values: tuple[bytes | str, ...] = tuple(values)
        kinds = {type(value) for value in self.values}
        if kinds - {bytes, str} or len(kinds) > 1:
            msg = (
                f"AttributeValue {name!r} values must be all bytes or all str, "
                f"got {sorted(k.__name__ for k in kinds)}"
            )
            raise TypeError(msg)

    @property
    def is_binary(self) -> bool:
        return bool(self.values) and isinstance(self.values[0], bytes)

    def binary_values(self) -> list[bytes]:
        """Return the values of the binary family, or ``[]`` for a text attribute."""
        if not self.is_binary:
            return []
        return list(self.values)  # type: ignore[arg-type]

    def text_values(self) -> list[str]:
        """
        Return the values of the text family.

        Raises:
            CodecError: a binary value is not valid UTF-8

        """
        out: list[str] = []
        for value in self.values:
            if isinstance(value, str):
                out.append(value)
                continue
            try:
                out.append(value.decode("utf-8"))
            except UnicodeDecodeError as e:
                raise CodecError(self.name, value, "value is not UTF-8 text") from e
        return out

    def __len__(self) -> int:
        return len(self.values)

    def __bool__(self) -> bool:
        return True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AttributeValue):
            return NotImplemented
        return self.name.lower() == other.name.lower() and self.values == other.values

    def __hash__(self) -> int:
        return hash((self.name.lower(), self.values))

    def __repr__(self) -> str:
        return f"AttributeValue({self.name!r}, {list(self.values)!r})"

    def __str__(self) -> str:
        return "; ".join(self.text_values())


def _name(attribute: AttributeValue | None) -> str | None:
    return attribute.name if attribute is not None else None


def _first_text(attribute: AttributeValue | None, type_name: str) -> str:
    """Return the first text value, raising :py:class:`CodecError` if there is none."""
    if attribute is None or not attribute.values:
        raise CodecError(_name(attribute), None, f"no value to decode as {type_name}")
    return attribute.text_values()[0]


def _parse_integer(
    attribute: AttributeValue | None, type_name: str, lower: int, upper: int
) -> int:
    text = _first_text(attribute, type_name)
    if not _INTEGER_RE.match(text):
        raise CodecError(_name(attribute), text, f"not a base-10 {type_name}")
    value = int(text)
    if not lower <= value <= upper:
        raise CodecError(_name(attribute), text, f"out of range for {type_name}")
    return value


def decode_int(attribute: AttributeValue | None) -> int:
    """
    Decode the first value as a signed 32-bit integer.

    Raises:
        CodecError: the attribute is absent, empty, malformed or out of range

    """
    return _parse_integer(attribute, "int", INT32_MIN, INT32_MAX)


def decode_long(attribute: AttributeValue | None) -> int:
    """
    Decode the first value as a signed 64-bit integer.

    Raises:
        CodecError: the attribute is absent, empty, malformed or out of range

    """
    return _parse_integer(attribute, "long", INT64_MIN, INT64_MAX)


def decode_bool(attribute: AttributeValue | None) -> bool:
    """
    Decode the first value as a boolean.

    ``TRUE`` and ``FALSE`` are accepted in any letter case; directory servers
    conventionally store them in upper case.

    Raises:
        CodecError: the attribute is absent, empty or holds another token

    """
    text = _first_text(attribute, "bool")
    token = text.strip().upper()
    if token == LDAP_TRUE:
        return True
    if token == LDAP_FALSE:
        return False
    raise CodecError(_name(attribute), text, "not a boolean token")


def decode_bytes(attribute: AttributeValue | None) -> bytes | None:
    """Return the first binary value, or ``None`` if there is none."""
    if attribute is None:
        return None
    values = attribute.binary_values()
    if not values:
        return None
    return values[0]


def decode_guid(attribute: AttributeValue | None) -> uuid.UUID:
    """
    Decode the first binary value as a GUID in Microsoft mixed-endian byte
    order (the layout of ``objectGUID``).

    Returns :py:data:`EMPTY_GUID` if the attribute has no binary value.

    Raises:
        CodecError: the binary value is not exactly 16 bytes long

    """
    raw = decode_bytes(attribute)
    if raw is None:
        return EMPTY_GUID
    if len(raw) != GUID_LENGTH:
        raise CodecError(
            _name(attribute), raw, f"GUID needs {GUID_LENGTH} bytes, got {len(raw)}"
        )
    return uuid.UUID(bytes_le=raw)


def _zone(text: str) -> datetime.tzinfo:
    if text == "Z":
        return pytz.UTC
    sign = -1 if text[0] == "-" else 1
    digits = text[1:].replace(":", "")
    minutes = int(digits[:2]) * 60 + int(digits[2:])
    return pytz.FixedOffset(sign * minutes)


def decode_timestamp(attribute: AttributeValue | None) -> datetime.datetime:
    """
    Decode the first value as a generalized time such as
    ``20240131235959.0Z`` or ``20240131235959.0+0100``.

    The layout is fixed: four digit year; two digit month, day, hour, minute
    and second; a ``.`` and one or more fraction digits; then ``Z`` or a
    ``+HHMM`` / ``+HH:MM`` offset.  Fractions finer than a microsecond are
    truncated.

    Returns:
        A timezone aware datetime.

    Raises:
        CodecError: the attribute is absent, or the value does not match the
            layout or is not a real calendar time

    """
    text = _first_text(attribute, "timestamp")
    match = _GENERALIZED_TIME_RE.match(text)
    if not match:
        raise CodecError(_name(attribute), text, "not a generalized time")
    parts = match.groupdict()
    microsecond = int(parts["fraction"][:6].ljust(6, "0"))
    try:
        naive = datetime.datetime(
            int(parts["year"]),
            int(parts["month"]),
            int(parts["day"]),
            int(parts["hour"]),
            int(parts["minute"]),
            int(parts["second"]),
            microsecond,
        )
        zone = _zone(parts["zone"])
    except ValueError as e:
        raise CodecError(_name(attribute), text, str(e)) from e
    return naive.replace(tzinfo=zone)


def ticks_to_timedelta(ticks: int) -> datetime.timedelta:
    """Convert a count of 100-nanosecond ticks to a timedelta."""
    seconds, remainder = divmod(ticks, TICKS_PER_SECOND)
    return datetime.timedelta(
        seconds=seconds, microseconds=remainder // TICKS_PER_MICROSECOND
    )


def decode_duration(attribute: AttributeValue | None) -> datetime.timedelta:
    """
    Decode the first value as a signed 64-bit count of 100-nanosecond ticks,
    the representation Active Directory uses for ``maxPwdAge`` and friends.

    Raises:
        CodecError: the underlying integer does not decode, or the duration
            does not fit in a timedelta

    """
    ticks = decode_long(attribute)
    try:
        return ticks_to_timedelta(ticks)
    except OverflowError as e:
        raise CodecError(_name(attribute), ticks, "duration out of range") from e


def decode_filetime(attribute: AttributeValue | None) -> datetime.datetime:
    """
    Decode the first value as a Windows FILETIME (100-nanosecond ticks since
    1601-01-01 UTC), as stored in ``pwdLastSet`` or ``accountExpires``.

    Raises:
        CodecError: the underlying integer does not decode, or the time is
            outside the range of a datetime

    """
    ticks = decode_long(attribute)
    try:
        return FILETIME_EPOCH + ticks_to_timedelta(ticks)
    except OverflowError as e:
        raise CodecError(_name(attribute), ticks, "FILETIME out of range") from e


def decode_string(attribute: AttributeValue | None) -> str | None:
    """Return the first text value, or ``None`` if there is none."""
    if attribute is None:
        return None
    values = attribute.text_values()
    if not values:
        return None
    return values[0]


def decode_strings(attribute: AttributeValue | None) -> list[str]:
    """Return every text value in server order; ``[]`` if the attribute is absent."""
    if attribute is None:
        return []
    return attribute.text_values()
