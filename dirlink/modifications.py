"""
Modification builder.

A modification is one of four tagged variants, each keyed by an attribute
name:

* :py:class:`Clear`: remove every value of the attribute
* :py:class:`Replace`: atomically clear the attribute, then set new values
* :py:class:`Add`: append one value, keeping the existing ones
* :py:class:`Delete`: remove one matching value, keeping the others

Values are encoded to ``bytes`` by an explicit encoder.  The encoders here
are the inverse of the ``decode_*`` functions in :py:mod:`dirlink.codec`,
with these deliberate differences:

* :py:func:`encode_bool` always writes upper case ``TRUE``/``FALSE``, while
  :py:func:`~dirlink.codec.decode_bool` accepts any letter case.
* :py:func:`encode_timestamp` writes tenths of a second, while
  :py:func:`~dirlink.codec.decode_timestamp` reads any number of fraction
  digits, so finer precision does not survive a round trip.
* :py:func:`set_timestamp` can write a FILETIME integer instead of a
  generalized time; read that back with
  :py:func:`~dirlink.codec.decode_filetime`, not ``decode_timestamp``.

Nothing here looks at a live directory entry.
"""

import datetime
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

import pytz
from django.utils import timezone

from . import ldap
from .codec import (
    FILETIME_EPOCH,
    INT32_MAX,
    INT32_MIN,
    INT64_MAX,
    INT64_MIN,
    LDAP_FALSE,
    LDAP_TRUE,
    TICKS_PER_MICROSECOND,
    TICKS_PER_SECOND,
)
from .typing import ModList, ModListEntry

#: An encoder turns one typed value into the bytes stored in the directory
Encoder = Callable[[Any], bytes]


# -----------------------
# Encoders
# -----------------------


def _encode_integer(value: int, lower: int, upper: int, type_name: str) -> bytes:
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"{type_name} value must be an int, not {type(value).__name__}"
        raise TypeError(msg)
    if not lower <= value <= upper:
        msg = f"{value} is out of range for {type_name}"
        raise ValueError(msg)
    return str(value).encode("ascii")


def encode_int(value: int) -> bytes:
    return _encode_integer(value, INT32_MIN, INT32_MAX, "int")


def encode_long(value: int) -> bytes:
    return _encode_integer(value, INT64_MIN, INT64_MAX, "long")


def encode_bool(value: bool) -> bytes:
    return (LDAP_TRUE if value else LDAP_FALSE).encode("ascii")


def encode_guid(value: uuid.UUID) -> bytes:
    """Encode a GUID in the Microsoft mixed-endian layout used by ``objectGUID``."""
    return value.bytes_le


def encode_bytes(value: bytes | bytearray) -> bytes:
    return bytes(value)


def encode_string(value: str) -> bytes:
    return value.encode("utf-8")


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    if timezone.is_naive(value):
        return timezone.make_aware(value, pytz.UTC)
    return value.astimezone(pytz.UTC)


def encode_timestamp(value: datetime.datetime) -> bytes:
    """
    Encode ``value`` as a generalized time with tenths of a second, e.g.
    ``20240131235959.5Z``.  UTC values get a ``Z`` suffix, anything else its
    ``+HHMM`` offset.  Naive datetimes are taken to be UTC.
    """
    if timezone.is_naive(value):
        value = timezone.make_aware(value, pytz.UTC)
    offset = value.utcoffset() or datetime.timedelta(0)
    stamp = (
        f"{value.year:04d}{value.month:02d}{value.day:02d}"
        f"{value.hour:02d}{value.minute:02d}{value.second:02d}"
    )
    tenths = value.microsecond // 100_000
    if offset == datetime.timedelta(0):
        zone = "Z"
    else:
        minutes = int(offset.total_seconds()) // 60
        sign = "-" if minutes < 0 else "+"
        hours, minutes = divmod(abs(minutes), 60)
        zone = f"{sign}{hours:02d}{minutes:02d}"
    return f"{stamp}.{tenths}{zone}".encode("ascii")


def timedelta_to_ticks(value: datetime.timedelta) -> int:
    """Convert a timedelta to a count of 100-nanosecond ticks."""
    seconds = value.days * 86_400 + value.seconds
    return seconds * TICKS_PER_SECOND + value.microseconds * TICKS_PER_MICROSECOND


def encode_filetime(value: datetime.datetime) -> bytes:
    """Encode ``value`` as a Windows FILETIME integer.  Naive datetimes are UTC."""
    return encode_long(timedelta_to_ticks(_as_utc(value) - FILETIME_EPOCH))


def encode_duration(value: datetime.timedelta) -> bytes:
    return encode_long(timedelta_to_ticks(value))


# -----------------------
# Modification variants
# -----------------------


@dataclass(frozen=True)
class Clear:
    """Remove every value of ``name``."""

    name: str

    def to_modlist(self) -> ModListEntry:
        return (ldap.MOD_DELETE, self.name, None)


@dataclass(frozen=True)
class Replace:
    """Replace every value of ``name`` with ``values``."""

    name: str
    values: tuple[bytes, ...]

    def to_modlist(self) -> ModListEntry:
        return (ldap.MOD_REPLACE, self.name, list(self.values))


@dataclass(frozen=True)
class Add:
    """Append ``value`` to ``name``."""

    name: str
    value: bytes

    def to_modlist(self) -> ModListEntry:
        return (ldap.MOD_ADD, self.name, [self.value])


@dataclass(frozen=True)
class Delete:
    """Remove the single value ``value`` from ``name``."""

    name: str
    value: bytes

    def to_modlist(self) -> ModListEntry:
        return (ldap.MOD_DELETE, self.name, [self.value])


Modification = Clear | Replace | Add | Delete


# -----------------------
# Builders
# -----------------------


def clear(name: str) -> Clear:
    return Clear(name)


def replace(
    name: str, values: Iterable[Any], encoder: Encoder = encode_string
) -> Replace:
    """
    Build one :py:class:`Replace` carrying every value in ``values``, each
    run through ``encoder``.
    """
    return Replace(name, tuple(encoder(value) for value in values))


def set_int(name: str, value: int) -> Replace:
    return replace(name, [value], encode_int)


def set_long(name: str, value: int) -> Replace:
    return replace(name, [value], encode_long)


def set_bool(name: str, value: bool) -> Replace:
    return replace(name, [value], encode_bool)


def set_guid(name: str, value: uuid.UUID) -> Replace:
    return replace(name, [value], encode_guid)


def set_timestamp(
    name: str, value: datetime.datetime, as_filetime: bool = False
) -> Replace:
    """
    Replace ``name`` with a timestamp.

    Args:
        name: the attribute name
        value: the timestamp

    Keyword Args:
        as_filetime: if ``True`` store a Windows FILETIME integer, otherwise a
            generalized time string

    """
    if as_filetime:
        return replace(name, [value], encode_filetime)
    return replace(name, [value], encode_timestamp)


def set_duration(name: str, value: datetime.timedelta) -> Replace:
    return replace(name, [value], encode_duration)


def set_bytes(name: str, value: bytes | bytearray) -> Replace:
    return replace(name, [value], encode_bytes)


def set_string(name: str, value: str) -> Replace:
    return replace(name, [value], encode_string)


def set_strings(name: str, values: Iterable[str]) -> Replace:
    return replace(name, values, encode_string)


def add(name: str, value: str) -> Add:
    return Add(name, encode_string(value))


def remove(name: str, value: str) -> Delete:
    return Delete(name, encode_string(value))


def to_modlist(modifications: Iterable[Modification]) -> ModList:
    """Render ``modifications`` as a modlist for ``LDAPObject.modify_s``."""
    return [modification.to_modlist() for modification in modifications]
