"""
LDAP result codes and helpers for pulling structured results out of
python-ldap exceptions.

python-ldap reports every non-success result by raising an
:py:class:`ldap.LDAPError` subclass whose first argument is a dict.  When the
server actually answered, that dict carries the server's ``result`` code
(always zero or positive).  Failures that happen on our side of the wire
(``SERVER_DOWN``, ``TIMEOUT``, ``LOCAL_ERROR``, ...) carry negative libldap
API codes instead, and have no server response behind them.
"""

import enum
from dataclasses import dataclass
from typing import Any


@enum.unique
class ResultCode(enum.IntEnum):
    """All LDAP result codes as defined in RFC 4511."""

    SUCCESS = 0
    OPERATIONS_ERROR = 1
    PROTOCOL_ERROR = 2
    TIME_LIMIT_EXCEEDED = 3
    SIZE_LIMIT_EXCEEDED = 4
    COMPARE_FALSE = 5
    COMPARE_TRUE = 6
    AUTH_METHOD_NOT_SUPPORTED = 7
    STRONGER_AUTH_REQUIRED = 8
    # 9 reserved
    REFERRAL = 10
    ADMIN_LIMIT_EXCEEDED = 11
    UNAVAILABLE_CRITICAL_EXTENSION = 12
    CONFIDENTIALITY_REQUIRED = 13
    SASL_BIND_IN_PROGRESS = 14
    NO_SUCH_ATTRIBUTE = 16
    UNDEFINED_ATTRIBUTE_TYPE = 17
    INAPPROPRIATE_MATCHING = 18
    CONSTRAINT_VIOLATION = 19
    ATTRIBUTE_OR_VALUE_EXISTS = 20
    INVALID_ATTRIBUTE_SYNTAX = 21
    NO_SUCH_OBJECT = 32
    ALIAS_PROBLEM = 33
    INVALID_DN_SYNTAX = 34
    ALIAS_DEREFERENCING_PROBLEM = 36
    INAPPROPRIATE_AUTHENTICATION = 48
    INVALID_CREDENTIALS = 49
    INSUFFICIENT_ACCESS_RIGHTS = 50
    BUSY = 51
    UNAVAILABLE = 52
    UNWILLING_TO_PERFORM = 53
    LOOP_DETECT = 54
    NAMING_VIOLATION = 64
    OBJECT_CLASS_VIOLATION = 65
    NOT_ALLOWED_ON_NON_LEAF = 66
    NOT_ALLOWED_ON_RDN = 67
    ENTRY_ALREADY_EXISTS = 68
    OBJECT_CLASS_MODS_PROHIBITED = 69
    AFFECTS_MULTIPLE_DSAS = 71
    OTHER = 80


def as_result_code(code: int) -> "ResultCode | int":
    """
    Return ``code`` as a :py:class:`ResultCode` member when it is one of the
    standard codes, otherwise as the plain integer the server sent.
    """
    try:
        return ResultCode(code)
    except ValueError:
        return code


def _error_info(exc: Exception) -> dict[str, Any]:
    if exc.args and isinstance(exc.args[0], dict):
        return exc.args[0]
    return {}


def structured_result(exc: Exception) -> "ResultCode | int | None":
    """
    Return the server result code carried by a python-ldap exception, or
    ``None`` if the exception did not come from a server response.

    Args:
        exc: an :py:class:`ldap.LDAPError`

    Returns:
        The result code, or ``None``.

    """
    code = _error_info(exc).get("result")
    if isinstance(code, int) and code >= 0:
        return as_result_code(code)
    return None


def error_code(exc: Exception) -> int:
    """Return the raw result code of ``exc``, negative for client-side errors."""
    code = _error_info(exc).get("result")
    if isinstance(code, int):
        return code
    return -1


def server_message(exc: Exception) -> str:
    """
    Return the diagnostic message of ``exc``: the server's ``info`` text when
    there is one, otherwise libldap's ``desc``.
    """
    info = _error_info(exc)
    message = info.get("info") or info.get("desc") or ""
    if isinstance(message, bytes):
        message = message.decode("utf-8", errors="replace")
    return str(message)


@dataclass(frozen=True)
class TestBindResult:
    """
    Outcome of :py:meth:`dirlink.session.DirectorySession.test_bind`.

    ``error_code`` and ``server_message`` are only meaningful when
    ``success`` is ``False``.
    """

    __test__ = False

    success: bool
    error_code: int = 0
    server_message: str = ""
