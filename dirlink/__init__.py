"""
dirlink: a small client layer over python-ldap.

Lazily bound sessions, paged searches, typed attribute decoding and a
modification builder for talking to Active Directory and other LDAP
servers.
"""

from .codec import AttributeValue
from .connection import (
    Credential,
    DirectoryIdentifier,
    configure_from_settings,
    require_secure_transport,
)
from .controls import SearchOption
from .exceptions import CodecError
from .paging import PagedSearchEngine, SearchRequest
from .results import ResultCode, TestBindResult
from .session import DirectorySession
from .utils import escape_filter
from .views import DirectoryEntry, DirectoryEntryView, RootDseView

__version__ = "1.0.0"

__all__ = [
    "AttributeValue",
    "CodecError",
    "Credential",
    "DirectoryEntry",
    "DirectoryEntryView",
    "DirectoryIdentifier",
    "DirectorySession",
    "PagedSearchEngine",
    "ResultCode",
    "RootDseView",
    "SearchOption",
    "SearchRequest",
    "TestBindResult",
    "configure_from_settings",
    "escape_filter",
    "require_secure_transport",
]
