"""
Directory entries and read-only typed views over them.

:py:class:`DirectoryEntry` is what a search returns: a DN, its attributes and
any controls the server attached to the entry.  :py:class:`DirectoryEntryView`
subclasses wrap an entry and expose named, typed properties that decode the
underlying attribute every time they are read.
"""

import datetime
from collections.abc import Iterable, Mapping
from typing import Any

from django.utils.datastructures import CaseInsensitiveMapping

from . import codec
from .codec import AttributeValue
from .typing import RawAttributes


class DirectoryEntry:
    """
    One directory entry.

    Attribute lookups are case-insensitive, as LDAP attribute names are;
    iterating :py:attr:`attributes` yields the names as the server spelled
    them.

    Args:
        dn: the distinguished name of the entry
        attributes: the entry's attributes

    Keyword Args:
        controls: response controls the server returned with this entry

    """

    def __init__(
        self,
        dn: str,
        attributes: Iterable[AttributeValue] = (),
        controls: Iterable[Any] = (),
    ) -> None:
        self.dn = dn
        self.attributes: Mapping[str, AttributeValue] = CaseInsensitiveMapping(
            {attribute.name: attribute for attribute in attributes}
        )
        self.controls: list[Any] = list(controls)

    @classmethod
    def from_ldap(
        cls,
        dn: str,
        attrs: RawAttributes,
        controls: Iterable[Any] = (),
    ) -> "DirectoryEntry":
        """Build an entry from a python-ldap ``(dn, attrs)`` search row."""
        return cls(
            dn,
            [AttributeValue(name, values) for name, values in attrs.items()],
            controls=controls,
        )

    def get(self, name: str) -> AttributeValue | None:
        """Return the attribute called ``name``, or ``None`` if it is absent."""
        return self.attributes.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self.attributes

    def __repr__(self) -> str:
        return f"DirectoryEntry({self.dn!r}, attributes={list(self.attributes)!r})"


class DirectoryEntryView:
    """
    Base class for read-only typed views over a :py:class:`DirectoryEntry`.

    Args:
        entry: the entry to wrap

    """

    def __init__(self, entry: DirectoryEntry) -> None:
        self._entry = entry

    @property
    def raw_result(self) -> DirectoryEntry:
        return self._entry

    @property
    def dn(self) -> str:
        return self._entry.dn

    @property
    def attributes(self) -> Mapping[str, AttributeValue]:
        return self._entry.attributes

    def _get(self, name: str) -> AttributeValue | None:
        return self._entry.get(name)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.dn!r})"


class RootDseView(DirectoryEntryView):
    """
    Typed view of the root DSE, the unnamed entry at the top of a directory
    server that describes the server itself.

    Most properties are Active Directory attributes; on other servers they
    are ``None`` (or empty lists) when absent.  Properties typed ``int``,
    ``bool`` or ``datetime`` raise
    :py:class:`~dirlink.exceptions.CodecError` when the server did not send
    the attribute.
    """

    ACTIVE_DIRECTORY: str = "active_directory"
    DS389: str = "389"
    OPENLDAP: str = "openldap"
    UNKNOWN: str = "unknown"

    @property
    def configuration_naming_context(self) -> str | None:
        return codec.decode_string(self._get("configurationNamingContext"))

    @property
    def current_time(self) -> datetime.datetime:
        return codec.decode_timestamp(self._get("currentTime"))

    @property
    def default_naming_context(self) -> str | None:
        return codec.decode_string(self._get("defaultNamingContext"))

    @property
    def dns_host_name(self) -> str | None:
        return codec.decode_string(self._get("dnsHostName"))

    @property
    def domain_controller_functionality(self) -> str | None:
        return codec.decode_string(self._get("domainControllerFunctionality"))

    @property
    def domain_functionality(self) -> str | None:
        return codec.decode_string(self._get("domainFunctionality"))

    @property
    def ds_service_name(self) -> str | None:
        return codec.decode_string(self._get("dsServiceName"))

    @property
    def forest_functionality(self) -> str | None:
        return codec.decode_string(self._get("forestFunctionality"))

    @property
    def highest_committed_usn(self) -> int:
        return codec.decode_long(self._get("highestCommittedUSN"))

    @property
    def is_global_catalog_ready(self) -> bool:
        return codec.decode_bool(self._get("isGlobalCatalogReady"))

    @property
    def is_synchronized(self) -> bool:
        return codec.decode_bool(self._get("isSynchronized"))

    @property
    def ldap_service_name(self) -> str | None:
        return codec.decode_string(self._get("ldapServiceName"))

    @property
    def naming_contexts(self) -> list[str]:
        return codec.decode_strings(self._get("namingContexts"))

    @property
    def root_domain_naming_context(self) -> str | None:
        return codec.decode_string(self._get("rootDomainNamingContext"))

    @property
    def schema_naming_context(self) -> str | None:
        return codec.decode_string(self._get("schemaNamingContext"))

    @property
    def server_name(self) -> str | None:
        return codec.decode_string(self._get("serverName"))

    @property
    def subschema_subentry(self) -> str | None:
        return codec.decode_string(self._get("subschemaSubentry"))

    @property
    def supported_capabilities(self) -> list[str]:
        return codec.decode_strings(self._get("supportedCapabilities"))

    @property
    def supported_controls(self) -> list[str]:
        return codec.decode_strings(self._get("supportedControl"))

    @property
    def supported_ldap_policies(self) -> list[str]:
        return codec.decode_strings(self._get("supportedLDAPPolicies"))

    @property
    def supported_ldap_versions(self) -> list[str]:
        return codec.decode_strings(self._get("supportedLDAPVersion"))

    @property
    def supported_sasl_mechanisms(self) -> list[str]:
        return codec.decode_strings(self._get("supportedSASLMechanisms"))

    @property
    def vendor_name(self) -> str | None:
        return codec.decode_string(self._get("vendorName"))

    def supports_control(self, oid: str) -> bool:
        """Return ``True`` if the server advertises the control ``oid``."""
        return oid in self.supported_controls

    @property
    def flavor(self) -> str:
        """
        Detect server flavor with priority ordering.

        Priority:
        1. Active Directory (forestFunctionality is definitive)
        2. 389 Directory Server (vendor name)
           - Fedora Project (upstream 389)
           - Red Hat (Red Hat Directory Server)
           - Oracle (Oracle Directory Server)
           - ForgeRock (ForgeRock Directory Services)
        3. OpenLDAP (vendor name)
        4. The vendor name itself, or "unknown" if there is none
        """
        if "forestFunctionality" in self.attributes:
            return self.ACTIVE_DIRECTORY

        vendor_name = self.vendor_name
        if not vendor_name:
            return self.UNKNOWN

        if (
            "Fedora Project" in vendor_name
            or "Red Hat" in vendor_name
            or "Oracle" in vendor_name
            or "ForgeRock" in vendor_name
            or "389" in vendor_name
        ):
            return self.DS389

        if "OpenLDAP Foundation" in vendor_name:
            return self.OPENLDAP

        return vendor_name
