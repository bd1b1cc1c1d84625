"""
LDAP controls and extended requests used by dirlink.

* :py:class:`SearchOptionsControl`: Active Directory's search options
  control, which limits a search to the domain being searched or turns on
  phantom root searching.
* :py:func:`paged_results_control`: a fresh RFC 2696 paged results control.
* :py:class:`FastBindRequest`: Active Directory's fast concurrent bind
  extended operation, which makes later binds on the connection only verify
  credentials.
"""

import enum
from typing import ClassVar

from ldap.controls import LDAPControl, SimplePagedResultsControl
from ldap.extop import ExtendedRequest
from pyasn1.codec.ber import encoder  # type: ignore[import]
from pyasn1.type import namedtype, univ  # type: ignore[import]

PAGED_RESULTS_OID: str = SimplePagedResultsControl.controlType
SEARCH_OPTIONS_OID: str = "1.2.840.113556.1.4.1340"
FAST_BIND_OID: str = "1.2.840.113556.1.4.1781"


class SearchOption(enum.IntFlag):
    """Flags carried by :py:class:`SearchOptionsControl`."""

    #: Do not generate referrals to other domains
    DOMAIN_SCOPE = 1
    #: Search every naming context held by the global catalog
    PHANTOM_ROOT = 2


class SearchOptionsValue(univ.Sequence):
    """
    The control value of the search options control::

        SearchOptionsRequestValue ::= SEQUENCE {
            Flags    INTEGER
        }
    """

    componentType: ClassVar[namedtype.NamedTypes] = namedtype.NamedTypes(  # noqa: N815
        namedtype.NamedType("flags", univ.Integer()),
    )


def build_search_options_value(option: SearchOption) -> bytes:
    """
    Build the BER-encoded control value for the search options control.

    Args:
        option: the search option flags

    Returns:
        BER-encoded control value.

    """
    value = SearchOptionsValue()
    value.setComponentByName("flags", univ.Integer(int(option)))
    return encoder.encode(value)


class SearchOptionsControl(LDAPControl):
    """
    LDAP Control Extension for Active Directory search options
    (``LDAP_SERVER_SEARCH_OPTIONS_OID``).

    Args:
        option: the search option flags

    Keyword Args:
        criticality: Whether the control is critical.

    """

    control_type = SEARCH_OPTIONS_OID

    def __init__(
        self,
        option: SearchOption = SearchOption.DOMAIN_SCOPE,
        criticality: bool = False,
    ) -> None:
        self.option = SearchOption(option)
        super().__init__(
            self.control_type, criticality, build_search_options_value(self.option)
        )


def paged_results_control(size: int, cookie: bytes = b"") -> SimplePagedResultsControl:
    """
    Return a new critical paged results control asking for ``size`` entries
    and resuming from ``cookie``.  Pass an empty cookie for the first page.
    """
    return SimplePagedResultsControl(True, size=size, cookie=cookie)  # noqa: FBT003


def find_paged_results_control(
    serverctrls: list[LDAPControl] | None,
) -> SimplePagedResultsControl | None:
    """
    Look up the paged results control among the controls the server returned
    with a search result, or ``None`` if the server did not send one.
    """
    for control in serverctrls or []:
        if control.controlType == PAGED_RESULTS_OID:
            return control
    return None


class FastBindRequest(ExtendedRequest):
    """
    Active Directory fast concurrent bind (``LDAP_SERVER_FAST_BIND_OID``).

    Once a connection has sent this, binds on it only check credentials and
    never build a security context, which is what a credential health check
    wants.
    """

    def __init__(self) -> None:
        super().__init__(requestName=FAST_BIND_OID, requestValue=None)

    def encodedRequestValue(self) -> None:  # noqa: N802
        return None
