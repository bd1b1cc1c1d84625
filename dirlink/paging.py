"""
Paged search.

:py:class:`PagedSearchEngine` runs one logical search as a sequence of
paged-results round trips.  Each round trip sends the same base request with
a search options control and a paged results control; the server answers
with one page of entries and a cookie.  The next round trip carries that
cookie, and the search is over once the server sends an empty cookie or no
paged results control at all.

Round trips are strictly sequential: the cookie names the server's cursor,
and only one request may hold it at a time.  The cookie is threaded from one
round trip to the next as data in an immutable :py:class:`PageState`; no
control object is reused between round trips.
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, replace
from typing import Any

from . import conf, ldap
from .controls import (
    SearchOption,
    SearchOptionsControl,
    find_paged_results_control,
    paged_results_control,
)
from .views import DirectoryEntry

logger = logging.getLogger(__name__)

#: The filter that matches every entry
MATCH_ALL: str = "(objectClass=*)"


@dataclass(frozen=True)
class SearchRequest:
    """
    The parameters of a search, without any paging state.

    Args:
        base: the DN to search from
        scope: ``ldap.SCOPE_BASE``, ``ldap.SCOPE_ONELEVEL`` or ``ldap.SCOPE_SUBTREE``

    Keyword Args:
        filterstr: the LDAP search filter string
        attributes: attributes to return, or ``None`` for all user attributes
        controls: extra request controls to send on every round trip
        sizelimit: maximum number of entries the server should return

    """

    base: str
    scope: int = ldap.SCOPE_SUBTREE
    filterstr: str = MATCH_ALL
    attributes: tuple[str, ...] | None = None
    controls: tuple[Any, ...] = ()
    sizelimit: int = 0


@dataclass(frozen=True)
class PageState:
    """
    Where a paged search stands between two round trips.

    Args:
        cookie: the cookie to send on the next round trip; empty before the first
        round_trips: how many round trips have completed
        done: ``True`` once the server has signalled there are no more pages

    """

    cookie: bytes = b""
    round_trips: int = 0
    done: bool = False


class PagedSearchEngine:
    """
    Drive one :py:class:`SearchRequest` to completion over a bound
    ``LDAPObject``.

    Args:
        connection: a bound python-ldap ``LDAPObject``
        request: the search to run

    Keyword Args:
        scope_option: search options control flags, or ``None`` to send no
            search options control
        page_size: entries per page; defaults to ``DIRLINK_DEFAULT_PAGE_SIZE``

    Raises:
        ValueError: ``page_size`` is not positive, or is outside
            ``DIRLINK_MIN_PAGE_SIZE`` and ``DIRLINK_MAX_PAGE_SIZE``

    """

    def __init__(
        self,
        connection: Any,
        request: SearchRequest,
        scope_option: SearchOption | None = SearchOption.DOMAIN_SCOPE,
        page_size: int | None = None,
    ) -> None:
        if page_size is None:
            page_size = conf.get_default_page_size()
        min_size = conf.get_min_page_size()
        max_size = conf.get_max_page_size()
        if page_size < 1:
            msg = f"page_size must be positive, got {page_size}"
            raise ValueError(msg)
        if not min_size <= page_size <= max_size:
            msg = (
                f"page_size {page_size} is outside DIRLINK_MIN_PAGE_SIZE ({min_size}) "
                f"and DIRLINK_MAX_PAGE_SIZE ({max_size})"
            )
            raise ValueError(msg)
        self.connection = connection
        self.request = request
        self.scope_option = scope_option
        self.page_size = page_size

    def controls_for(self, state: PageState) -> list[Any]:
        """Build the request controls for the round trip that follows ``state``."""
        controls: list[Any] = []
        if self.scope_option is not None:
            controls.append(SearchOptionsControl(self.scope_option))
        controls.append(paged_results_control(self.page_size, state.cookie))
        controls.extend(self.request.controls)
        return controls

    def round_trip(self, state: PageState) -> tuple[list[DirectoryEntry], PageState]:
        """
        Fetch the page that follows ``state``.

        Returns:
            The page's entries in the order the server sent them, and the
            state for the next round trip.

        """
        request = self.request
        msgid = self.connection.search_ext(
            request.base,
            request.scope,
            request.filterstr,
            list(request.attributes) if request.attributes is not None else None,
            serverctrls=self.controls_for(state),
            sizelimit=request.sizelimit,
        )
        _, rdata, _, serverctrls, _, _ = self.connection.result4(
            msgid, all=1, add_ctrls=1
        )
        entries: list[DirectoryEntry] = []
        for row in rdata:
            dn, attrs = row[0], row[1]
            # AD returns search continuation references alongside the
            # entries; those have a list of URLs where attrs should be
            if not isinstance(attrs, dict):
                continue
            controls = row[2] if len(row) > 2 else ()  # noqa: PLR2004
            entries.append(DirectoryEntry.from_ldap(dn, attrs, controls=controls))

        paged = find_paged_results_control(serverctrls)
        cookie = paged.cookie if paged is not None and paged.cookie else b""
        next_state = replace(
            state,
            cookie=cookie,
            round_trips=state.round_trips + 1,
            done=not cookie,
        )
        logger.debug(
            "dirlink.paging.page base=%s page=%d entries=%d more=%s",
            request.base,
            next_state.round_trips,
            len(entries),
            not next_state.done,
        )
        return entries, next_state

    def pages(self) -> Iterator[list[DirectoryEntry]]:
        """
        Yield each page of entries as it arrives.

        A failing round trip raises out of the generator; pages yielded
        before it stay with the caller.
        """
        state = PageState()
        while not state.done:
            entries, state = self.round_trip(state)
            yield entries

    def run(self) -> list[DirectoryEntry]:
        """
        Run the search to completion.

        Returns:
            Every entry, page 1 first, each page in server order.

        Raises:
            ldap.LDAPError: a round trip failed; entries from earlier pages
                are discarded

        """
        results: list[DirectoryEntry] = []
        pages = 0
        for page in self.pages():
            results.extend(page)
            pages += 1
        logger.debug(
            "dirlink.paging.done base=%s pages=%d entries=%d",
            self.request.base,
            pages,
            len(results),
        )
        return results
