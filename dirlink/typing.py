"""
dirlink type definitions.

Type aliases for the python-ldap data structures that flow through the
paging engine and the modification builder.
"""

from collections.abc import Callable
from typing import Any

#: A raw attribute mapping as python-ldap returns it
RawAttributes = dict[str, list[bytes]]
#: One entry in a modlist passed to ``modify_s``
ModListEntry = tuple[int, str, list[bytes] | None]
ModList = list[ModListEntry]
#: A connection configuration hook, called with a fresh ``LDAPObject``
ConfigureHook = Callable[[Any], None]
