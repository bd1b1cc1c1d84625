"""
Directory sessions.

A :py:class:`DirectorySession` owns one python-ldap connection.  It binds
lazily, on the first operation that needs the server, and keeps the bound
connection until :py:meth:`DirectorySession.close`.  Write operations return
the LDAP result code instead of raising when the server rejects them; reads
run through :py:class:`~dirlink.paging.PagedSearchEngine`.

Example::

    from dirlink import Credential, DirectoryIdentifier, DirectorySession
    from dirlink import modifications as mods

    identifier = DirectoryIdentifier(("dc1.example.com", "dc2.example.com"))
    credential = Credential("svc-portal@example.com", "secret")
    with DirectorySession(identifier, credential) as session:
        for entry in session.query("(sAMAccountName=jdoe)"):
            print(entry.dn)
        dn = "CN=jdoe,OU=People,DC=example,DC=com"
        session.modify(dn, mods.set_string("title", "Boss"))
"""

import logging
import threading
from collections.abc import Iterable, Iterator
from concurrent.futures import Future
from contextlib import suppress
from typing import Any

from ldap_filter import Filter

from . import conf, ldap
from .connection import (
    Credential,
    DirectoryIdentifier,
    configure_from_settings,
    require_secure_transport,
)
from .controls import FastBindRequest, SearchOption
from .modifications import (
    Add,
    Clear,
    Delete,
    Modification,
    Replace,
    set_string,
    to_modlist,
)
from .paging import PagedSearchEngine, SearchRequest
from .results import (
    ResultCode,
    TestBindResult,
    error_code,
    server_message,
    structured_result,
)
from .typing import ConfigureHook
from .views import DirectoryEntry, RootDseView

logger = logging.getLogger(__name__)

_MODIFICATION_TYPES = (Clear, Replace, Add, Delete)

#: Reported when a bind is refused because the password is empty
EMPTY_PASSWORD_MESSAGE: str = "empty password"


class DirectorySession:
    """
    A lazily bound session against one directory.

    The session is safe to share between threads for binding: when several
    threads need the connection before it exists they all wait on a single
    bind attempt and see its outcome.  After that the connection is used by
    whichever thread calls in; python-ldap serializes the calls.

    A credential with a user name but an empty password is refused with
    ``ldap.INVALID_CREDENTIALS`` before anything is sent.  An empty user name
    and password bind anonymously.

    Args:
        identifier: the server(s) to connect to
        credential: who to bind as

    Keyword Args:
        configure: connection configuration hook applied before the bind;
            defaults to :py:func:`~dirlink.connection.require_secure_transport`
        page_size: page size for searches; defaults to
            ``DIRLINK_DEFAULT_PAGE_SIZE``

    """

    def __init__(
        self,
        identifier: DirectoryIdentifier,
        credential: Credential,
        configure: ConfigureHook | None = None,
        page_size: int | None = None,
    ) -> None:
        self.identifier = identifier
        self.credential = credential
        self.configure: ConfigureHook = configure or require_secure_transport
        self.page_size = page_size
        self._lock = threading.Lock()
        self._connection: Any = None
        self._bind_future: Future | None = None
        self._root_dse: RootDseView | None = None

    @classmethod
    def from_settings(cls, key: str = "default") -> "DirectorySession":
        """
        Build a session from ``settings.DIRLINK_SERVERS[key]``.

        Raises:
            ImproperlyConfigured: the server is not configured, or the
                ``DIRLINK_*`` settings are inconsistent

        """
        conf.validate_settings()
        config = conf.get_server_config(key)
        return cls(
            DirectoryIdentifier.from_url(config["url"]),
            Credential(config.get("user", ""), config.get("password", "")),
            configure=configure_from_settings(config),
            page_size=config.get("page_size"),
        )

    # -----------------------
    # Binding
    # -----------------------

    def _bind(self) -> Any:
        uri = self.identifier.uri
        if self.credential.username and not self.credential.password:
            # An RFC 4513 unauthenticated bind, which servers accept for any name
            logger.warning(
                "dirlink.session.bind.empty-password uri=%s user=%s",
                uri,
                self.credential.username,
            )
            raise ldap.INVALID_CREDENTIALS(
                {
                    "result": int(ResultCode.INVALID_CREDENTIALS),
                    "desc": "Invalid credentials",
                    "info": EMPTY_PASSWORD_MESSAGE,
                }
            )
        connection = ldap.initialize(uri)
        try:
            connection.set_option(ldap.OPT_PROTOCOL_VERSION, ldap.VERSION3)
            self.configure(connection)
            connection.simple_bind_s(
                self.credential.username, self.credential.password
            )
        except Exception:
            with suppress(ldap.LDAPError):
                connection.unbind_s()
            logger.warning(
                "dirlink.session.bind.failed uri=%s user=%s",
                uri,
                self.credential.username,
            )
            raise
        logger.info(
            "dirlink.session.bind.success uri=%s user=%s", uri, self.credential.username
        )
        return connection

    def ensure_bound(self) -> Any:
        """
        Return the bound connection, binding first if there is none yet.

        Concurrent callers share one bind attempt.  If it fails, every one of
        them gets the same exception, and the next call tries again.

        Raises:
            ldap.LDAPError: the bind failed

        """
        with self._lock:
            if self._connection is not None:
                return self._connection
            future = self._bind_future
            owner = future is None
            if owner:
                future = self._bind_future = Future()
        if not owner:
            return future.result()
        try:
            connection = self._bind()
        except Exception as e:
            with self._lock:
                self._bind_future = None
            future.set_exception(e)
            raise
        with self._lock:
            self._connection = connection
            self._bind_future = None
        future.set_result(connection)
        return connection

    @property
    def is_bound(self) -> bool:
        return self._connection is not None

    @staticmethod
    def test_bind(
        identifier: DirectoryIdentifier,
        credential: Credential,
        configure: ConfigureHook | None = None,
        fast: bool = True,
    ) -> TestBindResult:
        """
        Check that ``credential`` can bind to ``identifier``.

        This uses its own short-lived connection with a network and operation
        timeout of ``DIRLINK_HEALTH_CHECK_TIMEOUT`` seconds, and never touches
        any session.

        Args:
            identifier: the server(s) to connect to
            credential: who to bind as

        Keyword Args:
            configure: connection configuration hook; defaults to
                :py:func:`~dirlink.connection.require_secure_transport`
            fast: send Active Directory's fast concurrent bind request first

        Returns:
            The outcome.  LDAP errors are reported here, never raised.  An
            empty password fails without contacting the server.

        """
        if not credential.password:
            logger.warning(
                "dirlink.session.test_bind.empty-password uri=%s user=%s",
                identifier.uri,
                credential.username,
            )
            return TestBindResult(
                success=False,
                error_code=int(ResultCode.INVALID_CREDENTIALS),
                server_message=EMPTY_PASSWORD_MESSAGE,
            )
        timeout = conf.get_health_check_timeout()
        connection = None
        try:
            connection = ldap.initialize(identifier.uri)
            connection.set_option(ldap.OPT_PROTOCOL_VERSION, ldap.VERSION3)
            connection.set_option(ldap.OPT_NETWORK_TIMEOUT, timeout)
            connection.set_option(ldap.OPT_TIMEOUT, timeout)
            (configure or require_secure_transport)(connection)
            if fast:
                connection.extop_s(FastBindRequest())
            connection.simple_bind_s(credential.username, credential.password)
        except ldap.LDAPError as e:
            result = TestBindResult(
                success=False,
                error_code=error_code(e),
                server_message=server_message(e),
            )
            logger.warning(
                "dirlink.session.test_bind.failed uri=%s user=%s code=%d message=%s",
                identifier.uri,
                credential.username,
                result.error_code,
                result.server_message,
            )
            return result
        finally:
            if connection is not None:
                with suppress(ldap.LDAPError):
                    connection.unbind_s()
        logger.info(
            "dirlink.session.test_bind.success uri=%s user=%s",
            identifier.uri,
            credential.username,
        )
        return TestBindResult(success=True)

    # -----------------------
    # Writes
    # -----------------------

    def _write(
        self, operation: str, dn: str, *args: Any, **kwargs: Any
    ) -> "ResultCode | int":
        connection = self.ensure_bound()
        try:
            getattr(connection, f"{operation}_s")(dn, *args, **kwargs)
        except ldap.LDAPError as e:
            code = structured_result(e)
            if code is None:
                raise
            logger.warning(
                "dirlink.session.%s.failed dn=%s code=%d message=%s",
                operation,
                dn,
                code,
                server_message(e),
            )
            return code
        logger.info("dirlink.session.%s.success dn=%s", operation, dn)
        return ResultCode.SUCCESS

    def add(self, dn: str, object_class: str) -> "ResultCode | int":
        """
        Create the entry ``dn`` with the single ``objectClass`` value
        ``object_class``.

        Returns:
            The server's result code.

        Raises:
            ldap.LDAPError: the request never got a server response

        """
        return self._write(
            "add", dn, [("objectClass", [object_class.encode("utf-8")])]
        )

    def delete(self, dn: str) -> "ResultCode | int":
        return self._write("delete", dn)

    def modify(
        self, dn: str, *modifications: Modification | Iterable[Modification]
    ) -> "ResultCode | int":
        """
        Apply ``modifications`` to ``dn`` in one request, in the order given.

        Each argument is either a single modification or an iterable of them::

            session.modify(dn, mods.set_string("title", "Boss"), mods.clear("pager"))
            session.modify(dn, [mods.add("memberOf", group) for group in groups])

        Returns:
            The server's result code.

        Raises:
            ldap.LDAPError: the request never got a server response

        """
        flat: list[Modification] = []
        for modification in modifications:
            if isinstance(modification, _MODIFICATION_TYPES):
                flat.append(modification)
            else:
                flat.extend(modification)
        return self._write("modify", dn, to_modlist(flat))

    def modify_dn(
        self, dn: str, new_parent_dn: str, new_name: str
    ) -> "ResultCode | int":
        """
        Move and/or rename ``dn``.

        Args:
            dn: the entry to move
            new_parent_dn: the DN of its new parent
            new_name: its new RDN, e.g. ``CN=New Name``

        """
        return self._write("rename", dn, new_name, newsuperior=new_parent_dn)

    def set_password(self, dn: str, password: str) -> "ResultCode | int":
        """
        Replace the password attribute (``DIRLINK_PASSWORD_ATTRIBUTE``) of
        ``dn`` with ``password``.
        """
        return self.modify(dn, set_string(conf.get_password_attribute(), password))

    # -----------------------
    # Reads
    # -----------------------

    def _engine(
        self,
        request: SearchRequest,
        scope_option: SearchOption | None,
        page_size: int | None,
    ) -> PagedSearchEngine:
        return PagedSearchEngine(
            self.ensure_bound(),
            request,
            scope_option=scope_option,
            page_size=page_size if page_size is not None else self.page_size,
        )

    def search(
        self,
        request: SearchRequest,
        scope_option: SearchOption | None = SearchOption.DOMAIN_SCOPE,
        page_size: int | None = None,
    ) -> list[DirectoryEntry]:
        """
        Run ``request`` through every page and return all entries.

        Raises:
            ldap.LDAPError: the bind or any round trip failed

        """
        return self._engine(request, scope_option, page_size).run()

    def iter_search(
        self,
        request: SearchRequest,
        scope_option: SearchOption | None = SearchOption.DOMAIN_SCOPE,
        page_size: int | None = None,
    ) -> Iterator[list[DirectoryEntry]]:
        """Like :py:meth:`search`, but yield each page as it arrives."""
        yield from self._engine(request, scope_option, page_size).pages()

    def query(
        self, filterstr: str, start_dn: str | None = None
    ) -> list[DirectoryEntry]:
        """
        Subtree search for ``filterstr``.

        ``filterstr`` is sent as is; escape any user supplied values with
        :py:func:`~dirlink.utils.escape_filter`.

        Args:
            filterstr: the LDAP filter
            start_dn: the search base; defaults to the root DSE's
                ``defaultNamingContext``

        Raises:
            ValueError: no ``start_dn`` was given and the server does not
                advertise a default naming context

        """
        if start_dn is None:
            root_dse = self.root_dse
            start_dn = root_dse.default_naming_context if root_dse else None
            if not start_dn:
                msg = "start_dn is required: the server has no defaultNamingContext"
                raise ValueError(msg)
        return self.search(
            SearchRequest(start_dn, ldap.SCOPE_SUBTREE, filterstr=filterstr)
        )

    def get_object_by_dn(self, dn: str) -> DirectoryEntry | None:
        """Return the entry at ``dn``, or ``None`` if there is no such entry."""
        try:
            results = self.search(SearchRequest(dn, ldap.SCOPE_BASE))
        except ldap.NO_SUCH_OBJECT:
            logger.debug("dirlink.session.get_object_by_dn.missing dn=%s", dn)
            return None
        return results[0] if results else None

    def get_root_dse(self) -> RootDseView | None:
        """
        Fetch the root DSE from the server and cache it on the session.

        Returns:
            The root DSE, or ``None`` if the server returned nothing; the
            cached copy is left alone in that case.

        """
        results = self.search(
            SearchRequest(
                "",
                ldap.SCOPE_BASE,
                filterstr=Filter.attribute("objectClass").present().to_string(),
            )
        )
        if not results:
            return None
        self._root_dse = RootDseView(results[0])
        logger.debug(
            "dirlink.session.root_dse.fetched flavor=%s", self._root_dse.flavor
        )
        return self._root_dse

    @property
    def root_dse(self) -> RootDseView | None:
        """The cached root DSE, fetched on first access."""
        if self._root_dse is None:
            return self.get_root_dse()
        return self._root_dse

    # -----------------------
    # Lifecycle
    # -----------------------

    def close(self) -> None:
        """Unbind and forget the connection and the cached root DSE."""
        with self._lock:
            connection = self._connection
            self._connection = None
            self._root_dse = None
        if connection is None:
            return
        with suppress(ldap.LDAPError):
            connection.unbind_s()
        logger.info("dirlink.session.close uri=%s", self.identifier.uri)

    def __enter__(self) -> "DirectorySession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"DirectorySession({self.identifier.uri!r}, "
            f"user={self.credential.username!r}, bound={self.is_bound})"
        )
