"""
Where to connect, who to bind as, and how to set up the connection.

* :py:class:`DirectoryIdentifier` names the directory server(s).
* :py:class:`Credential` holds the bind DN (or user principal name) and
  password.
* A *configuration hook* is any callable that takes a fresh, unbound
  ``LDAPObject`` and sets it up before the bind: TLS options, timeouts,
  StartTLS and so on.  :py:func:`require_secure_transport` is the default;
  :py:func:`configure_from_settings` builds one from a ``DIRLINK_SERVERS``
  entry.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ldapurl import LDAPUrl

from . import ldap
from .typing import ConfigureHook

SCHEMES: tuple[str, ...] = ("ldap", "ldaps")


def _split_hostport(hostport: str) -> tuple[str, int | None]:
    # IPv6 literals look like "[::1]:636"
    if hostport.endswith("]") or ":" not in hostport:
        return hostport, None
    host, _, port = hostport.rpartition(":")
    return host, int(port)


@dataclass(frozen=True)
class DirectoryIdentifier:
    """
    One or more directory servers reachable with the same scheme and port.

    Args:
        hosts: a host name, or a sequence of host names to try in order

    Keyword Args:
        port: the TCP port, or ``None`` for the scheme's default
        scheme: ``ldap`` or ``ldaps``

    Raises:
        ValueError: no hosts were given, or the scheme is not supported

    """

    hosts: tuple[str, ...]
    port: int | None = None
    scheme: str = "ldaps"

    def __post_init__(self) -> None:
        hosts = (self.hosts,) if isinstance(self.hosts, str) else tuple(self.hosts)
        if not hosts:
            msg = "DirectoryIdentifier needs at least one host"
            raise ValueError(msg)
        object.__setattr__(self, "hosts", hosts)
        scheme = self.scheme.lower()
        if scheme not in SCHEMES:
            msg = f"Unsupported LDAP URL scheme: {self.scheme}"
            raise ValueError(msg)
        object.__setattr__(self, "scheme", scheme)

    @property
    def uri(self) -> str:
        """The URI list to hand to ``ldap.initialize``."""
        suffix = f":{self.port}" if self.port else ""
        return " ".join(f"{self.scheme}://{host}{suffix}" for host in self.hosts)

    @classmethod
    def from_url(cls, url: str) -> "DirectoryIdentifier":
        """
        Parse an LDAP URL, or a space separated list of them, such as
        ``ldaps://dc1.example.com ldaps://dc2.example.com``.

        Raises:
            ValueError: the URLs are malformed, or disagree on scheme or port

        """
        urls = [LDAPUrl(part) for part in url.split()]
        if not urls:
            msg = "No LDAP URL given"
            raise ValueError(msg)
        schemes = {u.urlscheme.lower() for u in urls}
        if len(schemes) != 1:
            msg = f"LDAP URLs mix schemes: {url}"
            raise ValueError(msg)
        hostports = [_split_hostport(u.hostport) for u in urls]
        ports = {port for _, port in hostports}
        if len(ports) != 1:
            msg = f"LDAP URLs mix ports: {url}"
            raise ValueError(msg)
        return cls(
            tuple(host for host, _ in hostports),
            port=ports.pop(),
            scheme=schemes.pop(),
        )

    def __str__(self) -> str:
        return self.uri


@dataclass(frozen=True)
class Credential:
    """A bind DN (or user principal name) and its password."""

    username: str
    password: str = field(repr=False)


def require_secure_transport(connection: Any) -> None:
    """
    Default configuration hook: demand a valid server certificate and, unless
    the URI is already ``ldaps://``, upgrade the connection with StartTLS.

    Raises:
        ldap.LDAPError: StartTLS failed

    """
    connection.set_option(ldap.OPT_X_TLS_REQUIRE_CERT, ldap.OPT_X_TLS_DEMAND)
    connection.set_option(ldap.OPT_X_TLS_NEWCTX, 0)
    uri = str(connection.get_option(ldap.OPT_URI) or "")
    if not uri.lower().startswith("ldaps://"):
        connection.start_tls_s()


def _check_file(path: str, label: str) -> None:
    filename = Path(path)
    if not filename.exists():
        msg = f"{label} file does not exist: {path}"
        raise OSError(msg)
    if not filename.is_file():
        msg = f"{label} file is not a file: {path}"
        raise OSError(msg)


def configure_from_settings(config: dict[str, Any]) -> ConfigureHook:
    """
    Build a configuration hook from one ``DIRLINK_SERVERS`` entry.

    Recognised keys: ``follow_referrals`` (default ``False``), ``timeout``
    (network timeout in seconds, default 15), ``sizelimit``, ``tls_verify``
    (``"never"`` or ``"always"``, default ``"always"``), ``tls_ca_certfile``,
    ``tls_certfile``, ``tls_keyfile`` and ``use_starttls`` (default ``True``,
    ignored for ``ldaps://`` URLs).

    Args:
        config: the server configuration dictionary

    Raises:
        ValueError: ``tls_verify`` is not ``"never"`` or ``"always"``
        OSError: a configured certificate or key file is missing or is not
            a regular file

    Returns:
        A hook to pass to :py:class:`~dirlink.session.DirectorySession`.

    """
    tls_verify = config.get("tls_verify", "always")
    if tls_verify == "never":
        require_cert = ldap.OPT_X_TLS_NEVER
    elif tls_verify == "always":
        require_cert = ldap.OPT_X_TLS_DEMAND
    else:
        msg = f"Invalid tls_verify value: {tls_verify}"
        raise ValueError(msg)
    files = [
        (ldap.OPT_X_TLS_CACERTFILE, config.get("tls_ca_certfile"), "CA Certificate"),
        (ldap.OPT_X_TLS_CERTFILE, config.get("tls_certfile"), "TLS Certificate"),
        (ldap.OPT_X_TLS_KEYFILE, config.get("tls_keyfile"), "TLS Key"),
    ]
    for _, path, label in files:
        if path:
            _check_file(path, label)
    follow_referrals = bool(config.get("follow_referrals", False))
    timeout = float(config.get("timeout", 15.0))
    sizelimit = config.get("sizelimit")
    use_starttls = config.get("use_starttls", True)

    def configure(connection: Any) -> None:
        connection.set_option(ldap.OPT_REFERRALS, 1 if follow_referrals else 0)
        connection.set_option(ldap.OPT_NETWORK_TIMEOUT, timeout)
        if sizelimit:
            connection.set_option(ldap.OPT_SIZELIMIT, int(sizelimit))
        connection.set_option(ldap.OPT_X_TLS_REQUIRE_CERT, require_cert)
        for option, path, _ in files:
            if path:
                connection.set_option(option, path)
        connection.set_option(ldap.OPT_X_TLS_NEWCTX, 0)
        uri = str(connection.get_option(ldap.OPT_URI) or "")
        if use_starttls and not uri.lower().startswith("ldaps://"):
            connection.start_tls_s()

    return configure
