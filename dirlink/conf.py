"""
dirlink configuration.

All settings are read from Django settings with a ``DIRLINK_`` prefix.  When
Django settings have not been configured (dirlink used outside a Django
project) every setting falls back to its default.
"""

from typing import Any

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

#: Page size used by paged searches when the caller does not pick one
DEFAULT_PAGE_SIZE: int = 1000
MIN_PAGE_SIZE: int = 1
MAX_PAGE_SIZE: int = 100_000
#: Seconds allowed for a :py:meth:`DirectorySession.test_bind` round trip
HEALTH_CHECK_TIMEOUT: float = 10.0
#: Attribute replaced by :py:meth:`DirectorySession.set_password`
PASSWORD_ATTRIBUTE: str = "userPassword"


def get_setting(setting_name: str, default_value: Any) -> Any:
    """
    Get configuration value from Django settings with fallback.

    Args:
        setting_name: Name of the setting (without DIRLINK_ prefix)
        default_value: Default value if setting not found

    Returns:
        Configuration value from settings or default

    """
    if not settings.configured:
        return default_value
    return getattr(settings, f"DIRLINK_{setting_name}", default_value)


def get_default_page_size() -> int:
    return get_setting("DEFAULT_PAGE_SIZE", DEFAULT_PAGE_SIZE)


def get_min_page_size() -> int:
    return get_setting("MIN_PAGE_SIZE", MIN_PAGE_SIZE)


def get_max_page_size() -> int:
    return get_setting("MAX_PAGE_SIZE", MAX_PAGE_SIZE)


def get_health_check_timeout() -> float:
    return float(get_setting("HEALTH_CHECK_TIMEOUT", HEALTH_CHECK_TIMEOUT))


def get_password_attribute() -> str:
    return get_setting("PASSWORD_ATTRIBUTE", PASSWORD_ATTRIBUTE)


def validate_settings() -> None:
    """
    Validate Django settings for consistency.

    Raises:
        ImproperlyConfigured: If settings are invalid

    """
    min_size = get_min_page_size()
    max_size = get_max_page_size()
    default_size = get_default_page_size()

    if min_size < 1:
        msg = f"DIRLINK_MIN_PAGE_SIZE ({min_size}) must be positive"
        raise ImproperlyConfigured(msg)

    if min_size > max_size:
        msg = (
            f"DIRLINK_MIN_PAGE_SIZE ({min_size}) cannot be greater than "
            f"DIRLINK_MAX_PAGE_SIZE ({max_size})"
        )
        raise ImproperlyConfigured(msg)

    if default_size < min_size or default_size > max_size:
        msg = (
            f"DIRLINK_DEFAULT_PAGE_SIZE ({default_size}) must be between "
            f"DIRLINK_MIN_PAGE_SIZE ({min_size}) and "
            f"DIRLINK_MAX_PAGE_SIZE ({max_size})"
        )
        raise ImproperlyConfigured(msg)

    timeout = get_health_check_timeout()
    if timeout <= 0:
        msg = f"DIRLINK_HEALTH_CHECK_TIMEOUT ({timeout}) must be positive"
        raise ImproperlyConfigured(msg)


def get_server_config(key: str) -> dict[str, Any]:
    """
    Return the ``DIRLINK_SERVERS[key]`` connection settings.

    Args:
        key: the name of the server in ``DIRLINK_SERVERS``

    Raises:
        ImproperlyConfigured: ``DIRLINK_SERVERS`` is missing, has no entry
            for ``key``, or that entry has no ``url``.

    Returns:
        The server configuration dictionary.

    """
    servers = get_setting("SERVERS", None)
    if servers is None:
        msg = "settings.DIRLINK_SERVERS does not exist!"
        raise ImproperlyConfigured(msg)
    try:
        config = servers[key]
    except KeyError as e:
        msg = f"settings.DIRLINK_SERVERS has no key '{key}'"
        raise ImproperlyConfigured(msg) from e
    if not config.get("url"):
        msg = f"settings.DIRLINK_SERVERS['{key}'] has no 'url' key"
        raise ImproperlyConfigured(msg)
    return config
