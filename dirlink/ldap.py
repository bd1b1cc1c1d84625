# This module exists so that tests can patch ``dirlink.ldap.initialize``
# without touching the real ``ldap`` package that python-ldap installs.
import ldap
from ldap import *  # noqa: F403

__version__ = ldap.__version__
