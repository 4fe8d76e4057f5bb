"""Simple environment configuration for persistence profile selection."""

from __future__ import annotations

from types import MappingProxyType

# Environment variables
ACTIVE_PROFILES_ENV = "PERSISTENCE_PROFILES_ACTIVE"
VCAP_APPLICATION_ENV = "VCAP_APPLICATION"
VCAP_SERVICES_ENV = "VCAP_SERVICES"
LOCAL_MYSQL_URL_ENV = "PERSISTENCE_MYSQL_URL"

# Points to in-memory storage
DEFAULT_PROFILE = "default"

CLOUD_SUFFIX = "cloud"
LOCAL_SUFFIX = "local"

# Service binding kind -> profile base name
PROFILE_TABLE = MappingProxyType({"mysql": "mysql"})

# Profile base names that may be given through ACTIVE_PROFILES_ENV
VALID_LOCAL_PROFILES = frozenset({"mysql"})


def profile_names(base_name: str, suffix: str) -> list[str]:
    """Return the profile pair to activate, e.g. ``["mysql", "mysql-cloud"]``."""
    return [base_name, f"{base_name}-{suffix}"]
