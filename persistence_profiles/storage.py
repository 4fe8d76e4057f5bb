"""dlt destination wiring for the active persistence profiles.

- ``default``: in-memory DuckDB
- ``mysql-cloud``: MySQL service bound on the platform
- ``mysql-local``: MySQL database given by ``PERSISTENCE_MYSQL_URL``
"""

from __future__ import annotations

import logging
import os
from typing import Any, Collection, Mapping, Optional

import dlt
import duckdb

from .cloud import PlatformContext
from .config import (
    CLOUD_SUFFIX,
    DEFAULT_PROFILE,
    LOCAL_MYSQL_URL_ENV,
    LOCAL_SUFFIX,
    PROFILE_TABLE,
)
from .resolver import ConfigurationError

logger = logging.getLogger(__name__)

MYSQL_DRIVER_SCHEME = "mysql+pymysql"

BACKEND_DESCRIPTIONS = {
    DEFAULT_PROFILE: "In-memory DuckDB",
    f"mysql-{CLOUD_SUFFIX}": "MySQL (platform service)",
    f"mysql-{LOCAL_SUFFIX}": "MySQL (local)",
}


class StorageConfigurationError(ConfigurationError):
    """Raised when the active profiles cannot be wired to a storage backend."""

    pass


def _backend_profile(profiles: Collection[str]) -> str:
    for profile in BACKEND_DESCRIPTIONS:
        if profile != DEFAULT_PROFILE and profile in profiles:
            return profile
    if DEFAULT_PROFILE in profiles:
        return DEFAULT_PROFILE
    raise StorageConfigurationError(
        f"No storage backend for profiles {list(profiles)}. "
        f"Expected one of: {', '.join(BACKEND_DESCRIPTIONS)}"
    )


def describe_backend(profiles: Collection[str]) -> str:
    """Human readable name of the backend selected by ``profiles``."""
    return BACKEND_DESCRIPTIONS[_backend_profile(profiles)]


def sqlalchemy_url(uri: str) -> str:
    """Add the driver to a plain ``mysql://`` URI."""
    scheme, sep, rest = uri.partition("://")
    if sep and scheme.lower() == "mysql":
        return f"{MYSQL_DRIVER_SCHEME}://{rest}"
    return uri


def _cloud_service_url(
    context: Optional[PlatformContext], base_name: str, profile_table: Mapping[str, str]
) -> str:
    if context is None:
        raise StorageConfigurationError(
            f"The {base_name}-{CLOUD_SUFFIX} profile is active but no platform context is available"
        )
    kinds = {kind for kind, profile in profile_table.items() if profile == base_name}
    for binding in context.list_service_bindings():
        if binding.kind in kinds:
            if not binding.uri:
                raise StorageConfigurationError(
                    f"Bound service {binding.name} has no connection URI in its credentials"
                )
            return sqlalchemy_url(binding.uri)
    raise StorageConfigurationError(
        f"The {base_name}-{CLOUD_SUFFIX} profile is active but no {base_name} service is bound"
    )


def get_dlt_destination(
    profiles: Collection[str],
    context: Optional[PlatformContext] = None,
    environ: Optional[Mapping[str, str]] = None,
    *,
    profile_table: Mapping[str, str] = PROFILE_TABLE,
) -> Any:
    """Create the dlt destination matching the active profiles.

    Args:
        profiles: Active profile names, as returned by ``resolve_profiles``
        context: Platform context, required for the ``mysql-cloud`` profile
        environ: Environment to read ``PERSISTENCE_MYSQL_URL`` from
        profile_table: Service binding kind -> profile base name, used to find
            the bound service behind a ``-cloud`` profile

    Returns:
        DLT destination object

    Raises:
        StorageConfigurationError: If no backend matches or its connection
            settings are missing
    """
    if environ is None:
        environ = os.environ

    profile = _backend_profile(profiles)
    logger.info(f"Using storage backend: {BACKEND_DESCRIPTIONS[profile]}")

    if profile == DEFAULT_PROFILE:
        return dlt.destinations.duckdb(duckdb.connect(":memory:"))

    if profile.endswith(f"-{CLOUD_SUFFIX}"):
        base_name = profile[: -len(f"-{CLOUD_SUFFIX}")]
        url = _cloud_service_url(context, base_name, profile_table)
        return dlt.destinations.sqlalchemy(credentials=url)

    url = environ.get(LOCAL_MYSQL_URL_ENV)
    if not url:
        raise StorageConfigurationError(
            f"The {profile} profile is active but {LOCAL_MYSQL_URL_ENV} is not set"
        )
    return dlt.destinations.sqlalchemy(credentials=sqlalchemy_url(url))
