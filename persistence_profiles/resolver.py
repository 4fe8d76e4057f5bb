"""Automatic persistence profile assignment.

If no profile is given, in-memory persistence is used. If a profile is given,
either through a service bound on the platform or through the
``PERSISTENCE_PROFILES_ACTIVE`` variable, the matching ``<name>-cloud`` or
``<name>-local`` profile is activated alongside it.
"""

from __future__ import annotations

import logging
from typing import Callable, Collection, Mapping, MutableMapping, Optional

from .cloud import PlatformContext, PlatformContextUnavailable, try_get_context
from .config import (
    CLOUD_SUFFIX,
    DEFAULT_PROFILE,
    LOCAL_SUFFIX,
    PROFILE_TABLE,
    VALID_LOCAL_PROFILES,
    profile_names,
)
from .environment import HostEnvironment

logger = logging.getLogger(__name__)

ContextProvider = Callable[[], Optional[PlatformContext]]


class ConfigurationError(Exception):
    """Fatal configuration error: startup must stop."""

    pass


class AmbiguousBindingError(ConfigurationError):
    """More than one persistence service is bound to the application."""

    def __init__(self, message: str, bindings: list[str]) -> None:
        super().__init__(message)
        self.bindings = bindings


class AmbiguousLocalProfileError(ConfigurationError):
    """More than one persistence profile is active locally."""

    def __init__(self, message: str, profiles: list[str]) -> None:
        super().__init__(message)
        self.profiles = profiles


def _get_context(context_provider: ContextProvider) -> Optional[PlatformContext]:
    try:
        return context_provider()
    except PlatformContextUnavailable as e:
        logger.debug(f"Platform context unavailable: {e}")
        return None


def _cloud_profiles(
    context: PlatformContext, profile_table: Mapping[str, str]
) -> Optional[list[str]]:
    """Check whether one of the authorized services is bound on the platform."""
    bindings = context.list_service_bindings()
    logger.info(f"Found service bindings: {', '.join(str(b) for b in bindings) or 'none'}")

    matched = [b for b in bindings if b.kind in profile_table]
    if len(matched) > 1:
        raise AmbiguousBindingError(
            "Only one service of the following types may be bound to this application: "
            f"{sorted(set(profile_table.values()))}. "
            f"These services are bound to the application: [{', '.join(str(b) for b in matched)}]",
            [b.name for b in matched],
        )
    if matched:
        return profile_names(profile_table[matched[0].kind], CLOUD_SUFFIX)
    return None


def _local_profiles(
    environment: HostEnvironment, valid_local_profiles: Collection[str]
) -> Optional[list[str]]:
    """Check the locally active flags against the authorized local profiles."""
    selected = [flag for flag in environment.get_active_flags() if flag in valid_local_profiles]
    if len(selected) > 1:
        raise AmbiguousLocalProfileError(
            "Only one active profile may be set among the following: "
            f"{sorted(valid_local_profiles)}. "
            f"These profiles are active: [{', '.join(selected)}]",
            selected,
        )
    if selected:
        return profile_names(selected[0], LOCAL_SUFFIX)
    return None


def resolve_profiles(
    environment: HostEnvironment,
    context_provider: ContextProvider = try_get_context,
    *,
    profile_table: Mapping[str, str] = PROFILE_TABLE,
    valid_local_profiles: Collection[str] = VALID_LOCAL_PROFILES,
) -> list[str]:
    """Resolve the persistence profiles and activate them in ``environment``.

    Args:
        environment: Host environment holding the already active flags
        context_provider: Returns the platform context, or ``None`` when not
            running on the platform
        profile_table: Service binding kind -> profile base name
        valid_local_profiles: Base names accepted as local flags

    Returns:
        The activated profile names, e.g. ``["mysql", "mysql-cloud"]`` or
        ``["default"]``

    Raises:
        AmbiguousBindingError: If more than one recognized service is bound
        AmbiguousLocalProfileError: If more than one recognized local profile is active
    """
    logger.debug("Setting persistence profile, checking for a cloud context")
    context = _get_context(context_provider)

    if context is not None:
        logger.debug("App in a cloud context, checking available services")
        profiles = _cloud_profiles(context, profile_table)
    else:
        logger.debug("App in a local context, checking active profiles")
        profiles = _local_profiles(environment, valid_local_profiles)

    if profiles is None:
        logger.debug("No profile given or no available service, using default profile")
        profiles = [DEFAULT_PROFILE]

    logger.info(f"Setting profile names: {', '.join(profiles)}")
    for profile in profiles:
        environment.add_active_flag(profile)
    return profiles


def bootstrap(
    environ: Optional[MutableMapping[str, str]] = None,
    context_provider: Optional[ContextProvider] = None,
) -> list[str]:
    """Startup hook: resolve profiles from the process environment and export them.

    The whole active-profile list, including flags that were already set,
    is written back to ``PERSISTENCE_PROFILES_ACTIVE``.
    """
    if context_provider is None:

        def context_provider() -> Optional[PlatformContext]:
            return try_get_context(environ)

    environment = HostEnvironment.from_environ(environ)
    profiles = resolve_profiles(environment, context_provider)
    environment.export(environ)
    return profiles
