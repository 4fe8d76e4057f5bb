"""persistence_profiles package.

Startup detection of the persistence profile to activate.
"""

from .cloud import (
    PlatformContext,
    PlatformContextUnavailable,
    ServiceBinding,
    try_get_context,
)
from .environment import HostEnvironment
from .resolver import (
    AmbiguousBindingError,
    AmbiguousLocalProfileError,
    ConfigurationError,
    bootstrap,
    resolve_profiles,
)

__all__ = [
    "AmbiguousBindingError",
    "AmbiguousLocalProfileError",
    "ConfigurationError",
    "HostEnvironment",
    "PlatformContext",
    "PlatformContextUnavailable",
    "ServiceBinding",
    "bootstrap",
    "resolve_profiles",
    "try_get_context",
]
