"""Host environment holding the set of active profile flags."""

from __future__ import annotations

import os
from typing import Iterable, MutableMapping, Optional

from .config import ACTIVE_PROFILES_ENV


class HostEnvironment:
    """Ordered, duplicate-free collection of active profile flags.

    Flags are only ever added. The collection mirrors the comma-separated
    ``PERSISTENCE_PROFILES_ACTIVE`` variable so the result of profile
    resolution can be handed to whatever loads configuration next.
    """

    def __init__(self, active_flags: Iterable[str] = ()) -> None:
        self._active: list[str] = []
        for flag in active_flags:
            self.add_active_flag(flag)

    @classmethod
    def from_environ(
        cls, environ: Optional[MutableMapping[str, str]] = None
    ) -> "HostEnvironment":
        """Build an environment from ``PERSISTENCE_PROFILES_ACTIVE``."""
        if environ is None:
            environ = os.environ
        raw = environ.get(ACTIVE_PROFILES_ENV, "")
        return cls(flag.strip() for flag in raw.split(",") if flag.strip())

    def get_active_flags(self) -> tuple[str, ...]:
        return tuple(self._active)

    def add_active_flag(self, name: str) -> None:
        if name not in self._active:
            self._active.append(name)

    def export(self, environ: Optional[MutableMapping[str, str]] = None) -> None:
        """Write the active flags back to ``PERSISTENCE_PROFILES_ACTIVE``."""
        if environ is None:
            environ = os.environ
        environ[ACTIVE_PROFILES_ENV] = ",".join(self._active)

    def __contains__(self, name: object) -> bool:
        return name in self._active

    def __repr__(self) -> str:
        return f"HostEnvironment({self._active!r})"
