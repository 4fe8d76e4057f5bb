"""Cloud Foundry platform context: detection and service binding discovery.

The platform exposes two environment variables to a running application:

- ``VCAP_APPLICATION``: application metadata, present only on the platform
- ``VCAP_SERVICES``: JSON object mapping a service label to the list of
  service instances bound to the application

A binding's kind is detected the way service connectors do it: a matching
tag, a label starting with the kind, or a credentials URI whose scheme
belongs to the kind.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlsplit

from .config import VCAP_APPLICATION_ENV, VCAP_SERVICES_ENV

logger = logging.getLogger(__name__)

OTHER_KIND = "other"

# Binding kind -> accepted URI schemes
KNOWN_KINDS: Mapping[str, tuple[str, ...]] = {
    "mysql": ("mysql",),
    "redis": ("redis", "rediss"),
}


class PlatformContextUnavailable(Exception):
    """Raised when no platform context can be built.

    Not a real failure: it means the application runs outside the platform.
    """

    pass


def _uri_scheme(uri: Optional[str]) -> Optional[str]:
    if not uri:
        return None
    try:
        return urlsplit(uri).scheme.lower() or None
    except ValueError:
        return None


def _credentials_uri(credentials: Mapping[str, Any], kind: Optional[str] = None) -> Optional[str]:
    keys = ["uri", "url"]
    if kind:
        keys += [f"{kind}Uri", f"{kind}Url"]
    for key in keys:
        value = credentials.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def detect_kind(label: str, tags: List[str], credentials: Mapping[str, Any]) -> str:
    """Return the binding kind (``mysql``, ``redis``) or ``other``."""
    label = (label or "").lower()
    lowered_tags = {str(tag).lower() for tag in tags}
    for kind, schemes in KNOWN_KINDS.items():
        if kind in lowered_tags or label.startswith(kind):
            return kind
        for candidate in (_credentials_uri(credentials), _credentials_uri(credentials, kind)):
            if _uri_scheme(candidate) in schemes:
                return kind
    return OTHER_KIND


@dataclass(frozen=True)
class ServiceBinding:
    """A backing service bound to the application by the platform."""

    name: str
    kind: str
    label: str = ""
    tags: tuple[str, ...] = ()
    credentials: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_vcap(cls, label: str, instance: Mapping[str, Any]) -> "ServiceBinding":
        if not isinstance(instance, Mapping):
            raise PlatformContextUnavailable(
                f"Service instance under '{label}' is not an object: {instance!r}"
            )
        instance_label = instance.get("label") or label
        if not isinstance(instance_label, str):
            raise PlatformContextUnavailable(
                f"Service instance under '{label}' has a non-string label: {instance_label!r}"
            )
        raw_tags = instance.get("tags") or []
        if not isinstance(raw_tags, list):
            raise PlatformContextUnavailable(
                f"Service instance under '{label}' has tags that are not a list: {raw_tags!r}"
            )
        tags = [str(tag) for tag in raw_tags]
        credentials = instance.get("credentials") or {}
        if not isinstance(credentials, Mapping):
            credentials = {}
        return cls(
            name=str(instance.get("name") or instance_label),
            kind=detect_kind(instance_label, tags, credentials),
            label=instance_label,
            tags=tuple(tags),
            credentials=dict(credentials),
        )

    @property
    def uri(self) -> Optional[str]:
        """Connection URI from the binding credentials, if any."""
        return _credentials_uri(self.credentials, self.kind)

    def __str__(self) -> str:
        return f"{self.name} ({self.kind})"


class PlatformContext:
    """Platform view of the running application and its bound services."""

    def __init__(self, application: Mapping[str, Any], bindings: List[ServiceBinding]) -> None:
        self.application = application
        self._bindings = list(bindings)

    @property
    def application_name(self) -> Optional[str]:
        return self.application.get("application_name") or self.application.get("name")

    def list_service_bindings(self) -> List[ServiceBinding]:
        return list(self._bindings)

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "PlatformContext":
        """Build a context from the VCAP environment variables.

        Raises:
            PlatformContextUnavailable: If not running on the platform or the
                metadata cannot be parsed
        """
        if environ is None:
            environ = os.environ

        raw_application = environ.get(VCAP_APPLICATION_ENV)
        if not raw_application:
            raise PlatformContextUnavailable(f"{VCAP_APPLICATION_ENV} is not set")

        application = _load_json_object(VCAP_APPLICATION_ENV, raw_application)
        services = _load_json_object(VCAP_SERVICES_ENV, environ.get(VCAP_SERVICES_ENV) or "{}")

        bindings: List[ServiceBinding] = []
        for label, instances in services.items():
            if not isinstance(instances, list):
                raise PlatformContextUnavailable(
                    f"{VCAP_SERVICES_ENV} entry '{label}' is not a list"
                )
            bindings.extend(ServiceBinding.from_vcap(label, instance) for instance in instances)

        return cls(application, bindings)


def _load_json_object(variable: str, raw: str) -> Dict[str, Any]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PlatformContextUnavailable(f"{variable} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise PlatformContextUnavailable(f"{variable} must be a JSON object")
    return data


def try_get_context(environ: Optional[Mapping[str, str]] = None) -> Optional[PlatformContext]:
    """Return the platform context, or ``None`` when running locally."""
    try:
        return PlatformContext.from_environ(environ)
    except PlatformContextUnavailable as e:
        if environ is None:
            environ = os.environ
        if environ.get(VCAP_APPLICATION_ENV):
            logger.warning(f"Ignoring malformed platform metadata: {e}")
        else:
            logger.debug(f"No platform context: {e}")
        return None
