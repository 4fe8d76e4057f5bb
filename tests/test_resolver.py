"""Tests for persistence profile resolution.

Covers the cloud and local decision branches, the default fallback and
the ambiguity errors that must stop startup.
"""

from __future__ import annotations

import pytest

from persistence_profiles.cloud import PlatformContextUnavailable
from persistence_profiles.environment import HostEnvironment
from persistence_profiles.resolver import (
    AmbiguousBindingError,
    AmbiguousLocalProfileError,
    ConfigurationError,
    resolve_profiles,
)


class TestLocalResolution:
    """Resolution when no platform context is available."""

    def test_no_flags_uses_default(self, no_context) -> None:
        """Test no context and no flags activates the default profile."""
        environment = HostEnvironment()

        assert resolve_profiles(environment, no_context) == ["default"]
        assert environment.get_active_flags() == ("default",)

    def test_mysql_flag_adds_local_profile(self, no_context) -> None:
        """Test a valid local flag activates the '-local' variant."""
        environment = HostEnvironment(["mysql"])

        assert resolve_profiles(environment, no_context) == ["mysql", "mysql-local"]
        assert environment.get_active_flags() == ("mysql", "mysql-local")

    def test_unrelated_flags_use_default(self, no_context) -> None:
        """Test flags outside the valid set are not persistence profiles."""
        environment = HostEnvironment(["debug", "postgres"])

        assert resolve_profiles(environment, no_context) == ["default"]

    def test_two_valid_flags_are_ambiguous(self, no_context) -> None:
        """Test the guard fires when more than one valid local flag is active."""
        environment = HostEnvironment(["mysql", "postgres"])

        with pytest.raises(AmbiguousLocalProfileError, match="mysql, postgres") as exc_info:
            resolve_profiles(
                environment,
                no_context,
                valid_local_profiles=frozenset({"mysql", "postgres"}),
            )

        assert exc_info.value.profiles == ["mysql", "postgres"]
        # Nothing is activated when resolution fails
        assert environment.get_active_flags() == ("mysql", "postgres")

    def test_unavailable_context_is_not_fatal(self) -> None:
        """Test a provider raising PlatformContextUnavailable means local execution."""

        def provider():
            raise PlatformContextUnavailable("not on the platform")

        environment = HostEnvironment(["mysql"])

        assert resolve_profiles(environment, provider) == ["mysql", "mysql-local"]


class TestCloudResolution:
    """Resolution when running on the platform."""

    def test_no_bindings_uses_default(self, make_context) -> None:
        """Test a context without bindings activates the default profile."""
        context = make_context()

        assert resolve_profiles(HostEnvironment(), lambda: context) == ["default"]

    def test_unrecognized_bindings_are_ignored(self, make_context) -> None:
        """Test redis and other bindings do not select a persistence profile."""
        context = make_context(("cache", "redis"), ("mail", "other"))

        assert resolve_profiles(HostEnvironment(), lambda: context) == ["default"]

    def test_mysql_binding_adds_cloud_profile(self, make_context) -> None:
        """Test one mysql binding activates the '-cloud' variant."""
        context = make_context(("db", "mysql"), ("cache", "redis"))
        environment = HostEnvironment()

        assert resolve_profiles(environment, lambda: context) == ["mysql", "mysql-cloud"]
        assert "mysql-cloud" in environment

    def test_two_mysql_bindings_are_ambiguous(self, make_context) -> None:
        """Test two recognized bindings stop resolution."""
        context = make_context(("db-a", "mysql"), ("db-b", "mysql"))

        with pytest.raises(AmbiguousBindingError) as exc_info:
            resolve_profiles(HostEnvironment(), lambda: context)

        assert exc_info.value.bindings == ["db-a", "db-b"]
        assert "db-a (mysql)" in str(exc_info.value)
        assert "db-b (mysql)" in str(exc_info.value)

    def test_bindings_of_different_recognized_kinds_are_ambiguous(self, make_context) -> None:
        """Test two bindings mapping to different base names also conflict."""
        context = make_context(("db", "mysql"), ("pg", "postgres"))

        with pytest.raises(AmbiguousBindingError):
            resolve_profiles(
                HostEnvironment(),
                lambda: context,
                profile_table={"mysql": "mysql", "postgres": "postgres"},
            )

    def test_local_flags_ignored_in_cloud(self, make_context) -> None:
        """Test local flags do not select a profile when a context is present."""
        environment = HostEnvironment(["mysql"])

        assert resolve_profiles(environment, lambda: make_context()) == ["default"]
        assert environment.get_active_flags() == ("mysql", "default")

    def test_errors_are_configuration_errors(self) -> None:
        """Test both ambiguity errors share the ConfigurationError base."""
        assert issubclass(AmbiguousBindingError, ConfigurationError)
        assert issubclass(AmbiguousLocalProfileError, ConfigurationError)


class TestResolutionProperties:
    """Repeatability and additivity of resolution."""

    def test_repeated_resolution_is_identical(self, make_context) -> None:
        """Test fresh environments with identical inputs give identical results."""
        context = make_context(("db", "mysql"))

        first = resolve_profiles(HostEnvironment(["web"]), lambda: context)
        second = resolve_profiles(HostEnvironment(["web"]), lambda: context)

        assert first == second == ["mysql", "mysql-cloud"]

    def test_resolving_twice_does_not_duplicate(self, no_context) -> None:
        """Test activating the same names again is a no-op."""
        environment = HostEnvironment(["mysql"])

        resolve_profiles(environment, no_context)
        resolve_profiles(environment, no_context)

        assert environment.get_active_flags() == ("mysql", "mysql-local")

    def test_existing_flags_are_preserved(self, no_context) -> None:
        """Test unrelated active flags survive resolution."""
        environment = HostEnvironment(["web", "metrics"])

        resolve_profiles(environment, no_context)

        assert environment.get_active_flags() == ("web", "metrics", "default")
