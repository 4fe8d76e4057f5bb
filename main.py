#!/usr/bin/env python3
"""Command-line interface for persistence profile detection.

Runs the startup profile resolution against the current environment and
prints the profiles to activate, so the result can be checked or sourced
by a launch script.
"""

from __future__ import annotations

import argparse
import logging
import os
import shlex
import sys

from persistence_profiles.cloud import try_get_context
from persistence_profiles.config import ACTIVE_PROFILES_ENV
from persistence_profiles.resolver import ConfigurationError, bootstrap
from persistence_profiles.storage import describe_backend, get_dlt_destination

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point with command-line interface for profile resolution."""
    parser = argparse.ArgumentParser(
        description="Detect which persistence profile the application should activate",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  # Resolve from the current environment
  python main.py

  # Resolve as if {ACTIVE_PROFILES_ENV}=mysql were set
  python main.py --profiles mysql

  # Emit a line a launch script can eval
  eval "$(python main.py --export)"
        """,
    )
    parser.add_argument(
        "--profiles",
        type=str,
        help=f"Comma-separated active profiles (overrides {ACTIVE_PROFILES_ENV})",
    )
    parser.add_argument(
        "--export",
        action="store_true",
        help=f"Print an 'export {ACTIVE_PROFILES_ENV}=...' line instead of the profile names",
    )
    parser.add_argument(
        "--show-destination",
        action="store_true",
        help="Also build the dlt destination for the resolved profiles",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    environ = dict(os.environ)
    if args.profiles is not None:
        environ[ACTIVE_PROFILES_ENV] = args.profiles

    try:
        profiles = bootstrap(environ)
        logger.info(f"✅ Storage backend: {describe_backend(profiles)}")
        if args.show_destination:
            destination = get_dlt_destination(profiles, try_get_context(environ), environ)
            logger.info(f"dlt destination: {destination.destination_name}")
    except ConfigurationError as e:
        logger.error(f"❌ Profile resolution failed: {e}")
        sys.exit(1)

    if args.export:
        print(f"export {ACTIVE_PROFILES_ENV}={shlex.quote(environ[ACTIVE_PROFILES_ENV])}")
    else:
        print(",".join(profiles))


if __name__ == "__main__":
    main()
