"""Basic dependency validation.

Checks that every required distribution is installed before the server is
loaded, so a broken environment fails at startup instead of on first request.
"""

from __future__ import annotations

from importlib import metadata
import logging

from keystone.startup.config_schema import KeystoneConfig
from keystone.startup.errors import DependencyValidationError

logger = logging.getLogger(__name__)


def find_missing_packages(packages: list[str]) -> list[str]:
    """Return the distributions from ``packages`` that are not installed."""
    missing = []
    for name in packages:
        try:
            version = metadata.version(name)
        except metadata.PackageNotFoundError:
            missing.append(name)
        else:
            logger.debug("Dependency %s==%s", name, version)
    return missing


async def validate_dependencies(config: KeystoneConfig | None = None) -> None:
    """Validate required distributions are installed.

    Raises:
        DependencyValidationError: If any required distribution is missing
    """
    config = config or KeystoneConfig()
    packages = config.required_package_names()
    missing = find_missing_packages(packages)

    if missing:
        msg = f"Missing required packages: {', '.join(missing)}"
        raise DependencyValidationError(msg, details={"missing": missing})

    logger.info("Validated %d required packages", len(packages))
