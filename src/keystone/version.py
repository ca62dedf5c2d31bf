"""Version information for keystone."""

from importlib import metadata


def get_version() -> str:
    """Get the current version of the application.

    Returns:
        str: Version string from package metadata, or fallback value
    """
    try:
        return metadata.version("keystone-bootstrap")
    except metadata.PackageNotFoundError:
        return "0.1.0-dev"
