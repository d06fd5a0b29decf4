"""Upstream version resolution.

The package version embeds the OpenCV release it builds as a local version
segment, e.g. ``0.1.0+opencv4.9.0``. The release identifier is everything
after the last occurrence of the marker token.
"""

import os
from importlib import metadata
from typing import Optional

from opencv_builder.errors import ConfigurationError

DISTRIBUTION_NAME = "opencv-builder"
VERSION_MARKER = "opencv"
VERSION_OVERRIDE_ENV = "OPENCV_BUILDER_PACKAGE_VERSION"


def resolve_version(version_string: str, marker: str = VERSION_MARKER) -> str:
    """Extract the upstream release identifier from a package version.

    Args:
        version_string: Declared package version (``<anything><marker><version>``)
        marker: Token that precedes the upstream version

    Returns:
        The upstream version, e.g. ``4.9.0``

    Raises:
        ConfigurationError: If the marker is missing, nothing follows it, or
            the version could name a path outside the cache directory
    """
    if not marker:
        raise ConfigurationError("version marker must not be empty")

    head, found, tail = version_string.rpartition(marker)
    if not found:
        raise ConfigurationError(
            f"version string: {version_string} is missing {marker} version"
        )
    if not tail:
        raise ConfigurationError(
            f"version string: {version_string} has no version after '{marker}'"
        )
    if tail == "." or ".." in tail or "/" in tail or "\\" in tail:
        raise ConfigurationError(
            f"version string: {version_string} has an invalid {marker} version: {tail!r}"
        )
    return tail


def package_version() -> str:
    """Return the declared version of the installed builder distribution.

    ``OPENCV_BUILDER_PACKAGE_VERSION`` takes precedence when set.
    """
    override = os.environ.get(VERSION_OVERRIDE_ENV)
    if override:
        return override

    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError as e:
        raise ConfigurationError(
            f"missing package version: {DISTRIBUTION_NAME} is not installed "
            + f"and {VERSION_OVERRIDE_ENV} is not set"
        ) from e


class VersionResolver:
    """Resolves the OpenCV version tag for a build."""

    def __init__(self, marker: str = VERSION_MARKER):
        self.marker = marker

    def resolve(self, version_string: Optional[str] = None) -> str:
        """Resolve from an explicit version string or the package's own version."""
        if version_string is None:
            version_string = package_version()
        return resolve_version(version_string, self.marker)
