"""Configuration modules for opencv-builder."""

from .settings import BuilderSettings
from .version import VersionResolver, package_version, resolve_version

__all__ = [
    "BuilderSettings",
    "VersionResolver",
    "package_version",
    "resolve_version",
]
