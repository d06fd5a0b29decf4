"""opencv-builder - builds a pinned OpenCV release from source into a cache."""

from .build import BuildResult, CacheGate, CacheState, build_opencv
from .config import BuilderSettings, VersionResolver, resolve_version
from .errors import (
    BuilderError,
    ConfigurationError,
    DownloadFailed,
    ExtractionFailed,
    FilesystemError,
    InstallVerificationError,
    ProcessFailed,
)

__all__ = [
    "BuildResult",
    "BuilderError",
    "BuilderSettings",
    "CacheGate",
    "CacheState",
    "ConfigurationError",
    "DownloadFailed",
    "ExtractionFailed",
    "FilesystemError",
    "InstallVerificationError",
    "ProcessFailed",
    "VersionResolver",
    "build_opencv",
    "resolve_version",
]
