"""Package management for opencv-builder.

This module handles fetching the OpenCV sources, laying out the build cache
and inspecting installed trees.
"""

from .cache import BuildPaths, Cache
from .downloader import ARCHIVES, ArchiveFetcher, SourceArchive, archive_url
from .manifest import InstallManifest

__all__ = [
    "ARCHIVES",
    "ArchiveFetcher",
    "BuildPaths",
    "Cache",
    "InstallManifest",
    "SourceArchive",
    "archive_url",
]
