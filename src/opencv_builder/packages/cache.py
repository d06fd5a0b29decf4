"""Cache layout for OpenCV builds.

Cache Structure:
    {cache_dir}/
    └── opencv/
        └── {version}/          # Cache root, one per upstream release
            ├── source/         # Extracted archives (removed after install)
            ├── build/          # CMake build tree (removed after install)
            └── install/        # Installed library, the only persistent part
                └── lib/cmake/opencv4/

Keying the cache root by version means a version bump never reuses an old
install tree. A root counts as a cache hit once source/ and build/ are gone,
which the pipeline only does after a successful install. The contents of
install/ are not re-validated.
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from opencv_builder.errors import FilesystemError

logger = logging.getLogger(__name__)

LIBRARY_NAME = "opencv"


@dataclass(frozen=True)
class BuildPaths:
    """The three sibling working directories under one cache root."""

    root: Path

    @property
    def source(self) -> Path:
        """Directory for extracted source archives."""
        return self.root / "source"

    @property
    def build(self) -> Path:
        """Directory for the generated build tree."""
        return self.root / "build"

    @property
    def install(self) -> Path:
        """Installation prefix, kept after a successful build."""
        return self.root / "install"

    def is_complete(self) -> bool:
        """True if the root exists and no intermediate directories are left."""
        return self.root.is_dir() and not self.source.exists() and not self.build.exists()


class Cache:
    """Maps upstream versions to cache roots under a cache directory."""

    def __init__(self, cache_dir: Path, library: str = LIBRARY_NAME):
        """Initialize cache.

        Args:
            cache_dir: Directory holding all cached builds
            library: Library name used as the first path component
        """
        self.cache_dir = Path(cache_dir).resolve()
        self.library = library

    def get_root(self, version: str) -> Path:
        """Get the cache root for a version."""
        return self.cache_dir / self.library / version

    def get_paths(self, version: str) -> BuildPaths:
        """Get the working directories for a version."""
        return BuildPaths(self.get_root(version))

    def is_cached(self, version: str) -> bool:
        """Check whether a finished build exists for a version."""
        return self.get_paths(version).is_complete()

    def clean(self, version: str) -> bool:
        """Remove the cache root for a version.

        Returns:
            True if something was removed
        """
        root = self.get_root(version)
        if not root.exists():
            return False
        remove_tree(root)
        return True


def make_dir(path: Path, parents: bool = False) -> Path:
    """Create a directory that must not exist yet.

    Raises:
        FilesystemError: If the directory exists or cannot be created
    """
    try:
        path.mkdir(parents=parents)
    except OSError as e:
        raise FilesystemError(f"failed to create directory {path}: {e}") from e
    return path


def remove_tree(path: Path) -> None:
    """Remove a directory tree.

    Raises:
        FilesystemError: If removal fails
    """
    logger.debug(f"Removing {path}")
    try:
        shutil.rmtree(path)
    except OSError as e:
        raise FilesystemError(f"failed to remove directory {path}: {e}") from e
