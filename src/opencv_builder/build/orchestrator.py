"""Cache gate and top-level build orchestration.

The cache gate is the entry point of a build and the only component that
recovers from failures:

    Absent --(root missing)--> Building --(pipeline ok)--> Present
    Building --(any error)--> Failed --(remove root)--> Absent, error re-raised
    Absent --(root complete)--> Present   (cache hit, nothing runs)
    Absent --(root incomplete)--> remove root --> Building

A killed process leaves its root behind with source/ or build/ still in it.
Such a root is not a cache hit; the next run removes it and builds again.
"""

import enum
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from opencv_builder.config.settings import BuilderSettings
from opencv_builder.config.version import VersionResolver
from opencv_builder.errors import FilesystemError
from opencv_builder.packages.cache import BuildPaths, Cache, make_dir, remove_tree
from opencv_builder.packages.downloader import ArchiveFetcher

from .pipeline import COMPILE_TOOL, CONFIGURE_TOOL, BuildPipeline
from .process_runner import ProcessRunner
from .publish import PublishedValue, PublishStep, config_dir

logger = logging.getLogger(__name__)


class CacheState(enum.Enum):
    ABSENT = "absent"
    BUILDING = "building"
    PRESENT = "present"
    FAILED = "failed"


@dataclass(frozen=True)
class BuildResult:
    """Outcome of ensuring a cached build.

    Attributes:
        version: Upstream release identifier
        cache_root: Version-scoped cache root
        install_dir: Installation prefix inside the cache root
        config_dir: CMake package directory that gets published
        cached: True if the build was skipped because a finished root existed
        state: Final cache state (always PRESENT on return)
    """

    version: str
    cache_root: Path
    install_dir: Path
    config_dir: Path
    cached: bool
    state: CacheState


class CacheGate:
    """Runs the build pipeline at most once per cache root."""

    def __init__(self, cache: Cache, pipeline: BuildPipeline):
        self.cache = cache
        self.pipeline = pipeline
        self.state = CacheState.ABSENT

    def ensure(self, version: str) -> BuildResult:
        """Make sure a build for version exists in the cache.

        Args:
            version: Upstream release identifier

        Returns:
            BuildResult for the cache root

        Raises:
            BuilderError: The original pipeline error, after the cache root
                has been removed
        """
        paths = self.cache.get_paths(version)
        cached = paths.is_complete()

        if cached:
            logger.info(f"Using cached OpenCV {version} at {paths.root}")
        else:
            if paths.root.exists():
                logger.warning(f"Removing incomplete build at {paths.root}")
                remove_tree(paths.root)
            with self._building(paths):
                self.pipeline.run(paths, version)

        self.state = CacheState.PRESENT
        return BuildResult(
            version=version,
            cache_root=paths.root,
            install_dir=paths.install,
            config_dir=config_dir(paths.install),
            cached=cached,
            state=self.state,
        )

    @contextmanager
    def _building(self, paths: BuildPaths) -> Iterator[BuildPaths]:
        """Own the cache root for the duration of a build.

        The root is created on entry and removed again if the body raises
        anything, so a failed build never leaves a cache hit behind.
        """
        try:
            paths.root.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"failed to create directory {paths.root.parent}: {e}") from e
        make_dir(paths.root)
        self.state = CacheState.BUILDING
        try:
            yield paths
        except BaseException:
            self.state = CacheState.FAILED
            logger.warning(f"Build failed, removing {paths.root}")
            try:
                remove_tree(paths.root)
            except Exception as cleanup_error:
                logger.error(f"Rollback failed: {cleanup_error}")
            else:
                self.state = CacheState.ABSENT
            raise


def create_gate(
    settings: BuilderSettings,
    fetcher: Optional[ArchiveFetcher] = None,
    runner: Optional[ProcessRunner] = None,
) -> CacheGate:
    """Wire a cache gate from settings."""
    if runner is None:
        runner = ProcessRunner({CONFIGURE_TOOL: settings.cmake, COMPILE_TOOL: settings.make})
    pipeline = BuildPipeline(fetcher=fetcher, runner=runner, jobs=settings.jobs)
    return CacheGate(Cache(settings.cache_dir), pipeline)


def build_opencv(
    settings: BuilderSettings,
    version_string: Optional[str] = None,
    publish_step: Optional[PublishStep] = None,
    force: bool = False,
    gate: Optional[CacheGate] = None,
) -> PublishedValue:
    """Resolve the version, ensure the build and publish its location.

    Args:
        settings: Builder settings
        version_string: Package version to resolve, defaults to the
            installed package's own version
        publish_step: Where to publish, defaults to stdout plus the
            configured env file
        force: Remove an existing cache root before building
        gate: Pre-built cache gate, mainly for tests

    Returns:
        The published value
    """
    version = VersionResolver().resolve(version_string)
    gate = gate or create_gate(settings)

    if force and gate.cache.clean(version):
        logger.info(f"Removed cached OpenCV {version}")

    result = gate.ensure(version)
    step = publish_step or PublishStep(env_file=settings.env_file)
    return step.publish(result.install_dir)
