"""OpenCV build pipeline.

Runs one complete build inside an existing cache root:

    source/  <- fetch archives
    build/   <- cmake -S source/opencv-<v> -B build
                make -C build -j N
                make -C build install   -> install/
    remove source/ and build/

Steps run strictly in order. A failing step aborts the sequence with no
cleanup; the cache gate removes the whole cache root in that case.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence

from opencv_builder.config.settings import DEFAULT_JOBS
from opencv_builder.errors import ConfigurationError
from opencv_builder.packages.cache import BuildPaths, make_dir, remove_tree
from opencv_builder.packages.downloader import ArchiveFetcher
from opencv_builder.packages.manifest import InstallManifest

from .flag_builder import (
    EXCLUDED_MODULES,
    ConfigurationPlanner,
    configure_args,
    primary_source_dir,
)
from .process_runner import ProcessRunner

logger = logging.getLogger(__name__)

CONFIGURE_TOOL = "cmake"
COMPILE_TOOL = "make"


class BuildPipeline:
    """Fetches, configures, compiles and installs one OpenCV release."""

    def __init__(
        self,
        fetcher: Optional[ArchiveFetcher] = None,
        runner: Optional[ProcessRunner] = None,
        planner: Optional[ConfigurationPlanner] = None,
        jobs: int = DEFAULT_JOBS,
        excluded_modules: Sequence[str] = EXCLUDED_MODULES,
    ):
        """Initialize pipeline.

        Args:
            fetcher: Source archive fetcher
            runner: Runner for the configure and compile tools
            planner: Configure flag planner
            jobs: Parallel job count for the compile step
            excluded_modules: Modules that must not appear in the install tree
        """
        if jobs < 1:
            raise ConfigurationError(f"jobs must be at least 1, got {jobs}")

        self.fetcher = fetcher or ArchiveFetcher()
        self.runner = runner or ProcessRunner()
        self.planner = planner or ConfigurationPlanner()
        self.jobs = jobs
        self.excluded_modules = tuple(excluded_modules)

    def run(self, paths: BuildPaths, version: str) -> Path:
        """Run every step of the build.

        Args:
            paths: Working directories; the root must already exist
            version: Upstream release identifier

        Returns:
            The install directory

        Raises:
            BuilderError: From whichever step failed first
        """
        logger.info(f"Fetching OpenCV {version} sources")
        make_dir(paths.source)
        self.fetcher.fetch(paths.source, version)

        make_dir(paths.build)
        make_dir(paths.install)

        self.configure(paths, version)
        self.compile(paths)
        self.install(paths)
        self.verify(paths)

        remove_tree(paths.source)
        remove_tree(paths.build)
        logger.info(f"OpenCV {version} installed to {paths.install}")
        return paths.install

    def configure(self, paths: BuildPaths, version: str) -> None:
        logger.info("Configuring build")
        flags = self.planner.plan(paths.install, paths.source, version)
        args = configure_args(flags, primary_source_dir(paths.source, version), paths.build)
        self.runner.check(CONFIGURE_TOOL, args)

    def compile(self, paths: BuildPaths) -> None:
        logger.info(f"Compiling with {self.jobs} jobs")
        self.runner.check(COMPILE_TOOL, ["-C", str(paths.build), "-j", str(self.jobs)])

    def install(self, paths: BuildPaths) -> None:
        logger.info("Installing")
        self.runner.check(
            COMPILE_TOOL,
            ["-C", str(paths.build), "install"],
            label=f"{COMPILE_TOOL} install",
        )

    def verify(self, paths: BuildPaths) -> InstallManifest:
        """Check the install tree holds none of the excluded modules."""
        manifest = InstallManifest.from_install_dir(paths.install)
        manifest.verify_excluded(self.excluded_modules)
        logger.debug(f"Installed modules: {', '.join(sorted(manifest.modules)) or 'none'}")
        return manifest
