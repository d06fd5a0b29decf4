"""Builder settings.

Settings come from environment variables so the builder can be driven from
an enclosing build system without extra arguments. CLI flags override them.

Environment variables:
    OPENCV_BUILDER_CACHE_DIR: Root of the build cache (falls back to OUT_DIR)
    OPENCV_BUILDER_JOBS: Parallel job count passed to the compile step
    OPENCV_BUILDER_CMAKE: Command used for the configure step
    OPENCV_BUILDER_MAKE: Command used for the compile and install steps
    OPENCV_BUILDER_ENV_FILE: File the published variable is appended to
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from opencv_builder.errors import ConfigurationError

DEFAULT_JOBS = 10
DEFAULT_CMAKE = "cmake"
DEFAULT_MAKE = "make"


@dataclass(frozen=True)
class BuilderSettings:
    """Resolved configuration for one builder invocation."""

    cache_dir: Path
    jobs: int = DEFAULT_JOBS
    cmake: str = DEFAULT_CMAKE
    make: str = DEFAULT_MAKE
    env_file: Optional[Path] = None

    def __post_init__(self):
        if self.jobs < 1:
            raise ConfigurationError(f"jobs must be at least 1, got {self.jobs}")

    @classmethod
    def from_env(
        cls,
        project_dir: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "BuilderSettings":
        """Build settings from environment variables.

        Args:
            project_dir: Directory used for the default cache location.
                Defaults to the current directory.
            environ: Environment mapping, defaults to os.environ

        Returns:
            BuilderSettings instance

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        if environ is None:
            environ = os.environ
        if project_dir is None:
            project_dir = Path.cwd()

        cache_env = environ.get("OPENCV_BUILDER_CACHE_DIR") or environ.get("OUT_DIR")
        if cache_env:
            cache_dir = Path(cache_env).resolve()
        else:
            cache_dir = Path(project_dir).resolve() / ".opencv_builder" / "cache"

        jobs_env = environ.get("OPENCV_BUILDER_JOBS")
        jobs = DEFAULT_JOBS
        if jobs_env:
            try:
                jobs = int(jobs_env)
            except ValueError as e:
                raise ConfigurationError(
                    f"OPENCV_BUILDER_JOBS must be an integer, got {jobs_env!r}"
                ) from e

        env_file = environ.get("OPENCV_BUILDER_ENV_FILE")

        return cls(
            cache_dir=cache_dir,
            jobs=jobs,
            cmake=environ.get("OPENCV_BUILDER_CMAKE") or DEFAULT_CMAKE,
            make=environ.get("OPENCV_BUILDER_MAKE") or DEFAULT_MAKE,
            env_file=Path(env_file) if env_file else None,
        )

    def with_overrides(self, **overrides) -> "BuilderSettings":
        """Return a copy with the non-None overrides applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)
