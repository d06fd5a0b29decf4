"""CMake configuration flag planning.

This module turns the static build policy plus the resolved paths into the
ordered list of ``-D`` directives passed to the configure step.

Design:
    - Only the allow-listed modules are built (BUILD_LIST)
    - Shared libraries, docs, examples, tests and other language bindings
      are switched off
    - Optional third-party dependencies the allow-listed modules do not need
      are switched off, bundled ones are always built from source
    - No I/O: the same inputs always produce the same flags
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence, Tuple

from opencv_builder.errors import ConfigurationError

MODULE_ALLOW_LIST: Tuple[str, ...] = ("imgcodecs", "imgproc", "objdetect")

# Modules switched off explicitly on top of BUILD_LIST
EXCLUDED_MODULES: Tuple[str, ...] = ("apps", "java", "python", "gapi")

EXTRA_MODULES_ARCHIVE = "opencv_contrib"
PRIMARY_ARCHIVE = "opencv"


@dataclass(frozen=True)
class ToolchainFlags:
    """Ordered CMake cache directives."""

    entries: Tuple[Tuple[str, str], ...]

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, key: str) -> str:
        """Return the value of a directive.

        Raises:
            KeyError: If the directive is not set
        """
        for name, value in self.entries:
            if name == key:
                return value
        raise KeyError(key)

    def to_args(self) -> List[str]:
        """Render as ``-DKEY=VALUE`` command-line arguments."""
        return [f"-D{key}={value}" for key, value in self.entries]


def normalize_modules(modules: Iterable[str]) -> Tuple[str, ...]:
    """Validate a module allow-list and drop duplicates, keeping order.

    Raises:
        ConfigurationError: If the list is empty or names an excluded module
    """
    seen: List[str] = []
    for module in modules:
        module = module.strip()
        if module and module not in seen:
            seen.append(module)

    if not seen:
        raise ConfigurationError("module allow-list must not be empty")

    conflicting = [m for m in seen if m in EXCLUDED_MODULES]
    if conflicting:
        raise ConfigurationError(
            f"modules {', '.join(conflicting)} are excluded and cannot be built"
        )
    return tuple(seen)


def extra_modules_path(source_root: Path, version: str) -> Path:
    """Path of the ``modules`` directory inside the extracted extras archive."""
    return Path(source_root) / f"{EXTRA_MODULES_ARCHIVE}-{version}" / "modules"


def primary_source_dir(source_root: Path, version: str) -> Path:
    """Path of the extracted primary source tree."""
    return Path(source_root) / f"{PRIMARY_ARCHIVE}-{version}"


def plan_flags(
    install_dir: Path,
    source_root: Path,
    version: str,
    modules: Sequence[str] = MODULE_ALLOW_LIST,
) -> ToolchainFlags:
    """Build the configure flags for one build.

    Args:
        install_dir: Installation prefix
        source_root: Directory the archives were extracted into
        version: Upstream release identifier
        modules: Modules to build

    Returns:
        ToolchainFlags in a fixed order

    Raises:
        ConfigurationError: If the module list is invalid
    """
    allowed = normalize_modules(modules)

    entries = [
        ("CMAKE_BUILD_TYPE", "Release"),
        ("BUILD_SHARED_LIBS", "OFF"),
        ("BUILD_DOCS", "OFF"),
        ("BUILD_EXAMPLES", "OFF"),
        ("BUILD_LIST", ",".join(allowed)),
        ("BUILD_opencv_apps", "OFF"),
        ("CMAKE_INSTALL_PREFIX", str(install_dir)),
        ("BUILD_TESTS", "OFF"),
        ("BUILD_PERF_TESTS", "OFF"),
        ("BUILD_opencv_java", "OFF"),
        ("BUILD_opencv_python", "OFF"),
        ("WITH_PROTOBUF", "OFF"),
        ("WITH_ADE", "OFF"),
        ("BUILD_opencv_gapi", "OFF"),
        ("WITH_EIGEN", "OFF"),
        ("WITH_OPENEXR", "OFF"),
        ("OPENCV_DNN_OPENCL", "OFF"),
        ("OPENCV_FORCE_3RDPARTY_BUILD", "ON"),
        ("OPENCV_EXTRA_MODULES_PATH", str(extra_modules_path(source_root, version))),
    ]
    return ToolchainFlags(tuple(entries))


def configure_args(flags: ToolchainFlags, source_dir: Path, build_dir: Path) -> List[str]:
    """Full argument vector for the configure tool."""
    return flags.to_args() + ["-S", str(source_dir), "-B", str(build_dir)]


class ConfigurationPlanner:
    """Plans configure flags for a fixed module allow-list."""

    def __init__(self, modules: Sequence[str] = MODULE_ALLOW_LIST):
        self.modules = normalize_modules(modules)

    def plan(self, install_dir: Path, source_root: Path, version: str) -> ToolchainFlags:
        return plan_flags(install_dir, source_root, version, self.modules)
