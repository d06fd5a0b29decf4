"""Installed module inspection.

An OpenCV install tree records which modules were built in two places: the
static libraries under ``lib/`` and the generated ``opencv_modules.hpp``
header, which defines ``HAVE_OPENCV_<MODULE>`` for each built module.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Iterable, Set

from opencv_builder.errors import InstallVerificationError

_STATIC_LIB_RE = re.compile(r"^libopencv_([a-z0-9_]+)\.a$")
_WINDOWS_LIB_RE = re.compile(r"^opencv_([a-z0-9_]+?)\d*d?\.lib$")
_HAVE_MODULE_RE = re.compile(r"^\s*#define\s+HAVE_OPENCV_([A-Z0-9_]+)\b", re.MULTILINE)


@dataclass(frozen=True)
class InstallManifest:
    """Modules present in an install tree."""

    install_dir: Path
    libraries: FrozenSet[str] = field(default_factory=frozenset)
    declared: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def modules(self) -> FrozenSet[str]:
        """All module names found in either libraries or the modules header."""
        return self.libraries | self.declared

    @classmethod
    def from_install_dir(cls, install_dir: Path) -> "InstallManifest":
        """Scan an install tree.

        Args:
            install_dir: Installation prefix of a build

        Returns:
            InstallManifest describing the tree (empty if nothing is there)
        """
        install_dir = Path(install_dir)
        libraries: Set[str] = set()
        for lib in install_dir.glob("lib*/**/*"):
            match = _STATIC_LIB_RE.match(lib.name) or _WINDOWS_LIB_RE.match(lib.name)
            if match and lib.is_file():
                libraries.add(match.group(1))

        declared: Set[str] = set()
        for header in install_dir.glob("include/**/opencv2/opencv_modules.hpp"):
            text = header.read_text(encoding="utf-8", errors="replace")
            declared.update(name.lower() for name in _HAVE_MODULE_RE.findall(text))

        return cls(install_dir, frozenset(libraries), frozenset(declared))

    def verify_excluded(self, excluded: Iterable[str]) -> None:
        """Check that none of the excluded modules were installed.

        Raises:
            InstallVerificationError: If an excluded module is present
        """
        present = sorted(self.modules & set(excluded))
        if present:
            raise InstallVerificationError(
                f"excluded modules found in {self.install_dir}: {', '.join(present)}"
            )
