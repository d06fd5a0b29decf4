"""Publishing the install location to a downstream build.

Downstream consumers find the compiled library only through the published
``OPENCV_DIR`` value, the CMake package directory under the install tree.
"""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, TextIO

from opencv_builder.errors import ConfigurationError, FilesystemError

logger = logging.getLogger(__name__)

PUBLISHED_NAME = "OPENCV_DIR"
CMAKE_PACKAGE = "opencv4"


def config_dir(install_dir: Path) -> Path:
    """The CMake package directory of an install tree."""
    return Path(install_dir) / "lib" / "cmake" / CMAKE_PACKAGE


@dataclass(frozen=True)
class PublishedValue:
    """A single NAME=value pair handed to the downstream build."""

    name: str
    value: str

    def render(self) -> str:
        return f"{self.name}={self.value}"


class PublishStep:
    """Emits the published value exactly once."""

    def __init__(
        self,
        name: str = PUBLISHED_NAME,
        stream: Optional[TextIO] = None,
        env_file: Optional[Path] = None,
    ):
        """Initialize publish step.

        Args:
            name: Variable name
            stream: Stream the NAME=value line is written to, stdout by default
            env_file: Optional file the line is appended to (e.g. $GITHUB_ENV)
        """
        self.name = name
        self.stream = stream
        self.env_file = env_file
        self.published: Optional[PublishedValue] = None

    def value_for(self, install_dir: Path) -> PublishedValue:
        """Compute the published value without emitting it."""
        return PublishedValue(self.name, str(config_dir(install_dir).absolute()))

    def publish(self, install_dir: Path) -> PublishedValue:
        """Emit the value for an install directory.

        Raises:
            ConfigurationError: If this step has already published
            FilesystemError: If the env file cannot be written
        """
        if self.published is not None:
            raise ConfigurationError(
                f"{self.name} already published as {self.published.value}"
            )

        value = self.value_for(install_dir)
        line = value.render()
        stream = self.stream or sys.stdout
        stream.write(line + "\n")
        stream.flush()

        if self.env_file is not None:
            try:
                with open(self.env_file, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
            except OSError as e:
                raise FilesystemError(f"failed to write {self.env_file}: {e}") from e
            logger.debug(f"Appended {self.name} to {self.env_file}")

        self.published = value
        return value
