"""Exception types for opencv-builder.

Every failure raised by the builder derives from BuilderError so the CLI can
report it uniformly. Errors carry the structured context (archive, tool,
status) needed to tell which phase failed; the underlying tool output is
never captured, so it stays visible on the operator's terminal.
"""

from typing import Optional, Union


class BuilderError(Exception):
    """Base class for all builder failures."""

    pass


class ConfigurationError(BuilderError):
    """Raised for malformed version strings or invalid settings."""

    pass


class DownloadFailed(BuilderError):
    """Raised when a source archive cannot be downloaded."""

    def __init__(self, archive: str, status: Union[int, str], url: Optional[str] = None):
        self.archive = archive
        self.status = status
        self.url = url
        message = f"errors downloading {archive}: {status}"
        if url:
            message += f" ({url})"
        super().__init__(message)


class ExtractionFailed(BuilderError):
    """Raised when a downloaded archive cannot be unpacked."""

    def __init__(self, archive: str, status: str):
        self.archive = archive
        self.status = status
        super().__init__(f"errors unzipping {archive}: {status}")


class ProcessFailed(BuilderError):
    """Raised when an external tool exits with a non-zero status."""

    def __init__(self, tool: str, exit_status: int):
        self.tool = tool
        self.exit_status = exit_status
        super().__init__(f"errors running {tool}: exit status {exit_status}")


class FilesystemError(BuilderError):
    """Raised when a working directory cannot be created or removed."""

    pass


class InstallVerificationError(BuilderError):
    """Raised when the installed tree contains modules that were excluded."""

    pass
