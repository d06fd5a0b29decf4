"""Source archive fetching.

This module downloads the OpenCV source archives for a release from GitHub
and unpacks them into a working source tree. Each archive leaves an
extracted directory named ``<archive>-<version>`` behind; the compressed
file is deleted once unpacked.

The fetcher does not clean up after a partial multi-archive fetch. The
caller owns the working tree and removes it as a whole on failure.
"""

import logging
import os
import stat
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import requests
from tqdm import tqdm

from opencv_builder.errors import DownloadFailed, ExtractionFailed, FilesystemError

logger = logging.getLogger(__name__)

BASE_URL = "https://github.com/opencv"

# Primary distribution first, then the extra modules
ARCHIVES = ("opencv", "opencv_contrib")


@dataclass(frozen=True)
class SourceArchive:
    """One source archive of a release.

    Attributes:
        name: Archive (repository) name, e.g. 'opencv_contrib'
        version: Upstream release identifier
        url: Download URL of the zip archive
        zip_path: Local path of the downloaded archive
        extract_dir: Directory the archive unpacks into
    """

    name: str
    version: str
    url: str
    zip_path: Path
    extract_dir: Path


def archive_url(name: str, version: str, base_url: str = BASE_URL) -> str:
    """Return the GitHub archive URL for a release tag."""
    return f"{base_url}/{name}/archive/{version}.zip"


class ArchiveFetcher:
    """Downloads and extracts the source archives of a release."""

    def __init__(
        self,
        archives: Sequence[str] = ARCHIVES,
        base_url: str = BASE_URL,
        chunk_size: int = 8192,
        timeout: int = 30,
        show_progress: bool = False,
    ):
        """Initialize fetcher.

        Args:
            archives: Archive names to fetch, in order
            base_url: Host and organisation part of the download URL
            chunk_size: Size of chunks for streaming downloads
            timeout: Network timeout in seconds
            show_progress: Whether to show a download progress bar
        """
        self.archives = tuple(archives)
        self.base_url = base_url.rstrip("/")
        self.chunk_size = chunk_size
        self.timeout = timeout
        self.show_progress = show_progress

    def plan(self, dest_dir: Path, version: str) -> List[SourceArchive]:
        """Describe the archives that fetch() would produce."""
        dest_dir = Path(dest_dir)
        return [
            SourceArchive(
                name=name,
                version=version,
                url=archive_url(name, version, self.base_url),
                zip_path=dest_dir / f"{name}.zip",
                extract_dir=dest_dir / f"{name}-{version}",
            )
            for name in self.archives
        ]

    def fetch(self, dest_dir: Path, version: str) -> List[Path]:
        """Download and extract every archive into dest_dir.

        Args:
            dest_dir: Existing directory to extract into
            version: Upstream release identifier

        Returns:
            Extracted source directories, one per archive

        Raises:
            FilesystemError: If dest_dir does not exist
            DownloadFailed: If an archive cannot be downloaded
            ExtractionFailed: If an archive cannot be extracted
        """
        dest_dir = Path(dest_dir)
        if not dest_dir.is_dir():
            raise FilesystemError(f"source directory does not exist: {dest_dir}")

        extracted = []
        for archive in self.plan(dest_dir, version):
            self.download(archive)
            self.extract(archive)
            try:
                archive.zip_path.unlink()
            except OSError as e:
                raise FilesystemError(
                    f"failed to remove {archive.zip_path}: {e}"
                ) from e
            extracted.append(archive.extract_dir)
        return extracted

    def download(self, archive: SourceArchive) -> Path:
        """Download one archive to its zip path.

        The archive is streamed to a temporary file and renamed into place
        once complete.

        Raises:
            DownloadFailed: On network errors or an HTTP error status
        """
        logger.info(f"Downloading {archive.name} {archive.version} from {archive.url}")
        temp_file = archive.zip_path.with_suffix(archive.zip_path.suffix + ".tmp")

        try:
            response = requests.get(archive.url, stream=True, timeout=self.timeout)
            response.raise_for_status()

            total_size = int(response.headers.get("content-length", 0))
            progress_bar = None
            if self.show_progress and total_size > 0:
                progress_bar = tqdm(
                    total=total_size,
                    unit="B",
                    unit_scale=True,
                    unit_divisor=1024,
                    desc=f"Downloading {archive.name}",
                )

            try:
                with open(temp_file, "wb") as f:
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        if chunk:
                            f.write(chunk)
                            if progress_bar:
                                progress_bar.update(len(chunk))
            finally:
                if progress_bar:
                    progress_bar.close()

            temp_file.replace(archive.zip_path)
            return archive.zip_path

        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else str(e)
            raise DownloadFailed(archive.name, status, archive.url) from e
        except requests.RequestException as e:
            raise DownloadFailed(archive.name, str(e), archive.url) from e
        except OSError as e:
            raise DownloadFailed(archive.name, str(e), archive.url) from e

    def extract(self, archive: SourceArchive, zip_path: Optional[Path] = None) -> Path:
        """Extract one archive quietly into the directory holding its zip.

        Raises:
            ExtractionFailed: If the file is not a valid zip, a member would
                land outside the destination, or the expected top-level
                directory is missing afterwards
        """
        zip_path = Path(zip_path or archive.zip_path)
        dest_dir = zip_path.parent
        logger.debug(f"Extracting {zip_path.name} into {dest_dir}")

        try:
            with zipfile.ZipFile(zip_path, "r") as zip_file:
                root = dest_dir.resolve()
                for member in zip_file.namelist():
                    target = (root / member).resolve()
                    if target != root and root not in target.parents:
                        raise ExtractionFailed(
                            archive.name, f"member escapes destination: {member}"
                        )
                zip_file.extractall(dest_dir)
                # extractall drops Unix permission bits, e.g. on bundled scripts
                for info in zip_file.infolist():
                    mode = stat.S_IMODE(info.external_attr >> 16)
                    if mode and not info.is_dir():
                        os.chmod(dest_dir / info.filename, mode)
        except (zipfile.BadZipFile, OSError) as e:
            raise ExtractionFailed(archive.name, str(e)) from e

        if not archive.extract_dir.is_dir():
            raise ExtractionFailed(
                archive.name, f"expected directory {archive.extract_dir.name} not found"
            )
        return archive.extract_dir
