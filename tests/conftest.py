"""Shared fixtures: stand-ins for the fetcher and the external build tools."""

import json
import logging
import shlex
import sys
import textwrap
from pathlib import Path
from typing import List, Optional, Sequence

import pytest

from opencv_builder.build.process_runner import ProcessOutcome, ProcessRunner


class FakeFetcher:
    """Creates the extracted source layout instead of downloading."""

    def __init__(self, fail_with: Optional[Exception] = None):
        self.calls: List[tuple] = []
        self.fail_with = fail_with

    def fetch(self, dest_dir: Path, version: str) -> List[Path]:
        self.calls.append((Path(dest_dir), version))
        if self.fail_with is not None:
            raise self.fail_with
        primary = Path(dest_dir) / f"opencv-{version}"
        extra = Path(dest_dir) / f"opencv_contrib-{version}" / "modules"
        primary.mkdir()
        (primary / "CMakeLists.txt").write_text("project(OpenCV)\n")
        extra.mkdir(parents=True)
        return [primary, extra.parent]


class RecordingRunner(ProcessRunner):
    """Records invocations instead of launching processes."""

    def __init__(self, fail_on: Optional[str] = None, status: int = 2):
        super().__init__()
        self.calls: List[tuple] = []
        self.fail_on = fail_on
        self.status = status

    def run(self, tool, args, cwd=None, label=None):
        name = label or tool
        self.calls.append((name, list(args)))
        if name == self.fail_on:
            return ProcessOutcome(name, self.status)
        return ProcessOutcome(name, 0)


FAKE_CMAKE = """
import json, sys
args = sys.argv[1:]
with open({log!r}, "a") as f:
    f.write(json.dumps(["cmake"] + args) + "\\n")
build = args[args.index("-B") + 1]
prefix = [a.split("=", 1)[1] for a in args if a.startswith("-DCMAKE_INSTALL_PREFIX=")][0]
with open(build + "/prefix.txt", "w") as f:
    f.write(prefix)
"""

FAKE_MAKE = """
import json, os, sys
args = sys.argv[1:]
with open({log!r}, "a") as f:
    f.write(json.dumps(["make"] + args) + "\\n")
if {fail_compile!r} and "-j" in args:
    sys.stderr.write("error: simulated compiler failure\\n")
    sys.exit(2)
build = args[args.index("-C") + 1]
if "install" in args:
    with open(os.path.join(build, "prefix.txt")) as f:
        prefix = f.read()
    os.makedirs(os.path.join(prefix, "lib", "cmake", "opencv4"))
    open(os.path.join(prefix, "lib", "cmake", "opencv4", "OpenCVConfig.cmake"), "w").close()
    for module in {modules!r}:
        open(os.path.join(prefix, "lib", "libopencv_" + module + ".a"), "w").close()
    header_dir = os.path.join(prefix, "include", "opencv4", "opencv2")
    os.makedirs(header_dir)
    with open(os.path.join(header_dir, "opencv_modules.hpp"), "w") as f:
        for module in {modules!r}:
            f.write("#define HAVE_OPENCV_" + module.upper() + "\\n")
"""


class FakeTools:
    """Python scripts standing in for cmake and make."""

    def __init__(self, root: Path):
        self.root = root
        self.log = root / "tool_calls.jsonl"

    def write(
        self,
        fail_compile: bool = False,
        modules: Sequence[str] = ("core", "imgproc", "imgcodecs", "objdetect"),
    ) -> dict:
        """Write the scripts and return a tool name -> command mapping."""
        self.root.mkdir(parents=True, exist_ok=True)
        cmake = self.root / "fake_cmake.py"
        make = self.root / "fake_make.py"
        cmake.write_text(textwrap.dedent(FAKE_CMAKE.format(log=str(self.log))))
        make.write_text(
            textwrap.dedent(
                FAKE_MAKE.format(
                    log=str(self.log), fail_compile=fail_compile, modules=list(modules)
                )
            )
        )
        python = shlex.quote(sys.executable)
        return {
            "cmake": f"{python} {shlex.quote(str(cmake))}",
            "make": f"{python} {shlex.quote(str(make))}",
        }

    def calls(self) -> List[List[str]]:
        if not self.log.exists():
            return []
        return [json.loads(line) for line in self.log.read_text().splitlines()]


@pytest.fixture(autouse=True)
def reset_builder_logger():
    """Drop handlers the CLI attaches so they never outlive a test."""
    yield
    logger = logging.getLogger("opencv_builder")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def recording_runner():
    return RecordingRunner()


@pytest.fixture
def fake_tools(tmp_path):
    return FakeTools(tmp_path / "tools")


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def make_fetcher():
    return FakeFetcher


@pytest.fixture
def make_runner():
    return RecordingRunner
