"""
End-to-end build with stand-in tools.

Runs the real fetcher (HTTP patched to serve generated archives), the real
process runner launching Python scripts in place of cmake and make, the
cache gate and the publish step.
"""

import io
import zipfile
from unittest.mock import Mock, patch

import pytest

from opencv_builder.build.orchestrator import build_opencv, create_gate
from opencv_builder.build.process_runner import ProcessRunner
from opencv_builder.build.publish import PublishStep
from opencv_builder.cli import main
from opencv_builder.config.settings import BuilderSettings
from opencv_builder.errors import ProcessFailed
from opencv_builder.packages.downloader import ArchiveFetcher


class ArchiveServer:
    """Serves a GitHub-style source archive for any requested URL."""

    def __init__(self):
        self.urls = []

    def get(self, url, stream=True, timeout=30):
        self.urls.append(url)
        name = url.split("/")[-3]
        version = url.rsplit("/", 1)[-1][: -len(".zip")]
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            zf.writestr(f"{name}-{version}/CMakeLists.txt", "project(OpenCV)\n")
            zf.writestr(f"{name}-{version}/modules/core/CMakeLists.txt", "\n")
        response = Mock()
        response.raise_for_status = Mock()
        response.headers = {}
        response.iter_content = Mock(return_value=[buffer.getvalue()])
        return response


@pytest.fixture
def server():
    server = ArchiveServer()
    with patch("opencv_builder.packages.downloader.requests.get", side_effect=server.get):
        yield server


def make_settings(cache_dir, **kwargs):
    return BuilderSettings(cache_dir=cache_dir, **kwargs)


@pytest.mark.integration
class TestEndToEnd:
    def test_fresh_build_then_cache_hit(self, server, fake_tools, cache_dir):
        commands = fake_tools.write()
        settings = make_settings(cache_dir, jobs=4)

        def build():
            gate = create_gate(settings, fetcher=ArchiveFetcher(), runner=ProcessRunner(commands))
            return build_opencv(
                settings, "mylib-opencv4.9.0", PublishStep(stream=io.StringIO()), gate=gate
            )

        first = build()

        assert [url.rsplit("/", 1)[-1] for url in server.urls] == ["4.9.0.zip", "4.9.0.zip"]
        assert all(url.endswith("archive/4.9.0.zip") for url in server.urls)
        assert first.value.endswith("install/lib/cmake/opencv4")

        root = cache_dir.resolve() / "opencv" / "4.9.0"
        assert sorted(p.name for p in root.iterdir()) == ["install"]
        assert (root / "install" / "lib" / "cmake" / "opencv4" / "OpenCVConfig.cmake").exists()

        calls = fake_tools.calls()
        assert [c[0] for c in calls] == ["cmake", "make", "make"]
        assert calls[1][-2:] == ["-j", "4"]
        assert calls[2][-1] == "install"

        second = build()

        assert second == first
        assert len(fake_tools.calls()) == 3
        assert len(server.urls) == 2

    def test_failing_compile_leaves_no_cache_root(self, server, fake_tools, cache_dir, capfd):
        commands = fake_tools.write(fail_compile=True)
        settings = make_settings(cache_dir)
        gate = create_gate(settings, fetcher=ArchiveFetcher(), runner=ProcessRunner(commands))

        with pytest.raises(ProcessFailed) as exc_info:
            build_opencv(settings, "0.1.0+opencv4.9.0", PublishStep(stream=io.StringIO()), gate=gate)

        assert exc_info.value.tool == "make"
        assert not (cache_dir / "opencv" / "4.9.0").exists()
        assert "simulated compiler failure" in capfd.readouterr().err

    def test_cli_build_with_env_configuration(
        self, server, fake_tools, tmp_path, monkeypatch, capsys
    ):
        commands = fake_tools.write()
        env_file = tmp_path / "github_env"
        monkeypatch.setenv("OPENCV_BUILDER_CACHE_DIR", str(tmp_path / "cache"))
        monkeypatch.setenv("OPENCV_BUILDER_CMAKE", commands["cmake"])
        monkeypatch.setenv("OPENCV_BUILDER_MAKE", commands["make"])
        monkeypatch.setenv("OPENCV_BUILDER_ENV_FILE", str(env_file))
        monkeypatch.setenv("OPENCV_BUILDER_PACKAGE_VERSION", "0.1.0+opencv4.9.0")

        with pytest.raises(SystemExit) as exc_info:
            main(["build", str(tmp_path)])

        assert exc_info.value.code == 0
        expected = tmp_path.resolve() / "cache" / "opencv" / "4.9.0" / "install" / "lib" / "cmake" / "opencv4"
        assert f"OPENCV_DIR={expected}" in capsys.readouterr().out
        assert env_file.read_text() == f"OPENCV_DIR={expected}\n"
