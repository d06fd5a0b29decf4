"""
Command-line interface for opencv-builder.

This module provides the `opencv-build` CLI tool, meant to be called from an
enclosing build before compiling code that links against OpenCV.
"""

import argparse
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from opencv_builder.build import build_opencv, create_gate, plan_flags
from opencv_builder.build.flag_builder import configure_args, primary_source_dir
from opencv_builder.build.publish import PublishStep
from opencv_builder.cli_utils import ErrorFormatter, setup_logging
from opencv_builder.config import BuilderSettings, VersionResolver
from opencv_builder.errors import BuilderError
from opencv_builder.packages import ArchiveFetcher, Cache


@dataclass
class BuildArgs:
    """Arguments for the build command."""

    project_dir: Path
    version_string: Optional[str] = None
    cache_dir: Optional[Path] = None
    jobs: Optional[int] = None
    env_file: Optional[Path] = None
    force: bool = False
    progress: bool = False
    verbose: bool = False


@dataclass
class PlanArgs:
    """Arguments for the plan and info commands."""

    project_dir: Path
    version_string: Optional[str] = None
    cache_dir: Optional[Path] = None
    verbose: bool = False


def _settings(project_dir: Path, **overrides) -> BuilderSettings:
    return BuilderSettings.from_env(project_dir).with_overrides(**overrides)


def build_command(args: BuildArgs) -> None:
    """Build OpenCV (or reuse the cached build) and publish OPENCV_DIR.

    Examples:
        opencv-build build                         # Build into ./.opencv_builder/cache
        opencv-build build --cache-dir /tmp/cv     # Use another cache directory
        opencv-build build -j 4                    # Compile with 4 jobs
        opencv-build build --force                 # Rebuild an existing cache root
    """
    setup_logging(args.verbose)

    try:
        settings = _settings(
            args.project_dir,
            cache_dir=args.cache_dir.resolve() if args.cache_dir else None,
            jobs=args.jobs,
            env_file=args.env_file,
        )
        gate = create_gate(settings, fetcher=ArchiveFetcher(show_progress=args.progress))

        start_time = time.time()
        published = build_opencv(
            settings,
            version_string=args.version_string,
            publish_step=PublishStep(env_file=settings.env_file),
            force=args.force,
            gate=gate,
        )
        build_time = time.time() - start_time

        ErrorFormatter.print_success(f"OpenCV ready: {published.value}")
        print(f"Build time: {build_time:.2f}s", file=sys.stderr)
        sys.exit(0)

    except BuilderError as e:
        ErrorFormatter.handle_builder_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def plan_command(args: PlanArgs) -> None:
    """Print the resolved version and configure arguments without building."""
    setup_logging(args.verbose)

    try:
        settings = _settings(
            args.project_dir,
            cache_dir=args.cache_dir.resolve() if args.cache_dir else None,
        )
        version = VersionResolver().resolve(args.version_string)
        paths = Cache(settings.cache_dir).get_paths(version)
        flags = plan_flags(paths.install, paths.source, version)

        print(f"version: {version}")
        print(f"cache root: {paths.root}")
        print("configure arguments:")
        for arg in configure_args(flags, primary_source_dir(paths.source, version), paths.build):
            print(f"  {arg}")
        sys.exit(0)

    except BuilderError as e:
        ErrorFormatter.handle_builder_error(e)
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def info_command(args: PlanArgs) -> None:
    """Print cache status for the resolved version."""
    setup_logging(args.verbose)

    try:
        settings = _settings(
            args.project_dir,
            cache_dir=args.cache_dir.resolve() if args.cache_dir else None,
        )
        version = VersionResolver().resolve(args.version_string)
        cache = Cache(settings.cache_dir)
        root = cache.get_root(version)
        value = PublishStep().value_for(cache.get_paths(version).install)

        print(f"version: {version}")
        print(f"cache root: {root}")
        print(f"cached: {'yes' if cache.is_cached(version) else 'no'}")
        print(value.render())
        sys.exit(0)

    except BuilderError as e:
        ErrorFormatter.handle_builder_error(e)
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "project_dir",
        nargs="?",
        type=Path,
        default=Path.cwd(),
        help="Project directory for the default cache (default: current directory)",
    )
    parser.add_argument(
        "--version-string",
        default=None,
        help="Version to resolve instead of the installed package version "
        + "(e.g. 0.1.0+opencv4.9.0)",
    )
    parser.add_argument(
        "--cache-dir",
        type=Path,
        default=None,
        help="Cache directory (default: $OPENCV_BUILDER_CACHE_DIR or $OUT_DIR)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output",
    )


def main(argv: Optional[List[str]] = None) -> None:
    """opencv-builder - build a pinned OpenCV release from source."""
    parser = argparse.ArgumentParser(
        prog="opencv-build",
        description="Build a pinned OpenCV release into a version-scoped cache",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Build command
    build_parser = subparsers.add_parser(
        "build",
        help="Build OpenCV if not cached and publish OPENCV_DIR",
    )
    _add_common_arguments(build_parser)
    build_parser.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=None,
        help="Parallel compile jobs (default: $OPENCV_BUILDER_JOBS or 10)",
    )
    build_parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="File to append OPENCV_DIR=... to (default: $OPENCV_BUILDER_ENV_FILE)",
    )
    build_parser.add_argument(
        "--force",
        action="store_true",
        help="Remove the cached build for this version before building",
    )
    build_parser.add_argument(
        "--progress",
        action="store_true",
        help="Show download progress bars",
    )

    plan_parser = subparsers.add_parser(
        "plan",
        help="Show the configure arguments without building",
    )
    _add_common_arguments(plan_parser)

    info_parser = subparsers.add_parser(
        "info",
        help="Show cache status for the resolved version",
    )
    _add_common_arguments(info_parser)

    parsed_args = parser.parse_args(argv)

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    if parsed_args.command == "build":
        build_command(
            BuildArgs(
                project_dir=parsed_args.project_dir,
                version_string=parsed_args.version_string,
                cache_dir=parsed_args.cache_dir,
                jobs=parsed_args.jobs,
                env_file=parsed_args.env_file,
                force=parsed_args.force,
                progress=parsed_args.progress,
                verbose=parsed_args.verbose,
            )
        )
    else:
        args = PlanArgs(
            project_dir=parsed_args.project_dir,
            version_string=parsed_args.version_string,
            cache_dir=parsed_args.cache_dir,
            verbose=parsed_args.verbose,
        )
        if parsed_args.command == "plan":
            plan_command(args)
        else:
            info_command(args)


if __name__ == "__main__":
    main()
