"""
Build system components for opencv-builder.

This module provides the build implementation including:
- CMake flag planning
- External tool execution (cmake, make)
- The fetch/configure/compile/install pipeline
- Cache gating and publishing of the install location
"""

from .flag_builder import (
    EXCLUDED_MODULES,
    MODULE_ALLOW_LIST,
    ConfigurationPlanner,
    ToolchainFlags,
    plan_flags,
)
from .orchestrator import BuildResult, CacheGate, CacheState, build_opencv, create_gate
from .pipeline import BuildPipeline
from .process_runner import ProcessOutcome, ProcessRunner
from .publish import PublishedValue, PublishStep, config_dir

__all__ = [
    "EXCLUDED_MODULES",
    "MODULE_ALLOW_LIST",
    "BuildPipeline",
    "BuildResult",
    "CacheGate",
    "CacheState",
    "ConfigurationPlanner",
    "ProcessOutcome",
    "ProcessRunner",
    "PublishStep",
    "PublishedValue",
    "ToolchainFlags",
    "build_opencv",
    "config_dir",
    "create_gate",
    "plan_flags",
]
