"""
Build system components for mule.

This module provides the build system implementation including:
- Toolchain detection and command synthesis
- Source file discovery and staleness tracking
- Code generation
- Build orchestration (see mule.build.orchestrator)
"""

from .build_state import CompiledUnit, is_stale
from .commands import CommandSynthesizer
from .source_scanner import SourceCollection, SourceScanner
from .toolchain import ToolchainDescriptor, detect_toolchain

__all__ = [
    "CommandSynthesizer",
    "CompiledUnit",
    "SourceCollection",
    "SourceScanner",
    "ToolchainDescriptor",
    "detect_toolchain",
    "is_stale",
]
