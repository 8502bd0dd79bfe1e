"""Toolchain descriptors and host toolchain detection.

Each supported compiler family is described once, as data: flag spellings,
file extensions, and archive/link conventions. The command synthesizer, the
dependency sub-builds and the test harness all consume the same descriptor,
so nothing else needs to branch on the compiler family.

Detection Order:
    1. clang++ (LLVM)
    2. g++ (GNU)
    3. cl (MSVC)

The first compiler that answers its version probe wins.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..subprocess_utils import command_exists

logger = logging.getLogger(__name__)


class CompilerFamily(Enum):
    """Compiler families with distinct command-line conventions."""

    CLANG = "clang"
    GCC = "gcc"
    MSVC = "msvc"
    NVCC = "nvcc"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ToolchainDescriptor:
    """Command-line conventions of one compiler family.

    Attributes:
        family: Compiler family
        compiler: Invocation name of the C++ compiler driver
        probe_args: Arguments that make the compiler answer a version query
        standard_flag: Template for the language standard, "{std}" is replaced
        object_extension: Extension of compiled object files
        compile_only_flag: Flag that stops after compilation
        object_output: Template for the object output flag(s), "{path}" is replaced
        executable_output: Template for the link output flag(s)
        include_prefix: Include directory flag prefix
        define_prefix: Preprocessor define flag prefix
        lib_dir_prefix: Library search directory flag prefix
        lib_prefix: Prefix for a library name on the link line
        lib_suffix: Suffix for a library name on the link line
        shared_flag: Flag that produces a shared library at link time
        pic_flag: Position-independent-code flag, None if the family has none
        extra_compile_flags: Flags always passed when compiling
        archive_command: Archive command template, "{output}" is replaced; objects follow
        linker_passthrough: Marker separating compiler and linker options, if any
        library_name_prefix: File-name prefix for produced libraries
    """

    family: CompilerFamily
    compiler: str
    probe_args: tuple[str, ...]
    standard_flag: str
    object_extension: str
    compile_only_flag: str
    object_output: tuple[str, ...]
    executable_output: tuple[str, ...]
    include_prefix: str
    define_prefix: str
    lib_dir_prefix: str
    lib_prefix: str
    lib_suffix: str
    shared_flag: str
    pic_flag: Optional[str]
    extra_compile_flags: tuple[str, ...]
    archive_command: tuple[str, ...]
    linker_passthrough: Optional[str]
    library_name_prefix: str

    @property
    def name(self) -> str:
        return self.family.value

    @property
    def probe_command(self) -> list[str]:
        return [self.compiler, *self.probe_args]


_GNU_STYLE = dict(
    probe_args=("--version",),
    standard_flag="-std=c++{std}",
    object_extension=".o",
    compile_only_flag="-c",
    object_output=("-o", "{path}"),
    executable_output=("-o", "{path}"),
    include_prefix="-I",
    define_prefix="-D",
    lib_dir_prefix="-L",
    lib_prefix="-l",
    lib_suffix="",
    shared_flag="-shared",
    pic_flag="-fPIC",
    extra_compile_flags=(),
    archive_command=("ar", "rcs", "{output}"),
    linker_passthrough=None,
    library_name_prefix="lib",
)

CLANG = ToolchainDescriptor(family=CompilerFamily.CLANG, compiler="clang++", **_GNU_STYLE)
GCC = ToolchainDescriptor(family=CompilerFamily.GCC, compiler="g++", **_GNU_STYLE)
MSVC = ToolchainDescriptor(
    family=CompilerFamily.MSVC,
    compiler="cl",
    # cl has no version switch; run bare it prints its banner and exits 0
    probe_args=(),
    standard_flag="/std:c++{std}",
    object_extension=".obj",
    compile_only_flag="/c",
    object_output=("/Fo{path}",),
    executable_output=("/Fe{path}",),
    include_prefix="/I",
    define_prefix="/D",
    lib_dir_prefix="/LIBPATH:",
    lib_prefix="",
    lib_suffix=".lib",
    shared_flag="/LD",
    pic_flag=None,
    extra_compile_flags=("/EHsc",),
    archive_command=("lib", "/OUT:{output}"),
    linker_passthrough="/link",
    library_name_prefix="",
)

# Accelerator compiler for .cu sources; not part of host detection
NVCC = ToolchainDescriptor(
    family=CompilerFamily.NVCC,
    compiler="nvcc",
    probe_args=("--version",),
    standard_flag="-std=c++{std}",
    object_extension=".o",
    compile_only_flag="-c",
    object_output=("-o", "{path}"),
    executable_output=("-o", "{path}"),
    include_prefix="-I",
    define_prefix="-D",
    lib_dir_prefix="-L",
    lib_prefix="-l",
    lib_suffix="",
    shared_flag="-shared",
    pic_flag="-Xcompiler=-fPIC",
    extra_compile_flags=(),
    archive_command=("ar", "rcs", "{output}"),
    linker_passthrough=None,
    library_name_prefix="lib",
)

# Probe order matters: first match wins
DETECTION_ORDER: tuple[ToolchainDescriptor, ...] = (CLANG, GCC, MSVC)


def detect_toolchain() -> Optional[ToolchainDescriptor]:
    """Probe the host for an available compiler.

    Returns:
        The first descriptor whose compiler answers its probe, or None if no
        compiler is available.
    """
    for descriptor in DETECTION_ORDER:
        if command_exists(descriptor.probe_command):
            logger.debug("Detected toolchain: %s (%s)", descriptor.name, descriptor.compiler)
            return descriptor
        logger.debug("Toolchain probe failed: %s", descriptor.compiler)
    return None
