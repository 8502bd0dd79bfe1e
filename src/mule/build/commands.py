"""Command synthesis for compile, link and archive steps.

CommandSynthesizer is a pure function of (toolchain descriptor, logical
step, operands): it returns argument lists and never touches the
filesystem. All dialect differences come from the ToolchainDescriptor.

Link Argument Order:
    compiler, [shared flag], objects, output flag, library search dirs,
    libraries, raw flags, raw linker flags

The order is fixed because GNU-style linkers resolve symbols left to right.
"""

import shlex
import sys
from pathlib import Path
from typing import Optional, Sequence

from ..config.project_config import ArtifactType
from .toolchain import ToolchainDescriptor


class CommandSynthesizer:
    """Builds tool invocations for one toolchain dialect."""

    def __init__(self, toolchain: ToolchainDescriptor):
        self.toolchain = toolchain

    # Flag rendering

    def include_flags(self, directories: Sequence[Path | str]) -> list[str]:
        return [f"{self.toolchain.include_prefix}{d}" for d in directories]

    def define_flags(self, defines: Sequence[str]) -> list[str]:
        return [f"{self.toolchain.define_prefix}{d}" for d in defines]

    def lib_dir_flags(self, directories: Sequence[Path | str]) -> list[str]:
        return [f"{self.toolchain.lib_dir_prefix}{d}" for d in directories]

    def lib_flags(self, libs: Sequence[str]) -> list[str]:
        tc = self.toolchain
        return [f"{tc.lib_prefix}{lib}{tc.lib_suffix}" for lib in libs]

    def standard_flag(self, standard: str) -> str:
        return self.toolchain.standard_flag.format(std=standard)

    # File naming

    def object_name(self, source: Path) -> str:
        # Full file name: a.cpp and a.cu in one directory must not share an object
        return f"{source.name}{self.toolchain.object_extension}"

    def artifact_name(self, name: str, artifact_type: ArtifactType, platform: Optional[str] = None) -> str:
        """File name of the final artifact for this dialect and host platform.

        Args:
            name: Project name
            artifact_type: Kind of artifact
            platform: sys.platform value (defaults to the running host)
        """
        platform = platform or sys.platform
        if platform == "win32":
            extensions = {
                ArtifactType.BINARY: ".exe",
                ArtifactType.STATIC_LIBRARY: ".lib",
                ArtifactType.SHARED_LIBRARY: ".dll",
            }
        elif platform == "darwin":
            extensions = {
                ArtifactType.BINARY: "",
                ArtifactType.STATIC_LIBRARY: ".a",
                ArtifactType.SHARED_LIBRARY: ".dylib",
            }
        else:
            extensions = {
                ArtifactType.BINARY: "",
                ArtifactType.STATIC_LIBRARY: ".a",
                ArtifactType.SHARED_LIBRARY: ".so",
            }
        prefix = "" if artifact_type is ArtifactType.BINARY else self.toolchain.library_name_prefix
        return f"{prefix}{name}{extensions[artifact_type]}"

    # Steps

    def compile(
        self,
        source: Path,
        obj: Path,
        standard: str,
        flags: Sequence[str],
        position_independent: bool = False,
    ) -> list[str]:
        """Compile one source file to an object file.

        The PIC flag is added only when requested and the dialect has one.
        """
        tc = self.toolchain
        cmd = [tc.compiler, self.standard_flag(standard)]
        if position_independent and tc.pic_flag:
            cmd.append(tc.pic_flag)
        cmd.extend(tc.extra_compile_flags)
        cmd.extend([tc.compile_only_flag, str(source)])
        cmd.extend(self._output(tc.object_output, obj))
        cmd.extend(flags)
        return cmd

    def link(
        self,
        objects: Sequence[Path],
        output: Path,
        lib_dirs: Sequence[Path | str] = (),
        libs: Sequence[str] = (),
        flags: Sequence[str] = (),
        linker_flags: Sequence[str] = (),
        shared: bool = False,
    ) -> list[str]:
        """Link objects into an executable or shared library."""
        tc = self.toolchain
        cmd = [tc.compiler]
        if shared:
            cmd.append(tc.shared_flag)
        cmd.extend(str(obj) for obj in objects)
        cmd.extend(self._output(tc.executable_output, output))
        cmd.extend(self._link_inputs(lib_dirs, libs, flags, linker_flags))
        return cmd

    def archive(self, objects: Sequence[Path], output: Path) -> list[str]:
        """Bundle objects into a static library."""
        cmd = [part.format(output=output) for part in self.toolchain.archive_command]
        cmd.extend(str(obj) for obj in objects)
        return cmd

    def compile_and_link(
        self,
        sources: Sequence[Path],
        output: Path,
        standard: str,
        flags: Sequence[str],
        lib_dirs: Sequence[Path | str] = (),
        libs: Sequence[str] = (),
        linker_flags: Sequence[str] = (),
    ) -> list[str]:
        """Compile and link sources into an executable in one invocation."""
        tc = self.toolchain
        cmd = [tc.compiler, self.standard_flag(standard)]
        cmd.extend(tc.extra_compile_flags)
        cmd.extend(flags)
        cmd.extend(str(src) for src in sources)
        cmd.extend(self._output(tc.executable_output, output))
        cmd.extend(self._link_inputs(lib_dirs, libs, (), linker_flags))
        return cmd

    @staticmethod
    def format(cmd: Sequence[str]) -> str:
        """Render an argument list as a shell-quoted string for display."""
        return shlex.join(str(part) for part in cmd)

    def _link_inputs(
        self,
        lib_dirs: Sequence[Path | str],
        libs: Sequence[str],
        flags: Sequence[str],
        linker_flags: Sequence[str],
    ) -> list[str]:
        args: list[str] = []
        if lib_dirs and self.toolchain.linker_passthrough:
            # cl only forwards /LIBPATH after the pass-through marker
            args.append(self.toolchain.linker_passthrough)
        args.extend(self.lib_dir_flags(lib_dirs))
        args.extend(self.lib_flags(libs))
        args.extend(flags)
        args.extend(linker_flags)
        return args

    @staticmethod
    def _output(template: tuple[str, ...], path: Path) -> list[str]:
        return [part.format(path=path) for part in template]
