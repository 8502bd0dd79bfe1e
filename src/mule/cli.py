"""
Command-line interface for mule.

This module provides the `mule` CLI tool for building native C++ projects.
"""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from mule import __version__
from mule.build.orchestrator import BuildOrchestrator
from mule.config import CONFIG_FILENAME, Config, ConfigError, load_config
from mule.diagnostics import has_fatal, report
from mule.layout import ProjectLayout
from mule.output import init_timer, log, log_error, log_header, set_verbose
from mule.packages import DependencyResolver, write_lockfile
from mule.testing import DuplicateTestError, TestHarnessBuilder


@dataclass
class CommandArgs:
    """Arguments shared by every command."""

    project_dir: Path
    verbose: bool = False


@dataclass
class BuildArgs(CommandArgs):
    """Arguments for the build command."""

    resolve_dependencies: bool = True
    build_dependencies: bool = True


@dataclass
class RunArgs(CommandArgs):
    """Arguments for the run command."""

    program_args: List[str] = field(default_factory=list)


def _load(project_dir: Path) -> Optional[Config]:
    try:
        return load_config(project_dir / CONFIG_FILENAME)
    except ConfigError as e:
        log_error(str(e))
        return None


def build_command(args: BuildArgs) -> int:
    """Build the project artifact.

    Examples:
        mule build                 # Build the project in the current directory
        mule build -C path/to/app  # Build another project
        mule build --no-fetch      # Use the dependency store as it is
    """
    config = _load(args.project_dir)
    if config is None:
        return 1
    log(f"Building project: {config.name} v{config.version}...")
    orchestrator = BuildOrchestrator(args.project_dir, verbose=args.verbose)
    result = orchestrator.build(
        config,
        resolve_dependencies=args.resolve_dependencies,
        build_dependencies=args.build_dependencies,
    )
    if not result.success:
        log_error(f"Build failed: {result.message}")
        return 1
    return 0


def run_command(args: RunArgs) -> int:
    """Build the project, then run it with the given arguments."""
    config = _load(args.project_dir)
    if config is None:
        return 1
    orchestrator = BuildOrchestrator(args.project_dir, verbose=args.verbose)
    return orchestrator.run(config, args.program_args)


def clean_command(args: CommandArgs) -> int:
    """Remove build artifacts."""
    BuildOrchestrator(args.project_dir, verbose=args.verbose).clean()
    return 0


def fetch_command(args: CommandArgs) -> int:
    """Resolve dependencies and write mule.lock without compiling."""
    config = _load(args.project_dir)
    if config is None:
        return 1
    layout = ProjectLayout(args.project_dir)
    resolution = DependencyResolver(layout).resolve(config.dependencies)
    report(resolution.diagnostics)
    if has_fatal(resolution.diagnostics):
        return 1
    write_lockfile(resolution.resolved, layout.lockfile)
    log(f"Fetched {len(resolution.resolved)} dependency(ies), wrote {layout.lockfile.name}")
    return 0


def test_command(args: CommandArgs) -> int:
    """Build and run unit and integration tests."""
    config = _load(args.project_dir)
    if config is None:
        return 1
    try:
        summary = TestHarnessBuilder(args.project_dir, verbose=args.verbose).run(config)
    except DuplicateTestError as e:
        log_error(str(e))
        return 1
    return 0 if summary.success else 1


def version_command() -> int:
    print(f"mule {__version__}")
    return 0


def _common_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-C",
        "--project-dir",
        type=Path,
        default=Path.cwd(),
        help="Project directory (default: current directory)",
    )
    common.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output",
    )
    return common


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mule",
        description="mule - minimalist build tool and package manager for C++",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"mule {__version__}",
    )

    common = _common_options()
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    build_parser = subparsers.add_parser("build", parents=[common], help="Build the project")
    build_parser.add_argument(
        "--no-fetch",
        action="store_true",
        help="Do not resolve dependencies; use the dependency store as it is",
    )
    build_parser.add_argument(
        "--no-dep-build",
        action="store_true",
        help="Do not run dependencies' own build systems",
    )

    run_parser = subparsers.add_parser("run", parents=[common], help="Build and run the project")
    run_parser.add_argument(
        "program_args",
        nargs=argparse.REMAINDER,
        help="Arguments passed to the program",
    )

    subparsers.add_parser("clean", parents=[common], help="Remove build artifacts")
    subparsers.add_parser("fetch", parents=[common], help="Resolve dependencies and write mule.lock")
    subparsers.add_parser("test", parents=[common], help="Build and run tests")
    subparsers.add_parser("version", help="Show the mule version")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """mule - minimalist build tool and package manager for C++."""
    parser = create_parser()
    parsed_args = parser.parse_args(argv)

    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    if parsed_args.command == "version":
        sys.exit(version_command())

    verbose = parsed_args.verbose
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    set_verbose(verbose)
    init_timer()

    project_dir = parsed_args.project_dir
    if not project_dir.is_dir():
        log_error(f"Path is not a directory: {project_dir}")
        sys.exit(2)
    project_dir = project_dir.absolute()

    if verbose:
        log_header("mule", __version__)

    try:
        if parsed_args.command == "build":
            exit_code = build_command(
                BuildArgs(
                    project_dir=project_dir,
                    verbose=verbose,
                    resolve_dependencies=not parsed_args.no_fetch,
                    build_dependencies=not parsed_args.no_dep_build,
                )
            )
        elif parsed_args.command == "run":
            program_args = list(parsed_args.program_args)
            if program_args[:1] == ["--"]:
                program_args = program_args[1:]
            exit_code = run_command(RunArgs(project_dir=project_dir, verbose=verbose, program_args=program_args))
        elif parsed_args.command == "clean":
            exit_code = clean_command(CommandArgs(project_dir=project_dir, verbose=verbose))
        elif parsed_args.command == "fetch":
            exit_code = fetch_command(CommandArgs(project_dir=project_dir, verbose=verbose))
        else:
            exit_code = test_command(CommandArgs(project_dir=project_dir, verbose=verbose))
    except KeyboardInterrupt:
        log_error("Interrupted")
        sys.exit(130)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
