"""Code-generation pass that runs before compilation.

Each GeneratorRule selects candidate files by extension and, optionally, by
a content marker. Content gating lets one extension map to zero or more
generator runs: with ``match_content = "Q_OBJECT"`` only the headers that
declare a meta-object are handed to moc.

Generation Process:
    1. Scan src/ and include/ for files with the rule's input extension
    2. Drop candidates that do not contain the marker (if one is declared)
    3. Derive build/generated/<subdir>/<stem><output_extension>
    4. Skip when the output is not older than the input
    5. Run the command template through the shell with {input} and {output}
       substituted (shell-quoted), so rules may redirect or pipe

A failing generator aborts the build: downstream code may include its output.
"""

import logging
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Sequence

from ..config.project_config import GeneratorRule
from ..layout import ProjectLayout
from ..output import log_file
from ..subprocess_utils import run_shell
from .build_state import is_stale

logger = logging.getLogger(__name__)


class GeneratorError(Exception):
    """Raised when a generator command fails."""

    pass


@dataclass
class GenerationResult:
    """Outcome of a generation pass.

    Attributes:
        sources: Outputs with a compilable extension, to join the compile set
        outputs: All derived outputs, regenerated or up to date
        invocations: Number of generator commands executed
    """

    sources: List[Path] = field(default_factory=list)
    outputs: List[Path] = field(default_factory=list)
    invocations: int = 0


class GeneratorPipeline:
    """Runs generator rules over a project's source tree."""

    def __init__(self, layout: ProjectLayout, source_extensions: Sequence[str]):
        """
        Initialize the pipeline.

        Args:
            layout: Project layout (source roots and generated directory)
            source_extensions: Extensions of outputs that should be compiled
        """
        self.layout = layout
        self.source_extensions = tuple(source_extensions)

    @property
    def source_roots(self) -> tuple[Path, ...]:
        return (self.layout.src_dir, self.layout.include_dir)

    def find_candidates(self, rule: GeneratorRule) -> List[Path]:
        """Files eligible for a rule: matching extension and, if declared, marker."""
        candidates = []
        for root in self.source_roots:
            if not root.is_dir():
                continue
            for path in sorted(root.rglob(f"*{rule.input_extension}")):
                if not path.is_file() or path.suffix != rule.input_extension:
                    continue
                if rule.match_content and not self._contains(path, rule.match_content):
                    logger.debug("Skipping %s for %s: marker not present", path.name, rule.name)
                    continue
                candidates.append(path)
        return candidates

    def output_path(self, rule: GeneratorRule, input_path: Path) -> Path:
        """Derived output location for a generator input."""
        name = f"{input_path.stem}{rule.output_extension}"
        for root in self.source_roots:
            try:
                relative = input_path.relative_to(root)
            except ValueError:
                continue
            return self.layout.generated_dir / relative.parent / name
        return self.layout.generated_dir / name

    def run(self, rules: Iterable[GeneratorRule]) -> GenerationResult:
        """Run every rule and collect the derived sources.

        Raises:
            GeneratorError: If any generator command fails
        """
        result = GenerationResult()
        for rule in rules:
            for input_path in self.find_candidates(rule):
                output = self.output_path(rule, input_path)
                if is_stale(input_path, output):
                    self._invoke(rule, input_path, output)
                    result.invocations += 1
                    log_file("generate", f"{input_path.name} -> {output.name}")
                else:
                    log_file("generate", output.name, cached=True, verbose_only=True)
                result.outputs.append(output)
                if self.is_compilable(output):
                    result.sources.append(output)
        return result

    def is_compilable(self, output: Path) -> bool:
        return output.suffix in self.source_extensions

    def _invoke(self, rule: GeneratorRule, input_path: Path, output: Path) -> None:
        output.parent.mkdir(parents=True, exist_ok=True)
        command = rule.command.replace("{input}", shlex.quote(str(input_path))).replace(
            "{output}", shlex.quote(str(output))
        )
        if not command.strip():
            raise GeneratorError(f"Generator '{rule.name}' has an empty command")

        result = run_shell(command, cwd=self.layout.project_dir)
        if result.returncode != 0:
            raise GeneratorError(
                f"Generator '{rule.name}' failed for {input_path.name} (exit code {result.returncode})"
            )

    @staticmethod
    def _contains(path: Path, marker: str) -> bool:
        try:
            return marker in path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug("Could not read %s: %s", path, e)
            return False
