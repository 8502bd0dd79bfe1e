"""Source discovery for mule projects.

Project Layout:
    src/            Project sources (recursively)
    src/main.cpp    Program entry point (excluded from library sources)
    src/*_test.cpp  Unit tests (built only by `mule test`)
    include/        Public headers
    tests/*.cpp     Integration tests, each its own program
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

SOURCE_EXTENSIONS = (".cpp", ".cc", ".cxx")
CUDA_EXTENSIONS = (".cu",)
ENTRY_POINT = "main"
UNIT_TEST_SUFFIX = "_test"


@dataclass
class SourceCollection:
    """Sources found in a project, partitioned by role.

    Attributes:
        entry_point: The program entry file, if any
        library_sources: Compiled sources except the entry point and unit tests
        unit_test_sources: Sources named like ``*_test.cpp``
        integration_tests: Standalone test programs under tests/
    """

    entry_point: Path | None = None
    library_sources: List[Path] = field(default_factory=list)
    unit_test_sources: List[Path] = field(default_factory=list)
    integration_tests: List[Path] = field(default_factory=list)

    @property
    def build_sources(self) -> List[Path]:
        """Sources that make up the project artifact, in scan order."""
        sources = list(self.library_sources)
        if self.entry_point is not None:
            sources.insert(0, self.entry_point)
        return sources


class SourceScanner:
    """Scans a project directory for compilable sources."""

    def __init__(self, project_dir: Path, include_cuda: bool = False):
        """
        Initialize the scanner.

        Args:
            project_dir: Project root containing src/ (and optionally tests/)
            include_cuda: Also collect .cu sources
        """
        self.project_dir = project_dir
        self.src_dir = project_dir / "src"
        self.tests_dir = project_dir / "tests"
        self.extensions = SOURCE_EXTENSIONS + (CUDA_EXTENSIONS if include_cuda else ())

    def scan(self) -> SourceCollection:
        collection = SourceCollection()

        for source in self._walk(self.src_dir, recursive=True):
            if source.stem == ENTRY_POINT and source.parent == self.src_dir and collection.entry_point is None:
                collection.entry_point = source
            elif source.stem.endswith(UNIT_TEST_SUFFIX):
                collection.unit_test_sources.append(source)
            else:
                collection.library_sources.append(source)

        collection.integration_tests = [
            path for path in self._walk(self.tests_dir, recursive=False) if path.suffix in SOURCE_EXTENSIONS
        ]
        return collection

    def _walk(self, root: Path, recursive: bool) -> List[Path]:
        if not root.is_dir():
            return []
        candidates = root.rglob("*") if recursive else root.iterdir()
        # Sorted so object order, and with it the link line, is stable between runs
        return sorted(p for p in candidates if p.is_file() and p.suffix in self.extensions)
