"""On-disk layout of a mule project."""

from dataclasses import dataclass
from pathlib import Path

BUILD_DIR_NAME = "build"
STORE_DIR_NAME = ".mule"
LOCKFILE_NAME = "mule.lock"


@dataclass(frozen=True)
class ProjectLayout:
    """Where a project keeps its sources, outputs and dependency store.

    Attributes:
        project_dir: Project root (contains mule.toml)
    """

    project_dir: Path

    @property
    def src_dir(self) -> Path:
        return self.project_dir / "src"

    @property
    def include_dir(self) -> Path:
        return self.project_dir / "include"

    @property
    def tests_dir(self) -> Path:
        return self.project_dir / "tests"

    @property
    def build_dir(self) -> Path:
        return self.project_dir / BUILD_DIR_NAME

    @property
    def obj_dir(self) -> Path:
        return self.build_dir / "obj"

    @property
    def generated_dir(self) -> Path:
        return self.build_dir / "generated"

    @property
    def test_support_dir(self) -> Path:
        return self.build_dir / "test_support"

    @property
    def deps_dir(self) -> Path:
        return self.project_dir / STORE_DIR_NAME / "deps"

    @property
    def lockfile(self) -> Path:
        return self.project_dir / LOCKFILE_NAME

    def object_path(self, source: Path, object_name: str) -> Path:
        """Object file location for a source, mirroring its directory.

        Sources under src/ map to build/obj/<subdir>/, generated sources to
        build/obj/generated/<subdir>/, anything else to build/obj/.
        """
        for root, prefix in ((self.src_dir, self.obj_dir), (self.generated_dir, self.obj_dir / "generated")):
            try:
                relative = source.relative_to(root)
            except ValueError:
                continue
            return prefix / relative.parent / object_name
        return self.obj_dir / object_name
