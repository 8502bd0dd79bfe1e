"""
Type-safe project configuration models.

The project descriptor (mule.toml) is parsed once into frozen dataclasses.
Every section has a closed shape, so malformed descriptors fail while
loading instead of deep inside the build:

    [package]       name, version, standard, type
    [build]         include_dirs, lib_dirs, libs, flags, linker_flags, defines
    [dependencies]  name = "url" | { git = "...", tag = "...", commit = "..." } | { path = "..." }
    [[generator]]   name, input_extension, output_extension, command, match_content
    [qt]            enabled, modules
    [cuda]          enabled
"""

import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional

CONFIG_FILENAME = "mule.toml"


class ConfigError(Exception):
    """Raised when the project descriptor is missing or malformed."""

    pass


class ArtifactType(Enum):
    """Closed set of artifact shapes a project can produce."""

    BINARY = "binary"
    STATIC_LIBRARY = "static-library"
    SHARED_LIBRARY = "shared-library"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> "ArtifactType":
        """Parse an artifact type, accepting the short spellings too.

        Raises:
            ConfigError: For any value outside the closed set
        """
        key = value.strip().lower()
        aliases = {
            "bin": cls.BINARY,
            "static-lib": cls.STATIC_LIBRARY,
            "shared-lib": cls.SHARED_LIBRARY,
        }
        if key in aliases:
            return aliases[key]
        for member in cls:
            if member.value == key:
                return member
        allowed = ", ".join(m.value for m in cls)
        raise ConfigError(f"Unknown artifact type '{value}' (expected one of: {allowed})")


@dataclass(frozen=True)
class Dependency:
    """A declared dependency.

    Exactly one of remote_url / path is set. A legacy bare-URL declaration
    is a remote dependency with ``legacy=True`` and no pin.

    Attributes:
        name: Unique key within the config
        remote_url: Version-controlled remote (git) URL
        path: Local filesystem path, relative to the project directory
        tag: Optional tag to check out
        commit: Optional commit to check out
        legacy: True when declared with the bare-string shorthand
    """

    name: str
    remote_url: Optional[str] = None
    path: Optional[str] = None
    tag: Optional[str] = None
    commit: Optional[str] = None
    legacy: bool = False

    def __post_init__(self) -> None:
        if self.remote_url and self.path:
            raise ConfigError(f"Dependency '{self.name}' declares both 'git' and 'path'")
        if not self.remote_url and not self.path:
            raise ConfigError(f"Dependency '{self.name}' must declare either 'git' or 'path'")

    @property
    def is_local(self) -> bool:
        return self.path is not None

    @property
    def pin(self) -> Optional[str]:
        """The reference to check out: tag first, then commit."""
        return self.tag or self.commit or None

    def normalized(self) -> "Dependency":
        """Return the remote form of a legacy declaration (no pin)."""
        if not self.legacy:
            return self
        return Dependency(name=self.name, remote_url=self.remote_url)

    @classmethod
    def from_value(cls, name: str, value: Any) -> "Dependency":
        if isinstance(value, str):
            if not value.strip():
                raise ConfigError(f"Dependency '{name}' has an empty URL")
            return cls(name=name, remote_url=value.strip(), legacy=True)
        if not isinstance(value, Mapping):
            raise ConfigError(f"Dependency '{name}' must be a URL string or an inline table")
        allowed_keys = {"git", "path", "tag", "commit"}
        unknown = sorted(str(key) for key in value.keys() if key not in allowed_keys)
        if unknown:
            raise ConfigError(f"Dependency '{name}' contains unknown keys: {', '.join(unknown)}")
        return cls(
            name=name,
            remote_url=_optional_str(value, "git", f"dependency '{name}'"),
            path=_optional_str(value, "path", f"dependency '{name}'"),
            tag=_optional_str(value, "tag", f"dependency '{name}'"),
            commit=_optional_str(value, "commit", f"dependency '{name}'"),
        )


@dataclass(frozen=True)
class BuildOptions:
    """Extra build inputs. Order matters for the linker, so these are tuples."""

    include_dirs: tuple[str, ...] = ()
    lib_dirs: tuple[str, ...] = ()
    libs: tuple[str, ...] = ()
    flags: tuple[str, ...] = ()
    linker_flags: tuple[str, ...] = ()
    defines: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BuildOptions":
        allowed_keys = {"include_dirs", "lib_dirs", "libs", "flags", "linker_flags", "defines"}
        unknown = sorted(str(key) for key in data.keys() if key not in allowed_keys)
        if unknown:
            raise ConfigError(f"[build] contains unknown keys: {', '.join(unknown)}")
        return cls(**{key: _string_list(data, key, "[build]") for key in allowed_keys})


@dataclass(frozen=True)
class GeneratorRule:
    """Maps matching source files to an external code-generation command.

    Attributes:
        name: Rule name (for messages)
        input_extension: Suffix of candidate inputs, e.g. ".h"
        output_extension: Suffix appended to the input stem, e.g. ".moc.cpp"
        command: Template with {input} and {output} placeholders
        match_content: Optional marker a candidate must contain, e.g. "Q_OBJECT"
    """

    name: str
    input_extension: str
    output_extension: str
    command: str
    match_content: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GeneratorRule":
        if not isinstance(data, Mapping):
            raise ConfigError("[[generator]] entries must be tables")
        where = f"generator '{data.get('name', '?')}'"
        required = ("name", "input_extension", "output_extension", "command")
        missing = [key for key in required if not _optional_str(data, key, where)]
        if missing:
            raise ConfigError(f"{where} is missing required keys: {', '.join(missing)}")
        return cls(
            name=str(data["name"]),
            input_extension=_dotted(str(data["input_extension"])),
            output_extension=_dotted(str(data["output_extension"])),
            command=str(data["command"]),
            match_content=_optional_str(data, "match_content", where),
        )


@dataclass(frozen=True)
class QtSettings:
    enabled: bool = False
    modules: tuple[str, ...] = ()


@dataclass(frozen=True)
class CudaSettings:
    enabled: bool = False


@dataclass(frozen=True)
class Config:
    """Immutable project configuration for one build invocation."""

    name: str
    version: str = "0.1.0"
    standard: str = "17"
    artifact_type: ArtifactType = ArtifactType.BINARY
    dependencies: tuple[Dependency, ...] = ()
    build: BuildOptions = field(default_factory=BuildOptions)
    generators: tuple[GeneratorRule, ...] = ()
    qt: QtSettings = field(default_factory=QtSettings)
    cuda: CudaSettings = field(default_factory=CudaSettings)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Config":
        """Build a Config from the parsed TOML document.

        Raises:
            ConfigError: If any section is malformed
        """
        package = _section(data, "package")
        name = _optional_str(package, "name", "[package]")
        if not name:
            raise ConfigError("[package] name is required")

        raw_type = _optional_str(package, "type", "[package]")
        artifact_type = ArtifactType.parse(raw_type) if raw_type else ArtifactType.BINARY

        dependencies = tuple(
            Dependency.from_value(str(dep_name), value)
            for dep_name, value in _section(data, "dependencies").items()
        )

        raw_generators = data.get("generator", [])
        if not isinstance(raw_generators, list):
            raise ConfigError("'generator' must be declared as [[generator]] tables")
        generators = tuple(GeneratorRule.from_mapping(rule) for rule in raw_generators)

        qt_section = _section(data, "qt")
        cuda_section = _section(data, "cuda")

        return cls(
            name=name,
            version=_optional_str(package, "version", "[package]") or "0.1.0",
            standard=_optional_str(package, "standard", "[package]") or "17",
            artifact_type=artifact_type,
            dependencies=dependencies,
            build=BuildOptions.from_mapping(_section(data, "build")),
            generators=generators,
            qt=QtSettings(
                enabled=bool(qt_section.get("enabled", False)),
                modules=_string_list(qt_section, "modules", "[qt]"),
            ),
            cuda=CudaSettings(enabled=bool(cuda_section.get("enabled", False))),
        )


def load_config(path: Path) -> Config:
    """Load and validate a project descriptor.

    Args:
        path: Path to mule.toml, or to the directory containing it

    Returns:
        Parsed Config

    Raises:
        ConfigError: If the file is missing, is not valid TOML, or is malformed
    """
    if path.is_dir():
        path = path / CONFIG_FILENAME
    if not path.exists():
        raise ConfigError(f"Configuration file '{path}' not found")
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse {path.name}: {e}") from e
    return Config.from_mapping(data)


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name, {})
    if not isinstance(value, Mapping):
        raise ConfigError(f"[{name}] must be a table")
    return value


def _optional_str(data: Mapping[str, Any], key: str, where: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ConfigError(f"{where}: '{key}' must be a string")
    text = str(value).strip()
    return text or None


def _string_list(data: Mapping[str, Any], key: str, where: str) -> tuple[str, ...]:
    """Read a list-valued field; a single scalar is accepted as a one-item list."""
    value = data.get(key)
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value.strip() else ()
    if isinstance(value, list):
        items = []
        for item in value:
            if not isinstance(item, (str, int, float)) or isinstance(item, bool):
                raise ConfigError(f"{where}: '{key}' must contain only strings")
            items.append(str(item))
        return tuple(items)
    raise ConfigError(f"{where}: '{key}' must be a string or a list of strings")


def _dotted(extension: str) -> str:
    return extension if extension.startswith(".") else f".{extension}"
