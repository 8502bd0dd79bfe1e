"""Tests for mule.toml loading and validation."""

import pytest

from mule.config import ArtifactType, Config, ConfigError, Dependency, load_config


def write_config(tmp_path, body):
    path = tmp_path / "mule.toml"
    path.write_text(body)
    return path


class TestLoadConfig:
    def test_minimal_config_uses_defaults(self, tmp_path):
        config = load_config(write_config(tmp_path, '[package]\nname = "hello"\n'))

        assert config.name == "hello"
        assert config.version == "0.1.0"
        assert config.standard == "17"
        assert config.artifact_type is ArtifactType.BINARY
        assert config.dependencies == ()
        assert config.generators == ()
        assert not config.qt.enabled
        assert not config.cuda.enabled

    def test_accepts_directory(self, tmp_path):
        write_config(tmp_path, '[package]\nname = "hello"\n')
        assert load_config(tmp_path).name == "hello"

    def test_full_config(self, tmp_path):
        path = write_config(
            tmp_path,
            """
[package]
name = "gui"
version = "1.2.0"
standard = "20"
type = "shared-lib"

[build]
include_dirs = ["third_party/include", "vendor"]
libs = ["m", "pthread"]
flags = "-Wall"
defines = ["NDEBUG", "MODE=2"]

[dependencies]
fmt = { git = "https://github.com/fmtlib/fmt.git", tag = "10.2.1" }
local = { path = "../vendor/local" }
legacy = "https://example.com/legacy.git"

[[generator]]
name = "moc"
input_extension = "h"
output_extension = ".moc.cpp"
command = "moc {input} -o {output}"
match_content = "Q_OBJECT"

[qt]
enabled = true
modules = ["Core", "Widgets"]

[cuda]
enabled = true
""",
        )
        config = load_config(path)

        assert config.version == "1.2.0"
        assert config.standard == "20"
        assert config.artifact_type is ArtifactType.SHARED_LIBRARY
        assert config.build.include_dirs == ("third_party/include", "vendor")
        assert config.build.libs == ("m", "pthread")
        assert config.build.flags == ("-Wall",)
        assert config.build.defines == ("NDEBUG", "MODE=2")
        assert [d.name for d in config.dependencies] == ["fmt", "local", "legacy"]

        fmt, local, legacy = config.dependencies
        assert fmt.remote_url == "https://github.com/fmtlib/fmt.git"
        assert fmt.pin == "10.2.1"
        assert local.is_local and local.path == "../vendor/local"
        assert legacy.legacy and legacy.pin is None

        (moc,) = config.generators
        assert moc.input_extension == ".h"
        assert moc.output_extension == ".moc.cpp"
        assert moc.match_content == "Q_OBJECT"

        assert config.qt.enabled and config.qt.modules == ("Core", "Widgets")
        assert config.cuda.enabled

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "mule.toml")

    def test_invalid_toml(self, tmp_path):
        with pytest.raises(ConfigError, match="Failed to parse"):
            load_config(write_config(tmp_path, "[package\nname = "))

    def test_name_required(self, tmp_path):
        with pytest.raises(ConfigError, match="name is required"):
            load_config(write_config(tmp_path, '[package]\nversion = "1.0"\n'))

    def test_unknown_artifact_type_fails(self, tmp_path):
        with pytest.raises(ConfigError, match="Unknown artifact type 'plugin'"):
            load_config(write_config(tmp_path, '[package]\nname = "x"\ntype = "plugin"\n'))

    def test_unknown_build_key_fails(self, tmp_path):
        with pytest.raises(ConfigError, match="unknown keys: include_dir"):
            load_config(write_config(tmp_path, '[package]\nname = "x"\n[build]\ninclude_dir = ["a"]\n'))

    def test_incomplete_generator_fails(self, tmp_path):
        body = '[package]\nname = "x"\n[[generator]]\nname = "moc"\ninput_extension = ".h"\n'
        with pytest.raises(ConfigError, match="output_extension, command"):
            load_config(write_config(tmp_path, body))


class TestArtifactType:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("binary", ArtifactType.BINARY),
            ("bin", ArtifactType.BINARY),
            ("static-library", ArtifactType.STATIC_LIBRARY),
            ("static-lib", ArtifactType.STATIC_LIBRARY),
            ("shared-library", ArtifactType.SHARED_LIBRARY),
            ("shared-lib", ArtifactType.SHARED_LIBRARY),
        ],
    )
    def test_parse(self, raw, expected):
        assert ArtifactType.parse(raw) is expected


class TestDependency:
    def test_path_and_git_are_exclusive(self):
        with pytest.raises(ConfigError, match="both 'git' and 'path'"):
            Dependency.from_value("foo", {"git": "https://example.com/foo.git", "path": "../foo"})

    def test_neither_path_nor_git(self):
        with pytest.raises(ConfigError, match="either 'git' or 'path'"):
            Dependency.from_value("foo", {"tag": "v1"})

    def test_tag_takes_precedence_over_commit(self):
        dep = Dependency.from_value("foo", {"git": "u", "tag": "v1", "commit": "abc"})
        assert dep.pin == "v1"

    def test_normalized_legacy(self):
        dep = Dependency.from_value("foo", "https://example.com/foo.git")
        normalized = dep.normalized()

        assert not normalized.legacy
        assert normalized.remote_url == "https://example.com/foo.git"
        assert normalized.pin is None

    def test_config_is_immutable(self):
        config = Config(name="x")
        with pytest.raises(AttributeError):
            config.name = "y"  # type: ignore[misc]
