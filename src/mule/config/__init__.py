"""Project configuration for mule."""

from .project_config import (
    CONFIG_FILENAME,
    ArtifactType,
    BuildOptions,
    Config,
    ConfigError,
    CudaSettings,
    Dependency,
    GeneratorRule,
    QtSettings,
    load_config,
)

__all__ = [
    "CONFIG_FILENAME",
    "ArtifactType",
    "BuildOptions",
    "Config",
    "ConfigError",
    "CudaSettings",
    "Dependency",
    "GeneratorRule",
    "QtSettings",
    "load_config",
]
