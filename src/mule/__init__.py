"""mule - minimalist build orchestrator and package manager for C++ projects."""

__version__ = "0.2.0"

__all__ = ["__version__"]
