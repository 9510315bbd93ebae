"""scaffold-e2e - convergence tests for scaffolded cluster projects."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("scaffold-e2e")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"  # Fallback for editable installs without metadata

from .main import main

__all__ = ["main", "__version__"]
