"""pharmadesk - data migration toolkit for a pharmacy-management backend."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pharmadesk")
except PackageNotFoundError:
    # Running from a source checkout that is not installed
    __version__ = "0.0.0"

__all__ = ["__version__"]
