"""Command modules for pharmadesk."""

from . import config, migrate, templates

__all__ = [
    "config",
    "migrate",
    "templates",
]
