"""Sync Unearthed highlights into a markdown vault."""

from unearthed.version import get_version

__version__ = get_version()
