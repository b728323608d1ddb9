"""
Tsundoku - a personal read-it-later link tracker.
Links are added with an optional comment and tags, kept in a reading queue,
and moved to the archive once read. Everything is stored in a local SQLite
database.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("tsundoku")
except PackageNotFoundError:
    __version__ = "0.1.0"
