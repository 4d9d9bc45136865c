"""
extt - a markdown notes store.

Notes live as plain markdown files (optionally with YAML frontmatter) under a
root directory; a small SQLite index of path and title supports fast listing
and search. The files are the source of truth and the index can always be
rebuilt from them.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("extt")
except PackageNotFoundError:
    __version__ = "0.1.0"
