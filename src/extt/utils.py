"""Utility functions for the extt note store."""
from pathlib import PurePosixPath
from typing import Optional


def escape_like_pattern(value: str) -> str:
    """Escape SQL LIKE wildcards to treat them as literals.

    Used with ``ESCAPE '\\'`` so that '%' or '_' typed by a user match
    themselves instead of acting as wildcards.

    Args:
        value: User input string that may contain LIKE wildcards

    Returns:
        String with '%', '_', and '\\' escaped for safe use in LIKE clauses

    Example:
        >>> escape_like_pattern("100% complete")
        '100\\\\% complete'
        >>> escape_like_pattern("file_name")
        'file\\\\_name'
    """
    # Use str.translate() for single-pass efficiency
    escape_table = str.maketrans(
        {
            "\\": "\\\\",  # Escape backslash first
            "%": "\\%",
            "_": "\\_",
        }
    )
    return value.translate(escape_table)


def display_title(path: str, title: Optional[str] = None) -> str:
    """Title shown for a note: the metadata title, else the filename stem.

    Examples:
        "journal/2023-10-27.md" -> "2023-10-27"
        "archive.tar.md" -> "archive.tar"
    """
    if title is not None:
        return title
    return PurePosixPath(path).stem
