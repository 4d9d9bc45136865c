"""Path safety for note paths.

Both functions are pure: they look only at the path's components and never
touch the filesystem, so a symlink inside the root is not detected here.
"""
from pathlib import Path, PurePath, PureWindowsPath
from typing import List, Union

from extt.exceptions import PathTraversalError

PathLike = Union[str, PurePath]


def _normalized_parts(relative: PathLike) -> List[str]:
    """Walk the components of ``relative``, collapsing ``.`` and ``..``.

    The stack depth plays the role of the running depth counter: a normal
    segment pushes, ``..`` pops, and popping an empty stack means the path
    climbs above the root.
    """
    raw = str(relative)
    if "\x00" in raw:
        raise PathTraversalError(raw, "Note path contains a null byte")
    pure = PurePath(raw)
    if pure.is_absolute() or pure.anchor or PureWindowsPath(raw).anchor:
        raise PathTraversalError(raw, f"Absolute path '{raw}' is not allowed")

    parts: List[str] = []
    for part in pure.parts:
        if part == ".":
            continue
        if part == "..":
            if not parts:
                raise PathTraversalError(raw)
            parts.pop()
        else:
            parts.append(part)
    return parts


def normalize_note_path(relative: PathLike) -> str:
    """Normalized POSIX form of a root-relative note path.

    This is the key under which a note is stored in the index.

    Examples:
        "journal/./2023.md" -> "journal/2023.md"
        "sub/../a.md" -> "a.md"

    Raises:
        PathTraversalError: If the path is absolute or escapes the root.
    """
    return "/".join(_normalized_parts(relative))


def secure_join(root: PathLike, relative: PathLike) -> Path:
    """Join ``relative`` onto ``root``, refusing paths that leave the root.

    Returns:
        The absolute path of the note inside ``root``.

    Raises:
        PathTraversalError: If the path is absolute, contains a null byte,
            carries a drive or root prefix, or has a prefix whose ``..`` segments outnumber the
            normal segments before them.
    """
    parts = _normalized_parts(relative)
    return Path(root).absolute().joinpath(*parts)
