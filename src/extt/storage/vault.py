"""Directory scanning for note files."""
import logging
import os
from pathlib import Path
from typing import FrozenSet, List, Union

logger = logging.getLogger(__name__)

# File extensions (without the dot) that count as notes
NOTE_EXTENSIONS: FrozenSet[str] = frozenset({"md", "txt"})


def scan(
    root: Union[str, Path], extensions: FrozenSet[str] = NOTE_EXTENSIONS
) -> List[Path]:
    """Recursively list note files under ``root``.

    Only regular files whose extension is exactly one of ``extensions``
    (case-sensitive) are returned. Hidden files are included. Symbolic links
    are neither followed nor listed, so link cycles cannot be entered.
    Unreadable directories are skipped.

    Returns:
        Absolute paths sorted component-wise. Empty if ``root`` does not exist.
    """
    root = Path(root).absolute()
    if not root.is_dir():
        return []

    def _on_error(error: OSError) -> None:
        logger.debug(f"Skipping unreadable directory {error.filename}: {error}")

    found: List[Path] = []
    for dirpath, _dirnames, filenames in os.walk(root, onerror=_on_error, followlinks=False):
        for name in filenames:
            path = Path(dirpath) / name
            if path.suffix[1:] not in extensions:
                continue
            if path.is_symlink() or not path.is_file():
                continue
            found.append(path)

    return sorted(found)


class Vault:
    """Snapshot of the note files under a root directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self._files: List[Path] = []
        self.refresh()

    @property
    def files(self) -> List[Path]:
        """Files found by the last scan, sorted."""
        return list(self._files)

    def refresh(self) -> List[Path]:
        """Re-walk the root and replace the snapshot."""
        self._files = scan(self.root)
        logger.debug(f"Scanned {self.root}: {len(self._files)} note files")
        return self.files

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self):
        return iter(self._files)
