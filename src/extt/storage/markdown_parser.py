"""Markdown parsing and serialization for note files.

A note file is UTF-8 text with an optional YAML frontmatter block::

    ---
    title: Daily
    tags: [journal]
    ---
    body...

The block is split off by hand so the body is returned byte-for-byte
(``frontmatter.loads`` strips surrounding whitespace); the YAML itself is
handled by python-frontmatter's ``YAMLHandler``.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import frontmatter
import yaml

from extt.exceptions import ErrorCode, SerializationError, StorageError

logger = logging.getLogger(__name__)

DELIMITER = "---"

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class _NoDatesLoader(yaml.SafeLoader):
    """SafeLoader that reads ``2023-10-27`` as a string, not a date."""


_NoDatesLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

_handler = frontmatter.YAMLHandler()


@dataclass(frozen=True)
class ParsedDocument:
    """Result of splitting a file's text.

    ``frontmatter`` is None when there is no block, the block is empty, or
    its YAML is malformed; in the last case ``error`` holds the YAML message.
    """
    frontmatter: Any
    content: str
    error: Optional[str] = None


def read_text(path: Path) -> str:
    """Read a file as UTF-8 without translating line endings."""
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _split_block(text: str) -> Optional[Tuple[str, str]]:
    """Return (block, content) if ``text`` opens with a delimited block."""
    lines = text.split("\n")
    if lines[0].rstrip() != DELIMITER:
        return None
    for index in range(1, len(lines)):
        if lines[index].rstrip() == DELIMITER:
            return "\n".join(lines[1:index]), "\n".join(lines[index + 1:])
    return None


def parse_document(text: str) -> ParsedDocument:
    """Split raw file text into frontmatter and content.

    Never raises on bad YAML: the frontmatter is dropped and the parse
    error is reported in ``ParsedDocument.error``.
    """
    split = _split_block(text)
    if split is None:
        return ParsedDocument(frontmatter=None, content=text)

    block, content = split
    try:
        data = _handler.load(block, Loader=_NoDatesLoader)
    except yaml.YAMLError as e:
        logger.debug(f"Ignoring malformed frontmatter: {e}")
        return ParsedDocument(frontmatter=None, content=content, error=str(e))

    return ParsedDocument(frontmatter=data, content=content)


def render_document(frontmatter: Optional[Dict[str, Any]], content: str) -> str:
    """Serialize a frontmatter mapping and body back into file text.

    With ``frontmatter`` None only the body is written.

    Raises:
        SerializationError: If the mapping cannot be represented as YAML.
    """
    if frontmatter is None:
        return content
    if not frontmatter:
        return f"{DELIMITER}\n{DELIMITER}\n{content}"

    try:
        block = _handler.export(frontmatter, sort_keys=False)
    except yaml.YAMLError as e:
        raise SerializationError(
            f"Cannot encode frontmatter: {e}",
            code=ErrorCode.SERIALIZE_ENCODE_FAILED,
            original_error=e,
        ) from e

    return f"{DELIMITER}\n{block}\n{DELIMITER}\n{content}"


@dataclass(frozen=True)
class Document:
    """A note file loaded from disk and split into frontmatter and content."""
    path: Path
    frontmatter: Any
    content: str
    error: Optional[str] = None

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Document":
        """Read ``path`` as UTF-8 and parse it.

        Raises:
            StorageError: If the file cannot be read or decoded.
        """
        path = Path(path)
        try:
            text = read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(
                f"Failed to read {path}",
                operation="read",
                path=str(path),
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
            ) from e

        parsed = parse_document(text)
        return cls(
            path=path,
            frontmatter=parsed.frontmatter,
            content=parsed.content,
            error=parsed.error,
        )
