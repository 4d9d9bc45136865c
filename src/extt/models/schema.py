"""Data models for the extt note store."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from extt.exceptions import ErrorCode, SerializationError
from extt.utils import display_title

# Frontmatter keys with a dedicated field, in the order they are written
MODELED_KEYS = ("title", "tags", "created_at", "updated_at")


def _number_to_str(value: Any) -> Any:
    """YAML reads ``title: 2023`` as an int; keep such scalars as text."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class Metadata(BaseModel):
    """Frontmatter of a note.

    ``created_at`` and ``updated_at`` are opaque strings; they are neither
    parsed nor validated. Any frontmatter key without a dedicated field is
    kept in ``extra`` so that a read/write cycle never drops user data.
    """

    title: Optional[str] = Field(default=None, description="Display title")
    tags: Optional[List[str]] = Field(default=None, description="Ordered tags")
    created_at: Optional[str] = Field(default=None, description="Creation timestamp")
    updated_at: Optional[str] = Field(default=None, description="Last update timestamp")
    extra: Dict[str, Any] = Field(
        default_factory=dict, description="Frontmatter fields not modeled above"
    )

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("title", "created_at", "updated_at", mode="before")
    @classmethod
    def coerce_scalar(cls, v: Any) -> Any:
        """Accept numeric scalars for text fields."""
        return _number_to_str(v)

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tags(cls, v: Any) -> Any:
        """Accept numeric tag entries."""
        if isinstance(v, list):
            return [_number_to_str(item) for item in v]
        return v

    @classmethod
    def from_frontmatter(
        cls, frontmatter: Any, path: Optional[str] = None
    ) -> "Metadata":
        """Split a frontmatter mapping into modeled fields and ``extra``.

        ``None`` yields empty metadata. Keys of ``extra`` are text: a YAML key
        such as ``1`` or ``null`` is kept as ``"1"`` or ``"None"``, and is written
        back in that form.

        Raises:
            SerializationError: If the value is not a mapping or a modeled
                key holds a value of the wrong shape.
        """
        if frontmatter is None:
            return cls()
        if not isinstance(frontmatter, dict):
            raise SerializationError(
                f"Frontmatter must be a mapping, got {type(frontmatter).__name__}",
                path=path,
                code=ErrorCode.SERIALIZE_INVALID_SHAPE,
            )

        modeled: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in frontmatter.items():
            if key in MODELED_KEYS:
                modeled[key] = value
            else:
                extra[str(key)] = value

        try:
            return cls(**modeled, extra=extra)
        except ValidationError as e:
            first = e.errors()[0] if e.errors() else {}
            field = ".".join(str(part) for part in first.get("loc", ()))
            raise SerializationError(
                f"Invalid frontmatter field '{field}': {first.get('msg', e)}",
                path=path,
                code=ErrorCode.SERIALIZE_INVALID_SHAPE,
                original_error=e,
            ) from e

    def to_frontmatter(self) -> Dict[str, Any]:
        """Mapping to write: modeled keys that are set, then ``extra``."""
        result: Dict[str, Any] = {}
        for key in MODELED_KEYS:
            value = getattr(self, key)
            if value is not None:
                result[key] = list(value) if key == "tags" else value
        for key, value in self.extra.items():
            if key not in result:
                result[key] = value
        return result


class Note(BaseModel):
    """A note read from disk: its root-relative path, metadata and body."""

    path: str = Field(..., description="Root-relative POSIX path")
    metadata: Metadata = Field(default_factory=Metadata)
    content: str = Field(default="", description="Body after the frontmatter block")

    model_config = {"frozen": True, "extra": "forbid"}

    @property
    def title(self) -> str:
        """Metadata title, falling back to the filename without extension."""
        return display_title(self.path, self.metadata.title)


class NoteSummary(BaseModel):
    """Row of the path/title index."""

    path: str
    title: Optional[str] = None

    model_config = {"frozen": True}
