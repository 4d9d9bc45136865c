# tests/test_models.py
"""Tests for the data models used by the extt note store."""
import pytest
from pydantic import ValidationError

from extt.exceptions import ErrorCode, SerializationError
from extt.models.schema import Metadata, Note, NoteSummary
from extt.utils import display_title, escape_like_pattern


class TestMetadataModel:
    """Tests for the Metadata model."""

    def test_from_frontmatter_splits_extra(self):
        """Unmodeled keys go to extra, modeled keys to fields."""
        metadata = Metadata.from_frontmatter({
            "title": "Daily",
            "tags": ["journal"],
            "created_at": "2023-10-27",
            "mood": "good",
            "links": {"prev": "2023-10-26.md"},
        })
        assert metadata.title == "Daily"
        assert metadata.tags == ["journal"]
        assert metadata.created_at == "2023-10-27"
        assert metadata.updated_at is None
        assert metadata.extra == {"mood": "good", "links": {"prev": "2023-10-26.md"}}

    def test_non_string_keys_become_text(self):
        """Integer and null YAML keys are stored in extra as strings."""
        metadata = Metadata.from_frontmatter({1: "one", None: "nothing", "k": "v"})
        assert metadata.extra == {"1": "one", "None": "nothing", "k": "v"}
        assert metadata.to_frontmatter() == {"1": "one", "None": "nothing", "k": "v"}

    def test_from_frontmatter_none(self):
        """No frontmatter gives empty metadata."""
        assert Metadata.from_frontmatter(None) == Metadata()

    @pytest.mark.parametrize("value", [["a", "b"], "just text", 42])
    def test_from_frontmatter_rejects_non_mapping(self, value):
        """Frontmatter must be a mapping."""
        with pytest.raises(SerializationError) as exc_info:
            Metadata.from_frontmatter(value, path="x.md")
        assert exc_info.value.code == ErrorCode.SERIALIZE_INVALID_SHAPE
        assert exc_info.value.path == "x.md"

    def test_from_frontmatter_rejects_wrong_field_shape(self):
        """A modeled key with the wrong type is a serialization error."""
        with pytest.raises(SerializationError):
            Metadata.from_frontmatter({"title": ["not", "a", "string"]})
        with pytest.raises(SerializationError):
            Metadata.from_frontmatter({"tags": {"a": 1}})

    def test_numeric_scalars_become_text(self):
        """YAML numbers in text fields are kept as strings."""
        metadata = Metadata.from_frontmatter({"title": 2023, "tags": [1, "two"]})
        assert metadata.title == "2023"
        assert metadata.tags == ["1", "two"]

    def test_to_frontmatter_order(self):
        """Modeled keys come first in a fixed order, then extra keys."""
        metadata = Metadata(
            updated_at="u", title="T", extra={"z": 1, "a": 2}, tags=["t"]
        )
        assert list(metadata.to_frontmatter()) == ["title", "tags", "updated_at", "z", "a"]

    def test_to_frontmatter_skips_unset(self):
        """Unset modeled fields are not written."""
        assert Metadata().to_frontmatter() == {}
        assert Metadata(title="Only").to_frontmatter() == {"title": "Only"}

    def test_frontmatter_round_trip(self):
        """from_frontmatter and to_frontmatter are inverses for mappings."""
        mapping = {
            "title": "T",
            "tags": ["a"],
            "created_at": "c",
            "updated_at": "u",
            "nested": {"list": [1, None, True, 2.5]},
        }
        assert Metadata.from_frontmatter(mapping).to_frontmatter() == mapping

    def test_metadata_is_frozen(self):
        """Metadata is immutable."""
        metadata = Metadata(title="T")
        with pytest.raises(ValidationError):
            metadata.title = "Other"


class TestNoteModel:
    """Tests for the Note model."""

    def test_title_from_metadata(self):
        """The display title prefers metadata.title."""
        note = Note(path="a/b.md", metadata=Metadata(title="B"), content="x")
        assert note.title == "B"

    def test_title_from_filename(self):
        """Without a metadata title the filename stem is used."""
        note = Note(path="journal/2023-10-27.md", content="")
        assert note.title == "2023-10-27"
        assert note.metadata == Metadata()

    def test_summary_title_optional(self):
        """Index rows may lack a title."""
        assert NoteSummary(path="x.md").title is None


class TestUtils:
    """Tests for small helpers."""

    @pytest.mark.parametrize(
        "path, title, expected",
        [
            ("a/b.md", None, "b"),
            ("archive.tar.md", None, "archive.tar"),
            ("noext", None, "noext"),
            ("a/b.md", "Given", "Given"),
            ("a/b.md", "", ""),
        ],
    )
    def test_display_title(self, path, title, expected):
        """Display title falls back to the stem only when title is None."""
        assert display_title(path, title) == expected

    def test_escape_like_pattern(self):
        """LIKE metacharacters are escaped with a backslash."""
        assert escape_like_pattern("100%_a\\b") == "100\\%\\_a\\\\b"
