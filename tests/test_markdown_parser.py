"""Tests for frontmatter parsing and rendering."""
import pytest

from extt.exceptions import ErrorCode, SerializationError, StorageError
from extt.storage.markdown_parser import Document, parse_document, render_document


class TestParseDocument:
    """Tests for parse_document."""

    def test_frontmatter_and_content(self):
        """A leading block is parsed and the rest is content."""
        parsed = parse_document("---\ntitle: Hello\ntags: [a, b]\n---\nBody text\n")
        assert parsed.frontmatter == {"title": "Hello", "tags": ["a", "b"]}
        assert parsed.content == "Body text\n"
        assert parsed.error is None

    def test_no_frontmatter(self):
        """Text without an opening delimiter is all content."""
        text = "# Heading\n\nNo metadata here.\n"
        parsed = parse_document(text)
        assert parsed.frontmatter is None
        assert parsed.content == text

    def test_unclosed_block_is_content(self):
        """An opening delimiter without a closing one is not frontmatter."""
        text = "---\ntitle: Hello\nstill going\n"
        parsed = parse_document(text)
        assert parsed.frontmatter is None
        assert parsed.content == text

    def test_delimiter_must_be_first_line(self):
        """A delimiter further down the file does not start a block."""
        text = "intro\n---\ntitle: x\n---\n"
        assert parse_document(text).frontmatter is None

    def test_malformed_yaml_degrades(self):
        """Invalid YAML yields no frontmatter and reports the error."""
        parsed = parse_document("---\ntitle: [unclosed\n---\nBody")
        assert parsed.frontmatter is None
        assert parsed.content == "Body"
        assert parsed.error

    def test_empty_block(self):
        """An empty block has no frontmatter."""
        parsed = parse_document("---\n---\nBody")
        assert parsed.frontmatter is None
        assert parsed.content == "Body"
        assert parsed.error is None

    def test_dates_stay_strings(self):
        """Date-like scalars are not converted to date objects."""
        parsed = parse_document(
            "---\ncreated_at: 2023-10-27\nupdated_at: 2023-10-27T10:00:00Z\n---\n"
        )
        assert parsed.frontmatter == {
            "created_at": "2023-10-27",
            "updated_at": "2023-10-27T10:00:00Z",
        }

    def test_nested_values(self):
        """Frontmatter is a dynamic value with arbitrary nesting."""
        parsed = parse_document(
            "---\nproject:\n  name: extt\n  owners: [ana, bo]\n  active: true\n"
            "rating: 4.5\nnothing: null\n---\n"
        )
        assert parsed.frontmatter == {
            "project": {"name": "extt", "owners": ["ana", "bo"], "active": True},
            "rating": 4.5,
            "nothing": None,
        }

    def test_non_mapping_frontmatter_is_returned(self):
        """A block holding a list is returned as is; callers decide."""
        parsed = parse_document("---\n- a\n- b\n---\n")
        assert parsed.frontmatter == ["a", "b"]

    def test_content_whitespace_preserved(self):
        """Blank lines and CRLF endings in the body survive parsing."""
        parsed = parse_document("---\ntitle: x\n---\n\n\n  indented\r\nend\n\n")
        assert parsed.content == "\n\n  indented\r\nend\n\n"

    def test_crlf_delimiters(self):
        """Delimiter lines may end with CRLF or trailing spaces."""
        parsed = parse_document("---\r\ntitle: x\r\n---  \r\nBody")
        assert parsed.frontmatter == {"title": "x"}
        assert parsed.content == "Body"


class TestRenderDocument:
    """Tests for render_document."""

    def test_without_frontmatter(self):
        """No metadata writes only the body."""
        assert render_document(None, "hello") == "hello"

    def test_with_frontmatter(self):
        """Metadata writes a full delimited block before the body."""
        text = render_document({"title": "B", "tags": ["x"]}, "hello")
        assert text.startswith("---\ntitle: B\n")
        assert text.endswith("---\nhello")

    def test_keeps_key_order(self):
        """Keys are written in insertion order, not sorted."""
        text = render_document({"zeta": 1, "alpha": 2}, "")
        assert text.index("zeta") < text.index("alpha")

    def test_empty_mapping(self):
        """An empty mapping still writes the delimiters."""
        assert render_document({}, "body") == "---\n---\nbody"

    def test_parse_of_rendered_text(self):
        """Rendered text parses back to the same mapping and body."""
        frontmatter = {
            "title": "Daily: notes",
            "created_at": "2023-10-27",
            "extra": {"nested": [1, 2, {"k": "v"}]},
        }
        parsed = parse_document(render_document(frontmatter, "line 1\nline 2\n"))
        assert parsed.frontmatter == frontmatter
        assert parsed.content == "line 1\nline 2\n"

    def test_unrepresentable_value(self):
        """Values YAML cannot encode raise SerializationError."""
        with pytest.raises(SerializationError) as exc_info:
            render_document({"bad": object()}, "")
        assert exc_info.value.code == ErrorCode.SERIALIZE_ENCODE_FAILED


class TestDocumentLoad:
    """Tests for Document.load."""

    def test_load(self, tmp_path):
        """A file is read and split."""
        path = tmp_path / "note.md"
        path.write_bytes(b"---\ntitle: T\n---\r\nbody\r\n")
        document = Document.load(path)
        assert document.path == path
        assert document.frontmatter == {"title": "T"}
        assert document.content == "body\r\n"

    def test_missing_file(self, tmp_path):
        """Read failures raise StorageError naming the operation."""
        with pytest.raises(StorageError) as exc_info:
            Document.load(tmp_path / "missing.md")
        assert exc_info.value.operation == "read"
        assert isinstance(exc_info.value.original_error, FileNotFoundError)

    def test_invalid_utf8(self, tmp_path):
        """Undecodable bytes raise StorageError."""
        path = tmp_path / "binary.md"
        path.write_bytes(b"\xff\xfe\x00bad")
        with pytest.raises(StorageError):
            Document.load(path)
