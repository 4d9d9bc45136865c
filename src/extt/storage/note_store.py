"""Note store: markdown files on disk plus a derived SQLite index.

The files under ``notes_dir`` are the source of truth. The ``notes`` table
only caches each file's path and display title for listing and search, and
:meth:`NoteStore.sync` can always rebuild it from the files.
"""
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from sqlalchemy import delete, or_, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from extt.config import ExttConfig
from extt.exceptions import (
    ErrorCode,
    ExttError,
    IndexStoreError,
    NoteNotFoundError,
    SerializationError,
    StorageError,
)
from extt.models.db_models import DBNote, get_session_factory, init_db
from extt.models.schema import Metadata, Note, NoteSummary
from extt.observability import traced
from extt.storage.markdown_parser import Document, render_document
from extt.storage.paths import normalize_note_path, secure_join
from extt.storage.vault import Vault
from extt.utils import display_title, escape_like_pattern

logger = logging.getLogger(__name__)

PathArg = Union[str, Path]

# Only markdown files are indexed, even though the vault also lists .txt
INDEXED_SUFFIX = ".md"


def _index_key(relative: Path) -> str:
    """POSIX key for a scanned file, decoding undecodable filename bytes lossily."""
    return os.fsencode(relative.as_posix()).decode("utf-8", "replace")


class NoteStore:
    """Reads and writes notes under a root directory and keeps the index current.

    Every method that takes a note path validates it first; a rejected path
    raises before any file or index row is touched. Instances are not
    thread-safe and two stores sharing a root must be serialized by the
    caller.
    """

    def __init__(
        self,
        notes_dir: PathArg,
        database_path: Optional[PathArg] = None,
        engine: Optional[Engine] = None,
    ):
        """Open the store.

        Args:
            notes_dir: Root directory holding the note files.
            database_path: SQLite index file; its parent directory is
                created if missing. When None the index is kept in memory.
            engine: Pre-configured SQLAlchemy engine to use instead of
                opening ``database_path``.

        Raises:
            IndexStoreError: If the index database cannot be opened.
        """
        self.notes_dir = Path(notes_dir).absolute()
        self.database_path = Path(database_path) if database_path else None

        if engine is None:
            try:
                engine = init_db(self.database_path)
            except (OSError, SQLAlchemyError) as e:
                raise IndexStoreError(
                    f"Cannot open index database at {self.database_path or ':memory:'}",
                    operation="connect",
                    code=ErrorCode.INDEX_CONNECTION_FAILED,
                    original_error=e,
                ) from e
        self.engine = engine
        self.session_factory = get_session_factory(self.engine)

        logger.info(
            f"Note store opened: notes_dir={self.notes_dir}, "
            f"index={self.database_path or ':memory:'}"
        )

    @classmethod
    def from_config(cls, config: ExttConfig) -> "NoteStore":
        """Build a store from resolved configuration."""
        return cls(config.get_notes_dir(), config.get_database_path())

    def close(self) -> None:
        """Release the index connections."""
        self.engine.dispose()

    def __enter__(self) -> "NoteStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def secure_join(self, relative: PathArg) -> Path:
        """Absolute location of ``relative`` inside the notes root.

        Raises:
            PathTraversalError: If the path would leave the root.
        """
        return secure_join(self.notes_dir, relative)

    def _resolve(self, relative: PathArg) -> Tuple[str, Path]:
        """Validate a note path and return its index key and file location."""
        full_path = self.secure_join(relative)
        key = normalize_note_path(relative)
        if not key:
            raise ExttError(
                "Note path is empty",
                code=ErrorCode.VALIDATION_FAILED,
                details={"path": str(relative)},
            )
        return key, full_path

    @contextmanager
    def _session(
        self, operation: str, code: ErrorCode = ErrorCode.INDEX_QUERY_FAILED
    ) -> Iterator[Session]:
        """Session whose SQLAlchemy failures surface as IndexStoreError.

        Uncommitted work is rolled back when the session closes.
        """
        try:
            with self.session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            raise IndexStoreError(
                f"Index {operation} failed",
                operation=operation,
                code=code,
                original_error=e,
            ) from e

    def _load(self, key: str, full_path: Path, operation: str) -> Document:
        """Read a note file, mapping a missing file to NoteNotFoundError."""
        try:
            return Document.load(full_path)
        except StorageError as e:
            if isinstance(e.original_error, FileNotFoundError):
                raise NoteNotFoundError(
                    key, operation=operation, original_error=e.original_error
                ) from e
            raise

    def _write(self, key: str, full_path: Path, text: str) -> None:
        """Create parent directories and overwrite the file."""
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Failed to create directory for note '{key}'",
                operation="create_dir",
                path=str(full_path.parent),
                code=ErrorCode.STORAGE_CREATE_DIR_FAILED,
                original_error=e,
            ) from e

        try:
            with open(full_path, "w", encoding="utf-8", newline="") as f:
                f.write(text)
        except OSError as e:
            raise StorageError(
                f"Failed to write note '{key}'",
                operation="write",
                path=key,
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e

    @staticmethod
    def _render(metadata: Optional[Metadata], content: str) -> str:
        """File text for a note; metadata without any fields writes no block."""
        frontmatter = metadata.to_frontmatter() if metadata is not None else None
        return render_document(frontmatter or None, content)

    def _sync_title(self, file_path: Path, key: str) -> str:
        """Display title for ``sync``; unusable frontmatter counts as none."""
        try:
            document = Document.load(file_path)
        except StorageError as e:
            logger.warning(f"Cannot read {key}, indexing without metadata: {e}")
            return display_title(key)

        if document.error:
            logger.warning(
                f"Malformed frontmatter in {key}, indexing without metadata: "
                f"{document.error}"
            )
            return display_title(key)

        try:
            metadata = Metadata.from_frontmatter(document.frontmatter, key)
        except SerializationError as e:
            logger.warning(f"Unusable frontmatter in {key}, indexing without metadata: {e}")
            return display_title(key)
        return display_title(key, metadata.title)

    @traced("sync")
    def sync(self) -> int:
        """Rebuild the index from the files under the root.

        All rows are deleted and one row per ``.md`` file is inserted inside
        a single transaction; if anything fails the previous index is kept.
        Files that cannot be read or whose frontmatter is unusable are
        indexed under their filename. Filenames that are not valid UTF-8 are
        keyed with U+FFFD in place of the undecodable bytes; if two files
        collapse onto the same key only the first is indexed.

        Returns:
            Number of notes indexed.
        """
        files = [
            p for p in Vault(self.notes_dir).files if p.suffix == INDEXED_SUFFIX
        ]

        indexed = set()
        with self._session("sync", ErrorCode.INDEX_TRANSACTION_FAILED) as session:
            session.execute(delete(DBNote))
            for file_path in files:
                key = _index_key(file_path.relative_to(self.notes_dir))
                if key in indexed:
                    logger.warning(f"Skipping {key}: another file has the same index key")
                    continue
                indexed.add(key)
                session.add(DBNote(path=key, title=self._sync_title(file_path, key)))
            session.commit()

        logger.info(f"Index rebuilt: {len(indexed)} notes from {self.notes_dir}")
        return len(indexed)

    @traced("list")
    def list_notes(self) -> List[NoteSummary]:
        """All indexed notes ordered by path."""
        with self._session("list") as session:
            rows = session.execute(
                select(DBNote.path, DBNote.title).order_by(DBNote.path)
            ).all()
        return [NoteSummary(path=row.path, title=row.title) for row in rows]

    @traced("search")
    def search(self, query: str, literal: bool = False) -> List[NoteSummary]:
        """Indexed notes whose title or path contains ``query``.

        Matching uses SQLite ``LIKE`` (case-insensitive for ASCII). Unless
        ``literal`` is set, ``%`` and ``_`` in ``query`` act as wildcards.
        """
        if literal:
            pattern = f"%{escape_like_pattern(query)}%"
            escape = "\\"
        else:
            pattern = f"%{query}%"
            escape = None

        with self._session("search") as session:
            rows = session.execute(
                select(DBNote.path, DBNote.title)
                .where(
                    or_(
                        DBNote.title.like(pattern, escape=escape),
                        DBNote.path.like(pattern, escape=escape),
                    )
                )
                .order_by(DBNote.path)
            ).all()
        return [NoteSummary(path=row.path, title=row.title) for row in rows]

    @traced("get")
    def get(self, path: PathArg) -> Note:
        """Read a note from disk. The index is not consulted.

        Raises:
            PathTraversalError: If the path leaves the root.
            NoteNotFoundError: If the file does not exist.
            StorageError: If the file cannot be read.
            SerializationError: If the frontmatter is malformed or not a mapping.
        """
        key, full_path = self._resolve(path)
        document = self._load(key, full_path, "read")
        if document.error:
            raise SerializationError(
                f"Malformed frontmatter in '{key}': {document.error}",
                path=key,
                code=ErrorCode.SERIALIZE_DECODE_FAILED,
            )
        metadata = Metadata.from_frontmatter(document.frontmatter, key)
        return Note(path=key, metadata=metadata, content=document.content)

    @traced("create")
    def create(
        self, path: PathArg, content: str, metadata: Optional[Metadata] = None
    ) -> Note:
        """Write a note, replacing any file already at ``path``, and index it.

        The index title is ``metadata.title`` or else the filename stem.
        """
        key, full_path = self._resolve(path)
        text = self._render(metadata, content)
        self._write(key, full_path, text)

        title = display_title(key, metadata.title if metadata else None)
        with self._session("create") as session:
            stmt = sqlite_insert(DBNote).values(path=key, title=title)
            session.execute(
                stmt.on_conflict_do_update(
                    index_elements=["path"], set_={"title": stmt.excluded.title}
                )
            )
            session.commit()

        logger.debug(f"Created note {key}")
        return Note(path=key, metadata=metadata or Metadata(), content=content)

    @traced("update")
    def update(
        self,
        path: PathArg,
        content: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Note:
        """Replace a note's body and/or title, keeping all other metadata.

        The index title is only changed when the resulting metadata has a
        title.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        existing = self.get(path)
        key, full_path = self._resolve(path)

        metadata = existing.metadata
        if title is not None:
            metadata = metadata.model_copy(update={"title": title})
        body = content if content is not None else existing.content

        self._write(key, full_path, self._render(metadata, body))

        if metadata.title is not None:
            with self._session("update") as session:
                session.execute(
                    update(DBNote)
                    .where(DBNote.path == key)
                    .values(title=metadata.title)
                )
                session.commit()

        logger.debug(f"Updated note {key}")
        return Note(path=key, metadata=metadata, content=body)

    @traced("delete")
    def delete(self, path: PathArg) -> None:
        """Remove a note file and its index row. Deleting a missing note is a no-op."""
        key, full_path = self._resolve(path)
        try:
            os.remove(full_path)
        except FileNotFoundError:
            logger.debug(f"Note {key} has no file to delete")
        except OSError as e:
            raise StorageError(
                f"Failed to delete note '{key}'",
                operation="delete",
                path=key,
                code=ErrorCode.STORAGE_DELETE_FAILED,
                original_error=e,
            ) from e

        with self._session("delete") as session:
            session.execute(delete(DBNote).where(DBNote.path == key))
            session.commit()

        logger.debug(f"Deleted note {key}")

    @traced("move")
    def move_note(self, src: PathArg, dst: PathArg) -> None:
        """Rename a note file and re-key its index row.

        Any existing file at ``dst`` is replaced, and a row already indexed
        under ``dst`` is dropped. A source with no index row is indexed at
        ``dst`` with the title read from the moved file.

        Raises:
            NoteNotFoundError: If there is no file at ``src``.
        """
        src_key, src_path = self._resolve(src)
        dst_key, dst_path = self._resolve(dst)

        if not os.path.lexists(src_path):
            raise NoteNotFoundError(src_key, operation="rename")

        try:
            dst_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Failed to create directory for note '{dst_key}'",
                operation="create_dir",
                path=str(dst_path.parent),
                code=ErrorCode.STORAGE_CREATE_DIR_FAILED,
                original_error=e,
            ) from e

        try:
            os.replace(src_path, dst_path)
        except FileNotFoundError as e:
            raise NoteNotFoundError(src_key, operation="rename", original_error=e) from e
        except OSError as e:
            raise StorageError(
                f"Failed to move note '{src_key}' to '{dst_key}'",
                operation="rename",
                path=src_key,
                code=ErrorCode.STORAGE_RENAME_FAILED,
                original_error=e,
            ) from e

        if src_key == dst_key:
            return

        with self._session("move") as session:
            src_indexed = session.execute(
                select(DBNote.id).where(DBNote.path == src_key)
            ).first()
            if src_indexed is not None:
                session.execute(delete(DBNote).where(DBNote.path == dst_key))
                session.execute(
                    update(DBNote).where(DBNote.path == src_key).values(path=dst_key)
                )
            else:
                # Source was never indexed; index the moved file in place of dst
                title = self._sync_title(dst_path, dst_key)
                stmt = sqlite_insert(DBNote).values(path=dst_key, title=title)
                session.execute(
                    stmt.on_conflict_do_update(
                        index_elements=["path"], set_={"title": stmt.excluded.title}
                    )
                )
            session.commit()

        logger.debug(f"Moved note {src_key} -> {dst_key}")
