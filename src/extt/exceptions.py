"""Custom exceptions for the extt note store.

Provides a structured exception hierarchy with error codes and
machine-readable error information, so callers can tell which step of an
operation failed.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note errors (1xxx)
    NOTE_NOT_FOUND = 1001

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORAGE_DELETE_FAILED = 4003
    STORAGE_CREATE_DIR_FAILED = 4004
    STORAGE_RENAME_FAILED = 4005

    # Index errors (5xxx)
    INDEX_CONNECTION_FAILED = 5001
    INDEX_QUERY_FAILED = 5002
    INDEX_TRANSACTION_FAILED = 5003

    # Serialization errors (6xxx)
    SERIALIZE_DECODE_FAILED = 6001
    SERIALIZE_ENCODE_FAILED = 6002
    SERIALIZE_INVALID_SHAPE = 6003

    # Configuration errors (7xxx)
    CONFIG_INVALID = 7001

    # Validation errors (8xxx)
    VALIDATION_FAILED = 8000
    PATH_TRAVERSAL_DETECTED = 8001


class ExttError(Exception):
    """Base exception for all extt errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class PathTraversalError(ExttError):
    """Raised when a note path would resolve outside the notes root."""

    def __init__(self, path: str, message: Optional[str] = None):
        super().__init__(
            message or f"Path '{path}' escapes the notes directory",
            code=ErrorCode.PATH_TRAVERSAL_DETECTED,
            details={"path": path}
        )
        self.path = path


class StorageError(ExttError):
    """Raised for filesystem read/write/create-directory/remove/rename failures."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if path:
            details["path"] = path
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.path = path
        self.original_error = original_error


class NoteNotFoundError(StorageError):
    """Raised when a note file does not exist."""

    def __init__(
        self,
        path: str,
        operation: str = "read",
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            f"Note '{path}' not found",
            operation=operation,
            path=path,
            code=ErrorCode.NOTE_NOT_FOUND,
            original_error=original_error
        )


class IndexStoreError(ExttError):
    """Raised when the SQLite index connection, query or transaction fails."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        code: ErrorCode = ErrorCode.INDEX_QUERY_FAILED,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.original_error = original_error


class SerializationError(ExttError):
    """Raised when frontmatter cannot be decoded, encoded, or has the wrong shape."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        code: ErrorCode = ErrorCode.SERIALIZE_DECODE_FAILED,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if path:
            details["path"] = path
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.path = path
        self.original_error = original_error


class ConfigurationError(ExttError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        code: ErrorCode = ErrorCode.CONFIG_INVALID
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, code=code, details=details)
        self.config_key = config_key
