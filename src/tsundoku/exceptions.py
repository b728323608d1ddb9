"""Custom exceptions for tsundoku.

Provides a structured exception hierarchy with error codes and
machine-readable error information for better error handling.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Link errors (1xxx)
    LINK_NOT_FOUND = 1001
    LINK_INVALID = 1002

    # Tag errors (2xxx)
    TAG_NOT_FOUND = 2001
    TAG_INVALID = 2002

    # Association errors (3xxx)
    REFERENTIAL_INTEGRITY = 3001

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORAGE_CONNECTION_FAILED = 4004
    SCHEMA_CREATION_FAILED = 4005

    # Configuration errors (6xxx)
    CONFIG_INVALID = 6001

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001


class TsundokuError(Exception):
    """Base exception for all tsundoku errors.

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


class LinkNotFoundError(TsundokuError):
    """Raised when a link identifier does not match any stored link."""

    def __init__(self, link_id: int, message: Optional[str] = None):
        super().__init__(
            message or f"Link with ID {link_id} not found",
            code=ErrorCode.LINK_NOT_FOUND,
            details={"link_id": link_id}
        )
        self.link_id = link_id


class TagNotFoundError(TsundokuError):
    """Raised when a tag identifier or text does not match any stored tag."""

    def __init__(
        self,
        tag_id: Optional[int] = None,
        tag: Optional[str] = None,
        message: Optional[str] = None
    ):
        details: Dict[str, Any] = {}
        if tag_id is not None:
            details["tag_id"] = tag_id
        if tag is not None:
            details["tag"] = tag
        super().__init__(
            message or "Tag not found",
            code=ErrorCode.TAG_NOT_FOUND,
            details=details
        )
        self.tag_id = tag_id
        self.tag = tag


class ReferentialError(TsundokuError):
    """Raised when an association would reference a missing link or tag.

    The facade always creates the link and resolves the tag before linking
    them, so seeing this error means a caller skipped a step.
    """

    def __init__(
        self,
        message: str,
        link_id: Optional[int] = None,
        tag_id: Optional[int] = None
    ):
        details: Dict[str, Any] = {}
        if link_id is not None:
            details["link_id"] = link_id
        if tag_id is not None:
            details["tag_id"] = tag_id

        super().__init__(
            message, code=ErrorCode.REFERENTIAL_INTEGRITY, details=details
        )
        self.link_id = link_id
        self.tag_id = tag_id


class StorageError(TsundokuError):
    """Raised for storage/persistence errors."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
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


class ConfigurationError(TsundokuError):
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


class ValidationError(TsundokuError):
    """Raised for general validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value
