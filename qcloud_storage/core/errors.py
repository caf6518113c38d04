"""Error classification and operation status for the storage backend.

ErrorKind determines how a failed backend operation is reported:
- REMOTE_SERVICE: The object store rejected the request
- NOT_FOUND: The source object does not exist
- ALREADY_EXISTS: The destination exists and overwrite was not requested
- UPLOAD_FAILED: The signed upload did not answer with HTTP 200
- INVALID_PATH: The storage path could not be resolved
"""

from enum import Enum

from pydantic import BaseModel, Field


class QCloudStorageError(Exception):
    """Base exception for storage backend errors."""

    pass


class ConfigurationError(QCloudStorageError):
    """Required configuration is missing or invalid."""

    pass


class ContainerResolutionError(QCloudStorageError):
    """A container identifier has no extractable short name."""

    pass


class InvalidStoragePathError(QCloudStorageError):
    """A storage path does not follow the mwstore:// convention."""

    pass


class RemoteServiceError(QCloudStorageError):
    """The object store answered a request with an error response."""

    def __init__(self, code: str | None, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def is_not_found(self) -> bool:
        """Check if the provider reported a missing key."""
        return self.code in ("NoSuchKey", "NoSuchObject", "ResourceNotFound")

    def __repr__(self) -> str:
        return f"RemoteServiceError(code={self.code!r}, message={self.message!r})"


class ErrorKind(str, Enum):
    """Classification of failed backend operations."""

    REMOTE_SERVICE = "remote_service"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    UPLOAD_FAILED = "upload_failed"
    INVALID_PATH = "invalid_path"


class StatusValue(BaseModel):
    """Result of a backend operation: good, or fatal with a message."""

    ok: bool = Field(..., description="Whether the operation succeeded")
    error_kind: ErrorKind | None = Field(
        default=None, description="Failure classification (failures only)"
    )
    message: str | None = Field(
        default=None, description="Human-readable failure message (failures only)"
    )

    @classmethod
    def good(cls) -> "StatusValue":
        """Create a successful status."""
        return cls(ok=True)

    @classmethod
    def fatal(
        cls,
        message: str,
        kind: ErrorKind = ErrorKind.REMOTE_SERVICE,
    ) -> "StatusValue":
        """Create a failed status carrying a message."""
        return cls(ok=False, error_kind=kind, message=message)

    def is_good(self) -> bool:
        return self.ok
