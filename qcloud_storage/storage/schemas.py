"""Storage schemas for backend operation parameters and results.

Each operation takes one parameter model. The shared boolean flags are
always defined after validation, even when the caller omitted them.
"""

from typing import Any

from pydantic import BaseModel, Field


class OperationParams(BaseModel):
    """Flags shared by every backend operation."""

    ignore_missing_source: bool = Field(
        default=False, description="Treat a missing source as success"
    )
    overwrite: bool = Field(default=False, description="Replace an existing destination")
    overwrite_same: bool = Field(
        default=False, description="Replace the destination only if identical"
    )
    headers: dict[str, str] = Field(
        default_factory=dict, description="Extra headers for the stored object"
    )


class CreateParams(OperationParams):
    """Write in-memory content to a storage path."""

    dst: str = Field(..., description="Destination storage path")
    content: bytes = Field(..., description="Content to store")


class StoreParams(OperationParams):
    """Upload a local file to a storage path."""

    src: str = Field(..., description="Local file system path")
    dst: str = Field(..., description="Destination storage path")


class CopyParams(OperationParams):
    """Copy one storage path to another inside the bucket."""

    src: str = Field(..., description="Source storage path")
    dst: str = Field(..., description="Destination storage path")


class DeleteParams(OperationParams):
    """Delete a storage path."""

    src: str = Field(..., description="Storage path to delete")


class StatParams(BaseModel):
    """Look up size and metadata of a storage path."""

    src: str = Field(..., description="Storage path to stat")


class GetLocalCopyParams(BaseModel):
    """Download several storage paths into temporary local files."""

    srcs: list[str] = Field(..., description="Storage paths to download")


class FileStat(BaseModel):
    """Stat result of a stored file.

    mtime uses the wiki timestamp format YYYYMMDDHHMMSS (UTC).
    """

    size: int = Field(..., ge=0, description="Size in bytes")
    mtime: str = Field(..., description="Modification time, YYYYMMDDHHMMSS")
    metadata: dict[str, str] = Field(
        default_factory=dict, description="Custom metadata stored with the object"
    )

    @property
    def sha1(self) -> str | None:
        """Base-36 SHA-1 recorded at upload time, if any."""
        return self.metadata.get("sha1")

    def as_dict(self) -> dict[str, Any]:
        """Flat mapping of size and mtime merged with the metadata fields."""
        result: dict[str, Any] = {**self.metadata}
        result["size"] = self.size
        result["mtime"] = self.mtime
        return result
