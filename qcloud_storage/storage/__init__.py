"""Storage module for the COS file backend.

This module provides:
- sign: COS request signature for hand-built requests
- QCloudAPIClient: SDK wrapper plus signed uploads with metadata
- PathResolver: storage path -> object key mapping
- FileBackend / QCloudFileBackend: backend operation contract and COS implementation
"""

from .backend import QCloudFileBackend
from .base import FileBackend
from .client import ObjectHead, QCloudAPIClient
from .paths import PathResolver, StoragePath, container_name, object_key, split_storage_path
from .schemas import (
    CopyParams,
    CreateParams,
    DeleteParams,
    FileStat,
    GetLocalCopyParams,
    OperationParams,
    StatParams,
    StoreParams,
)
from .signer import sign

__all__ = [
    "sign",
    "QCloudAPIClient",
    "ObjectHead",
    "PathResolver",
    "StoragePath",
    "container_name",
    "object_key",
    "split_storage_path",
    "FileBackend",
    "QCloudFileBackend",
    # Schemas
    "OperationParams",
    "CreateParams",
    "StoreParams",
    "CopyParams",
    "DeleteParams",
    "StatParams",
    "GetLocalCopyParams",
    "FileStat",
]
