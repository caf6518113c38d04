"""File backend interface.

The file repository talks to storage only through this interface; a
backend instance is injected into the repository at construction.
Failures are reported through StatusValue, never raised across it.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel

from qcloud_storage.core.errors import StatusValue

from .schemas import (
    CopyParams,
    CreateParams,
    DeleteParams,
    FileStat,
    GetLocalCopyParams,
    StatParams,
    StoreParams,
)


ParamsT = TypeVar("ParamsT", bound=BaseModel)


def extension_from_path(path: str) -> str:
    """Lower-cased file extension of the last path segment ("" if none)."""
    name = path.rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


class FileBackend(ABC):
    """File backend interface

    Implemented by every storage backend the file repository can use.
    """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def is_path_usable(self, storage_path: str) -> bool:
        """Check if a file can be created or changed at a storage path."""
        ...

    @abstractmethod
    def create(self, params: CreateParams | Mapping[str, Any]) -> StatusValue:
        """Write in-memory content to a storage path."""
        ...

    @abstractmethod
    def store(self, params: StoreParams | Mapping[str, Any]) -> StatusValue:
        """Upload a local file to a storage path."""
        ...

    @abstractmethod
    def copy(self, params: CopyParams | Mapping[str, Any]) -> StatusValue:
        """Copy a stored file to another storage path."""
        ...

    @abstractmethod
    def delete(self, params: DeleteParams | Mapping[str, Any]) -> StatusValue:
        """Delete a stored file."""
        ...

    @abstractmethod
    def get_file_stat(self, params: StatParams | Mapping[str, Any]) -> FileStat | None:
        """Size, mtime and metadata of a stored file, or None if absent."""
        ...

    @abstractmethod
    def get_local_copy_multi(
        self, params: GetLocalCopyParams | Mapping[str, Any]
    ) -> dict[str, Path | None]:
        """Download stored files into temporary local files.

        Returns:
            dict: {storage_path: temp file path, or None if unavailable}
        """
        ...

    @abstractmethod
    def directory_exists(self, container: str, directory: str) -> bool:
        """Check if any file exists below a directory."""
        ...

    @abstractmethod
    def get_file_list(self, container: str, directory: str) -> list[str]:
        """List files below a directory, relative to it."""
        ...

    @abstractmethod
    def get_directory_list(
        self, container: str, directory: str, top_only: bool = False
    ) -> list[str]:
        """List directories below a directory, relative to it."""
        ...

    @abstractmethod
    def directories_are_virtual(self) -> bool:
        """Whether directories exist only as key prefixes."""
        ...

    def file_exists(self, storage_path: str) -> bool:
        """Check if a file is stored at a storage path."""
        return self.get_file_stat(StatParams(src=storage_path)) is not None

    @staticmethod
    def _normalize(params: ParamsT | Mapping[str, Any], model: type[ParamsT]) -> ParamsT:
        """Validate a parameter bag, defining every optional flag."""
        if isinstance(params, model):
            return params
        return model.model_validate(dict(params))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name})>"
