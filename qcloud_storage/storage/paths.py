"""Storage path resolution.

Maps the wiki's hierarchical storage paths onto flat COS object keys.

Path convention: mwstore://{backend}/{container}/{relative/path}

The container identifier may be compound (wikidb-local-public); only its
trailing token (public) names the key prefix. The "public" container is
stored at the bucket root, every other container under "{name}/".
"""

import logging
import re
from dataclasses import dataclass

from qcloud_storage.core.errors import ContainerResolutionError, InvalidStoragePathError

logger = logging.getLogger(__name__)

STORAGE_PATH_SCHEME = "mwstore://"

# Container stored without a key prefix
PUBLIC_CONTAINER = "public"

CONTAINER_NAME_PATTERN = re.compile(r"(?:\w*-)*(?P<name>\w*)")

# Relative path segments that would escape the container
FORBIDDEN_SEGMENTS = frozenset([".", ".."])


@dataclass(frozen=True)
class StoragePath:
    """A parsed mwstore:// path."""

    backend: str
    container: str
    relative: str = ""

    def __str__(self) -> str:
        path = f"{STORAGE_PATH_SCHEME}{self.backend}/{self.container}"
        return f"{path}/{self.relative}" if self.relative else path


def split_storage_path(storage_path: str) -> StoragePath:
    """Split a storage path into backend, container and relative path.

    Raises:
        InvalidStoragePathError: If the path does not follow the convention
    """
    if not storage_path.startswith(STORAGE_PATH_SCHEME):
        raise InvalidStoragePathError(f"Invalid storage path: {storage_path}")

    parts = storage_path[len(STORAGE_PATH_SCHEME):].split("/", 2)
    if len(parts) < 2 or not parts[0] or not parts[1]:
        raise InvalidStoragePathError(f"Invalid storage path: {storage_path}")

    relative = parts[2] if len(parts) == 3 else ""
    _validate_relative_path(relative, storage_path)
    return StoragePath(backend=parts[0], container=parts[1], relative=relative)


def _validate_relative_path(relative: str, storage_path: str) -> None:
    if "\0" in relative or relative.startswith("/"):
        raise InvalidStoragePathError(f"Invalid storage path: {storage_path}")
    if any(segment in FORBIDDEN_SEGMENTS for segment in relative.split("/")):
        logger.warning(f"Path traversal attempt detected: {storage_path[:100]}")
        raise InvalidStoragePathError(f"Invalid storage path: {storage_path}")


def container_name(container: str) -> str:
    """Extract the short container name from a container identifier.

    wikidb-local-public -> public, local-thumb -> thumb

    Raises:
        ContainerResolutionError: If no name can be found
    """
    match = CONTAINER_NAME_PATTERN.match(container)
    if match is None or not match.group("name"):
        raise ContainerResolutionError(f"Failed to find ContainerName in '{container}'")
    return match.group("name")


def object_key(container: str, relative: str) -> str:
    """Build the object key for a relative path inside a container."""
    name = container_name(container)
    # public container shouldn't need prefix
    prefix = "" if name == PUBLIC_CONTAINER else f"{name}/"
    return f"{prefix}{relative}"


class PathResolver:
    """Resolves storage paths of one backend into object keys."""

    def __init__(self, backend_name: str | None = None, domain_id: str | None = None):
        """
        Args:
            backend_name: Only paths of this backend are accepted (None: any)
            domain_id: Wiki domain id prefixed to container names
        """
        self.backend_name = backend_name
        self.domain_id = domain_id

    def resolve_container(self, container: str) -> str:
        """Return the full container name for a short container path."""
        return f"{self.domain_id}-{container}" if self.domain_id else container

    def resolve_storage_path(self, storage_path: str) -> tuple[str, str]:
        """Split a storage path into (full container name, relative path).

        Raises:
            InvalidStoragePathError: If the path is malformed or belongs to
                another backend
        """
        path = split_storage_path(storage_path)
        if self.backend_name is not None and path.backend != self.backend_name:
            raise InvalidStoragePathError(
                f"Storage path {storage_path} does not belong to backend {self.backend_name}"
            )
        return self.resolve_container(path.container), path.relative

    def remote_storage_path(self, storage_path: str) -> str:
        """Convert a storage path into the object key it is stored under."""
        container, relative = self.resolve_storage_path(storage_path)
        return object_key(container, relative)

    def directory_prefix(self, container: str, directory: str) -> str:
        """Key prefix that every object below a directory starts with."""
        key = object_key(container, directory)
        if directory and not key.endswith("/"):
            key += "/"
        return key
