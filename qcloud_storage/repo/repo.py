"""File repository backed by COS.

Lays out wiki files in zones (public, thumb, deleted, temp), each a
container of the backend, with hashed directories below them:

    mwstore://{backend}/{repo}-public/a/ab/File.png

Public URLs point at the backend's viewpoint, so a file stored under
key a/ab/File.png is served from {viewpoint}/a/ab/File.png.
"""

import hashlib

from qcloud_storage.storage.backend import QCloudFileBackend
from qcloud_storage.storage.paths import STORAGE_PATH_SCHEME

from .file import QCloudFile

ZONES = ("public", "thumb", "deleted", "temp")


class QCloudRepo:
    """Repository of wiki files stored through a QCloudFileBackend."""

    def __init__(
        self,
        backend: QCloudFileBackend,
        name: str = "local",
        hash_levels: int = 2,
    ):
        """
        Args:
            backend: Backend the files are stored on
            name: Repository name, prefixed to zone containers
            hash_levels: Depth of the md5-based directory layout
        """
        self.backend = backend
        self.name = name
        self.hash_levels = hash_levels
        self.url = backend.get_viewpoint()
        self.thumb_url = f"{self.url}/thumb"

    def get_backend(self) -> QCloudFileBackend:
        return self.backend

    def get_zone_path(self, zone: str) -> str:
        """Storage path of a zone's container."""
        if zone not in ZONES:
            raise ValueError(f"Unknown zone: {zone}")
        return f"{STORAGE_PATH_SCHEME}{self.backend.name}/{self.name}-{zone}"

    def get_zone_url(self, zone: str) -> str | None:
        """Public base URL of a zone (None for zones that are not served)."""
        if zone == "public":
            return self.url
        if zone == "thumb":
            return self.thumb_url
        return None

    def get_hash_path(self, name: str) -> str:
        """Hashed directory of a file name, e.g. "a/ab/" for two levels."""
        digest = hashlib.md5(name.encode("utf-8")).hexdigest()
        path = ""
        for level in range(1, self.hash_levels + 1):
            path += digest[:level] + "/"
        return path

    def file_exists(self, storage_path: str) -> bool:
        """Check the remote store for a file."""
        return self.backend.file_exists(storage_path)

    def new_file(self, name: str) -> QCloudFile:
        return QCloudFile(name, self)
