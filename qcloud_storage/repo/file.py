"""File object of a COS repository."""

from typing import TYPE_CHECKING
from urllib.parse import quote

if TYPE_CHECKING:
    from .repo import QCloudRepo


class QCloudFile:
    """A wiki file whose existence is checked on COS, not on local disk."""

    def __init__(self, name: str, repo: "QCloudRepo"):
        self.name = name
        self.repo = repo

    def get_hash_path(self) -> str:
        return self.repo.get_hash_path(self.name)

    def get_rel(self) -> str:
        """Path relative to the public zone."""
        return f"{self.get_hash_path()}{self.name}"

    def get_path(self) -> str:
        """Storage path of the file."""
        return f"{self.repo.get_zone_path('public')}/{self.get_rel()}"

    def get_url(self) -> str:
        return f"{self.repo.get_zone_url('public')}/{self.get_hash_path()}{quote(self.name)}"

    def get_thumb_url(self, suffix: str | None = None) -> str:
        """URL of the file's thumbnail directory, or of one thumbnail in it."""
        url = f"{self.repo.get_zone_url('thumb')}/{self.get_hash_path()}{quote(self.name)}"
        if suffix:
            url += f"/{quote(suffix)}"
        return url

    def exists(self) -> bool:
        """Whether the file exists on the remote store."""
        path = self.get_path()
        return bool(path) and self.repo.file_exists(path)

    def __repr__(self) -> str:
        return f"<QCloudFile(name={self.name})>"
