"""File repository on top of the COS backend."""

from .file import QCloudFile
from .repo import QCloudRepo

__all__ = ["QCloudRepo", "QCloudFile"]
