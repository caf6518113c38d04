"""Tencent COS file storage for the wiki.

This package contains:
- QCloudFileBackend: file backend operations on a COS bucket
- QCloudRepo / QCloudFile: repository and file objects on that backend
- PurgeCdnJob: CDN cache purge after deletes
"""

from pathlib import Path

from .core.config import load_auth_config, load_backend_config
from .jobs.deferred import DeferredScheduler
from .storage.backend import QCloudFileBackend


def create_backend(
    env_file: Path | None = None,
    scheduler: DeferredScheduler | None = None,
) -> QCloudFileBackend:
    """Build a backend from environment configuration.

    With QCLOUD_USE_CDN enabled a scheduler is required; the host drains
    it (e.g. DeferredUpdateQueue.do_updates()) to run the CDN purges.

    Raises:
        ConfigurationError: If credentials or the bucket are missing, or
            CDN purge is enabled without a scheduler
    """
    auth = load_auth_config(env_file=env_file)
    config = load_backend_config(env_file=env_file)
    return QCloudFileBackend(config, auth, scheduler=scheduler)


__all__ = ["QCloudFileBackend", "create_backend"]
