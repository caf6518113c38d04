"""CDN cache purge after deletes.

Deleted files stay reachable through CDN edge caches until they expire.
PurgeCdnJob asks the CDN to drop a set of public URLs in one request.
"""

import logging
from collections.abc import Callable

from tencentcloud.cdn.v20180606 import cdn_client, models
from tencentcloud.common import credential

from qcloud_storage.core.config import QCloudAuthConfig

from .deferred import DeferredUpdate

logger = logging.getLogger(__name__)


def create_cdn_client(auth: QCloudAuthConfig) -> cdn_client.CdnClient:
    """Build a CDN API client from the shared credentials."""
    cred = credential.Credential(auth.secret_id, auth.secret_key)
    return cdn_client.CdnClient(cred, auth.region)


class PurgeCdnJob(DeferredUpdate):
    """Purge a collection of URLs from the CDN cache.

    Not retried. Errors (TencentCloudSDKException) propagate to the
    deferred-update runner, never to the delete that scheduled the job.
    """

    def __init__(
        self,
        pending_purge_urls: list[str],
        auth: QCloudAuthConfig,
        client_factory: Callable[[QCloudAuthConfig], cdn_client.CdnClient] = create_cdn_client,
    ):
        self.pending_purge_urls = list(pending_purge_urls)
        self.auth = auth
        self._client_factory = client_factory

    def do_update(self) -> None:
        if not self.pending_purge_urls:
            return

        client = self._client_factory(self.auth)
        req = models.PurgeUrlsCacheRequest()
        req.Urls = self.pending_purge_urls
        resp = client.PurgeUrlsCache(req)

        logger.info(
            "CDN purge submitted",
            extra={
                "urls": self.pending_purge_urls,
                "task_id": getattr(resp, "TaskId", None),
            },
        )

    def __repr__(self) -> str:
        return f"PurgeCdnJob(urls={self.pending_purge_urls!r})"
