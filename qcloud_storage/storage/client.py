"""COS API client.

Wraps the S3-compatible SDK client for every operation except uploads
that carry custom metadata: those go through a hand-signed PUT, because
the SDK's single-call upload cannot attach x-cos-meta-* headers.

SDK errors are re-raised as RemoteServiceError: S3 error responses keep
the provider's error code and message, non-S3 responses and broken
connections carry no code. Nothing is retried.
"""

import io
import logging
import mimetypes
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from urllib.parse import quote

import httpx
from minio import Minio
from minio.commonconfig import CopySource
from minio.error import MinioException, S3Error
from urllib3.exceptions import HTTPError as TransportError

from qcloud_storage.core.config import QCloudAuthConfig
from qcloud_storage.core.errors import RemoteServiceError

from .signer import sign

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Chunk size for streaming uploads and downloads
TRANSFER_CHUNK_SIZE = 1024 * 1024

# Response headers that carry custom object metadata
METADATA_HEADER_PREFIXES = ("x-cos-meta-", "x-amz-meta-")


@dataclass
class ObjectHead:
    """Result of a HEAD request on an object."""

    key: str
    size: int
    last_modified: datetime | None
    metadata: dict[str, str] = field(default_factory=dict)


def _extract_metadata(headers: Mapping[str, str] | None) -> dict[str, str]:
    """Collect custom metadata fields from response headers."""
    metadata: dict[str, str] = {}
    if not headers:
        return metadata
    for name, value in headers.items():
        lowered = name.lower()
        for prefix in METADATA_HEADER_PREFIXES:
            if lowered.startswith(prefix):
                metadata[lowered[len(prefix):]] = value
                break
    return metadata


def _iter_file(path: Path) -> Iterator[bytes]:
    """Stream a file in chunks without loading it into memory."""
    with path.open("rb") as f:
        yield from iter(lambda: f.read(TRANSFER_CHUNK_SIZE), b"")


@contextmanager
def _translate_errors(operation: str, key: str) -> Iterator[None]:
    try:
        yield
    except S3Error as e:
        logger.debug(
            "COS request failed",
            extra={"operation": operation, "key": key, "code": e.code},
        )
        raise RemoteServiceError(e.code, e.message or str(e)) from e
    except (MinioException, TransportError) as e:
        # Non-S3 responses (ServerError, InvalidResponseError) and broken connections
        logger.debug(
            "COS request failed",
            extra={"operation": operation, "key": key, "error": type(e).__name__},
        )
        raise RemoteServiceError(None, str(e) or type(e).__name__) from e


class QCloudAPIClient:
    """Client for one COS bucket."""

    def __init__(
        self,
        auth: QCloudAuthConfig,
        bucket: str,
        endpoint: str | None = None,
        minio_client: Minio | None = None,
        http_client: httpx.Client | None = None,
    ):
        """
        Args:
            auth: Region and credentials
            bucket: Bucket name
            endpoint: S3 API endpoint (default: cos.{region}.myqcloud.com)
            minio_client: Pre-built SDK client (created lazily otherwise)
            http_client: HTTP client used for signed uploads
        """
        self.auth = auth
        self.bucket = bucket
        self.endpoint = endpoint or f"cos.{auth.region}.myqcloud.com"
        self._client = minio_client
        self._http = http_client

    @property
    def client(self) -> Minio:
        """Lazy initialization of the SDK client."""
        if self._client is None:
            self._client = Minio(
                endpoint=self.endpoint,
                access_key=self.auth.secret_id,
                secret_key=self.auth.secret_key,
                region=self.auth.region,
                secure=True,
            )
        return self._client

    @property
    def http(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client()
        return self._http

    @property
    def bucket_host(self) -> str:
        """Virtual-hosted bucket domain, e.g. bucket.cos.ap-guangzhou.myqcloud.com."""
        return f"{self.bucket}.cos.{self.auth.region}.myqcloud.com"

    def put_object(
        self,
        key: str,
        content: bytes,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> None:
        """Store in-memory content under a key."""
        with _translate_errors("put_object", key):
            self.client.put_object(
                bucket_name=self.bucket,
                object_name=key,
                data=io.BytesIO(content),
                length=len(content),
                content_type=content_type,
            )

    def get_object(self, key: str, save_as: Path) -> int:
        """Download an object into a local file.

        Returns:
            Content length reported by the store (-1 if absent)
        """
        with _translate_errors("get_object", key):
            response = self.client.get_object(
                bucket_name=self.bucket,
                object_name=key,
            )
            try:
                with save_as.open("wb") as handle:
                    for chunk in response.stream(TRANSFER_CHUNK_SIZE):
                        handle.write(chunk)
                content_length = response.headers.get("Content-Length")
            finally:
                response.close()
                response.release_conn()
        return int(content_length) if content_length is not None else -1

    def head_object(self, key: str) -> ObjectHead:
        """Fetch size, modification time and custom metadata of an object."""
        with _translate_errors("head_object", key):
            stat = self.client.stat_object(
                bucket_name=self.bucket,
                object_name=key,
            )
        return ObjectHead(
            key=key,
            size=stat.size or 0,
            last_modified=stat.last_modified,
            metadata=_extract_metadata(stat.metadata),
        )

    def copy_object(self, source_key: str, destination_key: str) -> None:
        """Server-side copy inside the bucket."""
        with _translate_errors("copy_object", source_key):
            self.client.copy_object(
                bucket_name=self.bucket,
                object_name=destination_key,
                source=CopySource(self.bucket, source_key),
            )

    def delete_object(self, key: str) -> None:
        with _translate_errors("delete_object", key):
            self.client.remove_object(
                bucket_name=self.bucket,
                object_name=key,
            )

    def list_objects(self, prefix: str) -> Iterator[str]:
        """Yield every object key starting with a prefix."""
        with _translate_errors("list_objects", prefix):
            objects = self.client.list_objects(
                bucket_name=self.bucket,
                prefix=prefix,
                recursive=True,
            )
            for obj in objects:
                yield obj.object_name

    def upload_with_metadata(
        self,
        source: Path | str | bytes,
        destination_key: str,
        host: str,
        metadata: Mapping[str, object],
    ) -> bool:
        """Upload a file or buffer with x-cos-meta-* headers.

        Args:
            source: Local file path, or the content itself
            destination_key: Object key to write
            host: Bucket domain the request is sent to
            metadata: Custom metadata stored with the object

        Returns:
            True iff the store answered exactly 200

        Raises:
            RemoteServiceError: If the request could not be sent
        """
        if isinstance(source, (str, Path)):
            path = Path(source)
            length = path.stat().st_size
            content_type = mimetypes.guess_type(str(path))[0] or DEFAULT_CONTENT_TYPE
            body: bytes | Iterator[bytes] = _iter_file(path)
        else:
            length = len(source)
            content_type = mimetypes.guess_type(destination_key)[0] or DEFAULT_CONTENT_TYPE
            body = source

        url_path = "/" + destination_key.lstrip("/")
        headers = {f"x-cos-meta-{name}": str(value) for name, value in metadata.items()}
        headers["host"] = host
        headers["Content-Type"] = content_type
        headers["Content-Length"] = str(length)
        headers["Authorization"] = sign(
            "PUT",
            url_path,
            headers,
            self.auth.secret_id,
            self.auth.secret_key,
        )

        url = f"https://{host}{quote(url_path, safe='/')}"
        try:
            response = self.http.put(url, content=body, headers=headers)
        except httpx.HTTPError as e:
            raise RemoteServiceError(None, f"Upload of {destination_key} failed: {e}") from e

        if response.status_code != 200:
            logger.warning(
                "COS upload rejected",
                extra={
                    "key": destination_key,
                    "status_code": response.status_code,
                    "body": response.text[:500],
                },
            )
            return False
        return True
