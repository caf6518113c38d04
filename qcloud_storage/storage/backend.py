"""File backend storing wiki files in a Tencent COS bucket.

QCloudFileBackend maps the file backend operations onto COS:
- create/store/copy/delete/stat on object keys (see paths.py)
- directories emulated through key prefixes
- CDN purge scheduled after every successful delete (optional)

Provider errors are caught here and returned as StatusValue. Listing
operations raise RemoteServiceError, as they have no status channel.
"""

import hashlib
import mimetypes
import os
import string
import tempfile
import time
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from qcloud_storage.core.config import BackendConfig, QCloudAuthConfig
from qcloud_storage.core.errors import (
    ConfigurationError,
    ErrorKind,
    InvalidStoragePathError,
    RemoteServiceError,
    StatusValue,
)
from qcloud_storage.jobs.deferred import DeferredScheduler, DeferredUpdate
from qcloud_storage.jobs.purge_cdn import PurgeCdnJob
from qcloud_storage.observability.logger import get_logger, log_context

from .base import FileBackend, extension_from_path
from .client import DEFAULT_CONTENT_TYPE, QCloudAPIClient
from .paths import PathResolver
from .schemas import (
    CopyParams,
    CreateParams,
    DeleteParams,
    FileStat,
    GetLocalCopyParams,
    StatParams,
    StoreParams,
)

logger = get_logger(__name__)

# Wiki timestamp format (TS_MW)
MW_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

# SHA-1 in base 36 is at most 31 digits
SHA1_BASE36_LENGTH = 31

BASE36_DIGITS = string.digits + string.ascii_lowercase


def base36(value: int, pad: int = 0) -> str:
    """Lower-case base-36 representation, left-padded with zeros."""
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_DIGITS[remainder])
    return "".join(reversed(digits)).rjust(max(pad, 1), "0")


def file_sha1_base36(path: Path) -> str:
    """SHA-1 of a file's content as a 31-digit base-36 string."""
    h = hashlib.sha1()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return base36(int(h.hexdigest(), 16), SHA1_BASE36_LENGTH)


def to_mw_timestamp(value: datetime | None) -> str:
    """Convert a provider timestamp to YYYYMMDDHHMMSS in UTC."""
    if value is None:
        value = datetime.now(UTC)
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.strftime(MW_TIMESTAMP_FORMAT)


class QCloudFileBackend(FileBackend):
    """File backend on a COS bucket.

    Usage:
        backend = QCloudFileBackend(load_backend_config(), load_auth_config())
        status = backend.store({"src": "/tmp/upload", "dst": "mwstore://qcloud-backend/local-public/a/ab/File.png"})
    """

    def __init__(
        self,
        config: BackendConfig,
        auth: QCloudAuthConfig,
        client: QCloudAPIClient | None = None,
        scheduler: DeferredScheduler | None = None,
        purge_job_factory: Callable[[list[str]], DeferredUpdate] | None = None,
        tmp_dir: Path | None = None,
    ):
        """Initialize the backend.

        Args:
            config: Bucket, viewpoint, domain id and CDN toggle
            auth: Region and credentials
            client: COS client (built from config/auth otherwise)
            scheduler: Receives CDN purge jobs; the host runs them.
                Required when config.use_cdn is set
            purge_job_factory: Builds the purge job for a URL list
            tmp_dir: Directory for local copies (default: system temp dir)

        Raises:
            ConfigurationError: If CDN purge is enabled without a scheduler
        """
        if config.use_cdn and scheduler is None:
            raise ConfigurationError(
                "CDN purge is enabled but no scheduler was given to run purge jobs"
            )

        super().__init__(config.name)
        self.config = config
        self.auth = auth
        self.bucket = config.bucket
        self.client = client or QCloudAPIClient(auth, config.bucket)
        self.scheduler = scheduler
        self._purge_job_factory = purge_job_factory or (
            lambda urls: PurgeCdnJob(urls, self.auth)
        )
        self.tmp_dir = tmp_dir
        self.resolver = PathResolver(backend_name=config.name, domain_id=config.domain_id)

        self.endpoint_base = f"{self.bucket}.cos.{auth.region}.myqcloud.com"
        self.endpoint = f"https://{self.endpoint_base}"
        self.viewpoint = (config.viewpoint or self.endpoint).rstrip("/")

    def get_endpoint(self) -> str:
        """API endpoint URL of the bucket."""
        return self.endpoint

    def get_viewpoint(self) -> str:
        """Public base URL of stored files."""
        return self.viewpoint

    def get_viewpoint_full_url(self, storage_path: str) -> str:
        """Public URL of a storage path."""
        return f"{self.viewpoint}/{self._remote_storage_path(storage_path)}"

    def is_path_usable(self, storage_path: str) -> bool:
        # COS creates "directories" on demand
        return True

    def directories_are_virtual(self) -> bool:
        return True

    # -------------------------------------------------------------------------
    # Write operations
    # -------------------------------------------------------------------------

    def create(self, params: CreateParams | Mapping[str, Any]) -> StatusValue:
        params = self._normalize(params, CreateParams)
        with log_context(backend=self.name, operation="create"):
            try:
                key = self._remote_storage_path(params.dst)
                self.client.put_object(
                    key,
                    params.content,
                    content_type=self._content_type(params.dst, params.headers),
                )
            except InvalidStoragePathError as e:
                return self._fatal("create", params.dst, str(e), ErrorKind.INVALID_PATH)
            except RemoteServiceError as e:
                return self._fatal("create", params.dst, e.message)
            return StatusValue.good()

    def store(self, params: StoreParams | Mapping[str, Any]) -> StatusValue:
        params = self._normalize(params, StoreParams)
        with log_context(backend=self.name, operation="store"):
            try:
                key = self._remote_storage_path(params.dst)
            except InvalidStoragePathError as e:
                return self._fatal("store", params.dst, str(e), ErrorKind.INVALID_PATH)

            if not self._can_overwrite_if_exists(params.dst, params.overwrite):
                return self._fatal(
                    "store", params.dst, "The target path already exists", ErrorKind.ALREADY_EXISTS
                )

            source = Path(params.src)
            try:
                meta = {
                    "sha1": file_sha1_base36(source),
                    "size": source.stat().st_size,
                }
            except OSError as e:
                return self._fatal(
                    "store", params.dst, f"Failed to read {params.src}: {e}", ErrorKind.UPLOAD_FAILED
                )

            try:
                uploaded = self.client.upload_with_metadata(source, key, self.endpoint_base, meta)
            except RemoteServiceError as e:
                return self._fatal("store", params.dst, e.message)
            if not uploaded:
                return self._fatal(
                    "store", params.dst, f"Failed to upload {params.src}", ErrorKind.UPLOAD_FAILED
                )
            return StatusValue.good()

    def copy(self, params: CopyParams | Mapping[str, Any]) -> StatusValue:
        params = self._normalize(params, CopyParams)
        with log_context(backend=self.name, operation="copy"):
            try:
                source_key = self._remote_storage_path(params.src)
                destination_key = self._remote_storage_path(params.dst)
                self.client.copy_object(source_key, destination_key)
            except InvalidStoragePathError as e:
                return self._fatal("copy", params.src, str(e), ErrorKind.INVALID_PATH)
            except RemoteServiceError as e:
                if params.ignore_missing_source:
                    return StatusValue.good()
                kind = ErrorKind.NOT_FOUND if e.is_not_found() else ErrorKind.REMOTE_SERVICE
                return self._fatal("copy", params.src, e.message, kind)
            return StatusValue.good()

    def delete(self, params: DeleteParams | Mapping[str, Any]) -> StatusValue:
        params = self._normalize(params, DeleteParams)
        with log_context(backend=self.name, operation="delete"):
            try:
                key = self._remote_storage_path(params.src)
                if not params.ignore_missing_source:
                    # DELETE succeeds on missing keys; HEAD reports NoSuchKey
                    self.client.head_object(key)
                self.client.delete_object(key)
            except InvalidStoragePathError as e:
                return self._fatal("delete", params.src, str(e), ErrorKind.INVALID_PATH)
            except RemoteServiceError as e:
                if e.is_not_found():
                    if params.ignore_missing_source:
                        return StatusValue.good()
                    return self._fatal("delete", params.src, e.message, ErrorKind.NOT_FOUND)
                return self._fatal("delete", params.src, e.message)

            if self.config.use_cdn:
                # Avoid users reaching deleted files through edge caches
                self._schedule_purge([f"{self.viewpoint}/{key}"])
            return StatusValue.good()

    # -------------------------------------------------------------------------
    # Read operations
    # -------------------------------------------------------------------------

    def get_file_stat(self, params: StatParams | Mapping[str, Any]) -> FileStat | None:
        params = self._normalize(params, StatParams)
        with log_context(backend=self.name, operation="stat"):
            logger.debug(f"Doing get_file_stat(): {params.src}")
            start = time.monotonic()
            try:
                key = self._remote_storage_path(params.src)
                head = self.client.head_object(key)
            except (InvalidStoragePathError, RemoteServiceError):
                return None
            duration_ms = int((time.monotonic() - start) * 1000)
            logger.remote_call("HEAD", key, duration_ms=duration_ms)

        size = head.size
        stored_size = head.metadata.get("size")
        if stored_size is not None and stored_size.isdigit():
            size = int(stored_size)

        return FileStat(
            size=size,
            mtime=to_mw_timestamp(head.last_modified),
            metadata=head.metadata,
        )

    def get_local_copy_multi(
        self, params: GetLocalCopyParams | Mapping[str, Any]
    ) -> dict[str, Path | None]:
        params = self._normalize(params, GetLocalCopyParams)
        tmp_files: dict[str, Path | None] = {}
        with log_context(backend=self.name, operation="get_local_copy"):
            for src in params.srcs:
                tmp_files[src] = self._get_local_copy(src)
        return tmp_files

    def _get_local_copy(self, src: str) -> Path | None:
        """Download one storage path, or None if it is unavailable."""
        try:
            key = self._remote_storage_path(src)
        except InvalidStoragePathError:
            return None

        ext = extension_from_path(src)
        try:
            fd, name = tempfile.mkstemp(
                prefix="localcopy_",
                suffix=f".{ext}" if ext else "",
                dir=self.tmp_dir,
            )
            os.close(fd)
        except OSError as e:
            logger.warning(f"Cannot create temporary file for {src}: {e}")
            return None
        tmp_file = Path(name)

        try:
            expected_size = self.client.get_object(key, tmp_file)
            file_size = tmp_file.stat().st_size
        except (RemoteServiceError, OSError) as e:
            logger.debug(f"Failed to download {src}: {e}")
            tmp_file.unlink(missing_ok=True)
            return None

        # Double check that the disk is not full/broken
        if file_size != expected_size:
            logger.debug(f"Try to download {src} but got {file_size}/{expected_size} bytes")
            tmp_file.unlink(missing_ok=True)
            return None
        return tmp_file

    # -------------------------------------------------------------------------
    # Virtual directories
    # -------------------------------------------------------------------------

    def directory_exists(self, container: str, directory: str) -> bool:
        """Check if at least one object lives below a directory.

        Raises:
            RemoteServiceError: If the listing fails
        """
        prefix = self.resolver.directory_prefix(container, directory)
        return next(iter(self.client.list_objects(prefix)), None) is not None

    def get_file_list(self, container: str, directory: str) -> list[str]:
        """List object paths below a directory, relative to it.

        Raises:
            RemoteServiceError: If the listing fails
        """
        prefix = self.resolver.directory_prefix(container, directory)
        files = []
        for key in self.client.list_objects(prefix):
            relative = key[len(prefix):]
            if relative:
                files.append(relative)
        return files

    def get_directory_list(
        self, container: str, directory: str, top_only: bool = False
    ) -> list[str]:
        """Derive directory entries from the file listing.

        Raises:
            RemoteServiceError: If the listing fails
        """
        dirs: list[str] = []
        for file_path in self.get_file_list(container, directory):
            # Directory marker objects end with a slash
            if file_path.endswith("/"):
                candidate = file_path[:-1]
            else:
                pos = file_path.rfind("/")
                if pos == -1:
                    # Leaf file
                    continue
                if top_only and file_path.count("/") != 1:
                    continue
                candidate = file_path[:pos]
            if candidate and candidate not in dirs:
                dirs.append(candidate)
        return dirs

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _remote_storage_path(self, storage_path: str) -> str:
        return self.resolver.remote_storage_path(storage_path)

    def _can_overwrite_if_exists(self, storage_path: str, overwrite: bool) -> bool:
        """False if the file exists but overwrite is not allowed."""
        if self.file_exists(storage_path):
            return overwrite
        return True

    @staticmethod
    def _content_type(storage_path: str, headers: Mapping[str, str]) -> str:
        for name, value in headers.items():
            if name.lower() == "content-type":
                return value
        return mimetypes.guess_type(storage_path)[0] or DEFAULT_CONTENT_TYPE

    def _schedule_purge(self, urls: list[str]) -> None:
        """Hand a CDN purge to the scheduler without affecting the caller."""
        try:
            self.scheduler.add_update(self._purge_job_factory(urls))
        except Exception:
            logger.exception("Failed to schedule CDN purge", extra_data={"urls": urls})

    def _fatal(
        self,
        operation: str,
        path: str,
        message: str,
        kind: ErrorKind = ErrorKind.REMOTE_SERVICE,
    ) -> StatusValue:
        logger.operation_failed(operation, path, message, kind.value)
        return StatusValue.fatal(message, kind)
