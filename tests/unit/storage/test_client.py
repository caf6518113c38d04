"""Tests for QCloudAPIClient."""

from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest
from minio.error import S3Error, ServerError
from urllib3.exceptions import ProtocolError

from qcloud_storage.core.errors import RemoteServiceError
from qcloud_storage.storage.client import QCloudAPIClient

HOST = "wiki-1250000000.cos.ap-guangzhou.myqcloud.com"


class _StubS3Error(S3Error):
    """S3Error carrying only a code and a message."""

    def __init__(self, code: str, message: str) -> None:
        Exception.__init__(self, message)
        self._stub_code = code
        self._stub_message = message

    @property
    def code(self) -> str:
        return self._stub_code

    @property
    def message(self) -> str:
        return self._stub_message


def _client(auth_config, minio_client=None, handler=None) -> QCloudAPIClient:
    http_client = httpx.Client(transport=httpx.MockTransport(handler)) if handler else None
    return QCloudAPIClient(
        auth_config,
        "wiki-1250000000",
        minio_client=minio_client or MagicMock(),
        http_client=http_client,
    )


class TestSdkDelegation:
    """Tests for operations delegated to the SDK."""

    def test_default_endpoint(self, auth_config) -> None:
        """Test the S3 endpoint and bucket host derive from the region."""
        client = QCloudAPIClient(auth_config, "wiki-1250000000")
        assert client.endpoint == "cos.ap-guangzhou.myqcloud.com"
        assert client.bucket_host == HOST

    def test_put_object(self, auth_config) -> None:
        """Test in-memory content is sent with its length."""
        minio = MagicMock()
        client = _client(auth_config, minio)

        client.put_object("a/ab/File.txt", b"hello", content_type="text/plain")

        kwargs = minio.put_object.call_args.kwargs
        assert kwargs["bucket_name"] == "wiki-1250000000"
        assert kwargs["object_name"] == "a/ab/File.txt"
        assert kwargs["length"] == 5
        assert kwargs["data"].read() == b"hello"
        assert kwargs["content_type"] == "text/plain"

    def test_head_object_extracts_metadata(self, auth_config) -> None:
        """Test custom metadata headers are collected without their prefix."""
        stat = MagicMock()
        stat.size = 2048
        stat.last_modified = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
        stat.metadata = {
            "Content-Type": "image/png",
            "x-cos-meta-sha1": "abc",
            "X-Amz-Meta-Size": "2048",
        }
        minio = MagicMock()
        minio.stat_object.return_value = stat
        client = _client(auth_config, minio)

        head = client.head_object("a/ab/File.png")

        assert head.size == 2048
        assert head.last_modified == stat.last_modified
        assert head.metadata == {"sha1": "abc", "size": "2048"}

    def test_copy_object_uses_copy_source(self, auth_config) -> None:
        """Test server-side copy inside the bucket."""
        minio = MagicMock()
        client = _client(auth_config, minio)

        client.copy_object("a/src.png", "b/dst.png")

        kwargs = minio.copy_object.call_args.kwargs
        assert kwargs["object_name"] == "b/dst.png"
        assert kwargs["source"].bucket_name == "wiki-1250000000"
        assert kwargs["source"].object_name == "a/src.png"

    def test_delete_object(self, auth_config) -> None:
        """Test delete goes to remove_object."""
        minio = MagicMock()
        client = _client(auth_config, minio)

        client.delete_object("a/ab/File.png")

        minio.remove_object.assert_called_once_with(
            bucket_name="wiki-1250000000", object_name="a/ab/File.png"
        )

    def test_list_objects_is_recursive(self, auth_config) -> None:
        """Test listing yields every key under the prefix."""
        objects = [MagicMock(object_name="thumb/a/1.png"), MagicMock(object_name="thumb/b/2.png")]
        minio = MagicMock()
        minio.list_objects.return_value = iter(objects)
        client = _client(auth_config, minio)

        keys = list(client.list_objects("thumb/"))

        assert keys == ["thumb/a/1.png", "thumb/b/2.png"]
        minio.list_objects.assert_called_once_with(
            bucket_name="wiki-1250000000", prefix="thumb/", recursive=True
        )

    def test_get_object_writes_file(self, auth_config, tmp_path: Path) -> None:
        """Test downloads stream into the target file."""
        response = MagicMock()
        response.stream.return_value = iter([b"abc", b"def"])
        response.headers = {"Content-Length": "6"}
        minio = MagicMock()
        minio.get_object.return_value = response
        client = _client(auth_config, minio)
        target = tmp_path / "copy.bin"

        length = client.get_object("a/file.bin", target)

        assert length == 6
        assert target.read_bytes() == b"abcdef"
        response.close.assert_called_once()
        response.release_conn.assert_called_once()

    def test_service_errors_keep_code_and_message(self, auth_config) -> None:
        """Test SDK errors surface as RemoteServiceError."""
        minio = MagicMock()
        minio.stat_object.side_effect = _StubS3Error("NoSuchKey", "The specified key does not exist.")
        client = _client(auth_config, minio)

        with pytest.raises(RemoteServiceError) as exc_info:
            client.head_object("missing.png")

        assert exc_info.value.code == "NoSuchKey"
        assert exc_info.value.message == "The specified key does not exist."
        assert exc_info.value.is_not_found()

    def test_listing_errors_are_translated(self, auth_config) -> None:
        """Test errors raised while iterating a listing are translated."""
        minio = MagicMock()
        minio.list_objects.side_effect = _StubS3Error("AccessDenied", "Access Denied.")
        client = _client(auth_config, minio)

        with pytest.raises(RemoteServiceError, match="Access Denied"):
            list(client.list_objects(""))


class TestUploadWithMetadata:
    """Tests for the signed metadata upload."""

    def test_upload_bytes(self, auth_config) -> None:
        """Test a buffer upload carries metadata, length and signature."""
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200)

        client = _client(auth_config, handler=handler)

        ok = client.upload_with_metadata(b"hello world", "a/ab/File.txt", HOST, {"sha1": "xyz", "size": 11})

        assert ok is True
        request = captured[0]
        assert request.method == "PUT"
        assert str(request.url) == f"https://{HOST}/a/ab/File.txt"
        assert request.headers["x-cos-meta-sha1"] == "xyz"
        assert request.headers["x-cos-meta-size"] == "11"
        assert request.headers["host"] == HOST
        assert request.headers["content-length"] == "11"
        assert request.headers["content-type"] == "text/plain"
        assert request.content == b"hello world"
        authorization = request.headers["authorization"]
        assert authorization.startswith("q-sign-algorithm=sha1&q-ak=AKID&")
        assert "q-header-list=content-length;content-type;host;x-cos-meta-sha1;x-cos-meta-size" in authorization

    def test_upload_file_streams_content(self, auth_config, tmp_path: Path) -> None:
        """Test a path upload sends the file body with its disk size."""
        source = tmp_path / "photo.png"
        source.write_bytes(b"\x89PNG" + b"\x00" * 100)
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200)

        client = _client(auth_config, handler=handler)

        assert client.upload_with_metadata(source, "thumb/photo.png", HOST, {}) is True
        request = captured[0]
        assert request.headers["content-length"] == "104"
        assert request.headers["content-type"] == "image/png"
        assert request.content == source.read_bytes()

    def test_key_is_url_quoted(self, auth_config) -> None:
        """Test keys with spaces are percent-encoded in the URL."""
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200)

        client = _client(auth_config, handler=handler)
        client.upload_with_metadata(b"x", "a/My File.txt", HOST, {})

        assert captured[0].url.raw_path == b"/a/My%20File.txt"

    @pytest.mark.parametrize("status_code", [201, 204, 403, 500])
    def test_non_200_is_failure(self, auth_config, status_code: int) -> None:
        """Test any status other than 200 fails, including 2xx."""
        client = _client(auth_config, handler=lambda request: httpx.Response(status_code))
        assert client.upload_with_metadata(b"x", "a.txt", HOST, {}) is False

    def test_transport_error_raises_remote_error(self, auth_config) -> None:
        """Test connection failures become RemoteServiceError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused")

        client = _client(auth_config, handler=handler)

        with pytest.raises(RemoteServiceError, match="Connection refused"):
            client.upload_with_metadata(b"x", "a.txt", HOST, {})


class TestNonS3Failures:
    """Tests for failures that carry no S3 error body."""

    def test_server_error_is_translated(self, auth_config) -> None:
        """Test a 5xx without an S3 error document becomes RemoteServiceError."""
        minio = MagicMock()
        minio.stat_object.side_effect = ServerError("server failed with HTTP status code 503", 503)
        client = _client(auth_config, minio)

        with pytest.raises(RemoteServiceError, match="503") as exc_info:
            client.head_object("a/ab/File.png")

        assert exc_info.value.code is None
        assert not exc_info.value.is_not_found()

    def test_broken_download_stream(self, auth_config, tmp_path: Path) -> None:
        """Test a connection reset mid-download becomes RemoteServiceError."""
        response = MagicMock()
        response.stream.side_effect = ProtocolError("Connection broken")
        minio = MagicMock()
        minio.get_object.return_value = response
        client = _client(auth_config, minio)

        with pytest.raises(RemoteServiceError, match="Connection broken"):
            client.get_object("a/file.bin", tmp_path / "copy.bin")

        response.close.assert_called_once()
        response.release_conn.assert_called_once()

    def test_transport_error_while_listing(self, auth_config) -> None:
        """Test connection failures during a listing are translated."""
        minio = MagicMock()
        minio.list_objects.side_effect = ProtocolError("Connection aborted")
        client = _client(auth_config, minio)

        with pytest.raises(RemoteServiceError):
            list(client.list_objects("thumb/"))
