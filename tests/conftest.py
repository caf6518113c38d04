"""Pytest configuration and fixtures for tests."""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture
def auth_config():
    """Test credentials."""
    from qcloud_storage.core.config import QCloudAuthConfig

    return QCloudAuthConfig(region="ap-guangzhou", secret_id="AKID", secret_key="SECRET")


@pytest.fixture
def backend_config():
    """Backend settings without CDN purge."""
    from qcloud_storage.core.config import BackendConfig

    return BackendConfig(name="qcloud-backend", bucket="wiki-1250000000", domain_id="wikidb")


@pytest.fixture
def mock_cos_client():
    """Mock QCloudAPIClient with an empty bucket."""
    from qcloud_storage.storage.client import QCloudAPIClient

    client = MagicMock(spec=QCloudAPIClient)
    client.list_objects.return_value = iter([])
    client.upload_with_metadata.return_value = True
    return client


@pytest.fixture
def deferred_queue():
    """In-process deferred update queue."""
    from qcloud_storage.jobs.deferred import DeferredUpdateQueue

    return DeferredUpdateQueue()


@pytest.fixture
def make_backend(backend_config, auth_config, mock_cos_client, deferred_queue, tmp_path):
    """Factory for backends wired to the mock client."""
    from qcloud_storage.storage.backend import QCloudFileBackend

    def _make(**overrides):
        config = backend_config.model_copy(update=overrides)
        return QCloudFileBackend(
            config,
            auth_config,
            client=mock_cos_client,
            scheduler=deferred_queue,
            tmp_dir=tmp_path,
        )

    return _make


@pytest.fixture
def public_path():
    """Storage path in the public container."""
    return "mwstore://qcloud-backend/local-public/a/ab/Example.png"


@pytest.fixture
def thumb_path():
    """Storage path in the thumb container."""
    return "mwstore://qcloud-backend/local-thumb/a/ab/Example.png/120px-Example.png"
