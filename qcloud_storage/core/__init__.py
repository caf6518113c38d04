"""Core contract module for the COS file backend.

This module provides:
- Configuration: QCloudAuthConfig and BackendConfig
- Error classification: ErrorKind, StatusValue and the exception family
"""

from .config import BackendConfig, QCloudAuthConfig, load_auth_config, load_backend_config
from .errors import (
    ConfigurationError,
    ContainerResolutionError,
    ErrorKind,
    InvalidStoragePathError,
    QCloudStorageError,
    RemoteServiceError,
    StatusValue,
)

__all__ = [
    "BackendConfig",
    "QCloudAuthConfig",
    "load_auth_config",
    "load_backend_config",
    # Errors
    "QCloudStorageError",
    "ConfigurationError",
    "ContainerResolutionError",
    "InvalidStoragePathError",
    "RemoteServiceError",
    "ErrorKind",
    "StatusValue",
]
