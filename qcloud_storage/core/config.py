"""Configuration for the COS file backend.

Values come from explicit arguments first, then environment variables.
A .env file can be loaded before reading the environment.

Environment variables:
    QCLOUD_REGION: COS/CDN region, e.g. ap-guangzhou
    QCLOUD_SECRET_ID: API secret id
    QCLOUD_SECRET_KEY: API secret key
    QCLOUD_BUCKET: Bucket name, e.g. examplebucket-1250000000
    QCLOUD_VIEWPOINT: Public base URL (default: the bucket endpoint)
    QCLOUD_DOMAIN_ID: Wiki domain id prefixed to container names
    QCLOUD_USE_CDN: Purge the CDN after deletes ("true"/"false")
    QCLOUD_BACKEND_NAME: Backend name used in storage paths (default: qcloud-backend)
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigurationError


class QCloudAuthConfig(BaseModel):
    """Credentials shared by the COS and CDN clients."""

    model_config = ConfigDict(frozen=True)

    region: str = Field(..., min_length=1, description="Region, e.g. ap-guangzhou")
    secret_id: str = Field(..., min_length=1, description="API secret id")
    secret_key: str = Field(..., min_length=1, description="API secret key")


class BackendConfig(BaseModel):
    """Settings for a single file backend instance."""

    name: str = Field(default="qcloud-backend", description="Backend name in storage paths")
    bucket: str = Field(..., min_length=1, description="COS bucket name")
    viewpoint: str | None = Field(
        default=None, description="Public base URL, defaults to the bucket endpoint"
    )
    domain_id: str | None = Field(
        default=None, description="Wiki domain id prefixed to container names"
    )
    use_cdn: bool = Field(default=False, description="Purge CDN cache after deletes")


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def load_auth_config(
    region: str | None = None,
    secret_id: str | None = None,
    secret_key: str | None = None,
    env_file: Path | None = None,
) -> QCloudAuthConfig:
    """Build credentials from arguments or the environment.

    Raises:
        ConfigurationError: If region, secret id or secret key is missing
    """
    if env_file is not None:
        load_dotenv(env_file)

    region = region or os.getenv("QCLOUD_REGION")
    secret_id = secret_id or os.getenv("QCLOUD_SECRET_ID")
    secret_key = secret_key or os.getenv("QCLOUD_SECRET_KEY")

    if not region:
        raise ConfigurationError("You have not configured \"QCloudAuth['region']\"")
    if not secret_id:
        raise ConfigurationError("You have not configured \"QCloudAuth['secretId']\"")
    if not secret_key:
        raise ConfigurationError("You have not configured \"QCloudAuth['secretKey']\"")

    return QCloudAuthConfig(region=region, secret_id=secret_id, secret_key=secret_key)


def load_backend_config(
    name: str | None = None,
    bucket: str | None = None,
    viewpoint: str | None = None,
    domain_id: str | None = None,
    use_cdn: bool | None = None,
    env_file: Path | None = None,
) -> BackendConfig:
    """Build backend settings from arguments or the environment.

    Raises:
        ConfigurationError: If no bucket is configured
    """
    if env_file is not None:
        load_dotenv(env_file)

    bucket = bucket or os.getenv("QCLOUD_BUCKET")
    if not bucket:
        raise ConfigurationError("Need bucket config key")

    return BackendConfig(
        name=name or os.getenv("QCLOUD_BACKEND_NAME") or "qcloud-backend",
        bucket=bucket,
        viewpoint=viewpoint or os.getenv("QCLOUD_VIEWPOINT") or None,
        domain_id=domain_id or os.getenv("QCLOUD_DOMAIN_ID") or None,
        use_cdn=use_cdn if use_cdn is not None else _env_flag("QCLOUD_USE_CDN"),
    )
