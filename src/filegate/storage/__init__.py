from typing import Optional

from src.filegate.configs.config import Config, StorageBackend, get_config
from src.filegate.error_handling.exceptions import ConfigurationError
from .base import BaseStore
from .cloudinary import CloudinaryStore
from .r2 import R2Store
from .s3 import S3Store
from .spaces import SpacesStore


def _require(config: Config, *fields: str) -> None:
    missing = [name.upper() for name in fields if not getattr(config, name)]
    if missing:
        raise ConfigurationError(
            f"Storage backend '{config.storage_backend.value}' requires environment variables: "
            f"{', '.join(missing)}"
        )


def create_store(config: Optional[Config] = None) -> BaseStore:
    """Build the storage adapter selected by configuration."""
    config = config or get_config()
    backend = config.storage_backend
    ttl = config.signed_url_default_ttl

    if backend == StorageBackend.SPACES:
        _require(
            config,
            "do_spaces_endpoint",
            "do_spaces_region",
            "do_spaces_access_key",
            "do_spaces_secret_key",
            "do_spaces_bucket",
        )
        return SpacesStore(
            endpoint=config.do_spaces_endpoint,
            region=config.do_spaces_region,
            access_key=config.do_spaces_access_key,
            secret_key=config.do_spaces_secret_key,
            bucket=config.do_spaces_bucket,
            default_ttl=ttl,
        )
    elif backend == StorageBackend.R2:
        _require(
            config,
            "cloudflare_r2_account_id",
            "cloudflare_r2_access_key_id",
            "cloudflare_r2_secret_access_key",
            "cloudflare_r2_bucket_name",
        )
        return R2Store(
            account_id=config.cloudflare_r2_account_id,
            access_key_id=config.cloudflare_r2_access_key_id,
            secret_access_key=config.cloudflare_r2_secret_access_key,
            bucket=config.cloudflare_r2_bucket_name,
            public_url=config.cloudflare_r2_public_url,
            default_ttl=ttl,
        )
    elif backend == StorageBackend.CLOUDINARY:
        _require(config, "cloudinary_cloud_name", "cloudinary_api_key", "cloudinary_api_secret")
        return CloudinaryStore(
            cloud_name=config.cloudinary_cloud_name,
            api_key=config.cloudinary_api_key,
            api_secret=config.cloudinary_api_secret,
            default_ttl=ttl,
        )
    else:
        raise ConfigurationError(f"Unknown storage backend: {backend}")


__all__ = [
    "BaseStore",
    "S3Store",
    "SpacesStore",
    "R2Store",
    "CloudinaryStore",
    "create_store",
]
