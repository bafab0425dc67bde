import functools
import sys
from enum import StrEnum
from typing import Optional

from dotenv import load_dotenv
from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings

load_dotenv(
    override=True,  # Override existing environment variables
)


class LogLevel(StrEnum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"
    TRACE = "trace"


class StorageBackend(StrEnum):
    SPACES = "spaces"
    R2 = "r2"
    CLOUDINARY = "cloudinary"


class Config(BaseSettings):
    # General configuration
    storage_backend: StorageBackend = StorageBackend.R2  # Options: "spaces", "r2", "cloudinary"
    default_folder: str = "uploads"  # Folder used when the caller gives none
    signed_url_default_ttl: int = 3600  # Seconds a signed URL stays valid
    compensate_failed_uploads: bool = True  # Delete stored siblings when a batch upload fails

    # DigitalOcean Spaces configuration
    do_spaces_endpoint: str = ""  # e.g. https://nyc3.digitaloceanspaces.com
    do_spaces_region: str = ""
    do_spaces_access_key: str = ""
    do_spaces_secret_key: str = ""
    do_spaces_bucket: str = ""

    # Cloudflare R2 configuration
    cloudflare_r2_account_id: str = ""
    cloudflare_r2_access_key_id: str = ""
    cloudflare_r2_secret_access_key: str = ""
    cloudflare_r2_bucket_name: str = ""
    cloudflare_r2_public_url: Optional[str] = None  # Custom domain or r2.dev URL

    # Cloudinary configuration
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""

    # Upload limits
    max_file_size_mb: int = 30  # Maximum file size in MB
    max_files_per_upload: int = 10  # Maximum files per upload request

    # Environment configuration
    environment: str = "development"  # Options: "development", "production"
    cors_origin: str = "*"  # Comma separated list of allowed origins

    # FastAPI configuration
    fastapi_host: str = "localhost"
    fastapi_port: int = 8000
    filegate_log_level: LogLevel = LogLevel.INFO

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    @field_validator("filegate_log_level", mode="before")
    @classmethod
    def validate_filegate_log_level(cls, v) -> LogLevel:
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            # Try to find the enum by value (case-insensitive)
            v_lower = v.lower()
            for level in LogLevel:
                if level.value.lower() == v_lower:
                    return level
            valid_levels = [level.value for level in LogLevel]
            raise ValueError(
                f"filegate_log_level must be one of {valid_levels}, got '{v}'"
            )
        raise ValueError(
            f"filegate_log_level must be a string or LogLevel enum, got {type(v)}"
        )

    @field_validator("storage_backend", mode="before")
    @classmethod
    def validate_storage_backend(cls, v) -> StorageBackend:
        if isinstance(v, str):
            v = v.strip().lower()
        return StorageBackend(v)

    @field_validator("cloudflare_r2_public_url", mode="after")
    @classmethod
    def strip_public_url(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        return v.rstrip("/")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


@functools.lru_cache(maxsize=1)
def get_config() -> Config:
    try:
        return Config()
    except ValidationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Unexpected error while loading configuration: {e}", file=sys.stderr)
        sys.exit(1)
