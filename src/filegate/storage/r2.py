# filegate/storage/r2.py
from typing import Any, Optional
from urllib.parse import quote

from .base import DEFAULT_SIGNED_URL_TTL
from .s3 import S3Store

R2_DOMAIN = "r2.cloudflarestorage.com"


class R2Store(S3Store):
    """
    Cloudflare R2 (S3-compatible).
    Buckets are private: the returned URL only serves content when a public
    domain is configured for the bucket, otherwise sign() is the read path.
    """

    name = "Cloudflare R2"

    def __init__(
        self,
        account_id: str,
        access_key_id: str,
        secret_access_key: str,
        bucket: str,
        public_url: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client: Any = None,
        default_ttl: int = DEFAULT_SIGNED_URL_TTL,
    ):
        self.account_id = account_id
        super().__init__(
            bucket=bucket,
            endpoint_url=endpoint_url or f"https://{account_id}.{R2_DOMAIN}",
            region="auto",
            access_key=access_key_id,
            secret_key=secret_access_key,
            public_url=public_url,
            client=client,
            default_ttl=default_ttl,
        )

    def public_url(self, key: str) -> str:
        path = quote(key, safe="/")
        if self.public_base:
            return f"{self.public_base}/{path}"
        return f"https://{self.bucket}.{self.account_id}.{R2_DOMAIN}/{path}"
