# filegate/storage/spaces.py
from typing import Any
from urllib.parse import quote

from .base import DEFAULT_SIGNED_URL_TTL
from .s3 import S3Store


class SpacesStore(S3Store):
    """
    DigitalOcean Spaces.
    Objects are written public-read and addressed as
    <endpoint>/<bucket>/<key>.
    """

    name = "DigitalOcean Spaces"

    def __init__(
        self,
        endpoint: str,
        region: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        client: Any = None,
        default_ttl: int = DEFAULT_SIGNED_URL_TTL,
    ):
        super().__init__(
            bucket=bucket,
            endpoint_url=endpoint,
            region=region,
            access_key=access_key,
            secret_key=secret_key,
            acl="public-read",
            addressing_style="virtual",
            client=client,
            default_ttl=default_ttl,
        )

    def public_url(self, key: str) -> str:
        return f"{self.endpoint_url}/{self.bucket}/{quote(key, safe='/')}"
