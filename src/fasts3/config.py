"""Connection settings shared by the service and bucket clients."""

import os
from typing import Mapping

from pydantic import BaseModel, ConfigDict

from .exceptions import ConfigError

DEFAULT_REGION = "us-east-1"


class S3Config(BaseModel):
    """Credentials and endpoint of an object store. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    region: str = DEFAULT_REGION
    access_key: str
    secret_key: str
    session_token: str | None = None
    endpoint_url: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "S3Config":
        """
        Build a config from the usual AWS environment variables.

        `S3_ENDPOINT_URL` points the client at a non-AWS store (MinIO, etc.),
        in which case buckets are addressed path style.
        """
        env = os.environ if environ is None else environ

        access_key = env.get("AWS_ACCESS_KEY_ID")
        secret_key = env.get("AWS_SECRET_ACCESS_KEY")
        if not access_key or not secret_key:
            raise ConfigError(
                "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY must both be set"
            )

        return cls(
            region=env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION") or DEFAULT_REGION,
            access_key=access_key,
            secret_key=secret_key,
            session_token=env.get("AWS_SESSION_TOKEN") or None,
            endpoint_url=env.get("S3_ENDPOINT_URL") or None,
        )

    def service_endpoint(self) -> str:
        if self.endpoint_url:
            return self.endpoint_url.rstrip("/") + "/"
        return f"https://s3.{self.region}.amazonaws.com/"

    def bucket_endpoint(self, bucket: str) -> str:
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{bucket}/"
        return f"https://{bucket}.s3.{self.region}.amazonaws.com/"
