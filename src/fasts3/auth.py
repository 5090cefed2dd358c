import base64
import hashlib
from typing import Protocol

from botocore.auth import S3SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.config import Config
from botocore.credentials import Credentials
from httpx import Request

# Headers botocore produces while signing; everything else on the request is
# left as the caller built it.
SIGNING_HEADERS = (
    "X-Amz-Date",
    "X-Amz-Security-Token",
    "X-Amz-Content-SHA256",
    "Authorization",
)


class Signer(Protocol):
    def sign(self, service: str, request: Request) -> Request:
        ...


class SigV4Signer:
    """
    Signs requests with AWS Signature Version 4 using botocore.

    The request URL must already be in its final, encoded form: the path and
    query string are signed byte for byte as they appear on the request.
    """

    def __init__(
        self,
        *,
        access_key: str,
        secret_key: str,
        region: str,
        session_token: str | None = None,
    ):
        self.credentials = Credentials(access_key, secret_key, session_token)
        self.region = region
        self._client_config = Config(s3={"payload_signing_enabled": True})

    def sign(self, service: str, request: Request) -> Request:
        aws_request = AWSRequest(
            method=request.method,
            url=str(request.url),
            headers=dict(request.headers),
            data=request.content,
        )
        aws_request.context["client_config"] = self._client_config

        S3SigV4Auth(self.credentials, service, self.region).add_auth(aws_request)

        for name in SIGNING_HEADERS:
            if name in aws_request.headers:
                request.headers[name] = aws_request.headers[name]

        return request


def get_hash(value: str | bytes):
    encoded_value = value.encode("utf-8") if isinstance(value, str) else value
    hashed_value = hashlib.sha256(encoded_value).hexdigest()

    return hashed_value


def get_md5_base64(value: str | bytes):
    encoded_value = value.encode("utf-8") if isinstance(value, str) else value
    digest = hashlib.md5(encoded_value).digest()

    return base64.b64encode(digest).decode()
