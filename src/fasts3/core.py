from typing import Dict, Iterable

from httpx import AsyncBaseTransport, AsyncClient, Request, Response
from structlog import get_logger

from .auth import SigV4Signer, Signer, get_hash
from .config import S3Config
from .encoding import encode_query_component, encode_uri_s3
from .enums import Service
from .exceptions import ServiceError

logger = get_logger()


class AwsClient:
    def __init__(
        self,
        *,
        config: S3Config,
        service: Service,
        endpoint: str,
        signer: Signer | None = None,
        transport: AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.service = service
        self.endpoint = endpoint
        self.signer = signer or SigV4Signer(
            access_key=config.access_key,
            secret_key=config.secret_key,
            region=config.region,
            session_token=config.session_token,
        )
        self.transport = transport

        self._httpx = None
        self._owns_httpx = False

    async def connect(self):
        assert self._httpx is None, "AwsClient already connected"
        self._httpx = AsyncClient(timeout=None, transport=self.transport)
        self._owns_httpx = True

    async def disconnect(self):
        assert self._httpx is not None, "AwsClient is not connected"
        if self._owns_httpx:
            await self._httpx.aclose()
        self._httpx = None
        self._owns_httpx = False

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, *exc_info):
        await self.disconnect()

    def _share_connection(self, other: "AwsClient"):
        """Reuse the open http client of `other` without taking ownership."""
        if other._httpx is not None:
            self._httpx = other._httpx
            self._owns_httpx = False

    def build_request(
        self,
        *,
        method: str,
        path: str = "/",
        params: Dict[str, str] | None = None,
        headers: Dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> Request:
        url = self.endpoint
        if path and path != "/":
            url += encode_uri_s3(path)

        querystring = build_querystring(params.items() if params else ())
        if querystring:
            url = f"{url}?{querystring}"

        request = Request(
            method=method,
            url=url,
            headers=headers or {},
            content=body,
        )
        request = self.signer.sign(self.service.value, request)

        request.headers["x-amz-content-sha256"] = get_hash(body or b"")
        if body is not None:
            request.headers["content-length"] = str(len(body))

        return request

    async def _make_request(
        self,
        *,
        method: str,
        path: str = "/",
        params: Dict[str, str] | None = None,
        headers: Dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> Response:
        assert isinstance(self._httpx, AsyncClient), "AwsClient is not connected"

        request = self.build_request(
            method=method, path=path, params=params, headers=headers, body=body
        )
        logger.debug("s3 request", method=method, url=str(request.url))

        res = await self._httpx.send(request)

        logger.debug(
            "s3 response",
            method=method,
            url=str(request.url),
            status_code=res.status_code,
        )
        return res

    async def _raise_for_status(
        self, res: Response, message: str, *, expected: Iterable[int] = (200,)
    ):
        if res.status_code in expected:
            return

        body = (await res.aread()).decode(errors="replace")
        logger.error(
            "HttpRequest error",
            status_code=res.status_code,
            reason=res.reason_phrase,
            context=message,
        )
        raise ServiceError(
            message, status=res.status_code, reason=res.reason_phrase, body=body
        )


def build_querystring(params: Iterable[tuple[str, str]]) -> str:
    """
    Render query parameters in the order given.

    Keys and values are encoded the way the signer expects them, so the
    query string is signed exactly as sent.
    """
    parts = []
    for k, v in params:
        if v is None:
            continue
        parts.append(f"{encode_query_component(k)}={encode_query_component(str(v))}")

    return "&".join(parts)
