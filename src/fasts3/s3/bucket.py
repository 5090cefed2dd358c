from datetime import datetime, timezone
from email.utils import format_datetime
from typing import AsyncIterable, AsyncIterator, Dict, Set
from urllib.parse import urlencode

import aiofiles
from httpx import AsyncBaseTransport
from structlog import get_logger

from fasts3.auth import Signer, get_md5_base64
from fasts3.config import S3Config
from fasts3.core import AwsClient
from fasts3.encoding import encode_uri_s3
from fasts3.enums import Service

from .models import (
    CopyObjectOptions,
    DeleteMarkerEntry,
    DeleteObjectResponse,
    GetObjectOptions,
    GetObjectResponse,
    HeadObjectResponse,
    ListObjectsResponse,
    ListObjectVersionsResponse,
    ObjectVersion,
    Policy,
    PolicyStatus,
    PutObjectOptions,
    PutObjectResponse,
    S3Object,
    VersioningConfiguration,
)
from .pagination import ListingCursor
from .parsing import (
    dump_policy,
    parse_list_object_versions_response,
    parse_list_objects_response,
    parse_object_headers,
    parse_policy,
    parse_policy_status,
    parse_versioning_configuration,
    render_versioning_configuration,
)
from .pool import WorkerPool

logger = get_logger()


def http_date(value: datetime) -> str:
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def iso8601(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def grant_headers(options) -> Dict[str, str]:
    """ACL headers shared by object uploads and bucket creation."""
    headers = {}
    if options.acl:
        headers["x-amz-acl"] = options.acl
    if options.grant_full_control:
        headers["x-amz-grant-full-control"] = options.grant_full_control
    if options.grant_read:
        headers["x-amz-grant-read"] = options.grant_read
    if options.grant_read_acp:
        headers["x-amz-grant-read-acp"] = options.grant_read_acp
    if getattr(options, "grant_write", None):
        headers["x-amz-grant-write"] = options.grant_write
    if options.grant_write_acp:
        headers["x-amz-grant-write-acp"] = options.grant_write_acp
    return headers


def object_headers(options: PutObjectOptions) -> Dict[str, str]:
    headers = grant_headers(options)
    if options.cache_control:
        headers["Cache-Control"] = options.cache_control
    if options.content_disposition:
        headers["Content-Disposition"] = options.content_disposition
    if options.content_encoding:
        headers["Content-Encoding"] = options.content_encoding
    if options.content_language:
        headers["Content-Language"] = options.content_language
    if options.content_type:
        headers["Content-Type"] = options.content_type
    if options.expires:
        headers["Expires"] = http_date(options.expires)
    if options.storage_class:
        headers["x-amz-storage-class"] = options.storage_class
    if options.website_redirect_location:
        headers["x-amz-website-redirect-location"] = options.website_redirect_location
    if options.tags:
        headers["x-amz-tagging"] = urlencode(options.tags)
    if options.lock_mode:
        headers["x-amz-object-lock-mode"] = options.lock_mode
    if options.lock_retain_until:
        headers["x-amz-object-lock-retain-until-date"] = iso8601(
            options.lock_retain_until
        )
    if options.legal_hold is not None:
        headers["x-amz-object-lock-legal-hold"] = "ON" if options.legal_hold else "OFF"
    if options.meta:
        for k, v in options.meta.items():
            headers[f"x-amz-meta-{k}"] = v
    return headers


def read_request(options: GetObjectOptions | None) -> tuple[Dict, Dict]:
    """Query parameters and headers for GET and HEAD object requests."""
    params: Dict[str, str] = {}
    headers: Dict[str, str] = {}
    if options is None:
        return params, headers

    if options.if_match:
        headers["If-Match"] = options.if_match
    if options.if_none_match:
        headers["If-None-Match"] = options.if_none_match
    if options.if_modified_since:
        headers["If-Modified-Since"] = http_date(options.if_modified_since)
    if options.if_unmodified_since:
        headers["If-Unmodified-Since"] = http_date(options.if_unmodified_since)

    if options.part_number:
        params["partNumber"] = str(options.part_number)
    if options.version_id:
        params["versionId"] = options.version_id
    response_overrides = {
        "response-cache-control": options.response_cache_control,
        "response-content-disposition": options.response_content_disposition,
        "response-content-encoding": options.response_content_encoding,
        "response-content-language": options.response_content_language,
        "response-content-type": options.response_content_type,
        "response-expires": options.response_expires,
    }
    for k, v in response_overrides.items():
        if v:
            params[k] = v

    return params, headers


async def _with_keys(objects: AsyncIterable[S3Object]) -> AsyncIterator[S3Object]:
    async for s3_object in objects:
        if s3_object.key:
            yield s3_object


class S3Bucket(AwsClient):
    def __init__(
        self,
        *,
        config: S3Config,
        bucket: str,
        signer: Signer | None = None,
        transport: AsyncBaseTransport | None = None,
    ):
        super().__init__(
            config=config,
            service=Service.S3,
            endpoint=config.bucket_endpoint(bucket),
            signer=signer,
            transport=transport,
        )
        self.bucket = bucket

    async def get_object(
        self, key: str, options: GetObjectOptions | None = None
    ) -> GetObjectResponse | None:
        params, headers = read_request(options)
        res = await self._make_request(
            method="GET", path=key, params=params, headers=headers
        )
        if res.status_code == 404:
            return None
        await self._raise_for_status(res, f"Failed to get object {key!r}")

        return GetObjectResponse(**parse_object_headers(res.headers), body=res.content)

    async def head_object(
        self, key: str, options: GetObjectOptions | None = None
    ) -> HeadObjectResponse | None:
        params, headers = read_request(options)
        res = await self._make_request(
            method="HEAD", path=key, params=params, headers=headers
        )
        if res.status_code == 404:
            return None
        await self._raise_for_status(res, f"Failed to head object {key!r}")

        return HeadObjectResponse(**parse_object_headers(res.headers))

    async def download_object(
        self, key: str, filepath: str, options: GetObjectOptions | None = None
    ) -> GetObjectResponse | None:
        """
        Get an object and write its body to `filepath`.

        Nothing is written when the object does not exist.
        """
        s3_object = await self.get_object(key, options)
        if s3_object is None:
            return None

        async with aiofiles.open(filepath, "wb") as f:
            await f.write(s3_object.body)

        return s3_object

    async def list_objects(
        self,
        *,
        prefix: str | None = None,
        delimiter: str | None = None,
        encoding_type: str | None = None,
        max_keys: int | None = None,
        continuation_token: str | None = None,
        start_after: str | None = None,
    ) -> ListObjectsResponse | None:
        # list-type has to be the first parameter
        params = {"list-type": "2"}
        if delimiter:
            params["delimiter"] = delimiter
        if encoding_type:
            params["encoding-type"] = encoding_type
        if max_keys:
            params["max-keys"] = str(max_keys)
        if prefix:
            params["prefix"] = prefix
        if continuation_token:
            params["continuation-token"] = continuation_token
        if start_after:
            params["start-after"] = start_after

        res = await self._make_request(method="GET", params=params)
        if res.status_code == 404:
            return None
        await self._raise_for_status(res, "Failed to list objects")

        return parse_list_objects_response(res.text)

    def list_all_objects(
        self,
        *,
        batch_size: int = 1000,
        prefix: str | None = None,
        delimiter: str | None = None,
    ) -> ListingCursor[S3Object, str]:
        """
        Cursor over every object in the bucket, fetched `batch_size` at a time.

        Each call starts a new listing from the beginning.
        """

        async def fetch_page(continuation_token: str | None):
            page = await self.list_objects(
                prefix=prefix,
                delimiter=delimiter,
                max_keys=batch_size,
                continuation_token=continuation_token,
            )
            if page is None:
                return None
            return page.contents, page.next_continuation_token

        return ListingCursor(fetch_page)

    async def list_object_versions(
        self,
        *,
        prefix: str | None = None,
        delimiter: str | None = None,
        encoding_type: str | None = None,
        max_keys: int | None = None,
        key_marker: str | None = None,
        version_id_marker: str | None = None,
    ) -> ListObjectVersionsResponse | None:
        params = {"versions": ""}
        if delimiter:
            params["delimiter"] = delimiter
        if encoding_type:
            params["encoding-type"] = encoding_type
        if key_marker:
            params["key-marker"] = key_marker
        if max_keys:
            params["max-keys"] = str(max_keys)
        if prefix:
            params["prefix"] = prefix
        if version_id_marker:
            params["version-id-marker"] = version_id_marker

        res = await self._make_request(method="GET", params=params)
        if res.status_code == 404:
            return None
        await self._raise_for_status(res, "Failed to list object versions")

        return parse_list_object_versions_response(res.text)

    def list_all_object_versions(
        self, *, batch_size: int = 1000, prefix: str | None = None
    ) -> ListingCursor[ObjectVersion | DeleteMarkerEntry, tuple]:
        """Cursor over every version; each page yields versions, then delete markers."""

        async def fetch_page(markers: tuple | None):
            key_marker, version_id_marker = markers or (None, None)
            page = await self.list_object_versions(
                prefix=prefix,
                max_keys=batch_size,
                key_marker=key_marker,
                version_id_marker=version_id_marker,
            )
            if page is None:
                return None

            next_markers = None
            if page.next_key_marker is not None:
                next_markers = (page.next_key_marker, page.next_version_id_marker)
            return [*page.versions, *page.delete_markers], next_markers

        return ListingCursor(fetch_page)

    async def put_object(
        self, key: str, body: bytes, options: PutObjectOptions | None = None
    ) -> PutObjectResponse:
        headers = object_headers(options) if options else {}

        res = await self._make_request(
            method="PUT", path=key, headers=headers, body=body
        )
        await self._raise_for_status(res, f"Failed to put object {key!r}")

        return PutObjectResponse(
            etag=res.headers["etag"].strip('"'),
            version_id=res.headers.get("x-amz-version-id"),
        )

    async def put_object_from_file(
        self, key: str, filepath: str, options: PutObjectOptions | None = None
    ) -> PutObjectResponse:
        async with aiofiles.open(filepath, "rb") as f:
            body = await f.read()

        return await self.put_object(key, body, options)

    async def copy_object(
        self,
        source: str,
        destination: str,
        options: CopyObjectOptions | None = None,
    ) -> PutObjectResponse:
        headers = object_headers(options) if options else {}
        headers["x-amz-copy-source"] = f"/{self.bucket}/{encode_uri_s3(source)}"
        if options:
            if options.copy_only_if_match:
                headers["x-amz-copy-source-if-match"] = options.copy_only_if_match
            if options.copy_only_if_none_match:
                headers["x-amz-copy-source-if-none-match"] = (
                    options.copy_only_if_none_match
                )
            if options.copy_only_if_modified_since:
                headers["x-amz-copy-source-if-modified-since"] = http_date(
                    options.copy_only_if_modified_since
                )
            if options.copy_only_if_unmodified_since:
                headers["x-amz-copy-source-if-unmodified-since"] = http_date(
                    options.copy_only_if_unmodified_since
                )
            if options.metadata_directive:
                headers["x-amz-metadata-directive"] = options.metadata_directive
            if options.tagging_directive:
                headers["x-amz-tagging-directive"] = options.tagging_directive

        res = await self._make_request(method="PUT", path=destination, headers=headers)
        await self._raise_for_status(
            res, f"Failed to copy object {source!r} to {destination!r}"
        )

        return PutObjectResponse(
            etag=res.headers["etag"].strip('"'),
            version_id=res.headers.get("x-amz-version-id"),
        )

    async def delete_object(
        self, key: str, *, version_id: str | None = None
    ) -> DeleteObjectResponse:
        params = {}
        if version_id:
            params["versionId"] = version_id

        res = await self._make_request(method="DELETE", path=key, params=params)
        await self._raise_for_status(
            res, f"Failed to delete object {key!r}", expected=(204,)
        )

        return DeleteObjectResponse(
            delete_marker=res.headers.get("x-amz-delete-marker") == "true",
            version_id=res.headers.get("x-amz-version-id"),
        )

    async def delete_all(
        self, objects: AsyncIterable[S3Object], *, concurrency: int = 20
    ) -> Set[str]:
        """
        Delete every object with a key, `concurrency` deletes at a time.

        Returns the deleted keys. The first failed delete cancels the ones in
        flight and is raised; objects deleted before that stay deleted.
        """

        async def delete(s3_object: S3Object) -> str:
            await self.delete_object(s3_object.key)
            return s3_object.key

        try:
            return await WorkerPool(concurrency).run(_with_keys(objects), delete)
        finally:
            if isinstance(objects, ListingCursor):
                await objects.close()

    async def empty(self, *, batch_size: int = 20) -> Set[str]:
        """
        Delete all objects in the bucket. Returns the deleted keys.

        `batch_size` is both the listing page size and the number of
        concurrent deletes.
        """
        logger.info("emptying bucket", bucket=self.bucket, batch_size=batch_size)
        deleted = await self.delete_all(
            self.list_all_objects(batch_size=batch_size), concurrency=batch_size
        )
        logger.info("bucket emptied", bucket=self.bucket, deleted=len(deleted))

        return deleted

    async def put_bucket_policy(self, policy: Policy):
        res = await self._make_request(
            method="PUT",
            params={"policy": ""},
            headers={"Content-Type": "application/json"},
            body=dump_policy(policy),
        )
        await self._raise_for_status(
            res, "Failed to put bucket policy", expected=(200, 204)
        )

    async def get_bucket_policy(self) -> Policy:
        res = await self._make_request(method="GET", params={"policy": ""})
        await self._raise_for_status(res, "Failed to get bucket policy")

        return parse_policy(res.text)

    async def delete_bucket_policy(self):
        res = await self._make_request(method="DELETE", params={"policy": ""})
        await self._raise_for_status(
            res, "Failed to delete bucket policy", expected=(200, 204)
        )

    async def get_bucket_policy_status(self) -> PolicyStatus:
        res = await self._make_request(method="GET", params={"policyStatus": ""})
        await self._raise_for_status(res, "Failed to get bucket policy status")

        return parse_policy_status(res.text)

    async def put_bucket_versioning(self, config: VersioningConfiguration):
        body = render_versioning_configuration(config)
        res = await self._make_request(
            method="PUT",
            params={"versioning": ""},
            headers={"Content-MD5": get_md5_base64(body)},
            body=body,
        )
        await self._raise_for_status(res, "Failed to put bucket versioning")

    async def get_bucket_versioning(self) -> VersioningConfiguration:
        res = await self._make_request(method="GET", params={"versioning": ""})
        await self._raise_for_status(res, "Failed to get bucket versioning")

        return parse_versioning_configuration(res.text)
