from httpx import AsyncBaseTransport

from fasts3.auth import Signer
from fasts3.config import DEFAULT_REGION, S3Config
from fasts3.core import AwsClient
from fasts3.enums import Service

from .bucket import S3Bucket, grant_headers
from .models import (
    CreateBucketOptions,
    ListBucketsResponse,
    ListObjectVersionsResponse,
    VersioningConfiguration,
)
from .parsing import parse_list_buckets_response, render_create_bucket_configuration


class S3Client(AwsClient):
    def __init__(
        self,
        *,
        config: S3Config,
        signer: Signer | None = None,
        transport: AsyncBaseTransport | None = None,
    ):
        super().__init__(
            config=config,
            service=Service.S3,
            endpoint=config.service_endpoint(),
            signer=signer,
            transport=transport,
        )

    def get_bucket(self, name: str) -> S3Bucket:
        """
        Return a handle on an existing bucket.

        When this client is connected, the bucket shares its connection and
        must not be used after the client disconnects.
        """
        bucket = S3Bucket(
            config=self.config,
            bucket=name,
            signer=self.signer,
            transport=self.transport,
        )
        bucket._share_connection(self)

        return bucket

    async def list_buckets(self) -> ListBucketsResponse:
        res = await self._make_request(method="GET")
        await self._raise_for_status(res, "Failed to list buckets")

        return parse_list_buckets_response(res.text)

    async def create_bucket(
        self, name: str, options: CreateBucketOptions | None = None
    ) -> S3Bucket:
        headers = {}
        if options:
            headers = grant_headers(options)
            if options.object_lock_enabled is not None:
                headers["x-amz-bucket-object-lock-enabled"] = (
                    "true" if options.object_lock_enabled else "false"
                )

        body = None
        if self.config.region != DEFAULT_REGION:
            body = render_create_bucket_configuration(self.config.region)

        bucket = self.get_bucket(name)
        res = await bucket._make_request(method="PUT", headers=headers, body=body)
        await self._raise_for_status(res, f'Failed to create bucket "{name}"')

        return bucket

    async def delete_bucket(self, name: str):
        bucket = self.get_bucket(name)
        res = await bucket._make_request(method="DELETE")
        await self._raise_for_status(
            res, f'Failed to delete bucket "{name}"', expected=(204,)
        )

    async def put_bucket_versioning(
        self, bucket: str, config: VersioningConfiguration
    ):
        await self.get_bucket(bucket).put_bucket_versioning(config)

    async def get_bucket_versioning(self, bucket: str) -> VersioningConfiguration:
        return await self.get_bucket(bucket).get_bucket_versioning()

    async def list_object_versions(
        self,
        bucket: str,
        *,
        prefix: str | None = None,
        delimiter: str | None = None,
        encoding_type: str | None = None,
        max_keys: int | None = None,
        key_marker: str | None = None,
        version_id_marker: str | None = None,
    ) -> ListObjectVersionsResponse | None:
        return await self.get_bucket(bucket).list_object_versions(
            prefix=prefix,
            delimiter=delimiter,
            encoding_type=encoding_type,
            max_keys=max_keys,
            key_marker=key_marker,
            version_id_marker=version_id_marker,
        )
