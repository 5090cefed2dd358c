"""Shared pytest fixtures: an in-memory S3 double and clients wired to it."""

import pytest

from fasts3 import S3Bucket, S3Client, S3Config

from .fake_s3 import ENDPOINT, FakeBucket, FakeS3

BUCKET = "test"


@pytest.fixture
def config() -> S3Config:
    return S3Config(
        region="us-east-1",
        access_key="AKIDEXAMPLE",
        secret_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
        endpoint_url=ENDPOINT,
    )


@pytest.fixture
def fake_s3() -> FakeS3:
    fake = FakeS3()
    fake.buckets[BUCKET] = FakeBucket()
    return fake


@pytest.fixture
async def bucket(config, fake_s3):
    async with S3Bucket(
        config=config, bucket=BUCKET, transport=fake_s3.transport
    ) as s3_bucket:
        yield s3_bucket


@pytest.fixture
async def client(config, fake_s3):
    async with S3Client(config=config, transport=fake_s3.transport) as s3_client:
        yield s3_client
