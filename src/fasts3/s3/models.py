from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal

AmzAcl = Literal[
    "private",
    "public-read",
    "public-read-write",
    "authenticated-read",
    "aws-exec-read",
    "bucket-owner-read",
    "bucket-owner-full-control",
]

LockMode = Literal["GOVERNANCE", "COMPLIANCE"]

ReplicationStatus = Literal["COMPLETE", "PENDING", "FAILED", "REPLICA"]

StorageClass = Literal[
    "STANDARD",
    "REDUCED_REDUNDANCY",
    "STANDARD_IA",
    "ONEZONE_IA",
    "INTELLIGENT_TIERING",
    "GLACIER",
    "DEEP_ARCHIVE",
]


@dataclass
class S3ObjectOwner:
    id: str | None = None
    display_name: str | None = None


@dataclass
class S3Object:
    # Only missing when the server sends a malformed listing.
    key: str | None = None
    last_modified: datetime | None = None
    etag: str | None = None
    size: int | None = None
    storage_class: str | None = None
    owner: S3ObjectOwner | None = None


@dataclass
class CommonPrefix:
    prefix: str | None = None


@dataclass
class ListObjectsResponse:
    is_truncated: bool
    contents: List[S3Object] = field(default_factory=list)
    name: str | None = None
    prefix: str | None = None
    delimiter: str | None = None
    max_keys: int | None = None
    common_prefixes: List[CommonPrefix] | None = None
    encoding_type: str | None = None
    key_count: int | None = None
    continuation_token: str | None = None
    next_continuation_token: str | None = None
    start_after: str | None = None


@dataclass
class ObjectVersion:
    key: str | None = None
    version_id: str | None = None
    is_latest: bool = False
    last_modified: datetime | None = None
    etag: str | None = None
    size: int | None = None
    storage_class: str | None = None
    owner: S3ObjectOwner | None = None


@dataclass
class DeleteMarkerEntry:
    key: str | None = None
    version_id: str | None = None
    is_latest: bool = False
    last_modified: datetime | None = None
    owner: S3ObjectOwner | None = None


@dataclass
class ListObjectVersionsResponse:
    is_truncated: bool
    versions: List[ObjectVersion] = field(default_factory=list)
    delete_markers: List[DeleteMarkerEntry] = field(default_factory=list)
    common_prefixes: List[CommonPrefix] | None = None
    name: str | None = None
    prefix: str | None = None
    delimiter: str | None = None
    max_keys: int | None = None
    encoding_type: str | None = None
    key_marker: str | None = None
    version_id_marker: str | None = None
    next_key_marker: str | None = None
    next_version_id_marker: str | None = None


@dataclass
class HeadObjectResponse:
    content_length: int
    etag: str
    last_modified: datetime
    delete_marker: bool
    missing_meta: int
    storage_class: str
    tagging_count: int
    meta: Dict[str, str] = field(default_factory=dict)
    cache_control: str | None = None
    content_disposition: str | None = None
    content_encoding: str | None = None
    content_language: str | None = None
    content_type: str | None = None
    expires: datetime | None = None
    legal_hold: bool | None = None
    lock_mode: str | None = None
    lock_retain_until: datetime | None = None
    parts_count: int | None = None
    replication_status: str | None = None
    version_id: str | None = None
    website_redirect_location: str | None = None


@dataclass
class GetObjectResponse(HeadObjectResponse):
    body: bytes = b""


@dataclass
class PutObjectResponse:
    etag: str
    version_id: str | None = None


@dataclass
class DeleteObjectResponse:
    delete_marker: bool
    version_id: str | None = None


@dataclass
class Bucket:
    name: str | None = None
    creation_date: datetime | None = None


@dataclass
class ListBucketsResponse:
    buckets: List[Bucket]
    owner: S3ObjectOwner


@dataclass
class Statement:
    effect: Literal["Allow", "Deny"]
    sid: str | None = None
    principal: Any = None
    not_principal: Any = None
    action: List[str] | str | None = None
    not_action: List[str] | str | None = None
    resource: List[str] | str | None = None
    not_resource: List[str] | str | None = None
    condition: Dict[str, Any] | None = None


@dataclass
class Policy:
    statement: List[Statement]
    version: str | None = None
    id: str | None = None


@dataclass
class PolicyStatus:
    is_public: bool


@dataclass
class VersioningConfiguration:
    status: Literal["Enabled", "Suspended"] | None = None
    mfa_delete: Literal["Enabled", "Disabled"] | None = None


@dataclass
class GetObjectOptions:
    if_match: str | None = None
    if_none_match: str | None = None
    if_modified_since: datetime | None = None
    if_unmodified_since: datetime | None = None
    # Ranged read of a single part, 1 to 10,000.
    part_number: int | None = None
    version_id: str | None = None
    response_cache_control: str | None = None
    response_content_disposition: str | None = None
    response_content_encoding: str | None = None
    response_content_language: str | None = None
    response_content_type: str | None = None
    response_expires: str | None = None


@dataclass
class PutObjectOptions:
    acl: AmzAcl | None = None
    cache_control: str | None = None
    content_disposition: str | None = None
    content_encoding: str | None = None
    content_language: str | None = None
    content_type: str | None = None
    expires: datetime | None = None
    grant_full_control: str | None = None
    grant_read: str | None = None
    grant_read_acp: str | None = None
    grant_write_acp: str | None = None
    legal_hold: bool | None = None
    lock_mode: LockMode | None = None
    lock_retain_until: datetime | None = None
    storage_class: StorageClass | None = None
    tags: Dict[str, str] | None = None
    website_redirect_location: str | None = None
    # Sent as x-amz-meta-* headers.
    meta: Dict[str, str] | None = None


@dataclass
class CopyObjectOptions(PutObjectOptions):
    copy_only_if_match: str | None = None
    copy_only_if_none_match: str | None = None
    copy_only_if_modified_since: datetime | None = None
    copy_only_if_unmodified_since: datetime | None = None
    metadata_directive: Literal["COPY", "REPLACE"] | None = None
    tagging_directive: Literal["COPY", "REPLACE"] | None = None


@dataclass
class CreateBucketOptions:
    acl: AmzAcl | None = None
    grant_full_control: str | None = None
    grant_read: str | None = None
    grant_read_acp: str | None = None
    grant_write: str | None = None
    grant_write_acp: str | None = None
    object_lock_enabled: bool | None = None
