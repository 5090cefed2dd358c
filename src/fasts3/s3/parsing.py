"""
Decoders that turn S3 responses into the records in `models`, and the few
request bodies the client has to render.

XML decoders follow the same rules throughout: a member is only set when its
element is present, booleans are true only for the literal "true", and numbers
and dates are parsed only when the element has text.
"""

import json
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Mapping
from xml.sax.saxutils import escape

from fasts3.exceptions import ParseError
from fasts3.xml_utils import (
    XmlNode,
    extract_bool,
    extract_content,
    extract_datetime,
    extract_field,
    extract_fields,
    extract_int,
    extract_root,
    parse_timestamp,
    parse_xml,
)

from .models import (
    Bucket,
    CommonPrefix,
    DeleteMarkerEntry,
    ListBucketsResponse,
    ListObjectsResponse,
    ListObjectVersionsResponse,
    ObjectVersion,
    Policy,
    PolicyStatus,
    S3Object,
    S3ObjectOwner,
    Statement,
    VersioningConfiguration,
)

S3_XMLNS = "http://s3.amazonaws.com/doc/2006-03-01/"
META_PREFIX = "x-amz-meta-"


def _strip_etag(etag: str | None) -> str | None:
    if etag is None:
        return None
    return etag.strip('"')


def parse_owner(node: XmlNode) -> S3ObjectOwner | None:
    owner_el = extract_field(node, "Owner")
    if owner_el is None:
        return None
    return S3ObjectOwner(
        id=extract_content(owner_el, "ID"),
        display_name=extract_content(owner_el, "DisplayName"),
    )


def parse_common_prefixes(root: XmlNode) -> list[CommonPrefix] | None:
    prefix_els = extract_fields(root, "CommonPrefixes")
    if not prefix_els:
        return None
    return [
        CommonPrefix(prefix=extract_content(prefix_el, "Prefix"))
        for common_prefixes_el in prefix_els
        for prefix_el in extract_fields(common_prefixes_el, "Prefix")
    ]


def parse_list_objects_response(text: str) -> ListObjectsResponse:
    root = extract_root(parse_xml(text), "ListBucketResult")

    contents = []
    for content_el in extract_fields(root, "Contents"):
        s3_object = S3Object(
            key=extract_content(content_el, "Key"),
            last_modified=extract_datetime(content_el, "LastModified"),
            etag=_strip_etag(extract_content(content_el, "ETag")),
            size=extract_int(content_el, "Size"),
            storage_class=extract_content(content_el, "StorageClass"),
            owner=parse_owner(content_el),
        )
        contents.append(s3_object)

    return ListObjectsResponse(
        is_truncated=extract_bool(root, "IsTruncated"),
        contents=contents,
        name=extract_content(root, "Name"),
        prefix=extract_content(root, "Prefix"),
        delimiter=extract_content(root, "Delimiter"),
        max_keys=extract_int(root, "MaxKeys"),
        common_prefixes=parse_common_prefixes(root),
        encoding_type=extract_content(root, "EncodingType"),
        key_count=extract_int(root, "KeyCount"),
        continuation_token=extract_content(root, "ContinuationToken"),
        next_continuation_token=extract_content(root, "NextContinuationToken"),
        start_after=extract_content(root, "StartAfter"),
    )


def parse_list_object_versions_response(text: str) -> ListObjectVersionsResponse:
    root = extract_root(parse_xml(text), "ListVersionsResult")

    versions = [
        ObjectVersion(
            key=extract_content(version_el, "Key"),
            version_id=extract_content(version_el, "VersionId"),
            is_latest=extract_bool(version_el, "IsLatest"),
            last_modified=extract_datetime(version_el, "LastModified"),
            etag=_strip_etag(extract_content(version_el, "ETag")),
            size=extract_int(version_el, "Size"),
            storage_class=extract_content(version_el, "StorageClass"),
            owner=parse_owner(version_el),
        )
        for version_el in extract_fields(root, "Version")
    ]
    delete_markers = [
        DeleteMarkerEntry(
            key=extract_content(marker_el, "Key"),
            version_id=extract_content(marker_el, "VersionId"),
            is_latest=extract_bool(marker_el, "IsLatest"),
            last_modified=extract_datetime(marker_el, "LastModified"),
            owner=parse_owner(marker_el),
        )
        for marker_el in extract_fields(root, "DeleteMarker")
    ]

    return ListObjectVersionsResponse(
        is_truncated=extract_bool(root, "IsTruncated"),
        versions=versions,
        delete_markers=delete_markers,
        common_prefixes=parse_common_prefixes(root),
        name=extract_content(root, "Name"),
        prefix=extract_content(root, "Prefix"),
        delimiter=extract_content(root, "Delimiter"),
        max_keys=extract_int(root, "MaxKeys"),
        encoding_type=extract_content(root, "EncodingType"),
        key_marker=extract_content(root, "KeyMarker"),
        version_id_marker=extract_content(root, "VersionIdMarker"),
        next_key_marker=extract_content(root, "NextKeyMarker"),
        next_version_id_marker=extract_content(root, "NextVersionIdMarker"),
    )


def parse_list_buckets_response(text: str) -> ListBucketsResponse:
    root = extract_root(parse_xml(text), "ListAllMyBucketsResult")

    buckets = []
    buckets_el = extract_field(root, "Buckets")
    if buckets_el is not None:
        for bucket_el in extract_fields(buckets_el, "Bucket"):
            bucket = Bucket(
                name=extract_content(bucket_el, "Name"),
                creation_date=extract_datetime(bucket_el, "CreationDate"),
            )
            buckets.append(bucket)

    return ListBucketsResponse(
        buckets=buckets, owner=parse_owner(root) or S3ObjectOwner()
    )


def parse_versioning_configuration(text: str) -> VersioningConfiguration:
    root = extract_root(parse_xml(text), "VersioningConfiguration")

    versioning_config = VersioningConfiguration()
    status = extract_content(root, "Status")
    if status:
        versioning_config.status = status
    mfa_delete = extract_content(root, "MfaDelete")
    if mfa_delete:
        versioning_config.mfa_delete = mfa_delete

    return versioning_config


def render_versioning_configuration(config: VersioningConfiguration) -> bytes:
    parts = [f'<VersioningConfiguration xmlns="{S3_XMLNS}">']
    if config.status is not None:
        parts.append(f"<Status>{escape(config.status)}</Status>")
    if config.mfa_delete is not None:
        parts.append(f"<MfaDelete>{escape(config.mfa_delete)}</MfaDelete>")
    parts.append("</VersioningConfiguration>")

    return "".join(parts).encode()


def render_create_bucket_configuration(region: str) -> bytes:
    return (
        f'<CreateBucketConfiguration xmlns="{S3_XMLNS}">'
        f"<LocationConstraint>{escape(region)}</LocationConstraint>"
        "</CreateBucketConfiguration>"
    ).encode()


def parse_policy_status(text: str) -> PolicyStatus:
    root = extract_root(parse_xml(text), "PolicyStatus")
    return PolicyStatus(is_public=extract_bool(root, "IsPublic"))


# Wire key -> Statement attribute.
_STATEMENT_KEYS = {
    "Sid": "sid",
    "Effect": "effect",
    "Principal": "principal",
    "NotPrincipal": "not_principal",
    "Action": "action",
    "NotAction": "not_action",
    "Resource": "resource",
    "NotResource": "not_resource",
    "Condition": "condition",
}


def parse_policy(text: str) -> Policy:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Malformed policy document: {e}", text) from e

    if not isinstance(data, dict) or not isinstance(data.get("Statement"), list):
        raise ParseError("Malformed policy document. Missing Statement field.", text)

    statements = []
    for statement_data in data["Statement"]:
        if not isinstance(statement_data, dict):
            raise ParseError("Malformed policy statement.", text)
        kwargs = {
            attr: statement_data[key]
            for key, attr in _STATEMENT_KEYS.items()
            if key in statement_data
        }
        if "effect" not in kwargs:
            raise ParseError("Malformed policy statement. Missing Effect field.", text)
        statements.append(Statement(**kwargs))

    return Policy(
        statement=statements,
        version=data.get("Version"),
        id=data.get("Id"),
    )


def dump_policy(policy: Policy) -> bytes:
    data: Dict[str, Any] = {}
    if policy.version is not None:
        data["Version"] = policy.version
    if policy.id is not None:
        data["Id"] = policy.id

    statements = []
    for statement in policy.statement:
        statement_data = {}
        for key, attr in _STATEMENT_KEYS.items():
            value = getattr(statement, attr)
            if value is not None:
                statement_data[key] = value
        statements.append(statement_data)
    data["Statement"] = statements

    return json.dumps(data).encode()


def _parse_http_date(value: str | None):
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None


def _parse_optional_int(value: str | None) -> int | None:
    if not value:
        return None
    return int(value)


def parse_object_headers(headers: Mapping[str, str]) -> Dict[str, Any]:
    """
    Map GET/HEAD object response headers to `HeadObjectResponse` fields.

    `headers` must be case-insensitive, as `httpx.Headers` is.
    """
    legal_hold_header = headers.get("x-amz-object-lock-legal-hold")
    legal_hold = None
    if legal_hold_header == "ON":
        legal_hold = True
    elif legal_hold_header == "OFF":
        legal_hold = False

    lock_retain_until = headers.get("x-amz-object-lock-retain-until-date")

    return {
        "content_length": int(headers.get("content-length", "0")),
        "etag": _strip_etag(headers.get("etag")) or "",
        "last_modified": _parse_http_date(headers.get("last-modified")),
        "delete_marker": headers.get("x-amz-delete-marker") == "true",
        "missing_meta": int(headers.get("x-amz-missing-meta") or 0),
        "storage_class": headers.get("x-amz-storage-class") or "STANDARD",
        "tagging_count": int(headers.get("x-amz-tagging-count") or 0),
        "meta": {
            name[len(META_PREFIX) :]: value
            for name, value in headers.items()
            if name.lower().startswith(META_PREFIX)
        },
        "cache_control": headers.get("cache-control"),
        "content_disposition": headers.get("content-disposition"),
        "content_encoding": headers.get("content-encoding"),
        "content_language": headers.get("content-language"),
        "content_type": headers.get("content-type"),
        "expires": _parse_http_date(headers.get("expires")),
        "legal_hold": legal_hold,
        "lock_mode": headers.get("x-amz-object-lock-mode"),
        "lock_retain_until": (
            parse_timestamp(lock_retain_until) if lock_retain_until else None
        ),
        "parts_count": _parse_optional_int(headers.get("x-amz-mp-parts-count")),
        "replication_status": headers.get("x-amz-replication-status"),
        "version_id": headers.get("x-amz-version-id"),
        "website_redirect_location": headers.get("x-amz-website-redirect-location"),
    }
