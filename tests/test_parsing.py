from datetime import datetime, timezone

import httpx
import pytest

from fasts3 import ParseError
from fasts3.s3.models import Policy, Statement, VersioningConfiguration
from fasts3.s3.parsing import (
    dump_policy,
    parse_list_buckets_response,
    parse_list_object_versions_response,
    parse_list_objects_response,
    parse_object_headers,
    parse_policy,
    parse_policy_status,
    parse_versioning_configuration,
    render_versioning_configuration,
)
from fasts3.xml_utils import XmlNode, extract_content, parse_xml

# https://docs.aws.amazon.com/AmazonS3/latest/API/API_ListObjectsV2.html
LIST_OBJECTS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<ListBucketResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">
  <Name>bucket</Name>
  <Prefix/>
  <KeyCount>2</KeyCount>
  <MaxKeys>2</MaxKeys>
  <IsTruncated>true</IsTruncated>
  <Contents>
    <Key>my-image.jpg</Key>
    <LastModified>2009-10-12T17:50:30.000Z</LastModified>
    <ETag>&quot;fba9dede5f27731c9771645a39863328&quot;</ETag>
    <Size>434234</Size>
    <StorageClass>STANDARD</StorageClass>
    <Owner>
      <ID>75aa57f09aa0c8caeab4f8c24e99d10f8e7faeebf76c078efc7c6caea54ba06a</ID>
      <DisplayName>mtd@amazon.com</DisplayName>
    </Owner>
  </Contents>
  <Contents>
    <Key>a&amp;b/c</Key>
    <ETag>"abc"</ETag>
  </Contents>
  <NextContinuationToken>1ueGcxLPRx1Tr/XYExHnhbYLgveDs2J/wm36Hy4vbOwM=</NextContinuationToken>
</ListBucketResult>"""


def test_list_objects():
    res = parse_list_objects_response(LIST_OBJECTS_XML)

    assert res.is_truncated is True
    assert res.name == "bucket"
    assert res.key_count == 2
    assert res.max_keys == 2
    assert res.next_continuation_token == "1ueGcxLPRx1Tr/XYExHnhbYLgveDs2J/wm36Hy4vbOwM="
    assert res.continuation_token is None
    assert res.common_prefixes is None

    first, second = res.contents
    assert first.key == "my-image.jpg"
    assert first.last_modified == datetime(2009, 10, 12, 17, 50, 30, tzinfo=timezone.utc)
    assert first.etag == "fba9dede5f27731c9771645a39863328"
    assert first.size == 434234
    assert first.storage_class == "STANDARD"
    assert first.owner.display_name == "mtd@amazon.com"

    assert second.key == "a&b/c"
    assert second.etag == "abc"
    assert second.size is None
    assert second.last_modified is None
    assert second.owner is None


def test_empty_element_is_absent():
    res = parse_list_objects_response(LIST_OBJECTS_XML)
    assert res.prefix is None


def test_common_prefixes():
    # https://docs.aws.amazon.com/AmazonS3/latest/API/API_ListObjectsV2.html#API_ListObjectsV2_Example_8
    xml = """<?xml version='1.0' encoding='utf-8' ?>
    <ListBucketResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">
      <Name>example-bucket</Name>
      <Prefix>photos/2006/</Prefix>
      <Marker></Marker>
      <MaxKeys>1000</MaxKeys>
      <Delimiter>/</Delimiter>
      <IsTruncated>false</IsTruncated>
      <CommonPrefixes>
        <Prefix>photos/2006/February/</Prefix>
      </CommonPrefixes>
      <CommonPrefixes>
        <Prefix>photos/2006/January/</Prefix>
      </CommonPrefixes>
    </ListBucketResult>"""

    res = parse_list_objects_response(xml)
    assert [p.prefix for p in res.common_prefixes] == [
        "photos/2006/February/",
        "photos/2006/January/",
    ]
    assert res.is_truncated is False
    assert res.delimiter == "/"
    assert res.contents == []


def test_common_prefixes_with_entity_escapes():
    xml = """<?xml version='1.0' encoding='utf-8' ?>
    <ListBucketResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">
      <Name>example-bucket</Name>
      <IsTruncated>false</IsTruncated>
      <CommonPrefixes>
        <Prefix>photos/2006/a&amp;b/</Prefix>
      </CommonPrefixes>
    </ListBucketResult>"""

    res = parse_list_objects_response(xml)
    assert [p.prefix for p in res.common_prefixes] == ["photos/2006/a&b/"]


def test_whitespace_only_values_are_kept():
    xml = """<?xml version='1.0' encoding='utf-8' ?>
    <ListBucketResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">
      <Name>example-bucket</Name>
      <Prefix> </Prefix>
      <IsTruncated>false</IsTruncated>
      <Contents><Key>   </Key></Contents>
      <Contents><Key>\t\t</Key></Contents>
      <Contents><Key> a\n</Key></Contents>
      <CommonPrefixes><Prefix>  /</Prefix></CommonPrefixes>
    </ListBucketResult>"""

    res = parse_list_objects_response(xml)
    assert [o.key for o in res.contents] == ["   ", "\t\t", " a\n"]
    assert res.prefix == " "
    assert [p.prefix for p in res.common_prefixes] == ["  /"]
    assert res.name == "example-bucket"


def test_root_mismatch_raises_with_payload():
    xml = "<ListVersionsResult><Name>bucket</Name></ListVersionsResult>"

    with pytest.raises(ParseError) as excinfo:
        parse_list_objects_response(xml)

    assert "ListBucketResult" in excinfo.value.message
    assert "ListVersionsResult" in excinfo.value.payload
    assert "bucket" in excinfo.value.payload


def test_empty_document_raises():
    with pytest.raises(ParseError):
        parse_versioning_configuration("")


def test_extract_content_missing_field():
    node = XmlNode(name="Contents", children=[XmlNode(name="Key", content="k")])
    assert extract_content(node, "Key") == "k"
    assert extract_content(node, "Size") is None


def test_parse_xml_builds_tree():
    root = parse_xml('<Root a="1"><Child>x</Child><Child><Leaf>y</Leaf></Child></Root>')
    assert root.name == "Root"
    assert root.attributes == {"a": "1"}
    assert [child.name for child in root.children] == ["Child", "Child"]
    assert root.children[0].content == "x"
    assert root.children[1].content is None
    assert root.children[1].children[0].content == "y"


def test_list_object_versions():
    xml = """<?xml version="1.0" encoding="UTF-8"?>
    <ListVersionsResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">
      <Name>versioning-test</Name>
      <Prefix></Prefix>
      <KeyMarker></KeyMarker>
      <VersionIdMarker></VersionIdMarker>
      <MaxKeys>1000</MaxKeys>
      <IsTruncated>false</IsTruncated>
      <Version>
        <Key>test</Key>
        <VersionId>v2</VersionId>
        <IsLatest>true</IsLatest>
        <LastModified>2021-06-01T12:00:00Z</LastModified>
        <ETag>"e1b849f9631ffc1829b2e31402373e3c"</ETag>
        <Size>5</Size>
        <Owner><ID>id</ID><DisplayName>minio</DisplayName></Owner>
        <StorageClass>STANDARD</StorageClass>
      </Version>
      <DeleteMarker>
        <Key>test</Key>
        <VersionId>v1</VersionId>
        <IsLatest>false</IsLatest>
        <LastModified>2021-06-01T11:00:00Z</LastModified>
        <Owner><ID>id</ID><DisplayName>minio</DisplayName></Owner>
      </DeleteMarker>
    </ListVersionsResult>"""

    res = parse_list_object_versions_response(xml)
    assert res.name == "versioning-test"
    assert res.is_truncated is False
    assert res.max_keys == 1000
    assert res.prefix is None
    assert res.key_marker is None
    assert res.next_key_marker is None

    (version,) = res.versions
    assert version.is_latest is True
    assert version.version_id == "v2"
    assert version.size == 5
    assert version.owner.display_name == "minio"
    assert version.last_modified == datetime(2021, 6, 1, 12, 0, tzinfo=timezone.utc)

    (marker,) = res.delete_markers
    assert marker.is_latest is False
    assert marker.version_id == "v1"


def test_list_buckets():
    xml = """<ListAllMyBucketsResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">
      <Owner><ID>owner</ID><DisplayName>minio</DisplayName></Owner>
      <Buckets>
        <Bucket><Name>test</Name><CreationDate>2021-06-01T12:00:00.000Z</CreationDate></Bucket>
        <Bucket><Name>test.bucket</Name><CreationDate>2021-06-02T12:00:00.000Z</CreationDate></Bucket>
      </Buckets>
    </ListAllMyBucketsResult>"""

    res = parse_list_buckets_response(xml)
    assert [b.name for b in res.buckets] == ["test", "test.bucket"]
    assert isinstance(res.buckets[0].creation_date, datetime)
    assert res.owner.display_name == "minio"


def test_versioning_configuration():
    config = parse_versioning_configuration(
        '<VersioningConfiguration xmlns="http://s3.amazonaws.com/doc/2006-03-01/">'
        "<Status>Enabled</Status></VersioningConfiguration>"
    )
    assert config == VersioningConfiguration(status="Enabled")

    config = parse_versioning_configuration(
        '<VersioningConfiguration xmlns="http://s3.amazonaws.com/doc/2006-03-01/"/>'
    )
    assert config == VersioningConfiguration()


def test_render_versioning_configuration():
    body = render_versioning_configuration(
        VersioningConfiguration(status="Suspended", mfa_delete="Disabled")
    )
    assert b"<Status>Suspended</Status>" in body
    assert b"<MfaDelete>Disabled</MfaDelete>" in body
    assert parse_versioning_configuration(body.decode()) == VersioningConfiguration(
        status="Suspended", mfa_delete="Disabled"
    )


def test_policy_status():
    status = parse_policy_status(
        "<PolicyStatus><IsPublic>TRUE</IsPublic></PolicyStatus>"
    )
    # Only the literal "true" counts.
    assert status.is_public is False


POLICY = Policy(
    version="2012-10-17",
    id="test",
    statement=[
        Statement(
            effect="Allow",
            principal={"AWS": ["111122223333", "444455556666"]},
            action=["s3:PutObject"],
            resource=["arn:aws:s3:::*"],
        )
    ],
)


def test_policy_wire_casing():
    assert dump_policy(POLICY) == (
        b'{"Version": "2012-10-17", "Id": "test", "Statement": [{"Effect": "Allow", '
        b'"Principal": {"AWS": ["111122223333", "444455556666"]}, '
        b'"Action": ["s3:PutObject"], "Resource": ["arn:aws:s3:::*"]}]}'
    )
    assert parse_policy(dump_policy(POLICY).decode()) == POLICY


def test_malformed_policy():
    with pytest.raises(ParseError):
        parse_policy("not json")
    with pytest.raises(ParseError):
        parse_policy('{"Version": "2012-10-17"}')
    with pytest.raises(ParseError):
        parse_policy('{"Statement": [{"Action": "s3:*"}]}')


def test_object_headers():
    headers = httpx.Headers(
        {
            "Content-Length": "5",
            "ETag": '"e1b849f9631ffc1829b2e31402373e3c"',
            "Last-Modified": "Tue, 01 Jun 2021 12:00:00 GMT",
            "Content-Type": "text/plain",
            "Expires": "not a date",
            "x-amz-meta-foo": "bar",
            "X-Amz-Meta-Baz": "qux",
            "x-amz-object-lock-legal-hold": "OFF",
            "x-amz-object-lock-retain-until-date": "2030-01-01T00:00:00.000Z",
            "x-amz-mp-parts-count": "3",
            "x-amz-version-id": "v1",
        }
    )

    fields = parse_object_headers(headers)
    assert fields["content_length"] == 5
    assert fields["etag"] == "e1b849f9631ffc1829b2e31402373e3c"
    assert fields["last_modified"] == datetime(2021, 6, 1, 12, 0, tzinfo=timezone.utc)
    assert fields["content_type"] == "text/plain"
    assert fields["expires"] is None
    assert fields["meta"] == {"foo": "bar", "baz": "qux"}
    assert fields["legal_hold"] is False
    assert fields["lock_retain_until"] == datetime(2030, 1, 1, tzinfo=timezone.utc)
    assert fields["parts_count"] == 3
    assert fields["version_id"] == "v1"
    assert fields["delete_marker"] is False
    assert fields["missing_meta"] == 0
    assert fields["tagging_count"] == 0
    assert fields["storage_class"] == "STANDARD"
    assert fields["cache_control"] is None
