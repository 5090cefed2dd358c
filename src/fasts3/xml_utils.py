"""
A small, explicit XML tree and the lookups the response decoders use.

Documents are tokenized by BeautifulSoup's "xml" parser (lxml) and converted
into `XmlNode` values, so decoders never probe parser objects directly. The
parser resolves character entities, so `content` is already decoded text, and
namespace prefixes are dropped from element names. Leaf text is kept exactly
as sent: whitespace-only values such as the key "   " are not collapsed.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Dict, List

from bs4 import BeautifulSoup, Tag
from bs4.builder import LXMLTreeBuilderForXML

from .exceptions import ParseError


@dataclass
class XmlNode:
    name: str
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List["XmlNode"] = field(default_factory=list)
    # Text of a leaf element; None for empty elements and for parents.
    content: str | None = None


def parse_xml(text: str) -> XmlNode | None:
    # Whitespace is preserved below every tag on the stack, the document included.
    builder = LXMLTreeBuilderForXML(
        preserve_whitespace_tags={BeautifulSoup.ROOT_TAG_NAME}
    )
    soup = BeautifulSoup(text, builder=builder)
    root = soup.find(True)
    if not isinstance(root, Tag):
        return None
    return _to_node(root)


def _to_node(tag: Tag) -> XmlNode:
    children = [_to_node(child) for child in tag.children if isinstance(child, Tag)]
    attributes = {
        name: " ".join(value) if isinstance(value, list) else value
        for name, value in tag.attrs.items()
    }
    return XmlNode(
        name=tag.name.rpartition(":")[2],
        attributes=attributes,
        children=children,
        content=None if children else tag.get_text() or None,
    )


def dump_node(node: XmlNode | None) -> str:
    return json.dumps(None if node is None else asdict(node), indent=2)


def extract_root(root: XmlNode | None, name: str) -> XmlNode:
    if root is None or root.name != name:
        raise ParseError(
            f"Malformed XML document. Missing {name} field.", dump_node(root)
        )
    return root


def extract_field(node: XmlNode, name: str) -> XmlNode | None:
    return next((child for child in node.children if child.name == name), None)


def extract_fields(node: XmlNode, name: str) -> List[XmlNode]:
    return [child for child in node.children if child.name == name]


def extract_content(node: XmlNode, name: str) -> str | None:
    field_node = extract_field(node, name)
    if field_node is None:
        return None
    return field_node.content


def extract_int(node: XmlNode, name: str) -> int | None:
    content = extract_content(node, name)
    if not content:
        return None
    return int(content)


def extract_bool(node: XmlNode, name: str) -> bool:
    return extract_content(node, name) == "true"


def extract_datetime(node: XmlNode, name: str) -> datetime | None:
    content = extract_content(node, name)
    if not content:
        return None
    return parse_timestamp(content)


def parse_timestamp(value: str) -> datetime:
    """Parse the ISO 8601 timestamps used in listings, e.g. 2009-10-12T17:50:30.000Z."""
    for fmt in ("%Y-%m-%dT%H:%M:%S.%fZ", "%Y-%m-%dT%H:%M:%SZ"):
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return datetime.fromisoformat(value)
