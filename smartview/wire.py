"""
XML wire helpers for the SmartView provider protocol.

Requests are documents rooted at ``req_<Method>``; responses carry a
``res_<Method>`` element, or an ``exception`` element on failure. One
dimensional arrays travel as pipe separated strings.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from lxml import etree

from .compat import to_bytes
from .errors import ProtocolError

__all__ = [
    "FIELD_SEPARATOR",
    "join_fields",
    "split_fields",
    "sub_element",
    "Request",
    "parse_response",
    "find_required",
    "find_text",
]

FIELD_SEPARATOR = "|"

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True)


def join_fields(values: Iterable[Any]) -> str:
    """Join values into a single wire field string."""
    return FIELD_SEPARATOR.join("" if value is None else str(value) for value in values)


def split_fields(text: str | None) -> list[str]:
    """
    Split a wire field string into its values.

    Empty fields are preserved, including a trailing one after the last
    separator: ``"a||"`` yields ``["a", "", ""]``. Only an entirely empty
    string yields an empty list.
    """
    if not text:
        return []
    return text.split(FIELD_SEPARATOR)


def _attrib(attrib: dict[str, Any]) -> dict[str, str]:
    return {
        key: _format_value(value) for key, value in attrib.items() if value is not None
    }


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def sub_element(
    parent: etree._Element, tag: str, text: Any = None, **attrib: Any
) -> etree._Element:
    """Append a child element with optional text. Attributes whose value is
    None are skipped and booleans are written as 1/0."""
    element = etree.SubElement(parent, tag, _attrib(attrib))
    if text is not None:
        element.text = _format_value(text)
    return element


class Request:
    """A provider request document for a single method call."""

    def __init__(self, method: str):
        self.method = method
        self.root = etree.Element(f"req_{method}")

    @property
    def response_tag(self) -> str:
        return f"res_{self.method}"

    def add(self, tag: str, text: Any = None, **attrib: Any) -> etree._Element:
        """Append a child element to the request root."""
        return sub_element(self.root, tag, text, **attrib)

    def to_bytes(self) -> bytes:
        return etree.tostring(
            self.root, xml_declaration=True, encoding="UTF-8", pretty_print=True
        )

    def to_string(self) -> str:
        return self.to_bytes().decode("utf-8")

    def __str__(self) -> str:
        return self.to_string()


def parse_response(body: bytes | str) -> etree._Element:
    """Parse a response body. Entity expansion and network access are
    disabled."""
    try:
        return etree.fromstring(to_bytes(body), _PARSER)
    except etree.XMLSyntaxError as e:
        raise ProtocolError(f"Malformed response from provider: {e}") from e


def find_required(element: etree._Element, path: str) -> etree._Element:
    """Return the first element matching `path` or raise ProtocolError."""
    found = element.find(path)
    if found is None:
        raise ProtocolError(f"Expected element '{path}' missing from response")
    return found


def find_text(element: etree._Element, path: str) -> str:
    """Return the joined text content of the element matching `path`."""
    found = find_required(element, path)
    return "".join(found.itertext())
