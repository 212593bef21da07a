"""HTML serialization utilities for allowhtml trees."""

# ruff: noqa: PERF401

from __future__ import annotations

from typing import Any

from .constants import VOID_ELEMENT_SET
from .node import NodeKind


def _escape_text(text: str | None) -> str:
    if not text:
        return ""
    text = text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
    # A raw CR would be normalized to LF by the parser.
    return text.replace("\r", "&#13;")


def _escape_attr_value(value: str) -> str:
    value = value.replace("&", "&amp;").replace('"', "&quot;")
    value = value.replace("<", "&lt;").replace(">", "&gt;")
    return value.replace("\r", "&#13;")


def serialize_start_tag(name: str, attrs: dict[str, str | None] | None) -> str:
    attrs = attrs or {}
    parts: list[str] = ["<", name]
    for key, value in attrs.items():
        if value is None or value == "":
            parts.extend([" ", key, '=""'])
            continue
        parts.extend([" ", key, '="', _escape_attr_value(str(value)), '"'])
    parts.append(">")
    return "".join(parts)


def serialize_end_tag(name: str) -> str:
    return f"</{name}>"


def to_html(node: Any) -> str:
    """Convert node to an HTML string.

    Output is compact: no whitespace is added or removed. Attribute values are
    always double-quoted and void elements get no end tag.
    """
    parts: list[str] = []
    _node_to_html(node, parts)
    return "".join(parts)


def _node_to_html(node: Any, parts: list[str]) -> None:
    kind = getattr(node, "kind", None)

    if kind is NodeKind.TEXT:
        parts.append(_escape_text(node.data))
        return

    if kind is NodeKind.ELEMENT:
        name: str = node.name
        parts.append(serialize_start_tag(name, node.attrs))
        # Children of a void element can only come from a hand-built tree;
        # they are written after the start tag.
        for child in node.children:
            _node_to_html(child, parts)
        if name not in VOID_ELEMENT_SET:
            parts.append(serialize_end_tag(name))
        return

    if kind is NodeKind.FRAGMENT:
        for child in node.children:
            _node_to_html(child, parts)
        return

    if kind is NodeKind.IGNORABLE:
        data: str = node.data or ""
        if node.name == "#comment":
            parts.append(f"<!--{data}-->")
        elif node.name == "!doctype":
            parts.append(f"<!DOCTYPE {data}>" if data else "<!DOCTYPE>")
        else:
            parts.append(f"<?{data}>")
        return

    raise _unsupported(node)


def _unsupported(node: Any) -> TypeError:
    return TypeError(f"Unsupported node type: {type(node).__name__}")


def to_text(node: Any) -> str:
    """Return the concatenated text of node and its descendants."""
    parts: list[str] = []
    _collect_text(node, parts)
    return "".join(parts)


def _collect_text(node: Any, parts: list[str]) -> None:
    kind = getattr(node, "kind", None)
    if kind is NodeKind.TEXT:
        parts.append(node.data)
        return
    if kind is NodeKind.IGNORABLE:
        return
    if kind is not NodeKind.ELEMENT and kind is not NodeKind.FRAGMENT:
        raise _unsupported(node)
    for child in node.children:
        _collect_text(child, parts)


def to_test_format(node: Any, indent: int = 0) -> str:
    """Convert node to html5lib test format string.

    One node per line with '| ' prefixes, children indented by two spaces and
    attributes sorted by name on their own lines.
    """
    if getattr(node, "kind", None) is NodeKind.FRAGMENT:
        parts = [_node_to_test_format(child, 0) for child in node.children]
        return "\n".join(parts)
    return _node_to_test_format(node, indent)


def _node_to_test_format(node: Any, indent: int) -> str:
    padding = " " * indent
    kind = getattr(node, "kind", None)

    if kind is NodeKind.TEXT:
        return f'| {padding}"{node.data}"'

    if kind is NodeKind.IGNORABLE:
        data: str = node.data or ""
        if node.name == "#comment":
            return f"| {padding}<!-- {data} -->"
        if node.name == "!doctype":
            return f"| {padding}<!DOCTYPE {data}>"
        return f"| {padding}<?{data}>"

    if kind is NodeKind.FRAGMENT:
        return "\n".join(_node_to_test_format(child, indent) for child in node.children)

    if kind is not NodeKind.ELEMENT:
        raise _unsupported(node)

    sections: list[str] = [f"| {padding}<{node.name}>"]
    for attr_name, attr_value in sorted(node.attrs.items()):
        sections.append(f'| {padding}  {attr_name}="{attr_value or ""}"')
    for child in node.children:
        sections.append(_node_to_test_format(child, indent + 2))
    return "\n".join(sections)
