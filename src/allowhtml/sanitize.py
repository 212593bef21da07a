"""Allow-list sanitization of parsed fragments.

The walker never edits the tree it is given. It builds a new `Fragment` in
which:

- every element's tag is in the policy's `allowed_tags`; a disallowed element
  is replaced by its sanitized children;
- every attribute is in `allowed_attributes`, and is neither `style` nor an
  `on*` event handler;
- URL-valued attributes do not start with a `javascript:` or `data:` scheme;
- text has those scheme prefixes removed;
- comments, doctypes and processing instructions are gone.
"""

from __future__ import annotations

import re
from collections.abc import Collection, Mapping
from dataclasses import dataclass
from typing import Any

from .constants import (
    DEFAULT_ALLOWED_ATTRIBUTES,
    DEFAULT_ALLOWED_TAGS,
    EVENT_HANDLER_PREFIX,
    FORBIDDEN_ATTRIBUTES,
    FORBIDDEN_SCHEMES,
    URL_ATTRIBUTES,
)
from .node import Element, Fragment, NodeKind, Text


class InvalidInput(TypeError):
    """Raised when there is nothing to sanitize: a non-string input or no tree."""


class InvalidPolicy(ValueError):
    """Raised when a policy or a policy options mapping is malformed."""


# Characters that end a tag or attribute name in markup; a name containing one
# could never be produced by the parser.
_NAME_TERMINATORS = frozenset("\t\n\f\r />=\0")


def _normalize_names(value: Any, field_name: str) -> frozenset[str]:
    if isinstance(value, str) or not isinstance(value, Collection):
        msg = f"{field_name} must be a collection of names, got {type(value).__name__}"
        raise InvalidPolicy(msg)

    names: set[str] = set()
    for entry in value:
        if not isinstance(entry, str) or not entry:
            msg = f"{field_name} entries must be non-empty strings, got {entry!r}"
            raise InvalidPolicy(msg)
        if any(ch in _NAME_TERMINATORS for ch in entry):
            msg = f"{field_name} entry {entry!r} is not a valid name"
            raise InvalidPolicy(msg)
        names.add(entry.lower())
    return frozenset(names)


@dataclass(frozen=True, slots=True)
class SanitizationPolicy:
    """Which tags and attributes survive sanitization.

    The attribute set applies to every allowed tag. Names are compared
    case-insensitively. `style` and `on*` attributes are refused even when
    listed.

    An empty set is almost always a configuration mistake, so it is rejected
    unless `allow_empty` is True. Use `SanitizationPolicy.strip_all()` for the
    policy that keeps text only.
    """

    allowed_tags: Collection[str]
    allowed_attributes: Collection[str]
    allow_empty: bool = False

    def __post_init__(self) -> None:
        tags = _normalize_names(self.allowed_tags, "allowed_tags")
        attributes = _normalize_names(self.allowed_attributes, "allowed_attributes")
        if not self.allow_empty:
            if not tags:
                msg = "allowed_tags is empty; pass allow_empty=True or use SanitizationPolicy.strip_all()"
                raise InvalidPolicy(msg)
            if not attributes:
                msg = "allowed_attributes is empty; pass allow_empty=True or use SanitizationPolicy.strip_all()"
                raise InvalidPolicy(msg)
        object.__setattr__(self, "allowed_tags", tags)
        object.__setattr__(self, "allowed_attributes", attributes)

    def is_tag_allowed(self, name: str) -> bool:
        return name.lower() in self.allowed_tags

    def is_attribute_allowed(self, name: str) -> bool:
        name = name.lower()
        if name in FORBIDDEN_ATTRIBUTES or name.startswith(EVENT_HANDLER_PREFIX):
            return False
        return name in self.allowed_attributes

    @classmethod
    def strip_all(cls) -> SanitizationPolicy:
        """Policy that removes every tag and attribute, keeping only text."""
        return cls(allowed_tags=(), allowed_attributes=(), allow_empty=True)

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> SanitizationPolicy:
        """Build a policy from an options mapping.

        Accepts `allowed_tags`, `allowed_attributes` and `allow_empty`, or their
        camelCase spellings. Missing sets fall back to the defaults.
        """
        if not isinstance(options, Mapping):
            msg = f"policy options must be a mapping, got {type(options).__name__}"
            raise InvalidPolicy(msg)

        values: dict[str, Any] = {}
        for key, value in options.items():
            field_name = _OPTION_KEYS.get(key)
            if field_name is None:
                msg = f"Unknown policy option: {key!r}"
                raise InvalidPolicy(msg)
            if field_name in values:
                msg = f"Policy option {field_name!r} given more than once"
                raise InvalidPolicy(msg)
            values[field_name] = value

        return cls(
            allowed_tags=values.get("allowed_tags", DEFAULT_ALLOWED_TAGS),
            allowed_attributes=values.get("allowed_attributes", DEFAULT_ALLOWED_ATTRIBUTES),
            allow_empty=bool(values.get("allow_empty", False)),
        )


_OPTION_KEYS: dict[str, str] = {
    "allowed_tags": "allowed_tags",
    "allowedTags": "allowed_tags",
    "allowed_attributes": "allowed_attributes",
    "allowedAttributes": "allowed_attributes",
    "allow_empty": "allow_empty",
    "allowEmpty": "allow_empty",
}


DEFAULT_POLICY: SanitizationPolicy = SanitizationPolicy(
    allowed_tags=DEFAULT_ALLOWED_TAGS,
    allowed_attributes=DEFAULT_ALLOWED_ATTRIBUTES,
)


def resolve_policy(policy: SanitizationPolicy | Mapping[str, Any] | None) -> SanitizationPolicy:
    """Return `policy` as a `SanitizationPolicy`, converting an options mapping."""
    if policy is None:
        return DEFAULT_POLICY
    if isinstance(policy, SanitizationPolicy):
        return policy
    if isinstance(policy, Mapping):
        return SanitizationPolicy.from_options(policy)
    msg = f"policy must be a SanitizationPolicy or an options mapping, got {type(policy).__name__}"
    raise InvalidPolicy(msg)


# ---------------------
# Scheme checks
# ---------------------

_FORBIDDEN_SCHEME_PATTERN = re.compile(
    "|".join(re.escape(scheme) + ":" for scheme in FORBIDDEN_SCHEMES),
    re.IGNORECASE | re.ASCII,
)
_FORBIDDEN_URL_PREFIXES = tuple(scheme + ":" for scheme in FORBIDDEN_SCHEMES)

# URL parsers skip leading C0 controls and spaces, and drop tab and newline
# characters anywhere in the URL.
_URL_LEADING_IGNORED = "".join(chr(code) for code in range(0x21))
_URL_REMOVED_TABLE = str.maketrans({"\t": None, "\n": None, "\r": None})


def strip_forbidden_schemes(text: str) -> str:
    """Remove every `javascript:` and `data:` from text, case-insensitively.

    Removal repeats until nothing matches, so `jajavascript:vascript:` cannot
    reassemble into a scheme.
    """
    while True:
        stripped = _FORBIDDEN_SCHEME_PATTERN.sub("", text)
        if stripped == text:
            return text
        text = stripped


def _is_forbidden_url(value: str) -> bool:
    normalized = value.translate(_URL_REMOVED_TABLE).lstrip(_URL_LEADING_IGNORED).lower()
    return normalized.startswith(_FORBIDDEN_URL_PREFIXES)


def _has_forbidden_srcset_candidate(value: str) -> bool:
    for candidate in value.split(","):
        parts = candidate.split()
        if parts and _is_forbidden_url(parts[0]):
            return True
    return False


def _keep_attribute(name: str, value: str, policy: SanitizationPolicy) -> bool:
    if not policy.is_attribute_allowed(name):
        return False
    lowered = name.lower()
    if lowered in URL_ATTRIBUTES:
        if _is_forbidden_url(value):
            return False
        if lowered == "srcset" and _has_forbidden_srcset_candidate(value):
            return False
    return True


# ---------------------
# Tree walker
# ---------------------


def sanitize_tree(root: Any, policy: SanitizationPolicy = DEFAULT_POLICY) -> Fragment:
    """Return a sanitized copy of `root` as a new `Fragment`.

    `root` is usually the `Fragment` returned by the parser, but any node is
    accepted; nested fragments are flattened into their parent.
    """
    if root is None:
        msg = "sanitize_tree() needs a parsed tree, got None"
        raise InvalidInput(msg)
    if not isinstance(policy, SanitizationPolicy):
        msg = f"policy must be a SanitizationPolicy, got {type(policy).__name__}"
        raise InvalidPolicy(msg)
    return Fragment(_sanitize_children([root], policy))


def _sanitize_children(nodes: list[Any], policy: SanitizationPolicy) -> list[Any]:
    output: list[Any] = []
    for node in nodes:
        _sanitize_node(node, policy, output)
    return _merge_text(output)


def _sanitize_node(node: Any, policy: SanitizationPolicy, output: list[Any]) -> None:
    kind = getattr(node, "kind", None)

    if kind is NodeKind.TEXT:
        if node.data:
            output.append(Text(node.data))
        return

    if kind is NodeKind.ELEMENT:
        children = _sanitize_children(node.children, policy)
        if not policy.is_tag_allowed(node.name):
            output.extend(children)
            return
        attrs: dict[str, str] = {}
        for name, value in node.attrs.items():
            value = value if value is not None else ""
            if _keep_attribute(name, value, policy):
                attrs[name] = value
        output.append(Element(node.name, attrs, children))
        return

    if kind is NodeKind.IGNORABLE:
        return

    if kind is NodeKind.FRAGMENT:
        for child in node.children:
            _sanitize_node(child, policy, output)
        return

    msg = f"Unsupported node type: {type(node).__name__}"
    raise TypeError(msg)


def _merge_text(nodes: list[Any]) -> list[Any]:
    # Adjacent text is joined before stripping so that text runs brought
    # together by unwrapping are checked as the single string a reparse sees.
    result: list[Any] = []
    pending: list[str] = []
    for node in nodes:
        if node.kind is NodeKind.TEXT:
            pending.append(node.data)
            continue
        if pending:
            _append_text(result, "".join(pending))
            pending = []
        result.append(node)
    if pending:
        _append_text(result, "".join(pending))
    return result


def _append_text(result: list[Any], data: str) -> None:
    data = strip_forbidden_schemes(data)
    if data:
        result.append(Text(data))
