from .node import Comment, Doctype, Element, Fragment, NodeKind, ProcessingInstruction, Text
from .parser import AllowHTML, StrictModeError, parse_fragment, sanitize
from .sanitize import DEFAULT_POLICY, InvalidInput, InvalidPolicy, SanitizationPolicy, sanitize_tree
from .serialize import to_html, to_test_format, to_text
from .tokens import ParseError

__all__ = [
    "DEFAULT_POLICY",
    "AllowHTML",
    "Comment",
    "Doctype",
    "Element",
    "Fragment",
    "InvalidInput",
    "InvalidPolicy",
    "NodeKind",
    "ParseError",
    "ProcessingInstruction",
    "SanitizationPolicy",
    "StrictModeError",
    "Text",
    "parse_fragment",
    "sanitize",
    "sanitize_tree",
    "to_html",
    "to_test_format",
    "to_text",
]
