"""Tree nodes produced by the parser and by the sanitizer.

Every node class carries a ``kind`` so consumers can dispatch without
isinstance chains. Ownership is strictly top-down: nodes keep their children
and know nothing about their parent.
"""

from enum import Enum


class NodeKind(Enum):
    ELEMENT = "element"
    TEXT = "text"
    IGNORABLE = "ignorable"
    FRAGMENT = "fragment"


class Element:
    """An element with a lowercase tag name, ordered attributes and children."""

    __slots__ = ("attrs", "children", "name")

    kind = NodeKind.ELEMENT

    def __init__(self, name, attrs=None, children=None):
        if not name:
            msg = "Element requires a non-empty tag name"
            raise ValueError(msg)
        self.name = name
        self.attrs = dict(attrs) if attrs else {}
        self.children = list(children) if children else []

    def append_child(self, child):
        self.children.append(child)
        return child

    def __repr__(self):
        return f"Element(<{self.name}>, children={len(self.children)})"


class Text:
    __slots__ = ("data",)

    kind = NodeKind.TEXT
    name = "#text"

    def __init__(self, data):
        self.data = data or ""

    def __repr__(self):
        return f"Text({self.data[:30]!r})"


class _Ignorable:
    """Base for nodes the sanitizer drops without looking at their data."""

    __slots__ = ("data",)

    kind = NodeKind.IGNORABLE
    name = ""

    def __init__(self, data=""):
        self.data = data or ""

    def __repr__(self):
        return f"{type(self).__name__}({self.data[:30]!r})"


class Comment(_Ignorable):
    __slots__ = ()

    name = "#comment"


class Doctype(_Ignorable):
    __slots__ = ()

    name = "!doctype"


class ProcessingInstruction(_Ignorable):
    __slots__ = ()

    name = "#processing-instruction"


class Fragment:
    """Root container owning the top-level nodes of a parsed fragment."""

    __slots__ = ("children",)

    kind = NodeKind.FRAGMENT
    name = "#document-fragment"

    def __init__(self, children=None):
        self.children = list(children) if children else []

    def append_child(self, child):
        self.children.append(child)
        return child

    def __repr__(self):
        return f"Fragment(children={len(self.children)})"
