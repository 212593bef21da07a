"""Element and attribute tables used by the parser and the sanitizer.

Elements are kept in lists to maintain a stable iteration order; the
frozenset variants are what the hot paths test membership against.

References:
    - https://html.spec.whatwg.org/multipage/syntax.html#void-elements
    - https://html.spec.whatwg.org/multipage/syntax.html#raw-text-elements
"""

# HTML Element Sets
VOID_ELEMENTS = [
    "area",
    "base",
    "basefont",
    "bgsound",
    "br",
    "col",
    "embed",
    "hr",
    "img",
    "input",
    "keygen",
    "link",
    "meta",
    "param",
    "source",
    "track",
    "wbr",
]

# Elements whose content is consumed as text up to the matching end tag.
# Unlike a browser, character references are decoded in all of them, so the
# escaped serialization reparses to the same text.
RAWTEXT_ELEMENTS = [
    "title",
    "textarea",
    "style",
    "script",
    "xmp",
    "iframe",
    "noembed",
    "noframes",
    "noscript",
]

VOID_ELEMENT_SET = frozenset(VOID_ELEMENTS)
RAWTEXT_ELEMENT_SET = frozenset(RAWTEXT_ELEMENTS)

# Attributes whose value the host dereferences as a URL.
URL_ATTRIBUTES = frozenset(
    {
        "action",
        "background",
        "cite",
        "codebase",
        "data",
        "dynsrc",
        "formaction",
        "href",
        "icon",
        "longdesc",
        "lowsrc",
        "manifest",
        "ping",
        "poster",
        "src",
        "srcset",
        "usemap",
        "xlink:href",
    }
)

# Schemes that execute code or inject content when dereferenced.
FORBIDDEN_SCHEMES = ("javascript", "data")

# Attributes that are never kept, whatever the policy allows.
FORBIDDEN_ATTRIBUTES = frozenset({"style"})
EVENT_HANDLER_PREFIX = "on"

# Start tags nested deeper than this are dropped. Keeps the recursive
# walker and serializer well inside the interpreter's recursion limit.
MAX_NESTING_DEPTH = 256

DEFAULT_ALLOWED_TAGS = ["b", "i", "u", "strong", "em", "p", "div", "span", "a", "br"]
DEFAULT_ALLOWED_ATTRIBUTES = ["href", "class", "id"]
