"""Parse, sanitize and serialize entry points."""

import logging

from .constants import MAX_NESTING_DEPTH
from .sanitize import DEFAULT_POLICY, InvalidInput, resolve_policy, sanitize_tree
from .serialize import to_html, to_test_format, to_text
from .tokenizer import Tokenizer, TokenizerOpts
from .tokens import ParseError
from .treebuilder import TreeBuilder

logger = logging.getLogger(__name__)


class StrictModeError(SyntaxError):
    """Raised when strict mode encounters a parse error.

    The offending `ParseError` is available as `.error`.
    """

    def __init__(self, error):
        self.error = error
        super().__init__(str(error))


def parse_fragment(html, *, max_depth=MAX_NESTING_DEPTH):
    """Parse an HTML fragment into a `Fragment` tree.

    Parsing never fails: malformed markup is recovered from, as a browser
    would, but without implied end tags or reparenting.
    """
    tree_builder = TreeBuilder(max_depth=max_depth)
    Tokenizer(tree_builder, TokenizerOpts()).run(html)
    return tree_builder.finish()


def sanitize(html, policy=DEFAULT_POLICY, *, parser=parse_fragment, serializer=to_html):
    """Return `html` with everything outside the policy's allow-lists removed.

    `policy` is a `SanitizationPolicy` or an options mapping such as
    ``{"allowedTags": ["b"], "allowedAttributes": ["class"]}``. `parser` and
    `serializer` default to this package's own and can be swapped out.
    """
    if not isinstance(html, str):
        msg = f"sanitize() expects a string, got {type(html).__name__}"
        raise InvalidInput(msg)
    policy = resolve_policy(policy)
    return serializer(sanitize_tree(parser(html), policy))


class AllowHTML:
    """A sanitized HTML fragment.

    `tree` is the fragment as parsed and `root` the sanitized copy that the
    output methods render. With `collect_errors=True` parse errors are kept in
    `errors`; with `strict=True` the first one raises `StrictModeError`.
    """

    __slots__ = ("errors", "policy", "root", "strict", "tree")

    def __init__(
        self,
        html,
        *,
        policy=DEFAULT_POLICY,
        collect_errors=False,
        strict=False,
        max_depth=MAX_NESTING_DEPTH,
    ):
        self.policy = resolve_policy(policy)
        self.strict = bool(strict)
        self.errors = []

        if not isinstance(html, str):
            if self.strict:
                msg = f"AllowHTML expects a string, got {type(html).__name__}"
                raise InvalidInput(msg)
            logger.warning("AllowHTML expects a string, got %s; using an empty fragment", type(html).__name__)
            self.errors.append(ParseError("invalid-input", message=f"expected a string, got {type(html).__name__}"))
            html = ""

        should_collect = collect_errors or self.strict
        tree_builder = TreeBuilder(max_depth=max_depth)
        Tokenizer(tree_builder, TokenizerOpts(collect_errors=should_collect)).run(html)
        self.tree = tree_builder.finish()

        if should_collect:
            self.errors.extend(tree_builder.errors)
            if self.strict and self.errors:
                raise StrictModeError(self.errors[0])

        self.root = sanitize_tree(self.tree, self.policy)

    def to_html(self):
        return to_html(self.root)

    def to_text(self):
        return to_text(self.root)

    def to_test_format(self):
        return to_test_format(self.root)
