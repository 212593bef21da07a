import unittest

from allowhtml import Comment, Doctype, Element, ProcessingInstruction, Text, parse_fragment, to_test_format
from allowhtml.constants import MAX_NESTING_DEPTH
from allowhtml.tokens import CharacterTokens, Tag
from allowhtml.treebuilder import TreeBuilder


def _depth(node):
    depth = 0
    while node.children and isinstance(node.children[0], Element):
        node = node.children[0]
        depth += 1
    return depth


class TestTreeBuilder(unittest.TestCase):
    def test_no_implied_end_tags(self) -> None:
        root = parse_fragment("<p>a<p>b")
        assert to_test_format(root) == '| <p>\n|   "a"\n|   <p>\n|     "b"'

    def test_end_tag_closes_elements_opened_inside(self) -> None:
        root = parse_fragment("<b><i>x</b>y")
        assert to_test_format(root) == '| <b>\n|   <i>\n|     "x"\n| "y"'

    def test_stray_end_tag_is_dropped(self) -> None:
        root = parse_fragment("a</b>c")
        assert len(root.children) == 1
        assert root.children[0].data == "ac"

    def test_void_elements_take_no_children(self) -> None:
        root = parse_fragment("<br>text<img>x</img>")
        assert [child.name for child in root.children] == ["br", "#text", "img", "#text"]
        assert root.children[0].children == []
        assert root.children[2].children == []

    def test_eof_closes_open_elements(self) -> None:
        root = parse_fragment("<div><span>x")
        assert to_test_format(root) == '| <div>\n|   <span>\n|     "x"'

    def test_ignorable_nodes(self) -> None:
        root = parse_fragment("<!--c--><!DOCTYPE html><?pi?>")
        assert [type(child) for child in root.children] == [Comment, Doctype, ProcessingInstruction]
        assert root.children[0].data == "c"
        assert root.children[1].data == "html"
        assert root.children[2].data == "pi?"

    def test_comment_separates_text(self) -> None:
        root = parse_fragment("a<!--x-->b")
        assert [type(child) for child in root.children] == [Text, Comment, Text]

    def test_attributes_are_kept_in_order(self) -> None:
        element = parse_fragment('<a id="1" href="2" class="3">').children[0]
        assert list(element.attrs) == ["id", "href", "class"]

    def test_raw_text_element_holds_one_text_node(self) -> None:
        element = parse_fragment("<style>a<b>c</style>").children[0]
        assert element.name == "style"
        assert len(element.children) == 1
        assert element.children[0].data == "a<b>c"

    def test_nesting_is_capped(self) -> None:
        root = parse_fragment("<b><b><b><b>x</b></b></b></b>y", max_depth=3)
        assert _depth(root) == 3
        innermost = root.children[0].children[0].children[0]
        assert innermost.children[0].data == "x"
        assert root.children[-1].data == "y"

    def test_default_nesting_cap(self) -> None:
        root = parse_fragment("<div>" * 1000 + "x")
        assert _depth(root) == MAX_NESTING_DEPTH

    def test_adjacent_character_tokens_merge(self) -> None:
        tree_builder = TreeBuilder()
        tree_builder.process_token(Tag(Tag.START, "p", {}))
        tree_builder.process_token(CharacterTokens("a"))
        tree_builder.process_token(CharacterTokens("b"))
        root = tree_builder.finish()
        paragraph = root.children[0]
        assert len(paragraph.children) == 1
        assert paragraph.children[0].data == "ab"
        assert tree_builder.open_elements == []

    def test_current_node_defaults_to_fragment(self) -> None:
        tree_builder = TreeBuilder()
        assert tree_builder.current_node is tree_builder.fragment
