from __future__ import annotations

import unittest

from allowhtml import (
    Comment,
    Doctype,
    Element,
    Fragment,
    ProcessingInstruction,
    Text,
    parse_fragment,
    to_html,
    to_test_format,
    to_text,
)
from allowhtml.serialize import serialize_end_tag, serialize_start_tag


class TestToHtml(unittest.TestCase):
    def test_text_is_escaped(self) -> None:
        assert to_html(Text("<script>&")) == "&lt;script&gt;&amp;"

    def test_quotes_are_not_escaped_in_text(self) -> None:
        assert to_html(Text("\"it's\"")) == "\"it's\""

    def test_attribute_values_are_double_quoted_and_escaped(self) -> None:
        element = Element("a", {"title": 'a"b<c>&d\'e'})
        assert to_html(element) == '<a title="a&quot;b&lt;c&gt;&amp;d\'e"></a>'

    def test_empty_attribute_value(self) -> None:
        assert to_html(Element("input", {"disabled": ""})) == '<input disabled="">'

    def test_carriage_return_is_written_as_reference(self) -> None:
        assert to_html(Text("a\rb")) == "a&#13;b"
        assert to_html(Element("b", {"title": "\r"})) == '<b title="&#13;"></b>'

    def test_void_elements_have_no_end_tag(self) -> None:
        assert to_html(Fragment([Element("br"), Element("img", {"src": "a.png"})])) == '<br><img src="a.png">'

    def test_children_of_void_element_follow_the_tag(self) -> None:
        assert to_html(Element("br", children=[Text("x")])) == "<br>x"

    def test_nested_elements(self) -> None:
        tree = Fragment([Element("p", children=[Text("a"), Element("b", children=[Text("b")])]), Text("c")])
        assert to_html(tree) == "<p>a<b>b</b></p>c"

    def test_ignorable_nodes(self) -> None:
        assert to_html(Comment("c")) == "<!--c-->"
        assert to_html(Doctype("html")) == "<!DOCTYPE html>"
        assert to_html(Doctype("")) == "<!DOCTYPE>"
        assert to_html(ProcessingInstruction("xml v")) == "<?xml v>"

    def test_unknown_node_raises(self) -> None:
        with self.assertRaises(TypeError):
            to_html(Fragment([object()]))
        with self.assertRaises(TypeError):
            to_html(Element("b", children=["text"]))

    def test_reparsing_gives_the_same_markup(self) -> None:
        html = '<a href="x" class="y">t&amp;<b>u</b></a><br>&lt;i&gt;'
        assert to_html(parse_fragment(html)) == html

    def test_raw_text_is_escaped_and_reparses(self) -> None:
        tree = parse_fragment("<style>a > b &amp; c</style>")
        html = to_html(tree)
        assert html == "<style>a &gt; b &amp; c</style>"
        assert to_text(parse_fragment(html)) == "a > b & c"

    def test_start_and_end_tag_helpers(self) -> None:
        assert serialize_start_tag("a", {"href": "/x", "title": None}) == '<a href="/x" title="">'
        assert serialize_start_tag("b", None) == "<b>"
        assert serialize_end_tag("b") == "</b>"


class TestToText(unittest.TestCase):
    def test_concatenates_descendant_text(self) -> None:
        tree = Fragment([Element("b", children=[Text("a")]), Comment("x"), Text("b")])
        assert to_text(tree) == "ab"

    def test_text_is_not_escaped(self) -> None:
        assert to_text(Text("<&>")) == "<&>"

    def test_unknown_node_raises(self) -> None:
        with self.assertRaises(TypeError):
            to_text(Fragment([Text("a"), object()]))


class TestToTestFormat(unittest.TestCase):
    def test_attributes_are_sorted(self) -> None:
        element = Element("div", {"b": "2", "a": "1"}, [Text("x")])
        assert to_test_format(element) == '| <div>\n|   a="1"\n|   b="2"\n|   "x"'

    def test_fragment_and_ignorables(self) -> None:
        tree = Fragment([Comment("c"), Doctype("html"), Element("p")])
        assert to_test_format(tree) == "| <!-- c -->\n| <!DOCTYPE html>\n| <p>"

    def test_unknown_node_raises(self) -> None:
        with self.assertRaises(TypeError):
            to_test_format(Fragment([object()]))
        with self.assertRaises(TypeError):
            to_test_format(Element("p", children=[42]))
