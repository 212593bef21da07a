"""End-to-end behavior of sanitize() and AllowHTML."""

from __future__ import annotations

import unittest

from allowhtml import (
    DEFAULT_POLICY,
    AllowHTML,
    InvalidInput,
    InvalidPolicy,
    NodeKind,
    SanitizationPolicy,
    parse_fragment,
    sanitize,
    to_text,
)

SAMPLES = [
    "",
    "plain text",
    "<b>bold</b> and <i>italic</i>",
    '<a href="javascript:alert(1)" onclick="x()">link</a>',
    "<script>alert(1)</script><p>after</p>",
    "<ul><li>one<li>two</ul>",
    "<p>a<p>b</p>",
    "<div><span>unclosed",
    "java<!-- -->script:alert(1)",
    "<x>java</x>script:alert(1)",
    "jajavascript:vascript:alert(1)",
    "<b>&#13;x&#x0D;</b>",
    "\ufeffbom",
    "<style>a > b &amp; c</style>",
    "<textarea></textarea><b>x</b></textarea>",
    "<b a=1 b=2 c=3 class=x id=y>t</b>",
    "<a href='&#106;avascript:x'>j</a>",
    "<img src=x onerror=alert(1)>",
    "1 < 2 && 3 > 2",
    "<b>\x00</b>\r\n",
    "</b></b><b></i>x",
    "<!DOCTYPE html><?xml?><![CDATA[x]]>",
    "<B CLASS=Y>upper</B>",
    "<p title='a\"b'>q</p>",
]

WIDE_POLICY = SanitizationPolicy(
    allowed_tags=["a", "b", "p", "img", "style", "textarea", "script", "br", "div"],
    allowed_attributes=["href", "src", "class", "title", "style", "onerror"],
)


def _elements(html):
    stack = list(parse_fragment(html).children)
    while stack:
        node = stack.pop()
        if node.kind is NodeKind.ELEMENT:
            yield node
            stack.extend(node.children)


class TestSanitizeProperties(unittest.TestCase):
    def test_idempotence(self) -> None:
        for policy in (DEFAULT_POLICY, WIDE_POLICY, SanitizationPolicy.strip_all()):
            for html in SAMPLES:
                once = sanitize(html, policy)
                assert sanitize(once, policy) == once, (html, once)

    def test_tag_and_attribute_allow_lists(self) -> None:
        for policy in (DEFAULT_POLICY, WIDE_POLICY):
            for html in SAMPLES:
                for element in _elements(sanitize(html, policy)):
                    assert policy.is_tag_allowed(element.name), (html, element.name)
                    for name in element.attrs:
                        assert policy.is_attribute_allowed(name), (html, name)
                        assert name != "style"
                        assert not name.startswith("on")

    def test_forbidden_url_schemes_are_removed_not_rewritten(self) -> None:
        assert sanitize('<a href="javascript:alert(1)">x</a>') == "<a>x</a>"
        policy = SanitizationPolicy(allowed_tags=["img"], allowed_attributes=["src"])
        assert sanitize('<img src="data:text/html,<script>alert(1)</script>">', policy) == "<img>"
        assert sanitize("<a href='&#106;avascript:x'>j</a>") == "<a>j</a>"
        assert sanitize('<a href="  JavaScript:x">j</a>') == "<a>j</a>"

    def test_unwrap_preserves_content(self) -> None:
        assert sanitize("<script>safe text</script>") == "safe text"

    def test_order_is_preserved(self) -> None:
        policy = SanitizationPolicy(allowed_tags=["b", "u"], allowed_attributes=["class"])
        assert sanitize("<b>1</b><i>2</i><u>3</u>", policy) == "<b>1</b>2<u>3</u>"

    def test_attribute_filtering(self) -> None:
        policy = SanitizationPolicy(allowed_tags=["a"], allowed_attributes=["href", "class"])
        html = '<a href="https://x.com" onclick="evil()" style="color:red" class="ok">x</a>'
        assert sanitize(html, policy) == '<a href="https://x.com" class="ok">x</a>'

    def test_text_is_re_escaped(self) -> None:
        assert sanitize("&lt;script&gt;") == "&lt;script&gt;"
        assert sanitize("1 < 2 && 3 > 2") == "1 &lt; 2 &amp;&amp; 3 &gt; 2"

    def test_schemes_are_stripped_from_text(self) -> None:
        assert sanitize("<p>Click javascript:alert(1)</p>") == "<p>Click alert(1)</p>"
        assert sanitize("java<!-- -->script:alert(1)") == "alert(1)"
        assert sanitize("<x>java</x>script:alert(1)") == "alert(1)"
        assert sanitize("jajavascript:vascript:alert(1)") == "alert(1)"

    def test_comments_and_doctypes_are_removed(self) -> None:
        assert sanitize("<!DOCTYPE html>a<!-- c -->b<?pi?>") == "ab"

    def test_tag_names_are_lowercased(self) -> None:
        assert sanitize("<B CLASS=Y>upper</B>") == '<b class="Y">upper</b>'

    def test_implicitly_closed_markup_keeps_its_text(self) -> None:
        assert sanitize("<ul><li>one<li>two</ul>") == "onetwo"
        assert sanitize("<p>a<p>b</p>") == "<p>a<p>b</p></p>"

    def test_strip_all(self) -> None:
        assert sanitize("<div><b>x</b> y</div>", SanitizationPolicy.strip_all()) == "x y"

    def test_carriage_returns_and_nulls(self) -> None:
        assert sanitize("<b>&#13;x</b>") == "<b>&#13;x</b>"
        assert sanitize("a\r\nb\x00") == "a\nb\ufffd"

    def test_byte_order_mark_is_kept(self) -> None:
        assert sanitize("\ufeffbom") == "\ufeffbom"

    def test_allowed_raw_text_element_is_escaped(self) -> None:
        policy = SanitizationPolicy(allowed_tags=["style"], allowed_attributes=["class"])
        assert sanitize("<style>a > b</style>", policy) == "<style>a &gt; b</style>"

    def test_deep_nesting_is_capped(self) -> None:
        out = sanitize("<div>" * 10000 + "x")
        assert out == "<div>" * 256 + "x" + "</div>" * 256
        assert sanitize(out) == out


class TestSanitizeEntryPoint(unittest.TestCase):
    def test_options_mapping_policy(self) -> None:
        policy = {"allowedTags": ["b"], "allowedAttributes": ["class"]}
        assert sanitize("<b class='x' id='y'>t</b><i>u</i>", policy) == '<b class="x">t</b>u'

    def test_non_string_input_raises(self) -> None:
        for value in (None, b"<b>x</b>", 1, ["<b>"]):
            with self.assertRaises(InvalidInput):
                sanitize(value)

    def test_invalid_input_is_type_error(self) -> None:
        with self.assertRaises(TypeError):
            sanitize(None)

    def test_invalid_policy_raises_before_parsing(self) -> None:
        calls = []

        def recording_parser(html):
            calls.append(html)
            return parse_fragment(html)

        with self.assertRaises(InvalidPolicy):
            sanitize("<b>x</b>", {"bogus": True}, parser=recording_parser)
        assert calls == []

    def test_injected_parser_and_serializer(self) -> None:
        assert sanitize("<b>a</b><i>b</i>", serializer=to_text) == "ab"
        seen = []

        def recording_parser(html):
            seen.append(html)
            return parse_fragment(html)

        assert sanitize("<u>x</u>", parser=recording_parser) == "<u>x</u>"
        assert seen == ["<u>x</u>"]


class TestAllowHTML(unittest.TestCase):
    def test_tree_and_root(self) -> None:
        doc = AllowHTML("<b>x</b><script>y</script>")
        assert doc.tree.children[1].name == "script"
        assert [child.name for child in doc.root.children] == ["b", "#text"]
        assert doc.to_html() == "<b>x</b>y"
        assert doc.to_text() == "xy"

    def test_to_test_format(self) -> None:
        doc = AllowHTML('<a href="x" onclick="y">t</a>')
        assert doc.to_test_format() == '| <a>\n|   href="x"\n|   "t"'

    def test_policy_options(self) -> None:
        doc = AllowHTML("<b>x</b><i>y</i>", policy={"allowedTags": ["i"], "allowedAttributes": ["class"]})
        assert doc.to_html() == "x<i>y</i>"
        assert isinstance(doc.policy, SanitizationPolicy)

    def test_max_depth(self) -> None:
        doc = AllowHTML("<b><b><b>x", max_depth=1)
        assert doc.to_html() == "<b>x</b>"
