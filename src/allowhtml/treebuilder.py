"""Builds a fragment tree from tokens using only the structure written in the markup.

There are no insertion modes: no implied end tags, no auto-closing and no
reparenting. Serializing a tree built here and parsing it again gives back the
same tree, which is what makes sanitizing idempotent.
"""

from .constants import MAX_NESTING_DEPTH, VOID_ELEMENT_SET
from .node import Comment, Doctype, Element, Fragment, ProcessingInstruction, Text
from .tokens import CharacterTokens, CommentToken, DoctypeToken, ParseError, Tag


class TreeBuilder:
    __slots__ = ("errors", "fragment", "max_depth", "open_elements")

    def __init__(self, max_depth=MAX_NESTING_DEPTH):
        self.fragment = Fragment()
        self.open_elements = []
        self.errors = []
        self.max_depth = max_depth

    @property
    def current_node(self):
        if self.open_elements:
            return self.open_elements[-1]
        return self.fragment

    def process_token(self, token):
        token_type = type(token)
        if token_type is ParseError:
            self.errors.append(token)
            return

        if token_type is CharacterTokens:
            self._insert_text(token.data)
            return

        if token_type is Tag:
            if token.kind == Tag.START:
                self._handle_start_tag(token)
            else:
                self._handle_end_tag(token)
            return

        if token_type is CommentToken:
            if token.processing_instruction:
                self.current_node.append_child(ProcessingInstruction(token.data))
            else:
                self.current_node.append_child(Comment(token.data))
            return

        if token_type is DoctypeToken:
            self.current_node.append_child(Doctype(token.data))
            return

        # EOFToken: open elements are closed in finish().

    def finish(self):
        if self.open_elements:
            self._parse_error("expected-closing-tag-but-got-eof")
            self.open_elements.clear()
        return self.fragment

    def _insert_text(self, data):
        if not data:
            return
        children = self.current_node.children
        if children and type(children[-1]) is Text:
            children[-1].data += data
            return
        children.append(Text(data))

    def _handle_start_tag(self, token):
        name = token.name
        if name in VOID_ELEMENT_SET:
            self.current_node.append_child(Element(name, token.attrs))
            return

        if token.self_closing:
            # The trailing solidus is ignored on non-void elements; the element stays open.
            self._parse_error("non-void-html-element-start-tag-with-trailing-solidus")

        if len(self.open_elements) >= self.max_depth:
            # The tag is dropped and its content lands in the current element,
            # so no tree is ever deeper than max_depth.
            self._parse_error("nesting-too-deep")
            return

        element = Element(name, token.attrs)
        self.current_node.append_child(element)
        self.open_elements.append(element)

    def _handle_end_tag(self, token):
        name = token.name
        open_elements = self.open_elements
        for index in range(len(open_elements) - 1, -1, -1):
            if open_elements[index].name == name:
                if index != len(open_elements) - 1:
                    self._parse_error("end-tag-too-early")
                del open_elements[index:]
                return
        self._parse_error("unexpected-end-tag")

    def _parse_error(self, code):
        self.errors.append(ParseError(code))
