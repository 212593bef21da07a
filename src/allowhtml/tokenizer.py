import re

from .constants import RAWTEXT_ELEMENTS
from .entities import decode_entities_in_text
from .tokens import CharacterTokens, CommentToken, DoctypeToken, EOFToken, ParseError, Tag

_WHITESPACE = ("\t", "\n", "\f", " ")
_ASCII_LETTERS = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ")
_ASCII_LOWER_TABLE = str.maketrans({chr(code): chr(code + 32) for code in range(65, 91)})

_TAG_NAME_TERMINATOR_PATTERN = re.compile(r"[\t\n\f />]")
_ATTR_NAME_TERMINATOR_PATTERN = re.compile(r"[\t\n\f />=]")
_ATTR_VALUE_UNQUOTED_TERMINATOR_PATTERN = re.compile(r"[\t\n\f >]")

# re.ASCII limits case folding to A-Z; otherwise U+017F (long s) would match "s".
_RAWTEXT_END_PATTERNS = {
    name: re.compile(r"</" + name + r"[\t\n\f />]", re.IGNORECASE | re.ASCII) for name in RAWTEXT_ELEMENTS
}


class TokenizerOpts:
    __slots__ = ("collect_errors",)

    def __init__(self, collect_errors=False):
        self.collect_errors = bool(collect_errors)


class Tokenizer:
    DATA = 0
    TAG_OPEN = 1
    END_TAG_OPEN = 2
    TAG_NAME = 3
    BEFORE_ATTRIBUTE_NAME = 4
    ATTRIBUTE_NAME = 5
    AFTER_ATTRIBUTE_NAME = 6
    BEFORE_ATTRIBUTE_VALUE = 7
    ATTRIBUTE_VALUE_DOUBLE = 8
    ATTRIBUTE_VALUE_SINGLE = 9
    ATTRIBUTE_VALUE_UNQUOTED = 10
    AFTER_ATTRIBUTE_VALUE_QUOTED = 11
    SELF_CLOSING_START_TAG = 12
    MARKUP_DECLARATION_OPEN = 13
    COMMENT = 14
    BOGUS_COMMENT = 15
    DOCTYPE = 16
    RAWTEXT = 17

    __slots__ = (
        "buffer",
        "comment_is_processing_instruction",
        "current_attr_name",
        "current_attr_value",
        "current_char",
        "current_comment",
        "current_tag_attrs",
        "current_tag_kind",
        "current_tag_name",
        "current_tag_self_closing",
        "length",
        "opts",
        "pos",
        "rawtext_tag_name",
        "reconsume",
        "sink",
        "state",
        "text_buffer",
    )

    def __init__(self, sink, opts=None):
        self.sink = sink
        self.opts = opts or TokenizerOpts()

        self.state = self.DATA
        self.buffer = ""
        self.length = 0
        self.pos = 0
        self.reconsume = False
        self.current_char = ""

        self.text_buffer = []
        self.current_tag_kind = Tag.START
        self.current_tag_name = []
        self.current_tag_attrs = {}
        self.current_tag_self_closing = False
        self.current_attr_name = []
        self.current_attr_value = []
        self.current_comment = []
        self.comment_is_processing_instruction = False
        self.rawtext_tag_name = None

    def run(self, html):
        html = html or ""
        # Input stream preprocessing: newlines are normalized before tokenizing.
        if "\r" in html:
            html = html.replace("\r\n", "\n").replace("\r", "\n")
        self.buffer = html
        self.length = len(html)
        self.pos = 0
        self.reconsume = False
        self.current_char = ""
        self.state = self.DATA
        self.rawtext_tag_name = None
        self.text_buffer.clear()
        self.current_comment.clear()
        self.comment_is_processing_instruction = False

        if "\0" in html:
            if self.opts.collect_errors:
                for match in re.finditer("\0", html):
                    self._emit_error("unexpected-null-character", match.start())
            self.buffer = html.replace("\0", "\ufffd")

        while True:
            state = self.state
            if state == self.DATA:
                if self._state_data():
                    break
            elif state == self.TAG_OPEN:
                if self._state_tag_open():
                    break
            elif state == self.END_TAG_OPEN:
                if self._state_end_tag_open():
                    break
            elif state == self.TAG_NAME:
                if self._state_tag_name():
                    break
            elif state == self.BEFORE_ATTRIBUTE_NAME:
                if self._state_before_attribute_name():
                    break
            elif state == self.ATTRIBUTE_NAME:
                if self._state_attribute_name():
                    break
            elif state == self.AFTER_ATTRIBUTE_NAME:
                if self._state_after_attribute_name():
                    break
            elif state == self.BEFORE_ATTRIBUTE_VALUE:
                if self._state_before_attribute_value():
                    break
            elif state == self.ATTRIBUTE_VALUE_DOUBLE:
                if self._state_attribute_value_quoted('"'):
                    break
            elif state == self.ATTRIBUTE_VALUE_SINGLE:
                if self._state_attribute_value_quoted("'"):
                    break
            elif state == self.ATTRIBUTE_VALUE_UNQUOTED:
                if self._state_attribute_value_unquoted():
                    break
            elif state == self.AFTER_ATTRIBUTE_VALUE_QUOTED:
                if self._state_after_attribute_value_quoted():
                    break
            elif state == self.SELF_CLOSING_START_TAG:
                if self._state_self_closing_start_tag():
                    break
            elif state == self.MARKUP_DECLARATION_OPEN:
                if self._state_markup_declaration_open():
                    break
            elif state == self.COMMENT:
                if self._state_comment():
                    break
            elif state == self.BOGUS_COMMENT:
                if self._state_bogus_comment():
                    break
            elif state == self.DOCTYPE:
                if self._state_doctype():
                    break
            elif state == self.RAWTEXT:
                if self._state_rawtext():
                    break
            else:
                # Unknown state fallback to data.
                self.state = self.DATA

    # ---------------------
    # State handlers
    # ---------------------

    def _state_data(self):
        if self.reconsume:
            self.reconsume = False
            c = self.current_char
            if c == "<":
                self._flush_text()
                self.state = self.TAG_OPEN
                return False
            self.text_buffer.append(c)

        pos = self.pos
        lt_index = self.buffer.find("<", pos)
        if lt_index == -1:
            if pos < self.length:
                self.text_buffer.append(self.buffer[pos:])
            self.pos = self.length
            self._flush_text()
            self._emit_token(EOFToken())
            return True
        if lt_index > pos:
            self.text_buffer.append(self.buffer[pos:lt_index])
        self.pos = lt_index + 1
        self.current_char = "<"
        self._flush_text()
        self.state = self.TAG_OPEN
        return False

    def _state_tag_open(self):
        c = self._get_char()
        if c is None:
            self._emit_error("eof-before-tag-name")
            self.text_buffer.append("<")
            self._flush_text()
            self._emit_token(EOFToken())
            return True
        if c == "!":
            self.state = self.MARKUP_DECLARATION_OPEN
            return False
        if c == "/":
            self.state = self.END_TAG_OPEN
            return False
        if c == "?":
            self._emit_error("unexpected-question-mark-instead-of-tag-name")
            self.current_comment.clear()
            self.comment_is_processing_instruction = True
            self.state = self.BOGUS_COMMENT
            return False
        if c in _ASCII_LETTERS:
            self._start_tag(Tag.START)
            self._reconsume_current()
            self.state = self.TAG_NAME
            return False

        self._emit_error("invalid-first-character-of-tag-name")
        self.text_buffer.append("<")
        self._reconsume_current()
        self.state = self.DATA
        return False

    def _state_end_tag_open(self):
        c = self._get_char()
        if c is None:
            self._emit_error("eof-before-tag-name")
            self.text_buffer.append("</")
            self._flush_text()
            self._emit_token(EOFToken())
            return True
        if c in _ASCII_LETTERS:
            self._start_tag(Tag.END)
            self._reconsume_current()
            self.state = self.TAG_NAME
            return False
        if c == ">":
            self._emit_error("missing-end-tag-name")
            self.state = self.DATA
            return False

        self._emit_error("invalid-first-character-of-tag-name")
        self.current_comment.clear()
        self._reconsume_current()
        self.state = self.BOGUS_COMMENT
        return False

    def _state_tag_name(self):
        while True:
            if self._consume_run(_TAG_NAME_TERMINATOR_PATTERN, self.current_tag_name, lower=True):
                continue
            c = self._get_char()
            if c is None:
                # The unfinished tag is discarded.
                self._emit_error("eof-in-tag")
                self._emit_token(EOFToken())
                return True
            if c in _WHITESPACE:
                self.state = self.BEFORE_ATTRIBUTE_NAME
                return False
            if c == "/":
                self.state = self.SELF_CLOSING_START_TAG
                return False
            if c == ">":
                self._emit_current_tag()
                return False
            self.current_tag_name.append(c.translate(_ASCII_LOWER_TABLE))

    def _state_before_attribute_name(self):
        while True:
            c = self._get_char()
            if c is None:
                self._emit_error("eof-in-tag")
                self._emit_token(EOFToken())
                return True
            if c in _WHITESPACE:
                continue
            if c == "/":
                self.state = self.SELF_CLOSING_START_TAG
                return False
            if c == ">":
                self._emit_current_tag()
                return False
            if c == "=":
                self._emit_error("unexpected-equals-sign-before-attribute-name")
            self._start_attribute()
            self.current_attr_name.append(c.translate(_ASCII_LOWER_TABLE))
            self.state = self.ATTRIBUTE_NAME
            return False

    def _state_attribute_name(self):
        while True:
            if self._consume_run(_ATTR_NAME_TERMINATOR_PATTERN, self.current_attr_name, lower=True):
                continue
            c = self._get_char()
            if c is None:
                self._emit_error("eof-in-tag")
                self._emit_token(EOFToken())
                return True
            if c in _WHITESPACE:
                self.state = self.AFTER_ATTRIBUTE_NAME
                return False
            if c == "/":
                self.state = self.SELF_CLOSING_START_TAG
                return False
            if c == "=":
                self.state = self.BEFORE_ATTRIBUTE_VALUE
                return False
            if c == ">":
                self._emit_current_tag()
                return False
            self.current_attr_name.append(c.translate(_ASCII_LOWER_TABLE))

    def _state_after_attribute_name(self):
        while True:
            c = self._get_char()
            if c is None:
                self._emit_error("eof-in-tag")
                self._emit_token(EOFToken())
                return True
            if c in _WHITESPACE:
                continue
            if c == "/":
                self.state = self.SELF_CLOSING_START_TAG
                return False
            if c == "=":
                self.state = self.BEFORE_ATTRIBUTE_VALUE
                return False
            if c == ">":
                self._emit_current_tag()
                return False
            self._start_attribute()
            self.current_attr_name.append(c.translate(_ASCII_LOWER_TABLE))
            self.state = self.ATTRIBUTE_NAME
            return False

    def _state_before_attribute_value(self):
        while True:
            c = self._get_char()
            if c is None:
                self._emit_error("eof-in-tag")
                self._emit_token(EOFToken())
                return True
            if c in _WHITESPACE:
                continue
            if c == '"':
                self.state = self.ATTRIBUTE_VALUE_DOUBLE
                return False
            if c == "'":
                self.state = self.ATTRIBUTE_VALUE_SINGLE
                return False
            if c == ">":
                self._emit_error("missing-attribute-value")
                self._emit_current_tag()
                return False
            self._reconsume_current()
            self.state = self.ATTRIBUTE_VALUE_UNQUOTED
            return False

    def _state_attribute_value_quoted(self, quote):
        end = self.buffer.find(quote, self.pos)
        if end == -1:
            self.pos = self.length
            self._emit_error("eof-in-tag")
            self._emit_token(EOFToken())
            return True
        self.current_attr_value.append(self.buffer[self.pos : end])
        self.pos = end + 1
        self.state = self.AFTER_ATTRIBUTE_VALUE_QUOTED
        return False

    def _state_attribute_value_unquoted(self):
        while True:
            if self._consume_run(_ATTR_VALUE_UNQUOTED_TERMINATOR_PATTERN, self.current_attr_value):
                continue
            c = self._get_char()
            if c is None:
                self._emit_error("eof-in-tag")
                self._emit_token(EOFToken())
                return True
            if c in _WHITESPACE:
                self.state = self.BEFORE_ATTRIBUTE_NAME
                return False
            if c == ">":
                self._emit_current_tag()
                return False
            self.current_attr_value.append(c)

    def _state_after_attribute_value_quoted(self):
        c = self._get_char()
        if c is None:
            self._emit_error("eof-in-tag")
            self._emit_token(EOFToken())
            return True
        if c in _WHITESPACE:
            self.state = self.BEFORE_ATTRIBUTE_NAME
            return False
        if c == "/":
            self.state = self.SELF_CLOSING_START_TAG
            return False
        if c == ">":
            self._emit_current_tag()
            return False
        self._emit_error("missing-whitespace-between-attributes")
        self._reconsume_current()
        self.state = self.BEFORE_ATTRIBUTE_NAME
        return False

    def _state_self_closing_start_tag(self):
        c = self._get_char()
        if c is None:
            self._emit_error("eof-in-tag")
            self._emit_token(EOFToken())
            return True
        if c == ">":
            self.current_tag_self_closing = True
            self._emit_current_tag()
            return False
        self._emit_error("unexpected-solidus-in-tag")
        self._reconsume_current()
        self.state = self.BEFORE_ATTRIBUTE_NAME
        return False

    def _state_markup_declaration_open(self):
        if self._consume_if("--"):
            self.state = self.COMMENT
            return False
        if self._consume_case_insensitive("DOCTYPE"):
            self.state = self.DOCTYPE
            return False
        self.current_comment.clear()
        if self._consume_if("[CDATA["):
            # CDATA is only meaningful in foreign content; here it is a comment.
            self._emit_error("cdata-in-html-content")
            self.current_comment.append("[CDATA[")
        else:
            self._emit_error("incorrectly-opened-comment")
        self.state = self.BOGUS_COMMENT
        return False

    def _state_comment(self):
        buffer = self.buffer
        start = self.pos
        if buffer.startswith(">", start) or buffer.startswith("->", start):
            self._emit_error("abrupt-closing-of-empty-comment")
            self.pos = buffer.index(">", start) + 1
            self._emit_token(CommentToken(""))
            self.state = self.DATA
            return False

        search = start
        while True:
            dashes = buffer.find("--", search)
            if dashes == -1:
                self._emit_error("eof-in-comment")
                self.pos = self.length
                self._emit_token(CommentToken(buffer[start:]))
                self._emit_token(EOFToken())
                return True
            if buffer.startswith(">", dashes + 2):
                self.pos = dashes + 3
                break
            if buffer.startswith("!>", dashes + 2):
                self._emit_error("incorrectly-closed-comment")
                self.pos = dashes + 4
                break
            search = dashes + 1

        self._emit_token(CommentToken(buffer[start:dashes]))
        self.state = self.DATA
        return False

    def _state_bogus_comment(self):
        if self.reconsume:
            self.reconsume = False
            self.current_comment.append(self.current_char)
        end = self.buffer.find(">", self.pos)
        if end == -1:
            self.current_comment.append(self.buffer[self.pos :])
            self.pos = self.length
            self._emit_comment()
            self._emit_token(EOFToken())
            return True
        self.current_comment.append(self.buffer[self.pos : end])
        self.pos = end + 1
        self._emit_comment()
        self.state = self.DATA
        return False

    def _state_doctype(self):
        end = self.buffer.find(">", self.pos)
        if end == -1:
            self._emit_error("eof-in-doctype")
            data = self.buffer[self.pos :]
            self.pos = self.length
            self._emit_token(DoctypeToken(data.strip()))
            self._emit_token(EOFToken())
            return True
        data = self.buffer[self.pos : end]
        self.pos = end + 1
        self._emit_token(DoctypeToken(data.strip()))
        self.state = self.DATA
        return False

    def _state_rawtext(self):
        # Everything up to the matching end tag is text; the end tag itself is
        # tokenized normally from the data state.
        match = _RAWTEXT_END_PATTERNS[self.rawtext_tag_name].search(self.buffer, self.pos)
        end = match.start() if match else self.length
        if end > self.pos:
            self.text_buffer.append(self.buffer[self.pos : end])
        self.pos = end
        self.rawtext_tag_name = None
        self._flush_text()
        if match is None:
            self._emit_token(EOFToken())
            return True
        self.state = self.DATA
        return False

    # ---------------------
    # Low-level helpers
    # ---------------------

    def _get_char(self):
        if self.reconsume:
            self.reconsume = False
            return self.current_char
        if self.pos >= self.length:
            self.current_char = None
            return None
        c = self.buffer[self.pos]
        self.pos += 1
        self.current_char = c
        return c

    def _reconsume_current(self):
        self.reconsume = True

    def _consume_run(self, stop_pattern, target, lower=False):
        if self.reconsume:
            return False
        pos = self.pos
        if pos >= self.length:
            return False
        match = stop_pattern.search(self.buffer, pos)
        end = match.start() if match else self.length
        if end == pos:
            return False
        chunk = self.buffer[pos:end]
        if lower:
            chunk = chunk.translate(_ASCII_LOWER_TABLE)
        target.append(chunk)
        self.pos = end
        return True

    def _consume_if(self, literal):
        end = self.pos + len(literal)
        if end > self.length:
            return False
        if self.buffer[self.pos : end] != literal:
            return False
        self.pos = end
        return True

    def _consume_case_insensitive(self, literal):
        end = self.pos + len(literal)
        if end > self.length:
            return False
        if self.buffer[self.pos : end].translate(_ASCII_LOWER_TABLE) != literal.lower():
            return False
        self.pos = end
        return True

    def _flush_text(self):
        if not self.text_buffer:
            return
        data = "".join(self.text_buffer)
        self.text_buffer.clear()
        if data:
            if "&" in data:
                data = decode_entities_in_text(data)
            self._emit_token(CharacterTokens(data))

    def _start_tag(self, kind):
        self.current_tag_kind = kind
        self.current_tag_name.clear()
        self.current_tag_attrs = {}
        self.current_attr_name.clear()
        self.current_attr_value.clear()
        self.current_tag_self_closing = False

    def _start_attribute(self):
        self._finish_attribute()

    def _finish_attribute(self):
        if not self.current_attr_name:
            self.current_attr_value.clear()
            return
        name = "".join(self.current_attr_name)
        value = "".join(self.current_attr_value)
        self.current_attr_name.clear()
        self.current_attr_value.clear()
        if "&" in value:
            value = decode_entities_in_text(value, in_attribute=True)
        if name in self.current_tag_attrs:
            self._emit_error("duplicate-attribute")
            return
        self.current_tag_attrs[name] = value

    def _emit_current_tag(self):
        self._finish_attribute()
        kind = self.current_tag_kind
        name = "".join(self.current_tag_name)
        attrs = self.current_tag_attrs
        self_closing = self.current_tag_self_closing
        self.current_tag_name.clear()
        self.current_tag_attrs = {}
        self.current_tag_self_closing = False

        if kind == Tag.END and attrs:
            self._emit_error("end-tag-with-attributes")

        self.state = self.DATA
        if kind == Tag.START and name in _RAWTEXT_END_PATTERNS:
            self.state = self.RAWTEXT
            self.rawtext_tag_name = name
        self._emit_token(Tag(kind, name, attrs, self_closing))

    def _emit_comment(self):
        data = "".join(self.current_comment)
        self.current_comment.clear()
        processing_instruction = self.comment_is_processing_instruction
        self.comment_is_processing_instruction = False
        self._emit_token(CommentToken(data, processing_instruction=processing_instruction))

    def _emit_token(self, token):
        self.sink.process_token(token)

    def _emit_error(self, code, pos=None):
        if not self.opts.collect_errors:
            return
        if pos is None:
            pos = self.pos
        line = self.buffer.count("\n", 0, pos) + 1
        column = pos - self.buffer.rfind("\n", 0, pos)
        self._emit_token(ParseError(code, line=line, column=column))
