class Tag:
    __slots__ = ("attrs", "kind", "name", "self_closing")

    START = 0
    END = 1

    def __init__(self, kind, name, attrs=None, self_closing=False):
        self.kind = kind
        self.name = name
        self.attrs = attrs if attrs is not None else {}
        self.self_closing = bool(self_closing)


class CharacterTokens:
    __slots__ = ("data",)

    def __init__(self, data):
        self.data = data


class CommentToken:
    __slots__ = ("data", "processing_instruction")

    def __init__(self, data, processing_instruction=False):
        self.data = data
        self.processing_instruction = bool(processing_instruction)


class DoctypeToken:
    __slots__ = ("data",)

    def __init__(self, data):
        self.data = data


class EOFToken:
    __slots__ = ()


class ParseError:
    """A recoverable parse error named with its WHATWG error code.

    Tokenizer errors carry the 1-based `line` and `column` of the offending
    character. Structural errors from the tree builder, and the invalid-input
    error recorded by `AllowHTML`, have no position.
    """

    __slots__ = ("code", "column", "line", "message")

    def __init__(self, code, line=None, column=None, message=None):
        self.code = code
        self.line = line
        self.column = column
        self.message = message

    @property
    def position(self):
        if self.line is None:
            return None
        return (self.line, self.column)

    def __str__(self):
        text = self.code if self.message is None else f"{self.code}: {self.message}"
        if self.line is None:
            return text
        return f"line {self.line}, column {self.column}: {text}"

    def __repr__(self):
        return f"<ParseError {self}>"
