"""HTML5 character reference decoding.

Handles named references (&amp;, &nbsp;), the legacy names that may omit the
trailing semicolon (&copy), and numeric references (&#60;, &#x3C;).
"""

import html.entities

# Python's complete HTML5 entity table, keyed without the trailing semicolon.
NAMED_ENTITIES = {}
for key, value in html.entities.html5.items():
    if key.endswith(";"):
        NAMED_ENTITIES[key[:-1]] = value
    else:
        NAMED_ENTITIES[key] = value

# Legacy (mostly Latin-1) references that are recognized without a semicolon.
LEGACY_ENTITIES = {
    "gt", "lt", "amp", "quot", "nbsp", "AMP", "GT", "LT", "QUOT",
    "AElig", "Aacute", "Acirc", "Agrave", "Aring", "Atilde", "Auml",
    "Ccedil", "ETH", "Eacute", "Ecirc", "Egrave", "Euml",
    "Iacute", "Icirc", "Igrave", "Iuml",
    "Ntilde", "Oacute", "Ocirc", "Ograve", "Oslash", "Otilde", "Ouml",
    "THORN", "Uacute", "Ucirc", "Ugrave", "Uuml", "Yacute",
    "aacute", "acirc", "acute", "aelig", "agrave", "aring", "atilde", "auml",
    "brvbar", "ccedil", "cedil", "cent", "copy", "COPY", "curren",
    "deg", "divide",
    "eacute", "ecirc", "egrave", "eth", "euml",
    "frac12", "frac14", "frac34",
    "iacute", "icirc", "iexcl", "igrave", "iquest", "iuml",
    "laquo", "macr", "micro", "middot",
    "not", "ntilde",
    "oacute", "ocirc", "ograve", "ordf", "ordm", "oslash", "otilde", "ouml",
    "para", "plusmn", "pound",
    "raquo", "reg", "REG",
    "sect", "shy", "sup1", "sup2", "sup3", "szlig",
    "thorn", "times",
    "uacute", "ucirc", "ugrave", "uml", "uuml",
    "yacute", "yen", "yuml",
}

# Numeric references that map to something other than their code point.
NUMERIC_REPLACEMENTS = {
    0x00: "\ufffd",
    0x80: "\u20ac",
    0x82: "\u201a",
    0x83: "\u0192",
    0x84: "\u201e",
    0x85: "\u2026",
    0x86: "\u2020",
    0x87: "\u2021",
    0x88: "\u02c6",
    0x89: "\u2030",
    0x8A: "\u0160",
    0x8B: "\u2039",
    0x8C: "\u0152",
    0x8E: "\u017d",
    0x91: "\u2018",
    0x92: "\u2019",
    0x93: "\u201c",
    0x94: "\u201d",
    0x95: "\u2022",
    0x96: "\u2013",
    0x97: "\u2014",
    0x98: "\u02dc",
    0x99: "\u2122",
    0x9A: "\u0161",
    0x9B: "\u203a",
    0x9C: "\u0153",
    0x9E: "\u017e",
    0x9F: "\u0178",
}

_HEX_DIGITS = "0123456789abcdefABCDEF"
_DEC_DIGITS = "0123456789"


def decode_numeric_entity(text, is_hex=False):
    """Decode the digits of a numeric reference, or return None if unusable."""
    try:
        codepoint = int(text, 16 if is_hex else 10)
    except ValueError:
        return None

    if codepoint in NUMERIC_REPLACEMENTS:
        return NUMERIC_REPLACEMENTS[codepoint]
    if codepoint > 0x10FFFF:
        return "\ufffd"
    if 0xD800 <= codepoint <= 0xDFFF:
        return "\ufffd"
    return chr(codepoint)


def _legacy_blocked(next_char, in_attribute):
    # In attribute values a legacy reference followed by an alphanumeric or
    # "=" is left alone, so query strings like ?a=1&copy=2 survive.
    if not in_attribute or next_char is None:
        return False
    return next_char.isalnum() or next_char == "="


def decode_entities_in_text(text, in_attribute=False):
    """Decode every character reference in text."""
    if "&" not in text:
        return text

    result = []
    i = 0
    length = len(text)
    while i < length:
        next_amp = text.find("&", i)
        if next_amp == -1:
            result.append(text[i:])
            break
        if next_amp > i:
            result.append(text[i:next_amp])

        i = next_amp
        j = i + 1

        if j < length and text[j] == "#":
            j += 1
            is_hex = j < length and text[j] in "xX"
            if is_hex:
                j += 1
            digits = _HEX_DIGITS if is_hex else _DEC_DIGITS
            digit_start = j
            while j < length and text[j] in digits:
                j += 1
            has_semicolon = j < length and text[j] == ";"
            decoded = decode_numeric_entity(text[digit_start:j], is_hex=is_hex) if j > digit_start else None
            if decoded is not None:
                result.append(decoded)
                i = j + 1 if has_semicolon else j
                continue
            # Not a usable reference; keep the ampersand and rescan after it.
            result.append("&")
            i += 1
            continue

        while j < length and text[j].isascii() and text[j].isalnum():
            j += 1
        name = text[i + 1 : j]
        has_semicolon = j < length and text[j] == ";"

        if not name:
            result.append("&")
            i += 1
            continue

        if has_semicolon and name in NAMED_ENTITIES:
            result.append(NAMED_ENTITIES[name])
            i = j + 1
            continue

        # Longest legacy prefix, e.g. &notit; decodes &not and keeps "it;".
        match_len = 0
        for k in range(len(name), 0, -1):
            if name[:k] in LEGACY_ENTITIES:
                match_len = k
                break

        if match_len:
            end = i + 1 + match_len
            next_char = text[end] if end < length else None
            if not _legacy_blocked(next_char, in_attribute):
                result.append(NAMED_ENTITIES[name[:match_len]])
                i = end
                continue

        result.append("&")
        i += 1

    return "".join(result)
