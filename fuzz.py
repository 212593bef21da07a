#!/usr/bin/env python3
"""
Random fuzzer for the allowhtml sanitizer.
Generates invalid/malformed HTML and XSS vectors, then checks that the
sanitized output is idempotent and contains nothing the policy forbids.
"""

import argparse
import random
import re
import string
import sys
import time
import traceback

from allowhtml import DEFAULT_POLICY, NodeKind, SanitizationPolicy, parse_fragment, sanitize
from allowhtml.constants import URL_ATTRIBUTES

# Fuzzing strategies
TAGS = [
    "div", "span", "p", "a", "b", "i", "u", "em", "strong", "img", "table", "tr", "td",
    "ul", "ol", "li", "form", "input", "button", "select", "option", "textarea", "script",
    "style", "title", "meta", "link", "br", "hr", "h1", "h2", "iframe", "object", "embed",
    "video", "audio", "source", "svg", "math", "template", "noscript", "pre", "code",
    "blockquote", "xmp", "noembed", "noframes", "plaintext", "marquee", "base",
]

RAW_TEXT_TAGS = ["script", "style", "xmp", "iframe", "noembed", "noframes", "noscript", "title", "textarea"]
VOID_TAGS = ["area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "track", "wbr"]

ATTRIBUTES = [
    "id", "class", "style", "href", "src", "srcset", "action", "formaction", "poster",
    "title", "name", "value", "type", "onclick", "onload", "onerror", "ONMOUSEOVER",
    "data-x", "aria-label", "xlink:href", "HREF", "Style",
]

SPECIAL_CHARS = [
    "\x00", "\x01", "\x0b", "\x0c", "\x0e", "\x0f", "\x7f",  # Control chars
    "\ufffd",  # Replacement character
    "\u00a0",  # Non-breaking space
    "\u2028", "\u2029",  # Line/paragraph separators
    "\u200b", "\u200c", "\u200d",  # Zero-width chars
    "\ufeff",  # BOM
]

ENTITIES = [
    "&amp;", "&lt;", "&gt;", "&quot;", "&apos;", "&nbsp;",
    "&", "&amp", "&ampamp;", "&am", "&#", "&#x", "&#123", "&#x1f;",
    "&#xdeadbeef;", "&#99999999;", "&#-1;", "&#x;", "&unknown;",
    "&AMP;", "&AMP", "&LT", "&GT", "&colon;", "&Tab;", "&NewLine;",
    "&#0;", "&#x0;", "&#x0D;", "&#13;",  # Null and CR
    "&#128;", "&#x80;",  # C1 control range start
    "&#xD800;", "&#xDFFF;",  # Surrogate range
    "&#x10FFFF;", "&#x110000;",  # Max and over max codepoint
    "&notin;", "&notinva;",
]

# Ways of spelling a forbidden scheme that a careless filter lets through.
SCHEME_VECTORS = [
    "javascript:alert(1)",
    "JaVaScRiPt:alert(1)",
    " javascript:alert(1)",
    "\x01javascript:alert(1)",
    "java\tscript:alert(1)",
    "java\nscript:alert(1)",
    "java&#x09;script:alert(1)",
    "&#106;avascript:alert(1)",
    "javascript&colon;alert(1)",
    "jajavascript:vascript:alert(1)",
    "datdata:a:text/html,<script>alert(1)</script>",
    "data:text/html;base64,PHNjcmlwdD5hbGVydCgxKTwvc2NyaXB0Pg==",
    "DATA:image/svg+xml,<svg onload=alert(1)>",
    "&#x64;ata:text/html,x",
    "x.png 1x, javascript:alert(1) 2x",
    "https://example.com/?next=javascript:alert(1)",
]

# Policies the invariants are checked against: the default, the strictest,
# and a permissive one that lists raw-text and URL-bearing names.
FUZZ_POLICIES = [
    DEFAULT_POLICY,
    SanitizationPolicy.strip_all(),
    SanitizationPolicy(
        allowed_tags=["a", "b", "p", "img", "script", "style", "textarea", "title", "br", "source", "form", "table", "td"],
        allowed_attributes=["href", "src", "srcset", "action", "title", "class", "style", "onclick", "alt"],
    ),
]

_FORBIDDEN_SCHEME_PATTERN = re.compile(r"javascript:|data:", re.IGNORECASE | re.ASCII)
_URL_LEADING_IGNORED = "".join(chr(code) for code in range(0x21))


def random_string(min_len=0, max_len=20):
    """Generate random ASCII string."""
    length = random.randint(min_len, max_len)
    return "".join(random.choices(string.ascii_letters + string.digits, k=length))


def random_whitespace():
    """Generate random whitespace (including weird ones)."""
    ws = [" ", "\t", "\n", "\r", "\f", "\v", "\x0c", "\x00", ""]
    return "".join(random.choices(ws, k=random.randint(0, 5)))


def fuzz_tag_name():
    """Generate malformed tag names."""
    strategies = [
        lambda: random.choice(TAGS),  # Valid tag
        lambda: random.choice(TAGS).upper(),  # Uppercase
        lambda: random.choice(TAGS) + random_string(1, 5),  # Tag with suffix
        lambda: random_string(1, 10),  # Random string
        lambda: "",  # Empty
        lambda: random.choice(SPECIAL_CHARS) + random.choice(TAGS),  # Special prefix
        lambda: random.choice(TAGS) + random.choice(SPECIAL_CHARS),  # Special suffix
        lambda: "0" + random.choice(TAGS),  # Numeric prefix
        lambda: random.choice(TAGS) + "/" + random.choice(TAGS),  # Slash in name
        lambda: random.choice(TAGS) + '"' + random.choice(TAGS),  # Quote in name
        lambda: " " + random.choice(TAGS),  # Space prefix
        lambda: random.choice(TAGS) + "\x00",  # Null in name
    ]
    return random.choice(strategies)()


def fuzz_attribute():
    """Generate malformed attributes."""
    name_strategies = [
        lambda: random.choice(ATTRIBUTES),
        lambda: random_string(1, 15),
        lambda: "",
        lambda: "on" + random_string(2, 8),  # Event handler
        lambda: random.choice(SPECIAL_CHARS),
        lambda: "=",
        lambda: '"',
        lambda: "'",
        lambda: "<",
    ]

    value_strategies = [
        lambda: random_string(0, 50),
        lambda: '"' + random_string() + '"',  # Extra quotes
        lambda: "'" + random_string() + "'",
        lambda: random.choice(ENTITIES),
        lambda: random.choice(SCHEME_VECTORS),
        lambda: random.choice(SCHEME_VECTORS),
        lambda: "<script>alert(1)</script>",
        lambda: random.choice(SPECIAL_CHARS) * random.randint(1, 10),
        lambda: "\n" * random.randint(1, 5) + random_string(),
        lambda: "",
        lambda: "x" * random.randint(100, 1000),  # Long value
    ]

    quote_styles = [
        ('="', '"'),
        ("='", "'"),
        ("=", ""),  # Unquoted
        ("= ", ""),  # Space after equals
        ("", ""),  # No value
        ('="', ""),  # Unclosed quote
        ("='", ""),  # Unclosed single quote
        ("==", ""),  # Double equals
    ]

    name = random.choice(name_strategies)()
    value = random.choice(value_strategies)()
    quote_start, quote_end = random.choice(quote_styles)

    return f"{name}{quote_start}{value}{quote_end}"


def fuzz_open_tag():
    """Generate malformed opening tags."""
    tag = fuzz_tag_name()
    ws1 = random_whitespace()

    attrs = [fuzz_attribute() for _ in range(random.randint(0, 5))]
    attr_str = " ".join(attrs)

    ws2 = random_whitespace()

    closings = [">", "/>", " >", "/ >", "", ">>", ">>>", "/>>", ">/", "\x00>"]
    closing = random.choice(closings)

    # Sometimes corrupt the opening
    openings = ["<", "< ", "<\x00", "<<", "<!!", "<!", "<?", "</"]
    opening = random.choice(openings) if random.random() < 0.2 else "<"

    return f"{opening}{tag}{ws1}{attr_str}{ws2}{closing}"


def fuzz_close_tag():
    """Generate malformed closing tags."""
    tag = fuzz_tag_name()
    ws = random_whitespace()

    variants = [
        f"</{tag}>",
        f"</ {tag}>",
        f"</{tag} >",
        f"</{tag}{ws}>",
        f"</{tag}",  # Unclosed
        f"</{tag}/>",  # Self-closing end tag
        f"<//{tag}>",  # Double slash
        f"</{tag} garbage>",  # Extra content
        f"</ {tag} {fuzz_attribute()}>",  # Attribute in end tag
        f"</{tag}\x00>",  # Null byte
    ]
    return random.choice(variants)


def fuzz_comment():
    """Generate malformed comments."""
    content = random_string(0, 50)

    variants = [
        f"<!--{content}-->",
        f"<!-{content}-->",
        f"<!--{content}->",
        f"<!--{content}",
        f"<!---{content}--->",
        f"<!--{content}--!>",
        "<!---->",
        "<!-->",
        "<!--->",
        f"<!--{content}---->{content}-->",
        f"<!--{content}--{content}-->",
        f"<! --{content}-->",
        f"<!--{content}>",
        f"<!{content}>",
        "java<!-- -->script:alert(1)",  # Comment splitting a scheme
    ]
    return random.choice(variants)


def fuzz_doctype():
    """Generate malformed doctypes."""
    variants = [
        "<!DOCTYPE html>",
        "<!doctype html>",
        "<!DOCTYPE>",
        "<!DOCTYPE html PUBLIC \"\" \"\">",
        "<!DOCTYPE " + random_string() + ">",
        "<!DOCTYPE",
        "<! DOCTYPE html>",
        "<!DOCTYPEhtml>",
        "<!DOCTYPE\x00html>",
    ]
    return random.choice(variants)


def fuzz_cdata():
    """Generate malformed CDATA sections."""
    content = random_string(0, 30)
    variants = [
        f"<![CDATA[{content}]]>",
        f"<![CDATA[{content}",
        f"<![CDATA[{content}]>",
        "<![CDATA[]]>",
        f"<![CDATA{content}]]>",
        f"<![cdata[{content}]]>",
    ]
    return random.choice(variants)


def fuzz_raw_text():
    """Generate malformed raw text elements (script, style, textarea, etc.)."""
    tag = random.choice(RAW_TEXT_TAGS)
    content = random_string(0, 50)

    variants = [
        f"<{tag}>{content}</{tag}>",
        f"<{tag}>{content}",
        f"<{tag}>{content}</{tag}",
        # Fake end tags
        f"<{tag}>{content}</{tag[:-1]}>{content}</{tag}>",
        f"<{tag}>{content}</ {tag}>{content}</{tag}>",
        f"<{tag}>{content}</{tag}x>{content}</{tag}>",
        # Markup inside raw text
        f"<{tag}><b>{content}</b><img src=x onerror=alert(1)></{tag}>",
        f"<{tag}><!-- </{tag}> --></{tag}>",
        f"<{tag}>&lt;/{tag}&gt;{content}</{tag}>",
        f"<{tag}>{random.choice(ENTITIES)}</{tag}>",
        f"<{tag}>{content}\x00{content}</{tag}>",
        f"<{tag}>{random.choice(SCHEME_VECTORS)}</{tag}>",
        f"<{tag}>{content}</{tag} attr='value'>",
        f"<{tag.upper()}>{content}</{tag}>",
        f"<{tag}>{content}</{tag.upper()}>",
        "<script>var s = '</' + 'script>';</script>",
        f"<script>{content}</\u017fcript><b>{content}</b></script>",  # Non-ASCII case fold
    ]
    return random.choice(variants)


def fuzz_text():
    """Generate text content with edge cases."""
    strategies = [
        lambda: random_string(1, 50),
        lambda: random.choice(ENTITIES),
        lambda: "".join(random.choices(SPECIAL_CHARS, k=random.randint(1, 10))),
        lambda: "<" + random_string(1, 5),  # Incomplete tag
        lambda: "&" + random_string(1, 10),  # Incomplete entity
        lambda: random_string() + ">" + random_string(),  # Stray >
        lambda: "\x00" * random.randint(1, 5),  # Null bytes
        lambda: "\r\n" * random.randint(1, 5),  # Line endings
        lambda: random.choice(SCHEME_VECTORS),
        lambda: "java" + random.choice(["", "<b>", "<x>", "<!---->", "</p>"]) + "script:",
    ]
    return random.choice(strategies)()


def fuzz_nested_structure(depth=0, max_depth=10):
    """Generate nested (possibly invalid) structure."""
    if depth >= max_depth or random.random() < 0.3:
        return fuzz_text()

    tag = random.choice(TAGS)
    children = [fuzz_nested_structure(depth + 1, max_depth) for _ in range(random.randint(0, 3))]
    content = "".join(children)

    # Sometimes don't close tags
    if random.random() < 0.2:
        return f"<{tag}>{content}"
    # Sometimes mismatch tags
    if random.random() < 0.1:
        other_tag = random.choice(TAGS)
        return f"<{tag}>{content}</{other_tag}>"

    return f"<{tag}>{content}</{tag}>"


def fuzz_misnested():
    """Generate overlapping and implicitly closed markup."""
    outer = random.choice(["a", "b", "i", "em", "strong", "span"])
    block = random.choice(["div", "p", "blockquote", "li", "td"])
    text = random_string(1, 10)

    variants = [
        f"<{outer}>{text}<{block}>more</{outer}>content</{block}>",
        f"<{outer}>" * 10 + text + f"</{outer}>" * 5 + f"<{block}></{block}>" + f"</{outer}>" * 5,
        f"<p>{text}<p>{text}<p>{text}",
        f"<ul><li>{text}<li>{text}<li>{text}</ul>",
        f"<table><tr><td>{text}<td>{text}<tr><td>{text}</table>",
        f"<a href='javascript:x'><b>{text}</a></b>",
        f"<b><x>{text}</b>{text}</x>",
    ]
    return random.choice(variants)


def fuzz_processing_instruction():
    """Generate processing instructions (XML-style)."""
    content = random_string(0, 20)

    variants = [
        "<?xml version='1.0'?>",
        f"<?{content}?>",
        f"<? {content} ?>",
        "<??>",
        f"<?{content}",  # Unclosed
        f"<b><?xml version='1.0'?></b>",
    ]
    return random.choice(variants)


def fuzz_encoding_edge_cases():
    """Generate edge cases related to character encoding."""
    content = random_string(0, 20)

    variants = [
        f"\ufeff<b>{content}</b>",
        f"<b>{content}\ufeff{content}</b>",
        f"\x00<b>{content}</b>",
        f"<b {content}='\x00'>",
        f"<b>\r{content}\r\n{content}\n</b>",
        f"<b>&#13;{content}&#x0D;</b>",
        f"<a href='&#13;javascript:alert(1)'>{content}</a>",
        f"<b>\f{content}\v</b>",
    ]
    return random.choice(variants)


def fuzz_deeply_nested():
    """Generate very deeply nested structures."""
    depth = random.randint(100, 500)
    tag = random.choice(["div", "span", "b", "i", "a", "x"])

    variants = [
        f"<{tag}>" * depth + "content" + f"</{tag}>" * depth,
        "".join(f"<{random.choice(['div', 'span', 'p', 'b'])}>" for _ in range(depth)) + "x",
        f"<{tag}>" * depth + "content" + f"</{tag}>" * (depth // 2),
        "<x><b>" * depth + "text" + "</b></x>" * depth,
        "<b>" * depth + "<script>a</script><br>text" + "</b>" * depth,
    ]
    return random.choice(variants)


def fuzz_many_attributes():
    """Generate elements with many/large attributes."""
    num_attrs = random.randint(100, 500)
    tag = random.choice(TAGS)

    variants = [
        f"<{tag} " + " ".join(f"attr{i}='value{i}'" for i in range(num_attrs)) + ">",
        f"<{tag} " + " ".join(f"id='id{i}'" for i in range(100)) + ">",
        f"<{tag} class='{'x' * 100000}'>",
        f"<{tag} {'x' * 10000}='value'>",
        f"<{tag} href='{random.choice(SCHEME_VECTORS)}' href='https://example.com'>",
    ]
    return random.choice(variants)


def generate_fuzzed_html():
    """Generate a complete fuzzed HTML fragment."""
    parts = []

    if random.random() < 0.2:
        parts.append(fuzz_doctype())

    num_elements = random.randint(1, 20)
    for _ in range(num_elements):
        element_type = random.choices(
            [
                fuzz_open_tag,
                fuzz_close_tag,
                fuzz_comment,
                fuzz_text,
                fuzz_raw_text,
                fuzz_cdata,
                fuzz_nested_structure,
                fuzz_misnested,
                fuzz_processing_instruction,
                fuzz_encoding_edge_cases,
                fuzz_deeply_nested,
                fuzz_many_attributes,
            ],
            weights=[20, 10, 8, 15, 8, 3, 8, 5, 2, 3, 1, 1],
        )[0]
        parts.append(element_type())

    return "".join(parts)


def check_sanitized(html, policy):
    """Sanitize html under policy and return a list of invariant violations."""
    output = sanitize(html, policy)
    problems = []

    if sanitize(output, policy) != output:
        problems.append("output is not stable when sanitized again")

    stack = list(parse_fragment(output).children)
    while stack:
        node = stack.pop()
        if node.kind is NodeKind.TEXT:
            if _FORBIDDEN_SCHEME_PATTERN.search(node.data):
                problems.append(f"forbidden scheme in text: {node.data[:60]!r}")
            continue
        if node.kind is not NodeKind.ELEMENT:
            problems.append(f"unexpected {node.name} node in output")
            continue
        if not policy.is_tag_allowed(node.name):
            problems.append(f"disallowed tag <{node.name}>")
        for name, value in node.attrs.items():
            if not policy.is_attribute_allowed(name):
                problems.append(f"disallowed attribute {name!r} on <{node.name}>")
            if name in URL_ATTRIBUTES and _has_forbidden_url(name, value):
                problems.append(f"forbidden URL in {name}: {value[:60]!r}")
        stack.extend(node.children)

    return problems


def _has_forbidden_url(name, value):
    urls = [value]
    if name == "srcset":
        urls.extend(candidate.split()[0] for candidate in value.split(",") if candidate.split())
    for url in urls:
        normalized = re.sub(r"[\t\n\r]", "", url).lstrip(_URL_LEADING_IGNORED).lower()
        if normalized.startswith(("javascript:", "data:")):
            return True
    return False


def run_fuzzer(num_tests, seed=None, verbose=False, save_failures=False):
    """Run the fuzzer against the sanitizer."""
    if seed is not None:
        random.seed(seed)

    crashes = []
    violations = []
    hangs = []
    successes = 0

    print(f"Fuzzing allowhtml with {num_tests} test cases...")
    start_time = time.time()

    for i in range(num_tests):
        html = generate_fuzzed_html()
        policy = FUZZ_POLICIES[i % len(FUZZ_POLICIES)]

        if verbose and i % 100 == 0:
            print(f"  Test {i}/{num_tests}...")

        try:
            start = time.perf_counter()
            problems = check_sanitized(html, policy)
            elapsed = time.perf_counter() - start
        except Exception as e:
            crashes.append({
                "test_num": i,
                "html": html,
                "error": str(e),
                "traceback": traceback.format_exc(),
            })
            if verbose:
                print(f"  CRASH: Test {i}: {e}")
            continue

        if problems:
            violations.append({"test_num": i, "html": html, "problems": problems})
            if verbose:
                print(f"  VIOLATION: Test {i}: {problems[0]}")
        elif elapsed > 5.0:
            # Check for hangs (>5 seconds)
            hangs.append({"test_num": i, "html": html, "time": elapsed})
            if verbose:
                print(f"  HANG: Test {i} took {elapsed:.2f}s")
        else:
            successes += 1

    elapsed_total = time.time() - start_time

    # Report results
    print(f"\n{'='*60}")
    print("FUZZING RESULTS: allowhtml")
    print(f"{'='*60}")
    print(f"Total tests:    {num_tests}")
    print(f"Successes:      {successes}")
    print(f"Crashes:        {len(crashes)}")
    print(f"Violations:     {len(violations)}")
    print(f"Hangs (>5s):    {len(hangs)}")
    print(f"Total time:     {elapsed_total:.2f}s")
    if elapsed_total > 0:
        print(f"Tests/second:   {num_tests/elapsed_total:.1f}")

    if crashes:
        print(f"\n{'='*60}")
        print("CRASH DETAILS:")
        print(f"{'='*60}")
        for crash in crashes[:10]:  # Show first 10
            print(f"\nTest #{crash['test_num']}:")
            print(f"  HTML: {crash['html'][:200]!r}...")
            print(f"  Error: {crash['error']}")
        if len(crashes) > 10:
            print(f"\n... and {len(crashes) - 10} more crashes")

    if violations:
        print(f"\n{'='*60}")
        print("VIOLATION DETAILS:")
        print(f"{'='*60}")
        for violation in violations[:10]:
            print(f"\nTest #{violation['test_num']}:")
            print(f"  HTML: {violation['html'][:200]!r}...")
            for problem in violation["problems"][:5]:
                print(f"  - {problem}")

    if hangs:
        print(f"\n{'='*60}")
        print("HANG DETAILS:")
        print(f"{'='*60}")
        for hang in hangs[:5]:
            print(f"\nTest #{hang['test_num']} ({hang['time']:.2f}s):")
            print(f"  HTML: {hang['html'][:200]!r}...")

    if save_failures and (crashes or violations or hangs):
        filename = f"fuzz_failures_allowhtml_{int(time.time())}.txt"
        with open(filename, "w") as f:
            f.write("Fuzzing results for allowhtml\n")
            f.write(f"Seed: {seed}\n\n")
            for crash in crashes:
                f.write(f"=== CRASH #{crash['test_num']} ===\n")
                f.write(f"HTML:\n{crash['html']}\n")
                f.write(f"Error: {crash['error']}\n")
                f.write(f"Traceback:\n{crash['traceback']}\n\n")
            for violation in violations:
                f.write(f"=== VIOLATION #{violation['test_num']} ===\n")
                f.write(f"HTML:\n{violation['html']}\n")
                f.write("Problems:\n" + "\n".join(violation["problems"]) + "\n\n")
            for hang in hangs:
                f.write(f"=== HANG #{hang['test_num']} ({hang['time']:.2f}s) ===\n")
                f.write(f"HTML:\n{hang['html']}\n\n")
        print(f"\nFailures saved to {filename}")

    return not crashes and not violations and not hangs


def main():
    parser = argparse.ArgumentParser(description="Fuzz the allowhtml sanitizer with invalid input")
    parser.add_argument(
        "--num-tests", "-n",
        type=int,
        default=1000,
        help="Number of test cases to generate (default: 1000)",
    )
    parser.add_argument(
        "--seed", "-s",
        type=int,
        default=None,
        help="Random seed for reproducibility",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--save-failures",
        action="store_true",
        help="Save failures to a file",
    )
    parser.add_argument(
        "--sample",
        type=int,
        metavar="N",
        help="Just print N sample fuzzed HTML fragments (no sanitizing)",
    )

    args = parser.parse_args()

    if args.sample:
        if args.seed:
            random.seed(args.seed)
        for i in range(args.sample):
            print(f"=== Sample {i+1} ===")
            print(generate_fuzzed_html())
            print()
        return

    success = run_fuzzer(
        args.num_tests,
        seed=args.seed,
        verbose=args.verbose,
        save_failures=args.save_failures,
    )

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
