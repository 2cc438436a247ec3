from __future__ import annotations

STRUCTURAL_TAGS = {
    "body",
    "div",
    "section",
    "article",
    "header",
    "footer",
    "nav",
    "main",
    "script",
    "style",
    "template",
}

# Control-flow words that look like `name(...) {` method heads.
JS_KEYWORDS = {
    "if",
    "for",
    "while",
    "switch",
    "catch",
    "function",
    "return",
    "await",
    "else",
}

MAP_SEPARATOR = "-" * 50
HEADER_KEYS = ("File:", "Path:", "Size:", "LOC:", "Modified:")
ENTIRE_FILE_LABEL = "(Entire File)"
MODIFIED_FORMAT = "%Y-%m-%d %H:%M:%S"
