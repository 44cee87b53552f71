"""Depth- and quote-aware scanning of CREATE TABLE bodies.

Two passes:

1. ``split_column_list`` cuts the table body into elements on commas that
   sit outside parentheses and quoted text, so ``DECIMAL(10,2)`` and
   ``ENUM('a,b')`` stay whole.
2. ``ColumnTokenizer`` walks one column element through an explicit state
   machine (EXPECT_COLUMN_NAME → IN_TYPE → IN_TYPE_ARGS → IN_CONSTRAINTS)
   and yields its name, type, type arguments and constraint text.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

QUOTE_PAIRS = {"'": "'", '"': '"', "`": "`", "[": "]"}

# Multi-word SQL types captured as a single type token. The first word is
# the key; each candidate continuation is tried longest first.
MULTI_WORD_TYPES: dict[str, list[tuple[str, ...]]] = {
    "double": [("precision",)],
    "character": [("varying",)],
    "char": [("varying",)],
    "national": [("character", "varying"), ("char", "varying"), ("character",), ("char",)],
    "long": [("raw",), ("varchar",)],
    "timestamp": [("with", "time", "zone"), ("without", "time", "zone")],
    "time": [("with", "time", "zone"), ("without", "time", "zone")],
    "bit": [("varying",)],
    "unsigned": [("big", "int")],
}

# Words that open the constraint section; a column starting with one of
# these has no declared type (allowed by SQLite).
CONSTRAINT_KEYWORDS = frozenset({
    "primary", "not", "null", "unique", "default", "check", "references",
    "collate", "generated", "constraint", "autoincrement", "auto_increment",
    "comment", "as",
})


class ScanError(ValueError):
    """Raised when a column list cannot be balanced."""


def find_matching_paren(text: str, open_idx: int, quotes: str = "'\"`") -> int:
    """Index of the ')' closing the '(' at ``open_idx``, or -1 if unterminated.

    Parentheses inside quoted text (any of ``quotes``) are ignored; doubled
    quotes and backslash escapes inside single-quoted strings are honoured.
    """
    depth = 0
    i = open_idx
    quote: Optional[str] = None
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\" and quote == "'":
                i += 2
                continue
            if ch == quote:
                if i + 1 < len(text) and text[i + 1] == quote:
                    i += 2
                    continue
                quote = None
        elif ch in quotes:
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def split_column_list(body: str, quotes: str = "'\"`") -> list[str]:
    """Split a CREATE TABLE body on top-level commas.

    Raises ScanError when parentheses or quotes are left open.
    """
    elements: list[str] = []
    current: list[str] = []
    depth = 0
    quote: Optional[str] = None
    i = 0
    while i < len(body):
        ch = body[i]
        if quote:
            current.append(ch)
            if ch == "\\" and quote == "'" and i + 1 < len(body):
                current.append(body[i + 1])
                i += 2
                continue
            if ch == quote:
                if i + 1 < len(body) and body[i + 1] == quote:
                    current.append(body[i + 1])
                    i += 2
                    continue
                quote = None
        elif ch in quotes:
            quote = ch
            current.append(ch)
        elif ch == "(":
            depth += 1
            current.append(ch)
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise ScanError("Unbalanced ')' in column list")
            current.append(ch)
        elif ch == "," and depth == 0:
            elements.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1

    if quote:
        raise ScanError(f"Unterminated quoted text ({quote}) in column list")
    if depth != 0:
        raise ScanError("Unterminated parenthesis in column list")

    tail = "".join(current).strip()
    if tail:
        elements.append(tail)
    return [e for e in elements if e]


class ScanState(str, Enum):
    EXPECT_COLUMN_NAME = "expect_column_name"
    IN_TYPE = "in_type"
    IN_TYPE_ARGS = "in_type_args"
    IN_CONSTRAINTS = "in_constraints"


@dataclass
class ColumnTokens:
    """Pieces of one column definition."""

    name: str
    type_name: str = ""
    type_args: Optional[str] = None
    array_suffix: str = ""
    constraints: str = ""
    definition: str = ""

    @property
    def raw_type(self) -> str:
        raw = self.type_name
        if self.type_args is not None:
            raw += f"({self.type_args})"
        return raw + self.array_suffix


class ColumnTokenizer:
    """State machine splitting a column element into name, type and constraints."""

    def __init__(self, identifier_quotes: str = "`\""):
        self.identifier_quotes = identifier_quotes

    def tokenize(self, element: str) -> Optional[ColumnTokens]:
        """Return the tokens of ``element``, or None if it has no column name."""
        text = element.strip()
        pos = 0
        state = ScanState.EXPECT_COLUMN_NAME
        tokens: Optional[ColumnTokens] = None

        while True:
            if state == ScanState.EXPECT_COLUMN_NAME:
                name, pos = self._read_name(text, pos)
                if not name:
                    return None
                tokens = ColumnTokens(name=name, definition=text[pos:].strip())
                state = ScanState.IN_TYPE

            elif state == ScanState.IN_TYPE:
                type_name, pos = self._read_type_words(text, pos)
                tokens.type_name = type_name
                pos = self._skip_ws(text, pos)
                if type_name and pos < len(text) and text[pos] == "(":
                    state = ScanState.IN_TYPE_ARGS
                else:
                    state = ScanState.IN_CONSTRAINTS

            elif state == ScanState.IN_TYPE_ARGS:
                close = find_matching_paren(text, pos)
                if close < 0:
                    return None
                tokens.type_args = text[pos + 1:close].strip()
                pos = close + 1
                # Trailing words of a multi-word type, e.g. TIMESTAMP(3) WITH TIME ZONE
                suffix, pos = self._read_type_continuation(tokens.type_name, text, pos)
                if suffix:
                    tokens.type_name = f"{tokens.type_name} {suffix}"
                state = ScanState.IN_CONSTRAINTS

            elif state == ScanState.IN_CONSTRAINTS:
                tokens.array_suffix, pos = self._read_array_suffix(text, pos)
                tokens.constraints = text[pos:].strip()
                return tokens

    def _read_name(self, text: str, pos: int) -> tuple[str, int]:
        pos = self._skip_ws(text, pos)
        if pos >= len(text):
            return "", pos
        ch = text[pos]
        closer = QUOTE_PAIRS.get(ch) if ch in self.identifier_quotes else None
        if closer:
            end = text.find(closer, pos + 1)
            if end < 0:
                return "", pos
            return text[pos + 1:end], end + 1
        start = pos
        while pos < len(text) and (text[pos].isalnum() or text[pos] in "_$"):
            pos += 1
        return text[start:pos], pos

    def _read_word(self, text: str, pos: int) -> tuple[str, int]:
        pos = self._skip_ws(text, pos)
        start = pos
        if pos < len(text) and (text[pos].isalpha() or text[pos] == "_"):
            while pos < len(text) and (text[pos].isalnum() or text[pos] == "_"):
                pos += 1
        return text[start:pos], pos

    def _read_type_words(self, text: str, pos: int) -> tuple[str, int]:
        word, end = self._read_word(text, pos)
        if not word or word.lower() in CONSTRAINT_KEYWORDS:
            return "", pos
        suffix, end = self._read_type_continuation(word, text, end)
        return (f"{word} {suffix}" if suffix else word), end

    def _read_type_continuation(self, type_name: str, text: str, pos: int) -> tuple[str, int]:
        first = type_name.split()[0].lower()
        for continuation in MULTI_WORD_TYPES.get(first, []):
            words: list[str] = []
            cursor = pos
            for expected in continuation:
                word, cursor = self._read_word(text, cursor)
                if word.lower() != expected:
                    break
                words.append(word)
            else:
                return " ".join(words), cursor
        return "", pos

    def _read_array_suffix(self, text: str, pos: int) -> tuple[str, int]:
        suffix = ""
        cursor = self._skip_ws(text, pos)
        while text.startswith("[", cursor):
            close = text.find("]", cursor)
            if close < 0:
                break
            suffix += text[cursor:close + 1].replace(" ", "")
            cursor = self._skip_ws(text, close + 1)
        if suffix:
            return suffix, cursor
        word, cursor = self._read_word(text, pos)
        if word.upper() == "ARRAY":
            return "[]", cursor
        return "", pos

    @staticmethod
    def _skip_ws(text: str, pos: int) -> int:
        while pos < len(text) and text[pos].isspace():
            pos += 1
        return pos
