"""DDL parser — extracts a Canonical Schema from one CREATE TABLE statement.

Handles MySQL, PostgreSQL and SQLite syntax variations:
- MySQL: backtick-quoted names, AUTO_INCREMENT, UNSIGNED, inline COMMENT '...'
- PostgreSQL: double-quoted names, SERIAL types, identity columns, TEXT[]
  arrays, COMMENT ON COLUMN statements
- SQLite: any identifier quoting, AUTOINCREMENT, typeless columns, type affinity

Parsing strategy: locate the CREATE TABLE header, balance its column list
with a quote-aware depth scanner, then run each column element through the
column state machine in ``ddl_scanner``. A malformed column is skipped and
reported as a warning instead of failing the whole statement.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Optional

import sqlparse

from schemaforge.errors import ParseError
from schemaforge.source_loader.base import (
    BaseParser,
    CanonicalSchema,
    DDLParseResult,
    Field,
    SemanticType,
    SourceFormat,
)
from schemaforge.source_loader.ddl_scanner import (
    ColumnTokenizer,
    ColumnTokens,
    ScanError,
    find_matching_paren,
    split_column_list,
)
from schemaforge.source_loader.dialects import (
    MYSQL,
    POSTGRESQL,
    SQLITE,
    Dialect,
    get_dialect,
)

logger = logging.getLogger(__name__)

_IDENT = r"(?:`[^`]+`|\"[^\"]+\"|\[[^\]]+\]|[\w$]+)"

CREATE_TABLE_HEADER = re.compile(
    r"CREATE\s+(?:TEMP(?:ORARY)?\s+)?TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?"
    rf"((?:{_IDENT}\s*\.\s*)*{_IDENT})\s*\(",
    re.IGNORECASE,
)
IDENT_PART = re.compile(_IDENT)

TABLE_CONSTRAINT_PREFIX = re.compile(r"^CONSTRAINT\s+" + _IDENT + r"\s*", re.IGNORECASE)
PRIMARY_KEY_CLAUSE = re.compile(r"^PRIMARY\s+KEY\b", re.IGNORECASE)
UNIQUE_CLAUSE = re.compile(
    r"^UNIQUE\s*(?:KEY|INDEX)?\s*(?:" + _IDENT + r")?\s*\(", re.IGNORECASE
)
OTHER_TABLE_CLAUSE = re.compile(
    r"^(?:FOREIGN\s+KEY|CHECK\s*\(|EXCLUDE\b|FULLTEXT\b|SPATIAL\b)", re.IGNORECASE
)
INDEX_CLAUSE = re.compile(r"^(?:KEY|INDEX)\s*(" + _IDENT + r")?\s*\(", re.IGNORECASE)
TYPE_ARGS_RE = re.compile(
    r"^\s*(?:\d+|'[^']*')(?:\s*,\s*(?:\d+|'[^']*'))*\s*$"
)

NOT_NULL_RE = re.compile(r"\bNOT\s+NULL\b", re.IGNORECASE)
PRIMARY_KEY_RE = re.compile(r"\bPRIMARY\s+KEY\b", re.IGNORECASE)
UNIQUE_RE = re.compile(r"\bUNIQUE\b", re.IGNORECASE)
UNSIGNED_RE = re.compile(r"\b(?:UNSIGNED|ZEROFILL)\b", re.IGNORECASE)
DEFAULT_RE = re.compile(r"\bDEFAULT\b", re.IGNORECASE)
COMMENT_RE = re.compile(r"\bCOMMENT\b", re.IGNORECASE)


def strip_identifier(raw: str) -> str:
    """Remove one level of identifier quoting (`x`, "x" or [x])."""
    raw = raw.strip()
    if len(raw) >= 2 and (raw[0], raw[-1]) in (("`", "`"), ('"', '"'), ("[", "]")):
        return raw[1:-1]
    return raw


def mask_quoted(text: str) -> str:
    """Blank out the contents of single-quoted literals, keeping offsets.

    Keyword detection runs on the masked text so that ``COMMENT 'not null'``
    is not mistaken for a NOT NULL constraint.
    """
    out = list(text)
    i = 0
    in_quote = False
    while i < len(text):
        ch = text[i]
        if in_quote:
            if ch == "\\" and i + 1 < len(text):
                out[i] = out[i + 1] = " "
                i += 2
                continue
            if ch == "'":
                if i + 1 < len(text) and text[i + 1] == "'":
                    out[i] = out[i + 1] = " "
                    i += 2
                    continue
                in_quote = False
            else:
                out[i] = " "
        elif ch == "'":
            in_quote = True
        i += 1
    return "".join(out)


def read_string_literal(text: str, pos: int) -> tuple[Optional[str], int]:
    """Read a single-quoted SQL literal at ``pos``; returns (value, end)."""
    if pos >= len(text) or text[pos] != "'":
        return None, pos
    chars: list[str] = []
    i = pos + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text):
            chars.append(text[i + 1])
            i += 2
            continue
        if ch == "'":
            if i + 1 < len(text) and text[i + 1] == "'":
                chars.append("'")
                i += 2
                continue
            return "".join(chars), i + 1
        chars.append(ch)
        i += 1
    return None, pos


def read_default_value(text: str, pos: int) -> Optional[str]:
    """Read the DEFAULT expression starting at ``pos``, as written."""
    while pos < len(text) and text[pos].isspace():
        pos += 1
    if pos >= len(text):
        return None
    start = pos
    if text[pos] == "'":
        _, pos = read_string_literal(text, pos)
        if pos == start:
            return None
    elif text[pos] == "(":
        close = find_matching_paren(text, pos)
        if close < 0:
            return None
        pos = close + 1
    else:
        m = re.match(r"[^\s,]+", text[pos:])
        pos += m.end()
        # function call such as nextval('seq'::regclass) or now()
        if pos < len(text) and text[pos] == "(":
            close = find_matching_paren(text, pos)
            if close > 0:
                pos = close + 1
    m = re.match(r"::[\w]+(?:\s+varying)?", text[pos:], re.IGNORECASE)
    if m:
        pos += m.end()
    return text[start:pos]


class DDLParser(BaseParser):
    """Parses one SQL CREATE TABLE statement into a CanonicalSchema."""

    dialect: Dialect = MYSQL

    def __init__(self):
        self.tokenizer = ColumnTokenizer(identifier_quotes=self.dialect.identifier_quotes)

    @classmethod
    def for_dialect(cls, dialect: SourceFormat | str) -> DDLParser:
        """Return the parser for ``dialect`` (mysql, postgresql or sqlite)."""
        target = get_dialect(dialect)
        for parser_cls in (MySQLParser, PostgreSQLParser, SQLiteParser):
            if parser_cls.dialect is target:
                return parser_cls()
        raise ValueError(f"No parser registered for {target.source_format.value}")

    def can_parse(self, content: str) -> bool:
        return bool(CREATE_TABLE_HEADER.search(content or ""))

    def parse(self, content: str, **kwargs) -> CanonicalSchema:
        """Parse ``content``; raises ParseError on unrecoverable input."""
        table_name, fields, _ = self._parse(content)
        return CanonicalSchema(
            source_name=table_name,
            fields=tuple(fields),
            source_format=self.dialect.source_format,
        )

    def parse_result(self, content: str) -> DDLParseResult:
        """Parse ``content`` into a result object; never raises."""
        try:
            table_name, fields, warnings = self._parse(content)
        except ParseError as e:
            logger.warning(f"DDL parse failed ({self.dialect.source_format.value}): {e}")
            return DDLParseResult(dialect=self.dialect.source_format, error=str(e))
        return DDLParseResult(
            table_name=table_name,
            fields=fields,
            dialect=self.dialect.source_format,
            warnings=warnings,
        )

    def _parse(self, content: str) -> tuple[str, list[Field], list[str]]:
        if not content or not content.strip():
            raise ParseError("Empty DDL input")

        text = sqlparse.format(content, strip_comments=True)
        header = CREATE_TABLE_HEADER.search(text)
        if not header:
            raise ParseError("No CREATE TABLE statement found")

        table_name = strip_identifier(IDENT_PART.findall(header.group(1))[-1])
        open_idx = header.end() - 1
        close_idx = find_matching_paren(text, open_idx)
        if close_idx < 0:
            raise ParseError(f"Unterminated column list in CREATE TABLE {table_name}")

        warnings: list[str] = []
        if CREATE_TABLE_HEADER.search(text, close_idx):
            warnings.append("Multiple CREATE TABLE statements found; only the first is parsed")

        try:
            elements = split_column_list(text[open_idx + 1:close_idx])
        except ScanError as e:
            raise ParseError(f"Cannot split column list of {table_name}: {e}") from e

        fields = self._build_fields(elements, warnings)
        fields = self._post_process(text, table_name, fields)

        for w in warnings:
            logger.warning(f"{table_name}: {w}")
        logger.info(
            f"Parsed {self.dialect.source_format.value} table {table_name}: "
            f"{len(fields)} columns"
        )
        return table_name, fields, warnings

    def _build_fields(self, elements: list[str], warnings: list[str]) -> list[Field]:
        fields: list[Field] = []
        seen: set[str] = set()
        pk_names: set[str] = set()
        unique_names: set[str] = set()

        for element in elements:
            named = TABLE_CONSTRAINT_PREFIX.match(element)
            if named:
                # CONSTRAINT name PRIMARY KEY (...) / UNIQUE (...) / CHECK ...
                self._apply_table_clause(element[named.end():], pk_names, unique_names)
                continue
            if self._is_table_clause(element):
                self._apply_table_clause(element, pk_names, unique_names)
                continue

            tokens = self.tokenizer.tokenize(element)
            if tokens is None or not tokens.name:
                warnings.append(f"Skipped malformed column definition: {element[:60]}")
                continue
            if not tokens.type_name and not self.dialect.allows_typeless_columns:
                warnings.append(f"Skipped column without a type: {tokens.name}")
                continue
            key = tokens.name.lower()
            if key in seen:
                warnings.append(f"Skipped duplicate column: {tokens.name}")
                continue

            seen.add(key)
            fields.append(self._build_field(tokens, len(fields)))

        for i, f in enumerate(fields):
            key = f.name.lower()
            if key in pk_names:
                fields[i] = f = replace(f, is_primary_key=True, nullable=False)
            if key in unique_names:
                fields[i] = replace(f, is_unique=True)
        return fields

    def _is_table_clause(self, element: str) -> bool:
        if PRIMARY_KEY_CLAUSE.match(element) or UNIQUE_CLAUSE.match(element):
            return True
        if OTHER_TABLE_CLAUSE.match(element):
            return True
        m = INDEX_CLAUSE.match(element)
        if m:
            # `key VARCHAR(10)` is a column named key; `KEY date (created)` is an index
            # whose name happens to be a type, told apart by what the parentheses hold
            word = strip_identifier(m.group(1) or "").lower()
            if word not in self.dialect.types:
                return True
            close_idx = find_matching_paren(element, m.end() - 1)
            return close_idx >= 0 and not TYPE_ARGS_RE.match(element[m.end():close_idx])
        return False

    def _apply_table_clause(self, clause: str, pk_names: set[str], unique_names: set[str]) -> None:
        is_pk = bool(PRIMARY_KEY_CLAUSE.match(clause))
        is_unique = bool(UNIQUE_CLAUSE.match(clause))
        if not (is_pk or is_unique):
            logger.debug(f"Ignoring table-level clause: {clause[:60]}")
            return
        open_idx = clause.find("(")
        close_idx = find_matching_paren(clause, open_idx) if open_idx >= 0 else -1
        if close_idx < 0:
            return
        names = []
        for part in split_column_list(clause[open_idx + 1:close_idx]):
            tokens = self.tokenizer.tokenize(part)
            if tokens and tokens.name:
                names.append(tokens.name.lower())
        if is_pk:
            pk_names.update(names)
        elif len(names) == 1:
            unique_names.update(names)

    def _build_field(self, tokens: ColumnTokens, position: int) -> Field:
        constraints = tokens.constraints
        masked = mask_quoted(constraints)
        base_type = " ".join(tokens.type_name.lower().split())

        is_pk = bool(PRIMARY_KEY_RE.search(masked))
        nullable = not (NOT_NULL_RE.search(masked) or is_pk)
        is_unique = bool(UNIQUE_RE.search(masked))
        is_unsigned = self.dialect.supports_unsigned and bool(UNSIGNED_RE.search(masked))
        is_auto = base_type in self.dialect.auto_increment_types or bool(
            self.dialect.auto_increment_pattern
            and re.search(self.dialect.auto_increment_pattern, masked, re.IGNORECASE)
        )

        default_value = None
        m = DEFAULT_RE.search(masked)
        if m:
            default_value = read_default_value(constraints, m.end())

        comment = None
        if self.dialect.supports_inline_comment:
            m = COMMENT_RE.search(masked)
            if m:
                pos = m.end()
                while pos < len(constraints) and constraints[pos] in " \t\r\n=":
                    pos += 1
                comment, _ = read_string_literal(constraints, pos)

        semantic = self.dialect.semantic_type(base_type) if base_type else SemanticType.UNKNOWN
        element_type = None
        depth = tokens.array_suffix.count("[")
        if depth:
            element_type, semantic = semantic, SemanticType.JSON_ARRAY

        logger.debug(f"Column {tokens.name}: {tokens.raw_type} -> {semantic.value}")
        return Field(
            name=tokens.name,
            raw_type=tokens.raw_type,
            semantic_type=semantic,
            nullable=nullable,
            is_primary_key=is_pk,
            is_auto_increment=is_auto,
            is_unsigned=is_unsigned,
            is_unique=is_unique,
            default_value=default_value,
            comment=comment,
            ordinal_position=position,
            element_type=element_type,
            array_depth=depth,
            type_args=tokens.type_args,
            raw_definition=tokens.definition,
        )

    def _post_process(self, text: str, table_name: str, fields: list[Field]) -> list[Field]:
        """Dialect hook for statements that follow the CREATE TABLE."""
        return fields


class MySQLParser(DDLParser):
    """MySQL / MariaDB CREATE TABLE."""

    dialect = MYSQL


class PostgreSQLParser(DDLParser):
    """PostgreSQL CREATE TABLE plus COMMENT ON COLUMN statements."""

    dialect = POSTGRESQL

    COMMENT_ON_COLUMN = re.compile(
        rf"COMMENT\s+ON\s+COLUMN\s+((?:{_IDENT}\s*\.\s*)+)({_IDENT})\s+IS\s+",
        re.IGNORECASE,
    )

    def _post_process(self, text: str, table_name: str, fields: list[Field]) -> list[Field]:
        comments: dict[str, str] = {}
        for m in self.COMMENT_ON_COLUMN.finditer(text):
            qualifier = IDENT_PART.findall(m.group(1))
            if not qualifier or strip_identifier(qualifier[-1]).lower() != table_name.lower():
                continue
            value, _ = read_string_literal(text, m.end())
            if value is not None:
                comments[strip_identifier(m.group(2)).lower()] = value
        if not comments:
            return fields
        return [
            replace(f, comment=comments[f.name.lower()]) if f.name.lower() in comments else f
            for f in fields
        ]


class SQLiteParser(DDLParser):
    """SQLite CREATE TABLE."""

    dialect = SQLITE
