"""Diff engine — computes the ALTER TABLE script that turns one table into another.

Stateless: every call parses both DDL texts, compares the two schemas by
case-insensitive column name and returns a fresh result.

Statement order is fixed:
1. ADD COLUMN for columns only in the source, in source order
2. MODIFY COLUMN for changed columns, in source order
3. DROP COLUMN for columns only in the target, in target order

Column repositioning (AFTER <col>) is never emitted. MODIFY drops column-level
PRIMARY KEY / UNIQUE from the carried definition. PostgreSQL comment changes
become COMMENT ON COLUMN statements next to the column they describe.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from schemaforge.config import get_config
from schemaforge.errors import ParseError, SchemaForgeError
from schemaforge.source_loader.base import CanonicalSchema, Field, SourceFormat
from schemaforge.source_loader.ddl_parser import (
    COMMENT_RE,
    NOT_NULL_RE,
    PRIMARY_KEY_RE,
    DDLParser,
    mask_quoted,
)
from schemaforge.source_loader.detector import FormatDetector
from schemaforge.source_loader.dialects import MYSQL, POSTGRESQL, SQLITE, Dialect, get_dialect

logger = logging.getLogger(__name__)

IDENTICAL_MESSAGE = "-- Schemas are identical, no changes required"
COLUMNS_IDENTICAL_MESSAGE = "-- Columns are identical, no changes required"

COLUMN_KEY_RE = re.compile(
    r"\s*(?:\bCONSTRAINT\s+\S+\s+)?\b(?:PRIMARY\s+KEY|UNIQUE(?:\s+KEY)?)\b", re.IGNORECASE
)


class ChangeKind(str, Enum):
    ADD = "add"
    MODIFY = "modify"
    DROP = "drop"


@dataclass(frozen=True)
class ColumnChange:
    """One column-level difference and its compatibility classification."""

    kind: ChangeKind
    column: str
    old: Optional[Field] = None
    new: Optional[Field] = None
    breaking: bool = False
    # ADD_REQUIRED_COLUMN, ADD_NULLABLE_COLUMN, REMOVE_COLUMN, TYPE_CHANGE,
    # NULLABLE_TO_REQUIRED or NON_BREAKING_MODIFICATION
    reason: str = ""


@dataclass
class SchemaDiff:
    """Differences between a target (current) and source (desired) table."""

    table_name: str
    source_table_name: str
    added: list[ColumnChange] = field(default_factory=list)
    modified: list[ColumnChange] = field(default_factory=list)
    removed: list[ColumnChange] = field(default_factory=list)

    @property
    def changes(self) -> list[ColumnChange]:
        return self.added + self.modified + self.removed

    @property
    def breaking_changes(self) -> list[ColumnChange]:
        return [c for c in self.changes if c.breaking]

    @property
    def non_breaking_changes(self) -> list[ColumnChange]:
        return [c for c in self.changes if not c.breaking]

    @property
    def is_empty(self) -> bool:
        return not self.changes

    @property
    def table_names_differ(self) -> bool:
        return self.table_name != self.source_table_name


def normalized_type(f: Field) -> str:
    """Case- and whitespace-insensitive type string, UNSIGNED included."""
    text = " ".join(f.raw_type.lower().split())
    text = re.sub(r"\s*([(),\[\]])\s*", r"\1", text)
    return f"{text} unsigned" if f.is_unsigned else text


def definitions_differ(old: Field, new: Field) -> bool:
    """Type, nullability or auto-increment changed; comments are not compared."""
    return (
        normalized_type(old) != normalized_type(new)
        or old.nullable != new.nullable
        or old.is_auto_increment != new.is_auto_increment
    )


def fields_differ(old: Field, new: Field) -> bool:
    return definitions_differ(old, new) or (old.comment or "") != (new.comment or "")


def _auto_increment_clause(f: Field, dialect: Dialect) -> Optional[str]:
    if dialect is MYSQL:
        return "AUTO_INCREMENT"
    if dialect is SQLITE:
        return "AUTOINCREMENT"
    if dialect is POSTGRESQL and f.base_type not in POSTGRESQL.auto_increment_types:
        return "GENERATED BY DEFAULT AS IDENTITY"
    return None


def _quote_literal(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def reconstruct_definition(f: Field, dialect: Dialect = MYSQL) -> str:
    """Column definition synthesized from the normalized field.

    Clauses the field does not model (DEFAULT, CHECK, COLLATE, ...) are lost.
    """
    parts = [f.raw_type] if f.raw_type else []
    if f.is_unsigned and dialect.supports_unsigned:
        parts.append("UNSIGNED")
    if not f.nullable:
        parts.append("NOT NULL")
    if f.is_auto_increment:
        clause = _auto_increment_clause(f, dialect)
        if clause:
            parts.append(clause)
    if f.comment and dialect.supports_inline_comment:
        parts.append(f"COMMENT {_quote_literal(f.comment)}")
    return " ".join(parts)


def strip_key_constraints(text: str) -> str:
    """Remove column-level PRIMARY KEY and UNIQUE; MODIFY must not re-declare keys."""
    masked = mask_quoted(text)
    for m in reversed(list(COLUMN_KEY_RE.finditer(masked))):
        text = text[:m.start()] + text[m.end():]
    return text.strip()


def complete_definition(text: str, f: Field, dialect: Dialect = MYSQL) -> str:
    """Append the clauses ``f`` carries that ``text`` does not spell out.

    A table-level ``PRIMARY KEY (col)`` makes the column NOT NULL without
    saying so in its own definition.
    """
    masked = mask_quoted(text)
    parts = [text]
    if not f.nullable and not (NOT_NULL_RE.search(masked) or PRIMARY_KEY_RE.search(masked)):
        parts.append("NOT NULL")
    if f.is_auto_increment and f.base_type not in dialect.auto_increment_types:
        pattern = dialect.auto_increment_pattern
        if not (pattern and re.search(pattern, masked, re.IGNORECASE)):
            clause = _auto_increment_clause(f, dialect)
            if clause:
                parts.append(clause)
    if f.comment and dialect.supports_inline_comment and not COMMENT_RE.search(masked):
        parts.append(f"COMMENT {_quote_literal(f.comment)}")
    return " ".join(parts)


def _classify_added(f: Field) -> ColumnChange:
    # A NOT NULL column without a default cannot be added to a populated table
    required = not f.nullable and f.default_value is None and not f.is_auto_increment
    return ColumnChange(
        kind=ChangeKind.ADD,
        column=f.name,
        new=f,
        breaking=required,
        reason="ADD_REQUIRED_COLUMN" if required else "ADD_NULLABLE_COLUMN",
    )


def _classify_modified(old: Field, new: Field) -> ColumnChange:
    if normalized_type(old) != normalized_type(new):
        breaking, reason = True, "TYPE_CHANGE"
    elif old.nullable and not new.nullable:
        breaking, reason = True, "NULLABLE_TO_REQUIRED"
    else:
        breaking, reason = False, "NON_BREAKING_MODIFICATION"
    return ColumnChange(
        kind=ChangeKind.MODIFY, column=new.name, old=old, new=new, breaking=breaking, reason=reason
    )


def compute_diff(target: CanonicalSchema, source: CanonicalSchema) -> SchemaDiff:
    """Compare two parsed tables. Pure; never raises."""
    diff = SchemaDiff(table_name=target.source_name, source_table_name=source.source_name)
    target_map = target.field_map()
    source_map = source.field_map()

    for f in source.fields:
        if f.name.lower() not in target_map:
            diff.added.append(_classify_added(f))

    for f in source.fields:
        old = target_map.get(f.name.lower())
        if old is not None and fields_differ(old, f):
            diff.modified.append(_classify_modified(old, f))

    for f in target.fields:
        if f.name.lower() not in source_map:
            diff.removed.append(
                ColumnChange(
                    kind=ChangeKind.DROP, column=f.name, old=f, breaking=True, reason="REMOVE_COLUMN"
                )
            )

    logger.info(
        f"Diff {diff.table_name}: {len(diff.added)} added, {len(diff.modified)} modified, "
        f"{len(diff.removed)} removed ({len(diff.breaking_changes)} breaking)"
    )
    return diff


def render_statements(
    diff: SchemaDiff, dialect: Dialect = MYSQL, preserve_definitions: bool = True
) -> list[str]:
    """ALTER TABLE statements for ``diff``, led by table-name comments if any."""
    lines: list[str] = []
    if diff.table_names_differ:
        lines.append(f"-- Table names differ: {diff.table_name} vs {diff.source_table_name}")
        lines.append(f"-- Assuming target table: {diff.table_name}")

    table = dialect.quote(diff.table_name)
    # PostgreSQL keeps column comments outside the column definition
    separate_comments = dialect is POSTGRESQL

    def definition(f: Field, modify: bool) -> str:
        text = (f.raw_definition or "").strip() if preserve_definitions else ""
        if text and modify:
            text = strip_key_constraints(text)
        if not text:
            return reconstruct_definition(f, dialect)
        return complete_definition(text, f, dialect)

    def column_statement(action: str, f: Field) -> str:
        body = f"ALTER TABLE {table} {action} COLUMN {dialect.quote(f.name)}"
        definition_text = definition(f, modify=action == "MODIFY")
        return f"{body} {definition_text};" if definition_text else f"{body};"

    def comment_statement(f: Field) -> str:
        value = _quote_literal(f.comment) if f.comment else "NULL"
        return f"COMMENT ON COLUMN {table}.{dialect.quote(f.name)} IS {value};"

    for change in diff.added:
        lines.append(column_statement("ADD", change.new))
        if separate_comments and change.new.comment:
            lines.append(comment_statement(change.new))
    for change in diff.modified:
        old, new = change.old, change.new
        comment_changed = (old.comment or "") != (new.comment or "")
        if not separate_comments or definitions_differ(old, new):
            lines.append(column_statement("MODIFY", new))
        if separate_comments and comment_changed:
            lines.append(comment_statement(new))
    for change in diff.removed:
        lines.append(f"ALTER TABLE {table} DROP COLUMN {dialect.quote(change.old.name)};")

    if diff.is_empty:
        lines.append(COLUMNS_IDENTICAL_MESSAGE if diff.table_names_differ else IDENTICAL_MESSAGE)
    return lines


class DiffEngine:
    """Parses two DDL texts and emits the ALTER script between them.

    Holds only options; nothing is retained between calls.
    """

    def __init__(
        self,
        dialect: Optional[SourceFormat | str] = None,
        preserve_definitions: Optional[bool] = None,
    ):
        self.dialect = dialect
        if preserve_definitions is None:
            preserve_definitions = get_config().preserve_definitions
        self.preserve_definitions = preserve_definitions

    def diff(self, target_ddl: str, source_ddl: str) -> list[str]:
        """Ordered statements, or a single explanatory comment. Never raises."""
        try:
            dialect = self._resolve_dialect(target_ddl, source_ddl)
            parser = DDLParser.for_dialect(dialect.source_format)
            target = self._parse(parser, target_ddl, "target")
            source = self._parse(parser, source_ddl, "source")
        except ParseError as e:
            logger.warning(f"Diff aborted: {e}")
            return [f"-- Unable to parse DDL: {e}"]

        try:
            return render_statements(compute_diff(target, source), dialect, self.preserve_definitions)
        except (SchemaForgeError, ValueError) as e:
            logger.error(f"Diff failed: {e}")
            return [f"-- Diff error: {e}"]

    def _resolve_dialect(self, target_ddl: str, source_ddl: str) -> Dialect:
        if self.dialect is not None:
            try:
                return get_dialect(self.dialect)
            except ValueError as e:
                raise ParseError(str(e)) from e
        detected = FormatDetector.detect_dialect(target_ddl) or FormatDetector.detect_dialect(source_ddl)
        return get_dialect(detected or SourceFormat.MYSQL)

    @staticmethod
    def _parse(parser: DDLParser, ddl: str, side: str) -> CanonicalSchema:
        try:
            return parser.parse(ddl)
        except ParseError as e:
            raise ParseError(f"{side} DDL: {e}") from e


def diff_ddl(
    target_ddl: str,
    source_ddl: str,
    dialect: Optional[SourceFormat | str] = None,
    preserve_definitions: Optional[bool] = None,
) -> list[str]:
    """Statements turning ``target_ddl`` (current) into ``source_ddl`` (desired)."""
    return DiffEngine(dialect, preserve_definitions).diff(target_ddl, source_ddl)
