"""Per-dialect type normalization tables.

Each dialect maps its lowercased base type token (arguments and array
suffix removed) to a SemanticType. Tokens missing from a table map to
UNKNOWN and the raw type is kept verbatim; SQLite additionally applies its
column type-affinity rules before giving up.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from schemaforge.source_loader.base import SemanticType, SourceFormat

I = SemanticType.INTEGER
F = SemanticType.FLOAT
S = SemanticType.STRING
B = SemanticType.BOOL
D = SemanticType.DATETIME
BIN = SemanticType.BINARY

MYSQL_TYPES: dict[str, SemanticType] = {
    "tinyint": I, "smallint": I, "mediumint": I, "int": I, "integer": I,
    "bigint": I, "year": I,
    "decimal": F, "dec": F, "numeric": F, "fixed": F, "float": F,
    "double": F, "double precision": F, "real": F,
    "char": S, "varchar": S, "character": S, "character varying": S,
    "national char": S, "national character": S, "national varchar": S,
    "nchar": S, "nvarchar": S, "tinytext": S, "text": S, "mediumtext": S,
    "longtext": S, "enum": S, "set": S,
    # JSON documents are carried as serialized strings
    "json": S,
    "date": D, "datetime": D, "timestamp": D, "time": D,
    "binary": BIN, "varbinary": BIN, "tinyblob": BIN, "blob": BIN,
    "mediumblob": BIN, "longblob": BIN, "bit": BIN,
    "bool": B, "boolean": B,
}

POSTGRESQL_TYPES: dict[str, SemanticType] = {
    "smallint": I, "integer": I, "int": I, "int2": I, "int4": I, "int8": I,
    "bigint": I, "smallserial": I, "serial": I, "bigserial": I,
    "serial2": I, "serial4": I, "serial8": I,
    "decimal": F, "numeric": F, "real": F, "float4": F, "float8": F,
    "float": F, "double precision": F, "money": F,
    "varchar": S, "character varying": S, "char": S, "character": S,
    "bpchar": S, "text": S, "citext": S, "uuid": S, "json": S, "jsonb": S,
    "xml": S, "inet": S, "cidr": S, "macaddr": S, "interval": S,
    "tsvector": S,
    "date": D, "time": D, "timetz": D, "timestamp": D, "timestamptz": D,
    "time with time zone": D, "time without time zone": D,
    "timestamp with time zone": D, "timestamp without time zone": D,
    "bytea": BIN, "bit": BIN, "bit varying": BIN, "varbit": BIN,
    "boolean": B, "bool": B,
}

SQLITE_TYPES: dict[str, SemanticType] = {
    "integer": I, "int": I, "tinyint": I, "smallint": I, "mediumint": I,
    "bigint": I, "unsigned big int": I, "int2": I, "int8": I,
    "real": F, "double": F, "double precision": F, "float": F,
    "numeric": F, "decimal": F,
    "text": S, "character": S, "varchar": S, "varying character": S,
    "nchar": S, "native character": S, "nvarchar": S, "clob": S, "json": S,
    "blob": BIN,
    "boolean": B, "bool": B,
    "date": D, "datetime": D, "timestamp": D, "time": D,
}


def sqlite_affinity(base_type: str) -> SemanticType:
    """Resolve a SQLite declared type by the documented affinity rules."""
    upper = base_type.upper()
    if "INT" in upper:
        return I
    if any(k in upper for k in ("CHAR", "CLOB", "TEXT")):
        return S
    if "BLOB" in upper:
        return BIN
    if not upper:
        return SemanticType.UNKNOWN
    if any(k in upper for k in ("REAL", "FLOA", "DOUB")):
        return F
    # NUMERIC affinity
    return F


@dataclass(frozen=True)
class Dialect:
    """Static facts the DDL parser needs about one SQL dialect."""

    source_format: SourceFormat
    types: dict[str, SemanticType]
    identifier_quotes: str
    auto_increment_pattern: Optional[str] = None
    auto_increment_types: frozenset[str] = frozenset()
    supports_unsigned: bool = False
    supports_inline_comment: bool = False
    allows_typeless_columns: bool = False
    fallback: Optional[Callable[[str], SemanticType]] = None
    quote_char: str = '"'

    def semantic_type(self, base_type: str) -> SemanticType:
        key = " ".join(base_type.lower().split())
        if key in self.types:
            return self.types[key]
        if self.fallback is not None:
            return self.fallback(key)
        return SemanticType.UNKNOWN

    def quote(self, identifier: str) -> str:
        closer = "]" if self.quote_char == "[" else self.quote_char
        escaped = identifier.replace(closer, closer * 2)
        return f"{self.quote_char}{escaped}{closer}"


MYSQL = Dialect(
    source_format=SourceFormat.MYSQL,
    types=MYSQL_TYPES,
    identifier_quotes="`\"",
    auto_increment_pattern=r"\bAUTO_INCREMENT\b",
    supports_unsigned=True,
    supports_inline_comment=True,
    quote_char="`",
)

POSTGRESQL = Dialect(
    source_format=SourceFormat.POSTGRESQL,
    types=POSTGRESQL_TYPES,
    identifier_quotes='"',
    auto_increment_pattern=r"\bGENERATED\s+(?:ALWAYS|BY\s+DEFAULT)\s+AS\s+IDENTITY\b",
    auto_increment_types=frozenset(
        {"serial", "bigserial", "smallserial", "serial2", "serial4", "serial8"}
    ),
    quote_char='"',
)

SQLITE = Dialect(
    source_format=SourceFormat.SQLITE,
    types=SQLITE_TYPES,
    identifier_quotes="`\"[",
    auto_increment_pattern=r"\bAUTOINCREMENT\b",
    allows_typeless_columns=True,
    fallback=sqlite_affinity,
    quote_char='"',
)

DIALECTS: dict[SourceFormat, Dialect] = {
    SourceFormat.MYSQL: MYSQL,
    SourceFormat.POSTGRESQL: POSTGRESQL,
    SourceFormat.SQLITE: SQLITE,
}


def get_dialect(dialect: SourceFormat | str) -> Dialect:
    """Look up a dialect by SourceFormat or name (``postgres`` is accepted)."""
    if isinstance(dialect, str) and not isinstance(dialect, SourceFormat):
        name = dialect.strip().lower()
        name = {"postgres": "postgresql", "pg": "postgresql", "sqlite3": "sqlite"}.get(name, name)
        dialect = SourceFormat(name)
    try:
        return DIALECTS[dialect]
    except KeyError:
        raise ValueError(f"Not a SQL dialect: {dialect.value}") from None
