"""Base types for the schemaforge source loaders.

Every loader converts its input into the same Canonical Schema: an ordered,
immutable list of Fields with a semantic type each. Generators and the diff
engine only ever read these values.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class SourceFormat(str, Enum):
    """Detected input format for auto-routing."""

    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"
    JSON = "json"
    YAML = "yaml"
    TOML = "toml"
    XML = "xml"
    UNKNOWN = "unknown"

    @property
    def is_sql(self) -> bool:
        return self in SQL_FORMATS

    @property
    def is_document(self) -> bool:
        return self in DOCUMENT_FORMATS


SQL_FORMATS = frozenset({SourceFormat.MYSQL, SourceFormat.POSTGRESQL, SourceFormat.SQLITE})
DOCUMENT_FORMATS = frozenset(
    {SourceFormat.JSON, SourceFormat.YAML, SourceFormat.TOML, SourceFormat.XML}
)


class SemanticType(str, Enum):
    """Abstract type every source-specific type is normalized to."""

    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    BOOL = "bool"
    DATETIME = "datetime"
    BINARY = "binary"
    JSON_OBJECT = "json_object"
    JSON_ARRAY = "json_array"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Field:
    """A single column or object property."""

    name: str
    raw_type: str
    semantic_type: SemanticType
    nullable: bool = True
    is_primary_key: bool = False
    is_auto_increment: bool = False
    is_unsigned: bool = False
    is_unique: bool = False
    default_value: Optional[str] = None
    comment: Optional[str] = None
    ordinal_position: int = 0
    nested_schema: Optional[CanonicalSchema] = None
    # json_array only: innermost element type and nesting depth
    element_type: Optional[SemanticType] = None
    array_depth: int = 0
    type_args: Optional[str] = None
    # Column definition text after the name, as written in the source DDL
    raw_definition: Optional[str] = None

    def __post_init__(self):
        has_object = self.semantic_type == SemanticType.JSON_OBJECT or (
            self.semantic_type == SemanticType.JSON_ARRAY
            and self.element_type == SemanticType.JSON_OBJECT
        )
        if has_object != (self.nested_schema is not None):
            raise ValueError(
                f"Field {self.name!r}: nested_schema must be set exactly for "
                f"object-typed fields (got {self.semantic_type.value})"
            )

    @property
    def base_type(self) -> str:
        """Lowercased type word(s) without arguments or array suffix."""
        base = self.raw_type.split("(", 1)[0]
        return re.sub(r"\s+", " ", base.replace("[]", "")).strip().lower()

    @property
    def size(self) -> Optional[int]:
        """Length argument of string-like types, e.g. 50 for VARCHAR(50)."""
        if self.semantic_type != SemanticType.STRING or not self.type_args:
            return None
        arg = self.type_args.strip()
        return int(arg) if arg.isdigit() else None

    @property
    def is_array(self) -> bool:
        return self.semantic_type == SemanticType.JSON_ARRAY


@dataclass(frozen=True)
class CanonicalSchema:
    """One table, JSON object, or generated message."""

    source_name: str
    fields: tuple[Field, ...] = ()
    source_format: SourceFormat = SourceFormat.UNKNOWN

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def field_map(self) -> dict[str, Field]:
        """Lowercased field name → Field."""
        return {f.name.lower(): f for f in self.fields}

    def get_field(self, name: str) -> Optional[Field]:
        return self.field_map().get(name.lower())

    def nested_schemas(self) -> list[CanonicalSchema]:
        """Distinct nested schemas reachable from this one, parent before child."""
        found: dict[str, CanonicalSchema] = {}

        def walk(schema: CanonicalSchema) -> None:
            for f in schema.fields:
                if f.nested_schema is not None and f.nested_schema.source_name not in found:
                    found[f.nested_schema.source_name] = f.nested_schema
                    walk(f.nested_schema)

        walk(self)
        return list(found.values())

    def shape(self) -> tuple:
        """Structural signature used to deduplicate nested schemas."""
        return tuple(
            (
                f.name,
                f.semantic_type.value,
                f.element_type.value if f.element_type else None,
                f.array_depth,
                f.nested_schema.shape() if f.nested_schema else None,
            )
            for f in self.fields
        )


@dataclass
class DDLParseResult:
    """Result of parsing one CREATE TABLE statement."""

    table_name: str = ""
    fields: list[Field] = field(default_factory=list)
    dialect: SourceFormat = SourceFormat.UNKNOWN
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def schema(self) -> CanonicalSchema:
        return CanonicalSchema(
            source_name=self.table_name,
            fields=tuple(self.fields),
            source_format=self.dialect,
        )


@dataclass
class JSONParseResult:
    """Result of inferring a schema from a JSON (or decoded config) value."""

    struct_name: str = ""
    fields: list[Field] = field(default_factory=list)
    nested_structs: list[CanonicalSchema] = field(default_factory=list)
    source_format: SourceFormat = SourceFormat.JSON
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def schema(self) -> CanonicalSchema:
        return CanonicalSchema(
            source_name=self.struct_name,
            fields=tuple(self.fields),
            source_format=self.source_format,
        )


@dataclass
class GenerationResult:
    """Generated text, or the reason it could not be produced."""

    text: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BaseParser(ABC):
    """Abstract base class for input format parsers."""

    @abstractmethod
    def parse(self, content: str, **kwargs) -> CanonicalSchema:
        """Parse input content into a CanonicalSchema."""
        ...

    @abstractmethod
    def can_parse(self, content: str) -> bool:
        """Return True if this parser can handle the given content."""
        ...
