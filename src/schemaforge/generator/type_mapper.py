"""Type mapper — semantic type to output-format type token.

Pure lookup tables. Containers (json_object / json_array of objects) map to
the caller-supplied nested schema name so each generator can wrap it in its
own composite syntax. Anything unmapped falls back to the target's most
permissive scalar.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from schemaforge.source_loader.base import SemanticType


class TargetFormat(str, Enum):
    GO = "go"
    PROTOBUF = "protobuf"
    JSON = "json"
    YAML = "yaml"
    TOML = "toml"
    XML = "xml"


@dataclass(frozen=True)
class TypeMapOptions:
    """Width preferences; ``None`` means the target's default width."""

    int_width: Optional[int] = None
    float_width: Optional[int] = None
    unsigned: bool = False


# Fallback scalar per target for unknown / unmapped semantic types
FALLBACK_TYPES = {
    TargetFormat.GO: "interface{}",
    TargetFormat.PROTOBUF: "string",
    TargetFormat.JSON: "string",
    TargetFormat.YAML: "string",
    TargetFormat.TOML: "string",
    TargetFormat.XML: "string",
}

GO_TYPES = {
    SemanticType.STRING: "string",
    SemanticType.BOOL: "bool",
    SemanticType.DATETIME: "time.Time",
    SemanticType.BINARY: "[]byte",
}

PROTOBUF_TYPES = {
    SemanticType.STRING: "string",
    SemanticType.BOOL: "bool",
    SemanticType.DATETIME: "google.protobuf.Timestamp",
    SemanticType.BINARY: "bytes",
}

# JSON / YAML / TOML / XML carry values, not declarations: type names only
PASSTHROUGH_TYPES = {
    SemanticType.INTEGER: "integer",
    SemanticType.FLOAT: "number",
    SemanticType.STRING: "string",
    SemanticType.BOOL: "boolean",
    SemanticType.DATETIME: "datetime",
    SemanticType.BINARY: "binary",
}

# Raw SQL base type -> bit width
INT_WIDTHS = {
    "tinyint": 8, "int1": 8,
    "smallint": 16, "int2": 16, "smallserial": 16, "serial2": 16, "year": 16,
    "mediumint": 32, "int": 32, "integer": 32, "int4": 32, "serial": 32, "serial4": 32,
    "bigint": 64, "int8": 64, "bigserial": 64, "serial8": 64, "unsigned big int": 64,
}
FLOAT_WIDTHS = {
    "float": 32, "real": 32, "float4": 32,
    "double": 64, "double precision": 64, "float8": 64, "decimal": 64,
    "numeric": 64, "dec": 64, "fixed": 64, "money": 64,
}

_BASE_TYPE_RE = re.compile(r"^\s*([a-z][a-z0-9_ ]*?)\s*(?:\(|\[|$)", re.IGNORECASE)


class TypeMapper:
    """Maps SemanticType values to type tokens of one output format."""

    @staticmethod
    def map(
        semantic_type: SemanticType,
        target: TargetFormat | str,
        options: TypeMapOptions = TypeMapOptions(),
        nested_name: Optional[str] = None,
        element_type: Optional[SemanticType] = None,
    ) -> str:
        """Return the type token for ``semantic_type`` in ``target``.

        json_object returns ``nested_name``. json_array returns ``nested_name``
        when given, else the token of ``element_type``; wrapping it in a list
        or ``repeated`` is left to the generator.
        """
        target = TargetFormat(target)
        fallback = FALLBACK_TYPES[target]

        if semantic_type == SemanticType.JSON_OBJECT:
            return nested_name or fallback
        if semantic_type == SemanticType.JSON_ARRAY:
            if nested_name:
                return nested_name
            if element_type is None or element_type in (
                SemanticType.JSON_ARRAY, SemanticType.JSON_OBJECT
            ):
                return fallback
            return TypeMapper.map(element_type, target, options)

        if target == TargetFormat.GO:
            return TypeMapper._go(semantic_type, options) or fallback
        if target == TargetFormat.PROTOBUF:
            return TypeMapper._protobuf(semantic_type, options) or fallback
        return PASSTHROUGH_TYPES.get(semantic_type, fallback)

    @staticmethod
    def _go(semantic_type: SemanticType, options: TypeMapOptions) -> Optional[str]:
        if semantic_type == SemanticType.INTEGER:
            prefix = "uint" if options.unsigned else "int"
            if options.int_width in (8, 16, 32, 64):
                return f"{prefix}{options.int_width}"
            return prefix
        if semantic_type == SemanticType.FLOAT:
            return "float32" if options.float_width == 32 else "float64"
        return GO_TYPES.get(semantic_type)

    @staticmethod
    def _protobuf(semantic_type: SemanticType, options: TypeMapOptions) -> Optional[str]:
        if semantic_type == SemanticType.INTEGER:
            prefix = "uint" if options.unsigned else "int"
            return f"{prefix}64" if options.int_width == 64 else f"{prefix}32"
        if semantic_type == SemanticType.FLOAT:
            return "double" if options.float_width == 64 else "float"
        return PROTOBUF_TYPES.get(semantic_type)

    @staticmethod
    def width_hint(raw_type: str) -> Optional[int]:
        """Bit width implied by a raw SQL type, e.g. 64 for ``BIGINT``."""
        m = _BASE_TYPE_RE.match(raw_type or "")
        if not m:
            return None
        base = " ".join(m.group(1).lower().split())
        return INT_WIDTHS.get(base) or FLOAT_WIDTHS.get(base)
