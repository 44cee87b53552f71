"""schemaforge — convert SQL DDL, JSON and config documents into Go structs,
Protobuf messages, reformatted configs and ALTER TABLE diffs."""

__version__ = "0.1.0"

from schemaforge.api import (
    convert,
    detect,
    diff_ddl,
    format_input,
    generate_config,
    generate_proto_message,
    generate_struct,
    parse_config,
    parse_dialect_ddl,
    parse_json,
)
from schemaforge.errors import (
    DetectionAmbiguous,
    ParseError,
    SchemaForgeError,
    UnsupportedConversion,
)
from schemaforge.source_loader.base import CanonicalSchema, Field, SemanticType, SourceFormat
