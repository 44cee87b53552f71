"""Source loaders — parse DDL, JSON and config documents into a Canonical Schema."""

from schemaforge.source_loader.base import (
    BaseParser,
    CanonicalSchema,
    DDLParseResult,
    Field,
    GenerationResult,
    JSONParseResult,
    SemanticType,
    SourceFormat,
)
from schemaforge.source_loader.config_loader import DocumentParser, load_document
from schemaforge.source_loader.ddl_parser import (
    DDLParser,
    MySQLParser,
    PostgreSQLParser,
    SQLiteParser,
)
from schemaforge.source_loader.detector import FormatDetector
from schemaforge.source_loader.json_inferer import JSONSchemaInferer
