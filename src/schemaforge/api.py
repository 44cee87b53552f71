"""Functional surface of schemaforge.

Every function returns a result value; errors are reported in its ``error``
field instead of being raised.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Union

from schemaforge.config import get_config
from schemaforge.diff.diff_engine import diff_ddl as _diff_ddl
from schemaforge.errors import SchemaForgeError
from schemaforge.generator.config_generator import ConfigGenerator, ConfigOptions
from schemaforge.generator.protobuf_generator import ProtobufGenerator, ProtoOptions
from schemaforge.generator.struct_generator import StructGenerator, StructOptions
from schemaforge.pipeline.converter import ConversionResult, Converter
from schemaforge.source_loader.base import (
    CanonicalSchema,
    DDLParseResult,
    GenerationResult,
    JSONParseResult,
    SourceFormat,
)
from schemaforge.source_loader.config_loader import load_document
from schemaforge.source_loader.ddl_parser import DDLParser
from schemaforge.source_loader.detector import FormatDetector
from schemaforge.source_loader.json_inferer import JSONSchemaInferer

logger = logging.getLogger(__name__)

SchemaInput = Union[CanonicalSchema, DDLParseResult, JSONParseResult]


def _unpack(
    schema: SchemaInput, nested_structs: Iterable[CanonicalSchema]
) -> tuple[CanonicalSchema, list[CanonicalSchema]]:
    nested = list(nested_structs)
    if isinstance(schema, JSONParseResult):
        return schema.schema, nested or schema.nested_structs
    if isinstance(schema, DDLParseResult):
        return schema.schema, nested
    return schema, nested


def detect(text: str) -> SourceFormat:
    return FormatDetector.detect(text)


def parse_dialect_ddl(ddl_text: str, dialect: Optional[SourceFormat | str] = None) -> DDLParseResult:
    """Parse one CREATE TABLE statement; the dialect is detected when omitted."""
    if dialect is None:
        dialect = FormatDetector.detect_dialect(ddl_text) or SourceFormat.MYSQL
    try:
        parser = DDLParser.for_dialect(dialect)
    except ValueError as e:
        return DDLParseResult(error=str(e))
    return parser.parse_result(ddl_text)


def parse_json(json_text: str, root_name: Optional[str] = None) -> JSONParseResult:
    return JSONSchemaInferer(root_name or get_config().struct_name).parse_result(json_text)


def parse_config(text: str, fmt: SourceFormat | str) -> tuple[Any, Optional[str]]:
    """Decode a JSON, YAML, TOML or XML document into ``(data, error)``."""
    try:
        return load_document(text, fmt), None
    except SchemaForgeError as e:
        return None, str(e)
    except ValueError:
        return None, f"Not a config document format: {fmt}"


def generate_struct(
    schema: SchemaInput,
    options: Optional[StructOptions] = None,
    nested_structs: Iterable[CanonicalSchema] = (),
) -> GenerationResult:
    """Go struct source for ``schema``."""
    schema, nested = _unpack(schema, nested_structs)
    try:
        text = StructGenerator(options or StructOptions.from_config()).generate(schema, nested)
    except SchemaForgeError as e:
        logger.error(f"Struct generation failed: {e}")
        return GenerationResult(error=str(e))
    return GenerationResult(text=text)


def generate_proto_message(
    schema: SchemaInput,
    options: Optional[ProtoOptions] = None,
    nested_structs: Iterable[CanonicalSchema] = (),
) -> GenerationResult:
    """Protobuf message source for ``schema``; DDL-sourced schemas are rejected."""
    schema, nested = _unpack(schema, nested_structs)
    try:
        text = ProtobufGenerator(options or ProtoOptions.from_config()).generate(schema, nested)
    except SchemaForgeError as e:
        logger.error(f"Protobuf generation failed: {e}")
        return GenerationResult(error=str(e))
    return GenerationResult(text=text)


def generate_config(
    data: Any, fmt: SourceFormat | str, options: Optional[ConfigOptions] = None
) -> GenerationResult:
    """Pretty-print decoded ``data`` as json, yaml, toml or xml."""
    try:
        text = ConfigGenerator(options or ConfigOptions.from_config()).generate(data, fmt)
    except SchemaForgeError as e:
        logger.error(f"Config generation failed: {e}")
        return GenerationResult(error=str(e))
    except ValueError:
        return GenerationResult(error=f"Not a config output format: {fmt}")
    return GenerationResult(text=text)


def diff_ddl(
    target_ddl: str, source_ddl: str, dialect: Optional[SourceFormat | str] = None
) -> list[str]:
    """ALTER statements turning ``target_ddl`` into ``source_ddl``, or one comment line."""
    return _diff_ddl(target_ddl, source_ddl, dialect=dialect)


def convert(text: str, output_format: str = "go", **options) -> ConversionResult:
    """Detect, parse and generate in one call (see ``Converter.convert``)."""
    return Converter().convert(text, output_format, **options)


def format_input(
    text: str, fmt: Optional[SourceFormat | str] = None, indent: Optional[int] = None
) -> str:
    return Converter().format_input(text, fmt, indent)
