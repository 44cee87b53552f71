"""Conversion pipeline — detect, parse and generate in one call.

Supported routes:
  DDL (mysql / postgresql / sqlite)  -> go
  json / yaml / toml / xml           -> go, protobuf, json, yaml, toml, xml

Every failure is returned in ``ConversionResult.error``; nothing raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import sqlparse

from schemaforge.config import ForgeConfig, get_config
from schemaforge.errors import ParseError, SchemaForgeError, UnsupportedConversion
from schemaforge.generator.config_generator import ConfigGenerator, ConfigOptions
from schemaforge.generator.protobuf_generator import ProtobufGenerator, ProtoOptions
from schemaforge.generator.struct_generator import StructGenerator, StructOptions
from schemaforge.generator.type_mapper import TargetFormat
from schemaforge.source_loader.base import CanonicalSchema, SourceFormat
from schemaforge.source_loader.config_loader import load_document
from schemaforge.source_loader.ddl_parser import DDLParser
from schemaforge.source_loader.detector import FormatDetector
from schemaforge.source_loader.json_inferer import JSONSchemaInferer

logger = logging.getLogger(__name__)

OUTPUT_ALIASES = {"proto": "protobuf", "golang": "go", "yml": "yaml"}


def resolve_output_format(value: TargetFormat | str) -> TargetFormat:
    if isinstance(value, str) and not isinstance(value, TargetFormat):
        name = value.strip().lower()
        value = OUTPUT_ALIASES.get(name, name)
    try:
        return TargetFormat(value)
    except ValueError:
        raise UnsupportedConversion(f"Unknown output format: {value}") from None


@dataclass
class ConversionResult:
    """Result of one text-to-text conversion."""

    input_format: SourceFormat = SourceFormat.UNKNOWN
    output_format: Optional[TargetFormat] = None
    text: str = ""
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        """Convert to serializable dictionary."""
        return {
            "input_format": self.input_format.value,
            "output_format": self.output_format.value if self.output_format else None,
            "text": self.text,
            "error": self.error,
            "warnings": list(self.warnings),
        }


@dataclass
class _Parsed:
    schema: CanonicalSchema
    nested: list[CanonicalSchema]
    data: Any = None
    warnings: list[str] = field(default_factory=list)


class Converter:
    """Runs detect -> parse -> generate for a single input text."""

    def __init__(self, config: Optional[ForgeConfig] = None):
        self.config = config or get_config()

    def convert(
        self,
        text: str,
        output_format: TargetFormat | str = TargetFormat.GO,
        input_format: Optional[SourceFormat | str] = None,
        *,
        struct_name: Optional[str] = None,
        message_name: Optional[str] = None,
        package_name: Optional[str] = None,
        nested_mode: Optional[str] = None,
        inline_nested_structs: Optional[bool] = None,
        indent: Optional[int] = None,
    ) -> ConversionResult:
        """Convert ``text`` to ``output_format``. Never raises."""
        result = ConversionResult()
        try:
            result.output_format = resolve_output_format(output_format)
            result.input_format = self._input_format(text, input_format)
            result.text = self._convert(
                text,
                result,
                struct_name=struct_name,
                message_name=message_name,
                package_name=package_name,
                nested_mode=nested_mode,
                inline_nested_structs=inline_nested_structs,
                indent=indent,
            )
        except SchemaForgeError as e:
            logger.error(f"Conversion failed: {e}")
            result.error = str(e)
            result.text = ""
        return result

    def _input_format(self, text: str, input_format: Optional[SourceFormat | str]) -> SourceFormat:
        if not text or not text.strip():
            raise ParseError("Input is empty")
        if input_format in (None, "auto"):
            fmt = FormatDetector.detect(text, self.config.dialect_priority)
        else:
            try:
                fmt = SourceFormat(input_format)
            except ValueError:
                raise ParseError(f"Unknown input format: {input_format}") from None
        if fmt == SourceFormat.UNKNOWN:
            raise ParseError("Unable to detect the input format")
        logger.debug(f"Input format: {fmt.value}")
        return fmt

    def _convert(self, text: str, result: ConversionResult, **opts) -> str:
        fmt, target = result.input_format, result.output_format

        if fmt.is_sql and target != TargetFormat.GO:
            raise UnsupportedConversion(
                f"{target.value} output is only supported for JSON, YAML, TOML or XML input"
            )

        if target in (TargetFormat.JSON, TargetFormat.YAML, TargetFormat.TOML, TargetFormat.XML):
            data = load_document(text, fmt)
            options = ConfigOptions.from_config(self.config)
            if opts["indent"]:
                options = ConfigOptions(indent=opts["indent"], root_name=options.root_name)
            return ConfigGenerator(options).generate(data, target.value)

        if target == TargetFormat.PROTOBUF:
            name = opts["message_name"] or opts["struct_name"] or self.config.message_name
            parsed = self._parse(text, fmt, name)
            result.warnings.extend(parsed.warnings)
            overrides = {"message_name": name}
            if opts["nested_mode"]:
                overrides["nested_mode"] = opts["nested_mode"]
            if opts["package_name"]:
                overrides["package_name"] = opts["package_name"]
            options = ProtoOptions.from_config(self.config, **overrides)
            return ProtobufGenerator(options).generate(parsed.schema, parsed.nested)

        parsed = self._parse(text, fmt, self._struct_name(fmt, opts["struct_name"]))
        result.warnings.extend(parsed.warnings)
        overrides = {"struct_name": opts["struct_name"], "input_format": fmt}
        if opts["package_name"]:
            overrides["package_name"] = opts["package_name"]
        if opts["inline_nested_structs"] is not None:
            overrides["inline_nested_structs"] = opts["inline_nested_structs"]
        options = StructOptions.from_config(self.config, **overrides)
        return StructGenerator(options).generate(parsed.schema, parsed.nested)

    def _struct_name(self, fmt: SourceFormat, struct_name: Optional[str]) -> Optional[str]:
        if struct_name or fmt.is_sql:
            # DDL structs are named after the table unless overridden
            return struct_name
        if fmt == SourceFormat.JSON:
            return self.config.struct_name
        return self.config.config_struct_name

    def _parse(self, text: str, fmt: SourceFormat, root_name: Optional[str]) -> _Parsed:
        if fmt.is_sql:
            ddl = DDLParser.for_dialect(fmt).parse_result(text)
            if ddl.error:
                raise ParseError(ddl.error)
            return _Parsed(schema=ddl.schema, nested=[], warnings=ddl.warnings)

        data = load_document(text, fmt)
        inferred = JSONSchemaInferer(root_name).infer(data, source_format=fmt)
        if inferred.error:
            raise ParseError(inferred.error)
        return _Parsed(
            schema=inferred.schema,
            nested=inferred.nested_structs,
            data=data,
            warnings=inferred.warnings,
        )

    def format_input(
        self,
        text: str,
        fmt: Optional[SourceFormat | str] = None,
        indent: Optional[int] = None,
    ) -> str:
        """Re-indent ``text``; returns it unchanged when it cannot be formatted."""
        indent = indent or self.config.indent
        try:
            fmt = SourceFormat(fmt) if fmt else FormatDetector.detect(text, self.config.dialect_priority)
            if fmt.is_sql:
                return sqlparse.format(
                    text, reindent=True, keyword_case="upper", indent_width=indent
                ).strip() + "\n"
            if fmt.is_document:
                return ConfigGenerator(ConfigOptions.from_config(self.config, indent=indent)).reformat(
                    text, fmt
                )
        except (SchemaForgeError, ValueError) as e:
            logger.warning(f"Auto-format skipped: {e}")
        return text
