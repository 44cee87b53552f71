"""Protocol Buffer message generator.

Field numbers are assigned 1..N in declaration order, so they are not
stable across regenerations when fields are reordered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from schemaforge.config import ForgeConfig, get_config
from schemaforge.errors import UnsupportedConversion
from schemaforge.generator.naming import to_snake_case
from schemaforge.generator.type_mapper import TargetFormat, TypeMapOptions, TypeMapper
from schemaforge.source_loader.base import CanonicalSchema, Field, SemanticType

logger = logging.getLogger(__name__)

NESTED_MODES = ("inline", "separate")
SYNTAXES = ("proto2", "proto3")
TIMESTAMP_IMPORT = 'import "google/protobuf/timestamp.proto";'


@dataclass(frozen=True)
class ProtoOptions:
    """Options for Protobuf generation."""

    message_name: Optional[str] = None
    nested_mode: str = "separate"
    package_name: str = "model"
    syntax: str = "proto3"
    preferred_int_width: int = 32
    preferred_float_width: int = 32

    @classmethod
    def from_config(cls, config: Optional[ForgeConfig] = None, **overrides) -> ProtoOptions:
        config = config or get_config()
        values = dict(
            nested_mode=config.proto_nested_mode,
            package_name=config.proto_package,
            syntax=config.proto_syntax,
            preferred_int_width=config.proto_int_width,
            preferred_float_width=config.proto_float_width,
        )
        values.update(overrides)
        return cls(**values)


class ProtobufGenerator:
    """Generates .proto message definitions from a document-derived schema."""

    def __init__(self, options: Optional[ProtoOptions] = None):
        self.options = options or ProtoOptions()
        self.type_options = TypeMapOptions(
            int_width=self.options.preferred_int_width,
            float_width=self.options.preferred_float_width,
        )

    def generate(
        self, schema: CanonicalSchema, nested_structs: Iterable[CanonicalSchema] = ()
    ) -> str:
        """Render ``schema`` as a .proto file.

        Raises UnsupportedConversion for SQL-sourced schemas or unknown options.
        """
        if schema.source_format.is_sql:
            raise UnsupportedConversion(
                "Protocol Buffer output is only supported for JSON, YAML, TOML or XML input"
            )
        if self.options.nested_mode not in NESTED_MODES:
            raise UnsupportedConversion(f"Unknown nested mode: {self.options.nested_mode}")
        if self.options.syntax not in SYNTAXES:
            raise UnsupportedConversion(f"Unknown protobuf syntax: {self.options.syntax}")

        name = self.options.message_name or schema.source_name or get_config().message_name
        nested = list(nested_structs) or schema.nested_schemas()

        out = [f'syntax = "{self.options.syntax}";', ""]
        if self.options.package_name:
            out += [f"package {self.options.package_name};", ""]
        if self._needs_timestamp([schema, *nested]):
            out += [TIMESTAMP_IMPORT, ""]

        if self.options.nested_mode == "separate":
            for n in nested:
                out += self._message(n.source_name, n.fields)
                out.append("")
            out += self._message(name, schema.fields)
        else:
            out += self._message(name, schema.fields, inline=nested)

        logger.info(
            f"Generated protobuf message {name} ({len(schema.fields)} fields, "
            f"{len(nested)} nested, {self.options.nested_mode})"
        )
        return "\n".join(out) + "\n"

    def _message(
        self, name: str, fields: tuple[Field, ...], inline: Iterable[CanonicalSchema] = ()
    ) -> list[str]:
        lines = [f"// {name} message", f"message {name} {{"]
        for n in inline:
            for line in self._message(n.source_name, n.fields):
                lines.append(f"  {line}" if line else line)
            lines.append("")

        types = [self._field_type(f) for f in fields]
        names = self._field_names(fields)
        type_w = max((len(t) for t in types), default=0)
        name_w = max((len(n) for n in names), default=0)
        for i, (t, n) in enumerate(zip(types, names), start=1):
            lines.append(f"  {t.ljust(type_w)} {n.ljust(name_w)} = {i};")
        lines.append("}")
        return lines

    def _field_type(self, f: Field) -> str:
        if f.is_array:
            if f.array_depth > 1:
                logger.warning(
                    f"Field {f.name}: nested arrays are not representable in protobuf, "
                    f"using repeated string"
                )
                return "repeated string"
            nested_name = f.nested_schema.source_name if f.nested_schema else None
            token = TypeMapper.map(
                f.element_type or SemanticType.UNKNOWN,
                TargetFormat.PROTOBUF,
                self.type_options,
                nested_name=nested_name,
            )
            return f"repeated {token}"

        nested_name = f.nested_schema.source_name if f.nested_schema else None
        token = TypeMapper.map(
            f.semantic_type, TargetFormat.PROTOBUF, self.type_options, nested_name=nested_name
        )
        if self.options.syntax == "proto2":
            return f"optional {token}"
        return token

    @staticmethod
    def _field_names(fields: tuple[Field, ...]) -> list[str]:
        names: list[str] = []
        for f in fields:
            name = to_snake_case(f.name) or "field"
            base, n = name, 1
            while name in names:
                n += 1
                name = f"{base}_{n}"
            names.append(name)
        return names

    @staticmethod
    def _needs_timestamp(schemas: list[CanonicalSchema]) -> bool:
        return any(
            SemanticType.DATETIME in (f.semantic_type, f.element_type)
            for s in schemas
            for f in s.fields
        )
