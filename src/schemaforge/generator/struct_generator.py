"""Go struct generator — renders a Canonical Schema as Go type declarations.

Output follows gofmt layout: tab indentation, then space-padded name, type
and tag columns. Tags depend on where the schema came from:
- DDL input: json + gorm (column, primaryKey, autoIncrement, not null, unique,
  size, default)
- JSON input: json
- YAML / TOML input: json + the matching format tag
- XML input: json + an encoding/xml tag (",attr" for attributes, ",chardata"
  for element text)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from schemaforge.config import ForgeConfig, get_config
from schemaforge.generator.naming import to_go_identifier, to_pascal_case
from schemaforge.generator.type_mapper import TargetFormat, TypeMapOptions, TypeMapper
from schemaforge.source_loader.base import CanonicalSchema, Field, SemanticType, SourceFormat
from schemaforge.source_loader.config_loader import ATTR_PREFIX, TEXT_KEY

logger = logging.getLogger(__name__)

FORMAT_TAGS = {
    SourceFormat.YAML: "yaml",
    SourceFormat.TOML: "toml",
}


@dataclass(frozen=True)
class StructOptions:
    """Options for Go struct generation."""

    struct_name: Optional[str] = None
    package_name: str = "model"
    generate_table_name_method: bool = True
    inline_nested_structs: bool = False
    # Controls tag generation; defaults to the schema's source format
    input_format: Optional[SourceFormat] = None

    @classmethod
    def from_config(cls, config: Optional[ForgeConfig] = None, **overrides) -> StructOptions:
        config = config or get_config()
        values = dict(
            package_name=config.package_name,
            generate_table_name_method=config.generate_table_name_method,
            inline_nested_structs=config.inline_nested_structs,
        )
        values.update(overrides)
        return cls(**values)


@dataclass
class _Line:
    name: str
    type: str
    tag: str
    comment: Optional[str] = None


class StructGenerator:
    """Generates Go struct definitions from a CanonicalSchema."""

    def __init__(self, options: Optional[StructOptions] = None):
        self.options = options or StructOptions()

    def generate(
        self, schema: CanonicalSchema, nested_structs: Iterable[CanonicalSchema] = ()
    ) -> str:
        """Render ``schema`` (and its nested structs) as a Go source file."""
        fmt = self.options.input_format or schema.source_format
        is_sql = SourceFormat(fmt).is_sql
        struct_name = self._struct_name(schema, is_sql)
        nested = list(nested_structs) or schema.nested_schemas()

        out: list[str] = [f"package {self.options.package_name}", ""]
        if self._needs_time(schema, nested):
            out += ['import "time"', ""]

        if is_sql:
            out.append(f"// {struct_name} maps to the {schema.source_name} table")
        else:
            out.append(f"// {struct_name} is generated from {SourceFormat(fmt).value.upper()} input")
        out.append(f"type {struct_name} struct {{")
        out += self._body(schema, fmt, depth=1)
        out.append("}")

        if not self.options.inline_nested_structs:
            for n in nested:
                out += ["", f"// {n.source_name} is a nested struct of {struct_name}"]
                out.append(f"type {n.source_name} struct {{")
                out += self._body(n, fmt, depth=1)
                out.append("}")

        if is_sql and self.options.generate_table_name_method and schema.source_name:
            out += [
                "",
                "// TableName returns the table name used by GORM",
                f"func ({struct_name}) TableName() string {{",
                f'\treturn "{schema.source_name}"',
                "}",
            ]

        logger.info(f"Generated Go struct {struct_name} ({len(schema.fields)} fields)")
        return "\n".join(out) + "\n"

    def _struct_name(self, schema: CanonicalSchema, is_sql: bool) -> str:
        if self.options.struct_name:
            return self.options.struct_name
        if is_sql:
            return to_pascal_case(schema.source_name) or get_config().struct_name
        return schema.source_name or get_config().struct_name

    @staticmethod
    def _needs_time(schema: CanonicalSchema, nested: list[CanonicalSchema]) -> bool:
        for s in [schema, *nested]:
            for f in s.fields:
                if SemanticType.DATETIME in (f.semantic_type, f.element_type):
                    return True
        return False

    def _body(self, schema: CanonicalSchema, fmt: SourceFormat, depth: int) -> list[str]:
        """Field lines of one struct, aligned, indented ``depth`` tabs."""
        lines: list[_Line] = []
        used: set[str] = set()
        for f in schema.fields:
            go_name = to_go_identifier(f.name)
            base, n = go_name, 1
            while go_name in used:
                n += 1
                go_name = f"{base}{n}"
            used.add(go_name)
            lines.append(_Line(go_name, self._go_type(f, fmt, depth), self._tag(f, fmt), f.comment))

        flat = [ln for ln in lines if "\n" not in ln.type]
        name_w = max((len(ln.name) for ln in lines), default=0)
        type_w = max((len(ln.type) for ln in flat), default=0)
        indent = "\t" * depth

        rendered = []
        for ln in lines:
            if "\n" in ln.type:
                text = f"{indent}{ln.name.ljust(name_w)} {ln.type} {ln.tag}"
            else:
                text = f"{indent}{ln.name.ljust(name_w)} {ln.type.ljust(type_w)} {ln.tag}"
            if ln.comment:
                text += f" // {' '.join(ln.comment.split())}"
            rendered.append(text)
        return rendered

    def _go_type(self, f: Field, fmt: SourceFormat, depth: int) -> str:
        prefix = "[]" * max(f.array_depth, 1) if f.is_array else ""
        if f.nested_schema is not None:
            if self.options.inline_nested_structs:
                body = self._body(f.nested_schema, fmt, depth + 1)
                closing = "\t" * depth + "}"
                return "\n".join([f"{prefix}struct {{", *body, closing])
            return prefix + f.nested_schema.source_name

        semantic = f.element_type if f.is_array else f.semantic_type
        options = TypeMapOptions()
        if SourceFormat(fmt).is_sql:
            width = TypeMapper.width_hint(f.raw_type)
            options = TypeMapOptions(int_width=width, float_width=width, unsigned=f.is_unsigned)
        return prefix + TypeMapper.map(semantic or SemanticType.UNKNOWN, TargetFormat.GO, options)

    @staticmethod
    def _tag(f: Field, fmt: SourceFormat) -> str:
        parts = [f'json:"{f.name}"']
        fmt = SourceFormat(fmt)
        if fmt.is_sql:
            gorm = [f"column:{f.name}"]
            if f.is_primary_key:
                gorm.append("primaryKey")
            if f.is_auto_increment:
                gorm.append("autoIncrement")
            if not f.nullable and not f.is_primary_key:
                gorm.append("not null")
            if f.is_unique:
                gorm.append("unique")
            if f.size is not None:
                gorm.append(f"size:{f.size}")
            if f.default_value is not None:
                # double quotes would terminate the struct tag
                default = f.default_value.replace('"', "'")
                gorm.append(f"default:{default}")
            parts.append(f'gorm:"{";".join(gorm)}"')
        elif fmt is SourceFormat.XML:
            parts.append(f'xml:"{_xml_tag_value(f.name)}"')
        elif fmt in FORMAT_TAGS:
            parts.append(f'{FORMAT_TAGS[fmt]}:"{f.name}"')
        return "`" + " ".join(parts) + "`"


def _xml_tag_value(key: str) -> str:
    """encoding/xml tag value for a decoded XML key."""
    if key == TEXT_KEY:
        return ",chardata"
    if key.startswith(ATTR_PREFIX):
        return f"{key[len(ATTR_PREFIX):]},attr"
    return key
