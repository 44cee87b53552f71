"""JSON schema inferer — walks a decoded JSON value into a Canonical Schema.

Every embedded object becomes a Named Nested Schema: a CanonicalSchema whose
``source_name`` is a PascalCase name derived from the object's key. Nested
schemas are collected in a flat list (parent before child) instead of being
inlined, so objects of identical shape share one name.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from schemaforge.errors import ParseError
from schemaforge.generator.naming import to_pascal_case
from schemaforge.source_loader.base import (
    BaseParser,
    CanonicalSchema,
    Field,
    JSONParseResult,
    SemanticType,
    SourceFormat,
)

logger = logging.getLogger(__name__)

DEFAULT_ROOT_NAME = "Response"
FALLBACK_NESTED_NAME = "Nested"


@dataclass
class _InferenceRun:
    """Naming registry for a single infer() call."""

    source_format: SourceFormat
    by_name: dict[str, CanonicalSchema] = field(default_factory=dict)
    ordered: list[Optional[CanonicalSchema]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    root_name: str = ""


def scalar_type(value: Any) -> tuple[SemanticType, str]:
    """Semantic type and raw JSON type name of a non-container value."""
    if value is None:
        return SemanticType.UNKNOWN, "null"
    if isinstance(value, bool):
        return SemanticType.BOOL, "boolean"
    if isinstance(value, int):
        return SemanticType.INTEGER, "integer"
    if isinstance(value, float):
        return SemanticType.FLOAT, "number"
    # str, and dates/datetimes decoded from YAML or TOML
    return SemanticType.STRING, "string"


class JSONSchemaInferer(BaseParser):
    """Infers a CanonicalSchema plus nested schemas from JSON data."""

    def __init__(self, root_name: Optional[str] = None):
        self.root_name = root_name or DEFAULT_ROOT_NAME

    def can_parse(self, content: str) -> bool:
        stripped = (content or "").strip()
        if not stripped or stripped[0] not in "{[":
            return False
        try:
            return isinstance(json.loads(stripped), (dict, list))
        except ValueError:
            return False

    def parse(self, content: str, **kwargs) -> CanonicalSchema:
        """Parse JSON text; raises ParseError on invalid JSON or a scalar root."""
        result = self.parse_result(content)
        if result.error:
            raise ParseError(result.error)
        return result.schema

    def parse_result(self, content: str) -> JSONParseResult:
        """Parse JSON text into a result object; never raises."""
        if not content or not content.strip():
            return JSONParseResult(struct_name=self.root_name, error="Empty JSON input")
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON: {e}")
            return JSONParseResult(struct_name=self.root_name, error=f"Invalid JSON: {e}")
        return self.infer(data)

    def parse_document(self, data: Any, source_format: SourceFormat) -> JSONParseResult:
        """Infer from already decoded YAML, TOML or XML data."""
        return self.infer(data, source_format=source_format)

    def infer(self, data: Any, source_format: SourceFormat = SourceFormat.JSON) -> JSONParseResult:
        """Infer the schema of a decoded value; never raises."""
        run = _InferenceRun(source_format=source_format, root_name=self.root_name)

        root = data
        if isinstance(data, list):
            root = next((item for item in data if isinstance(item, dict)), None)
            if root is None:
                return JSONParseResult(
                    struct_name=self.root_name,
                    source_format=source_format,
                    error="Top-level array contains no object to infer a struct from",
                    data=data,
                )
        if not isinstance(root, dict):
            return JSONParseResult(
                struct_name=self.root_name,
                source_format=source_format,
                error=f"Cannot infer a struct from a top-level {scalar_type(root)[1]} value",
                data=data,
            )

        fields = self._fields(root, run)
        nested = [s for s in run.ordered if s is not None]
        logger.info(
            f"Inferred {self.root_name} from {source_format.value}: "
            f"{len(fields)} fields, {len(nested)} nested structs"
        )
        return JSONParseResult(
            struct_name=self.root_name,
            fields=fields,
            nested_structs=nested,
            source_format=source_format,
            warnings=run.warnings,
            data=data,
        )

    def _fields(self, obj: dict, run: _InferenceRun) -> list[Field]:
        fields: list[Field] = []
        seen: set[str] = set()
        for key, value in obj.items():
            name = str(key)
            if name.lower() in seen:
                run.warnings.append(f"Skipped duplicate key: {name}")
                logger.warning(f"Skipped duplicate key: {name}")
                continue
            seen.add(name.lower())
            fields.append(self._field(name, value, len(fields), run))
        return fields

    def _field(self, name: str, value: Any, position: int, run: _InferenceRun) -> Field:
        if isinstance(value, dict):
            nested = self._register(name, value, run)
            return Field(
                name=name,
                raw_type="object",
                semantic_type=SemanticType.JSON_OBJECT,
                ordinal_position=position,
                nested_schema=nested,
            )

        if isinstance(value, list):
            element, depth = value, 0
            while isinstance(element, list):
                depth += 1
                element = next((item for item in element if item is not None), None)
            nested = None
            if isinstance(element, dict):
                element_type = SemanticType.JSON_OBJECT
                nested = self._register(name, element, run)
            else:
                element_type, _ = scalar_type(element)
            return Field(
                name=name,
                raw_type="array",
                semantic_type=SemanticType.JSON_ARRAY,
                ordinal_position=position,
                nested_schema=nested,
                element_type=element_type,
                array_depth=depth,
            )

        semantic, raw = scalar_type(value)
        return Field(
            name=name,
            raw_type=raw,
            semantic_type=semantic,
            nullable=value is None,
            ordinal_position=position,
        )

    def _register(self, key: str, obj: dict, run: _InferenceRun) -> CanonicalSchema:
        """Build the nested schema for ``obj`` and give it a unique name.

        A slot is reserved before recursing so the flat list stays in
        pre-order. An existing schema with the same name and shape is reused.
        """
        slot = len(run.ordered)
        run.ordered.append(None)
        fields = tuple(self._fields(obj, run))

        base = to_pascal_case(key) or FALLBACK_NESTED_NAME
        name, n = base, 1
        while name in run.by_name or name == run.root_name:
            existing = run.by_name.get(name)
            if existing is not None and existing.shape() == CanonicalSchema(name, fields).shape():
                logger.debug(f"Reusing nested struct {name} for key {key!r}")
                run.ordered[slot] = None
                return existing
            n += 1
            name = f"{base}{n}"

        schema = CanonicalSchema(source_name=name, fields=fields, source_format=run.source_format)
        run.by_name[name] = schema
        run.ordered[slot] = schema
        logger.debug(f"Registered nested struct {name} ({len(fields)} fields)")
        return schema
