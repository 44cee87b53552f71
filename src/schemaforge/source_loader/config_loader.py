"""Config document loaders — decode JSON, YAML, TOML and XML text to plain data.

XML is mapped to nested dicts the same way for loading and generation:
  <server port="80"><name>web</name><tag>a</tag><tag>b</tag></server>
becomes
  {"server": {"@_port": 80, "name": "web", "tag": ["a", "b"]}}

- attributes are stored under ``@_<name>`` keys
- element text next to attributes or children is stored under ``#text``
- repeated child elements become lists
- numeric and boolean text is converted when it round-trips unchanged
"""

from __future__ import annotations

import json
import logging
import re
import tomllib
import xml.etree.ElementTree as ET
from typing import Any, Optional

import yaml

from schemaforge.errors import ParseError
from schemaforge.source_loader.base import BaseParser, CanonicalSchema, JSONParseResult, SourceFormat
from schemaforge.source_loader.json_inferer import JSONSchemaInferer

logger = logging.getLogger(__name__)

ATTR_PREFIX = "@_"
TEXT_KEY = "#text"

_NAMESPACE_RE = re.compile(r"^\{[^}]*\}")


def coerce_text(text: str) -> Any:
    """Convert XML text to int, float or bool when it round-trips exactly."""
    if text in ("true", "false"):
        return text == "true"
    try:
        as_int = int(text)
        if str(as_int) == text:
            return as_int
    except ValueError:
        pass
    try:
        as_float = float(text)
        if repr(as_float) == text:
            return as_float
    except ValueError:
        pass
    return text


def element_to_data(element: ET.Element) -> Any:
    """Recursively convert an ElementTree element to plain data."""
    children = list(element)
    text = (element.text or "").strip()

    if not children and not element.attrib:
        return coerce_text(text) if text else None

    result: dict[str, Any] = {
        f"{ATTR_PREFIX}{_NAMESPACE_RE.sub('', k)}": coerce_text(v)
        for k, v in element.attrib.items()
    }
    repeated: set[str] = set()
    for child in children:
        tag = _NAMESPACE_RE.sub("", child.tag)
        value = element_to_data(child)
        if tag not in result:
            result[tag] = value
        elif tag in repeated:
            result[tag].append(value)
        else:
            result[tag] = [result[tag], value]
            repeated.add(tag)
    if text:
        result[TEXT_KEY] = coerce_text(text)
    return result


def load_xml(text: str) -> dict[str, Any]:
    try:
        root = ET.fromstring(text.strip())
    except ET.ParseError as e:
        raise ParseError(f"Invalid XML: {e}") from e
    return {_NAMESPACE_RE.sub("", root.tag): element_to_data(root)}


def load_document(text: str, fmt: SourceFormat | str) -> Any:
    """Decode ``text`` as ``fmt`` (json, yaml, toml or xml).

    Raises ParseError for empty or malformed documents.
    """
    fmt = SourceFormat(fmt)
    if not text or not text.strip():
        raise ParseError(f"Empty {fmt.value.upper()} input")

    if fmt == SourceFormat.JSON:
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON: {e}") from e
    if fmt == SourceFormat.YAML:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ParseError(f"Invalid YAML: {e}") from e
        if data is None:
            raise ParseError("YAML document is empty")
        return data
    if fmt == SourceFormat.TOML:
        try:
            return tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            raise ParseError(f"Invalid TOML: {e}") from e
    if fmt == SourceFormat.XML:
        return load_xml(text)

    raise ParseError(f"Not a config document format: {fmt.value}")


class DocumentParser(BaseParser):
    """Parses a JSON, YAML, TOML or XML document into a CanonicalSchema."""

    def __init__(self, fmt: SourceFormat | str, root_name: Optional[str] = None):
        self.fmt = SourceFormat(fmt)
        self.inferer = JSONSchemaInferer(root_name)

    def can_parse(self, content: str) -> bool:
        try:
            load_document(content, self.fmt)
        except ParseError:
            return False
        return True

    def parse(self, content: str, **kwargs) -> CanonicalSchema:
        result = self.parse_result(content)
        if result.error:
            raise ParseError(result.error)
        return result.schema

    def parse_result(self, content: str) -> JSONParseResult:
        """Decode and infer; never raises."""
        try:
            data = load_document(content, self.fmt)
        except ParseError as e:
            logger.warning(f"{self.fmt.value} load failed: {e}")
            return JSONParseResult(
                struct_name=self.inferer.root_name, source_format=self.fmt, error=str(e)
            )
        return self.inferer.parse_document(data, self.fmt)
