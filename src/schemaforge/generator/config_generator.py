"""Config format generators — pretty-print raw data as JSON, YAML, TOML or XML.

These operate on decoded data, not on the Canonical Schema. Output is
deterministic, and reformatting already formatted output returns the same
text.
"""

from __future__ import annotations

import json
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Optional

import tomli_w
import yaml

from schemaforge.config import ForgeConfig, get_config
from schemaforge.errors import UnsupportedConversion
from schemaforge.source_loader.base import DOCUMENT_FORMATS, SourceFormat
from schemaforge.source_loader.config_loader import ATTR_PREFIX, TEXT_KEY, load_document

logger = logging.getLogger(__name__)

XML_PROLOG = '<?xml version="1.0" encoding="UTF-8"?>'

_INVALID_TAG_CHARS = re.compile(r"[^\w.-]")
_JSON_KEY_TYPES = (str, int, float, bool, type(None))


@dataclass(frozen=True)
class ConfigOptions:
    indent: int = 4
    root_name: str = "root"

    @classmethod
    def from_config(cls, config: Optional[ForgeConfig] = None, **overrides) -> ConfigOptions:
        config = config or get_config()
        values = dict(indent=config.indent, root_name=config.xml_root_name)
        values.update(overrides)
        return cls(**values)


class _NoAliasDumper(yaml.SafeDumper):
    """Writes repeated objects in full instead of as &anchor / *alias pairs."""

    def ignore_aliases(self, data):
        return True


def strip_none(value: Any) -> Any:
    """Drop None values recursively; TOML has no null."""
    if isinstance(value, dict):
        return {k: strip_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [strip_none(v) for v in value if v is not None]
    return value


def stringify_keys(value: Any) -> Any:
    """Convert mapping keys JSON cannot hold (YAML dates, ...) to strings."""
    if isinstance(value, dict):
        return {
            k if isinstance(k, _JSON_KEY_TYPES) else str(k): stringify_keys(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [stringify_keys(v) for v in value]
    return value


def xml_tag(name: str) -> str:
    tag = _INVALID_TAG_CHARS.sub("_", str(name)) or "_"
    if not (tag[0].isalpha() or tag[0] == "_"):
        tag = "_" + tag
    return tag


def xml_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def fill_element(element: ET.Element, value: Any) -> None:
    """Write ``value`` into ``element`` using the @_ / #text conventions."""
    if value is None:
        return
    if not isinstance(value, dict):
        element.text = xml_text(value)
        return
    for key, item in value.items():
        key = str(key)
        if key.startswith(ATTR_PREFIX):
            if item is not None:
                element.set(xml_tag(key[len(ATTR_PREFIX):]), xml_text(item))
        elif key == TEXT_KEY:
            if item is not None:
                element.text = xml_text(item)
        elif isinstance(item, list):
            for entry in item:
                fill_element(ET.SubElement(element, xml_tag(key)), entry)
        else:
            fill_element(ET.SubElement(element, xml_tag(key)), item)


class ConfigGenerator:
    """Pretty-prints decoded data in one of the config document formats."""

    def __init__(self, options: Optional[ConfigOptions] = None):
        self.options = options or ConfigOptions()

    def generate(self, data: Any, fmt: SourceFormat | str) -> str:
        """Serialize ``data`` as ``fmt``; raises UnsupportedConversion on failure."""
        fmt = SourceFormat(fmt)
        if fmt not in DOCUMENT_FORMATS:
            raise UnsupportedConversion(f"Not a config output format: {fmt.value}")

        if fmt == SourceFormat.JSON:
            text = self.to_json(data)
        elif fmt == SourceFormat.YAML:
            text = self.to_yaml(data)
        elif fmt == SourceFormat.TOML:
            text = self.to_toml(data)
        else:
            text = self.to_xml(data)
        logger.debug(f"Generated {fmt.value} document ({len(text)} chars)")
        return text

    def reformat(self, text: str, fmt: SourceFormat | str) -> str:
        """Re-indent a document of format ``fmt``; raises ParseError if it does not load."""
        return self.generate(load_document(text, fmt), fmt)

    def to_json(self, data: Any) -> str:
        try:
            text = json.dumps(
                stringify_keys(data), indent=self.options.indent, ensure_ascii=False, default=str
            )
        except TypeError as e:
            raise UnsupportedConversion(f"Cannot write JSON: {e}") from e
        return text + "\n"

    def to_yaml(self, data: Any) -> str:
        return yaml.dump(
            data,
            Dumper=_NoAliasDumper,
            indent=self.options.indent,
            width=float("inf"),
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )

    def to_toml(self, data: Any) -> str:
        if not isinstance(data, dict):
            raise UnsupportedConversion(
                f"TOML documents must be a table at the top level, got {type(data).__name__}"
            )
        try:
            return tomli_w.dumps(strip_none(data), indent=self.options.indent)
        except TypeError as e:
            raise UnsupportedConversion(f"Cannot write TOML: {e}") from e

    def to_xml(self, data: Any) -> str:
        # A single-key object whose value is not a list names its own root
        if isinstance(data, dict) and len(data) == 1:
            (key, value), = data.items()
            if not str(key).startswith((ATTR_PREFIX, TEXT_KEY)) and not isinstance(value, list):
                root = ET.Element(xml_tag(key))
                fill_element(root, value)
                return self._serialize_xml(root)

        root = ET.Element(xml_tag(self.options.root_name))
        if isinstance(data, list):
            for entry in data:
                fill_element(ET.SubElement(root, "item"), entry)
        else:
            fill_element(root, data)
        return self._serialize_xml(root)

    def _serialize_xml(self, root: ET.Element) -> str:
        ET.indent(root, space=" " * self.options.indent)
        return f"{XML_PROLOG}\n{ET.tostring(root, encoding='unicode')}\n"
