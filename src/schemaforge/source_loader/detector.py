"""Auto-detection of input format.

Classification is a fixed chain of content heuristics: SQL DDL first (with
the dialect chosen from an explicit priority list), then JSON, YAML, TOML
and XML.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Iterable, Optional

from schemaforge.config import get_config
from schemaforge.source_loader.base import SourceFormat

logger = logging.getLogger(__name__)

CREATE_TABLE_RE = re.compile(r"\bCREATE\s+(?:TEMP(?:ORARY)?\s+)?TABLE\b", re.IGNORECASE)

# Markers unique to one dialect. Checked in priority order; the first
# dialect with a matching marker wins.
DIALECT_MARKERS: dict[SourceFormat, re.Pattern] = {
    SourceFormat.POSTGRESQL: re.compile(
        r"\b(?:BIG|SMALL)?SERIAL\b|\bUUID\b|\bJSONB\b|\bTIMESTAMPTZ\b|\w\s*\[\s*\]",
        re.IGNORECASE,
    ),
    SourceFormat.MYSQL: re.compile(
        r"\bAUTO_INCREMENT\b|\bTINYINT\b|\bCOMMENT\s*'|\bENGINE\s*=",
        re.IGNORECASE,
    ),
    SourceFormat.SQLITE: re.compile(
        r"\bAUTOINCREMENT\b|\bWITHOUT\s+ROWID\b",
        re.IGNORECASE,
    ),
}

DEFAULT_DIALECT = SourceFormat.MYSQL

YAML_KEY_RE = re.compile(r"^\s*[A-Za-z_][\w.-]*\s*:(?:\s+.*)?$", re.MULTILINE)
YAML_LIST_RE = re.compile(r"^\s*-\s+.+$", re.MULTILINE)
TOML_SECTION_RE = re.compile(r"^\s*\[\[?[A-Za-z_][\w.-]*\]\]?\s*$", re.MULTILINE)
TOML_ASSIGN_RE = re.compile(r"^\s*[A-Za-z_][\w.-]*\s*=\s*.+$", re.MULTILINE)
XML_CLOSING_TAG_RE = re.compile(r"</[A-Za-z_]")


class FormatDetector:
    """Detects the format of pasted or loaded schema text."""

    @classmethod
    def detect(
        cls, content: str, dialect_priority: Optional[Iterable[str]] = None
    ) -> SourceFormat:
        """Classify ``content``. Never raises; unmatched input is UNKNOWN."""
        stripped = (content or "").strip()
        if not stripped:
            return SourceFormat.UNKNOWN

        if CREATE_TABLE_RE.search(stripped):
            return cls._detect_dialect(stripped, dialect_priority)

        for check, fmt in (
            (cls._looks_like_json, SourceFormat.JSON),
            (cls._looks_like_yaml, SourceFormat.YAML),
            (cls._looks_like_toml, SourceFormat.TOML),
            (cls._looks_like_xml, SourceFormat.XML),
        ):
            if check(stripped):
                return fmt

        logger.debug("Input matched no known format")
        return SourceFormat.UNKNOWN

    @classmethod
    def detect_dialect(
        cls, content: str, dialect_priority: Optional[Iterable[str]] = None
    ) -> Optional[SourceFormat]:
        """Return the SQL dialect of ``content``, or None if it holds no CREATE TABLE."""
        if not CREATE_TABLE_RE.search(content or ""):
            return None
        return cls._detect_dialect(content, dialect_priority)

    @classmethod
    def _detect_dialect(
        cls, content: str, dialect_priority: Optional[Iterable[str]]
    ) -> SourceFormat:
        priority = dialect_priority or get_config().dialect_priority
        for name in priority:
            try:
                dialect = SourceFormat(name.lower())
            except ValueError:
                logger.warning(f"Ignoring unknown dialect in priority list: {name}")
                continue
            marker = DIALECT_MARKERS.get(dialect)
            if marker is not None and marker.search(content):
                return dialect
        return DEFAULT_DIALECT

    @staticmethod
    def _looks_like_json(stripped: str) -> bool:
        if stripped[0] not in "{[":
            return False
        try:
            parsed = json.loads(stripped)
        except ValueError:
            return False
        return isinstance(parsed, (dict, list))

    @staticmethod
    def _looks_like_yaml(stripped: str) -> bool:
        if stripped[0] in "{[<":
            return False
        if not (YAML_KEY_RE.search(stripped) or YAML_LIST_RE.search(stripped)):
            return False
        # key = value documents with no colons are TOML, not YAML
        return "=" not in stripped or ":" in stripped

    @staticmethod
    def _looks_like_toml(stripped: str) -> bool:
        if not (TOML_SECTION_RE.search(stripped) or TOML_ASSIGN_RE.search(stripped)):
            return False
        return "=" in stripped and ": " not in stripped

    @staticmethod
    def _looks_like_xml(stripped: str) -> bool:
        if stripped.startswith("<?xml"):
            return True
        return (
            stripped.startswith("<")
            and stripped.endswith(">")
            and bool(XML_CLOSING_TAG_RE.search(stripped))
        )
