"""Identifier case conversion shared by the generators and the JSON inferer."""

from __future__ import annotations

import re

WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|\d+")

# Go style keeps these as all-caps words
GO_INITIALISMS = frozenset({"ID", "URL", "URI", "API", "HTTP", "HTTPS", "JSON", "UUID", "IP", "SQL", "XML", "HTML"})


def split_words(name: str) -> list[str]:
    """Split snake_case, kebab-case, camelCase and PascalCase names into words."""
    return WORD_RE.findall(name or "")


def to_pascal_case(name: str, prefix: str = "X") -> str:
    """``user_profile`` / ``userProfile`` -> ``UserProfile``.

    A result starting with a digit gets ``prefix`` prepended.
    """
    result = "".join(w[0].upper() + w[1:].lower() for w in split_words(name))
    if result and result[0].isdigit():
        result = prefix + result
    return result


def to_snake_case(name: str) -> str:
    """``userProfile`` / ``UserProfile`` / ``user-profile`` -> ``user_profile``."""
    result = "_".join(w.lower() for w in split_words(name))
    if result and result[0].isdigit():
        result = "_" + result
    return result


def to_go_identifier(name: str) -> str:
    """Exported Go identifier: PascalCase with common initialisms upper-cased."""
    words = []
    for w in split_words(name):
        upper = w.upper()
        words.append(upper if upper in GO_INITIALISMS else w[0].upper() + w[1:].lower())
    result = "".join(words)
    if not result:
        return "Field"
    if result[0].isdigit():
        result = "Field" + result
    return result
