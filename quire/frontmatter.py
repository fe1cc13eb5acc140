"""Frontmatter parsing for Quire.

A content file may start with a metadata block delimited by ``---`` (YAML)
or ``+++`` (TOML) lines. This module splits that block from the body,
parses it, and validates the keys Quire knows about.

Key functions:
- split_frontmatter: Separate the raw metadata block from the body.
- parse_frontmatter: Parse and validate the metadata block.
- coerce_date: Normalise a frontmatter date to an aware datetime.
"""

from __future__ import annotations

import tomllib
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Any

import yaml

from .errors import ParseError
from .utils import unique_strings

DELIMITERS = {"---": "yaml", "+++": "toml"}

STRING_KEYS = ("title", "author", "description", "slug", "layout")
DATE_KEYS = ("date", "lastmod")
LIST_KEYS = ("tags", "categories")

_TRUE_STRINGS = {"true", "yes", "on"}
_FALSE_STRINGS = {"false", "no", "off"}


def split_frontmatter(text: str, path: Path) -> tuple[str | None, str | None, str]:
    """Split a leading metadata block from the body text.

    Args:
        text: Raw file content.
        path: Source path, used in error messages.

    Returns:
        Tuple of (raw block, format name, body). The block and format are
        None when the document has no metadata.

    Raises:
        ParseError: If the opening delimiter is never closed.
    """
    text = text.lstrip("\ufeff")
    lines = text.splitlines(keepends=True)
    if not lines:
        return None, None, text
    opener = lines[0].strip()
    fmt = DELIMITERS.get(opener)
    if fmt is None:
        return None, None, text
    for index in range(1, len(lines)):
        if lines[index].strip() == opener:
            block = "".join(lines[1:index])
            body = "".join(lines[index + 1 :])
            return block, fmt, body
    raise ParseError(path, f"Unterminated frontmatter: missing closing '{opener}'")


def parse_frontmatter(text: str, path: Path) -> tuple[dict[str, Any], str]:
    """Parse and validate the frontmatter of a content file.

    Args:
        text: Raw file content.
        path: Source path, used in error messages.

    Returns:
        Tuple of (metadata mapping, body). Known keys are coerced to their
        types; unknown keys are passed through untouched.

    Raises:
        ParseError: If the block is malformed or a known key is invalid.
    """
    block, fmt, body = split_frontmatter(text, path)
    if block is None:
        return {}, body
    data = _load_block(block, fmt, path)
    return validate_metadata(data, path), body


def _load_block(block: str, fmt: str | None, path: Path) -> dict[str, Any]:
    if not block.strip():
        return {}
    if fmt == "toml":
        try:
            data = tomllib.loads(block)
        except tomllib.TOMLDecodeError as exc:
            raise ParseError(path, f"Invalid TOML frontmatter: {exc}") from exc
    else:
        try:
            data = yaml.safe_load(block)
        except (yaml.YAMLError, ValueError) as exc:
            # PyYAML raises a bare ValueError for impossible dates like 2024-02-30
            raise ParseError(path, f"Invalid YAML frontmatter: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParseError(path, "Frontmatter must be a mapping of keys to values")
    return data


def validate_metadata(data: dict[str, Any], path: Path) -> dict[str, Any]:
    """Coerce known frontmatter keys to their types."""
    result = dict(data)
    for key in STRING_KEYS:
        if key in result and result[key] is not None:
            value = result[key]
            if isinstance(value, (dict, list)):
                raise ParseError(path, f"'{key}' must be a string")
            result[key] = str(value)
    for key in DATE_KEYS:
        if key in result and result[key] is not None:
            result[key] = coerce_date(result[key], key, path)
    if "draft" in result:
        draft = result["draft"]
        result["draft"] = False if draft is None else _coerce_bool(draft, path)
    for key in LIST_KEYS:
        if key in result:
            result[key] = _coerce_list(result[key], key, path)
    return result


def coerce_date(value: Any, key: str, path: Path) -> datetime:
    """Normalise a date, datetime or ISO-8601 string to an aware datetime.

    Naive values are taken as UTC.

    Raises:
        ParseError: If the value is not a recognisable timestamp.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time())
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as exc:
            raise ParseError(path, f"Invalid date for '{key}': {value!r}") from exc
    else:
        raise ParseError(path, f"Invalid date for '{key}': {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _coerce_bool(value: Any, path: Path) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ParseError(path, f"'draft' must be a boolean, got {value!r}")


def _coerce_list(value: Any, key: str, path: Path) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return unique_strings(value.split(","))
    if isinstance(value, (list, tuple)):
        items = []
        for item in value:
            if isinstance(item, (dict, list)) or item is None:
                raise ParseError(path, f"'{key}' must be a list of strings")
            items.append(str(item))
        return unique_strings(items)
    raise ParseError(path, f"'{key}' must be a list of strings, got {value!r}")
