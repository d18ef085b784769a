"""
Parse uploaded name lists.

JSON files must hold a flat array of strings. Anything else is read as text
split on commas and line breaks, which covers single-column CSV exports as
well as one-name-per-line lists.
"""

from __future__ import annotations

import json
import re
from typing import List, Optional

from rollcall.roster import ValidationError

_TEXT_SPLIT = re.compile(r"[,\r\n]+")


def detect_format(filename: Optional[str] = None, fmt: Optional[str] = None) -> str:
    if fmt:
        fmt = fmt.lower()
        if fmt not in {"json", "text"}:
            raise ValidationError(f"Unsupported import format: {fmt}")
        return fmt
    if filename and filename.lower().endswith(".json"):
        return "json"
    return "text"


def _parse_json(content: str) -> List[str]:
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Could not parse JSON name list: {exc.msg}") from exc
    if not isinstance(parsed, list):
        raise ValidationError("JSON import must be an array of names")
    for item in parsed:
        if not isinstance(item, str):
            raise ValidationError("JSON import must contain only strings")
    return parsed


def _parse_text(content: str) -> List[str]:
    return [name.strip() for name in _TEXT_SPLIT.split(content) if name.strip()]


def parse_import(content: str | bytes, filename: Optional[str] = None, fmt: Optional[str] = None) -> List[str]:
    """Turn an uploaded file body into a list of names; validation of the list itself is left to the manager."""
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValidationError("Import file is not valid UTF-8 text") from exc
    content = content.lstrip("\ufeff")

    if detect_format(filename, fmt) == "json":
        return _parse_json(content)
    return _parse_text(content)
