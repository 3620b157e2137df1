"""
Deterministic JSON serialization for byte-stable manifest artifacts.

Identical manifests must produce identical files so that rewriting an
unchanged manifest never produces a diff.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import PurePath
from typing import Any

import orjson


def _default_serializer(obj: Any) -> Any:
    """
    Serialize types orjson does not handle natively.

    Args:
        obj: Object to serialize.

    Returns:
        JSON-serializable representation.

    Raises:
        TypeError: If object cannot be serialized.
    """
    if isinstance(obj, PurePath):
        return obj.as_posix()
    if isinstance(obj, datetime):
        return obj.strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    if hasattr(obj, "model_dump"):
        return obj.model_dump()

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonical_json_dumps(obj: Any, *, indent: bool = False) -> str:
    """
    Serialize object to canonical JSON string.

    Keys are sorted and line endings normalized.

    Args:
        obj: Object to serialize.
        indent: If True, pretty-print with 2-space indentation.

    Returns:
        Canonical JSON string.

    Examples:
        >>> canonical_json_dumps({"/b.css": "/b-1.css", "/a.css": "/a-2.css"})
        '{"/a.css":"/a-2.css","/b.css":"/b-1.css"}'
    """
    options = orjson.OPT_SORT_KEYS
    if indent:
        options |= orjson.OPT_INDENT_2

    json_str = orjson.dumps(obj, default=_default_serializer, option=options).decode("utf-8")
    return json_str.replace("\r\n", "\n").replace("\r", "\n")


def canonical_json_loads(json_str: str | bytes) -> Any:
    """Parse a JSON document."""
    return orjson.loads(json_str)

