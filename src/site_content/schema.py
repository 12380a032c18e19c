"""Helpers to load and validate the content store's response schema."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError


def default_schema_path() -> Path:
    """Return the path to the bundled collection response schema."""
    return Path(__file__).resolve().parent / "schemas" / "collection_response.json"


@lru_cache(maxsize=1)
def load_schema(path: Optional[Path | str] = None) -> Dict[str, Any]:
    """Load and cache the response schema as a dictionary."""
    schema_path = Path(path) if path else default_schema_path()
    return json.loads(schema_path.read_text(encoding="utf-8"))


def format_errors(errors: Iterable[ValidationError]) -> str:
    """Turn jsonschema errors into a concise human-readable string."""
    parts = []
    for err in errors:
        location = ".".join(str(piece) for piece in err.absolute_path) or "<root>"
        parts.append(f"{location}: {err.message}")
    return "; ".join(parts)


def validate_rows(
    payload: Any, schema: Optional[Dict[str, Any]] = None, *, max_errors: int = 3
) -> List[Dict[str, Any]]:
    """
    Check that a decoded payload is an array of row objects.

    Raises ValueError with a readable message (at most ``max_errors`` problems)
    if validation fails.
    """
    schema_dict = schema or load_schema()
    validator = Draft202012Validator(schema_dict)
    errors = list(validator.iter_errors(payload))
    if errors:
        raise ValueError(f"Schema validation failed: {format_errors(errors[:max_errors])}")
    return payload
