"""Check stored assessment documents against the bundled JSON Schema."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from jsonschema import Draft202012Validator, FormatChecker
from jsonschema.exceptions import ValidationError

from .models import PayloadError

SCHEMA_FILE = Path(__file__).resolve().parent / "data" / "assessment_record.schema.json"


@lru_cache(maxsize=None)
def load_schema(path: Optional[Path | str] = None) -> Dict[str, Any]:
    """Read a record schema, the bundled one unless a path is given."""
    with open(path or SCHEMA_FILE, encoding="utf-8") as handle:
        return json.load(handle)


@lru_cache(maxsize=1)
def record_validator() -> Draft202012Validator:
    """Validator for the bundled schema; the schema itself is checked once here."""
    schema = load_schema()
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema, format_checker=FormatChecker())


def describe_errors(errors: Iterable[ValidationError]) -> str:
    # Ordered by field path so the message is stable between runs.
    ordered = sorted(errors, key=lambda err: err.json_path)
    return "; ".join(f"{err.json_path}: {err.message}" for err in ordered)


def validate_record_document(
    document: Dict[str, Any], schema: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Validate a document about to be stored.

    Raises PayloadError naming each offending field if validation fails.
    """
    validator = (
        Draft202012Validator(schema, format_checker=FormatChecker())
        if schema is not None
        else record_validator()
    )
    errors = list(validator.iter_errors(document))
    if errors:
        raise PayloadError(f"Schema validation failed: {describe_errors(errors)}")
    return document
