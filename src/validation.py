"""
Sanityfile Validation - JSON Schema validation of parsed Sanityfiles.

Catches structural mistakes (unknown targets, unknown fields, wrong types)
with path-qualified messages before the document is turned into a model.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from jsonschema import Draft7Validator, ValidationError

logger = logging.getLogger(__name__)

_STRING_LIST = {"type": "array", "items": {"type": "string", "minLength": 1}}

HEROKU_TARGET_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["app"],
    "additionalProperties": False,
    "properties": {
        "app": {"type": "string", "minLength": 1},
        "buildpacks": _STRING_LIST,
        "addons": {**_STRING_LIST, "uniqueItems": True},
        "copy_to_root": _STRING_LIST,
    },
}

SANITYFILE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "minProperties": 1,
    "maxProperties": 1,
    "additionalProperties": False,
    "properties": {
        "heroku": HEROKU_TARGET_SCHEMA,
    },
}


def validate_sanityfile(data: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate a parsed Sanityfile document.

    Args:
        data: The YAML-decoded document

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        validator = Draft7Validator(SANITYFILE_SCHEMA)
        errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])

        if not errors:
            return True, None

        error_messages = []
        for error in errors:
            path = ".".join(str(p) for p in error.absolute_path) or "(root)"
            error_messages.append(f"{path}: {error.message}")

        return False, "; ".join(error_messages)

    except ValidationError as e:
        return False, f"Validation error: {str(e)}"
