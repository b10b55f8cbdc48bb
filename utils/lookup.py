"""
Field Type Lookup Utilities

Loads the side-input file that declares the type of each flattened field.
"""

import logging
from pathlib import Path

import orjson
from pydantic import ValidationError

from utils.schemas import FieldKind, FieldSpec

logger = logging.getLogger(__name__)


def load_field_types(path: str) -> dict[str, FieldKind]:
    """
    Load field type map from a JSON file.

    Expects an object of the form `{"field_name": {"type": "INTEGER"}, ...}`
    and returns a mapping from field name to its declared kind.

    Args:
        path: Path to field types JSON file

    Returns:
        Dictionary mapping field name → type kind

    Raises:
        FileNotFoundError: If file doesn't exist
        IOError: If file can't be read
        ValueError: If file format is invalid
    """
    types_path = Path(path)

    if not types_path.exists():
        error_msg = f"Field types file not found: {path}"
        logger.error(error_msg)
        raise FileNotFoundError(error_msg)

    if not types_path.is_file():
        error_msg = f"Field types path is not a file: {path}"
        logger.error(error_msg)
        raise IOError(error_msg)

    try:
        raw = orjson.loads(types_path.read_bytes())
    except IOError as e:
        error_msg = f"Failed to read field types file: {path} - {str(e)}"
        logger.error(error_msg)
        raise IOError(error_msg) from e
    except orjson.JSONDecodeError as e:
        error_msg = f"Invalid JSON in field types file: {path} - {str(e)}"
        logger.error(error_msg)
        raise ValueError(error_msg) from e

    if not isinstance(raw, dict):
        error_msg = f"Invalid field types format: expected a JSON object in {path}"
        logger.error(error_msg)
        raise ValueError(error_msg)

    field_types: dict[str, FieldKind] = {}

    for name, spec in raw.items():
        try:
            field_types[name] = FieldSpec.model_validate(spec).type
        except ValidationError as e:
            logger.warning(
                "Skipping invalid field type declaration",
                extra={
                    "file_path": path,
                    "field": name,
                    "error": str(e).split('\n')[0],
                }
            )

    if not field_types:
        error_msg = f"No valid field types found in: {path}"
        logger.error(error_msg)
        raise ValueError(error_msg)

    return field_types
