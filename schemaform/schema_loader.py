"""
Schema loader for the schema form engine.
Parses schema text and schema files (JSON or YAML) into schema documents.
"""

import json
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List, Union
import logging

from pydantic import ValidationError

from .engine_exceptions import SchemaParseError
from .schema_models import SchemaNode

logger = logging.getLogger(__name__)

SCHEMA_SUFFIXES = ('.json', '.yaml', '.yml')


def parse_schema_text(text: str) -> Dict[str, Any]:
    """
    Parse JSON schema source text into a schema document.

    Args:
        text: Schema source text

    Returns:
        Schema dictionary

    Raises:
        SchemaParseError: If the text is not valid JSON or not a schema object
    """
    if text is None or not text.strip():
        raise SchemaParseError("Schema text is empty")

    try:
        schema = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"JSON parsing error in schema text: {e}")
        raise SchemaParseError(str(e), e) from e

    return validate_schema_document(schema)


def validate_schema_document(schema: Any) -> Dict[str, Any]:
    """
    Check the structure of a parsed schema document.

    Returns:
        The document unchanged

    Raises:
        SchemaParseError: If the document is not a JSON object or has
            malformed schema keywords
    """
    if not isinstance(schema, dict):
        raise SchemaParseError(f"Schema root must be an object, got {type(schema).__name__}")

    try:
        SchemaNode.model_validate(schema)
    except ValidationError as e:
        logger.error(f"Schema structure error: {e}")
        first = e.errors()[0]
        location = '.'.join(str(part) for part in first.get('loc', ())) or 'schema'
        raise SchemaParseError(f"{location}: {first.get('msg')}", e, prefix="Invalid schema") from e

    return schema


def load_schema(schema_path: Union[str, Path]) -> Optional[Dict[str, Any]]:
    """
    Load a schema from a JSON or YAML file.

    Args:
        schema_path: Path to the schema file

    Returns:
        Schema dictionary or None if loading fails
    """
    full_path = Path(schema_path)

    if not full_path.exists():
        logger.error(f"Schema file not found: {full_path}")
        return None

    suffix = full_path.suffix.lower()
    if suffix not in SCHEMA_SUFFIXES:
        logger.error(f"Unsupported schema file format: {full_path.suffix}")
        return None

    try:
        with open(full_path, 'r', encoding='utf-8') as f:
            if suffix == '.json':
                schema = json.load(f)
            else:
                schema = yaml.safe_load(f)

        schema = validate_schema_document(schema)
        logger.info(f"Successfully loaded schema: {full_path}")
        return schema

    except yaml.YAMLError as e:
        logger.error(f"YAML parsing error in {full_path}: {e}")
        return None
    except json.JSONDecodeError as e:
        logger.error(f"JSON parsing error in {full_path}: {e}")
        return None
    except SchemaParseError as e:
        logger.error(f"Invalid schema structure in {full_path}: {e}")
        return None
    except (IOError, OSError) as e:
        logger.error(f"Error loading schema {full_path}: {e}")
        return None


def list_available_schemas(schemas_dir: Union[str, Path]) -> List[str]:
    """
    List all schema files in a directory.

    Returns:
        Sorted list of schema filenames
    """
    directory = Path(schemas_dir)
    if not directory.is_dir():
        return []

    schema_files = []
    for pattern in ['*.json', '*.yaml', '*.yml']:
        schema_files.extend([f.name for f in directory.glob(pattern)])

    return sorted(schema_files)


def get_schema_info(schema: Dict[str, Any]) -> Dict[str, Any]:
    """
    Get metadata information about a schema document.

    Args:
        schema: Schema dictionary

    Returns:
        Dictionary with schema metadata
    """
    properties = schema.get('properties') or {}
    definitions = schema.get('definitions') or {}
    required = schema.get('required')
    if not isinstance(required, list):
        required = [
            name for name, config in properties.items()
            if isinstance(config, dict) and config.get('required') is True
        ]

    return {
        "title": schema.get('title', 'Untitled Schema'),
        "description": schema.get('description', ''),
        "property_count": len(properties),
        "required_fields": list(required),
        "definition_keys": list(definitions.keys()),
        "property_types": {
            name: config.get('type', '$ref' if '$ref' in config else 'unknown')
            for name, config in properties.items()
            if isinstance(config, dict)
        }
    }
