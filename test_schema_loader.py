"""
Unit tests for schema_loader module.
"""

import json
import yaml
import tempfile
import shutil
import os
from pathlib import Path
import pytest
from unittest.mock import patch

from schemaform.engine_exceptions import SchemaParseError
from schemaform.schema_loader import (
    get_schema_info,
    list_available_schemas,
    load_schema,
    parse_schema_text,
    validate_schema_document,
)

SAMPLE_SCHEMA = {
    "title": "Test Schema",
    "required": ["name"],
    "properties": {
        "name": {"type": "string"},
        "home": {"$ref": "#/definitions/Address"}
    },
    "definitions": {
        "Address": {"type": "object", "properties": {"city": {"type": "string"}}}
    }
}


class TestParseSchemaText:
    """Test cases for parsing schema text."""

    def test_valid_text(self):
        assert parse_schema_text(json.dumps(SAMPLE_SCHEMA)) == SAMPLE_SCHEMA

    def test_invalid_json(self):
        with pytest.raises(SchemaParseError) as exc_info:
            parse_schema_text('{"title": ')

        assert exc_info.value.message.startswith("Invalid JSON:")
        assert exc_info.value.as_form_errors().keys() == {"schema"}
        assert exc_info.value.original_error is not None

    def test_empty_text(self):
        with pytest.raises(SchemaParseError, match="empty"):
            parse_schema_text("   ")

    def test_root_must_be_object(self):
        with pytest.raises(SchemaParseError, match="must be an object"):
            parse_schema_text("[1, 2]")

    def test_malformed_keyword(self):
        with pytest.raises(SchemaParseError) as exc_info:
            parse_schema_text('{"properties": {"a": "not a schema"}}')

        assert exc_info.value.message.startswith("Invalid schema:")

    def test_boolean_subschema_accepted(self):
        text = '{"title": "T", "properties": {"name": {"type": "string"}, "anything": true}}'

        schema = parse_schema_text(text)

        assert schema["properties"]["anything"] is True

    def test_draft3_required_flag_accepted(self):
        schema = parse_schema_text('{"properties": {"name": {"type": "string", "required": true}}}')

        assert schema["properties"]["name"]["required"] is True

    def test_validate_document_keeps_unknown_keywords(self):
        document = {"type": "object", "x-widget": "wide", "properties": {}}

        assert validate_schema_document(document) is document


class TestSchemaFiles:
    """Test cases for loading schema files."""

    def setup_method(self):
        """Set up test environment before each test."""
        self.test_dir = tempfile.mkdtemp()
        self.original_cwd = os.getcwd()
        os.chdir(self.test_dir)

        Path("schemas").mkdir(exist_ok=True)

    def teardown_method(self):
        """Clean up after each test."""
        os.chdir(self.original_cwd)
        shutil.rmtree(self.test_dir)

    def create_test_schema(self, filename: str, schema_data):
        """Helper to create test schema files."""
        schema_path = Path("schemas") / filename

        with open(schema_path, 'w') as f:
            if filename.endswith('.yaml') or filename.endswith('.yml'):
                yaml.dump(schema_data, f)
            else:
                json.dump(schema_data, f, indent=2)
        return schema_path

    def test_load_schema_json_success(self):
        path = self.create_test_schema("test.json", SAMPLE_SCHEMA)

        assert load_schema(path) == SAMPLE_SCHEMA

    def test_load_schema_yaml_success(self):
        path = self.create_test_schema("test.yaml", SAMPLE_SCHEMA)

        assert load_schema(str(path)) == SAMPLE_SCHEMA

    def test_load_schema_file_not_found(self):
        assert load_schema("schemas/missing.json") is None

    def test_load_schema_invalid_yaml(self):
        Path("schemas/bad.yaml").write_text("title: [unclosed")

        assert load_schema("schemas/bad.yaml") is None

    def test_load_schema_invalid_json(self):
        Path("schemas/bad.json").write_text("{not json")

        assert load_schema("schemas/bad.json") is None

    def test_load_schema_unsupported_extension(self):
        Path("schemas/schema.txt").write_text("{}")

        assert load_schema("schemas/schema.txt") is None

    def test_load_schema_invalid_structure_returns_none(self):
        path = self.create_test_schema("list.json", [1, 2, 3])

        assert load_schema(path) is None

    def test_load_schema_read_error_returns_none(self):
        path = self.create_test_schema("test.json", SAMPLE_SCHEMA)

        with patch("builtins.open", side_effect=OSError("disk gone")):
            assert load_schema(path) is None

    def test_list_available_schemas(self):
        self.create_test_schema("b.yaml", SAMPLE_SCHEMA)
        self.create_test_schema("a.json", SAMPLE_SCHEMA)
        Path("schemas/readme.txt").write_text("ignored")

        assert list_available_schemas("schemas") == ["a.json", "b.yaml"]

    def test_list_available_schemas_missing_dir(self):
        assert list_available_schemas("nowhere") == []


class TestGetSchemaInfo:
    """Test cases for schema metadata."""

    def test_get_schema_info(self):
        info = get_schema_info(SAMPLE_SCHEMA)

        assert info["title"] == "Test Schema"
        assert info["property_count"] == 2
        assert info["required_fields"] == ["name"]
        assert info["definition_keys"] == ["Address"]
        assert info["property_types"] == {"name": "string", "home": "$ref"}

    def test_get_schema_info_draft3_required(self):
        schema = {"properties": {"name": {"type": "string", "required": True}, "age": {"type": "integer"}}}

        assert get_schema_info(schema)["required_fields"] == ["name"]

    def test_get_schema_info_defaults(self):
        info = get_schema_info({})

        assert info["title"] == "Untitled Schema"
        assert info["property_count"] == 0
        assert info["definition_keys"] == []
