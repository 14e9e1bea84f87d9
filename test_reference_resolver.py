"""
Unit tests for reference resolution.
"""

from schemaform.reference_resolver import (
    ResolvedRef,
    UnresolvedRef,
    available_references,
    definition_name,
    resolve_ref,
)
from schemaform.schema_models import ReferenceReason

ROOT = {
    "title": "Root",
    "properties": {"a": {"type": "string"}},
    "definitions": {
        "Color": {"type": "string", "enum": ["red", "blue"]},
        "Point": {"type": "object", "properties": {"x": {"type": "number"}}}
    }
}


class TestDefinitionName:
    """Test cases for definition_name."""

    def test_definition_ref(self):
        assert definition_name("#/definitions/Point") == "Point"

    def test_other_refs(self):
        assert definition_name("#") is None
        assert definition_name("#/properties/a") is None
        assert definition_name(None) is None


class TestResolveRef:
    """Test cases for resolve_ref."""

    def test_root(self):
        resolution = resolve_ref("#", ROOT)

        assert isinstance(resolution, ResolvedRef)
        assert resolution.is_root
        assert resolution.schema is ROOT

    def test_definition_found(self):
        resolution = resolve_ref("#/definitions/Point", ROOT)

        assert isinstance(resolution, ResolvedRef)
        assert resolution.name == "Point"
        assert resolution.schema == ROOT["definitions"]["Point"]
        assert not resolution.is_root

    def test_definition_missing(self):
        resolution = resolve_ref("#/definitions/Nope", ROOT)

        assert isinstance(resolution, UnresolvedRef)
        assert resolution.name == "Nope"
        assert resolution.reason == ReferenceReason.MISSING_DEFINITION

    def test_no_definitions_section(self):
        resolution = resolve_ref("#/definitions/Point", {"properties": {}})

        assert isinstance(resolution, UnresolvedRef)
        assert resolution.reason == ReferenceReason.MISSING_DEFINITION

    def test_unsupported_pointer(self):
        resolution = resolve_ref("#/properties/a", ROOT)

        assert isinstance(resolution, UnresolvedRef)
        assert resolution.reason == ReferenceReason.UNSUPPORTED
        assert resolution.name == "a"

    def test_non_string_ref(self):
        resolution = resolve_ref(42, ROOT)

        assert isinstance(resolution, UnresolvedRef)
        assert resolution.ref == "42"


class TestAvailableReferences:
    """Test cases for available_references."""

    def test_order_and_tokens(self):
        refs = available_references(ROOT, ["owner", "missing"])

        assert refs == ["owner", "missing", "Color", "Point", "root", "parent", "self"]

    def test_deduplicates(self):
        refs = available_references(ROOT, ["Point", "self"])

        assert refs.count("Point") == 1
        assert refs.count("self") == 1

    def test_without_definitions(self):
        assert available_references({}, []) == ["root", "parent", "self"]
