"""
Unit tests for the object data source.
"""

import pytest

from schemaform.data_source import (
    ObjectDataSource,
    derive_label,
    derive_type_name,
    new_entry_id,
)


class TestDerivation:
    """Test cases for type name and label derivation."""

    def test_type_name_from_title(self):
        assert derive_type_name({"title": "Address"}, "person.home") == "Address"

    def test_type_name_from_path(self):
        assert derive_type_name({}, "person.home") == "home"
        assert derive_type_name(None, "") == "Object"

    def test_label_from_first_scalar(self):
        assert derive_label({"id": None, "name": "Ada", "age": 3}, "Person") == "Ada (Custom)"

    def test_label_nested_level(self):
        assert derive_label({"city": "Delft"}, "Address", depth=3) == "Delft (Nested L3)"

    def test_label_keeps_falsy_scalars(self):
        assert derive_label({"count": 0}, "Counter") == "0 (Custom)"

    def test_label_fallbacks(self):
        assert derive_label({}, "Person") == "Custom Person"
        assert derive_label({"tags": []}, "Person", depth=2) == "Nested Person L2"

    def test_entry_ids_unique(self):
        ids = {new_entry_id() for _ in range(50)}

        assert len(ids) == 50
        assert all(entry_id.startswith("nested_") for entry_id in ids)


class TestObjectDataSource:
    """Test cases for ObjectDataSource."""

    def setup_method(self):
        self.source = ObjectDataSource()

    def test_append_and_lookup(self):
        entry = self.source.append("Person", {"name": "x"})

        assert self.source.entries_for("Person") == [entry]
        assert self.source.find(entry.id) is entry
        assert entry.label == "x (Custom)"
        assert "Person" in self.source
        assert len(self.source) == 1

    def test_append_copies_payload(self):
        payload = {"name": "x", "tags": ["a"]}

        entry = self.source.append("Person", payload)
        payload["tags"].append("b")

        assert entry.data == {"name": "x", "tags": ["a"]}

    def test_append_only_per_type(self):
        """Appending under one type leaves other types untouched."""
        first = self.source.append("Person", {"name": "a"})
        self.source.append("Address", {"city": "b"})
        second = self.source.append("Person", {"name": "c"})

        assert self.source.entries_for("Person") == [first, second]
        assert len(self.source.entries_for("Address")) == 1
        assert self.source.type_names() == ["Person", "Address"]

    def test_duplicate_explicit_id(self):
        self.source.append("Person", {"name": "a"}, entry_id="p1")

        with pytest.raises(ValueError, match="Duplicate"):
            self.source.append("Person", {"name": "b"}, entry_id="p1")

    def test_explicit_label(self):
        entry = self.source.append("Person", {"name": "a"}, label="Alice")

        assert entry.label == "Alice"

    def test_reference_shape(self):
        entry = self.source.append("Person", {"name": "a"}, entry_id="p1")

        assert entry.as_reference() == {"id": "p1", "label": "a (Custom)", "data": {"name": "a"}}

    def test_empty_source(self):
        assert not self.source.has_entries()
        assert self.source.entries_for("Person") == []
        assert self.source.find("missing") is None
        assert self.source.to_dict() == {}

    def test_to_dict(self):
        self.source.append("Person", {"name": "a"}, entry_id="p1")

        assert self.source.to_dict() == {
            "Person": [{"id": "p1", "label": "a (Custom)", "data": {"name": "a"}}]
        }
