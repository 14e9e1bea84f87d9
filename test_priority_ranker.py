"""
Unit tests for field priority ranking.
"""

import asyncio
from dataclasses import replace
import pytest

from schemaform.priority_ranker import (
    BulkPriorityRanker,
    NumpyPriorityRanker,
    rank,
    recompute_priorities,
    recompute_priorities_async,
    sort_fields,
)
from schemaform.schema_models import FieldKind, FieldModel, RankCategory


def make_field(name, depth, category, required, kind=FieldKind.STRING):
    return FieldModel(
        name=name,
        kind=kind,
        required=required,
        depth=depth,
        schema={},
        rank_category=category,
        priority=rank(depth, category, required),
        path=name,
    )


class ReversingRanker(BulkPriorityRanker):
    """Backend that returns the right priorities in the wrong order."""
    name = "reversing"

    def recompute(self, fields):
        return list(reversed(fields))


class TestRank:
    """Test cases for the closed-form ranking function."""

    def test_formula(self):
        assert rank(0, RankCategory.OBJECT, False) == 1080
        assert rank(0, RankCategory.REFERENCE, False) == 1060
        assert rank(0, RankCategory.DEFINITION, True) == 1050
        assert rank(2, RankCategory.PRIMITIVE, True) == 830

    def test_idempotent(self):
        """The same triple always yields the same priority."""
        assert rank(1, RankCategory.OBJECT, True) == rank(1, RankCategory.OBJECT, True)

    def test_unknown_category(self):
        with pytest.raises(ValueError):
            rank(0, "mystery", False)


class TestSortFields:
    """Test cases for field ordering."""

    def test_depth_before_category(self):
        """Depth-0 fields come first; within depth 0 objects beat primitives."""
        fields = [
            make_field("a", 0, RankCategory.PRIMITIVE, True),
            make_field("b", 0, RankCategory.OBJECT, False, kind=FieldKind.OBJECT),
            make_field("c", 1, RankCategory.OBJECT, False, kind=FieldKind.OBJECT),
            make_field("d", 1, RankCategory.PRIMITIVE, True),
        ]

        ordered = [f.name for f in sort_fields(fields)]

        assert ordered == ["b", "a", "c", "d"]

    def test_ties_keep_discovery_order(self):
        fields = [make_field(name, 0, RankCategory.PRIMITIVE, False) for name in ("x", "y", "z")]

        assert [f.name for f in sort_fields(fields)] == ["x", "y", "z"]


class TestRecomputePriorities:
    """Test cases for the optional bulk pass."""

    def setup_method(self):
        self.fields = sort_fields([
            make_field("title", 0, RankCategory.PRIMITIVE, True),
            make_field("owner", 0, RankCategory.OBJECT, False, kind=FieldKind.OBJECT),
            make_field("missing", 0, RankCategory.REFERENCE, False, kind=FieldKind.REFERENCE),
            make_field("note", 0, RankCategory.PRIMITIVE, False),
            make_field("address", 1, RankCategory.OBJECT, False, kind=FieldKind.OBJECT),
        ])

    def test_no_ranker_returns_input(self):
        assert recompute_priorities(self.fields, None) is self.fields

    def test_numpy_preserves_order(self):
        """The accelerated pass never changes the serial relative order."""
        recomputed = recompute_priorities(self.fields, NumpyPriorityRanker())

        assert [f.name for f in recomputed] == [f.name for f in self.fields]
        assert [f.priority for f in recomputed] == [f.priority for f in self.fields]

    def test_numpy_repairs_stale_priorities(self):
        stale = [replace(f, priority=0) for f in self.fields]

        recomputed = recompute_priorities(stale, NumpyPriorityRanker())

        assert [f.priority for f in recomputed] == [f.priority for f in self.fields]

    def test_reordering_backend_rejected(self):
        """A backend that changes the order is ignored."""
        result = recompute_priorities(self.fields, ReversingRanker())

        assert result is self.fields

    def test_failing_backend_falls_back(self, caplog):
        class FailingRanker(BulkPriorityRanker):
            name = "failing"

            def recompute(self, fields):
                raise RuntimeError("no adapter")

        result = recompute_priorities(self.fields, FailingRanker())

        assert result is self.fields
        assert "keeping serial order" in caplog.text

    def test_base_ranker_not_implemented(self):
        assert recompute_priorities(self.fields, BulkPriorityRanker()) is self.fields

    def test_empty_list(self):
        assert recompute_priorities([], NumpyPriorityRanker()) == []

    def test_async_variant(self):
        result = asyncio.run(recompute_priorities_async(self.fields, NumpyPriorityRanker()))

        assert [f.name for f in result] == [f.name for f in self.fields]

    def test_async_without_ranker(self):
        result = asyncio.run(recompute_priorities_async(self.fields, None))

        assert result is self.fields
