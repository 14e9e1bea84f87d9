"""
Field priority ranking.

The closed-form `rank` function is the source of truth for field order. A
bulk backend may recompute the priorities of a whole field list at once; its
result is only accepted when it reproduces the serial ordering, otherwise the
serial list stands unchanged.
"""

import asyncio
from dataclasses import replace
from typing import Dict, List, Optional, Sequence
import logging

import numpy as np

from .engine_exceptions import BulkRankingError
from .schema_models import FieldModel, RankCategory

logger = logging.getLogger(__name__)

BASE_PRIORITY = 1000
DEPTH_STEP = 100
REQUIRED_BOOST = 10

TYPE_OFFSETS: Dict[str, int] = {
    RankCategory.OBJECT: 80,
    RankCategory.REFERENCE: 60,
    RankCategory.DEFINITION: 40,
    RankCategory.PRIMITIVE: 20,
}


def rank(depth: int, category: str, required: bool) -> int:
    """
    Compute the priority of a field.

    Shallower fields outrank deeper ones; inside one depth the category
    offset groups objects, references, definitions and primitives, and
    required fields get a small boost within their category.

    Args:
        depth: Field depth (root fields are 0)
        category: One of the RankCategory constants
        required: Whether the field is required

    Returns:
        Integer priority, higher sorts first
    """
    if category not in TYPE_OFFSETS:
        raise ValueError(f"Unknown rank category: {category}")

    priority = BASE_PRIORITY - depth * DEPTH_STEP + TYPE_OFFSETS[category]
    if required:
        priority += REQUIRED_BOOST
    return priority


def sort_fields(fields: Sequence[FieldModel]) -> List[FieldModel]:
    """Order fields by descending priority, keeping discovery order for ties."""
    return sorted(fields, key=lambda f: -f.priority)


class BulkPriorityRanker:
    """Interface for backends that recompute priorities for a whole field list."""

    name = "bulk"

    def recompute(self, fields: Sequence[FieldModel]) -> List[FieldModel]:
        """Return a new, ordered list of fields carrying recomputed priorities."""
        raise NotImplementedError


class NumpyPriorityRanker(BulkPriorityRanker):
    """Vectorised recomputation of the ranking formula with numpy."""

    name = "numpy"

    def recompute(self, fields: Sequence[FieldModel]) -> List[FieldModel]:
        count = len(fields)
        if count == 0:
            return []

        depths = np.fromiter((f.depth for f in fields), dtype=np.int64, count=count)
        offsets = np.fromiter((TYPE_OFFSETS[f.rank_category] for f in fields), dtype=np.int64, count=count)
        required = np.fromiter((1 if f.required else 0 for f in fields), dtype=np.int64, count=count)

        priorities = (BASE_PRIORITY - depths * DEPTH_STEP) + offsets + required * REQUIRED_BOOST
        order = np.argsort(-priorities, kind='stable')

        return [replace(fields[i], priority=int(priorities[i])) for i in order]


def recompute_priorities(fields: List[FieldModel],
                         ranker: Optional[BulkPriorityRanker]) -> List[FieldModel]:
    """
    Run the optional bulk pass over a serially ranked field list.

    The returned list replaces the input as a whole when the backend succeeds
    and keeps the serial relative order; in every other case the input list
    is returned untouched.

    Args:
        fields: Fields already ranked and sorted with `rank`/`sort_fields`
        ranker: Bulk backend, or None to skip the pass

    Returns:
        The accepted field list
    """
    if ranker is None or not fields:
        return fields

    try:
        recomputed = ranker.recompute(fields)
        _check_same_order(fields, recomputed, ranker.name)
        logger.debug(f"Bulk ranking with '{ranker.name}' accepted for {len(fields)} fields")
        return recomputed
    except Exception as e:
        logger.warning(f"Bulk ranking failed, keeping serial order: {e}")
        return fields


async def recompute_priorities_async(fields: List[FieldModel],
                                     ranker: Optional[BulkPriorityRanker]) -> List[FieldModel]:
    """
    Awaitable variant of `recompute_priorities` running the backend in a worker thread.

    Cancelling the awaiting task leaves `fields` as the durable result.
    """
    if ranker is None or not fields:
        return fields
    return await asyncio.to_thread(recompute_priorities, fields, ranker)


def _check_same_order(serial: Sequence[FieldModel], recomputed: Sequence[FieldModel], backend: str) -> None:
    if len(serial) != len(recomputed):
        raise BulkRankingError(backend, f"expected {len(serial)} fields, got {len(recomputed)}")

    for position, (expected, actual) in enumerate(zip(serial, recomputed)):
        if (expected.name, expected.path, expected.depth, expected.kind) != \
                (actual.name, actual.path, actual.depth, actual.kind):
            raise BulkRankingError(backend, f"order differs at position {position}")
