"""
Schema flattening for the schema form engine.

Walks a JSON Schema depth-first and produces the ordered field list rendered
by a form, plus the nested object schemas and internal references discovered
on the way. Only root properties are expanded; objects below the root become
single object fields that are edited in their own nested creation context.
"""

import copy
import hashlib
import json
from dataclasses import dataclass, field, replace
from typing import Dict, Any, List, Optional, Union
import logging

from .priority_ranker import (
    BulkPriorityRanker,
    rank,
    recompute_priorities,
    recompute_priorities_async,
    sort_fields,
)
from .reference_resolver import ROOT_REF, ResolvedRef, resolve_ref
from .schema_models import (
    FieldKind,
    FieldModel,
    FlattenResult,
    RankCategory,
    ReferenceReason,
    SCHEMA_TYPES,
    SchemaNode,
)

logger = logging.getLogger(__name__)

_CYCLE_MARKER = "$cycle"


def schema_fingerprint(node: Any) -> str:
    """
    Structural fingerprint of a schema fragment.

    Two fragments get the same fingerprint when their content is equal,
    regardless of object identity or key order. Back-edges of in-memory
    cyclic structures are replaced by their distance to the repeated
    ancestor, so cyclic dictionaries fingerprint without recursing forever.
    The canonical form is hashed with SHA-256.
    """
    canonical = json.dumps(_canonicalize(node, []), sort_keys=True,
                           separators=(',', ':'), default=str)
    return hashlib.sha256(canonical.encode('utf-8')).hexdigest()


def _canonicalize(value: Any, stack: List[Any]) -> Any:
    if not isinstance(value, (dict, list)):
        return value

    for position, ancestor in enumerate(stack):
        if ancestor is value:
            return {_CYCLE_MARKER: len(stack) - position}

    stack.append(value)
    try:
        if isinstance(value, dict):
            return {str(key): _canonicalize(item, stack) for key, item in value.items()}
        return [_canonicalize(item, stack) for item in value]
    finally:
        stack.pop()


def declared_type(schema: Dict[str, Any]) -> Optional[str]:
    """The `type` keyword, taking the first non-null entry of a type list."""
    declared = schema.get('type')
    if isinstance(declared, list):
        return next((t for t in declared if t != 'null'), None)
    return declared


def field_kind(schema: Dict[str, Any]) -> str:
    """Map a schema fragment's `type` keyword to a field kind."""
    declared = declared_type(schema)
    if declared in SCHEMA_TYPES:
        return declared
    if declared is not None:
        logger.debug(f"Unsupported schema type '{declared}', treating as string")
    return FieldKind.STRING


def is_object_schema(schema: Dict[str, Any]) -> bool:
    return declared_type(schema) == FieldKind.OBJECT or 'properties' in schema


def pointer_for_path(path: str) -> str:
    """Turn a dotted property path into a "#/properties/..." pointer."""
    if not path:
        return ROOT_REF
    return ROOT_REF + ''.join(f"/properties/{part}" for part in path.split('.'))


@dataclass
class _PassState:
    """Trackers scoped to one flattening pass."""
    root_schema: Dict[str, Any]
    fields: List[FieldModel] = field(default_factory=list)
    nested_objects: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    refs: Dict[str, str] = field(default_factory=dict)
    # fingerprint -> dotted path of the ancestor currently being expanded
    visited: Dict[str, str] = field(default_factory=dict)
    # fingerprint -> lowest depth recorded in nested_objects
    lowest_depth_seen: Dict[str, int] = field(default_factory=dict)


class SchemaFlattener:
    """Flattens schema documents into ordered field lists."""

    def __init__(self, bulk_ranker: Optional[BulkPriorityRanker] = None):
        self.bulk_ranker = bulk_ranker

    def flatten(self, schema: Union[Dict[str, Any], SchemaNode]) -> FlattenResult:
        """
        Flatten a schema into fields, nested object schemas and internal refs.

        Unresolved references and cycles are returned as reference-kind fields;
        this method does not raise for them.

        Args:
            schema: Parsed schema document (dict or SchemaNode)

        Returns:
            FlattenResult with fields in their final order
        """
        state = self._walk(schema)
        fields = recompute_priorities(sort_fields(state.fields), self.bulk_ranker)
        return self._result(state, fields)

    async def flatten_async(self, schema: Union[Dict[str, Any], SchemaNode]) -> FlattenResult:
        """Flatten with the bulk ranking pass offloaded to a worker thread."""
        state = self._walk(schema)
        fields = await recompute_priorities_async(sort_fields(state.fields), self.bulk_ranker)
        return self._result(state, fields)

    def _walk(self, schema: Union[Dict[str, Any], SchemaNode]) -> _PassState:
        if isinstance(schema, SchemaNode):
            schema = schema.to_dict()

        root_schema = copy.deepcopy(schema)
        state = _PassState(root_schema=root_schema)

        if root_schema.get('definitions'):
            logger.debug(f"Definition keys: {list(root_schema['definitions'].keys())}")

        self._visit_node(state, root_schema, '', 0)
        logger.debug(f"Flattened schema '{root_schema.get('title', 'untitled')}' "
                     f"into {len(state.fields)} fields")
        return state

    @staticmethod
    def _result(state: _PassState, fields: List[FieldModel]) -> FlattenResult:
        return FlattenResult(fields=fields, nested_objects=state.nested_objects, refs=state.refs)

    def _visit_node(self, state: _PassState, node: Dict[str, Any], path: str,
                    depth: int, required: bool = False) -> None:
        fingerprint = schema_fingerprint(node)

        if fingerprint in state.visited:
            # The node is one of its own ancestors on the active path
            state.refs[path] = pointer_for_path(state.visited[fingerprint])
            self._emit(state, FieldModel(
                name=path,
                kind=FieldKind.REFERENCE,
                required=required,
                depth=depth,
                schema={'title': path.split('.')[-1] or 'root'},
                rank_category=RankCategory.REFERENCE,
                path=path,
                circular_ref_path=path,
                reference_reason=ReferenceReason.CYCLE,
            ))
            return

        if not is_object_schema(node):
            return

        if depth > 0:
            self._record_nested(state, path, node, depth)
            self._emit(state, FieldModel(
                name=path,
                kind=FieldKind.OBJECT,
                required=required,
                depth=depth,
                schema=node,
                rank_category=RankCategory.OBJECT,
                path=path,
            ))
            return

        state.visited[fingerprint] = path
        required_names = node.get('required')
        if not isinstance(required_names, list):
            required_names = []

        for key, prop_schema in (node.get('properties') or {}).items():
            field_path = f"{path}.{key}" if path else key
            is_required = key in required_names or (
                isinstance(prop_schema, dict) and prop_schema.get('required') is True
            )

            if not isinstance(prop_schema, dict):
                logger.warning(f"Skipping property '{field_path}': schema is not an object")
                continue

            if '$ref' in prop_schema:
                self._visit_reference(state, key, field_path, prop_schema, depth, is_required)
            elif is_object_schema(prop_schema):
                self._visit_node(state, prop_schema, field_path, depth + 1, is_required)
            else:
                self._emit(state, FieldModel(
                    name=field_path,
                    kind=field_kind(prop_schema),
                    required=is_required,
                    depth=depth,
                    schema=prop_schema,
                    rank_category=RankCategory.PRIMITIVE,
                    path=field_path,
                ))

        del state.visited[fingerprint]

    def _visit_reference(self, state: _PassState, key: str, field_path: str,
                         prop_schema: Dict[str, Any], depth: int, is_required: bool) -> None:
        ref = prop_schema['$ref']
        resolution = resolve_ref(ref, state.root_schema)

        if isinstance(resolution, ResolvedRef) and resolution.is_root:
            state.refs[field_path] = ROOT_REF
            self._record_nested(state, field_path, state.root_schema, depth)
            self._emit(state, FieldModel(
                name=key,
                kind=FieldKind.OBJECT,
                required=is_required,
                depth=depth,
                schema=state.root_schema,
                rank_category=RankCategory.OBJECT,
                path=field_path,
            ))
            return

        if isinstance(resolution, ResolvedRef):
            definition = resolution.schema
            if is_object_schema(definition):
                self._record_nested(state, field_path, definition, depth)
                self._emit(state, FieldModel(
                    name=resolution.name,
                    kind=FieldKind.OBJECT,
                    required=is_required,
                    depth=depth,
                    schema=definition,
                    rank_category=RankCategory.DEFINITION,
                    path=field_path,
                ))
            else:
                self._emit(state, FieldModel(
                    name=resolution.name,
                    kind=field_kind(definition),
                    required=is_required,
                    depth=depth,
                    schema=definition,
                    rank_category=RankCategory.PRIMITIVE,
                    path=field_path,
                ))
            return

        # Unresolved: a missing definition or an unsupported ref form
        state.refs[field_path] = resolution.ref
        missing = resolution.reason == ReferenceReason.MISSING_DEFINITION
        self._emit(state, FieldModel(
            name=resolution.name if missing else key,
            kind=FieldKind.REFERENCE,
            required=is_required,
            depth=depth,
            schema={'title': resolution.name} if missing else prop_schema,
            rank_category=RankCategory.REFERENCE,
            path=field_path,
            circular_ref_path=resolution.ref,
            reference_reason=resolution.reason,
        ))

    @staticmethod
    def _record_nested(state: _PassState, path: str, node: Dict[str, Any], depth: int) -> None:
        """Record a nested object schema, preferring the shallowest occurrence."""
        fingerprint = schema_fingerprint(node)
        previous = state.lowest_depth_seen.get(fingerprint)
        if previous is None or depth < previous:
            state.nested_objects[path] = node
            state.lowest_depth_seen[fingerprint] = depth

    @staticmethod
    def _emit(state: _PassState, field_model: FieldModel) -> None:
        priority = rank(field_model.depth, field_model.rank_category, field_model.required)
        state.fields.append(replace(field_model, priority=priority))


def flatten_schema(schema: Union[Dict[str, Any], SchemaNode],
                   bulk_ranker: Optional[BulkPriorityRanker] = None) -> FlattenResult:
    """Flatten a schema with a one-off SchemaFlattener."""
    return SchemaFlattener(bulk_ranker=bulk_ranker).flatten(schema)
