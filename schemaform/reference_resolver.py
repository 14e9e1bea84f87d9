"""
Reference resolution for internal JSON Schema `$ref` strings.

Only the root token ("#") and "#/definitions/<name>" lookups are supported.
Anything else is reported as unresolved instead of failing.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Iterable, List, Optional, Union
import logging

from .schema_models import ReferenceReason

logger = logging.getLogger(__name__)

ROOT_REF = "#"
DEFINITIONS_PREFIX = "#/definitions/"

# Special tokens always offered to reference choosers
SPECIAL_REFERENCES = ("root", "parent", "self")


@dataclass(frozen=True)
class ResolvedRef:
    """A reference that points at a schema in the retained root."""
    ref: str
    schema: Dict[str, Any] = field(compare=False, repr=False)
    name: Optional[str] = None

    @property
    def is_root(self) -> bool:
        return self.ref == ROOT_REF


@dataclass(frozen=True)
class UnresolvedRef:
    """A reference that could not be resolved against the retained root."""
    ref: str
    name: str
    reason: str


Resolution = Union[ResolvedRef, UnresolvedRef]


def definition_name(ref: Any) -> Optional[str]:
    """Return the definition key for a "#/definitions/<name>" ref, else None."""
    if isinstance(ref, str) and ref.startswith(DEFINITIONS_PREFIX):
        return ref[len(DEFINITIONS_PREFIX):]
    return None


def resolve_ref(ref: Any, root_schema: Dict[str, Any]) -> Resolution:
    """
    Resolve a `$ref` string against the retained root schema.

    Rules, checked in order:
        "#"                    -> the root schema itself
        "#/definitions/<name>" -> root_schema["definitions"][<name>] when present
        anything else          -> unresolved

    Args:
        ref: The raw `$ref` value
        root_schema: Root schema retained for the current flattening pass

    Returns:
        ResolvedRef or UnresolvedRef; absence is a normal outcome
    """
    if ref == ROOT_REF:
        return ResolvedRef(ref=ref, schema=root_schema)

    name = definition_name(ref)
    if name is not None:
        definitions = root_schema.get('definitions') if isinstance(root_schema, dict) else None
        if isinstance(definitions, dict) and isinstance(definitions.get(name), dict):
            return ResolvedRef(ref=ref, schema=definitions[name], name=name)

        logger.debug(f"Definition '{name}' not found for ref {ref}")
        return UnresolvedRef(ref=ref, name=name, reason=ReferenceReason.MISSING_DEFINITION)

    raw = ref if isinstance(ref, str) else repr(ref)
    logger.debug(f"Unsupported ref form: {raw}")
    return UnresolvedRef(ref=raw, name=raw.rsplit('/', 1)[-1] or raw, reason=ReferenceReason.UNSUPPORTED)


def available_references(root_schema: Dict[str, Any], refs: Iterable[str]) -> List[str]:
    """
    Build the list offered by reference choosers.

    Discovered reference paths come first, then definition keys of the root
    schema, then the special root/parent/self tokens. Duplicates are dropped.
    """
    available: List[str] = []

    def add(name: str) -> None:
        if name not in available:
            available.append(name)

    for path in refs:
        add(path)

    definitions = root_schema.get('definitions') if isinstance(root_schema, dict) else None
    if isinstance(definitions, dict):
        for name in definitions:
            add(name)

    for token in SPECIAL_REFERENCES:
        add(token)

    return available
