"""
Data models for the schema form engine.

SchemaNode validates the structure of a parsed JSON Schema document,
FieldModel describes one flattened form field and FlattenResult bundles the
output of one flattening pass.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Union
import logging

from pydantic import BaseModel, ConfigDict, Field, StrictBool

logger = logging.getLogger(__name__)


class FieldKind:
    """Field kind constants."""
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    REFERENCE = "reference"


# Kinds a schema `type` keyword can map to directly
SCHEMA_TYPES = (
    FieldKind.STRING, FieldKind.NUMBER, FieldKind.INTEGER,
    FieldKind.BOOLEAN, FieldKind.ARRAY, FieldKind.OBJECT
)

FIELD_KINDS = SCHEMA_TYPES + (FieldKind.REFERENCE,)


class RankCategory:
    """Ranking categories used to order fields inside one depth bucket."""
    OBJECT = "object"
    REFERENCE = "reference"
    DEFINITION = "definition"
    PRIMITIVE = "primitive"


class ReferenceReason:
    """Why a field was emitted with the reference kind."""
    CYCLE = "cycle"
    MISSING_DEFINITION = "missing_definition"
    UNSUPPORTED = "unsupported"


class SchemaNode(BaseModel):
    """
    One JSON Schema fragment.

    Unknown keywords are kept so a validated node can be dumped back to the
    same document. A node with ``$ref`` set is a reference node and its other
    structural keywords are ignored during resolution. Boolean subschemas and
    the draft-3 form of `required` (a flag on the property itself) are valid.
    """

    model_config = ConfigDict(extra='allow', populate_by_name=True)

    type: Optional[Union[str, List[str]]] = None
    properties: Optional[Dict[str, Union['SchemaNode', StrictBool]]] = None
    items: Optional[Union['SchemaNode', StrictBool, List[Union['SchemaNode', StrictBool]]]] = None
    definitions: Optional[Dict[str, Union['SchemaNode', StrictBool]]] = None
    required: Optional[Union[List[str], StrictBool]] = None
    title: Optional[str] = None
    description: Optional[str] = None
    enum: Optional[List[Any]] = None
    ref: Optional[str] = Field(default=None, alias='$ref')

    @property
    def is_reference(self) -> bool:
        return self.ref is not None

    def to_dict(self) -> Dict[str, Any]:
        """Dump the node as a plain schema dictionary."""
        return self.model_dump(by_alias=True, exclude_none=True)


SchemaNode.model_rebuild()


@dataclass(frozen=True)
class FieldModel:
    """
    One flattened form field.

    Attributes:
        name: Dotted path or definition key identifying the field in a form
        kind: One of FIELD_KINDS
        required: Whether the owning object lists the property as required
        depth: Nesting depth, root properties are depth 0
        schema: Originating schema fragment (read-only)
        rank_category: Category fed to the priority ranker
        priority: Sort priority, higher sorts first
        path: Dotted path of the property inside the flattened schema
        circular_ref_path: Set for reference-kind fields only
        reference_reason: Set for reference-kind fields only
    """
    name: str
    kind: str
    required: bool
    depth: int
    schema: Dict[str, Any] = field(compare=False, repr=False)
    rank_category: str = RankCategory.PRIMITIVE
    priority: int = 0
    path: str = ""
    circular_ref_path: Optional[str] = None
    reference_reason: Optional[str] = None

    @property
    def title(self) -> str:
        title = self.schema.get('title') if isinstance(self.schema, dict) else None
        return title or self.name.split('.')[-1] or 'Object'

    @property
    def description(self) -> Optional[str]:
        return self.schema.get('description') if isinstance(self.schema, dict) else None

    @property
    def enum(self) -> Optional[List[Any]]:
        values = self.schema.get('enum') if isinstance(self.schema, dict) else None
        return list(values) if values else None

    @property
    def is_reference(self) -> bool:
        return self.kind == FieldKind.REFERENCE

    @property
    def is_circular(self) -> bool:
        return self.reference_reason == ReferenceReason.CYCLE


@dataclass
class FlattenResult:
    """Output of one flattening pass."""
    fields: List[FieldModel] = field(default_factory=list)
    nested_objects: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    refs: Dict[str, str] = field(default_factory=dict)

    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> Optional[FieldModel]:
        """Return the first field with the given name."""
        for f in self.fields:
            if f.name == name:
                return f
        return None
