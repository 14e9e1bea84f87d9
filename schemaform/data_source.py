"""
Object data source for the schema form engine.

A session-wide, append-only catalogue of created object instances grouped by
object type name. Object selectors offer these entries for object fields.
"""

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, Iterator, List, Optional
import logging

logger = logging.getLogger(__name__)

DEFAULT_TYPE_NAME = "Object"


@dataclass(frozen=True)
class DataSourceEntry:
    """One created object instance."""
    id: str
    label: str
    data: Dict[str, Any] = field(compare=False)
    type_name: str = DEFAULT_TYPE_NAME
    created_at: datetime = field(default_factory=datetime.now, compare=False)

    def as_reference(self) -> Dict[str, Any]:
        """Return the {id, label, data} reference written into parent forms."""
        return {'id': self.id, 'label': self.label, 'data': self.data}


def new_entry_id(prefix: str = "nested") -> str:
    """Generate a session-unique entry id."""
    return f"{prefix}_{datetime.now().strftime('%Y%m%d%H%M%S%f')}_{uuid.uuid4().hex[:9]}"


def derive_type_name(schema: Optional[Dict[str, Any]], path: str = "") -> str:
    """Derive the object type name from a schema title or the trailing path segment."""
    title = schema.get('title') if isinstance(schema, dict) else None
    if title:
        return title
    return path.split('.')[-1] or DEFAULT_TYPE_NAME


def derive_label(data: Dict[str, Any], type_name: str, depth: int = 1) -> str:
    """
    Build a display label for a created object.

    The first non-empty scalar value names the entry; objects created from the
    root form are tagged "(Custom)", deeper ones with their nesting level.
    """
    suffix = "(Custom)" if depth <= 1 else f"(Nested L{depth})"

    for value in data.values():
        if value is None or value == "" or isinstance(value, (dict, list)):
            continue
        return f"{value} {suffix}"

    return f"Custom {type_name}" if depth <= 1 else f"Nested {type_name} L{depth}"


class ObjectDataSource:
    """Append-only catalogue of created objects keyed by object type name."""

    def __init__(self):
        self._entries: Dict[str, List[DataSourceEntry]] = {}
        self._ids: set = set()

    def append(self, type_name: str, data: Dict[str, Any], label: Optional[str] = None,
               entry_id: Optional[str] = None) -> DataSourceEntry:
        """
        Append a new entry under a type name.

        Args:
            type_name: Object type name (schema title or trailing path segment)
            data: Object payload; stored as a deep copy
            label: Display label, derived from the payload when omitted
            entry_id: Explicit id; generated when omitted

        Returns:
            The stored entry

        Raises:
            ValueError: If an explicit id is already present
        """
        type_name = type_name or DEFAULT_TYPE_NAME

        if entry_id is None:
            entry_id = new_entry_id()
            while entry_id in self._ids:
                entry_id = new_entry_id()
        elif entry_id in self._ids:
            raise ValueError(f"Duplicate data source id: {entry_id}")

        payload = copy.deepcopy(data)
        entry = DataSourceEntry(
            id=entry_id,
            label=label or derive_label(payload, type_name),
            data=payload,
            type_name=type_name,
        )

        self._entries.setdefault(type_name, []).append(entry)
        self._ids.add(entry_id)
        logger.info(f"Data source entry added: {type_name} -> {entry.label} ({entry_id})")
        return entry

    def entries_for(self, type_name: str) -> List[DataSourceEntry]:
        """Entries for a type, oldest first."""
        return list(self._entries.get(type_name, []))

    def find(self, entry_id: str) -> Optional[DataSourceEntry]:
        for entries in self._entries.values():
            for entry in entries:
                if entry.id == entry_id:
                    return entry
        return None

    def type_names(self) -> List[str]:
        return list(self._entries.keys())

    def has_entries(self) -> bool:
        return bool(self._ids)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """Plain-dict view: type name -> list of {id, label, data}."""
        return {
            type_name: [entry.as_reference() for entry in entries]
            for type_name, entries in self._entries.items()
        }

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._ids)
