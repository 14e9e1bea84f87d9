"""
Nested object creation for the schema form engine.

A user building a form can ask to "create new" for an object field. That
opens a creation context editing the field's sub-schema; inside it the user
can open a further child context, and so on up to a configured depth. Saving
a context appends the object to the shared data source and writes it into the
parent form's field, then returns to the parent.
"""

import copy
from dataclasses import dataclass, field
from typing import Callable, Dict, Any, List, Optional
import logging

from .data_source import DataSourceEntry, ObjectDataSource, derive_label, derive_type_name
from .engine_exceptions import DepthLimitExceeded
from .model_builder import validate_form_values
from .schema_flattener import SchemaFlattener
from .schema_models import FieldKind, FieldModel

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 5

STATE_CLOSED = "closed"
STATE_OPEN = "open"


@dataclass(eq=False)
class NestedCreationContext:
    """
    One level of the nested creation stack.

    Attributes:
        parent_field_path: Field in the parent form that this creation fills
        schema: Sub-schema being edited
        root_schema: Top-level schema retained for definition lookups
        title: Object type name, also the data source key
        depth: 1 when invoked from the root form, +1 per level
        values: Entered values keyed by field name
        child: The open child context, if any
    """
    parent_field_path: str
    schema: Dict[str, Any]
    root_schema: Dict[str, Any]
    title: str
    depth: int
    values: Dict[str, Any] = field(default_factory=dict)
    is_open: bool = True
    child: Optional['NestedCreationContext'] = None
    fields: List[FieldModel] = field(default_factory=list)
    nested_objects: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    refs: Dict[str, str] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)

    def flattening_input(self) -> Dict[str, Any]:
        """The context schema with the retained root's definitions spliced in."""
        merged = dict(self.schema)
        definitions = self.root_schema.get('definitions')
        if definitions is not None:
            merged['definitions'] = definitions
        return merged

    def set_value(self, name: str, value: Any) -> None:
        self.values[name] = value
        self.errors.pop(name, None)


@dataclass
class CreationNotice:
    """User-visible notice produced by a rejected request."""
    field_name: str
    message: str
    error: Optional[Exception] = None


@dataclass
class SaveOutcome:
    """Result of a save transition."""
    saved: bool
    errors: Dict[str, str] = field(default_factory=dict)
    entry: Optional[DataSourceEntry] = None
    value: Any = None


class NestedCreationController:
    """State machine coordinating nested object creation."""

    def __init__(
        self,
        root_schema: Dict[str, Any],
        data_source: Optional[ObjectDataSource] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        flattener: Optional[SchemaFlattener] = None,
        store_references: bool = False,
        root_values: Optional[Dict[str, Any]] = None,
        root_errors: Optional[Dict[str, str]] = None,
        on_update_data_source: Optional[Callable[[ObjectDataSource], None]] = None,
        on_save: Optional[Callable[[Any], None]] = None,
        on_close: Optional[Callable[[], None]] = None,
    ):
        """
        Args:
            root_schema: Top-level schema of the root form
            data_source: Shared catalogue; every context writes to this instance
            max_depth: Maximum number of stacked creation contexts
            flattener: Flattener used for each opened context
            store_references: Write {id, label, data} into parent fields instead of the payload
            root_values: Root form values, updated in place when a top-level context saves
            root_errors: Root form errors, cleared for a field when it receives a value
            on_update_data_source: Called with the data source after each append
            on_save: Called with the value written into the parent after a save
            on_close: Called when the last open context closes
        """
        self.root_schema = copy.deepcopy(root_schema)
        self.data_source = data_source if data_source is not None else ObjectDataSource()
        self.max_depth = max_depth
        self.flattener = flattener or SchemaFlattener()
        self.store_references = store_references
        self.root_values = root_values if root_values is not None else {}
        self.root_errors = root_errors if root_errors is not None else {}
        self.on_update_data_source = on_update_data_source
        self.on_save = on_save
        self.on_close = on_close
        self.notices: List[CreationNotice] = []
        self._top: Optional[NestedCreationContext] = None

    @property
    def state(self) -> str:
        return STATE_OPEN if self._top is not None else STATE_CLOSED

    @property
    def is_open(self) -> bool:
        return self._top is not None

    @property
    def stack(self) -> List[NestedCreationContext]:
        """Open contexts from the top-level one down to the active one."""
        contexts = []
        context = self._top
        while context is not None:
            contexts.append(context)
            context = context.child
        return contexts

    @property
    def active(self) -> Optional[NestedCreationContext]:
        contexts = self.stack
        return contexts[-1] if contexts else None

    @property
    def depth(self) -> int:
        """Depth of the active form; 0 when only the root form is shown."""
        active = self.active
        return active.depth if active else 0

    def request_create(self, form_field: FieldModel) -> Optional[NestedCreationContext]:
        """
        Open a creation context for an object field of the active form.

        Rejected requests record a notice and leave the state unchanged.

        Returns:
            The opened context, or None when the request was rejected
        """
        parent = self.active
        current_depth = parent.depth if parent else 0

        if form_field.kind != FieldKind.OBJECT or not form_field.schema:
            self._notice(form_field.name,
                         f"'{form_field.title}' cannot be created here; pick an existing object instead.")
            return None

        if current_depth >= self.max_depth:
            error = DepthLimitExceeded(form_field.name, self.max_depth)
            logger.warning(f"Rejected nested creation for '{form_field.name}' at depth {current_depth}")
            self._notice(form_field.name, error.message, error)
            return None

        context = NestedCreationContext(
            parent_field_path=form_field.name,
            schema=form_field.schema,
            root_schema=parent.root_schema if parent else self.root_schema,
            title=derive_type_name(form_field.schema, form_field.name),
            depth=current_depth + 1,
        )

        result = self.flattener.flatten(context.flattening_input())
        context.fields = result.fields
        context.nested_objects = result.nested_objects
        context.refs = result.refs

        if parent is None:
            self._top = context
        else:
            parent.child = context

        logger.info(f"Opened nested creation for '{context.title}' at depth {context.depth} "
                    f"(parent field: {context.parent_field_path})")
        return context

    def set_value(self, name: str, value: Any) -> None:
        """Set a value on the active form (the root form when closed)."""
        active = self.active
        if active is None:
            self.root_values[name] = value
            self.root_errors.pop(name, None)
        else:
            active.set_value(name, value)

    def save(self, values: Optional[Dict[str, Any]] = None) -> SaveOutcome:
        """
        Save the active context.

        On success the object is appended to the shared data source, the
        parent's field receives the payload (or reference) and the context is
        closed. On validation failure the context stays open with field errors.

        Args:
            values: Complete form values; the context's current values when omitted
        """
        context = self.active
        if context is None:
            logger.warning("Save requested with no open nested creation context")
            return SaveOutcome(saved=False)

        if values is not None:
            context.values = dict(values)

        errors = validate_form_values(context.fields, context.values)
        if errors:
            context.errors = errors
            return SaveOutcome(saved=False, errors=errors)

        entry = self.data_source.append(
            context.title,
            context.values,
            label=derive_label(context.values, context.title, context.depth),
        )
        if self.on_update_data_source is not None:
            self.on_update_data_source(self.data_source)

        value = entry.as_reference() if self.store_references else entry.data
        contexts = self.stack
        parent = contexts[-2] if len(contexts) > 1 else None

        if parent is None:
            self.root_values[context.parent_field_path] = value
            self.root_errors.pop(context.parent_field_path, None)
        else:
            parent.set_value(context.parent_field_path, value)

        logger.info(f"Saved nested '{context.title}' into '{context.parent_field_path}' as {entry.id}")
        if self.on_save is not None:
            self.on_save(value)
        self._detach(context)
        return SaveOutcome(saved=True, entry=entry, value=value)

    def cancel(self) -> Optional[NestedCreationContext]:
        """Discard the active context without touching the data source."""
        context = self.active
        if context is None:
            return None

        self._detach(context)
        logger.info(f"Cancelled nested creation for '{context.title}' at depth {context.depth}")
        return context

    def close_all(self) -> None:
        """Collapse the whole stack to the root form in one step."""
        was_open = self._top is not None
        for context in self.stack:
            context.is_open = False
            context.child = None
        self._top = None

        if was_open:
            logger.info("Closed all nested creation contexts")
            self._closed()

    def consume_notices(self) -> List[CreationNotice]:
        """Return pending notices and clear them."""
        notices, self.notices = self.notices, []
        return notices

    def _detach(self, context: NestedCreationContext) -> Optional[NestedCreationContext]:
        """Close a context and unlink it from its parent; returns the parent."""
        contexts = self.stack
        index = contexts.index(context)
        parent = contexts[index - 1] if index > 0 else None

        context.is_open = False
        context.child = None
        if parent is None:
            self._top = None
            self._closed()
        else:
            parent.child = None
        return parent

    def _closed(self) -> None:
        if self.on_close is not None:
            self.on_close()

    def _notice(self, field_name: str, message: str, error: Optional[Exception] = None) -> None:
        self.notices.append(CreationNotice(field_name=field_name, message=message, error=error))
