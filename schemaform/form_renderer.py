"""
Streamlit form rendering for flattened schema fields.
Renders primitive controls, object selectors backed by the data source,
reference choosers and the nested creation panel.
"""

import json
import streamlit as st
from typing import Callable, Dict, Any, List, Optional
import logging

from .data_source import DataSourceEntry, ObjectDataSource, derive_type_name
from .nested_creation import NestedCreationController
from .schema_models import FieldKind, FieldModel
from .ui_feedback import UserFeedback

logger = logging.getLogger(__name__)

NO_SELECTION_LABEL = "-- Select --"


class FormRenderer:
    """Renders flattened fields and collects their values."""

    @staticmethod
    def render_fields(
        fields: List[FieldModel],
        values: Dict[str, Any],
        errors: Dict[str, str],
        form_key: str,
        available_refs: List[str],
        data_source: ObjectDataSource,
        on_create_new: Optional[Callable[[FieldModel], Any]] = None,
        store_references: bool = False
    ) -> Dict[str, Any]:
        """
        Render all fields in order and return the collected values.

        Args:
            fields: Ordered fields of one form
            values: Current values keyed by field name
            errors: Field errors shown under each control
            form_key: Prefix keeping widget keys unique per form
            available_refs: Choices for reference-kind fields
            data_source: Catalogue offered by object selectors
            on_create_new: Called when "create new" is pressed on an object field
            store_references: Object selectors return {id, label, data} instead of the payload
        """
        collected: Dict[str, Any] = {}

        for form_field in fields:
            if form_field.name in collected:
                continue

            value = FormRenderer.render_field(
                form_field,
                values.get(form_field.name),
                form_key,
                available_refs,
                data_source,
                on_create_new,
                store_references
            )
            collected[form_field.name] = value

            if form_field.name in errors:
                st.error(f"{form_field.title}: {errors[form_field.name]}")

        return collected

    @staticmethod
    def render_field(
        form_field: FieldModel,
        current_value: Any,
        form_key: str,
        available_refs: List[str],
        data_source: ObjectDataSource,
        on_create_new: Optional[Callable[[FieldModel], Any]] = None,
        store_references: bool = False
    ) -> Any:
        """Render one field according to its kind."""
        try:
            widget_kwargs = {
                'key': f"{form_key}_field_{form_field.name}",
                'label': FormRenderer._label(form_field),
                'help': form_field.description,
            }

            if form_field.kind == FieldKind.REFERENCE:
                return FormRenderer._render_reference_chooser(form_field, current_value, available_refs, widget_kwargs)
            if form_field.kind == FieldKind.OBJECT:
                return FormRenderer._render_object_selector(
                    form_field, current_value, data_source, widget_kwargs, on_create_new, store_references
                )
            if form_field.enum:
                return FormRenderer._render_selectbox(form_field, current_value, widget_kwargs)
            if form_field.kind in (FieldKind.NUMBER, FieldKind.INTEGER):
                return FormRenderer._render_number_input(form_field, current_value, widget_kwargs)
            if form_field.kind == FieldKind.BOOLEAN:
                return FormRenderer._render_checkbox(current_value, widget_kwargs)
            if form_field.kind == FieldKind.ARRAY:
                return FormRenderer._render_array_editor(current_value, widget_kwargs)
            return FormRenderer._render_text_input(current_value, widget_kwargs)

        except Exception as e:
            st.error(f"Error rendering field {form_field.name}: {str(e)}")
            logger.error(f"Error rendering field {form_field.name}: {e}", exc_info=True)
            return current_value

    @staticmethod
    def _label(form_field: FieldModel) -> str:
        return f"{form_field.title} *" if form_field.required else form_field.title

    @staticmethod
    def _render_text_input(current_value: Any, kwargs: Dict[str, Any]) -> str:
        kwargs['value'] = "" if current_value is None else str(current_value)
        value = st.text_input(**kwargs)
        return value if value is not None else ""

    @staticmethod
    def _render_number_input(form_field: FieldModel, current_value: Any, kwargs: Dict[str, Any]) -> Any:
        """Render number input field; integers step by one."""
        if form_field.kind == FieldKind.INTEGER:
            kwargs['step'] = 1
            kwargs['format'] = "%d"
            kwargs['value'] = int(current_value) if current_value is not None else None
        else:
            kwargs['value'] = float(current_value) if current_value is not None else None

        return st.number_input(**kwargs)

    @staticmethod
    def _render_selectbox(form_field: FieldModel, current_value: Any, kwargs: Dict[str, Any]) -> Any:
        """Render an enum as a closed choice list; optional enums allow no selection."""
        options = list(form_field.enum)
        if not form_field.required:
            options = [None] + options
            kwargs['format_func'] = lambda x: NO_SELECTION_LABEL if x is None else str(x)

        kwargs['options'] = options
        kwargs['index'] = options.index(current_value) if current_value in options else 0
        return st.selectbox(**kwargs)

    @staticmethod
    def _render_checkbox(current_value: Any, kwargs: Dict[str, Any]) -> bool:
        kwargs['value'] = bool(current_value)
        return st.checkbox(**kwargs)

    @staticmethod
    def _render_array_editor(current_value: Any, kwargs: Dict[str, Any]) -> Any:
        """Render an array as editable JSON."""
        kwargs['value'] = json.dumps(current_value if current_value is not None else [], indent=2)
        kwargs['height'] = 120
        json_str = st.text_area(**kwargs)

        try:
            parsed = json.loads(json_str) if json_str and json_str.strip() else []
        except json.JSONDecodeError:
            st.error("Invalid JSON format")
            return current_value

        if not isinstance(parsed, list):
            st.error("Value must be a JSON array")
            return current_value
        return parsed

    @staticmethod
    def _entry_matches(entry: DataSourceEntry, value: Any) -> bool:
        return value == entry.as_reference() or value == entry.data

    @staticmethod
    def _render_object_selector(
        form_field: FieldModel,
        current_value: Any,
        data_source: ObjectDataSource,
        kwargs: Dict[str, Any],
        on_create_new: Optional[Callable[[FieldModel], Any]],
        store_references: bool
    ) -> Any:
        """
        Offer existing data source entries of the field's type plus "create new".

        A value written by a nested save that matches an entry shows as selected.
        """
        type_name = derive_type_name(form_field.schema, form_field.name)
        entries = data_source.entries_for(type_name)
        by_id = {entry.id: entry for entry in entries}

        options: List[Optional[str]] = [None] + [entry.id for entry in entries]
        index = 0
        for position, entry in enumerate(entries, start=1):
            if FormRenderer._entry_matches(entry, current_value):
                index = position
                break

        chosen = st.selectbox(
            options=options,
            index=index,
            format_func=lambda entry_id: NO_SELECTION_LABEL if entry_id is None else by_id[entry_id].label,
            **kwargs
        )

        if not entries:
            st.caption(f"No {type_name} objects yet.")

        if on_create_new is not None and st.button(f"➕ Create new {type_name}", key=f"{kwargs['key']}_create"):
            logger.info(f"Create new requested for '{form_field.name}' ({type_name})")
            on_create_new(form_field)
            st.rerun()

        if chosen is None:
            # A hand-set value that no entry holds is kept
            return None if index else current_value

        entry = by_id[chosen]
        return entry.as_reference() if store_references else entry.data

    @staticmethod
    def _render_reference_chooser(
        form_field: FieldModel,
        current_value: Any,
        available_refs: List[str],
        kwargs: Dict[str, Any]
    ) -> Optional[str]:
        """Warn about the reference and offer the available references."""
        UserFeedback.reference_warning(form_field)

        options: List[Optional[str]] = [None] + list(available_refs)
        kwargs['options'] = options
        kwargs['index'] = options.index(current_value) if current_value in options else 0
        kwargs['format_func'] = lambda x: NO_SELECTION_LABEL if x is None else str(x)
        return st.selectbox(**kwargs)

    @staticmethod
    def render_notices(controller: NestedCreationController) -> None:
        """Show notices from rejected create requests."""
        for notice in controller.consume_notices():
            UserFeedback.creation_notice(notice)

    @staticmethod
    def render_creation_panel(controller: NestedCreationController, available_refs: List[str]) -> bool:
        """
        Render the active nested creation context with its actions.

        Returns:
            True if the stack changed and the page should rerun
        """
        context = controller.active
        if context is None:
            return False

        breadcrumb = " › ".join(c.title for c in controller.stack)
        st.subheader(f"Create {context.title}")
        st.caption(f"Nesting level {context.depth} of {controller.max_depth} · "
                   f"fills '{context.parent_field_path}' · {breadcrumb}")

        FormRenderer.render_notices(controller)

        values = FormRenderer.render_fields(
            context.fields,
            context.values,
            context.errors,
            form_key=f"nested_{context.depth}_{context.title}",
            available_refs=available_refs,
            data_source=controller.data_source,
            on_create_new=controller.request_create,
            store_references=controller.store_references
        )
        for name, value in values.items():
            if context.values.get(name) != value:
                context.set_value(name, value)

        col_save, col_cancel, col_close = st.columns(3)

        with col_save:
            if st.button("💾 Save & Use", key=f"nested_save_{context.depth}", type="primary"):
                outcome = controller.save(values)
                if outcome.saved:
                    UserFeedback.object_saved(context.title, outcome.entry.label)
                    return True
                UserFeedback.show_validation_results(outcome.errors)

        with col_cancel:
            if st.button("Cancel", key=f"nested_cancel_{context.depth}"):
                controller.cancel()
                return True

        with col_close:
            if st.button("Close all", key=f"nested_close_{context.depth}"):
                controller.close_all()
                return True

        return False

    @staticmethod
    def render_data_source(data_source: ObjectDataSource) -> None:
        """List created objects grouped by type."""
        st.subheader("Available Object Data")

        if not data_source.has_entries():
            st.info("No objects created yet.")
            return

        for type_name in data_source:
            entries = data_source.entries_for(type_name)
            with st.expander(f"{type_name} ({len(entries)})"):
                for entry in entries:
                    st.write(f"**{entry.label}** · `{entry.id}`")
                    st.json(entry.data)
