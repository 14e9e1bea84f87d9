"""
Session state management for the schema form Streamlit app.
Holds the generated form, its values, the shared data source and the nested
creation controller across reruns.
"""

import copy
import streamlit as st
from typing import Dict, Any, List, Optional
from datetime import datetime
import logging

from .config_loader import EngineSettings
from .data_source import ObjectDataSource
from .engine_exceptions import SchemaParseError
from .error_handler import errors_for_form
from .model_builder import validate_form_values
from .nested_creation import NestedCreationController
from .priority_ranker import NumpyPriorityRanker
from .reference_resolver import SPECIAL_REFERENCES, available_references
from .schema_flattener import SchemaFlattener
from .schema_loader import parse_schema_text
from .schema_models import FieldModel

logger = logging.getLogger(__name__)


class SessionManager:
    """Manages Streamlit session state for the schema form app."""

    @staticmethod
    def initialize(settings: Optional[EngineSettings] = None):
        """Initialize all session state variables with default values."""
        defaults = {
            'schema_text': '',
            'root_schema': None,
            'form_fields': [],
            'nested_objects': {},
            'internal_refs': {},
            'available_refs': list(SPECIAL_REFERENCES),
            'form_values': {},
            'form_errors': {},
            'submitted_data': None,
            'data_source': ObjectDataSource(),
            'creation_controller': None,
            'engine_settings': settings or EngineSettings(),
            'last_activity': datetime.now(),
            'session_id': None,
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

        if not st.session_state['session_id']:
            st.session_state['session_id'] = f"session_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

        logger.info(f"Session initialized: {st.session_state['session_id']}")

    @staticmethod
    def get_settings() -> EngineSettings:
        return st.session_state.get('engine_settings') or EngineSettings()

    @staticmethod
    def generate_form(schema_text: str) -> bool:
        """
        Parse schema text and build the root form.

        On a parse error the error is stored under the `schema` key and the
        previous form is cleared; flattening does not start.

        Returns:
            True if a form was generated
        """
        st.session_state['schema_text'] = schema_text
        st.session_state['form_errors'] = {}

        try:
            schema = parse_schema_text(schema_text)
        except SchemaParseError as e:
            logger.warning(f"Schema rejected: {e}")
            SessionManager._clear_form_state()
            st.session_state['form_errors'] = errors_for_form(e)
            return False

        settings = SessionManager.get_settings()
        flattener = SchemaFlattener(
            bulk_ranker=NumpyPriorityRanker() if settings.accelerated_ranking else None
        )
        result = flattener.flatten(schema)

        form_values: Dict[str, Any] = {}
        form_errors: Dict[str, str] = {}

        st.session_state['root_schema'] = schema
        st.session_state['form_fields'] = result.fields
        st.session_state['nested_objects'] = result.nested_objects
        st.session_state['internal_refs'] = result.refs
        st.session_state['available_refs'] = available_references(schema, result.refs.keys())
        st.session_state['form_values'] = form_values
        st.session_state['form_errors'] = form_errors
        st.session_state['submitted_data'] = None
        st.session_state['creation_controller'] = NestedCreationController(
            schema,
            data_source=SessionManager.get_data_source(),
            max_depth=settings.max_depth,
            flattener=flattener,
            store_references=settings.store_references,
            root_values=form_values,
            root_errors=form_errors,
            on_update_data_source=SessionManager.set_data_source,
        )

        SessionManager.update_activity()
        logger.info(f"Generated form '{schema.get('title', 'untitled')}' with {len(result.fields)} fields")
        return True

    @staticmethod
    def get_fields() -> List[FieldModel]:
        return st.session_state.get('form_fields', [])

    @staticmethod
    def get_form_values() -> Dict[str, Any]:
        return st.session_state.get('form_values', {})

    @staticmethod
    def get_form_errors() -> Dict[str, str]:
        return st.session_state.get('form_errors', {})

    @staticmethod
    def get_available_refs() -> List[str]:
        return st.session_state.get('available_refs', list(SPECIAL_REFERENCES))

    @staticmethod
    def set_field_value(field_name: str, value: Any):
        """Set a root form value and clear its error."""
        st.session_state['form_values'][field_name] = value
        st.session_state['form_errors'].pop(field_name, None)
        SessionManager.update_activity()

    @staticmethod
    def get_data_source() -> ObjectDataSource:
        if st.session_state.get('data_source') is None:
            st.session_state['data_source'] = ObjectDataSource()
        return st.session_state['data_source']

    @staticmethod
    def set_data_source(data_source: ObjectDataSource):
        st.session_state['data_source'] = data_source
        logger.debug(f"Data source updated: {len(data_source)} entries")

    @staticmethod
    def get_controller() -> Optional[NestedCreationController]:
        return st.session_state.get('creation_controller')

    @staticmethod
    def validate_form() -> bool:
        """Validate the root form and store field errors."""
        errors = validate_form_values(SessionManager.get_fields(), SessionManager.get_form_values())
        st.session_state['form_errors'].clear()
        st.session_state['form_errors'].update(errors)
        return not errors

    @staticmethod
    def submit() -> Optional[Dict[str, Any]]:
        """
        Validate and submit the root form.

        Returns:
            Copy of the submitted values, or None when validation failed
        """
        if not SessionManager.validate_form():
            logger.info("Form submission blocked by validation errors")
            return None

        submitted = copy.deepcopy(SessionManager.get_form_values())
        st.session_state['submitted_data'] = submitted
        logger.info(f"Form submitted with fields: {sorted(submitted.keys())}")
        return submitted

    @staticmethod
    def update_activity():
        """Update last activity timestamp."""
        st.session_state['last_activity'] = datetime.now()

    @staticmethod
    def get_session_id() -> str:
        return st.session_state.get('session_id', 'unknown')

    @staticmethod
    def reset_session():
        """Reset the entire session state, keeping engine settings."""
        logger.info(f"Resetting session: {SessionManager.get_session_id()}")

        settings = SessionManager.get_settings()

        for key in list(st.session_state.keys()):
            del st.session_state[key]

        SessionManager.initialize(settings)

    @staticmethod
    def _clear_form_state():
        """Clear the generated form; the data source is kept."""
        st.session_state['root_schema'] = None
        st.session_state['form_fields'] = []
        st.session_state['nested_objects'] = {}
        st.session_state['internal_refs'] = {}
        st.session_state['available_refs'] = list(SPECIAL_REFERENCES)
        st.session_state['form_values'] = {}
        st.session_state['submitted_data'] = None
        st.session_state['creation_controller'] = None

    @staticmethod
    def get_session_info() -> Dict[str, Any]:
        """Get session information for debugging."""
        controller = SessionManager.get_controller()
        return {
            'session_id': SessionManager.get_session_id(),
            'field_count': len(SessionManager.get_fields()),
            'form_value_keys': list(SessionManager.get_form_values().keys()),
            'error_count': len(SessionManager.get_form_errors()),
            'data_source_entries': len(SessionManager.get_data_source()),
            'nested_depth': controller.depth if controller else 0,
            'schema_loaded': st.session_state.get('root_schema') is not None,
        }
