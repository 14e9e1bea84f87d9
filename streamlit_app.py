"""
Main Streamlit application for the JSON Schema form generator.
Turns a pasted JSON Schema into an editable form with nested object creation.
"""

import json
import streamlit as st
from pathlib import Path
import logging

from schemaform.config_loader import (
    load_config,
    get_config_value,
    get_engine_settings,
    configure_logging,
    validate_config
)
from schemaform.error_handler import ErrorHandler, ErrorType
from schemaform.form_renderer import FormRenderer
from schemaform.schema_loader import list_available_schemas, load_schema, get_schema_info
from schemaform.session_manager import SessionManager
from schemaform.ui_feedback import UserFeedback, show_loading, show_success, show_error

config = load_config()
configure_logging(config)
logger = logging.getLogger(__name__)

if not validate_config(config):
    logger.warning("Configuration failed validation; engine settings fall back where needed")

st.set_page_config(
    page_title=get_config_value(config, 'ui', 'page_title', 'JSON Schema Form Generator'),
    page_icon="🧩",
    layout="wide",
    initial_sidebar_state="expanded"
)

SCHEMAS_DIR = Path(get_config_value(config, 'app', 'schemas_dir', 'schemas'))
ROOT_FORM_KEY = "root"


def main():
    """Main application entry point."""
    try:
        SessionManager.initialize(get_engine_settings(config))
        logger.info(f"Starting app version: {get_config_value(config, 'app', 'version', 'Unknown')}")

        render_sidebar()
        render_schema_input()
        render_form_area()

    except Exception as e:
        ErrorHandler.handle_error(e, "application", ErrorType.SYSTEM)


def render_sidebar():
    """Render settings, schema files and session controls."""
    with st.sidebar:
        st.header(get_config_value(config, 'ui', 'sidebar_title', 'Settings'))

        settings = SessionManager.get_settings()
        st.caption(f"Max nesting depth: {settings.max_depth}")
        st.caption(f"Accelerated ranking: {'on' if settings.accelerated_ranking else 'off'}")

        schema_files = list_available_schemas(SCHEMAS_DIR)
        if schema_files:
            selected = st.selectbox("Schema files", options=schema_files, key="schema_file")
            if st.button("Load schema file"):
                schema = load_schema(SCHEMAS_DIR / selected)
                if schema is None:
                    show_error(f"Could not load {selected}")
                else:
                    st.session_state['schema_input'] = json.dumps(schema, indent=2)
                    st.rerun()

        if st.button("🔄 Reset session"):
            SessionManager.reset_session()
            st.rerun()

        with st.expander("Session info"):
            st.json(SessionManager.get_session_info())


def render_schema_input():
    """Render the schema text area and the generate action."""
    st.title("🧩 JSON Schema Form Generator")

    if 'schema_input' not in st.session_state:
        st.session_state['schema_input'] = st.session_state.get('schema_text', '')

    schema_text = st.text_area("JSON Schema", height=260, key="schema_input")

    if st.button("Generate Form", type="primary"):
        with show_loading("Generating form..."):
            generated = SessionManager.generate_form(schema_text)
        if generated:
            info = get_schema_info(st.session_state['root_schema'])
            show_success(f"Generated form for {info['title']} ({len(SessionManager.get_fields())} fields)")

    schema_error = SessionManager.get_form_errors().get('schema')
    if schema_error:
        show_error(schema_error)


def render_form_area():
    """Render the nested creation panel or the root form, then the data source."""
    controller = SessionManager.get_controller()
    if controller is None:
        return

    refs = SessionManager.get_available_refs()

    if controller.is_open:
        if FormRenderer.render_creation_panel(controller, refs):
            st.rerun()
    else:
        render_root_form(controller, refs)

    st.divider()
    FormRenderer.render_data_source(SessionManager.get_data_source())


def render_root_form(controller, refs):
    """Render the generated root form with its submit action."""
    schema = st.session_state.get('root_schema') or {}
    st.subheader(schema.get('title', 'Generated Form'))

    FormRenderer.render_notices(controller)

    values = FormRenderer.render_fields(
        SessionManager.get_fields(),
        SessionManager.get_form_values(),
        SessionManager.get_form_errors(),
        form_key=ROOT_FORM_KEY,
        available_refs=refs,
        data_source=SessionManager.get_data_source(),
        on_create_new=controller.request_create,
        store_references=controller.store_references
    )
    for name, value in values.items():
        if SessionManager.get_form_values().get(name) != value:
            SessionManager.set_field_value(name, value)

    if st.button("Submit", type="primary", key="root_submit"):
        submitted = SessionManager.submit()
        if submitted is None:
            UserFeedback.show_validation_results(SessionManager.get_form_errors())
        else:
            show_success("Form submitted", celebration=True)

    submitted_data = st.session_state.get('submitted_data')
    if submitted_data is not None:
        with st.expander("Submitted data", expanded=True):
            st.json(submitted_data)


if __name__ == "__main__":
    main()
