"""
UI feedback for the schema form engine.

Notices shown around generated forms: rejected nested creations, reference
fields the engine could not expand, saved objects and field errors.
"""

import streamlit as st
from typing import Dict
from contextlib import contextmanager
import logging

from .engine_exceptions import DepthLimitExceeded
from .schema_models import FieldModel

logger = logging.getLogger(__name__)


class LoadingIndicator:
    """Loading indicator utilities."""

    @staticmethod
    @contextmanager
    def spinner(message: str = "Loading..."):
        """Context manager for spinner loading indicator."""
        with st.spinner(message):
            yield


class UserFeedback:
    """User feedback and notification utilities."""

    @staticmethod
    def success(message: str, celebration: bool = False):
        """Show success message with optional celebration."""
        st.success(f"✅ {message}")

        if celebration:
            st.balloons()

    @staticmethod
    def warning(message: str, icon: str = "⚠️"):
        st.warning(f"{icon} {message}")

    @staticmethod
    def error(message: str, icon: str = "❌"):
        st.error(f"{icon} {message}")

    @staticmethod
    def creation_notice(notice) -> None:
        """
        Show why a "create new" request was refused.

        Depth-limit notices get their own icon and the suggestion to create
        the object from a shallower form.
        """
        if isinstance(notice.error, DepthLimitExceeded):
            st.warning(f"🪜 {notice.message}")
            st.caption("Create this object from the main form, then pick it here.")
        else:
            UserFeedback.warning(notice.message)

    @staticmethod
    def reference_warning(form_field: FieldModel) -> None:
        """Explain a reference field: a cycle back to an ancestor, or an internal ref."""
        if form_field.is_circular:
            st.warning(f"🔁 '{form_field.title}' is a circular reference ({form_field.circular_ref_path}). "
                       f"Pick an existing object to use here.")
        else:
            target = form_field.circular_ref_path or form_field.schema.get('$ref', form_field.name)
            st.warning(f"🔗 '{form_field.title}' is an internal reference ({target}). "
                       f"Pick an existing object to use here.")

    @staticmethod
    def object_saved(type_name: str, label: str) -> None:
        UserFeedback.success(f"{type_name} saved as {label}")

    @staticmethod
    def show_validation_results(errors: Dict[str, str]) -> None:
        """Summarise field errors of a rejected save or submit."""
        if not errors:
            return

        st.error("❌ **Please fix the following errors:**")
        for field_name, message in errors.items():
            st.error(f"  • {field_name}: {message}")


def show_loading(message: str = "Loading..."):
    """Show loading spinner."""
    return LoadingIndicator.spinner(message)


def show_success(message: str, celebration: bool = False):
    UserFeedback.success(message, celebration=celebration)


def show_error(message: str):
    UserFeedback.error(message)
