"""
Error handling utilities for the schema form engine.
Maps engine errors to user-friendly messages and displays them in Streamlit.
"""

import streamlit as st
import logging
import traceback
from typing import Dict, Any, Optional
import json

from .engine_exceptions import (
    BulkRankingError,
    ConfigurationLoadError,
    DepthLimitExceeded,
    SchemaFormError,
    SchemaParseError,
)

logger = logging.getLogger(__name__)


class ErrorType:
    """Error type constants."""
    SCHEMA = "schema"
    REFERENCE = "reference"
    DEPTH_LIMIT = "depth_limit"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


ERROR_MESSAGES: Dict[str, Dict[Any, str]] = {
    ErrorType.SCHEMA: {
        SchemaParseError: "📋 The schema could not be parsed. Please check the JSON text.",
        json.JSONDecodeError: "📋 The schema contains invalid JSON.",
        "default": "📋 Schema error occurred. Please check your schema."
    },
    ErrorType.REFERENCE: {
        "default": "🔗 A reference in the schema could not be resolved. Pick an existing object instead."
    },
    ErrorType.DEPTH_LIMIT: {
        DepthLimitExceeded: "🪜 Maximum nesting depth reached. Please create this object separately.",
        "default": "🪜 Nested creation is not possible at this depth."
    },
    ErrorType.VALIDATION: {
        ValueError: "✅ Form validation failed. Please check your input and try again.",
        "default": "✅ Validation error occurred. Please review your data and try again."
    },
    ErrorType.CONFIGURATION: {
        ConfigurationLoadError: "⚙️ Configuration could not be loaded. Defaults are in use.",
        "default": "⚙️ Configuration error occurred. Defaults are in use."
    },
    ErrorType.SYSTEM: {
        BulkRankingError: "💻 Field ordering fell back to the standard ranking.",
        MemoryError: "💻 System is running low on memory. Please try again.",
        "default": "💻 System error occurred. Please try again."
    }
}


class ErrorHandler:
    """Error handling for the schema form engine UI."""

    @staticmethod
    def handle_error(
        error: Exception,
        context: str,
        error_type: str = ErrorType.SYSTEM,
        user_message: Optional[str] = None,
        show_details: bool = False
    ) -> None:
        """
        Handle errors with user-friendly messages.

        Args:
            error: The exception that occurred
            context: Context where the error occurred
            error_type: Type of error (from ErrorType constants)
            user_message: Custom user-friendly message
            show_details: Whether to show technical details
        """
        logger.error(f"Error in {context}: {str(error)}", exc_info=True)

        if not user_message:
            user_message = ErrorHandler.get_user_friendly_message(error, error_type)

        ErrorHandler._display_error(user_message, error, context, show_details)

    @staticmethod
    def get_user_friendly_message(error: Exception, error_type: str) -> str:
        """Generate user-friendly error messages based on error type."""
        messages = ERROR_MESSAGES.get(error_type, ERROR_MESSAGES[ErrorType.SYSTEM])

        for exception_type, message in messages.items():
            if exception_type != "default" and isinstance(error, exception_type):
                return message

        return messages.get("default", "An unexpected error occurred.")

    @staticmethod
    def _display_error(
        user_message: str,
        error: Exception,
        context: str,
        show_details: bool = False
    ) -> None:
        """Display error message to user."""
        st.error(user_message)

        if isinstance(error, SchemaFormError) and error.recovery_suggestions:
            st.info("💡 **Suggested Actions:**")
            for suggestion in error.recovery_suggestions:
                st.info(f"• {suggestion}")

        if show_details:
            with st.expander("🔍 Technical Details"):
                st.write(f"**Error Type:** {type(error).__name__}")
                st.write(f"**Context:** {context}")
                st.write(f"**Error Message:** {str(error)}")
                st.code(''.join(traceback.format_exception(type(error), error, error.__traceback__)))


def errors_for_form(error: Exception) -> Dict[str, str]:
    """
    Convert an error into form errors keyed by field name.

    Schema parse errors are keyed to the `schema` input; anything else is
    reported under `form`.
    """
    if isinstance(error, SchemaParseError):
        return error.as_form_errors()
    return {'form': str(error)}

