"""
Custom exception classes for the schema form engine.

This module provides specialized exception classes for schema parsing,
configuration and nested-creation failures with centralized error details.
"""

import logging
from typing import Optional, Dict, Any, List
from pathlib import Path

logger = logging.getLogger(__name__)


class SchemaFormError(Exception):
    """
    Base exception for schema form engine errors.

    Attributes:
        message: Error message
        context: Additional context information
        recovery_suggestions: List of suggested recovery actions
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 recovery_suggestions: Optional[List[str]] = None):
        self.message = message
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def get_full_details(self) -> Dict[str, Any]:
        """Get complete error details including context and suggestions."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'context': self.context,
            'recovery_suggestions': self.recovery_suggestions
        }


class SchemaParseError(SchemaFormError):
    """
    Raised when schema source text cannot be parsed into a schema document.

    The error is keyed to the form's ``schema`` input so the UI can show it
    next to the text area. Flattening never starts when this is raised.
    """

    field_key = 'schema'

    def __init__(self, parser_message: str, original_error: Optional[Exception] = None,
                 prefix: str = "Invalid JSON"):
        self.parser_message = parser_message
        self.original_error = original_error

        context = {'field': self.field_key, 'parser_message': parser_message}
        if original_error is not None:
            context['original_error_type'] = type(original_error).__name__

        recovery_suggestions = [
            "Check the schema text for missing commas, quotes or brackets",
            "Make sure the document root is a JSON object",
            "Paste the schema into a JSON validator to locate the problem"
        ]

        super().__init__(f"{prefix}: {parser_message}", context, recovery_suggestions)

    def as_form_errors(self) -> Dict[str, str]:
        """Return the error keyed to the schema input field."""
        return {self.field_key: self.message}


class ConfigurationLoadError(SchemaFormError):
    """
    Exception raised when configuration file loading fails.

    This includes YAML parsing errors, file not found, permission issues, etc.
    """

    def __init__(self, config_path: Path, original_error: Exception,
                 message: Optional[str] = None):
        self.config_path = config_path
        self.original_error = original_error

        if message is None:
            message = f"Failed to load configuration from {config_path}: {str(original_error)}"

        context = {
            'config_path': str(config_path),
            'original_error_type': type(original_error).__name__,
            'original_error_message': str(original_error)
        }

        recovery_suggestions = [
            "Check if config.yaml exists and is readable",
            "Verify YAML syntax is correct",
            "Application will use default configuration as fallback"
        ]

        super().__init__(message, context, recovery_suggestions)


class DepthLimitExceeded(SchemaFormError):
    """
    Describes a rejected create-new request beyond the configured nesting depth.

    The controller records it as a user-visible notice; it is never raised
    out of a state transition.
    """

    def __init__(self, field_name: str, max_depth: int):
        self.field_name = field_name
        self.max_depth = max_depth

        message = (f"Maximum nesting depth reached ({max_depth} levels). "
                   f"Please create this object separately.")

        super().__init__(
            message,
            {'field_name': field_name, 'max_depth': max_depth},
            ["Save or cancel the open nested forms first",
             "Increase engine.max_depth in config.yaml"]
        )


class BulkRankingError(SchemaFormError):
    """Raised by an accelerated ranking backend whose result cannot be used."""

    def __init__(self, backend: str, reason: str):
        self.backend = backend
        self.reason = reason
        super().__init__(f"Bulk ranking with '{backend}' failed: {reason}",
                         {'backend': backend, 'reason': reason})
