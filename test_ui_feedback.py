"""
Unit tests for ui_feedback module.
"""

from unittest.mock import patch, MagicMock, call

from schemaform.engine_exceptions import DepthLimitExceeded
from schemaform.nested_creation import CreationNotice
from schemaform.schema_models import FieldKind, FieldModel, ReferenceReason
from schemaform.ui_feedback import (
    LoadingIndicator,
    UserFeedback,
    show_error,
    show_loading,
    show_success,
)


def reference_field(name, path, reason):
    return FieldModel(name=name, kind=FieldKind.REFERENCE, required=False, depth=0,
                      schema={"title": name}, circular_ref_path=path, reference_reason=reason)


class TestLoadingIndicator:
    """Test cases for loading indicators."""

    @patch('streamlit.spinner')
    def test_spinner(self, mock_spinner):
        mock_spinner.return_value.__enter__ = MagicMock()
        mock_spinner.return_value.__exit__ = MagicMock(return_value=False)

        with LoadingIndicator.spinner("Flattening..."):
            pass

        mock_spinner.assert_called_once_with("Flattening...")

    @patch('streamlit.spinner')
    def test_show_loading(self, mock_spinner):
        mock_spinner.return_value.__enter__ = MagicMock()
        mock_spinner.return_value.__exit__ = MagicMock(return_value=False)

        with show_loading():
            pass

        mock_spinner.assert_called_once_with("Loading...")


class TestUserFeedback:
    """Test cases for user feedback messages."""

    @patch('streamlit.success')
    @patch('streamlit.balloons')
    def test_success_with_celebration(self, mock_balloons, mock_success):
        UserFeedback.success("Submitted", celebration=True)

        mock_success.assert_called_once_with("✅ Submitted")
        mock_balloons.assert_called_once()

    @patch('streamlit.success')
    @patch('streamlit.balloons')
    def test_success_without_celebration(self, mock_balloons, mock_success):
        show_success("Generated")

        mock_success.assert_called_once_with("✅ Generated")
        mock_balloons.assert_not_called()

    @patch('streamlit.error')
    def test_error(self, mock_error):
        show_error("Could not load person.json")

        mock_error.assert_called_once_with("❌ Could not load person.json")

    @patch('streamlit.success')
    def test_object_saved(self, mock_success):
        UserFeedback.object_saved("Person", "Ada (Custom)")

        mock_success.assert_called_once_with("✅ Person saved as Ada (Custom)")


class TestCreationNotice:
    """Test cases for refused nested creation notices."""

    @patch('streamlit.caption')
    @patch('streamlit.warning')
    def test_depth_limit(self, mock_warning, mock_caption):
        error = DepthLimitExceeded("level3", 2)
        UserFeedback.creation_notice(CreationNotice(field_name="level3", message=error.message, error=error))

        message = mock_warning.call_args[0][0]
        assert message.startswith("🪜 ")
        assert "Maximum nesting depth reached (2 levels)" in message
        mock_caption.assert_called_once()

    @patch('streamlit.caption')
    @patch('streamlit.warning')
    def test_other_notice(self, mock_warning, mock_caption):
        UserFeedback.creation_notice(CreationNotice(field_name="title", message="Not an object"))

        mock_warning.assert_called_once_with("⚠️ Not an object")
        mock_caption.assert_not_called()


class TestReferenceWarning:
    """Test cases for reference field warnings."""

    @patch('streamlit.warning')
    def test_circular(self, mock_warning):
        UserFeedback.reference_warning(reference_field("again", "again", ReferenceReason.CYCLE))

        message = mock_warning.call_args[0][0]
        assert "circular reference (again)" in message

    @patch('streamlit.warning')
    def test_internal(self, mock_warning):
        form_field = reference_field("Missing", "#/definitions/Missing", ReferenceReason.MISSING_DEFINITION)

        UserFeedback.reference_warning(form_field)

        message = mock_warning.call_args[0][0]
        assert "internal reference (#/definitions/Missing)" in message


class TestValidationResults:
    """Test cases for the field error summary."""

    @patch('streamlit.error')
    def test_errors_listed(self, mock_error):
        UserFeedback.show_validation_results({"name": "This field is required"})

        mock_error.assert_has_calls([
            call("❌ **Please fix the following errors:**"),
            call("  • name: This field is required"),
        ])

    @patch('streamlit.error')
    def test_no_errors(self, mock_error):
        UserFeedback.show_validation_results({})

        mock_error.assert_not_called()
