"""Tests for error types and extract_error_message."""

import pytest

from reflex_admin_grid.errors import (
    AdminGridError,
    ErrorMessage,
    FieldConfigError,
    NotFoundError,
    ResourceError,
    extract_error_message,
)

FALLBACK = "An unexpected error occurred"


class TestExtractErrorMessage:
    @pytest.mark.parametrize("empty", [None, ""])
    def test_empty_input_falls_back(self, empty):
        assert extract_error_message(empty) == ErrorMessage(title=FALLBACK)

    def test_plain_string_is_title(self):
        assert extract_error_message("Network down: retry") == ErrorMessage(title="Network down: retry")

    def test_structured_body_error_wins(self):
        """The body's ``error`` string beats the exception message."""
        exc = ResourceError(
            "HTTP 409",
            status=409,
            body={"success": False, "error": "Conflict: name already taken"},
        )
        assert extract_error_message(exc) == ErrorMessage(title="Conflict", message="name already taken")

    def test_body_message_when_no_error_key(self):
        exc = ResourceError("HTTP 400", body={"message": "Bad Request: limit too large"})
        assert extract_error_message(exc) == ErrorMessage(title="Bad Request", message="limit too large")

    def test_string_body(self):
        exc = ResourceError(body="Gateway Timeout")
        assert extract_error_message(exc) == ErrorMessage(title="Gateway Timeout")

    def test_exception_message_splits_on_first_colon(self):
        exc = ResourceError("Unauthorized: token expired: please log in")
        assert extract_error_message(exc) == ErrorMessage(
            title="Unauthorized", message="token expired: please log in"
        )

    def test_dict_payloads(self):
        assert extract_error_message({"error": "Forbidden: admins only"}) == ErrorMessage(
            title="Forbidden", message="admins only"
        )
        assert extract_error_message({"message": "Something broke"}) == ErrorMessage(title="Something broke")

    def test_generic_exception(self):
        assert extract_error_message(RuntimeError("Timeout: 30s")) == ErrorMessage(title="Timeout", message="30s")

    def test_nothing_usable(self):
        assert extract_error_message(ResourceError()) == ErrorMessage(title=FALLBACK)
        assert extract_error_message(42) == ErrorMessage(title=FALLBACK)


class TestHierarchy:
    def test_not_found_is_resource_error(self):
        exc = NotFoundError("Not Found: x", status=404)
        assert isinstance(exc, ResourceError)
        assert isinstance(exc, AdminGridError)
        assert exc.status == 404

    def test_field_config_error_is_value_error(self):
        assert issubclass(FieldConfigError, ValueError)
        assert issubclass(FieldConfigError, AdminGridError)
