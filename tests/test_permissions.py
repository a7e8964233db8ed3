"""Tests for the read/write permissions matrix."""

import pytest

from reflex_admin_grid.models import Module
from reflex_admin_grid.permissions import Permission, PermissionsMatrix

MODULES = (Module("users", "Users"), Module("roles", "Roles"), Module("meters", "Meters"))


class TestWriteValue:
    def test_rows_follow_module_order(self):
        matrix = PermissionsMatrix(MODULES, [{"moduleId": "meters", "name": "Meters", "read": True}])
        assert [row.module_id for row in matrix.rows] == ["users", "roles", "meters"]
        assert matrix.get("meters", "read") is True
        assert matrix.get("users", "read") is False

    def test_unknown_modules_in_value_are_dropped(self):
        matrix = PermissionsMatrix(MODULES, [{"moduleId": "billing", "read": True}])
        assert matrix.value == []

    def test_missing_name_is_filled_from_module(self):
        matrix = PermissionsMatrix(MODULES, [{"module_id": "roles", "write": True}])
        assert matrix.value == [{"moduleId": "roles", "name": "Roles", "read": False, "write": True}]

    def test_accepts_permission_objects(self):
        matrix = PermissionsMatrix(MODULES, [Permission("users", "Users", read=True)])
        assert matrix.get("users", "read") is True


class TestToggle:
    def test_modules_without_flags_are_omitted(self):
        """Only modules with at least one flag appear in the value."""
        matrix = PermissionsMatrix(MODULES)
        matrix.toggle("users", "read")
        matrix.toggle("roles", "write", True)
        matrix.toggle("roles", "write", False)
        assert matrix.value == [{"moduleId": "users", "name": "Users", "read": True, "write": False}]

    def test_toggle_flips_without_explicit_state(self):
        matrix = PermissionsMatrix(MODULES)
        matrix.toggle("users", "write")
        matrix.toggle("users", "write")
        assert matrix.get("users", "write") is False

    def test_disabled_matrix_is_read_only(self):
        matrix = PermissionsMatrix(MODULES, disabled=True)
        assert matrix.toggle("users", "read") is False
        assert matrix.value == []

    def test_unknown_module(self):
        matrix = PermissionsMatrix(MODULES)
        assert matrix.toggle("billing", "read") is False

    def test_invalid_kind(self):
        matrix = PermissionsMatrix(MODULES)
        with pytest.raises(ValueError):
            matrix.toggle("users", "delete")
