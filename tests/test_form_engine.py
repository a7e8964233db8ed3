"""Tests for DynamicFormEngine: building, visibility, validation, submission."""

import asyncio

import pytest

from reflex_admin_grid import validators
from reflex_admin_grid.errors import FieldConfigError, ResourceError
from reflex_admin_grid.form_engine import DynamicFormEngine, check_field_configs
from reflex_admin_grid.models import (
    Conditional,
    FieldConfig,
    FieldType,
    FormMode,
    Module,
    PaginatedSelectConfig,
    PermissionsConfig,
    SelectOption,
)

PROFILES = (SelectOption("admin", "Administrator"), SelectOption("viewer", "Viewer"))
MODULES = (Module("users", "Users"), Module("roles", "Roles"))


def _user_fields(option_source) -> list[FieldConfig]:
    return [
        FieldConfig("name", "Name", required=True, validators=(validators.min_length(2),)),
        FieldConfig(
            "entityId",
            "Entity",
            type=FieldType.PAGINATED_SELECT,
            required=True,
            paginated_select=PaginatedSelectConfig(load_options=option_source, items_per_page=2),
        ),
        FieldConfig(
            "profileId",
            "Profile",
            type=FieldType.SELECT,
            required=True,
            options=PROFILES,
            conditional=Conditional(depends_on="entityId", condition=bool),
        ),
    ]


def _build(fields, initial_data=None, mode=FormMode.CREATE) -> DynamicFormEngine:
    return DynamicFormEngine().build(fields, initial_data, mode)


class TestBuild:
    def test_fields_sorted_stably_by_order(self):
        """Equal ``order`` keeps declaration order."""
        engine = _build([
            FieldConfig("c", "C", order=2),
            FieldConfig("a", "A"),
            FieldConfig("b", "B"),
            FieldConfig("d", "D", order=-1),
        ])
        assert [f.key for f in engine.fields] == ["d", "a", "b", "c"]

    def test_create_mode_uses_defaults(self):
        engine = _build(
            [FieldConfig("status", "Status", default_value="pending"), FieldConfig("note", "Note")],
            initial_data={"status": "active", "note": "ignored"},
        )
        assert engine.value("status") == "pending"
        assert engine.value("note") is None

    def test_update_mode_seeds_from_initial_data(self):
        engine = _build(
            [FieldConfig("status", "Status", default_value="pending"), FieldConfig("note", "Note")],
            initial_data={"status": "active"},
            mode=FormMode.UPDATE,
        )
        assert engine.value("status") == "active"
        assert engine.value("note") is None

    def test_empty_values_per_type(self):
        engine = _build([
            FieldConfig("agree", "Agree", type=FieldType.CHECKBOX),
            FieldConfig("perms", "Perms", type=FieldType.PERMISSIONS, permissions=PermissionsConfig(MODULES)),
        ])
        assert engine.value("agree") is False
        assert engine.value("perms") == []

    def test_rebuild_closes_previous_selects(self, option_source):
        engine = _build(_user_fields(option_source))
        old_select = engine.selects["entityId"]
        engine.build(_user_fields(option_source))
        assert old_select.closed
        assert not engine.selects["entityId"].closed


class TestConfigErrors:
    def test_duplicate_keys(self):
        with pytest.raises(FieldConfigError, match="Duplicate"):
            check_field_configs([FieldConfig("a", "A"), FieldConfig("a", "A again")])

    @pytest.mark.parametrize("cols", [0, 13])
    def test_grid_cols_out_of_range(self, cols):
        with pytest.raises(FieldConfigError, match="grid_cols"):
            check_field_configs([FieldConfig("a", "A", grid_cols=cols)])

    def test_unknown_dependency(self):
        field = FieldConfig("a", "A", conditional=Conditional(depends_on="missing", condition=bool))
        with pytest.raises(FieldConfigError, match="unknown field"):
            check_field_configs([field])

    def test_select_without_options(self):
        with pytest.raises(FieldConfigError, match="options"):
            _build([FieldConfig("a", "A", type=FieldType.SELECT)])

    def test_paginated_select_without_loader(self):
        with pytest.raises(FieldConfigError, match="paginated_select"):
            _build([FieldConfig("a", "A", type=FieldType.PAGINATED_SELECT)])

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            check_field_configs([FieldConfig("a", "A", grid_cols=0)])


class TestVisibility:
    def test_profile_hidden_until_entity_chosen(self, option_source):
        engine = _build(_user_fields(option_source))
        assert [f.key for f in engine.get_visible_fields()] == ["name", "entityId"]

        engine.set_value("entityId", "V1")
        assert [f.key for f in engine.get_visible_fields()] == ["name", "entityId", "profileId"]

    def test_hidden_required_field_does_not_block(self, option_source):
        """A required field behind a false condition never fails validation."""
        engine = _build(_user_fields(option_source))
        engine.set_value("name", "Alice")
        assert engine.validate() is False
        assert engine.errors == {"entityId": "Entity is required"}

        engine.set_value("entityId", "V1")
        assert engine.validate() is False
        assert engine.errors == {"profileId": "Profile is required"}

        engine.set_value("profileId", "admin")
        assert engine.validate() is True

    def test_hiding_a_field_clears_its_error(self, option_source):
        engine = _build(_user_fields(option_source))
        engine.set_value("entityId", "V1")
        engine.set_value("profileId", "")
        assert engine.errors == {"profileId": "Profile is required"}

        engine.set_value("entityId", None)
        assert "profileId" not in engine.errors

    def test_revealing_a_field_reports_its_error(self, option_source):
        engine = _build(_user_fields(option_source))
        engine.patch_values({"entityId": "V1"})
        assert engine.errors["profileId"] == "Profile is required"

    def test_hidden_values_are_still_submitted(self, option_source):
        engine = _build(_user_fields(option_source))
        engine.set_value("entityId", "V1")
        engine.set_value("profileId", "admin")
        engine.set_value("entityId", None)
        assert engine.raw_values()["profileId"] == "admin"


class TestValidation:
    def test_required_message(self):
        engine = _build([FieldConfig("name", "Name", required=True)])
        assert engine.validate() is False
        assert engine.errors == {"name": "Name is required"}

    def test_validators_run_in_order(self):
        engine = _build([
            FieldConfig("name", "Name", validators=(validators.min_length(3), validators.pattern(r"[a-z]+"))),
        ])
        engine.set_value("name", "A")
        assert engine.errors == {"name": "Minimum length is 3 characters"}
        engine.set_value("name", "ABCD")
        assert engine.errors == {"name": "Invalid value"}
        engine.set_value("name", "abcd")
        assert engine.errors == {}

    def test_error_message_overrides_validator_message(self):
        engine = _build([
            FieldConfig("code", "Code", required=True, validators=(validators.min_length(4),),
                        error_message="Codes have four characters"),
        ])
        assert engine.validate() is False
        assert engine.errors["code"] == "Code is required"
        engine.set_value("code", "ab")
        assert engine.errors["code"] == "Codes have four characters"

    def test_number_type_checks_input(self):
        engine = _build([FieldConfig("age", "Age", type=FieldType.NUMBER)])
        engine.set_value("age", "42")
        assert engine.value("age") == 42
        assert engine.errors == {}
        engine.set_value("age", "forty")
        assert engine.errors == {"age": "Please enter a valid number"}

    def test_disabled_field_never_errors(self):
        engine = _build([FieldConfig("created", "Created", required=True, disabled=True)])
        assert engine.validate() is True

    def test_field_error_requires_touch(self):
        engine = _build([FieldConfig("name", "Name", required=True)])
        engine.validate()
        assert engine.field_error("name") is None
        engine.mark_all_touched()
        assert engine.field_error("name") == "Name is required"


class TestDisabledState:
    def test_external_disable_keeps_static_flags(self):
        """Re-enabling externally never enables a statically disabled field."""
        engine = _build([FieldConfig("name", "Name"), FieldConfig("created", "Created", disabled=True)])
        assert (engine.is_disabled("name"), engine.is_disabled("created")) == (False, True)

        engine.set_disabled_externally(True)
        assert (engine.is_disabled("name"), engine.is_disabled("created")) == (True, True)
        assert engine.loading is True

        engine.set_disabled_externally(False)
        assert (engine.is_disabled("name"), engine.is_disabled("created")) == (False, True)

    def test_close_refused_while_loading(self):
        engine = _build([FieldConfig("name", "Name")])
        closed = []
        engine.subscribe("close", closed.append)
        engine.set_disabled_externally(True)
        assert engine.close() is False
        engine.set_disabled_externally(False)
        assert engine.close() is True
        assert closed == [None]


class TestSubmit:
    @pytest.mark.asyncio
    async def test_invalid_form_touches_everything_and_skips_handler(self):
        engine = _build([FieldConfig("name", "Name", required=True), FieldConfig("note", "Note")])
        calls = []

        async def handler(values):
            calls.append(values)

        assert await engine.submit(handler) is None
        assert calls == []
        assert all(control.touched for control in engine.controls.values())

    @pytest.mark.asyncio
    async def test_double_submit_calls_handler_once(self):
        """A second submit while the first is pending is ignored."""
        engine = _build([FieldConfig("name", "Name", default_value="Alice")])
        release = asyncio.Event()
        calls, successes = [], []
        engine.subscribe("submit_success", successes.append)

        async def handler(values):
            calls.append(values)
            await release.wait()
            return {"id": 1}

        first = asyncio.create_task(engine.submit(handler))
        await asyncio.sleep(0)
        assert engine.submitting is True
        assert await engine.submit(handler) is None

        release.set()
        assert await first == {"id": 1}
        assert calls == [{"name": "Alice"}]
        assert successes == [{"id": 1}]
        assert engine.submitting is False

    @pytest.mark.asyncio
    async def test_handler_error_emits_submit_error(self):
        engine = _build([FieldConfig("name", "Name", default_value="Alice")])
        errors, successes = [], []
        engine.subscribe("submit_error", errors.append)
        engine.subscribe("submit_success", successes.append)
        failure = ResourceError("Conflict: name already taken", status=409)

        async def handler(values):
            raise failure

        assert await engine.submit(handler) is None
        assert errors == [failure]
        assert successes == []
        assert engine.submitting is False

    @pytest.mark.asyncio
    async def test_cancelled_handler_releases_the_form(self):
        """A cancelled submission can be retried."""
        engine = _build([FieldConfig("name", "Name", default_value="Alice")])
        events = []
        engine.subscribe("submit_success", events.append)
        engine.subscribe("submit_error", events.append)

        async def cancelled(values):
            raise asyncio.CancelledError

        with pytest.raises(asyncio.CancelledError):
            await engine.submit(cancelled)
        assert engine.submitting is False
        assert events == []

        async def handler(values):
            return {"id": 1}

        assert await engine.submit(handler) == {"id": 1}
        assert events == [{"id": 1}]

    @pytest.mark.asyncio
    async def test_externally_disabled_form_does_not_submit(self):
        engine = _build([FieldConfig("name", "Name", default_value="Alice")])
        engine.set_disabled_externally(True)
        calls = []

        async def handler(values):
            calls.append(values)

        assert await engine.submit(handler) is None
        assert calls == []


class TestPatchAndReset:
    def test_patch_leaves_other_fields_alone(self):
        engine = _build([FieldConfig("name", "Name", required=True), FieldConfig("email", "Email")])
        engine.set_value("name", "")
        engine.patch_values({"email": "a@b.io", "unknown": 1})
        assert engine.value("email") == "a@b.io"
        assert engine.controls["email"].touched is False
        assert engine.controls["name"].touched is True
        assert engine.errors == {"name": "Name is required"}

    @pytest.mark.asyncio
    async def test_patch_created_option_into_select(self, option_source):
        """A freshly created value is spliced into the select with its label."""
        engine = _build(_user_fields(option_source))
        await engine.selects["entityId"].open()

        stale = engine.patch_values({"entityId": "E99"}, labels={"entityId": "Zeta Corp"})
        assert stale == ["entityId"]
        await engine.selects["entityId"].ensure_loaded()

        select = engine.selects["entityId"]
        assert select.options[0] == SelectOption("E99", "Zeta Corp")
        assert engine.selected_option_label("entityId") == "Zeta Corp"
        assert engine.value("entityId") == "E99"

    @pytest.mark.asyncio
    async def test_select_option_sets_value_and_label(self, option_source):
        engine = _build(_user_fields(option_source))
        await engine.selects["entityId"].open()
        assert engine.select_option("entityId", "V2") is True
        assert engine.value("entityId") == "V2"
        assert engine.selected_option_label("entityId") == "Beta"
        assert engine.select_option("entityId", "nope") is False

    def test_static_select_label(self, option_source):
        engine = _build(_user_fields(option_source))
        engine.set_value("profileId", "viewer")
        assert engine.selected_option_label("profileId") == "Viewer"

    def test_reset_restores_seeded_values(self):
        engine = _build(
            [FieldConfig("name", "Name", required=True)],
            initial_data={"name": "Alice"},
            mode=FormMode.UPDATE,
        )
        engine.set_value("name", "")
        engine.reset()
        assert engine.value("name") == "Alice"
        assert engine.controls["name"].touched is False
        assert engine.errors == {}


class TestPermissionsField:
    def _engine(self, **kwargs) -> DynamicFormEngine:
        return _build([
            FieldConfig("perms", "Permissions", type=FieldType.PERMISSIONS,
                        permissions=PermissionsConfig(MODULES), **kwargs),
        ])

    def test_toggle_updates_value(self):
        engine = self._engine()
        assert engine.toggle_permission("perms", "users", "read") is True
        assert engine.value("perms") == [{"moduleId": "users", "name": "Users", "read": True, "write": False}]

    def test_toggle_refused_while_loading(self):
        engine = self._engine()
        engine.set_disabled_externally(True)
        assert engine.toggle_permission("perms", "users", "read") is False
        assert engine.value("perms") == []

    def test_statically_disabled_matrix(self):
        engine = self._engine(disabled=True)
        assert engine.toggle_permission("perms", "users", "write") is False

    def test_patch_drops_empty_and_unknown_modules(self):
        engine = self._engine()
        engine.patch_values({"perms": [
            {"moduleId": "users", "read": False, "write": False},
            {"moduleId": "billing", "read": True, "write": True},
            {"moduleId": "roles", "read": True},
        ]})
        assert engine.raw_values() == {
            "perms": [{"moduleId": "roles", "name": "Roles", "read": True, "write": False}],
        }

    def test_set_value_drops_empty_modules(self):
        engine = self._engine()
        engine.set_value("perms", [{"moduleId": "users", "read": False, "write": False}])
        assert engine.value("perms") == []
        assert engine.matrices["perms"].get("users", "read") is False

    def test_restore_drops_empty_modules(self):
        engine = self._engine()
        engine.restore({"values": {"perms": [{"moduleId": "users", "read": False, "write": False}]}})
        assert engine.value("perms") == []


class TestSnapshot:
    def test_restore_onto_fresh_engine(self, option_source):
        engine = _build(_user_fields(option_source))
        engine.set_value("name", "Al")
        engine.set_value("entityId", "V1")
        snapshot = engine.snapshot()

        restored = _build(_user_fields(option_source))
        restored.restore(snapshot)
        assert restored.raw_values() == engine.raw_values()
        assert restored.controls["name"].touched is True
        assert restored.controls["profileId"].touched is False
        assert restored.errors == {"profileId": "Profile is required"}
