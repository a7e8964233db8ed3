"""Headless dynamic form: controls built from field descriptors.

The engine owns one :class:`FormControl` per field, decides which fields
are visible, validates the visible ones and drives a single in-flight
submission.  It performs no I/O itself; the submission handler and the
option loaders of paginated selects are supplied by the host.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from reflex_admin_grid.errors import FieldConfigError
from reflex_admin_grid.events import EventEmitter
from reflex_admin_grid.field_types import get_handler
from reflex_admin_grid.models import FieldConfig, FieldType, FormMode
from reflex_admin_grid.paginated_select import PaginatedSelect
from reflex_admin_grid.permissions import PermissionKind, PermissionsMatrix
from reflex_admin_grid.validators import is_empty

FORM_EVENTS: tuple[str, ...] = ("submit_success", "submit_error", "close")

SubmitHandler = Callable[[dict[str, Any]], Awaitable[Any]]


@dataclass
class FormControl:
    value: Any = None
    touched: bool = False
    static_disabled: bool = False
    error: str | None = None


def check_field_configs(fields: Sequence[FieldConfig]) -> None:
    """Fail fast on descriptors that would silently misbehave later."""
    keys: set[str] = set()
    for field in fields:
        if field.key in keys:
            raise FieldConfigError(f"Duplicate field key {field.key!r}")
        keys.add(field.key)

    for field in fields:
        if not 1 <= field.grid_cols <= 12:
            raise FieldConfigError(
                f"Field {field.key!r}: grid_cols must be between 1 and 12, got {field.grid_cols}"
            )
        if field.conditional is not None and field.conditional.depends_on not in keys:
            raise FieldConfigError(
                f"Field {field.key!r} depends on unknown field {field.conditional.depends_on!r}"
            )
        get_handler(field.type).check_config(field)


class DynamicFormEngine:
    """Form state machine for one open form.

    Events (subscribe with :meth:`subscribe`):

    * ``submit_success`` - payload is the handler's response.
    * ``submit_error`` - payload is the exception the handler raised.
    * ``close`` - the user dismissed the form while it was idle.
    """

    def __init__(self) -> None:
        self.fields: list[FieldConfig] = []
        self.controls: dict[str, FormControl] = {}
        self.mode: FormMode = FormMode.CREATE
        self.submitting = False
        self.external_disabled = False
        self.selects: dict[str, PaginatedSelect] = {}
        self.matrices: dict[str, PermissionsMatrix] = {}
        self._by_key: dict[str, FieldConfig] = {}
        self._initial_data: Mapping[str, Any] | None = None
        self._events = EventEmitter(*FORM_EVENTS)

    # -- construction ------------------------------------------------------

    def build(
        self,
        fields: Iterable[FieldConfig],
        initial_data: Mapping[str, Any] | None = None,
        mode: FormMode = FormMode.CREATE,
    ) -> "DynamicFormEngine":
        fields = list(fields)
        check_field_configs(fields)
        for select in self.selects.values():
            select.close()

        # sorted() is stable: equal ``order`` keeps declaration order.
        self.fields = sorted(fields, key=lambda f: f.order)
        self._by_key = {f.key: f for f in self.fields}
        self.mode = FormMode(mode)
        self._initial_data = dict(initial_data) if initial_data else None
        self.submitting = False
        self.external_disabled = False
        self.controls = {}
        self.selects = {}
        self.matrices = {}
        for field in self.fields:
            value = self._seed_value(field)
            self.controls[field.key] = FormControl(value=value, static_disabled=field.disabled)
            if field.type == FieldType.PAGINATED_SELECT:
                self.selects[field.key] = PaginatedSelect(field.paginated_select, value)
            elif field.type == FieldType.PERMISSIONS:
                self.matrices[field.key] = PermissionsMatrix(
                    field.permissions.modules, value, disabled=field.disabled
                )
                self.controls[field.key].value = self.matrices[field.key].value
        return self

    def _seed_value(self, field: FieldConfig) -> Any:
        handler = get_handler(field.type)
        if self.mode == FormMode.UPDATE and self._initial_data is not None:
            value = self._initial_data.get(field.key)
            if value is not None:
                return handler.coerce(value, field)
        if field.default_value is not None:
            return handler.coerce(field.default_value, field)
        return handler.empty_value()

    def subscribe(self, event: str, listener: Callable[[Any], Any]) -> Callable[[], None]:
        return self._events.subscribe(event, listener)

    def field(self, key: str) -> FieldConfig:
        return self._by_key[key]

    # -- visibility --------------------------------------------------------

    def is_visible(self, key: str) -> bool:
        conditional = self._by_key[key].conditional
        if conditional is None:
            return True
        return bool(conditional.condition(self.controls[conditional.depends_on].value))

    def get_visible_fields(self) -> list[FieldConfig]:
        return [f for f in self.fields if self.is_visible(f.key)]

    # -- values ------------------------------------------------------------

    def value(self, key: str) -> Any:
        return self.controls[key].value

    def raw_values(self) -> dict[str, Any]:
        """Values of every control, hidden ones included."""
        return {
            key: list(control.value) if isinstance(control.value, list) else control.value
            for key, control in self.controls.items()
        }

    def set_value(self, key: str, value: Any, *, touch: bool = True) -> None:
        field = self._by_key[key]
        control = self.controls[key]
        control.value = get_handler(field.type).coerce(value, field)
        if touch:
            control.touched = True
        if key in self.matrices:
            self.matrices[key].write_value(control.value)
            control.value = self.matrices[key].value
        self._update_errors_from(key)

    def patch_values(
        self,
        partial: Mapping[str, Any],
        *,
        labels: Mapping[str, str] | None = None,
    ) -> list[str]:
        """Update named controls without marking any of them touched.

        *labels* carries display labels for paginated-select values the
        option cache cannot know yet (a parent record created a moment
        ago).  Returns the keys of paginated selects whose cache was
        invalidated; await :meth:`PaginatedSelect.ensure_loaded` on them.
        """
        labels = labels or {}
        stale: list[str] = []
        for key, value in partial.items():
            field = self._by_key.get(key)
            if field is None:
                continue
            control = self.controls[key]
            control.value = get_handler(field.type).coerce(value, field)
            if key in self.selects and self.selects[key].sync_value(control.value, labels.get(key)):
                stale.append(key)
            if key in self.matrices:
                self.matrices[key].write_value(control.value)
                control.value = self.matrices[key].value
            self._update_errors_from(key)
        return stale

    def selected_option_label(self, key: str) -> str:
        field = self._by_key[key]
        value = self.controls[key].value
        if key in self.selects:
            return self.selects[key].selected_label
        for option in field.options or ():
            if option.value == value:
                return option.label
        return ""

    def select_option(self, key: str, value: Any) -> bool:
        """Route a paginated-select pick; ``False`` when no value was applied."""
        selected = self.selects[key].select_value(value)
        if selected is None:
            return False
        self.set_value(key, selected)
        return True

    def toggle_permission(
        self,
        key: str,
        module_id: str,
        kind: PermissionKind,
        checked: bool | None = None,
    ) -> bool:
        if self.is_disabled(key):
            return False
        matrix = self.matrices[key]
        if not matrix.toggle(module_id, kind, checked):
            return False
        control = self.controls[key]
        control.value = matrix.value
        control.touched = True
        self._update_error(self._by_key[key])
        return True

    # -- validation --------------------------------------------------------

    def _first_error(self, field: FieldConfig, value: Any) -> str | None:
        if field.required and is_empty(value):
            return f"{field.label} is required"
        handler = get_handler(field.type)
        for validator in (*handler.builtin_validators(field), *field.validators):
            if not validator.check(value):
                return field.error_message or validator.format_message(field.label)
        return None

    def _update_error(self, field: FieldConfig) -> None:
        control = self.controls[field.key]
        if field.disabled or not self.is_visible(field.key):
            control.error = None
        else:
            control.error = self._first_error(field, control.value)

    def _update_errors_from(self, key: str) -> None:
        """Refresh *key* and every field whose visibility depends on it."""
        for field in self.fields:
            conditional = field.conditional
            if field.key == key or (conditional is not None and conditional.depends_on == key):
                self._update_error(field)

    def validate(self) -> bool:
        """Check every visible, enabled field; hidden ones never block."""
        for field in self.fields:
            self._update_error(field)
        return all(control.error is None for control in self.controls.values())

    @property
    def errors(self) -> dict[str, str]:
        return {key: control.error for key, control in self.controls.items() if control.error}

    def field_error(self, key: str) -> str | None:
        control = self.controls[key]
        if not control.touched or not self.is_visible(key):
            return None
        return control.error

    def mark_all_touched(self) -> None:
        for control in self.controls.values():
            control.touched = True

    # -- disabled / loading ------------------------------------------------

    def set_disabled_externally(self, disabled: bool) -> None:
        self.external_disabled = bool(disabled)

    @property
    def loading(self) -> bool:
        return self.external_disabled or self.submitting

    def is_disabled(self, key: str) -> bool:
        """A field's own ``disabled`` flag survives external enable/disable."""
        return self.controls[key].static_disabled or self.loading

    # -- submission --------------------------------------------------------

    async def submit(self, handler: SubmitHandler) -> Any:
        """Validate and call *handler* once; returns its response or ``None``.

        A call made while a previous submission is still pending, or while
        the form is disabled externally, is ignored.  Every accepted call
        ends in exactly one ``submit_success`` or ``submit_error`` event
        unless it is cancelled, which re-raises and leaves no event.
        """
        if self.submitting or self.external_disabled:
            return None
        if not self.validate():
            self.mark_all_touched()
            return None

        self.submitting = True
        values = self.raw_values()
        try:
            response = await handler(values)
        except asyncio.CancelledError:
            self.submitting = False
            raise
        except Exception as exc:
            self.submitting = False
            self._events.emit("submit_error", exc)
            return None
        self.submitting = False
        self._events.emit("submit_success", response)
        return response

    def reset(self) -> None:
        """Restore seeded values and clear touched/error state."""
        for field in self.fields:
            control = self.controls[field.key]
            control.value = self._seed_value(field)
            control.touched = False
            control.error = None
            if field.key in self.selects:
                self.selects[field.key].sync_value(control.value)
            if field.key in self.matrices:
                self.matrices[field.key].write_value(control.value)
                control.value = self.matrices[field.key].value

    def close(self) -> bool:
        """Request dismissal; refused (``False``) while loading."""
        if self.loading:
            return False
        for select in self.selects.values():
            select.close()
        self._events.emit("close")
        return True

    # -- persistence across stateless event handlers -----------------------

    def snapshot(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "values": self.raw_values(),
            "touched": [key for key, control in self.controls.items() if control.touched],
            "selects": {key: select.export_state() for key, select in self.selects.items()},
        }

    def restore(self, snapshot: Mapping[str, Any]) -> None:
        """Reapply a :meth:`snapshot` onto a freshly built engine."""
        self.mode = FormMode(snapshot.get("mode", self.mode))
        values = snapshot.get("values", {})
        touched = set(snapshot.get("touched", ()))
        for key, control in self.controls.items():
            if key in values:
                control.value = values[key]
            control.touched = key in touched
            if key in self.matrices:
                self.matrices[key].write_value(control.value)
                control.value = self.matrices[key].value
        for key, state in snapshot.get("selects", {}).items():
            if key in self.selects:
                self.selects[key].restore_state(state)
        for field in self.fields:
            self._update_error(field)
