"""Reflex state mixin and dialog rendering a :class:`DynamicFormEngine`.

Inherit from :class:`FormModalMixin` **and** ``rx.State``, implement
:meth:`FormModalMixin.get_form_config` (and, for edit forms,
:meth:`FormModalMixin.load_fm_record`), then render with
:func:`form_modal`.  Like the table mixin, the engine is rebuilt on
every event and its values round-trip through a snapshot held in a
backend-only var.
"""

import time
from typing import Any

import reflex as rx

from reflex_admin_grid.errors import ResourceError, extract_error_message
from reflex_admin_grid.form_engine import DynamicFormEngine
from reflex_admin_grid.models import FieldType, FormConfig, FormMode


def _display_value(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


class FormModalMixin(rx.State, mixin=True):
    """Reflex State mixin backing one create/edit dialog.

    All state variable names are prefixed with ``fm_``.
    """

    fm_open: bool = False
    fm_mode: str = FormMode.CREATE.value
    fm_row_id: str = ""
    fm_title: str = ""
    fm_subtitle: str = ""
    fm_submit_label: str = "Save"
    fm_cancel_label: str = "Cancel"
    fm_loading: bool = False
    fm_submitting: bool = False

    # One entry per *visible* field, in display order.
    fm_fields: list[dict[str, Any]] = []
    fm_values: dict[str, str] = {}
    fm_checked: dict[str, bool] = {}
    fm_errors: dict[str, str] = {}
    fm_options: dict[str, list[dict[str, str]]] = {}
    fm_select_labels: dict[str, str] = {}
    fm_select_search: dict[str, str] = {}
    fm_select_more: dict[str, bool] = {}
    fm_permissions: dict[str, list[dict[str, Any]]] = {}

    _fm_snapshot: dict[str, Any] = {}

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def get_form_config(self) -> FormConfig:
        """Return the form declaration; may read ``fm_mode`` / ``fm_row_id``."""
        raise NotImplementedError(f"{type(self).__name__} must implement get_form_config()")

    async def load_fm_record(self, row_id: str) -> dict[str, Any]:
        """Fetch the record being edited; defaults to ``initial_data``."""
        return dict(self.get_form_config().initial_data or {})

    def on_fm_create_requested(self, key: str):
        """Called when the "create new" entry of a paginated select is picked."""
        return None

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def open_fm_create(self):
        self.fm_mode = FormMode.CREATE.value  # type: ignore[assignment]
        self.fm_row_id = ""  # type: ignore[assignment]
        config = self.get_form_config()
        engine = DynamicFormEngine().build(config.fields, config.initial_data, FormMode.CREATE)
        self._fm_snapshot = {}  # type: ignore[assignment]
        self.fm_open = True  # type: ignore[assignment]
        self.fm_loading = False  # type: ignore[assignment]
        self._fm_sync(engine, config)
        yield
        for select in engine.selects.values():
            await select.ensure_loaded()
        self._fm_sync(engine, config)

    async def open_fm_edit(self, row_id: str):
        """Open in update mode; the form stays disabled while the record loads."""
        self.fm_mode = FormMode.UPDATE.value  # type: ignore[assignment]
        self.fm_row_id = str(row_id)  # type: ignore[assignment]
        config = self.get_form_config()
        engine = DynamicFormEngine().build(config.fields, mode=FormMode.UPDATE)
        engine.set_disabled_externally(True)
        self._fm_snapshot = {}  # type: ignore[assignment]
        self.fm_open = True  # type: ignore[assignment]
        self.fm_loading = True  # type: ignore[assignment]
        self._fm_sync(engine, config)
        yield

        t0 = time.perf_counter()
        try:
            record = await self.load_fm_record(self.fm_row_id)
        except ResourceError as exc:
            message = extract_error_message(exc)
            print(f"[FormModal] load failed: {message.title}")
            self.fm_loading = False  # type: ignore[assignment]
            self.fm_open = False  # type: ignore[assignment]
            yield rx.toast.error(message.title, description=message.message)
            return

        engine.build(config.fields, record, FormMode.UPDATE)
        for select in engine.selects.values():
            await select.ensure_loaded()
        self.fm_loading = False  # type: ignore[assignment]
        self._fm_sync(engine, config)
        print(f"[FormModal] record loaded: id={self.fm_row_id}, elapsed={(time.perf_counter() - t0) * 1000:.1f}ms")

    def handle_fm_change(self, key: str, value: Any) -> None:
        engine, config = self._fm_engine()
        if engine.is_disabled(key):
            return
        engine.set_value(key, value)
        self._fm_sync(engine, config)

    def handle_fm_select(self, key: str, value: str):
        engine, config = self._fm_engine()
        if engine.is_disabled(key):
            return None
        select_config = engine.field(key).paginated_select
        if select_config is not None and select_config.allow_create and value == select_config.create_value:
            return self.on_fm_create_requested(key)
        if key in engine.selects:
            engine.select_option(key, value)
        else:
            engine.set_value(key, value)
        self._fm_sync(engine, config)
        return None

    async def handle_fm_select_search(self, key: str, term: str):
        engine, config = self._fm_engine()
        await engine.selects[key].search_now(term)
        self._fm_sync(engine, config)

    async def handle_fm_select_more(self, key: str):
        engine, config = self._fm_engine()
        self.fm_select_more[key] = False
        yield
        await engine.selects[key].load_more()
        self._fm_sync(engine, config)

    def handle_fm_toggle_permission(self, key: str, module_id: str, kind: str, checked: bool) -> None:
        engine, config = self._fm_engine()
        engine.toggle_permission(key, module_id, kind, bool(checked))  # type: ignore[arg-type]
        self._fm_sync(engine, config)

    async def handle_fm_submit(self):
        """Validate and submit; success closes the dialog, failure shows a toast."""
        engine, config = self._fm_engine()
        if self.fm_submitting or engine.loading:
            return
        if not engine.validate():
            engine.mark_all_touched()
            self._fm_sync(engine, config)
            return

        outcome: dict[str, Any] = {}
        engine.subscribe("submit_success", lambda response: outcome.update(response=response))
        engine.subscribe("submit_error", lambda error: outcome.update(error=error))

        self.fm_submitting = True  # type: ignore[assignment]
        yield
        t0 = time.perf_counter()
        await engine.submit(config.on_submit)
        self.fm_submitting = False  # type: ignore[assignment]

        if "error" in outcome:
            error = outcome["error"]
            message = extract_error_message(error)
            print(f"[FormModal] submit failed: {message.title}")
            self._fm_sync(engine, config)
            yield rx.toast.error(message.title, description=message.message)
            if config.on_error is not None:
                yield config.on_error(error)
            return

        print(f"[FormModal] submitted: mode={self.fm_mode}, elapsed={(time.perf_counter() - t0) * 1000:.1f}ms")
        self.fm_open = False  # type: ignore[assignment]
        self._fm_snapshot = {}  # type: ignore[assignment]
        if config.on_success is not None:
            yield config.on_success(outcome.get("response"))

    def close_fm(self) -> None:
        if self.fm_loading or self.fm_submitting:
            return
        self.fm_open = False  # type: ignore[assignment]
        self._fm_snapshot = {}  # type: ignore[assignment]

    def handle_fm_open_change(self, is_open: bool) -> None:
        if not is_open:
            self.close_fm()

    async def patch_fm_values(self, values: dict[str, Any], labels: dict[str, str] | None = None) -> None:
        """Inject values into the open form (e.g. a related record just created)."""
        engine, config = self._fm_engine()
        for key in engine.patch_values(values, labels=labels):
            await engine.selects[key].ensure_loaded()
        self._fm_sync(engine, config)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _fm_engine(self) -> tuple[DynamicFormEngine, FormConfig]:
        config = self.get_form_config()
        engine = DynamicFormEngine().build(config.fields, mode=FormMode(self.fm_mode))
        if self._fm_snapshot:
            engine.restore(self._fm_snapshot)
        engine.set_disabled_externally(self.fm_loading)
        return engine, config

    def _fm_sync(self, engine: DynamicFormEngine, config: FormConfig) -> None:
        self.fm_title = config.title  # type: ignore[assignment]
        self.fm_subtitle = config.subtitle or ""  # type: ignore[assignment]
        self.fm_submit_label = config.submit_label  # type: ignore[assignment]
        self.fm_cancel_label = config.cancel_label  # type: ignore[assignment]
        self._fm_snapshot = engine.snapshot()  # type: ignore[assignment]

        fields: list[dict[str, Any]] = []
        values: dict[str, str] = {}
        checked: dict[str, bool] = {}
        errors: dict[str, str] = {}
        options: dict[str, list[dict[str, str]]] = {}
        labels: dict[str, str] = {}
        more: dict[str, bool] = {}
        search: dict[str, str] = {}
        permissions: dict[str, list[dict[str, Any]]] = {}

        for field in engine.get_visible_fields():
            key = field.key
            value = engine.value(key)
            fields.append(
                {
                    "key": key,
                    "label": field.label,
                    "type": FieldType(field.type).value,
                    "placeholder": field.placeholder or "",
                    "hint": field.hint or "",
                    "required": field.required,
                    "disabled": engine.is_disabled(key),
                    "span": f"span {field.grid_cols}",
                }
            )
            values[key] = _display_value(value)
            checked[key] = bool(value)
            error = engine.field_error(key)
            if error:
                errors[key] = error

            if field.options is not None:
                options[key] = [
                    {"value": str(o.value), "label": o.label} for o in field.options if not o.disabled
                ]
            if key in engine.selects:
                select = engine.selects[key]
                entries = [{"value": str(o.value), "label": o.label} for o in select.options if not o.disabled]
                if select.config.allow_create:
                    entries.insert(0, {"value": select.config.create_value, "label": select.config.create_label})
                options[key] = entries
                labels[key] = select.selected_label
                more[key] = select.has_more and not select.loading
                search[key] = select.search_term
            if key in engine.matrices:
                permissions[key] = [
                    {"moduleId": p.module_id, "name": p.name, "read": p.read, "write": p.write}
                    for p in engine.matrices[key].rows
                ]

        self.fm_fields = fields  # type: ignore[assignment]
        self.fm_values = values  # type: ignore[assignment]
        self.fm_checked = checked  # type: ignore[assignment]
        self.fm_errors = errors  # type: ignore[assignment]
        self.fm_options = options  # type: ignore[assignment]
        self.fm_select_labels = labels  # type: ignore[assignment]
        self.fm_select_more = more  # type: ignore[assignment]
        self.fm_select_search = search  # type: ignore[assignment]
        self.fm_permissions = permissions  # type: ignore[assignment]


# ---------------------------------------------------------------------------
# UI helpers
# ---------------------------------------------------------------------------

def _select_control(state_cls: type, field: Any, placeholder: Any) -> rx.Component:
    key = field["key"]
    return rx.select.root(
        rx.select.trigger(placeholder=placeholder, width="100%"),
        rx.select.content(
            rx.foreach(
                state_cls.fm_options[key],
                lambda option: rx.select.item(option["label"], value=option["value"]),
            ),
        ),
        value=state_cls.fm_values[key],
        on_change=lambda value: state_cls.handle_fm_select(key, value),
        disabled=field["disabled"],
    )


def _paginated_select_control(state_cls: type, field: Any) -> rx.Component:
    key = field["key"]
    return rx.vstack(
        rx.input(
            value=state_cls.fm_select_search[key],
            placeholder="Search...",
            on_change=lambda term: state_cls.handle_fm_select_search(key, term),
            debounce_timeout=300,
            disabled=field["disabled"],
            size="1",
            width="100%",
        ),
        _select_control(state_cls, field, state_cls.fm_select_labels[key]),
        rx.cond(
            state_cls.fm_select_more[key],
            rx.button(
                "Load more",
                size="1",
                variant="ghost",
                on_click=state_cls.handle_fm_select_more(key),
            ),
        ),
        spacing="1",
        width="100%",
    )


def _permissions_control(state_cls: type, field: Any) -> rx.Component:
    key = field["key"]

    def row(permission: Any) -> rx.Component:
        return rx.table.row(
            rx.table.cell(permission["name"]),
            rx.table.cell(
                rx.checkbox(
                    checked=permission["read"],
                    disabled=field["disabled"],
                    on_change=lambda checked: state_cls.handle_fm_toggle_permission(
                        key, permission["moduleId"], "read", checked
                    ),
                ),
            ),
            rx.table.cell(
                rx.checkbox(
                    checked=permission["write"],
                    disabled=field["disabled"],
                    on_change=lambda checked: state_cls.handle_fm_toggle_permission(
                        key, permission["moduleId"], "write", checked
                    ),
                ),
            ),
        )

    return rx.table.root(
        rx.table.header(
            rx.table.row(
                rx.table.column_header_cell("Module"),
                rx.table.column_header_cell("Read"),
                rx.table.column_header_cell("Write"),
            ),
        ),
        rx.table.body(rx.foreach(state_cls.fm_permissions[key], row)),
        size="1",
        width="100%",
    )


def _field_control(state_cls: type, field: Any) -> rx.Component:
    key = field["key"]
    return rx.match(
        field["type"],
        (
            "textarea",
            rx.text_area(
                value=state_cls.fm_values[key],
                placeholder=field["placeholder"],
                disabled=field["disabled"],
                on_change=lambda value: state_cls.handle_fm_change(key, value),
                width="100%",
            ),
        ),
        ("select", _select_control(state_cls, field, field["placeholder"])),
        ("paginated-select", _paginated_select_control(state_cls, field)),
        (
            "checkbox",
            rx.checkbox(
                field["label"],
                checked=state_cls.fm_checked[key],
                disabled=field["disabled"],
                on_change=lambda checked: state_cls.handle_fm_change(key, checked),
            ),
        ),
        ("permissions", _permissions_control(state_cls, field)),
        rx.input(
            type=field["type"],
            value=state_cls.fm_values[key],
            placeholder=field["placeholder"],
            disabled=field["disabled"],
            on_change=lambda value: state_cls.handle_fm_change(key, value),
            width="100%",
        ),
    )


def _field_box(state_cls: type, field: Any) -> rx.Component:
    key = field["key"]
    return rx.box(
        rx.vstack(
            rx.cond(
                field["type"] != "checkbox",
                rx.text(
                    field["label"],
                    rx.cond(field["required"], rx.text(" *", as_="span", color_scheme="red")),
                    size="2",
                    weight="medium",
                ),
            ),
            _field_control(state_cls, field),
            rx.cond(
                state_cls.fm_errors.contains(key),
                rx.text(state_cls.fm_errors[key], size="1", color_scheme="red"),
                rx.cond(field["hint"] != "", rx.text(field["hint"], size="1", color_scheme="gray")),
            ),
            spacing="1",
            width="100%",
        ),
        grid_column=field["span"],
    )


def form_modal(state_cls: type, **props: Any) -> rx.Component:
    """Return a dialog bound to a :class:`FormModalMixin` state.

    Args:
        state_cls: The ``rx.State`` subclass that also inherits from
            :class:`FormModalMixin`.
        **props: Extra props for the dialog content.
    """
    return rx.dialog.root(
        rx.dialog.content(
            rx.dialog.title(state_cls.fm_title),
            rx.cond(
                state_cls.fm_subtitle != "",
                rx.dialog.description(state_cls.fm_subtitle),
            ),
            rx.cond(
                state_cls.fm_loading,
                rx.center(rx.spinner(size="3"), padding="2em"),
                rx.grid(
                    rx.foreach(state_cls.fm_fields, lambda field: _field_box(state_cls, field)),
                    columns="12",
                    spacing="3",
                    width="100%",
                ),
            ),
            rx.hstack(
                rx.button(
                    state_cls.fm_cancel_label,
                    variant="soft",
                    color_scheme="gray",
                    disabled=state_cls.fm_submitting | state_cls.fm_loading,
                    on_click=state_cls.close_fm,
                ),
                rx.button(
                    state_cls.fm_submit_label,
                    loading=state_cls.fm_submitting,
                    disabled=state_cls.fm_loading,
                    on_click=state_cls.handle_fm_submit,
                ),
                justify="end",
                spacing="3",
                margin_top="1em",
            ),
            max_width="720px",
            **props,
        ),
        open=state_cls.fm_open,
        on_open_change=state_cls.handle_fm_open_change,
    )
