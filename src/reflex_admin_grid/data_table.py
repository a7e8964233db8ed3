"""Reflex state mixin and UI helper rendering a :class:`DataGridEngine`.

Users inherit from :class:`DataTableMixin` **and** ``rx.State``,
implement :meth:`DataTableMixin.get_table_spec`, trigger
``load_dt_table`` on page load and render with :func:`data_table`.

``DataTableMixin`` is a Reflex **state mixin** (``mixin=True``): each
subclass gets its own independent set of ``dt_*`` reactive variables,
so several tables on one page do not interfere with each other.

The engine itself is not serialisable (columns carry ``render``
callables), so it is rebuilt on every event from the table spec plus
the stored view state, mutated, and written back.

Typical usage::

    from reflex_admin_grid import DataTableMixin, TableSpec, TableColumn, data_table

    class UsersTable(DataTableMixin, rx.State):
        def get_table_spec(self) -> TableSpec:
            return TableSpec(
                columns=[TableColumn("name", "Name"), TableColumn("email", "Email")],
                service=USERS,
                mode=GridMode.SERVER,
            )

    def index():
        return rx.box(data_table(UsersTable), on_mount=UsersTable.load_dt_table)
"""

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import reflex as rx

from reflex_admin_grid.errors import ResourceError, extract_error_message
from reflex_admin_grid.grid_engine import DataGridEngine
from reflex_admin_grid.models import (
    GridMode,
    GridViewState,
    Row,
    TableAction,
    TableColumn,
    TableConfig,
)
from reflex_admin_grid.services import ListParams, ResourceService

_CLIENT_FETCH_LIMIT: int = 10_000

_BADGE_COLOR_SCHEMES: dict[str, str] = {
    "success": "green",
    "warning": "amber",
    "error": "red",
    "info": "blue",
}


@dataclass
class TableSpec:
    """Everything a :class:`DataTableMixin` subclass declares about its table.

    Attributes:
        columns: Column descriptors.
        service: Data source.  Required in server mode; in client mode it
            is listed once (up to ``client_fetch_limit`` rows).
        records: Static rows for client mode without a service.
        config: Display switches.
        id_key: Identifier field of the rows.
        mode: ``GridMode.CLIENT`` or ``GridMode.SERVER``.
        actions: Per-row buttons.  An action may return Reflex events
            (e.g. ``MyForm.open_fm_edit(row["id"])``) which are forwarded.
        entity_id: Optional entity filter passed to ``service.list``.
    """

    columns: Sequence[TableColumn]
    service: ResourceService | None = None
    records: Sequence[Row] | None = None
    config: TableConfig = field(default_factory=TableConfig)
    id_key: str = "id"
    mode: GridMode = GridMode.CLIENT
    actions: Sequence[TableAction] = ()
    entity_id: str | None = None
    client_fetch_limit: int = _CLIENT_FETCH_LIMIT


def _cell(engine: DataGridEngine, row: Row, column: TableColumn) -> dict[str, str]:
    value = engine.cell_value(row, column)
    if column.type == "checkbox":
        text = "true" if value not in ("", None, False) else "false"
    else:
        text = str(value)
    color = engine.badge_color(row, column) if column.type == "badge" else ""
    return {"value": text, "type": column.type, "color": color}


class DataTableMixin(rx.State, mixin=True):
    """Reflex State mixin backing one admin table.

    Subclasses **must** also inherit from ``rx.State`` so that Reflex's
    metaclass registers the vars on the child::

        class MyTable(DataTableMixin, rx.State):
            ...

    All state variable names are prefixed with ``dt_`` to avoid
    collisions when composed with other state.
    """

    # -- View state (round-trips through GridViewState) --
    dt_search_term: str = ""
    dt_sort_column: str = ""
    dt_sort_direction: str = ""
    dt_current_page: int = 1
    dt_items_per_page: int = 10
    dt_total_records: int = 0
    dt_select_all: bool = False

    # -- Derived display vars --
    dt_columns: list[dict[str, Any]] = []
    dt_cells: list[list[dict[str, str]]] = []
    dt_row_ids: list[str] = []
    dt_row_selected: list[bool] = []
    dt_row_actions: list[list[dict[str, str]]] = []
    dt_total_rows: int = 0
    dt_total_pages: int = 0
    dt_start_index: int = 0
    dt_end_index: int = 0
    dt_page_numbers: list[int] = []
    dt_selected_count: int = 0
    dt_loading: bool = False
    dt_loaded: bool = False

    # -- Config mirrored for the UI helper --
    dt_title: str = ""
    dt_show_search: bool = True
    dt_show_pagination: bool = True
    dt_show_items_per_page: bool = True
    dt_show_select_all: bool = True
    dt_enable_selection: bool = True
    dt_search_placeholder: str = "Search..."
    dt_empty_message: str = "No data available"
    dt_page_size_options: list[str] = ["10", "20", "50"]

    # -- Backend-only vars (not sent to frontend) --
    _dt_records: list[dict[str, Any]] = []
    _dt_selected_ids: list[Any] = []

    # ------------------------------------------------------------------
    # Hook
    # ------------------------------------------------------------------

    def get_table_spec(self) -> TableSpec:
        """Return the table declaration; subclasses must override."""
        raise NotImplementedError(f"{type(self).__name__} must implement get_table_spec()")

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def load_dt_table(self):
        """Reset the view and load the first page."""
        spec = self.get_table_spec()
        config = spec.config
        self.dt_title = config.title or ""  # type: ignore[assignment]
        self.dt_show_search = config.show_search  # type: ignore[assignment]
        self.dt_show_pagination = config.show_pagination  # type: ignore[assignment]
        self.dt_show_items_per_page = config.show_items_per_page  # type: ignore[assignment]
        self.dt_show_select_all = config.show_select_all  # type: ignore[assignment]
        self.dt_enable_selection = config.enable_selection  # type: ignore[assignment]
        self.dt_search_placeholder = config.search_placeholder  # type: ignore[assignment]
        self.dt_empty_message = config.empty_message  # type: ignore[assignment]
        self.dt_page_size_options = [str(n) for n in config.items_per_page_options]  # type: ignore[assignment]
        self.dt_columns = [c.to_column_def().dict() for c in spec.columns]  # type: ignore[assignment]

        engine = DataGridEngine(
            spec.columns,
            id_key=spec.id_key,
            mode=spec.mode,
            config=config,
        )
        self._dt_records = []  # type: ignore[assignment]
        if spec.service is None:
            self._dt_records = [dict(r) for r in spec.records or ()]  # type: ignore[assignment]
            engine.set_records(self._dt_records)
        self.dt_loaded = True  # type: ignore[assignment]
        async for update in self._dt_commit(engine, spec, refetch=spec.service is not None):
            yield update

    async def refresh_dt_table(self):
        """Re-fetch the current page (e.g. after a form saved a record)."""
        engine, spec = self._dt_engine()
        async for update in self._dt_commit(engine, spec, refetch=True):
            yield update

    async def handle_dt_search(self, term: str):
        engine, spec = self._dt_engine()
        engine.set_search_term(term)
        if engine.is_server_mode:
            engine.state.current_page = 1
        async for update in self._dt_commit(engine, spec, refetch=engine.is_server_mode):
            yield update

    async def handle_dt_sort(self, column_key: str):
        engine, spec = self._dt_engine()
        engine.toggle_sort(column_key)
        async for update in self._dt_commit(engine, spec, refetch=engine.is_server_mode):
            yield update

    async def handle_dt_page(self, page: int):
        engine, spec = self._dt_engine()
        before = engine.state.current_page
        engine.set_page(int(page))
        changed = engine.state.current_page != before
        async for update in self._dt_commit(engine, spec, refetch=changed and engine.is_server_mode):
            yield update

    async def handle_dt_items_per_page(self, value: str):
        engine, spec = self._dt_engine()
        engine.set_items_per_page(int(value))
        async for update in self._dt_commit(engine, spec, refetch=engine.is_server_mode):
            yield update

    def handle_dt_select_all(self, checked: bool) -> None:
        engine, spec = self._dt_engine()
        engine.toggle_select_all(bool(checked))
        self._dt_sync(engine, spec)

    def handle_dt_row_select(self, row_id: str, checked: bool) -> None:
        engine, spec = self._dt_engine()
        for candidate in engine.page_ids:
            if str(candidate) == row_id:
                engine.toggle_row_selection(candidate, bool(checked))
                break
        self._dt_sync(engine, spec)

    def handle_dt_action(self, label: str, row_id: str):
        """Run the named row action; events it returns are forwarded."""
        engine, spec = self._dt_engine()
        row = next(
            (r for i, r in zip(engine.page_ids, engine.page_rows) if str(i) == row_id),
            None,
        )
        action = next((a for a in spec.actions if a.label == label), None)
        if row is None or action is None or not action.is_shown(row):
            return None
        return action.action(row)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _dt_engine(self) -> tuple[DataGridEngine, TableSpec]:
        spec = self.get_table_spec()
        state = GridViewState(
            search_term=self.dt_search_term,
            sort_column=self.dt_sort_column or None,
            sort_direction=self.dt_sort_direction or None,  # type: ignore[arg-type]
            current_page=self.dt_current_page,
            items_per_page=self.dt_items_per_page,
            selected_ids=set(self._dt_selected_ids),
            select_all=self.dt_select_all,
            mode=spec.mode,
            total_records=self.dt_total_records,
        )
        engine = DataGridEngine(spec.columns, id_key=spec.id_key, config=spec.config, state=state)
        engine.set_records(self._dt_records, preserve_view=True)
        return engine, spec

    async def _dt_commit(self, engine: DataGridEngine, spec: TableSpec, *, refetch: bool):
        if not refetch or spec.service is None:
            self._dt_sync(engine, spec)
            return
        self.dt_loading = True  # type: ignore[assignment]
        self._dt_sync(engine, spec)
        yield  # send loading state to the frontend immediately

        toast = await self._dt_fetch(engine, spec)
        self.dt_loading = False  # type: ignore[assignment]
        self._dt_sync(engine, spec)
        if toast is not None:
            yield toast

    async def _dt_fetch(self, engine: DataGridEngine, spec: TableSpec):
        t0 = time.perf_counter()
        state = engine.state
        if engine.is_server_mode:
            params = ListParams(
                page=state.current_page,
                limit=state.items_per_page,
                search=state.search_term or None,
                sort_by=state.sort_column,
                sort_order=state.sort_direction,
                entity_id=spec.entity_id,
            )
        else:
            params = ListParams(page=1, limit=spec.client_fetch_limit, entity_id=spec.entity_id)

        try:
            response = await spec.service.list(params)
        except ResourceError as exc:
            message = extract_error_message(exc)
            print(f"[DataTable] load failed: {message.title}")
            return rx.toast.error(message.title, description=message.message)

        rows = [dict(r) for r in response.data or []]
        self._dt_records = rows  # type: ignore[assignment]
        if engine.is_server_mode:
            total = response.pagination.total if response.pagination is not None else len(rows)
            engine.set_records(rows, total)
        else:
            engine.set_records(rows, preserve_view=True)
        print(
            f"[DataTable] page refresh: page={params.page}, rows={len(rows)}, "
            f"elapsed={(time.perf_counter() - t0) * 1000:.1f}ms"
        )
        return None

    def _dt_sync(self, engine: DataGridEngine, spec: TableSpec) -> None:
        """Write the engine's view state and derived page back into vars."""
        state = engine.state
        self.dt_search_term = state.search_term  # type: ignore[assignment]
        self.dt_sort_column = state.sort_column or ""  # type: ignore[assignment]
        self.dt_sort_direction = state.sort_direction or ""  # type: ignore[assignment]
        self.dt_current_page = state.current_page  # type: ignore[assignment]
        self.dt_items_per_page = state.items_per_page  # type: ignore[assignment]
        self.dt_total_records = state.total_records  # type: ignore[assignment]
        self.dt_select_all = state.select_all  # type: ignore[assignment]
        self._dt_selected_ids = list(state.selected_ids)  # type: ignore[assignment]
        self.dt_selected_count = len(state.selected_ids)  # type: ignore[assignment]

        rows = engine.page_rows
        ids = engine.page_ids
        self.dt_row_ids = [str(i) for i in ids]  # type: ignore[assignment]
        self.dt_row_selected = [i in state.selected_ids for i in ids]  # type: ignore[assignment]
        self.dt_cells = [  # type: ignore[assignment]
            [_cell(engine, row, column) for column in engine.columns] for row in rows
        ]
        self.dt_row_actions = [  # type: ignore[assignment]
            [{"label": a.label, "variant": a.variant} for a in spec.actions if a.is_shown(row)]
            for row in rows
        ]
        self.dt_total_rows = engine.total_rows  # type: ignore[assignment]
        self.dt_total_pages = engine.total_pages  # type: ignore[assignment]
        self.dt_start_index = engine.start_index  # type: ignore[assignment]
        self.dt_end_index = engine.end_index  # type: ignore[assignment]
        self.dt_page_numbers = engine.page_numbers()  # type: ignore[assignment]


# ---------------------------------------------------------------------------
# UI helper
# ---------------------------------------------------------------------------

def _sort_icon(state_cls: type, column: Any) -> rx.Component:
    return rx.cond(
        state_cls.dt_sort_column == column["field"],
        rx.cond(
            state_cls.dt_sort_direction == "asc",
            rx.icon("arrow-up", size=14),
            rx.icon("arrow-down", size=14),
        ),
        rx.icon("arrow-up-down", size=14, opacity="0.4"),
    )


def _header_cell(state_cls: type, column: Any) -> rx.Component:
    return rx.table.column_header_cell(
        rx.cond(
            column["sortable"],
            rx.hstack(
                rx.text(column["headerName"]),
                _sort_icon(state_cls, column),
                align="center",
                spacing="1",
                cursor="pointer",
                on_click=state_cls.handle_dt_sort(column["field"]),
            ),
            rx.text(column["headerName"]),
        ),
        width=column["width"],
    )


def _body_cell(cell: Any) -> rx.Component:
    return rx.table.cell(
        rx.match(
            cell["type"],
            (
                "badge",
                rx.match(
                    cell["color"],
                    ("success", rx.badge(cell["value"], color_scheme=_BADGE_COLOR_SCHEMES["success"])),
                    ("warning", rx.badge(cell["value"], color_scheme=_BADGE_COLOR_SCHEMES["warning"])),
                    ("error", rx.badge(cell["value"], color_scheme=_BADGE_COLOR_SCHEMES["error"])),
                    rx.badge(cell["value"], color_scheme=_BADGE_COLOR_SCHEMES["info"]),
                ),
            ),
            ("checkbox", rx.checkbox(checked=cell["value"] == "true", disabled=True)),
            rx.text(cell["value"]),
        ),
    )


def _action_button(state_cls: type, action: Any, row_id: Any) -> rx.Component:
    return rx.button(
        action["label"],
        size="1",
        variant="soft",
        color_scheme=rx.match(
            action["variant"],
            ("error", "red"),
            ("warning", "amber"),
            ("success", "green"),
            "gray",
        ),
        on_click=state_cls.handle_dt_action(action["label"], row_id),
    )


def _body_row(state_cls: type, cells: Any, index: Any) -> rx.Component:
    row_id = state_cls.dt_row_ids[index]
    return rx.table.row(
        rx.cond(
            state_cls.dt_enable_selection,
            rx.table.cell(
                rx.checkbox(
                    checked=state_cls.dt_row_selected[index],
                    on_change=lambda checked: state_cls.handle_dt_row_select(row_id, checked),
                ),
            ),
        ),
        rx.foreach(cells, _body_cell),
        rx.table.cell(
            rx.hstack(
                rx.foreach(
                    state_cls.dt_row_actions[index],
                    lambda action: _action_button(state_cls, action, row_id),
                ),
                spacing="2",
            ),
        ),
    )


def data_table_pagination(state_cls: type) -> rx.Component:
    """Footer with range text, page-size picker and page buttons."""
    return rx.hstack(
        rx.text(
            "Showing ",
            state_cls.dt_start_index,
            " to ",
            state_cls.dt_end_index,
            " of ",
            state_cls.dt_total_rows,
            size="2",
            color_scheme="gray",
        ),
        rx.spacer(),
        rx.cond(
            state_cls.dt_show_items_per_page,
            rx.select(
                state_cls.dt_page_size_options,
                value=state_cls.dt_items_per_page.to_string(),
                on_change=state_cls.handle_dt_items_per_page,
                size="1",
            ),
        ),
        rx.button(
            rx.icon("chevron-left", size=14),
            size="1",
            variant="soft",
            disabled=state_cls.dt_current_page <= 1,
            on_click=state_cls.handle_dt_page(state_cls.dt_current_page - 1),
        ),
        rx.foreach(
            state_cls.dt_page_numbers,
            lambda number: rx.button(
                number,
                size="1",
                variant=rx.cond(number == state_cls.dt_current_page, "solid", "soft"),
                on_click=state_cls.handle_dt_page(number),
            ),
        ),
        rx.button(
            rx.icon("chevron-right", size=14),
            size="1",
            variant="soft",
            disabled=state_cls.dt_current_page >= state_cls.dt_total_pages,
            on_click=state_cls.handle_dt_page(state_cls.dt_current_page + 1),
        ),
        align="center",
        width="100%",
        spacing="2",
    )


def data_table(state_cls: type, **props: Any) -> rx.Component:
    """Return a table bound to a :class:`DataTableMixin` state.

    Args:
        state_cls: The ``rx.State`` subclass that also inherits from
            :class:`DataTableMixin`.
        **props: Extra props for the outer container.

    Returns:
        Search box, table with sortable headers, selection checkboxes,
        badges and row actions, and the pagination footer.
    """
    toolbar = rx.hstack(
        rx.cond(state_cls.dt_title != "", rx.heading(state_cls.dt_title, size="4")),
        rx.spacer(),
        rx.cond(
            state_cls.dt_selected_count > 0,
            rx.badge(state_cls.dt_selected_count, " selected", variant="soft"),
        ),
        rx.cond(
            state_cls.dt_show_search,
            rx.input(
                value=state_cls.dt_search_term,
                placeholder=state_cls.dt_search_placeholder,
                on_change=state_cls.handle_dt_search,
                debounce_timeout=500,
                width="260px",
            ),
        ),
        rx.cond(state_cls.dt_loading, rx.spinner(size="2")),
        align="center",
        width="100%",
    )

    header = rx.table.header(
        rx.table.row(
            rx.cond(
                state_cls.dt_enable_selection,
                rx.table.column_header_cell(
                    rx.cond(
                        state_cls.dt_show_select_all,
                        rx.checkbox(
                            checked=state_cls.dt_select_all,
                            on_change=state_cls.handle_dt_select_all,
                        ),
                    ),
                    width="40px",
                ),
            ),
            rx.foreach(state_cls.dt_columns, lambda column: _header_cell(state_cls, column)),
            rx.table.column_header_cell(""),
        ),
    )

    body = rx.table.body(
        rx.foreach(state_cls.dt_cells, lambda cells, index: _body_row(state_cls, cells, index)),
    )

    return rx.vstack(
        toolbar,
        rx.table.root(header, body, width="100%", variant="surface"),
        rx.cond(
            state_cls.dt_total_rows == 0,
            rx.center(rx.text(state_cls.dt_empty_message, color_scheme="gray"), width="100%", padding="2em"),
        ),
        rx.cond(state_cls.dt_show_pagination, data_table_pagination(state_cls)),
        width="100%",
        spacing="3",
        **props,
    )
