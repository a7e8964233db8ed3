"""Headless data-table engine: search, sort, pagination and row selection.

The engine never performs I/O.  In **client** mode it computes the
displayed rows from the full in-memory record list; in **server** mode
it displays the backing list verbatim and only *emits* search / sort /
page intents for an external fetch layer (see
:class:`reflex_admin_grid.controller.CrudController`).

Typical usage::

    engine = DataGridEngine(
        [TableColumn("name", "Name"), TableColumn("entity.name", "Entity")],
        items_per_page=10,
    )
    engine.set_records(rows)
    engine.set_search_term("acme")
    engine.toggle_sort("name")
    visible = engine.page_rows
"""

import math
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import replace
from functools import cmp_to_key
from typing import Any

from reflex_admin_grid.events import EventEmitter
from reflex_admin_grid.models import (
    ActionClick,
    BadgeColor,
    GridMode,
    GridViewState,
    Row,
    RowId,
    SortChange,
    TableAction,
    TableColumn,
    TableConfig,
)

GRID_EVENTS: tuple[str, ...] = (
    "page_change",
    "items_per_page_change",
    "sort_change",
    "search_change",
    "selection_change",
    "action_click",
)

_MISSING_ID_TEMPLATE: str = "__row_{index}__"


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def resolve_path(row: Any, key: str) -> Any:
    """Follow a dot path (``"entity.name"``) through mappings or attributes.

    Returns ``None`` as soon as any segment is missing.
    """
    value: Any = row
    for part in key.split("."):
        if value is None:
            return None
        if isinstance(value, Mapping):
            value = value.get(part)
        else:
            value = getattr(value, part, None)
    return value


def _compare(a: Any, b: Any) -> int:
    """Native ordering, falling back to string order for incomparable types."""
    try:
        if a < b:
            return -1
        if a > b:
            return 1
        return 0
    except TypeError:
        sa, sb = str(a), str(b)
        return (sa > sb) - (sa < sb)


def sort_nulls_last(
    items: Sequence[Any],
    key: Callable[[Any], Any],
    direction: str,
) -> list[Any]:
    """Stable sort of *items* by *key*; ``None`` keys always go last.

    The direction only flips the order of real values, never the
    position of the unknowns.
    """
    keyed = [(key(item), item) for item in items]
    present = [pair for pair in keyed if pair[0] is not None]
    missing = [pair for pair in keyed if pair[0] is None]
    present.sort(
        key=cmp_to_key(lambda x, y: _compare(x[0], y[0])),
        reverse=direction == "desc",
    )
    return [item for _, item in present] + [item for _, item in missing]


def page_numbers(current_page: int, total_pages: int, max_visible: int = 10) -> list[int]:
    """Window of page numbers around *current_page* for a pagination bar."""
    if total_pages <= 0:
        return []
    start = max(1, current_page - max_visible // 2)
    end = min(total_pages, start + max_visible - 1)
    start = max(1, end - max_visible + 1)
    return list(range(start, end + 1))


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class DataGridEngine:
    """Derive the rows to display and own pagination/sort/selection state.

    Args:
        columns: Column descriptors.  Immutable for the engine's lifetime;
            use :meth:`set_columns` to swap them (which resets all state).
        id_key: Dot path of the record identifier.
        mode: ``GridMode.CLIENT`` or ``GridMode.SERVER``.  Fixed per instance.
        items_per_page: Initial page size (defaults to the config's).
        total_records: Server mode only: total matching rows on the server.
        config: Display switches; ``enable_sorting`` gates :meth:`toggle_sort`.
        state: Previously captured :meth:`snapshot` to resume from.
    """

    def __init__(
        self,
        columns: Iterable[TableColumn],
        *,
        id_key: str = "id",
        mode: GridMode | str = GridMode.CLIENT,
        items_per_page: int | None = None,
        total_records: int = 0,
        config: TableConfig | None = None,
        state: GridViewState | None = None,
    ) -> None:
        self.config = config or TableConfig()
        self.id_key = id_key
        self._columns: tuple[TableColumn, ...] = tuple(columns)
        self._events = EventEmitter(*GRID_EVENTS)
        self._entries: list[tuple[RowId, Row]] = []
        self._ids_by_object: dict[int, RowId] = {}

        if state is None:
            page_size = items_per_page or self.config.default_items_per_page
            if page_size <= 0:
                raise ValueError(f"items_per_page must be positive, got {page_size}")
            state = GridViewState(
                items_per_page=page_size,
                mode=GridMode(mode),
                total_records=max(0, total_records),
            )
        self.state = state

    # -- configuration ---------------------------------------------------

    @property
    def columns(self) -> tuple[TableColumn, ...]:
        return self._columns

    @property
    def mode(self) -> GridMode:
        return self.state.mode

    @property
    def is_server_mode(self) -> bool:
        return self.state.mode is GridMode.SERVER

    def column(self, key: str) -> TableColumn | None:
        for column in self._columns:
            if column.key == key:
                return column
        return None

    def set_columns(self, columns: Iterable[TableColumn]) -> None:
        """Replace the column list and reset every piece of view state."""
        self._columns = tuple(columns)
        self.state = GridViewState(
            items_per_page=self.config.default_items_per_page,
            mode=self.state.mode,
            total_records=self.state.total_records,
        )

    def subscribe(self, event: str, listener: Callable[[Any], Any]) -> Callable[[], None]:
        """Listen to one of :data:`GRID_EVENTS`; returns an unsubscribe callable."""
        return self._events.subscribe(event, listener)

    def snapshot(self) -> GridViewState:
        """Copy of the view state, safe to store between events."""
        return replace(self.state, selected_ids=set(self.state.selected_ids))

    # -- records -----------------------------------------------------------

    def set_records(
        self,
        records: Iterable[Row],
        total_records: int | None = None,
        *,
        preserve_view: bool = False,
    ) -> None:
        """Replace the backing array.

        Client mode jumps back to page 1 unless *preserve_view* is set
        (used when restoring a snapshot or refreshing in place), in which
        case a page past the new end is pulled back to the last one.
        Selected ids that no longer exist are dropped.
        """
        self._entries = [
            (self._resolve_id(record, index), record)
            for index, record in enumerate(records)
        ]
        self._ids_by_object = {id(record): row_id for row_id, record in self._entries}
        if total_records is not None:
            self.state.total_records = max(0, int(total_records))
        if not self.is_server_mode:
            page = max(1, min(self.state.current_page, self.total_pages)) if preserve_view else 1
            if page != self.state.current_page:
                self.state.current_page = page
                self._clear_selection()

        loaded = {row_id for row_id, _ in self._entries}
        self.state.selected_ids &= loaded
        self.state.select_all = self._page_fully_selected()

    @property
    def records(self) -> list[Row]:
        return [record for _, record in self._entries]

    def _resolve_id(self, record: Row, index: int) -> RowId:
        value = resolve_path(record, self.id_key)
        if value is None:
            return _MISSING_ID_TEMPLATE.format(index=index)
        return value

    def row_id(self, row: Row) -> RowId | None:
        """Identifier assigned to *row* by the last :meth:`set_records`."""
        row_id = self._ids_by_object.get(id(row))
        if row_id is not None:
            return row_id
        return resolve_path(row, self.id_key)

    # -- cell values -------------------------------------------------------

    def cell_value(self, row: Row, column: TableColumn) -> Any:
        """Display value: ``render`` output if present, else the raw value or ``""``."""
        if column.render is not None:
            return column.render(row)
        value = resolve_path(row, column.key)
        return "" if value is None else value

    def _sort_value(self, row: Row, column: TableColumn) -> Any:
        if column.render is not None:
            return column.render(row)
        return resolve_path(row, column.key)

    def badge_color(self, row: Row, column: TableColumn) -> BadgeColor:
        if column.badge_color is not None:
            return column.badge_color(row)
        return "info"

    def sort_indicator(self, column: TableColumn) -> str:
        """``"asc"``, ``"desc"`` or ``"both"`` (unsorted) for a header icon."""
        if self.state.sort_column != column.key or self.state.sort_direction is None:
            return "both"
        return self.state.sort_direction

    # -- derived views -----------------------------------------------------

    def _filtered_entries(self) -> list[tuple[RowId, Row]]:
        if self.is_server_mode:
            return list(self._entries)

        entries = list(self._entries)

        term = self.state.search_term.lower()
        if term:
            searchable = [c for c in self._columns if c.searchable]
            entries = [
                entry for entry in entries
                if any(
                    term in str(self.cell_value(entry[1], column)).lower()
                    for column in searchable
                )
            ]

        column = self.column(self.state.sort_column) if self.state.sort_column else None
        if (
            column is not None
            and column.sortable
            and self.config.enable_sorting
            and self.state.sort_direction is not None
        ):
            entries = sort_nulls_last(
                entries,
                key=lambda entry: self._sort_value(entry[1], column),
                direction=self.state.sort_direction,
            )

        return entries

    def _page_entries(self) -> list[tuple[RowId, Row]]:
        if self.is_server_mode:
            return list(self._entries)
        start = (self.state.current_page - 1) * self.state.items_per_page
        return self._filtered_entries()[start:start + self.state.items_per_page]

    @property
    def filtered_rows(self) -> list[Row]:
        return [record for _, record in self._filtered_entries()]

    @property
    def page_rows(self) -> list[Row]:
        return [record for _, record in self._page_entries()]

    @property
    def page_ids(self) -> list[RowId]:
        return [row_id for row_id, _ in self._page_entries()]

    @property
    def total_rows(self) -> int:
        if self.is_server_mode:
            return self.state.total_records
        return len(self._filtered_entries())

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_rows / self.state.items_per_page)

    @property
    def start_index(self) -> int:
        if self.total_rows == 0:
            return 0
        return (self.state.current_page - 1) * self.state.items_per_page + 1

    @property
    def end_index(self) -> int:
        return min(self.state.current_page * self.state.items_per_page, self.total_rows)

    def page_numbers(self, max_visible: int = 10) -> list[int]:
        return page_numbers(self.state.current_page, self.total_pages, max_visible)

    # -- intents -----------------------------------------------------------

    def set_search_term(self, term: str | None) -> None:
        """Client mode filters immediately; both modes emit ``search_change``."""
        self.state.search_term = term or ""
        if not self.is_server_mode:
            self.state.current_page = 1
            self.state.select_all = self._page_fully_selected()
        self._events.emit("search_change", self.state.search_term)

    def toggle_sort(self, column_key: str) -> None:
        """Cycle ``unsorted -> asc -> desc -> unsorted`` on a single column."""
        column = self.column(column_key)
        if column is None or not column.sortable or not self.config.enable_sorting:
            return

        if self.state.sort_column == column_key:
            if self.state.sort_direction == "asc":
                self.state.sort_direction = "desc"
            else:
                self.state.sort_column = None
                self.state.sort_direction = None
        else:
            self.state.sort_column = column_key
            self.state.sort_direction = "asc"

        self._events.emit(
            "sort_change",
            SortChange(column=self.state.sort_column, direction=self.state.sort_direction),
        )

    def set_page(self, page: int) -> None:
        """Go to *page*; out-of-range pages are ignored.  Clears the selection."""
        if not 1 <= page <= self.total_pages:
            return
        self.state.current_page = page
        self._clear_selection()
        self._events.emit("page_change", page)

    def set_items_per_page(self, items_per_page: int) -> None:
        if items_per_page <= 0:
            return
        self.state.items_per_page = items_per_page
        self.state.current_page = 1
        self._clear_selection()
        self._events.emit("items_per_page_change", items_per_page)

    def toggle_select_all(self, checked: bool) -> None:
        """Add or remove every row of the current page; other pages untouched."""
        page_ids = self.page_ids
        if checked:
            self.state.selected_ids.update(page_ids)
        else:
            self.state.selected_ids.difference_update(page_ids)
        self.state.select_all = bool(checked and page_ids)
        self._emit_selection()

    def toggle_row_selection(self, row_id: RowId, checked: bool) -> None:
        if row_id not in {entry_id for entry_id, _ in self._entries}:
            return
        if checked:
            self.state.selected_ids.add(row_id)
        else:
            self.state.selected_ids.discard(row_id)
        self.state.select_all = self._page_fully_selected()
        self._emit_selection()

    def is_selected(self, row: Row) -> bool:
        return self.row_id(row) in self.state.selected_ids

    @property
    def selected_rows(self) -> list[Row]:
        return [record for row_id, record in self._entries if row_id in self.state.selected_ids]

    def handle_action(self, action: TableAction, row: Row) -> None:
        """Run *action* for *row* unless its ``show`` predicate hides it."""
        if not action.is_shown(row):
            return
        action.action(row)
        self._events.emit("action_click", ActionClick(action=action.label, item=row))

    # -- internals ---------------------------------------------------------

    def _page_fully_selected(self) -> bool:
        page_ids = self.page_ids
        return bool(page_ids) and all(row_id in self.state.selected_ids for row_id in page_ids)

    def _clear_selection(self) -> None:
        had_selection = bool(self.state.selected_ids)
        self.state.selected_ids.clear()
        self.state.select_all = False
        if had_selection:
            self._emit_selection()

    def _emit_selection(self) -> None:
        self._events.emit("selection_change", self.selected_rows)
