"""Column, action, table and form descriptors shared by the engines and the UI layer."""

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Literal

from reflex.components.props import PropsBase

Row = Mapping[str, Any]
RowId = str | int

BadgeColor = Literal["success", "warning", "error", "info"]
ColumnType = Literal["text", "badge", "custom", "checkbox"]
SortDirection = Literal["asc", "desc"]


class GridMode(str, Enum):
    """Where filtering, sorting and pagination happen."""

    CLIENT = "client"
    SERVER = "server"


class FormMode(str, Enum):
    CREATE = "create"
    UPDATE = "update"


class FieldType(str, Enum):
    """Input types understood by the form engine."""

    TEXT = "text"
    EMAIL = "email"
    PASSWORD = "password"
    NUMBER = "number"
    TEL = "tel"
    URL = "url"
    TEXTAREA = "textarea"
    SELECT = "select"
    PAGINATED_SELECT = "paginated-select"
    CHECKBOX = "checkbox"
    DATE = "date"
    TIME = "time"
    PERMISSIONS = "permissions"


class ColumnDef(PropsBase):
    """Serialisable column header definition sent to the browser.

    Attributes are automatically converted from snake_case to camelCase
    when serialized to JavaScript props via PropsBase.
    """

    field: str
    header_name: str | None = None
    type: ColumnType = "text"
    sortable: bool = True
    searchable: bool = True
    width: str | None = None
    align: Literal["left", "center", "right"] | None = None


# ---------------------------------------------------------------------------
# Table descriptors
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TableColumn:
    """Static configuration of one table column.

    Attributes:
        key: Dot path into a record, e.g. ``"entity.name"``.
        label: Header text.
        sortable: Whether clicking the header cycles the sort.
        searchable: Whether the column takes part in client-side search.
        type: How the cell is rendered (``"badge"`` uses *badge_color*).
        render: Optional pure function ``row -> display string``.  When
            present its output is used for display, search and sort.
        badge_color: Optional pure function ``row -> BadgeColor``.
    """

    key: str
    label: str
    sortable: bool = True
    searchable: bool = True
    type: ColumnType = "text"
    width: str | None = None
    align: Literal["left", "center", "right"] | None = None
    render: Callable[[Row], str] | None = None
    badge_color: Callable[[Row], BadgeColor] | None = None

    def to_column_def(self) -> ColumnDef:
        return ColumnDef(
            field=self.key,
            header_name=self.label,
            type=self.type,
            sortable=self.sortable,
            searchable=self.searchable,
            width=self.width,
            align=self.align,
        )


@dataclass(frozen=True)
class TableAction:
    """A per-row action button (edit, delete, ...)."""

    label: str
    action: Callable[[Row], Any]
    variant: Literal["default", "error", "warning", "success"] = "default"
    show: Callable[[Row], bool] | None = None

    def is_shown(self, row: Row) -> bool:
        return self.show is None or bool(self.show(row))


@dataclass(frozen=True)
class TableConfig:
    """Display switches for a table; defaults mirror the admin dashboard."""

    title: str | None = None
    show_search: bool = True
    show_pagination: bool = True
    show_items_per_page: bool = True
    show_select_all: bool = True
    show_download: bool = False
    search_placeholder: str = "Search..."
    items_per_page_options: tuple[int, ...] = (10, 20, 50)
    default_items_per_page: int = 10
    empty_message: str = "No data available"
    enable_sorting: bool = True
    enable_selection: bool = True

    def merged(self, **overrides: Any) -> "TableConfig":
        """Return a copy with *overrides* applied (unknown keys raise ``TypeError``)."""
        return replace(self, **overrides)


@dataclass
class GridViewState:
    """Mutable view state owned by one :class:`DataGridEngine`."""

    search_term: str = ""
    sort_column: str | None = None
    sort_direction: SortDirection | None = None
    current_page: int = 1
    items_per_page: int = 10
    selected_ids: set[RowId] = field(default_factory=set)
    select_all: bool = False
    mode: GridMode = GridMode.CLIENT
    total_records: int = 0


@dataclass(frozen=True)
class SortChange:
    column: str | None
    direction: SortDirection | None


@dataclass(frozen=True)
class ActionClick:
    action: str
    item: Row


# ---------------------------------------------------------------------------
# Form descriptors
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SelectOption:
    value: str | int
    label: str
    disabled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "label": self.label, "disabled": self.disabled}


@dataclass(frozen=True)
class OptionPage:
    """One page of options returned by a paginated-select loader."""

    options: list[SelectOption]
    has_more: bool
    total: int | None = None


LoadOptions = Callable[[int, int, str | None], Awaitable[OptionPage]]


@dataclass(frozen=True)
class PaginatedSelectConfig:
    """Async option source for a ``paginated-select`` field.

    Attributes:
        load_options: ``async (page, limit, search) -> OptionPage``.
        items_per_page: Page size passed to *load_options*.
        allow_create: Show the "create new" entry.
        create_value: Sentinel value emitted for the "create new" entry.
        on_create_click: Called when the user picks "create new"; the host
            opens its nested creation flow and later patches the new value in.
        debounce_seconds: Settle time before a typed search term fires.
    """

    load_options: LoadOptions
    items_per_page: int = 10
    show_search: bool = True
    search_placeholder: str = "Search..."
    allow_create: bool = False
    create_label: str = "Create New"
    create_value: str = "__create_new__"
    on_create_click: Callable[[], Any] | None = None
    debounce_seconds: float = 0.3


@dataclass(frozen=True)
class Module:
    """A permission-bearing application module."""

    id: str
    name: str


@dataclass(frozen=True)
class PermissionsConfig:
    modules: tuple[Module, ...] = ()


@dataclass(frozen=True)
class Validator:
    """A pure predicate plus the message shown when it fails.

    *message* is either a fixed string or a callable receiving the field label.
    """

    name: str
    check: Callable[[Any], bool]
    message: str | Callable[[str], str] = "Invalid value"

    def format_message(self, label: str) -> str:
        if callable(self.message):
            return self.message(label)
        return self.message


@dataclass(frozen=True)
class Conditional:
    """Show a field only while ``condition(value_of(depends_on))`` is true."""

    depends_on: str
    condition: Callable[[Any], bool]


@dataclass(frozen=True)
class FieldConfig:
    """Static configuration of one form field."""

    key: str
    label: str
    type: FieldType = FieldType.TEXT
    placeholder: str | None = None
    required: bool = False
    disabled: bool = False
    default_value: Any = None
    validators: tuple[Validator, ...] = ()
    options: tuple[SelectOption, ...] | None = None
    paginated_select: PaginatedSelectConfig | None = None
    permissions: PermissionsConfig | None = None
    hint: str | None = None
    error_message: str | None = None
    grid_cols: int = 12
    order: int = 0
    conditional: Conditional | None = None


@dataclass
class FormConfig:
    """A complete form: its fields plus the submission callbacks."""

    title: str
    fields: Sequence[FieldConfig]
    on_submit: Callable[[dict[str, Any]], Awaitable[Any]]
    subtitle: str | None = None
    submit_label: str = "Save"
    cancel_label: str = "Cancel"
    mode: FormMode = FormMode.CREATE
    initial_data: Mapping[str, Any] | None = None
    on_success: Callable[[Any], Any] | None = None
    on_error: Callable[[Any], Any] | None = None
