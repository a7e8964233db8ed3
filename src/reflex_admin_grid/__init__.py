"""reflex-admin-grid – headless data-table and dynamic-form engines with Reflex bindings.

Install the package::

    pip install reflex-admin-grid

The engines (:class:`DataGridEngine`, :class:`DynamicFormEngine`) are
pure Python and can be driven from any host; :class:`DataTableMixin`
and :class:`FormModalMixin` render them in a Reflex app.
"""

from reflex_admin_grid.async_utils import Debouncer, RequestSequencer
from reflex_admin_grid.controller import CrudController
from reflex_admin_grid.data_table import DataTableMixin, TableSpec, data_table, data_table_pagination
from reflex_admin_grid.errors import (
    AdminGridError,
    AuthError,
    ErrorMessage,
    FieldConfigError,
    NetworkError,
    NotFoundError,
    ResourceError,
    extract_error_message,
)
from reflex_admin_grid.form_engine import DynamicFormEngine, FormControl
from reflex_admin_grid.form_modal import FormModalMixin, form_modal
from reflex_admin_grid.formatting import format_date_medium, pluralize
from reflex_admin_grid.grid_engine import DataGridEngine, page_numbers, resolve_path, sort_nulls_last
from reflex_admin_grid.models import (
    ColumnDef,
    Conditional,
    FieldConfig,
    FieldType,
    FormConfig,
    FormMode,
    GridMode,
    GridViewState,
    Module,
    OptionPage,
    PaginatedSelectConfig,
    PermissionsConfig,
    SelectOption,
    TableAction,
    TableColumn,
    TableConfig,
    Validator,
)
from reflex_admin_grid.paginated_select import PaginatedSelect
from reflex_admin_grid.permissions import Permission, PermissionsMatrix
from reflex_admin_grid.polars_utils import (
    apply_search,
    apply_sort,
    build_table_columns_from_schema,
    dataframe_to_records,
    scan_file,
)
from reflex_admin_grid.services import (
    ApiResponse,
    LazyFrameResourceService,
    ListParams,
    Pagination,
    ResourceService,
    options_loader,
)
from reflex_admin_grid import validators
