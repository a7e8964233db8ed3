"""Utilities for browsing polars LazyFrames through the admin table."""

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import polars as pl

from reflex_admin_grid.formatting import format_date_medium
from reflex_admin_grid.models import ColumnType, TableColumn

SUPPORTED_SUFFIXES: tuple[str, ...] = (
    ".parquet", ".pq", ".csv", ".tsv", ".json", ".ndjson", ".jsonl", ".ipc", ".arrow", ".feather",
)


# ---------------------------------------------------------------------------
# File scanner
# ---------------------------------------------------------------------------

def scan_file(path: Path | str) -> pl.LazyFrame:
    """Scan a data file into a LazyFrame, picking the reader from the extension.

    * ``.parquet`` / ``.pq`` -- ``pl.scan_parquet()``.
    * ``.csv`` -- ``pl.scan_csv()``.
    * ``.tsv`` -- ``pl.scan_csv(separator="\\t")``.
    * ``.json`` -- ``pl.read_json().lazy()`` (no streaming scan).
    * ``.ndjson`` / ``.jsonl`` -- ``pl.scan_ndjson()``.
    * ``.ipc`` / ``.arrow`` / ``.feather`` -- ``pl.scan_ipc()``.

    Args:
        path: Path to the data file.

    Returns:
        The lazy scan; nothing is read beyond metadata.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError: If the file extension is not recognised.
    """
    path = Path(path).resolve()
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    suffix = path.suffix.lower()

    if suffix in (".parquet", ".pq"):
        return pl.scan_parquet(path)
    if suffix == ".csv":
        return pl.scan_csv(path)
    if suffix == ".tsv":
        return pl.scan_csv(path, separator="\t")
    if suffix == ".json":
        return pl.read_json(path).lazy()
    if suffix in (".ndjson", ".jsonl"):
        return pl.scan_ndjson(path)
    if suffix in (".ipc", ".arrow", ".feather"):
        return pl.scan_ipc(path)

    raise ValueError(
        f"Unsupported file extension: {suffix!r}. Supported: {', '.join(SUPPORTED_SUFFIXES)}"
    )


# ---------------------------------------------------------------------------
# Column inference
# ---------------------------------------------------------------------------

def _humanize_field_name(field: str) -> str:
    """``"first_name"`` -> ``"First Name"``, ``"__row_id__"`` -> ``"Row Id"``."""
    return field.strip("_").replace("_", " ").title()


def _is_string_like(dtype: pl.DataType) -> bool:
    return isinstance(dtype, (pl.String, pl.Categorical, pl.Enum))


def _is_temporal(dtype: pl.DataType) -> bool:
    return isinstance(dtype, (pl.Date, pl.Datetime))


def column_type_for_dtype(dtype: pl.DataType) -> ColumnType:
    """Booleans render as checkboxes; everything else as text."""
    if isinstance(dtype, pl.Boolean):
        return "checkbox"
    return "text"


def _date_renderer(key: str):
    def render(row: Any) -> str:
        return format_date_medium(row.get(key))

    return render


def build_table_columns_from_schema(
    schema: pl.Schema,
    *,
    id_field: str | None = None,
    show_id_field: bool = False,
    labels: dict[str, str] | None = None,
) -> list[TableColumn]:
    """Infer :class:`TableColumn` descriptors from a schema, without collecting.

    Args:
        schema: A polars ``Schema`` (e.g. ``lf.collect_schema()``).
        id_field: Column holding the row identifier; hidden unless
            *show_id_field* is set.
        show_id_field: Keep the *id_field* column in the result.
        labels: Optional ``{column: header}`` overrides of the humanised
            column names.

    Returns:
        One column per schema entry.  Only string-like columns are
        searchable; date columns render as ``"Jan 5, 2025"``.
    """
    labels = labels or {}
    columns: list[TableColumn] = []
    for name, dtype in schema.items():
        if not show_id_field and name == id_field:
            continue
        columns.append(
            TableColumn(
                key=name,
                label=labels.get(name, _humanize_field_name(name)),
                type=column_type_for_dtype(dtype),
                searchable=_is_string_like(dtype),
                align="right" if dtype.is_numeric() else None,
                render=_date_renderer(name) if _is_temporal(dtype) else None,
            )
        )
    return columns


# ---------------------------------------------------------------------------
# Server-side search and sort
# ---------------------------------------------------------------------------

def _col_to_str_expr(col: pl.Expr, dtype: pl.DataType) -> pl.Expr:
    """Cast a column to String; list and array columns are joined with ``","``."""
    if isinstance(dtype, (pl.List, pl.Array)):
        return col.cast(pl.List(pl.String)).list.join(",")
    return col.cast(pl.String)


def search_expr(term: str, fields: Iterable[str], schema: pl.Schema) -> pl.Expr | None:
    """Case-insensitive literal substring match over any of *fields*."""
    needle = term.strip().lower()
    if not needle:
        return None
    exprs = [
        _col_to_str_expr(pl.col(name), schema[name])
        .str.to_lowercase()
        .str.contains(needle, literal=True)
        for name in fields
        if name in schema
    ]
    if not exprs:
        return None
    return pl.any_horizontal(exprs)


def apply_search(
    lf: pl.LazyFrame,
    term: str | None,
    fields: Iterable[str] | None = None,
    schema: pl.Schema | None = None,
) -> pl.LazyFrame:
    """Filter *lf* to rows where some field contains *term* -- **no collect**.

    Args:
        lf: The LazyFrame to filter.
        term: Search term; blank terms return *lf* unchanged.
        fields: Columns to search; defaults to every column.
        schema: Schema of *lf* when the caller already has it.
    """
    if not term or not term.strip():
        return lf
    if schema is None:
        schema = lf.collect_schema()
    expr = search_expr(term, fields if fields is not None else schema.names(), schema)
    if expr is None:
        return lf
    return lf.filter(expr)


def apply_sort(
    lf: pl.LazyFrame,
    column: str | None,
    direction: str | None,
    schema: pl.Schema | None = None,
) -> pl.LazyFrame:
    """Single-column sort with nulls last in both directions -- **no collect**.

    Unknown columns and a missing direction leave *lf* unchanged.
    """
    if not column or direction not in ("asc", "desc"):
        return lf
    if schema is None:
        schema = lf.collect_schema()
    if column not in schema:
        return lf
    return lf.sort(column, descending=direction == "desc", nulls_last=True, maintain_order=True)


# ---------------------------------------------------------------------------
# Materialisation
# ---------------------------------------------------------------------------

def dataframe_to_records(df: pl.DataFrame) -> list[dict[str, Any]]:
    """Convert a DataFrame to a list of JSON-safe dicts.

    * Temporal columns (Date, Datetime, Time, Duration) -> ISO-8601 strings.
    * List / Array columns -> comma-joined strings.
    * Struct columns -> cast to String.

    Other types are left as-is (``to_dicts()`` already returns
    Python-native scalars for numeric / string / bool).
    """
    exprs: list[pl.Expr] = []
    needs_cast = False
    for name, dtype in df.schema.items():
        if isinstance(dtype, (pl.Date, pl.Datetime, pl.Time, pl.Duration, pl.Struct)):
            exprs.append(pl.col(name).cast(pl.String))
            needs_cast = True
        elif isinstance(dtype, (pl.List, pl.Array)):
            exprs.append(pl.col(name).cast(pl.List(pl.String)).list.join(","))
            needs_cast = True
        else:
            exprs.append(pl.col(name))

    if not needs_cast:
        return df.to_dicts()
    return df.select(exprs).to_dicts()
