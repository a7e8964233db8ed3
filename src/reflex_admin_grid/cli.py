"""CLI for reflex-admin-grid -- browse tabular files in the admin table.

Usage::

    # Browse a CSV / TSV / Parquet file with server-side paging
    reflex-admin-grid view data.csv

    # Bigger pages, custom title and port
    reflex-admin-grid view big_file.parquet --page-size 50 --title "Meters" --port 3001

    # Print the inferred columns and the row count
    reflex-admin-grid columns data.parquet
"""

import os
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Annotated, Optional

import polars as pl
import typer

from reflex_admin_grid.polars_utils import build_table_columns_from_schema, scan_file

app = typer.Typer(
    name="reflex-admin-grid",
    help="Browse tabular data files in a paginated, searchable admin table.",
    no_args_is_help=True,
)


def _build_app_code(
    file_path: Path,
    limit: int | None,
    page_size: int,
    title: str,
) -> str:
    """Generate the Reflex app module source code.

    The generated state serves the file through a
    ``LazyFrameResourceService`` in server mode, so only one page is
    ever collected.
    """
    abs_path = str(file_path.resolve())
    # Escape backslashes and quotes for embedding in Python string literal
    safe_path = abs_path.replace("\\", "\\\\").replace('"', '\\"')
    safe_title = title.replace("\\", "\\\\").replace('"', '\\"')

    head = f".head({limit})" if limit else ""

    template = _APP_TEMPLATE
    template = template.replace("__FILENAME__", file_path.name)
    template = template.replace("__SAFE_PATH__", safe_path)
    template = template.replace("__HEAD__", head)
    template = template.replace("__TITLE__", safe_title)
    template = template.replace("__PAGE_SIZE__", str(page_size))
    return template


# ---------------------------------------------------------------------------
# App template -- uses __PLACEHOLDER__ tokens for dynamic parts.
# ---------------------------------------------------------------------------

_APP_TEMPLATE = '''"""Auto-generated viewer app for: __FILENAME__"""

from pathlib import Path

import reflex as rx

from reflex_admin_grid import (
    DataTableMixin,
    GridMode,
    LazyFrameResourceService,
    TableConfig,
    TableSpec,
    build_table_columns_from_schema,
    data_table,
    scan_file,
)

_LF = scan_file(Path("__SAFE_PATH__"))__HEAD__.with_row_index("__row_id__")
_SERVICE = LazyFrameResourceService(_LF, name="rows", id_key="__row_id__")
_COLUMNS = build_table_columns_from_schema(_LF.collect_schema(), id_field="__row_id__")
_PAGE_SIZE = __PAGE_SIZE__


class ViewerState(DataTableMixin, rx.State):
    """Viewer state serving the file page by page."""

    def get_table_spec(self) -> TableSpec:
        return TableSpec(
            columns=_COLUMNS,
            service=_SERVICE,
            mode=GridMode.SERVER,
            id_key="__row_id__",
            config=TableConfig(
                title="__TITLE__",
                default_items_per_page=_PAGE_SIZE,
                items_per_page_options=tuple(sorted({10, 20, 50, _PAGE_SIZE})),
                enable_selection=False,
            ),
        )


def index() -> rx.Component:
    return rx.box(
        data_table(ViewerState),
        padding="2em",
        max_width="1400px",
        margin="0 auto",
    )


app = rx.App()
app.add_page(index, on_load=ViewerState.load_dt_table)
'''


@app.command()
def view(
    file: Annotated[Path, typer.Argument(help="Path to the data file (CSV, TSV, Parquet, JSON, NDJSON, IPC)")],
    limit: Annotated[Optional[int], typer.Option("--limit", "-n", help="Only browse the first N rows")] = None,
    page_size: Annotated[int, typer.Option("--page-size", "-s", help="Rows per page", min=1)] = 10,
    port: Annotated[int, typer.Option("--port", "-p", help="Port for the Reflex frontend")] = 3000,
    title: Annotated[Optional[str], typer.Option("--title", "-t", help="Table title")] = None,
) -> None:
    """Browse a data file in the admin table.

    Search, sort and pagination run server-side on a polars LazyFrame.
    """
    file = file.resolve()
    if not file.exists():
        typer.echo(f"Error: file not found: {file}", err=True)
        raise typer.Exit(code=1)

    try:
        scan_file(file)
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    if title is None:
        title = f"{file.name} -- Admin Grid"

    app_code = _build_app_code(file, limit, page_size, title)

    # Create a temporary Reflex app directory.
    tmp_dir = Path(tempfile.mkdtemp(prefix="admin_grid_viewer_"))
    app_name = "viewer_app"
    app_pkg = tmp_dir / app_name
    app_pkg.mkdir()
    (app_pkg / "__init__.py").write_text("")
    (app_pkg / f"{app_name}.py").write_text(app_code)

    rxconfig_code = f"""import reflex as rx
config = rx.Config(app_name="{app_name}", frontend_port={port})
"""
    (tmp_dir / "rxconfig.py").write_text(rxconfig_code)

    typer.echo(f"Launching viewer for: {file}")
    typer.echo(f"Limit: {limit or 'all'} | Page size: {page_size} | Port: {port}")

    os.chdir(tmp_dir)

    # reflex's CLI calls sys.exit() on completion, hence the subprocess.
    typer.echo("Initializing Reflex project...")
    subprocess.run(
        [sys.executable, "-m", "reflex", "init"],
        cwd=str(tmp_dir),
        check=True,
    )

    typer.echo("Starting viewer...")
    os.execvp(sys.executable, [sys.executable, "-m", "reflex", "run"])


@app.command()
def columns(
    file: Annotated[Path, typer.Argument(help="Path to the data file")],
) -> None:
    """Print the columns the table would show, and the row count."""
    try:
        lf = scan_file(file)
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    schema = lf.collect_schema()
    for column in build_table_columns_from_schema(schema, show_id_field=True):
        flags = []
        if column.searchable:
            flags.append("searchable")
        if column.sortable:
            flags.append("sortable")
        typer.echo(f"{column.key}\t{column.label}\t{schema[column.key]}\t{column.type}\t{','.join(flags)}")

    rows = lf.select(pl.len()).collect().item()
    typer.echo(f"{rows:,} rows")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
