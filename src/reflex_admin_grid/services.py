"""Resource-service contract and a polars-backed in-memory implementation.

A resource service is the only thing that talks to the outside world:
the engines emit intents, a host (:class:`~reflex_admin_grid.controller.CrudController`
or the Reflex mixins) turns them into :class:`ListParams` and awaits the
service.  Every call returns an :class:`ApiResponse` envelope and raises a
:class:`~reflex_admin_grid.errors.ResourceError` on failure.
"""

import asyncio
import math
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

import polars as pl

from reflex_admin_grid.errors import NotFoundError, ResourceError
from reflex_admin_grid.models import LoadOptions, OptionPage, RowId, SelectOption, SortDirection
from reflex_admin_grid.polars_utils import apply_search, apply_sort, dataframe_to_records


@dataclass
class ListParams:
    page: int = 1
    limit: int = 10
    search: str | None = None
    sort_by: str | None = None
    sort_order: SortDirection | None = None
    entity_id: str | None = None

    def to_query(self) -> dict[str, Any]:
        """Query-string parameters in the API's camelCase naming."""
        query: dict[str, Any] = {"page": self.page, "limit": self.limit}
        if self.search:
            query["search"] = self.search
        if self.sort_by and self.sort_order:
            query["sortBy"] = self.sort_by
            query["sortOrder"] = self.sort_order
        if self.entity_id:
            query["entityId"] = self.entity_id
        return query


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool

    @classmethod
    def from_counts(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if limit > 0 else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
            "hasNextPage": self.has_next_page,
            "hasPreviousPage": self.has_previous_page,
        }


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ApiResponse:
    """Uniform response envelope: ``{success, message, data, timestamp, path}``."""

    success: bool = True
    message: str = ""
    data: Any = None
    timestamp: str = field(default_factory=_now_iso)
    path: str = ""
    pagination: Pagination | None = None


class ResourceService(Protocol):
    async def list(self, params: ListParams) -> ApiResponse: ...

    async def get_by_id(self, id: RowId) -> ApiResponse: ...

    async def create(self, payload: Mapping[str, Any]) -> ApiResponse: ...

    async def update(self, id: RowId, payload: Mapping[str, Any]) -> ApiResponse: ...

    async def delete(self, id: RowId) -> ApiResponse: ...


class LazyFrameResourceService:
    """Serve one resource from a polars LazyFrame.

    Listing is lazy end to end: entity filter, search, row count via
    ``select(pl.len())``, sort and slice are pushed into one query and
    only the page slice is collected.  Mutations collect the frame,
    rebuild it and keep it in memory; they are meant for demos and
    tests, not for large files.

    Args:
        lf: Backing data.
        name: Resource name used in messages and response paths.
        id_key: Identifier column.
        search_fields: Columns searched by ``ListParams.search``
            (defaults to every column).
        entity_key: Column compared against ``ListParams.entity_id``.
        latency: Artificial delay (seconds) before every call, to make
            loading states visible in demos.
    """

    def __init__(
        self,
        lf: pl.LazyFrame | pl.DataFrame,
        *,
        name: str,
        id_key: str = "id",
        search_fields: list[str] | None = None,
        entity_key: str = "entityId",
        latency: float = 0.0,
    ) -> None:
        self._lf = lf.lazy()
        self.name = name
        self.id_key = id_key
        self.search_fields = search_fields
        self.entity_key = entity_key
        self.latency = latency

    @property
    def lazyframe(self) -> pl.LazyFrame:
        return self._lf

    def schema(self) -> pl.Schema:
        return self._lf.collect_schema()

    async def _delay(self) -> None:
        if self.latency > 0:
            await asyncio.sleep(self.latency)

    def _match_id(self, id: RowId) -> pl.Expr:
        return pl.col(self.id_key).cast(pl.String) == str(id)

    def _not_found(self, id: RowId) -> NotFoundError:
        return NotFoundError(
            f"Not Found: {self.name} {id!r} does not exist",
            status=404,
            body={"success": False, "error": f"Not Found: {self.name} {id!r} does not exist"},
        )

    # -- reads -------------------------------------------------------------

    async def list(self, params: ListParams) -> ApiResponse:
        await self._delay()
        if params.limit <= 0:
            raise ResourceError(f"Bad Request: limit must be positive, got {params.limit}", status=400)

        t0 = time.perf_counter()
        schema = self.schema()
        lf = self._lf
        if params.entity_id and self.entity_key in schema:
            lf = lf.filter(pl.col(self.entity_key).cast(pl.String) == str(params.entity_id))
        lf = apply_search(lf, params.search, self.search_fields, schema)
        total = lf.select(pl.len()).collect().item()
        lf = apply_sort(lf, params.sort_by, params.sort_order, schema)

        page = max(1, params.page)
        offset = (page - 1) * params.limit
        rows = dataframe_to_records(lf.slice(offset, params.limit).collect())

        elapsed_ms = (time.perf_counter() - t0) * 1000
        print(
            f"[ResourceService] {self.name} list: page={page}, rows={len(rows)}, "
            f"total={total:,}, elapsed={elapsed_ms:.1f}ms"
        )
        return ApiResponse(
            message=f"{self.name} retrieved successfully",
            data=rows,
            path=f"/{self.name}",
            pagination=Pagination.from_counts(page, params.limit, total),
        )

    async def get_by_id(self, id: RowId) -> ApiResponse:
        await self._delay()
        df = self._lf.filter(self._match_id(id)).head(1).collect()
        if df.height == 0:
            raise self._not_found(id)
        return ApiResponse(
            message=f"{self.name} retrieved successfully",
            data=dataframe_to_records(df)[0],
            path=f"/{self.name}/{id}",
        )

    # -- writes ------------------------------------------------------------

    def _next_id(self, df: pl.DataFrame) -> RowId:
        dtype = df.schema.get(self.id_key)
        if dtype is not None and dtype.is_integer():
            current = df.get_column(self.id_key).max()
            return 1 if current is None else int(current) + 1
        return str(uuid.uuid4())

    def _replace(self, df: pl.DataFrame, rows: "list[dict[str, Any]]") -> None:
        if rows:
            self._lf = pl.DataFrame(rows, infer_schema_length=None).lazy()
        else:
            self._lf = pl.DataFrame(schema=df.schema).lazy()

    async def create(self, payload: Mapping[str, Any]) -> ApiResponse:
        await self._delay()
        df = self._lf.collect()
        record = dict(payload)
        if record.get(self.id_key) in (None, ""):
            record[self.id_key] = self._next_id(df)
        rows = df.to_dicts()
        rows.append(record)
        self._replace(df, rows)
        print(f"[ResourceService] {self.name} create: id={record[self.id_key]!r}")
        return ApiResponse(
            message=f"{self.name} created successfully",
            data=record,
            path=f"/{self.name}",
        )

    async def update(self, id: RowId, payload: Mapping[str, Any]) -> ApiResponse:
        await self._delay()
        df = self._lf.collect()
        rows = df.to_dicts()
        for row in rows:
            if str(row.get(self.id_key)) == str(id):
                row.update({k: v for k, v in payload.items() if k != self.id_key})
                updated = row
                break
        else:
            raise self._not_found(id)
        self._replace(df, rows)
        print(f"[ResourceService] {self.name} update: id={id!r}")
        return ApiResponse(
            message=f"{self.name} updated successfully",
            data=updated,
            path=f"/{self.name}/{id}",
        )

    async def delete(self, id: RowId) -> ApiResponse:
        await self._delay()
        df = self._lf.collect()
        remaining = df.filter(~self._match_id(id))
        if remaining.height == df.height:
            raise self._not_found(id)
        self._lf = remaining.lazy()
        print(f"[ResourceService] {self.name} delete: id={id!r}")
        return ApiResponse(message=f"{self.name} deleted successfully", path=f"/{self.name}/{id}")


def options_loader(
    service: ResourceService,
    label_key: str,
    value_key: str = "id",
    **extra: Any,
) -> LoadOptions:
    """Build a paginated-select ``load_options`` callable over *service*.

    *extra* is forwarded to :class:`ListParams` (e.g. ``entity_id=...``).
    """

    async def load_options(page: int, limit: int, search: str | None) -> OptionPage:
        response = await service.list(ListParams(page=page, limit=limit, search=search, **extra))
        options = [
            SelectOption(value=row[value_key], label=str(row.get(label_key, row[value_key])))
            for row in response.data or []
        ]
        pagination = response.pagination
        if pagination is None:
            return OptionPage(options=options, has_more=False, total=len(options))
        return OptionPage(options=options, has_more=pagination.has_next_page, total=pagination.total)

    return load_options
