"""Page-level host binding a server-mode grid and its forms to a resource service."""

import asyncio
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from reflex_admin_grid.async_utils import Debouncer, RequestSequencer
from reflex_admin_grid.errors import extract_error_message
from reflex_admin_grid.form_engine import DynamicFormEngine
from reflex_admin_grid.grid_engine import DataGridEngine
from reflex_admin_grid.models import (
    FieldConfig,
    FormMode,
    GridMode,
    RowId,
    TableColumn,
    TableConfig,
)
from reflex_admin_grid.services import ApiResponse, ListParams, ResourceService

_SEARCH_DELAY_SECONDS: float = 0.5


class CrudController:
    """List, create, edit and delete one resource.

    The controller listens to the grid engine's intents and turns them
    into ``service.list`` calls.  Page, page-size and sort changes fetch
    right away; search changes wait for :attr:`search_delay` seconds of
    quiet and restart at page 1.  Responses are applied
    latest-request-wins, so a slow response for an old search term never
    overwrites a newer one.

    Must be used from inside a running event loop.

    Args:
        service: The resource service to talk to.
        columns: Table columns.
        id_key: Identifier field of the resource.
        config: Table display switches.
        search_delay: Debounce window for the search box.
        on_error: Called with the exception of every failed service call.
    """

    def __init__(
        self,
        service: ResourceService,
        columns: Iterable[TableColumn],
        *,
        id_key: str = "id",
        config: TableConfig | None = None,
        search_delay: float = _SEARCH_DELAY_SECONDS,
        on_error: Callable[[Exception], Any] | None = None,
    ) -> None:
        self.service = service
        self.engine = DataGridEngine(columns, id_key=id_key, mode=GridMode.SERVER, config=config)
        self.on_error = on_error
        self.loading = False
        self.error: Exception | None = None
        self.entity_id: str | None = None
        self.form: DynamicFormEngine | None = None
        self.editing_id: RowId | None = None
        self._closed = False
        self._sequencer = RequestSequencer()
        self._search = Debouncer(search_delay, self._apply_search)
        self._tasks: set[asyncio.Task] = set()
        self._unsubscribers = [
            self.engine.subscribe("page_change", self._schedule_refresh),
            self.engine.subscribe("items_per_page_change", self._schedule_refresh),
            self.engine.subscribe("sort_change", self._schedule_refresh),
            self.engine.subscribe("search_change", self._search.trigger),
        ]

    # -- listing -----------------------------------------------------------

    def list_params(self) -> ListParams:
        state = self.engine.state
        return ListParams(
            page=state.current_page,
            limit=state.items_per_page,
            search=state.search_term or None,
            sort_by=state.sort_column,
            sort_order=state.sort_direction,
            entity_id=self.entity_id,
        )

    async def refresh(self) -> ApiResponse | None:
        """Fetch the current page; returns ``None`` if failed or superseded."""
        if self._closed:
            return None
        token = self._sequencer.next()
        params = self.list_params()
        self.loading = True
        t0 = time.perf_counter()
        try:
            response = await self.service.list(params)
        except Exception as exc:
            if self._sequencer.is_current(token) and not self._closed:
                self.loading = False
                self._report(exc)
            return None

        if self._closed or not self._sequencer.is_current(token):
            print(f"[CrudController] discarded stale response: page={params.page}, search={params.search!r}")
            return None

        self.loading = False
        self.error = None
        rows = response.data or []
        total = response.pagination.total if response.pagination is not None else len(rows)
        self.engine.set_records(rows, total)
        print(
            f"[CrudController] refresh: page={params.page}, rows={len(rows)}, "
            f"total={total:,}, elapsed={(time.perf_counter() - t0) * 1000:.1f}ms"
        )
        return response

    def _schedule_refresh(self, _payload: Any = None) -> None:
        if self._closed:
            return
        task = asyncio.get_running_loop().create_task(self.refresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _apply_search(self, _term: str) -> None:
        self.engine.state.current_page = 1
        await self.refresh()

    async def wait_idle(self) -> None:
        """Wait for the pending search debounce and scheduled refreshes."""
        await self._search.wait()
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def entity_filter(self, entity_id: str | None) -> ApiResponse | None:
        """Restrict the list to one entity; ``None`` shows everything."""
        self.entity_id = entity_id or None
        self.engine.state.current_page = 1
        self.engine.state.selected_ids.clear()
        self.engine.state.select_all = False
        return await self.refresh()

    # -- forms -------------------------------------------------------------

    def _attach(self, form: DynamicFormEngine, row_id: RowId | None) -> DynamicFormEngine:
        if self.form is not None and self.form is not form:
            self.form.close()
        self.form = form
        self.editing_id = row_id
        form.subscribe("submit_error", self._report)
        return form

    def open_create(
        self,
        fields: Iterable[FieldConfig],
    ) -> DynamicFormEngine:
        form = DynamicFormEngine().build(fields, mode=FormMode.CREATE)
        return self._attach(form, None)

    async def open_edit(
        self,
        row_id: RowId,
        fields: Iterable[FieldConfig],
    ) -> DynamicFormEngine | None:
        """Open an update form and fill it from ``service.get_by_id``.

        The form is disabled externally while the record loads.  On
        failure the error is reported and the form is discarded.
        """
        fields = list(fields)
        form = self._attach(DynamicFormEngine().build(fields, mode=FormMode.UPDATE), row_id)
        form.set_disabled_externally(True)
        try:
            response = await self.service.get_by_id(row_id)
        except Exception as exc:
            form.set_disabled_externally(False)
            if self.form is form:
                self.form = None
                self.editing_id = None
            self._report(exc)
            return None

        if self.form is not form:
            return None
        form.build(fields, response.data, FormMode.UPDATE)
        return form

    async def save(self) -> ApiResponse | None:
        """Submit the open form as a create or an update, then refresh."""
        form = self.form
        if form is None:
            return None
        editing_id = self.editing_id

        async def handler(values: Mapping[str, Any]) -> ApiResponse:
            if form.mode is FormMode.UPDATE:
                return await self.service.update(editing_id, values)
            return await self.service.create(values)

        response = await form.submit(handler)
        if response is None:
            return None
        if self.form is form:
            form.close()
            self.form = None
            self.editing_id = None
        await self.refresh()
        return response

    def close_form(self) -> bool:
        if self.form is None:
            return True
        if not self.form.close():
            return False
        self.form = None
        self.editing_id = None
        return True

    async def delete(self, row_id: RowId) -> bool:
        """Delete one record and refresh; steps back a page if it emptied."""
        try:
            await self.service.delete(row_id)
        except Exception as exc:
            self._report(exc)
            return False
        await self.refresh()
        state = self.engine.state
        if not self.engine.page_rows and state.current_page > 1:
            state.current_page -= 1
            await self.refresh()
        return True

    # -- teardown ----------------------------------------------------------

    def close(self) -> None:
        """Cancel the search debounce and drop every in-flight response."""
        self._closed = True
        self._search.close()
        self._sequencer.invalidate()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        for task in list(self._tasks):
            task.cancel()
        if self.form is not None:
            for select in self.form.selects.values():
                select.close()
        self.loading = False

    def _report(self, exc: Exception) -> None:
        self.error = exc
        message = extract_error_message(exc)
        print(f"[CrudController] error: {message.title}" + (f" ({message.message})" if message.message else ""))
        if self.on_error is not None:
            self.on_error(exc)
