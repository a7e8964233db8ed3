"""Incrementally loaded select: option cache, search debounce, "create new" flow."""

from collections.abc import Iterable
from typing import Any

from reflex_admin_grid.async_utils import Debouncer, RequestSequencer
from reflex_admin_grid.models import PaginatedSelectConfig, SelectOption

_NO_SEARCH_YET = object()


def merge_options(
    existing: Iterable[SelectOption],
    incoming: Iterable[SelectOption],
) -> list[SelectOption]:
    """Append *incoming* after *existing* without duplicate values.

    A value seen again keeps its first position but takes the newer label.
    """
    merged: list[SelectOption] = []
    index_by_value: dict[Any, int] = {}
    for option in [*existing, *incoming]:
        position = index_by_value.get(option.value)
        if position is None:
            index_by_value[option.value] = len(merged)
            merged.append(option)
        else:
            merged[position] = option
    return merged


class PaginatedSelect:
    """Fetch state of one ``paginated-select`` field.

    The option list is an append-only cache filled page by page.  A new
    search term, or an externally injected value that is not in the
    cache, throws the cache away and restarts at page 1.  An injected
    value that came with a label (a record the host just created) is
    spliced in at position 0 of that next page-1 load so its label stays
    visible even if the server sorts it elsewhere.

    Responses are applied latest-request-wins: a response arriving after
    a newer request was issued, or after :meth:`close`, is dropped.
    """

    def __init__(
        self,
        config: PaginatedSelectConfig,
        value: Any = None,
        *,
        label: str | None = None,
    ) -> None:
        self.config = config
        self.options: list[SelectOption] = []
        self.current_page = 1
        self.has_more = False
        self.loading = False
        self.is_open = False
        self.search_term = ""
        self.selected_value: Any = value
        self.selected_label: str = label or ""
        self.error: Exception | None = None
        self.needs_reload = False
        self._pending_created: SelectOption | None = None
        self._last_search: Any = _NO_SEARCH_YET
        self._closed = False
        self._sequencer = RequestSequencer()
        self._debouncer = Debouncer(config.debounce_seconds, self.search_now)

    @property
    def closed(self) -> bool:
        return self._closed

    # -- fetching ----------------------------------------------------------

    async def load_options(self) -> None:
        """Fetch :attr:`current_page` and merge it into the cache."""
        if self._closed:
            return
        token = self._sequencer.next()
        page = self.current_page
        search = self.search_term or None
        self.loading = True
        self.error = None
        try:
            result = await self.config.load_options(page, self.config.items_per_page, search)
        except Exception as exc:
            print(f"[PaginatedSelect] load failed: page={page}, search={search!r}: {exc}")
            if self._sequencer.is_current(token) and not self._closed:
                self.error = exc
                self.loading = False
                if page > 1:
                    self.current_page = page - 1
            return

        if self._closed or not self._sequencer.is_current(token):
            return

        self.loading = False
        self.needs_reload = False
        if page == 1:
            self.options = self._splice_pending(merge_options([], result.options))
        else:
            self.options = merge_options(self.options, result.options)
        self.has_more = result.has_more
        self._refresh_selected_label(page)

    async def load_more(self) -> None:
        if self._closed or not self.has_more or self.loading:
            return
        self.current_page += 1
        await self.load_options()

    async def ensure_loaded(self) -> None:
        """Load page 1 if the cache is empty or was invalidated."""
        if self.needs_reload or not self.options:
            self.current_page = 1
            await self.load_options()

    def search(self, term: str) -> None:
        """Debounced search; must be called from a running event loop.

        :attr:`search_term` and the cache keep following the previous term
        until the debounce settles, so a :meth:`load_more` in between
        still pages through the results already shown.
        """
        self._debouncer.trigger(term)

    async def search_now(self, term: str) -> None:
        """Apply *term* immediately (for hosts that debounce on their own)."""
        if term == self._last_search:
            return
        self._last_search = term
        self.search_term = term
        self.current_page = 1
        self.options = []
        await self.load_options()

    async def wait_for_search(self) -> None:
        await self._debouncer.wait()

    # -- selection ---------------------------------------------------------

    def find(self, value: Any) -> SelectOption | None:
        for option in self.options:
            if option.value == value or str(option.value) == str(value):
                return option
        return None

    def select(self, option: SelectOption) -> Any:
        """Pick *option*; returns the new value, or ``None`` when ignored.

        The "create new" sentinel does not become the selection: it asks
        the host to open its creation flow via :meth:`request_create`.
        """
        if option.disabled:
            return None
        if self.config.allow_create and option.value == self.config.create_value:
            self.request_create()
            return None
        self.selected_value = option.value
        self.selected_label = option.label
        self.is_open = False
        return option.value

    def select_value(self, value: Any) -> Any:
        """Select by raw value, as delivered by a browser ``on_change``."""
        if self.config.allow_create and value == self.config.create_value:
            self.request_create()
            return None
        option = self.find(value)
        if option is None:
            return None
        return self.select(option)

    def request_create(self) -> None:
        self.is_open = False
        if self.config.on_create_click is not None:
            self.config.on_create_click()

    def sync_value(self, value: Any, label: str | None = None) -> bool:
        """Follow a value set from outside (e.g. ``patch_values``).

        Returns ``True`` when the cache was invalidated and
        :meth:`ensure_loaded` should be awaited to refresh it.
        """
        if value == self.selected_value and (label is None or label == self.selected_label):
            return False
        self.selected_value = value
        if value is None or value == "":
            self.selected_label = ""
            return False
        option = self.find(value)
        if option is not None and label is None:
            self.selected_label = option.label
            return False

        if label is not None:
            self._pending_created = SelectOption(value=value, label=label)
        self.selected_label = label or str(value)
        self.current_page = 1
        self.options = []
        self.needs_reload = True
        return True

    # -- lifecycle ---------------------------------------------------------

    async def open(self) -> None:
        if self._closed:
            return
        self.is_open = True
        if not self.options:
            await self.load_options()

    def close(self) -> None:
        """Tear down: cancel the pending debounce and drop in-flight responses."""
        self._closed = True
        self.is_open = False
        self.loading = False
        self._debouncer.close()
        self._sequencer.invalidate()

    def export_state(self) -> dict[str, Any]:
        """JSON-safe state for hosts that rebuild the control per event."""
        return {
            "options": [option.to_dict() for option in self.options],
            "current_page": self.current_page,
            "has_more": self.has_more,
            "search_term": self.search_term,
            "selected_value": self.selected_value,
            "selected_label": self.selected_label,
        }

    def restore_state(self, state: dict[str, Any]) -> None:
        self.options = [SelectOption(**option) for option in state.get("options", [])]
        self.current_page = state.get("current_page", 1)
        self.has_more = state.get("has_more", False)
        self.search_term = state.get("search_term", "")
        self._last_search = self.search_term if self.options else _NO_SEARCH_YET
        self.selected_value = state.get("selected_value")
        self.selected_label = state.get("selected_label", "")

    # -- internals ---------------------------------------------------------

    def _splice_pending(self, options: list[SelectOption]) -> list[SelectOption]:
        pending, self._pending_created = self._pending_created, None
        if pending is None or any(option.value == pending.value for option in options):
            return options
        return [pending, *options]

    def _refresh_selected_label(self, page: int) -> None:
        if self.selected_value is None or self.selected_value == "":
            return
        option = self.find(self.selected_value)
        if option is not None:
            self.selected_label = option.label
        elif page == 1 and not self.selected_label:
            self.selected_label = str(self.selected_value)
