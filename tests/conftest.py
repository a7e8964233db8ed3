"""Shared fixtures: sample rows, columns and in-memory option sources."""

import asyncio
from typing import Any

import polars as pl
import pytest

from reflex_admin_grid.models import OptionPage, SelectOption, TableColumn


@pytest.fixture
def people() -> list[dict[str, Any]]:
    return [
        {"id": 1, "name": "Alice", "age": 34, "entity": {"name": "Acme"}, "status": "active"},
        {"id": 2, "name": "Bob", "age": None, "entity": {"name": "Blue River"}, "status": "pending"},
        {"id": 3, "name": "Charlie", "age": 28, "entity": None, "status": "inactive"},
        {"id": 4, "name": "Diana", "age": 41, "entity": {"name": "Acme"}, "status": "active"},
        {"id": 5, "name": "Eve", "age": 22, "entity": {"name": "Cedar"}, "status": "pending"},
    ]


@pytest.fixture
def people_columns() -> list[TableColumn]:
    return [
        TableColumn("name", "Name"),
        TableColumn("age", "Age"),
        TableColumn("entity.name", "Entity"),
        TableColumn("status", "Status", type="badge", sortable=False),
    ]


@pytest.fixture
def people_frame() -> pl.LazyFrame:
    return pl.LazyFrame(
        {
            "id": [1, 2, 3, 4, 5, 6],
            "name": ["Alice", "Bob", "Charlie", "Diana", "Eve", "Frank"],
            "email": ["alice@acme.io", "bob@blue.io", "charlie@acme.io", None, "eve@cedar.io", "frank@acme.io"],
            "entityId": ["E1", "E2", "E1", "E1", "E3", "E2"],
            "score": [5, None, 1, None, 3, 4],
        }
    )


class FakeOptionSource:
    """Serves ``SelectOption`` pages from a fixed list and records every call."""

    def __init__(self, labels: list[str], *, delays: dict[str | None, float] | None = None) -> None:
        self.options = [SelectOption(value=f"V{i + 1}", label=label) for i, label in enumerate(labels)]
        self.calls: list[tuple[int, int, str | None]] = []
        self.delays = delays or {}
        self.fail_next = False

    async def __call__(self, page: int, limit: int, search: str | None) -> OptionPage:
        self.calls.append((page, limit, search))
        delay = self.delays.get(search, 0)
        if delay:
            await asyncio.sleep(delay)
        if self.fail_next:
            self.fail_next = False
            raise RuntimeError("Service Unavailable: try again later")
        matches = [o for o in self.options if not search or search.lower() in o.label.lower()]
        start = (page - 1) * limit
        chunk = matches[start:start + limit]
        return OptionPage(options=chunk, has_more=start + limit < len(matches), total=len(matches))


@pytest.fixture
def option_source() -> FakeOptionSource:
    return FakeOptionSource(["Alpha", "Beta", "Gamma", "Delta", "Epsilon"])
