"""Tests for the cell payloads the table state sends to the browser."""

from reflex_admin_grid.data_table import TableSpec, _cell
from reflex_admin_grid.grid_engine import DataGridEngine
from reflex_admin_grid.models import GridMode, TableColumn


def _engine(columns) -> DataGridEngine:
    return DataGridEngine(columns)


class TestCell:
    def test_text(self):
        column = TableColumn("entity.name", "Entity")
        cell = _cell(_engine([column]), {"entity": {"name": "Acme"}}, column)
        assert cell == {"value": "Acme", "type": "text", "color": ""}

    def test_missing_value_is_blank(self):
        column = TableColumn("entity.name", "Entity")
        assert _cell(_engine([column]), {"entity": None}, column)["value"] == ""

    def test_badge_color(self):
        column = TableColumn(
            "status",
            "Status",
            type="badge",
            badge_color=lambda row: "success" if row["status"] == "active" else "error",
        )
        engine = _engine([column])
        assert _cell(engine, {"status": "active"}, column)["color"] == "success"
        assert _cell(engine, {"status": "inactive"}, column)["color"] == "error"

    def test_checkbox(self):
        column = TableColumn("active", "Active", type="checkbox")
        engine = _engine([column])
        assert _cell(engine, {"active": True}, column)["value"] == "true"
        assert _cell(engine, {"active": False}, column)["value"] == "false"
        assert _cell(engine, {}, column)["value"] == "false"

    def test_render_output_is_used(self):
        column = TableColumn("age", "Age", render=lambda row: f"{row['age']} y")
        assert _cell(_engine([column]), {"age": 3}, column)["value"] == "3 y"


class TestTableSpec:
    def test_defaults(self):
        spec = TableSpec(columns=[TableColumn("name", "Name")])
        assert spec.mode is GridMode.CLIENT
        assert spec.id_key == "id"
        assert spec.config.default_items_per_page == 10
        assert spec.client_fetch_limit == 10_000
