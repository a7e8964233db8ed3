"""Tests for polars helpers: file scanning, column inference, search and sort."""

from datetime import date

import polars as pl
import pytest

from reflex_admin_grid.polars_utils import (
    apply_search,
    apply_sort,
    build_table_columns_from_schema,
    dataframe_to_records,
    scan_file,
)


class TestScanFile:
    def test_csv(self, tmp_path):
        path = tmp_path / "people.csv"
        path.write_text("id,name\n1,Alice\n2,Bob\n")
        assert scan_file(path).collect().shape == (2, 2)

    def test_tsv(self, tmp_path):
        path = tmp_path / "people.tsv"
        path.write_text("id\tname\n1\tAlice\n")
        assert scan_file(path).collect_schema().names() == ["id", "name"]

    def test_parquet(self, tmp_path):
        path = tmp_path / "people.parquet"
        pl.DataFrame({"id": [1, 2, 3]}).write_parquet(path)
        assert scan_file(str(path)).select(pl.len()).collect().item() == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            scan_file(tmp_path / "missing.csv")

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "people.xlsx"
        path.write_bytes(b"")
        with pytest.raises(ValueError, match="Unsupported file extension"):
            scan_file(path)


class TestColumnsFromSchema:
    SCHEMA = pl.Schema({
        "__row_id__": pl.UInt32(),
        "first_name": pl.String(),
        "age": pl.Int64(),
        "active": pl.Boolean(),
        "joined": pl.Date(),
    })

    def test_id_field_hidden_by_default(self):
        columns = build_table_columns_from_schema(self.SCHEMA, id_field="__row_id__")
        assert [c.key for c in columns] == ["first_name", "age", "active", "joined"]
        assert [c.label for c in columns] == ["First Name", "Age", "Active", "Joined"]

    def test_show_id_field(self):
        columns = build_table_columns_from_schema(self.SCHEMA, id_field="__row_id__", show_id_field=True)
        assert columns[0].label == "Row Id"

    def test_inferred_flags(self):
        by_key = {c.key: c for c in build_table_columns_from_schema(self.SCHEMA)}
        assert [k for k, c in by_key.items() if c.searchable] == ["first_name"]
        assert by_key["age"].align == "right"
        assert by_key["active"].type == "checkbox"
        assert by_key["joined"].render({"joined": "2025-01-05"}) == "Jan 5, 2025"
        assert by_key["first_name"].render is None

    def test_label_overrides(self):
        columns = build_table_columns_from_schema(self.SCHEMA, labels={"first_name": "Given name"})
        assert columns[1].label == "Given name"


class TestSearchAndSort:
    def test_search_any_column(self, people_frame):
        rows = apply_search(people_frame, "acme").collect()
        assert rows["id"].to_list() == [1, 3, 6]

    def test_search_is_literal(self):
        lf = pl.LazyFrame({"code": ["abc", "a.c"]})
        assert apply_search(lf, "a.c").collect()["code"].to_list() == ["a.c"]

    def test_search_list_columns(self):
        lf = pl.LazyFrame({"id": [1, 2], "tags": [["red", "blue"], ["green"]]})
        assert apply_search(lf, "BLUE").collect()["id"].to_list() == [1]

    def test_blank_term_is_noop(self, people_frame):
        assert apply_search(people_frame, "   ") is people_frame

    def test_unknown_search_fields(self, people_frame):
        assert apply_search(people_frame, "x", fields=["nope"]) is people_frame

    def test_sort_nulls_last(self, people_frame):
        ascending = apply_sort(people_frame, "score", "asc").collect()["score"].to_list()
        descending = apply_sort(people_frame, "score", "desc").collect()["score"].to_list()
        assert ascending == [1, 3, 4, 5, None, None]
        assert descending == [5, 4, 3, 1, None, None]

    def test_unknown_sort_column_is_noop(self, people_frame):
        assert apply_sort(people_frame, "nope", "asc") is people_frame
        assert apply_sort(people_frame, "score", None) is people_frame


class TestDataframeToRecords:
    def test_dates_and_lists_become_strings(self):
        df = pl.DataFrame({"day": [date(2025, 1, 5)], "tags": [["a", "b"]], "n": [1]})
        assert dataframe_to_records(df) == [{"day": "2025-01-05", "tags": "a,b", "n": 1}]

    def test_plain_types_untouched(self):
        df = pl.DataFrame({"n": [1, None], "s": ["x", "y"]})
        assert dataframe_to_records(df) == [{"n": 1, "s": "x"}, {"n": None, "s": "y"}]
