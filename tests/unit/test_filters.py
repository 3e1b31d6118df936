"""Unit tests for inventory filtering, sorting and stats."""

import pytest

from field_exporter.asana.models import CustomField
from field_exporter.inventory.filters import (
    InventoryFilter,
    Scope,
    apply_filters,
    available_kinds,
    format_kind,
    sort_fields,
    summarize,
)


def gids(fields: list[CustomField]) -> list[str]:
    return [f.gid for f in fields]


class TestApplyFilters:
    """Tests for apply_filters."""

    def test_no_criteria_keeps_everything(self, sample_fields: list[CustomField]) -> None:
        assert gids(apply_filters(sample_fields, InventoryFilter())) == ["cf_1", "cf_2", "cf_3"]

    @pytest.mark.parametrize(
        "query, expected",
        [
            ("priority", ["cf_1"]),
            ("CF_2", ["cf_2"]),
            ("story points", ["cf_2"]),
            ("bob", ["cf_3"]),
            ("high", ["cf_1"]),
            ("roadmap", ["cf_1"]),
            ("engineering", ["cf_2"]),
            ("grow revenue", ["cf_1"]),
            ("  nothing matches  ", []),
        ],
    )
    def test_search(self, sample_fields: list[CustomField], query: str, expected: list[str]) -> None:
        assert gids(apply_filters(sample_fields, InventoryFilter(search=query))) == expected

    def test_kind(self, sample_fields: list[CustomField]) -> None:
        assert gids(apply_filters(sample_fields, InventoryFilter(kind="number"))) == ["cf_2"]
        assert len(apply_filters(sample_fields, InventoryFilter(kind="all"))) == 3

    def test_scope(self, sample_fields: list[CustomField]) -> None:
        assert gids(apply_filters(sample_fields, InventoryFilter(scope=Scope.GLOBAL))) == ["cf_1", "cf_3"]
        assert gids(apply_filters(sample_fields, InventoryFilter(scope=Scope.LOCAL))) == ["cf_2"]

    def test_exclude_creators(self, sample_fields: list[CustomField]) -> None:
        flt = InventoryFilter(exclude_creators=["zapier bot", " ALICE "])

        assert gids(apply_filters(sample_fields, flt)) == ["cf_3"]

    def test_combined(self, sample_fields: list[CustomField]) -> None:
        flt = InventoryFilter(search="o", scope=Scope.GLOBAL, exclude_creators=["Bob"])

        assert gids(apply_filters(sample_fields, flt)) == ["cf_1"]


class TestSortFields:
    """Tests for sort_fields."""

    def test_name_is_case_insensitive(self, sample_fields: list[CustomField]) -> None:
        assert gids(sort_fields(sample_fields, "name")) == ["cf_2", "cf_3", "cf_1"]

    def test_descending(self, sample_fields: list[CustomField]) -> None:
        assert gids(sort_fields(sample_fields, "name", descending=True)) == ["cf_1", "cf_3", "cf_2"]

    def test_scope(self, sample_fields: list[CustomField]) -> None:
        assert gids(sort_fields(sample_fields, "scope")) == ["cf_1", "cf_3", "cf_2"]

    def test_last_used_puts_unknown_first(self, sample_fields: list[CustomField]) -> None:
        assert gids(sort_fields(sample_fields, "last_used")) == ["cf_2", "cf_3", "cf_1"]

    def test_unknown_column(self, sample_fields: list[CustomField]) -> None:
        with pytest.raises(ValueError, match="Unknown sort column"):
            sort_fields(sample_fields, "color")


def test_summarize(sample_fields: list[CustomField]) -> None:
    stats = summarize(sample_fields)

    assert (stats.total, stats.global_count, stats.local_count, stats.type_count) == (3, 2, 1, 3)


def test_available_kinds(sample_fields: list[CustomField]) -> None:
    assert available_kinds(sample_fields) == ["enum", "number", "people"]


def test_format_kind() -> None:
    assert format_kind("enum") == "Dropdown"
    assert format_kind("multi_enum") == "Multi-select"
    assert format_kind("formula") == "formula"
