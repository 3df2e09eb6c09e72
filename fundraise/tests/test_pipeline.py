"""Tests for pipeline aggregation and table ordering."""
from __future__ import annotations

from datetime import date

import pytest

from fundraise.pipeline import (
    UNKNOWN_STATUS_PRIORITY,
    aggregate,
    compare_text,
    compare_values,
    fold_text,
    next_sort_config,
    parse_sort,
    sort_records,
    status_priority,
)
from fundraise.schemas import Investor, SortConfig, Targets

TARGETS = Targets(primary=200, final=400)


def _inv(id: str, **kwargs) -> Investor:
    kwargs.setdefault("name", f"Investor {id}")
    kwargs.setdefault("last_update", date(2026, 1, 20))
    return Investor(id=id, **kwargs)


def _ids(records: list[Investor]) -> list[str]:
    return [r.id for r in records]


@pytest.fixture()
def pipeline() -> list[Investor]:
    return [
        _inv("1", status="Verbal", amount=50, max_amount=70, probability=0.9),
        _inv("2", status="Verbal", amount=10, probability=0.9),
        _inv("3", status="HighInterest", amount=20, probability=0.7),
        _inv("4", status="InProgress", amount=40, probability=0.4,
             dependency="Fintech Thesis (MOU)", is_blocker=True),
        _inv("5", status="InProgress", amount=0, probability=0.2),
        _inv("6", status="Dropped", amount=0, probability=0.0),
    ]


# =========================================================================
# aggregate
# =========================================================================


class TestAggregate:
    def test_mixed_scenario(self):
        records = [
            _inv("a", status="Verbal", amount=50, probability=0.9),
            _inv("b", status="Verbal", amount=10, probability=0.8),
            _inv("c", status="Dropped", amount=1000, probability=1.0),
            _inv("d", status="InProgress", amount=40, probability=0.4),
        ]
        stats = aggregate(records, TARGETS)
        assert stats.total_verbal == 60
        assert stats.total_in_progress == 40
        assert stats.total_high_interest == 0
        assert stats.weighted_total == pytest.approx(50 * 0.9 + 10 * 0.8 + 40 * 0.4)
        assert stats.max_potential == 100

    def test_empty_input(self):
        stats = aggregate([], TARGETS)
        assert stats.target_primary == 200
        assert stats.target_final == 400
        assert stats.total_verbal == 0
        assert stats.total_high_interest == 0
        assert stats.total_in_progress == 0
        assert stats.weighted_total == 0
        assert stats.max_potential == 0

    def test_only_dropped(self):
        records = [_inv("x", status="Dropped", amount=300, max_amount=500, probability=1.0)]
        stats = aggregate(records, TARGETS)
        assert stats.weighted_total == 0
        assert stats.max_potential == 0
        assert stats.total_verbal == 0

    def test_dropped_record_changes_nothing(self, pipeline):
        before = aggregate(pipeline, TARGETS)
        extra = _inv("z", status="Dropped", amount=999, max_amount=1500, probability=0.9)
        after = aggregate([*pipeline, extra], TARGETS)
        assert after == before

    def test_weighted_total_drops_by_removed_probability(self, pipeline):
        before = aggregate(pipeline, TARGETS)
        changed = [r.model_copy(update={"probability": 0.0}) if r.id == "3" else r for r in pipeline]
        after = aggregate(changed, TARGETS)
        assert before.weighted_total - after.weighted_total == pytest.approx(20 * 0.7)

    def test_max_potential_uses_ceiling(self, pipeline):
        stats = aggregate(pipeline, TARGETS)
        # 70 (ceiling of #1) + 10 + 20 + 40 + 0
        assert stats.max_potential == 140
        plain = sum(r.amount for r in pipeline if r.status != "Dropped")
        assert stats.max_potential >= plain

    def test_max_potential_equals_plain_without_ceilings(self, pipeline):
        no_ceiling = [r.model_copy(update={"max_amount": None}) for r in pipeline]
        stats = aggregate(no_ceiling, TARGETS)
        assert stats.max_potential == sum(r.amount for r in no_ceiling if r.status != "Dropped")

    def test_tbd_amount_counts_only_its_ceiling(self):
        records = [_inv("t", status="InProgress", amount=0, max_amount=30, probability=0.5)]
        stats = aggregate(records, TARGETS)
        assert stats.total_in_progress == 0
        assert stats.weighted_total == 0
        assert stats.max_potential == 30

    def test_unknown_status_counts_in_weighted_only(self):
        records = [_inv("u", status="Paused", amount=10, probability=0.5)]
        stats = aggregate(records, TARGETS)
        assert stats.total_verbal == stats.total_high_interest == stats.total_in_progress == 0
        assert stats.weighted_total == pytest.approx(5)
        assert stats.max_potential == 10

    def test_does_not_mutate_input(self, pipeline):
        snapshot = [r.model_copy() for r in pipeline]
        aggregate(pipeline, TARGETS)
        assert pipeline == snapshot


# =========================================================================
# sort_records
# =========================================================================


class TestSortByStatus:
    def test_ascending_follows_funnel(self):
        records = [
            _inv("d", status="Dropped"), _inv("p", status="InProgress"),
            _inv("v", status="Verbal"), _inv("h", status="HighInterest"),
        ]
        result = sort_records(records, SortConfig(key="status", direction="asc"))
        assert _ids(result) == ["v", "h", "p", "d"]

    def test_descending_reverses(self):
        records = [_inv("v", status="Verbal"), _inv("d", status="Dropped"), _inv("h", status="HighInterest")]
        result = sort_records(records, SortConfig(key="status", direction="desc"))
        assert _ids(result) == ["d", "h", "v"]

    def test_unknown_status_sorts_last(self):
        records = [_inv("x", status="Paused"), _inv("d", status="Dropped"), _inv("v", status="Verbal")]
        result = sort_records(records, SortConfig(key="status"))
        assert _ids(result) == ["v", "d", "x"]
        assert status_priority("Paused") == UNKNOWN_STATUS_PRIORITY


class TestSortByIssue:
    def test_blocker_first_regardless_of_text(self):
        records = [
            _inv("blocker", is_blocker=True, notes="b"),
            _inv("plain", is_blocker=False, notes="a"),
        ]
        result = sort_records(records, SortConfig(key="notes", direction="asc"))
        assert _ids(result) == ["blocker", "plain"]

    def test_blocker_first_when_listed_second(self):
        records = [
            _inv("plain", notes="a"),
            _inv("blocker", is_blocker=True, notes="z"),
        ]
        result = sort_records(records, SortConfig(key="notes", direction="asc"))
        assert _ids(result) == ["blocker", "plain"]

    def test_descending_puts_blockers_last(self):
        records = [
            _inv("blocker", is_blocker=True, notes="b"),
            _inv("plain", notes="a"),
        ]
        result = sort_records(records, SortConfig(key="notes", direction="desc"))
        assert _ids(result) == ["plain", "blocker"]

    def test_dependency_text_preferred_over_notes(self):
        records = [
            _inv("zeta", is_blocker=True, dependency="Zeta approval", notes="aaa"),
            _inv("alpha", is_blocker=True, notes="Alpha committee"),
        ]
        result = sort_records(records, SortConfig(key="notes"))
        assert _ids(result) == ["alpha", "zeta"]

    def test_secondary_direction_applies(self):
        records = [
            _inv("a", notes="apple"), _inv("c", notes="cherry"), _inv("b", notes="banana"),
        ]
        asc = sort_records(records, SortConfig(key="notes", direction="asc"))
        desc = sort_records(records, SortConfig(key="notes", direction="desc"))
        assert _ids(asc) == ["a", "b", "c"]
        assert _ids(desc) == ["c", "b", "a"]

    def test_dependency_without_blocker_flag_is_not_a_blocker(self):
        records = [
            _inv("dep", dependency="Legal review", notes="x"),
            _inv("flag", is_blocker=True, notes="y"),
        ]
        result = sort_records(records, SortConfig(key="notes"))
        assert _ids(result) == ["flag", "dep"]


class TestSortGeneric:
    def test_amount_numeric(self, pipeline):
        result = sort_records(pipeline, SortConfig(key="amount"))
        amounts = [r.amount for r in result]
        assert amounts == sorted(amounts)

    def test_name_case_insensitive(self):
        records = [_inv("1", name="bravo"), _inv("2", name="Alpha"), _inv("3", name="charlie")]
        result = sort_records(records, SortConfig(key="name"))
        assert [r.name for r in result] == ["Alpha", "bravo", "charlie"]

    def test_name_ignores_accents(self):
        records = [_inv("1", name="Zeta"), _inv("2", name="Émile"), _inv("3", name="Fund")]
        result = sort_records(records, SortConfig(key="name"))
        assert [r.name for r in result] == ["Émile", "Fund", "Zeta"]

    def test_accent_breaks_ties_after_base_letters(self):
        records = [_inv("1", name="émile"), _inv("2", name="Emile"), _inv("3", name="emile")]
        result = sort_records(records, SortConfig(key="name"))
        assert [r.name for r in result] == ["emile", "Emile", "émile"]

    def test_hangul_names_in_dictionary_order(self):
        records = [_inv("1", name="다올"), _inv("2", name="MUFG"), _inv("3", name="가람"), _inv("4", name="나무")]
        result = sort_records(records, SortConfig(key="name"))
        assert [r.name for r in result] == ["MUFG", "가람", "나무", "다올"]

    def test_camel_case_key(self):
        records = [
            _inv("new", last_update=date(2026, 1, 26)),
            _inv("old", last_update=date(2026, 1, 10)),
        ]
        by_camel = sort_records(records, SortConfig(key="lastUpdate"))
        by_snake = sort_records(records, SortConfig(key="last_update"))
        assert _ids(by_camel) == _ids(by_snake) == ["old", "new"]

    def test_descending_amount(self, pipeline):
        result = sort_records(pipeline, SortConfig(key="amount", direction="desc"))
        assert result[0].id == "1"

    def test_mismatched_types_are_stable(self):
        records = [
            _inv("a", max_amount=None), _inv("b", max_amount=30), _inv("c", max_amount=None),
        ]
        result = sort_records(records, SortConfig(key="maxAmount"))
        assert _ids(result) == ["a", "b", "c"]

    def test_unknown_key_keeps_order(self, pipeline):
        result = sort_records(pipeline, SortConfig(key="no_such_column"))
        assert _ids(result) == _ids(pipeline)

    def test_compare_values(self):
        assert compare_values(3, 1) > 0
        assert compare_values("a", "B") < 0
        assert compare_values(date(2026, 1, 1), date(2025, 1, 1)) > 0
        assert compare_values("5", 5) == 0
        assert compare_values(None, 1) == 0
        assert compare_values(True, False) == 0


class TestSortContract:
    def test_no_config_returns_input_order(self, pipeline):
        result = sort_records(pipeline, None)
        assert _ids(result) == _ids(pipeline)
        assert result is not pipeline

    def test_does_not_mutate_input(self, pipeline):
        original = _ids(pipeline)
        sort_records(pipeline, SortConfig(key="amount", direction="desc"))
        assert _ids(pipeline) == original

    @pytest.mark.parametrize("key", ["status", "notes", "amount", "name", "lastUpdate", "probability"])
    @pytest.mark.parametrize("direction", ["asc", "desc"])
    def test_idempotent(self, pipeline, key, direction):
        config = SortConfig(key=key, direction=direction)
        once = sort_records(pipeline, config)
        assert _ids(sort_records(once, config)) == _ids(once)

    def test_stable_for_equal_keys(self):
        records = [_inv("first", status="Verbal"), _inv("second", status="Verbal")]
        asc = sort_records(records, SortConfig(key="status", direction="asc"))
        desc = sort_records(records, SortConfig(key="status", direction="desc"))
        assert _ids(asc) == _ids(desc) == ["first", "second"]

    def test_toggle_reverses_distinct_keys(self):
        records = [_inv("b", amount=20), _inv("a", amount=10), _inv("c", amount=30)]
        asc = sort_records(records, SortConfig(key="amount", direction="asc"))
        desc = sort_records(records, SortConfig(key="amount", direction="desc"))
        assert _ids(desc) == list(reversed(_ids(asc)))

    def test_empty(self):
        assert sort_records([], SortConfig(key="status")) == []


# =========================================================================
# Sort configuration helpers
# =========================================================================


class TestSortConfigHelpers:
    def test_toggle_cycle(self):
        first = next_sort_config(None, "amount")
        assert first == SortConfig(key="amount", direction="asc")
        second = next_sort_config(first, "amount")
        assert second.direction == "desc"
        third = next_sort_config(second, "amount")
        assert third.direction == "asc"

    def test_new_column_resets_to_ascending(self):
        current = SortConfig(key="amount", direction="desc")
        assert next_sort_config(current, "name") == SortConfig(key="name", direction="asc")

    def test_parse_sort(self):
        assert parse_sort(None) is None
        assert parse_sort("  ") is None
        assert parse_sort("status", "DESC") == SortConfig(key="status", direction="desc")
        assert parse_sort("status", "sideways") == SortConfig(key="status", direction="asc")


class TestTextCollation:
    def test_fold_text(self):
        assert fold_text("Émile") == "emile"
        assert fold_text("STRASSE") == fold_text("straße")

    def test_compare_text_ignores_process_locale(self):
        assert compare_text("Émile", "Fund") < 0
        assert compare_text("fund", "Fund") < 0
        assert compare_text("same", "same") == 0
