"""Pipeline aggregation and table ordering.

Both entry points are pure: they take a snapshot of investor records and
return a fresh value, never touching the records themselves.

- ``aggregate``: totals per status bucket, probability-weighted
  expectation and best-case ceiling over the non-dropped investors.
- ``sort_records``: display order for the pipeline table. Status sorts by
  funnel stage, the issue column (``notes``) surfaces blockers first, every
  other column compares by value.
"""
from __future__ import annotations

import unicodedata
from collections.abc import Iterable
from datetime import date, datetime
from functools import cmp_to_key
from typing import Any, Callable

from fundraise.schemas import Investor, PipelineStats, SortConfig, Status, Targets

STATUS_PRIORITY: dict[str, int] = {
    Status.VERBAL.value: 1,
    Status.HIGH_INTEREST.value: 2,
    Status.IN_PROGRESS.value: 3,
    Status.DROPPED.value: 4,
}
UNKNOWN_STATUS_PRIORITY = 99

ISSUE_KEY = "notes"
SORT_DIRECTIONS = ("asc", "desc")

# camelCase wire names -> attribute names ("lastUpdate" -> "last_update")
_FIELD_NAMES: dict[str, str] = {}
for _name, _info in Investor.model_fields.items():
    _FIELD_NAMES[_name] = _name
    if _info.alias:
        _FIELD_NAMES[_info.alias] = _name

Comparator = Callable[[Any, Any], float]


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def active_records(records: Iterable[Investor]) -> list[Investor]:
    """Every record that still counts towards the round (status != Dropped)."""
    return [r for r in records if r.status != Status.DROPPED.value]


def aggregate(records: Iterable[Investor], targets: Targets) -> PipelineStats:
    active = active_records(records)

    def total(status: Status) -> float:
        return sum(r.amount for r in active if r.status == status.value)

    return PipelineStats(
        target_primary=targets.primary,
        target_final=targets.final,
        total_verbal=total(Status.VERBAL),
        total_high_interest=total(Status.HIGH_INTEREST),
        total_in_progress=total(Status.IN_PROGRESS),
        weighted_total=sum(r.amount * r.probability for r in active),
        max_potential=sum(
            r.max_amount if r.max_amount is not None else r.amount for r in active
        ),
    )


# ---------------------------------------------------------------------------
# Comparison rules
# ---------------------------------------------------------------------------


def status_priority(status: Any) -> int:
    return STATUS_PRIORITY.get(status, UNKNOWN_STATUS_PRIORITY)


def fold_text(value: str) -> str:
    """Accent- and case-insensitive form of *value* ("Émile" -> "emile")."""
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


def collation_key(value: str) -> tuple[str, str, str, str]:
    # Base letters, then accents, then case (lowercase first), then exact text.
    return (
        fold_text(value),
        unicodedata.normalize("NFC", value).casefold(),
        value.swapcase(),
        value,
    )


def compare_text(a: str, b: str) -> int:
    """Dictionary ordering that ignores accents and case; exact text breaks ties."""
    ka, kb = collation_key(a), collation_key(b)
    return (ka > kb) - (ka < kb)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def compare_values(a: Any, b: Any) -> float:
    """Generic column comparison. Unsupported or mismatched types are equal."""
    if _is_number(a) and _is_number(b):
        return a - b
    if isinstance(a, str) and isinstance(b, str):
        return compare_text(a, b)
    if (
        isinstance(a, date) and isinstance(b, date)
        and isinstance(a, datetime) == isinstance(b, datetime)
    ):
        return (a > b) - (a < b)
    return 0


def issue_text(record: Any) -> str:
    return getattr(record, "dependency", None) or getattr(record, "notes", None) or ""


def _status_comparator(sign: int) -> Comparator:
    def compare(a: Any, b: Any) -> float:
        return sign * (status_priority(a.status) - status_priority(b.status))
    return compare


def _issue_comparator(sign: int) -> Comparator:
    # Ascending means "most urgent first": blockers lead the list.
    def compare(a: Any, b: Any) -> float:
        a_blocker = bool(getattr(a, "is_blocker", False))
        b_blocker = bool(getattr(b, "is_blocker", False))
        if a_blocker != b_blocker:
            return -sign if a_blocker else sign
        return sign * compare_text(issue_text(a), issue_text(b))
    return compare


def _field_comparator(key: str, sign: int) -> Comparator:
    field = _FIELD_NAMES.get(key, key)

    def compare(a: Any, b: Any) -> float:
        return sign * compare_values(getattr(a, field, None), getattr(b, field, None))
    return compare


def comparator_for(config: SortConfig) -> Comparator:
    sign = -1 if config.direction == "desc" else 1
    if config.key == "status":
        return _status_comparator(sign)
    if config.key == ISSUE_KEY:
        return _issue_comparator(sign)
    return _field_comparator(config.key, sign)


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


def sort_records(records: Iterable[Investor], config: SortConfig | None = None) -> list[Investor]:
    """Return the records in display order for *config*.

    Without a config the input order is kept. The sort is stable, so records
    that compare equal stay in their relative input order and re-sorting with
    the same config is a no-op.
    """
    items = list(records)
    if config is None:
        return items
    return sorted(items, key=cmp_to_key(comparator_for(config)))


def parse_sort(sort_by: str | None, sort_dir: str | None = "asc") -> SortConfig | None:
    """Build a SortConfig from query-style arguments (None when unsorted)."""
    key = (sort_by or "").strip()
    if not key:
        return None
    direction = (sort_dir or "asc").strip().lower()
    if direction not in SORT_DIRECTIONS:
        direction = "asc"
    return SortConfig(key=key, direction=direction)


def next_sort_config(current: SortConfig | None, key: str) -> SortConfig:
    """Column-header click cycle: a new column starts ascending, the same
    column flips direction."""
    if current is None or current.key != key:
        return SortConfig(key=key, direction="asc")
    return SortConfig(key=key, direction="desc" if current.direction == "asc" else "asc")
