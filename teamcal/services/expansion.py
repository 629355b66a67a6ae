"""Materialize stored time entries into calendar occurrences for a window.

Occurrences are never persisted: every call recomputes them from the stored
entries, so callers re-run ``expand`` whenever entries or the window change.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from typing import Any, Iterable

from teamcal.core.exceptions import RecurrenceRuleError
from teamcal.services.calendar_utils import (
    combine_day_and_time,
    day_key,
    end_of_day,
    to_local,
    week_start,
)
from teamcal.services.recurrence import effective_until, load_rule, resolve_weekdays

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Occurrence:
    start_time: datetime
    end_time: datetime
    base_id: int
    is_occurrence: bool
    owner_id: int | None = None
    project: str = ""
    summary: str = ""
    recurring: bool = False
    guest_ids: tuple[int, ...] = field(default_factory=tuple)

    @property
    def key(self) -> str:
        """UI identity; occurrences have no persisted id of their own."""
        return f"{self.base_id}__{self.start_time.isoformat()}"

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time


def _occurrence_from(entry: Any, start: datetime, end: datetime, recurring: bool) -> Occurrence:
    return Occurrence(
        start_time=start,
        end_time=end,
        base_id=entry.id,
        is_occurrence=recurring,
        owner_id=entry.owner_id,
        project=entry.project or "",
        summary=entry.summary or "",
        recurring=recurring,
        guest_ids=tuple(entry.guest_ids or ()),
    )


def _expand_series(
    entry: Any,
    range_start: datetime,
    range_end: datetime,
    tz: tzinfo | None,
) -> list[Occurrence]:
    rule = load_rule(entry.recurrence)
    template_start = to_local(entry.start_time, tz)
    template_end = to_local(entry.end_time, tz)
    duration = max(template_end - template_start, timedelta(microseconds=1))

    weekdays = resolve_weekdays(rule, template_start)
    exceptions = {day_key(day) for day in rule.exception_dates}
    until_day = effective_until(template_start, rule)
    series_end = end_of_day(until_day, template_start.tzinfo) if until_day else None
    step = timedelta(weeks=rule.interval)

    effective_start = max(range_start, template_start)
    base_week = week_start(template_start)
    week = max(week_start(effective_start), base_week)
    # Step back to a week congruent with the template's week modulo interval
    weeks_since_base = (week.date() - base_week.date()).days // 7
    week -= timedelta(weeks=weeks_since_base % rule.interval)
    week = max(week, base_week)

    occurrences: list[Occurrence] = []
    while week <= range_end and (series_end is None or week <= series_end):
        for weekday in weekdays:
            day = week.date() + timedelta(days=weekday)
            if day_key(day) in exceptions:
                continue
            start = combine_day_and_time(day, template_start)
            if start < template_start or start < effective_start:
                continue
            if start > range_end:
                continue
            if series_end is not None and start > series_end:
                continue
            occurrences.append(_occurrence_from(entry, start, start + duration, True))
        week += step
    return occurrences


def expand(
    entries: Iterable[Any],
    range_start: datetime,
    range_end: datetime,
    tz: tzinfo | None = None,
) -> list[Occurrence]:
    """Concrete occurrences of ``entries`` intersecting ``[range_start, range_end]``.

    Single entries are kept when their start falls inside the window. Series are
    expanded week by week from their template. An entry whose stored rule cannot
    be decoded is logged and skipped; the rest of the batch is still expanded.
    Result order is unspecified; see ``sort_occurrences``.
    """
    range_start = to_local(range_start, tz)
    range_end = to_local(range_end, tz)

    seen: set[str] = set()
    result: list[Occurrence] = []
    for entry in entries:
        if entry.recurrence:
            try:
                produced = _expand_series(entry, range_start, range_end, tz)
            except RecurrenceRuleError as exc:
                logger.warning(f"Skipping time entry {entry.id}: {exc}")
                continue
        else:
            start = to_local(entry.start_time, tz)
            if not range_start <= start <= range_end:
                continue
            produced = [_occurrence_from(entry, start, to_local(entry.end_time, tz), False)]

        for occurrence in produced:
            if occurrence.key in seen:
                continue
            seen.add(occurrence.key)
            result.append(occurrence)
    return result


def sort_occurrences(occurrences: Iterable[Occurrence]) -> list[Occurrence]:
    return sorted(occurrences, key=lambda occ: (occ.start_time, occ.base_id))
