"""Hours logged per person and project for a calendar month."""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Iterable

from teamcal.services.calendar_utils import at_minutes, to_local
from teamcal.services.expansion import Occurrence, expand


@dataclass(frozen=True)
class EffortRow:
    owner_id: int
    project: str
    hours: float


@dataclass(frozen=True)
class ProjectTotal:
    project: str
    total_minutes: int

    @property
    def hours(self) -> int:
        return self.total_minutes // 60

    @property
    def minutes(self) -> int:
        return self.total_minutes % 60


def parse_month_key(key: str) -> date:
    """``YYYY-MM`` -> first day of that month."""
    try:
        year, month = (int(part) for part in key.split("-"))
        return date(year, month, 1)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Invalid month key: {key!r}") from exc


def month_bounds(first: date, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """[first day 00:00, first day of next month 00:00)"""
    index = first.year * 12 + first.month
    following = date(index // 12, index % 12 + 1, 1)
    return at_minutes(first, 0, tz), at_minutes(following, 0, tz)


def overlap_hours(
    start: datetime, end: datetime, range_start: datetime, range_end: datetime
) -> float:
    lower = max(start, range_start)
    upper = min(end, range_end)
    return max(timedelta(0), upper - lower).total_seconds() / 3600


def month_occurrences(
    entries: Iterable[Any],
    start: datetime,
    end: datetime,
    tz: tzinfo | None = None,
) -> list[Occurrence]:
    """Occurrences that count toward ``[start, end)``.

    A single entry counts when it overlaps the range, since logged work can run
    across a month boundary. Series are expanded by occurrence start.
    """
    singles: list[Occurrence] = []
    series: list[Any] = []
    for entry in entries:
        if entry.recurrence:
            series.append(entry)
            continue
        entry_start = to_local(entry.start_time, tz)
        entry_end = to_local(entry.end_time, tz)
        if entry_end > start and entry_start < end:
            singles.append(
                Occurrence(
                    start_time=entry_start,
                    end_time=entry_end,
                    base_id=entry.id,
                    is_occurrence=False,
                    owner_id=entry.owner_id,
                    project=entry.project or "",
                    summary=entry.summary or "",
                    guest_ids=tuple(entry.guest_ids or ()),
                )
            )
    return singles + expand(series, start, end - timedelta(microseconds=1), tz=tz)


def summarize_effort(
    entries: Iterable[Any],
    month: str,
    tz: tzinfo | None = None,
    owner_ids: Iterable[int] | None = None,
    project: str | None = None,
) -> list[EffortRow]:
    """Per owner and project, hours of occurrences clipped to the month."""
    start, end = month_bounds(parse_month_key(month), tz)
    wanted = set(owner_ids) if owner_ids is not None else None

    totals: dict[tuple[int, str], float] = defaultdict(float)
    for occ in month_occurrences(entries, start, end, tz=tz):
        if wanted is not None and occ.owner_id not in wanted:
            continue
        if project is not None and occ.project != project:
            continue
        hours = overlap_hours(occ.start_time, occ.end_time, start, end)
        if hours <= 0:
            continue
        totals[(occ.owner_id, occ.project)] += hours

    return [
        EffortRow(owner_id=owner, project=name, hours=round(hours, 2))
        for (owner, name), hours in sorted(totals.items())
    ]


def project_totals(rows: Iterable[EffortRow]) -> list[ProjectTotal]:
    """Minutes per project across all owners, largest first."""
    hours: dict[str, float] = defaultdict(float)
    for row in rows:
        hours[row.project] += row.hours
    return sorted(
        (ProjectTotal(project=name, total_minutes=round(total * 60)) for name, total in hours.items()),
        key=lambda item: (-item.total_minutes, item.project),
    )
