"""Edits and deletions on a recurring series.

Every operation rewrites the base entry's stored rule (or removes the base
entry) in a single update; occurrences are derived and never written. On a
persistence failure nothing has been changed and the error propagates.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Any

from sqlalchemy.orm import Session

from teamcal.core.exceptions import RecurrenceRuleError
from teamcal.models.time_entry import TimeEntry
from teamcal.schemas.recurrence import UntilTermination
from teamcal.services import entry_store
from teamcal.services.calendar_utils import parse_day_key, to_local
from teamcal.services.recurrence import effective_until, load_rule

logger = logging.getLogger(__name__)


class SeriesScope(str, Enum):
    THIS = "this"
    FOLLOWING = "following"
    ALL = "all"


@dataclass(frozen=True)
class SeriesMutationResult:
    base_id: int
    scope: SeriesScope
    series_deleted: bool
    entry: TimeEntry | None = None


def _as_date(value: str | date) -> date:
    if isinstance(value, date):
        return value
    try:
        return parse_day_key(value)
    except ValueError as exc:
        raise RecurrenceRuleError(f"Invalid day key: {value!r}") from exc


def _series_rule(entry: TimeEntry):
    rule = load_rule(entry.recurrence)
    if rule is None:
        raise RecurrenceRuleError(f"Time entry {entry.id} is not a recurring series")
    return rule


def delete_occurrence(
    db: Session,
    base_id: int,
    target_day: str | date,
    tz=None,
) -> SeriesMutationResult:
    """Exclude one day from the series. Adding an existing exception is a no-op."""
    entry = entry_store.get_entry(db, base_id)
    rule = _series_rule(entry)
    day = _as_date(target_day)

    if day in rule.exception_dates:
        return SeriesMutationResult(base_id, SeriesScope.THIS, False, entry)

    updated = rule.model_copy(update={"exception_dates": sorted({*rule.exception_dates, day})})
    entry = entry_store.update_entry(db, base_id, tz=tz, recurrence=updated)
    logger.info(f"Series {base_id}: excluded {day.isoformat()}")
    return SeriesMutationResult(base_id, SeriesScope.THIS, False, entry)


def delete_series(db: Session, base_id: int) -> SeriesMutationResult:
    entry_store.delete_entry(db, base_id)
    logger.info(f"Series {base_id}: deleted")
    return SeriesMutationResult(base_id, SeriesScope.ALL, True)


def truncate_from(
    db: Session,
    base_id: int,
    target_day: str | date,
    tz=None,
) -> SeriesMutationResult:
    """End the series the day before ``target_day``.

    Truncating at (or before) the template's own day would leave a rule with no
    occurrences, so the whole series is deleted instead and the result says so.
    """
    entry = entry_store.get_entry(db, base_id)
    rule = _series_rule(entry)
    day = _as_date(target_day)
    template_start = to_local(entry.start_time, tz)

    if day <= template_start.date():
        logger.info(
            f"Series {base_id}: truncation at {day.isoformat()} covers the template, deleting series"
        )
        result = delete_series(db, base_id)
        return SeriesMutationResult(base_id, SeriesScope.FOLLOWING, True, result.entry)

    until = day - timedelta(days=1)
    current_until = effective_until(template_start, rule)
    if current_until is not None and current_until <= until:
        # Already ends before the target day
        return SeriesMutationResult(base_id, SeriesScope.FOLLOWING, False, entry)

    updated = rule.model_copy(update={"termination": UntilTermination(until=until)})
    entry = entry_store.update_entry(db, base_id, tz=tz, recurrence=updated)
    logger.info(f"Series {base_id}: now ends {until.isoformat()}")
    return SeriesMutationResult(base_id, SeriesScope.FOLLOWING, False, entry)


def apply_series_deletion(
    db: Session,
    base_id: int,
    scope: SeriesScope,
    target_day: str | date | None = None,
    tz=None,
) -> SeriesMutationResult:
    if scope == SeriesScope.ALL:
        return delete_series(db, base_id)
    if target_day is None:
        raise RecurrenceRuleError(f"A target day is required for scope '{scope.value}'")
    if scope == SeriesScope.THIS:
        return delete_occurrence(db, base_id, target_day, tz=tz)
    return truncate_from(db, base_id, target_day, tz=tz)


def edit_template(
    db: Session,
    base_id: int,
    changes: dict[str, Any],
    tz=None,
) -> TimeEntry:
    """Change the template itself; every remaining occurrence follows it."""
    return entry_store.update_entry(db, base_id, tz=tz, **changes)
