"""Weekly recurrence rule helpers: decoding, defaults and effective termination."""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any

from pydantic import ValidationError

from teamcal.core.exceptions import EntryValidationError, RecurrenceRuleError
from teamcal.schemas.recurrence import (
    CountTermination,
    RecurrenceRule,
    UntilTermination,
)
from teamcal.services.calendar_utils import combine_day_and_time, js_weekday, week_start


def load_rule(raw: Any) -> RecurrenceRule | None:
    """Decode a stored rule. Empty values mean a single, non-repeating entry."""
    if not raw:
        return None
    if isinstance(raw, RecurrenceRule):
        return raw
    try:
        if isinstance(raw, str):
            return RecurrenceRule.model_validate_json(raw)
        return RecurrenceRule.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise RecurrenceRuleError(
            f"Malformed recurrence rule ({location}): {first.get('msg')}"
        ) from exc


def resolve_weekdays(rule: RecurrenceRule, template_start: datetime) -> list[int]:
    """Configured weekdays in ascending order, else the template's own weekday."""
    if rule.weekdays:
        return sorted(set(rule.weekdays))
    return [js_weekday(template_start)]


def last_occurrence_date_for_count(template_start: datetime, rule: RecurrenceRule) -> date:
    """Date of the ``count``-th occurrence, counted from the template forward.

    Visits the template's week and then every ``interval``-th week, taking the
    weekdays in ascending order and ignoring days whose start would fall before
    the template itself. Exception dates still count toward the total.
    """
    if not isinstance(rule.termination, CountTermination):
        raise RecurrenceRuleError("Rule has no count termination")

    weekdays = resolve_weekdays(rule, template_start)
    count = rule.termination.count
    seen = 0
    week = week_start(template_start)
    while True:
        for weekday in weekdays:
            day = week.date() + timedelta(days=weekday)
            if combine_day_and_time(day, template_start) < template_start:
                continue
            seen += 1
            if seen >= count:
                return day
        week += timedelta(weeks=rule.interval)


def effective_until(template_start: datetime, rule: RecurrenceRule) -> date | None:
    """Last calendar day the series may produce an occurrence on (None = open-ended)."""
    termination = rule.termination
    if isinstance(termination, UntilTermination):
        return termination.until
    if isinstance(termination, CountTermination):
        return last_occurrence_date_for_count(template_start, rule)
    return None


def normalize_rule(rule: RecurrenceRule, template_start: datetime) -> RecurrenceRule:
    """Apply write-time defaults so the template is always its own first occurrence."""
    weekdays = set(resolve_weekdays(rule, template_start))
    weekdays.add(js_weekday(template_start))
    return rule.model_copy(
        update={
            "weekdays": sorted(weekdays),
            "exception_dates": sorted(set(rule.exception_dates)),
        }
    )


def move_template(
    rule: RecurrenceRule, old_start: datetime, new_start: datetime
) -> RecurrenceRule:
    """Re-anchor a rule whose template moved. The template's weekday moves with it."""
    old_day, new_day = js_weekday(old_start), js_weekday(new_start)
    weekdays = set(resolve_weekdays(rule, old_start))
    if old_day != new_day and old_day in weekdays:
        weekdays.discard(old_day)
        weekdays.add(new_day)
    return normalize_rule(rule.model_copy(update={"weekdays": sorted(weekdays)}), new_start)


def validate_entry_times(start_time: datetime, end_time: datetime) -> None:
    if end_time <= start_time:
        raise EntryValidationError("End time must be after start time")
