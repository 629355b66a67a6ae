from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from teamcal.services.calendar_utils import day_key, js_weekday
from teamcal.services.expansion import expand, sort_occurrences
from tests.factories import build_entry

TEMPLATE_START = datetime(2024, 1, 1, 9, 0)  # Monday
TEMPLATE_END = datetime(2024, 1, 1, 10, 0)
FAR_FUTURE = datetime(2030, 12, 31, 23, 59)


def _weekly(**overrides) -> dict:
    rule = {"frequency": "weekly", "interval": 1, "weekdays": [1, 3], "termination": {"type": "none"}}
    rule.update(overrides)
    return rule


def _days(occurrences) -> list[str]:
    return [day_key(occ.start_time) for occ in sort_occurrences(occurrences)]


def test_single_entry_included_only_when_start_in_range():
    entry = build_entry(1, TEMPLATE_START, TEMPLATE_END)

    assert len(expand([entry], datetime(2024, 1, 1), datetime(2024, 1, 2))) == 1
    assert len(expand([entry], TEMPLATE_START, TEMPLATE_START)) == 1
    assert expand([entry], datetime(2024, 1, 1, 9, 1), datetime(2024, 1, 2)) == []
    assert expand([entry], datetime(2023, 12, 1), datetime(2024, 1, 1, 8, 59)) == []

    occurrence = expand([entry], datetime(2024, 1, 1), datetime(2024, 1, 2))[0]
    assert occurrence.base_id == 1
    assert occurrence.is_occurrence is False
    assert occurrence.start_time == TEMPLATE_START
    assert occurrence.end_time == TEMPLATE_END


def test_weekly_monday_wednesday_series():
    entry = build_entry(1, TEMPLATE_START, TEMPLATE_END, _weekly())

    occurrences = expand([entry], datetime(2024, 1, 1), datetime(2024, 1, 17, 23, 59))

    assert _days(occurrences) == [
        "2024-01-01", "2024-01-03", "2024-01-08", "2024-01-10", "2024-01-15", "2024-01-17",
    ]
    for occ in occurrences:
        assert (occ.start_time.hour, occ.start_time.minute) == (9, 0)
        assert occ.end_time - occ.start_time == timedelta(hours=1)
        assert occ.base_id == 1
        assert occ.is_occurrence is True


def test_exception_date_removes_only_that_day():
    entry = build_entry(1, TEMPLATE_START, TEMPLATE_END, _weekly(exception_dates=["2024-01-08"]))

    occurrences = expand([entry], datetime(2024, 1, 1), datetime(2024, 1, 17, 23, 59))

    assert _days(occurrences) == [
        "2024-01-01", "2024-01-03", "2024-01-10", "2024-01-15", "2024-01-17",
    ]


def test_biweekly_series_skips_off_weeks():
    entry = build_entry(1, TEMPLATE_START, TEMPLATE_END, _weekly(interval=2, weekdays=[1]))

    occurrences = expand([entry], datetime(2024, 1, 1), datetime(2024, 1, 31, 23, 59))

    assert _days(occurrences) == ["2024-01-01", "2024-01-15", "2024-01-29"]


def test_biweekly_series_aligned_when_window_starts_mid_series():
    entry = build_entry(1, TEMPLATE_START, TEMPLATE_END, _weekly(interval=2, weekdays=[1]))

    occurrences = expand([entry], datetime(2024, 1, 20), datetime(2024, 2, 15))

    assert _days(occurrences) == ["2024-01-29", "2024-02-12"]


def test_count_termination_yields_exactly_count():
    entry = build_entry(1, TEMPLATE_START, TEMPLATE_END, _weekly(termination={"type": "count", "count": 5}))

    occurrences = expand([entry], TEMPLATE_START, FAR_FUTURE)

    assert _days(occurrences) == [
        "2024-01-01", "2024-01-03", "2024-01-08", "2024-01-10", "2024-01-15",
    ]


def test_count_ignores_weekdays_before_template_in_first_week():
    start = datetime(2024, 1, 3, 9, 0)  # Wednesday
    entry = build_entry(1, start, start + timedelta(hours=1), _weekly(termination={"type": "count", "count": 3}))

    occurrences = expand([entry], datetime(2023, 12, 25), FAR_FUTURE)

    assert _days(occurrences) == ["2024-01-03", "2024-01-08", "2024-01-10"]


def test_until_termination_is_inclusive():
    entry = build_entry(1, TEMPLATE_START, TEMPLATE_END, _weekly(termination={"type": "until", "until": "2024-01-10"}))

    occurrences = expand([entry], datetime(2023, 12, 1), FAR_FUTURE)

    assert _days(occurrences) == ["2024-01-01", "2024-01-03", "2024-01-08", "2024-01-10"]


def test_never_emits_before_template_start():
    entry = build_entry(1, TEMPLATE_START, TEMPLATE_END, _weekly(weekdays=[0, 1, 3]))

    occurrences = expand([entry], datetime(2023, 12, 1), datetime(2024, 1, 7, 23, 59))

    # Sunday 2023-12-31 is in the template's week but before it
    assert _days(occurrences) == ["2024-01-01", "2024-01-03", "2024-01-07"]
    assert all(occ.start_time >= TEMPLATE_START for occ in occurrences)


def test_empty_weekdays_default_to_template_weekday():
    entry = build_entry(1, TEMPLATE_START, TEMPLATE_END, _weekly(weekdays=[]))

    occurrences = expand([entry], datetime(2024, 1, 1), datetime(2024, 1, 21))

    assert _days(occurrences) == ["2024-01-01", "2024-01-08", "2024-01-15"]


def test_occurrences_respect_weekdays_and_exceptions():
    rule = _weekly(weekdays=[1, 3, 5], interval=3, exception_dates=["2024-01-03", "2024-01-26"])
    entry = build_entry(1, TEMPLATE_START, TEMPLATE_END, rule)

    occurrences = expand([entry], datetime(2024, 1, 1), datetime(2024, 6, 30))

    assert occurrences
    for occ in occurrences:
        assert js_weekday(occ.start_time) in {1, 3, 5}
        assert day_key(occ.start_time) not in {"2024-01-03", "2024-01-26"}


def test_malformed_rule_is_skipped_without_aborting_batch():
    broken = build_entry(1, TEMPLATE_START, TEMPLATE_END, _weekly(interval=-1))
    unknown = build_entry(2, TEMPLATE_START, TEMPLATE_END, _weekly(frequency="daily"))
    bad_day = build_entry(3, TEMPLATE_START, TEMPLATE_END, _weekly(weekdays=[9]))
    healthy = build_entry(4, TEMPLATE_START, TEMPLATE_END, _weekly())

    occurrences = expand([broken, unknown, bad_day, healthy], datetime(2024, 1, 1), datetime(2024, 1, 7))

    assert {occ.base_id for occ in occurrences} == {4}
    assert len(occurrences) == 2


def test_duplicate_entries_are_deduplicated():
    first = build_entry(1, TEMPLATE_START, TEMPLATE_END, _weekly())
    again = build_entry(1, TEMPLATE_START, TEMPLATE_END, _weekly())

    occurrences = expand([first, again], datetime(2024, 1, 1), datetime(2024, 1, 7))

    assert len(occurrences) == 2
    assert len({occ.key for occ in occurrences}) == 2


def test_expand_is_idempotent():
    entries = [
        build_entry(1, TEMPLATE_START, TEMPLATE_END, _weekly()),
        build_entry(2, datetime(2024, 1, 5, 13, 0), datetime(2024, 1, 5, 14, 30)),
    ]
    window = (datetime(2024, 1, 1), datetime(2024, 2, 1))

    first = {occ.key for occ in expand(entries, *window)}
    second = {occ.key for occ in expand(entries, *window)}

    assert first == second


def test_occurrence_key_combines_base_id_and_start():
    entry = build_entry(7, TEMPLATE_START, TEMPLATE_END, _weekly())

    occurrence = sort_occurrences(expand([entry], datetime(2024, 1, 1), datetime(2024, 1, 2)))[0]

    assert occurrence.key == "7__2024-01-01T09:00:00"


def test_expansion_uses_calendar_timezone_for_days():
    tokyo = ZoneInfo("Asia/Tokyo")
    # Stored as naive UTC: Monday 09:00 in Tokyo
    entry = build_entry(
        1,
        datetime(2024, 1, 1, 0, 0),
        datetime(2024, 1, 1, 1, 0),
        _weekly(weekdays=[1], exception_dates=["2024-01-08"]),
    )

    occurrences = expand(
        [entry],
        datetime(2024, 1, 1, tzinfo=tokyo),
        datetime(2024, 1, 22, 23, 59, tzinfo=tokyo),
        tz=tokyo,
    )

    assert _days(occurrences) == ["2024-01-01", "2024-01-15", "2024-01-22"]
    assert all(occ.start_time.hour == 9 for occ in occurrences)
    assert all(occ.start_time.date().weekday() == date(2024, 1, 1).weekday() for occ in occurrences)
