from datetime import date, datetime, timezone

import pytest

from teamcal.services.effort import (
    EffortRow,
    month_bounds,
    month_occurrences,
    overlap_hours,
    parse_month_key,
    project_totals,
    summarize_effort,
)
from tests.factories import build_entry


def test_month_keys():
    assert parse_month_key("2024-02") == date(2024, 2, 1)
    with pytest.raises(ValueError):
        parse_month_key("2024-13")
    with pytest.raises(ValueError):
        parse_month_key("February")


def test_month_bounds_cross_year():
    assert month_bounds(date(2023, 12, 1)) == (datetime(2023, 12, 1), datetime(2024, 1, 1))
    start, end = month_bounds(date(2024, 1, 1), timezone.utc)
    assert start.tzinfo is timezone.utc
    assert end == datetime(2024, 2, 1, tzinfo=timezone.utc)


def test_overlap_hours_clips_to_range():
    lower, upper = datetime(2024, 1, 1), datetime(2024, 1, 2)

    assert overlap_hours(datetime(2023, 12, 31, 23), datetime(2024, 1, 1, 2), lower, upper) == 2
    assert overlap_hours(datetime(2024, 1, 2, 1), datetime(2024, 1, 2, 3), lower, upper) == 0


def test_summarize_counts_recurring_occurrences():
    entries = [
        # Every Monday in January 2024: 1, 8, 15, 22, 29
        build_entry(
            1,
            datetime(2024, 1, 1, 9, 0),
            datetime(2024, 1, 1, 10, 30),
            {"frequency": "weekly", "weekdays": [1]},
        ),
        build_entry(2, datetime(2024, 1, 3, 13, 0), datetime(2024, 1, 3, 15, 0), project="Support"),
        build_entry(3, datetime(2024, 1, 4, 9, 0), datetime(2024, 1, 4, 12, 0), owner_id=2),
        build_entry(4, datetime(2024, 2, 1, 9, 0), datetime(2024, 2, 1, 12, 0)),
    ]

    rows = summarize_effort(entries, "2024-01")

    assert [(row.owner_id, row.project, row.hours) for row in rows] == [
        (1, "Development", 7.5),
        (1, "Support", 2.0),
        (2, "Development", 3.0),
    ]


def test_summarize_filters_by_owner_and_project():
    entries = [
        build_entry(1, datetime(2024, 1, 3, 9, 0), datetime(2024, 1, 3, 10, 0)),
        build_entry(2, datetime(2024, 1, 3, 9, 0), datetime(2024, 1, 3, 11, 0), owner_id=2),
        build_entry(3, datetime(2024, 1, 4, 9, 0), datetime(2024, 1, 4, 10, 0), project="Support"),
    ]

    assert [row.owner_id for row in summarize_effort(entries, "2024-01", owner_ids=[2])] == [2]
    only_support = summarize_effort(entries, "2024-01", project="Support")
    assert [(row.project, row.hours) for row in only_support] == [("Support", 1.0)]


def test_entry_running_past_month_end_is_clipped():
    entries = [build_entry(1, datetime(2024, 1, 31, 23, 0), datetime(2024, 2, 1, 1, 0))]

    rows = summarize_effort(entries, "2024-01")

    assert rows[0].hours == 1.0


def test_entry_started_in_previous_month_counts_its_share():
    entries = [build_entry(1, datetime(2024, 1, 31, 22, 0), datetime(2024, 2, 1, 2, 0))]

    january = summarize_effort(entries, "2024-01")
    february = summarize_effort(entries, "2024-02")

    assert [row.hours for row in january] == [2.0]
    assert [row.hours for row in february] == [2.0]


def test_month_occurrences_overlap_for_singles_start_for_series():
    start, end = month_bounds(date(2024, 2, 1))
    entries = [
        build_entry(1, datetime(2024, 1, 31, 22, 0), datetime(2024, 2, 1, 2, 0)),
        build_entry(2, datetime(2024, 1, 30, 9, 0), datetime(2024, 1, 30, 10, 0)),
        # Every Thursday from 2024-01-25
        build_entry(
            3,
            datetime(2024, 1, 25, 9, 0),
            datetime(2024, 1, 25, 10, 0),
            {"frequency": "weekly", "weekdays": [4]},
        ),
    ]

    occurrences = month_occurrences(entries, start, end)

    assert sorted(occ.base_id for occ in occurrences if not occ.recurring) == [1]
    assert sorted(occ.start_time.day for occ in occurrences if occ.recurring) == [1, 8, 15, 22, 29]


def test_project_totals_largest_first():
    rows = [
        EffortRow(owner_id=1, project="Development", hours=0.75),
        EffortRow(owner_id=1, project="Support", hours=1.5),
        EffortRow(owner_id=2, project="Development", hours=1.0),
        EffortRow(owner_id=2, project="Support", hours=1.0),
    ]

    totals = project_totals(rows)

    assert [(t.project, t.hours, t.minutes) for t in totals] == [
        ("Support", 2, 30),
        ("Development", 1, 45),
    ]
