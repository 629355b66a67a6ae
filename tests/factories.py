from datetime import datetime

from teamcal.models.time_entry import TimeEntry


def build_entry(
    entry_id: int,
    start: datetime,
    end: datetime,
    recurrence: dict | None = None,
    owner_id: int = 1,
    project: str = "Development",
) -> TimeEntry:
    """Transient entry for tests that never touch the database."""
    return TimeEntry(
        id=entry_id,
        owner_id=owner_id,
        company_code="ACME",
        project=project,
        summary="",
        start_time=start,
        end_time=end,
        recurrence=recurrence,
        guest_ids=[],
    )
