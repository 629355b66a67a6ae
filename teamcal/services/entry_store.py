"""Persistence for time entries.

Plain create/read/update/delete against the ``time_entries`` table. Date
filtering is not done here: the recurrence-aware window check lives in
``expansion.expand``.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from teamcal.core.exceptions import EntryNotFoundError, EntryPermissionError, PersistenceError
from teamcal.models.time_entry import TimeEntry
from teamcal.models.user import User
from teamcal.schemas.recurrence import RecurrenceRule
from teamcal.services.calendar_utils import to_local, to_naive_utc
from teamcal.services.recurrence import (
    load_rule,
    move_template,
    normalize_rule,
    validate_entry_times,
)

logger = logging.getLogger(__name__)

WRITABLE_FIELDS = {"project", "summary", "start_time", "end_time", "recurrence", "guest_ids"}


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"Failed to {action}: {exc}")
        raise PersistenceError(f"Failed to {action}") from exc


def _prepare_recurrence(
    raw: RecurrenceRule | dict[str, Any] | None,
    start_time,
    tz,
) -> dict[str, Any] | None:
    rule = load_rule(raw)
    if rule is None:
        return None
    return normalize_rule(rule, to_local(start_time, tz)).to_storage()


def fetch_entries(
    db: Session,
    company_code: str,
    owner_ids: Iterable[int] | None = None,
) -> list[TimeEntry]:
    """Entries visible to a company, optionally limited to owners or guests in ``owner_ids``."""
    entries = (
        db.query(TimeEntry)
        .filter(TimeEntry.company_code == company_code)
        .order_by(TimeEntry.start_time.asc())
        .all()
    )
    if owner_ids is None:
        return entries
    wanted = set(owner_ids)
    return [
        entry
        for entry in entries
        if entry.owner_id in wanted or wanted.intersection(entry.guest_ids or ())
    ]


def get_entry(db: Session, entry_id: int) -> TimeEntry:
    entry = db.query(TimeEntry).filter(TimeEntry.id == entry_id).first()
    if not entry:
        raise EntryNotFoundError(f"Time entry {entry_id} not found")
    return entry


def get_owned_entry(db: Session, entry_id: int, user: User) -> TimeEntry:
    """The entry, if it belongs to ``user``'s company and ``user`` owns it."""
    entry = (
        db.query(TimeEntry)
        .filter(TimeEntry.id == entry_id, TimeEntry.company_code == (user.company_code or ""))
        .first()
    )
    if not entry:
        raise EntryNotFoundError(f"Time entry {entry_id} not found")
    if entry.owner_id != user.id:
        raise EntryPermissionError(f"User {user.id} does not own time entry {entry_id}")
    return entry


def create_entry(
    db: Session,
    owner: User,
    data: dict[str, Any],
    tz=None,
) -> TimeEntry:
    start_time = to_naive_utc(data["start_time"])
    end_time = to_naive_utc(data["end_time"])
    validate_entry_times(start_time, end_time)

    entry = TimeEntry(
        owner_id=owner.id,
        company_code=owner.company_code or "",
        project=data.get("project") or "",
        summary=data.get("summary") or "",
        start_time=start_time,
        end_time=end_time,
        recurrence=_prepare_recurrence(data.get("recurrence"), start_time, tz),
        guest_ids=sorted(set(data.get("guest_ids") or [])),
    )
    db.add(entry)
    _commit(db, "create time entry")
    db.refresh(entry)
    logger.info(f"Time entry created: {entry.id}")
    return entry


def update_entry(db: Session, entry_id: int, tz=None, **fields: Any) -> TimeEntry:
    """Absolute update of the given fields. Last write wins."""
    entry = get_entry(db, entry_id)
    changes = {key: value for key, value in fields.items() if key in WRITABLE_FIELDS}

    start_time = to_naive_utc(changes.get("start_time", entry.start_time))
    end_time = to_naive_utc(changes.get("end_time", entry.end_time))
    validate_entry_times(start_time, end_time)

    if "recurrence" in changes:
        recurrence = _prepare_recurrence(changes["recurrence"], start_time, tz)
    elif "start_time" in changes and entry.recurrence:
        rule = load_rule(entry.recurrence)
        recurrence = move_template(
            rule, to_local(entry.start_time, tz), to_local(start_time, tz)
        ).to_storage()
    else:
        recurrence = entry.recurrence

    for key, value in changes.items():
        if key in {"start_time", "end_time", "recurrence"}:
            continue
        if key == "guest_ids":
            value = sorted(set(value or []))
        setattr(entry, key, value if value is not None else "")
    entry.start_time = start_time
    entry.end_time = end_time
    entry.recurrence = recurrence

    db.add(entry)
    _commit(db, f"update time entry {entry_id}")
    db.refresh(entry)
    logger.info(f"Time entry updated: {entry.id}")
    return entry


def delete_entry(db: Session, entry_id: int) -> None:
    entry = get_entry(db, entry_id)
    db.delete(entry)
    _commit(db, f"delete time entry {entry_id}")
    logger.info(f"Time entry deleted: {entry_id}")
