from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
import logging

from teamcal.api import deps
from teamcal.core.exceptions import (
    EntryNotFoundError,
    EntryPermissionError,
    EntryValidationError,
    PersistenceError,
)
from teamcal.db.session import get_db
from teamcal.models.time_entry import TimeEntry
from teamcal.models.user import User
from teamcal.schemas.time_entry import (
    OccurrencePublic,
    RescheduleRequest,
    SeriesDeletionRequest,
    SeriesDeletionResult,
    TimeEntryCreate,
    TimeEntryPublic,
    TimeEntryUpdate,
)
from teamcal.services import entry_store, series
from teamcal.services.calendar_utils import to_local
from teamcal.services.expansion import Occurrence, expand, sort_occurrences

logger = logging.getLogger(__name__)

router = APIRouter()


def _raise_http(exc: Exception) -> None:
    if isinstance(exc, EntryNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Time entry not found")
    if isinstance(exc, EntryPermissionError):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the owner can change this entry",
        )
    if isinstance(exc, EntryValidationError):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, PersistenceError):
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    raise exc


def _get_own_entry_or_404(db: Session, entry_id: int, user: User) -> TimeEntry:
    try:
        return entry_store.get_owned_entry(db, entry_id, user)
    except (EntryNotFoundError, EntryPermissionError) as exc:
        _raise_http(exc)


def _serialize_entry(entry: TimeEntry, tz: ZoneInfo) -> TimeEntryPublic:
    """Stored times are naive UTC; answer in the user's zone."""
    public = TimeEntryPublic.model_validate(entry)
    return public.model_copy(
        update={
            "start_time": to_local(entry.start_time, tz),
            "end_time": to_local(entry.end_time, tz),
        }
    )


def _serialize_occurrence(occ: Occurrence) -> OccurrencePublic:
    return OccurrencePublic(
        key=occ.key,
        base_id=occ.base_id,
        is_occurrence=occ.is_occurrence,
        recurring=occ.recurring,
        owner_id=occ.owner_id,
        project=occ.project,
        summary=occ.summary,
        start_time=occ.start_time,
        end_time=occ.end_time,
        guest_ids=list(occ.guest_ids),
    )


@router.get("/", response_model=list[OccurrencePublic])
def list_occurrences(
    start: datetime,
    end: datetime,
    owner_ids: list[int] | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_user),
    tz: ZoneInfo = Depends(deps.get_user_timezone),
) -> list[OccurrencePublic]:
    """Occurrences of the company's entries whose start lies in [start, end]."""
    if end < start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end must not be before start",
        )
    entries = entry_store.fetch_entries(db, current_user.company_code or "", owner_ids)
    occurrences = sort_occurrences(expand(entries, start, end, tz=tz))
    return [_serialize_occurrence(occ) for occ in occurrences]


@router.post("/", response_model=TimeEntryPublic, status_code=status.HTTP_201_CREATED)
def create_entry(
    payload: TimeEntryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_user),
    tz: ZoneInfo = Depends(deps.get_user_timezone),
) -> TimeEntryPublic:
    try:
        entry = entry_store.create_entry(db, current_user, payload.model_dump(), tz=tz)
    except (EntryValidationError, PersistenceError) as exc:
        _raise_http(exc)
    return _serialize_entry(entry, tz)


@router.patch("/{entry_id}", response_model=TimeEntryPublic)
def update_entry(
    entry_id: int,
    payload: TimeEntryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_user),
    tz: ZoneInfo = Depends(deps.get_user_timezone),
) -> TimeEntryPublic:
    """Edit the entry, or the template of a series (all occurrences follow)."""
    _get_own_entry_or_404(db, entry_id, current_user)
    changes = payload.model_dump(exclude_unset=True)
    if "recurrence" in payload.model_fields_set:
        changes["recurrence"] = payload.recurrence
    try:
        entry = series.edit_template(db, entry_id, changes, tz=tz)
    except (EntryNotFoundError, EntryValidationError, PersistenceError) as exc:
        _raise_http(exc)
    return _serialize_entry(entry, tz)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_user),
) -> None:
    _get_own_entry_or_404(db, entry_id, current_user)
    try:
        entry_store.delete_entry(db, entry_id)
    except (EntryNotFoundError, PersistenceError) as exc:
        _raise_http(exc)


@router.post("/{entry_id}/series-deletion", response_model=SeriesDeletionResult)
def delete_from_series(
    entry_id: int,
    payload: SeriesDeletionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_user),
    tz: ZoneInfo = Depends(deps.get_user_timezone),
) -> SeriesDeletionResult:
    """Delete one occurrence, this day and everything after, or the whole series."""
    _get_own_entry_or_404(db, entry_id, current_user)
    try:
        result = series.apply_series_deletion(
            db, entry_id, payload.scope, payload.day_key, tz=tz
        )
    except (EntryNotFoundError, EntryValidationError, PersistenceError) as exc:
        _raise_http(exc)
    return SeriesDeletionResult(
        base_id=result.base_id,
        scope=result.scope,
        series_deleted=result.series_deleted,
        entry=_serialize_entry(result.entry, tz) if result.entry is not None else None,
    )


@router.post("/{entry_id}/reschedule", response_model=TimeEntryPublic)
def reschedule_entry(
    entry_id: int,
    payload: RescheduleRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_user),
    tz: ZoneInfo = Depends(deps.get_user_timezone),
) -> TimeEntryPublic:
    """Commit a drag: absolute new (start, end) for a single entry."""
    entry = _get_own_entry_or_404(db, entry_id, current_user)
    if entry.is_recurring:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Occurrences of a recurring series cannot be dragged; edit the series instead.",
        )
    try:
        entry = entry_store.update_entry(
            db,
            entry_id,
            tz=tz,
            start_time=payload.start_time,
            end_time=payload.end_time,
        )
    except (EntryNotFoundError, EntryValidationError, PersistenceError) as exc:
        _raise_http(exc)
    logger.info(f"Time entry {entry_id} rescheduled by user {current_user.id}")
    return _serialize_entry(entry, tz)
