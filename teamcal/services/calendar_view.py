"""Calendar view state: window, loaded entries, drag preview, pending confirmations.

``CalendarController`` is the single owner of the mutable view state. The entry
list only changes through ``load`` (after a fetch, or after a write has
completed); the drag preview lives in ``DragController`` and never touches it.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, tzinfo
from enum import Enum
from typing import Iterable

from sqlalchemy.orm import Session

from teamcal.core.config import Settings, get_settings
from teamcal.core.exceptions import (
    EntryNotFoundError,
    EntryValidationError,
    PersistenceError,
)
from teamcal.models.time_entry import TimeEntry
from teamcal.models.user import User
from teamcal.services import entry_store, series
from teamcal.services.calendar_utils import (
    at_minutes,
    end_of_day,
    slot_minutes_at,
    week_start,
)
from teamcal.services.clock import ClockTicker
from teamcal.services.expansion import Occurrence, expand, sort_occurrences
from teamcal.services.reschedule import (
    DragController,
    DragPhase,
    DragPreview,
    GridGeometry,
    GridMode,
)

logger = logging.getLogger(__name__)

DEFAULT_DRAFT_LENGTH = timedelta(hours=1)
SERVICE_ERRORS = (EntryNotFoundError, EntryValidationError, PersistenceError)


class ViewMode(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


def view_range(mode: ViewMode, current: date, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """Inclusive [first instant, last instant] shown by ``mode`` around ``current``."""
    if mode == ViewMode.DAY:
        first, last = current, current
    elif mode == ViewMode.WEEK:
        first = week_start(current).date()
        last = first + timedelta(days=6)
    else:
        first = current.replace(day=1)
        last = _shift_month(first, 1) - timedelta(days=1)
    return at_minutes(first, 0, tz), end_of_day(last, tz)


def _shift_month(first_of_month: date, months: int) -> date:
    index = first_of_month.year * 12 + (first_of_month.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def shift_view(mode: ViewMode, current: date, steps: int) -> date:
    if mode == ViewMode.DAY:
        return current + timedelta(days=steps)
    if mode == ViewMode.WEEK:
        return current + timedelta(weeks=steps)
    return _shift_month(current.replace(day=1), steps)


class CalendarController:
    def __init__(
        self,
        db: Session,
        user: User,
        mode: ViewMode = ViewMode.WEEK,
        current_date: date | None = None,
        tz: tzinfo | None = None,
        owner_ids: Iterable[int] | None = None,
        grid_width_px: float = 0.0,
        now: datetime | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.db = db
        self.user = user
        self.tz = tz
        self.settings = settings or get_settings()
        self.mode = mode
        self.now = now or datetime.now(tz)
        self.current_date = current_date or self.now.date()
        self.owner_ids = set(owner_ids) if owner_ids is not None else None
        self.grid_width_px = grid_width_px
        self.entries: list[TimeEntry] = []
        self.pending_deletion: Occurrence | None = None
        self.drag = DragController(
            current_user_id=user.id,
            geometry=self._geometry(),
            snap_step=self.settings.snap_step_minutes,
            threshold_px=self.settings.drag_threshold_px,
        )

    # -- window -----------------------------------------------------------

    @property
    def window(self) -> tuple[datetime, datetime]:
        return view_range(self.mode, self.current_date, self.tz)

    @property
    def today(self) -> date:
        return self.now.date()

    def _geometry(self) -> GridGeometry:
        if self.mode == ViewMode.DAY:
            return GridGeometry(GridMode.DAY, self.current_date, self.settings.day_hour_height_px)
        return GridGeometry(
            GridMode.WEEK,
            week_start(self.current_date).date(),
            self.settings.week_hour_height_px,
            self.grid_width_px,
        )

    def _move_to(self, mode: ViewMode, current: date) -> list[Occurrence]:
        self.mode = mode
        self.current_date = current
        self.drag.set_geometry(self._geometry())
        return self.load()

    def go_previous(self) -> list[Occurrence]:
        return self._move_to(self.mode, shift_view(self.mode, self.current_date, -1))

    def go_next(self) -> list[Occurrence]:
        return self._move_to(self.mode, shift_view(self.mode, self.current_date, 1))

    def go_today(self) -> list[Occurrence]:
        return self._move_to(self.mode, self.today)

    def change_mode(self, mode: ViewMode) -> list[Occurrence]:
        return self._move_to(mode, self.current_date)

    def tick(self, now: datetime) -> None:
        self.now = now

    def clock(self) -> ClockTicker:
        """A ticker feeding ``tick``; the caller starts it inside its event loop."""
        return ClockTicker(self.tick, self.settings.clock_tick_seconds, tz=self.tz)

    # -- data -------------------------------------------------------------

    def load(self) -> list[Occurrence]:
        self.entries = entry_store.fetch_entries(
            self.db, self.user.company_code or "", self.owner_ids
        )
        return self.occurrences()

    def occurrences(self) -> list[Occurrence]:
        start, end = self.window
        return sort_occurrences(expand(self.entries, start, end, tz=self.tz))

    def draft_at(self, day: date, y: float) -> tuple[datetime, datetime]:
        """Default (start, end) for a new entry created by clicking the grid."""
        px_per_hour = (
            self.settings.day_hour_height_px
            if self.mode == ViewMode.DAY
            else self.settings.week_hour_height_px
        )
        minutes = slot_minutes_at(y, px_per_hour, self.settings.snap_step_minutes)
        start = at_minutes(day, minutes, self.tz)
        return start, start + DEFAULT_DRAFT_LENGTH

    # -- drag -------------------------------------------------------------

    @property
    def preview(self) -> DragPreview | None:
        return self.drag.preview

    def begin_drag(self, pointer_id: int, x: float, y: float, occurrence: Occurrence) -> bool:
        if self.mode == ViewMode.MONTH:
            return False
        return self.drag.pointer_down(pointer_id, x, y, occurrence)

    def drag_to(self, pointer_id: int, x: float, y: float) -> DragPreview | None:
        return self.drag.pointer_move(pointer_id, x, y)

    def cancel_drag(self, pointer_id: int | None = None) -> None:
        self.drag.pointer_cancel(pointer_id)

    def end_drag(self, pointer_id: int) -> TimeEntry | None:
        """Release the pointer; a real drag is written to the base entry, then reloaded."""
        commit = self.drag.pointer_up(pointer_id)
        if commit is None:
            return None
        try:
            entry = entry_store.update_entry(
                self.db,
                commit.base_id,
                tz=self.tz,
                start_time=commit.start_time,
                end_time=commit.end_time,
            )
        except SERVICE_ERRORS as exc:
            logger.warning(f"Reschedule of time entry {commit.base_id} failed: {exc}")
            raise
        finally:
            self.drag.finish_commit()
        self.load()
        return entry

    @property
    def dragging(self) -> bool:
        return self.drag.phase == DragPhase.DRAGGING

    # -- series deletion --------------------------------------------------

    def request_series_deletion(self, occurrence: Occurrence) -> None:
        self.pending_deletion = occurrence

    def dismiss_series_deletion(self) -> None:
        self.pending_deletion = None

    def confirm_series_deletion(self, scope: series.SeriesScope) -> series.SeriesMutationResult:
        """Apply the pending deletion. On failure the confirmation stays open."""
        occurrence = self.pending_deletion
        if occurrence is None:
            raise LookupError("No series deletion is pending")
        try:
            result = series.apply_series_deletion(
                self.db,
                occurrence.base_id,
                scope,
                occurrence.start_time.date(),
                tz=self.tz,
            )
        except SERVICE_ERRORS as exc:
            logger.warning(f"Deleting {scope.value} of series {occurrence.base_id} failed: {exc}")
            raise
        self.pending_deletion = None
        self.load()
        return result
