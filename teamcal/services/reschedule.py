"""Pointer-driven rescheduling on the day and week grids.

``DragController`` turns pointer events into a snapped candidate (start, end)
for the dragged entry. The candidate is only a preview: the controller never
writes. Releasing a real drag yields a ``RescheduleCommit`` that the caller
persists against the entry's base id.

    idle --pointer_down--> dragging --pointer_up (moved)--> committing --finish_commit--> idle
                               |--pointer_up (click) / pointer_cancel--> idle
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum

from teamcal.services.calendar_utils import (
    DEFAULT_SNAP_STEP,
    at_minutes,
    minutes_of_day,
    minutes_to_pixels,
    pixels_to_minutes_of_day,
)
from teamcal.services.expansion import Occurrence

MIN_DRAG_DURATION = timedelta(minutes=15)
DAYS_PER_WEEK = 7


class GridMode(str, Enum):
    DAY = "day"
    WEEK = "week"


class DragPhase(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    COMMITTING = "committing"


@dataclass(frozen=True)
class GridGeometry:
    """Where the time grid is. ``day`` is the shown day, or the week's first day."""
    mode: GridMode
    day: date
    px_per_hour: float
    width_px: float = 0.0

    def column_at(self, x: float) -> int:
        if self.width_px <= 0:
            return 0
        column = math.floor(x / (self.width_px / DAYS_PER_WEEK))
        return max(0, min(DAYS_PER_WEEK - 1, column))

    def day_at(self, x: float) -> date:
        if self.mode == GridMode.DAY:
            return self.day
        return self.day + timedelta(days=self.column_at(x))


@dataclass(frozen=True)
class DragPreview:
    base_id: int
    start_time: datetime
    end_time: datetime


@dataclass(frozen=True)
class RescheduleCommit:
    base_id: int
    start_time: datetime
    end_time: datetime


@dataclass
class DragState:
    occurrence: Occurrence
    mode: GridMode
    pointer_id: int
    origin_x: float
    origin_y: float
    offset_px: float
    duration: timedelta
    moved: bool = False
    preview: DragPreview | None = None


class DragController:
    def __init__(
        self,
        current_user_id: int,
        geometry: GridGeometry,
        snap_step: int = DEFAULT_SNAP_STEP,
        threshold_px: float = 4.0,
    ) -> None:
        self.current_user_id = current_user_id
        self.geometry = geometry
        self.snap_step = snap_step
        self.threshold_px = threshold_px
        self.phase = DragPhase.IDLE
        self.state: DragState | None = None
        self.pending: RescheduleCommit | None = None

    @property
    def preview(self) -> DragPreview | None:
        return self.state.preview if self.state else None

    def can_drag(self, occurrence: Occurrence) -> bool:
        """Only the owner's single (non-recurring) entries move."""
        return not occurrence.recurring and occurrence.owner_id == self.current_user_id

    def set_geometry(self, geometry: GridGeometry) -> None:
        if self.phase == DragPhase.DRAGGING:
            self.pointer_cancel()
        self.geometry = geometry

    def pointer_down(self, pointer_id: int, x: float, y: float, occurrence: Occurrence) -> bool:
        if self.phase != DragPhase.IDLE:
            return False
        if not self.can_drag(occurrence):
            return False

        top_px = minutes_to_pixels(minutes_of_day(occurrence.start_time), self.geometry.px_per_hour)
        self.state = DragState(
            occurrence=occurrence,
            mode=self.geometry.mode,
            pointer_id=pointer_id,
            origin_x=x,
            origin_y=y,
            offset_px=y - top_px,
            duration=max(occurrence.duration, MIN_DRAG_DURATION),
        )
        self.phase = DragPhase.DRAGGING
        return True

    def _candidate(self, x: float, y: float) -> DragPreview:
        state = self.state
        minutes = pixels_to_minutes_of_day(
            y - state.offset_px, self.geometry.px_per_hour, self.snap_step
        )
        day = self.geometry.day_at(x)
        start = at_minutes(day, minutes, tz=state.occurrence.start_time.tzinfo)
        return DragPreview(
            base_id=state.occurrence.base_id,
            start_time=start,
            end_time=start + state.duration,
        )

    def pointer_move(self, pointer_id: int, x: float, y: float) -> DragPreview | None:
        state = self.state
        if self.phase != DragPhase.DRAGGING or state.pointer_id != pointer_id:
            return None
        if not state.moved:
            distance = math.hypot(x - state.origin_x, y - state.origin_y)
            if distance < self.threshold_px:
                return None
            state.moved = True
        state.preview = self._candidate(x, y)
        return state.preview

    def pointer_up(self, pointer_id: int) -> RescheduleCommit | None:
        state = self.state
        if self.phase != DragPhase.DRAGGING or state.pointer_id != pointer_id:
            return None
        if not state.moved or state.preview is None:
            self._reset()
            return None
        self.pending = RescheduleCommit(
            base_id=state.occurrence.base_id,
            start_time=state.preview.start_time,
            end_time=state.preview.end_time,
        )
        self.phase = DragPhase.COMMITTING
        return self.pending

    def pointer_cancel(self, pointer_id: int | None = None) -> None:
        if self.phase != DragPhase.DRAGGING:
            return
        if pointer_id is not None and self.state.pointer_id != pointer_id:
            return
        self._reset()

    def finish_commit(self) -> None:
        """The commit's write has finished (either way); drop the preview."""
        self._reset()

    def _reset(self) -> None:
        self.phase = DragPhase.IDLE
        self.state = None
        self.pending = None
