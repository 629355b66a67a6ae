from datetime import date, datetime

from pydantic import BaseModel, Field

from teamcal.schemas.recurrence import RecurrenceRule
from teamcal.services.series import SeriesScope


class TimeEntryBase(BaseModel):
    project: str = ""
    summary: str = ""
    start_time: datetime
    end_time: datetime
    recurrence: RecurrenceRule | None = None
    guest_ids: list[int] = Field(default_factory=list)


class TimeEntryCreate(TimeEntryBase):
    pass


class TimeEntryUpdate(BaseModel):
    project: str | None = None
    summary: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    recurrence: RecurrenceRule | None = None
    guest_ids: list[int] | None = None

    class Config:
        extra = "ignore"


class TimeEntryPublic(TimeEntryBase):
    id: int
    owner_id: int
    company_code: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OccurrencePublic(BaseModel):
    key: str
    base_id: int
    is_occurrence: bool
    recurring: bool
    owner_id: int | None
    project: str
    summary: str
    start_time: datetime
    end_time: datetime
    guest_ids: list[int]


class SeriesDeletionRequest(BaseModel):
    scope: SeriesScope
    day_key: date | None = Field(default=None, description="Day of the occurrence acted on")


class SeriesDeletionResult(BaseModel):
    base_id: int
    scope: SeriesScope
    series_deleted: bool
    entry: TimeEntryPublic | None = None


class RescheduleRequest(BaseModel):
    start_time: datetime
    end_time: datetime
