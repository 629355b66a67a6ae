from datetime import date
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator


class NoTermination(BaseModel):
    type: Literal["none"] = "none"


class UntilTermination(BaseModel):
    """Series ends on ``until`` inclusive, in local calendar days."""
    type: Literal["until"] = "until"
    until: date


class CountTermination(BaseModel):
    """Series ends after exactly ``count`` occurrences from the template forward."""
    type: Literal["count"] = "count"
    count: int = Field(..., ge=1)


Termination = Annotated[
    Union[NoTermination, UntilTermination, CountTermination],
    Field(discriminator="type"),
]


class RecurrenceRule(BaseModel):
    """Weekly recurrence configuration"""
    frequency: Literal["weekly"] = Field(default="weekly", description="Only weekly is supported")
    interval: int = Field(default=1, ge=1, description="Every N weeks from the template's week")
    weekdays: list[int] | None = Field(default=None, description="0=Sunday, 6=Saturday")
    termination: Termination = Field(default_factory=NoTermination)
    exception_dates: list[date] = Field(default_factory=list)

    @field_validator("weekdays")
    @classmethod
    def _check_weekdays(cls, value: list[int] | None) -> list[int] | None:
        if value is None:
            return None
        for day in value:
            if not 0 <= day <= 6:
                raise ValueError(f"weekday {day} out of range 0-6")
        return sorted(set(value))

    @field_validator("exception_dates")
    @classmethod
    def _sort_exception_dates(cls, value: list[date]) -> list[date]:
        return sorted(set(value))

    def to_storage(self) -> dict:
        # mode="json" keeps dates as YYYY-MM-DD strings
        return self.model_dump(mode="json")
