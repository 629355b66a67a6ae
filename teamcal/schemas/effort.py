from pydantic import BaseModel


class EffortRowPublic(BaseModel):
    owner_id: int
    project: str
    hours: float


class ProjectTotalPublic(BaseModel):
    """Whole hours and remaining minutes, as shown on the effort page"""
    project: str
    hours: int
    minutes: int


class EffortSummary(BaseModel):
    month: str
    rows: list[EffortRowPublic]
    projects: list[ProjectTotalPublic]
    total_hours: float
