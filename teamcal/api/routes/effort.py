from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from teamcal.api import deps
from teamcal.db.session import get_db
from teamcal.models.user import User
from teamcal.schemas.effort import EffortRowPublic, EffortSummary, ProjectTotalPublic
from teamcal.services import entry_store
from teamcal.services.effort import project_totals, summarize_effort

router = APIRouter()


@router.get("/", response_model=EffortSummary)
def get_effort_summary(
    month: str = Query(..., description="YYYY-MM"),
    owner_ids: list[int] | None = Query(default=None),
    project: str | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_user),
    tz: ZoneInfo = Depends(deps.get_user_timezone),
) -> EffortSummary:
    """Hours per member and project in a month, recurring series included."""
    entries = entry_store.fetch_entries(db, current_user.company_code or "")
    try:
        rows = summarize_effort(entries, month, tz=tz, owner_ids=owner_ids, project=project)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        )
    return EffortSummary(
        month=month,
        rows=[EffortRowPublic(owner_id=row.owner_id, project=row.project, hours=row.hours) for row in rows],
        projects=[
            ProjectTotalPublic(project=total.project, hours=total.hours, minutes=total.minutes)
            for total in project_totals(rows)
        ],
        total_hours=round(sum(row.hours for row in rows), 2),
    )
