from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from teamcal.db.base import Base


class TimeEntry(Base):
    __tablename__ = "time_entries"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    company_code = Column(String(64), nullable=False, default="", index=True)
    project = Column(String(255), nullable=False, default="")
    summary = Column(Text, nullable=False, default="")
    # Stored as naive UTC
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    # Weekly rule stored as JSON; dates stay "YYYY-MM-DD" strings:
    # {"frequency": "weekly", "interval": 1, "weekdays": [1, 3],
    #  "termination": {"type": "none"|"until"|"count", "until": "2024-02-01", "count": 5},
    #  "exception_dates": ["2024-01-08"]}
    recurrence = Column(JSON, nullable=True, default=None)
    guest_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    owner = relationship("User", back_populates="time_entries")

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurrence)
