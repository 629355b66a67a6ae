from teamcal.models.user import User
from teamcal.models.time_entry import TimeEntry

__all__ = [
    "User",
    "TimeEntry",
]
