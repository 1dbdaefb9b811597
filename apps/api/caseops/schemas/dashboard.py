"""Dashboard schemas."""

from pydantic import BaseModel


class DashboardStats(BaseModel):
    total_cases: int = 0
    total_users: int = 0
    total_events: int = 0
    total_activities: int = 0
    active_cases: int = 0
    new_cases: int = 0
    inactive_cases: int = 0
    stale_cases: int = 0  # not updated for a month
    recently_updated_cases: int = 0
    upcoming_meetings: int = 0
