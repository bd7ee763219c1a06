"""Dashboard response schemas."""

import datetime as dt

from pydantic import BaseModel


class DashboardStats(BaseModel):
    date: dt.date
    total_employees: int
    present_today: int
    on_leave: int
    pending_leaves: int
    total_teams: int
    pending_approvals: int
