"""Interviews scheduled for an application."""

from datetime import datetime
from typing import Optional

from .base import PortalModel
from .enums import InterviewStatus
from .participant import Participant


class Interview(PortalModel):
    id: str
    application_id: Optional[str] = None
    scheduled_date: datetime
    location: str = ""
    assigned_officer: Optional[Participant] = None
    status: InterviewStatus = InterviewStatus.SCHEDULED
    confirmed: bool = False
    confirmed_at: Optional[datetime] = None
    notes: Optional[str] = None
    outcome: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal
