"""Actors permitted to invoke workflow operations."""

from typing import Optional

from .base import PortalModel
from .enums import ActorRole


class Actor(PortalModel):
    """Applicant, officer or admin acting on a case."""

    id: str
    name: str = ""
    email: Optional[str] = None
    role: ActorRole

    @property
    def is_staff(self) -> bool:
        return self.role.is_staff
