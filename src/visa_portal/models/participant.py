"""Users referenced by entities (senders, officers, authors)."""

from typing import Optional

from .base import PortalModel
from .enums import ActorRole


class Participant(PortalModel):
    id: str
    name: str = ""
    email: Optional[str] = None
    role: Optional[ActorRole] = None
