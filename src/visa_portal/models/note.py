"""Officer-only case notes."""

from datetime import datetime
from typing import Optional

from .base import PortalModel
from .participant import Participant


class Note(PortalModel):
    id: str
    application_id: Optional[str] = None
    content: str
    created_at: datetime
    officer: Optional[Participant] = None
