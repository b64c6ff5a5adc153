"""Messages exchanged between applicants and officers, and inbox conversations."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import field_validator

from .base import PortalModel
from .enums import ConversationStatus
from .participant import Participant


class Message(PortalModel):
    """Immutable once created, except for the read flag."""

    id: str
    content: str
    created_at: datetime
    sender: Participant
    recipient: Optional[Participant] = None
    application_id: str
    is_read: bool = False
    reply_to_id: Optional[str] = None

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # The API sends both "Z"-suffixed and bare timestamps; bare ones are UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class Conversation(PortalModel):
    """Officer inbox entry: all messages of one application."""

    application_id: str
    last_message: str
    last_message_at: datetime
    unread: bool
    status: ConversationStatus
    message_count: int
    counterpart: Optional[Participant] = None
