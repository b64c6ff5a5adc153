"""Pydantic schemas for API request bodies."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from visa_portal.models.base import PortalModel
from visa_portal.models.enums import ApplicationStatus, DocumentType


def _strip(v):
    return v.strip() if isinstance(v, str) else v


class StatusUpdate(PortalModel):
    """Body of ``PUT /applications/{id}/status``."""

    status: ApplicationStatus
    rejection_reason: Optional[str] = Field(None, description="Reason sent with a rejection")

    @field_validator("rejection_reason")
    @classmethod
    def strip_reason(cls, v):
        return _strip(v) or None


class NoteCreate(PortalModel):
    application_id: str
    content: str = Field(..., min_length=1)

    @field_validator("content")
    @classmethod
    def strip_content(cls, v):
        return _strip(v)


class DocumentVerification(PortalModel):
    """Body of ``PUT /documents/{id}/verify``."""

    is_approved: bool
    rejection_reason: Optional[str] = None


class DocumentRequestCreate(PortalModel):
    document_name: str = Field(..., min_length=1, max_length=255)
    additional_details: Optional[str] = None

    @field_validator("document_name", "additional_details")
    @classmethod
    def strip_text(cls, v):
        return _strip(v)


class DocumentRequestUpdate(PortalModel):
    document_name: Optional[str] = Field(None, max_length=255)
    additional_details: Optional[str] = None


class DocumentSubmission(PortalModel):
    """Metadata sent after the binary has been uploaded to object storage."""

    document_type: DocumentType
    file_name: str
    file_path: str
    file_size: int = Field(..., ge=0)


class InterviewCreate(PortalModel):
    application_id: str
    assigned_officer_id: str
    scheduled_date: datetime
    location: str
    notes: Optional[str] = None


class InterviewReschedule(PortalModel):
    scheduled_date: datetime
    location: Optional[str] = None
    notes: Optional[str] = None


class InterviewCompletion(PortalModel):
    outcome: str
    notes: Optional[str] = None


class MessageCreate(PortalModel):
    recipient_id: str
    application_id: str
    content: str = Field(..., min_length=1)
    reply_to_id: Optional[str] = None
    attachments: List[str] = Field(default_factory=list)
