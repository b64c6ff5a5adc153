"""Uploaded application documents and their verification state."""

from datetime import datetime
from typing import Optional, Union

from pydantic import AliasChoices, Field

from .base import PortalModel
from .enums import DocumentType, VerificationStatus


class Document(PortalModel):
    """A stored reference to an uploaded document. The binary lives in object storage."""

    id: str
    application_id: Optional[str] = None
    # Documents submitted against a request may carry a free-text type
    document_type: Union[DocumentType, str] = Field(union_mode="left_to_right")
    file_name: str
    file_size: int = 0
    file_path: str
    upload_date: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("uploadDate", "uploadedAt", "upload_date"),
    )
    verification_status: VerificationStatus = Field(
        default=VerificationStatus.PENDING,
        validation_alias=AliasChoices("verificationStatus", "status", "verification_status"),
    )
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.verification_status == VerificationStatus.PENDING


class VerificationResult(PortalModel):
    """Fields echoed by the verify/reject endpoint."""

    verification_status: Optional[VerificationStatus] = Field(
        default=None,
        validation_alias=AliasChoices("verificationStatus", "status", "verification_status"),
    )
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        """Whether the response carries enough to patch the document locally."""
        return (
            self.verification_status is not None
            and self.verified_by is not None
            and self.verified_at is not None
        )
