"""Officer-initiated requests for additional documents."""

from datetime import datetime
from typing import Optional, Union

from pydantic import AliasChoices, Field

from .base import PortalModel
from .enums import DocumentRequestStatus, DocumentType
from .participant import Participant


class RequestedDocument(PortalModel):
    """Document attached to a fulfilled request."""

    id: str
    document_type: Optional[Union[DocumentType, str]] = Field(default=None, union_mode="left_to_right")
    file_name: str
    file_path: str
    file_size: int = 0
    upload_date: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("uploadDate", "uploadedAt", "upload_date"),
    )


class DocumentRequest(PortalModel):
    id: str
    application_id: str
    document_name: str
    additional_details: Optional[str] = None
    status: DocumentRequestStatus = DocumentRequestStatus.SENT
    officer: Optional[Participant] = None
    document: Optional[RequestedDocument] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.status == DocumentRequestStatus.SENT
