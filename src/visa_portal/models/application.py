"""The application aggregate and its nested information blocks."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import AliasChoices, Field

from .base import PortalModel
from .document import Document
from .document_request import DocumentRequest
from .enums import ApplicationStatus, DocumentRequestStatus, VerificationStatus
from .interview import Interview
from .message import Message
from .note import Note
from .participant import Participant


class PersonalInfo(PortalModel):
    first_name: str
    last_name: str
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    nationality: Optional[str] = None
    marital_status: Optional[str] = None
    passport_number: Optional[str] = None
    passport_issue_date: Optional[date] = None
    passport_expiry_date: Optional[date] = None
    passport_issuing_country: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    occupation: Optional[str] = None
    employer_details: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class TravelInfo(PortalModel):
    purpose_of_travel: Optional[str] = None
    entry_date: Optional[date] = None
    exit_date: Optional[date] = None
    port_of_entry: Optional[str] = None
    previous_visits: bool = False
    previous_visit_details: Optional[str] = None
    travel_itinerary: Optional[str] = None
    accommodation_details: Optional[str] = None
    final_destination: Optional[str] = None


class Payment(PortalModel):
    id: str
    amount: float
    currency: str = "USD"
    status: str = "PENDING"
    transaction_id: Optional[str] = None
    payment_date: Optional[datetime] = None


class VisaType(PortalModel):
    id: str
    name: str
    price: Optional[float] = None


class Application(PortalModel):
    """One visa application and all of its attached workflow state."""

    id: str
    application_number: str
    status: ApplicationStatus = ApplicationStatus.PENDING
    submission_date: Optional[datetime] = None
    decision_date: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    applicant_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("applicantId", "userId", "applicant_id"),
    )
    applicant: Optional[Participant] = Field(
        default=None,
        validation_alias=AliasChoices("applicant", "user"),
    )
    assigned_officer_id: Optional[str] = None
    personal_info: Optional[PersonalInfo] = None
    travel_info: Optional[TravelInfo] = None
    payment: Optional[Payment] = None
    visa_type: Optional[VisaType] = None
    documents: List[Document] = Field(default_factory=list)
    document_requests: List[DocumentRequest] = Field(
        default_factory=list,
        validation_alias=AliasChoices("documentRequests", "requestForDocuments", "document_requests"),
    )
    interviews: List[Interview] = Field(default_factory=list)
    notes: List[Note] = Field(default_factory=list)
    messages: List[Message] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def owner_id(self) -> Optional[str]:
        if self.applicant_id:
            return self.applicant_id
        return self.applicant.id if self.applicant else None

    def outstanding_requests(self) -> List[DocumentRequest]:
        """Requests still waiting on the applicant."""
        return [r for r in self.document_requests if r.status == DocumentRequestStatus.SENT]

    def pending_documents(self) -> List[Document]:
        return [d for d in self.documents if d.verification_status == VerificationStatus.PENDING]
