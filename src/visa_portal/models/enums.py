"""Closed state and role enums for the case workflow."""

from enum import Enum


class _TolerantEnum(str, Enum):
    """String enum that also accepts case and separator variants from the API."""

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().upper().replace("-", "_").replace(" ", "_")
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class ApplicationStatus(_TolerantEnum):
    PENDING = "PENDING"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self in (ApplicationStatus.APPROVED, ApplicationStatus.REJECTED)


class VerificationStatus(_TolerantEnum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class DocumentRequestStatus(_TolerantEnum):
    SENT = "SENT"
    SUBMITTED = "SUBMITTED"
    CANCELLED = "CANCELLED"


class InterviewStatus(_TolerantEnum):
    SCHEDULED = "SCHEDULED"
    RESCHEDULED = "RESCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (InterviewStatus.COMPLETED, InterviewStatus.CANCELLED)


class ActorRole(_TolerantEnum):
    APPLICANT = "APPLICANT"
    OFFICER = "OFFICER"
    ADMIN = "ADMIN"

    @property
    def is_staff(self) -> bool:
        return self in (ActorRole.OFFICER, ActorRole.ADMIN)


class ConversationStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class DocumentType(str, Enum):
    """Document types accepted by the portal."""
    PASSPORT_COPY = "passportCopy"
    PHOTOS = "photos"
    YELLOW_FEVER_CERTIFICATE = "yellowFeverCertificate"
    TRAVEL_INSURANCE = "travelInsurance"
    BANK_STATEMENT = "bankStatement"
    EMPLOYMENT_LETTER = "employmentLetter"
    INVITATION_LETTER = "invitationLetter"
    EMPLOYMENT_CONTRACT = "employmentContract"
    WORK_PERMIT = "workPermit"
    ADMISSION_LETTER = "admissionLetter"
    ACADEMIC_TRANSCRIPTS = "academicTranscripts"
    CRIMINAL_RECORD = "criminalRecord"
    MEDICAL_CERTIFICATE = "medicalCertificate"
    ONWARD_TICKET = "onwardTicket"
    FINAL_DESTINATION_VISA = "finalDestinationVisa"

    @property
    def label(self) -> str:
        """Human readable name, e.g. ``Yellow Fever Certificate``."""
        words = []
        current = ""
        for char in self.value:
            if char.isupper() and current:
                words.append(current)
                current = char
            else:
                current += char
        words.append(current)
        return " ".join(word[:1].upper() + word[1:] for word in words)
