"""Domain entities for the visa case workflow."""

from .enums import (
    ActorRole,
    ApplicationStatus,
    ConversationStatus,
    DocumentRequestStatus,
    DocumentType,
    InterviewStatus,
    VerificationStatus,
)
from .actor import Actor
from .participant import Participant
from .document import Document, VerificationResult
from .document_request import DocumentRequest, RequestedDocument
from .interview import Interview
from .message import Conversation, Message
from .note import Note
from .application import Application, Payment, PersonalInfo, TravelInfo, VisaType
from .results import MutationResult, Patch, RequiresRefetch, StatusChange

__all__ = [
    "ActorRole", "ApplicationStatus", "ConversationStatus", "DocumentRequestStatus",
    "DocumentType", "InterviewStatus", "VerificationStatus",
    "Actor", "Participant",
    "Document", "VerificationResult",
    "DocumentRequest", "RequestedDocument",
    "Interview", "Conversation", "Message", "Note",
    "Application", "Payment", "PersonalInfo", "TravelInfo", "VisaType",
    "MutationResult", "Patch", "RequiresRefetch", "StatusChange",
]
