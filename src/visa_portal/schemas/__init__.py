"""Request bodies sent to the portal API."""

from .payloads import (
    DocumentRequestCreate,
    DocumentRequestUpdate,
    DocumentSubmission,
    DocumentVerification,
    InterviewCompletion,
    InterviewCreate,
    InterviewReschedule,
    MessageCreate,
    NoteCreate,
    StatusUpdate,
)

__all__ = [
    "DocumentRequestCreate", "DocumentRequestUpdate", "DocumentSubmission",
    "DocumentVerification", "InterviewCompletion", "InterviewCreate",
    "InterviewReschedule", "MessageCreate", "NoteCreate", "StatusUpdate",
]
