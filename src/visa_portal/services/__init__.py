"""Case workflow services."""

from .fsm_service import FSMService, TransitionRecord, TransitionTable
from .case_aggregate import CaseAggregate
from .status_controller import StatusController, StatusUpdateResult
from .document_verification import DocumentVerificationEngine
from .document_requests import DocumentRequestWorkflow
from .interview_scheduler import InterviewScheduler, combine_schedule
from .message_thread import MessageThread, group_conversations, is_own_message, sort_messages, unread_count
from .case_workflow import CaseWorkflow

__all__ = [
    "FSMService", "TransitionRecord", "TransitionTable",
    "CaseAggregate",
    "StatusController", "StatusUpdateResult",
    "DocumentVerificationEngine",
    "DocumentRequestWorkflow",
    "InterviewScheduler", "combine_schedule",
    "MessageThread", "group_conversations", "is_own_message", "sort_messages", "unread_count",
    "CaseWorkflow",
]
