"""Facade wiring the case components for one application and one actor.

Every mutating call runs through ``operation_boundary`` and returns an
``OperationOutcome`` carrying exactly one notification. Errors never escape
into the caller's view.
"""

from typing import Any, Awaitable, Callable, Optional, Union

import structlog

from visa_portal.auth.permissions import WorkflowOperation, is_permitted
from visa_portal.clients.storage import ObjectStorage, UploadFile
from visa_portal.core.config import Settings, settings as default_settings
from visa_portal.core.error_handling import (
    ErrorContext,
    Notification,
    OperationOutcome,
    ValidationError,
    operation_boundary,
)
from visa_portal.core.event_publisher import CaseEventPublisher
from visa_portal.core.inflight import InFlightRegistry
from visa_portal.core.logging import log_operation_context
from visa_portal.core.session_context import NavigationSession
from visa_portal.models import ApplicationStatus, DocumentType, Message
from visa_portal.services.case_aggregate import CaseAggregate
from visa_portal.services.document_requests import DocumentRequestWorkflow
from visa_portal.services.document_verification import DocumentVerificationEngine
from visa_portal.services.fsm_service import FSMService
from visa_portal.services.interview_scheduler import InterviewScheduler
from visa_portal.services.message_thread import MessageThread
from visa_portal.services.status_controller import StatusController

logger = structlog.get_logger(__name__)


class CaseWorkflow:
    """One application's workflow as driven by the session's actor."""

    def __init__(
        self,
        session: NavigationSession,
        application_id: str,
        api,
        storage: ObjectStorage,
        settings: Optional[Settings] = None,
        publisher: Optional[CaseEventPublisher] = None,
        fsm: Optional[FSMService] = None,
        inflight: Optional[InFlightRegistry] = None
    ):
        self.session = session
        self.actor = session.actor
        self.settings = settings or default_settings
        self.publisher = publisher or CaseEventPublisher()
        self.fsm = fsm or FSMService()
        self.inflight = inflight or InFlightRegistry()

        self.aggregate = CaseAggregate(application_id, api, self.publisher)
        common = dict(
            aggregate=self.aggregate,
            api=api,
            publisher=self.publisher,
            inflight=self.inflight,
            actor=self.actor,
        )
        self.status = StatusController(fsm=self.fsm, **common)
        self.documents = DocumentVerificationEngine(fsm=self.fsm, **common)
        self.requests = DocumentRequestWorkflow(
            storage=storage, fsm=self.fsm, settings=self.settings, **common
        )
        self.interviews = InterviewScheduler(fsm=self.fsm, **common)
        self.messages = MessageThread(**common)

    @classmethod
    async def open(
        cls,
        session: NavigationSession,
        application_id: str,
        api,
        storage: ObjectStorage,
        settings: Optional[Settings] = None
    ) -> "CaseWorkflow":
        """Build the workflow and load the application."""
        workflow = cls(session, application_id, api, storage, settings=settings)
        await workflow.aggregate.load()
        session.selected_application_id = workflow.aggregate.application_id
        return workflow

    def close(self) -> None:
        self.aggregate.close()

    @property
    def application_id(self) -> str:
        return self.aggregate.application_id

    def can(self, operation: WorkflowOperation, entity_id: Optional[str] = None) -> bool:
        """Whether a control for ``operation`` should be enabled."""
        if not is_permitted(self.actor, operation):
            return False
        if self.aggregate.is_frozen and operation not in (
            WorkflowOperation.SEND_MESSAGE,
            WorkflowOperation.MARK_READ,
            WorkflowOperation.ADD_NOTE,
            WorkflowOperation.LIST_NOTES,
        ):
            return False
        if entity_id is not None and self.inflight.is_busy(entity_id):
            return False
        return True

    async def _run(
        self,
        operation: str,
        action: Callable[[], Awaitable[Any]],
        success_title: str,
        entity_id: Optional[str] = None,
        success_description: str = ""
    ) -> OperationOutcome:
        context = ErrorContext(
            operation=operation,
            component="case_workflow",
            actor_id=self.actor.id,
            application_id=self.application_id,
            entity_id=str(entity_id) if entity_id is not None else None,
        )
        outcome = await operation_boundary(
            action,
            context,
            success_title=success_title,
            success_description=success_description,
        )
        logger.info(
            "Workflow operation finished",
            **log_operation_context(
                application_id=self.application_id,
                actor_id=self.actor.id,
                entity_id=context.entity_id,
                operation=operation,
                ok=outcome.ok
            )
        )
        return outcome

    # Aggregate

    async def refresh(self) -> OperationOutcome:
        return await self._run("refresh", lambda: self.aggregate.refresh("manual"), "Application refreshed")

    # Status and notes

    async def update_status(
        self,
        new_status: Union[ApplicationStatus, str],
        rejection_reason: Optional[str] = None
    ) -> OperationOutcome:
        outcome = await self._run(
            WorkflowOperation.UPDATE_STATUS.value,
            lambda: self.status.update_status(new_status, rejection_reason),
            "Status updated",
            entity_id=self.application_id,
        )
        if outcome.ok:
            outcome.notification = Notification.success("Status updated", outcome.value.message)
        return outcome

    async def add_note(self, content: str) -> OperationOutcome:
        return await self._run(WorkflowOperation.ADD_NOTE.value, lambda: self.status.add_note(content), "Note added")

    async def list_notes(self) -> OperationOutcome:
        return await self._run(WorkflowOperation.LIST_NOTES.value, self.status.list_notes, "Notes loaded")

    # Documents

    async def verify_document(self, document_id: str) -> OperationOutcome:
        return await self._run(
            WorkflowOperation.VERIFY_DOCUMENT.value,
            lambda: self.documents.verify(document_id),
            "Document verified",
            entity_id=document_id,
        )

    async def reject_document(self, document_id: str, reason: str) -> OperationOutcome:
        return await self._run(
            WorkflowOperation.REJECT_DOCUMENT.value,
            lambda: self.documents.reject(document_id, reason),
            "Document rejected",
            entity_id=document_id,
        )

    # Document requests

    async def list_requests(self) -> OperationOutcome:
        return await self._run("list_requests", self.requests.list_requests, "Document requests loaded")

    async def create_request(self, document_name: str, additional_details: Optional[str] = None) -> OperationOutcome:
        return await self._run(
            WorkflowOperation.CREATE_REQUEST.value,
            lambda: self.requests.create_request(document_name, additional_details),
            "Document request sent",
        )

    async def update_request(
        self,
        request_id: str,
        document_name: Optional[str] = None,
        additional_details: Optional[str] = None
    ) -> OperationOutcome:
        return await self._run(
            WorkflowOperation.UPDATE_REQUEST.value,
            lambda: self.requests.update_request(request_id, document_name, additional_details),
            "Document request updated",
            entity_id=request_id,
        )

    async def cancel_request(self, request_id: str) -> OperationOutcome:
        return await self._run(
            WorkflowOperation.CANCEL_REQUEST.value,
            lambda: self.requests.cancel_request(request_id),
            "Document request cancelled",
            entity_id=request_id,
        )

    async def submit_document(
        self,
        request_id: str,
        document_type: Union[DocumentType, str],
        file: UploadFile
    ) -> OperationOutcome:
        return await self._run(
            WorkflowOperation.SUBMIT_DOCUMENT.value,
            lambda: self.requests.submit_document(request_id, document_type, file),
            "Document submitted",
            entity_id=request_id,
        )

    # Interviews

    async def list_interviews(self) -> OperationOutcome:
        return await self._run("list_interviews", self.interviews.list_interviews, "Interviews loaded")

    async def schedule_interview(
        self,
        assigned_officer_id: str,
        scheduled_date,
        scheduled_time,
        location: str,
        notes: Optional[str] = None
    ) -> OperationOutcome:
        return await self._run(
            WorkflowOperation.SCHEDULE_INTERVIEW.value,
            lambda: self.interviews.schedule(assigned_officer_id, scheduled_date, scheduled_time, location, notes),
            "Interview scheduled",
        )

    async def reschedule_interview(
        self,
        interview_id: str,
        new_date,
        new_time,
        location: Optional[str] = None,
        notes: Optional[str] = None
    ) -> OperationOutcome:
        return await self._run(
            WorkflowOperation.RESCHEDULE_INTERVIEW.value,
            lambda: self.interviews.reschedule(interview_id, new_date, new_time, location, notes),
            "Interview rescheduled",
            entity_id=interview_id,
        )

    async def cancel_interview(self, interview_id: str) -> OperationOutcome:
        return await self._run(
            WorkflowOperation.CANCEL_INTERVIEW.value,
            lambda: self.interviews.cancel(interview_id),
            "Interview cancelled",
            entity_id=interview_id,
        )

    async def complete_interview(
        self,
        interview_id: str,
        outcome: Optional[str] = None,
        notes: Optional[str] = None
    ) -> OperationOutcome:
        return await self._run(
            WorkflowOperation.COMPLETE_INTERVIEW.value,
            lambda: self.interviews.complete(interview_id, outcome, notes),
            "Interview completed",
            entity_id=interview_id,
        )

    async def confirm_interview(self, interview_id: str) -> OperationOutcome:
        return await self._run(
            WorkflowOperation.CONFIRM_INTERVIEW.value,
            lambda: self.interviews.confirm(interview_id),
            "Interview confirmed",
            entity_id=interview_id,
        )

    # Messages

    def default_recipient_id(self) -> Optional[str]:
        """Applicants write to the assigned officer; staff write to the applicant."""
        view = self.aggregate.view
        if self.actor.is_staff:
            return view.owner_id
        return view.assigned_officer_id

    async def fetch_messages(self, page: int = 1) -> OperationOutcome:
        return await self._run("fetch_messages", lambda: self.messages.fetch_thread(page), "Messages loaded")

    async def send_message(self, content: str, recipient_id: Optional[str] = None) -> OperationOutcome:
        async def action():
            recipient = recipient_id or self.default_recipient_id()
            if not recipient:
                raise ValidationError("No recipient available for this application", field="recipient_id")
            return await self.messages.send_message(recipient, content)

        return await self._run(WorkflowOperation.SEND_MESSAGE.value, action, "Message sent")

    async def reply(self, original: Message, content: str) -> OperationOutcome:
        return await self._run(
            WorkflowOperation.SEND_MESSAGE.value,
            lambda: self.messages.reply(original, content),
            "Reply sent",
            entity_id=original.id,
        )

    async def mark_read(self, message_id: str) -> OperationOutcome:
        return await self._run(
            WorkflowOperation.MARK_READ.value,
            lambda: self.messages.mark_read(message_id),
            "Message marked as read",
            entity_id=message_id,
        )

    async def mark_all_read(self) -> OperationOutcome:
        return await self._run("mark_all_read", self.messages.mark_all_read, "All messages marked as read")
