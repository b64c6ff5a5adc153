"""Top-level application status machine and officer notes."""

from dataclasses import dataclass
from typing import List, Optional, Union

import structlog

from visa_portal.auth.permissions import WorkflowOperation, require_permission
from visa_portal.core.error_handling import EmptyNote, InvalidTransition, TransitionError, UpdateFailed
from visa_portal.core.event_publisher import CaseEventPublisher
from visa_portal.core.inflight import InFlightRegistry
from visa_portal.models import Actor, ApplicationStatus, Note, Patch, StatusChange
from visa_portal.schemas import NoteCreate
from visa_portal.services.case_aggregate import CaseAggregate
from visa_portal.services.fsm_service import APPLICATION_STATUS_TABLE, FSMService

logger = structlog.get_logger(__name__)


@dataclass
class StatusUpdateResult:
    """Outcome of ``update_status``. ``changed`` is False for a same-state request."""
    changed: bool
    status: ApplicationStatus
    previous: ApplicationStatus

    @property
    def message(self) -> str:
        if not self.changed:
            return "No changes"
        return f"Status changed from {self.previous.value} to {self.status.value}"


class StatusController:
    """Root of the case workflow: owns the application status and notes."""

    # Targets offered to officers; the backend decides finer policy
    LEGAL_TARGETS = tuple(ApplicationStatus)

    def __init__(
        self,
        aggregate: CaseAggregate,
        api,
        publisher: CaseEventPublisher,
        fsm: FSMService,
        inflight: InFlightRegistry,
        actor: Actor
    ):
        self.aggregate = aggregate
        self.api = api
        self.publisher = publisher
        self.fsm = fsm
        self.inflight = inflight
        self.actor = actor

    @property
    def current_status(self) -> ApplicationStatus:
        return self.aggregate.view.status

    def available_targets(self) -> List[ApplicationStatus]:
        if self.aggregate.is_frozen:
            return []
        return [s for s in self.LEGAL_TARGETS if s != self.current_status]

    @require_permission(WorkflowOperation.UPDATE_STATUS)
    async def update_status(
        self,
        new_status: Union[ApplicationStatus, str],
        rejection_reason: Optional[str] = None
    ) -> StatusUpdateResult:
        """Move the application to ``new_status``.

        A same-state request returns ``changed=False`` without any network
        call. Terminal applications refuse further updates.

        Raises:
            CaseFrozen: If the application is APPROVED or REJECTED
            InvalidTransition: If approval is requested while document requests are outstanding
            UpdateFailed: If the backend rejects the transition
        """
        target = ApplicationStatus(new_status)
        current = self.current_status
        application_id = self.aggregate.application_id

        if target == current:
            logger.info(
                "Application already in target status",
                application_id=application_id,
                status=target.value
            )
            return StatusUpdateResult(changed=False, status=current, previous=current)

        self.aggregate.ensure_mutable()
        self.fsm.check(APPLICATION_STATUS_TABLE, application_id, current, target.value)

        if target == ApplicationStatus.APPROVED:
            outstanding = self.aggregate.outstanding_requests()
            if outstanding:
                raise InvalidTransition(
                    f"Cannot approve while {len(outstanding)} document request(s) are awaiting the applicant",
                    state=current.value,
                    action=target.value
                )

        reason = rejection_reason.strip() if rejection_reason else None
        if target != ApplicationStatus.REJECTED:
            reason = None

        async with self.inflight.guard(WorkflowOperation.UPDATE_STATUS.value, application_id):
            try:
                await self.api.update_application_status(application_id, target, reason)
            except TransitionError as e:
                raise UpdateFailed(
                    e.message,
                    state=current.value,
                    action=target.value,
                    original_error=e
                ) from e

        self.fsm.record(
            APPLICATION_STATUS_TABLE,
            application_id,
            current,
            target,
            target.value,
            actor_id=self.actor.id
        )
        await self.publisher.publish(application_id, Patch(StatusChange(status=target, rejection_reason=reason)))
        await self.publisher.publish_refetch(application_id, "status updated")

        return StatusUpdateResult(changed=True, status=target, previous=current)

    @require_permission(WorkflowOperation.ADD_NOTE)
    async def add_note(self, content: str) -> Note:
        """Append an officer note and refresh the note list.

        Raises:
            EmptyNote: If ``content`` is blank
        """
        text = (content or "").strip()
        if not text:
            raise EmptyNote(value=content)

        application_id = self.aggregate.application_id
        note = await self.api.create_note(NoteCreate(application_id=application_id, content=text))
        logger.info(
            "Note added",
            application_id=application_id,
            note_id=note.id,
            actor_id=self.actor.id
        )

        await self.list_notes()
        return note

    @require_permission(WorkflowOperation.LIST_NOTES)
    async def list_notes(self) -> List[Note]:
        """Fetch notes, newest first, into the aggregate."""
        notes = await self.api.get_application_notes(self.aggregate.application_id)
        notes = sorted(notes, key=lambda n: (n.created_at, n.id), reverse=True)
        self.aggregate.replace_notes(notes)
        return notes
