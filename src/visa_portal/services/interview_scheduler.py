"""Interview lifecycle and applicant confirmation."""

from datetime import date, datetime, time, timezone
from typing import List, Optional, Union

import pydantic
import structlog

from visa_portal.auth.permissions import WorkflowOperation, require_permission
from visa_portal.clients.api_client import ApiResponse
from visa_portal.core.error_handling import AlreadyConfirmed, IncompleteSchedule, ValidationError
from visa_portal.core.event_publisher import CaseEventPublisher
from visa_portal.core.inflight import InFlightRegistry
from visa_portal.models import Actor, Interview, InterviewStatus, MutationResult, Patch, RequiresRefetch
from visa_portal.schemas import InterviewCompletion, InterviewCreate, InterviewReschedule
from visa_portal.services.case_aggregate import CaseAggregate
from visa_portal.services.fsm_service import INTERVIEW_TABLE, FSMService

logger = structlog.get_logger(__name__)

DateInput = Union[date, str, None]
TimeInput = Union[time, str, None]


def combine_schedule(scheduled_date: DateInput, scheduled_time: TimeInput) -> datetime:
    """Combine a date and a time of day into one timestamp.

    Raises:
        IncompleteSchedule: If either part is missing
        ValidationError: If either part cannot be parsed
    """
    if isinstance(scheduled_date, str):
        scheduled_date = scheduled_date.strip()
    if isinstance(scheduled_time, str):
        scheduled_time = scheduled_time.strip()

    if scheduled_date in (None, "") or scheduled_time in (None, ""):
        raise IncompleteSchedule(
            field="scheduled_date" if scheduled_date in (None, "") else "scheduled_time"
        )

    try:
        if isinstance(scheduled_date, str):
            scheduled_date = date.fromisoformat(scheduled_date)
        if isinstance(scheduled_time, str):
            scheduled_time = time.fromisoformat(scheduled_time)
    except ValueError as e:
        raise ValidationError(f"Invalid interview date or time: {e}", field="scheduled_date") from e

    if isinstance(scheduled_date, datetime):
        scheduled_date = scheduled_date.date()

    return datetime.combine(scheduled_date, scheduled_time)


def _echoed_interview(response: Optional[ApiResponse]) -> Optional[Interview]:
    if response is None or not isinstance(response.data, dict):
        return None
    try:
        return Interview.model_validate(response.data)
    except pydantic.ValidationError:
        return None


class InterviewScheduler:
    """SCHEDULED <-> RESCHEDULED, both exiting to COMPLETED | CANCELLED.

    ``confirmed`` is orthogonal to the status: only the applicant sets it,
    only while the interview is live, and only once. A reschedule resets it
    because the confirmed date no longer holds.
    """

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

    async def list_interviews(self) -> List[Interview]:
        interviews = await self.api.get_application_interviews(self.aggregate.application_id)
        interviews = sorted(interviews, key=lambda i: (i.scheduled_date, i.id))
        self.aggregate.replace_interviews(interviews)
        return interviews

    @require_permission(WorkflowOperation.SCHEDULE_INTERVIEW)
    async def schedule(
        self,
        assigned_officer_id: str,
        scheduled_date: DateInput,
        scheduled_time: TimeInput,
        location: str,
        notes: Optional[str] = None
    ) -> MutationResult:
        """Create a new interview in SCHEDULED."""
        when = combine_schedule(scheduled_date, scheduled_time)
        if not (location or "").strip():
            raise ValidationError("Interview location is required", field="location")
        if not assigned_officer_id:
            raise ValidationError("An officer must be assigned", field="assigned_officer_id")

        self.aggregate.ensure_mutable()
        application_id = self.aggregate.application_id

        response = await self.api.create_interview(InterviewCreate(
            application_id=application_id,
            assigned_officer_id=assigned_officer_id,
            scheduled_date=when,
            location=location.strip(),
            notes=(notes or "").strip() or None,
        ))

        created = _echoed_interview(response)
        mutation = Patch(created) if created else RequiresRefetch(reason="interview scheduled")
        logger.info(
            "Interview scheduled",
            application_id=application_id,
            interview_id=created.id if created else None,
            scheduled_date=when.isoformat(),
            actor_id=self.actor.id
        )
        await self.publisher.publish(application_id, mutation)
        return mutation

    @require_permission(WorkflowOperation.RESCHEDULE_INTERVIEW)
    async def reschedule(
        self,
        interview_id: str,
        new_date: DateInput,
        new_time: TimeInput,
        location: Optional[str] = None,
        notes: Optional[str] = None
    ) -> MutationResult:
        """Move a live interview to a new date and time.

        Raises:
            IncompleteSchedule: If the new date or time is missing; the
                interview is left untouched
        """
        when = combine_schedule(new_date, new_time)

        self.aggregate.ensure_mutable()
        interview = self.aggregate.get_interview(interview_id)
        new_status = self.fsm.check(INTERVIEW_TABLE, interview.id, interview.status, "reschedule")

        body = InterviewReschedule(
            scheduled_date=when,
            location=(location or "").strip() or None,
            notes=(notes or "").strip() or None,
        )
        async with self.inflight.guard(WorkflowOperation.RESCHEDULE_INTERVIEW.value, interview.id):
            await self.api.reschedule_interview(interview.id, body)

        changes = {
            "scheduled_date": when,
            "status": new_status,
            "confirmed": False,
            "confirmed_at": None,
        }
        if body.location:
            changes["location"] = body.location
        if body.notes:
            changes["notes"] = body.notes

        return await self._commit(interview, interview.model_copy(update=changes), "reschedule")

    @require_permission(WorkflowOperation.CANCEL_INTERVIEW)
    async def cancel(self, interview_id: str) -> MutationResult:
        """Cancel a live interview. Irreversible."""
        self.aggregate.ensure_mutable()
        interview = self.aggregate.get_interview(interview_id)
        new_status = self.fsm.check(INTERVIEW_TABLE, interview.id, interview.status, "cancel")

        async with self.inflight.guard(WorkflowOperation.CANCEL_INTERVIEW.value, interview.id):
            await self.api.cancel_interview(interview.id)

        return await self._commit(interview, interview.model_copy(update={"status": new_status}), "cancel")

    @require_permission(WorkflowOperation.COMPLETE_INTERVIEW)
    async def complete(
        self,
        interview_id: str,
        outcome: Optional[str] = None,
        notes: Optional[str] = None
    ) -> MutationResult:
        """Mark a live interview COMPLETED, optionally recording its outcome."""
        self.aggregate.ensure_mutable()
        interview = self.aggregate.get_interview(interview_id)
        new_status = self.fsm.check(INTERVIEW_TABLE, interview.id, interview.status, "complete")

        outcome_text = (outcome or "").strip() or None
        notes_text = (notes or "").strip() or None
        async with self.inflight.guard(WorkflowOperation.COMPLETE_INTERVIEW.value, interview.id):
            await self.api.mark_interview_completed(
                interview.id,
                InterviewCompletion(outcome=outcome_text or "", notes=notes_text)
            )

        changes = {"status": new_status, "outcome": outcome_text}
        if notes_text:
            changes["notes"] = notes_text
        return await self._commit(interview, interview.model_copy(update=changes), "complete")

    @require_permission(WorkflowOperation.CONFIRM_INTERVIEW)
    async def confirm(self, interview_id: str) -> MutationResult:
        """Applicant confirmation of a live interview.

        Raises:
            AlreadyConfirmed: If the interview was confirmed before;
                ``confirmed_at`` keeps its first value
            InvalidTransition: If the interview is COMPLETED or CANCELLED
        """
        self.aggregate.ensure_mutable()
        interview = self.aggregate.get_interview(interview_id)

        if interview.confirmed:
            raise AlreadyConfirmed(
                f"Interview {interview.id} was already confirmed",
                state=interview.status.value,
                action="confirm"
            )
        self.fsm.check(INTERVIEW_TABLE, interview.id, interview.status, "confirm")

        async with self.inflight.guard(WorkflowOperation.CONFIRM_INTERVIEW.value, interview.id):
            response = await self.api.confirm_interview(interview.id)

        echoed = _echoed_interview(response)
        confirmed_at = (
            echoed.confirmed_at if echoed is not None and echoed.confirmed_at
            else datetime.now(timezone.utc)
        )
        updated = interview.model_copy(update={"confirmed": True, "confirmed_at": confirmed_at})
        return await self._commit(interview, updated, "confirm")

    async def _commit(self, before: Interview, after: Interview, action: str) -> MutationResult:
        self.fsm.record(INTERVIEW_TABLE, before.id, before.status, after.status, action, actor_id=self.actor.id)
        mutation = Patch(after)
        await self.publisher.publish(self.aggregate.application_id, mutation)
        return mutation

    def is_confirmable(self, interview: Interview) -> bool:
        return (
            interview.status in (InterviewStatus.SCHEDULED, InterviewStatus.RESCHEDULED)
            and not interview.confirmed
            and not self.aggregate.is_frozen
        )
