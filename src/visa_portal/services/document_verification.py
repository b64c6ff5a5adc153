"""Per-document verification state: PENDING -> VERIFIED | REJECTED."""

from typing import Optional

import structlog

from visa_portal.auth.permissions import WorkflowOperation, require_permission
from visa_portal.core.error_handling import MissingReason
from visa_portal.core.event_publisher import CaseEventPublisher
from visa_portal.core.inflight import InFlightRegistry
from visa_portal.models import (
    Actor,
    Document,
    MutationResult,
    Patch,
    RequiresRefetch,
    VerificationResult,
    VerificationStatus,
)
from visa_portal.services.case_aggregate import CaseAggregate
from visa_portal.services.fsm_service import DOCUMENT_VERIFICATION_TABLE, FSMService

logger = structlog.get_logger(__name__)

# verify and reject share one in-flight flag per document
VERIFICATION_GROUP = "document_verification"


class DocumentVerificationEngine:
    """Officer verify/reject actions on uploaded documents."""

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

    def is_busy(self, document_id: str) -> bool:
        """Whether verify or reject is in flight for the document."""
        return self.inflight.is_in_flight(VERIFICATION_GROUP, document_id)

    @require_permission(WorkflowOperation.VERIFY_DOCUMENT)
    async def verify(self, document_id: str) -> MutationResult:
        """Mark a pending document VERIFIED and clear any stored rejection reason."""
        return await self._decide(document_id, "verify", VerificationStatus.VERIFIED, None)

    @require_permission(WorkflowOperation.REJECT_DOCUMENT)
    async def reject(self, document_id: str, reason: str) -> MutationResult:
        """Mark a pending document REJECTED with a reason.

        Raises:
            MissingReason: If ``reason`` is blank. Checked before anything else.
        """
        text = (reason or "").strip()
        if not text:
            raise MissingReason(value=reason)
        return await self._decide(document_id, "reject", VerificationStatus.REJECTED, text)

    async def _decide(
        self,
        document_id: str,
        action: str,
        expected: VerificationStatus,
        reason: Optional[str]
    ) -> MutationResult:
        self.aggregate.ensure_mutable()
        document = self.aggregate.get_document(document_id)
        self.fsm.check(DOCUMENT_VERIFICATION_TABLE, document.id, document.verification_status, action)

        async with self.inflight.guard(action, document.id, group=VERIFICATION_GROUP):
            if action == "verify":
                response = await self.api.verify_document(document.id, approve=True)
            else:
                response = await self.api.reject_document(document.id, reason)

        mutation = self._merge(document, response, expected, reason)

        self.fsm.record(
            DOCUMENT_VERIFICATION_TABLE,
            document.id,
            document.verification_status,
            expected,
            action,
            actor_id=self.actor.id
        )
        await self.publisher.publish(self.aggregate.application_id, mutation)
        return mutation

    def _merge(
        self,
        document: Document,
        response: Optional[VerificationResult],
        expected: VerificationStatus,
        reason: Optional[str]
    ) -> MutationResult:
        """Patch from a complete response, otherwise ask for a refetch."""
        if response is None or not response.is_complete or response.verification_status != expected:
            logger.info(
                "Verification response incomplete, requesting refetch",
                application_id=self.aggregate.application_id,
                document_id=document.id,
                expected=expected.value
            )
            return RequiresRefetch(reason=f"document {document.id} {expected.value.lower()} response incomplete")

        updated = document.model_copy(update={
            "verification_status": expected,
            "verified_by": response.verified_by,
            "verified_at": response.verified_at,
            "rejection_reason": (response.rejection_reason or reason) if expected == VerificationStatus.REJECTED else None,
        })
        return Patch(updated)
