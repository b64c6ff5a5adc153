"""Officer requests for extra documents and applicant fulfillment."""

from typing import List, Optional, Union

import pydantic
import structlog

from visa_portal.auth.permissions import WorkflowOperation, require_permission
from visa_portal.clients.api_client import ApiResponse
from visa_portal.clients.storage import ObjectStorage, UploadFile, build_path_hint
from visa_portal.core.config import Settings, settings as default_settings
from visa_portal.core.error_handling import (
    MissingDocumentName,
    SubmissionFailed,
    ValidationError,
    VisaPortalError,
)
from visa_portal.core.event_publisher import CaseEventPublisher
from visa_portal.core.inflight import InFlightRegistry
from visa_portal.models import (
    Actor,
    DocumentRequest,
    DocumentRequestStatus,
    DocumentType,
    MutationResult,
    Patch,
    RequiresRefetch,
)
from visa_portal.schemas import DocumentRequestCreate, DocumentRequestUpdate, DocumentSubmission
from visa_portal.services.case_aggregate import CaseAggregate
from visa_portal.services.fsm_service import DOCUMENT_REQUEST_TABLE, FSMService

logger = structlog.get_logger(__name__)


def _echoed_request(response: Optional[ApiResponse]) -> Optional[DocumentRequest]:
    """The request echoed in ``response.data``, if the backend sent one."""
    if response is None or not isinstance(response.data, dict):
        return None
    try:
        return DocumentRequest.model_validate(response.data)
    except pydantic.ValidationError:
        return None


class DocumentRequestWorkflow:
    """SENT -> SUBMITTED | CANCELLED, both terminal."""

    def __init__(
        self,
        aggregate: CaseAggregate,
        api,
        storage: ObjectStorage,
        publisher: CaseEventPublisher,
        fsm: FSMService,
        inflight: InFlightRegistry,
        actor: Actor,
        settings: Optional[Settings] = None
    ):
        self.aggregate = aggregate
        self.api = api
        self.storage = storage
        self.publisher = publisher
        self.fsm = fsm
        self.inflight = inflight
        self.actor = actor
        self.settings = settings or default_settings

    def can_act_on(self, request_id: str) -> bool:
        """Whether cancel/submit should be offered for the request."""
        request = self.aggregate.get_request(request_id)
        return request.is_open and not self.inflight.is_busy(request.id) and not self.aggregate.is_frozen

    async def list_requests(self) -> List[DocumentRequest]:
        requests = await self.api.get_application_document_requests(self.aggregate.application_id)
        self.aggregate.replace_requests(requests)
        return requests

    @require_permission(WorkflowOperation.CREATE_REQUEST)
    async def create_request(self, document_name: str, additional_details: Optional[str] = None) -> MutationResult:
        """Ask the applicant for an additional document. New requests start in SENT.

        Raises:
            MissingDocumentName: If ``document_name`` is blank
        """
        name = (document_name or "").strip()
        if not name:
            raise MissingDocumentName(value=document_name)

        self.aggregate.ensure_mutable()
        application_id = self.aggregate.application_id
        details = (additional_details or "").strip() or None

        response = await self.api.create_request_for_document(
            application_id,
            DocumentRequestCreate(document_name=name, additional_details=details)
        )

        created = _echoed_request(response)
        mutation = Patch(created) if created else RequiresRefetch(reason="document request created")

        logger.info(
            "Document request created",
            application_id=application_id,
            document_name=name,
            request_id=created.id if created else None,
            actor_id=self.actor.id
        )
        await self.publisher.publish(application_id, mutation)
        return mutation

    @require_permission(WorkflowOperation.UPDATE_REQUEST)
    async def update_request(
        self,
        request_id: str,
        document_name: Optional[str] = None,
        additional_details: Optional[str] = None
    ) -> MutationResult:
        """Edit an open request's name or details."""
        if document_name is not None and not document_name.strip():
            raise MissingDocumentName(value=document_name)

        self.aggregate.ensure_mutable()
        request = self.aggregate.get_request(request_id)
        self.fsm.check(DOCUMENT_REQUEST_TABLE, request.id, request.status, "update")

        changes = {}
        if document_name is not None:
            changes["document_name"] = document_name.strip()
        if additional_details is not None:
            changes["additional_details"] = additional_details.strip() or None

        async with self.inflight.guard(WorkflowOperation.UPDATE_REQUEST.value, request.id):
            response = await self.api.update_request_for_document(request.id, DocumentRequestUpdate(**changes))

        updated = _echoed_request(response) or request.model_copy(update=changes)
        mutation = Patch(updated)
        await self.publisher.publish(self.aggregate.application_id, mutation)
        return mutation

    @require_permission(WorkflowOperation.CANCEL_REQUEST)
    async def cancel_request(self, request_id: str) -> MutationResult:
        """Cancel an open request.

        Raises:
            InvalidTransition: If the request is already SUBMITTED or CANCELLED
        """
        self.aggregate.ensure_mutable()
        request = self.aggregate.get_request(request_id)
        new_status = self.fsm.check(DOCUMENT_REQUEST_TABLE, request.id, request.status, "cancel")

        async with self.inflight.guard(WorkflowOperation.CANCEL_REQUEST.value, request.id):
            response = await self.api.cancel_request_for_document(request.id)

        echoed = _echoed_request(response)
        if echoed is not None and echoed.status == DocumentRequestStatus.CANCELLED:
            updated = echoed
        else:
            updated = request.model_copy(update={"status": new_status})

        self.fsm.record(DOCUMENT_REQUEST_TABLE, request.id, request.status, new_status, "cancel", actor_id=self.actor.id)
        mutation = Patch(updated)
        await self.publisher.publish(self.aggregate.application_id, mutation)
        return mutation

    @require_permission(WorkflowOperation.SUBMIT_DOCUMENT)
    async def submit_document(
        self,
        request_id: str,
        document_type: Union[DocumentType, str],
        file: UploadFile
    ) -> MutationResult:
        """Upload the binary, then submit its metadata against the request.

        If the upload succeeds but the submit call fails, the request stays
        SENT and the uploaded blob is left in storage.

        Raises:
            InvalidTransition: If the request is not SENT
            SubmissionFailed: If the upload or the submit call fails
        """
        try:
            doc_type = DocumentType(document_type)
        except ValueError as e:
            raise ValidationError(f"Unknown document type: {document_type}", field="document_type", value=document_type) from e

        self.aggregate.ensure_mutable()
        request = self.aggregate.get_request(request_id)
        new_status = self.fsm.check(DOCUMENT_REQUEST_TABLE, request.id, request.status, "submit")
        application_id = self.aggregate.application_id

        async with self.inflight.guard(WorkflowOperation.SUBMIT_DOCUMENT.value, request.id):
            path_hint = build_path_hint(self.settings.storage_path_prefix, application_id, doc_type.value, file.file_name)

            try:
                file_path = await self.storage.upload(file, path_hint)
            except Exception as e:
                raise SubmissionFailed(
                    self._failure_message("Upload failed", e),
                    stage="upload",
                    state=request.status.value,
                    action="submit",
                    original_error=e
                ) from e

            submission = DocumentSubmission(
                document_type=doc_type,
                file_name=file.file_name,
                file_path=file_path,
                file_size=file.size,
            )

            try:
                response = await self.api.submit_document_for_request(request.id, submission)
            except Exception as e:
                logger.warning(
                    "Uploaded document left without a submission",
                    application_id=application_id,
                    request_id=request.id,
                    orphaned_file_path=file_path
                )
                raise SubmissionFailed(
                    self._failure_message("Submission failed", e),
                    stage="submit",
                    orphaned_file_path=file_path,
                    state=request.status.value,
                    action="submit",
                    original_error=e
                ) from e

        echoed = _echoed_request(response)
        if echoed is not None and echoed.status == DocumentRequestStatus.SUBMITTED and echoed.document is not None:
            mutation = Patch(echoed)
        else:
            mutation = RequiresRefetch(reason=f"document request {request.id} submitted")

        self.fsm.record(DOCUMENT_REQUEST_TABLE, request.id, request.status, new_status, "submit", actor_id=self.actor.id)
        logger.info(
            "Document submitted for request",
            application_id=application_id,
            request_id=request.id,
            document_type=doc_type.value,
            file_size=file.size
        )
        await self.publisher.publish(application_id, mutation)
        return mutation

    @staticmethod
    def _failure_message(prefix: str, error: Exception) -> str:
        if isinstance(error, VisaPortalError) and not error.opaque:
            return f"{prefix}: {error.message}"
        return f"{prefix}. Please try again."
