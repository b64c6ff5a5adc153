"""Cached view of one application and the merge/refetch policy for mutations."""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional

import structlog

from visa_portal.core.error_handling import (
    CaseFrozen,
    EntityNotFound,
    ErrorContext,
    VisaPortalError,
    error_handler,
)
from visa_portal.core.event_publisher import CaseEventPublisher
from visa_portal.models import (
    Application,
    Document,
    DocumentRequest,
    Interview,
    Message,
    MutationResult,
    Note,
    Patch,
    RequiresRefetch,
    StatusChange,
)

logger = structlog.get_logger(__name__)


def _upsert(items: list, entity) -> list:
    """Replace the item with the same id in place, or append it."""
    for index, item in enumerate(items):
        if item.id == entity.id:
            items[index] = entity
            return items
    items.append(entity)
    return items


class CaseAggregate:
    """Holds the application view shared by every sub-workflow.

    Sub-workflows never touch the view directly; they publish a ``Patch``
    (merged in place) or ``RequiresRefetch`` (full reload) on the case
    event publisher, which this aggregate is subscribed to.
    """

    def __init__(self, application_id: str, api, publisher: CaseEventPublisher):
        self.application_id = str(application_id)
        self.api = api
        self.publisher = publisher
        self.application: Optional[Application] = None
        self.stale = False
        self.refetch_count = 0
        self._pending_load: Optional[asyncio.Task] = None
        self.publisher.subscribe(self.application_id, self._on_mutation)

    @property
    def view(self) -> Application:
        if self.application is None:
            raise RuntimeError(f"Application {self.application_id} has not been loaded")
        return self.application

    @property
    def is_loaded(self) -> bool:
        return self.application is not None

    @property
    def is_frozen(self) -> bool:
        return self.is_loaded and self.view.is_terminal

    def ensure_mutable(self) -> None:
        """Raise when the application reached APPROVED or REJECTED."""
        if self.is_frozen:
            raise CaseFrozen(
                f"Application {self.view.application_number} is {self.view.status.value}; no further changes are allowed",
                state=self.view.status.value
            )

    async def load(self) -> Application:
        """Fetch the full aggregate from the remote service.

        Foreign failures, such as a payload that does not parse, are raised
        as classified ``VisaPortalError``s.
        """
        # Locally fetched collections are kept when the aggregate payload omits them
        previous = self.application
        try:
            application = await self.api.get_application_by_id(self.application_id)
        except VisaPortalError:
            self.stale = True
            raise
        except Exception as e:
            self.stale = True
            context = ErrorContext(
                operation="load_application",
                component="case_aggregate",
                application_id=self.application_id,
            )
            raise error_handler.handle_error(e, context) from e

        if previous is not None:
            if not application.notes and previous.notes:
                application.notes = previous.notes
            if not application.messages and previous.messages:
                application.messages = previous.messages

        self.application = application
        self.stale = False
        logger.info(
            "Application loaded",
            application_id=self.application_id,
            status=application.status.value,
            documents=len(application.documents),
            document_requests=len(application.document_requests),
            interviews=len(application.interviews)
        )
        return application

    async def refresh(self, reason: str = "requested") -> Application:
        """Reload the view. Callers arriving while a reload is running share it."""
        if self._pending_load is not None and not self._pending_load.done():
            logger.debug("Joining running refetch", application_id=self.application_id, reason=reason)
            return await asyncio.shield(self._pending_load)

        self.refetch_count += 1
        logger.info("Refetching application", application_id=self.application_id, reason=reason)
        self._pending_load = asyncio.ensure_future(self.load())
        return await asyncio.shield(self._pending_load)

    async def apply(self, result: MutationResult) -> None:
        """Merge a patch into the view or refetch it."""
        if isinstance(result, RequiresRefetch):
            await self.refresh(result.reason)
            return

        if not isinstance(result, Patch):
            raise TypeError(f"Unsupported mutation result: {type(result).__name__}")

        if not self.is_loaded:
            await self.refresh("patch before load")
            return

        entity = result.entity
        view = self.view

        if isinstance(entity, Document):
            _upsert(view.documents, entity)
        elif isinstance(entity, DocumentRequest):
            _upsert(view.document_requests, entity)
        elif isinstance(entity, Interview):
            _upsert(view.interviews, entity)
        elif isinstance(entity, Message):
            _upsert(view.messages, entity)
        elif isinstance(entity, Note):
            _upsert(view.notes, entity)
        elif isinstance(entity, StatusChange):
            view.status = entity.status
            if entity.rejection_reason is not None:
                view.rejection_reason = entity.rejection_reason
            if entity.status.is_terminal:
                view.decision_date = entity.decision_date or datetime.now(timezone.utc)
        else:
            raise TypeError(f"Cannot patch {type(entity).__name__} into an application")

        logger.debug(
            "Patch merged",
            application_id=self.application_id,
            entity=type(entity).__name__,
            entity_id=getattr(entity, "id", None)
        )

    async def _on_mutation(self, application_id: str, result: MutationResult) -> None:
        await self.apply(result)

    def close(self) -> None:
        self.publisher.unsubscribe(self.application_id, self._on_mutation)

    # Lookups

    def get_document(self, document_id: str) -> Document:
        for document in self.view.documents:
            if document.id == str(document_id):
                return document
        raise EntityNotFound("Document", str(document_id))

    def get_request(self, request_id: str) -> DocumentRequest:
        for request in self.view.document_requests:
            if request.id == str(request_id):
                return request
        raise EntityNotFound("Document request", str(request_id))

    def get_interview(self, interview_id: str) -> Interview:
        for interview in self.view.interviews:
            if interview.id == str(interview_id):
                return interview
        raise EntityNotFound("Interview", str(interview_id))

    def find_message(self, message_id: str) -> Optional[Message]:
        for message in self.view.messages:
            if message.id == str(message_id):
                return message
        return None

    # Collection replacement after list fetches

    def replace_notes(self, notes: List[Note]) -> None:
        self.view.notes = list(notes)

    def replace_messages(self, messages: List[Message]) -> None:
        self.view.messages = list(messages)

    def replace_interviews(self, interviews: List[Interview]) -> None:
        self.view.interviews = list(interviews)

    def replace_requests(self, requests: List[DocumentRequest]) -> None:
        self.view.document_requests = list(requests)

    def outstanding_requests(self) -> List[DocumentRequest]:
        return self.view.outstanding_requests()

    def pending_documents(self) -> List[Document]:
        return self.view.pending_documents()
