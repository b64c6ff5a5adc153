"""Message ordering, inbox grouping and the per-application thread."""

from dataclasses import dataclass, replace
from functools import reduce
from typing import Dict, Iterable, List, Mapping, Optional

import structlog

from visa_portal.auth.permissions import WorkflowOperation, require_permission
from visa_portal.core.error_handling import EmptyMessage, ValidationError
from visa_portal.core.event_publisher import CaseEventPublisher
from visa_portal.core.inflight import InFlightRegistry
from visa_portal.models import (
    Actor,
    ActorRole,
    ApplicationStatus,
    Conversation,
    ConversationStatus,
    Message,
    MutationResult,
    Participant,
    Patch,
    RequiresRefetch,
)
from visa_portal.services.case_aggregate import CaseAggregate

logger = structlog.get_logger(__name__)

_OFFICER_ROLES = (ActorRole.ADMIN, ActorRole.OFFICER)


def is_own_message(message: Message) -> bool:
    """Officer-origin messages. Drives layout only."""
    return message.sender.role in _OFFICER_ROLES


def _message_key(message: Message):
    return (message.created_at, message.id)


def sort_messages(messages: Iterable[Message]) -> List[Message]:
    """Ascending by ``created_at``; equal timestamps fall back to the message id."""
    return sorted(messages, key=_message_key)


def unread_count(messages: Iterable[Message], viewer_id: str) -> int:
    """Unread messages addressed to ``viewer_id``. The viewer's own messages never count."""
    return sum(1 for m in messages if not m.is_read and m.sender.id != str(viewer_id))


@dataclass(frozen=True)
class _ConversationAccumulator:
    latest: Message
    unread: bool
    count: int
    counterpart: Optional[Participant]


def _accumulate(acc: Dict[str, _ConversationAccumulator], message: Message) -> Dict[str, _ConversationAccumulator]:
    current = acc.get(message.application_id)
    applicant = None if is_own_message(message) else message.sender

    if current is None:
        entry = _ConversationAccumulator(
            latest=message,
            unread=not message.is_read,
            count=1,
            counterpart=applicant,
        )
    else:
        entry = replace(
            current,
            latest=max(current.latest, message, key=_message_key),
            unread=current.unread or not message.is_read,
            count=current.count + 1,
            counterpart=current.counterpart or applicant,
        )
    return {**acc, message.application_id: entry}


def group_conversations(
    messages: Iterable[Message],
    application_statuses: Optional[Mapping[str, ApplicationStatus]] = None
) -> List[Conversation]:
    """Fold messages into one conversation per application.

    The latest message is the one with the greatest ``(created_at, id)``.
    A conversation is unread if any of its messages is unread, and closed
    when its application is APPROVED or REJECTED.

    Ordering: unread conversations first, then most recent activity first,
    then application id.
    """
    statuses = application_statuses or {}
    groups = reduce(_accumulate, messages, {})

    conversations = []
    for application_id, entry in groups.items():
        status = statuses.get(application_id)
        closed = status is not None and ApplicationStatus(status).is_terminal
        conversations.append(Conversation(
            application_id=application_id,
            last_message=entry.latest.content,
            last_message_at=entry.latest.created_at,
            unread=entry.unread,
            status=ConversationStatus.CLOSED if closed else ConversationStatus.ACTIVE,
            message_count=entry.count,
            counterpart=entry.counterpart,
        ))

    # Stable sorts, least significant key first
    conversations.sort(key=lambda c: c.application_id)
    conversations.sort(key=lambda c: c.last_message_at, reverse=True)
    conversations.sort(key=lambda c: not c.unread)
    return conversations


class MessageThread:
    """Messages of one application as seen by one actor."""

    def __init__(
        self,
        aggregate: CaseAggregate,
        api,
        publisher: CaseEventPublisher,
        inflight: InFlightRegistry,
        actor: Actor
    ):
        self.aggregate = aggregate
        self.api = api
        self.publisher = publisher
        self.inflight = inflight
        self.actor = actor

    @property
    def messages(self) -> List[Message]:
        return sort_messages(self.aggregate.view.messages)

    @property
    def unread(self) -> int:
        return unread_count(self.aggregate.view.messages, self.actor.id)

    async def fetch_thread(self, page: int = 1) -> List[Message]:
        """Fetch one page and merge it into the thread.

        Page 1 replaces the cached thread; later pages are merged by id.
        """
        fetched = await self.api.get_messages_by_application(self.aggregate.application_id, page=page)

        if page <= 1:
            merged = {m.id: m for m in fetched}
        else:
            merged = {m.id: m for m in self.aggregate.view.messages}
            merged.update((m.id, m) for m in fetched)

        self.aggregate.replace_messages(sort_messages(merged.values()))
        return sort_messages(fetched)

    @require_permission(WorkflowOperation.SEND_MESSAGE)
    async def send_message(
        self,
        recipient_id: str,
        content: str,
        reply_to_id: Optional[str] = None
    ) -> MutationResult:
        """Send a message on this application's thread.

        Raises:
            EmptyMessage: If ``content`` is blank
        """
        text = (content or "").strip()
        if not text:
            raise EmptyMessage(value=content)
        if not recipient_id:
            raise ValidationError("A recipient is required", field="recipient_id")

        application_id = self.aggregate.application_id
        async with self.inflight.guard(WorkflowOperation.SEND_MESSAGE.value, application_id):
            sent = await self.api.send_quick_message(
                recipient_id=str(recipient_id),
                application_id=application_id,
                content=text,
                reply_to_id=reply_to_id,
            )

        # Unread for the recipient regardless of what the backend echoed
        mutation = Patch(sent.model_copy(update={"is_read": False}))
        logger.info(
            "Message sent",
            application_id=application_id,
            message_id=sent.id,
            recipient_id=str(recipient_id),
            actor_id=self.actor.id
        )
        await self.publisher.publish(application_id, mutation)
        return mutation

    async def reply(self, original: Message, content: str) -> MutationResult:
        """Answer ``original``, addressed to its sender."""
        return await self.send_message(original.sender.id, content, reply_to_id=original.id)

    @require_permission(WorkflowOperation.MARK_READ)
    async def mark_read(self, message_id: str) -> MutationResult:
        """Flip ``is_read`` to true. Already read messages need no network call."""
        message = self.aggregate.find_message(message_id)

        if message is not None and message.is_read:
            return Patch(message)

        async with self.inflight.guard(WorkflowOperation.MARK_READ.value, str(message_id)):
            await self.api.mark_as_read(str(message_id))

        if message is None:
            mutation = RequiresRefetch(reason=f"message {message_id} marked read")
        else:
            mutation = Patch(message.model_copy(update={"is_read": True}))
        await self.publisher.publish(self.aggregate.application_id, mutation)
        return mutation

    @require_permission(WorkflowOperation.MARK_READ)
    async def mark_all_read(self) -> int:
        """Mark every message received by the actor on this application as read."""
        application_id = self.aggregate.application_id
        async with self.inflight.guard("mark_all_read", application_id):
            count = await self.api.mark_all_as_read(application_id)

        self.aggregate.replace_messages([
            m if m.is_read or m.sender.id == self.actor.id else m.model_copy(update={"is_read": True})
            for m in self.aggregate.view.messages
        ])
        logger.info("Thread marked read", application_id=application_id, count=count, actor_id=self.actor.id)
        return count
