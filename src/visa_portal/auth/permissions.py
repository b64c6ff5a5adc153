"""Role to operation permission table and the enforcing decorator."""

from enum import Enum
from functools import wraps
from typing import Callable, Dict, FrozenSet

import structlog

from visa_portal.core.error_handling import AuthorizationError
from visa_portal.models.actor import Actor
from visa_portal.models.enums import ActorRole

logger = structlog.get_logger(__name__)


class WorkflowOperation(str, Enum):
    UPDATE_STATUS = "update_status"
    ADD_NOTE = "add_note"
    LIST_NOTES = "list_notes"
    VERIFY_DOCUMENT = "verify_document"
    REJECT_DOCUMENT = "reject_document"
    CREATE_REQUEST = "create_request"
    UPDATE_REQUEST = "update_request"
    CANCEL_REQUEST = "cancel_request"
    SUBMIT_DOCUMENT = "submit_document"
    SCHEDULE_INTERVIEW = "schedule_interview"
    RESCHEDULE_INTERVIEW = "reschedule_interview"
    CANCEL_INTERVIEW = "cancel_interview"
    COMPLETE_INTERVIEW = "complete_interview"
    CONFIRM_INTERVIEW = "confirm_interview"
    SEND_MESSAGE = "send_message"
    MARK_READ = "mark_read"


_STAFF = frozenset({ActorRole.OFFICER, ActorRole.ADMIN})
_APPLICANT = frozenset({ActorRole.APPLICANT})
_EVERYONE = frozenset(ActorRole)

PERMISSIONS: Dict[WorkflowOperation, FrozenSet[ActorRole]] = {
    WorkflowOperation.UPDATE_STATUS: _STAFF,
    WorkflowOperation.ADD_NOTE: _STAFF,
    WorkflowOperation.LIST_NOTES: _STAFF,
    WorkflowOperation.VERIFY_DOCUMENT: _STAFF,
    WorkflowOperation.REJECT_DOCUMENT: _STAFF,
    WorkflowOperation.CREATE_REQUEST: _STAFF,
    WorkflowOperation.UPDATE_REQUEST: _STAFF,
    WorkflowOperation.CANCEL_REQUEST: _STAFF,
    WorkflowOperation.SUBMIT_DOCUMENT: _APPLICANT,
    WorkflowOperation.SCHEDULE_INTERVIEW: _STAFF,
    WorkflowOperation.RESCHEDULE_INTERVIEW: _STAFF,
    WorkflowOperation.CANCEL_INTERVIEW: _STAFF,
    WorkflowOperation.COMPLETE_INTERVIEW: _STAFF,
    WorkflowOperation.CONFIRM_INTERVIEW: _APPLICANT,
    WorkflowOperation.SEND_MESSAGE: _EVERYONE,
    WorkflowOperation.MARK_READ: _EVERYONE,
}


def is_permitted(actor: Actor, operation: WorkflowOperation) -> bool:
    return actor.role in PERMISSIONS.get(operation, frozenset())


def require_permission(operation: WorkflowOperation) -> Callable:
    """Decorator restricting an async service method to the roles allowed for ``operation``.

    The decorated method's instance must expose the acting ``actor``.

    Args:
        operation: Operation being guarded

    Returns:
        Decorator function
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            actor = getattr(self, "actor", None)

            if not isinstance(actor, Actor):
                logger.error("No actor bound to service", operation=operation.value)
                raise AuthorizationError("An authenticated actor is required")

            if not is_permitted(actor, operation):
                logger.warning(
                    "Operation denied for role",
                    operation=operation.value,
                    actor_id=actor.id,
                    role=actor.role.value
                )
                raise AuthorizationError(
                    f"{actor.role.value.title()} is not allowed to {operation.value.replace('_', ' ')}"
                )

            return await func(self, *args, **kwargs)

        return wrapper
    return decorator
