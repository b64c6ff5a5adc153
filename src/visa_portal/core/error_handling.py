"""Error taxonomy for the case workflow and the operation boundary that reports outcomes."""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar
from datetime import datetime, timezone
from enum import Enum
from dataclasses import dataclass

import aiohttp
import pydantic

from .logging import get_logger, error_logger

logger = get_logger(__name__)

T = TypeVar("T")

GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again."


class ErrorSeverity(Enum):
    """Error severity levels for classification and handling."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification and routing."""
    VALIDATION = "validation"
    TRANSITION = "transition"
    NETWORK = "network"
    AMBIGUOUS_RESPONSE = "ambiguous_response"
    AUTHORIZATION = "authorization"
    CONCURRENCY = "concurrency"
    NOT_FOUND = "not_found"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


@dataclass
class ErrorContext:
    """Context information for error handling and logging."""
    operation: str
    component: str
    actor_id: Optional[str] = None
    application_id: Optional[str] = None
    entity_id: Optional[str] = None
    additional_data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "component": self.component,
            "actor_id": self.actor_id,
            "application_id": self.application_id,
            "entity_id": self.entity_id,
            "additional_data": self.additional_data,
        }


class VisaPortalError(Exception):
    """Base exception class for case workflow errors."""

    # Opaque errors are reported with the generic retry message
    opaque = False

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[ErrorContext] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context
        self.original_error = original_error
        self.timestamp = datetime.now(timezone.utc)

    @property
    def user_message(self) -> str:
        """Message shown to the actor."""
        return GENERIC_FAILURE_MESSAGE if self.opaque else self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context.to_dict() if self.context else None,
            "original_error": str(self.original_error) if self.original_error else None,
            "original_error_type": type(self.original_error).__name__ if self.original_error else None,
        }


class ValidationError(VisaPortalError):
    """Empty or missing required input. Raised before any network call."""

    default_message = "A required field is missing"
    default_field: Optional[str] = None

    def __init__(self, message: str = None, field: str = None, value: Any = None, **kwargs):
        super().__init__(
            message or self.default_message,
            ErrorCategory.VALIDATION,
            ErrorSeverity.LOW,
            **kwargs
        )
        self.field = field or self.default_field
        self.value = value


class EmptyNote(ValidationError):
    default_message = "Note content cannot be empty"
    default_field = "content"


class EmptyMessage(ValidationError):
    default_message = "Message content cannot be empty"
    default_field = "content"


class MissingReason(ValidationError):
    default_message = "A rejection reason is required"
    default_field = "reason"


class MissingDocumentName(ValidationError):
    default_message = "Document name is required"
    default_field = "document_name"


class IncompleteSchedule(ValidationError):
    default_message = "Both a new date and a new time are required to reschedule"
    default_field = "scheduled_date"


class TransitionError(VisaPortalError):
    """A state change refused locally or by the backend."""

    def __init__(self, message: str, state: str = None, action: str = None, **kwargs):
        super().__init__(
            message,
            ErrorCategory.TRANSITION,
            ErrorSeverity.MEDIUM,
            **kwargs
        )
        self.state = state
        self.action = action


class InvalidTransition(TransitionError):
    """The action is not legal from the entity's current state."""


class AlreadyConfirmed(TransitionError):
    """Interview confirmation was requested twice."""


class CaseFrozen(TransitionError):
    """The application reached a terminal status and refuses further mutation."""


class UpdateFailed(TransitionError):
    """The backend rejected an application status update."""


class SubmissionFailed(TransitionError):
    """Upload or submit step of a document request submission failed."""

    def __init__(
        self,
        message: str,
        stage: str,
        orphaned_file_path: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.stage = stage
        self.orphaned_file_path = orphaned_file_path


class NetworkError(VisaPortalError):
    """Transport failure talking to the remote service."""

    opaque = True

    def __init__(self, message: str = "Network request failed", status_code: Optional[int] = None, **kwargs):
        super().__init__(
            message,
            ErrorCategory.NETWORK,
            ErrorSeverity.MEDIUM,
            **kwargs
        )
        self.status_code = status_code


class AmbiguousResponse(VisaPortalError):
    """Success was reported but the expected fields are missing."""

    opaque = True

    def __init__(self, message: str = "Response did not include the updated entity", **kwargs):
        super().__init__(
            message,
            ErrorCategory.AMBIGUOUS_RESPONSE,
            ErrorSeverity.LOW,
            **kwargs
        )


class AuthorizationError(VisaPortalError):
    """Actor role is not permitted to perform the operation."""

    def __init__(self, message: str = "You are not allowed to perform this action", **kwargs):
        super().__init__(
            message,
            ErrorCategory.AUTHORIZATION,
            ErrorSeverity.HIGH,
            **kwargs
        )


class EntityNotFound(VisaPortalError):
    """The entity is not part of the loaded case."""

    def __init__(self, entity: str, entity_id: str, **kwargs):
        super().__init__(
            f"{entity} {entity_id} was not found on this application",
            ErrorCategory.NOT_FOUND,
            ErrorSeverity.LOW,
            **kwargs
        )
        self.entity = entity
        self.entity_id = entity_id


class OperationInProgress(VisaPortalError):
    """The same operation on the same entity is already in flight."""

    def __init__(self, operation: str, entity_id: str, **kwargs):
        super().__init__(
            f"{operation} is already in progress for {entity_id}",
            ErrorCategory.CONCURRENCY,
            ErrorSeverity.LOW,
            **kwargs
        )
        self.operation = operation
        self.entity_id = entity_id


class ConfigurationError(VisaPortalError):
    """Error for configuration issues."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL,
            **kwargs
        )


class UnexpectedError(VisaPortalError):
    """Unclassified failure. Reported with the generic retry message."""

    opaque = True

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            ErrorCategory.SYSTEM,
            ErrorSeverity.HIGH,
            **kwargs
        )


class NotificationKind(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class Notification:
    """A single user-visible report of an action's outcome."""
    kind: NotificationKind
    title: str
    description: str
    category: Optional[ErrorCategory] = None

    @classmethod
    def success(cls, title: str, description: str = "") -> "Notification":
        return cls(NotificationKind.SUCCESS, title, description)

    @classmethod
    def failure(cls, title: str, error: VisaPortalError) -> "Notification":
        return cls(NotificationKind.FAILURE, title, error.user_message, error.category)


@dataclass
class OperationOutcome:
    """Result of running an action through the operation boundary."""
    notification: Notification
    value: Any = None
    error: Optional[VisaPortalError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ErrorHandler:
    """Centralized error classification and logging."""

    def __init__(self):
        self.logger = get_logger("error_handler")

    def handle_error(
        self,
        error: Exception,
        context: Optional[ErrorContext] = None
    ) -> VisaPortalError:
        """Classify and log an error.

        Args:
            error: The original exception
            context: Error context information

        Returns:
            Classified workflow error
        """
        if isinstance(error, VisaPortalError):
            portal_error = error
            if portal_error.context is None:
                portal_error.context = context
        else:
            portal_error = self._classify_error(error, context)

        self._log_error(portal_error)
        return portal_error

    def _classify_error(self, error: Exception, context: Optional[ErrorContext]) -> VisaPortalError:
        """Classify foreign exceptions into workflow errors."""
        if isinstance(error, aiohttp.ClientResponseError):
            return NetworkError(
                f"Remote service responded with {error.status}: {error.message}",
                status_code=error.status,
                context=context,
                original_error=error
            )

        if isinstance(error, (aiohttp.ClientError, asyncio.TimeoutError, ConnectionError)):
            return NetworkError(
                f"Network operation failed: {error}",
                context=context,
                original_error=error
            )

        if isinstance(error, pydantic.ValidationError):
            return AmbiguousResponse(
                f"Response did not match the expected shape: {error.error_count()} error(s)",
                context=context,
                original_error=error
            )

        return UnexpectedError(
            f"Unexpected error: {error}",
            context=context,
            original_error=error
        )

    def _log_error(self, error: VisaPortalError):
        """Log error with appropriate level and context."""
        if isinstance(error, ValidationError):
            error_logger.log_validation_error(
                error.field,
                error.value,
                error.message,
                category=error.category.value
            )
            return

        log_data = error.to_dict()

        if error.severity == ErrorSeverity.CRITICAL:
            self.logger.critical("Critical error occurred", **log_data)
        elif error.severity == ErrorSeverity.HIGH:
            self.logger.error("High severity error occurred", **log_data)
        elif error.severity == ErrorSeverity.MEDIUM:
            self.logger.warning("Medium severity error occurred", **log_data)
        else:
            self.logger.info("Low severity error occurred", **log_data)


async def operation_boundary(
    action: Callable[[], Awaitable[T]],
    context: ErrorContext,
    success_title: str,
    success_description: str = "",
    failure_title: Optional[str] = None,
    handler: Optional[ErrorHandler] = None
) -> OperationOutcome:
    """Run a workflow action and convert its outcome into exactly one notification.

    Workflow errors never propagate past this point.
    """
    try:
        value = await action()
    except Exception as e:
        portal_error = (handler or error_handler).handle_error(e, context)
        if portal_error.category == ErrorCategory.SYSTEM:
            error_logger.log_error_with_context(
                e,
                context.operation,
                actor_id=context.actor_id,
                application_id=context.application_id,
            )
        return OperationOutcome(
            notification=Notification.failure(failure_title or f"{context.operation} failed", portal_error),
            error=portal_error,
        )

    return OperationOutcome(
        notification=Notification.success(success_title, success_description),
        value=value,
    )


# Global instances
error_handler = ErrorHandler()
