"""Navigation-scoped session state.

Scratch values such as the selected visa type live on an explicit
``NavigationSession`` that is created when a navigation starts and cleared
when it ends, instead of in ambient global storage.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, Optional

import structlog

from visa_portal.models.actor import Actor

logger = structlog.get_logger(__name__)


@dataclass
class NavigationSession:
    """Per-navigation state passed explicitly to the workflow."""
    actor: Actor
    access_token: Optional[str] = None
    selected_application_id: Optional[str] = None
    selected_visa_type_id: Optional[str] = None
    scratch: Dict[str, Any] = field(default_factory=dict)
    active: bool = True

    def remember(self, key: str, value: Any) -> None:
        self._ensure_active()
        self.scratch[key] = value

    def recall(self, key: str, default: Any = None) -> Any:
        return self.scratch.get(key, default)

    def clear(self) -> None:
        """Drop every scratch value and close the session."""
        self.selected_application_id = None
        self.selected_visa_type_id = None
        self.scratch.clear()
        self.active = False

    def _ensure_active(self) -> None:
        if not self.active:
            raise RuntimeError("Navigation session has already ended")


class SessionContextManager:
    """Creates and tears down navigation sessions."""

    @staticmethod
    def start(
        actor: Actor,
        access_token: Optional[str] = None,
        application_id: Optional[str] = None,
        visa_type_id: Optional[str] = None
    ) -> NavigationSession:
        session = NavigationSession(
            actor=actor,
            access_token=access_token,
            selected_application_id=application_id,
            selected_visa_type_id=visa_type_id,
        )
        logger.debug(
            "Navigation session started",
            actor_id=actor.id,
            role=actor.role.value,
            application_id=application_id
        )
        return session

    @staticmethod
    def end(session: NavigationSession) -> None:
        session.clear()
        logger.debug("Navigation session ended", actor_id=session.actor.id)

    @staticmethod
    @contextmanager
    def navigation(
        actor: Actor,
        access_token: Optional[str] = None,
        application_id: Optional[str] = None,
        visa_type_id: Optional[str] = None
    ) -> Generator[NavigationSession, None, None]:
        """Context manager scoping a session to one navigation.

        Args:
            actor: Actor driving the navigation
            access_token: Bearer token for the remote service
            application_id: Application opened by the navigation
            visa_type_id: Visa type selected at navigation start

        Yields:
            The active session, cleared on exit
        """
        session = SessionContextManager.start(actor, access_token, application_id, visa_type_id)
        try:
            yield session
        finally:
            SessionContextManager.end(session)
