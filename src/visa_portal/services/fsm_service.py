"""FSM tables for the case sub-workflows, with transition history."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, Generic, List, Optional, Tuple, TypeVar

import structlog

from visa_portal.core.error_handling import InvalidTransition
from visa_portal.core.logging import workflow_logger
from visa_portal.models.enums import (
    ApplicationStatus,
    DocumentRequestStatus,
    InterviewStatus,
    VerificationStatus,
)

logger = structlog.get_logger(__name__)

S = TypeVar("S", bound=Enum)


class TransitionTable(Generic[S]):
    """A closed ``(state, action) -> state`` map.

    Anything not in the map is an illegal transition.
    """

    def __init__(self, name: str, transitions: Dict[Tuple[S, str], S], terminal: FrozenSet[S]):
        self.name = name
        self.transitions = dict(transitions)
        self.terminal = frozenset(terminal)

        for (state, _action), _target in self.transitions.items():
            if state in self.terminal:
                raise ValueError(f"{name}: terminal state {state.value} cannot have outgoing transitions")

    @property
    def actions(self) -> FrozenSet[str]:
        return frozenset(action for _state, action in self.transitions)

    def is_terminal(self, state: S) -> bool:
        return state in self.terminal

    def allowed_actions(self, state: S) -> List[str]:
        return sorted(action for (s, action) in self.transitions if s == state)

    def can_transition(self, state: S, action: str) -> Tuple[bool, str]:
        """Check if ``action`` is legal from ``state``.

        Returns:
            Tuple of (can_transition, reason)
        """
        if state in self.terminal:
            return False, f"Cannot {action} from terminal state {state.value}"

        if (state, action) not in self.transitions:
            return False, f"Cannot {action} while {self.name} is {state.value}"

        return True, "Transition is allowed"

    def next_state(self, state: S, action: str) -> S:
        """Resolve the target state.

        Raises:
            InvalidTransition: If the pair is not in the table
        """
        allowed, reason = self.can_transition(state, action)
        if not allowed:
            raise InvalidTransition(reason, state=state.value, action=action)
        return self.transitions[(state, action)]


def _application_transitions() -> Dict[Tuple[ApplicationStatus, str], ApplicationStatus]:
    # Any different status may be requested from a live application; the
    # backend owns the finer policy.
    table = {}
    for state in (ApplicationStatus.PENDING, ApplicationStatus.UNDER_REVIEW):
        for target in ApplicationStatus:
            if target != state:
                table[(state, target.value)] = target
    return table


APPLICATION_STATUS_TABLE = TransitionTable(
    "application",
    _application_transitions(),
    frozenset({ApplicationStatus.APPROVED, ApplicationStatus.REJECTED}),
)

DOCUMENT_VERIFICATION_TABLE = TransitionTable(
    "document",
    {
        (VerificationStatus.PENDING, "verify"): VerificationStatus.VERIFIED,
        (VerificationStatus.PENDING, "reject"): VerificationStatus.REJECTED,
    },
    frozenset({VerificationStatus.VERIFIED, VerificationStatus.REJECTED}),
)

DOCUMENT_REQUEST_TABLE = TransitionTable(
    "document request",
    {
        (DocumentRequestStatus.SENT, "update"): DocumentRequestStatus.SENT,
        (DocumentRequestStatus.SENT, "submit"): DocumentRequestStatus.SUBMITTED,
        (DocumentRequestStatus.SENT, "cancel"): DocumentRequestStatus.CANCELLED,
    },
    frozenset({DocumentRequestStatus.SUBMITTED, DocumentRequestStatus.CANCELLED}),
)

INTERVIEW_TABLE = TransitionTable(
    "interview",
    {
        (InterviewStatus.SCHEDULED, "reschedule"): InterviewStatus.RESCHEDULED,
        (InterviewStatus.RESCHEDULED, "reschedule"): InterviewStatus.RESCHEDULED,
        (InterviewStatus.SCHEDULED, "confirm"): InterviewStatus.SCHEDULED,
        (InterviewStatus.RESCHEDULED, "confirm"): InterviewStatus.RESCHEDULED,
        (InterviewStatus.SCHEDULED, "cancel"): InterviewStatus.CANCELLED,
        (InterviewStatus.RESCHEDULED, "cancel"): InterviewStatus.CANCELLED,
        (InterviewStatus.SCHEDULED, "complete"): InterviewStatus.COMPLETED,
        (InterviewStatus.RESCHEDULED, "complete"): InterviewStatus.COMPLETED,
    },
    frozenset({InterviewStatus.COMPLETED, InterviewStatus.CANCELLED}),
)


@dataclass
class TransitionRecord:
    """One applied transition."""
    machine: str
    entity_id: str
    old_state: str
    new_state: str
    action: str
    actor_id: Optional[str] = None
    is_terminal: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def transition_description(self) -> str:
        return f"{self.old_state} -> {self.new_state}"


class FSMService:
    """Resolves transitions against the tables and keeps the per-case history."""

    def __init__(self):
        self._history: List[TransitionRecord] = []

    def check(self, table: TransitionTable, entity_id: str, state: Enum, action: str) -> Enum:
        """Validate a transition before it is dispatched.

        Raises:
            InvalidTransition: If the action is illegal from ``state``
        """
        try:
            return table.next_state(state, action)
        except InvalidTransition:
            workflow_logger.log_rejected_transition(table.name, str(entity_id), state.value, action)
            raise

    def record(
        self,
        table: TransitionTable,
        entity_id: str,
        old_state: Enum,
        new_state: Enum,
        action: str,
        actor_id: Optional[str] = None
    ) -> TransitionRecord:
        """Record a transition that the backend accepted."""
        entry = TransitionRecord(
            machine=table.name,
            entity_id=str(entity_id),
            old_state=old_state.value,
            new_state=new_state.value,
            action=action,
            actor_id=actor_id,
            is_terminal=table.is_terminal(new_state),
        )
        self._history.append(entry)
        workflow_logger.log_transition(
            table.name,
            str(entity_id),
            old_state.value,
            new_state.value,
            action,
            actor_id=actor_id
        )
        return entry

    def get_transition_history(
        self,
        entity_id: Optional[str] = None,
        limit: int = 100
    ) -> List[TransitionRecord]:
        """Get recorded transitions, newest first.

        Args:
            entity_id: Restrict to one entity (all entities when omitted)
            limit: Maximum number of transitions to return
        """
        entries = [
            e for e in self._history
            if entity_id is None or e.entity_id == str(entity_id)
        ]
        return list(reversed(entries))[:limit]
