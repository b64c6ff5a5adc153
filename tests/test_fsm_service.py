"""Tests for FSM service functionality."""

import pytest

from visa_portal.core.error_handling import InvalidTransition
from visa_portal.models import (
    ApplicationStatus,
    DocumentRequestStatus,
    InterviewStatus,
    VerificationStatus,
)
from visa_portal.services.fsm_service import (
    APPLICATION_STATUS_TABLE,
    DOCUMENT_REQUEST_TABLE,
    DOCUMENT_VERIFICATION_TABLE,
    INTERVIEW_TABLE,
    FSMService,
    TransitionTable,
)


class TestTransitionTables:
    """Test the transition tables of each case state machine."""

    def test_terminal_states_defined(self):
        assert APPLICATION_STATUS_TABLE.terminal == {ApplicationStatus.APPROVED, ApplicationStatus.REJECTED}
        assert DOCUMENT_VERIFICATION_TABLE.terminal == {VerificationStatus.VERIFIED, VerificationStatus.REJECTED}
        assert DOCUMENT_REQUEST_TABLE.terminal == {DocumentRequestStatus.SUBMITTED, DocumentRequestStatus.CANCELLED}
        assert INTERVIEW_TABLE.terminal == {InterviewStatus.COMPLETED, InterviewStatus.CANCELLED}

    def test_document_verification_transitions(self):
        assert DOCUMENT_VERIFICATION_TABLE.next_state(VerificationStatus.PENDING, "verify") == VerificationStatus.VERIFIED
        assert DOCUMENT_VERIFICATION_TABLE.next_state(VerificationStatus.PENDING, "reject") == VerificationStatus.REJECTED

    def test_verified_document_cannot_be_rejected(self):
        with pytest.raises(InvalidTransition) as exc_info:
            DOCUMENT_VERIFICATION_TABLE.next_state(VerificationStatus.VERIFIED, "reject")

        assert exc_info.value.state == "VERIFIED"
        assert exc_info.value.action == "reject"
        assert "terminal" in exc_info.value.message

    def test_document_request_transitions(self):
        assert DOCUMENT_REQUEST_TABLE.next_state(DocumentRequestStatus.SENT, "submit") == DocumentRequestStatus.SUBMITTED
        assert DOCUMENT_REQUEST_TABLE.next_state(DocumentRequestStatus.SENT, "cancel") == DocumentRequestStatus.CANCELLED
        assert DOCUMENT_REQUEST_TABLE.allowed_actions(DocumentRequestStatus.SENT) == ["cancel", "submit", "update"]
        assert DOCUMENT_REQUEST_TABLE.allowed_actions(DocumentRequestStatus.CANCELLED) == []

    def test_interview_reschedule_stays_live(self):
        assert INTERVIEW_TABLE.next_state(InterviewStatus.SCHEDULED, "reschedule") == InterviewStatus.RESCHEDULED
        assert INTERVIEW_TABLE.next_state(InterviewStatus.RESCHEDULED, "reschedule") == InterviewStatus.RESCHEDULED
        assert INTERVIEW_TABLE.next_state(InterviewStatus.RESCHEDULED, "confirm") == InterviewStatus.RESCHEDULED

    @pytest.mark.parametrize("status", [InterviewStatus.COMPLETED, InterviewStatus.CANCELLED])
    @pytest.mark.parametrize("action", ["reschedule", "confirm", "cancel", "complete"])
    def test_terminal_interview_refuses_everything(self, status, action):
        allowed, reason = INTERVIEW_TABLE.can_transition(status, action)
        assert allowed is False
        assert status.value in reason

    def test_application_status_any_live_target(self):
        for target in ApplicationStatus:
            if target == ApplicationStatus.UNDER_REVIEW:
                continue
            assert APPLICATION_STATUS_TABLE.next_state(ApplicationStatus.UNDER_REVIEW, target.value) == target

    def test_application_status_same_state_not_a_transition(self):
        allowed, _reason = APPLICATION_STATUS_TABLE.can_transition(ApplicationStatus.PENDING, "PENDING")
        assert allowed is False

    def test_terminal_state_with_outgoing_transition_is_rejected(self):
        with pytest.raises(ValueError, match="terminal state"):
            TransitionTable(
                "broken",
                {(VerificationStatus.VERIFIED, "reject"): VerificationStatus.REJECTED},
                frozenset({VerificationStatus.VERIFIED}),
            )


class TestFSMService:
    """Test FSM service functionality."""

    def test_check_returns_target(self):
        fsm_service = FSMService()
        result = fsm_service.check(DOCUMENT_REQUEST_TABLE, "req-1", DocumentRequestStatus.SENT, "cancel")
        assert result == DocumentRequestStatus.CANCELLED

    def test_check_rejects_illegal_transition(self):
        fsm_service = FSMService()
        with pytest.raises(InvalidTransition):
            fsm_service.check(DOCUMENT_REQUEST_TABLE, "req-1", DocumentRequestStatus.SUBMITTED, "cancel")

        # Rejected transitions are not recorded
        assert fsm_service.get_transition_history() == []

    def test_record_and_history(self):
        fsm_service = FSMService()
        fsm_service.record(
            INTERVIEW_TABLE, "int-1", InterviewStatus.SCHEDULED, InterviewStatus.RESCHEDULED, "reschedule", actor_id="officer-1"
        )
        last = fsm_service.record(
            INTERVIEW_TABLE, "int-1", InterviewStatus.RESCHEDULED, InterviewStatus.COMPLETED, "complete", actor_id="officer-1"
        )
        fsm_service.record(
            DOCUMENT_VERIFICATION_TABLE, "doc-1", VerificationStatus.PENDING, VerificationStatus.VERIFIED, "verify"
        )

        history = fsm_service.get_transition_history("int-1")
        assert [h.action for h in history] == ["complete", "reschedule"]
        assert history[0] is last
        assert last.is_terminal is True
        assert last.transition_description == "RESCHEDULED -> COMPLETED"
        assert last.machine == "interview"

        assert len(fsm_service.get_transition_history()) == 3
        assert len(fsm_service.get_transition_history(limit=1)) == 1
