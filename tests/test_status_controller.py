"""Tests for the application status controller and officer notes."""

import pytest
from datetime import timedelta

from visa_portal.core.error_handling import (
    AuthorizationError,
    CaseFrozen,
    EmptyNote,
    InvalidTransition,
    TransitionError,
    UpdateFailed,
)
from visa_portal.models import ApplicationStatus, DocumentRequestStatus, Note

from tests.factories import BASE_TIME, make_application, make_request, open_case


def make_note(note_id, minutes):
    return Note(id=note_id, application_id="app-1", content=f"note {note_id}", created_at=BASE_TIME + timedelta(minutes=minutes))


class TestStatusController:

    @pytest.mark.asyncio
    async def test_same_status_reports_no_changes_without_network(self, officer, mock_api):
        case = await open_case(mock_api.backend, officer, api=mock_api)

        result = await case.status.update_status("PENDING")

        assert result.changed is False
        assert result.message == "No changes"
        mock_api.update_application_status.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_status_patches_and_refetches(self, officer):
        case = await open_case(make_application(), officer)

        result = await case.status.update_status(ApplicationStatus.UNDER_REVIEW)

        assert result.changed is True
        assert result.previous == ApplicationStatus.PENDING
        assert case.aggregate.view.status == ApplicationStatus.UNDER_REVIEW
        assert case.aggregate.refetch_count == 1
        history = case.fsm.get_transition_history("app-1")
        assert history[0].new_state == "UNDER_REVIEW"

    @pytest.mark.asyncio
    async def test_rejection_reason_only_sent_with_rejected(self, officer):
        case = await open_case(make_application(), officer)
        api = case.aggregate.api

        await case.status.update_status(ApplicationStatus.UNDER_REVIEW, rejection_reason="ignored")
        api.update_application_status.assert_awaited_with("app-1", ApplicationStatus.UNDER_REVIEW, None)

        await case.status.update_status(ApplicationStatus.REJECTED, rejection_reason="  Incomplete file  ")
        api.update_application_status.assert_awaited_with("app-1", ApplicationStatus.REJECTED, "Incomplete file")
        assert case.aggregate.view.rejection_reason == "Incomplete file"
        assert case.aggregate.view.decision_date is not None
        assert case.aggregate.is_frozen

    @pytest.mark.asyncio
    async def test_terminal_application_is_frozen(self, officer):
        case = await open_case(make_application(status=ApplicationStatus.APPROVED), officer)

        with pytest.raises(CaseFrozen):
            await case.status.update_status(ApplicationStatus.UNDER_REVIEW)
        assert case.status.available_targets() == []

    @pytest.mark.asyncio
    async def test_approval_refused_while_requests_outstanding(self, officer):
        application = make_application(requests=[make_request(status=DocumentRequestStatus.SENT)])
        case = await open_case(application, officer)

        with pytest.raises(InvalidTransition, match="awaiting the applicant"):
            await case.status.update_status(ApplicationStatus.APPROVED)
        case.aggregate.api.update_application_status.assert_not_called()

    @pytest.mark.asyncio
    async def test_approval_allowed_once_requests_resolved(self, officer):
        application = make_application(requests=[make_request(status=DocumentRequestStatus.SUBMITTED)])
        case = await open_case(application, officer)

        result = await case.status.update_status(ApplicationStatus.APPROVED)
        assert result.status == ApplicationStatus.APPROVED

    @pytest.mark.asyncio
    async def test_backend_rejection_becomes_update_failed(self, officer, mock_api):
        mock_api.update_application_status.side_effect = TransitionError("Payment not completed")
        case = await open_case(mock_api.backend, officer, api=mock_api)

        with pytest.raises(UpdateFailed, match="Payment not completed"):
            await case.status.update_status(ApplicationStatus.UNDER_REVIEW)
        assert case.aggregate.view.status == ApplicationStatus.PENDING
        assert case.fsm.get_transition_history() == []

    @pytest.mark.asyncio
    async def test_applicant_cannot_update_status(self, applicant, mock_api):
        case = await open_case(mock_api.backend, applicant, api=mock_api)

        with pytest.raises(AuthorizationError):
            await case.status.update_status(ApplicationStatus.APPROVED)


class TestNotes:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["", "   ", "\n\t"])
    async def test_empty_note_rejected_locally(self, officer, mock_api, content):
        case = await open_case(mock_api.backend, officer, api=mock_api)

        with pytest.raises(EmptyNote):
            await case.status.add_note(content)
        mock_api.create_note.assert_not_called()

    @pytest.mark.asyncio
    async def test_add_note_refreshes_list_newest_first(self, officer, mock_api):
        mock_api.create_note.return_value = make_note("n2", 10)
        mock_api.get_application_notes.return_value = [make_note("n1", 0), make_note("n2", 10)]
        case = await open_case(mock_api.backend, officer, api=mock_api)

        note = await case.status.add_note("  Called the applicant  ")

        assert note.id == "n2"
        sent = mock_api.create_note.await_args.args[0]
        assert sent.content == "Called the applicant"
        assert [n.id for n in case.aggregate.view.notes] == ["n2", "n1"]

    @pytest.mark.asyncio
    async def test_applicant_cannot_list_notes(self, applicant, mock_api):
        case = await open_case(mock_api.backend, applicant, api=mock_api)

        with pytest.raises(AuthorizationError):
            await case.status.list_notes()
