"""Tests for the portal API client envelope handling."""

import pytest
from unittest.mock import AsyncMock, patch

from visa_portal.clients.api_client import ApiResponse, PortalApiClient
from visa_portal.core.config import Settings
from visa_portal.core.error_handling import ConfigurationError, NetworkError, TransitionError
from visa_portal.models import ApplicationStatus, DocumentType, VerificationStatus
from visa_portal.schemas import DocumentSubmission

from tests.factories import TEST_SETTINGS


class TestUnwrap:

    def test_envelope(self):
        response = PortalApiClient._unwrap("GET", "/x", 200, {"success": True, "message": "ok", "data": {"id": "1"}})
        assert response.data == {"id": "1"}
        assert response.message == "ok"

    def test_bare_body_is_wrapped(self):
        response = PortalApiClient._unwrap("GET", "/x", 200, [{"id": "1"}])
        assert response.success is True
        assert response.data == [{"id": "1"}]

    def test_unsuccessful_envelope(self):
        with pytest.raises(TransitionError, match="Request is not in SENT state"):
            PortalApiClient._unwrap("DELETE", "/x", 200, {"success": False, "message": "Request is not in SENT state"})

    def test_client_error_keeps_backend_message(self):
        with pytest.raises(TransitionError, match="Interview already completed"):
            PortalApiClient._unwrap("POST", "/x", 409, {"message": "Interview already completed"})

    def test_server_error_is_network_error(self):
        with pytest.raises(NetworkError) as exc_info:
            PortalApiClient._unwrap("GET", "/x", 502, None)
        assert exc_info.value.status_code == 502

    def test_items(self):
        assert PortalApiClient._items(None, "messages") == []
        assert PortalApiClient._items({"messages": [1, 2]}, "messages") == [1, 2]
        assert PortalApiClient._items({"other": []}, "messages") == []
        assert PortalApiClient._items([3], "messages") == [3]


class TestEndpoints:

    def test_blank_base_url(self):
        with pytest.raises(ConfigurationError):
            PortalApiClient(settings=Settings(_env_file=None, api_base_url="  "))

    def test_bearer_header(self):
        client = PortalApiClient(access_token="secret", settings=TEST_SETTINGS)
        assert client._headers()["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_update_status_body(self):
        client = PortalApiClient(settings=TEST_SETTINGS)
        with patch.object(client, "_request", AsyncMock(return_value=ApiResponse())) as mock_request:
            await client.update_application_status("app-1", ApplicationStatus.REJECTED, " Incomplete ")

        mock_request.assert_awaited_once_with(
            "PUT",
            "/applications/app-1/status",
            json={"status": "REJECTED", "rejectionReason": "Incomplete"},
        )

    @pytest.mark.asyncio
    async def test_reject_document_body(self):
        client = PortalApiClient(settings=TEST_SETTINGS)
        echoed = ApiResponse(data={"status": "REJECTED", "verifiedBy": "officer-1", "verifiedAt": "2024-03-02T10:00:00Z"})
        with patch.object(client, "_request", AsyncMock(return_value=echoed)) as mock_request:
            result = await client.reject_document("doc-1", "Blurred")

        assert mock_request.await_args.kwargs["json"] == {"isApproved": False, "rejectionReason": "Blurred"}
        assert result.verification_status == VerificationStatus.REJECTED
        assert result.is_complete

    @pytest.mark.asyncio
    async def test_submit_document_body(self):
        client = PortalApiClient(settings=TEST_SETTINGS)
        payload = DocumentSubmission(
            document_type=DocumentType.BANK_STATEMENT,
            file_name="statement.pdf",
            file_path="visa-documents/app-1-bankStatement-statement.pdf",
            file_size=10,
        )
        with patch.object(client, "_request", AsyncMock(return_value=ApiResponse())) as mock_request:
            await client.submit_document_for_request("req-1", payload)

        method, path = mock_request.await_args.args
        assert (method, path) == ("POST", "/document-requests/req-1/submit")
        assert mock_request.await_args.kwargs["json"]["documentType"] == "bankStatement"

    @pytest.mark.asyncio
    async def test_messages_page(self):
        client = PortalApiClient(settings=TEST_SETTINGS)
        page = ApiResponse(data={"messages": [{
            "id": "m1",
            "content": "Hi",
            "createdAt": "2024-03-01T09:00:00Z",
            "sender": {"id": "applicant-1", "name": "A", "role": "applicant"},
            "applicationId": "app-1",
            "isRead": False,
        }]})
        with patch.object(client, "_request", AsyncMock(return_value=page)) as mock_request:
            messages = await client.get_messages_by_application("app-1", page=2)

        assert mock_request.await_args.kwargs["params"] == {"page": 2, "limit": 20}
        assert messages[0].sender.role.value == "APPLICANT"

    @pytest.mark.asyncio
    async def test_mark_all_read_count(self):
        client = PortalApiClient(settings=TEST_SETTINGS)
        with patch.object(client, "_request", AsyncMock(return_value=ApiResponse(data={"count": 3}))):
            assert await client.mark_all_as_read("app-1") == 3
