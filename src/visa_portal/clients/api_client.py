"""Async client for the visa portal REST API."""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp
import structlog
from pydantic import BaseModel

from visa_portal.core.config import Settings, settings as default_settings
from visa_portal.core.error_handling import ConfigurationError, NetworkError, TransitionError
from visa_portal.core.logging import performance_logger
from visa_portal.models import (
    Application,
    ApplicationStatus,
    DocumentRequest,
    Interview,
    Message,
    Note,
    VerificationResult,
)
from visa_portal.schemas import (
    DocumentRequestCreate,
    DocumentRequestUpdate,
    DocumentSubmission,
    DocumentVerification,
    InterviewCompletion,
    InterviewCreate,
    InterviewReschedule,
    MessageCreate,
    NoteCreate,
    StatusUpdate,
)

logger = structlog.get_logger(__name__)


class ApiResponse(BaseModel):
    """The ``{success, message, data}`` envelope returned by every endpoint."""

    success: bool = True
    message: Optional[str] = None
    data: Any = None


class PortalApiClient:
    """Thin async wrapper over the portal endpoints.

    Rejections (``success: false`` or a 4xx carrying a message) surface as
    ``TransitionError`` with the backend's message; transport failures and
    5xx responses surface as ``NetworkError``.
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or default_settings
        if not self.settings.api_base_url.strip():
            raise ConfigurationError("api_base_url is not configured")
        self.access_token = access_token if access_token is not None else self.settings.access_token
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "PortalApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.settings.api_timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> ApiResponse:
        url = f"{self.settings.api_root}{path}"

        with performance_logger.log_operation_time("api_request", method=method, path=path):
            try:
                async with self._get_session().request(
                    method, url, json=json, params=params, headers=self._headers()
                ) as response:
                    try:
                        body = await response.json(content_type=None)
                    except ValueError:
                        body = None
                    status = response.status
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise NetworkError(
                    f"{method} {path} failed: {e}",
                    original_error=e
                ) from e

        return self._unwrap(method, path, status, body)

    @staticmethod
    def _unwrap(method: str, path: str, status: int, body: Any) -> ApiResponse:
        message = body.get("message") if isinstance(body, dict) else None

        if status >= 500:
            logger.warning("Remote service error", method=method, path=path, status=status)
            raise NetworkError(
                message or f"{method} {path} returned {status}",
                status_code=status
            )

        if status >= 400:
            logger.info("Request rejected", method=method, path=path, status=status, message=message)
            raise TransitionError(message or f"Request was rejected ({status})")

        if isinstance(body, dict) and ("success" in body or "data" in body):
            envelope = ApiResponse.model_validate(body)
        else:
            envelope = ApiResponse(success=True, data=body)

        if not envelope.success:
            raise TransitionError(envelope.message or "Request was rejected")

        return envelope

    @staticmethod
    def _items(data: Any, key: str) -> List[Any]:
        """Lists arrive bare or wrapped as ``{key: [...]}``."""
        if data is None:
            return []
        if isinstance(data, dict):
            return data.get(key) or []
        return list(data)

    # Applications

    async def get_application_by_id(self, application_id: str) -> Application:
        response = await self._request("GET", f"/applications/{application_id}")
        return Application.model_validate(response.data)

    async def update_application_status(
        self,
        application_id: str,
        status: ApplicationStatus,
        rejection_reason: Optional[str] = None
    ) -> None:
        body = StatusUpdate(status=status, rejection_reason=rejection_reason)
        await self._request("PUT", f"/applications/{application_id}/status", json=body.to_payload())

    # Documents

    async def verify_document(
        self,
        document_id: str,
        approve: bool = True,
        reason: Optional[str] = None
    ) -> VerificationResult:
        body = DocumentVerification(is_approved=approve, rejection_reason=reason)
        response = await self._request("PUT", f"/documents/{document_id}/verify", json=body.to_payload())
        return VerificationResult.model_validate(response.data or {})

    async def reject_document(self, document_id: str, reason: str) -> VerificationResult:
        return await self.verify_document(document_id, approve=False, reason=reason)

    # Document requests

    async def create_request_for_document(
        self,
        application_id: str,
        payload: DocumentRequestCreate
    ) -> ApiResponse:
        return await self._request("POST", f"/document-requests/{application_id}", json=payload.to_payload())

    async def get_application_document_requests(self, application_id: str) -> List[DocumentRequest]:
        response = await self._request("GET", f"/document-requests/application/{application_id}")
        return [DocumentRequest.model_validate(item) for item in self._items(response.data, "requests")]

    async def update_request_for_document(
        self,
        request_id: str,
        payload: DocumentRequestUpdate
    ) -> ApiResponse:
        return await self._request("PUT", f"/document-requests/{request_id}", json=payload.to_payload())

    async def cancel_request_for_document(self, request_id: str) -> ApiResponse:
        return await self._request("DELETE", f"/document-requests/{request_id}")

    async def submit_document_for_request(
        self,
        request_id: str,
        payload: DocumentSubmission
    ) -> ApiResponse:
        return await self._request("POST", f"/document-requests/{request_id}/submit", json=payload.to_payload())

    # Interviews

    async def create_interview(self, payload: InterviewCreate) -> ApiResponse:
        return await self._request("POST", "/interviews/create", json=payload.to_payload())

    async def get_application_interviews(self, application_id: str) -> List[Interview]:
        response = await self._request("GET", f"/interviews/application/{application_id}")
        return [Interview.model_validate(item) for item in self._items(response.data, "interviews")]

    async def reschedule_interview(self, interview_id: str, payload: InterviewReschedule) -> ApiResponse:
        return await self._request("PUT", f"/interviews/{interview_id}/reschedule", json=payload.to_payload())

    async def cancel_interview(self, interview_id: str) -> ApiResponse:
        return await self._request("DELETE", f"/interviews/{interview_id}")

    async def mark_interview_completed(self, interview_id: str, payload: InterviewCompletion) -> ApiResponse:
        return await self._request("PUT", f"/interviews/{interview_id}/complete", json=payload.to_payload())

    async def confirm_interview(self, interview_id: str) -> ApiResponse:
        return await self._request("POST", f"/interviews/{interview_id}/confirm", json={})

    # Messages

    async def get_messages_by_application(
        self,
        application_id: str,
        page: int = 1,
        page_size: Optional[int] = None
    ) -> List[Message]:
        params = {"page": page, "limit": page_size or self.settings.messages_page_size}
        response = await self._request("GET", f"/messages/application/{application_id}", params=params)
        return [Message.model_validate(item) for item in self._items(response.data, "messages")]

    async def send_quick_message(
        self,
        recipient_id: str,
        application_id: str,
        content: str,
        reply_to_id: Optional[str] = None
    ) -> Message:
        body = MessageCreate(
            recipient_id=recipient_id,
            application_id=application_id,
            content=content,
            reply_to_id=reply_to_id,
        )
        response = await self._request("POST", "/messages", json=body.to_payload())
        return Message.model_validate(response.data)

    async def mark_as_read(self, message_id: str) -> None:
        await self._request("PATCH", f"/messages/{message_id}/read", json={})

    async def mark_all_as_read(self, application_id: str) -> int:
        response = await self._request("PATCH", f"/messages/application/{application_id}/read-all", json={})
        if isinstance(response.data, dict):
            return int(response.data.get("count", 0))
        return 0

    # Notes

    async def create_note(self, payload: NoteCreate) -> Note:
        response = await self._request(
            "POST",
            f"/applications/{payload.application_id}/notes",
            json={"content": payload.content}
        )
        return Note.model_validate(response.data)

    async def get_application_notes(self, application_id: str) -> List[Note]:
        response = await self._request("GET", f"/applications/{application_id}/notes")
        return [Note.model_validate(item) for item in self._items(response.data, "notes")]
