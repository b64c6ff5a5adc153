"""Tests for the object storage collaborator."""

import pytest
from unittest.mock import AsyncMock, MagicMock

import aiohttp

from visa_portal.clients.storage import HttpObjectStorage, UploadFile, build_path_hint
from visa_portal.core.error_handling import NetworkError

from tests.factories import TEST_SETTINGS


def mock_session(status=200, body=None, error=None):
    """aiohttp session whose ``put`` yields one canned response."""
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=body)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)
    if error is not None:
        context.__aenter__.side_effect = error

    session = MagicMock()
    session.put = MagicMock(return_value=context)
    return session


class TestPathHint:

    def test_layout(self):
        hint = build_path_hint("visa-documents/", "app-1", "passportCopy", "passport.pdf")
        assert hint == "visa-documents/app-1-passportCopy-passport.pdf"


class TestUploadFile:

    def test_content_type_guessed(self):
        assert UploadFile("scan.pdf", b"x").resolved_content_type == "application/pdf"
        assert UploadFile("blob", b"x").resolved_content_type == "application/octet-stream"
        assert UploadFile("scan.pdf", b"xyz", content_type="image/png").resolved_content_type == "image/png"
        assert UploadFile("scan.pdf", b"xyz").size == 3


class TestHttpObjectStorage:

    @pytest.mark.asyncio
    async def test_returns_url_from_response(self):
        session = mock_session(body={"url": "https://cdn.test/visa-documents/a.pdf"})
        storage = HttpObjectStorage(session=session, settings=TEST_SETTINGS)

        path = await storage.upload(UploadFile("a.pdf", b"%PDF"), "visa-documents/a.pdf")

        assert path == "https://cdn.test/visa-documents/a.pdf"
        url = session.put.call_args.args[0]
        assert url == "http://storage.test/files/visa-documents/a.pdf"

    @pytest.mark.asyncio
    async def test_falls_back_to_put_url(self):
        storage = HttpObjectStorage(session=mock_session(body=None), settings=TEST_SETTINGS)

        path = await storage.upload(UploadFile("a.pdf", b"%PDF"), "visa-documents/a.pdf")

        assert path == "http://storage.test/files/visa-documents/a.pdf"

    @pytest.mark.asyncio
    async def test_error_status(self):
        storage = HttpObjectStorage(session=mock_session(status=413), settings=TEST_SETTINGS)

        with pytest.raises(NetworkError) as exc_info:
            await storage.upload(UploadFile("a.pdf", b"%PDF"), "visa-documents/a.pdf")
        assert exc_info.value.status_code == 413

    @pytest.mark.asyncio
    async def test_transport_error(self):
        session = mock_session(error=aiohttp.ClientConnectionError("refused"))
        storage = HttpObjectStorage(session=session, settings=TEST_SETTINGS)

        with pytest.raises(NetworkError):
            await storage.upload(UploadFile("a.pdf", b"%PDF"), "visa-documents/a.pdf")
