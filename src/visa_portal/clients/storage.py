"""Object storage collaborator used to upload document binaries."""

import asyncio
import mimetypes
from dataclasses import dataclass
from typing import Optional, Protocol
from urllib.parse import quote

import aiohttp
import structlog

from visa_portal.core.config import Settings, settings as default_settings
from visa_portal.core.error_handling import NetworkError

logger = structlog.get_logger(__name__)


@dataclass
class UploadFile:
    """A file selected by the applicant."""
    file_name: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def resolved_content_type(self) -> str:
        if self.content_type:
            return self.content_type
        guessed, _ = mimetypes.guess_type(self.file_name)
        return guessed or "application/octet-stream"


def build_path_hint(prefix: str, application_id: str, document_type: str, file_name: str) -> str:
    """Storage key for an uploaded document: ``<prefix>/<application>-<type>-<file>``."""
    return f"{prefix.strip('/')}/{application_id}-{document_type}-{file_name}"


class ObjectStorage(Protocol):
    async def upload(self, file: UploadFile, path_hint: str) -> str:
        """Store the binary and return its reference path."""
        ...


class HttpObjectStorage:
    """Uploads binaries with an HTTP PUT to ``<storage_base_url>/<path_hint>``."""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or default_settings
        self._session = session

    async def upload(self, file: UploadFile, path_hint: str) -> str:
        url = f"{self.settings.storage_root}/{quote(path_hint)}"
        session = self._session or aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.settings.api_timeout_seconds)
        )

        try:
            async with session.put(
                url,
                data=file.content,
                headers={"Content-Type": file.resolved_content_type}
            ) as response:
                if response.status >= 400:
                    raise NetworkError(
                        f"Upload of {file.file_name} failed with status {response.status}",
                        status_code=response.status
                    )
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = None
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"Upload of {file.file_name} failed: {e}", original_error=e) from e
        finally:
            if self._session is None:
                await session.close()

        file_path = body.get("url") if isinstance(body, dict) else None
        logger.info(
            "Document binary uploaded",
            path_hint=path_hint,
            file_name=file.file_name,
            file_size=file.size
        )
        return file_path or url
