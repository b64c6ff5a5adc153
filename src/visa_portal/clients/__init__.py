"""Remote collaborators: the portal API and object storage."""

from .api_client import ApiResponse, PortalApiClient
from .storage import HttpObjectStorage, ObjectStorage, UploadFile, build_path_hint

__all__ = [
    "ApiResponse", "PortalApiClient",
    "HttpObjectStorage", "ObjectStorage", "UploadFile", "build_path_hint",
]
