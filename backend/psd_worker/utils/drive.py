import asyncio
import io
import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from psd_worker.config import (
    GOOGLE_CLIENT_EMAIL,
    GOOGLE_DRIVE_FOLDER_ID,
    GOOGLE_DRIVE_SCOPES,
    GOOGLE_PRIVATE_KEY,
)

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"
FILE_FIELDS = "id, webViewLink, webContentLink"

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


class DriveError(Exception):
    pass


class DriveConfigError(DriveError):
    pass


class DriveUploadError(DriveError):
    pass


@dataclass
class UploadedFile:
    id: str
    web_view_link: Optional[str]
    web_content_link: Optional[str]


def generate_file_name(mime_type: str = "image/jpeg") -> str:
    extension = EXTENSIONS.get(mime_type, "jpg")
    return f"generated_{int(time.time() * 1000)}.{extension}"


class DriveUploader:
    """Uploads rendered images to Google Drive with a service account."""

    def __init__(
        self,
        client_email: Optional[str] = GOOGLE_CLIENT_EMAIL,
        private_key: Optional[str] = GOOGLE_PRIVATE_KEY,
        folder_id: Optional[str] = GOOGLE_DRIVE_FOLDER_ID,
        scopes: Optional[List[str]] = None,
        service: Any = None,
    ):
        self.client_email = client_email
        self.private_key = private_key
        self.folder_id = folder_id
        self.scopes = scopes or GOOGLE_DRIVE_SCOPES
        self._service = service

    def _build_service(self):
        if not self.client_email or not self.private_key:
            raise DriveConfigError(
                "GOOGLE_CLIENT_EMAIL and GOOGLE_PRIVATE_KEY must be set to upload files"
            )

        try:
            credentials = service_account.Credentials.from_service_account_info(
                {
                    "type": "service_account",
                    "client_email": self.client_email,
                    "private_key": self.private_key,
                    "token_uri": TOKEN_URI,
                },
                scopes=self.scopes,
            )
        except ValueError as e:
            raise DriveConfigError(f"Invalid Google service account key: {e}") from e

        return build("drive", "v3", credentials=credentials, cache_discovery=False)

    @property
    def service(self):
        if self._service is None:
            self._service = self._build_service()
        return self._service

    def upload_sync(
        self, data: bytes, name: Optional[str] = None, mime_type: str = "image/jpeg"
    ) -> UploadedFile:
        name = name or generate_file_name(mime_type)
        metadata = {"name": name}
        if self.folder_id:
            metadata["parents"] = [self.folder_id]

        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=mime_type, resumable=False)

        try:
            created = (
                self.service.files()
                .create(
                    body=metadata,
                    media_body=media,
                    fields=FILE_FIELDS,
                    supportsAllDrives=True,
                )
                .execute()
            )
            file_id = created["id"]

            self.service.permissions().create(
                fileId=file_id,
                body={"role": "reader", "type": "anyone"},
                supportsAllDrives=True,
            ).execute()
        except HttpError as e:
            raise DriveUploadError(f"Google Drive upload failed: {e}") from e

        logger.info(f"Uploaded {name} to Google Drive (file ID: {file_id})")
        return UploadedFile(
            id=file_id,
            web_view_link=created.get("webViewLink"),
            web_content_link=created.get("webContentLink"),
        )

    async def upload(
        self, data: bytes, name: Optional[str] = None, mime_type: str = "image/jpeg"
    ) -> UploadedFile:
        """Upload without blocking the event loop."""
        return await asyncio.to_thread(self.upload_sync, data, name, mime_type)
