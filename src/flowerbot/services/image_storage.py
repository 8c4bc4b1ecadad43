from __future__ import annotations

import asyncio
import io
import logging
import time
from typing import Any, Optional

import aiohttp
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import credentials as oauth_credentials
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from ..config import Settings
from ..errors import ImageStorageError

log = logging.getLogger("flowerbot.image_storage")

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive"]
TOKEN_URI = "https://oauth2.googleapis.com/token"
_FETCH_TIMEOUT = aiohttp.ClientTimeout(total=30)


async def is_fetchable(session: aiohttp.ClientSession, url: str) -> bool:
    """Probe that an attachment URL still resolves."""
    try:
        async with session.head(url, allow_redirects=True, timeout=_FETCH_TIMEOUT) as resp:
            if resp.status == 405:
                # Some CDNs refuse HEAD; a ranged GET is just as cheap.
                async with session.get(url, headers={"Range": "bytes=0-0"}, timeout=_FETCH_TIMEOUT) as get_resp:
                    return get_resp.status < 400
            return resp.status < 400
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        log.warning("Image probe failed for %s: %s", url, e)
        return False


async def fetch_image(session: aiohttp.ClientSession, url: str) -> tuple[bytes, str]:
    try:
        async with session.get(url, timeout=_FETCH_TIMEOUT) as resp:
            if resp.status >= 400:
                raise ImageStorageError(f"Failed to fetch image: HTTP {resp.status} {resp.reason}")
            content_type = resp.headers.get("Content-Type", "application/octet-stream")
            return await resp.read(), content_type
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise ImageStorageError(f"Failed to fetch image: {e}") from e


class DriveImageStorage:
    """Copies Discord attachments into a public Google Drive folder."""

    def __init__(self, settings: Settings, session: aiohttp.ClientSession) -> None:
        self._settings = settings
        self._session = session
        self._service: Optional[Any] = None

    def _credentials(self) -> Any:
        s = self._settings
        if s.drive_oauth_configured:
            return oauth_credentials.Credentials(
                None,
                refresh_token=s.google_refresh_token,
                client_id=s.google_client_id,
                client_secret=s.google_client_secret,
                token_uri=TOKEN_URI,
                scopes=DRIVE_SCOPES,
            )
        if s.google_service_account_email and s.google_private_key:
            return service_account.Credentials.from_service_account_info(
                {
                    "type": "service_account",
                    "client_email": s.google_service_account_email,
                    "private_key": s.google_private_key,
                    "token_uri": TOKEN_URI,
                },
                scopes=DRIVE_SCOPES,
            )
        raise ImageStorageError(
            "Missing Google Drive credentials: set GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and "
            "GOOGLE_REFRESH_TOKEN, or the service account variables"
        )

    def _drive(self) -> Any:
        if self._service is None:
            self._service = build("drive", "v3", credentials=self._credentials(), cache_discovery=False)
        return self._service

    def _upload(self, data: bytes, content_type: str) -> str:
        folder_id = self._settings.google_drive_folder_id
        if not folder_id:
            raise ImageStorageError("Missing GOOGLE_DRIVE_FOLDER_ID")
        drive = self._drive()
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=content_type, resumable=False)
        created = drive.files().create(
            body={"name": f"discord_{int(time.time() * 1000)}", "parents": [folder_id]},
            media_body=media,
            fields="id",
        ).execute()
        file_id = created.get("id")
        if not file_id:
            raise ImageStorageError("Drive returned no file id")
        drive.permissions().create(fileId=file_id, body={"role": "reader", "type": "anyone"}).execute()
        return f"https://drive.google.com/uc?id={file_id}"

    async def store(self, source_url: str) -> str:
        """Copy ``source_url`` to Drive and return a durable public URL."""
        data, content_type = await fetch_image(self._session, source_url)
        try:
            url = await asyncio.to_thread(self._upload, data, content_type)
        except ImageStorageError:
            raise
        except (HttpError, GoogleAuthError) as e:
            raise ImageStorageError(f"Drive upload failed: {e}") from e
        except Exception as e:
            # Bad key material (ValueError) and transport errors from httplib2 land here.
            raise ImageStorageError(f"Drive upload failed: {type(e).__name__}: {e}") from e
        log.info("Stored image %s as %s", source_url, url)
        return url
