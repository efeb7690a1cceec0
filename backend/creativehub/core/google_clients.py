"""
Google API clients (Sheets, Drive) and Google identity token verification

The discovery clients are synchronous and share an httplib2 transport that is
not thread-safe, so every call made from a worker thread gets its own
authorized Http object.
"""
from typing import Any, Dict, List, Optional
import asyncio
import logging

import google_auth_httplib2
import httplib2
from google.auth import exceptions as google_auth_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token, service_account
from googleapiclient.discovery import build

from creativehub.core.config import settings
from creativehub.core.errors import UpstreamFetchError

logger = logging.getLogger(__name__)

SHEETS_READONLY_SCOPE = "https://www.googleapis.com/auth/spreadsheets.readonly"
DRIVE_SCOPE = "https://www.googleapis.com/auth/drive"
TOKEN_URI = "https://oauth2.googleapis.com/token"


def service_account_credentials(email: str, private_key: str, scopes: List[str]):
    """Build service-account credentials from an email + PEM key pair"""
    return service_account.Credentials.from_service_account_info(
        {
            "client_email": email,
            "private_key": private_key,
            "token_uri": TOKEN_URI,
        },
        scopes=scopes,
    )


def authorized_http(credentials) -> Optional[google_auth_httplib2.AuthorizedHttp]:
    """Fresh per-call transport; None lets the client use its default"""
    if credentials is None:
        return None
    return google_auth_httplib2.AuthorizedHttp(credentials, http=httplib2.Http())


class GoogleServices:
    """Discovery clients built once at startup"""

    drive: Optional[Any] = None
    drive_credentials: Optional[Any] = None
    taxonomy_sheets: Optional[Any] = None
    roles_sheets: Optional[Any] = None
    roles_credentials: Optional[Any] = None


google_services = GoogleServices()


def init_google_services():
    """Create Drive/Sheets clients from the configured service accounts"""
    drive_key = settings.drive_private_key
    if settings.GOOGLE_DRIVE_SA_EMAIL and drive_key:
        creds = service_account_credentials(
            settings.GOOGLE_DRIVE_SA_EMAIL,
            drive_key,
            [DRIVE_SCOPE, SHEETS_READONLY_SCOPE],
        )
        google_services.drive_credentials = creds
        google_services.drive = build("drive", "v3", credentials=creds, cache_discovery=False)
        google_services.taxonomy_sheets = build("sheets", "v4", credentials=creds, cache_discovery=False)
        logger.info("Google Drive and taxonomy Sheets clients initialized")
    else:
        logger.warning(
            "Missing GOOGLE_DRIVE_SA_EMAIL / GOOGLE_DRIVE_PRIVATE_KEY; Drive and taxonomy are unavailable"
        )

    if not settings.DRIVE_ROOT_FOLDER_ID:
        logger.warning("Missing DRIVE_ROOT_FOLDER_ID; uploads will land in the service account root")

    sheet_key = settings.sheet_private_key
    if settings.GOOGLE_SHEET_SA_EMAIL and sheet_key:
        creds = service_account_credentials(
            settings.GOOGLE_SHEET_SA_EMAIL,
            sheet_key,
            [SHEETS_READONLY_SCOPE],
        )
        google_services.roles_credentials = creds
        google_services.roles_sheets = build("sheets", "v4", credentials=creds, cache_discovery=False)
        logger.info("Role directory Sheets client initialized")
    else:
        logger.warning("Missing GOOGLE_SHEET_SA_EMAIL / GOOGLE_SHEET_SA_PRIVATE_KEY; every user resolves to 'user'")


class SheetsValuesReader:
    """Reads raw cell rows from one spreadsheet"""

    def __init__(self, service, spreadsheet_id: str, credentials=None):
        self.service = service
        self.spreadsheet_id = spreadsheet_id
        self.credentials = credentials

    def _get_values(self, range_name: str) -> List[List[str]]:
        if self.service is None:
            raise RuntimeError("Sheets client is not configured")
        data = self.service.spreadsheets().values().get(
            spreadsheetId=self.spreadsheet_id,
            range=range_name,
            valueRenderOption="UNFORMATTED_VALUE",
            majorDimension="ROWS",
        ).execute(http=authorized_http(self.credentials))
        return [
            ["" if cell is None else str(cell) for cell in row]
            for row in data.get("values", [])
        ]

    async def get_values(self, range_name: str) -> List[List[str]]:
        return await asyncio.to_thread(self._get_values, range_name)


class GoogleIdentityVerifier:
    """Verifies Google Identity Services ID tokens for our OAuth client"""

    def __init__(self, client_id: str):
        self.client_id = client_id

    def _verify(self, credential: str) -> Dict[str, Any]:
        try:
            return id_token.verify_oauth2_token(
                credential,
                google_requests.Request(),
                self.client_id,
            )
        except google_auth_exceptions.TransportError as e:
            raise UpstreamFetchError(f"Google certificate fetch failed: {e}") from e
        except google_auth_exceptions.GoogleAuthError as e:
            raise ValueError(str(e)) from e

    async def verify(self, credential: str) -> Dict[str, Any]:
        """Return the token payload; raises ValueError on a bad token"""
        return await asyncio.to_thread(self._verify, credential)
