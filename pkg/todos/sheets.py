"""
Google Sheets range client.

The row store behind TodoStore. Ranges are A1 notation relative to the
configured sheet tab ("A2:D", "C7", "A7:D7"); the tab name is prefixed here.
"""
import logging
from typing import List, Optional

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from httplib2 import HttpLib2Error

from .schema import HEADER

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

BANNER = "=" * 64

# What a range call raises when the API, the network or the token refresh fails
TRANSPORT_ERRORS = (HttpError, HttpLib2Error, GoogleAuthError, OSError)


class StoreError(Exception):
    """Raised when a read/write against the sheet fails after startup."""

    def __init__(self, operation: str, cause: Exception):
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.cause = cause


class SheetSetupError(Exception):
    """Raised at startup when the spreadsheet is unusable as configured."""
    pass


def load_credentials(credentials_path: str):
    """Service account credentials from a JSON key file."""
    return service_account.Credentials.from_service_account_file(
        credentials_path, scopes=SCOPES
    )


class SheetsClient:
    """Thin wrapper over spreadsheets().values() for one sheet tab."""

    def __init__(
        self,
        spreadsheet_id: str,
        sheet_name: str = "Todos",
        credentials=None,
        service=None,
    ):
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name
        self.credentials = credentials
        if service is None:
            service = build(
                "sheets", "v4", credentials=credentials, cache_discovery=False
            )
        self.service = service

    @property
    def url(self) -> str:
        return f"https://docs.google.com/spreadsheets/d/{self.spreadsheet_id}/edit"

    @property
    def account_email(self) -> str:
        email = getattr(self.credentials, "service_account_email", None)
        return email or "your service account email"

    def _range(self, a1: str) -> str:
        return f"'{self.sheet_name}'!{a1}"

    # ──────────────────────────────────────────
    # Range operations
    # ──────────────────────────────────────────

    def read_range(self, a1: str) -> List[List[str]]:
        """Return the rows in range; trailing empty rows/cells are omitted."""
        try:
            result = self.service.spreadsheets().values().get(
                spreadsheetId=self.spreadsheet_id,
                range=self._range(a1),
            ).execute()
        except TRANSPORT_ERRORS as e:
            raise StoreError(f"read {a1}", e) from e
        return result.get("values", [])

    def write_range(self, a1: str, values: List[List[str]]):
        try:
            self.service.spreadsheets().values().update(
                spreadsheetId=self.spreadsheet_id,
                range=self._range(a1),
                valueInputOption="RAW",
                body={"values": values},
            ).execute()
        except TRANSPORT_ERRORS as e:
            raise StoreError(f"write {a1}", e) from e

    def append_row(self, values: List[str]):
        try:
            self.service.spreadsheets().values().append(
                spreadsheetId=self.spreadsheet_id,
                range=self._range("A2"),
                valueInputOption="RAW",
                insertDataOption="INSERT_ROWS",
                body={"values": [values]},
            ).execute()
        except TRANSPORT_ERRORS as e:
            raise StoreError("append", e) from e

    def clear_range(self, a1: str):
        try:
            self.service.spreadsheets().values().clear(
                spreadsheetId=self.spreadsheet_id,
                range=self._range(a1),
                body={},
            ).execute()
        except TRANSPORT_ERRORS as e:
            raise StoreError(f"clear {a1}", e) from e

    # ──────────────────────────────────────────
    # Startup checks
    # ──────────────────────────────────────────

    def verify(self):
        """
        Check the spreadsheet is reachable, has the sheet tab, and has a header.

        Writes the header row when row 1 is empty.

        Raises:
            SheetSetupError with remediation steps on 403/404, a missing tab,
            or credentials Google refuses.
        """
        logger.info(f"Connecting to spreadsheet {self.spreadsheet_id}")
        logger.info(f"Service account: {self.account_email}")

        try:
            info = self.service.spreadsheets().get(
                spreadsheetId=self.spreadsheet_id
            ).execute()
        except HttpError as e:
            raise self._setup_error(e, "PERMISSION DENIED") from e
        except GoogleAuthError as e:
            raise self._auth_error(e) from e

        title = info.get("properties", {}).get("title", "Unknown")
        tabs = [
            s.get("properties", {}).get("title", "")
            for s in info.get("sheets", [])
        ]
        logger.info(f'Connected to spreadsheet "{title}", sheets: {tabs}')

        if self.sheet_name not in tabs:
            raise SheetSetupError(
                self._guidance(
                    f'SHEET SETUP REQUIRED: "{self.sheet_name}" sheet is missing',
                    [
                        f"Open your spreadsheet: {self.url}",
                        "Click the + button at the bottom to add a new sheet",
                        'Right-click on the new sheet tab, select "Rename..."',
                        f'Name it exactly "{self.sheet_name}" (case sensitive)',
                        "Restart the bot after creating the sheet",
                    ],
                )
            )

        try:
            current = self.service.spreadsheets().values().get(
                spreadsheetId=self.spreadsheet_id,
                range=self._range("A1:D1"),
            ).execute().get("values", [])
            if not current:
                logger.info("No header found, adding it")
                self.service.spreadsheets().values().update(
                    spreadsheetId=self.spreadsheet_id,
                    range=self._range("A1:D1"),
                    valueInputOption="RAW",
                    body={"values": [HEADER]},
                ).execute()
            else:
                logger.info(f"Header exists: {current[0]}")
        except HttpError as e:
            raise self._setup_error(
                e, "PERMISSION DENIED ACCESSING SHEET CONTENT"
            ) from e
        except GoogleAuthError as e:
            raise self._auth_error(e) from e

    def _auth_error(self, error: GoogleAuthError) -> Exception:
        return SheetSetupError(
            self._guidance(
                "SERVICE ACCOUNT AUTHENTICATION FAILED",
                [
                    f"Google rejected the credentials for {self.account_email}: {error}",
                    "Check that the key in GOOGLE_APPLICATION_CREDENTIALS has not been "
                    "deleted or revoked in the Google Cloud console",
                    "Create a new JSON key for the service account if needed",
                    "Make sure the Google Sheets API is enabled for its project",
                    "Restart the bot",
                ],
            )
        )

    def _setup_error(self, error: HttpError, forbidden_title: str) -> Exception:
        status = getattr(error.resp, "status", None)
        if status == 404:
            return SheetSetupError(
                self._guidance(
                    "SPREADSHEET NOT FOUND",
                    [
                        f"Try opening this URL: {self.url}",
                        "If it doesn't exist, create it, or set SPREADSHEET_ID "
                        "in your .env to the right spreadsheet",
                    ],
                )
            )
        if status == 403:
            return SheetSetupError(
                self._guidance(
                    forbidden_title,
                    [
                        f"Open: {self.url}",
                        'Click "Share" in the top-right corner',
                        f"Add: {self.account_email}",
                        'Give it "Editor" permission (not just "Viewer")',
                        'Click "Share" and restart the bot',
                    ],
                )
            )
        return SheetSetupError(f"Google Sheets API error: {error}")

    @staticmethod
    def _guidance(title: str, steps: List[str]) -> str:
        lines = [BANNER, title, BANNER, ""]
        lines += [f"{i}. {step}" for i, step in enumerate(steps, start=1)]
        lines += ["", BANNER]
        return "\n".join(lines)


def connect(
    spreadsheet_id: str,
    credentials_path: str,
    sheet_name: str = "Todos",
    service: Optional[object] = None,
) -> SheetsClient:
    """Build a client from a service account key file and verify the sheet."""
    credentials = load_credentials(credentials_path) if service is None else None
    client = SheetsClient(
        spreadsheet_id, sheet_name, credentials=credentials, service=service
    )
    client.verify()
    return client
