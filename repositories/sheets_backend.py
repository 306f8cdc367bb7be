"""
Google Sheets sink - appends one row per validated agent.

Requires GOOGLE_SHEET_ID and a service-account JSON at GOOGLE_CREDENTIALS_PATH.
"""

import os
from datetime import datetime
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials

from models import ValidatedRecord
from .base import RecordSink, SinkConfigError, ROW_COLUMNS, record_to_row

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
DEFAULT_WORKSHEET = "Agents"


class SheetsRecordSink(RecordSink):
    """Spreadsheet sink. The header row is written into an empty tab on first use."""

    def __init__(self, sheet_id: Optional[str], credentials_path: Optional[str],
                 worksheet: str = DEFAULT_WORKSHEET):
        if not sheet_id:
            raise SinkConfigError("GOOGLE_SHEET_ID is not configured")
        if not credentials_path or not os.path.exists(credentials_path):
            raise SinkConfigError(f"Google credentials not found: {credentials_path!r}")

        self._sheet_id = sheet_id
        self._credentials_path = credentials_path
        self._worksheet_name = worksheet
        self._ws = None

    def _worksheet(self):
        if self._ws is not None:
            return self._ws

        creds = Credentials.from_service_account_file(self._credentials_path, scopes=SCOPES)
        gc = gspread.authorize(creds)
        ss = gc.open_by_key(self._sheet_id)
        try:
            ws = ss.worksheet(self._worksheet_name)
        except gspread.WorksheetNotFound:
            print(f"[SHEETS] Creating tab: {self._worksheet_name}")
            ws = ss.add_worksheet(title=self._worksheet_name, rows=1000, cols=len(ROW_COLUMNS))

        header = ws.row_values(1)
        if not header:
            ws.update(range_name="A1", values=[ROW_COLUMNS])
        elif header != ROW_COLUMNS:
            # Never overwrite someone else's data
            print(f"[SHEETS] Header mismatch on {self._worksheet_name}: {header[:3]}...")
            raise SinkConfigError(
                f"Worksheet {self._worksheet_name!r} has a different header row; "
                "use an empty tab or set GOOGLE_WORKSHEET"
            )

        self._ws = ws
        return ws

    def append(self, record: ValidatedRecord, processed_at: datetime) -> None:
        row = record_to_row(record, processed_at)
        self._worksheet().append_row(row, value_input_option="USER_ENTERED")
