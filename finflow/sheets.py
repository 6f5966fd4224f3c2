# finflow/sheets.py
from __future__ import annotations
from typing import Optional
import logging
import re

import gspread
import pandas as pd
from gspread_dataframe import get_as_dataframe, set_with_dataframe

from finflow.constants import FRAME_HEADERS
from finflow.io import from_frame, to_frame
from finflow.models import FinanceData
from finflow.results import InvalidPayload, StorageError

logger = logging.getLogger(__name__)


def sanitize_tab_title(raw: str) -> str:
    """
    Convert an arbitrary id into a safe Google Sheets tab title.
    - trims, spaces -> _
    - forbidden chars -> -, runs of _ collapsed, edge _ dropped
    - length cap (Sheets tab limit is 100; we keep margin)
    """
    s = (raw or "").strip()
    s = re.sub(r"\s+", "_", s)
    s = re.sub(r"[:\\/?*\[\]]", "-", s)
    s = re.sub(r"_+", "_", s)
    return s[:80].strip("_") or "default"


def _escape_text(value: str) -> bool:
    # ids like "1-1" would otherwise be parsed as dates by Sheets
    return value != ""


def document_title(collection: str, document: str) -> str:
    # parts are sanitized on their own so the "__" separator survives
    return f"{sanitize_tab_title(collection)}__{sanitize_tab_title(document)}"[:100]


class SheetsStore:
    """Keeps one FinanceData document in a worksheet of a fixed spreadsheet."""

    def __init__(self, client: gspread.client.Client, spreadsheet_id: str, collection: str, document: str):
        if not spreadsheet_id:
            raise StorageError("No spreadsheet id configured for the Sheets store")
        self.client = client
        self.spreadsheet_id = spreadsheet_id
        self.title = document_title(collection, document)

    def _open(self):
        try:
            return self.client.open_by_key(self.spreadsheet_id)
        except gspread.exceptions.GSpreadException as e:
            raise StorageError(f"Could not open spreadsheet {self.spreadsheet_id}: {e}") from e

    def _ensure_worksheet(self, spreadsheet) -> gspread.Worksheet:
        try:
            return spreadsheet.worksheet(self.title)
        except gspread.WorksheetNotFound:
            ws = spreadsheet.add_worksheet(title=self.title, rows=200, cols=len(FRAME_HEADERS) + 2)
            ws.update("A1", [FRAME_HEADERS])
            return ws

    def load(self) -> Optional[FinanceData]:
        spreadsheet = self._open()
        try:
            ws = spreadsheet.worksheet(self.title)
        except gspread.WorksheetNotFound:
            logger.warning("Worksheet %s not found in %s", self.title, self.spreadsheet_id)
            return None
        try:
            df = get_as_dataframe(ws, evaluate_formulas=True, header=0, dtype=str)
        except gspread.exceptions.GSpreadException as e:
            raise StorageError(f"Could not read worksheet {self.title}: {e}") from e
        if df is None or df.dropna(how="all").empty:
            return None
        try:
            return from_frame(df)
        except InvalidPayload as e:
            raise StorageError(f"Worksheet {self.title} holds invalid finance data: {e}") from e

    def save(self, data: FinanceData) -> None:
        spreadsheet = self._open()
        out = to_frame(data)
        out = out.astype(object).where(pd.notnull(out), "")
        try:
            ws = self._ensure_worksheet(spreadsheet)
            # Write (clear + full data write with headers)
            ws.clear()
            set_with_dataframe(
                ws, out, include_index=False, include_column_header=True, resize=True,
                allow_formulas=False, string_escaping=_escape_text,
            )
        except gspread.exceptions.GSpreadException as e:
            raise StorageError(f"Could not write worksheet {self.title}: {e}") from e
        logger.info("Saved %d rows to worksheet %s", len(out), self.title)
