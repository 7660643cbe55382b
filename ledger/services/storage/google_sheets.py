"""
Google Sheets Backend

DESIGN DECISION: A spreadsheet backend lets a non-technical user open their
ledger directly in Sheets, with Google's infrastructure as the backup.

TRADEOFFS:
- Not suitable for high-volume data (fine for a personal ledger)
- No transactions and no autoincrement; ids are max(existing id) + 1,
  read and written in the same call
- Every operation reads the whole sheet and works in Python

Only the authentication handshake is retried. Ledger operations fail fast
and surface as TransportError.
"""

from decimal import Decimal
from typing import Any, Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from ledger.config import GoogleSheetsSettings, get_settings
from ledger.errors import LedgerError, NotFoundError, TransportError
from ledger.models.item import Category
from ledger.services.storage.interface import BudgetBackend, ItemBackend

logger = structlog.get_logger(__name__)

ITEM_COLUMNS = ["id", "name", "value", "type", "created_at"]
BUDGET_COLUMNS = ["month", "budget_amount"]

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and creates the worksheets on first use.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """Authenticate with the service account credentials."""
        if self._client is None:
            try:
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=SCOPES,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise TransportError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise TransportError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str]) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            return spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=title, rows=1000, cols=len(columns))
            sheet.append_row(columns)
            return sheet

    def get_items_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.items_sheet_name, ITEM_COLUMNS)

    def get_budgets_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.budgets_sheet_name, BUDGET_COLUMNS)


class GoogleSheetsItemBackend(ItemBackend, BudgetBackend):
    """
    Google Sheets implementation of item and budget storage.

    One item per row in the items sheet, header in row 1. Values are written
    as decimal strings so the sheet holds exactly what was entered.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _item_row(
        item_id: int,
        name: str,
        value: Decimal,
        category: Category,
        created_at: str,
    ) -> list:
        return [str(item_id), name, str(value), category.value, created_at]

    @staticmethod
    def _row_to_record(row: list) -> dict[str, Any]:
        def safe_get(index: int) -> str:
            try:
                return row[index]
            except IndexError:
                return ""

        return {
            "id": int(safe_get(0)),
            "name": safe_get(1),
            "value": safe_get(2),
            "category": safe_get(3),
            "created_at": safe_get(4),
        }

    def _find_row(self, sheet: gspread.Worksheet, item_id: int) -> int:
        """1-based sheet row index of an item, header being row 1."""
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if row and row[0] == str(item_id):
                return idx
        raise NotFoundError(item_id)

    async def list_items(self) -> list[dict[str, Any]]:
        try:
            sheet = self._client.get_items_sheet()
            rows = sheet.get_all_values()[1:]
            return [self._row_to_record(row) for row in rows if row and row[0]]
        except LedgerError:
            raise
        except (gspread.exceptions.GSpreadException, ValueError) as e:
            logger.error("sheets_error", operation="list items", error=str(e))
            raise TransportError(f"Failed to list items: {e}")

    async def add_item(
        self,
        name: str,
        value: Decimal,
        category: Category,
        created_at: str,
    ) -> int:
        try:
            sheet = self._client.get_items_sheet()
            ids = [int(row[0]) for row in sheet.get_all_values()[1:] if row and row[0]]
            item_id = max(ids, default=0) + 1
            sheet.append_row(
                self._item_row(item_id, name, value, category, created_at),
                value_input_option="RAW",
            )
            return item_id
        except LedgerError:
            raise
        except (gspread.exceptions.GSpreadException, ValueError) as e:
            logger.error("sheets_error", operation="add item", error=str(e))
            raise TransportError(f"Failed to add item: {e}")

    async def update_item(
        self,
        item_id: int,
        name: str,
        value: Decimal,
        category: Category,
        created_at: str,
    ) -> None:
        try:
            sheet = self._client.get_items_sheet()
            idx = self._find_row(sheet, item_id)
            new_row = self._item_row(item_id, name, value, category, created_at)
            for col_idx, cell in enumerate(new_row, start=1):
                sheet.update_cell(idx, col_idx, cell)
        except LedgerError:
            raise
        except gspread.exceptions.GSpreadException as e:
            logger.error("sheets_error", operation="update item", error=str(e))
            raise TransportError(f"Failed to update item: {e}")

    async def delete_item(self, item_id: int) -> None:
        try:
            sheet = self._client.get_items_sheet()
            sheet.delete_rows(self._find_row(sheet, item_id))
        except LedgerError:
            raise
        except gspread.exceptions.GSpreadException as e:
            logger.error("sheets_error", operation="delete item", error=str(e))
            raise TransportError(f"Failed to delete item: {e}")

    async def get_monthly_budget(self, month: str) -> Optional[Decimal]:
        try:
            sheet = self._client.get_budgets_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == month:
                    return Decimal(row[1])
            return None
        except LedgerError:
            raise
        except (gspread.exceptions.GSpreadException, ArithmeticError, IndexError) as e:
            logger.error("sheets_error", operation="get budget", error=str(e))
            raise TransportError(f"Failed to get budget: {e}")

    async def set_monthly_budget(self, month: str, amount: Decimal) -> None:
        try:
            sheet = self._client.get_budgets_sheet()
            for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
                if row and row[0] == month:
                    sheet.update_cell(idx, 2, str(amount))
                    return
            sheet.append_row([month, str(amount)], value_input_option="RAW")
        except LedgerError:
            raise
        except gspread.exceptions.GSpreadException as e:
            logger.error("sheets_error", operation="set budget", error=str(e))
            raise TransportError(f"Failed to set budget: {e}")
