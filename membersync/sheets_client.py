"""Google Sheets API wrapper for the roster spreadsheet."""

from __future__ import annotations

import logging
import re

from googleapiclient.discovery import build

from . import config
from .google_api import execute

log = logging.getLogger(__name__)


class MissingColumnError(Exception):
    """Raised when a row has fields the sheet header does not define."""

    def __init__(self, columns: list[str]) -> None:
        super().__init__(
            "Missing column(s) in the roster sheet header: " + ", ".join(columns)
        )
        self.columns = columns


def _quote_title(title: str) -> str:
    return "'" + title.replace("'", "''") + "'"


def _column_letter(index: int) -> str:
    """0-based column index to A1 letters (0 -> A, 26 -> AA)."""
    letters = ""
    index += 1
    while index:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def _row_number(updated_range: str) -> int | None:
    match = re.search(r"![A-Z]+(\d+)", updated_range or "")
    return int(match.group(1)) if match else None


def rows_to_dicts(values: list[list]) -> list[dict]:
    """Turn a values grid whose first row is the header into dicts.

    Short rows are padded with empty strings; blank rows are dropped.
    """
    if not values:
        return []
    header = [str(h).strip() for h in values[0]]
    rows: list[dict] = []
    for raw in values[1:]:
        if not any(str(cell).strip() for cell in raw):
            continue
        padded = list(raw) + [""] * (len(header) - len(raw))
        rows.append({h: padded[i] for i, h in enumerate(header) if h})
    return rows


class RosterSheet:
    """One tab of the roster spreadsheet, used as the membership database."""

    def __init__(self, service, spreadsheet_id: str, sheet_index: int | None = None) -> None:
        self.service = service
        self.spreadsheet_id = spreadsheet_id
        self.sheet_index = config.ROSTER_SHEET_INDEX if sheet_index is None else sheet_index
        self._title: str | None = None

    @classmethod
    def from_credentials(
        cls, creds, spreadsheet_id: str, sheet_index: int | None = None,
    ) -> RosterSheet:
        service = build("sheets", "v4", credentials=creds, cache_discovery=False)
        return cls(service, spreadsheet_id, sheet_index)

    @property
    def title(self) -> str:
        """Title of the roster tab, looked up once by index."""
        if self._title is None:
            meta = execute(
                self.service.spreadsheets().get(
                    spreadsheetId=self.spreadsheet_id,
                    fields="sheets.properties(index,title)",
                )
            )
            sheets = sorted(
                (s["properties"] for s in meta.get("sheets", [])),
                key=lambda p: p.get("index", 0),
            )
            if self.sheet_index >= len(sheets):
                raise LookupError(
                    f"Spreadsheet {self.spreadsheet_id} has no tab at index {self.sheet_index}"
                )
            self._title = sheets[self.sheet_index]["title"]
        return self._title

    def _get_values(self, cell_range: str) -> list[list]:
        result = execute(
            self.service.spreadsheets().values().get(
                spreadsheetId=self.spreadsheet_id,
                range=cell_range,
                valueRenderOption="UNFORMATTED_VALUE",
            )
        )
        return result.get("values", [])

    def header(self) -> list[str]:
        values = self._get_values(f"{_quote_title(self.title)}!1:1")
        return [str(h).strip() for h in values[0]] if values else []

    def read_rows(self) -> list[dict]:
        """Return every data row as a dict keyed by the header row."""
        rows = rows_to_dicts(self._get_values(_quote_title(self.title)))
        log.info("Read %d roster rows from %s", len(rows), self.title)
        return rows

    def append_row(self, row: dict) -> int | None:
        """Append *row* below the existing data, in header order.

        Returns the sheet row number written, when the API reports it.
        Raises MissingColumnError before writing anything if *row* has a
        field that is not a header column.
        """
        header = self.header()
        missing = [key for key in row if key not in header]
        if missing:
            raise MissingColumnError(missing)

        result = execute(
            self.service.spreadsheets().values().append(
                spreadsheetId=self.spreadsheet_id,
                range=_quote_title(self.title),
                valueInputOption="RAW",
                insertDataOption="INSERT_ROWS",
                body={"values": [[row.get(h, "") for h in header]]},
            )
        )
        row_number = _row_number(result.get("updates", {}).get("updatedRange", ""))
        log.info("Appended roster row %s for %s", row_number, row.get("email", "?"))
        return row_number

    def update_field(self, row_number: int, column: str, value) -> None:
        """Overwrite one cell of an existing row, addressed by header name."""
        header = self.header()
        if column not in header:
            raise MissingColumnError([column])
        cell = f"{_quote_title(self.title)}!{_column_letter(header.index(column))}{row_number}"
        execute(
            self.service.spreadsheets().values().update(
                spreadsheetId=self.spreadsheet_id,
                range=cell,
                valueInputOption="RAW",
                body={"values": [[value]]},
            )
        )
        log.info("Set %s of roster row %d", column, row_number)
