"""Record of Case Activity (ROCA) tables."""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Mapping, Optional

from playwright.async_api import Locator, Page

from ccdcs_e2e.adapters import RocaTable
from ccdcs_e2e.models import RocaEntry
from ccdcs_e2e.polling import poll_until

logger = logging.getLogger(__name__)

_LAST_WORD = re.compile(r"\b(\w+)\s*$")
_NUMBER = re.compile(r"[0-9]+")

# Raw cell text for every row after the header, read in one round trip
_READ_ROWS = """
rows => rows.slice(1).map(row => {
  const cell = n => row.querySelector(`td:nth-child(${n})`);
  const detail = n => {
    const td = cell(3);
    const div = td ? td.querySelector(`div:nth-child(${n})`) : null;
    return div ? div.innerText : "";
  };
  return {
    hasIndex: Array.from(row.querySelectorAll("div")).some(d => d.innerText.includes("Index:")),
    fullName: cell(1) ? cell(1).innerText : "",
    action: cell(2) ? cell(2).innerText : "",
    section: detail(1),
    index: detail(2),
    name: detail(3),
    defendants: cell(5) ? cell(5).innerText : "",
  };
})
"""


def username_from_full_name(full_name: str) -> str:
    """ROCA shows ``"Mr Andrew Trainer01"``; entries are keyed by the last word."""
    match = _LAST_WORD.search(full_name)
    return match.group(1) if match else full_name.strip()


def parse_roca_cells(cells: Mapping[str, object]) -> Optional[RocaEntry]:
    """Build an entry from one row's raw cell text.

    Rows without an ``Index:`` detail (section headers, case events) and rows
    whose index is not a plain number (pagination, unnumbered events) yield
    None.
    """
    if not cells.get("hasIndex"):
        return None

    number = str(cells.get("index", "")).replace("Index:", "").strip()
    if not _NUMBER.fullmatch(number):
        return None

    return RocaEntry(
        section_index=str(cells.get("section", "")).replace("Section:", "").strip(),
        document_number=number,
        document_name=str(cells.get("name", "")).replace("Name:", "").strip(),
        action=str(cells.get("action", "")),
        username=username_from_full_name(str(cells.get("fullName", ""))),
        defendants=str(cells.get("defendants", "")),
    )


class RocaPage:
    """ROCA page of an open case; satisfies ``RocaSource``."""

    TABLE_TIMEOUT = 30.0

    def __init__(self, page: Page) -> None:
        self.page = page
        self.tables: Dict[RocaTable, Locator] = {
            RocaTable.UNRESTRICTED: page.locator("#rodaDiv table").nth(0),
            RocaTable.RESTRICTED: page.locator("#rodaDiv table").nth(1),
        }

    async def wait_for_table(self, table: RocaTable) -> Locator:
        locator = self.tables[table]
        await poll_until(
            locator.is_visible,
            timeout=self.TABLE_TIMEOUT,
            description=f"{table.value} ROCA table",
        )
        return locator

    async def read_roca(self, table: RocaTable) -> List[RocaEntry]:
        locator = await self.wait_for_table(table)
        raw_rows = await locator.locator("tbody tr").evaluate_all(_READ_ROWS)
        entries = [entry for entry in (parse_roca_cells(cells) for cells in raw_rows) if entry is not None]
        logger.debug(f"Read {len(entries)} entries from the {table.value} ROCA table")
        return entries
