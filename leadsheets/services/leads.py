from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from leadsheets.errors import AppendError
from leadsheets.schemas import LeadIn
from leadsheets.services.provisioning import ROWS_RANGE, SpreadsheetProvisioner
from leadsheets.services.sheets_client import SheetsBackend

log = logging.getLogger(__name__)

_RANGE_ROW_RE = re.compile(r"![A-Z]+(\d+)")


def _tz(name: str):
    """Return ZoneInfo(name) or UTC if missing (Windows without tzdata, etc.)."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def format_timestamp(dt: datetime) -> str:
    """'January 15, 2025 at 3:45 PM'"""
    hour = dt.hour % 12 or 12
    return f"{dt:%B} {dt.day}, {dt.year} at {hour}:{dt:%M} {dt:%p}"


def build_row(lead: LeadIn, when: datetime) -> list:
    return [format_timestamp(when), lead.name, lead.email, lead.phone or "", lead.message]


def first_row_of(updated_range: Optional[str]) -> Optional[int]:
    """'Leads!A7:E7' -> 7"""
    m = _RANGE_ROW_RE.search(updated_range or "")
    return int(m.group(1)) if m else None


@dataclass(frozen=True)
class AppendResult:
    spreadsheet_id: str
    # Count of rows the append reported as written (normally 1). Not a row locator.
    row_number: int
    # Sheet row the append landed on, when the backend reported its range.
    row_index: Optional[int] = None


class LeadAppender:
    def __init__(
        self,
        provisioner: SpreadsheetProvisioner,
        backend: SheetsBackend,
        *,
        tz: str = "America/New_York",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._provisioner = provisioner
        self._backend = backend
        self._tz = _tz(tz)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def append(self, lead: LeadIn) -> AppendResult:
        handle = self._provisioner.resolve()
        row = build_row(lead, self._clock().astimezone(self._tz))

        try:
            resp = self._backend.append_values(handle.id, ROWS_RANGE, [row])
        except Exception as e:
            log.error("Append to spreadsheet %s failed: %s", handle.id, e)
            raise AppendError(f"Failed to append lead to sheet: {e}", cause=e) from e

        updates = (resp or {}).get("updates") or {}
        result = AppendResult(
            spreadsheet_id=handle.id,
            row_number=int(updates.get("updatedRows") or 0),
            row_index=first_row_of(updates.get("updatedRange")),
        )
        log.info("Lead appended (rows=%s, row=%s) to spreadsheet %s",
                 result.row_number, result.row_index, handle.id)
        return result
