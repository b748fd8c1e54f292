"""
Locate-or-create the single destination spreadsheet for an organization.

Resolution order, first hit wins:

1. handle already cached in this process
2. explicit SPREADSHEET_ID override, if it still opens
3. Drive search by the deterministic title
4. create a new spreadsheet and write the header row

Only step 4 may fail the caller. Steps 2-4 run under a lock so concurrent
first requests wait for one creation instead of racing into duplicates.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Tuple, Union

from leadsheets.config import Settings
from leadsheets.errors import ProvisionError
from leadsheets.services.google_auth import CredentialProvider
from leadsheets.services.sheets_client import SheetsBackend, spreadsheet_url

log = logging.getLogger(__name__)

SHEET_TITLE = "Leads"
HEADER_ROW = ["Timestamp", "Name", "Email", "Phone", "Message"]
HEADER_RANGE = f"{SHEET_TITLE}!A1:E1"
ROWS_RANGE = f"{SHEET_TITLE}!A:E"


# --- lookup outcomes
@dataclass(frozen=True)
class Found:
    spreadsheet_id: str
    title: Optional[str] = None


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class LookupFailed:
    cause: BaseException


Resolution = Union[Found, NotFound, LookupFailed]
LookupStep = Tuple[str, Callable[[], Resolution]]


def first_found(steps: Iterable[LookupStep]) -> Optional[Tuple[str, Found]]:
    """Run lookup steps in order and stop at the first Found. NotFound and LookupFailed both fall through."""
    for source, step in steps:
        outcome = step()
        if isinstance(outcome, Found):
            return source, outcome
    return None


@dataclass(frozen=True)
class SpreadsheetHandle:
    id: str
    title: str
    source: str  # override | search | created

    @property
    def url(self) -> str:
        return spreadsheet_url(self.id)


class SpreadsheetLocator:
    def __init__(self, backend: SheetsBackend):
        self._backend = backend

    def find_by_title(self, title: str) -> Resolution:
        """
        Most recently modified, non-trashed spreadsheet with exactly `title`.
        Never raises: a failed search is reported as LookupFailed so that
        provisioning can still fall back to creating a new spreadsheet.
        """
        try:
            files = self._backend.find_files(title)
        except Exception as e:
            log.warning("Drive search for %r failed, will create instead: %s", title, e)
            return LookupFailed(e)

        if not files or not files[0].get("id"):
            return NotFound()
        match = files[0]
        log.info("Found existing spreadsheet: %s (%s)", title, spreadsheet_url(match["id"]))
        return Found(match["id"], match.get("name"))


class SpreadsheetProvisioner:
    def __init__(
        self,
        backend: SheetsBackend,
        provider: CredentialProvider,
        *,
        title: str,
        override_id: Optional[str] = None,
        locator: Optional[SpreadsheetLocator] = None,
        persist: Optional[Callable[[str], object]] = None,
    ):
        self._backend = backend
        self._provider = provider
        self._locator = locator or SpreadsheetLocator(backend)
        self._persist = persist
        self.title = title
        self.override_id = override_id
        self._lock = threading.Lock()
        self._handle: Optional[SpreadsheetHandle] = None

    @classmethod
    def from_settings(cls, settings: Settings, backend: SheetsBackend, provider: CredentialProvider,
                      persist: Optional[Callable[[str], object]] = None) -> "SpreadsheetProvisioner":
        return cls(
            backend,
            provider,
            title=settings.spreadsheet_title,
            override_id=settings.spreadsheet_id,
            persist=persist if settings.persist_spreadsheet_id else None,
        )

    def resolve(self) -> SpreadsheetHandle:
        handle = self._handle
        if handle is not None:
            return handle

        with self._lock:
            if self._handle is not None:
                return self._handle

            # Fail fast with AuthError before any lookup can mask it as "not found".
            self._provider.get_access_token()

            hit = first_found(self._lookup_steps())
            if hit is not None:
                source, found = hit
                handle = SpreadsheetHandle(found.spreadsheet_id, found.title or self.title, source)
            else:
                handle = self._create()
            self._handle = handle
            return handle

    def _lookup_steps(self) -> Iterable[LookupStep]:
        if self.override_id:
            yield "override", self._verify_override
        yield "search", lambda: self._locator.find_by_title(self.title)

    def _verify_override(self) -> Resolution:
        try:
            meta = self._backend.get_spreadsheet(self.override_id)
        except Exception as e:
            log.warning("SPREADSHEET_ID %s is invalid or inaccessible, will search or create: %s",
                        self.override_id, e)
            return LookupFailed(e)
        sid = meta.get("spreadsheetId") or self.override_id
        log.info("Using spreadsheet from SPREADSHEET_ID: %s", spreadsheet_url(sid))
        return Found(sid, (meta.get("properties") or {}).get("title"))

    def _create(self) -> SpreadsheetHandle:
        try:
            sid = self._backend.create_spreadsheet(self.title, SHEET_TITLE)
        except Exception as e:
            log.error("Failed to create spreadsheet %r: %s", self.title, e)
            raise ProvisionError(f"Failed to create spreadsheet: {e}", cause=e) from e

        try:
            self._backend.update_values(sid, HEADER_RANGE, [HEADER_ROW])
        except Exception as e:
            # no rollback: the spreadsheet exists without a header row
            log.error("Header write failed, orphaned spreadsheet left behind: %s (%s)", sid, e)
            raise ProvisionError(f"Failed to write header row: {e}", cause=e, orphan_id=sid) from e

        log.info("Created new spreadsheet: %s (%s)", self.title, spreadsheet_url(sid))
        if self._persist is not None:
            try:
                if self._persist(sid):
                    log.info("Saved SPREADSHEET_ID so restarts reuse this spreadsheet")
            except Exception as e:
                log.warning("Could not save SPREADSHEET_ID=%s automatically: %s", sid, e)
        else:
            log.info("Set SPREADSHEET_ID=%s in your environment to reuse this spreadsheet", sid)
        return SpreadsheetHandle(sid, self.title, "created")
