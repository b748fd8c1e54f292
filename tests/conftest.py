"""Shared fakes: an in-memory Sheets/Drive backend, a token provider and notifiers."""
from __future__ import annotations

import threading
import time
from typing import Dict, List, Optional

import pytest

from leadsheets.config import Settings
from leadsheets.errors import AuthError
from leadsheets.schemas import LeadIn, NotificationResult
from leadsheets.services.leads import LeadAppender
from leadsheets.services.notifications import NotificationDispatcher
from leadsheets.services.provisioning import SpreadsheetProvisioner
from leadsheets.services.submission import SubmissionService


class FakeSheetsBackend:
    """Keeps spreadsheets as lists of rows; row 1 is index 0."""

    def __init__(self, fail: Optional[Dict[str, str]] = None, create_delay: float = 0.0) -> None:
        self.sheets: Dict[str, dict] = {}
        self.calls: List[str] = []
        self.fail = dict(fail or {})
        self.create_delay = create_delay
        self._seq = 0
        self._lock = threading.Lock()

    def _enter(self, op: str) -> None:
        with self._lock:
            self.calls.append(op)
        if op in self.fail:
            raise RuntimeError(self.fail[op])

    def count(self, op: str) -> int:
        return self.calls.count(op)

    def add_existing(self, title: str) -> str:
        with self._lock:
            self._seq += 1
            sid = f"existing-{self._seq}"
        self.sheets[sid] = {"title": title, "rows": []}
        return sid

    def rows(self, sid: str) -> List[list]:
        return self.sheets[sid]["rows"]

    # --- SheetsBackend
    def get_spreadsheet(self, spreadsheet_id: str) -> dict:
        self._enter("get")
        if spreadsheet_id not in self.sheets:
            raise RuntimeError("Requested entity was not found.")
        return {"spreadsheetId": spreadsheet_id, "properties": {"title": self.sheets[spreadsheet_id]["title"]}}

    def create_spreadsheet(self, title: str, sheet_title: str) -> str:
        self._enter("create")
        if self.create_delay:
            time.sleep(self.create_delay)
        with self._lock:
            self._seq += 1
            sid = f"created-{self._seq}"
        self.sheets[sid] = {"title": title, "sheet": sheet_title, "rows": []}
        return sid

    def update_values(self, spreadsheet_id: str, range_: str, values: List[list]) -> dict:
        self._enter("update")
        rows = self.rows(spreadsheet_id)
        if rows:
            rows[0] = list(values[0])
        else:
            rows.append(list(values[0]))
        return {"updatedRange": range_, "updatedRows": 1}

    def append_values(self, spreadsheet_id: str, range_: str, values: List[list]) -> dict:
        self._enter("append")
        rows = self.rows(spreadsheet_id)
        start = len(rows) + 1
        rows.extend(list(v) for v in values)
        end = len(rows)
        return {
            "spreadsheetId": spreadsheet_id,
            "updates": {"updatedRange": f"Leads!A{start}:E{end}", "updatedRows": len(values)},
        }

    def find_files(self, title: str) -> List[dict]:
        self._enter("find")
        # newest first
        return [
            {"id": sid, "name": s["title"]}
            for sid, s in reversed(list(self.sheets.items()))
            if s["title"] == title
        ][:1]


class FakeProvider:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.calls = 0
        self.timeout = 10.0

    def get_access_token(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return "test-token"


class RecordingNotifier:
    def __init__(self, channel: str, *, method: str = "webhook", delay: float = 0.0,
                 error: Optional[Exception] = None) -> None:
        self.channel = channel
        self.method = method
        self.delay = delay
        self.error = error
        self.sent: List[tuple] = []
        self.threads: List[str] = []

    def send(self, lead: LeadIn, spreadsheet_id: str) -> NotificationResult:
        self.threads.append(threading.current_thread().name)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.sent.append((lead, spreadsheet_id))
        return NotificationResult(channel=self.channel, success=True, method=self.method)


TITLE = "SmartSheetConnect - Acme Co - Website Form Leads"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="development",
        app_name="SmartSheetConnect",
        organization_name="Acme Co",
        google_client_id="client-id",
        google_client_secret="client-secret",
        google_refresh_token="refresh-token",
        persist_spreadsheet_id=False,
        env_file=tmp_path / ".env",
        log_dir=tmp_path / "logs",
        allowed_origins=["*"],
    )


@pytest.fixture
def backend() -> FakeSheetsBackend:
    return FakeSheetsBackend()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def provisioner(backend, provider) -> SpreadsheetProvisioner:
    return SpreadsheetProvisioner(backend, provider, title=TITLE)


@pytest.fixture
def appender(provisioner, backend) -> LeadAppender:
    return LeadAppender(provisioner, backend, tz="UTC")


@pytest.fixture
def email_notifier() -> RecordingNotifier:
    return RecordingNotifier("email", method="gmail")


@pytest.fixture
def chat_notifier() -> RecordingNotifier:
    return RecordingNotifier("chat", method="webhook")


@pytest.fixture
def service(appender, email_notifier, chat_notifier) -> SubmissionService:
    return SubmissionService(appender, NotificationDispatcher([email_notifier, chat_notifier]))


@pytest.fixture
def auth_error() -> AuthError:
    return AuthError("Failed to refresh Google OAuth2 access token: invalid_grant")
