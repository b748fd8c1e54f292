"""Best-effort new-lead notifications. Nothing here raises to the caller."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Protocol, Sequence

from leadsheets.config import Settings
from leadsheets.schemas import LeadIn, NotificationResult
from leadsheets.services.email import GmailNotifier
from leadsheets.services.google_auth import CredentialProvider
from leadsheets.services.slack import SlackNotifier

log = logging.getLogger(__name__)


class NotifierProtocol(Protocol):
    channel: str

    def send(self, lead: LeadIn, spreadsheet_id: str) -> NotificationResult:  # pragma: no cover - runtime protocol
        """Deliver one notification about `lead`."""


class NotificationDispatcher:
    """Runs every notifier concurrently and waits for all of them to settle."""

    def __init__(self, notifiers: Sequence[NotifierProtocol]):
        self._notifiers = list(notifiers)

    @classmethod
    def from_settings(cls, settings: Settings, provider: CredentialProvider) -> "NotificationDispatcher":
        return cls([
            GmailNotifier(provider, settings.notification_email,
                          app_name=settings.app_name, dry_run=settings.email_dry_run),
            SlackNotifier(settings.slack_webhook_url,
                          app_name=settings.app_name, timeout=settings.slack_timeout),
        ])

    def notify(self, lead: LeadIn, spreadsheet_id: str) -> List[NotificationResult]:
        if not self._notifiers:
            return []
        with ThreadPoolExecutor(max_workers=len(self._notifiers), thread_name_prefix="notify") as executor:
            futures = [executor.submit(self._attempt, n, lead, spreadsheet_id) for n in self._notifiers]
            results = [future.result() for future in futures]

        log.info(
            "Notifications for %s settled: %s",
            lead.email,
            ", ".join(f"{r.channel}={r.method}{'' if r.success else ' (failed)'}" for r in results),
        )
        return results

    def _attempt(self, notifier: NotifierProtocol, lead: LeadIn, spreadsheet_id: str) -> NotificationResult:
        channel = getattr(notifier, "channel", notifier.__class__.__name__)
        try:
            return notifier.send(lead, spreadsheet_id)
        except Exception as exc:
            log.exception("[console-only] %s notifier raised for %s", channel, lead.email)
            return NotificationResult(channel=channel, success=False, method="console-only", error=str(exc))
