# leadsheets/services/email.py
from __future__ import annotations

import base64
import logging
from email.message import EmailMessage
from typing import Iterable

from googleapiclient.errors import HttpError

from leadsheets.errors import CredentialsNotConfigured, NotificationFailure
from leadsheets.schemas import LeadIn, NotificationResult
from leadsheets.services.google_auth import CredentialProvider
from leadsheets.services.sheets_client import spreadsheet_url

log = logging.getLogger(__name__)

# ---- internal helpers --------------------------------------------------------


def _dedup_preserve(emails: list[str]) -> list[str]:
    seen = set()
    out = []
    for e in emails:
        e2 = (e or "").strip().lower()
        if not e2 or e2 in seen:
            continue
        seen.add(e2)
        out.append(e.strip())
    return out


def _as_list(v: str | Iterable[str] | None) -> list[str]:
    """'a@x.com, b@y.com' or ['a@x.com'] -> ['a@x.com', ...]"""
    if not v:
        return []
    if isinstance(v, str):
        return [p for p in v.split(",") if p.strip()]
    return [x for x in v if x]


def _describe(e: Exception) -> str:
    if isinstance(e, HttpError):
        return f"Gmail API HTTP {e.resp.status}: {e.reason}"
    return str(e) or e.__class__.__name__


def lead_subject(lead: LeadIn) -> str:
    return f"New Lead Submission: {lead.name}"


def lead_text(lead: LeadIn, spreadsheet_id: str, app_name: str) -> str:
    lines = [
        "New Lead Details:",
        "-----------------",
        f"Name: {lead.name}",
        f"Email: {lead.email}",
        f"Phone: {lead.phone or 'Not provided'}",
        f"Message: {lead.message}",
        "",
        f"View in Google Sheets: {spreadsheet_url(spreadsheet_id)}",
        "",
        "---",
        f"Sent from {app_name} Lead Capture System",
    ]
    return "\n".join(lines)


def build_raw_message(to: list[str], subject: str, text: str, reply_to: str | None = None) -> str:
    """RFC 2822 message, base64url encoded without padding, as Gmail's `raw` field expects."""
    msg = EmailMessage()
    msg["To"] = ", ".join(to)
    msg["Subject"] = subject
    if reply_to:
        msg["Reply-To"] = reply_to
    msg.set_content(text or "")
    return base64.urlsafe_b64encode(msg.as_bytes()).decode("ascii").rstrip("=")


# ---- public API --------------------------------------------------------------


class GmailNotifier:
    """
    Sends the new-lead email as the authorized Google user.

    The message is always logged first; any failure (credentials missing,
    token refresh rejected, API error) leaves it logged only and is
    reported as method 'console-only'.
    """

    channel = "email"

    def __init__(self, provider: CredentialProvider, recipients: str | Iterable[str], *,
                 app_name: str, dry_run: bool = False):
        self._provider = provider
        self.recipients = _dedup_preserve(_as_list(recipients))
        self._app_name = app_name
        self._dry_run = dry_run

    def send(self, lead: LeadIn, spreadsheet_id: str) -> NotificationResult:
        subject = lead_subject(lead)
        text = lead_text(lead, spreadsheet_id, self._app_name)
        log.info("Email notification → to=%s subject=%s\n%s", self.recipients, subject, text)

        if not self.recipients:
            log.error("Email notification has no recipients; set NOTIFICATION_EMAIL")
            return NotificationResult(channel=self.channel, success=True, method="console-only",
                                      error="no recipients")

        if self._dry_run:
            log.info("[EMAIL DRY RUN] to=%s subject=%s", self.recipients, subject)
            return NotificationResult(channel=self.channel, success=True, method="console-only")

        try:
            raw = build_raw_message(self.recipients, subject, text, reply_to=lead.email)
            gmail = self._provider.build_service("gmail", "v1")
            resp = gmail.users().messages().send(userId="me", body={"raw": raw}).execute()
            if not isinstance(resp, dict) or not resp.get("id"):
                raise NotificationFailure(f"Unexpected Gmail send response: {resp!r}")
        except CredentialsNotConfigured as e:
            log.warning("[gmail] config missing (%s); email logged to console only", ", ".join(e.missing))
            return NotificationResult(channel=self.channel, success=True, method="console-only", error=e.message)
        except Exception as e:
            log.warning("[gmail] Could not send email to %s: %s; logged to console only",
                        self.recipients, _describe(e))
            return NotificationResult(channel=self.channel, success=True, method="console-only",
                                      error=_describe(e))

        log.info("[gmail] Email sent (id=%s) → %s", resp["id"], self.recipients)
        return NotificationResult(channel=self.channel, success=True, method="gmail")
