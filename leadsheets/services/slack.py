from __future__ import annotations

import logging
from typing import Optional

import requests

from leadsheets.schemas import LeadIn, NotificationResult
from leadsheets.services.sheets_client import spreadsheet_url

log = logging.getLogger(__name__)


def build_slack_message(lead: LeadIn, spreadsheet_id: str, app_name: str) -> dict:
    """Block Kit payload: header, lead fields, message, sheet button, footer."""
    return {
        "text": f"New Lead Submission: {lead.name}",
        "blocks": [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": "New Lead Submission", "emoji": True},
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Name:*\n{lead.name}"},
                    {"type": "mrkdwn", "text": f"*Email:*\n{lead.email}"},
                    {"type": "mrkdwn", "text": f"*Phone:*\n{lead.phone or 'Not provided'}"},
                ],
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*Message:*\n{lead.message}"},
            },
            {
                "type": "actions",
                "elements": [
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "View in Google Sheets", "emoji": True},
                        "url": spreadsheet_url(spreadsheet_id),
                        "style": "primary",
                    }
                ],
            },
            {
                "type": "context",
                "elements": [{"type": "mrkdwn", "text": f"Sent from {app_name} Lead Capture System"}],
            },
        ],
    }


class SlackNotifier:
    channel = "chat"

    def __init__(self, webhook_url: Optional[str], *, app_name: str, timeout: float = 5.0,
                 session: Optional[requests.Session] = None):
        self.webhook_url = (webhook_url or "").strip() or None
        self._app_name = app_name
        self._timeout = timeout
        self._session = session or requests.Session()

    def send(self, lead: LeadIn, spreadsheet_id: str) -> NotificationResult:
        if not self.webhook_url:
            log.info("Slack notification (webhook URL not configured): new lead from %s (%s): %s",
                     lead.name, lead.email, lead.message)
            return NotificationResult(channel=self.channel, success=True, method="console-only")

        payload = build_slack_message(lead, spreadsheet_id, self._app_name)
        try:
            resp = self._session.post(self.webhook_url, json=payload, timeout=self._timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            log.warning("[webhook] Failed to send Slack notification: %s", e)
            return NotificationResult(channel=self.channel, success=False, method="webhook", error=str(e))

        log.info("[webhook] Slack notification sent")
        return NotificationResult(channel=self.channel, success=True, method="webhook")
