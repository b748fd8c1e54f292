from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Optional

from leadsheets.config import Settings
from leadsheets.schemas import LeadIn, LeadOut, is_spam, parse_lead
from leadsheets.services.env_store import persist_spreadsheet_id
from leadsheets.services.google_auth import CredentialProvider
from leadsheets.services.leads import AppendResult, LeadAppender
from leadsheets.services.notifications import NotificationDispatcher
from leadsheets.services.provisioning import SpreadsheetProvisioner
from leadsheets.services.sheets_client import GoogleSheetsBackend

log = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Lead submitted successfully"

# Schedules fn(*args) to run after the response, e.g. BackgroundTasks.add_task
Scheduler = Callable[..., Any]


@dataclass(frozen=True)
class SubmissionOutcome:
    spam: bool
    lead: Optional[LeadIn] = None
    result: Optional[AppendResult] = None

    def response(self) -> LeadOut:
        # Spam gets the same shape as a real success so bots can't tell.
        row_number = self.result.row_number if self.result else None
        return LeadOut(success=True, message=SUCCESS_MESSAGE, row_number=row_number)


class SubmissionService:
    """
    Received -> (spam) -> success-shaped response, nothing written
    Received -> validated -> appended -> notifications scheduled -> response

    ValidationError, AuthError, ProvisionError and AppendError propagate to
    the HTTP layer; notifications are only scheduled after a successful append.
    """

    def __init__(self, appender: LeadAppender, dispatcher: NotificationDispatcher):
        self.appender = appender
        self.dispatcher = dispatcher

    @classmethod
    def from_settings(cls, settings: Settings) -> "SubmissionService":
        provider = CredentialProvider(settings)
        backend = GoogleSheetsBackend(provider)
        provisioner = SpreadsheetProvisioner.from_settings(
            settings, backend, provider, persist=partial(persist_spreadsheet_id, settings.env_file)
        )
        appender = LeadAppender(provisioner, backend, tz=settings.tz)
        return cls(appender, NotificationDispatcher.from_settings(settings, provider))

    def submit(self, payload: Any, schedule: Scheduler) -> SubmissionOutcome:
        if is_spam(payload):
            log.info("[honeypot] Dropped submission (hidden field filled)")
            return SubmissionOutcome(spam=True)

        lead = parse_lead(payload)
        result = self.appender.append(lead)

        schedule(self.dispatcher.notify, lead, result.spreadsheet_id)
        return SubmissionOutcome(spam=False, lead=lead, result=result)
