"""Exceptions raised along the submit-lead path."""

from typing import Optional, Sequence


class LeadSheetsError(Exception):
    """Base exception for the lead capture service."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class ValidationError(LeadSheetsError):
    """Client-caused; the submitted payload failed schema validation."""

    def __init__(self, messages: Sequence[str]):
        self.messages = list(messages)
        super().__init__(", ".join(self.messages))


class AuthError(LeadSheetsError):
    """Google credentials are invalid or the token refresh was rejected."""


class CredentialsNotConfigured(AuthError):
    """One or more of GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET / GOOGLE_REFRESH_TOKEN is unset."""

    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        super().__init__(
            "Google Sheets authentication not configured. "
            f"Missing or empty variables: {', '.join(self.missing)}. "
            "Set GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and GOOGLE_REFRESH_TOKEN in your .env file."
        )


class ProvisionError(LeadSheetsError):
    """Creating the destination spreadsheet (or its header row) failed."""

    def __init__(self, message: str, cause: Optional[BaseException] = None, orphan_id: Optional[str] = None):
        self.orphan_id = orphan_id
        super().__init__(message, cause)


class AppendError(LeadSheetsError):
    """Appending a lead row to the spreadsheet failed."""


class NotificationFailure(LeadSheetsError):
    """A notification attempt failed. Captured, never raised to callers."""
