from __future__ import annotations

import logging
import threading
from typing import List

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build

from leadsheets.config import Settings
from leadsheets.errors import AuthError, CredentialsNotConfigured

log = logging.getLogger(__name__)

# Sheets read/write, Drive title search, Gmail send-as-me
GOOGLE_SCOPES: List[str] = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive.metadata.readonly",
    "https://www.googleapis.com/auth/gmail.send",
]


class _TimeoutRequest(Request):
    """google-auth transport that applies one timeout to every token call."""

    def __init__(self, timeout: float):
        super().__init__()
        self._timeout = timeout

    def __call__(self, url, method="GET", body=None, headers=None, timeout=None, **kwargs):
        return super().__call__(
            url, method=method, body=body, headers=headers, timeout=timeout or self._timeout, **kwargs
        )


class CredentialProvider:
    """
    Exchanges the long-lived refresh token for short-lived access tokens.

    The access token is cached in memory together with its expiry and only
    refreshed when google-auth reports it invalid. One attempt per call;
    a failed exchange surfaces immediately as AuthError.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._lock = threading.Lock()
        self._creds: Credentials | None = None
        self.timeout = settings.google_http_timeout

    def _build_credentials(self) -> Credentials:
        missing = self._settings.missing_google_credentials()
        if missing:
            raise CredentialsNotConfigured(missing)
        return Credentials(
            token=None,
            refresh_token=self._settings.google_refresh_token,
            client_id=self._settings.google_client_id,
            client_secret=self._settings.google_client_secret,
            token_uri=self._settings.google_token_uri,
            scopes=GOOGLE_SCOPES,
        )

    def get_access_token(self) -> str:
        with self._lock:
            if self._creds is None:
                self._creds = self._build_credentials()
            creds = self._creds
            if creds.valid:
                return creds.token

            try:
                creds.refresh(_TimeoutRequest(self.timeout))
            except GoogleAuthError as e:
                raise AuthError(
                    f"Failed to refresh Google OAuth2 access token: {e}. "
                    "Verify GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and GOOGLE_REFRESH_TOKEN.",
                    cause=e,
                ) from e

            if not creds.token:
                raise AuthError("Failed to obtain access token from refresh token")
            log.debug("Google access token refreshed (expires %s)", creds.expiry)
            return creds.token

    def build_service(self, api: str, version: str):
        """Authorized googleapiclient resource for `api`/`version` with a bounded socket timeout."""
        token = self.get_access_token()
        http = AuthorizedHttp(Credentials(token=token), http=httplib2.Http(timeout=self.timeout))
        return build(api, version, http=http, cache_discovery=False)


# --- OAuth bootstrap (obtaining the refresh token once)
def build_flow(settings: Settings) -> Flow:
    cid = settings.google_client_id
    csec = settings.google_client_secret
    redirect = settings.google_redirect_uri
    if not (cid and csec and redirect):
        raise RuntimeError("Missing GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET/GOOGLE_OAUTH_REDIRECT_URI")
    cfg = {"web": {
        "client_id": cid,
        "client_secret": csec,
        "auth_uri": "https://accounts.google.com/o/oauth2/auth",
        "token_uri": settings.google_token_uri,
    }}
    return Flow.from_client_config(cfg, scopes=GOOGLE_SCOPES, redirect_uri=redirect)
