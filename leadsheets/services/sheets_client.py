from __future__ import annotations

from typing import List, Protocol

from leadsheets.services.google_auth import CredentialProvider

SPREADSHEET_MIME = "application/vnd.google-apps.spreadsheet"


def spreadsheet_url(spreadsheet_id: str) -> str:
    return f"https://docs.google.com/spreadsheets/d/{spreadsheet_id}"


def drive_title_query(title: str) -> str:
    escaped = title.replace("\\", "\\\\").replace("'", "\\'")
    return f"name='{escaped}' and mimeType='{SPREADSHEET_MIME}' and trashed=false"


class SheetsBackend(Protocol):
    """The five spreadsheet operations the provisioning/append path needs."""

    def get_spreadsheet(self, spreadsheet_id: str) -> dict: ...

    def create_spreadsheet(self, title: str, sheet_title: str) -> str: ...

    def update_values(self, spreadsheet_id: str, range_: str, values: List[list]) -> dict: ...

    def append_values(self, spreadsheet_id: str, range_: str, values: List[list]) -> dict: ...

    def find_files(self, title: str) -> List[dict]: ...


class GoogleSheetsBackend:
    """
    SheetsBackend over Sheets v4 and Drive v3.

    Services are rebuilt per call from a fresh access token; the provider
    only hits the token endpoint when its cached token has expired.
    """

    def __init__(self, provider: CredentialProvider):
        self._provider = provider

    def _sheets(self):
        return self._provider.build_service("sheets", "v4")

    def _drive(self):
        return self._provider.build_service("drive", "v3")

    def get_spreadsheet(self, spreadsheet_id: str) -> dict:
        return self._sheets().spreadsheets().get(
            spreadsheetId=spreadsheet_id,
            fields="spreadsheetId,properties.title",
        ).execute()

    def create_spreadsheet(self, title: str, sheet_title: str) -> str:
        body = {
            "properties": {"title": title},
            "sheets": [{"properties": {"title": sheet_title}}],
        }
        resp = self._sheets().spreadsheets().create(body=body, fields="spreadsheetId").execute()
        return resp["spreadsheetId"]

    def update_values(self, spreadsheet_id: str, range_: str, values: List[list]) -> dict:
        return self._sheets().spreadsheets().values().update(
            spreadsheetId=spreadsheet_id,
            range=range_,
            valueInputOption="RAW",
            body={"values": values},
        ).execute()

    def append_values(self, spreadsheet_id: str, range_: str, values: List[list]) -> dict:
        return self._sheets().spreadsheets().values().append(
            spreadsheetId=spreadsheet_id,
            range=range_,
            valueInputOption="RAW",
            insertDataOption="INSERT_ROWS",
            body={"values": values},
        ).execute()

    def find_files(self, title: str) -> List[dict]:
        resp = self._drive().files().list(
            q=drive_title_query(title),
            fields="files(id, name)",
            orderBy="modifiedTime desc",
            pageSize=1,
            spaces="drive",
        ).execute()
        return resp.get("files", [])
