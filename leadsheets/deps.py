# leadsheets/deps.py
from fastapi import Request

from leadsheets.config import Settings
from leadsheets.services.submission import SubmissionService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_submission_service(request: Request) -> SubmissionService:
    return request.app.state.submission_service
