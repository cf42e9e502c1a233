from typing import Any

from pydantic import BaseModel


class SettingsSubmission(BaseModel):
    settings: dict[str, Any] = {}
    pull_now: bool = False


class ValidationFailureOut(BaseModel):
    field: str
    code: str
    message: str


class SettingsResponse(BaseModel):
    settings: dict[str, Any]
    credentials: str
    failures: list[ValidationFailureOut] = []
    rescheduled: bool = False
    pulled: bool = False
