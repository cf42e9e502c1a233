from typing import Any

from pydantic import BaseModel


class SiteSubmission(BaseModel):
    transport_type: str = ""
    enabled: bool | str = False


class SiteRenderResponse(BaseModel):
    site_id: str
    state: str
    transport_type: str | None
    output: Any = None
    error: str | None = None


class SiteSaveResponse(BaseModel):
    site_id: str
    state: str
    transport_type: str | None
    enabled: bool
    ok: bool
    save_error: str | None = None
    test_error: str | None = None
    test_result: Any = None


class TransportOut(BaseModel):
    type_id: str
    label: str
