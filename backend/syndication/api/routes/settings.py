"""Settings API: read and submit the syndication settings document.

Client credentials are encrypted at rest. On read they are masked (only the
last 4 chars visible) and never returned in full.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from syndication.api.dependencies import get_settings_service
from syndication.api.schemas.settings import (
    SettingsResponse,
    SettingsSubmission,
    ValidationFailureOut,
)
from syndication.services.settings_service import (
    SECRET_KEYS,
    SettingsDocument,
    SettingsService,
    SettingsUpdate,
    mask_secret,
)

router = APIRouter()


def _serialize(service: SettingsService, document: SettingsDocument) -> dict:
    values = document.to_dict()
    token = values.pop("client_credentials", "")
    credentials = service.credentials(document)
    for key in SECRET_KEYS:
        secret = credentials.get(key, "") if credentials else ""
        values[key] = mask_secret(secret) if secret else ""

    if credentials:
        status = "set"
    elif token:
        status = "unavailable"
    else:
        status = "not_set"
    return {"settings": values, "credentials": status}


@router.get("/", response_model=SettingsResponse)
async def get_settings(service: SettingsService = Depends(get_settings_service)):
    """Return the merged settings document with secrets masked."""
    document = await service.load()
    return SettingsResponse(**_serialize(service, document))


@router.put("/", response_model=SettingsResponse)
async def update_settings(
    body: SettingsSubmission,
    service: SettingsService = Depends(get_settings_service),
):
    """Validate and store a settings submission. Invalid fields fall back to defaults."""
    update: SettingsUpdate = await service.save(body.settings, pull_now=body.pull_now)
    return SettingsResponse(
        **_serialize(service, update.document),
        failures=[
            ValidationFailureOut(field=f.field, code=f.code, message=f.message)
            for f in update.failures
        ],
        rescheduled=update.rescheduled,
        pulled=update.pulled,
    )
