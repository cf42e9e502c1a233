from fastapi import APIRouter, Depends, HTTPException

from syndication.api.dependencies import get_settings_service, get_sitegroup_service
from syndication.api.schemas.sitegroups import SelectionResponse, SelectionSubmission
from syndication.services.settings_service import SettingsService
from syndication.services.sitegroup_service import SitegroupSelection, SitegroupService

router = APIRouter()

PULL_OWNER = "pull"


def _serialize(owner_id: str, selection: SitegroupSelection) -> SelectionResponse:
    return SelectionResponse(
        owner_id=owner_id,
        sitegroups=selection.as_list(),
        stale=sorted(selection.stale),
    )


@router.get("/pull", response_model=SelectionResponse)
async def get_pull_selection(
    settings_service: SettingsService = Depends(get_settings_service),
    service: SitegroupService = Depends(get_sitegroup_service),
):
    """Sitegroups selected for the periodic pull, with stale entries flagged."""
    document = await settings_service.load()
    selection = SitegroupSelection.from_raw(document.pull_sitegroups)
    return _serialize(PULL_OWNER, await service.flag_stale(selection))


@router.get("/{owner_id}", response_model=SelectionResponse)
async def get_selection(owner_id: str, service: SitegroupService = Depends(get_sitegroup_service)):
    return _serialize(owner_id, await service.describe(owner_id))


@router.put("/{owner_id}", response_model=SelectionResponse)
async def set_selection(
    owner_id: str,
    body: SelectionSubmission,
    service: SitegroupService = Depends(get_sitegroup_service),
):
    if owner_id == PULL_OWNER:
        raise HTTPException(
            status_code=400, detail="Pull sitegroups are part of the settings document"
        )
    await service.set_selection(owner_id, body.sitegroups)
    return _serialize(owner_id, await service.describe(owner_id))
