from fastapi import APIRouter, Depends

from syndication.api.dependencies import get_site_service
from syndication.api.schemas.sites import SiteRenderResponse, SiteSaveResponse, SiteSubmission
from syndication.services.site_service import SiteService

router = APIRouter()


@router.get("/{site_id}", response_model=SiteRenderResponse)
async def render_site(site_id: str, service: SiteService = Depends(get_site_service)):
    """Render the site's transport options, or report why there are none."""
    result = await service.render(site_id)
    return SiteRenderResponse(
        site_id=result.site_id,
        state=result.state.value,
        transport_type=result.transport_type,
        output=result.output,
        error=result.error,
    )


@router.put("/{site_id}", response_model=SiteSaveResponse)
async def save_site(
    site_id: str,
    body: SiteSubmission,
    service: SiteService = Depends(get_site_service),
):
    """Save the site's transport type and enabled flag, then run the provider's save and test."""
    result = await service.save(site_id, body.transport_type, body.enabled)
    return SiteSaveResponse(
        site_id=result.site_id,
        state=result.state.value,
        transport_type=result.transport_type,
        enabled=result.enabled,
        ok=result.ok,
        save_error=result.save_error,
        test_error=result.test_error,
        test_result=result.test_result,
    )
