from fastapi import APIRouter, Depends, HTTPException

from syndication.api.dependencies import get_transport_registry
from syndication.api.schemas.sites import TransportOut
from syndication.exceptions import UnknownTransport
from syndication.transports.registry import TransportRegistry

router = APIRouter()


@router.get("/", response_model=list[TransportOut])
async def list_transports(registry: TransportRegistry = Depends(get_transport_registry)):
    """List registered transport types ordered by label."""
    return [TransportOut(type_id=type_id, label=label) for type_id, label in registry.list_all()]


@router.get("/{type_id}", response_model=TransportOut)
async def get_transport(
    type_id: str,
    registry: TransportRegistry = Depends(get_transport_registry),
):
    try:
        descriptor = registry.get(type_id)
    except UnknownTransport:
        raise HTTPException(status_code=404, detail=f"Transport '{type_id}' not found")
    return TransportOut(type_id=descriptor.type_id, label=descriptor.label)
