from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from syndication.db.postgres import get_db_session
from syndication.services.encryption_service import get_cipher
from syndication.services.scheduler import SchedulerService
from syndication.services.settings_service import SettingsService
from syndication.services.site_service import SiteService
from syndication.services.sitegroup_service import SitegroupService
from syndication.services.storage import SqlMetaStore, SqlOptionStore, SqlSitegroupCatalog
from syndication.transports.registry import TransportRegistry


def get_transport_registry(request: Request) -> TransportRegistry:
    return request.app.state.transport_registry


def get_scheduler(request: Request) -> SchedulerService:
    return request.app.state.scheduler


def get_settings_service(
    session: AsyncSession = Depends(get_db_session),
    scheduler: SchedulerService = Depends(get_scheduler),
) -> SettingsService:
    return SettingsService(SqlOptionStore(session), cipher=get_cipher(), signals=scheduler)


def get_site_service(
    session: AsyncSession = Depends(get_db_session),
    registry: TransportRegistry = Depends(get_transport_registry),
) -> SiteService:
    return SiteService(SqlMetaStore(session), registry)


def get_sitegroup_service(
    session: AsyncSession = Depends(get_db_session),
) -> SitegroupService:
    return SitegroupService(SqlMetaStore(session), SqlSitegroupCatalog(session))
