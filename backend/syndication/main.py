import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI

from syndication.api.routes import settings as settings_routes
from syndication.api.routes import sitegroups, sites, transports
from syndication.config import settings
from syndication.db.postgres import async_session_factory
from syndication.services.scheduler import SchedulerService, load_pull_handler
from syndication.services.settings_service import SettingsService
from syndication.services.storage import SqlOptionStore
from syndication.transports.registry import TransportRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")

    app.state.redis = aioredis.from_url(settings.redis_url, decode_responses=True)

    registry = TransportRegistry()
    for package_path in settings.transport_provider_packages:
        registry.auto_discover(package_path)
    app.state.transport_registry = registry
    logger.info("Transports registered: %s", [type_id for type_id, _ in registry.list_all()])

    async with async_session_factory() as session:
        document = await SettingsService(SqlOptionStore(session)).load()

    scheduler = SchedulerService(
        redis_client=app.state.redis,
        pull_handler=load_pull_handler(settings.pull_handler),
    )
    app.state.scheduler = scheduler
    await scheduler.start(document.pull_time_interval, document.pull_sitegroups)

    yield

    await scheduler.stop()
    await app.state.redis.close()


app = FastAPI(
    title="Syndication",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(settings_routes.router, prefix="/api/settings", tags=["settings"])
app.include_router(transports.router, prefix="/api/transports", tags=["transports"])
app.include_router(sites.router, prefix="/api/sites", tags=["sites"])
app.include_router(sitegroups.router, prefix="/api/sitegroups", tags=["sitegroups"])


@app.get("/api/health")
async def health_check():
    return {"status": "ok"}
