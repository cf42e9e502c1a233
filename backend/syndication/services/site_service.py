"""Site configuration: which transport governs a site, and dispatch to it.

A site is ``unconfigured`` until an administrator picks a transport type,
``configured`` while that type resolves in the registry, and ``orphaned``
when it no longer does.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any

from syndication.exceptions import UnknownTransport
from syndication.services.sanitizer import sanitize_text_field, sanitize_toggle
from syndication.services.storage import MetaStore
from syndication.transports.base import SiteHook, SiteState, TransportDescriptor
from syndication.transports.registry import TransportRegistry

logger = logging.getLogger(__name__)

TRANSPORT_TYPE_KEY = "syn_transport_type"
SITE_ENABLED_KEY = "syn_site_enabled"

NO_PROVIDER_MESSAGE = "No transport configured for this site"


@dataclass
class SiteRecord:
    id: str
    transport_type: str | None = None
    enabled: bool = False


@dataclass
class RenderResult:
    site_id: str
    state: SiteState
    transport_type: str | None = None
    output: Any = None
    error: str | None = None


@dataclass
class SaveResult:
    site_id: str
    state: SiteState
    transport_type: str | None
    enabled: bool
    save_error: str | None = None
    test_error: str | None = None
    test_result: Any = None

    @property
    def ok(self) -> bool:
        return self.state != SiteState.ORPHANED and not self.save_error and not self.test_error


async def _invoke(hook: SiteHook, site_id: str) -> Any:
    result = hook(site_id)
    if inspect.isawaitable(result):
        result = await result
    return result


class SiteService:
    def __init__(self, meta: MetaStore, registry: TransportRegistry) -> None:
        self.meta = meta
        self.registry = registry

    async def get_site(self, site_id: str) -> SiteRecord:
        transport_type = await self.meta.get(site_id, TRANSPORT_TYPE_KEY)
        enabled = await self.meta.get(site_id, SITE_ENABLED_KEY)
        return SiteRecord(
            id=site_id,
            transport_type=transport_type or None,
            enabled=enabled == "on",
        )

    def resolve(self, site: SiteRecord) -> tuple[SiteState, TransportDescriptor | None]:
        if not site.transport_type:
            return SiteState.UNCONFIGURED, None
        descriptor = self.registry.lookup(site.transport_type)
        if descriptor is None:
            return SiteState.ORPHANED, None
        return SiteState.CONFIGURED, descriptor

    async def render(self, site_id: str) -> RenderResult:
        site = await self.get_site(site_id)
        state, descriptor = self.resolve(site)
        result = RenderResult(site_id=site_id, state=state, transport_type=site.transport_type)

        if state == SiteState.UNCONFIGURED:
            result.output = NO_PROVIDER_MESSAGE
        elif state == SiteState.ORPHANED:
            logger.warning("Site %s uses unregistered transport '%s'", site_id, site.transport_type)
            result.error = str(UnknownTransport(site.transport_type))
        else:
            try:
                result.output = await _invoke(descriptor.render_hook, site_id)
            except Exception as exc:
                logger.exception("Transport '%s' failed to render site %s", descriptor.type_id, site_id)
                result.error = str(exc) or exc.__class__.__name__
        return result

    async def save(
        self,
        site_id: str,
        submitted_transport_type: Any,
        submitted_enabled: Any,
    ) -> SaveResult:
        """Persist the site's transport fields, then let the provider save and test.

        The transport type and enabled flag are committed before any provider
        hook runs and are kept even if a hook fails. An unregistered type is
        stored as submitted; the site is reported as orphaned.
        """
        transport_type = sanitize_text_field(submitted_transport_type)
        enabled = sanitize_toggle(submitted_enabled)

        await self.meta.set(site_id, TRANSPORT_TYPE_KEY, transport_type)
        await self.meta.set(site_id, SITE_ENABLED_KEY, enabled)

        site = SiteRecord(id=site_id, transport_type=transport_type or None, enabled=enabled == "on")
        state, descriptor = self.resolve(site)
        result = SaveResult(
            site_id=site_id,
            state=state,
            transport_type=site.transport_type,
            enabled=site.enabled,
        )
        if state == SiteState.ORPHANED:
            logger.warning("Site %s saved with unregistered transport '%s'", site_id, transport_type)
            result.save_error = str(UnknownTransport(transport_type))
            return result
        if descriptor is None:
            return result

        try:
            await _invoke(descriptor.save_hook, site_id)
        except Exception as exc:
            logger.exception("Transport '%s' failed to save site %s", descriptor.type_id, site_id)
            result.save_error = str(exc) or exc.__class__.__name__
            return result

        try:
            result.test_result = await _invoke(descriptor.test_hook, site_id)
        except Exception as exc:
            logger.warning("Transport '%s' test failed for site %s: %s", descriptor.type_id, site_id, exc)
            result.test_error = str(exc) or exc.__class__.__name__
        return result
