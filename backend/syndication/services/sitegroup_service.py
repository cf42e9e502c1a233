from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from syndication.services.sanitizer import sanitize_key
from syndication.services.storage import MetaStore, SitegroupCatalog

logger = logging.getLogger(__name__)

SELECTED_SITEGROUPS_KEY = "_syn_selected_sitegroups"


def normalize_selection(raw: Any) -> list[str]:
    """Key-normalize and de-duplicate sitegroup identifiers.

    Accepts a single identifier or any iterable of them. The result is
    sorted so that equal selections compare equal.
    """
    if raw is None or raw == "":
        return []
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Iterable):
        raw = [raw]
    slugs = {sanitize_key(item) for item in raw if isinstance(item, (str, int))}
    slugs.discard("")
    return sorted(slugs)


@dataclass(frozen=True)
class SitegroupSelection:
    members: frozenset[str]
    stale: frozenset[str] = frozenset()

    @classmethod
    def from_raw(cls, raw: Any) -> SitegroupSelection:
        return cls(members=frozenset(normalize_selection(raw)))

    def flag_stale(self, known_slugs: Iterable[str]) -> SitegroupSelection:
        return SitegroupSelection(
            members=self.members,
            stale=self.members - frozenset(known_slugs),
        )

    def as_list(self) -> list[str]:
        return sorted(self.members)


class SitegroupService:
    """Stores the sitegroups selected for a content item.

    Writes are not checked against the catalog, so deleting a sitegroup never
    blocks an unrelated save. ``describe`` flags identifiers the catalog no
    longer knows.
    """

    def __init__(self, meta: MetaStore, catalog: SitegroupCatalog) -> None:
        self.meta = meta
        self.catalog = catalog

    async def get_selection(self, owner_id: str) -> SitegroupSelection:
        return SitegroupSelection.from_raw(await self.meta.get(owner_id, SELECTED_SITEGROUPS_KEY))

    async def set_selection(self, owner_id: str, raw_identifiers: Any) -> SitegroupSelection:
        selection = SitegroupSelection.from_raw(raw_identifiers)
        if selection.members:
            await self.meta.set(owner_id, SELECTED_SITEGROUPS_KEY, selection.as_list())
        else:
            await self.meta.delete(owner_id, SELECTED_SITEGROUPS_KEY)
        logger.info("Sitegroup selection for %s set to %s", owner_id, selection.as_list())
        return selection

    async def describe(self, owner_id: str) -> SitegroupSelection:
        return await self.flag_stale(await self.get_selection(owner_id))

    async def flag_stale(self, selection: SitegroupSelection) -> SitegroupSelection:
        flagged = selection.flag_stale(await self.catalog.list_slugs())
        if flagged.stale:
            logger.warning("Selection references unknown sitegroups: %s", sorted(flagged.stale))
        return flagged
