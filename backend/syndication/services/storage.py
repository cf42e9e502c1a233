"""Ports onto the host's storage, with SQLAlchemy implementations.

Every SQL write commits immediately so each persisted step survives a
failure in a later one.
"""

from __future__ import annotations

from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from syndication.models.content_meta import ContentMeta
from syndication.models.option import Option
from syndication.models.sitegroup import Sitegroup


class OptionStore(Protocol):
    async def get(self, name: str) -> Any: ...

    async def set(self, name: str, value: Any) -> None: ...


class MetaStore(Protocol):
    async def get(self, item_id: str, key: str) -> Any: ...

    async def set(self, item_id: str, key: str, value: Any) -> None: ...

    async def delete(self, item_id: str, key: str) -> None: ...


class SitegroupCatalog(Protocol):
    async def list_slugs(self) -> set[str]: ...


class SqlOptionStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, name: str) -> Any:
        row = await self.session.get(Option, name)
        return row.value if row else None

    async def set(self, name: str, value: Any) -> None:
        row = await self.session.get(Option, name)
        if row:
            row.value = value
        else:
            self.session.add(Option(name=name, value=value))
        await self.session.commit()


class SqlMetaStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, item_id: str, key: str) -> Any:
        row = await self._get_row(item_id, key)
        return row.meta_value if row else None

    async def set(self, item_id: str, key: str, value: Any) -> None:
        row = await self._get_row(item_id, key)
        if row:
            row.meta_value = value
        else:
            self.session.add(ContentMeta(item_id=item_id, meta_key=key, meta_value=value))
        await self.session.commit()

    async def delete(self, item_id: str, key: str) -> None:
        await self.session.execute(
            delete(ContentMeta).where(
                ContentMeta.item_id == item_id, ContentMeta.meta_key == key
            )
        )
        await self.session.commit()

    async def _get_row(self, item_id: str, key: str) -> ContentMeta | None:
        stmt = select(ContentMeta).where(
            ContentMeta.item_id == item_id, ContentMeta.meta_key == key
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


class SqlSitegroupCatalog:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_slugs(self) -> set[str]:
        result = await self.session.execute(select(Sitegroup.slug))
        return set(result.scalars().all())
