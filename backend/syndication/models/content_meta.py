from __future__ import annotations

from typing import Any

from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from syndication.models.base import Base, JSONValue, TimestampMixin


class ContentMeta(TimestampMixin, Base):
    """Per-content-item metadata (site transport fields, sitegroup selections)."""

    __tablename__ = "content_meta"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    meta_key: Mapped[str] = mapped_column(String(191), nullable=False)
    meta_value: Mapped[Any] = mapped_column(JSONValue, nullable=True)

    __table_args__ = (
        UniqueConstraint("item_id", "meta_key", name="uq_content_meta_item_key"),
    )
