from __future__ import annotations

from typing import Any

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from syndication.models.base import Base, JSONValue, TimestampMixin


class Option(TimestampMixin, Base):
    """Host key-value option storage. The settings document lives in one row."""

    __tablename__ = "options"

    name: Mapped[str] = mapped_column(String(191), primary_key=True)
    value: Mapped[Any] = mapped_column(JSONValue, nullable=True)
