from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from syndication.models.base import Base, TimestampMixin


class Sitegroup(TimestampMixin, Base):
    __tablename__ = "sitegroups"

    slug: Mapped[str] = mapped_column(String(191), primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
