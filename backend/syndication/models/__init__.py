from syndication.models.base import Base
from syndication.models.content_meta import ContentMeta
from syndication.models.option import Option
from syndication.models.sitegroup import Sitegroup

__all__ = [
    "Base",
    "ContentMeta",
    "Option",
    "Sitegroup",
]
