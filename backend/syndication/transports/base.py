from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

SiteHook = Callable[[str], Any]


class SiteState(str, Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    ORPHANED = "orphaned"


@dataclass(frozen=True)
class TransportDescriptor:
    """Everything the core needs to dispatch to one transport provider.

    Each hook receives the site's content-item id. Hooks may be plain
    functions or coroutine functions.
    """

    type_id: str
    label: str
    render_hook: SiteHook
    save_hook: SiteHook
    test_hook: SiteHook


class BaseTransportProvider(ABC):
    """Abstract base class for transport providers.

    Subclasses found in a discovered package are registered automatically
    through ``TransportRegistry.auto_discover``.
    """

    type_id: str = ""
    label: str = ""

    @abstractmethod
    async def render_site_options(self, site_id: str) -> Any:
        """Return the provider's settings view for the site."""
        ...

    @abstractmethod
    async def save_site_options(self, site_id: str) -> Any:
        """Persist the provider's own fields for the site."""
        ...

    @abstractmethod
    async def test_site_options(self, site_id: str) -> Any:
        """Check connectivity with the just-saved configuration."""
        ...

    def descriptor(self) -> TransportDescriptor:
        return TransportDescriptor(
            type_id=self.type_id,
            label=self.label or self.type_id,
            render_hook=self.render_site_options,
            save_hook=self.save_site_options,
            test_hook=self.test_site_options,
        )
