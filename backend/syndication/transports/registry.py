from __future__ import annotations

import importlib
import logging
import pkgutil

from syndication.exceptions import UnknownTransport
from syndication.transports.base import BaseTransportProvider, TransportDescriptor

logger = logging.getLogger(__name__)


class TransportRegistry:
    """Maps transport type ids to the descriptor of the provider that owns them."""

    def __init__(self) -> None:
        self._descriptors: dict[str, TransportDescriptor] = {}

    def register(self, type_id: str, descriptor: TransportDescriptor) -> None:
        if not isinstance(type_id, str) or not type_id.strip():
            raise ValueError("Transport type id must be a non-empty string")
        if descriptor.type_id != type_id:
            raise ValueError(
                f"Descriptor type id '{descriptor.type_id}' does not match '{type_id}'"
            )
        if type_id in self._descriptors:
            logger.warning(
                "RegistrationConflict: transport '%s' re-registered, replacing '%s' with '%s'",
                type_id,
                self._descriptors[type_id].label,
                descriptor.label,
            )
        self._descriptors[type_id] = descriptor
        logger.info("Registered transport: %s (%s)", type_id, descriptor.label)

    def register_provider(self, provider: BaseTransportProvider) -> None:
        if not provider.type_id:
            raise ValueError(f"Provider {provider.__class__.__name__} must define a 'type_id'")
        self.register(provider.type_id, provider.descriptor())

    def lookup(self, type_id: str | None) -> TransportDescriptor | None:
        if not type_id:
            return None
        return self._descriptors.get(type_id)

    def get(self, type_id: str) -> TransportDescriptor:
        descriptor = self.lookup(type_id)
        if descriptor is None:
            raise UnknownTransport(type_id)
        return descriptor

    def list_all(self) -> list[tuple[str, str]]:
        """Return ``(type_id, label)`` pairs ordered by label, then type id."""
        return sorted(
            ((d.type_id, d.label) for d in self._descriptors.values()),
            key=lambda pair: (pair[1], pair[0]),
        )

    def auto_discover(self, package_path: str) -> None:
        """Import all modules in *package_path* and register the providers they define."""
        try:
            package = importlib.import_module(package_path)
        except ModuleNotFoundError:
            logger.warning("Transport provider package '%s' not found", package_path)
            return

        for _importer, module_name, _is_pkg in pkgutil.iter_modules(
            package.__path__, prefix=f"{package_path}."
        ):
            try:
                module = importlib.import_module(module_name)
                for attr_name in dir(module):
                    attr = getattr(module, attr_name)
                    if (
                        isinstance(attr, type)
                        and issubclass(attr, BaseTransportProvider)
                        and attr is not BaseTransportProvider
                        and attr.type_id
                        and attr.__module__ == module.__name__
                    ):
                        self.register_provider(attr())
            except Exception:
                logger.exception("Failed to import transport provider module: %s", module_name)
