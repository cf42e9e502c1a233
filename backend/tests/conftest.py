from __future__ import annotations

from typing import Any

import pytest

from syndication.services.encryption_service import CredentialCipher
from syndication.transports.base import TransportDescriptor
from syndication.transports.registry import TransportRegistry


class InMemoryOptionStore:
    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.values: dict[str, Any] = dict(initial or {})
        self.writes = 0

    async def get(self, name: str) -> Any:
        return self.values.get(name)

    async def set(self, name: str, value: Any) -> None:
        self.values[name] = value
        self.writes += 1


class InMemoryMetaStore:
    def __init__(self, events: list[str] | None = None) -> None:
        self.values: dict[tuple[str, str], Any] = {}
        self.events = events if events is not None else []

    async def get(self, item_id: str, key: str) -> Any:
        return self.values.get((item_id, key))

    async def set(self, item_id: str, key: str, value: Any) -> None:
        self.values[(item_id, key)] = value
        self.events.append(f"set:{key}")

    async def delete(self, item_id: str, key: str) -> None:
        self.values.pop((item_id, key), None)
        self.events.append(f"delete:{key}")


class InMemoryCatalog:
    def __init__(self, slugs: set[str] | None = None) -> None:
        self.slugs = set(slugs or ())

    async def list_slugs(self) -> set[str]:
        return set(self.slugs)


class RecordingSignals:
    def __init__(self) -> None:
        self.refreshes: list[tuple[int, list[str]]] = []
        self.pulls = 0

    async def refresh_pull_jobs(self, interval: int, sitegroups: list[str]) -> None:
        self.refreshes.append((interval, list(sitegroups)))

    async def pull_now(self) -> bool:
        self.pulls += 1
        return True


class FakeRedis:
    def __init__(self) -> None:
        self.store: dict[str, str] = {}

    async def set(self, key: str, value: str, nx: bool = False, ex: int | None = None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def delete(self, key: str) -> int:
        return 1 if self.store.pop(key, None) is not None else 0


def make_descriptor(type_id: str, label: str, events: list[str] | None = None, **hooks) -> TransportDescriptor:
    events = events if events is not None else []

    def _recorder(name: str):
        def hook(site_id: str) -> str:
            events.append(f"{name}:{type_id}:{site_id}")
            return f"{name} {type_id}"
        return hook

    return TransportDescriptor(
        type_id=type_id,
        label=label,
        render_hook=hooks.get("render_hook", _recorder("render")),
        save_hook=hooks.get("save_hook", _recorder("save")),
        test_hook=hooks.get("test_hook", _recorder("test")),
    )


@pytest.fixture
def cipher() -> CredentialCipher:
    return CredentialCipher("test-operator-secret")


@pytest.fixture
def option_store() -> InMemoryOptionStore:
    return InMemoryOptionStore()


@pytest.fixture
def events() -> list[str]:
    return []


@pytest.fixture
def meta_store(events) -> InMemoryMetaStore:
    return InMemoryMetaStore(events)


@pytest.fixture
def signals() -> RecordingSignals:
    return RecordingSignals()


@pytest.fixture
def registry(events) -> TransportRegistry:
    registry = TransportRegistry()
    registry.register("wp_rest", make_descriptor("wp_rest", "WordPress REST", events))
    registry.register("xmlrpc", make_descriptor("xmlrpc", "WordPress XML-RPC", events))
    return registry
