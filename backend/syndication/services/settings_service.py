"""Syndication settings: canonical defaults, merge, validation and persistence.

The persisted record is a single JSON document. Reading it always goes
through ``initialize`` so every default key resolves; writing it always
goes through ``validate_and_normalize`` so only known, cleaned fields are
stored. Unknown keys already in storage survive a read but never a write.
"""

from __future__ import annotations

import copy
import logging
import math
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Protocol

from syndication.config import settings
from syndication.exceptions import DecryptFailure
from syndication.services.encryption_service import CredentialCipher, get_cipher
from syndication.services.sanitizer import (
    clean,
    sanitize_email,
    sanitize_text_field,
    sanitize_toggle,
    sanitize_url,
)
from syndication.services.sitegroup_service import normalize_selection
from syndication.services.storage import OptionStore

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Mapping[str, Any] = MappingProxyType({
    "selected_pull_sitegroups": [],
    "selected_post_types": ["post"],
    "notification_methods": [],
    "notification_types": [],
    "notification_email": "",
    "notification_slack_webhook": "",
    "delete_pushed_posts": "off",
    "update_pulled_posts": "off",
    "pull_time_interval": settings.default_pull_interval,
    "push_syndication_max_pull_attempts": 0,
    "client_id": "",
    "client_secret": "",
    "client_credentials": "",
})

SECRET_KEYS = ("client_id", "client_secret")


def mask_secret(value: str) -> str:
    """Display form of a secret: only the last 4 chars stay visible."""
    if len(value) <= 4:
        return "••••"
    return "••••••••" + value[-4:]


@dataclass
class ValidationFailure:
    """A submitted field that did not pass its rule and was replaced."""

    field: str
    code: str
    message: str


class SettingsDocument(Mapping[str, Any]):
    """Read-only view over a merged settings mapping."""

    def __init__(self, values: Mapping[str, Any]) -> None:
        self._values = dict(values)

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"SettingsDocument({self._values!r})"

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._values)

    @property
    def pull_time_interval(self) -> int:
        value = _parse_int(self.get("pull_time_interval"))
        if value is None:
            return settings.default_pull_interval
        return max(value, settings.min_pull_interval)

    @property
    def pull_sitegroups(self) -> list[str]:
        return normalize_selection(self.get("selected_pull_sitegroups"))


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(dict(base))
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def initialize(persisted: Any) -> SettingsDocument:
    """Merge a persisted settings record over the canonical defaults."""
    if persisted is None:
        persisted = {}
    elif not isinstance(persisted, Mapping):
        logger.warning(
            "Persisted settings are %s, not a mapping; using defaults",
            type(persisted).__name__,
        )
        persisted = {}
    return SettingsDocument(_deep_merge(DEFAULT_SETTINGS, persisted))


# --- Field rules ---

FieldRule = Callable[[Any, str, list[ValidationFailure]], Any]


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _parse_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    text = sanitize_text_field(value)
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return int(number) if math.isfinite(number) else None


def _clamp_attempts(value: int) -> int:
    return min(settings.max_pull_attempts_upper_limit, max(0, value))


def _text_rule(value: Any, key: str, failures: list[ValidationFailure]) -> str:
    return "" if _is_blank(value) else sanitize_text_field(value)


def _string_list_rule(value: Any, key: str, failures: list[ValidationFailure]) -> list[str]:
    if _is_blank(value):
        return []
    cleaned = clean(value)
    if isinstance(cleaned, Mapping):
        cleaned = list(cleaned.values())
    elif not isinstance(cleaned, list):
        cleaned = [cleaned]

    items: list[str] = []
    for item in cleaned:
        if not isinstance(item, str):
            failures.append(
                ValidationFailure(key, "invalid_item", f"Field '{key}' must hold plain values")
            )
            continue
        if item and item not in items:
            items.append(item)
    return items


def _sitegroups_rule(value: Any, key: str, failures: list[ValidationFailure]) -> list[str]:
    return normalize_selection(_string_list_rule(value, key, failures))


def _email_rule(value: Any, key: str, failures: list[ValidationFailure]) -> str:
    if _is_blank(value):
        return ""
    email = sanitize_email(value)
    if not email:
        failures.append(
            ValidationFailure(key, "invalid_email", f"Field '{key}' must be a valid email address")
        )
    return email


def _url_rule(value: Any, key: str, failures: list[ValidationFailure]) -> str:
    if _is_blank(value):
        return ""
    url = sanitize_url(value)
    if not url:
        failures.append(
            ValidationFailure(key, "invalid_url", f"Field '{key}' must be an http or https URL")
        )
    return url


def _toggle_rule(value: Any, key: str, failures: list[ValidationFailure]) -> str:
    return "off" if _is_blank(value) else sanitize_toggle(value)


def _interval_rule(value: Any, key: str, failures: list[ValidationFailure]) -> int:
    if _is_blank(value):
        return settings.default_pull_interval
    number = _parse_int(value)
    if number is None:
        failures.append(
            ValidationFailure(key, "invalid_number", f"Field '{key}' must be a whole number of seconds")
        )
        return settings.default_pull_interval
    if number < settings.min_pull_interval:
        failures.append(
            ValidationFailure(
                key,
                "clamped",
                f"Field '{key}' raised to the minimum of {settings.min_pull_interval} seconds",
            )
        )
        return settings.min_pull_interval
    return number


def _attempts_rule(value: Any, key: str, failures: list[ValidationFailure]) -> int:
    if _is_blank(value):
        return 0
    number = _parse_int(value)
    if number is None:
        failures.append(
            ValidationFailure(key, "invalid_number", f"Field '{key}' must be a whole number")
        )
        return 0
    return _clamp_attempts(number)


FIELD_RULES: Mapping[str, FieldRule] = MappingProxyType({
    "client_id": _text_rule,
    "client_secret": _text_rule,
    "selected_post_types": _string_list_rule,
    "notification_methods": _string_list_rule,
    "notification_types": _string_list_rule,
    "notification_email": _email_rule,
    "notification_slack_webhook": _url_rule,
    "delete_pushed_posts": _toggle_rule,
    "update_pulled_posts": _toggle_rule,
    "selected_pull_sitegroups": _sitegroups_rule,
    "pull_time_interval": _interval_rule,
    "push_syndication_max_pull_attempts": _attempts_rule,
})


def validate_and_normalize(
    raw_input: Any,
    failures: list[ValidationFailure] | None = None,
) -> SettingsDocument:
    """Validate a submitted settings form field by field.

    Each known field is cleaned by its rule, falling back to its default when
    invalid; the problem is appended to *failures* if a list is given.
    Unknown keys are dropped.
    """
    if failures is None:
        failures = []
    if not isinstance(raw_input, Mapping):
        failures.append(
            ValidationFailure("_document", "invalid_document", "Settings must be submitted as a mapping")
        )
        raw_input = {}

    dropped = sorted(str(k) for k in raw_input if k not in FIELD_RULES)
    if dropped:
        logger.debug("Dropping unknown settings fields: %s", dropped)

    return SettingsDocument({
        key: rule(raw_input.get(key), key, failures)
        for key, rule in FIELD_RULES.items()
    })


# --- Pull job signals ---


class PullSignals(Protocol):
    async def refresh_pull_jobs(self, interval: int, sitegroups: list[str]) -> None: ...

    async def pull_now(self) -> bool:
        """Start a pull outside the schedule; False when none was started."""
        ...


class NoOpPullSignals:
    async def refresh_pull_jobs(self, interval: int, sitegroups: list[str]) -> None:
        pass

    async def pull_now(self) -> bool:
        return False


@dataclass
class SettingsUpdate:
    document: SettingsDocument
    failures: list[ValidationFailure] = field(default_factory=list)
    rescheduled: bool = False
    pulled: bool = False


class SettingsService:
    def __init__(
        self,
        options: OptionStore,
        cipher: CredentialCipher | None = None,
        signals: PullSignals | None = None,
        option_name: str | None = None,
    ) -> None:
        self.options = options
        self.cipher = cipher or get_cipher()
        self.signals = signals or NoOpPullSignals()
        self.option_name = option_name or settings.settings_option_name

    async def load(self) -> SettingsDocument:
        return initialize(await self.options.get(self.option_name))

    async def save(self, raw_input: Any, pull_now: bool = False) -> SettingsUpdate:
        """Validate and persist a settings submission as one document.

        *pull_now* is a side-channel request, not a settings field. The pull
        job is rescheduled only when the interval or the pull sitegroups
        changed.
        """
        previous = await self.load()
        failures: list[ValidationFailure] = []
        values = validate_and_normalize(raw_input, failures).to_dict()
        self._seal_credentials(values, previous)

        await self.options.set(self.option_name, values)
        document = initialize(values)
        update = SettingsUpdate(document=document, failures=failures)

        if (
            document.pull_time_interval != previous.pull_time_interval
            or document.pull_sitegroups != previous.pull_sitegroups
        ):
            try:
                await self.signals.refresh_pull_jobs(
                    document.pull_time_interval, document.pull_sitegroups
                )
                update.rescheduled = True
            except Exception:
                logger.exception("Failed to refresh pull jobs")

        if pull_now:
            try:
                update.pulled = await self.signals.pull_now()
            except Exception:
                logger.exception("Pull now request failed")

        return update

    def credentials(self, document: Mapping[str, Any]) -> dict[str, str] | None:
        """Return the decrypted client id/secret pair, or None when unavailable."""
        token = document.get("client_credentials")
        if token:
            try:
                value = self.cipher.decrypt(token)
            except DecryptFailure as exc:
                logger.warning("Stored client credentials are unreadable: %s", exc)
                return None
            if not isinstance(value, Mapping):
                logger.warning("Stored client credentials have an unexpected shape")
                return None
            return {key: str(value.get(key, "")) for key in SECRET_KEYS}

        legacy = {key: str(document.get(key) or "") for key in SECRET_KEYS}
        if any(legacy.values()):
            return legacy
        return None

    def _seal_credentials(self, values: dict[str, Any], previous: SettingsDocument) -> None:
        """Encrypt the client id/secret pair into ``client_credentials``.

        A blank or masked submitted value keeps the stored one, so rotating one
        secret or sending back a read document leaves the other key intact.
        """
        token = previous.get("client_credentials") or ""
        known = self.credentials(previous) or {}
        merged = {}
        for key in SECRET_KEYS:
            value = values.get(key) or ""
            stored = known.get(key, "")
            if not value or (stored and value == mask_secret(stored)):
                value = stored
            merged[key] = value

        if any(merged.values()) and (merged != known or not token):
            values["client_credentials"] = self.cipher.encrypt(merged)
        else:
            values["client_credentials"] = token
        for key in SECRET_KEYS:
            values[key] = ""
