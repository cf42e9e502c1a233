"""Error types raised by the syndication core.

Only failures that callers can act on get their own type. Per-field
validation problems are collected as records instead of raised (see
``services.settings_service.ValidationFailure``).
"""


class SyndicationError(Exception):
    """Base class for syndication core errors."""


class DecryptFailure(SyndicationError):
    """An encrypted secret could not be read back.

    Covers corrupted, truncated or tampered tokens, tokens made with another
    key, and payloads that do not parse after decryption.
    """


class UnknownTransport(SyndicationError, LookupError):
    """A transport type id does not resolve in the registry."""

    def __init__(self, type_id: str) -> None:
        super().__init__(f"Transport type '{type_id}' is not registered")
        self.type_id = type_id
