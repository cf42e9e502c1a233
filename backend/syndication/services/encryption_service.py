"""Credential cipher for secrets stored in the settings record.

Values are serialized to canonical JSON and sealed with Fernet
(AES-128-CBC + HMAC-SHA256). Every token carries its own random IV, while
the key itself is derived from the operator secret with HKDF so tokens stay
readable across restarts.
"""

from __future__ import annotations

import base64
import json
from typing import Any

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from syndication.config import settings
from syndication.exceptions import DecryptFailure

_KDF_SALT = b"syndication.credential-cipher"
_KDF_INFO = b"fernet-key-v1"


def derive_key(secret: str) -> bytes:
    """Derive a urlsafe-base64 Fernet key from an operator secret."""
    if not secret:
        raise ValueError("Credential cipher requires a non-empty secret")
    raw = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=_KDF_SALT,
        info=_KDF_INFO,
    ).derive(secret.encode())
    return base64.urlsafe_b64encode(raw)


class CredentialCipher:
    def __init__(self, secret: str) -> None:
        self._fernet = Fernet(derive_key(secret))

    def encrypt(self, value: Any) -> str:
        payload = json.dumps(value, sort_keys=True, separators=(",", ":"))
        return self._fernet.encrypt(payload.encode()).decode("ascii")

    def decrypt(self, token: str) -> Any:
        """Return the plaintext value of *token*.

        Raises DecryptFailure for anything that is not a well-formed token
        sealed with this key and holding valid JSON.
        """
        if not isinstance(token, str) or not token:
            raise DecryptFailure("Encrypted secret is empty or not text")
        try:
            data = self._fernet.decrypt(token.encode("ascii"))
        except (InvalidToken, ValueError) as exc:
            raise DecryptFailure("Encrypted secret is unreadable") from exc
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DecryptFailure("Decrypted secret is not valid JSON") from exc


def get_cipher() -> CredentialCipher:
    return CredentialCipher(settings.syndication_key)
