"""Fernet-based sealing capability.

An envelope is the JSON form of a ``SealedSecret`` encrypted with Fernet
(AES-128-CBC + HMAC-SHA256). The approval flag and seal metadata travel
inside the ciphertext and are fixed when the envelope is created.
"""

from __future__ import annotations

import json
import logging
import secrets
import time

from cryptography.fernet import Fernet, InvalidToken

from sealvault.errors import DecryptionFailed, EncryptionFailed
from sealvault.models import SealedEnvelope, SealedSecret

logger = logging.getLogger(__name__)


def new_seal_id(timestamp_ms: int | None = None) -> str:
    """Unique identifier for one sealing event."""
    ts = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return f"seal_{ts}_{secrets.token_hex(8)}"


class FernetSealer:
    """``SecretSealer`` backed by a single Fernet key.

    The key is a url-safe base64 string as produced by ``generate_key()``
    (see ``scripts/generate_seal_key.py``).
    """

    def __init__(self, key: str | bytes) -> None:
        try:
            self._fernet = Fernet(key)
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid Fernet key: {e}") from e

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode()

    async def seal(
        self, plaintext: str, context: str | None = None, approved: bool = False
    ) -> SealedEnvelope:
        if not isinstance(plaintext, str):
            raise EncryptionFailed("Plaintext must be a string")
        timestamp = int(time.time() * 1000)
        secret = SealedSecret(
            plaintext=plaintext,
            seal_id=new_seal_id(timestamp),
            timestamp=timestamp,
            approved=approved,
            context=context,
        )
        try:
            payload = json.dumps(secret.to_dict()).encode("utf-8")
            data = self._fernet.encrypt(payload)
        except (TypeError, ValueError) as e:
            raise EncryptionFailed(f"Sealing failed: {e}") from e
        logger.debug("Sealed %s (%d bytes).", secret.seal_id, len(data))
        return SealedEnvelope(
            data=data,
            seal_id=secret.seal_id,
            timestamp=timestamp,
            approved=approved,
        )

    async def unseal(self, data: bytes) -> SealedSecret:
        try:
            payload = self._fernet.decrypt(data)
        except InvalidToken as e:
            raise DecryptionFailed("Envelope is corrupt or sealed with another key") from e
        except TypeError as e:
            raise DecryptionFailed(f"Envelope is not bytes: {e}") from e

        try:
            secret = SealedSecret.from_dict(json.loads(payload))
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as e:
            raise DecryptionFailed(f"Envelope is malformed: {e}") from e
        logger.debug("Unsealed %s (approved=%s).", secret.seal_id, secret.approved)
        return secret
