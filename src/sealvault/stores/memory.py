"""In-process ``BlobStore`` for local development and tests."""

from __future__ import annotations

import secrets
import time

from sealvault.errors import NotFound


class MemoryBlobStore:
    """Dict-backed blob store. Addresses are unique per ``put``."""

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}

    async def put(self, data: bytes) -> str:
        address = f"blob_{int(time.time() * 1000):x}_{secrets.token_hex(8)}"
        self._blobs[address] = bytes(data)
        return address

    async def get(self, address: str) -> bytes:
        try:
            return self._blobs[address]
        except KeyError:
            raise NotFound(f"No blob stored under {address}") from None

    def __contains__(self, address: object) -> bool:
        return address in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)
