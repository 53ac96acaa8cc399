"""Async HTTP ``BlobStore`` for Walrus publisher/aggregator endpoints.

- Store: PUT {publisher}/v1/blobs?epochs=N with the raw bytes as body ->
  JSON with either ``newlyCreated.blobObject.blobId`` or
  ``alreadyCertified.blobId``
- Read: GET {aggregator}/v1/blobs/{blobId} -> raw bytes, 404 if unknown
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from sealvault.errors import NotFound, StorageFailed

logger = logging.getLogger(__name__)


def _blob_id_from(data: Any) -> str:
    """Extract the blob id from a publisher response."""
    if isinstance(data, dict):
        created = data.get("newlyCreated")
        if isinstance(created, dict):
            blob = created.get("blobObject")
            if isinstance(blob, dict) and isinstance(blob.get("blobId"), str):
                return blob["blobId"]
        certified = data.get("alreadyCertified")
        if isinstance(certified, dict) and isinstance(certified.get("blobId"), str):
            return certified["blobId"]
    raise StorageFailed(f"Publisher response has no blob id: {data!r}")


class WalrusBlobStore:
    """Blob store client. Constructor accepts explicit URLs — no env-var loading."""

    def __init__(
        self,
        publisher_url: str,
        aggregator_url: str,
        epochs: int = 1,
    ) -> None:
        if epochs < 1:
            raise ValueError(f"epochs must be >= 1, got {epochs}")
        self._epochs = epochs
        timeout = httpx.Timeout(connect=5.0, read=30.0, write=30.0, pool=5.0)
        self._publisher = httpx.AsyncClient(
            base_url=publisher_url.rstrip("/"), timeout=timeout,
        )
        self._aggregator = httpx.AsyncClient(
            base_url=aggregator_url.rstrip("/"), timeout=timeout,
        )

    async def put(self, data: bytes) -> str:
        try:
            resp = await self._publisher.put(
                "/v1/blobs", params={"epochs": self._epochs}, content=data,
            )
        except httpx.HTTPError as exc:
            raise StorageFailed(f"Blob upload failed: {exc}") from exc

        if resp.status_code >= 400:
            raise StorageFailed(
                f"Blob upload rejected (HTTP {resp.status_code}): {resp.text}"
            )
        try:
            body = resp.json()
        except ValueError as exc:
            raise StorageFailed("Publisher returned a non-JSON response") from exc
        blob_id = _blob_id_from(body)
        logger.debug("Stored %d bytes as blob %s.", len(data), blob_id)
        return blob_id

    async def get(self, address: str) -> bytes:
        try:
            resp = await self._aggregator.get(f"/v1/blobs/{address}")
        except httpx.HTTPError as exc:
            raise StorageFailed(f"Blob download failed: {exc}") from exc

        if resp.status_code == 404:
            raise NotFound(f"No blob stored under {address}")
        if resp.status_code >= 400:
            raise StorageFailed(
                f"Blob download failed (HTTP {resp.status_code}): {resp.text}"
            )
        return resp.content

    # -- lifecycle ------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying HTTP clients."""
        await self._publisher.aclose()
        await self._aggregator.aclose()

    async def __aenter__(self) -> WalrusBlobStore:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
