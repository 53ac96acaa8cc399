"""Fetch a sealed secret from the blob store and open it."""

from __future__ import annotations

import logging

from sealvault.backends import BlobStore, SecretSealer
from sealvault.constants import Outcome, Phase
from sealvault.errors import (
    DecryptionFailed,
    InvalidReference,
    SealVaultError,
    StorageFailed,
)
from sealvault.events import EventStream
from sealvault.models import RetrievedSecret, SealedSecret, SecretRef

logger = logging.getLogger(__name__)


class RetrieveCoordinator:
    """Blob fetch then unseal. Never touches the ledger."""

    def __init__(
        self,
        store: BlobStore,
        sealer: SecretSealer,
        events: EventStream | None = None,
    ) -> None:
        self._store = store
        self._sealer = sealer
        self._events = events or EventStream()

    async def retrieve(self, ref: SecretRef) -> RetrievedSecret:
        """Return plaintext, context and the frozen approval flag for ``ref``.

        Raises ``InvalidReference`` (no I/O), ``NotFound``/``StorageFailed``
        or ``DecryptionFailed``.
        """
        secret = await self._open(ref, operation="retrieve")
        self._events.emit("retrieve", Phase.DECRYPT, Outcome.SUCCEEDED, ref.label)
        return RetrievedSecret(
            plaintext=secret.plaintext,
            approved=secret.approved,
            seal_id=secret.seal_id,
            context=secret.context,
        )

    async def read_approval(self, ref: SecretRef) -> bool:
        """Read only the envelope's approval flag."""
        secret = await self._open(ref, operation="read_approval")
        return secret.approved

    async def _open(self, ref: SecretRef, *, operation: str) -> SealedSecret:
        if not ref.is_retrievable:
            self._events.emit(
                operation, Phase.FETCH, Outcome.FAILED,
                f"{ref.entry_id} has no content address",
            )
            raise InvalidReference(
                f"Entry {ref.entry_id!r} ({ref.label}) has no valid content address"
            )

        try:
            data = await self._store.get(ref.content_address)
        except Exception as exc:
            error = exc if isinstance(exc, SealVaultError) else StorageFailed(
                f"Blob fetch for {ref.content_address} failed: {exc}"
            )
            self._fail(operation, Phase.FETCH, ref, error)
            if error is exc:
                raise
            raise error from exc
        logger.debug("Fetched %d bytes for %s.", len(data), ref.content_address)

        try:
            return await self._sealer.unseal(data)
        except Exception as exc:
            error = exc if isinstance(exc, SealVaultError) else DecryptionFailed(
                f"Unsealing {ref.content_address} failed: {exc}"
            )
            self._fail(operation, Phase.DECRYPT, ref, error)
            if error is exc:
                raise
            raise error from exc

    def _fail(
        self, operation: str, phase: Phase, ref: SecretRef, error: BaseException
    ) -> None:
        self._events.emit(
            operation, phase, Outcome.FAILED,
            f"{ref.content_address}: {type(error).__name__}",
        )
