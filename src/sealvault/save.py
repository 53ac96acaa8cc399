"""Save a secret: seal, store the blob, then reference it on the ledger.

Phases run strictly in order and each one needs the previous one's
output:

1. encrypt       — seal plaintext into an envelope (``EncryptionFailed``)
2. store         — put the envelope in the blob store (``StorageFailed``)
3. ensure_record — create the owner record if the owner has none yet
                   (``RecordCreationFailed`` or an executor error)
4. append        — add ``(label, content address)`` to the record

A failure after phase 2 leaves the stored blob unreferenced. That blob is
not cleaned up here.
"""

from __future__ import annotations

import asyncio
import logging

from sealvault.backends import BlobStore, SecretSealer
from sealvault.constants import (
    RECORD_POLL_ATTEMPTS,
    RECORD_POLL_BACKOFF_SECS,
    Outcome,
    Phase,
)
from sealvault.errors import (
    EncryptionFailed,
    LedgerReadError,
    LedgerUnavailable,
    RecordCreationFailed,
    SealVaultError,
    StorageFailed,
)
from sealvault.events import EventStream
from sealvault.executor import TransactionExecutor
from sealvault.models import ObjectRef, SealedEnvelope, SecretRef, SubmissionResult
from sealvault.mutations import append_entry, create_owner_record
from sealvault.resolver import VersionResolver
from sealvault.retry import Sleep, poll_until

logger = logging.getLogger(__name__)


class SaveCoordinator:
    """Runs the four save phases for the wallet's owner.

    Not idempotent: every successful call adds a new blob and a new entry,
    so callers must not repeat a save that already returned.
    """

    def __init__(
        self,
        sealer: SecretSealer,
        store: BlobStore,
        resolver: VersionResolver,
        executor: TransactionExecutor,
        package_id: str,
        *,
        poll_attempts: int = RECORD_POLL_ATTEMPTS,
        poll_backoff_secs: float = RECORD_POLL_BACKOFF_SECS,
        sleep: Sleep = asyncio.sleep,
        events: EventStream | None = None,
    ) -> None:
        self._sealer = sealer
        self._store = store
        self._resolver = resolver
        self._executor = executor
        self._package_id = package_id
        self._poll_attempts = poll_attempts
        self._poll_backoff_secs = poll_backoff_secs
        self._sleep = sleep
        self._events = events or EventStream()

    async def save(
        self,
        label: str,
        plaintext: str,
        context: str | None = None,
        record: ObjectRef | None = None,
    ) -> SecretRef:
        """Persist ``plaintext`` under ``label`` and return its new reference.

        ``record`` is the caller's handle on the owner record, if it has one.
        Without it the ledger is checked before a new record is created.
        """
        if not isinstance(label, str) or not label.strip():
            raise ValueError("label must be a non-empty string")
        owner = self._executor.owner_address()
        logger.info("Saving secret %r for %s.", label, owner)

        envelope = await self._encrypt(plaintext, context)
        address = await self._store_blob(envelope)
        await self._ensure_record(owner, record)
        return await self._append(owner, label, address)

    # -- phases ---------------------------------------------------------------

    async def _encrypt(self, plaintext: str, context: str | None) -> SealedEnvelope:
        self._events.emit("save", Phase.ENCRYPT, Outcome.STARTED)
        try:
            # Approval is a separate explicit action; sealing never prompts.
            envelope = await self._sealer.seal(plaintext, context, approved=False)
        except EncryptionFailed:
            self._events.emit("save", Phase.ENCRYPT, Outcome.FAILED)
            raise
        except Exception as exc:
            self._events.emit("save", Phase.ENCRYPT, Outcome.FAILED)
            raise EncryptionFailed(f"Sealing failed: {type(exc).__name__}") from exc
        self._events.emit(
            "save", Phase.ENCRYPT, Outcome.SUCCEEDED, f"seal {envelope.seal_id}",
        )
        return envelope

    async def _store_blob(self, envelope: SealedEnvelope) -> str:
        self._events.emit("save", Phase.STORE, Outcome.STARTED)
        try:
            address = await self._store.put(envelope.data)
        except StorageFailed as exc:
            self._events.emit("save", Phase.STORE, Outcome.FAILED, str(exc))
            raise
        except Exception as exc:
            self._events.emit("save", Phase.STORE, Outcome.FAILED, str(exc))
            raise StorageFailed(f"Blob store put failed: {exc}") from exc
        self._events.emit("save", Phase.STORE, Outcome.SUCCEEDED, address)
        return address

    async def _ensure_record(self, owner: str, record: ObjectRef | None) -> ObjectRef:
        if record is not None:
            return record

        existing = await self._resolver.resolve(owner)
        if existing is not None:
            logger.info(
                "Owner record %s already exists for %s; reusing it.",
                existing.object_id, owner,
            )
            return existing

        self._events.emit("save", Phase.ENSURE_RECORD, Outcome.STARTED, "creating")
        try:
            await self._executor.submit(create_owner_record(self._package_id))
        except SealVaultError as exc:
            self._events.emit(
                "save", Phase.ENSURE_RECORD, Outcome.FAILED, type(exc).__name__,
            )
            raise

        last_error: SealVaultError | None = None

        async def _fetch_created() -> ObjectRef | None:
            nonlocal last_error
            try:
                return await self._resolver.resolve(owner)
            except (LedgerUnavailable, LedgerReadError) as exc:
                # The create already landed; a failed read counts as not visible yet.
                logger.warning("Read after record creation failed: %s", exc)
                last_error = exc
                return None

        created = await poll_until(
            _fetch_created,
            lambda ref: ref is not None,
            max_attempts=self._poll_attempts,
            base_secs=self._poll_backoff_secs,
            sleep=self._sleep,
        )
        if created is None:
            detail = "record not visible"
            if last_error is not None:
                detail = f"{detail}: {type(last_error).__name__}"
            self._events.emit("save", Phase.ENSURE_RECORD, Outcome.FAILED, detail)
            raise RecordCreationFailed(
                f"Owner record for {owner} not visible after "
                f"{self._poll_attempts} read(s)"
            ) from last_error
        self._events.emit(
            "save", Phase.ENSURE_RECORD, Outcome.SUCCEEDED, created.object_id,
        )
        return created

    async def _append(self, owner: str, label: str, address: str) -> SecretRef:
        self._events.emit("save", Phase.APPEND, Outcome.STARTED, label)
        try:
            result = await self._executor.execute(
                lambda object_id: append_entry(
                    self._package_id, object_id, label, address,
                )
            )
        except SealVaultError as exc:
            logger.warning(
                "Append failed for %r; blob %s is stored but unreferenced.",
                label, address,
            )
            self._events.emit(
                "save", Phase.APPEND, Outcome.FAILED, type(exc).__name__,
            )
            raise

        entry_id = await self._entry_id_for(owner, address, result)
        self._events.emit("save", Phase.APPEND, Outcome.SUCCEEDED, entry_id)
        return SecretRef(entry_id=entry_id, label=label, content_address=address)

    async def _entry_id_for(
        self, owner: str, address: str, result: SubmissionResult
    ) -> str:
        """Identify the appended entry without ever failing a completed save."""
        if result.created_object_ids:
            return result.created_object_ids[0]

        try:
            record = await poll_until(
                lambda: self._resolver.load(owner),
                lambda rec: rec is not None and rec.find_by_address(address) is not None,
                max_attempts=self._poll_attempts,
                base_secs=self._poll_backoff_secs,
                sleep=self._sleep,
            )
        except SealVaultError as exc:
            logger.warning("Read-back after append failed: %s", exc)
            record = None

        entry = record.find_by_address(address) if record is not None else None
        if entry is not None:
            return entry.entry_id
        logger.warning(
            "Appended entry for %s not visible yet; using digest %s as its id.",
            address, result.digest,
        )
        return result.digest
