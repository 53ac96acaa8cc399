"""SecretVault — one wallet's view of the sealed-secret system.

Wires the resolver, executor, approval checker and coordinators around a
shared ``EventStream``. Holds no ledger state between calls.
"""

from __future__ import annotations

import asyncio
import logging

from sealvault.approval import ApprovalChecker, request_approval
from sealvault.backends import BlobStore, LedgerReader, SecretSealer, SigningWallet
from sealvault.config import SealVaultConfig
from sealvault.events import EventStream
from sealvault.executor import TransactionExecutor
from sealvault.ledger.sui import SuiLedgerReader
from sealvault.models import ListedEntry, ObjectRef, RetrievedSecret, SecretRef, SubmissionResult
from sealvault.resolver import VersionResolver
from sealvault.retrieve import RetrieveCoordinator
from sealvault.retry import Sleep
from sealvault.save import SaveCoordinator
from sealvault.stores.walrus import WalrusBlobStore
from sealvault.view import OwnerRecordView

logger = logging.getLogger(__name__)


class SecretVault:
    """Facade over the save, retrieve, list and approval operations."""

    def __init__(
        self,
        config: SealVaultConfig,
        wallet: SigningWallet,
        sealer: SecretSealer,
        ledger: LedgerReader,
        store: BlobStore,
        *,
        sleep: Sleep = asyncio.sleep,
        events: EventStream | None = None,
    ) -> None:
        self.config = config
        self.events = events or EventStream()
        self._wallet = wallet
        self._ledger = ledger
        self._store = store

        self.resolver = VersionResolver(
            ledger,
            config.record_type,
            max_attempts=config.read_max_attempts,
            backoff_secs=config.read_backoff_secs,
            sleep=sleep,
            events=self.events,
        )
        self.executor = TransactionExecutor(
            self.resolver,
            wallet,
            max_attempts=config.submit_max_attempts,
            backoff_secs=config.submit_backoff_secs,
            sleep=sleep,
            events=self.events,
        )
        self.approvals = ApprovalChecker(ledger, events=self.events)
        self.retriever = RetrieveCoordinator(store, sealer, events=self.events)
        self.saver = SaveCoordinator(
            sealer,
            store,
            self.resolver,
            self.executor,
            config.package_id,
            poll_attempts=config.record_poll_attempts,
            poll_backoff_secs=config.record_poll_backoff_secs,
            sleep=sleep,
            events=self.events,
        )
        self.view = OwnerRecordView(self.resolver, self.retriever, events=self.events)

    @classmethod
    def from_config(
        cls,
        config: SealVaultConfig,
        wallet: SigningWallet,
        sealer: SecretSealer,
        *,
        events: EventStream | None = None,
    ) -> SecretVault:
        """Build a vault with the Sui reader and Walrus store from ``config``."""
        return cls(
            config,
            wallet,
            sealer,
            SuiLedgerReader(config.rpc_url),
            WalrusBlobStore(
                config.publisher_url,
                config.aggregator_url,
                epochs=config.storage_epochs,
            ),
            events=events,
        )

    @property
    def owner(self) -> str:
        return self.executor.owner_address()

    async def record_exists(self) -> ObjectRef | None:
        return await self.resolver.resolve(self.owner)

    async def save(
        self,
        label: str,
        plaintext: str,
        context: str | None = None,
        record: ObjectRef | None = None,
    ) -> SecretRef:
        return await self.saver.save(label, plaintext, context, record=record)

    async def retrieve(self, ref: SecretRef) -> RetrievedSecret:
        return await self.retriever.retrieve(ref)

    async def list_entries(self) -> list[ListedEntry]:
        return await self.view.list(self.owner)

    async def approval_status(self) -> bool:
        """Whether the wallet owner can authorize calls on its record.

        ``False`` when there is no record or the ledger cannot be read.
        """
        owner = self.owner
        try:
            current = await self.resolver.resolve(owner)
        except Exception as exc:
            logger.warning("Approval status unavailable: %s", exc)
            return False
        if current is None:
            return False
        return await self.approvals.check(current.object_id, owner)

    async def request_approval(self) -> SubmissionResult:
        return await request_approval(self.executor, self.config.package_id)

    async def close(self) -> None:
        """Close collaborators that hold network clients."""
        for collaborator in (self._ledger, self._store):
            close = getattr(collaborator, "close", None)
            if close is not None:
                await close()

    async def __aenter__(self) -> SecretVault:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
