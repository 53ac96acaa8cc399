"""Approval status and explicit approval requests for owner records.

Approval here is derived from ownership: a principal that owns the record
can authorize privileged calls on it. It is unrelated to the ``approved``
flag frozen inside each sealed envelope, and requesting approval never
rewrites stored envelopes.
"""

from __future__ import annotations

import logging

from sealvault.backends import LedgerReader
from sealvault.constants import Outcome, Phase
from sealvault.errors import InvalidAddress
from sealvault.events import EventStream
from sealvault.executor import TransactionExecutor
from sealvault.models import SubmissionResult, normalize_address
from sealvault.mutations import seal_approve

logger = logging.getLogger(__name__)


class ApprovalChecker:
    """Read-only, fail-closed ownership check."""

    def __init__(self, ledger: LedgerReader, events: EventStream | None = None) -> None:
        self._ledger = ledger
        self._events = events or EventStream()

    async def check(self, record_id: str, owner: str) -> bool:
        """True iff ``record_id`` exists and is owned by ``owner``.

        Never raises: any lookup failure reports ``False``.
        """
        if not owner:
            return False
        try:
            caller = normalize_address(owner)
        except InvalidAddress:
            logger.warning("Approval check with malformed address %r.", owner)
            return False
        try:
            obj = await self._ledger.get_object(record_id)
        except Exception as exc:
            logger.warning("Approval check for %s failed: %s", record_id, exc)
            self._events.emit(
                "approval", Phase.APPROVAL, Outcome.DEGRADED, f"{record_id}: {exc}",
            )
            return False

        if obj is None:
            logger.debug("Record %s not found; not approved.", record_id)
            return False
        try:
            approved = obj.owner is not None and normalize_address(obj.owner) == caller
        except InvalidAddress:
            logger.warning("Record %s has a malformed owner %r.", record_id, obj.owner)
            approved = False
        logger.debug(
            "Ownership check for %s: owner=%s caller=%s -> %s",
            record_id, obj.owner, owner, approved,
        )
        return approved


async def request_approval(
    executor: TransactionExecutor, package_id: str
) -> SubmissionResult:
    """Submit an explicit ``seal_approve`` call against the caller's record.

    Only ever called on an explicit user action; saving a secret never
    triggers it. Errors propagate with the executor's taxonomy.
    """
    return await executor.execute(
        lambda object_id: seal_approve(package_id, object_id)
    )
