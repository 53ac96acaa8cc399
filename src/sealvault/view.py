"""List an owner's secret references with per-entry approval status."""

from __future__ import annotations

import logging

from sealvault.constants import Outcome, Phase
from sealvault.events import EventStream
from sealvault.models import ListedEntry
from sealvault.resolver import VersionResolver
from sealvault.retrieve import RetrieveCoordinator

logger = logging.getLogger(__name__)


class OwnerRecordView:
    """Read path over an owner record.

    One ledger read, no retries; a missing record lists as empty. Each
    entry's approval flag is read from its envelope in isolation, so a
    broken entry shows as unapproved without hiding the others.
    """

    def __init__(
        self,
        resolver: VersionResolver,
        retriever: RetrieveCoordinator,
        events: EventStream | None = None,
    ) -> None:
        self._resolver = resolver
        self._retriever = retriever
        self._events = events or EventStream()

    async def list(self, owner: str) -> list[ListedEntry]:
        record = await self._resolver.load(owner, retry=False)
        if record is None:
            self._events.emit("list", Phase.LIST, Outcome.SUCCEEDED, "no owner record")
            return []

        listed: list[ListedEntry] = []
        for ref in record.entries:
            approved = False
            if ref.is_retrievable:
                try:
                    approved = await self._retriever.read_approval(ref)
                except Exception as exc:
                    logger.warning(
                        "Could not read approval for entry %s (%s): %s",
                        ref.entry_id, ref.content_address, exc,
                    )
                    self._events.emit(
                        "list", Phase.DECRYPT, Outcome.DEGRADED,
                        f"{ref.entry_id}: {type(exc).__name__}",
                    )
            listed.append(ListedEntry(ref=ref, approved=approved))

        approved_count = sum(1 for entry in listed if entry.approved)
        self._events.emit(
            "list", Phase.LIST, Outcome.SUCCEEDED,
            f"{len(listed)} entries ({approved_count} approved)",
        )
        return listed
