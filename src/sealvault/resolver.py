"""Resolve the current identity and concurrency token of an owner record."""

from __future__ import annotations

import asyncio
import logging

from sealvault.backends import LedgerReader
from sealvault.constants import (
    READ_BACKOFF_SECS,
    READ_MAX_ATTEMPTS,
    Outcome,
    Phase,
)
from sealvault.errors import LedgerReadError, LedgerUnavailable
from sealvault.events import EventStream
from sealvault.models import LedgerObject, ObjectRef, OwnerRecord, validate_address
from sealvault.retry import Sleep, retry_async

logger = logging.getLogger(__name__)


class VersionResolver:
    """Looks up a principal's owner record on the ledger.

    Read-only. Absence is a normal result (``None``), not an error. Transient
    read failures are retried with linear backoff; once the budget is spent
    ``LedgerUnavailable`` is raised. Schema errors are never retried.
    Nothing is cached: every call goes to the ledger.
    """

    def __init__(
        self,
        ledger: LedgerReader,
        record_type: str,
        *,
        max_attempts: int = READ_MAX_ATTEMPTS,
        backoff_secs: float = READ_BACKOFF_SECS,
        sleep: Sleep = asyncio.sleep,
        events: EventStream | None = None,
    ) -> None:
        self._ledger = ledger
        self._record_type = record_type
        self._max_attempts = max_attempts
        self._backoff_secs = backoff_secs
        self._sleep = sleep
        self._events = events or EventStream()

    @property
    def record_type(self) -> str:
        return self._record_type

    async def resolve(self, owner: str) -> ObjectRef | None:
        """Return the record's identity and current token, or ``None``."""
        obj = await self._fetch(owner, retry=True)
        return obj.ref if obj is not None else None

    async def load(self, owner: str, *, retry: bool = True) -> OwnerRecord | None:
        """Return the fully decoded owner record, or ``None``."""
        obj = await self._fetch(owner, retry=retry)
        if obj is None:
            return None
        return OwnerRecord.from_ledger_object(obj)

    async def _fetch(self, owner: str, *, retry: bool) -> LedgerObject | None:
        validate_address(owner)

        async def _attempt(attempt: int) -> list[LedgerObject]:
            logger.debug(
                "Fetching owner record for %s (attempt %d).", owner, attempt,
            )
            return await self._ledger.get_owned_objects(owner, self._record_type)

        def _on_retry(attempt: int, exc: BaseException, delay: float) -> None:
            self._events.emit(
                "resolve", Phase.RESOLVE, Outcome.RETRYING,
                f"attempt {attempt} failed: {exc}; retrying in {delay:.1f}s",
            )

        max_attempts = self._max_attempts if retry else 1
        try:
            objects = await retry_async(
                _attempt,
                max_attempts=max_attempts,
                base_secs=self._backoff_secs,
                retry_on=(LedgerReadError,),
                sleep=self._sleep,
                on_retry=_on_retry,
            )
        except LedgerReadError as exc:
            self._events.emit(
                "resolve", Phase.RESOLVE, Outcome.FAILED,
                f"ledger unavailable after {max_attempts} attempt(s)",
            )
            raise LedgerUnavailable(
                f"Could not read owner record for {owner} after "
                f"{max_attempts} attempt(s): {exc}"
            ) from exc

        if not objects:
            logger.debug("No owner record for %s.", owner)
            return None
        if len(objects) > 1:
            logger.warning(
                "Found %d owner records for %s; using %s.",
                len(objects), owner, objects[0].object_id,
            )
        obj = objects[0]
        logger.debug(
            "Owner record %s at version %s (digest %s).",
            obj.object_id, obj.version, obj.digest,
        )
        return obj
