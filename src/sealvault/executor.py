"""Submit ledger mutations with optimistic-concurrency retry."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from sealvault.backends import SigningWallet
from sealvault.constants import SUBMIT_BACKOFF_SECS, SUBMIT_MAX_ATTEMPTS, Outcome, Phase
from sealvault.errors import (
    NoOwnerRecord,
    SealVaultError,
    TransactionFailed,
    UserCancelled,
    VersionConflict,
    WalletNotConnected,
)
from sealvault.events import EventStream
from sealvault.models import Mutation, SubmissionResult
from sealvault.resolver import VersionResolver
from sealvault.retry import Sleep, backoff_delay, retry_window

logger = logging.getLogger(__name__)

MutationBuilder = Callable[[str], Mutation]

_STALE_VERSION_MARKERS = (
    "is not available for consumption",
    "current version",
)
_CANCELLED_MARKERS = (
    "user rejection",
    "userrejectionerror",
    "rejected by user",
    "user rejected",
    "user cancelled",
    "user canceled",
)


def classify_submission_error(exc: BaseException) -> SealVaultError:
    """Map a wallet/ledger submission failure to the error taxonomy."""
    if isinstance(exc, (UserCancelled, VersionConflict, TransactionFailed)):
        return exc
    message = str(exc) or type(exc).__name__
    lowered = message.lower()
    if any(marker in lowered for marker in _CANCELLED_MARKERS):
        return UserCancelled(message)
    if any(marker in lowered for marker in _STALE_VERSION_MARKERS):
        return VersionConflict(message)
    return TransactionFailed(message)


class TransactionExecutor:
    """Signs and submits mutations against the wallet owner's record.

    Every attempt re-resolves the record so the mutation always carries
    the token the ledger currently holds. Only version conflicts are
    retried; user cancellation and other failures end the call at once.
    """

    def __init__(
        self,
        resolver: VersionResolver,
        wallet: SigningWallet,
        *,
        max_attempts: int = SUBMIT_MAX_ATTEMPTS,
        backoff_secs: float = SUBMIT_BACKOFF_SECS,
        sleep: Sleep = asyncio.sleep,
        events: EventStream | None = None,
    ) -> None:
        self._resolver = resolver
        self._wallet = wallet
        self._max_attempts = max_attempts
        self._backoff_secs = backoff_secs
        self._sleep = sleep
        self._events = events or EventStream()

    def max_retry_window(self, max_attempts: int | None = None) -> float:
        """Longest total backoff ``execute`` can sleep before giving up."""
        attempts = self._max_attempts if max_attempts is None else max_attempts
        return retry_window(attempts, self._backoff_secs)

    def owner_address(self) -> str:
        """Active wallet address. Raises ``WalletNotConnected`` without one."""
        address = self._wallet.address
        if not self._wallet.connected or not address:
            raise WalletNotConnected("Wallet not connected")
        accounts = {account.lower() for account in self._wallet.accounts or ()}
        if address.lower() not in accounts:
            raise WalletNotConnected(
                f"Active address {address} is not one of the wallet's accounts"
            )
        return address

    async def execute(
        self,
        build_mutation: MutationBuilder,
        max_attempts: int | None = None,
    ) -> SubmissionResult:
        """Build, sign and submit a mutation bound to the owner's record."""
        owner = self.owner_address()
        attempts = self._max_attempts if max_attempts is None else max_attempts
        if attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {attempts}")

        for attempt in range(1, attempts + 1):
            self._events.emit(
                "execute", Phase.SUBMIT, Outcome.STARTED,
                f"attempt {attempt}/{attempts}",
            )
            current = await self._resolver.resolve(owner)
            if current is None:
                self._events.emit(
                    "execute", Phase.RESOLVE, Outcome.FAILED, "no owner record",
                )
                raise NoOwnerRecord(f"No owner record found for {owner}")

            logger.debug(
                "Submitting against %s at version %s.",
                current.object_id, current.version,
            )
            mutation = build_mutation(current.object_id).bind(current)
            try:
                result = await self._wallet.sign_and_submit(mutation)
            except Exception as exc:
                error = classify_submission_error(exc)
                if isinstance(error, VersionConflict):
                    if attempt < attempts:
                        delay = backoff_delay(attempt, self._backoff_secs)
                        self._events.emit(
                            "execute", Phase.SUBMIT, Outcome.RETRYING,
                            f"version conflict on attempt {attempt}, "
                            f"waiting {delay:.1f}s",
                        )
                        await self._sleep(delay)
                        continue
                    error.attempts = attempts
                self._events.emit(
                    "execute", Phase.SUBMIT, Outcome.FAILED,
                    f"{type(error).__name__}: {error}",
                )
                if error is exc:
                    raise
                raise error from exc

            return self._check_result(result, "execute")

        raise AssertionError("unreachable")

    async def submit(self, mutation: Mutation) -> SubmissionResult:
        """Sign and submit a mutation that consumes no owned object."""
        self.owner_address()
        self._events.emit("submit", Phase.SUBMIT, Outcome.STARTED, mutation.target)
        try:
            result = await self._wallet.sign_and_submit(mutation)
        except Exception as exc:
            error = classify_submission_error(exc)
            self._events.emit(
                "submit", Phase.SUBMIT, Outcome.FAILED,
                f"{type(error).__name__}: {error}",
            )
            if error is exc:
                raise
            raise error from exc
        return self._check_result(result, "submit")

    def _check_result(
        self, result: SubmissionResult, operation: str
    ) -> SubmissionResult:
        if not result.succeeded:
            detail = result.error or f"status {result.status}"
            self._events.emit(
                operation, Phase.SUBMIT, Outcome.FAILED,
                f"transaction {result.digest}: {detail}",
            )
            raise TransactionFailed(
                f"Transaction {result.digest} failed: {detail}",
                status=result.status,
                digest=result.digest,
            )
        self._events.emit(
            operation, Phase.SUBMIT, Outcome.SUCCEEDED, f"digest {result.digest}",
        )
        return result
