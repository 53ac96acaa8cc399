"""Tests for TransactionExecutor: fresh tokens, conflict retry, cancellation."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from sealvault.constants import Outcome
from sealvault.errors import (
    LedgerUnavailable,
    NoOwnerRecord,
    TransactionFailed,
    UserCancelled,
    VersionConflict,
    WalletNotConnected,
)
from sealvault.events import EventStream, RecentEvents
from sealvault.executor import TransactionExecutor, classify_submission_error
from sealvault.models import ConcurrencyToken, Mutation, ObjectRef, SubmissionResult
from sealvault.resolver import VersionResolver


OWNER = "0x" + "c" * 64
STALE = Exception(
    "Transaction needs to be rebuilt because object 0xrec version 0x3 "
    "is not available for consumption, current version: 0x4"
)


def _ok(digest: str = "tx-ok") -> SubmissionResult:
    return SubmissionResult(digest=digest, status="success")


def _mock_resolver(*refs):
    resolver = AsyncMock(spec=VersionResolver)
    if len(refs) == 1:
        resolver.resolve = AsyncMock(return_value=refs[0])
    else:
        resolver.resolve = AsyncMock(side_effect=list(refs))
    return resolver


def _mock_wallet(*outcomes, connected: bool = True, address: str | None = OWNER):
    wallet = MagicMock()
    wallet.connected = connected
    wallet.address = address
    wallet.accounts = [address] if address else []
    wallet.sign_and_submit = AsyncMock(side_effect=list(outcomes))
    return wallet


def _builder(object_id: str) -> Mutation:
    return Mutation("0xpkg::password_manager::save_entry", object_id, ("Mail", "b1"))


def _ref(version: int) -> ObjectRef:
    return ObjectRef("0xrec", str(version), f"dig{version}")


# ---------------------------------------------------------------------------
# classify_submission_error
# ---------------------------------------------------------------------------


class TestClassify:
    def test_stale_version(self) -> None:
        assert isinstance(classify_submission_error(STALE), VersionConflict)

    def test_current_version_phrase(self) -> None:
        err = classify_submission_error(Exception("object is not at current version"))
        assert isinstance(err, VersionConflict)

    @pytest.mark.parametrize("message", [
        "User rejection",
        "[WALLET.SIGN_TX_ERROR] UserRejectionError: rejected",
        "Transaction rejected by user",
    ])
    def test_user_rejection(self, message) -> None:
        assert isinstance(classify_submission_error(Exception(message)), UserCancelled)

    def test_passes_through_taxonomy(self) -> None:
        cancelled = UserCancelled("dismissed")
        assert classify_submission_error(cancelled) is cancelled

    def test_other_is_transaction_failed(self) -> None:
        err = classify_submission_error(Exception("Insufficient funds for gas"))
        assert isinstance(err, TransactionFailed)
        assert "Insufficient funds" in str(err)


# ---------------------------------------------------------------------------
# execute
# ---------------------------------------------------------------------------


class TestExecute:
    @pytest.mark.asyncio
    async def test_success_first_attempt(self) -> None:
        resolver = _mock_resolver(_ref(3))
        wallet = _mock_wallet(_ok())
        executor = TransactionExecutor(resolver, wallet, sleep=AsyncMock())
        result = await executor.execute(_builder)
        assert result.digest == "tx-ok"
        submitted = wallet.sign_and_submit.await_args.args[0]
        assert submitted.object_id == "0xrec"
        assert submitted.token == ConcurrencyToken("3", "dig3")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("n", [1, 2, 3, 5])
    async def test_n_minus_one_conflicts_then_success(self, n) -> None:
        resolver = _mock_resolver(*[_ref(v) for v in range(1, n + 1)])
        wallet = _mock_wallet(*([STALE] * (n - 1) + [_ok()]))
        sleep = AsyncMock()
        executor = TransactionExecutor(resolver, wallet, max_attempts=5, sleep=sleep)

        result = await executor.execute(_builder)

        assert result.succeeded
        assert resolver.resolve.await_count == n
        assert wallet.sign_and_submit.await_count == n
        # each attempt carries the token fetched just before it
        tokens = [c.args[0].token.version for c in wallet.sign_and_submit.await_args_list]
        assert tokens == [str(v) for v in range(1, n + 1)]
        assert [c.args[0] for c in sleep.await_args_list] == [2.0 * k for k in range(1, n)]

    @pytest.mark.asyncio
    async def test_conflict_exhaustion_is_terminal(self) -> None:
        resolver = _mock_resolver(*[_ref(v) for v in range(1, 6)])
        wallet = _mock_wallet(*([STALE] * 5))
        sleep = AsyncMock()
        executor = TransactionExecutor(resolver, wallet, sleep=sleep)
        with pytest.raises(VersionConflict) as exc_info:
            await executor.execute(_builder)
        assert exc_info.value.attempts == 5
        assert wallet.sign_and_submit.await_count == 5
        assert sleep.await_count == 4

    @pytest.mark.asyncio
    async def test_user_cancel_stops_immediately(self) -> None:
        resolver = _mock_resolver(_ref(3))
        wallet = _mock_wallet(Exception("User rejection"))
        sleep = AsyncMock()
        executor = TransactionExecutor(resolver, wallet, sleep=sleep)
        with pytest.raises(UserCancelled):
            await executor.execute(_builder)
        assert wallet.sign_and_submit.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_wallet_raised_user_cancelled_propagates(self) -> None:
        resolver = _mock_resolver(_ref(3))
        cancelled = UserCancelled("closed prompt")
        wallet = _mock_wallet(cancelled)
        executor = TransactionExecutor(resolver, wallet, sleep=AsyncMock())
        with pytest.raises(UserCancelled) as exc_info:
            await executor.execute(_builder)
        assert exc_info.value is cancelled

    @pytest.mark.asyncio
    async def test_other_failure_not_retried(self) -> None:
        resolver = _mock_resolver(_ref(3))
        wallet = _mock_wallet(Exception("Insufficient funds"))
        executor = TransactionExecutor(resolver, wallet, sleep=AsyncMock())
        with pytest.raises(TransactionFailed, match="Insufficient funds"):
            await executor.execute(_builder)
        assert wallet.sign_and_submit.await_count == 1

    @pytest.mark.asyncio
    async def test_non_success_status_fails(self) -> None:
        resolver = _mock_resolver(_ref(3))
        wallet = _mock_wallet(SubmissionResult("tx-bad", "failure", error="MoveAbort"))
        executor = TransactionExecutor(resolver, wallet, sleep=AsyncMock())
        with pytest.raises(TransactionFailed) as exc_info:
            await executor.execute(_builder)
        assert exc_info.value.status == "failure"
        assert exc_info.value.digest == "tx-bad"
        assert wallet.sign_and_submit.await_count == 1

    @pytest.mark.asyncio
    async def test_no_owner_record_not_retried(self) -> None:
        resolver = _mock_resolver(None)
        wallet = _mock_wallet()
        executor = TransactionExecutor(resolver, wallet, sleep=AsyncMock())
        with pytest.raises(NoOwnerRecord):
            await executor.execute(_builder)
        wallet.sign_and_submit.assert_not_awaited()
        assert resolver.resolve.await_count == 1

    @pytest.mark.asyncio
    async def test_ledger_unavailable_propagates(self) -> None:
        resolver = AsyncMock(spec=VersionResolver)
        resolver.resolve = AsyncMock(side_effect=LedgerUnavailable("down"))
        wallet = _mock_wallet()
        executor = TransactionExecutor(resolver, wallet, sleep=AsyncMock())
        with pytest.raises(LedgerUnavailable):
            await executor.execute(_builder)
        wallet.sign_and_submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disconnected_wallet(self) -> None:
        executor = TransactionExecutor(
            _mock_resolver(_ref(1)), _mock_wallet(connected=False), sleep=AsyncMock(),
        )
        with pytest.raises(WalletNotConnected):
            await executor.execute(_builder)

    @pytest.mark.asyncio
    async def test_per_call_attempt_budget(self) -> None:
        resolver = _mock_resolver(*[_ref(v) for v in range(1, 3)])
        wallet = _mock_wallet(STALE, STALE)
        executor = TransactionExecutor(resolver, wallet, sleep=AsyncMock())
        with pytest.raises(VersionConflict) as exc_info:
            await executor.execute(_builder, max_attempts=2)
        assert exc_info.value.attempts == 2

    @pytest.mark.asyncio
    async def test_zero_attempt_budget_rejected(self) -> None:
        wallet = _mock_wallet()
        executor = TransactionExecutor(_mock_resolver(_ref(1)), wallet, sleep=AsyncMock())
        with pytest.raises(ValueError):
            await executor.execute(_builder, max_attempts=0)
        wallet.sign_and_submit.assert_not_awaited()


class TestRetryWindow:
    def test_default_window(self) -> None:
        executor = TransactionExecutor(_mock_resolver(None), _mock_wallet())
        assert executor.max_retry_window() == 20.0
        assert executor.max_retry_window(3) == 6.0


# ---------------------------------------------------------------------------
# submit (unbound mutations)
# ---------------------------------------------------------------------------


class TestSubmit:
    @pytest.mark.asyncio
    async def test_submit_does_not_resolve(self) -> None:
        resolver = _mock_resolver(None)
        wallet = _mock_wallet(_ok("tx-create"))
        executor = TransactionExecutor(resolver, wallet, sleep=AsyncMock())
        result = await executor.submit(Mutation("0xpkg::password_manager::create_user_records"))
        assert result.digest == "tx-create"
        resolver.resolve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_submit_cancel(self) -> None:
        wallet = _mock_wallet(Exception("UserRejectionError"))
        executor = TransactionExecutor(_mock_resolver(None), wallet, sleep=AsyncMock())
        with pytest.raises(UserCancelled):
            await executor.submit(Mutation("0xpkg::password_manager::create_user_records"))

    @pytest.mark.asyncio
    async def test_submit_events_named_submit(self) -> None:
        events = EventStream()
        tail = RecentEvents(maxlen=20)
        events.subscribe(tail)
        wallet = _mock_wallet(_ok("tx-create"), SubmissionResult("tx-bad", "failure", "abort"))
        executor = TransactionExecutor(
            _mock_resolver(None), wallet, sleep=AsyncMock(), events=events,
        )
        create = Mutation("0xpkg::password_manager::create_user_records")
        await executor.submit(create)
        with pytest.raises(TransactionFailed):
            await executor.submit(create)

        finished = [
            e for e in tail.snapshot()
            if e.outcome in (Outcome.SUCCEEDED, Outcome.FAILED)
        ]
        assert [(e.operation, e.outcome) for e in finished] == [
            ("submit", Outcome.SUCCEEDED),
            ("submit", Outcome.FAILED),
        ]


# ---------------------------------------------------------------------------
# owner_address (wallet connection state)
# ---------------------------------------------------------------------------


class TestOwnerAddress:
    def test_connected_account(self) -> None:
        executor = TransactionExecutor(_mock_resolver(None), _mock_wallet())
        assert executor.owner_address() == OWNER

    def test_address_outside_accounts(self) -> None:
        wallet = _mock_wallet()
        wallet.accounts = ["0x" + "e" * 64]
        executor = TransactionExecutor(_mock_resolver(None), wallet)
        with pytest.raises(WalletNotConnected):
            executor.owner_address()

    def test_no_accounts(self) -> None:
        wallet = _mock_wallet()
        wallet.accounts = []
        executor = TransactionExecutor(_mock_resolver(None), wallet)
        with pytest.raises(WalletNotConnected):
            executor.owner_address()

    def test_account_case_ignored(self) -> None:
        wallet = _mock_wallet()
        wallet.accounts = [OWNER.upper().replace("0X", "0x")]
        executor = TransactionExecutor(_mock_resolver(None), wallet)
        assert executor.owner_address() == OWNER

    @pytest.mark.asyncio
    async def test_execute_checks_accounts_before_submitting(self) -> None:
        wallet = _mock_wallet(_ok())
        wallet.accounts = []
        resolver = _mock_resolver(_ref(1))
        executor = TransactionExecutor(resolver, wallet, sleep=AsyncMock())
        with pytest.raises(WalletNotConnected):
            await executor.execute(_builder)
        resolver.resolve.assert_not_awaited()
        wallet.sign_and_submit.assert_not_awaited()
