"""Exception hierarchy for sealed-secret operations.

Every coordinator raises the most specific subclass it can. ``retryable``
tells the caller whether offering a plain "retry" makes sense, or whether
something has to be fixed first.
"""

from __future__ import annotations


class SealVaultError(Exception):
    """Base exception for all sealvault failures."""

    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class LedgerReadError(SealVaultError):
    """Transient ledger read failure (network, RPC error). Raised by readers."""

    retryable = True


class LedgerUnavailable(SealVaultError):
    """Ledger reads kept failing after the retry budget was spent."""

    retryable = True


class LedgerSchemaError(SealVaultError):
    """Ledger content did not match the expected shape."""


class NoOwnerRecord(SealVaultError):
    """The principal has no owner record yet; create one first."""


class RecordCreationFailed(SealVaultError):
    """The owner record did not become visible after creation."""


class VersionConflict(SealVaultError):
    """The ledger rejected a stale object version."""

    retryable = True

    def __init__(self, message: str, attempts: int = 1) -> None:
        super().__init__(message)
        self.attempts = attempts


class UserCancelled(SealVaultError):
    """The user rejected the signing prompt in their wallet."""

    retryable = True


class TransactionFailed(SealVaultError):
    """Non-transient submission failure, or a non-success effects status."""

    def __init__(
        self,
        message: str,
        status: str | None = None,
        digest: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.digest = digest


class WalletNotConnected(SealVaultError):
    """No connected wallet account is available for signing."""


class InvalidAddress(SealVaultError, ValueError):
    """Malformed principal address."""


# ---------------------------------------------------------------------------
# Sealing and storage
# ---------------------------------------------------------------------------


class EncryptionFailed(SealVaultError):
    """Sealing the plaintext failed; nothing was written anywhere."""


class DecryptionFailed(SealVaultError):
    """The envelope could not be decrypted or decoded."""


class StorageFailed(SealVaultError):
    """Blob store put/get failed."""


class NotFound(StorageFailed):
    """No blob exists under the requested content address."""


class InvalidReference(SealVaultError):
    """The secret reference cannot be resolved to a blob."""
