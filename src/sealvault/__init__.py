"""SealVault — sealed secrets in a blob store, referenced from a versioned ledger.

Save and retrieve coordination with optimistic-concurrency retry.
"""

__version__ = "0.1.0"

from sealvault.approval import ApprovalChecker, request_approval
from sealvault.config import SealVaultConfig
from sealvault.constants import UNKNOWN_CONTENT_ADDRESS, Outcome, Phase
from sealvault.errors import (
    DecryptionFailed,
    EncryptionFailed,
    InvalidAddress,
    InvalidReference,
    LedgerReadError,
    LedgerSchemaError,
    LedgerUnavailable,
    NoOwnerRecord,
    NotFound,
    RecordCreationFailed,
    SealVaultError,
    StorageFailed,
    TransactionFailed,
    UserCancelled,
    VersionConflict,
    WalletNotConnected,
)
from sealvault.events import EventStream, OperationEvent, RecentEvents
from sealvault.executor import TransactionExecutor, classify_submission_error
from sealvault.ledger import SuiLedgerReader
from sealvault.models import (
    ConcurrencyToken,
    LedgerObject,
    ListedEntry,
    Mutation,
    ObjectRef,
    OwnerRecord,
    RetrievedSecret,
    SealedEnvelope,
    SealedSecret,
    SecretRef,
    SubmissionResult,
)
from sealvault.resolver import VersionResolver
from sealvault.retrieve import RetrieveCoordinator
from sealvault.save import SaveCoordinator
from sealvault.sealing import FernetSealer
from sealvault.stores import MemoryBlobStore, WalrusBlobStore
from sealvault.vault import SecretVault
from sealvault.view import OwnerRecordView

__all__ = [
    "ApprovalChecker",
    "ConcurrencyToken",
    "DecryptionFailed",
    "EncryptionFailed",
    "EventStream",
    "FernetSealer",
    "InvalidAddress",
    "InvalidReference",
    "LedgerObject",
    "LedgerReadError",
    "LedgerSchemaError",
    "LedgerUnavailable",
    "ListedEntry",
    "MemoryBlobStore",
    "Mutation",
    "NoOwnerRecord",
    "NotFound",
    "ObjectRef",
    "OperationEvent",
    "Outcome",
    "OwnerRecord",
    "OwnerRecordView",
    "Phase",
    "RecentEvents",
    "RecordCreationFailed",
    "RetrieveCoordinator",
    "RetrievedSecret",
    "SaveCoordinator",
    "SealVaultConfig",
    "SealVaultError",
    "SealedEnvelope",
    "SealedSecret",
    "SecretRef",
    "SecretVault",
    "StorageFailed",
    "SubmissionResult",
    "SuiLedgerReader",
    "TransactionExecutor",
    "TransactionFailed",
    "UNKNOWN_CONTENT_ADDRESS",
    "UserCancelled",
    "VersionConflict",
    "VersionResolver",
    "WalletNotConnected",
    "WalrusBlobStore",
    "classify_submission_error",
    "request_approval",
]
