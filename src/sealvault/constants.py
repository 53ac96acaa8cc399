"""Constants for sealed-secret storage and ledger coordination."""

from enum import Enum


UNKNOWN_CONTENT_ADDRESS = "unknown"  # corrupt or missing blob reference
ENVELOPE_VERSION = "2.1-seal"

# Move module holding the owner-record type and its entry functions.
RECORD_MODULE = "password_manager"
RECORD_STRUCT = "UserRecords"
FN_CREATE_RECORD = "create_user_records"
FN_SAVE_ENTRY = "save_entry"
FN_SEAL_APPROVE = "seal_approve"

# Retry budgets: reads and submissions are bounded independently.
READ_MAX_ATTEMPTS = 3
READ_BACKOFF_SECS = 1.5
SUBMIT_MAX_ATTEMPTS = 5
SUBMIT_BACKOFF_SECS = 2.0
RECORD_POLL_ATTEMPTS = 5
RECORD_POLL_BACKOFF_SECS = 1.0


class Phase(str, Enum):
    """Named steps reported on the event stream."""

    RESOLVE = "resolve"
    SUBMIT = "submit"
    ENCRYPT = "encrypt"
    STORE = "store"
    ENSURE_RECORD = "ensure_record"
    APPEND = "append"
    FETCH = "fetch"
    DECRYPT = "decrypt"
    LIST = "list"
    APPROVAL = "approval"


class Outcome(str, Enum):
    STARTED = "started"
    SUCCEEDED = "succeeded"
    RETRYING = "retrying"
    DEGRADED = "degraded"
    FAILED = "failed"
