"""Data model for owner records, secret references and sealed envelopes.

Pure data — no I/O. Everything that crosses the ledger-read boundary is
decoded strictly: a missing or wrongly typed field raises
``LedgerSchemaError`` instead of being defaulted.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any

from sealvault.constants import ENVELOPE_VERSION, UNKNOWN_CONTENT_ADDRESS
from sealvault.errors import InvalidAddress, LedgerSchemaError

logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{1,64}$")


def validate_address(address: str) -> str:
    """Return ``address`` unchanged if it is a well-formed principal address."""
    if not isinstance(address, str) or not _ADDRESS_RE.match(address):
        raise InvalidAddress(f"Invalid principal address: {address!r}")
    return address


def normalize_address(address: str) -> str:
    """Canonical form: lowercase hex zero-padded to 64 digits."""
    validate_address(address)
    return "0x" + address[2:].lower().zfill(64)


def _require(data: dict[str, Any], key: str, kind: type, where: str) -> Any:
    if key not in data:
        raise LedgerSchemaError(f"{where}: missing field '{key}'")
    value = data[key]
    if not isinstance(value, kind):
        raise LedgerSchemaError(
            f"{where}: field '{key}' must be {kind.__name__}, "
            f"got {type(value).__name__}"
        )
    return value


# ---------------------------------------------------------------------------
# Identity and concurrency tokens
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConcurrencyToken:
    """The (version, digest) pair a ledger mutation must reference."""

    version: str
    digest: str


@dataclass(frozen=True)
class ObjectRef:
    """Ledger object identity bound to the token observed at read time."""

    object_id: str
    version: str
    digest: str

    @property
    def token(self) -> ConcurrencyToken:
        return ConcurrencyToken(self.version, self.digest)


@dataclass(frozen=True)
class LedgerObject:
    """A ledger object as returned by a ``LedgerReader``."""

    object_id: str
    version: str
    digest: str
    owner: str | None = None
    content: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("object_id", "version", "digest"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise LedgerSchemaError(
                    f"Ledger object is missing a valid '{name}': {value!r}"
                )
        if not isinstance(self.content, dict):
            raise LedgerSchemaError("Ledger object content must be a mapping")

    @property
    def ref(self) -> ObjectRef:
        return ObjectRef(self.object_id, self.version, self.digest)


# ---------------------------------------------------------------------------
# SecretRef / OwnerRecord
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SecretRef:
    """Pointer from an owner record to a sealed blob."""

    entry_id: str
    label: str
    content_address: str

    @property
    def is_retrievable(self) -> bool:
        return self.content_address != UNKNOWN_CONTENT_ADDRESS

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.entry_id,
            "label": self.label,
            "walrus_id": self.content_address,
        }

    @classmethod
    def from_fields(cls, data: Any, index: int) -> SecretRef:
        """Decode one ledger entry. Empty addresses map to the sentinel."""
        where = f"entry {index}"
        if not isinstance(data, dict):
            raise LedgerSchemaError(f"{where}: expected a mapping")
        entry_id = _require(data, "id", str, where)
        label = _require(data, "label", str, where)
        address = _require(data, "walrus_id", str, where)
        if not label:
            raise LedgerSchemaError(f"{where}: label is empty")
        if not address:
            logger.warning(
                "Entry %s (%s) has an empty content address; marking as %s.",
                index, entry_id, UNKNOWN_CONTENT_ADDRESS,
            )
            address = UNKNOWN_CONTENT_ADDRESS
        return cls(entry_id=entry_id, label=label, content_address=address)


@dataclass(frozen=True)
class OwnerRecord:
    """Ledger-resident container of one principal's secret references."""

    object_id: str
    owner: str
    entries: tuple[SecretRef, ...]
    version: str
    digest: str

    @property
    def ref(self) -> ObjectRef:
        return ObjectRef(self.object_id, self.version, self.digest)

    def find_by_address(self, content_address: str) -> SecretRef | None:
        for entry in reversed(self.entries):
            if entry.content_address == content_address:
                return entry
        return None

    @classmethod
    def from_ledger_object(cls, obj: LedgerObject) -> OwnerRecord:
        """Decode an owner record, raising ``LedgerSchemaError`` on mismatch."""
        where = f"owner record {obj.object_id}"
        owner = _require(obj.content, "owner", str, where)
        raw_entries = _require(obj.content, "entries", list, where)
        entries = tuple(
            SecretRef.from_fields(raw, index)
            for index, raw in enumerate(raw_entries)
        )
        return cls(
            object_id=obj.object_id,
            owner=owner,
            entries=entries,
            version=obj.version,
            digest=obj.digest,
        )


# ---------------------------------------------------------------------------
# Sealed envelopes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SealedSecret:
    """Decrypted envelope contents. ``approved`` is fixed at seal time."""

    plaintext: str
    seal_id: str
    timestamp: int  # epoch milliseconds
    approved: bool = False
    context: str | None = None
    version: str = ENVELOPE_VERSION

    def __repr__(self) -> str:
        return (
            f"SealedSecret(seal_id={self.seal_id!r}, timestamp={self.timestamp}, "
            f"approved={self.approved}, context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "password": self.plaintext,
            "website": self.context,
            "sealId": self.seal_id,
            "timestamp": self.timestamp,
            "approved": self.approved,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Any) -> SealedSecret:
        if not isinstance(data, dict):
            raise ValueError("envelope is not a mapping")
        plaintext = data.get("password")
        seal_id = data.get("sealId")
        timestamp = data.get("timestamp")
        approved = data.get("approved")
        context = data.get("website")
        if not isinstance(plaintext, str):
            raise ValueError("envelope has no plaintext")
        if not isinstance(seal_id, str) or not seal_id:
            raise ValueError("envelope has no seal id")
        if not isinstance(timestamp, int) or isinstance(timestamp, bool):
            raise ValueError("envelope timestamp must be an integer")
        if not isinstance(approved, bool):
            raise ValueError("envelope approval flag must be a boolean")
        if context is not None and not isinstance(context, str):
            raise ValueError("envelope context must be a string")
        return cls(
            plaintext=plaintext,
            seal_id=seal_id,
            timestamp=timestamp,
            approved=approved,
            context=context,
            version=str(data.get("version", ENVELOPE_VERSION)),
        )


@dataclass(frozen=True)
class SealedEnvelope:
    """Ciphertext ready for the blob store plus its public metadata."""

    data: bytes
    seal_id: str
    timestamp: int
    approved: bool


@dataclass(frozen=True)
class RetrievedSecret:
    plaintext: str
    approved: bool
    seal_id: str
    context: str | None = None

    def __repr__(self) -> str:
        return (
            f"RetrievedSecret(seal_id={self.seal_id!r}, approved={self.approved}, "
            f"context={self.context!r})"
        )


@dataclass(frozen=True)
class ListedEntry:
    ref: SecretRef
    approved: bool


# ---------------------------------------------------------------------------
# Mutations and submission results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Mutation:
    """A ledger entry-function call.

    ``object_id`` is the owned object the call consumes, if any, and
    ``token`` the version it was read at (bound by the executor);
    ``arguments`` are pure (by-value) string arguments that follow it.
    """

    target: str
    object_id: str | None = None
    arguments: tuple[str, ...] = ()
    token: ConcurrencyToken | None = None

    def bind(self, ref: ObjectRef) -> Mutation:
        """Return a copy pinned to the token of ``ref``."""
        if self.object_id != ref.object_id:
            return self
        return replace(self, token=ref.token)


@dataclass(frozen=True)
class SubmissionResult:
    digest: str
    status: str
    error: str | None = None
    created_object_ids: tuple[str, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.status == "success"

    @classmethod
    def from_response(cls, data: Any) -> SubmissionResult:
        """Decode a raw wallet response (``digest`` + ``effects``)."""
        if not isinstance(data, dict):
            raise LedgerSchemaError("Submission response is not a mapping")
        digest = _require(data, "digest", str, "submission response")
        effects = _require(data, "effects", dict, "submission response")
        status_obj = _require(effects, "status", dict, "submission effects")
        status = _require(status_obj, "status", str, "submission status")
        error = status_obj.get("error")
        created: list[str] = []
        for item in effects.get("created", []):
            reference = item.get("reference") if isinstance(item, dict) else None
            object_id = reference.get("objectId") if isinstance(reference, dict) else None
            if not isinstance(object_id, str):
                raise LedgerSchemaError("Created object has no objectId")
            created.append(object_id)
        return cls(
            digest=digest,
            status=status,
            error=error if isinstance(error, str) else None,
            created_object_ids=tuple(created),
        )
