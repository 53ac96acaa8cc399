"""Collaborator interfaces the coordinators depend on.

Defines the ``LedgerReader``, ``SigningWallet``, ``BlobStore`` and
``SecretSealer`` Protocols. Concrete implementations live in
``sealvault.ledger``, ``sealvault.stores`` and ``sealvault.sealing``;
wallets are supplied by the host application.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sealvault.models import (
        LedgerObject,
        Mutation,
        SealedEnvelope,
        SealedSecret,
        SubmissionResult,
    )


@runtime_checkable
class LedgerReader(Protocol):
    """Read-only ledger access.

    Implementations raise ``LedgerReadError`` on transient failures and
    ``LedgerSchemaError`` when the ledger returns something undecodable.
    """

    async def get_owned_objects(
        self, owner: str, struct_type: str
    ) -> list[LedgerObject]: ...

    async def get_object(self, object_id: str) -> LedgerObject | None: ...


@runtime_checkable
class SigningWallet(Protocol):
    """The user's wallet: connection state plus sign-and-submit.

    ``sign_and_submit`` may raise ``UserCancelled`` (or an error whose
    message names a user rejection) when the prompt is dismissed.
    """

    @property
    def connected(self) -> bool: ...

    @property
    def accounts(self) -> list[str]: ...

    @property
    def address(self) -> str | None: ...

    async def sign_and_submit(self, mutation: Mutation) -> SubmissionResult: ...


@runtime_checkable
class BlobStore(Protocol):
    """Content-addressable byte storage. ``get`` raises ``NotFound``."""

    async def put(self, data: bytes) -> str: ...

    async def get(self, address: str) -> bytes: ...


@runtime_checkable
class SecretSealer(Protocol):
    """Encryption capability producing self-describing envelopes."""

    async def seal(
        self, plaintext: str, context: str | None = None, approved: bool = False
    ) -> SealedEnvelope: ...

    async def unseal(self, data: bytes) -> SealedSecret: ...
