"""Endpoints, package id and retry budgets for one vault.

Only ``package_id`` is required. Values are never read from the
environment; the host decides where they come from and hands the result
to ``SecretVault.from_config``.
"""

from dataclasses import dataclass

from sealvault.constants import (
    READ_BACKOFF_SECS,
    READ_MAX_ATTEMPTS,
    RECORD_MODULE,
    RECORD_POLL_ATTEMPTS,
    RECORD_POLL_BACKOFF_SECS,
    RECORD_STRUCT,
    SUBMIT_BACKOFF_SECS,
    SUBMIT_MAX_ATTEMPTS,
)


@dataclass(frozen=True)
class SealVaultConfig:
    package_id: str
    rpc_url: str = "https://fullnode.testnet.sui.io:443"
    publisher_url: str = "https://publisher.walrus-testnet.walrus.space"
    aggregator_url: str = "https://aggregator.walrus-testnet.walrus.space"
    storage_epochs: int = 1
    read_max_attempts: int = READ_MAX_ATTEMPTS
    read_backoff_secs: float = READ_BACKOFF_SECS
    submit_max_attempts: int = SUBMIT_MAX_ATTEMPTS
    submit_backoff_secs: float = SUBMIT_BACKOFF_SECS
    record_poll_attempts: int = RECORD_POLL_ATTEMPTS
    record_poll_backoff_secs: float = RECORD_POLL_BACKOFF_SECS

    @property
    def record_type(self) -> str:
        return f"{self.package_id}::{RECORD_MODULE}::{RECORD_STRUCT}"
