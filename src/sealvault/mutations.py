"""Builders for the owner-record entry functions."""

from __future__ import annotations

from sealvault.constants import (
    FN_CREATE_RECORD,
    FN_SAVE_ENTRY,
    FN_SEAL_APPROVE,
    RECORD_MODULE,
)
from sealvault.models import Mutation


def _target(package_id: str, function: str) -> str:
    return f"{package_id}::{RECORD_MODULE}::{function}"


def create_owner_record(package_id: str) -> Mutation:
    return Mutation(target=_target(package_id, FN_CREATE_RECORD))


def append_entry(
    package_id: str, object_id: str, label: str, content_address: str
) -> Mutation:
    return Mutation(
        target=_target(package_id, FN_SAVE_ENTRY),
        object_id=object_id,
        arguments=(label, content_address),
    )


def seal_approve(package_id: str, object_id: str) -> Mutation:
    return Mutation(target=_target(package_id, FN_SEAL_APPROVE), object_id=object_id)
