"""``LedgerReader`` over the Sui JSON-RPC API, using raw httpx.

Endpoints (JSON-RPC 2.0, POST to the fullnode URL):
- ``suix_getOwnedObjects(owner, {filter: {StructType}, options})`` ->
  ``{"data": [{"data": {...}} | {"error": {...}}], ...}``
- ``sui_getObject(id, options)`` -> ``{"data": {...}}`` or
  ``{"error": {"code": "notExists"}}``

Move struct values arrive as ``{"type": ..., "fields": {...}}`` and UIDs as
``{"id": "0x..."}``; both are unwrapped before ``LedgerObject`` is built.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any

import httpx

from sealvault.errors import LedgerReadError, LedgerSchemaError
from sealvault.models import LedgerObject

logger = logging.getLogger(__name__)

_OBJECT_OPTIONS = {"showContent": True, "showType": True, "showOwner": True}


def unwrap_move_value(value: Any) -> Any:
    """Flatten Move JSON: struct wrappers to their fields, UIDs to strings."""
    if isinstance(value, list):
        return [unwrap_move_value(v) for v in value]
    if not isinstance(value, dict):
        return value
    if set(value) == {"id"} and isinstance(value["id"], str):
        return value["id"]
    if "fields" in value and isinstance(value["fields"], dict) and "type" in value:
        return unwrap_move_value(value["fields"])
    return {k: unwrap_move_value(v) for k, v in value.items()}


def _owner_address(owner: Any) -> str | None:
    if isinstance(owner, dict) and isinstance(owner.get("AddressOwner"), str):
        return owner["AddressOwner"]
    return None


def parse_object(data: Any) -> LedgerObject:
    """Build a ``LedgerObject`` from an RPC ``SuiObjectData`` payload."""
    if not isinstance(data, dict):
        raise LedgerSchemaError("Object data is not a mapping")
    content = data.get("content")
    fields: dict[str, Any] = {}
    if content is not None:
        if not isinstance(content, dict) or not isinstance(content.get("fields"), dict):
            raise LedgerSchemaError(
                f"Object {data.get('objectId')} has no Move struct content"
            )
        fields = unwrap_move_value(content["fields"])
    return LedgerObject(
        object_id=data.get("objectId"),
        version=str(data["version"]) if "version" in data else None,
        digest=data.get("digest"),
        owner=_owner_address(data.get("owner")),
        content=fields,
    )


class SuiLedgerReader:
    """Read-only Sui fullnode client."""

    def __init__(self, rpc_url: str, timeout: float = 15.0) -> None:
        self._client = httpx.AsyncClient(
            base_url=rpc_url,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )
        self._ids = itertools.count(1)

    async def _call(self, method: str, params: list[Any]) -> Any:
        """POST one JSON-RPC request and return its ``result``."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            resp = await self._client.post("", json=payload)
        except httpx.HTTPError as exc:
            raise LedgerReadError(f"{method} failed: {exc}") from exc

        if resp.status_code >= 400:
            raise LedgerReadError(
                f"{method} failed (HTTP {resp.status_code}): {resp.text}"
            )
        try:
            body = resp.json()
        except ValueError as exc:
            raise LedgerReadError(f"{method} returned non-JSON body") from exc

        if not isinstance(body, dict):
            raise LedgerSchemaError(f"{method} returned a non-object body")
        if "error" in body:
            error = body["error"]
            if not isinstance(error, dict):
                raise LedgerReadError(f"{method} error: {error!r}")
            raise LedgerReadError(
                f"{method} error {error.get('code')}: {error.get('message')}"
            )
        if "result" not in body:
            raise LedgerSchemaError(f"{method} response has no result")
        return body["result"]

    async def get_owned_objects(
        self, owner: str, struct_type: str
    ) -> list[LedgerObject]:
        result = await self._call(
            "suix_getOwnedObjects",
            [owner, {"filter": {"StructType": struct_type}, "options": _OBJECT_OPTIONS}],
        )
        if not isinstance(result, dict) or not isinstance(result.get("data"), list):
            raise LedgerSchemaError("suix_getOwnedObjects result has no data list")

        objects: list[LedgerObject] = []
        for item in result["data"]:
            if not isinstance(item, dict):
                raise LedgerSchemaError("Owned object entry is not a mapping")
            if "error" in item:
                logger.warning("Skipping owned object error: %s", item["error"])
                continue
            objects.append(parse_object(item.get("data")))
        return objects

    async def get_object(self, object_id: str) -> LedgerObject | None:
        result = await self._call("sui_getObject", [object_id, _OBJECT_OPTIONS])
        if not isinstance(result, dict):
            raise LedgerSchemaError("sui_getObject result is not a mapping")
        if result.get("data") is None:
            error = result.get("error") or {}
            if not isinstance(error, dict):
                raise LedgerReadError(f"sui_getObject error: {error!r}")
            if error.get("code") in ("notExists", "deleted"):
                return None
            raise LedgerReadError(f"sui_getObject error: {error}")
        return parse_object(result["data"])

    # -- lifecycle ------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> SuiLedgerReader:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
