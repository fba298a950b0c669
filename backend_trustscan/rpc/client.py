"""
Single Solana JSON-RPC endpoint handle.

Responsibilities:
- POST JSON-RPC 2.0 requests to one endpoint with httpx.
- Raise on transport errors, non-2xx responses, RPC error objects and missing results.
- Convert getAccountInfo / getSignaturesForAddress results into engine models.

Every method is fallible and is meant to be called through EndpointPool.execute.
"""

from __future__ import annotations

from typing import Any

import httpx

from backend_trustscan.config.env import mask_url
from backend_trustscan.core.exceptions import RpcError
from backend_trustscan.core.models import AccountState, SignatureInfo
from backend_trustscan.trustscan_logging import get_logger, short_id

logger = get_logger(__name__)

DEFAULT_COMMITMENT = "confirmed"
MAX_SIGNATURES_PER_REQUEST = 1000

# JSON-RPC request id counter
_request_id = 0


def _next_id() -> int:
    global _request_id
    _request_id += 1
    return _request_id


def build_rpc_body(method: str, params: list[Any] | dict[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": _next_id(), "method": method, "params": params}


class RpcEndpoint:
    """
    One JSON-RPC endpoint. Owns its httpx.AsyncClient unless one is passed in.
    """

    def __init__(
        self,
        url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout_sec: float = 15.0,
        commitment: str = DEFAULT_COMMITMENT,
    ) -> None:
        if not url or not url.strip():
            raise ValueError("url must be non-empty")
        self.url = url.strip()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_sec))
        self._commitment = commitment

    @property
    def display_url(self) -> str:
        return mask_url(self.url)

    def __repr__(self) -> str:
        return f"RpcEndpoint({self.display_url!r})"

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def call(self, method: str, params: list[Any]) -> Any:
        """Perform one JSON-RPC call; raise on transport or RPC error. Returns `result`."""
        body = build_rpc_body(method, params)
        resp = await self._client.post(self.url, json=body)
        resp.raise_for_status()
        try:
            data = resp.json()
        except ValueError as e:
            raise RpcError(f"malformed JSON from {method}", endpoint=self.display_url) from e
        if not isinstance(data, dict):
            raise RpcError(f"unexpected {method} response shape", endpoint=self.display_url)
        if "error" in data:
            err = data["error"] or {}
            code = err.get("code") if isinstance(err, dict) else None
            message = err.get("message", err) if isinstance(err, dict) else err
            raise RpcError(
                f"Solana RPC error: {message} (code={code})",
                rpc_code=code,
                endpoint=self.display_url,
            )
        if "result" not in data:
            raise RpcError(f"Solana RPC returned no result for {method}", endpoint=self.display_url)
        return data["result"]

    async def get_account_info(self, address: str) -> AccountState | None:
        """Return account state, or None when the account does not exist."""
        result = await self.call(
            "getAccountInfo",
            [address, {"encoding": "base64", "commitment": self._commitment}],
        )
        value = result.get("value") if isinstance(result, dict) else None
        if value is None:
            return None
        if not isinstance(value, dict) or "owner" not in value:
            raise RpcError("malformed getAccountInfo value", endpoint=self.display_url)
        return AccountState.from_rpc_value(address, value)

    async def get_balance(self, address: str) -> int:
        result = await self.call("getBalance", [address, {"commitment": self._commitment}])
        value = result.get("value") if isinstance(result, dict) else result
        if not isinstance(value, int):
            raise RpcError("malformed getBalance value", endpoint=self.display_url)
        return value

    async def get_signatures_for_address(
        self,
        address: str,
        *,
        limit: int = MAX_SIGNATURES_PER_REQUEST,
        before: str | None = None,
    ) -> list[SignatureInfo]:
        """One page of signatures, newest first."""
        opts: dict[str, Any] = {"limit": limit, "commitment": self._commitment}
        if before is not None:
            opts["before"] = before
        result = await self.call("getSignaturesForAddress", [address, opts])
        if not isinstance(result, list):
            raise RpcError("malformed getSignaturesForAddress result", endpoint=self.display_url)
        infos: list[SignatureInfo] = []
        for item in result:
            if not isinstance(item, dict) or "signature" not in item:
                continue
            try:
                infos.append(SignatureInfo.from_rpc_item(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("rpc_skip_signature_item", subject=short_id(address), error=str(e))
        return infos

    async def get_parsed_transaction(self, signature: str) -> dict[str, Any] | None:
        """Return the jsonParsed transaction, or None when it is unknown to the node."""
        result = await self.call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "maxSupportedTransactionVersion": 0,
                    "commitment": self._commitment,
                },
            ],
        )
        if result is None:
            return None
        if not isinstance(result, dict):
            raise RpcError("malformed getTransaction result", endpoint=self.display_url)
        return result

    async def get_program_accounts(
        self,
        program_id: str,
        filters: list[dict[str, Any]],
        *,
        data_slice: dict[str, int] | None = None,
    ) -> list[dict[str, Any]]:
        """Return raw `{pubkey, account}` items for accounts owned by program_id."""
        opts: dict[str, Any] = {
            "encoding": "base64",
            "filters": filters,
            "commitment": self._commitment,
        }
        if data_slice is not None:
            opts["dataSlice"] = data_slice
        result = await self.call("getProgramAccounts", [program_id, opts])
        if not isinstance(result, list):
            raise RpcError("malformed getProgramAccounts result", endpoint=self.display_url)
        return result
