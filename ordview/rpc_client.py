"""Typed JSON-RPC client for Bitcoin Core nodes.

The client backs the live side of the inscription views: the mempool snapshot
lists pending transaction ids and fetches their bodies through it, and the view
assembler falls back to it when the confirmed index is missing a transaction.
Configuration is shared via ``load_rpc_config`` so CLI commands and library
callers reuse a consistent connection surface.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, Optional

import requests
from requests import RequestException, Response

from .config import RPCConfig
from .model import Transaction

logger = logging.getLogger(__name__)


class RPCError(RuntimeError):
    """Raised when the node responds with an RPC error."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message


def format_rpc_hint(error_obj: dict[str, Any] | RPCError | None) -> str | None:
    """Return a human-friendly hint for common read-path JSON-RPC errors."""

    if error_obj is None:
        return None

    code = None
    message = ""
    if isinstance(error_obj, RPCError):
        code = error_obj.code
        message = error_obj.message
    elif isinstance(error_obj, dict):
        code = error_obj.get("code")
        message = str(error_obj.get("message", ""))

    if code == -5 and "No such mempool or blockchain transaction" in message:
        return (
            "The node does not know this transaction. It may have left the mempool, or the node "
            "needs -txindex=1 to serve confirmed transactions that do not touch its wallet."
        )
    if code == -28:
        return "The node is still warming up (loading blocks or verifying the chain). Retry shortly."
    if code == -32601:
        return "The node does not support this RPC method; check the Bitcoin Core version."
    return None


class RPCTransportError(RuntimeError):
    """Raised when the RPC endpoint is unreachable or returns malformed data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BitcoinRPCClient:
    """Typed JSON-RPC client for Bitcoin Core compatible nodes.

    Each helper maps directly to an RPC method exposed by the node and returns
    the parsed JSON response. ``list_pending_transaction_ids`` and
    ``get_raw_transaction`` are the two operations consumed by the mempool
    snapshot; the latter returns a decoded :class:`~ordview.model.Transaction`.
    """

    def __init__(self, config: RPCConfig) -> None:
        self.config = config
        self._session = requests.Session()
        self._base_url = config.base_url

    def call(self, method: str, params: Optional[list[Any]] = None) -> Any:
        """Perform a JSON-RPC request."""

        payload = {
            "jsonrpc": "1.0",
            "id": str(uuid.uuid4()),
            "method": method,
            "params": params or [],
        }
        logger.debug("RPC call %s params=%s", method, params)
        try:
            response = self._session.post(
                self._base_url,
                data=json.dumps(payload),
                headers={"content-type": "application/json"},
                auth=(self.config.user, self.config.password),
                timeout=self.config.timeout,
            )
        except RequestException as exc:
            logger.error(
                "RPC connection failed: %s",
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise RPCTransportError(
                "RPC connection failed. Ensure your Bitcoin node is reachable, authentication is valid, "
                "and BTC_RPC_* variables (or ~/.ordview.yaml) point to the right host and port."
            ) from exc

        result = self._parse_response(response)
        if result.get("error"):
            error = result["error"]
            raise RPCError(error.get("code", -1), error.get("message", "unknown"))
        return result.get("result")

    def _parse_response(self, response: Response) -> Dict[str, Any]:
        # Bitcoin Core reports JSON-RPC errors with HTTP 404/500 and a JSON body;
        # only fall back to a transport error when no such body is present.
        try:
            body = response.json()
        except ValueError as exc:
            if response.status_code == 401:
                raise RPCTransportError(
                    "Unauthorized (401). Ensure BTC_RPC_USER/BTC_RPC_PASSWORD (or your .ordview.yaml) "
                    "contain valid credentials.",
                    status_code=response.status_code,
                ) from exc
            if not response.ok:
                logger.error("RPC HTTP error %s from %s", response.status_code, response.url)
                raise RPCTransportError(
                    "RPC server returned an HTTP error; check the URL, authentication, and BTC_RPC_* settings.",
                    status_code=response.status_code,
                ) from exc
            logger.debug("RPC JSON parse error: %s", response.text, exc_info=True)
            raise RPCTransportError("RPC server returned malformed JSON") from exc

        if not isinstance(body, dict):
            raise RPCTransportError("RPC server returned an unexpected payload")
        if not response.ok and not body.get("error"):
            logger.error("RPC error body: %s", body)
            raise RPCTransportError(
                f"RPC server returned HTTP {response.status_code}", status_code=response.status_code
            )
        return body

    # Convenience wrappers -------------------------------------------------

    def getrawmempool(self) -> list[str]:
        return self.call("getrawmempool")

    def getrawtransaction(self, txid: str, verbose: bool = False) -> Any:
        return self.call("getrawtransaction", [txid, int(verbose)])

    def list_pending_transaction_ids(self) -> list[str]:
        """Return the ids of every transaction currently in the node's mempool."""

        return [str(txid) for txid in self.getrawmempool() or []]

    def get_raw_transaction(self, txid: str) -> Transaction:
        """Fetch and decode a transaction in a single RPC call."""

        verbose = self.getrawtransaction(txid, verbose=True)
        if not isinstance(verbose, dict):
            raise RPCTransportError(f"Node returned a non-object transaction for {txid}")
        return Transaction.from_rpc(verbose)


__all__ = ["BitcoinRPCClient", "RPCError", "RPCTransportError", "format_rpc_hint"]
