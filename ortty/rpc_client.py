"""Typed JSON-RPC client for Bitcoin Core nodes.

The scanner only needs read access to blocks and transactions, so the client
is deliberately thin: each helper maps to one RPC method and returns the
parsed JSON ``result``. Connection details come from
:func:`ortty.config.load_rpc_config`. Retries are left to the caller.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, Optional

import requests
from requests import RequestException, Response

from .config import ConfigurationError, RPCConfig

logger = logging.getLogger(__name__)

__all__ = [
    "BitcoinRPCClient",
    "ConfigurationError",
    "RPCError",
    "RPCTransportError",
]


class RPCError(RuntimeError):
    """Raised when the node responds with an RPC error object."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message


class RPCTransportError(RuntimeError):
    """Raised when the RPC endpoint is unreachable or returns malformed data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BitcoinRPCClient:
    """JSON-RPC client for Bitcoin Core compatible nodes."""

    def __init__(self, config: RPCConfig, timeout: float = 30) -> None:
        self.config = config
        self.timeout = timeout
        self._session = requests.Session()

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
                self.config.base_url,
                data=json.dumps(payload),
                headers={"content-type": "application/json"},
                auth=self.config.auth(),
                timeout=self.timeout,
            )
        except RequestException as exc:
            logger.error(
                "RPC connection failed: %s",
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise RPCTransportError(
                "RPC connection failed. Ensure your Bitcoin node is reachable and BITCOIN_* "
                "variables (or ~/.ortty.yaml) point to the right host and port."
            ) from exc

        self._raise_for_status(response)

        try:
            result = response.json()
        except ValueError as exc:
            logger.debug("RPC JSON parse error: %s", response.text, exc_info=True)
            raise RPCTransportError("RPC server returned malformed JSON") from exc
        if not isinstance(result, dict):
            raise RPCTransportError("RPC server returned an unexpected response shape")
        if result.get("error"):
            error = result["error"]
            raise RPCError(error.get("code", -1), error.get("message", "unknown"))
        return result.get("result")

    def _raise_for_status(self, response: Response) -> None:
        if response.ok:
            return
        # Bitcoin Core reports RPC errors with HTTP 500 and a JSON body.
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            error = body["error"]
            raise RPCError(error.get("code", -1), error.get("message", "unknown"))

        logger.error("RPC HTTP error %s from %s", response.status_code, response.url)
        if response.status_code == 401:
            raise RPCTransportError(
                "Unauthorized (401). Check BITCOIN_USER/BITCOIN_PASS or BITCOIN_COOKIE.",
                status_code=response.status_code,
            )
        raise RPCTransportError(
            f"RPC server returned HTTP {response.status_code}; check the URL and authentication.",
            status_code=response.status_code,
        )

    # Convenience wrappers -------------------------------------------------

    def getblockchaininfo(self) -> Dict[str, Any]:
        return self.call("getblockchaininfo")

    def getblockcount(self) -> int:
        return int(self.call("getblockcount"))

    def getblockhash(self, height: int) -> str:
        return self.call("getblockhash", [height])

    def getblock(self, block_hash: str, verbosity: int = 2) -> Dict[str, Any]:
        return self.call("getblock", [block_hash, verbosity])

    def getrawtransaction(
        self, txid: str, verbose: bool = True, blockhash: str | None = None
    ) -> Any:
        params: list[Any] = [txid, verbose]
        if blockhash is not None:
            params.append(blockhash)
        return self.call("getrawtransaction", params)

    def getblock_by_height(self, height: int) -> Dict[str, Any]:
        """Retrieve a block JSON payload by height using verbosity=2."""

        return self.getblock(self.getblockhash(height), verbosity=2)
