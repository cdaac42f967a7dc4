"""Minimal EVM JSON-RPC client (no web3.py).

Only the handful of calls the claim pipeline needs: receipts, gas price,
nonces, raw transaction broadcast and read-only contract calls.
"""

from __future__ import annotations

import json
from urllib import request as urlrequest
from urllib.error import URLError

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector


class RpcError(RuntimeError):
    """The node answered with a JSON-RPC ``error`` object."""

    def __init__(self, error):
        self.error = error
        if isinstance(error, dict):
            self.code = error.get("code")
            message = error.get("message") or str(error)
        else:
            self.code = None
            message = str(error)
        super().__init__(f"RPC error: {message}")


def _hex_to_int(x):
    if x is None:
        return 0
    return int(x, 16)


def encode_call(signature: str, arg_types: list[str], args: list) -> str:
    """ABI-encode a contract call, e.g. ``transfer(address,uint256)``."""
    selector = function_signature_to_4byte_selector(signature)
    return "0x" + (selector + encode(arg_types, args)).hex()


class RpcClient:
    def __init__(self, rpc_url: str, timeout: float = 12.0):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._next_id = 1

    def call(self, method: str, params=None):
        params = params or []
        payload = json.dumps({"jsonrpc": "2.0", "id": self._next_id, "method": method, "params": params}).encode("utf-8")
        self._next_id += 1
        req = urlrequest.Request(self.rpc_url, data=payload, headers={"Content-Type": "application/json"})
        with urlrequest.urlopen(req, timeout=self.timeout) as resp:
            data = json.loads(resp.read().decode("utf-8"))
        if "error" in data:
            raise RpcError(data["error"])
        return data.get("result")

    def get_transaction_receipt(self, tx_hash: str) -> dict | None:
        return self.call("eth_getTransactionReceipt", [tx_hash])

    def get_gas_price(self) -> int:
        return _hex_to_int(self.call("eth_gasPrice"))

    def get_transaction_count(self, address: str, block: str = "pending") -> int:
        return _hex_to_int(self.call("eth_getTransactionCount", [address, block]))

    def send_raw_transaction(self, raw_tx: str) -> str:
        return self.call("eth_sendRawTransaction", [raw_tx])

    def eth_call(self, to: str, data: str) -> str:
        return self.call("eth_call", [{"to": to, "data": data}, "latest"])

    def call_contract(self, to: str, signature: str, arg_types: list[str], args: list, return_types: list[str]):
        """Run a read-only contract method and decode its return values."""
        raw = self.eth_call(to, encode_call(signature, arg_types, args))
        if not raw or raw == "0x":
            raise RpcError(f"Empty result from {signature} on {to}")
        return decode(return_types, bytes.fromhex(raw[2:]))


# Transport failures worth retrying or reporting as "RPC unavailable".
TRANSIENT_ERRORS = (RpcError, URLError, OSError, ValueError)
