"""Payment requests the claimant signs in their wallet.

Each supported network is one class; the registry maps the wire identifier the
frontend sends (``polygon``, ``bnbSmartChain``) to a configured instance.
"""

from __future__ import annotations

import logging
import threading
from decimal import Decimal

from eth_utils import to_checksum_address

from chain import TRANSIENT_ERRORS, RpcClient, encode_call
from errors import UnsupportedNetwork, UpstreamUnavailable


logger = logging.getLogger(__name__)

NETWORK_POLYGON = "polygon"
NETWORK_BSC = "bnbSmartChain"

NATIVE_DECIMALS = 18
PAYMENT_GAS_LIMIT = 100000


def _scale(amount: Decimal, decimals: int) -> int:
    return int(Decimal(amount) * (Decimal(10) ** int(decimals)))


class PaymentNetwork:
    key = ""

    def __init__(self, client: RpcClient, receiving_address: str, amount: Decimal):
        self.client = client
        self.receiving_address = to_checksum_address(receiving_address) if receiving_address else ""
        self.amount = Decimal(amount)

    def payment_request(self, wallet: str) -> dict:
        raise NotImplementedError


class NativePaymentNetwork(PaymentNetwork):
    """Fee paid as a plain transfer of the chain's native coin."""

    key = NETWORK_POLYGON

    def payment_request(self, wallet: str) -> dict:
        return {
            "from": wallet,
            "to": self.receiving_address,
            "value": hex(_scale(self.amount, NATIVE_DECIMALS)),
            "gas": hex(PAYMENT_GAS_LIMIT),
        }


class TokenPaymentNetwork(PaymentNetwork):
    """Fee paid as an ERC-20 ``transfer`` to the receiving address."""

    key = NETWORK_BSC

    def __init__(self, client: RpcClient, receiving_address: str, amount: Decimal, token_address: str):
        super().__init__(client, receiving_address, amount)
        self.token_address = to_checksum_address(token_address) if token_address else ""
        self._decimals = None
        self._lock = threading.Lock()

    def decimals(self) -> int:
        with self._lock:
            if self._decimals is None:
                try:
                    (value,) = self.client.call_contract(self.token_address, "decimals()", [], [], ["uint8"])
                except TRANSIENT_ERRORS as e:
                    logger.warning("decimals() lookup on %s failed: %s", self.token_address, e)
                    raise UpstreamUnavailable() from e
                self._decimals = int(value)
                logger.info("Payment token %s uses %d decimals.", self.token_address, self._decimals)
            return self._decimals

    def raw_amount(self) -> int:
        return _scale(self.amount, self.decimals())

    def payment_request(self, wallet: str) -> dict:
        data = encode_call(
            "transfer(address,uint256)",
            ["address", "uint256"],
            [self.receiving_address, self.raw_amount()],
        )
        return {
            "from": wallet,
            "to": self.token_address,
            "data": data,
            "value": "0x0",
            "gas": hex(PAYMENT_GAS_LIMIT),
        }


class NetworkRegistry:
    def __init__(self, networks: list[PaymentNetwork]):
        self._networks = {n.key: n for n in networks}

    def get(self, key: str) -> PaymentNetwork:
        network = self._networks.get((key or "").strip())
        if network is None:
            raise UnsupportedNetwork(f"Unsupported wallet network: {key or 'none'}.")
        return network

    def keys(self) -> list[str]:
        return list(self._networks)


def build_payment_request(wallet: str, network_key: str, registry: NetworkRegistry) -> dict:
    return registry.get(network_key).payment_request(wallet)
