from __future__ import annotations

import logging
import threading

from eth_account import Account
from eth_utils import to_checksum_address

from chain import TRANSIENT_ERRORS, RpcClient, encode_call
from errors import MintFailed, UpstreamUnavailable


logger = logging.getLogger(__name__)

SAFE_MINT_SIGNATURE = "safeMint(address,uint256,string)"


class MintIssuer:
    """Signs ``safeMint`` calls on the NFT contract with the custodial key."""

    def __init__(self, client: RpcClient, contract_address: str, private_key: str, chain_id: int, gas_limit: int = 300000):
        self.client = client
        self.contract_address = to_checksum_address(contract_address) if contract_address else ""
        self.chain_id = int(chain_id)
        self.gas_limit = int(gas_limit)
        self._account = Account.from_key(private_key) if private_key else None
        # one signer, one nonce stream
        self._lock = threading.Lock()

    @property
    def address(self) -> str | None:
        return self._account.address if self._account else None

    def mint(self, to: str, token_id: int, metadata_uri: str) -> str:
        if self._account is None or not self.contract_address:
            raise MintFailed("Minting is not configured.")

        data = encode_call(SAFE_MINT_SIGNATURE, ["address", "uint256", "string"], [to, int(token_id), metadata_uri])

        with self._lock:
            try:
                gas_price = self.client.get_gas_price()
                nonce = self.client.get_transaction_count(self._account.address, "pending")
                tx = {
                    "nonce": nonce,
                    "gasPrice": gas_price,
                    "gas": self.gas_limit,
                    "to": self.contract_address,
                    "value": 0,
                    "data": data,
                    "chainId": self.chain_id,
                }
                signed = self._account.sign_transaction(tx)
                raw = "0x" + bytes(signed.raw_transaction).hex()
                tx_hash = self.client.send_raw_transaction(raw)
            except Exception as e:
                logger.error("Error minting token ID %s to %s: %s", token_id, to, e)
                raise MintFailed() from e

        if not tx_hash:
            logger.error("Node returned no hash for token ID %s.", token_id)
            raise MintFailed()

        logger.info("Token ID %s minted to %s. Transaction hash: %s", token_id, to, tx_hash)
        return tx_hash

    def owner_of(self, token_id: int) -> str:
        try:
            (owner,) = self.client.call_contract(
                self.contract_address, "ownerOf(uint256)", ["uint256"], [int(token_id)], ["address"]
            )
        except TRANSIENT_ERRORS as e:
            logger.warning("ownerOf(%s) failed: %s", token_id, e)
            raise UpstreamUnavailable(f"Could not look up the owner of token {token_id}.") from e
        return owner
