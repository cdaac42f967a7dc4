"""Shared fixtures: an app on SQLite with scripted RPC clients (no network)."""
from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from eth_utils import to_checksum_address

from app import create_app
from config import Settings
from extensions import db
import ledger
from minting import MintIssuer
from payments import NativePaymentNetwork, NetworkRegistry, TokenPaymentNetwork
from pipeline import ClaimService


RECEIVING_ADDRESS = to_checksum_address("0x" + "ab" * 20)
TOKEN_CONTRACT = to_checksum_address("0x" + "cd" * 20)
NFT_CONTRACT = to_checksum_address("0x" + "ef" * 20)
PRIVATE_KEY = "0x" + "11" * 32
WALLET = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
OTHER_WALLET = to_checksum_address("0x" + "99" * 20)
PAYMENT_HASH = "0x" + "12" * 32
MINT_HASH = "0x" + "34" * 32


class FakeRpcClient:
    """Stands in for chain.RpcClient; every call is recorded."""

    def __init__(self):
        # queued results for eth_getTransactionReceipt (None, dict or exception)
        self.receipts: list = []
        self.default_receipt = {"transactionHash": PAYMENT_HASH, "blockNumber": "0x10", "status": "0x1"}
        self.receipt_calls = 0
        self.gas_price = 30 * 10**9
        self.nonce = 7
        self.sent: list[str] = []
        self.send_error: Exception | None = None
        self.contract_results: dict = {}
        self.contract_calls: list[tuple] = []

    def get_transaction_receipt(self, tx_hash):
        self.receipt_calls += 1
        item = self.receipts.pop(0) if self.receipts else self.default_receipt
        if isinstance(item, Exception):
            raise item
        return item

    def get_gas_price(self):
        return self.gas_price

    def get_transaction_count(self, address, block="pending"):
        return self.nonce

    def send_raw_transaction(self, raw_tx):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(raw_tx)
        return MINT_HASH

    def call_contract(self, to, signature, arg_types, args, return_types):
        self.contract_calls.append((to, signature, tuple(args)))
        result = self.contract_results[signature]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def polygon_rpc():
    return FakeRpcClient()


@pytest.fixture
def bsc_rpc():
    rpc = FakeRpcClient()
    rpc.contract_results["decimals()"] = (18,)
    return rpc


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'claims.db'}",
        receiving_address=RECEIVING_ADDRESS,
        payment_token_contract_address=TOKEN_CONTRACT,
        nft_contract_address=NFT_CONTRACT,
        private_key=PRIVATE_KEY,
        native_payment_amount=Decimal("10"),
        token_payment_amount=Decimal("10"),
        receipt_poll_interval=0,
        receipt_timeout=0,
        rate_limit_enabled=False,
        log_level="DEBUG",
    )


@pytest.fixture
def service(settings, polygon_rpc, bsc_rpc):
    networks = NetworkRegistry([
        NativePaymentNetwork(polygon_rpc, settings.receiving_address, settings.native_payment_amount),
        TokenPaymentNetwork(bsc_rpc, settings.receiving_address, settings.token_payment_amount, token_address=TOKEN_CONTRACT),
    ])
    issuer = MintIssuer(polygon_rpc, NFT_CONTRACT, PRIVATE_KEY, chain_id=settings.polygon_chain_id)
    return ClaimService(networks, issuer, cooldown=timedelta(hours=24), poll_interval=0)


@pytest.fixture
def app(settings, service):
    app = create_app(settings, claim_service=service)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def templates(app_ctx):
    return [
        ledger.add_template("Common Cake", "ipfs://common.json", "ipfs://common.png", 70),
        ledger.add_template("Rare Cake", "ipfs://rare.json", "ipfs://rare.png", 25),
        ledger.add_template("Legendary Cake", "ipfs://legendary.json", "ipfs://legendary.png", 5),
    ]
