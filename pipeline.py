"""Claim-and-mint coordination.

request_claim:      payment request -> eligibility gate
verify_transaction: replay and claim check -> receipt poll ->
                    weighted pick -> token id -> mint -> record
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta

from eth_utils import is_hex

import ledger
import selector
from eligibility import Denied, check_and_reserve, normalize_address
from errors import (
    CooldownActive,
    EmptyCatalog,
    InvalidTransactionHash,
    MintFailed,
    NoOpenClaim,
    PaymentAlreadyUsed,
    PersistenceError,
)
from minting import MintIssuer
from models_nft import Nft, NftTemplate, utcnow
from payments import NetworkRegistry, build_payment_request
from poller import await_mined


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MintResult:
    address: str
    template: NftTemplate
    nft: Nft
    transaction_hash: str


class ClaimService:
    def __init__(
        self,
        networks: NetworkRegistry,
        issuer: MintIssuer,
        cooldown: timedelta = timedelta(hours=24),
        poll_interval: float = 1.0,
        receipt_timeout: float | None = None,
        rng: random.Random | None = None,
    ):
        self.networks = networks
        self.issuer = issuer
        self.cooldown = cooldown
        self.poll_interval = poll_interval
        self.receipt_timeout = receipt_timeout or None
        self.rng = rng

    def request_claim(self, address, network_key: str, email: str | None = None, now: datetime | None = None) -> dict:
        # Build the request before touching the ledger so a bad network or an
        # RPC outage does not start the cooldown.
        wallet = normalize_address(address)
        payment_request = build_payment_request(wallet, network_key, self.networks)

        decision = check_and_reserve(wallet, now=now, cooldown=self.cooldown, email=email)
        if isinstance(decision, Denied):
            raise CooldownActive(retry_after=decision.retry_after.total_seconds())

        return payment_request

    def verify_transaction(
        self,
        tx_hash: str,
        address,
        network_key: str,
        cancel: threading.Event | None = None,
        now: datetime | None = None,
    ) -> MintResult:
        wallet = normalize_address(address)
        network = self.networks.get(network_key)
        tx_hash = (tx_hash or "").strip().lower() if isinstance(tx_hash, str) else ""
        if len(tx_hash) != 66 or not tx_hash.startswith("0x") or not is_hex(tx_hash):
            raise InvalidTransactionHash()

        if ledger.payment_used(tx_hash):
            logger.warning("Payment %s was already exchanged; rejected for %s.", tx_hash, wallet)
            raise PaymentAlreadyUsed()
        if not ledger.has_open_claim(wallet, now or utcnow(), self.cooldown):
            logger.info("%s verified a payment without an open claim.", wallet)
            raise NoOpenClaim()

        receipt = await_mined(
            network.client,
            tx_hash,
            poll_interval=self.poll_interval,
            timeout=self.receipt_timeout,
            cancel=cancel,
        )
        logger.info("Transaction confirmed: %s (block %s)", tx_hash, receipt.get("blockNumber"))

        try:
            template = selector.pick(ledger.list_templates(), rng=self.rng)
        except EmptyCatalog:
            logger.error("No NFT templates to mint for confirmed payment %s from %s.", tx_hash, wallet)
            raise
        logger.info("Picked %s as NFT to generate.", template.name)

        token_id = ledger.reserve_token_id()
        try:
            mint_hash = self.issuer.mint(wallet, token_id, template.metadata_uri)
        except MintFailed:
            # Payment is already on-chain; this needs manual reconciliation.
            logger.error(
                "Mint failed after confirmed payment: wallet=%s payment=%s network=%s token_id=%s template=%s",
                wallet, tx_hash, network.key, token_id, template.name,
            )
            raise

        try:
            nft = ledger.record_nft(template, token_id, wallet, network.key, tx_hash, mint_hash)
        except PersistenceError:
            logger.error(
                "Minted but not recorded: wallet=%s payment=%s network=%s token_id=%s mint=%s template=%s",
                wallet, tx_hash, network.key, token_id, mint_hash, template.name,
            )
            raise
        return MintResult(address=wallet, template=template, nft=nft, transaction_hash=mint_hash)
