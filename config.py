from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal

from dotenv import load_dotenv


def _database_url() -> str:
    url = os.getenv("DATABASE_URL", "").strip()
    if not url:
        if os.getenv("RENDER") == "true":
            raise RuntimeError("DATABASE_URL missing on Render; refusing to use SQLite.")
        url = "sqlite:///nft_claims.db"
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///nft_claims.db"

    polygon_rpc_url: str = "https://polygon-rpc.com"
    bsc_rpc_url: str = "https://bsc-dataseed.binance.org/"
    polygon_chain_id: int = 137
    rpc_timeout: float = 12.0

    nft_contract_address: str = ""
    payment_token_contract_address: str = ""
    receiving_address: str = ""
    private_key: str = ""

    native_payment_amount: Decimal = Decimal("10")
    token_payment_amount: Decimal = Decimal("10")
    mint_gas_limit: int = 300000

    cooldown_hours: int = 24
    receipt_poll_interval: float = 1.0
    # 0 disables the deadline
    receipt_timeout: float = 300.0

    rate_limit_storage_url: str = "memory://"
    rate_limit_enabled: bool = True
    log_level: str = "INFO"
    port: int = 5000

    @staticmethod
    def from_env() -> "Settings":
        load_dotenv()

        return Settings(
            database_url=_database_url(),
            polygon_rpc_url=os.getenv("POLYGON_RPC_URL", "https://polygon-rpc.com").strip(),
            bsc_rpc_url=os.getenv("BSC_RPC_URL", "https://bsc-dataseed.binance.org/").strip(),
            polygon_chain_id=int(os.getenv("POLYGON_CHAIN_ID", "137")),
            rpc_timeout=float(os.getenv("RPC_TIMEOUT_SECONDS", "12")),
            nft_contract_address=os.getenv("NFT_CONTRACT_ADDRESS", "").strip(),
            payment_token_contract_address=os.getenv("PAYMENT_TOKEN_CONTRACT_ADDRESS", "").strip(),
            receiving_address=os.getenv("RECEIVING_ADDRESS", "").strip(),
            private_key=os.getenv("PRIVATE_KEY", "").strip(),
            native_payment_amount=Decimal(os.getenv("NATIVE_PAYMENT_AMOUNT", "10")),
            token_payment_amount=Decimal(os.getenv("TOKEN_PAYMENT_AMOUNT", "10")),
            mint_gas_limit=int(os.getenv("MINT_GAS_LIMIT", "300000")),
            cooldown_hours=int(os.getenv("CLAIM_COOLDOWN_HOURS", "24")),
            receipt_poll_interval=float(os.getenv("RECEIPT_POLL_INTERVAL_SECONDS", "1")),
            receipt_timeout=float(os.getenv("RECEIPT_TIMEOUT_SECONDS", "300")),
            rate_limit_storage_url=os.getenv("RATE_LIMIT_STORAGE_URL", "memory://"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            port=int(os.getenv("PORT", "5000")),
        )
