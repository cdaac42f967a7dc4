from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from eth_utils import is_address, to_checksum_address

import ledger
from errors import InvalidAddress
from models_nft import utcnow


logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN = timedelta(hours=24)


@dataclass(frozen=True)
class Allowed:
    wallet: str


@dataclass(frozen=True)
class Denied:
    wallet: str
    reason: str
    retry_after: timedelta


def normalize_address(address) -> str:
    """Checksum form of ``address``; raises InvalidAddress if malformed.

    Mixed-case input must carry a valid EIP-55 checksum.
    """
    if not isinstance(address, str) or not is_address(address.strip()):
        raise InvalidAddress()
    return to_checksum_address(address.strip())


def check_and_reserve(address, now: datetime | None = None, cooldown: timedelta = DEFAULT_COOLDOWN, email: str | None = None):
    wallet = normalize_address(address)
    now = now or utcnow()

    reservation = ledger.reserve_claim(wallet, now, cooldown, email=email)
    if reservation.allowed:
        logger.info("Claim window opened for %s.", wallet)
        return Allowed(wallet=wallet)

    retry_after = max(timedelta(0), reservation.last_claimed_at + cooldown - now)
    logger.info("%s attempted a claim when lastClaimed is %s.", wallet, reservation.last_claimed_at.isoformat())
    return Denied(wallet=wallet, reason="cooldown", retry_after=retry_after)
