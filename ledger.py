"""Claim ledger: the only module that reads and writes the NFT claim tables.

Writes that decide eligibility or token ids are single SQL statements so that
two requests racing on the same wallet (or the same token id) are serialized
by the database rather than by the application.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from errors import PersistenceError
from extensions import db
from models_nft import Nft, NftTemplate, Recipient, TokenSequence, utcnow


logger = logging.getLogger(__name__)

TOKEN_SEQUENCE = "nft"


@dataclass(frozen=True)
class ClaimReservation:
    allowed: bool
    # Previous claim time; None for a wallet seen for the first time.
    last_claimed_at: datetime | None


def list_templates(order_by_weight: bool = False) -> list[NftTemplate]:
    query = NftTemplate.query
    if order_by_weight:
        query = query.order_by(NftTemplate.weight.asc(), NftTemplate.id.asc())
    else:
        query = query.order_by(NftTemplate.id.asc())
    return query.all()


def list_nfts(newest_first: bool = False) -> list[Nft]:
    order = Nft.token_id.desc() if newest_first else Nft.token_id.asc()
    return Nft.query.order_by(order).all()


def get_recipient(wallet: str) -> Recipient | None:
    return db.session.get(Recipient, wallet)


def max_token_id() -> int | None:
    return db.session.query(func.max(Nft.token_id)).scalar()


def payment_used(payment_tx_hash: str) -> bool:
    return db.session.query(Nft.id).filter(Nft.payment_tx_hash == payment_tx_hash).first() is not None


def has_open_claim(wallet: str, now: datetime, cooldown: timedelta) -> bool:
    """True while the wallet's current claim window has not produced a token yet."""
    last = db.session.execute(
        select(Recipient.last_claimed_at).where(Recipient.wallet_address == wallet)
    ).scalar()
    if last is None or last <= now - cooldown:
        return False
    minted = (
        db.session.query(Nft.id)
        .filter(Nft.recipient == wallet, Nft.created_at >= last)
        .first()
    )
    return minted is None


def reserve_claim(wallet: str, now: datetime, cooldown: timedelta, email: str | None = None) -> ClaimReservation:
    """Refresh ``last_claimed_at`` if the wallet is out of cooldown.

    The refresh is a conditional UPDATE; the affected-row count is the answer.
    A wallet with no record gets one inserted; losing that insert to a
    concurrent request counts as a denial.
    """
    values = {"last_claimed_at": now}
    if email:
        values["email"] = email

    try:
        result = db.session.execute(
            update(Recipient)
            .where(Recipient.wallet_address == wallet)
            .where(Recipient.last_claimed_at <= now - cooldown)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            db.session.commit()
            return ClaimReservation(allowed=True, last_claimed_at=None)

        existing = db.session.execute(
            select(Recipient.last_claimed_at).where(Recipient.wallet_address == wallet)
        ).scalar()
        if existing is not None:
            db.session.rollback()
            return ClaimReservation(allowed=False, last_claimed_at=existing)

        db.session.add(Recipient(wallet_address=wallet, email=email or "", last_claimed_at=now))
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.warning("Concurrent first claim for %s; treating as cooldown.", wallet)
            existing = db.session.execute(
                select(Recipient.last_claimed_at).where(Recipient.wallet_address == wallet)
            ).scalar()
            return ClaimReservation(allowed=False, last_claimed_at=existing or now)
        logger.info("Created recipient %s.", wallet)
        return ClaimReservation(allowed=True, last_claimed_at=None)
    except SQLAlchemyError as e:
        db.session.rollback()
        raise PersistenceError() from e


def reserve_token_id() -> int:
    """Hand out the next token id.

    One UPDATE bumps the counter, never letting it fall below
    max(token_id) + 1, so rows inserted outside the sequence are respected.
    Ids are not returned to the pool when a mint fails.
    """
    floor = select(func.coalesce(func.max(Nft.token_id) + 1, 0)).scalar_subquery()
    bump = (
        update(TokenSequence)
        .where(TokenSequence.name == TOKEN_SEQUENCE)
        .values(
            next_value=case(
                (TokenSequence.next_value < floor, floor),
                else_=TokenSequence.next_value,
            ) + 1
        )
        .execution_options(synchronize_session=False)
    )

    try:
        if db.session.execute(bump).rowcount == 0:
            db.session.add(TokenSequence(name=TOKEN_SEQUENCE, next_value=0))
            try:
                db.session.commit()
            except IntegrityError:
                # another request created the counter first
                db.session.rollback()
            db.session.execute(bump)
        next_value = db.session.execute(
            select(TokenSequence.next_value).where(TokenSequence.name == TOKEN_SEQUENCE)
        ).scalar_one()
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise PersistenceError() from e
    return int(next_value) - 1


def record_nft(
    template: NftTemplate,
    token_id: int,
    recipient: str,
    network: str,
    payment_tx_hash: str,
    mint_tx_hash: str,
) -> Nft:
    nft = Nft(
        token_id=token_id,
        name=template.name,
        metadata_uri=template.metadata_uri,
        image_uri=template.image_uri,
        recipient=recipient,
        network=network,
        payment_tx_hash=payment_tx_hash,
        mint_tx_hash=mint_tx_hash,
        created_at=utcnow(),
    )
    db.session.add(nft)
    try:
        db.session.commit()
    except IntegrityError as e:
        # token id or payment hash already recorded
        db.session.rollback()
        logger.warning("Duplicate NFT row for token %s / payment %s.", token_id, payment_tx_hash)
        raise PersistenceError() from e
    except SQLAlchemyError as e:
        db.session.rollback()
        raise PersistenceError() from e
    return nft


def add_template(name: str, metadata_uri: str, image_uri: str, weight: float) -> NftTemplate:
    if weight is None or float(weight) <= 0:
        raise ValueError(f"Template weight must be positive: {name!r}")
    template = NftTemplate(name=name, metadata_uri=metadata_uri, image_uri=image_uri or "", weight=float(weight))
    db.session.add(template)
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise PersistenceError() from e
    return template
