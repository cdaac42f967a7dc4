"""NFT claim models.

- nft_templates: weighted reward catalog (read-only once seeded)
- nfts: one row per minted token, never updated
- recipients: per-wallet cooldown state (wallet in checksum form)
- token_sequences: counter used to hand out token ids one at a time
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Index, Integer, String

from extensions import db


def utcnow() -> datetime:
    # naive UTC; DateTime columns are stored without a zone
    return datetime.now(timezone.utc).replace(tzinfo=None)


class NftTemplate(db.Model):
    __tablename__ = "nft_templates"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    metadata_uri = Column(String(500), nullable=False)
    image_uri = Column(String(500), nullable=False, default="")
    weight = Column(Float, nullable=False)

    __table_args__ = (
        Index("idx_nft_templates_weight", "weight"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "jsonUri": self.metadata_uri,
            "imageUri": self.image_uri,
            "weight": self.weight,
        }


class Nft(db.Model):
    __tablename__ = "nfts"

    id = Column(Integer, primary_key=True)
    token_id = Column(Integer, nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    metadata_uri = Column(String(500), nullable=False)
    image_uri = Column(String(500), nullable=False, default="")
    recipient = Column(String(42), nullable=False, index=True)
    network = Column(String(32), nullable=False)
    payment_tx_hash = Column(String(80), nullable=False, unique=True)
    mint_tx_hash = Column(String(80), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "tokenId": self.token_id,
            "name": self.name,
            "jsonUri": self.metadata_uri,
            "imageUri": self.image_uri,
            "recipient": self.recipient,
            "network": self.network,
            "paymentTransactionHash": self.payment_tx_hash,
            "transactionHash": self.mint_tx_hash,
            "dateCreated": self.created_at.isoformat() if self.created_at else None,
        }


class Recipient(db.Model):
    __tablename__ = "recipients"

    wallet_address = Column(String(42), primary_key=True)
    email = Column(String(320), nullable=False, default="")
    last_claimed_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_recipients_last_claimed_at", "last_claimed_at"),
    )


class TokenSequence(db.Model):
    __tablename__ = "token_sequences"

    name = Column(String(32), primary_key=True)
    next_value = Column(Integer, nullable=False, default=0)
