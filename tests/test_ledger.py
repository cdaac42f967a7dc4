from __future__ import annotations

import threading
from datetime import datetime, timedelta

import pytest

import ledger
from errors import PersistenceError
from extensions import db
from models_nft import Nft, Recipient


def _insert_nft(token_id: int) -> None:
    db.session.add(
        Nft(
            token_id=token_id,
            name=f"Cake #{token_id}",
            metadata_uri="ipfs://cake.json",
            image_uri="ipfs://cake.png",
            recipient="0x" + "01" * 20,
            network="polygon",
            payment_tx_hash="0x" + f"{token_id:064x}",
            mint_tx_hash="0x" + "bb" * 32,
        )
    )
    db.session.commit()


def test_first_token_id_is_zero(app_ctx) -> None:
    assert ledger.max_token_id() is None
    assert ledger.reserve_token_id() == 0


def test_token_id_follows_highest_issued(app_ctx) -> None:
    _insert_nft(41)
    assert ledger.reserve_token_id() == 42


def test_token_ids_strictly_increase(app_ctx) -> None:
    ids = [ledger.reserve_token_id() for _ in range(5)]
    assert ids == [0, 1, 2, 3, 4]


def test_failed_mint_does_not_reuse_reserved_id(app_ctx) -> None:
    first = ledger.reserve_token_id()
    # nothing recorded for `first`, as after a MintFailed
    second = ledger.reserve_token_id()
    assert second == first + 1


def test_sequence_catches_up_with_rows_inserted_elsewhere(app_ctx) -> None:
    assert ledger.reserve_token_id() == 0
    _insert_nft(10)
    assert ledger.reserve_token_id() == 11


def test_templates_order_by_weight(templates) -> None:
    names = [t.name for t in ledger.list_templates(order_by_weight=True)]
    assert names == ["Legendary Cake", "Rare Cake", "Common Cake"]


def test_nfts_listed_newest_first(app_ctx) -> None:
    for token_id in (0, 2, 1):
        _insert_nft(token_id)
    assert [n.token_id for n in ledger.list_nfts(newest_first=True)] == [2, 1, 0]


def test_record_nft_copies_template_fields(templates) -> None:
    template = templates[1]
    nft = ledger.record_nft(template, 0, "0x" + "01" * 20, "bnbSmartChain", "0x" + "aa" * 32, "0x" + "bb" * 32)

    assert nft.name == "Rare Cake"
    assert nft.metadata_uri == "ipfs://rare.json"
    assert nft.image_uri == "ipfs://rare.png"
    assert ledger.max_token_id() == 0


@pytest.mark.parametrize("weight", [0, -1])
def test_add_template_rejects_non_positive_weight(app_ctx, weight) -> None:
    with pytest.raises(ValueError):
        ledger.add_template("Broken", "ipfs://x.json", "", weight)


def test_concurrent_reservations_get_distinct_consecutive_ids(app) -> None:
    workers = 8
    with app.app_context():
        assert ledger.reserve_token_id() == 0
    barrier = threading.Barrier(workers)
    ids = []
    errors = []

    def reserve():
        with app.app_context():
            barrier.wait()
            try:
                ids.append(ledger.reserve_token_id())
            except Exception as e:  # surfaced by the assertion below
                errors.append(e)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=reserve) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert sorted(ids) == list(range(1, workers + 1))


def test_payment_used_after_record(templates) -> None:
    payment = "0x" + "aa" * 32
    assert not ledger.payment_used(payment)

    ledger.record_nft(templates[0], 0, "0x" + "01" * 20, "polygon", payment, "0x" + "bb" * 32)

    assert ledger.payment_used(payment)


def test_record_nft_rejects_reused_payment(templates) -> None:
    payment = "0x" + "aa" * 32
    ledger.record_nft(templates[0], 0, "0x" + "01" * 20, "polygon", payment, "0x" + "bb" * 32)

    with pytest.raises(PersistenceError):
        ledger.record_nft(templates[0], 1, "0x" + "02" * 20, "polygon", payment, "0x" + "cc" * 32)
    assert ledger.max_token_id() == 0


def test_open_claim_until_window_mints(templates) -> None:
    wallet = "0x" + "01" * 20
    now = datetime(2026, 10, 19, 12, 0, 0)
    assert not ledger.has_open_claim(wallet, now, timedelta(hours=24))

    db.session.add(Recipient(wallet_address=wallet, email="", last_claimed_at=now - timedelta(hours=1)))
    db.session.commit()
    assert ledger.has_open_claim(wallet, now, timedelta(hours=24))
    assert not ledger.has_open_claim(wallet, now + timedelta(hours=23), timedelta(hours=24))

    db.session.add(
        Nft(
            token_id=0,
            name="Common Cake",
            metadata_uri="ipfs://common.json",
            recipient=wallet,
            network="polygon",
            payment_tx_hash="0x" + "aa" * 32,
            mint_tx_hash="0x" + "bb" * 32,
            created_at=now,
        )
    )
    db.session.commit()
    assert not ledger.has_open_claim(wallet, now, timedelta(hours=24))
