from __future__ import annotations

import logging
import threading
import time

from chain import TRANSIENT_ERRORS, RpcClient
from errors import ConfirmationTimeout


logger = logging.getLogger(__name__)


def await_mined(
    client: RpcClient,
    tx_hash: str,
    poll_interval: float = 1.0,
    timeout: float | None = None,
    cancel: threading.Event | None = None,
    sleep=time.sleep,
    clock=time.monotonic,
) -> dict:
    """Poll ``eth_getTransactionReceipt`` until the transaction has a receipt.

    A null receipt means "not mined yet"; RPC and transport errors are logged
    and retried on the same cadence. The first receipt is returned as-is.

    ``timeout`` (seconds) and ``cancel`` both stop the loop with
    ConfirmationTimeout. With neither, the wait is unbounded.

    When ``cancel`` is given the pause between polls is ``cancel.wait`` so a
    cancellation wakes the loop at once; ``sleep`` is only used without it.
    """
    deadline = clock() + timeout if timeout else None
    attempts = 0

    while True:
        if cancel is not None and cancel.is_set():
            raise ConfirmationTimeout("Waiting for the transaction was cancelled.")

        attempts += 1
        try:
            receipt = client.get_transaction_receipt(tx_hash)
        except TRANSIENT_ERRORS as e:
            logger.warning("Receipt lookup for %s failed (attempt %d): %s", tx_hash, attempts, e)
            receipt = None

        if receipt:
            logger.info("Transaction %s mined after %d polls.", tx_hash, attempts)
            return receipt

        if deadline is not None and clock() + poll_interval > deadline:
            logger.warning("Gave up on %s after %d polls.", tx_hash, attempts)
            raise ConfirmationTimeout()

        logger.debug("Awaiting mined receipt for %s.", tx_hash)
        if cancel is not None:
            # Event.wait returns early when cancelled
            cancel.wait(poll_interval)
        else:
            sleep(poll_interval)
