"""Error taxonomy for the claim-and-mint pipeline.

Every error carries the HTTP status the claims API answers with and a message
that is safe to show to the wallet holder.
"""

from __future__ import annotations


class ClaimError(Exception):
    status_code = 400
    message = "Claim failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message}


class InvalidAddress(ClaimError):
    message = "No valid address provided."


class UnsupportedNetwork(ClaimError):
    message = "Unsupported wallet network."


class CooldownActive(ClaimError):
    status_code = 429
    message = "You have already claimed an NFT within the last 24 hours."

    def __init__(self, retry_after: int, message: str | None = None):
        super().__init__(message)
        self.retry_after = max(0, int(retry_after))

    def to_dict(self) -> dict:
        return {**super().to_dict(), "retryAfter": self.retry_after}


class EmptyCatalog(ClaimError):
    status_code = 503
    message = "No NFT templates are available."


class UpstreamUnavailable(ClaimError):
    status_code = 502
    message = "Blockchain RPC is unavailable. Please try again."


class ConfirmationTimeout(ClaimError):
    status_code = 504
    message = "Transaction was not mined in time."


class MintFailed(ClaimError):
    status_code = 502
    message = "Minting the NFT failed."


class PersistenceError(ClaimError):
    status_code = 500
    message = "Could not save claim data."


class InvalidTransactionHash(ClaimError):
    message = "Invalid transaction hash."


class PaymentAlreadyUsed(ClaimError):
    status_code = 409
    message = "This payment has already been exchanged for an NFT."


class NoOpenClaim(ClaimError):
    status_code = 403
    message = "No open claim for this address. Request a claim first."
