"""Public claim API.

Routes:
- GET  /nft-template          catalog, rarest last (ascending weight)
- GET  /nft                   minted tokens, newest first
- POST /claim                 cooldown check + payment request
- POST /verify-transaction    wait for payment, mint, record
- GET  /nft/<token_id>/owner  on-chain owner lookup
"""

from flask import Blueprint, current_app, jsonify, request

import ledger
from errors import ClaimError
from extensions import limiter


claims_api = Blueprint("claims_api", __name__)


def _service():
    return current_app.extensions["claim_service"]


def _network_from(data: dict) -> str:
    # Older frontends send walletNetwork.
    return (data.get("network") or data.get("walletNetwork") or "").strip()


@claims_api.errorhandler(ClaimError)
def _claim_error(e: ClaimError):
    resp = jsonify(e.to_dict())
    resp.status_code = e.status_code
    retry_after = getattr(e, "retry_after", None)
    if retry_after is not None:
        resp.headers["Retry-After"] = str(retry_after)
    return resp


@claims_api.route("/nft-template", methods=["GET"])
def list_nft_templates():
    templates = ledger.list_templates(order_by_weight=True)
    return jsonify({"success": True, "nftTemplates": [t.to_dict() for t in templates]})


@claims_api.route("/nft", methods=["GET"])
def list_nfts():
    nfts = ledger.list_nfts(newest_first=True)
    return jsonify({"success": True, "nfts": [n.to_dict() for n in nfts]})


@claims_api.route("/claim", methods=["POST"])
@limiter.limit("5 per minute")
def claim():
    data = request.get_json(silent=True) or {}
    current_app.logger.info("POST /claim %s", {"address": data.get("address"), "network": _network_from(data)})

    email = (data.get("email") or "").strip() or None
    payment_request = _service().request_claim(data.get("address"), _network_from(data), email=email)

    return jsonify({"success": True, "paymentRequest": payment_request})


@claims_api.route("/verify-transaction", methods=["POST"])
@limiter.limit("10 per minute")
def verify_transaction():
    data = request.get_json(silent=True) or {}
    result = _service().verify_transaction(data.get("transactionHash"), data.get("address"), _network_from(data))

    return jsonify(
        {
            "success": True,
            "message": "Claim request received successfully.",
            "address": result.address,
            "nftTemplate": result.template.to_dict(),
            "tokenId": result.nft.token_id,
            "transactionHash": result.transaction_hash,
        }
    )


@claims_api.route("/nft/<int:token_id>/owner", methods=["GET"])
def nft_owner(token_id: int):
    owner = _service().issuer.owner_of(token_id)
    return jsonify({"success": True, "tokenId": token_id, "owner": owner})
