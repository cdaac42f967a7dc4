import logging
import os
from datetime import datetime, timedelta, timezone

from flask import Flask, jsonify, request
from flask_compress import Compress
from flask_cors import CORS
from sqlalchemy import text
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from chain import RpcClient
from config import Settings
from extensions import db, limiter
from minting import MintIssuer
from payments import NativePaymentNetwork, NetworkRegistry, TokenPaymentNetwork
from pipeline import ClaimService


def _build_claim_service(settings: Settings) -> ClaimService:
    polygon = RpcClient(settings.polygon_rpc_url, timeout=settings.rpc_timeout)
    bsc = RpcClient(settings.bsc_rpc_url, timeout=settings.rpc_timeout)

    networks = NetworkRegistry([
        NativePaymentNetwork(polygon, settings.receiving_address, settings.native_payment_amount),
        TokenPaymentNetwork(
            bsc,
            settings.receiving_address,
            settings.token_payment_amount,
            token_address=settings.payment_token_contract_address,
        ),
    ])
    # The NFT contract lives on Polygon regardless of how the fee was paid.
    issuer = MintIssuer(
        polygon,
        settings.nft_contract_address,
        settings.private_key,
        chain_id=settings.polygon_chain_id,
        gas_limit=settings.mint_gas_limit,
    )
    return ClaimService(
        networks,
        issuer,
        cooldown=timedelta(hours=settings.cooldown_hours),
        poll_interval=settings.receipt_poll_interval,
        receipt_timeout=settings.receipt_timeout,
    )


def create_app(settings: Settings | None = None, claim_service: ClaimService | None = None) -> Flask:
    settings = settings or Settings.from_env()

    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = settings.database_url
    if not settings.database_url.startswith("sqlite"):
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
            "pool_recycle": 300,
            "pool_pre_ping": True,
        }
    app.config["RATELIMIT_STORAGE_URI"] = settings.rate_limit_storage_url
    app.config["RATELIMIT_ENABLED"] = settings.rate_limit_enabled
    app.config["NFT_SETTINGS"] = settings

    # Render (and most PaaS) runs behind a reverse proxy; trust a single hop.
    if os.getenv("RENDER") or os.getenv("FLASK_ENV") == "production":
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    db.init_app(app)
    limiter.init_app(app)
    CORS(app)
    Compress(app)

    app.extensions["claim_service"] = claim_service or _build_claim_service(settings)

    # Import models before create_all so their tables are registered.
    import models_nft  # noqa: F401
    from claims import claims_api

    app.register_blueprint(claims_api)

    @app.after_request
    def add_cache_headers(resp):
        # avoid caching dynamic responses (claim state is per wallet)
        resp.headers.setdefault("Cache-Control", "no-store")
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        return resp

    @app.errorhandler(Exception)
    def unexpected_error(e):
        if isinstance(e, HTTPException):
            return jsonify({"success": False, "message": e.description}), e.code
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"success": False, "message": "Unexpected server error."}), 500

    @app.route("/api/health", methods=["GET"])
    def health_check():
        try:
            db.session.execute(text("SELECT 1"))
            return jsonify({
                "success": True,
                "status": "healthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "database": "connected",
            })
        except Exception as e:
            app.logger.error("Health check failed: %s", e)
            return jsonify({
                "success": False,
                "status": "unhealthy",
                "error": str(e),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }), 500

    with app.app_context():
        db.create_all()

    return app


if __name__ == "__main__":
    app = create_app()
    settings = app.config["NFT_SETTINGS"]
    debug = os.getenv("FLASK_ENV", "development") == "development"

    issuer = app.extensions["claim_service"].issuer
    app.logger.info("NFT contract: %s (minter %s)", settings.nft_contract_address, issuer.address)
    app.logger.info("Receiving address: %s", settings.receiving_address)
    app.logger.info("Server is running on http://localhost:%s", settings.port)
    app.run(host="0.0.0.0", port=settings.port, debug=debug)
