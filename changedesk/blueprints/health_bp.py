"""
Health check blueprint.

Endpoints:
    GET /api/v1/health/ready  — simple 200 for load balancers
    GET /api/v1/health/live   — store + summarizer status
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from changedesk.blueprints import get_coordinator
from changedesk.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Simple readiness probe — always 200 if app is running."""
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Liveness check with dependency status."""
    checks = {}
    overall = True
    coordinator = get_coordinator()

    # ── Database ─────────────────────────────────────────────────────
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {
            "status": "ok",
            "latency_ms": round(db_ms, 1),
            "schema_version": coordinator.store.schema_version(),
        }
    except Exception as exc:
        db.session.rollback()
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check — database failed: %s", exc)

    # ── Summarizer ───────────────────────────────────────────────────
    # Optional: a missing provider only degrades summaries to the fallback text
    gateway = current_app.extensions.get("changedesk_llm")
    if gateway is not None:
        checks["summarizer"] = {
            "status": "ok",
            "model": gateway.default_model,
            "providers": sorted(gateway.available_providers),
        }
    else:
        checks["summarizer"] = {"status": "skipped", "detail": "no LLM gateway configured"}

    checks["app"] = {
        "name": "ChangeDesk",
        "debug": current_app.debug,
        "testing": current_app.testing,
    }

    status_code = 200 if overall else 503
    return jsonify({
        "status": "healthy" if overall else "degraded",
        "checks": checks,
    }), status_code
