"""Health check endpoint."""

import logging

from flask import Blueprint, current_app, jsonify

from ..database import check_database_health

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__)


@health_bp.route("/health")
def health_check():
    """
    Health check endpoint.

    Returns:
        JSON response with status, version, database connectivity and the
        effective rank direction setting
    """
    version = current_app.config.get("APP_VERSION", "unknown")

    db_connected, db_error = check_database_health()

    policy = current_app.extensions.get("leadership_policy")

    response = {
        "status": "healthy" if db_connected else "degraded",
        "version": version,
        "database": "connected" if db_connected else "disconnected",
        "rank_direction": policy.rank_direction if policy else None,
    }

    if db_error:
        response["database_error"] = db_error

    return jsonify(response)
