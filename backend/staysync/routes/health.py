from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify

bp = Blueprint("health", __name__)


@bp.route("/health", methods=["GET"])
def health():
    return jsonify({
        "status": "OK",
        "message": "StaySync API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": current_app.config["APP_VERSION"],
    }), 200


@bp.route("/", methods=["GET"])
def index():
    prefix = f"/api/{current_app.config['API_VERSION']}"
    return jsonify({
        "success": True,
        "message": "StaySync short-term rental management API",
        "version": current_app.config["APP_VERSION"],
        "endpoints": {
            "health": "/health",
            "users": f"{prefix}/users",
            "properties": f"{prefix}/properties",
            "bookings": f"{prefix}/bookings",
            "reports": f"{prefix}/reports",
        },
    }), 200
