# backend/shopfloor/routes/system.py
"""
System health and version endpoints.
"""

import sys
import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..errors import ConfigurationError
from ..extensions import db
from ..services.blob_storage import BlobStorage
from shopfloor.time_utils import utcnow

system_bp = Blueprint("system", __name__)

API_VERSION = "1.0.0"


def check_database_health() -> dict:
    """
    Check database connectivity with a trivial round trip.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_blob_storage_health() -> dict:
    container_dir = current_app.config.get("BLOB_CONTAINER_DIR")
    if not container_dir:
        # Image upload is optional; the rest of the API still works
        return {"status": "degraded", "warning": "BLOB_CONTAINER_DIR is not configured"}
    try:
        storage = BlobStorage.from_app()
    except ConfigurationError as exc:
        return {"status": "degraded", "warning": str(exc)}
    if not storage.is_provisioned():
        return {"status": "degraded", "warning": f"Blob container {storage.container} is not provisioned"}
    return {"status": "healthy", "container": storage.container}


@system_bp.get("/health")
@system_bp.get("/api/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()
    database_health = check_database_health()
    blob_health = check_blob_storage_health()

    checks = [database_health, blob_health]
    if any(c["status"] == "unhealthy" for c in checks):
        overall_status, http_status = "unhealthy", 503
    elif any(c["status"] == "degraded" for c in checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "blob_storage": blob_health,
        },
    }, http_status


@system_bp.get("/api/version")
def version():
    env = "production" if not current_app.debug else "development"
    return {
        "api_version": API_VERSION,
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
