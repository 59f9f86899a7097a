# backend/branchpos/routes/system.py
"""
System health endpoint.

Each check runs one cheap query and reports its latency so load balancers
and deploy scripts can tell a live instance from a broken one.
"""

import time
from flask import Blueprint, current_app

from ..extensions import db
from ..models import Branch, SessionToken, Shift, User
from ..permissions import get_all_permission_codes
from branchpos.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def _database_details() -> dict:
    return {
        "branches": db.session.query(Branch).count(),
        "users": db.session.query(User).count(),
    }


def _session_details() -> dict:
    return {
        "active_sessions": db.session.query(SessionToken).filter(
            SessionToken.revoked_at.is_(None),
            SessionToken.expires_at >= utcnow(),
        ).count(),
        "capabilities": len(get_all_permission_codes()),
    }


def _shift_details() -> dict:
    return {"open_shifts": db.session.query(Shift).filter(Shift.closed_at.is_(None)).count()}


HEALTH_CHECKS = (
    ("database", _database_details),
    ("session_service", _session_details),
    ("shifts", _shift_details),
)


def run_check(name: str, probe) -> dict:
    """Run one probe; any exception marks the check unhealthy."""
    start_time = time.time()
    try:
        details = probe()
        status = {"status": "healthy", "details": details}
    except Exception:
        current_app.logger.exception("Health check '%s' failed", name)
        db.session.rollback()
        status = {"status": "unhealthy", "error": f"{name} check failed"}
    status["latency_ms"] = round((time.time() - start_time) * 1000, 2)
    return status


@system_bp.get("/health")
def health():
    """
    Liveness check.

    Returns:
    - 200: All checks healthy
    - 503: One or more checks unhealthy
    """
    start_time = time.time()
    checks = {name: run_check(name, probe) for name, probe in HEALTH_CHECKS}
    healthy = all(check["status"] == "healthy" for check in checks.values())

    data = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }
    return {"success": healthy, "data": data}, 200 if healthy else 503
