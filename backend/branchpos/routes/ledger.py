# Overview: Flask API routes for reading the audit ledger.

from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..responses import EXPECTED_ERRORS, error_response, ok
from ..services.ledger_service import list_ledger_events
from ..validation import parse_int, parse_optional_int


ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("")
@require_auth
@require_permission("VIEW_AUDIT_LOG")
def list_ledger_events_route():
    """
    Newest events first.

    Query params: branch_id, category, entity_type, entity_id, limit (max 500)
    """
    try:
        limit = parse_int(request.args.get("limit", 100), "limit", min_value=1)
        events = list_ledger_events(
            branch_id=parse_optional_int(request.args.get("branch_id"), "branch_id"),
            event_category=request.args.get("category") or None,
            entity_type=request.args.get("entity_type") or None,
            entity_id=parse_optional_int(request.args.get("entity_id"), "entity_id"),
            limit=min(limit, 500),
        )
        return ok([e.to_dict() for e in events])
    except EXPECTED_ERRORS as e:
        return error_response(e)
