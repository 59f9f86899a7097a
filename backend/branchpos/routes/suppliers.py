# Overview: Flask API routes for suppliers.

from flask import Blueprint, request, current_app

from ..extensions import db
from ..decorators import require_auth, require_permission
from ..responses import EXPECTED_ERRORS, error_response, fail, ok, page_args, pagination
from ..services import supplier_service
from ..services.concurrency import commit_session
from ..validation import ValidationError, clean_str, parse_optional_bool, require_fields, require_json


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


def _contact_fields(data: dict) -> dict:
    fields = {}
    for field, max_length in (("phone", 32), ("email", 255), ("address", 255)):
        if field in data:
            fields[field] = clean_str(data[field], field, max_length=max_length)
    return fields


@suppliers_bp.get("")
@require_auth
@require_permission("VIEW_PURCHASES")
def list_suppliers_route():
    """Query params: search, is_active (true/false), page, limit"""
    try:
        page, limit = page_args()
        suppliers, total = supplier_service.list_suppliers(
            search=request.args.get("search") or None,
            is_active=parse_optional_bool(request.args.get("is_active"), "is_active"),
            page=page,
            limit=limit,
        )
        return ok([s.to_dict() for s in suppliers], pagination=pagination(page, limit, total))
    except EXPECTED_ERRORS as e:
        return error_response(e)


@suppliers_bp.post("")
@require_auth
@require_permission("MANAGE_SUPPLIERS")
def create_supplier_route():
    """
    Request body:
    {
        "name": str,
        "phone": str (optional),
        "email": str (optional),
        "address": str (optional)
    }
    """
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "name")

        supplier = supplier_service.create_supplier(
            name=clean_str(data["name"], "name", max_length=128, required=True),
            **_contact_fields(data),
        )
        commit_session()
        return ok(supplier.to_dict(), 201)

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create supplier")
        return fail("Internal server error", 500)


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
@require_permission("VIEW_PURCHASES")
def get_supplier_route(supplier_id: int):
    try:
        return ok(supplier_service.get_supplier(supplier_id).to_dict())
    except EXPECTED_ERRORS as e:
        return error_response(e)


@suppliers_bp.patch("/<int:supplier_id>")
@require_auth
@require_permission("MANAGE_SUPPLIERS")
def update_supplier_route(supplier_id: int):
    """Update name, contact fields or is_active."""
    try:
        data = require_json(request.get_json(silent=True))
        changes = _contact_fields(data)
        if "name" in data:
            changes["name"] = clean_str(data["name"], "name", max_length=128, required=True)
        if "is_active" in data:
            if not isinstance(data["is_active"], bool):
                raise ValidationError("is_active must be a boolean")
            changes["is_active"] = data["is_active"]

        supplier = supplier_service.update_supplier(supplier_id, changes)
        commit_session()
        return ok(supplier.to_dict())

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update supplier")
        return fail("Internal server error", 500)
