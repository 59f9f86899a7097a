# Overview: Flask API routes for installment plans; parses input and returns JSON responses.

from flask import Blueprint, request, current_app, g

from ..extensions import db
from ..decorators import require_auth, require_permission, resolve_branch_id
from ..responses import EXPECTED_ERRORS, error_response, fail, ok, page_args, pagination
from ..services import installment_service
from ..services.concurrency import commit_session
from ..validation import (
    ValidationError,
    clean_str,
    parse_choice,
    parse_int,
    parse_money,
    parse_optional_int,
    require_fields,
    require_json,
)
from branchpos.time_utils import utctoday


installments_bp = Blueprint("installments", __name__, url_prefix="/api/installments")

PAYMENT_METHODS = ("CASH", "CARD", "TRANSFER")


@installments_bp.get("")
@require_auth
@require_permission("VIEW_INSTALLMENTS")
def list_plans_route():
    """Query params: branch_id, status, page, limit"""
    try:
        page, limit = page_args()
        status = request.args.get("status")
        plans, total = installment_service.list_plans(
            branch_id=parse_optional_int(request.args.get("branch_id"), "branch_id"),
            status=parse_choice(status, "status", installment_service.PLAN_STATUSES) if status else None,
            page=page,
            limit=limit,
        )
        return ok([p.to_dict() for p in plans], pagination=pagination(page, limit, total))
    except EXPECTED_ERRORS as e:
        return error_response(e)


@installments_bp.post("")
@require_auth
@require_permission("MANAGE_INSTALLMENTS")
def create_plan_route():
    """
    Create an installment plan.

    Request body:
    {
        "branch_id": int (optional, defaults to caller's branch),
        "customer_name": str,
        "customer_phone": str (optional),
        "total_amount": number > 0,
        "down_payment": number >= 0 (default 0),
        "number_of_payments": int >= 1,
        "sale_id": int (optional),
        "notes": str (optional)
    }

    Returns:
        201: Plan created
        400: Invalid amounts (e.g. down payment above total)
    """
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "customer_name", "total_amount", "number_of_payments")

        branch_id = resolve_branch_id(data.get("branch_id"))
        if branch_id is None:
            raise ValidationError("branch_id is required")

        down_payment = data.get("down_payment")
        plan = installment_service.create_plan(
            branch_id=branch_id,
            user_id=g.current_user.id,
            customer_name=clean_str(data["customer_name"], "customer_name", max_length=128, required=True),
            customer_phone=clean_str(data.get("customer_phone"), "customer_phone", max_length=32),
            total_amount=parse_money(data["total_amount"], "total_amount"),
            down_payment=parse_money(down_payment if down_payment is not None else 0, "down_payment"),
            number_of_payments=parse_int(data["number_of_payments"], "number_of_payments"),
            sale_id=parse_optional_int(data.get("sale_id"), "sale_id"),
            notes=clean_str(data.get("notes"), "notes", max_length=2000),
        )
        commit_session()
        return ok(plan.to_dict(include_payments=True), 201)

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create installment plan")
        return fail("Internal server error", 500)


@installments_bp.get("/overdue")
@require_auth
@require_permission("VIEW_INSTALLMENTS")
def list_overdue_route():
    try:
        plans = installment_service.list_overdue(
            today=utctoday(),
            branch_id=parse_optional_int(request.args.get("branch_id"), "branch_id"),
        )
        return ok([p.to_dict() for p in plans])
    except EXPECTED_ERRORS as e:
        return error_response(e)


@installments_bp.post("/mark-overdue")
@require_auth
@require_permission("MANAGE_INSTALLMENTS")
def mark_overdue_route():
    """Flag ACTIVE plans past their due date as OVERDUE. Returns the changed plans."""
    try:
        plans = installment_service.mark_overdue(utctoday())
        commit_session()
        return ok([p.to_dict() for p in plans])
    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to mark overdue installments")
        return fail("Internal server error", 500)


@installments_bp.get("/<int:plan_id>")
@require_auth
@require_permission("VIEW_INSTALLMENTS")
def get_plan_route(plan_id: int):
    try:
        return ok(installment_service.get_plan(plan_id).to_dict(include_payments=True))
    except EXPECTED_ERRORS as e:
        return error_response(e)


@installments_bp.post("/<int:plan_id>/payments")
@require_auth
@require_permission("MANAGE_INSTALLMENTS")
def record_payment_route(plan_id: int):
    """
    Record a payment.

    Request body:
    {
        "amount": number > 0, not above the remaining amount,
        "payment_method": "CASH" | "CARD" | "TRANSFER" (default CASH),
        "notes": str (optional)
    }

    Returns:
        201: {plan, payment}
        400: Amount exceeds remaining, or plan completed/cancelled
        404: Plan not found
    """
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "amount")

        plan, payment = installment_service.record_payment(
            plan_id,
            parse_money(data["amount"], "amount"),
            user_id=g.current_user.id,
            payment_method=parse_choice(data.get("payment_method", "CASH"), "payment_method", PAYMENT_METHODS),
            notes=clean_str(data.get("notes"), "notes", max_length=2000),
        )
        commit_session()
        return ok({"plan": plan.to_dict(), "payment": payment.to_dict()}, 201)

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record installment payment")
        return fail("Internal server error", 500)


@installments_bp.post("/<int:plan_id>/cancel")
@require_auth
@require_permission("CANCEL_INSTALLMENTS")
def cancel_plan_route(plan_id: int):
    """Request body: {"reason": str (optional)}"""
    try:
        data = require_json(request.get_json(silent=True))
        plan = installment_service.cancel_plan(
            plan_id,
            clean_str(data.get("reason"), "reason", max_length=2000),
            user_id=g.current_user.id,
        )
        commit_session()
        return ok(plan.to_dict())

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to cancel installment plan")
        return fail("Internal server error", 500)
