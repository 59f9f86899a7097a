# Overview: JSON response envelope shared by all API routes.

from __future__ import annotations

from flask import jsonify, request

from .services.auth_service import PasswordValidationError
from .services.branch_service import BranchError
from .services.document_service import DocumentSequenceError
from .services.installment_service import InstallmentError
from .services.inventory_service import InventoryError
from .services.permission_service import PermissionDeniedError
from .services.preorder_service import PreOrderError
from .services.purchase_service import PurchaseError
from .services.sales_service import SaleError
from .services.shift_service import ShiftError
from .services.supplier_service import SupplierError
from .services.transfer_service import TransferError
from .validation import ConflictError, NotFoundError, ValidationError, parse_int


# Business-rule failures raised by services; all answered with 400
DOMAIN_ERRORS = (
    ValidationError,
    PasswordValidationError,
    BranchError,
    DocumentSequenceError,
    InstallmentError,
    InventoryError,
    PreOrderError,
    PurchaseError,
    SaleError,
    ShiftError,
    SupplierError,
    TransferError,
)

EXPECTED_ERRORS = DOMAIN_ERRORS + (ConflictError, NotFoundError, PermissionDeniedError)


def ok(data=None, status: int = 200, *, pagination: dict | None = None, message: str | None = None):
    body = {"success": True, "data": data}
    if pagination is not None:
        body["pagination"] = pagination
    if message:
        body["message"] = message
    return jsonify(body), status


def fail(message: str, status: int = 400, **extra):
    body = {"success": False, "message": message}
    body.update(extra)
    return jsonify(body), status


def error_response(exc: Exception):
    """Map an expected service exception to its HTTP answer."""
    if isinstance(exc, NotFoundError):
        return fail(str(exc), 404)
    if isinstance(exc, ConflictError):
        return fail(str(exc), 409)
    if isinstance(exc, PermissionDeniedError):
        return fail(str(exc), 403)
    if isinstance(exc, DOMAIN_ERRORS):
        return fail(str(exc), 400)
    return fail("Internal server error", 500)


def pagination(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": (total + limit - 1) // limit if limit else 0,
    }


def page_args(default_limit: int = 20, max_limit: int = 200) -> tuple[int, int]:
    """Read ?page and ?limit from the current request."""
    page = parse_int(request.args.get("page", 1), "page", min_value=1)
    limit = parse_int(request.args.get("limit", default_limit), "limit", min_value=1)
    return page, min(limit, max_limit)
