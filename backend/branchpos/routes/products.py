# Overview: Flask API routes for products, variants and register lookups.

from flask import Blueprint, request, current_app

from ..extensions import db
from ..decorators import require_auth, require_permission, resolve_branch_id
from ..responses import EXPECTED_ERRORS, error_response, fail, ok, page_args, pagination
from ..services import products_service
from ..services.concurrency import commit_session
from ..validation import (
    ValidationError,
    clean_str,
    parse_money,
    parse_optional_bool,
    require_fields,
    require_json,
)


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _parse_variant(data: dict, index: int | None = None) -> dict:
    label = "variant" if index is None else f"variants[{index}]"
    if not isinstance(data, dict):
        raise ValidationError(f"{label} must be an object")
    require_fields(data, "sku", "price")
    cost = data.get("cost")
    return {
        "sku": clean_str(data["sku"], f"{label}.sku", max_length=64, required=True),
        "barcode": clean_str(data.get("barcode"), f"{label}.barcode", max_length=64),
        "size": clean_str(data.get("size"), f"{label}.size", max_length=32),
        "color": clean_str(data.get("color"), f"{label}.color", max_length=32),
        "price": parse_money(data["price"], f"{label}.price"),
        "cost": parse_money(cost, f"{label}.cost") if cost not in (None, "") else None,
    }


@products_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_products_route():
    """
    List products with their variants.

    Query params: search, category, include_inactive, page, limit
    """
    try:
        page, limit = page_args()
        products, total = products_service.list_products(
            search=request.args.get("search") or None,
            category=request.args.get("category") or None,
            include_inactive=parse_optional_bool(request.args.get("include_inactive"), "include_inactive", default=False),
            page=page,
            limit=limit,
        )
        return ok([p.to_dict() for p in products], pagination=pagination(page, limit, total))
    except EXPECTED_ERRORS as e:
        return error_response(e)


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    """
    Create a product with its variants.

    Request body:
    {
        "sku": str,
        "name": str,
        "category": str (optional),
        "description": str (optional),
        "variants": [{"sku", "price", "barcode"?, "size"?, "color"?, "cost"?}]
    }
    """
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "sku", "name")

        raw_variants = data.get("variants") or []
        if not isinstance(raw_variants, list) or not raw_variants:
            raise ValidationError("variants must be a non-empty list")

        product = products_service.create_product(
            sku=clean_str(data["sku"], "sku", max_length=64, required=True),
            name=clean_str(data["name"], "name", max_length=255, required=True),
            category=clean_str(data.get("category"), "category", max_length=64),
            description=clean_str(data.get("description"), "description", max_length=2000),
            variants=[_parse_variant(v, i) for i, v in enumerate(raw_variants)],
        )
        commit_session()
        return ok(product.to_dict(), 201)

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create product")
        return fail("Internal server error", 500)


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def get_product_route(product_id: int):
    try:
        return ok(products_service.get_product(product_id).to_dict())
    except EXPECTED_ERRORS as e:
        return error_response(e)


@products_bp.post("/<int:product_id>/variants")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def add_variant_route(product_id: int):
    try:
        data = require_json(request.get_json(silent=True))
        variant = products_service.add_variant(product_id, _parse_variant(data))
        commit_session()
        return ok(variant.to_dict(), 201)

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to add variant")
        return fail("Internal server error", 500)


@products_bp.get("/lookup/<string:code>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def lookup_variant_route(code: str):
    """
    Find a variant by barcode or SKU.

    Stock is reported for ?branch_id, defaulting to the caller's branch.
    """
    try:
        branch_id = resolve_branch_id(request.args.get("branch_id"))
        return ok(products_service.lookup_variant(code, branch_id))
    except EXPECTED_ERRORS as e:
        return error_response(e)
