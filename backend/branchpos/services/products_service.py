# Overview: Service-layer operations for products and their variants.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import or_

from ..extensions import db
from ..models import Inventory, Product, ProductVariant
from ..validation import ConflictError, NotFoundError


def _ensure_unique_variant_codes(sku: str, barcode: str | None) -> None:
    if db.session.query(ProductVariant).filter_by(sku=sku).first():
        raise ConflictError(f"Variant SKU '{sku}' already exists")
    if barcode and db.session.query(ProductVariant).filter_by(barcode=barcode).first():
        raise ConflictError(f"Barcode '{barcode}' already exists")


def create_product(
    *,
    sku: str,
    name: str,
    variants: list[dict],
    category: str | None = None,
    description: str | None = None,
) -> Product:
    """
    Create a product together with its variants.

    Each variant dict carries sku, price and optionally barcode, size, color
    and cost (prices already parsed to Decimal). SKUs and barcodes must be
    unique, including within the request.
    """
    if db.session.query(Product).filter_by(sku=sku).first():
        raise ConflictError(f"Product SKU '{sku}' already exists")

    seen_skus = set()
    seen_barcodes = set()
    for v in variants:
        if v["sku"] in seen_skus:
            raise ConflictError(f"Duplicate variant SKU '{v['sku']}' in request")
        seen_skus.add(v["sku"])
        if v.get("barcode"):
            if v["barcode"] in seen_barcodes:
                raise ConflictError(f"Duplicate barcode '{v['barcode']}' in request")
            seen_barcodes.add(v["barcode"])
        _ensure_unique_variant_codes(v["sku"], v.get("barcode"))

    product = Product(sku=sku, name=name, category=category, description=description, is_active=True)
    db.session.add(product)
    db.session.flush()

    for v in variants:
        _add_variant(product, v)

    db.session.flush()
    return product


def _add_variant(product: Product, data: dict) -> ProductVariant:
    variant = ProductVariant(
        product_id=product.id,
        sku=data["sku"],
        barcode=data.get("barcode"),
        size=data.get("size"),
        color=data.get("color"),
        price=data["price"],
        cost=data.get("cost"),
        is_active=True,
    )
    db.session.add(variant)
    return variant


def add_variant(product_id: int, data: dict) -> ProductVariant:
    product = get_product(product_id)
    _ensure_unique_variant_codes(data["sku"], data.get("barcode"))
    variant = _add_variant(product, data)
    db.session.flush()
    return variant


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def get_variant(variant_id: int) -> ProductVariant:
    variant = db.session.get(ProductVariant, variant_id)
    if not variant:
        raise NotFoundError(f"Variant {variant_id} not found")
    return variant


def list_products(
    *,
    search: str | None = None,
    category: str | None = None,
    include_inactive: bool = False,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Product], int]:
    query = db.session.query(Product)

    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if category:
        query = query.filter(Product.category == category)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Product.name.ilike(pattern),
            Product.sku.ilike(pattern),
            Product.variants.any(ProductVariant.sku.ilike(pattern)),
        ))

    total = query.count()
    products = query.order_by(Product.name).offset((page - 1) * limit).limit(limit).all()
    return products, total


def lookup_variant(code: str, branch_id: int | None = None) -> dict:
    """
    Find an active variant by barcode or SKU for the register.

    Returns the variant with its product name and the on-hand quantity at
    branch_id (0 when there is no inventory row or no branch).
    """
    variant = db.session.query(ProductVariant).filter(
        or_(ProductVariant.barcode == code, ProductVariant.sku == code),
        ProductVariant.is_active.is_(True),
    ).first()

    if not variant:
        raise NotFoundError(f"No product matches '{code}'")

    stock = 0
    if branch_id is not None:
        row = db.session.query(Inventory).filter_by(variant_id=variant.id, branch_id=branch_id).first()
        stock = row.quantity if row else 0

    return {
        **variant.to_dict(),
        "product_name": variant.product.name,
        "display_name": variant.display_name,
        "stock": stock,
    }


def default_price(variant: ProductVariant) -> Decimal:
    return Decimal(variant.price)
