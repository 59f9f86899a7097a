# Overview: Service-layer operations for suppliers.

"""
Supplier Service

Suppliers are shared by every branch. A purchase order always names exactly
one active supplier; deactivated suppliers keep their history but cannot
take new orders.
"""

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Supplier
from ..validation import NotFoundError


class SupplierError(Exception):
    """Raised when supplier data fails validation."""
    pass


UPDATABLE_FIELDS = ("name", "phone", "email", "address", "is_active")


def create_supplier(
    *,
    name: str,
    phone: str | None = None,
    email: str | None = None,
    address: str | None = None,
) -> Supplier:
    """
    Create a new supplier.

    Raises:
        SupplierError: blank name or an active supplier with the same name
    """
    if not name or not name.strip():
        raise SupplierError("Supplier name is required")
    name = name.strip()

    existing = db.session.query(Supplier).filter(
        Supplier.name == name,
        Supplier.is_active.is_(True),
    ).first()
    if existing:
        raise SupplierError(f"Supplier '{name}' already exists")

    supplier = Supplier(
        name=name,
        phone=phone,
        email=email,
        address=address,
        is_active=True,
    )
    db.session.add(supplier)
    db.session.flush()
    return supplier


def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if not supplier:
        raise NotFoundError(f"Supplier {supplier_id} not found")
    return supplier


def get_active_supplier(supplier_id: int) -> Supplier:
    supplier = get_supplier(supplier_id)
    if not supplier.is_active:
        raise SupplierError(f"Supplier '{supplier.name}' is inactive")
    return supplier


def update_supplier(supplier_id: int, changes: dict) -> Supplier:
    supplier = get_supplier(supplier_id)
    if "name" in changes and not (changes["name"] or "").strip():
        raise SupplierError("Supplier name is required")
    for field in UPDATABLE_FIELDS:
        if field in changes:
            setattr(supplier, field, changes[field])
    db.session.flush()
    return supplier


def list_suppliers(
    *,
    search: str | None = None,
    is_active: bool | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Supplier], int]:
    """Search matches name, email or phone."""
    query = db.session.query(Supplier)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Supplier.name.ilike(pattern),
            Supplier.email.ilike(pattern),
            Supplier.phone.ilike(pattern),
        ))
    if is_active is not None:
        query = query.filter(Supplier.is_active.is_(is_active))

    total = query.count()
    suppliers = query.order_by(Supplier.name).offset((page - 1) * limit).limit(limit).all()
    return suppliers, total
