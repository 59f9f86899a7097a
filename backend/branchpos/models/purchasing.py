from __future__ import annotations

from ..extensions import db
from branchpos.time_utils import to_utc_z
from branchpos.validation import money_str


class Supplier(db.Model):
    """
    Vendor that purchase orders are placed with.

    Suppliers are shared by all branches and deactivated, never deleted,
    so historical purchase orders keep a valid reference.
    """
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, index=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class PurchaseOrder(db.Model):
    """
    Stock ordered from a supplier for one branch.

    LIFECYCLE:
    1. PENDING: Ordered, nothing received yet
    2. PARTIAL: Some lines received short
    3. RECEIVED: Every line fully received
    4. CANCELLED: Closed before full receipt; stock already received stays

    Stock only moves on receipt. Document numbers are unique per branch.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.UniqueConstraint("branch_id", "document_number", name="uq_purchase_orders_branch_docnum"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    # e.g. "PO-000001"
    document_number = db.Column(db.String(32), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    branch = db.relationship("Branch")
    supplier = db.relationship("Supplier", backref=db.backref("purchase_orders", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "document_number": self.document_number,
            "branch_id": self.branch_id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "status": self.status,
            "total": money_str(self.total),
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "received_at": to_utc_z(self.received_at) if self.received_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "version_id": self.version_id,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class PurchaseOrderLine(db.Model):
    """One ordered variant with its unit cost and the quantity received so far."""
    __tablename__ = "purchase_order_lines"
    __table_args__ = (
        db.UniqueConstraint("purchase_order_id", "variant_id", name="uq_purchase_order_lines_variant"),
        db.CheckConstraint("quantity > 0", name="ck_purchase_order_lines_quantity_positive"),
        db.CheckConstraint(
            "received_quantity >= 0 AND received_quantity <= quantity",
            name="ck_purchase_order_lines_received_range",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_cost = db.Column(db.Numeric(12, 2), nullable=False)
    received_quantity = db.Column(db.Integer, nullable=False, default=0)

    purchase_order = db.relationship(
        "PurchaseOrder",
        backref=db.backref("lines", lazy=True, order_by="PurchaseOrderLine.id"),
    )
    variant = db.relationship("ProductVariant")

    @property
    def outstanding(self) -> int:
        return self.quantity - self.received_quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "variant_id": self.variant_id,
            "sku": self.variant.sku if self.variant else None,
            "quantity": self.quantity,
            "unit_cost": money_str(self.unit_cost),
            "received_quantity": self.received_quantity,
            "outstanding": self.outstanding,
        }
