from __future__ import annotations

from ..extensions import db
from branchpos.time_utils import to_utc_z


class PreOrder(db.Model):
    """
    Customer reservation for a variant that is out of stock at a branch.

    PENDING -> NOTIFIED -> COMPLETED, or CANCELLED before completion.
    """
    __tablename__ = "preorders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    customer_name = db.Column(db.String(128), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    notified_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    branch = db.relationship("Branch")
    variant = db.relationship("ProductVariant")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_id": self.branch_id,
            "variant_id": self.variant_id,
            "sku": self.variant.sku if self.variant else None,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "quantity": self.quantity,
            "notes": self.notes,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "notified_at": to_utc_z(self.notified_at) if self.notified_at else None,
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
        }
