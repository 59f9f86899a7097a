from __future__ import annotations

from ..extensions import db
from branchpos.time_utils import to_utc_z


class Transfer(db.Model):
    """
    Inter-branch stock transfer document.

    LIFECYCLE:
    1. PENDING: Transfer created with its lines, awaiting approval
    2. APPROVED: Manager approved, ready to ship
    3. IN_TRANSIT: Shipped; source stock decremented
    4. COMPLETED: Received; destination stock incremented
    5. CANCELLED: Cancelled before shipping

    Transitions only move forward; see transfer_service.ALLOWED_TRANSITIONS.
    Document numbers are unique per source branch.
    """
    __tablename__ = "transfers"
    __table_args__ = (
        db.UniqueConstraint("from_branch_id", "document_number", name="uq_transfers_branch_docnum"),
        db.CheckConstraint("from_branch_id <> to_branch_id", name="ck_transfers_distinct_branches"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    from_branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    to_branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    # e.g. "TRF-000001"
    document_number = db.Column(db.String(32), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    shipped_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    completed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    shipped_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    cancellation_reason = db.Column(db.Text, nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    from_branch = db.relationship("Branch", foreign_keys=[from_branch_id])
    to_branch = db.relationship("Branch", foreign_keys=[to_branch_id])
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "document_number": self.document_number,
            "from_branch_id": self.from_branch_id,
            "to_branch_id": self.to_branch_id,
            "status": self.status,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "approved_by_user_id": self.approved_by_user_id,
            "shipped_by_user_id": self.shipped_by_user_id,
            "completed_by_user_id": self.completed_by_user_id,
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "shipped_at": to_utc_z(self.shipped_at) if self.shipped_at else None,
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "cancellation_reason": self.cancellation_reason,
            "version_id": self.version_id,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class TransferLine(db.Model):
    """One (variant, quantity) pair on a transfer."""
    __tablename__ = "transfer_lines"
    __table_args__ = (
        db.UniqueConstraint("transfer_id", "variant_id", name="uq_transfer_lines_variant"),
        db.CheckConstraint("quantity > 0", name="ck_transfer_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transfer_id = db.Column(db.Integer, db.ForeignKey("transfers.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    transfer = db.relationship(
        "Transfer",
        backref=db.backref("lines", lazy=True, order_by="TransferLine.id"),
    )
    variant = db.relationship("ProductVariant")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transfer_id": self.transfer_id,
            "variant_id": self.variant_id,
            "sku": self.variant.sku if self.variant else None,
            "quantity": self.quantity,
        }
