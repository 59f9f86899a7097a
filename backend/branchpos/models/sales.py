from __future__ import annotations

from ..extensions import db
from branchpos.time_utils import to_utc_z
from branchpos.validation import money_str


class Sale(db.Model):
    """
    A completed POS sale.

    Sales made while the seller has an open shift carry that shift_id;
    CASH sales attached to a shift feed its expected cash at close.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("branch_id", "invoice_number", name="uq_sales_branch_invoice"),
        db.Index("ix_sales_branch_created", "branch_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(32), nullable=False)

    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=True, index=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    discount_type = db.Column(db.String(16), nullable=False, default="AMOUNT")  # AMOUNT, PERCENTAGE
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False)
    paid = db.Column(db.Numeric(12, 2), nullable=False)
    change = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # CASH, CARD, TRANSFER, INSTALLMENT
    payment_method = db.Column(db.String(16), nullable=False, default="CASH", index=True)
    status = db.Column(db.String(16), nullable=False, default="COMPLETED", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    branch = db.relationship("Branch")
    user = db.relationship("User")
    shift = db.relationship("Shift", backref=db.backref("sales", lazy=True))

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "branch_id": self.branch_id,
            "user_id": self.user_id,
            "shift_id": self.shift_id,
            "subtotal": money_str(self.subtotal),
            "discount_type": self.discount_type,
            "discount_amount": money_str(self.discount_amount),
            "tax": money_str(self.tax),
            "total": money_str(self.total),
            "paid": money_str(self.paid),
            "change": money_str(self.change),
            "payment_method": self.payment_method,
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    line_total = db.Column(db.Numeric(12, 2), nullable=False)

    sale = db.relationship("Sale", backref=db.backref("lines", lazy=True, order_by="SaleLine.id"))
    variant = db.relationship("ProductVariant")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "variant_id": self.variant_id,
            "sku": self.variant.sku if self.variant else None,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
            "discount": money_str(self.discount),
            "line_total": money_str(self.line_total),
        }
