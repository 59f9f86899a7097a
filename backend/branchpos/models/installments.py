from __future__ import annotations

from ..extensions import db
from branchpos.time_utils import to_iso_date, to_utc_z, utcnow
from branchpos.validation import money_str


class InstallmentPlan(db.Model):
    """
    Fixed payment schedule for a customer purchase.

    LIFECYCLE:
    - ACTIVE: payments outstanding, next_due_date in the future (or today)
    - OVERDUE: next_due_date passed without a payment (set by mark_overdue)
    - COMPLETED: remaining_amount reached zero
    - CANCELLED: cancelled by a manager before completion

    remaining_amount == total_amount - down_payment - sum(payments) and is
    never negative.
    """
    __tablename__ = "installment_plans"
    __table_args__ = (
        db.CheckConstraint("remaining_amount >= 0", name="ck_installment_remaining_non_negative"),
        db.Index("ix_installment_status_due", "status", "next_due_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    customer_name = db.Column(db.String(128), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=True)

    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    down_payment = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    number_of_payments = db.Column(db.Integer, nullable=False)
    payment_per_period = db.Column(db.Numeric(12, 2), nullable=False)
    remaining_amount = db.Column(db.Numeric(12, 2), nullable=False)

    next_due_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="ACTIVE", index=True)

    notes = db.Column(db.Text, nullable=True)
    cancellation_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    branch = db.relationship("Branch")
    user = db.relationship("User")
    sale = db.relationship("Sale")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def paid_amount(self):
        return self.total_amount - self.remaining_amount

    def to_dict(self, include_payments: bool = False) -> dict:
        data = {
            "id": self.id,
            "branch_id": self.branch_id,
            "user_id": self.user_id,
            "sale_id": self.sale_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "total_amount": money_str(self.total_amount),
            "down_payment": money_str(self.down_payment),
            "number_of_payments": self.number_of_payments,
            "payment_per_period": money_str(self.payment_per_period),
            "remaining_amount": money_str(self.remaining_amount),
            "paid_amount": money_str(self.paid_amount),
            "next_due_date": to_iso_date(self.next_due_date),
            "status": self.status,
            "notes": self.notes,
            "cancellation_reason": self.cancellation_reason,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "version_id": self.version_id,
        }
        if include_payments:
            data["payments"] = [
                p.to_dict()
                for p in sorted(self.payments, key=lambda p: (p.paid_at, p.id), reverse=True)
            ]
        return data


class InstallmentPayment(db.Model):
    __tablename__ = "installment_payments"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_installment_payment_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    plan_id = db.Column(db.Integer, db.ForeignKey("installment_plans.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    payment_method = db.Column(db.String(16), nullable=False, default="CASH")
    notes = db.Column(db.Text, nullable=True)

    # remaining_amount on the plan right after this payment
    remaining_after = db.Column(db.Numeric(12, 2), nullable=False)

    paid_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    plan = db.relationship(
        "InstallmentPlan",
        backref=db.backref("payments", lazy=True, order_by="InstallmentPayment.id"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "plan_id": self.plan_id,
            "user_id": self.user_id,
            "amount": money_str(self.amount),
            "payment_method": self.payment_method,
            "notes": self.notes,
            "remaining_after": money_str(self.remaining_after),
            "paid_at": to_utc_z(self.paid_at),
        }
