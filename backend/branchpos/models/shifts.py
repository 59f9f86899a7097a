from __future__ import annotations

from ..extensions import db
from branchpos.time_utils import to_utc_z, utcnow
from branchpos.validation import money_str


class Shift(db.Model):
    """
    Cash-drawer accounting session for one user at one branch.

    LIFECYCLE:
    - OPEN: closed_at is NULL; sales and cash transactions attach to it
    - CLOSED: expected cash, actual cash and difference are set once

    IMMUTABLE: Once closed, a shift cannot be reopened or modified.
    difference is always actual_cash - expected_cash and is only ever
    written by shift_service.close_shift.
    """
    __tablename__ = "shifts"
    __table_args__ = (
        db.Index("ix_shifts_user_closed", "user_id", "closed_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    opening_balance = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # Snapshots taken at close
    cash_sales_total = db.Column(db.Numeric(12, 2), nullable=True)
    cash_in_total = db.Column(db.Numeric(12, 2), nullable=True)
    cash_out_total = db.Column(db.Numeric(12, 2), nullable=True)
    expected_cash = db.Column(db.Numeric(12, 2), nullable=True)
    actual_cash = db.Column(db.Numeric(12, 2), nullable=True)
    difference = db.Column(db.Numeric(12, 2), nullable=True)  # actual - expected

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    closed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    branch = db.relationship("Branch", backref=db.backref("shifts", lazy=True))
    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("shifts", lazy=True))
    closed_by = db.relationship("User", foreign_keys=[closed_by_user_id])
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_open(self) -> bool:
        return self.closed_at is None

    @property
    def status(self) -> str:
        return "OPEN" if self.is_open else "CLOSED"

    def to_dict(self, include_transactions: bool = False) -> dict:
        data = {
            "id": self.id,
            "branch_id": self.branch_id,
            "user_id": self.user_id,
            "status": self.status,
            "opening_balance": money_str(self.opening_balance),
            "cash_sales_total": money_str(self.cash_sales_total),
            "cash_in_total": money_str(self.cash_in_total),
            "cash_out_total": money_str(self.cash_out_total),
            "expected_cash": money_str(self.expected_cash),
            "actual_cash": money_str(self.actual_cash),
            "difference": money_str(self.difference),
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "closed_by_user_id": self.closed_by_user_id,
            "notes": self.notes,
            "version_id": self.version_id,
        }
        if include_transactions:
            data["transactions"] = [t.to_dict() for t in self.transactions]
        return data


class CashTransaction(db.Model):
    """
    Cash put into (DEPOSIT) or taken out of (WITHDRAWAL) the drawer during
    an open shift. Adjusts the shift's expected cash at close.
    """
    __tablename__ = "cash_transactions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    type = db.Column(db.String(16), nullable=False)  # DEPOSIT, WITHDRAWAL
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    shift = db.relationship(
        "Shift",
        backref=db.backref("transactions", lazy=True, order_by="CashTransaction.id"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "user_id": self.user_id,
            "type": self.type,
            "amount": money_str(self.amount),
            "reason": self.reason,
            "created_at": to_utc_z(self.created_at),
        }
