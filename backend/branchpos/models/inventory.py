from __future__ import annotations

from ..extensions import db
from branchpos.time_utils import to_utc_z


class Inventory(db.Model):
    """
    On-hand quantity of one variant at one branch.

    Quantity never goes negative: sales and outgoing transfers check stock
    under a row lock before decrementing.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.UniqueConstraint("variant_id", "branch_id", name="uq_inventory_variant_branch"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=5)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    variant = db.relationship("ProductVariant", backref=db.backref("inventory", lazy=True))
    branch = db.relationship("Branch", backref=db.backref("inventory", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_stock

    def to_dict(self) -> dict:
        variant = self.variant
        return {
            "id": self.id,
            "variant_id": self.variant_id,
            "branch_id": self.branch_id,
            "quantity": self.quantity,
            "min_stock": self.min_stock,
            "is_low_stock": self.is_low_stock,
            "sku": variant.sku if variant else None,
            "product_name": variant.product.name if variant else None,
            "version_id": self.version_id,
            "updated_at": to_utc_z(self.updated_at),
        }
