from __future__ import annotations

from ..extensions import db


class StockLevel(db.Model):
    """
    On-hand quantity of a product in a warehouse.

    Owned by the inventory module; the POS engine only deducts from it when a
    paid sale is reconciled.
    """
    __tablename__ = "stock_levels"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "product_id", "warehouse_id", name="uq_stock_levels_tenant_product_warehouse"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.String(64), nullable=False, index=True)
    product_id = db.Column(db.String(64), nullable=False)
    warehouse_id = db.Column(db.String(64), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}
