from __future__ import annotations

from ..extensions import db
from ..entities import Product as ProductValue, DEFAULT_CATEGORY, DEFAULT_MIN_STOCK_LEVEL


class Product(db.Model):
    """
    Local copy of a catalog entry.

    Stock is a plain mutable quantity; it only changes through explicit CRUD or
    as a side effect of order commit/edit/delete.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_category_name", "category", "name"),
    )

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)
    category = db.Column(db.String(120), nullable=False, default=DEFAULT_CATEGORY)
    description = db.Column(db.Text, nullable=True)
    image = db.Column(db.Text, nullable=True)
    tax_rate = db.Column(db.Numeric(6, 3), nullable=True)
    min_stock_level = db.Column(db.Integer, nullable=False, default=DEFAULT_MIN_STOCK_LEVEL)
    rental_duration = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def apply(self, value: ProductValue) -> None:
        self.name = value.name
        self.price = value.price
        self.stock = value.stock
        self.category = value.category
        self.description = value.description
        self.image = value.image
        self.tax_rate = value.tax_rate
        self.min_stock_level = value.min_stock_level
        self.rental_duration = value.rental_duration

    def to_value(self) -> ProductValue:
        return ProductValue(
            id=self.id,
            name=self.name,
            price=self.price,
            stock=self.stock,
            category=self.category,
            description=self.description,
            image=self.image,
            tax_rate=self.tax_rate,
            min_stock_level=self.min_stock_level,
            rental_duration=self.rental_duration,
        )
