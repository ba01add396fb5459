from __future__ import annotations

from ..extensions import db
from ..entities import Order as OrderValue


class Order(db.Model):
    """
    Committed order (ledger row).

    items/customer hold the camelCase record shape so a row can be copied to
    the remote orders table as-is. Re-committing an edited order overwrites the
    row under the same id.
    """
    __tablename__ = "orders"

    id = db.Column(db.String(64), primary_key=True)
    date = db.Column(db.DateTime, nullable=False, index=True)
    items = db.Column(db.JSON, nullable=False, default=list)
    total = db.Column(db.Numeric(12, 2), nullable=False)
    tax_total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    customer = db.Column(db.JSON, nullable=True)

    def apply(self, value: OrderValue) -> None:
        record = value.to_record()
        self.date = value.date
        self.items = record["items"]
        self.total = value.total
        self.tax_total = value.tax_total
        self.customer = record["customer"]

    def to_value(self) -> OrderValue:
        return OrderValue.from_dict({
            "id": self.id,
            "date": self.date,
            "items": self.items or [],
            "total": self.total,
            "taxTotal": self.tax_total,
            "customer": self.customer,
        })
