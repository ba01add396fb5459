from __future__ import annotations

from ..extensions import db
from ..entities import Customer as CustomerValue


class Customer(db.Model):
    """
    Customer contact record.

    Phone is the natural dedup key used by checkout auto-save; it is indexed but
    not unique because manual CRUD and imports may still create duplicates.
    """
    __tablename__ = "customers"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False, index=True)
    place = db.Column(db.String(255), nullable=False, default="")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def apply(self, value: CustomerValue) -> None:
        self.name = value.name
        self.phone = value.phone
        self.place = value.place

    def to_value(self) -> CustomerValue:
        return CustomerValue(id=self.id, name=self.name, phone=self.phone, place=self.place or "")
