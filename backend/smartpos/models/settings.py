from __future__ import annotations

from ..extensions import db
from ..entities import ShopDetails, SHOP_DETAILS_ID


class ShopSetting(db.Model):
    """
    Singleton shop configuration row (id = "main_details").

    Columns mirror ShopDetails one-to-one; missing values are filled from the
    ShopDetails defaults when the row is read.
    """
    __tablename__ = "settings"

    id = db.Column(db.String(32), primary_key=True, default=SHOP_DETAILS_ID)

    name = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(512), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    logo = db.Column(db.Text, nullable=True)
    payment_qr_code = db.Column(db.Text, nullable=True)

    footer_message = db.Column(db.String(512), nullable=True)
    powered_by_text = db.Column(db.String(255), nullable=True)

    tax_enabled = db.Column(db.Boolean, nullable=True)
    default_tax_rate = db.Column(db.Numeric(6, 3), nullable=True)

    show_logo = db.Column(db.Boolean, nullable=True)
    show_payment_qr = db.Column(db.Boolean, nullable=True)

    ai_description_prompt = db.Column(db.Text, nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    FIELDS = (
        "name", "address", "phone", "email", "logo", "payment_qr_code",
        "footer_message", "powered_by_text", "tax_enabled", "default_tax_rate",
        "show_logo", "show_payment_qr", "ai_description_prompt",
    )

    def apply(self, details: ShopDetails) -> None:
        for key in self.FIELDS:
            setattr(self, key, getattr(details, key))

    def to_value(self) -> ShopDetails:
        return ShopDetails.from_dict({key: getattr(self, key) for key in self.FIELDS})
