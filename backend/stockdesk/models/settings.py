from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from .catalog import money
from stockdesk.time_utils import to_utc_z


class Settings(db.Model):
    """
    Business settings (singleton row).

    settings_service.get_settings creates the row with defaults on first read.
    """
    __tablename__ = "settings"

    id = db.Column(db.Integer, primary_key=True)

    business_name = db.Column(db.String(255), nullable=False, default="Auto Parts Store")
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.Text, nullable=True)

    currency = db.Column(db.String(8), nullable=False, default="USD")
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=5)
    tax_rate = db.Column(db.Numeric(6, 3), nullable=False, default=Decimal("0"))

    # Toggles consulted by notification_service.publish
    notify_low_stock = db.Column(db.Boolean, nullable=False, default=True)
    notify_new_sales = db.Column(db.Boolean, nullable=False, default=True)
    notify_price_changes = db.Column(db.Boolean, nullable=False, default=True)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "businessName": self.business_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "currency": self.currency,
            "lowStockThreshold": self.low_stock_threshold,
            "taxRate": money(self.tax_rate),
            "notificationSettings": {
                "lowStock": self.notify_low_stock,
                "newSales": self.notify_new_sales,
                "priceChanges": self.notify_price_changes,
            },
            "updatedAt": to_utc_z(self.updated_at),
        }
