from __future__ import annotations

from ..extensions import db
from stockdesk.time_utils import to_utc_z


TYPE_LOW_STOCK = "low_stock"
TYPE_NEW_SALE = "new_sale"
TYPE_PRICE_CHANGE = "price_change"
TYPE_PRODUCT_ADDED = "product_added"
TYPE_PRODUCT_UPDATED = "product_updated"
TYPE_PRODUCT_DELETED = "product_deleted"
TYPE_SALE_UPDATED = "sale_updated"
TYPE_STOCK_UPDATE = "stock_update"

NOTIFICATION_TYPES = {
    TYPE_LOW_STOCK,
    TYPE_NEW_SALE,
    TYPE_PRICE_CHANGE,
    TYPE_PRODUCT_ADDED,
    TYPE_PRODUCT_UPDATED,
    TYPE_PRODUCT_DELETED,
    TYPE_SALE_UPDATED,
    TYPE_STOCK_UPDATE,
}


class Notification(db.Model):
    """Event shown in the dashboard feed (low stock, new sale, ...)."""
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_read_created", "is_read", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(32), nullable=False, index=True)
    message = db.Column(db.Text, nullable=False)

    # Optional pointer to the entity the event is about
    related_to = db.Column(db.Integer, nullable=True)
    related_model = db.Column(db.String(32), nullable=True)  # Product, Sale

    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "message": self.message,
            "relatedTo": self.related_to,
            "relatedModel": self.related_model,
            "isRead": self.is_read,
            "createdAt": to_utc_z(self.created_at),
        }
