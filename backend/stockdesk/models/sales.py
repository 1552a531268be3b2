from __future__ import annotations

from sqlalchemy.ext.orderinglist import ordering_list

from ..extensions import db
from .catalog import money
from stockdesk.time_utils import to_utc_z


PAYMENT_STATUS_COMPLETED = "Completed"
PAYMENT_STATUS_PENDING = "Pending"
PAYMENT_STATUS_CANCELLED = "Cancelled"
PAYMENT_STATUSES = (PAYMENT_STATUS_COMPLETED, PAYMENT_STATUS_PENDING, PAYMENT_STATUS_CANCELLED)

FLAG_GREEN = "green"
FLAG_RED = "red"
FLAG_STATUSES = (FLAG_GREEN, FLAG_RED)


class Sale(db.Model):
    """
    Posted sale.

    Created once by sales_service.post_sale. Items and amounts never change
    after creation; customer, payment method/status, notes and flag status
    are the only editable fields.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_created_at", "created_at"),
        db.Index("ix_sales_payment_status_created", "payment_status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-facing identifier (e.g., "INV-240131-0042")
    invoice_number = db.Column(db.String(64), nullable=False, unique=True)
    customer = db.Column(db.String(255), nullable=True)

    total_amount = db.Column(db.Numeric(14, 2), nullable=False)
    total_profit = db.Column(db.Numeric(14, 2), nullable=False)

    payment_method = db.Column(db.String(32), nullable=False, default="Cash")
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_STATUS_COMPLETED)
    flag_status = db.Column(db.String(8), nullable=False, default=FLAG_GREEN)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} invoice={self.invoice_number!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoiceNumber": self.invoice_number,
            "customer": self.customer,
            "items": [item.to_dict() for item in self.items],
            "totalAmount": money(self.total_amount),
            "totalProfit": money(self.total_profit),
            "paymentMethod": self.payment_method,
            "paymentStatus": self.payment_status,
            "flagStatus": self.flag_status,
            "notes": self.notes,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class SaleItem(db.Model):
    """
    Line item on a sale.

    product_id is a plain reference (no foreign key): deleting a product
    later must not touch historical sales. Prices are snapshots taken when
    the sale was posted.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(
        db.Integer,
        db.ForeignKey("sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.Integer, nullable=False, index=True)
    variant = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    cost_price = db.Column(db.Numeric(12, 2), nullable=False)
    selling_price = db.Column(db.Numeric(12, 2), nullable=False)
    actual_selling_price = db.Column(db.Numeric(12, 2), nullable=False)
    profit = db.Column(db.Numeric(14, 2), nullable=False)

    sale = db.relationship("Sale", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "product": self.product_id,
            "variant": self.variant,
            "quantity": self.quantity,
            "costPrice": money(self.cost_price),
            "sellingPrice": money(self.selling_price),
            "actualSellingPrice": money(self.actual_selling_price),
            "profit": money(self.profit),
        }
