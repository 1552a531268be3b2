# Overview: Pytest coverage for atomic sale posting and sale record edits.

"""
Sale Posting Tests

Verifies the guarantees of sales_service.post_sale:
1. Atomicity: a failing line rolls back every earlier decrement
2. Stock never goes negative
3. Profit = (actual - cost) * quantity; totals are sums over lines
4. actualSellingPrice defaults to the variant's selling price
5. Invoice numbers are unique across postings
6. Low-stock notification fires exactly at threshold, not above it
7. Item-level failure leaves no partial writes
8. Metadata updates leave items and totals unchanged
"""

import threading
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.orm.exc import StaleDataError

from stockdesk import create_app
from stockdesk.extensions import db
from stockdesk.models import Notification, Product, Sale, Variant
from stockdesk.models.notifications import TYPE_LOW_STOCK, TYPE_NEW_SALE, TYPE_SALE_UPDATED
from stockdesk.services import notification_service, sales_service, settings_service
from stockdesk.services.errors import (
    InsufficientStock,
    ProductNotFound,
    SaleNotFound,
    SaleValidationError,
    TransactionConflict,
    VariantNotFound,
)
from conftest import variant_stock


NOW = datetime(2024, 1, 31, 10, 0)


def _draft(*items, **extra):
    payload = {"items": list(items), **extra}
    return sales_service.parse_sale_draft(payload)


def _line(product, variant, quantity, price=None):
    line = {"product": product.id, "variant": variant, "quantity": quantity}
    if price is not None:
        line["actualSellingPrice"] = price
    return line


def _notifications(type_):
    return db.session.query(Notification).filter_by(type=type_).all()


# =============================================================================
# DRAFT PARSING
# =============================================================================


class TestParseSaleDraft:

    def test_requires_items(self):
        with pytest.raises(SaleValidationError):
            sales_service.parse_sale_draft({"items": []})

    def test_requires_object(self):
        with pytest.raises(SaleValidationError):
            sales_service.parse_sale_draft(["not", "a", "sale"])

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "two", True])
    def test_rejects_bad_quantity(self, quantity):
        with pytest.raises(SaleValidationError):
            sales_service.parse_sale_draft({
                "items": [{"product": 1, "variant": "Front", "quantity": quantity}],
            })

    def test_rejects_price_with_three_decimals(self):
        with pytest.raises(SaleValidationError) as exc:
            sales_service.parse_sale_draft({
                "items": [{"product": 1, "variant": "Front", "quantity": 1, "actualSellingPrice": 9.999}],
            })
        assert exc.value.details == {"index": 0}

    def test_missing_variant(self):
        with pytest.raises(SaleValidationError):
            sales_service.parse_sale_draft({"items": [{"product": 1, "quantity": 1}]})

    def test_defaults(self):
        draft = sales_service.parse_sale_draft({
            "items": [{"product": "7", "variant": "Front", "quantity": "2", "actualSellingPrice": "14.50"}],
        })
        assert draft.payment_method == "Cash"
        assert draft.flag_status == "green"
        assert draft.items[0].product_id == 7
        assert draft.items[0].quantity == 2
        assert draft.items[0].actual_selling_price == Decimal("14.50")


class TestResolvePaymentStatus:

    @pytest.mark.parametrize("value,expected", [
        ("Completed", "Completed"),
        ("Pending", "Pending"),
        ("Cancelled", "Completed"),
        (None, "Completed"),
        ("bogus", "Completed"),
    ])
    def test_create_statuses(self, value, expected):
        assert sales_service.resolve_payment_status(value) == expected


# =============================================================================
# POSTING
# =============================================================================


class TestPostSale:

    def test_profit_and_totals(self, db_session, brake_pads):
        sale = sales_service.post_sale(
            _draft(_line(brake_pads, "Front", 2, 14), _line(brake_pads, "Rear", 1)),
            now=NOW,
        )

        assert sale.invoice_number == "INV-240131-0001"
        assert sale.total_amount == Decimal("40.50")
        assert sale.total_profit == Decimal("12.50")

        front, rear = sale.items
        assert front.profit == Decimal("8.00")
        assert rear.profit == Decimal("4.50")

        assert variant_stock(brake_pads.id, "Front") == 8
        assert variant_stock(brake_pads.id, "Rear") == 7

    def test_default_pricing(self, db_session, brake_pads):
        sale = sales_service.post_sale(_draft(_line(brake_pads, "Rear", 2)), now=NOW)
        item = sale.items[0]
        assert item.actual_selling_price == item.selling_price == Decimal("12.50")
        assert item.cost_price == Decimal("8.00")

    def test_failing_line_rolls_back_earlier_lines(self, db_session, brake_pads):
        with pytest.raises(InsufficientStock):
            sales_service.post_sale(
                _draft(_line(brake_pads, "Front", 2), _line(brake_pads, "Rear", 99)),
                now=NOW,
            )

        assert variant_stock(brake_pads.id, "Front") == 10
        assert variant_stock(brake_pads.id, "Rear") == 8
        assert db.session.query(Sale).count() == 0

    def test_same_variant_twice_sees_first_decrement(self, db_session, brake_pads):
        with pytest.raises(InsufficientStock):
            sales_service.post_sale(
                _draft(_line(brake_pads, "Front", 6), _line(brake_pads, "Front", 6)),
                now=NOW,
            )
        assert variant_stock(brake_pads.id, "Front") == 10

    def test_stock_never_negative(self, db_session, brake_pads):
        sales_service.post_sale(_draft(_line(brake_pads, "Rear", 8)), now=NOW)
        assert variant_stock(brake_pads.id, "Rear") == 0

        with pytest.raises(InsufficientStock):
            sales_service.post_sale(_draft(_line(brake_pads, "Rear", 1)), now=NOW)
        assert variant_stock(brake_pads.id, "Rear") == 0

    def test_unknown_product(self, db_session, brake_pads):
        with pytest.raises(ProductNotFound):
            sales_service.post_sale(
                _draft(_line(brake_pads, "Front", 1), {"product": 999999, "variant": "Front", "quantity": 1}),
                now=NOW,
            )
        assert variant_stock(brake_pads.id, "Front") == 10

    def test_unknown_variant(self, db_session, brake_pads):
        with pytest.raises(VariantNotFound):
            sales_service.post_sale(_draft(_line(brake_pads, "Middle", 1)), now=NOW)
        assert db.session.query(Sale).count() == 0

    def test_invoice_numbers_unique(self, db_session, brake_pads):
        first = sales_service.post_sale(_draft(_line(brake_pads, "Front", 1)), now=NOW)
        second = sales_service.post_sale(_draft(_line(brake_pads, "Front", 1)), now=NOW)

        assert first.invoice_number == "INV-240131-0001"
        assert second.invoice_number == "INV-240131-0002"

    def test_caller_supplied_invoice_number(self, db_session, brake_pads):
        sale = sales_service.post_sale(
            _draft(_line(brake_pads, "Front", 1), invoiceNumber="MANUAL-1"),
            now=NOW,
        )
        assert sale.invoice_number == "MANUAL-1"

    def test_duplicate_invoice_number_is_conflict(self, db_session, brake_pads):
        sales_service.post_sale(_draft(_line(brake_pads, "Front", 1), invoiceNumber="MANUAL-1"), now=NOW)

        with pytest.raises(TransactionConflict) as exc:
            sales_service.post_sale(_draft(_line(brake_pads, "Front", 1), invoiceNumber="MANUAL-1"), now=NOW)

        assert exc.value.retryable is True
        assert variant_stock(brake_pads.id, "Front") == 9

    def test_cancelled_on_create_becomes_completed(self, db_session, brake_pads):
        sale = sales_service.post_sale(
            _draft(_line(brake_pads, "Front", 1), paymentStatus="Cancelled"),
            now=NOW,
        )
        assert sale.payment_status == "Completed"

    def test_pending_kept(self, db_session, brake_pads):
        sale = sales_service.post_sale(
            _draft(_line(brake_pads, "Front", 1), paymentStatus="Pending", paymentMethod="Card"),
            now=NOW,
        )
        assert sale.payment_status == "Pending"
        assert sale.payment_method == "Card"


class TestConcurrencyConflict:

    def test_stale_data_maps_to_conflict_and_rolls_back(self, db_session, brake_pads, monkeypatch):
        def _stale(now):
            raise StaleDataError("product_variants row changed underneath us")

        monkeypatch.setattr(sales_service, "next_invoice_number", _stale)

        with pytest.raises(TransactionConflict) as exc:
            sales_service.post_sale(_draft(_line(brake_pads, "Front", 3)), now=NOW)

        assert exc.value.http_status == 500
        assert exc.value.to_dict()["retryable"] is True
        assert variant_stock(brake_pads.id, "Front") == 10
        assert db.session.query(Sale).count() == 0


@pytest.fixture
def file_app(tmp_path):
    """App bound to an on-disk SQLite file so several threads share one database."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'stockdesk.db'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'timeout': 30}},
        'AUTH_DISABLED': True,
        'API_TOKENS': {},
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


class TestConcurrentPosting:

    THREADS = 4
    INITIAL_STOCK = 10
    QUANTITY = 3

    def test_parallel_sales_never_oversell(self, file_app):
        with file_app.app_context():
            product = Product(name="Brake Pad Set", category="Brakes", brand="Bosch", supplier="PartsCo")
            product.variants = [Variant(
                name="Front", sku="BP-FRONT",
                cost_price=Decimal("10.00"), selling_price=Decimal("15.00"),
                current_stock=self.INITIAL_STOCK, low_stock_threshold=5,
            )]
            db.session.add(product)
            db.session.commit()
            product_id = product.id

        barrier = threading.Barrier(self.THREADS)
        results = []
        lock = threading.Lock()

        def _sell():
            with file_app.app_context():
                draft = sales_service.parse_sale_draft({
                    "items": [{"product": product_id, "variant": "Front", "quantity": self.QUANTITY}],
                })
                barrier.wait()
                try:
                    sale = sales_service.post_sale(draft)
                    outcome = ("ok", sale.invoice_number)
                except InsufficientStock as e:
                    outcome = ("short", str(e))
                except Exception as e:
                    outcome = ("error", repr(e))
                with lock:
                    results.append(outcome)

        workers = [threading.Thread(target=_sell) for _ in range(self.THREADS)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join(timeout=60)

        assert len(results) == self.THREADS
        assert [r for r in results if r[0] == "error"] == []

        invoices = [r[1] for r in results if r[0] == "ok"]
        shortfalls = [r[1] for r in results if r[0] == "short"]
        assert len(invoices) == self.INITIAL_STOCK // self.QUANTITY
        assert len(set(invoices)) == len(invoices)
        assert all("Available: 1" in message for message in shortfalls)

        with file_app.app_context():
            stock = db.session.query(Variant).filter_by(product_id=product_id).one().current_stock
            assert stock == self.INITIAL_STOCK - self.QUANTITY * len(invoices)
            assert stock >= 0
            assert db.session.query(Sale).count() == len(invoices)


# =============================================================================
# NOTIFICATIONS
# =============================================================================


class TestSaleNotifications:

    def test_new_sale_notification(self, db_session, brake_pads):
        sale = sales_service.post_sale(_draft(_line(brake_pads, "Front", 1)), now=NOW)

        events = _notifications(TYPE_NEW_SALE)
        assert len(events) == 1
        assert events[0].related_to == sale.id
        assert events[0].related_model == "Sale"

    def test_low_stock_exactly_at_threshold(self, db_session, brake_pads):
        sales_service.post_sale(_draft(_line(brake_pads, "Front", 5)), now=NOW)

        events = _notifications(TYPE_LOW_STOCK)
        assert len(events) == 1
        assert events[0].related_to == brake_pads.id
        assert "5 units left" in events[0].message

    def test_no_low_stock_one_above_threshold(self, db_session, brake_pads):
        sales_service.post_sale(_draft(_line(brake_pads, "Front", 4)), now=NOW)
        assert _notifications(TYPE_LOW_STOCK) == []

    def test_failed_sale_emits_nothing(self, db_session, brake_pads):
        with pytest.raises(InsufficientStock):
            sales_service.post_sale(
                _draft(_line(brake_pads, "Front", 5), _line(brake_pads, "Rear", 99)),
                now=NOW,
            )
        assert db.session.query(Notification).count() == 0

    def test_low_stock_toggle_off(self, db_session, brake_pads):
        settings_service.update_settings({"notificationSettings": {"lowStock": False}})

        sales_service.post_sale(_draft(_line(brake_pads, "Front", 5)), now=NOW)

        assert _notifications(TYPE_LOW_STOCK) == []
        assert len(_notifications(TYPE_NEW_SALE)) == 1

    def test_notification_failure_does_not_undo_sale(self, db_session, brake_pads, monkeypatch):
        def _broken(event, *, commit=True):
            raise RuntimeError("notification store unavailable")

        monkeypatch.setattr(notification_service, "publish", _broken)

        sale = sales_service.post_sale(_draft(_line(brake_pads, "Front", 5)), now=NOW)

        assert sale.id is not None
        assert db.session.query(Sale).count() == 1
        assert variant_stock(brake_pads.id, "Front") == 5


# =============================================================================
# READ / EDIT / DELETE
# =============================================================================


class TestSaleRecords:

    def test_update_touches_metadata_only(self, db_session, brake_pads):
        sale = sales_service.post_sale(
            _draft(_line(brake_pads, "Front", 2), _line(brake_pads, "Rear", 1)),
            now=NOW,
        )
        before_items = [item.to_dict() for item in sale.items]

        updated = sales_service.update_sale(sale.id, {
            "customer": "Jane Doe",
            "paymentStatus": "Cancelled",
            "flagStatus": "red",
            "notes": "Refund pending",
            "items": [],
            "totalAmount": 0,
            "invoiceNumber": "HACKED",
        })

        assert updated.customer == "Jane Doe"
        assert updated.payment_status == "Cancelled"
        assert updated.flag_status == "red"
        assert updated.invoice_number == "INV-240131-0001"
        assert updated.total_amount == Decimal("42.50")
        assert [item.to_dict() for item in updated.items] == before_items
        assert len(_notifications(TYPE_SALE_UPDATED)) == 1

    def test_update_rejects_unknown_status(self, db_session, brake_pads):
        sale = sales_service.post_sale(_draft(_line(brake_pads, "Front", 1)), now=NOW)
        with pytest.raises(SaleValidationError):
            sales_service.update_sale(sale.id, {"paymentStatus": "Refunded"})

    def test_update_missing_sale(self, db_session):
        with pytest.raises(SaleNotFound):
            sales_service.update_sale(424242, {"customer": "x"})

    def test_delete_does_not_restore_stock(self, db_session, brake_pads):
        sale = sales_service.post_sale(_draft(_line(brake_pads, "Front", 4)), now=NOW)

        sales_service.delete_sale(sale.id)

        assert db.session.query(Sale).count() == 0
        assert variant_stock(brake_pads.id, "Front") == 6

    def test_product_info_after_product_deleted(self, db_session, brake_pads, oil_filter):
        sale = sales_service.post_sale(
            _draft(_line(brake_pads, "Front", 1), _line(oil_filter, "Standard", 1)),
            now=NOW,
        )
        oil_id = oil_filter.id
        db.session.delete(db.session.get(Product, oil_id))
        db.session.commit()

        data = sales_service.sale_with_products(sales_service.get_sale(sale.id))

        assert data["items"][0]["productInfo"]["name"] == "Brake Pad Set"
        assert data["items"][1]["product"] == oil_id
        assert data["items"][1]["productInfo"] is None

    def test_list_filters_and_pagination(self, db_session, brake_pads):
        sales_service.post_sale(_draft(_line(brake_pads, "Front", 1), customer="Alice"), now=datetime(2024, 1, 10))
        sales_service.post_sale(_draft(_line(brake_pads, "Front", 1), customer="Bob", paymentStatus="Pending"),
                                now=datetime(2024, 1, 20))
        sales_service.post_sale(_draft(_line(brake_pads, "Rear", 1), customer="Alicia"), now=datetime(2024, 2, 5))

        result = sales_service.list_sales(page=1, limit=2)
        assert result["pagination"] == {"total": 3, "page": 1, "limit": 2, "pages": 2}
        assert [s["customer"] for s in result["sales"]] == ["Alicia", "Bob"]

        result = sales_service.list_sales(search="ali")
        assert {s["customer"] for s in result["sales"]} == {"Alice", "Alicia"}

        result = sales_service.list_sales(payment_status="Pending")
        assert [s["customer"] for s in result["sales"]] == ["Bob"]

        result = sales_service.list_sales(start_date="2024-01-15", end_date="2024-01-31")
        assert [s["customer"] for s in result["sales"]] == ["Bob"]

    def test_list_rejects_bad_dates(self, db_session):
        with pytest.raises(SaleValidationError):
            sales_service.list_sales(start_date="last tuesday")
