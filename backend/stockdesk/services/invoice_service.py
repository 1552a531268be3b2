# Overview: Invoice number allocation for sales.

"""
Invoice Number Service

FORMAT: INV-{YY}{MM}{DD}-{seq:04d}

KNOWN BEHAVIOUR (open product-owner decision):
- seq is the count of ALL sale records plus one, not a per-day counter, so
  the suffix does not restart at midnight.
- The suffix is zero-padded to four digits but not truncated; past 9999
  sales it simply grows wider.
- Deleting sales lowers the count, so a later number can repeat an earlier
  one. The unique index on sales.invoice_number rejects the duplicate and
  the sale surfaces as a TransactionConflict.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Sale
from stockdesk.time_utils import utcnow


INVOICE_PREFIX = "INV"


def generate_invoice_number(now: datetime, prior_count: int) -> str:
    """Pure formatting step: date stamp plus global sequence."""
    if prior_count < 0:
        raise ValueError("prior_count must be >= 0")
    return f"{INVOICE_PREFIX}-{now:%y%m%d}-{prior_count + 1:04d}"


def count_sales() -> int:
    return int(db.session.query(func.count(Sale.id)).scalar() or 0)


def next_invoice_number(now: datetime | None = None) -> str:
    """
    Allocate an invoice number inside the caller's transaction.

    The count is read in the same unit of work as the sale insert, so under
    the sale path's write lock two postings cannot observe the same count.
    """
    return generate_invoice_number(now or utcnow(), count_sales())
