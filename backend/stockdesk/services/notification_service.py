"""
Notification Service - event sink for catalog and sale mutations

DELIVERY RULES:
- Events raised inside a write transaction are queued in a NotificationOutbox
  and only published after that transaction commits.
- Each published event is stored in its own short transaction.
- Delivery failures are logged and dropped. They never undo the write that
  raised the event.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..models import Notification, Settings
from ..models.notifications import (
    NOTIFICATION_TYPES,
    TYPE_LOW_STOCK,
    TYPE_NEW_SALE,
    TYPE_PRICE_CHANGE,
)
from ..validation import ValidationError


# Event types that can be switched off from the settings screen
_SETTINGS_TOGGLES = {
    TYPE_LOW_STOCK: "notify_low_stock",
    TYPE_NEW_SALE: "notify_new_sales",
    TYPE_PRICE_CHANGE: "notify_price_changes",
}


@dataclass(frozen=True)
class NotificationEvent:
    type: str
    message: str
    related_to: int | None = None
    related_model: str | None = None


def _is_enabled(event_type: str) -> bool:
    toggle = _SETTINGS_TOGGLES.get(event_type)
    if toggle is None:
        return True
    settings = db.session.query(Settings).first()
    if settings is None:
        return True
    return bool(getattr(settings, toggle))


def publish(event: NotificationEvent, *, commit: bool = True) -> Notification | None:
    """
    Record an event. Returns None when the event type is switched off.
    """
    if event.type not in NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification type: {event.type}")

    if not _is_enabled(event.type):
        return None

    notification = Notification(
        type=event.type,
        message=event.message,
        related_to=event.related_to,
        related_model=event.related_model,
        is_read=False,
    )
    db.session.add(notification)
    if commit:
        db.session.commit()
    return notification


class NotificationOutbox:
    """Events collected during a transaction, delivered after it commits."""

    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    def __len__(self) -> int:
        return len(self.events)

    def add(self, event: NotificationEvent) -> None:
        self.events.append(event)

    def flush(self) -> int:
        """Publish queued events; returns how many were stored."""
        delivered = 0
        events, self.events = self.events, []
        for event in events:
            try:
                if publish(event) is not None:
                    delivered += 1
            except Exception:
                db.session.rollback()
                current_app.logger.exception(
                    "Failed to deliver %s notification (related_to=%s)",
                    event.type,
                    event.related_to,
                )
        return delivered


def list_notifications(
    *,
    type_: str | None = None,
    is_read: bool | None = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    """Newest first, with the global unread count for the header badge."""
    query = db.session.query(Notification)
    if type_:
        query = query.filter(Notification.type == type_)
    if is_read is not None:
        query = query.filter(Notification.is_read == is_read)

    total = query.count()
    rows = (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    unread = db.session.query(Notification).filter(Notification.is_read.is_(False)).count()

    return {
        "notifications": [n.to_dict() for n in rows],
        "unreadCount": unread,
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "pages": (total + limit - 1) // limit,
        },
    }


def mark_read(*, ids: list | None = None, mark_all: bool = False, is_read: bool = True) -> int:
    """Bulk read/unread toggle; returns affected row count."""
    query = db.session.query(Notification)
    if mark_all:
        count = query.update({"is_read": True}, synchronize_session=False)
    elif isinstance(ids, list):
        try:
            id_list = [int(i) for i in ids]
        except (TypeError, ValueError):
            raise ValidationError("ids must be a list of integers")
        count = query.filter(Notification.id.in_(id_list)).update(
            {"is_read": is_read}, synchronize_session=False
        )
    else:
        raise ValidationError("Invalid request body")
    db.session.commit()
    return count


def set_read(notification_id: int, is_read: bool = True) -> Notification | None:
    notification = db.session.get(Notification, notification_id)
    if notification is None:
        return None
    notification.is_read = is_read
    db.session.commit()
    return notification


def delete_notification(notification_id: int) -> bool:
    notification = db.session.get(Notification, notification_id)
    if notification is None:
        return False
    db.session.delete(notification)
    db.session.commit()
    return True
