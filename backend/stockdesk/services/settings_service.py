# Overview: Service-layer operations for the business settings singleton.

from __future__ import annotations

from ..extensions import db
from ..models import Settings
from ..validation import ModelValidationPolicy, ValidationError, validate_payload

SETTINGS_POLICY = ModelValidationPolicy(
    writable_fields={
        "businessName": "business_name",
        "email": "email",
        "phone": "phone",
        "address": "address",
        "currency": "currency",
        "lowStockThreshold": "low_stock_threshold",
        "taxRate": "tax_rate",
    },
)

NOTIFICATION_TOGGLES = {
    "lowStock": "notify_low_stock",
    "newSales": "notify_new_sales",
    "priceChanges": "notify_price_changes",
}


def get_settings() -> Settings:
    """
    Return the settings row, creating it with defaults on first access.

    Only flushes; the caller owns the transaction.
    """
    settings = db.session.query(Settings).order_by(Settings.id.asc()).first()
    if settings is None:
        settings = Settings()
        db.session.add(settings)
        db.session.flush()
    return settings


def default_low_stock_threshold() -> int:
    settings = db.session.query(Settings).order_by(Settings.id.asc()).first()
    return settings.low_stock_threshold if settings else 5


def update_settings(payload: dict) -> Settings:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    toggles = payload.get("notificationSettings") or {}
    if not isinstance(toggles, dict):
        raise ValidationError("notificationSettings must be an object")

    patch = validate_payload(
        model=Settings,
        payload={k: v for k, v in payload.items() if k != "notificationSettings"},
        policy=SETTINGS_POLICY,
        partial=True,
        ignore_unknown=True,
    )
    threshold = patch.get("low_stock_threshold")
    if threshold is not None and threshold < 1:
        raise ValidationError("lowStockThreshold must be >= 1")

    settings = get_settings()
    for attr, value in patch.items():
        setattr(settings, attr, value)

    for key, attr in NOTIFICATION_TOGGLES.items():
        if key in toggles:
            if not isinstance(toggles[key], bool):
                raise ValidationError(f"notificationSettings.{key} must be true or false")
            setattr(settings, attr, toggles[key])

    db.session.commit()
    return settings
