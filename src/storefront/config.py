"""Storefront settings.

Values come from the ``[custom]`` table of ``domain.toml`` and can be
overridden per deployment with environment variables of the same name in
upper case (``USD_TO_BDT_RATE``, ``GATEWAY_TIMEOUT_SECONDS``, ...).
"""

import os
from dataclasses import dataclass, field

from storefront.domain import storefront

_DEFAULTS = {
    "base_currency": "BDT",
    "usd_to_bdt_rate": 110.0,
    "gateway_currency": "USD",
    "gateway_payment_methods": ["digiseller"],
    "gateway_timeout_seconds": 10.0,
    "admin_email": "orders@storefront.local",
    "site_url": "http://localhost:5173",
    "webhook_url": "http://localhost:8000/payments/digiseller/webhook",
    "notification_max_attempts": 3,
    "notification_retry_base_seconds": 60,
    "digiseller_seller_id": "",
    "digiseller_base_url": "https://www.digiseller.market/asp2/pay_wm.asp",
    "digiseller_webhook_secret": "",
}


@dataclass(frozen=True)
class StorefrontSettings:
    base_currency: str = "BDT"
    usd_to_bdt_rate: float = 110.0
    gateway_currency: str = "USD"
    gateway_payment_methods: tuple[str, ...] = field(default_factory=lambda: ("digiseller",))
    gateway_timeout_seconds: float = 10.0
    admin_email: str = "orders@storefront.local"
    site_url: str = "http://localhost:5173"
    webhook_url: str = "http://localhost:8000/payments/digiseller/webhook"
    notification_max_attempts: int = 3
    notification_retry_base_seconds: int = 60
    digiseller_seller_id: str = ""
    digiseller_base_url: str = "https://www.digiseller.market/asp2/pay_wm.asp"
    digiseller_webhook_secret: str = ""


def _custom_config() -> dict:
    try:
        custom = storefront.config.get("custom") or {}
    except AttributeError:
        custom = {}
    return {str(key).lower(): value for key, value in dict(custom).items()}


def _coerce(key: str, raw):
    default = _DEFAULTS[key]
    if isinstance(default, list):
        if isinstance(raw, str):
            return tuple(part.strip() for part in raw.split(",") if part.strip())
        return tuple(raw)
    if isinstance(default, float):
        return float(raw)
    if isinstance(default, int):
        return int(raw)
    return str(raw)


def get_settings() -> StorefrontSettings:
    """Resolve settings: defaults, then domain config, then environment."""
    custom = _custom_config()
    values = {}
    for key, default in _DEFAULTS.items():
        raw = os.getenv(key.upper(), custom.get(key, default))
        values[key] = _coerce(key, raw)
    return StorefrontSettings(**values)
