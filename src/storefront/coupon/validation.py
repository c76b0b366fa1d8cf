"""Coupon validation: a code and an order subtotal in, a discount or a rejection out.

Checks run in a fixed order and the first failing one is reported:

1. an active coupon with that code exists (codes are case-insensitive);
2. now is inside the coupon's validity window;
3. the coupon has redemptions left;
4. the subtotal reaches the coupon's minimum;
5. the customer has not redeemed it before.

The discount is ``subtotal * value / 100`` for percentage coupons (capped at
``max_discount_amount`` when one is set) or ``value`` for fixed coupons. It is
rounded half up to the base currency's precision (whole taka by default) and
clamped to ``[0, subtotal]``, so a coupon never produces a negative total.
Validation reads only; running it twice for the same input gives the same
discount.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from storefront.checkout.errors import CouponError, CouponRejection
from storefront.config import get_settings
from storefront.coupon.coupon import Coupon, CouponRedemption, DiscountType, normalize_code
from storefront.pricing.currency import parse_currency, round_amount

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CouponDiscount:
    coupon_id: str
    code: str
    discount_type: str
    discount_value: float
    amount: float


def _aware(moment):
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


def compute_discount(coupon, subtotal: float, currency=None) -> float:
    """Discount for ``subtotal``, both in the base currency."""
    if coupon.discount_type == DiscountType.PERCENTAGE.value:
        discount = subtotal * coupon.discount_value / 100
        if coupon.max_discount_amount:
            discount = min(discount, coupon.max_discount_amount)
    else:
        discount = coupon.discount_value

    discount = round_amount(discount, currency or get_settings().base_currency)
    return max(0.0, min(discount, subtotal))


class CouponValidator:
    def __init__(self, clock=None, base_currency=None):
        self._clock = clock or (lambda: datetime.now(UTC))
        self.base_currency = parse_currency(base_currency or get_settings().base_currency)

    def validate(self, code, subtotal: float, customer_id=None) -> CouponDiscount:
        normalized = normalize_code(code)
        coupon = current_domain.repository_for(Coupon).find_active_by_code(normalized) if normalized else None
        if coupon is None:
            raise CouponError(CouponRejection.NOT_FOUND, coupon_code=normalized)

        now = self._clock()
        starts_at, expires_at = _aware(coupon.starts_at), _aware(coupon.expires_at)
        if (starts_at and now < starts_at) or (expires_at and now > expires_at):
            raise CouponError(CouponRejection.EXPIRED, coupon_code=normalized)

        redemptions = current_domain.repository_for(CouponRedemption)
        if coupon.usage_limit is not None and redemptions.count_for_coupon(coupon.id) >= coupon.usage_limit:
            raise CouponError(CouponRejection.USAGE_LIMIT_REACHED, coupon_code=normalized)

        if coupon.min_order_amount and subtotal < coupon.min_order_amount:
            raise CouponError(
                CouponRejection.BELOW_MINIMUM,
                coupon_code=normalized,
                detail=f"minimum {coupon.min_order_amount:g}",
            )

        if customer_id and redemptions.redeemed_by(coupon.id, customer_id):
            raise CouponError(CouponRejection.ALREADY_REDEEMED, coupon_code=normalized)

        amount = compute_discount(coupon, subtotal, self.base_currency)
        logger.debug("coupon_validated", code=normalized, subtotal=subtotal, discount=amount)
        return CouponDiscount(
            coupon_id=str(coupon.id),
            code=normalized,
            discount_type=coupon.discount_type,
            discount_value=coupon.discount_value,
            amount=amount,
        )
