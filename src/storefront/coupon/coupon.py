"""Coupon and CouponRedemption aggregates.

Checkout never mutates a Coupon. Usage limits and the "one use per customer"
rule are enforced by counting CouponRedemption records, one per order that
applied the coupon.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from storefront.domain import storefront


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def normalize_code(code) -> str:
    return str(code or "").strip().upper()


@storefront.aggregate
class Coupon:
    code = String(required=True, max_length=50, unique=True)
    discount_type = String(choices=DiscountType, required=True)
    discount_value = Float(required=True, min_value=0.0)
    min_order_amount = Float(default=0.0, min_value=0.0)
    max_discount_amount = Float(min_value=0.0)  # Cap for percentage coupons
    usage_limit = Integer(min_value=1)  # None means unlimited
    is_active = Boolean(default=True)
    starts_at = DateTime()
    expires_at = DateTime()
    description = Text()
    created_at = DateTime()

    @invariant.post
    def percentage_must_not_exceed_hundred(self):
        if self.discount_type == DiscountType.PERCENTAGE.value and (self.discount_value or 0) > 100:
            raise ValidationError({"discount_value": ["Percentage discount cannot exceed 100"]})

    @invariant.post
    def window_must_be_ordered(self):
        if self.starts_at and self.expires_at and self.starts_at > self.expires_at:
            raise ValidationError({"expires_at": ["Coupon cannot expire before it starts"]})

    @classmethod
    def create(
        cls,
        code,
        discount_type,
        discount_value,
        min_order_amount=0.0,
        max_discount_amount=None,
        usage_limit=None,
        starts_at=None,
        expires_at=None,
        description=None,
        is_active=True,
    ):
        return cls(
            code=normalize_code(code),
            discount_type=discount_type.value if isinstance(discount_type, DiscountType) else discount_type,
            discount_value=discount_value,
            min_order_amount=min_order_amount,
            max_discount_amount=max_discount_amount,
            usage_limit=usage_limit,
            starts_at=starts_at,
            expires_at=expires_at,
            description=description,
            is_active=is_active,
            created_at=datetime.now(UTC),
        )


@storefront.repository(part_of=Coupon)
class CouponRepository:
    def find_active_by_code(self, code) -> Coupon | None:
        results = self._dao.query.filter(code=normalize_code(code), is_active=True).all()
        return results.items[0] if results.items else None


@storefront.aggregate
class CouponRedemption:
    coupon_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=50)
    customer_id = Identifier(required=True)
    order_id = Identifier(required=True)
    discount_applied = Float(required=True, min_value=0.0)
    redeemed_at = DateTime()

    @classmethod
    def record(cls, coupon_id, coupon_code, customer_id, order_id, discount_applied):
        return cls(
            coupon_id=coupon_id,
            coupon_code=coupon_code,
            customer_id=customer_id,
            order_id=order_id,
            discount_applied=discount_applied,
            redeemed_at=datetime.now(UTC),
        )


@storefront.repository(part_of=CouponRedemption)
class CouponRedemptionRepository:
    def count_for_coupon(self, coupon_id) -> int:
        return self._dao.query.filter(coupon_id=str(coupon_id)).all().total

    def redeemed_by(self, coupon_id, customer_id) -> bool:
        results = self._dao.query.filter(coupon_id=str(coupon_id), customer_id=str(customer_id)).all()
        return bool(results.items)
