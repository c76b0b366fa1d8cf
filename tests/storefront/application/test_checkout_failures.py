"""Checkout failure paths: nothing is written before validation passes, and
failures after the order exists leave it in a recognisable state."""

import asyncio
from dataclasses import replace

import pytest
from protean import current_domain
from storefront.cart.items import get_cart
from storefront.checkout.errors import (
    CheckoutValidationError,
    EmptyCartError,
    GatewayError,
    PartialPersistenceError,
    PersistenceError,
)
from storefront.checkout.orchestrator import CheckoutService, checkout
from storefront.checkout.validation import CustomerInfo, validate_customer
from storefront.config import get_settings
from storefront.coupon.coupon import CouponRedemption
from storefront.order.order import Order, OrderStatus, PaymentStatus
from storefront.order.order_item import OrderItem


def _orders():
    return current_domain.repository_for(Order)._dao.query.all().items


def _run(coro):
    return asyncio.run(coro)


class TestPreconditions:
    def test_missing_customer(self, customer_info, cart):
        with pytest.raises(CheckoutValidationError) as exc:
            _run(checkout(None, cart, customer_info, "bkash", transaction_reference="TXN-12345"))
        assert exc.value.field == "customer_id"

    def test_empty_cart_writes_nothing(self, monkeypatch, customer_id, customer_info):
        def _fail(*args, **kwargs):
            raise AssertionError("store write attempted")

        monkeypatch.setattr(CheckoutService, "_persist_order", _fail)
        with pytest.raises(EmptyCartError):
            _run(
                checkout(customer_id, get_cart(customer_id), customer_info, "bkash", transaction_reference="TXN-12345")
            )
        assert _orders() == []

    def test_cleared_cart_is_empty(self, customer_id, customer_info, cart):
        from storefront.cart.items import clear_cart

        clear_cart(customer_id)
        with pytest.raises(EmptyCartError):
            _run(
                checkout(customer_id, get_cart(customer_id), customer_info, "bkash", transaction_reference="TXN-12345")
            )


class TestInputValidation:
    @pytest.mark.parametrize(
        "overrides,field",
        [
            ({"name": "R"}, "name"),
            ({"name": "R2-D2"}, "name"),
            ({"email": "not-an-email"}, "email"),
            ({"email": "a" * 250 + "@example.com"}, "email"),
            ({"phone": "12345"}, "phone"),
            ({"phone": "01712-ABC-678"}, "phone"),
        ],
    )
    def test_customer_fields(self, customer_id, customer_info, cart, overrides, field):
        info = replace(customer_info, **overrides)
        with pytest.raises(CheckoutValidationError) as exc:
            _run(checkout(customer_id, cart, info, "bkash", transaction_reference="TXN-12345"))
        assert exc.value.field == field
        assert _orders() == []

    @pytest.mark.parametrize(
        "overrides,field",
        [
            ({"email": "a..b@example.com"}, "email"),
            ({"email": "a@exa;mple.com"}, "email"),
            ({"email": "a@-example.com"}, "email"),
            ({"email": "a@example..com"}, "email"),
            ({"email": ".a@example.com"}, "email"),
            ({"email": "a@b@example.com"}, "email"),
            ({"email": "a@localhost"}, "email"),
            ({"phone": "(((((())))))"}, "phone"),
            ({"phone": "0171+2345678"}, "phone"),
            ({"phone": "+880 1712-345678-99999"}, "phone"),
        ],
    )
    def test_malformed_contact_details(self, customer_info, overrides, field):
        with pytest.raises(CheckoutValidationError) as exc:
            validate_customer(replace(customer_info, **overrides))
        assert exc.value.field == field

    @pytest.mark.parametrize(
        "overrides",
        [
            {"email": "rahim.uddin+shop@mail.example.com.bd"},
            {"email": "r-u@my-shop.example"},
            {"phone": "(017) 1234-5678"},
            {"phone": "01712345678"},
        ],
    )
    def test_well_formed_contact_details(self, customer_info, overrides):
        assert validate_customer(replace(customer_info, **overrides)) == replace(customer_info, **overrides)

    def test_first_violation_wins(self, customer_id, cart):
        info = CustomerInfo(name="R", email="broken", phone="1")
        with pytest.raises(CheckoutValidationError) as exc:
            _run(checkout(customer_id, cart, info, "", transaction_reference=None))
        assert exc.value.field == "name"

    def test_unicode_names_accepted(self, customer_id, cart):
        info = CustomerInfo(name="রহিম উদ্দিন", email="rahim@example.com", phone="01712345678")
        result = _run(checkout(customer_id, cart, info, "bkash", transaction_reference="TXN-12345"))
        assert result.order.customer_name == "রহিম উদ্দিন"

    def test_payment_method_required(self, customer_id, customer_info, cart):
        with pytest.raises(CheckoutValidationError) as exc:
            _run(checkout(customer_id, cart, customer_info, "  ", transaction_reference="TXN-12345"))
        assert exc.value.field == "payment_method"

    @pytest.mark.parametrize("reference", [None, "", "AB1", "TXN 12345", "x" * 51])
    def test_manual_reference(self, customer_id, customer_info, cart, reference):
        with pytest.raises(CheckoutValidationError) as exc:
            _run(checkout(customer_id, cart, customer_info, "bkash", transaction_reference=reference))
        assert exc.value.field == "transaction_reference"
        assert _orders() == []

    def test_gateway_method_needs_no_reference(self, customer_id, customer_info, cart):
        result = _run(checkout(customer_id, cart, customer_info, "digiseller"))
        assert result.payment_url is not None

    def test_notes_limit(self, customer_id, customer_info, cart):
        with pytest.raises(CheckoutValidationError) as exc:
            _run(
                checkout(
                    customer_id, cart, customer_info, "bkash", transaction_reference="TXN-12345", notes="n" * 501
                )
            )
        assert exc.value.field == "notes"

    def test_unknown_currency(self, customer_id, customer_info, cart):
        with pytest.raises(CheckoutValidationError) as exc:
            _run(checkout(customer_id, cart, customer_info, "bkash", transaction_reference="TXN-12345", currency="EUR"))
        assert exc.value.field == "currency"


class TestCartRevalidation:
    def test_inactive_product_rejected(self, customer_id, customer_info, cart, plain_product):
        from storefront.catalogue.product import Product

        repo = current_domain.repository_for(Product)
        product = repo.get(plain_product.id)
        product.is_active = False
        repo.add(product)

        with pytest.raises(CheckoutValidationError) as exc:
            _run(checkout(customer_id, cart, customer_info, "bkash", transaction_reference="TXN-12345"))
        assert exc.value.field == "cart"
        assert _orders() == []

    def test_unpriced_product_rejected(self, customer_id, customer_info, add_to_cart):
        from storefront.catalogue.product import Product

        product = Product.create(name="Free Sample", price_bdt=0.0)
        current_domain.repository_for(Product).add(product)
        add_to_cart(product)

        with pytest.raises(CheckoutValidationError, match="no price"):
            _run(
                checkout(customer_id, get_cart(customer_id), customer_info, "bkash", transaction_reference="TXN-12345")
            )


class TestPartialPersistence:
    def test_item_failure_reports_counts(
        self, monkeypatch, customer_id, customer_info, plain_product, listed_product, add_to_cart
    ):
        add_to_cart(plain_product)
        add_to_cart(listed_product)
        add_to_cart(listed_product, variant=listed_product.variants[0])

        def _add_first_then_fail(self, items):
            self.add(items[0])
            raise RuntimeError("connection lost")

        repo_cls = type(current_domain.repository_for(OrderItem))
        monkeypatch.setattr(repo_cls, "add_all", _add_first_then_fail)

        with pytest.raises(PartialPersistenceError) as exc:
            _run(
                checkout(customer_id, get_cart(customer_id), customer_info, "bkash", transaction_reference="TXN-12345")
            )

        assert exc.value.persisted == 1
        assert exc.value.failed == 2
        order = current_domain.repository_for(Order).get(exc.value.order_id)
        assert order.status == OrderStatus.PENDING.value
        assert not get_cart(customer_id).is_empty

    def test_order_write_failure(self, monkeypatch, customer_id, customer_info, cart):
        def _fail(cls, **kwargs):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(Order, "place", classmethod(_fail))
        with pytest.raises(PersistenceError) as exc:
            _run(checkout(customer_id, cart, customer_info, "bkash", transaction_reference="TXN-12345"))
        assert exc.value.order_id is None


class TestGatewayFailure:
    def test_gateway_error_cancels_order(self, customer_id, customer_info, cart, fake_gateway):
        fake_gateway.configure(should_succeed=False, failure_reason="Card network down")

        with pytest.raises(GatewayError) as exc:
            _run(checkout(customer_id, cart, customer_info, "digiseller"))

        order = current_domain.repository_for(Order).get(exc.value.order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.payment_status == PaymentStatus.FAILED.value
        assert order.cancellation_reason == "Card network down"
        assert order.payment_url is None

    def test_timeout_is_a_gateway_error(self, customer_id, customer_info, cart, fake_gateway):
        fake_gateway.configure(should_succeed=True, delay=0.5)
        settings = replace(get_settings(), gateway_timeout_seconds=0.05)

        with pytest.raises(GatewayError, match="timed out") as exc:
            _run(
                CheckoutService(settings=settings).checkout(
                    customer_id, cart, customer_info, "digiseller"
                )
            )

        order = current_domain.repository_for(Order).get(exc.value.order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.payment_status == PaymentStatus.FAILED.value

    def test_unexpected_gateway_exception_wrapped(self, customer_id, customer_info, cart):
        class BrokenGateway:
            async def create_payment_request(self, request):
                raise ConnectionError("reset by peer")

        with pytest.raises(GatewayError, match="reset by peer"):
            _run(CheckoutService(gateway=BrokenGateway()).checkout(customer_id, cart, customer_info, "digiseller"))

    def test_compensation_failure_still_raises(self, monkeypatch, customer_id, customer_info, cart, fake_gateway):
        fake_gateway.configure(should_succeed=False)

        def _fail(self, reason):
            raise RuntimeError("write rejected")

        monkeypatch.setattr(Order, "compensate_gateway_failure", _fail)
        with pytest.raises(GatewayError) as exc:
            _run(checkout(customer_id, cart, customer_info, "digiseller"))

        order = current_domain.repository_for(Order).get(exc.value.order_id)
        assert order.status == OrderStatus.PENDING.value

    def test_cart_kept_after_gateway_failure(self, customer_id, customer_info, cart, fake_gateway):
        fake_gateway.configure(should_succeed=False)
        with pytest.raises(GatewayError):
            _run(checkout(customer_id, cart, customer_info, "digiseller"))
        assert not get_cart(customer_id).is_empty

    def test_coupon_stays_available_after_gateway_failure(self, customer_id, customer_info, cart, fake_gateway, coupon):
        coupon(usage_limit=1)
        fake_gateway.configure(should_succeed=False)

        with pytest.raises(GatewayError):
            _run(checkout(customer_id, cart, customer_info, "digiseller", coupon_code="SAVE10"))
        assert current_domain.repository_for(CouponRedemption)._dao.query.all().total == 0

        fake_gateway.configure(should_succeed=True)
        result = _run(checkout(customer_id, get_cart(customer_id), customer_info, "digiseller", coupon_code="SAVE10"))

        assert result.order.discount_total == 100.0
        redemptions = current_domain.repository_for(CouponRedemption)._dao.query.all().items
        assert [r.order_id for r in redemptions] == [str(result.order.id)]


class TestCartClearFailure:
    def test_raises_with_order_id(self, monkeypatch, customer_id, customer_info, cart):
        import storefront.checkout.orchestrator as orchestrator

        def _fail(customer_id):
            raise RuntimeError("cart store down")

        monkeypatch.setattr(orchestrator, "clear_cart", _fail)
        with pytest.raises(PersistenceError) as exc:
            _run(checkout(customer_id, cart, customer_info, "bkash", transaction_reference="TXN-12345"))

        assert exc.value.order_id is not None
        assert current_domain.repository_for(Order).get(exc.value.order_id)
