"""Shared BDD fixtures and step definitions for the storefront."""

import asyncio

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then
from storefront.checkout.errors import CheckoutError
from storefront.notification.notification import Notification
from storefront.order.order import Order


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for the exception a When step captured."""
    return {"exc": None}


@pytest.fixture()
def outcome():
    """Container for whatever a When step returned."""
    return {"result": None}


@pytest.fixture()
def run_step(error, outcome):
    """Run a coroutine, keeping its result or the checkout or domain error it raised."""

    def _run(coro):
        try:
            outcome["result"] = asyncio.run(coro)
        except (CheckoutError, ValidationError) as exc:
            error["exc"] = exc

    return _run


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced {price:g} BDT'), target_fixture="product")
def priced_product(name, price):
    from storefront.catalogue.product import Product

    product = Product.create(name=name, price_bdt=price)
    current_domain.repository_for(Product).add(product)
    return product


@given(parsers.cfparse("the customer has {quantity:d} of it in the cart"))
def product_in_cart(product, add_to_cart, quantity):
    add_to_cart(product, quantity=quantity)


@given("a placed order", target_fixture="order")
def placed_order():
    order = Order.place(
        customer_id="cust-001",
        customer_name="Rahim Uddin",
        customer_email="rahim@example.com",
        customer_phone="+8801712345678",
        subtotal=1000.0,
        discount_total=0.0,
        currency="BDT",
        payment_method="bkash",
        transaction_reference="TXN-12345",
    )
    current_domain.repository_for(Order).add(order)
    return order


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("no order is created")
def no_order_created():
    assert current_domain.repository_for(Order)._dao.query.all().items == []


@then(parsers.cfparse('the request is rejected with "{code}"'))
def request_rejected(error, code):
    assert error["exc"] is not None, "Expected the request to be rejected"
    assert getattr(error["exc"], "code", None) == code


@then("the request fails with a validation error")
def request_fails_validation(error):
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse('exactly {count:d} "{kind}" notification is enqueued'))
def notifications_enqueued(count, kind):
    records = current_domain.repository_for(Notification)._dao.query.filter(kind=kind).all().items
    assert len(records) == count
