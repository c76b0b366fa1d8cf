import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(scope="session", autouse=True)
def setup_db(storefront_bed):
    from storefront.domain import storefront
    from storefront.utils.db import drop_db, setup_db

    setup_db(storefront)

    yield

    drop_db(storefront)


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    from storefront.gateway import reset_gateway
    from storefront.notification.channel import reset_channels
    from storefront.notification.outbox import reset_outbox

    reset_gateway()
    reset_channels()
    reset_outbox()

    with storefront_bed.domain_context():
        yield

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# Catalogue and cart builders
# ---------------------------------------------------------------------------
@pytest.fixture()
def customer_id():
    return "cust-001"


@pytest.fixture()
def customer_info():
    from storefront.checkout.validation import CustomerInfo

    return CustomerInfo(name="Rahim Uddin", email="rahim@example.com", phone="+880 1712-345678")


@pytest.fixture()
def plain_product():
    """A product with a regular BDT price of 1000 and nothing else."""
    from storefront.catalogue.product import Product

    product = Product.create(name="Canva Pro", price_bdt=1000.0)
    current_domain.repository_for(Product).add(product)
    return product


@pytest.fixture()
def listed_product():
    """A product listed in the gateway's catalogue, with a variant."""
    from storefront.catalogue.product import Product

    product = Product.create(
        name="Netflix Premium",
        price_bdt=1500.0,
        sale_price_bdt=1300.0,
        price_usd=14.0,
        external_catalog_id="3456789",
    )
    product.add_variant(name="1 Month", price_bdt=1400.0, sale_price_bdt=1200.0, external_catalog_id="3456790")
    current_domain.repository_for(Product).add(product)
    return current_domain.repository_for(Product).get(product.id)


@pytest.fixture()
def add_to_cart(customer_id):
    from storefront.cart.items import AddToCart

    def _add(product, variant=None, quantity=1, customer=None):
        current_domain.process(
            AddToCart(
                customer_id=customer or customer_id,
                product_id=str(product.id),
                variant_id=str(variant.id) if variant else None,
                quantity=quantity,
            ),
            asynchronous=False,
        )

    return _add


@pytest.fixture()
def cart(customer_id, plain_product, add_to_cart):
    """The customer's cart holding one plain product."""
    from storefront.cart.items import get_cart

    add_to_cart(plain_product)
    return get_cart(customer_id)


@pytest.fixture()
def coupon():
    """Create and store a coupon; keyword arguments override the defaults."""
    from storefront.coupon.coupon import Coupon, DiscountType

    def _coupon(code="SAVE10", discount_type=DiscountType.PERCENTAGE, discount_value=10.0, **kwargs):
        kwargs.setdefault("min_order_amount", 500.0)
        record = Coupon.create(code=code, discount_type=discount_type, discount_value=discount_value, **kwargs)
        current_domain.repository_for(Coupon).add(record)
        return record

    return _coupon


@pytest.fixture()
def fake_gateway():
    from storefront.gateway import get_gateway

    return get_gateway()


@pytest.fixture()
def email_channel():
    from storefront.notification.channel import get_channel

    return get_channel()
