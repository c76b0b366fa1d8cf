"""Cart lines priced for checkout."""

from dataclasses import dataclass

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.checkout.errors import CheckoutValidationError
from storefront.pricing.resolver import PriceResolver


@dataclass(frozen=True)
class PricedLine:
    product_id: str
    variant_id: str | None
    product_name: str
    quantity: int
    unit_price: float
    catalog_id: str | None = None

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


def price_cart(items, currency, resolver: PriceResolver) -> list[PricedLine]:
    """Resolve every cart line against the current catalogue.

    A line whose product disappeared, whose variant no longer belongs to the
    product, or which resolves to no price at all, rejects the whole checkout.
    """
    products = current_domain.repository_for(Product)
    lines = []
    for item in items:
        try:
            product = products.get(item.product_id)
        except ObjectNotFoundError:
            raise CheckoutValidationError("cart", f"Product {item.product_id} is no longer available") from None
        if not product.is_active:
            raise CheckoutValidationError("cart", f"{product.name} is no longer available")

        variant = product.variant(item.variant_id)
        if item.variant_id and variant is None:
            raise CheckoutValidationError("cart", f"The selected option of {product.name} is no longer available")

        unit_price = resolver.unit_price(product, variant, currency)
        if unit_price <= 0:
            raise CheckoutValidationError("cart", f"{product.name} has no price")

        lines.append(
            PricedLine(
                product_id=str(product.id),
                variant_id=str(variant.id) if variant else None,
                product_name=f"{product.name} - {variant.name}" if variant else product.name,
                quantity=item.quantity,
                unit_price=unit_price,
                catalog_id=product.catalog_id_for(variant),
            )
        )
    return lines
