"""Unit price resolution for cart lines.

A product and each of its variants carry a regular and a sale price in both
BDT and USD. For one currency those four candidates form a ``PriceBundle``;
the first candidate that is set wins, in this order:

    variant sale -> variant regular -> product sale -> product regular -> 0

Sale always beats regular at the same level and any variant price beats any
product price. A candidate is "set" when it is present and greater than zero:
the catalogue stores ``0`` for "no sale price", so zero and missing are the
same thing here. A line with no usable price resolves to ``0`` instead of
raising; checkout rejects such lines before anything is persisted.
"""

from dataclasses import dataclass

from storefront.pricing.currency import Currency, CurrencyConverter, parse_currency


def _is_set(amount) -> bool:
    return amount is not None and amount > 0


@dataclass(frozen=True)
class PriceBundle:
    variant_sale: float | None = None
    variant_regular: float | None = None
    product_sale: float | None = None
    product_regular: float | None = None

    def resolve(self) -> float:
        for candidate in (
            self.variant_sale,
            self.variant_regular,
            self.product_sale,
            self.product_regular,
        ):
            if _is_set(candidate):
                return float(candidate)
        return 0.0


def bundle_for(product, variant, currency) -> PriceBundle:
    """Collect the four price candidates of a product/variant in one currency."""
    currency = parse_currency(currency)
    if currency == Currency.BDT:
        return PriceBundle(
            variant_sale=variant.sale_price_bdt if variant else None,
            variant_regular=variant.price_bdt if variant else None,
            product_sale=product.sale_price_bdt,
            product_regular=product.price_bdt,
        )
    return PriceBundle(
        variant_sale=variant.sale_price_usd if variant else None,
        variant_regular=variant.price_usd if variant else None,
        product_sale=product.sale_price_usd,
        product_regular=product.price_usd,
    )


class PriceResolver:
    """Resolves the unit price of a product/variant in a target currency.

    An explicit price in the target currency is preferred. When a USD price
    is requested and the catalogue has no USD price at all, the BDT price is
    converted with the shared exchange rate.
    """

    def __init__(self, converter: CurrencyConverter):
        self.converter = converter

    def unit_price(self, product, variant, currency) -> float:
        currency = parse_currency(currency)
        price = bundle_for(product, variant, currency).resolve()
        if price > 0 or currency == Currency.BDT:
            return price

        price_bdt = bundle_for(product, variant, Currency.BDT).resolve()
        return self.converter.convert(price_bdt, Currency.BDT, currency)
