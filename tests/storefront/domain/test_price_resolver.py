"""Tests for unit price resolution and currency conversion."""

import pytest
from storefront.catalogue.product import Product
from storefront.pricing.currency import Currency, CurrencyConverter, format_amount, parse_currency, round_amount
from storefront.pricing.resolver import PriceBundle, PriceResolver


@pytest.fixture()
def resolver():
    return PriceResolver(CurrencyConverter(110.0))


class TestPriceBundlePrecedence:
    def test_variant_sale_beats_everything(self):
        bundle = PriceBundle(variant_sale=90.0, variant_regular=100.0, product_sale=50.0, product_regular=200.0)
        assert bundle.resolve() == 90.0

    def test_variant_sale_beats_cheaper_product_sale(self):
        bundle = PriceBundle(variant_sale=120.0, product_sale=10.0, product_regular=200.0)
        assert bundle.resolve() == 120.0

    def test_variant_regular_beats_product_sale(self):
        bundle = PriceBundle(variant_regular=100.0, product_sale=50.0, product_regular=200.0)
        assert bundle.resolve() == 100.0

    def test_product_sale_beats_product_regular(self):
        assert PriceBundle(product_sale=50.0, product_regular=200.0).resolve() == 50.0

    def test_product_regular_is_last_resort(self):
        assert PriceBundle(product_regular=200.0).resolve() == 200.0

    def test_missing_everything_resolves_to_zero(self):
        assert PriceBundle().resolve() == 0.0

    def test_zero_is_treated_as_missing(self):
        bundle = PriceBundle(variant_sale=0.0, variant_regular=0, product_sale=None, product_regular=300.0)
        assert bundle.resolve() == 300.0


class TestPriceResolver:
    def test_bdt_price_from_variant_sale(self, resolver):
        product = Product.create(name="Spotify", price_bdt=500.0, sale_price_bdt=450.0)
        variant = product.add_variant(name="Family", price_bdt=900.0, sale_price_bdt=800.0)
        assert resolver.unit_price(product, variant, "BDT") == 800.0

    def test_product_price_without_variant(self, resolver):
        product = Product.create(name="Spotify", price_bdt=500.0, sale_price_bdt=450.0)
        assert resolver.unit_price(product, None, Currency.BDT) == 450.0

    def test_explicit_usd_price_preferred(self, resolver):
        product = Product.create(name="Spotify", price_bdt=550.0, price_usd=4.5)
        assert resolver.unit_price(product, None, "USD") == 4.5

    def test_usd_falls_back_to_converted_bdt(self, resolver):
        product = Product.create(name="Spotify", price_bdt=1100.0)
        assert resolver.unit_price(product, None, "USD") == pytest.approx(10.0)

    def test_unpriced_product_resolves_to_zero(self, resolver):
        product = Product.create(name="Free sample")
        assert resolver.unit_price(product, None, "BDT") == 0.0
        assert resolver.unit_price(product, None, "USD") == 0.0


class TestCurrency:
    def test_convert_between_currencies(self):
        converter = CurrencyConverter(110.0)
        assert converter.convert(1100.0, "BDT", "USD") == pytest.approx(10.0)
        assert converter.convert(10.0, "USD", "BDT") == pytest.approx(1100.0)
        assert converter.convert(42.0, "BDT", "BDT") == 42.0

    def test_conversion_does_not_round(self):
        assert CurrencyConverter(110.0).convert(1000.0, "BDT", "USD") == pytest.approx(9.090909, rel=1e-6)

    def test_rate_must_be_positive(self):
        with pytest.raises(ValueError):
            CurrencyConverter(0)

    def test_unknown_currency_rejected(self):
        with pytest.raises(ValueError, match="Unsupported currency"):
            parse_currency("EUR")

    def test_codes_are_case_insensitive(self):
        assert parse_currency(" usd ") == Currency.USD

    def test_formatting(self):
        assert format_amount(1000.0, "BDT") == "৳1,000"
        assert format_amount(9.0909, "USD") == "$9.09"

    def test_rounding_to_natural_precision(self):
        assert round_amount(99.6, "BDT") == 100.0
        assert round_amount(9.094, "USD") == 9.09

    @pytest.mark.parametrize(
        "amount,currency,expected",
        [
            (100.5, "BDT", 101.0),
            (102.5, "BDT", 103.0),
            (0.125, "USD", 0.13),
            (2.675, "USD", 2.68),
            (99.49, "BDT", 99.0),
        ],
    )
    def test_halves_round_up(self, amount, currency, expected):
        assert round_amount(amount, currency) == expected

    def test_formatting_rounds_halves_up(self):
        assert format_amount(1000.5, "BDT") == "৳1,001"
