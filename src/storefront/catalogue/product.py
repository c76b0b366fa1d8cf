"""Product aggregate with Variant entities, the catalogue as checkout reads it.

Catalogue administration lives elsewhere; checkout only needs names, the four
price fields (regular and sale, in BDT and USD) and the optional id of the
product in the external payment gateway's catalogue.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, String

from storefront.domain import storefront


@storefront.entity(part_of="Product")
class Variant:
    """A purchasable option of a product (a package size, a region, a tier)."""

    name = String(required=True, max_length=255)
    price_bdt = Float(min_value=0.0)
    sale_price_bdt = Float(min_value=0.0)
    price_usd = Float(min_value=0.0)
    sale_price_usd = Float(min_value=0.0)
    external_catalog_id = String(max_length=50)
    is_active = Boolean(default=True)


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    price_bdt = Float(min_value=0.0)
    sale_price_bdt = Float(min_value=0.0)
    price_usd = Float(min_value=0.0)
    sale_price_usd = Float(min_value=0.0)
    external_catalog_id = String(max_length=50)
    variants = HasMany(Variant)
    is_active = Boolean(default=True)
    created_at = DateTime()

    @invariant.post
    def variant_names_must_be_unique(self):
        names = [variant.name for variant in self.variants or []]
        if len(names) != len(set(names)):
            raise ValidationError({"variants": ["Variant names must be unique within a product"]})

    @classmethod
    def create(
        cls,
        name,
        price_bdt=None,
        sale_price_bdt=None,
        price_usd=None,
        sale_price_usd=None,
        external_catalog_id=None,
    ):
        return cls(
            name=name,
            price_bdt=price_bdt,
            sale_price_bdt=sale_price_bdt,
            price_usd=price_usd,
            sale_price_usd=sale_price_usd,
            external_catalog_id=external_catalog_id,
            created_at=datetime.now(UTC),
        )

    def add_variant(
        self,
        name,
        price_bdt=None,
        sale_price_bdt=None,
        price_usd=None,
        sale_price_usd=None,
        external_catalog_id=None,
    ):
        variant = Variant(
            name=name,
            price_bdt=price_bdt,
            sale_price_bdt=sale_price_bdt,
            price_usd=price_usd,
            sale_price_usd=sale_price_usd,
            external_catalog_id=external_catalog_id,
        )
        self.add_variants(variant)
        return variant

    def variant(self, variant_id):
        """Return the variant with the given id, or None."""
        if not variant_id:
            return None
        return next((v for v in self.variants if str(v.id) == str(variant_id)), None)

    def catalog_id_for(self, variant=None):
        """External catalogue id of the line: the variant's first, then the product's."""
        if variant is not None and variant.external_catalog_id:
            return variant.external_catalog_id
        return self.external_catalog_id or None
