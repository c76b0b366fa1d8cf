"""Cart item management: commands, handler and the checkout-facing helpers.

Checkout talks to the cart through ``get_cart`` and ``clear_cart`` only.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.catalogue.product import Product
from storefront.domain import storefront

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Cart")
class AddToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="Cart")
class UpdateCartQuantity:
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)
    new_quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="Cart")
class RemoveFromCart:
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)


@storefront.command(part_of="Cart")
class ClearCart:
    customer_id = Identifier(required=True)


def _existing_cart(customer_id) -> Cart:
    cart = current_domain.repository_for(Cart).for_customer(customer_id)
    if cart is None:
        raise ValidationError({"cart": ["Cart is empty"]})
    return cart


@storefront.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        # Raises ObjectNotFoundError for unknown products
        product = current_domain.repository_for(Product).get(command.product_id)
        if command.variant_id and product.variant(command.variant_id) is None:
            raise ValidationError({"variant_id": ["Variant does not belong to this product"]})

        repo = current_domain.repository_for(Cart)
        cart = repo.for_customer(command.customer_id) or Cart.create(customer_id=command.customer_id)
        item_id = cart.add_item(
            product_id=command.product_id,
            variant_id=command.variant_id,
            quantity=command.quantity,
        )
        repo.add(cart)
        return item_id

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        cart = _existing_cart(command.customer_id)
        cart.update_item_quantity(item_id=command.item_id, new_quantity=command.new_quantity)
        current_domain.repository_for(Cart).add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = _existing_cart(command.customer_id)
        cart.remove_item(item_id=command.item_id)
        current_domain.repository_for(Cart).add(cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        return clear_cart(command.customer_id)


def get_cart(customer_id) -> Cart | None:
    return current_domain.repository_for(Cart).for_customer(customer_id)


def clear_cart(customer_id) -> int:
    """Empty the customer's cart and return the number of removed lines.

    Clearing a missing or already-empty cart is a no-op that writes nothing.
    """
    repo = current_domain.repository_for(Cart)
    cart = repo.for_customer(customer_id)
    if cart is None or cart.is_empty:
        return 0

    removed = cart.clear()
    repo.add(cart)
    logger.info("cart_cleared", customer_id=str(customer_id), items_removed=removed)
    return removed
