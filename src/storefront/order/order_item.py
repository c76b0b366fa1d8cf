"""OrderItem aggregate — one priced line of an order.

Items live in their own aggregate so the order row can be written first and
the lines afterwards, in one batch. The two writes are not atomic together:
an order can exist with fewer items than its checkout had, which is what
``PartialPersistenceError`` reports.
"""

import structlog
from protean import UnitOfWork
from protean.fields import Float, Identifier, Integer, String

from storefront.domain import storefront

logger = structlog.get_logger(__name__)


@storefront.aggregate
class OrderItem:
    order_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    product_name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    price = Float(required=True, min_value=0.0)  # Unit price frozen at checkout

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


@storefront.repository(part_of=OrderItem)
class OrderItemRepository:
    def add_all(self, items: list[OrderItem]) -> None:
        """Persist every item of an order in a single unit of work."""
        with UnitOfWork():
            for item in items:
                self.add(item)

    def for_order(self, order_id) -> list[OrderItem]:
        return self._dao.query.filter(order_id=str(order_id)).all().items
