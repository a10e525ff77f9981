"""Customer repository: everything held locally about one subject."""

from sqlalchemy import delete, func, select

from storeguard.core.exceptions import NotFoundError
from storeguard.db.models.commerce import CartItem, Customer, Order
from storeguard.db.repositories.base import BaseRepository


class CustomerRepository(BaseRepository[Customer, int]):
    """Subject-scoped reads and the two erasure writes (anonymize, delete)."""

    model = Customer

    async def get_orders(self, customer_id: int) -> list[Order]:
        """Orders owned by the customer, newest first."""
        stmt = (
            select(Order)
            .where(Order.customer_id == customer_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_orders(self, customer_id: int) -> int:
        stmt = select(func.count(Order.id)).where(Order.customer_id == customer_id)
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def require(self, customer_id: int) -> Customer:
        """Get a customer that must exist.

        Raises:
            NotFoundError: If there is no such customer
        """
        customer = await self.get(customer_id)
        if customer is None:
            raise NotFoundError(customer_id)
        return customer

    async def get_cart_items(self, customer_id: int) -> list[CartItem]:
        """Cart lines owned by the customer, grouped by session."""
        stmt = (
            select(CartItem)
            .where(CartItem.customer_id == customer_id)
            .order_by(CartItem.session_id, CartItem.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def delete_cart_items(self, customer_id: int) -> int:
        """Delete every cart line owned by the customer.

        Returns:
            Number of lines removed
        """
        stmt = delete(CartItem).where(CartItem.customer_id == customer_id)
        result = await self.db.execute(stmt)
        await self.db.flush()
        return result.rowcount or 0
