"""Store records governed by retention and subject-rights rules."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from storeguard.core.exceptions import InvalidStateTransitionError

from .base import Base, CreatedAtMixin, PortableJSON


class OrderPaymentStatus(str, Enum):
    """Payment status of an order."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


ORDER_PAYMENT_TRANSITIONS: dict[OrderPaymentStatus, frozenset[OrderPaymentStatus]] = {
    OrderPaymentStatus.PENDING: frozenset({OrderPaymentStatus.PAID, OrderPaymentStatus.FAILED}),
    OrderPaymentStatus.FAILED: frozenset({OrderPaymentStatus.PENDING}),
    OrderPaymentStatus.PAID: frozenset(),
}


class Customer(Base, CreatedAtMixin):
    """Customer profile: the subject of export and erasure requests."""

    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(60), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    display_name: Mapped[str] = mapped_column(String(250), nullable=False, default="")

    # Contact attributes
    billing_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    billing_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    billing_state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    billing_zip: Mapped[str | None] = mapped_column(String(20), nullable=True)
    billing_country: Mapped[str | None] = mapped_column(String(2), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)

    # Link to the external CRM contact
    crm_contact_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    crm_last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Customer(id={self.id})>"


class Order(Base, CreatedAtMixin):
    """Placed order. Financial record under legal hold for its owner."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("customers.id", ondelete="RESTRICT"), nullable=True
    )
    order_number: Mapped[str] = mapped_column(String(40), nullable=False)
    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OrderPaymentStatus.PENDING.value
    )
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    items: Mapped[list] = mapped_column(PortableJSON(), nullable=False, default=list)
    billing_details: Mapped[dict] = mapped_column(PortableJSON(), nullable=False, default=dict)
    crm_deal_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    crm_invoice_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (Index("idx_orders_customer", "customer_id"),)

    def transition_payment(self, target: OrderPaymentStatus) -> None:
        """Move the payment status along the transition table.

        Raises:
            InvalidStateTransitionError: If ``target`` is not reachable
        """
        current = OrderPaymentStatus(self.payment_status)
        if target not in ORDER_PAYMENT_TRANSITIONS[current]:
            raise InvalidStateTransitionError("Order", current.value, target.value)
        self.payment_status = target.value

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, number={self.order_number})>"


class CartItem(Base, CreatedAtMixin):
    """Line in a shopping-cart session."""

    __tablename__ = "cart_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    customer_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True, index=True)
    product_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    crm_product_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    def __repr__(self) -> str:
        return f"<CartItem(id={self.id}, session={self.session_id})>"
