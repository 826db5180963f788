from datetime import datetime, timedelta, timezone

from pydantic import ConfigDict, Field

from src.shared.models import OrderConfirmationItem, OrderItem, WireModel


class OrderMessage(WireModel):
    """
    Message published by the checkout webhook on the `orders` queue
    once a payment succeeds. Immutable once enqueued.
    """

    model_config = ConfigDict(frozen=True)

    order_id: str = Field(..., min_length=1, description="Payment provider id, unique per order")
    customer_email: str = Field(..., min_length=3)
    customer_name: str | None = None
    items: list[OrderItem] = Field(..., min_length=1)
    total: int = Field(..., ge=0, description="Order total in minor units (centavos)")
    timestamp: datetime


class EmailConfirmationMessage(WireModel):
    """
    Published on `confirmation_emails` after a successful fulfillment.
    Carries the time-limited download link for the customer.
    """

    order_id: str
    customer_email: str
    presigned_url: str
    expires_at: datetime
    items: list[OrderItem]
    total: int
    timestamp: datetime

    @classmethod
    def for_order(cls, order: OrderMessage, presigned_url: str, expires_in_seconds: int) -> "EmailConfirmationMessage":
        return cls(
            order_id=order.order_id,
            customer_email=order.customer_email,
            presigned_url=presigned_url,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in_seconds),
            items=list(order.items),
            total=order.total,
            timestamp=order.timestamp,
        )


class OrderConfirmationMessage(WireModel):
    """Published by the checkout webhook on `confirmations` (payment received email)."""

    order_id: str
    customer_email: str
    customer_name: str | None = None
    items: list[OrderConfirmationItem] = Field(..., min_length=1)
    total: int
    payment_method: str
    created_at: datetime
    session_id: str
