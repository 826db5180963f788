"""
Publish a sample order onto the worker queues.

Stands in for the Stripe webhook during local development
(point PUBSUB_EMULATOR_HOST at the emulator to stay offline).

Usage:
    python scripts/enqueue_order.py --email reader@example.com --slug comic-a --slug comic-b
    python scripts/enqueue_order.py --order-id ord_1 --slug comic-a --price 1000 --with-confirmation
"""

import argparse
import os
import sys
import uuid
from datetime import datetime, timezone

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.core.events import OrderConfirmationMessage, OrderMessage
from src.messaging.broker import QueuePublisher
from src.shared.config import load_settings
from src.shared.models import OrderConfirmationItem, OrderItem


def build_order(order_id: str, email: str, slugs: list[str], price: int) -> OrderMessage:
    items = [OrderItem(product_slug=slug, quantity=1, price=price) for slug in slugs]
    return OrderMessage(
        order_id=order_id,
        customer_email=email,
        items=items,
        total=sum(item.price * item.quantity for item in items),
        timestamp=datetime.now(timezone.utc),
    )


def build_confirmation(order: OrderMessage, payment_method: str) -> OrderConfirmationMessage:
    return OrderConfirmationMessage(
        order_id=order.order_id,
        customer_email=order.customer_email,
        items=[
            OrderConfirmationItem(product_name=item.product_slug, product_slug=item.product_slug, amount=item.price)
            for item in order.items
        ],
        total=order.total,
        payment_method=payment_method,
        created_at=datetime.now(timezone.utc),
        session_id=f"cs_test_{uuid.uuid4().hex[:16]}",
    )


def main():
    parser = argparse.ArgumentParser(description="Publish a test order to the fulfillment worker")
    parser.add_argument("--order-id", default=None, help="Order id (default: random pi_test_...)")
    parser.add_argument("--email", default="lector@example.com", help="Customer email")
    parser.add_argument("--slug", action="append", dest="slugs", help="Product slug (repeatable)")
    parser.add_argument("--price", type=int, default=1000, help="Unit price in centavos")
    parser.add_argument("--payment-method", default="card")
    parser.add_argument("--with-confirmation", action="store_true", help="Also publish the payment-received email")
    args = parser.parse_args()

    settings = load_settings()
    order = build_order(
        args.order_id or f"pi_test_{uuid.uuid4().hex[:16]}",
        args.email,
        args.slugs or ["comic-a"],
        args.price,
    )

    publisher = QueuePublisher(settings.PROJECT_ID)
    try:
        if args.with_confirmation:
            confirmation = build_confirmation(order, args.payment_method)
            msg_id = publisher.send(settings.ORDER_CONFIRMATIONS_QUEUE, confirmation, retry_limit=settings.QUEUE_RETRY_LIMIT)
            print(f"Published confirmation for {order.order_id} (msg_id: {msg_id})")

        msg_id = publisher.send(settings.ORDERS_QUEUE, order, retry_limit=settings.QUEUE_RETRY_LIMIT)
        print(f"Published order {order.order_id} with {len(order.items)} item(s) (msg_id: {msg_id})")
    finally:
        publisher.close()


if __name__ == "__main__":
    main()
