import json

import pytest
from pydantic import ValidationError

from src.core.events import OrderConfirmationMessage, OrderMessage
from src.shared.models import OrderItem, unique_slugs
from src.shared.utils import format_amount, safe_filename


def test_order_message_parses_camel_case(order):
    assert order.order_id == "ord_1"
    assert order.customer_email == "lector@example.com"
    assert order.items[0].product_slug == "comic-a"
    assert order.timestamp.year == 2024


def test_order_message_dumps_camel_case(order):
    data = json.loads(order.model_dump_json(by_alias=True))

    assert data["orderId"] == "ord_1"
    assert data["items"][0]["productSlug"] == "comic-a"
    assert "order_id" not in data


def test_order_message_is_frozen(order):
    with pytest.raises(ValidationError):
        order.total = 1


def test_order_message_requires_items(order_payload):
    order_payload["items"] = []
    with pytest.raises(ValidationError):
        OrderMessage.model_validate(order_payload)


@pytest.mark.parametrize("slug", ["", "   "])
def test_blank_slug_is_rejected(slug):
    with pytest.raises(ValidationError):
        OrderItem(product_slug=slug, price=100)


def test_confirmation_message_parses(confirmation_payload):
    message = OrderConfirmationMessage.model_validate(confirmation_payload)

    assert message.customer_name == "Ana"
    assert message.items[1].product_image == "https://cdn.test/b.png"
    assert message.items[0].product_image is None
    assert message.session_id == "cs_test_1"


def test_unique_slugs_keeps_first_appearance_order():
    items = [OrderItem(product_slug=s, price=1) for s in ("b", "a", "b", "c", "a")]
    assert unique_slugs(items) == ["b", "a", "c"]


@pytest.mark.parametrize(
    "amount, expected",
    [(1000, "$10.00 MXN"), (5, "$0.05 MXN"), (1234567, "$12,345.67 MXN"), (0, "$0.00 MXN")],
)
def test_format_amount(amount, expected):
    assert format_amount(amount) == expected


@pytest.mark.parametrize(
    "value, expected",
    [("comic-a", "comic-a"), ("pi_3Abc", "pi_3Abc"), ("../etc/passwd", "___etc_passwd"), ("a b.pdf", "a_b_pdf"), ("", "_")],
)
def test_safe_filename(value, expected):
    assert safe_filename(value) == expected
