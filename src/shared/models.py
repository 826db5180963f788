from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for payloads exchanged with the storefront (camelCase JSON on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrderItem(WireModel):
    product_slug: str = Field(..., min_length=1, description="Product slug, also the PDF key in the assets bucket")
    quantity: int = Field(1, ge=1, description="Number of units purchased")
    price: int = Field(..., ge=0, description="Unit price in minor units (centavos)")

    @field_validator("product_slug")
    @classmethod
    def strip_slug(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("product_slug must not be blank")
        return v


class OrderConfirmationItem(WireModel):
    product_name: str
    product_image: str | None = None
    product_slug: str
    amount: int = Field(..., ge=0, description="Amount charged in minor units (centavos)")


class ProcessResult(WireModel):
    """Outcome of one handler attempt. Decides ack vs. requeue; never persisted."""

    success: bool
    presigned_url: str | None = None
    upload_key: str | None = None
    error: str | None = None


def unique_slugs(items: list[OrderItem]) -> list[str]:
    """
    Distinct product slugs in order of first appearance.
    Processing cost scales with distinct assets, not line items.
    """
    return list(dict.fromkeys(item.product_slug for item in items))
