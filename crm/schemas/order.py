from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class OrderBase(BaseModel):
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    status: str = Field(min_length=1, max_length=50)
    client_id: int
    description: str | None = None


class OrderCreate(OrderBase):
    pass


class OrderUpdate(OrderBase):
    pass


class OrderRead(OrderBase):
    id: int
    picture_urls: list[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class OrderListItem(OrderRead):
    client_name: str | None = None
