from __future__ import annotations

from typing import Any

from sqlalchemy import func, select

from crm.core.errors import NotFoundFault
from crm.db.store import BaseStore
from crm.models.client import Client
from crm.models.order import Order


def _client_display_name():
    return func.trim(func.coalesce(Client.first_name, "") + " " + func.coalesce(Client.last_name, ""))


class OrderRecordStore(BaseStore):
    """CRUD against the ``orders`` table.

    Writes are flushed, not committed: the caller decides when the unit of
    work (insert plus picture update) is committed.
    """

    async def list_with_client_names(self) -> list[tuple[Order, str]]:
        query = (
            select(Order, _client_display_name().label("client_name"))
            .join(Client, Order.client_id == Client.id)
            .order_by(Order.id.asc())
        )
        result = await self._guard(self.session.execute(query))
        return [(order, name) for order, name in result.all()]

    async def get(self, order_id: int) -> Order:
        order = await self._guard(self.session.get(Order, order_id))
        if order is None:
            raise NotFoundFault("Order not found")
        return order

    async def insert(self, fields: dict[str, Any]) -> Order:
        order = Order(**fields, picture_urls=[])
        self.session.add(order)
        await self.flush()
        return order

    async def update_fields(self, order: Order, fields: dict[str, Any]) -> Order:
        for field, value in fields.items():
            setattr(order, field, value)
        await self.flush()
        return order

    async def set_picture_urls(self, order: Order, picture_urls: list[str]) -> Order:
        # A new list object so the JSON column is marked dirty.
        order.picture_urls = list(picture_urls)
        await self.flush()
        return order

    async def delete(self, order: Order) -> None:
        await self._guard(self.session.delete(order))
        await self.flush()

    async def refresh(self, order: Order) -> Order:
        await self._guard(self.session.refresh(order))
        return order
