from __future__ import annotations

from typing import Any

from sqlalchemy import exists, select

from crm.core.errors import ConflictFault, NotFoundFault
from crm.db.store import BaseStore
from crm.models.client import Client
from crm.models.order import Order


class ClientStore(BaseStore):
    async def list_all(self) -> list[Client]:
        result = await self._guard(self.session.scalars(select(Client).order_by(Client.id.asc())))
        return list(result)

    async def get(self, client_id: int) -> Client:
        client = await self._guard(self.session.get(Client, client_id))
        if client is None:
            raise NotFoundFault("Client not found")
        return client

    async def find_by_email(self, email: str) -> Client | None:
        return await self._guard(self.session.scalar(select(Client).where(Client.email == email).limit(1)))

    async def create(self, fields: dict[str, Any]) -> Client:
        client = Client(**fields)
        self.session.add(client)
        await self.commit()
        await self._guard(self.session.refresh(client))
        return client

    async def replace(self, client_id: int, fields: dict[str, Any]) -> Client:
        client = await self.get(client_id)
        for field, value in fields.items():
            setattr(client, field, value)
        await self.commit()
        await self._guard(self.session.refresh(client))
        return client

    async def delete(self, client_id: int) -> None:
        client = await self.get(client_id)
        has_orders = await self._guard(self.session.scalar(select(exists().where(Order.client_id == client_id))))
        if has_orders:
            raise ConflictFault("Client still has orders")
        await self._guard(self.session.delete(client))
        await self.commit()
