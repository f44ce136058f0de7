from crm.schemas.client import ClientCreate, ClientRead, ClientUpdate
from crm.schemas.order import OrderCreate, OrderListItem, OrderRead, OrderUpdate

__all__ = [
    "ClientCreate",
    "ClientRead",
    "ClientUpdate",
    "OrderCreate",
    "OrderListItem",
    "OrderRead",
    "OrderUpdate",
]
