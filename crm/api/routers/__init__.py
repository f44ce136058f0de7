from crm.api.routers.clients import router as clients_router
from crm.api.routers.orders import router as orders_router

__all__ = ["clients_router", "orders_router"]
