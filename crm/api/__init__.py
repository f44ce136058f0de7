from fastapi import APIRouter, Depends

from crm.api.deps import require_auth
from crm.api.routers import clients_router, orders_router

api_router = APIRouter(dependencies=[Depends(require_auth)])
api_router.include_router(clients_router)
api_router.include_router(orders_router)

__all__ = ["api_router"]
