from typing import Any, AsyncGenerator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from crm.core.config import Settings
from crm.core.errors import AuthFault
from crm.services.attachment_promoter import AttachmentPromoter
from crm.services.attachment_stager import AttachmentStager
from crm.services.client_store import ClientStore
from crm.services.order_service import OrderService
from crm.services.order_store import OrderRecordStore

bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.database.session() as session:
        yield session


def get_attachment_stager(request: Request) -> AttachmentStager:
    return request.app.state.attachment_stager


def get_attachment_promoter(request: Request) -> AttachmentPromoter:
    return request.app.state.attachment_promoter


def get_client_store(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> ClientStore:
    return ClientStore(session, settings.store_timeout_seconds)


def get_order_store(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> OrderRecordStore:
    return OrderRecordStore(session, settings.store_timeout_seconds)


def get_order_service(
    orders: OrderRecordStore = Depends(get_order_store),
    clients: ClientStore = Depends(get_client_store),
    stager: AttachmentStager = Depends(get_attachment_stager),
    promoter: AttachmentPromoter = Depends(get_attachment_promoter),
) -> OrderService:
    return OrderService(orders, clients, stager, promoter)


async def require_auth(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict[str, Any]:
    if credentials is None or not credentials.credentials:
        raise AuthFault("Access denied, no token provided", status_code=401)
    return await request.app.state.token_verifier.verify(credentials.credentials)
