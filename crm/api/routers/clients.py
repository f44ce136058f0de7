from fastapi import APIRouter, Depends, Response, status

from crm.api.deps import get_client_store
from crm.models.client import Client
from crm.schemas.client import ClientCreate, ClientRead, ClientUpdate
from crm.services.client_store import ClientStore
from crm.services.event_log_service import log_event

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("", response_model=list[ClientRead])
async def list_clients(store: ClientStore = Depends(get_client_store)) -> list[Client]:
    return await store.list_all()


@router.get("/{client_id}", response_model=ClientRead)
async def get_client(client_id: int, store: ClientStore = Depends(get_client_store)) -> Client:
    return await store.get(client_id)


@router.post("", response_model=ClientRead, status_code=status.HTTP_201_CREATED)
async def create_client(payload: ClientCreate, store: ClientStore = Depends(get_client_store)) -> Client:
    client = await store.create(payload.model_dump())
    log_event("create_client", f"client_id={client.id}, email={client.email}")
    return client


@router.put("/{client_id}", response_model=ClientRead)
async def update_client(
    client_id: int,
    payload: ClientUpdate,
    store: ClientStore = Depends(get_client_store),
) -> Client:
    client = await store.replace(client_id, payload.model_dump())
    log_event("update_client", f"client_id={client.id}")
    return client


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(client_id: int, store: ClientStore = Depends(get_client_store)) -> Response:
    await store.delete(client_id)
    log_event("delete_client", f"client_id={client_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
