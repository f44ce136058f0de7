from decimal import Decimal

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from pydantic import ValidationError

from crm.api.deps import get_order_service
from crm.core.errors import ValidationFault
from crm.models.order import Order
from crm.schemas.order import OrderCreate, OrderListItem, OrderRead, OrderUpdate
from crm.services.event_log_service import log_event
from crm.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def _order_payload(schema: type[OrderCreate] | type[OrderUpdate], **fields) -> OrderCreate | OrderUpdate:
    try:
        return schema(**fields)
    except ValidationError as exc:
        error = exc.errors()[0]
        location = ".".join(str(part) for part in error["loc"])
        raise ValidationFault(f"{location}: {error['msg']}") from exc


@router.get("", response_model=list[OrderListItem])
async def list_orders(service: OrderService = Depends(get_order_service)) -> list[OrderListItem]:
    rows = await service.list_orders()
    return [
        OrderListItem(**OrderRead.model_validate(order).model_dump(), client_name=client_name)
        for order, client_name in rows
    ]


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(order_id: int, service: OrderService = Depends(get_order_service)) -> Order:
    return await service.get_order(order_id)


@router.post("", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
async def create_order(
    amount: Decimal = Form(...),
    order_status: str = Form(..., alias="status"),
    client_id: int = Form(...),
    description: str | None = Form(default=None),
    order_images: list[UploadFile] | None = File(default=None, alias="orderImages"),
    service: OrderService = Depends(get_order_service),
) -> Order:
    payload = _order_payload(
        OrderCreate,
        amount=amount,
        status=order_status,
        client_id=client_id,
        description=description,
    )
    staged = await service.stage_uploads(order_images or [])
    order = await service.create_order(payload, staged)
    log_event("create_order", f"order_id={order.id}, client_id={order.client_id}, pictures={len(order.picture_urls)}")
    return order


@router.put("/{order_id}", response_model=OrderRead)
async def update_order(
    order_id: int,
    amount: Decimal = Form(...),
    order_status: str = Form(..., alias="status"),
    client_id: int = Form(...),
    description: str | None = Form(default=None),
    order_images: list[UploadFile] | None = File(default=None, alias="orderImages"),
    service: OrderService = Depends(get_order_service),
) -> Order:
    payload = _order_payload(
        OrderUpdate,
        amount=amount,
        status=order_status,
        client_id=client_id,
        description=description,
    )
    staged = await service.stage_uploads(order_images or [])
    order = await service.update_order(order_id, payload, staged)
    log_event("update_order", f"order_id={order.id}, pictures={len(order.picture_urls)}")
    return order


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(order_id: int, service: OrderService = Depends(get_order_service)) -> Response:
    await service.delete_order(order_id)
    log_event("delete_order", f"order_id={order_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
