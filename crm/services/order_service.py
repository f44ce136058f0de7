from __future__ import annotations

import enum
import logging
from collections.abc import Sequence

from fastapi import UploadFile

from crm.core.errors import CRMFault, FilesystemFault, StoreFault
from crm.models.order import Order
from crm.schemas.order import OrderCreate, OrderUpdate
from crm.services.attachment_promoter import AttachmentPromoter
from crm.services.attachment_stager import AttachmentStager, StagedFile
from crm.services.client_store import ClientStore
from crm.services.order_store import OrderRecordStore

logger = logging.getLogger(__name__)


class OrderStage(str, enum.Enum):
    RECEIVED = "received"
    PERSISTED = "persisted"
    STAGED = "staged"
    PROMOTED = "promoted"
    FINALIZED = "finalized"


class OrderService:
    """Keeps the order row and its attachment directory in step.

    The row insert (or scalar update) and the ``picture_urls`` update share
    one transaction. If anything fails before the commit, the transaction is
    rolled back, files promoted for this request are removed and the fault is
    re-raised with the stage that failed.
    """

    def __init__(
        self,
        orders: OrderRecordStore,
        clients: ClientStore,
        stager: AttachmentStager,
        promoter: AttachmentPromoter,
    ) -> None:
        self.orders = orders
        self.clients = clients
        self.stager = stager
        self.promoter = promoter

    async def list_orders(self) -> list[tuple[Order, str]]:
        return await self.orders.list_with_client_names()

    async def get_order(self, order_id: int) -> Order:
        return await self.orders.get(order_id)

    async def stage_uploads(self, uploads: Sequence[UploadFile]) -> list[StagedFile]:
        try:
            return await self.stager.stage_all(uploads)
        except FilesystemFault as exc:
            exc.stage = OrderStage.STAGED.value
            logger.warning("Staging uploads failed: %s", exc.message)
            raise

    async def create_order(self, payload: OrderCreate, staged: Sequence[StagedFile] = ()) -> Order:
        stage = OrderStage.RECEIVED
        order: Order | None = None
        promoted: list[str] = []
        try:
            await self.clients.get(payload.client_id)

            stage = OrderStage.PERSISTED
            order = await self.orders.insert(payload.model_dump())

            if staged:
                stage = OrderStage.PROMOTED
                promoted = await self.promoter.promote(order.id, staged)

            stage = OrderStage.FINALIZED
            if promoted:
                await self.orders.set_picture_urls(order, promoted)
            await self.orders.commit()
        except Exception as exc:
            await self._abandon(exc, stage, order, promoted, remove_directory=True)
            raise
        finally:
            await self.stager.discard(staged)

        return await self.orders.refresh(order)

    async def update_order(self, order_id: int, payload: OrderUpdate, staged: Sequence[StagedFile] = ()) -> Order:
        stage = OrderStage.RECEIVED
        order: Order | None = None
        promoted: list[str] = []
        try:
            order = await self.orders.get(order_id)
            await self.clients.get(payload.client_id)

            stage = OrderStage.PERSISTED
            await self.orders.update_fields(order, payload.model_dump())

            if staged:
                existing = list(order.picture_urls or [])
                stage = OrderStage.PROMOTED
                promoted = await self.promoter.promote(order.id, staged, offset=len(existing))

                stage = OrderStage.FINALIZED
                await self.orders.set_picture_urls(order, existing + promoted)
            else:
                stage = OrderStage.FINALIZED
            await self.orders.commit()
        except Exception as exc:
            await self._abandon(exc, stage, order, promoted, remove_directory=False)
            raise
        finally:
            await self.stager.discard(staged)

        return await self.orders.refresh(order)

    async def delete_order(self, order_id: int) -> None:
        order = await self.orders.get(order_id)
        had_pictures = bool(order.picture_urls)

        await self.orders.delete(order)
        await self.orders.commit()

        if not had_pictures:
            return
        try:
            await self.promoter.remove_order_directory(order_id)
        except FilesystemFault as exc:
            # The row is gone already; the directory is left for manual cleanup.
            logger.error("Order %s deleted but its attachments were not removed: %s", order_id, exc.message)

    async def _abandon(
        self,
        exc: Exception,
        stage: OrderStage,
        order: Order | None,
        promoted: list[str],
        remove_directory: bool,
    ) -> None:
        if stage is OrderStage.RECEIVED:
            return

        order_id = order.id if order is not None else None
        try:
            await self.orders.rollback()
        except StoreFault as rollback_error:
            logger.error("Rollback failed for order %s: %s", order_id, rollback_error.message)
        if order_id is not None and promoted:
            await self.promoter.rollback(order_id, promoted, remove_directory=remove_directory)

        if isinstance(exc, CRMFault):
            exc.stage = stage.value
        logger.warning(
            "Order %s failed at stage %s: %s",
            order_id if order_id is not None else "(new)",
            stage.value,
            exc,
        )
