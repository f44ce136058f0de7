from crm.services.attachment_promoter import AttachmentPromoter
from crm.services.attachment_stager import AttachmentStager, StagedFile
from crm.services.client_store import ClientStore
from crm.services.event_log_service import log_event
from crm.services.importer_service import ClientImporter, ImportResult, ImportValidationError, ImportedRow
from crm.services.order_service import OrderService, OrderStage
from crm.services.order_store import OrderRecordStore

__all__ = [
    "AttachmentPromoter",
    "AttachmentStager",
    "ClientImporter",
    "ClientStore",
    "ImportResult",
    "ImportValidationError",
    "ImportedRow",
    "OrderRecordStore",
    "OrderService",
    "OrderStage",
    "StagedFile",
    "log_event",
]
