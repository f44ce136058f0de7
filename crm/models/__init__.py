from crm.models.client import Client
from crm.models.order import Order

__all__ = ["Client", "Order"]
