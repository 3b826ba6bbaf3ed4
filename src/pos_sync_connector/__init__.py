"""
Conector de sincronización POS.

Registra los cambios de las órdenes de un punto de venta, los envía al API
remoto con reintentos ilimitados y fusiona las respuestas del API en el
Business y el Register vivos de la aplicación.
"""
from .config import settings
from .errors import (
    ApiError,
    ServerError,
    NetworkError,
    InvalidResponse,
    ResponseError,
    NotAuthenticated,
)
from .models import (
    AppliedTax,
    Product,
    ProductCategory,
    TransactionMode,
    Room,
    Credit,
    Transaction,
    CashMovement,
    Item,
    Customer,
    RoomSelection,
)
from .order import Order, OrderChanges
from .business import Business, Register, RegisterState
from .delivery_queue import ReliableDeliveryQueue
from .transport import Transport, RequestsTransport
from .auth import Auth
from .api_client import SyncApiClient, SyncClientState, AUTH_FAILED
from .propagation import ChangePropagator, DataChange
from .state_store import StateStore
from .sync_service import SyncAgent

__version__ = "1.0.0"
__all__ = [
    "settings",
    "ApiError",
    "ServerError",
    "NetworkError",
    "InvalidResponse",
    "ResponseError",
    "NotAuthenticated",
    "AppliedTax",
    "Product",
    "ProductCategory",
    "TransactionMode",
    "Room",
    "Credit",
    "Transaction",
    "CashMovement",
    "Item",
    "Customer",
    "RoomSelection",
    "Order",
    "OrderChanges",
    "Business",
    "Register",
    "RegisterState",
    "ReliableDeliveryQueue",
    "Transport",
    "RequestsTransport",
    "Auth",
    "SyncApiClient",
    "SyncClientState",
    "AUTH_FAILED",
    "ChangePropagator",
    "DataChange",
    "StateStore",
    "SyncAgent",
]
