"""
Propagación de cambios: escucha los eventos del Business y del Register y
escribe un ``DataChange`` serializado en la cola de envío por cada uno.
"""
import logging
from typing import Any, Callable, List, Optional, Tuple

from .base import ApiModel
from .business import Business, Register
from .delivery_queue import ReliableDeliveryQueue
from .models import CashMovement
from .order import Order, OrderChanges
from .serializers import (
    serialize_cash_movement,
    serialize_order,
    serialize_order_changes,
    serialize_register,
)

logger = logging.getLogger(__name__)

REGISTER_OPENED = "register.opened"
REGISTER_CLOSED = "register.closed"
CASH_MOVEMENT_ADDED = "cashMovement.added"
CASH_MOVEMENT_REMOVED = "cashMovement.removed"
ORDER_ADDED = "order.added"
ORDER_MODIFIED = "order.modified"

DATA_CHANGE_TYPES = (
    REGISTER_OPENED,
    REGISTER_CLOSED,
    CASH_MOVEMENT_ADDED,
    CASH_MOVEMENT_REMOVED,
    ORDER_ADDED,
    ORDER_MODIFIED,
)


class DataChange(ApiModel):
    """Un cambio a enviar al API: tipo del cambio y sus datos (ya serializados)"""
    type: str
    data: Any = None

    def serialize(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ChangePropagator:
    """
    Conecta las entidades vivas con la ``ReliableDeliveryQueue``.

    Los callbacks de eventos escriben en la cola, por lo que deben ocurrir
    dentro de un event loop en ejecución.
    """

    def __init__(self, queue: ReliableDeliveryQueue, business: Business, register: Register):
        self.queue = queue
        self.business = business
        self.register = register
        self.total_changes = 0
        self._subscriptions: List[Tuple[Any, str, Callable]] = []

    def start(self) -> None:
        """Se suscribe a los eventos (no hace nada si ya está suscrito)"""
        if self._subscriptions:
            return

        self._subscribe(self.business, "newOrder", self.order_added)
        self._subscribe(self.business, "orderChange", self.order_modified)
        self._subscribe(self.register, "open", self.register_opened)
        self._subscribe(self.register, "close", self.register_closed)
        self._subscribe(self.register, "cashMovementAdd", self.cash_movement_added)
        self._subscribe(self.register, "cashMovementRemove", self.cash_movement_removed)
        logger.info("Propagación de cambios iniciada")

    def stop(self) -> None:
        for source, event, callback in self._subscriptions:
            source.off(event, callback)
        self._subscriptions = []

    @property
    def is_started(self) -> bool:
        return bool(self._subscriptions)

    def _subscribe(self, source, event: str, callback: Callable) -> None:
        source.on(event, callback)
        self._subscriptions.append((source, event, callback))

    def write(self, data_change: DataChange) -> None:
        logger.debug(f"Cambio encolado: {data_change.type}")
        self.total_changes += 1
        self.queue.write(data_change.serialize())

    def register_opened(self) -> None:
        self.write(DataChange(type=REGISTER_OPENED, data=serialize_register(self.register)))

    def register_closed(self) -> None:
        self.write(DataChange(type=REGISTER_CLOSED, data=serialize_register(self.register)))

    def cash_movement_added(self, cash_movement: CashMovement) -> None:
        self.write(DataChange(type=CASH_MOVEMENT_ADDED, data=self._cash_movement_data(cash_movement)))

    def cash_movement_removed(self, cash_movement: CashMovement) -> None:
        self.write(DataChange(type=CASH_MOVEMENT_REMOVED, data=self._cash_movement_data(cash_movement)))

    def order_added(self, order: Order) -> None:
        self.write(DataChange(type=ORDER_ADDED, data=serialize_order(order)))

    def order_modified(self, order: Order, changes: Optional[OrderChanges]) -> None:
        if changes is None:
            return
        self.write(DataChange(
            type=ORDER_MODIFIED,
            data={
                "orderUUID": order.uuid,
                "changes": serialize_order_changes(order, changes),
            }
        ))

    def _cash_movement_data(self, cash_movement: CashMovement) -> dict:
        return {
            "registerUUID": self.register.uuid,
            "cashMovement": serialize_cash_movement(cash_movement),
        }
