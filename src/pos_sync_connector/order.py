"""
Order y detección de cambios (OrderChanges).

Mientras una Order "graba" (entre ``record_changes()`` y
``commit_changes()``/``revert_changes()``), se guarda una copia de su estado.
Al confirmar, se calcula la diferencia con el estado actual:

- items, credits y transactions son listas de sólo-agregar: se comparan por
  identidad y el cambio contiene únicamente los elementos nuevos;
- note se compara por valor;
- customer y room_selections se editan en su lugar, por lo que se comparan
  por valor (room_selections es todo-o-nada).
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field, PrivateAttr

from .base import ApiModel
from .events import ObservableModel
from .models import Credit, Customer, Item, RoomSelection, Transaction, new_uuid

logger = logging.getLogger(__name__)

APPEND_ONLY_FIELDS = ("items", "credits", "transactions")


class OrderChanges(ApiModel):
    """
    Cambios de una Order entre dos momentos. Usar ``set_field()`` para
    llenarlo, si no ``changed_fields`` no se actualiza.
    """
    note: Optional[str] = None
    customer: Optional[Customer] = None
    items: List[Item] = Field(default_factory=list)
    credits: List[Credit] = Field(default_factory=list)
    transactions: List[Transaction] = Field(default_factory=list)
    room_selections: List[RoomSelection] = Field(default_factory=list)
    changed_fields: List[str] = Field(default_factory=list)

    def set_field(self, field: str, value: Any) -> None:
        """Guarda el nuevo valor de ``field`` y lo marca como cambiado"""
        setattr(self, field, value)
        if not self.field_changed(field):
            self.changed_fields.append(field)

    def field_changed(self, field: str) -> bool:
        return field in self.changed_fields

    def has_changes(self) -> bool:
        return len(self.changed_fields) > 0


class Order(ObservableModel):
    """
    Una Order representa lo vendido a un cliente: items (incluyendo
    reembolsos), credits (depósitos ya pagados), transactions (pagos y
    reembolsos), habitaciones seleccionadas, una nota y el cliente.

    Eventos emitidos:
        change (order, changes): al confirmar cambios no vacíos
    """
    uuid: str = Field(default_factory=new_uuid)
    created_at: datetime = Field(default_factory=datetime.now)
    note: str = ""
    items: List[Item] = Field(default_factory=list)
    credits: List[Credit] = Field(default_factory=list)
    transactions: List[Transaction] = Field(default_factory=list)
    room_selections: List[RoomSelection] = Field(default_factory=list)
    customer: Customer = Field(default_factory=Customer)

    _recording: bool = PrivateAttr(default=False)
    _restoration_data: Optional[Dict[str, Any]] = PrivateAttr(default=None)

    # --- Totales ---

    @property
    def items_subtotal(self) -> Decimal:
        """Total de los items antes de impuestos"""
        return sum((item.subtotal for item in self.items), Decimal("0"))

    @property
    def taxes_totals(self) -> List[dict]:
        """Total por impuesto: ``[{name, amount}]`` en orden de aparición"""
        totals: Dict[str, Decimal] = {}
        for item in self.items:
            for tax in item.tax_totals:
                totals[tax["name"]] = totals.get(tax["name"], Decimal("0")) + tax["amount"]
        return [{"name": name, "amount": amount} for name, amount in totals.items()]

    @property
    def items_total(self) -> Decimal:
        return sum((item.total for item in self.items), Decimal("0"))

    @property
    def credits_total(self) -> Decimal:
        return sum((credit.amount for credit in self.credits), Decimal("0"))

    @property
    def transactions_total(self) -> Decimal:
        return sum((t.amount for t in self.transactions), Decimal("0"))

    @property
    def total(self) -> Decimal:
        """items_total - credits_total"""
        return self.items_total - self.credits_total

    @property
    def balance(self) -> Decimal:
        """Monto a pagar (o a reembolsar si es negativo): total - transactions_total"""
        return self.total - self.transactions_total

    # --- Grabación de cambios ---

    @property
    def is_recording(self) -> bool:
        return self._recording

    def record_changes(self) -> None:
        """
        Empieza a grabar los cambios. Si ya está grabando, no hace nada (la
        copia de estado existente no se reemplaza).
        """
        if self._recording:
            return

        self._restoration_data = {
            "note": self.note,
            # Copias superficiales: los elementos nunca se modifican
            "items": list(self.items),
            "credits": list(self.credits),
            "transactions": list(self.transactions),
            "customer": self.customer.clone(),
            "room_selections": [rs.clone() for rs in self.room_selections],
        }
        self._recording = True

    def get_changes(self) -> Optional[OrderChanges]:
        """
        Retorna los cambios desde ``record_changes()``, o None si no está
        grabando, si la copia de estado es inválida o si no hay cambios.
        """
        data = self._restoration_data
        if not self._recording or not self._is_valid_restoration_data(data):
            return None

        changes = OrderChanges()

        if self.note != data["note"]:
            changes.set_field("note", self.note)

        for field in APPEND_ONLY_FIELDS:
            known_ids = {id(element) for element in data[field]}
            added = [element for element in getattr(self, field) if id(element) not in known_ids]
            if added:
                changes.set_field(field, added)

        if not self.customer.is_equal_to(data["customer"]):
            changes.set_field("customer", self.customer.clone())

        if self._room_selections_changed(data["room_selections"]):
            changes.set_field("room_selections", [rs.clone() for rs in self.room_selections])

        return changes if changes.has_changes() else None

    def commit_changes(self) -> Optional[OrderChanges]:
        """
        Calcula los cambios, termina la grabación y, si hay cambios, emite el
        evento ``change`` con ``(order, changes)``.
        """
        changes = self.get_changes()
        self._clear_recording()

        if changes is None:
            logger.debug(f"Order {self.uuid}: commit sin cambios")
            return None

        logger.info(f"Order {self.uuid}: cambios confirmados en {changes.changed_fields}")
        self.emit("change", self, changes)
        return changes

    def revert_changes(self) -> None:
        """Restaura el estado guardado por ``record_changes()`` y termina la grabación"""
        data = self._restoration_data
        if not self._recording or not self._is_valid_restoration_data(data):
            self._clear_recording()
            return

        self.note = data["note"]
        self.items[:] = data["items"]
        self.credits[:] = data["credits"]
        self.transactions[:] = data["transactions"]
        self.customer = data["customer"]
        self.room_selections[:] = data["room_selections"]

        logger.info(f"Order {self.uuid}: cambios revertidos")
        self._clear_recording()

    def _clear_recording(self) -> None:
        self._recording = False
        self._restoration_data = None

    def _room_selections_changed(self, previous: List[RoomSelection]) -> bool:
        if len(previous) != len(self.room_selections):
            return True
        return any(
            not current.equals(old)
            for current, old in zip(self.room_selections, previous)
        )

    @staticmethod
    def _is_valid_restoration_data(data: Optional[Dict[str, Any]]) -> bool:
        if not isinstance(data, dict):
            return False
        if not isinstance(data.get("note"), str):
            return False
        if not all(isinstance(data.get(field), list) for field in APPEND_ONLY_FIELDS):
            return False
        if not isinstance(data.get("room_selections"), list):
            return False
        return isinstance(data.get("customer"), Customer)
