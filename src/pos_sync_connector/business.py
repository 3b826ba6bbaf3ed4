"""
Entidades de larga vida compartidas por toda la aplicación: Business y Register.

Otras partes de la aplicación guardan referencias a estas instancias, por lo
que nunca se reemplazan: ``update()`` copia los atributos de una instancia
recién deserializada en la instancia existente.
"""
import logging
from datetime import datetime
from decimal import Decimal
from enum import IntEnum
from typing import ClassVar, List, Optional, Tuple

from pydantic import Field

from .base import ApiModel
from .events import ObservableModel
from .fields import AnyField
from .models import CashMovement, Product, ProductCategory, Room, TransactionMode
from .order import Order, OrderChanges

logger = logging.getLogger(__name__)


class RegisterState(IntEnum):
    NEW = 0
    OPENED = 1
    CLOSED = 2


class OpeningData(ApiModel):
    opened_at: Optional[datetime] = None
    declared_cash: Optional[Decimal] = None


class ClosingData(ApiModel):
    closed_at: Optional[datetime] = None
    declared_cash: Optional[Decimal] = None
    post_ref: Optional[str] = Field(default=None, description="Referencia del lote del terminal de pago")
    post_amount: Optional[Decimal] = Field(default=None, description="Total del lote del terminal de pago")


class Register(ObservableModel):
    """
    Caja registradora de un día de trabajo: apertura, cierre y movimientos
    de efectivo.

    Eventos emitidos:
        open, close: al abrir / cerrar la caja
        cashMovementAdd (cash_movement), cashMovementRemove (cash_movement)
        update: después de ``update()``
    """
    uuid: Optional[str] = None
    state: RegisterState = RegisterState.NEW
    employee: str = ""
    opening_data: OpeningData = Field(default_factory=OpeningData)
    closing_data: ClosingData = Field(default_factory=ClosingData)
    cash_movements: List[CashMovement] = Field(default_factory=list)

    MERGED_ATTRIBUTES: ClassVar[Tuple[str, ...]] = (
        "uuid",
        "state",
        "employee",
        "opening_data",
        "closing_data",
        "cash_movements",
    )

    @property
    def is_open(self) -> bool:
        return self.state == RegisterState.OPENED

    def open(self, employee: str, cash_amount: Decimal, register_uuid: Optional[str] = None) -> None:
        """Abre la caja y guarda los datos de apertura"""
        if register_uuid is not None:
            self.uuid = register_uuid
        self.employee = employee
        self.opening_data = OpeningData(opened_at=datetime.now(), declared_cash=cash_amount)
        self.state = RegisterState.OPENED
        logger.info(f"Caja {self.uuid} abierta por {employee}")
        self.emit("open")

    def close(self, cash_amount: Decimal, post_ref: Optional[str] = None, post_amount: Optional[Decimal] = None) -> None:
        """Cierra la caja y guarda los datos de cierre"""
        self.closing_data = ClosingData(
            closed_at=datetime.now(),
            declared_cash=cash_amount,
            post_ref=post_ref,
            post_amount=post_amount,
        )
        self.state = RegisterState.CLOSED
        logger.info(f"Caja {self.uuid} cerrada")
        self.emit("close")

    def add_cash_movement(self, cash_movement: CashMovement) -> None:
        self.cash_movements.append(cash_movement)
        self.emit("cashMovementAdd", cash_movement)

    def remove_cash_movement(self, cash_movement: CashMovement) -> None:
        """Elimina el movimiento (por identidad); no hace nada si no está"""
        for index, existing in enumerate(self.cash_movements):
            if existing is cash_movement:
                del self.cash_movements[index]
                self.emit("cashMovementRemove", cash_movement)
                return

    def update(self, new_register: "Register") -> None:
        """
        Reemplaza los atributos de esta instancia con los de ``new_register``.
        Emite el evento ``update`` al terminar.
        """
        for attribute in self.MERGED_ATTRIBUTES:
            setattr(self, attribute, getattr(new_register, attribute))
        self.emit("update")


class Business(ObservableModel):
    """
    Negocio del dispositivo y todos sus datos: productos y categorías,
    habitaciones, modos de pago y definiciones de campos personalizados.

    ``products`` sólo contiene los productos de primer nivel; las variantes
    están dentro de cada producto y se encuentran con ``find_product()``.

    Eventos emitidos:
        newOrder (order), orderChange (order, changes), update
    """
    uuid: Optional[str] = None
    products: List[Product] = Field(default_factory=list)
    root_product_category: Optional[ProductCategory] = None
    transaction_modes: List[TransactionMode] = Field(default_factory=list)
    customer_fields: List[AnyField] = Field(default_factory=list)
    room_selection_fields: List[AnyField] = Field(default_factory=list)
    rooms: List[Room] = Field(default_factory=list)

    MERGED_ATTRIBUTES: ClassVar[Tuple[str, ...]] = (
        "uuid",
        "products",
        "root_product_category",
        "transaction_modes",
        "customer_fields",
        "room_selection_fields",
        "rooms",
    )

    def find_product(self, product_id: Optional[int]) -> Optional[Product]:
        """Busca un producto (o variante) por ID"""
        if product_id is None:
            return None
        pending = list(self.products)
        while pending:
            product = pending.pop(0)
            if product.id == product_id:
                return product
            pending.extend(product.variants)
        return None

    def find_transaction_mode(self, mode_id: Optional[int]) -> Optional[TransactionMode]:
        return next((m for m in self.transaction_modes if m.id == mode_id), None)

    def find_room(self, room_id: Optional[int]) -> Optional[Room]:
        return next((r for r in self.rooms if r.id == room_id), None)

    def order_created(self, order: Order) -> None:
        """Una nueva Order fue creada: emite ``newOrder`` y sigue sus cambios"""
        self.track_order(order)
        self.emit("newOrder", order)

    def track_order(self, order: Order) -> None:
        """Re-emite como ``orderChange`` los cambios confirmados de ``order``"""
        if order.has_listener("change", self.order_changed):
            return
        order.on("change", self.order_changed)

    def order_changed(self, order: Order, changes: OrderChanges) -> None:
        self.emit("orderChange", order, changes)

    def update(self, new_business: "Business") -> None:
        """
        Reemplaza todos los atributos de esta instancia con los de
        ``new_business``. Emite el evento ``update`` al terminar.
        """
        for attribute in self.MERGED_ATTRIBUTES:
            setattr(self, attribute, getattr(new_business, attribute))
        self.emit("update")
