"""
Modelos Pydantic de las entidades de negocio usadas por la sincronización.

Sólo se modelan los atributos que necesitan el cálculo de cambios, la
fusión de respuestas del servidor y la serialización hacia el API.
"""
import uuid as uuid_lib
from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field, PrivateAttr

from .base import ApiModel
from .fields import Field as CustomField


def new_uuid() -> str:
    """Genera un UUID (string) para una nueva entidad"""
    return str(uuid_lib.uuid4())


class AppliedTax(ApiModel):
    """Impuesto aplicado a un producto (monto absoluto por unidad)"""
    tax_id: Optional[int] = Field(default=None, description="ID del impuesto en el servidor")
    name: Optional[str] = Field(default=None, description="Nombre del impuesto")
    amount: Decimal = Field(default=Decimal("0"), description="Monto del impuesto por unidad")

    def clone(self) -> "AppliedTax":
        return AppliedTax(tax_id=self.tax_id, name=self.name, amount=Decimal(self.amount))

    def equals(self, other: "AppliedTax") -> bool:
        return (
            other.tax_id == self.tax_id
            and other.name == self.name
            and other.amount == self.amount
        )


class Product(ApiModel):
    """
    Producto del negocio. Un producto puede tener variantes, que son también
    productos. La variante guarda el ``parent_id`` de su producto padre; el
    padre completo se obtiene con ``Business.find_product()``.
    """
    id: Optional[int] = Field(default=None, description="ID del producto en el servidor")
    name: str = Field(default="", description="Nombre del producto (o de la variante)")
    description: str = ""
    price: Optional[Decimal] = Field(default=None, description="Precio antes de impuestos")
    taxes: List[AppliedTax] = Field(default_factory=list)
    variants: List["Product"] = Field(default_factory=list)
    parent_id: Optional[int] = Field(default=None, description="ID del producto padre si es variante")

    _parent_name: Optional[str] = PrivateAttr(default=None)

    def model_post_init(self, __context: Any) -> None:
        for variant in self.variants:
            self._link_variant(variant)

    def _link_variant(self, variant: "Product") -> None:
        variant.parent_id = self.id
        variant._parent_name = self.name

    @property
    def has_variants(self) -> bool:
        return len(self.variants) > 0

    @property
    def is_variant(self) -> bool:
        return self.parent_id is not None or self._parent_name is not None

    @property
    def display_name(self) -> str:
        """Nombre a mostrar: ``"Padre (Variante)"`` para una variante"""
        if self._parent_name:
            return f"{self._parent_name} ({self.name})"
        return self.name

    def add_variant(self, product: "Product") -> None:
        """Agrega una variante y la enlaza con este producto"""
        self.variants.append(product)
        self._link_variant(product)

    def add_tax(self, tax: AppliedTax) -> None:
        self.taxes.append(tax)


class ProductCategory(ApiModel):
    """
    Categoría de productos. Los productos se referencian por ID (ver
    ``Business.products``) y las sub-categorías se anidan.
    """
    uuid: Optional[str] = None
    name: Optional[str] = None
    product_ids: List[int] = Field(default_factory=list)
    categories: List["ProductCategory"] = Field(default_factory=list)


class TransactionMode(ApiModel):
    """Modo de pago de una Transaction (efectivo, tarjeta...)"""
    id: Optional[int] = None
    name: str = ""


class Room(ApiModel):
    """Habitación física"""
    id: Optional[int] = None
    name: Optional[str] = None
    archived: bool = False

    def clone(self) -> "Room":
        return self.model_copy()


class Credit(ApiModel):
    """Monto que el cliente ya pagó fuera del sistema (depósito)"""
    uuid: str = Field(default_factory=new_uuid)
    amount: Decimal = Decimal("0")
    note: str = ""
    created_at: datetime = Field(default_factory=datetime.now)


class Transaction(ApiModel):
    """
    Intercambio de dinero con el cliente: pago (monto positivo) o
    reembolso (monto negativo), hecho con un TransactionMode.
    """
    uuid: str = Field(default_factory=new_uuid)
    amount: Decimal = Decimal("0")
    transaction_mode: Optional[TransactionMode] = None
    note: str = ""
    created_at: datetime = Field(default_factory=datetime.now)


class Item(ApiModel):
    """
    Línea de una Order: un producto (o variante) con una cantidad. Puede ser
    un reembolso (cantidad negativa) o una línea personalizada.
    """
    uuid: str = Field(default_factory=new_uuid)
    product: Optional[Product] = None
    quantity: int = 1
    custom_price: Optional[Decimal] = None
    custom_name: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def name(self) -> str:
        """Nombre efectivo de la línea (tiene en cuenta las variantes)"""
        if self.custom_name:
            return self.custom_name
        if self.product is None:
            return ""
        return self.product.display_name

    @property
    def unit_price(self) -> Decimal:
        if self.custom_price is not None:
            return self.custom_price
        if self.product is None or self.product.price is None:
            return Decimal("0")
        return self.product.price

    @property
    def taxes(self) -> List[AppliedTax]:
        return self.product.taxes if self.product else []

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def tax_totals(self) -> List[dict]:
        return [
            {"name": tax.name, "amount": tax.amount * self.quantity}
            for tax in self.taxes
        ]

    @property
    def total(self) -> Decimal:
        return self.subtotal + sum((t["amount"] for t in self.tax_totals), Decimal("0"))


class CashMovement(ApiModel):
    """Entrada o salida de efectivo de la caja que no es un pago de cliente"""
    uuid: str = Field(default_factory=new_uuid)
    amount: Decimal = Decimal("0")
    note: str = ""
    created_at: datetime = Field(default_factory=datetime.now)


class Customer(ApiModel):
    """
    Cliente y sus valores de campos (ID del campo -> valor primitivo).

    Las definiciones de campos (``set_fields``) son opcionales y no se
    serializan; sólo se necesitan para ``get(role)`` y ``validate_values()``.
    """
    uuid: Optional[str] = None
    field_values: Dict[str, Any] = Field(default_factory=dict)

    _fields: List[CustomField] = PrivateAttr(default_factory=list)

    def set_fields(self, fields: List[CustomField]) -> None:
        self._fields = list(fields)

    def get_field_value(self, field: CustomField) -> Any:
        return self.field_values.get(field.id)

    def set_field_value(self, field: CustomField, value: Any) -> None:
        self.field_values[field.id] = value

    def get(self, role: str) -> Any:
        """Retorna el valor del campo con el ``role`` indicado, o None"""
        for field in self._fields:
            if field.role == role:
                return self.get_field_value(field)
        return None

    def clone(self) -> "Customer":
        clone = Customer(uuid=self.uuid, field_values=dict(self.field_values))
        clone.set_fields(self._fields)
        return clone

    def is_equal_to(self, other: "Customer") -> bool:
        """True si ``other`` tiene el mismo uuid y los mismos valores"""
        if other is None or self.uuid != other.uuid:
            return False
        return self.field_values == other.field_values

    def validate_values(self) -> Optional[Dict[str, List[str]]]:
        """
        Valida todos los campos. Retorna None si todo es válido, si no un
        dict ID del campo -> lista de errores.
        """
        errors = OrderedDict()
        for field in self._fields:
            field_errors = field.validate_value(self.get_field_value(field))
            if field_errors:
                errors[field.id] = field_errors
        return dict(errors) if errors else None


class RoomSelection(ApiModel):
    """
    Habitación seleccionada para fechas consecutivas (``start_date`` incluida,
    ``end_date`` excluida), con valores de campos personalizados.
    """
    uuid: Optional[str] = Field(default_factory=new_uuid)
    room: Optional[Room] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    field_values: Dict[str, Any] = Field(default_factory=dict)

    _fields: List[CustomField] = PrivateAttr(default_factory=list)

    def set_fields(self, fields: List[CustomField]) -> None:
        self._fields = list(fields)

    def get_field_value(self, field: CustomField) -> Any:
        return self.field_values.get(field.id)

    def set_field_value(self, field: CustomField, value: Any) -> None:
        self.field_values[field.id] = value

    def clone(self) -> "RoomSelection":
        """Copia de la selección; la Room se comparte por referencia"""
        clone = RoomSelection(
            uuid=self.uuid,
            room=self.room,
            start_date=self.start_date,
            end_date=self.end_date,
            field_values=dict(self.field_values),
        )
        clone.set_fields(self._fields)
        return clone

    def equals(self, other: "RoomSelection") -> bool:
        if other is None:
            return False
        for attribute in ("uuid", "start_date", "end_date", "room"):
            if getattr(other, attribute) != getattr(self, attribute):
                return False
        return self.field_values == other.field_values

    def freeze(self) -> None:
        """Guarda una copia de la Room para que cambios posteriores no la afecten"""
        if self.room is not None:
            self.room = self.room.clone()

    def validate_values(self) -> Optional[Dict[str, List[str]]]:
        errors = OrderedDict()
        if self.room is None:
            errors["room"] = ["Se debe seleccionar una habitación."]
        for field in self._fields:
            field_errors = field.validate_value(self.get_field_value(field))
            if field_errors:
                errors[field.id] = field_errors
        return dict(errors) if errors else None


Product.model_rebuild()
ProductCategory.model_rebuild()

__all__ = [
    "AppliedTax",
    "CashMovement",
    "Credit",
    "Customer",
    "Item",
    "Product",
    "ProductCategory",
    "Room",
    "RoomSelection",
    "Transaction",
    "TransactionMode",
    "new_uuid",
]
