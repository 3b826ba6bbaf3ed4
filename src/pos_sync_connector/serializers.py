"""
Serialización de entidades hacia el API y deserialización de Orders recibidas.

Hacia el API, las referencias anidadas se reemplazan por claves foráneas:
el producto de un Item se aplana a ``{name, price, productId, taxes}``, el
modo de una Transaction pasa a ``transactionModeId`` y la habitación de una
RoomSelection a ``roomId``. Al recibir Orders, esas claves se resuelven
contra el Business vivo.
"""
import logging
from typing import Any, Dict, List, Optional

from .business import Business, Register
from .models import (
    AppliedTax,
    CashMovement,
    Credit,
    Customer,
    Item,
    Product,
    RoomSelection,
    Transaction,
)
from .order import Order, OrderChanges

logger = logging.getLogger(__name__)

# Campo de OrderChanges -> clave en el JSON del API
CHANGE_FIELD_KEYS = {
    "note": "note",
    "customer": "customer",
    "items": "items",
    "credits": "credits",
    "transactions": "transactions",
    "room_selections": "roomSelections",
}


def _dump(model, **kwargs) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, **kwargs)


def serialize_item(item: Item) -> Dict[str, Any]:
    data = _dump(item, exclude={"product", "custom_price", "custom_name"})
    product = item.product
    data["product"] = {
        "name": item.name,
        "price": str(item.unit_price),
        "productId": product.id if product else None,
        "taxes": [
            {"taxId": tax.tax_id, "amount": str(tax.amount)}
            for tax in item.taxes
        ],
    }
    return data


def serialize_credit(credit: Credit) -> Dict[str, Any]:
    return _dump(credit)


def serialize_transaction(transaction: Transaction) -> Dict[str, Any]:
    data = _dump(transaction, exclude={"transaction_mode"})
    mode = transaction.transaction_mode
    data["transactionModeId"] = mode.id if mode else None
    return data


def serialize_room_selection(room_selection: RoomSelection) -> Dict[str, Any]:
    data = _dump(room_selection, exclude={"room"})
    room = room_selection.room
    data["roomId"] = room.id if room else None
    return data


def serialize_customer(customer: Optional[Customer]) -> Optional[Dict[str, Any]]:
    if customer is None:
        return None
    return _dump(customer)


def serialize_order(order: Order) -> Dict[str, Any]:
    """Serializa una Order completa (nueva Order)"""
    return {
        "uuid": order.uuid,
        "createdAt": order.created_at.isoformat(),
        "note": order.note,
        "customer": serialize_customer(order.customer),
        "items": [serialize_item(i) for i in order.items],
        "credits": [serialize_credit(c) for c in order.credits],
        "transactions": [serialize_transaction(t) for t in order.transactions],
        "roomSelections": [serialize_room_selection(rs) for rs in order.room_selections],
    }


def serialize_order_changes(order: Order, changes: OrderChanges) -> Dict[str, Any]:
    """
    Serializa sólo los campos cambiados de ``changes``, más el ``uuid`` de
    la Order.
    """
    serializers = {
        "note": lambda value: value,
        "customer": serialize_customer,
        "items": lambda values: [serialize_item(i) for i in values],
        "credits": lambda values: [serialize_credit(c) for c in values],
        "transactions": lambda values: [serialize_transaction(t) for t in values],
        "room_selections": lambda values: [serialize_room_selection(rs) for rs in values],
    }

    data: Dict[str, Any] = {"uuid": order.uuid}
    for field, key in CHANGE_FIELD_KEYS.items():
        if changes.field_changed(field):
            data[key] = serializers[field](getattr(changes, field))
    return data


def serialize_register(register: Register) -> Dict[str, Any]:
    return _dump(register)


def serialize_cash_movement(cash_movement: CashMovement) -> Dict[str, Any]:
    return _dump(cash_movement)


def _deserialize_product(data: Dict[str, Any], business: Optional[Business]) -> Optional[Product]:
    if not data:
        return None

    product = business.find_product(data.get("productId")) if business else None
    if product is not None:
        return product

    # Producto desconocido (ej: archivado): se reconstruye con los datos recibidos
    logger.debug(f"Producto {data.get('productId')} no encontrado en el Business, se reconstruye")
    return Product(
        id=data.get("productId"),
        name=data.get("name") or "",
        price=data.get("price"),
        taxes=[
            AppliedTax(tax_id=tax.get("taxId"), amount=tax.get("amount"))
            for tax in data.get("taxes") or []
        ],
    )


def deserialize_order(data: Dict[str, Any], business: Optional[Business] = None) -> Order:
    """
    Construye una Order a partir de su forma serializada, resolviendo
    ``productId``, ``transactionModeId`` y ``roomId`` contra ``business``.

    Raises:
        pydantic.ValidationError: si los datos no forman una Order válida
    """
    items: List[Item] = []
    for item_data in data.get("items") or []:
        item = Item.model_validate({k: v for k, v in item_data.items() if k != "product"})
        item.product = _deserialize_product(item_data.get("product"), business)
        items.append(item)

    transactions: List[Transaction] = []
    for transaction_data in data.get("transactions") or []:
        mode_id = transaction_data.get("transactionModeId")
        transaction = Transaction.model_validate(
            {k: v for k, v in transaction_data.items() if k != "transactionModeId"}
        )
        if business is not None:
            transaction.transaction_mode = business.find_transaction_mode(mode_id)
        transactions.append(transaction)

    room_selections: List[RoomSelection] = []
    for selection_data in data.get("roomSelections") or []:
        room_id = selection_data.get("roomId")
        selection = RoomSelection.model_validate(
            {k: v for k, v in selection_data.items() if k != "roomId"}
        )
        if business is not None:
            selection.room = business.find_room(room_id)
        room_selections.append(selection)

    order = Order.model_validate({
        k: v for k, v in data.items()
        if k not in ("items", "transactions", "roomSelections", "customer")
    })
    order.items = items
    order.transactions = transactions
    order.room_selections = room_selections
    if data.get("customer"):
        order.customer = Customer.model_validate(data["customer"])
    return order
