"""Tests for Business, Register and the supporting entities."""

from datetime import date
from decimal import Decimal

from pos_sync_connector.business import Business, Register, RegisterState
from pos_sync_connector.models import CashMovement, Customer, Item, Product, Room, RoomSelection
from pos_sync_connector.order import Order


class TestRegister:
    """Tests for the Register lifecycle and its events."""

    def test_open_and_close(self):
        register = Register()
        events = []
        register.on("open", lambda: events.append("open"))
        register.on("close", lambda: events.append("close"))

        register.open("Ana", Decimal("100.00"), register_uuid="register-1")
        assert register.is_open
        assert register.uuid == "register-1"
        assert register.opening_data.declared_cash == Decimal("100.00")

        register.close(Decimal("250.00"), post_ref="lot-7", post_amount=Decimal("80.00"))
        assert register.state == RegisterState.CLOSED
        assert register.closing_data.post_ref == "lot-7"
        assert events == ["open", "close"]

    def test_cash_movements(self):
        register = Register()
        added, removed = [], []
        register.on("cashMovementAdd", added.append)
        register.on("cashMovementRemove", removed.append)

        movement = CashMovement(amount=Decimal("-5"))
        twin = movement.model_copy()
        register.add_cash_movement(movement)
        register.remove_cash_movement(twin)
        assert register.cash_movements == [movement]
        assert removed == []

        register.remove_cash_movement(movement)
        assert register.cash_movements == []
        assert added == [movement]
        assert removed == [movement]

    def test_update_keeps_identity(self):
        register = Register()
        listener_calls = []
        register.on("update", lambda: listener_calls.append(True))
        new = Register(uuid="register-2", state=RegisterState.OPENED, employee="Luis")

        register.update(new)

        assert register.uuid == "register-2"
        assert register.employee == "Luis"
        assert register.is_open
        assert listener_calls == [True]
        assert register.listener_count("update") == 1


class TestBusiness:
    """Tests for Business lookups, events and merge."""

    def test_find_product_includes_variants(self, business):
        assert business.find_product(1).name == "Café"
        variant = business.find_product(2)
        assert variant.parent_id == 1
        assert variant.is_variant
        assert business.find_product(404) is None
        assert business.find_product(None) is None

    def test_find_mode_and_room(self, business):
        assert business.find_transaction_mode(2).name == "Tarjeta"
        assert business.find_room(101).archived
        assert business.find_room(5) is None

    def test_category_references_product_ids(self, business):
        category = business.root_product_category
        assert [business.find_product(pid).name for pid in category.product_ids] == ["Café", "Muffin"]

    def test_order_events(self, business, product):
        new_orders, changed = [], []
        business.on("newOrder", new_orders.append)
        business.on("orderChange", lambda order, changes: changed.append((order, changes)))

        order = Order()
        business.order_created(order)
        order.record_changes()
        order.items.append(Item(product=product))
        changes = order.commit_changes()

        assert new_orders == [order]
        assert len(changed) == 1
        assert changed[0][0] is order
        assert changed[0][1] is changes

    def test_tracking_twice_emits_once(self, business, product):
        changed = []
        business.on("orderChange", lambda order, changes: changed.append(order))

        order = Order()
        business.order_created(order)
        business.track_order(order)
        order.record_changes()
        order.items.append(Item(product=product))
        order.commit_changes()

        assert changed == [order]
        assert order.listener_count("change") == 1

    def test_update_keeps_identity(self, business_data):
        live = Business()
        events = []
        live.on("update", lambda: events.append(True))

        live.update(Business.model_validate(business_data))

        assert live.uuid == "business-1"
        assert len(live.rooms) == 2
        assert events == [True]
        assert live.listener_count("update") == 1


class TestProduct:
    """Tests for products and variants."""

    def test_add_variant(self):
        parent = Product(id=1, name="Camiseta")
        variant = Product(id=2, name="Roja")
        parent.add_variant(variant)

        assert parent.has_variants
        assert variant.parent_id == 1
        assert variant.display_name == "Camiseta (Roja)"
        assert Item(product=variant).name == "Camiseta (Roja)"
        assert parent.display_name == "Camiseta"


class TestCustomer:
    """Tests for Customer helpers."""

    def test_get_by_role(self, customer_fields):
        customer = Customer(field_values={"name": "Ana", "email": "ana@example.com"})
        customer.set_fields(customer_fields)
        assert customer.get("customer.email") == "ana@example.com"
        assert customer.get("customer.phone") is None

    def test_clone_and_equality(self, customer_fields):
        customer = Customer(uuid="c-1", field_values={"name": "Ana"})
        customer.set_fields(customer_fields)
        clone = customer.clone()

        assert clone is not customer
        assert clone.is_equal_to(customer)
        assert clone.get("customer.name") == "Ana"

        clone.field_values["name"] = "Otra"
        assert not clone.is_equal_to(customer)
        assert customer.field_values["name"] == "Ana"

    def test_validate_values(self, customer_fields):
        customer = Customer(field_values={"email": "no-es-email"})
        customer.set_fields(customer_fields)

        errors = customer.validate_values()

        assert set(errors) == {"name", "email"}

    def test_validate_values_ok(self, customer_fields):
        customer = Customer(field_values={"name": "Ana"})
        customer.set_fields(customer_fields)
        assert customer.validate_values() is None


class TestRoomSelection:
    """Tests for RoomSelection helpers."""

    def test_clone_shares_room(self, room):
        selection = RoomSelection(room=room, start_date=date(2024, 1, 1), end_date=date(2024, 1, 2))
        clone = selection.clone()
        assert clone.room is room
        assert clone.equals(selection)

    def test_equals_detects_dates(self, room):
        selection = RoomSelection(room=room, start_date=date(2024, 1, 1))
        clone = selection.clone()
        clone.start_date = date(2024, 1, 2)
        assert not clone.equals(selection)

    def test_freeze_copies_room(self):
        room = Room(id=1, name="Suite")
        selection = RoomSelection(room=room)
        selection.freeze()
        room.name = "Renombrada"
        assert selection.room is not room
        assert selection.room.name == "Suite"

    def test_validate_requires_room(self):
        assert RoomSelection().validate_values() == {"room": ["Se debe seleccionar una habitación."]}
