"""Tests for InventoryStore CRUD, validation and the atomic decrement."""

import threading
from decimal import Decimal

import pytest

from inventory.errors import InsufficientStock, NotFound, ValidationError


class TestInsertAndGet:
    def test_get_returns_exactly_the_inserted_fields(self, store):
        pid = store.insert("Widget", Decimal("5.00"), 3, "Acme", "555-0100")
        p = store.get(pid)
        assert p.id == pid
        assert p.name == "Widget"
        assert p.price == Decimal("5.00")
        assert p.quantity == 3
        assert p.supplier_name == "Acme"
        assert p.supplier_contact == "555-0100"
        assert p.in_stock is True

    def test_first_id_is_one(self, store):
        assert store.insert("Widget", Decimal("5.00"), 3, "Acme", "555-0100") == 1

    def test_ids_are_unique_and_increasing(self, store):
        ids = [store.insert(f"P{i}", Decimal("1"), 1, "Acme", "x") for i in range(5)]
        assert len(set(ids)) == 5
        assert ids == sorted(ids)

    def test_ids_not_reused_after_delete(self, store):
        first = store.insert("A", Decimal("1"), 1, "Acme", "x")
        second = store.insert("B", Decimal("1"), 1, "Acme", "x")
        store.delete(second)
        third = store.insert("C", Decimal("1"), 1, "Acme", "x")
        assert third not in (first, second)

    def test_float_price_is_kept_exact(self, store):
        pid = store.insert("Widget", 9.99, 1, "Acme", "x")
        assert store.get(pid).price == Decimal("9.99")

    def test_zero_price_and_quantity_allowed(self, store):
        pid = store.insert("Freebie", Decimal("0"), 0, "Acme", "x")
        p = store.get(pid)
        assert p.price == 0
        assert p.quantity == 0
        assert p.in_stock is False

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"name": ""},
            {"name": "   "},
            {"supplier_name": ""},
            {"supplier_contact": ""},
            {"price": Decimal("-0.01")},
            {"price": Decimal("1.999")},
            {"quantity": -1},
            {"name": None},
            {"quantity": "lots"},
        ],
    )
    def test_invalid_fields_rejected(self, store, kwargs):
        fields = dict(
            name="Widget",
            price=Decimal("5.00"),
            quantity=3,
            supplier_name="Acme",
            supplier_contact="555-0100",
        )
        fields.update(kwargs)
        with pytest.raises(ValidationError):
            store.insert(**fields)
        assert store.list() == []

    def test_validation_error_names_the_field(self, store):
        with pytest.raises(ValidationError) as exc_info:
            store.insert("Widget", Decimal("5.00"), -1, "Acme", "x")
        assert [e["field"] for e in exc_info.value.errors] == ["quantity"]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"price": Decimal("1e20")},
            {"price": Decimal("21474836.48")},
            {"quantity": 2**70},
            {"quantity": 2**31},
        ],
    )
    def test_values_too_large_for_storage_rejected(self, store, kwargs):
        fields = dict(
            name="Widget",
            price=Decimal("5.00"),
            quantity=3,
            supplier_name="Acme",
            supplier_contact="555-0100",
        )
        fields.update(kwargs)
        with pytest.raises(ValidationError):
            store.insert(**fields)
        assert store.list() == []

    def test_largest_storable_values_accepted(self, store):
        pid = store.insert("Bulk", Decimal("21474836.47"), 2**31 - 1, "Acme", "x")
        p = store.get(pid)
        assert p.price == Decimal("21474836.47")
        assert p.quantity == 2**31 - 1

    def test_get_missing_raises_not_found(self, store):
        with pytest.raises(NotFound) as exc_info:
            store.get(42)
        assert exc_info.value.product_id == 42


class TestList:
    def test_empty(self, store):
        assert store.list() == []

    def test_insertion_order_by_default(self, store):
        for name in ("Zed", "Alpha", "Mid"):
            store.insert(name, Decimal("1"), 1, "Acme", "x")
        assert [p.name for p in store.list()] == ["Zed", "Alpha", "Mid"]

    def test_filter_by_equality(self, store):
        store.insert("Widget", Decimal("5.00"), 3, "Acme", "x")
        store.insert("Gadget", Decimal("2.50"), 0, "Globex", "y")
        store.insert("Gizmo", Decimal("2.50"), 7, "Acme", "z")
        assert [p.name for p in store.list({"supplier_name": "Acme"})] == ["Widget", "Gizmo"]
        assert [p.name for p in store.list({"price": "2.50"})] == ["Gadget", "Gizmo"]
        assert [p.name for p in store.list({"quantity": "0"})] == ["Gadget"]
        assert store.list({"name": "Nope"}) == []

    def test_filter_by_id(self, store):
        store.insert("A", Decimal("1"), 1, "Acme", "x")
        second = store.insert("B", Decimal("1"), 1, "Acme", "x")
        assert [p.name for p in store.list({"id": second})] == ["B"]

    def test_sort_ascending_and_descending(self, store):
        store.insert("B", Decimal("3"), 2, "Acme", "x")
        store.insert("A", Decimal("1"), 2, "Acme", "x")
        store.insert("C", Decimal("2"), 9, "Acme", "x")
        assert [p.name for p in store.list(sort="name")] == ["A", "B", "C"]
        assert [p.name for p in store.list(sort="-price")] == ["B", "C", "A"]
        # ties keep insertion order
        assert [p.name for p in store.list(sort=["quantity"])] == ["B", "A", "C"]

    @pytest.mark.parametrize(
        "filters, sort",
        [
            ({"colour": "red"}, None),
            (None, "colour"),
            (None, "--name"),
            (None, "-"),
            ({"price": "cheap"}, None),
            ({"quantity": "x"}, None),
            ({"id": 2**64}, None),
            ({"price": "1e20"}, None),
        ],
    )
    def test_bad_filter_or_sort_rejected(self, store, filters, sort):
        with pytest.raises(ValidationError):
            store.list(filters, sort)


class TestUpdate:
    def test_price_round_trip_leaves_other_fields(self, store, widget):
        before = store.get(widget)
        assert store.update(widget, {"price": Decimal("9.99")}) == 1
        after = store.get(widget)
        assert after.price == Decimal("9.99")
        assert after.model_dump(exclude={"price"}) == before.model_dump(exclude={"price"})

    def test_multiple_fields(self, store, widget):
        store.update(widget, {"name": "Widget II", "quantity": 10, "supplier_contact": "555-0199"})
        p = store.get(widget)
        assert (p.name, p.quantity, p.supplier_contact) == ("Widget II", 10, "555-0199")
        assert p.supplier_name == "Acme"

    def test_empty_update_is_a_no_op(self, store, widget):
        before = store.get(widget)
        assert store.update(widget, {}) == 1
        assert store.get(widget) == before

    def test_update_to_oversized_quantity_rejected(self, store, widget):
        with pytest.raises(ValidationError):
            store.update(widget, {"quantity": 2**70})
        assert store.get(widget).quantity == 3

    def test_missing_id_raises_not_found(self, store):
        with pytest.raises(NotFound):
            store.update(99, {"price": Decimal("1.00")})

    @pytest.mark.parametrize(
        "fields",
        [
            {"quantity": -1},
            {"price": Decimal("-1")},
            {"name": ""},
            {"supplier_name": None},
            {"id": 7},
            {"colour": "red"},
        ],
    )
    def test_invalid_update_rejected_and_record_unchanged(self, store, widget, fields):
        before = store.get(widget)
        with pytest.raises(ValidationError):
            store.update(widget, fields)
        assert store.get(widget) == before


class TestDelete:
    def test_delete_existing(self, store, widget):
        assert store.delete(widget) == 1
        with pytest.raises(NotFound):
            store.get(widget)

    def test_delete_is_idempotent(self, store, widget):
        assert store.delete(widget) == 1
        assert store.delete(widget) == 0

    def test_delete_missing_returns_zero(self, store):
        assert store.delete(12345) == 0


class TestDecrementQuantity:
    def test_widget_scenario(self, store):
        pid = store.insert("Widget", Decimal("5.00"), 3, "Acme", "555-0100")
        assert pid == 1
        assert store.decrement_quantity(1, 1) == 2
        assert store.decrement_quantity(1, 1) == 1
        assert store.decrement_quantity(1, 1) == 0
        with pytest.raises(InsufficientStock) as exc_info:
            store.decrement_quantity(1, 1)
        assert exc_info.value.available == 0
        assert exc_info.value.requested == 1
        assert store.get(1).quantity == 0

    def test_default_amount_is_one(self, store, widget):
        assert store.decrement_quantity(widget) == 2

    def test_larger_amount(self, store, widget):
        assert store.decrement_quantity(widget, 3) == 0

    def test_amount_beyond_stock_leaves_quantity(self, store, widget):
        with pytest.raises(InsufficientStock):
            store.decrement_quantity(widget, 4)
        assert store.get(widget).quantity == 3

    def test_missing_id_raises_not_found(self, store):
        with pytest.raises(NotFound):
            store.decrement_quantity(7)

    @pytest.mark.parametrize("amount", [0, -1, 1.5, True, "1", 2**64])
    def test_bad_amount_rejected(self, store, widget, amount):
        with pytest.raises(ValidationError):
            store.decrement_quantity(widget, amount)
        assert store.get(widget).quantity == 3

    def test_does_not_touch_other_products(self, store, widget):
        other = store.insert("Gadget", Decimal("1"), 5, "Globex", "x")
        store.decrement_quantity(widget, 2)
        assert store.get(other).quantity == 5


@pytest.mark.parametrize("product_id", [2**31, 2**64, -(2**63)])
class TestIdsBeyondColumnRange:
    def test_get_raises_not_found(self, store, product_id):
        with pytest.raises(NotFound):
            store.get(product_id)

    def test_update_raises_not_found(self, store, product_id):
        with pytest.raises(NotFound):
            store.update(product_id, {"price": Decimal("1.00")})

    def test_delete_returns_zero(self, store, product_id):
        assert store.delete(product_id) == 0

    def test_decrement_raises_not_found(self, store, product_id):
        with pytest.raises(NotFound):
            store.decrement_quantity(product_id)


class TestConcurrentDecrement:
    def _race(self, store, pid, workers):
        barrier = threading.Barrier(workers)
        outcomes = []
        lock = threading.Lock()

        def sell():
            barrier.wait()
            try:
                result = store.decrement_quantity(pid, 1)
            except InsufficientStock:
                result = "insufficient"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=sell) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)
        return outcomes

    def test_last_unit_sold_exactly_once(self, store):
        pid = store.insert("Widget", Decimal("5.00"), 1, "Acme", "555-0100")
        outcomes = self._race(store, pid, 2)
        assert sorted(outcomes, key=str) == [0, "insufficient"]
        assert store.get(pid).quantity == 0

    def test_many_sellers_never_oversell(self, store):
        pid = store.insert("Widget", Decimal("5.00"), 5, "Acme", "555-0100")
        outcomes = self._race(store, pid, 12)
        sold = [o for o in outcomes if o != "insufficient"]
        assert len(outcomes) == 12
        assert sorted(sold) == [0, 1, 2, 3, 4]
        assert store.get(pid).quantity == 0
