"""Stock ledger: quantity movements, validation and stock queries."""
import pytest

from database import transaction
from models.stock import MovementType, Stock, StockMovement
from services import stock_service
from utils.exceptions import InsufficientStockError, InvalidQuantityError, NotFoundError


class TestIncreaseDecrease:

    def test_increase_adds_to_available(self, db, make_product, manager):
        stock = make_product(available=10).stock

        stock_service.increase_stock(db, stock.id, 5, user_id=manager.id)

        assert stock.quantity_available == 15
        assert stock.quantity_reserved == 0

    @pytest.mark.parametrize("quantity", [0, -5])
    def test_increase_rejects_non_positive(self, db, make_product, quantity):
        stock = make_product(available=10).stock

        with pytest.raises(InvalidQuantityError):
            stock_service.increase_stock(db, stock.id, quantity)

        assert stock.quantity_available == 10

    def test_decrease_removes_from_available(self, db, make_product):
        stock = make_product(available=10).stock

        stock_service.decrease_stock(db, stock.id, 4)

        assert stock.quantity_available == 6

    def test_decrease_more_than_available_rejected(self, db, make_product):
        stock = make_product(available=3).stock

        with pytest.raises(InsufficientStockError) as exc:
            stock_service.decrease_stock(db, stock.id, 5)

        assert exc.value.available == 3
        assert exc.value.requested == 5
        assert stock.quantity_available == 3

    def test_unknown_stock(self, db):
        with pytest.raises(NotFoundError, match="Stock not found with id: 999"):
            stock_service.increase_stock(db, 999, 1)


class TestReserveRelease:

    def test_reserve_moves_units_to_reserved(self, db, make_product):
        stock = make_product(available=10).stock

        stock_service.reserve_stock(db, stock.id, 4)

        assert stock.quantity_available == 6
        assert stock.quantity_reserved == 4
        assert stock.total_quantity == 10

    def test_reserve_more_than_available_rejected(self, db, make_product):
        stock = make_product(available=3).stock

        with pytest.raises(InsufficientStockError, match="Insufficient stock to reserve. Available: 3, requested: 5"):
            stock_service.reserve_stock(db, stock.id, 5)

        assert stock.quantity_available == 3
        assert stock.quantity_reserved == 0

    def test_release_moves_units_back(self, db, make_product):
        stock = make_product(available=6, reserved=4).stock

        stock_service.release_reserved_stock(db, stock.id, 3)

        assert stock.quantity_available == 9
        assert stock.quantity_reserved == 1

    def test_reserve_then_release_restores_quantities(self, db, make_product):
        stock = make_product(available=7, reserved=2).stock

        stock_service.reserve_stock(db, stock.id, 5)
        stock_service.release_reserved_stock(db, stock.id, 5)

        assert (stock.quantity_available, stock.quantity_reserved) == (7, 2)

    def test_release_more_than_reserved_rejected(self, db, make_product):
        stock = make_product(available=6, reserved=2).stock

        with pytest.raises(InvalidQuantityError):
            stock_service.release_reserved_stock(db, stock.id, 3)

        assert stock.quantity_available == 6
        assert stock.quantity_reserved == 2

    def test_release_zero_rejected(self, db, make_product):
        stock = make_product(available=6, reserved=2).stock

        with pytest.raises(InvalidQuantityError):
            stock_service.release_reserved_stock(db, stock.id, 0)

    def test_consume_only_lowers_reserved(self, db, make_product):
        stock = make_product(available=6, reserved=4).stock

        with transaction(db):
            stock_service.consume(db, stock, 3)

        assert stock.quantity_available == 6
        assert stock.quantity_reserved == 1

    def test_consume_more_than_reserved_rejected(self, db, make_product):
        stock = make_product(available=6, reserved=1).stock

        with pytest.raises(InvalidQuantityError):
            with transaction(db):
                stock_service.consume(db, stock, 2)

        assert stock.quantity_reserved == 1


class TestMovements:

    def test_every_mutation_is_recorded(self, db, make_product, manager):
        stock = make_product(available=10).stock

        stock_service.increase_stock(db, stock.id, 5, user_id=manager.id)
        stock_service.reserve_stock(db, stock.id, 3, user_id=manager.id)
        stock_service.release_reserved_stock(db, stock.id, 1, user_id=manager.id)

        movements = stock_service.get_movements(db, stock.id)
        assert [m.type for m in movements] == [
            MovementType.RELEASE.value, MovementType.RESERVE.value, MovementType.IN.value,
        ]
        latest = movements[0]
        assert latest.available_after == 13
        assert latest.reserved_after == 2
        assert latest.user_id == manager.id

    def test_rejected_operation_leaves_no_movement(self, db, make_product):
        stock = make_product(available=1).stock

        with pytest.raises(InsufficientStockError):
            stock_service.decrease_stock(db, stock.id, 2)

        assert stock_service.get_movements(db, stock.id) == []


class TestUpdateStock:

    def test_partial_update(self, db, make_product):
        stock = make_product(available=10, reserved=2, minimum_level=5).stock

        stock_service.update_stock(db, stock.id, {"minimum_level": 20, "location": "B2-05"})

        assert stock.minimum_level == 20
        assert stock.location == "B2-05"
        assert stock.quantity_available == 10
        assert stock.quantity_reserved == 2

    def test_overwrite_is_recorded_as_adjustment(self, db, make_product):
        stock = make_product(available=10).stock

        stock_service.update_stock(db, stock.id, {"quantity_available": 7})

        movement = stock_service.get_movements(db, stock.id)[0]
        assert movement.type == MovementType.ADJUSTMENT.value
        assert movement.qty == -3

    @pytest.mark.parametrize("field", ["quantity_available", "quantity_reserved", "minimum_level"])
    def test_negative_values_rejected(self, db, make_product, field):
        stock = make_product(available=10).stock

        with pytest.raises(InvalidQuantityError):
            stock_service.update_stock(db, stock.id, {field: -1})


class TestQueries:

    def test_below_minimum_is_strict(self, db, make_product):
        low = make_product(available=3, minimum_level=10)
        make_product(available=10, minimum_level=10)
        make_product(available=50, minimum_level=10)

        result = stock_service.get_below_minimum_level(db)

        assert [s.product_id for s in result] == [low.id]

    def test_critical_includes_minimum_level(self, db, make_product):
        low = make_product(available=3, minimum_level=10)
        at_level = make_product(available=10, minimum_level=10)
        make_product(available=50, minimum_level=10)

        result = stock_service.get_critical_stocks(db)

        assert {s.product_id for s in result} == {low.id, at_level.id}

    def test_out_of_stock_sorted_by_product_name(self, db, make_product):
        make_product(available=0, name="Zipper")
        make_product(available=0, name="Anchor")
        make_product(available=4, name="Bolt")

        result = stock_service.get_out_of_stock_items(db)

        assert [s.product.name for s in result] == ["Anchor", "Zipper"]

    def test_most_reserved_first(self, db, make_product):
        few = make_product(available=10, reserved=2)
        many = make_product(available=10, reserved=8)
        make_product(available=10, reserved=0)

        result = stock_service.get_most_reserved_items(db)

        assert [s.product_id for s in result] == [many.id, few.id]

    def test_inventory_value(self, db, make_product):
        make_product(available=10, reserved=5, unit_price=2.5)
        make_product(available=4, unit_price=10.0)

        assert stock_service.get_inventory_value(db) == pytest.approx(65.0)

    def test_inventory_value_of_empty_warehouse(self, db):
        assert stock_service.get_inventory_value(db) == 0.0

    def test_queries_leave_ledger_untouched(self, db, make_product):
        make_product(available=0, minimum_level=5)
        make_product(available=3, reserved=4, minimum_level=10)
        make_product(available=40, reserved=1, minimum_level=10)

        def snapshot():
            db.expire_all()
            rows = db.query(Stock).order_by(Stock.id).all()
            return (
                [(s.quantity_available, s.quantity_reserved, s.version) for s in rows],
                db.query(StockMovement).count(),
            )

        before = snapshot()

        stock_service.get_below_minimum_level(db)
        stock_service.get_critical_stocks(db)
        stock_service.get_out_of_stock_items(db)
        stock_service.get_most_reserved_items(db)
        stock_service.get_inventory_value(db)

        assert snapshot() == before

    def test_stock_by_unknown_product(self, db):
        with pytest.raises(NotFoundError, match="Stock for product not found with id: 42"):
            stock_service.get_stock_by_product_id(db, 42)
