"""Assigning products to tasks and keeping the reservations in step."""
from datetime import datetime, timedelta

import pytest

from models.log import Log
from models.task import TaskProduct, TaskStatus
from services import task_product_service
from utils.exceptions import (
    DuplicateAssignmentError,
    InsufficientStockError,
    InvalidQuantityError,
    InvalidTaskStateError,
    NotFoundError,
)


class TestAssign:

    def test_reserves_stock_and_creates_assignment(self, db, make_task, make_product, manager):
        task = make_task()
        product = make_product(available=5)

        task_product = task_product_service.assign_product_to_task(
            db, task.id, product.id, 5, notes="aisle 3", actor_id=manager.id
        )

        assert task_product.quantity == 5
        assert task_product.quantity_used == 0
        assert task_product.notes == "aisle 3"
        assert product.stock.quantity_available == 0
        assert product.stock.quantity_reserved == 5

    def test_second_product_without_stock_rejected(self, db, make_task, make_product):
        task = make_task()
        first = make_product(available=5)
        empty = make_product(available=0)
        task_product_service.assign_product_to_task(db, task.id, first.id, 5)

        with pytest.raises(InsufficientStockError):
            task_product_service.assign_product_to_task(db, task.id, empty.id, 1)

        assert first.stock.quantity_reserved == 5
        assert db.query(TaskProduct).filter(TaskProduct.product_id == empty.id).count() == 0

    @pytest.mark.parametrize("status", [TaskStatus.COMPLETED, TaskStatus.CANCELLED])
    def test_terminal_task_rejected(self, db, make_task, make_product, status):
        task = make_task(status=status)
        product = make_product(available=5)

        with pytest.raises(InvalidTaskStateError):
            task_product_service.assign_product_to_task(db, task.id, product.id, 1)

        assert product.stock.quantity_available == 5

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_quantity_below_one_rejected(self, db, make_task, make_product, quantity):
        task = make_task()
        product = make_product(available=5)

        with pytest.raises(InvalidQuantityError):
            task_product_service.assign_product_to_task(db, task.id, product.id, quantity)

    def test_duplicate_rejected(self, db, make_task, make_product):
        task = make_task()
        product = make_product(available=10)
        task_product_service.assign_product_to_task(db, task.id, product.id, 2)

        with pytest.raises(DuplicateAssignmentError):
            task_product_service.assign_product_to_task(db, task.id, product.id, 3)

        assert product.stock.quantity_reserved == 2
        assert product.stock.quantity_available == 8

    def test_unknown_task(self, db, make_product):
        product = make_product()

        with pytest.raises(NotFoundError, match="Task not found with id: 77"):
            task_product_service.assign_product_to_task(db, 77, product.id, 1)

    def test_unknown_product(self, db, make_task):
        task = make_task()

        with pytest.raises(NotFoundError, match="Product not found with id: 77"):
            task_product_service.assign_product_to_task(db, task.id, 77, 1)

    def test_writes_audit_entry(self, db, make_task, make_product, manager):
        task = make_task()
        product = make_product()

        task_product_service.assign_product_to_task(db, task.id, product.id, 1, actor_id=manager.id)

        tp = db.query(TaskProduct).one()
        entry = db.query(Log).filter(Log.action == "TASK_PRODUCT_ASSIGN").one()
        assert entry.user_id == manager.id
        assert entry.entity_id == tp.id
        assert entry.meta["task_id"] == task.id


class TestUpdate:

    def test_increase_reserves_difference(self, db, make_task, make_product):
        task = make_task()
        product = make_product(available=10)
        tp = task_product_service.assign_product_to_task(db, task.id, product.id, 3)

        task_product_service.update_task_product(db, tp.id, 7)

        assert tp.quantity == 7
        assert product.stock.quantity_available == 3
        assert product.stock.quantity_reserved == 7

    def test_decrease_releases_difference(self, db, make_task, make_product):
        task = make_task()
        product = make_product(available=10)
        tp = task_product_service.assign_product_to_task(db, task.id, product.id, 6)

        task_product_service.update_task_product(db, tp.id, 2, notes="fewer needed")

        assert tp.quantity == 2
        assert tp.notes == "fewer needed"
        assert product.stock.quantity_available == 8
        assert product.stock.quantity_reserved == 2

    def test_increase_beyond_available_rejected(self, db, make_task, make_product):
        task = make_task()
        product = make_product(available=4)
        tp = task_product_service.assign_product_to_task(db, task.id, product.id, 3)

        with pytest.raises(InsufficientStockError):
            task_product_service.update_task_product(db, tp.id, 6)

        assert tp.quantity == 3
        assert product.stock.quantity_reserved == 3

    def test_below_used_rejected(self, db, make_task, make_product):
        task = make_task(status=TaskStatus.IN_PROGRESS)
        product = make_product(available=10)
        tp = task_product_service.assign_product_to_task(db, task.id, product.id, 5)
        task_product_service.use_product(db, tp.id, 4)

        with pytest.raises(InvalidQuantityError):
            task_product_service.update_task_product(db, tp.id, 3)

        assert tp.quantity == 5

    @pytest.mark.parametrize("status", [TaskStatus.COMPLETED, TaskStatus.CANCELLED])
    def test_terminal_task_rejected(self, db, make_task, make_product, attach, status):
        task = make_task(status=status)
        tp = attach(task, make_product(), 2)

        with pytest.raises(InvalidTaskStateError):
            task_product_service.update_task_product(db, tp.id, 3)


class TestUse:

    def test_records_usage_without_touching_stock(self, db, make_task, make_product):
        task = make_task(status=TaskStatus.IN_PROGRESS)
        product = make_product(available=10)
        tp = task_product_service.assign_product_to_task(db, task.id, product.id, 5)

        task_product_service.use_product(db, tp.id, 5)

        assert tp.quantity_used == 5
        assert product.stock.quantity_available == 5
        assert product.stock.quantity_reserved == 5

    @pytest.mark.parametrize("used", [-1, 6])
    def test_out_of_range_rejected(self, db, make_task, make_product, used):
        task = make_task()
        product = make_product(available=10)
        tp = task_product_service.assign_product_to_task(db, task.id, product.id, 5)

        with pytest.raises(InvalidQuantityError):
            task_product_service.use_product(db, tp.id, used)

        assert tp.quantity_used == 0

    def test_unknown_assignment(self, db):
        with pytest.raises(NotFoundError):
            task_product_service.use_product(db, 404, 1)


class TestRemove:

    def test_releases_outstanding_units(self, db, make_task, make_product):
        task = make_task(status=TaskStatus.IN_PROGRESS)
        product = make_product(available=10)
        tp = task_product_service.assign_product_to_task(db, task.id, product.id, 5)
        task_product_service.use_product(db, tp.id, 2)

        task_product_service.remove_product_from_task(db, tp.id)

        assert db.query(TaskProduct).count() == 0
        assert product.stock.quantity_available == 8
        # Used units stay reserved, with nothing left assigned against them
        assert product.stock.quantity_reserved == 2
        assert task_product_service.calculate_total_reserved_quantity(db, product.id) == 0

    def test_fully_used_assignment_releases_nothing(self, db, make_task, make_product):
        task = make_task(status=TaskStatus.IN_PROGRESS)
        product = make_product(available=10)
        tp = task_product_service.assign_product_to_task(db, task.id, product.id, 4)
        task_product_service.use_product(db, tp.id, 4)

        task_product_service.remove_product_from_task(db, tp.id)

        assert product.stock.quantity_available == 6
        assert product.stock.quantity_reserved == 4

    def test_completed_task_rejected(self, db, make_task, make_product, attach):
        task = make_task(status=TaskStatus.COMPLETED)
        tp = attach(task, make_product(), 2, quantity_used=2)

        with pytest.raises(InvalidTaskStateError):
            task_product_service.remove_product_from_task(db, tp.id)

        assert db.query(TaskProduct).count() == 1

    def test_cancelled_task_deletes_without_release(self, db, make_task, make_product, attach):
        task = make_task(status=TaskStatus.CANCELLED)
        product = make_product(available=10)
        tp = attach(task, product, 3)

        task_product_service.remove_product_from_task(db, tp.id)

        assert db.query(TaskProduct).count() == 0
        assert product.stock.quantity_available == 10
        assert product.stock.quantity_reserved == 0


class TestQueries:

    def test_used_and_unused_split(self, db, make_task, make_product):
        task = make_task(status=TaskStatus.IN_PROGRESS)
        used = task_product_service.assign_product_to_task(db, task.id, make_product().id, 3)
        unused = task_product_service.assign_product_to_task(db, task.id, make_product().id, 3)
        task_product_service.use_product(db, used.id, 1)

        assert task_product_service.get_used_products_by_task(db, task.id) == [used]
        assert task_product_service.get_unused_products_by_task(db, task.id) == [unused]

    def test_discrepancies(self, db, make_task, make_product):
        task = make_task(status=TaskStatus.IN_PROGRESS)
        done = task_product_service.assign_product_to_task(db, task.id, make_product().id, 2)
        partial = task_product_service.assign_product_to_task(db, task.id, make_product().id, 2)
        task_product_service.use_product(db, done.id, 2)
        task_product_service.use_product(db, partial.id, 1)

        assert task_product_service.get_products_with_discrepancies(db) == [partial]

    def test_products_by_task_newest_first(self, db, make_task, make_product):
        task = make_task()
        first = task_product_service.assign_product_to_task(db, task.id, make_product().id, 1)
        second = task_product_service.assign_product_to_task(db, task.id, make_product().id, 1)

        assert task_product_service.get_products_by_task_id(db, task.id) == [second, first]

    def test_products_of_unknown_task(self, db):
        with pytest.raises(NotFoundError):
            task_product_service.get_products_by_task_id(db, 5)

    def test_tasks_by_product_earliest_due_first(self, db, make_task, make_product):
        product = make_product()
        now = datetime.now()
        later = make_task(due_date=now + timedelta(days=5))
        sooner = make_task(due_date=now + timedelta(days=1))
        tp_later = task_product_service.assign_product_to_task(db, later.id, product.id, 1)
        tp_sooner = task_product_service.assign_product_to_task(db, sooner.id, product.id, 1)

        assert task_product_service.get_tasks_by_product_id(db, product.id) == [tp_sooner, tp_later]

    def test_total_reserved_ignores_terminal_tasks(self, db, make_task, make_product, attach):
        product = make_product(available=20)
        pending = make_task()
        running = make_task(status=TaskStatus.IN_PROGRESS)
        task_product_service.assign_product_to_task(db, pending.id, product.id, 3)
        task_product_service.assign_product_to_task(db, running.id, product.id, 4)
        attach(make_task(status=TaskStatus.COMPLETED), product, 5, quantity_used=5)
        attach(make_task(status=TaskStatus.CANCELLED), product, 6)

        assert task_product_service.calculate_total_reserved_quantity(db, product.id) == 7

    def test_total_reserved_without_assignments(self, db, make_product):
        assert task_product_service.calculate_total_reserved_quantity(db, make_product().id) == 0
