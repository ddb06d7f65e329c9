# Overview: Pytest coverage for lot numbering, decrements and total_stock upkeep.

"""
Lot mutation tests.

Verifies, against a real database:
1. Lot numbers start at 1 and increase by 1 per product
2. A decrement past zero is rejected whole (nothing written)
3. Product.total_stock equals the sum of its lots after every mutation
4. Moves keep total_stock; purges keep referenced and newest lots
"""

import pytest

from app.errors import InsufficientStockError, NotFoundError
from app.models import Product, ProductLot, Sale
from app.services import lot_service


def lot_quantities(db_session, product_id):
    lots = (
        db_session.query(ProductLot)
        .filter_by(product_id=product_id)
        .order_by(ProductLot.lot_number.asc())
        .all()
    )
    return [(lot.lot_number, lot.quantity) for lot in lots]


def total_stock(db_session, product_id):
    db_session.expire_all()
    return db_session.get(Product, product_id).total_stock


def assert_total_matches_lots(db_session, product_id):
    expected = sum(quantity for _, quantity in lot_quantities(db_session, product_id))
    assert total_stock(db_session, product_id) == expected


class TestLotNumbering:

    def test_first_lot_is_number_one(self, db_session, locations):
        product, lot = lot_service.create_product_with_stock(
            product_code="NEW1",
            name="New Product",
            location_id=locations["main"],
            quantity=10,
            unit_price_cents=1000,
        )
        db_session.commit()

        assert lot.lot_number == 1
        assert product.location_id == locations["main"]
        assert total_stock(db_session, product.id) == 10

    def test_additions_increment(self, db_session, locations, product_with_lots):
        product_id = product_with_lots["product_id"]
        assert [number for number, _ in lot_quantities(db_session, product_id)] == [1, 2, 3, 4]

        lot = lot_service.add_stock(product_id, location_id=locations["mall"], quantity=5)
        db_session.commit()

        assert lot.lot_number == 5
        assert total_stock(db_session, product_id) == 175

    def test_numbering_is_per_product(self, db_session, locations, product_with_lots):
        _, lot = lot_service.create_product_with_stock(
            product_code="OTHER",
            name="Other Product",
            location_id=locations["secondary"],
            quantity=1,
        )
        db_session.commit()
        assert lot.lot_number == 1

    def test_depleted_lot_still_counts_for_numbering(self, db_session, locations, product_with_lots):
        product_id = product_with_lots["product_id"]
        lot_service.decrement_lot(product_with_lots["lot_ids"]["secondary"], 20)
        db_session.commit()

        lot = lot_service.add_stock(product_id, location_id=locations["main"], quantity=3)
        db_session.commit()
        assert lot.lot_number == 5


class TestDecrement:

    def test_decrement_updates_lot_and_total(self, db_session, product_with_lots):
        product_id = product_with_lots["product_id"]
        lot_service.decrement_lot(product_with_lots["lot_ids"]["downtown"], 12)
        db_session.commit()

        assert lot_quantities(db_session, product_id)[1] == (2, 18)
        assert total_stock(db_session, product_id) == 158

    def test_decrement_to_exactly_zero(self, db_session, product_with_lots):
        product_id = product_with_lots["product_id"]
        lot_service.decrement_lot(product_with_lots["lot_ids"]["downtown"], 30)
        db_session.commit()

        assert lot_quantities(db_session, product_id)[1] == (2, 0)
        assert_total_matches_lots(db_session, product_id)

    def test_overdraw_rejected_without_partial_write(self, db_session, product_with_lots):
        product_id = product_with_lots["product_id"]
        before = lot_quantities(db_session, product_id)

        with pytest.raises(InsufficientStockError) as exc:
            lot_service.decrement_lot(product_with_lots["lot_ids"]["downtown"], 31)
        db_session.rollback()

        assert exc.value.available == 30
        assert exc.value.requested == 31
        assert lot_quantities(db_session, product_id) == before
        assert total_stock(db_session, product_id) == 170

    @pytest.mark.parametrize("quantity", [0, -1, True, 1.5, "3"])
    def test_invalid_quantity(self, db_session, product_with_lots, quantity):
        with pytest.raises(ValueError):
            lot_service.decrement_lot(product_with_lots["lot_ids"]["main"], quantity)

    def test_unknown_lot(self, db_session, locations):
        with pytest.raises(NotFoundError):
            lot_service.decrement_lot(999999, 1)

    def test_without_total_adjustment(self, db_session, product_with_lots):
        product_id = product_with_lots["product_id"]
        lot_service.decrement_lot(product_with_lots["lot_ids"]["main"], 5, adjust_total=False)
        db_session.commit()
        assert total_stock(db_session, product_id) == 170


class TestMoveBetweenLots:

    def test_move_creates_destination_lot(self, db_session, locations, product_with_lots):
        product_id = product_with_lots["product_id"]
        source, destination = lot_service.move_between_lots(
            product_with_lots["lot_ids"]["main"], locations["mall"], 15
        )
        db_session.commit()

        assert destination.lot_number == 5
        assert destination.location_id == locations["mall"]
        assert destination.quantity == 15
        assert destination.unit_price_cents == 2500
        assert lot_quantities(db_session, product_id)[0] == (1, 35)
        assert total_stock(db_session, product_id) == 170

    def test_move_overdraw_writes_nothing(self, db_session, locations, product_with_lots):
        product_id = product_with_lots["product_id"]
        before = lot_quantities(db_session, product_id)

        with pytest.raises(InsufficientStockError):
            lot_service.move_between_lots(product_with_lots["lot_ids"]["secondary"], locations["mall"], 21)
        db_session.rollback()

        assert lot_quantities(db_session, product_id) == before


class TestCreateProduct:

    def test_duplicate_code_rejected(self, db_session, locations, product_with_lots):
        with pytest.raises(ValueError):
            lot_service.create_product_with_stock(
                product_code="PA001",
                name="Duplicate",
                location_id=locations["main"],
                quantity=1,
            )

    def test_unknown_location(self, db_session, locations):
        with pytest.raises(NotFoundError):
            lot_service.create_product_with_stock(
                product_code="NOWHERE",
                name="Nowhere",
                location_id=999999,
                quantity=1,
            )

    def test_add_stock_to_unknown_product(self, db_session, locations):
        with pytest.raises(NotFoundError):
            lot_service.add_stock(999999, location_id=locations["main"], quantity=1)


class TestPurgeDepletedLots:

    def test_purges_unreferenced_depleted_lots(self, db_session, product_with_lots):
        product_id = product_with_lots["product_id"]
        lot_service.decrement_lot(product_with_lots["lot_ids"]["main"], 50)
        db_session.commit()

        assert lot_service.purge_depleted_lots(product_id) == 1
        db_session.commit()

        assert [number for number, _ in lot_quantities(db_session, product_id)] == [2, 3, 4]

    def test_keeps_newest_lot(self, db_session, product_with_lots):
        product_id = product_with_lots["product_id"]
        lot_service.decrement_lot(product_with_lots["lot_ids"]["secondary"], 20)
        db_session.commit()

        assert lot_service.purge_depleted_lots(product_id) == 0
        assert lot_quantities(db_session, product_id)[-1] == (4, 0)

    def test_keeps_lots_referenced_by_sales(self, db_session, locations, product_with_lots, super_admin):
        product_id = product_with_lots["product_id"]
        lot_id = product_with_lots["lot_ids"]["downtown"]
        lot_service.decrement_lot(lot_id, 30)
        db_session.add(Sale(
            product_id=product_id,
            lot_id=lot_id,
            location_id=locations["downtown"],
            quantity=30,
            unit_price_cents=2700,
            total_cents=81000,
            sold_by_user_id=super_admin.id,
        ))
        db_session.commit()

        assert lot_service.purge_depleted_lots(product_id) == 0


class TestRepairTotalStock:

    def test_reports_and_fixes_drift(self, db_session, product_with_lots):
        product_id = product_with_lots["product_id"]
        product = db_session.get(Product, product_id)
        product.total_stock = 5
        db_session.commit()

        drifted = lot_service.repair_total_stock()
        db_session.commit()

        assert drifted == [{"product_id": product_id, "before": 5, "after": 170}]
        assert total_stock(db_session, product_id) == 170

    def test_no_drift(self, db_session, product_with_lots):
        assert lot_service.repair_total_stock(product_with_lots["product_id"]) == []

    def test_unknown_product(self, db_session, locations):
        with pytest.raises(NotFoundError):
            lot_service.repair_total_stock(999999)
