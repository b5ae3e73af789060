"""
Sale lifecycle tests.

Verifies:
- create/update/delete keep product counters in step with sale items
- a rejected create or update changes nothing
- bulk delete restores every sale's stock
- admins only see and change their own sales
"""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from platepos.models import Activity, Sale
from platepos.services import sales_service, stock_service
from platepos.services.sales_service import (
    EmptyItemsError,
    SaleAccessError,
    SaleNotFoundError,
    StoreUnavailableError,
)
from platepos.services.stock_service import InsufficientStockError, InvalidVariantError
from platepos.time_utils import utcnow

from conftest import line, payload, stock_of


class TestLifecycleScenarios:
    """Full/half plate walk-through on a single product."""

    def test_create_update_delete_walkthrough(self, db_session, admin, make_product):
        p = make_product(full_stock=10, half_stock=5)

        # Create 3 full plates
        sale = sales_service.create_sale(payload(line(p, "full", 3)), admin)
        assert stock_of(db_session, p.id) == (7, 5, 12)
        assert sale.total_cents == 75000
        assert [i.quantity for i in sale.items] == [3]

        # 8 more full plates than remain
        with pytest.raises(InsufficientStockError):
            sales_service.create_sale(payload(line(p, "full", 8)), admin)
        assert stock_of(db_session, p.id) == (7, 5, 12)
        assert db_session.query(Sale).count() == 1

        # Switch the sale to 2 half plates
        sale = sales_service.update_sale(sale.id, payload(line(p, "half", 2)), admin)
        assert stock_of(db_session, p.id) == (10, 3, 13)
        assert [(i.variant, i.quantity) for i in sale.items] == [("half", 2)]
        assert sale.total_cents == 28000

        # Delete it
        sales_service.delete_sale(sale.id, admin)
        assert stock_of(db_session, p.id) == (10, 5, 15)
        assert db_session.get(Sale, sale.id) is None

    def test_bulk_delete_restores_disjoint_products(self, db_session, admin, superadmin, make_product):
        rice = make_product(name="Jeera Rice", full_stock=10, half_stock=10)
        kebab = make_product(name="Seekh Kebab", full_stock=6, half_stock=0, is_solo=True)

        sales_service.create_sale(payload(line(rice, "half", 4)), admin)
        sales_service.create_sale(payload(line(kebab, "full", 5)), admin)
        assert stock_of(db_session, rice.id) == (10, 6, 16)
        assert stock_of(db_session, kebab.id) == (1, 0, 1)

        now = utcnow()
        result = sales_service.delete_sales_in_range(
            now - timedelta(hours=1), now + timedelta(hours=1), superadmin
        )

        assert result.deleted_count == 2
        assert result.failed_sale_ids == []
        assert stock_of(db_session, rice.id) == (10, 10, 20)
        assert stock_of(db_session, kebab.id) == (6, 0, 6)
        assert db_session.query(Sale).count() == 0


class TestCreateSale:

    def test_empty_items_rejected(self, db_session, admin):
        with pytest.raises(EmptyItemsError):
            sales_service.create_sale(payload(), admin)

    def test_records_creator_and_price_snapshot(self, db_session, admin, make_product):
        p = make_product(full_price_cents=30000)

        sale = sales_service.create_sale(payload(line(p, "full", 2)), admin)

        # Later price changes never rewrite history
        p.full_price_cents = 99900
        db_session.commit()
        db_session.refresh(sale)

        assert sale.created_by_user_id == admin.id
        assert sale.created_by_username == "counter1"
        assert sale.items[0].unit_price_cents == 30000
        assert sale.items[0].line_total_cents == 60000

    def test_explicit_total_is_kept(self, db_session, admin, make_product):
        p = make_product()

        sale = sales_service.create_sale(payload(line(p), total_cents=20000), admin)

        assert sale.total_cents == 20000

    def test_invalid_variant_leaves_other_lines_untouched(self, db_session, admin, make_product):
        rice = make_product(name="Jeera Rice", full_stock=10, half_stock=10)
        roti = make_product(name="Tandoori Roti", full_stock=40, is_solo=True)

        with pytest.raises(InvalidVariantError):
            sales_service.create_sale(payload(line(rice, "full", 1), line(roti, "half", 1)), admin)

        assert stock_of(db_session, rice.id) == (10, 10, 20)
        assert db_session.query(Sale).count() == 0

    def test_activity_entry_follows_commit(self, db_session, admin, make_product):
        p = make_product()

        sale = sales_service.create_sale(payload(line(p, "half", 1)), admin)

        entry = db_session.query(Activity).one()
        assert entry.username == "counter1"
        assert f"#{sale.id}" in entry.action
        assert "Chicken Biryani (half)" in entry.action


class TestUpdateSale:

    def test_identical_update_is_a_stock_no_op(self, db_session, admin, make_product):
        p = make_product(full_stock=10, half_stock=5)
        sale = sales_service.create_sale(payload(line(p, "full", 3), line(p, "half", 1)), admin)
        before = stock_of(db_session, p.id)

        sales_service.update_sale(sale.id, payload(line(p, "full", 3), line(p, "half", 1)), admin)

        assert stock_of(db_session, p.id) == before == (7, 4, 11)

    def test_update_can_reuse_stock_the_sale_already_holds(self, db_session, admin, make_product):
        p = make_product(full_stock=3, half_stock=0)
        sale = sales_service.create_sale(payload(line(p, "full", 3)), admin)
        assert stock_of(db_session, p.id) == (0, 0, 0)

        sales_service.update_sale(sale.id, payload(line(p, "full", 2)), admin)

        assert stock_of(db_session, p.id) == (1, 0, 1)

    def test_failed_update_changes_nothing(self, db_session, admin, make_product):
        rice = make_product(name="Jeera Rice", full_stock=10, half_stock=10)
        kebab = make_product(name="Seekh Kebab", full_stock=2, half_stock=0)
        sale = sales_service.create_sale(payload(line(rice, "full", 4)), admin)

        with pytest.raises(InsufficientStockError):
            sales_service.update_sale(
                sale.id, payload(line(rice, "half", 1), line(kebab, "full", 3)), admin
            )

        # Old reservation still held, nothing new debited, sale unchanged
        assert stock_of(db_session, rice.id) == (6, 10, 16)
        assert stock_of(db_session, kebab.id) == (2, 0, 2)
        db_session.refresh(sale)
        assert [(i.product_id, i.variant, i.quantity) for i in sale.items] == [(rice.id, "full", 4)]

    def test_empty_update_rejected_before_stock_moves(self, db_session, admin, make_product):
        p = make_product()
        sale = sales_service.create_sale(payload(line(p, "full", 2)), admin)

        with pytest.raises(EmptyItemsError):
            sales_service.update_sale(sale.id, payload(), admin)

        assert stock_of(db_session, p.id) == (8, 5, 13)

    def test_missing_sale(self, db_session, admin, make_product):
        p = make_product()
        with pytest.raises(SaleNotFoundError):
            sales_service.update_sale(424242, payload(line(p)), admin)

    def test_bumps_version(self, db_session, admin, make_product):
        p = make_product()
        sale = sales_service.create_sale(payload(line(p)), admin)
        first_version = sale.version_id

        sale = sales_service.update_sale(sale.id, payload(line(p), order_taker="Meena"), admin)

        assert sale.version_id == first_version + 1
        assert sale.order_taker == "Meena"


class TestOwnership:

    def test_admin_cannot_touch_another_admins_sale(self, db_session, admin, other_admin, make_product):
        p = make_product()
        sale = sales_service.create_sale(payload(line(p, "full", 2)), other_admin)

        with pytest.raises(SaleAccessError):
            sales_service.update_sale(sale.id, payload(line(p)), admin)
        with pytest.raises(SaleAccessError):
            sales_service.delete_sale(sale.id, admin)
        with pytest.raises(SaleAccessError):
            sales_service.get_sale(sale.id, admin)

        assert stock_of(db_session, p.id) == (8, 5, 13)

    def test_superadmin_can_delete_any_sale(self, db_session, admin, superadmin, make_product):
        p = make_product()
        sale = sales_service.create_sale(payload(line(p, "full", 2)), admin)

        sales_service.delete_sale(sale.id, superadmin)

        assert stock_of(db_session, p.id) == (10, 5, 15)

    def test_list_visibility(self, db_session, admin, other_admin, superadmin, make_product):
        p = make_product(full_stock=20)
        mine = sales_service.create_sale(payload(line(p)), admin)
        sales_service.create_sale(payload(line(p)), other_admin)

        assert [s.id for s in sales_service.list_sales(admin)] == [mine.id]
        assert len(sales_service.list_sales(superadmin)) == 2

        grouped = sales_service.list_sales(superadmin, group_by_creator=True)
        assert sorted(grouped) == ["counter1", "counter2"]

        # Grouping is only for users who can see everyone's sales
        assert isinstance(sales_service.list_sales(admin, group_by_creator=True), list)


class TestBulkDelete:

    def test_range_excludes_sales_outside_it(self, db_session, admin, superadmin, make_product):
        p = make_product(full_stock=10)
        old = sales_service.create_sale(payload(line(p, "full", 2)), admin)
        old.created_at = utcnow() - timedelta(days=10)
        db_session.commit()
        sales_service.create_sale(payload(line(p, "full", 3)), admin)

        result = sales_service.delete_sales_in_range(
            utcnow() - timedelta(days=1), None, superadmin
        )

        assert result.deleted_count == 1
        assert [s.id for s in db_session.query(Sale).all()] == [old.id]
        assert stock_of(db_session, p.id) == (8, 5, 13)

    def test_empty_range(self, db_session, superadmin):
        result = sales_service.delete_sales_in_range(None, None, superadmin)
        assert result.to_dict() == {"deleted_count": 0, "failed_sale_ids": []}

    def test_empty_range_writes_no_activity(self, db_session, superadmin):
        sales_service.delete_sales_in_range(None, None, superadmin)
        assert db_session.query(Activity).count() == 0


def _locked_error():
    return OperationalError("UPDATE products", {}, Exception("database is locked"))


class TestStoreFailures:
    """Lock contention that outlasts the retries."""

    def test_bulk_delete_reports_failed_sale_and_continues(
        self, db_session, admin, superadmin, make_product, monkeypatch
    ):
        rice = make_product(name="Jeera Rice", full_stock=10, half_stock=0)
        kebab = make_product(name="Seekh Kebab", full_stock=10, half_stock=0)
        stuck = sales_service.create_sale(payload(line(rice, "full", 2)), admin)
        sales_service.create_sale(payload(line(kebab, "full", 3)), admin)
        stuck_id = stuck.id
        rice_id = rice.id

        real_release = stock_service.release

        def release(lines):
            if any(ln.product_id == rice_id for ln in lines):
                raise _locked_error()
            return real_release(lines)

        monkeypatch.setattr(stock_service, "release", release)

        result = sales_service.delete_sales_in_range(None, None, superadmin)

        assert result.deleted_count == 1
        assert result.failed_sale_ids == [stuck_id]
        assert stock_of(db_session, rice_id) == (8, 0, 8)
        assert stock_of(db_session, kebab.id) == (10, 0, 10)
        assert [s.id for s in db_session.query(Sale).all()] == [stuck_id]

    def test_create_gives_up_after_retry_attempts(self, db_session, admin, make_product, app, monkeypatch):
        p = make_product(full_stock=10, half_stock=5)
        calls = []

        def reserve(lines):
            calls.append(lines)
            raise _locked_error()

        monkeypatch.setattr(stock_service, "reserve", reserve)

        with pytest.raises(StoreUnavailableError):
            sales_service.create_sale(payload(line(p, "full", 2)), admin)

        assert len(calls) == app.config["RETRY_ATTEMPTS"]
        assert stock_of(db_session, p.id) == (10, 5, 15)
        assert db_session.query(Sale).count() == 0

    def test_domain_errors_are_not_retried(self, db_session, admin, make_product, monkeypatch):
        p = make_product(full_stock=1, half_stock=0)
        real_reserve = stock_service.reserve
        calls = []

        def reserve(lines):
            calls.append(lines)
            return real_reserve(lines)

        monkeypatch.setattr(stock_service, "reserve", reserve)

        with pytest.raises(InsufficientStockError):
            sales_service.create_sale(payload(line(p, "full", 2)), admin)

        assert len(calls) == 1
