"""Tests for GenericRepository query building, paging, projection and CRUD staging."""

import logging

import pytest
from pydantic import BaseModel
from sqlalchemy import Select
from sqlalchemy.exc import InvalidRequestError

from order_api.core.errors import InvalidOperationError
from order_api.db.models import Customer, Product
from order_api.repositories.base import GenericRepository


class ProductName(BaseModel):
    product_nr: str
    name: str


class TestQuerying:
    """Test get / get_page / filters / includes / tracking."""

    @pytest.mark.asyncio
    async def test_get_with_filter_and_order(self, uow, sample_data):
        products = await uow.products.get(filter=Product.price > 1.8, order_by=Product.price.desc())
        assert [p.name for p in products] == ["Kiwi", "Birne"]

    @pytest.mark.asyncio
    async def test_query_is_composable(self, uow, sample_data):
        stmt = uow.products.query(order_by=Product.product_nr)
        assert isinstance(stmt, Select)
        products = await uow.products.scalars(stmt.limit(1))
        assert [p.product_nr for p in products] == ["P01"]

    @pytest.mark.asyncio
    async def test_get_page_is_zero_based(self, uow, sample_data):
        first = await uow.products.get_page(0, 2, order_by=Product.product_nr)
        second = await uow.products.get_page(1, 2, order_by=Product.product_nr)
        assert [p.product_nr for p in first] == ["P01", "P02"]
        assert [p.product_nr for p in second] == ["P03"]
        assert await uow.products.get_page(5, 2, order_by=Product.product_nr) == []

    @pytest.mark.asyncio
    async def test_get_page_without_order_uses_key(self, uow, sample_data):
        page = await uow.products.get_page(0, 3)
        assert [p.id for p in page] == sorted(sample_data["products"].values())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page,page_size", [(-1, 10), (0, 0), (0, -5)])
    async def test_get_page_rejects_bad_arguments(self, uow, page, page_size):
        with pytest.raises(ValueError):
            await uow.products.get_page(page, page_size)

    @pytest.mark.asyncio
    async def test_untracked_results_are_detached(self, uow, sample_data):
        products = await uow.products.get(includes=(Product.categories,), order_by=Product.product_nr)
        assert all(p not in uow.session for p in products)
        kiwi = products[0]
        assert sorted(c.category_name for c in kiwi.categories) == ["Exotisch", "Obst"]

    @pytest.mark.asyncio
    async def test_tracked_results_stay_in_session(self, uow, sample_data):
        products = await uow.products.get(disable_tracking=False)
        assert len(products) == 3
        assert all(p in uow.session for p in products)


class TestProjection:
    """Test get_projected / get_projected_page."""

    def test_projection_without_selector_needs_entity_type(self, uow):
        with pytest.raises(InvalidOperationError):
            uow.products.get_projected(ProductName)
        assert isinstance(uow.products.get_projected(Product), Select)

    @pytest.mark.asyncio
    async def test_projected_page(self, uow, sample_data):
        selector = [Product.product_nr.label("product_nr"), Product.name.label("name")]
        rows = await uow.products.get_projected_page(
            ProductName, 0, 2, order_by=Product.product_nr, selector=selector
        )
        assert rows == [ProductName(product_nr="P01", name="Kiwi"), ProductName(product_nr="P02", name="Apfel")]

    @pytest.mark.asyncio
    async def test_projected_page_without_selector_returns_entities(self, uow, sample_data):
        rows = await uow.products.get_projected_page(Product, 1, 2, order_by=Product.product_nr)
        assert [p.product_nr for p in rows] == ["P03"]

    @pytest.mark.asyncio
    async def test_projected_page_rejects_bad_arguments(self, uow):
        with pytest.raises(ValueError):
            await uow.products.get_projected_page(ProductName, -1, 10, selector=[Product.name.label("name")])


class TestLookupsAndStaging:
    """Test get_by_id / exists / count and the staging operations."""

    @pytest.mark.asyncio
    async def test_get_by_id(self, uow, sample_data):
        kiwi = await uow.products.get_by_id(sample_data["products"]["kiwi"])
        assert kiwi.name == "Kiwi"
        assert await uow.products.get_by_id(9999) is None

    @pytest.mark.asyncio
    async def test_exists_and_count(self, uow, sample_data):
        assert await uow.products.exists(sample_data["products"]["apfel"])
        assert not await uow.products.exists(9999)
        assert await uow.products.count() == 3
        assert await uow.products.count(Product.price < 2.0) == 1

    @pytest.mark.asyncio
    async def test_add_is_staged_until_save(self, uow, make_uow):
        product = await uow.products.add(Product(product_nr="P10", name="Mango", price=3.0))
        assert uow.products.has_changes()
        assert await uow.save_changes() == 1
        assert not uow.products.has_changes()
        assert product.id is not None
        assert product.row_version == 1

        async with make_uow() as other:
            assert (await other.products.get_by_id(product.id)).name == "Mango"

    @pytest.mark.asyncio
    async def test_add_range_logs_store_faults(self, uow, sample_data, make_uow, caplog):
        async with make_uow() as other:
            kiwi = await other.products.get_by_id(sample_data["products"]["kiwi"])
            with caplog.at_level(logging.ERROR, logger="order_api.repositories.base"):
                with pytest.raises(InvalidRequestError):
                    await uow.products.add_range([kiwi])
        assert "Error adding 1 entities of type Product" in caplog.text
        assert not uow.products.has_changes()

    @pytest.mark.asyncio
    async def test_delete_missing_id(self, uow, sample_data):
        assert await uow.products.delete(9999) is False
        assert not uow.products.has_changes()

    @pytest.mark.asyncio
    async def test_delete_by_id(self, uow, sample_data):
        customers = GenericRepository(uow.session, Customer)
        assert await uow.orders.delete(sample_data["orders"]["B1"]) is True
        assert uow.orders.has_changes()
        await uow.save_changes()
        assert await uow.orders.count() == 2
        assert await customers.count() == 2

    @pytest.mark.asyncio
    async def test_attach_detached_entity(self, uow, sample_data, make_uow):
        apfel_id = sample_data["products"]["apfel"]
        detached = Product(id=apfel_id, row_version=1, product_nr="P02", name="Apfel rot", price=1.75)
        uow.products.attach(detached)
        assert uow.products.has_changes()
        assert await uow.save_changes() == 1
        assert detached.row_version == 2

        async with make_uow() as other:
            stored = await other.products.get_by_id(apfel_id)
            assert (stored.name, stored.price, stored.row_version) == ("Apfel rot", 1.75, 2)

    @pytest.mark.asyncio
    async def test_update_tracked_entity(self, uow, sample_data):
        kiwi = await uow.products.get_by_id(sample_data["products"]["kiwi"])
        uow.products.update(kiwi)
        assert uow.products.has_changes()
        assert await uow.save_changes() == 1
        assert kiwi.row_version == 2

    @pytest.mark.asyncio
    async def test_update_without_key_inserts(self, uow):
        product = Product(product_nr="P20", name="Melone", price=5.0)
        uow.products.update(product)
        assert product in uow.session.new
        await uow.save_changes()
        assert await uow.products.count() == 1

    @pytest.mark.asyncio
    async def test_remove_detached_entity(self, uow, sample_data, make_uow):
        async with make_uow() as other:
            items = await other.order_items.get_by_order_id(sample_data["orders"]["A2"])
        assert len(items) == 1
        await uow.order_items.remove(items[0])
        await uow.save_changes()
        assert await uow.order_items.count() == 3
