"""Shared fixtures: a throwaway SQLite database per test and units of work on it."""

from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from order_api.db import Base, create_session_factory
from order_api.db.models import Category, Customer, Order, OrderItem, OrderType, Product
from order_api.services.unit_of_work import UnitOfWork


@pytest.fixture
def database_url(tmp_path):
    """URL of an empty SQLite file for this test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}"


@pytest_asyncio.fixture
async def empty_engine(database_url):
    """Engine on a database without any tables."""
    engine = create_async_engine(database_url)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def engine(empty_engine):
    """Engine on a database with the full schema created."""
    async with empty_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return empty_engine


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def uow(session_factory):
    """A unit of work closed after the test."""
    async with UnitOfWork(session_factory()) as unit:
        yield unit


@pytest.fixture
def make_uow(session_factory):
    """Factory for additional, independent units of work (caller closes them)."""
    return lambda: UnitOfWork(session_factory())


@pytest_asyncio.fixture
async def sample_data(session_factory):
    """
    Two customers, three products, three orders.

    Huber Anna:  order A1 = 2 x Apfel (1.5) + 1 x Kiwi (4.0)   -> 7.0
                 order A2 = 3 x Birne (2.0)                    -> 6.0
    Maier Berta: order B1 = 4 x Kiwi (4.0)                     -> 16.0
    """
    async with UnitOfWork(session_factory()) as unit:
        apfel = Product(product_nr="P02", name="Apfel", price=1.5)
        birne = Product(product_nr="P03", name="Birne", price=2.0)
        kiwi = Product(product_nr="P01", name="Kiwi", price=4.0)
        obst = Category(category_name="Obst", products=[apfel, birne, kiwi])
        exotisch = Category(category_name="Exotisch", products=[kiwi])

        anna = Customer(customer_nr="1111111111", first_name="Anna", last_name="Huber")
        berta = Customer(customer_nr="1234000000", first_name="Berta", last_name="Maier")

        a1 = Order(order_nr="A1", date=datetime(2024, 1, 10), customer=anna, order_type=OrderType.STANDARD)
        a2 = Order(order_nr="A2", date=datetime(2024, 2, 10), customer=anna, order_type=OrderType.ONLINE)
        b1 = Order(order_nr="B1", date=datetime(2024, 3, 10), customer=berta, order_type=OrderType.EXPRESS)

        items = [
            OrderItem(order=a1, product=kiwi, amount=1),
            OrderItem(order=a1, product=apfel, amount=2),
            OrderItem(order=a2, product=birne, amount=3),
            OrderItem(order=b1, product=kiwi, amount=4),
        ]
        await unit.products.add_range([apfel, birne, kiwi])
        unit.session.add_all([obst, exotisch])
        await unit.customers.add_range([anna, berta])
        await unit.orders.add_range([a1, a2, b1])
        await unit.order_items.add_range(items)
        await unit.save_changes()
        return {
            "products": {"apfel": apfel.id, "birne": birne.id, "kiwi": kiwi.id},
            "customers": {"anna": anna.id, "berta": berta.id},
            "orders": {"A1": a1.id, "A2": a2.id, "B1": b1.id},
            "items": [i.id for i in items],
        }
