"""
CSV import of the sample order data.

Reads three semicolon separated files (each with a header row) from a data folder:
- Products.csv         product nr; name; price
- OrderItems.csv       order nr; date; customer nr; last name; first name; product nr; amount; order type
- ProductCategory.csv  product nr; category name

The database is dropped and migrated first, so the import always starts from an
empty schema. All rows are saved with a single save_changes call.

Usage:
  python -m order_api.db.seed [data_dir]
"""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Sequence, Tuple, Union

import pandas as pd

from order_api.core.logging import configure_logging
from order_api.core.settings import get_app_settings
from order_api.db.models import Category, Customer, Order, OrderItem, OrderType, Product
from order_api.db.session import dispose_engine, get_session_maker
from order_api.repositories.base import GenericRepository
from order_api.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

PRODUCTS_FILE = "Products.csv"
ORDER_ITEMS_FILE = "OrderItems.csv"
PRODUCT_CATEGORY_FILE = "ProductCategory.csv"


def _read_rows(path: Path, separator: str) -> List[Tuple[str, ...]]:
    """Read a CSV file with header row into a list of string tuples (positional columns)."""
    df = pd.read_csv(path, sep=separator, header=0, dtype=str, keep_default_na=False)
    df = df.apply(lambda col: col.str.strip())
    return list(df.itertuples(index=False, name=None))


def _parse_date(value: str) -> datetime:
    # Dotted dates are day first (31.12.2024); anything else is parsed as ISO.
    return pd.to_datetime(value, dayfirst="." in value).to_pydatetime()


def _lookup(index: Dict[str, object], key: str, what: str):
    try:
        return index[key]
    except KeyError:
        raise ValueError(f"Unknown {what} '{key}' in import data") from None


def _build_products(rows: Sequence[Tuple[str, ...]]) -> List[Product]:
    return [Product(product_nr=r[0], name=r[1], price=float(r[2])) for r in rows]


def _build_sales(
    rows: Sequence[Tuple[str, ...]], products: Dict[str, Product]
) -> Tuple[List[Customer], List[Order], List[OrderItem]]:
    customers: Dict[Tuple[str, str, str], Customer] = {}
    customers_by_nr: Dict[str, Customer] = {}
    for r in rows:
        key = (r[2], r[4], r[3])
        if key not in customers:
            customer = Customer(customer_nr=r[2], first_name=r[4], last_name=r[3])
            customers[key] = customer
            customers_by_nr.setdefault(customer.customer_nr, customer)

    orders: Dict[Tuple[str, datetime, str, str], Order] = {}
    orders_by_nr: Dict[str, Order] = {}
    for r in rows:
        key = (r[0], _parse_date(r[1]), r[2], r[7])
        if key not in orders:
            order = Order(
                order_nr=r[0],
                date=key[1],
                customer=customers_by_nr[r[2]],
                order_type=OrderType.parse(r[7]),
            )
            orders[key] = order
            orders_by_nr.setdefault(order.order_nr, order)

    items = [
        OrderItem(
            order=orders_by_nr[r[0]],
            product=_lookup(products, r[5], "product number"),
            amount=int(r[6]),
        )
        for r in rows
    ]
    return list(customers.values()), list(orders.values()), items


def _build_categories(rows: Sequence[Tuple[str, ...]], products: Dict[str, Product]) -> List[Category]:
    categories: Dict[str, Category] = {}
    for r in rows:
        category = categories.get(r[1])
        if category is None:
            category = categories[r[1]] = Category(category_name=r[1])
        category.products.append(_lookup(products, r[0], "product number"))
    return list(categories.values())


# PUBLIC_INTERFACE
async def fill_db(uow: UnitOfWork, data_dir: Union[str, Path], separator: str = ";") -> int:
    """
    Recreate the database and import the CSV files from `data_dir`.

    Returns:
        number of rows written by save_changes
    Raises:
        FileNotFoundError: a CSV file is missing
        ValueError: the files reference unknown products or carry unparsable values
        EntityValidationError / AggregateValidationError: imported entities are invalid
    """
    data_path = Path(data_dir)
    await uow.delete_database()
    await uow.migrate_database()

    product_list = _build_products(_read_rows(data_path / PRODUCTS_FILE, separator))
    products: Dict[str, Product] = {}
    for product in product_list:
        products.setdefault(product.product_nr, product)

    customers, orders, items = _build_sales(_read_rows(data_path / ORDER_ITEMS_FILE, separator), products)
    categories = _build_categories(_read_rows(data_path / PRODUCT_CATEGORY_FILE, separator), products)
    logger.info(
        "Read %d products, %d customers, %d orders, %d order items, %d categories",
        len(product_list), len(customers), len(orders), len(items), len(categories),
    )

    await uow.products.add_range(product_list)
    await uow.customers.add_range(customers)
    await uow.orders.add_range(orders)
    await uow.order_items.add_range(items)
    await GenericRepository(uow.session, Category).add_range(categories)
    return await uow.save_changes()


async def _run(data_dir: str) -> None:
    settings = get_app_settings()
    async with UnitOfWork(get_session_maker()()) as uow:
        await fill_db(uow, data_dir, settings.CSV_SEPARATOR)
        products = await uow.products.get_all_with_categories()
        logger.info("Imported %d products", len(products))
        for product in products:
            category_list = " ".join(c.category_name for c in product.categories)
            logger.info("%4s %-20s %-20s %s", product.product_nr, product.name, product.price, category_list)
    await dispose_engine()


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> None:
    """Run the import from the command line."""
    args = list(sys.argv[1:] if argv is None else argv)
    configure_logging()
    data_dir = args[0] if args else get_app_settings().IMPORT_DATA_DIR
    logger.info("Importing order data from %s", data_dir)
    asyncio.run(_run(data_dir))


if __name__ == "__main__":
    main()
