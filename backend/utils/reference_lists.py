# backend/utils/reference_lists.py
from typing import List

from schemas.customer import Customer, CUSTOMER_PARTITION
from schemas.order import Order, ORDER_PARTITION
from schemas.product import Product, PRODUCT_PARTITION
from utils.cache import CUSTOMER_LIST_KEY, PRODUCT_LIST_KEY, ORDER_LIST_KEY


# Cached, retried loaders for the selection lists used by the forms

async def load_customers(services) -> List[Customer]:
    customers = await services.cache.get_or_load(
        CUSTOMER_LIST_KEY,
        services.settings.CUSTOMER_CACHE_TTL,
        lambda: services.retry.run(lambda: services.customers.query(CUSTOMER_PARTITION)),
    )
    return sorted(customers, key=lambda c: c.username.lower())


async def load_products(services) -> List[Product]:
    products = await services.cache.get_or_load(
        PRODUCT_LIST_KEY,
        services.settings.PRODUCT_CACHE_TTL,
        lambda: services.retry.run(lambda: services.products.query(PRODUCT_PARTITION)),
    )
    return sorted(products, key=lambda p: p.name.lower())


async def load_orders(services) -> List[Order]:
    orders = await services.cache.get_or_load(
        ORDER_LIST_KEY,
        services.settings.ORDER_CACHE_TTL,
        lambda: services.retry.run(lambda: services.orders.query(ORDER_PARTITION)),
    )
    return sorted(orders, key=lambda o: o.order_date, reverse=True)
