import asyncio
import os
import random
import sys

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from config import settings
from database import SessionLocal, init_db
from dependencies import build_services
from schemas.customer import Customer, CUSTOMER_PARTITION
from schemas.product import Product, PRODUCT_PARTITION

# Configuration
DEMO_CUSTOMERS = [
    ("Thandi", "Mokoena", "thandi.m@example.com", "12 Long Street, Cape Town", "thandi_m"),
    ("Sipho", "Dlamini", "sipho.d@example.com", "4 Jan Smuts Ave, Johannesburg", "sipho_d"),
    ("Aisha", "Patel", "aisha.p@example.com", "88 Florida Road, Durban", "aisha_p"),
    ("Pieter", "van Wyk", "pieter.vw@example.com", "7 Church Street, Stellenbosch", "pieter_vw"),
]
DEMO_PRODUCTS = [
    ("Rooibos Tea 250g", "Loose leaf, organic"),
    ("Ceramic Mug", "350 ml, dishwasher safe"),
    ("Canvas Tote Bag", "Natural cotton, printed logo"),
    ("Leather Notebook", "A5, 200 pages, lined"),
    ("Scented Candle", "Fynbos, 40 h burn time"),
    ("Beaded Bracelet", "Handmade, assorted colours"),
]
# End Configuration


async def populate():
    """Insert demo customers and products, skipping partitions that already have data."""
    init_db()
    services = build_services(SessionLocal, settings)

    if await services.customers.query(CUSTOMER_PARTITION):
        print("Customers already present, skipping.")
    else:
        for first_name, surname, email, address, username in DEMO_CUSTOMERS:
            await services.customers.insert(Customer(
                first_name=first_name, surname=surname, email=email, address=address, username=username,
            ))
        print(f"Inserted {len(DEMO_CUSTOMERS)} customers.")

    if await services.products.query(PRODUCT_PARTITION):
        print("Products already present, skipping.")
    else:
        for name, description in DEMO_PRODUCTS:
            await services.products.insert(Product(
                name=name,
                description=description,
                price=round(random.uniform(25.00, 450.00), 2),
                stock_quantity=random.randint(5, 120),
            ))
        print(f"Inserted {len(DEMO_PRODUCTS)} products.")


if __name__ == "__main__":
    asyncio.run(populate())
