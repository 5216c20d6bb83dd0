# backend/dependencies.py
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import sessionmaker

from config import Settings, settings as default_settings
import models.customer as customer_models
import models.product as product_models
import models.order as order_models
import models.upload as upload_models
from schemas.customer import Customer
from schemas.order import Order
from schemas.product import Product
from schemas.upload import FileUpload
from utils.cache import ReferenceCache
from utils.file_store import LocalFileStore
from utils.messaging import LoggingMessageSink, MessageSink, WebhookMessageSink
from utils.order_workflow import OrderWorkflow
from utils.retry import RetryPolicy
from utils.table_store import TableStore


# Components shared by all requests of one application instance
@dataclass
class Services:
    settings: Settings
    session_factory: sessionmaker
    customers: TableStore
    products: TableStore
    orders: TableStore
    uploads: TableStore
    retry: RetryPolicy
    cache: ReferenceCache
    files: LocalFileStore
    sink: MessageSink
    workflow: OrderWorkflow


def build_services(
    session_factory: sessionmaker,
    settings: Settings = default_settings,
    retry: Optional[RetryPolicy] = None,
    cache: Optional[ReferenceCache] = None,
    sink: Optional[MessageSink] = None,
    files: Optional[LocalFileStore] = None,
) -> Services:
    customers = TableStore(session_factory, customer_models.Customer, Customer)
    products = TableStore(session_factory, product_models.Product, Product)
    orders = TableStore(session_factory, order_models.Order, Order)
    uploads = TableStore(session_factory, upload_models.FileUpload, FileUpload)

    retry = retry or RetryPolicy(max_attempts=settings.RETRY_MAX_ATTEMPTS, base_delay=settings.RETRY_BASE_DELAY)
    cache = cache or ReferenceCache()
    files = files or LocalFileStore(settings.UPLOAD_DIR, settings.PUBLIC_BASE_URL)
    if sink is None:
        if settings.NOTIFY_WEBHOOK_URL:
            sink = WebhookMessageSink(settings.NOTIFY_WEBHOOK_URL, timeout=settings.NOTIFY_TIMEOUT)
        else:
            sink = LoggingMessageSink()

    workflow = OrderWorkflow(customers, products, orders, retry, cache, sink, topic=settings.NOTIFY_TOPIC)
    return Services(
        settings=settings, session_factory=session_factory,
        customers=customers, products=products, orders=orders, uploads=uploads,
        retry=retry, cache=cache, files=files, sink=sink, workflow=workflow,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
