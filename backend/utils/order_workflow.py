# backend/utils/order_workflow.py
"""
Order placement over a store without multi-entity transactions.

The placement is a small state machine:

    START -> CUSTOMER_LOOKUP -> PRODUCT_LOOKUP -> STOCK_CHECK
          -> STOCK_COMMIT -> ORDER_COMMIT -> NOTIFY -> DONE

with ORDER_COMMIT -> ROLLBACK -> FAILED when the order insert fails after
stock was already decremented, and FAILED reachable from every lookup, check
and commit state. The product snapshot taken at PRODUCT_LOOKUP is what
ROLLBACK writes back. Each visited state is recorded on the returned
PlacementResult, so a failed compensation is visible to the caller rather
than hidden in a log line.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

from schemas.customer import Customer, CUSTOMER_PARTITION
from schemas.order import Order, DEFAULT_ORDER_STATUS
from schemas.product import Product, PRODUCT_PARTITION
from utils.cache import ReferenceCache, PRODUCT_LIST_KEY, ORDER_LIST_KEY
from utils.errors import (
    CustomerNotFound, ProductNotFound, InsufficientStock, OrderCreationFailed,
    OrderPlacementError, RollbackFailed, RollbackStatus, VersionConflict,
)
from utils.messaging import MessageSink
from utils.retry import RetryPolicy
from utils.table_store import EntityNotFound, StorageRequestError, TableStore, VersionMismatch

logger = logging.getLogger(__name__)


class OrderState(str, Enum):
    START = "START"
    CUSTOMER_LOOKUP = "CUSTOMER_LOOKUP"
    PRODUCT_LOOKUP = "PRODUCT_LOOKUP"
    STOCK_CHECK = "STOCK_CHECK"
    STOCK_COMMIT = "STOCK_COMMIT"
    ORDER_COMMIT = "ORDER_COMMIT"
    ROLLBACK = "ROLLBACK"
    NOTIFY = "NOTIFY"
    DONE = "DONE"
    FAILED = "FAILED"


TERMINAL_STATES = frozenset({OrderState.DONE, OrderState.FAILED})


@dataclass(frozen=True)
class ProductSnapshot:
    stock_quantity: int
    price: float
    etag: Optional[str]


@dataclass
class PlacementResult:
    customer_id: str
    product_id: str
    quantity: int
    states: List[OrderState] = field(default_factory=list)
    order: Optional[Order] = None
    error: Optional[OrderPlacementError] = None
    snapshot: Optional[ProductSnapshot] = None
    rollback: RollbackStatus = RollbackStatus.NOT_NEEDED
    rollback_error: Optional[RollbackFailed] = None
    notified: bool = False

    @property
    def state(self) -> OrderState:
        return self.states[-1] if self.states else OrderState.START

    @property
    def succeeded(self) -> bool:
        return self.state is OrderState.DONE


@dataclass
class _Placement:
    result: PlacementResult
    status: str
    customer: Optional[Customer] = None
    product: Optional[Product] = None
    order: Optional[Order] = None
    commit_error: Optional[BaseException] = None


class OrderWorkflow:
    """Places orders with a compensating stock write on failure."""

    def __init__(
        self,
        customers: TableStore,
        products: TableStore,
        orders: TableStore,
        retry: RetryPolicy,
        cache: ReferenceCache,
        sink: MessageSink,
        topic: str = "orders",
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.customers = customers
        self.products = products
        self.orders = orders
        self.retry = retry
        self.cache = cache
        self.sink = sink
        self.topic = topic
        self._now = now
        self._handlers: Dict[OrderState, Callable[[_Placement], Awaitable[OrderState]]] = {
            OrderState.START: self._start,
            OrderState.CUSTOMER_LOOKUP: self._lookup_customer,
            OrderState.PRODUCT_LOOKUP: self._lookup_product,
            OrderState.STOCK_CHECK: self._check_stock,
            OrderState.STOCK_COMMIT: self._commit_stock,
            OrderState.ORDER_COMMIT: self._commit_order,
            OrderState.ROLLBACK: self._rollback,
            OrderState.NOTIFY: self._notify,
        }

    async def place_order(self, customer_id: str, product_id: str, quantity: int, status: Optional[str] = None) -> Order:
        result = await self.execute(customer_id, product_id, quantity, status)
        if result.error is not None:
            raise result.error
        return result.order

    async def execute(self, customer_id: str, product_id: str, quantity: int, status: Optional[str] = None) -> PlacementResult:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValueError(f"Quantity must be a positive integer, got {quantity!r}")

        result = PlacementResult(customer_id=customer_id, product_id=product_id, quantity=quantity)
        ctx = _Placement(result=result, status=(status or "").strip() or DEFAULT_ORDER_STATUS)

        state = OrderState.START
        while True:
            result.states.append(state)
            if state in TERMINAL_STATES:
                break
            state = await self._handlers[state](ctx)

        if result.succeeded:
            logger.info(f"Order {result.order.order_id} placed for product {product_id} (qty {quantity})")
        else:
            logger.warning(f"Order placement failed after {result.states[-2].value}: {result.error}")
        return result

    def _fail(self, ctx: _Placement, error: OrderPlacementError) -> OrderState:
        ctx.result.error = error
        return OrderState.FAILED

    async def _start(self, ctx: _Placement) -> OrderState:
        return OrderState.CUSTOMER_LOOKUP

    async def _lookup_customer(self, ctx: _Placement) -> OrderState:
        customer_id = ctx.result.customer_id
        try:
            ctx.customer = await self.retry.run(lambda: self.customers.get(CUSTOMER_PARTITION, customer_id))
        except EntityNotFound:
            return self._fail(ctx, CustomerNotFound(customer_id))
        except StorageRequestError as e:
            return self._fail(ctx, OrderCreationFailed(OrderState.CUSTOMER_LOOKUP.value, e))
        return OrderState.PRODUCT_LOOKUP

    async def _lookup_product(self, ctx: _Placement) -> OrderState:
        product_id = ctx.result.product_id
        try:
            ctx.product = await self.retry.run(lambda: self.products.get(PRODUCT_PARTITION, product_id))
        except EntityNotFound:
            return self._fail(ctx, ProductNotFound(product_id))
        except StorageRequestError as e:
            return self._fail(ctx, OrderCreationFailed(OrderState.PRODUCT_LOOKUP.value, e))

        ctx.result.snapshot = ProductSnapshot(
            stock_quantity=ctx.product.stock_quantity,
            price=ctx.product.price,
            etag=ctx.product.etag,
        )
        return OrderState.STOCK_CHECK

    async def _check_stock(self, ctx: _Placement) -> OrderState:
        product, quantity = ctx.product, ctx.result.quantity
        if product.stock_quantity < quantity:
            return self._fail(ctx, InsufficientStock(available=product.stock_quantity, requested=quantity))

        ctx.order = Order(
            customer_id=ctx.customer.customer_id,
            product_id=product.product_id,
            quantity=quantity,
            order_status=ctx.status,
            order_date=self._now(),
            unit_price=product.price,
            product_name=product.name,
            customer_name=ctx.customer.full_name,
            username=ctx.customer.username,
        )
        return OrderState.STOCK_COMMIT

    async def _commit_stock(self, ctx: _Placement) -> OrderState:
        product = ctx.product
        decremented = product.model_copy(update={"stock_quantity": product.stock_quantity - ctx.result.quantity})
        try:
            await self.retry.run(lambda: self.products.update(decremented, product.etag))
        except VersionMismatch as e:
            return self._fail(ctx, VersionConflict(OrderState.STOCK_COMMIT.value, e))
        except StorageRequestError as e:
            return self._fail(ctx, OrderCreationFailed(OrderState.STOCK_COMMIT.value, e))

        self.cache.invalidate(PRODUCT_LIST_KEY)
        return OrderState.ORDER_COMMIT

    async def _commit_order(self, ctx: _Placement) -> OrderState:
        order = ctx.order
        try:
            ctx.result.order = await self.retry.run(lambda: self.orders.insert(order))
        except Exception as e:
            # Stock is already decremented, so any failure must be compensated
            ctx.commit_error = e
            return OrderState.ROLLBACK

        self.cache.invalidate(ORDER_LIST_KEY)
        return OrderState.NOTIFY

    async def _rollback(self, ctx: _Placement) -> OrderState:
        snapshot = ctx.result.snapshot
        restored = ctx.product.model_copy(update={
            "stock_quantity": snapshot.stock_quantity,
            "price": snapshot.price,
        })
        try:
            # Unconditional: the token held since PRODUCT_LOOKUP is stale now
            await self.products.update(restored, None)
        except Exception as e:
            rollback_error = RollbackFailed(restored.product_id, snapshot.stock_quantity, e)
            logger.error(f"Stock rollback failed, manual reconciliation required: {rollback_error}")
            ctx.result.rollback = RollbackStatus.FAILED
            ctx.result.rollback_error = rollback_error
        else:
            ctx.result.rollback = RollbackStatus.SUCCEEDED
            self.cache.invalidate(PRODUCT_LIST_KEY)

        return self._fail(ctx, OrderCreationFailed(
            OrderState.ORDER_COMMIT.value,
            ctx.commit_error,
            rollback=ctx.result.rollback,
            rollback_error=ctx.result.rollback_error,
        ))

    async def _notify(self, ctx: _Placement) -> OrderState:
        order = ctx.result.order
        message = (
            f"New order {order.order_id}: {order.quantity} x {order.product_name} "
            f"for {order.customer_name} ({order.username}), total {order.total_price:.2f}, "
            f"status {order.order_status}"
        )
        try:
            await self.sink.send(self.topic, message)
            ctx.result.notified = True
        except Exception:
            # The order is already committed; a lost notification does not undo it
            logger.exception(f"Notification for order {order.order_id} failed")
        return OrderState.DONE
