# backend/routes/orders.py
import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from database import get_db
from dependencies import Services, get_services
from schemas.order import Order, OrderCreate, OrderList, OrderResponse, OrderStatusPatch, ORDER_PARTITION
from utils.audit import write_log
from utils.cache import ORDER_LIST_KEY
from utils.errors import (
    InsufficientStock, NotFound, OrderCreationFailed, RollbackStatus, VersionConflict,
)
from utils.order_workflow import PlacementResult
from utils.table_store import EntityNotFound, VersionMismatch

router = APIRouter(prefix="/orders", tags=["Orders"])
logger = logging.getLogger(__name__)


def _client_ip(request: Request):
    return request.client.host if request.client else None


# Map Order entity to OrderResponse schema
def _order_to_out(order: Order) -> OrderResponse:
    return OrderResponse.model_validate(order.model_dump())


async def _get_order(services: Services, order_id: str) -> Order:
    try:
        return await services.retry.run(lambda: services.orders.get(ORDER_PARTITION, order_id))
    except EntityNotFound:
        raise HTTPException(status_code=404, detail="Order not found")


async def _record_failure(db: Session, request: Request, result: PlacementResult):
    error = result.error
    meta = {
        "customer_id": result.customer_id,
        "product_id": result.product_id,
        "qty": result.quantity,
        "error": type(error).__name__,
        "detail": str(error),
    }
    if isinstance(error, OrderCreationFailed):
        meta.update({"stage": error.stage, "rollback": error.rollback.value})
    await run_in_threadpool(write_log, db, action="ORDER_CREATE", resource="orders", status="FAIL", ip=_client_ip(request), meta=meta)

    if result.rollback is RollbackStatus.FAILED:
        # Stock stays decremented until someone restores it by hand
        await run_in_threadpool(
            write_log, db, action="ORDER_ROLLBACK", resource="products", status="FAIL", ip=_client_ip(request),
            meta={
                "product_id": result.product_id,
                "restore_stock": result.snapshot.stock_quantity,
                "decremented_by": result.quantity,
                "error": str(result.rollback_error.cause),
            },
        )


# Place an order: stock decrement, order write, rollback on failure
@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    request: Request,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    result = await services.workflow.execute(
        payload.customer_id, payload.product_id, payload.quantity, payload.order_status,
    )
    error = result.error

    if error is not None:
        await _record_failure(db, request, result)
        if isinstance(error, NotFound):
            raise HTTPException(status_code=404, detail=str(error))
        if isinstance(error, InsufficientStock):
            raise HTTPException(status_code=400, detail={"message": str(error), "available": error.available})
        if isinstance(error, VersionConflict):
            raise HTTPException(
                status_code=409,
                detail="The product was changed by another order. Please submit the order again.",
            )
        if isinstance(error, OrderCreationFailed):
            raise HTTPException(
                status_code=500,
                detail={"message": f"Error creating order: {error}", "stage": error.stage, "rollback": error.rollback.value},
            )
        raise error

    order = result.order
    await run_in_threadpool(
        write_log, db, action="ORDER_CREATE", resource="orders", status="SUCCESS", ip=_client_ip(request),
        meta={"order_id": order.order_id, "total": order.total_price, "notified": result.notified},
    )
    return _order_to_out(order)


@router.get("", response_model=OrderList)
async def list_orders(services: Services = Depends(get_services)):
    orders = await services.retry.run(lambda: services.orders.query(ORDER_PARTITION))
    orders.sort(key=lambda o: o.order_date, reverse=True)
    return {"items": [_order_to_out(o) for o in orders], "total": len(orders)}


# Get details of a specific order
@router.get("/{order_id}", response_model=OrderResponse)
async def get_order_detail(order_id: str, services: Services = Depends(get_services)):
    return _order_to_out(await _get_order(services, order_id))


# Update order status; the client's etag guards against lost updates
@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    order = await _get_order(services, order_id)
    old_status = order.order_status
    changed = order.model_copy(update={"order_status": payload.status})
    try:
        updated = await services.retry.run(lambda: services.orders.update(changed, payload.etag))
    except VersionMismatch:
        raise HTTPException(status_code=409, detail="Order was modified by someone else, reload and try again")
    except EntityNotFound:
        raise HTTPException(status_code=404, detail="Order not found")

    services.cache.invalidate(ORDER_LIST_KEY)
    await run_in_threadpool(
        write_log, db, action="ORDER_STATUS_CHANGE", resource="orders", status="SUCCESS", ip=_client_ip(request),
        meta={"order_id": order_id, "old": old_status, "new": payload.status},
    )
    return _order_to_out(updated)


@router.delete("/{order_id}")
async def delete_order(
    order_id: str,
    request: Request,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        await services.retry.run(lambda: services.orders.delete(ORDER_PARTITION, order_id))
    except EntityNotFound:
        raise HTTPException(status_code=404, detail="Order not found")

    services.cache.invalidate(ORDER_LIST_KEY)
    await run_in_threadpool(write_log, db, action="ORDER_DELETE", resource="orders", status="SUCCESS", ip=_client_ip(request), meta={"order_id": order_id})
    return {"detail": f"Order '{order_id}' deleted"}
