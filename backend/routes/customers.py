# backend/routes/customers.py
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import or_
from sqlalchemy.orm import Session

from database import get_db
from dependencies import Services, get_services
import models.customer as customer_models
from schemas.customer import Customer, CustomerCreate, CustomerList, CustomerOut, CUSTOMER_PARTITION
from utils.audit import write_log
from utils.cache import CUSTOMER_LIST_KEY
from utils.reference_lists import load_customers
from utils.table_store import EntityNotFound

router = APIRouter(prefix="/customers", tags=["Customers"])


def _customer_out(customer: Customer) -> CustomerOut:
    return CustomerOut.model_validate(customer.model_dump())


@router.get("", response_model=CustomerList)
async def list_customers(services: Services = Depends(get_services)):
    customers = await load_customers(services)
    return {"items": [_customer_out(c) for c in customers], "total": len(customers)}


@router.get("/{customer_id}", response_model=CustomerOut)
async def get_customer(customer_id: str, services: Services = Depends(get_services)):
    try:
        customer = await services.retry.run(lambda: services.customers.get(CUSTOMER_PARTITION, customer_id))
    except EntityNotFound:
        raise HTTPException(status_code=404, detail="Customer not found")
    return _customer_out(customer)


@router.post("", response_model=CustomerOut, status_code=status.HTTP_201_CREATED)
async def create_customer(
    payload: CustomerCreate,
    request: Request,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    # Read-then-write check; the table has no unique constraint on these
    row = customer_models.Customer
    existing = await services.retry.run(lambda: services.customers.query(
        CUSTOMER_PARTITION,
        or_(row.username == payload.username, row.email == payload.email),
    ))
    if existing:
        raise HTTPException(status_code=409, detail="Username or email already exists")

    customer = Customer(**payload.model_dump())
    created = await services.retry.run(lambda: services.customers.insert(customer))
    services.cache.invalidate(CUSTOMER_LIST_KEY)

    await run_in_threadpool(
        write_log, db, action="CUSTOMER_CREATE", resource="customers", status="SUCCESS",
        ip=request.client.host if request.client else None,
        meta={"id": created.customer_id, "username": created.username},
    )
    return _customer_out(created)
