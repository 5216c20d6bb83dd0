# backend/routes/products.py
import logging
from pathlib import Path
from typing import Optional

from fastapi import (
    APIRouter, Depends, HTTPException, Query, Request,
    UploadFile, File, Form, status
)
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from database import get_db
from dependencies import Services, get_services
from schemas.product import Product, ProductDetails, ProductList, ProductOut, PRODUCT_PARTITION
from utils.audit import write_log
from utils.cache import PRODUCT_LIST_KEY
from utils.file_store import PRODUCT_IMAGES
from utils.reference_lists import load_products
from utils.table_store import EntityNotFound, StorageRequestError

router = APIRouter(prefix="/products", tags=["Products"])
logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp"}


def _product_out(product: Product) -> ProductOut:
    return ProductOut.model_validate(product.model_dump())


async def _get_product(services: Services, product_id: str) -> Product:
    try:
        return await services.retry.run(lambda: services.products.get(PRODUCT_PARTITION, product_id))
    except EntityNotFound:
        raise HTTPException(status_code=404, detail="Product not found")


async def _upload_product_image(services: Services, file: UploadFile, product_id: str) -> str:
    """Store the image as <product id><ext>; a storage failure leaves the product without one."""
    ext = Path(file.filename or "").suffix.lower()
    data = await file.read()
    try:
        return await services.retry.run(lambda: services.files.put(PRODUCT_IMAGES, f"{product_id}{ext}", data))
    except StorageRequestError as e:
        logger.error(f"Error uploading image for product {product_id}: {e}")
        return ""
    finally:
        await file.close()


# =========================
# PRODUCT LIST
# =========================
@router.get("", response_model=ProductList)
async def list_products(
    in_stock: bool = Query(False, description="Only products that can still be ordered"),
    services: Services = Depends(get_services),
):
    products = await load_products(services)
    if in_stock:
        products = [p for p in products if p.stock_quantity > 0]
    return {"items": [_product_out(p) for p in products], "total": len(products)}


# =========================
# SINGLE PRODUCT
# =========================
@router.get("/{product_id}", response_model=ProductOut)
async def get_product(product_id: str, services: Services = Depends(get_services)):
    return _product_out(await _get_product(services, product_id))


@router.get("/{product_id}/details", response_model=ProductDetails)
async def get_product_details(product_id: str, services: Services = Depends(get_services)):
    product = await _get_product(services, product_id)
    return ProductDetails(price=product.price, stock=product.stock_quantity, name=product.name)


# =========================
# ADD PRODUCT
# =========================
@router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
async def add_product(
    request: Request,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
    file: Optional[UploadFile] = File(None),
    name: str = Form(..., min_length=1),
    description: str = Form(""),
    price: float = Form(..., ge=0),
    stock_quantity: int = Form(..., ge=0),
):
    if file is not None and file.filename and file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=400, detail="Invalid file type")

    product = Product(name=name, description=description, price=price, stock_quantity=stock_quantity)
    if file is not None and file.filename:
        product.image_url = await _upload_product_image(services, file, product.product_id)

    created = await services.retry.run(lambda: services.products.insert(product))
    services.cache.invalidate(PRODUCT_LIST_KEY)

    await run_in_threadpool(
        write_log, db, action="PRODUCT_CREATE", resource="products", status="SUCCESS",
        ip=request.client.host if request.client else None,
        meta={"id": created.product_id, "name": created.name, "stock": created.stock_quantity},
    )
    return _product_out(created)
