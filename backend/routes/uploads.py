# backend/routes/uploads.py
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from database import get_db
from dependencies import Services, get_services
from schemas.upload import FileUpload, SelectOption, UploadList, UploadOptions, UploadOut, UPLOAD_PARTITION
from utils.audit import write_log
from utils.file_store import PROOF_OF_PAYMENT
from utils.reference_lists import load_customers, load_orders
from utils.table_store import EntityNotFound, StorageRequestError

router = APIRouter(prefix="/uploads", tags=["Uploads"])
logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".pdf", ".jpg", ".jpeg", ".png", ".doc", ".docx"}


def _upload_out(upload: FileUpload) -> UploadOut:
    return UploadOut.model_validate(upload.model_dump())


async def _get_upload(services: Services, upload_id: str) -> FileUpload:
    try:
        return await services.retry.run(lambda: services.uploads.get(UPLOAD_PARTITION, upload_id))
    except EntityNotFound:
        raise HTTPException(status_code=404, detail="Upload not found")


# Select lists for the upload form (orders and customers)
@router.get("/options", response_model=UploadOptions)
async def upload_options(services: Services = Depends(get_services)):
    try:
        orders = [
            SelectOption(value=o.order_id, text=f"{o.order_id} - {o.customer_name or 'Unknown Customer'}")
            for o in await load_orders(services)
        ]
        if not orders:
            orders = [SelectOption(value="No orders available", text="No orders available")]
    except StorageRequestError:
        logger.exception("Error retrieving orders for dropdown")
        orders = [SelectOption(value="Error loading orders", text="Error loading orders")]

    try:
        customers = []
        for c in await load_customers(services):
            username = c.username or "Unknown User"
            text = f"{c.first_name} {c.surname} ({username})" if c.first_name and c.surname else username
            customers.append(SelectOption(value=c.customer_id, text=text))
        if not customers:
            customers = [SelectOption(value="No customers available", text="No customers available")]
    except StorageRequestError:
        logger.exception("Error retrieving customers for dropdown")
        customers = [SelectOption(value="Error loading customers", text="Error loading customers")]

    return UploadOptions(orders=orders, customers=customers)


# Upload a proof of payment: file first, then its metadata record
@router.post("", response_model=UploadOut, status_code=status.HTTP_201_CREATED)
async def upload_proof_of_payment(
    request: Request,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
    order_id: str = Form(..., min_length=1),
    customer_name: str = Form(..., min_length=1),
    file: UploadFile = File(...),
):
    max_bytes = services.settings.MAX_UPLOAD_BYTES
    too_large = HTTPException(status_code=400, detail=f"File size cannot exceed {max_bytes // (1024 * 1024)}MB.")
    original_name = Path(file.filename or "").name
    try:
        if file.size is not None and file.size > max_bytes:
            raise too_large
        # Read one byte past the limit so a missing size still cannot load a huge body
        data = await file.read(max_bytes + 1)
    finally:
        await file.close()

    if not original_name or not data:
        raise HTTPException(status_code=400, detail="Please select a file to upload.")
    if Path(original_name).suffix.lower() not in ALLOWED_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Only PDF, JPG, PNG, and DOC files are allowed.")
    if len(data) > max_bytes:
        raise too_large

    unique_name = f"{uuid.uuid4()}_{original_name}"
    file_url = await services.retry.run(lambda: services.files.put(PROOF_OF_PAYMENT, unique_name, data))

    upload = FileUpload(
        order_id=order_id,
        customer_name=customer_name,
        file_name=unique_name,
        original_file_name=original_name,
        file_size=len(data),
        content_type=file.content_type,
        upload_date=datetime.now(timezone.utc),
        file_url=file_url,
    )
    created = await services.retry.run(lambda: services.uploads.insert(upload))

    await run_in_threadpool(
        write_log, db, action="UPLOAD_CREATE", resource="uploads", status="SUCCESS",
        ip=request.client.host if request.client else None,
        meta={"id": created.row_key, "order_id": order_id, "file": unique_name, "size": len(data)},
    )
    return _upload_out(created)


@router.get("", response_model=UploadList)
async def list_uploads(services: Services = Depends(get_services)):
    uploads = await services.retry.run(lambda: services.uploads.query(UPLOAD_PARTITION))
    uploads.sort(key=lambda u: u.upload_date, reverse=True)
    return {"items": [_upload_out(u) for u in uploads], "total": len(uploads)}


@router.get("/{upload_id}/download")
async def download_upload(upload_id: str, services: Services = Depends(get_services)):
    upload = await _get_upload(services, upload_id)
    return RedirectResponse(upload.file_url)


# Delete the stored file (if still present) and its metadata
@router.delete("/{upload_id}")
async def delete_upload(
    upload_id: str,
    request: Request,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    upload = await _get_upload(services, upload_id)
    if await services.files.exists(PROOF_OF_PAYMENT, upload.file_name):
        await services.retry.run(lambda: services.files.delete(PROOF_OF_PAYMENT, upload.file_name))
    try:
        await services.retry.run(lambda: services.uploads.delete(UPLOAD_PARTITION, upload_id))
    except EntityNotFound:
        raise HTTPException(status_code=404, detail="Upload not found")

    await run_in_threadpool(
        write_log, db, action="UPLOAD_DELETE", resource="uploads", status="SUCCESS",
        ip=request.client.host if request.client else None,
        meta={"id": upload_id, "file": upload.file_name},
    )
    return {"detail": f"Upload '{upload.original_file_name}' deleted"}
