import uuid
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from schemas.table_entity import ORMBase, TableEntity

UPLOAD_PARTITION = "Upload"
STORAGE_TYPE = "FileShare"


class FileUpload(TableEntity):
    partition_key: str = UPLOAD_PARTITION
    row_key: str = Field(default_factory=lambda: str(uuid.uuid4()))
    order_id: str
    customer_name: str
    file_name: str
    original_file_name: str
    file_size: int
    content_type: Optional[str] = None
    upload_date: datetime
    file_url: str
    storage_type: str = STORAGE_TYPE


class UploadOut(ORMBase):
    id: str = Field(validation_alias="row_key")
    order_id: str
    customer_name: str
    file_name: str
    original_file_name: str
    file_size: int
    content_type: Optional[str] = None
    upload_date: datetime
    file_url: str


class UploadList(BaseModel):
    items: List[UploadOut]
    total: int


# Entry of a select list on the upload form
class SelectOption(BaseModel):
    value: str
    text: str


class UploadOptions(BaseModel):
    orders: List[SelectOption]
    customers: List[SelectOption]
