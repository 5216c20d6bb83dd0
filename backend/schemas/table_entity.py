# backend/schemas/table_entity.py
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Identity and version token carried by every stored entity.
# etag is None until the store assigns one on insert.
class TableEntity(ORMBase):
    partition_key: str
    row_key: str
    etag: Optional[str] = None
    timestamp: Optional[datetime] = None
