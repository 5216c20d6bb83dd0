from sqlalchemy import Column, Integer, String, DateTime
from database import Base
from models.table_entity import TableEntityMixin

# Metadata of a proof-of-payment file kept in the file share
class FileUpload(TableEntityMixin, Base):
    __tablename__ = "file_uploads"

    order_id = Column(String, nullable=False, index=True)
    customer_name = Column(String, nullable=False)
    file_name = Column(String, nullable=False)
    original_file_name = Column(String, nullable=False)
    file_size = Column(Integer, nullable=False)
    content_type = Column(String, nullable=True)
    upload_date = Column(DateTime(timezone=True), nullable=False)
    file_url = Column(String, nullable=False)
    storage_type = Column(String, nullable=False, default="FileShare")
