# backend/models/table_entity.py
from sqlalchemy import Column, String, DateTime

# Columns shared by every collection row: partition/row keys form the
# identity, etag is the optimistic-concurrency version token rewritten on
# each successful write.
class TableEntityMixin:
    partition_key = Column(String(64), primary_key=True)
    row_key = Column(String(64), primary_key=True)
    etag = Column(String(64), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=True)
