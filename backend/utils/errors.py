# backend/utils/errors.py
from enum import Enum
from typing import Optional


class RollbackStatus(str, Enum):
    NOT_NEEDED = "not_needed"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class OrderPlacementError(Exception):
    """Base class for business failures of order placement."""


class NotFound(OrderPlacementError):
    entity = "Entity"

    def __init__(self, entity_id: str):
        super().__init__(f"{self.entity} {entity_id} not found")
        self.entity_id = entity_id


class CustomerNotFound(NotFound):
    entity = "Customer"


class ProductNotFound(NotFound):
    entity = "Product"


class InsufficientStock(OrderPlacementError):
    def __init__(self, available: int, requested: int):
        super().__init__(f"Insufficient stock. Only {available} available.")
        self.available = available
        self.requested = requested


class RollbackFailed(Exception):
    """The compensating stock write failed; stock needs manual reconciliation."""

    def __init__(self, product_id: str, restore_stock: int, cause: BaseException):
        super().__init__(f"Could not restore stock of product {product_id} to {restore_stock}: {cause}")
        self.product_id = product_id
        self.restore_stock = restore_stock
        self.cause = cause


class OrderCreationFailed(OrderPlacementError):
    """A storage write of the placement failed.

    ``stage`` names the workflow state that failed, ``rollback`` tells whether
    the stock decrement was compensated and ``rollback_error`` carries the
    failure of the compensating write, if any.
    """

    def __init__(
        self,
        stage: str,
        cause: Optional[BaseException] = None,
        rollback: RollbackStatus = RollbackStatus.NOT_NEEDED,
        rollback_error: Optional[RollbackFailed] = None,
    ):
        message = f"Order creation failed at {stage}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.stage = stage
        self.cause = cause
        self.rollback = rollback
        self.rollback_error = rollback_error


class VersionConflict(OrderCreationFailed):
    """Another writer changed the product first; resubmit the whole order."""
