"""
Error taxonomy for the catalog/inventory/order core and the DRF handler that renders it.
"""

from dataclasses import dataclass
from decimal import Decimal

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from restops.utils.logger import RestOpsLogger

logger = RestOpsLogger(__name__)


class RestOpsError(Exception):
    """Base class for errors raised by the core. Carries its HTTP mapping."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "error"
    retryable = False

    def __init__(self, message=None):
        self.message = message or self.__class__.__name__
        super().__init__(self.message)

    def payload(self):
        return {'error': self.message, 'code': self.code, 'retryable': self.retryable}


class ValidationError(RestOpsError):
    """Bad or missing input, or an unknown reference. Raised before any mutation."""

    code = "validation_error"

    def __init__(self, message="Invalid request", errors=None):
        super().__init__(message)
        self.errors = dict(errors or {})

    def payload(self):
        data = super().payload()
        data['errors'] = self.errors
        return data


@dataclass(frozen=True)
class Shortfall:
    inventory_item_id: int
    name: str
    required: Decimal
    available: Decimal

    def as_dict(self):
        return {
            'inventory_item_id': self.inventory_item_id,
            'name': self.name,
            'required': str(self.required),
            'available': str(self.available),
        }


class InsufficientStock(RestOpsError):
    """One or more ingredients are short. Nothing was deducted."""

    code = "insufficient_stock"

    def __init__(self, shortfalls):
        self.shortfalls = list(shortfalls)
        names = ", ".join(s.name for s in self.shortfalls)
        super().__init__(f"Insufficient stock for one or more items: {names}")

    def payload(self):
        data = super().payload()
        data['details'] = [s.as_dict() for s in self.shortfalls]
        return data


class NotFound(RestOpsError):
    """Entity absent, or not owned by the calling restaurant/branch."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ConflictError(RestOpsError):
    """A uniqueness constraint lost a race with a concurrent writer."""

    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    retryable = True


class StateError(RestOpsError):
    """The entity is in a state that forbids the operation."""

    code = "invalid_state"

    def __init__(self, message, current_status=None):
        super().__init__(message)
        self.current_status = current_status

    def payload(self):
        data = super().payload()
        data['current_status'] = self.current_status
        return data


def api_exception_handler(exc, context):
    """DRF EXCEPTION_HANDLER: render core errors, defer the rest to DRF."""
    if isinstance(exc, RestOpsError):
        view = context.get('view')
        logger.warning(f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'unknown view'}: {exc.message}")
        return Response(exc.payload(), status=exc.status_code)
    return exception_handler(exc, context)
