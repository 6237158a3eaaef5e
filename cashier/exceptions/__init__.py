"""Custom exceptions for the cashier application."""

class CashierError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv

class BusinessLogicError(CashierError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)

class NotFoundError(CashierError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)

class InsufficientStockError(BusinessLogicError):
    """Raised when a submission fails the point-in-time stock re-check."""
    def __init__(self, shortfalls):
        self.shortfalls = list(shortfalls)
        lines = '\n'.join(item.describe() for item in self.shortfalls)
        message = f"Insufficient Stock:\n{lines}"
        payload = {'shortfalls': [item.to_dict() for item in self.shortfalls]}
        super().__init__(message, status_code=409, payload=payload)

class OrderNotEditableError(BusinessLogicError):
    """Raised when a persisted order is cancelled or returned."""
    def __init__(self, transaction_number, status):
        message = f"Order {transaction_number} is {status.label} and can no longer be edited"
        super().__init__(message, status_code=409)

class UpstreamError(CashierError):
    """Raised when the POS backend is unreachable or rejects a request."""
    def __init__(self, message="Failed to reach the POS backend", status_code=502, upstream_status=None):
        super().__init__(message, status_code)
        self.upstream_status = upstream_status
