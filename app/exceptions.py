"""
Domain errors raised by the services layer.

Each error carries the HTTP status it maps to; ``app.main`` renders them as
``{"detail": message}`` the same way FastAPI renders ``HTTPException``.
"""


class ServiceError(Exception):
    status_code = 500
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ---------- NOT FOUND ----------

class NotFound(ServiceError):
    status_code = 404
    default_message = "Record not found"


class ItemNotFound(NotFound):
    default_message = "Food item not found"


class ContractNotFound(NotFound):
    default_message = "Valid contract not found for this lounge"


# ---------- AUTHORIZATION ----------

class Unauthorized(ServiceError):
    status_code = 403
    default_message = "Not authorized"


# ---------- INPUT ----------

class InvalidInput(ServiceError):
    status_code = 400
    default_message = "Invalid input"


class InvalidPaymentMethod(InvalidInput):
    default_message = "Invalid payment method"


class InvalidToken(InvalidInput):
    default_message = "Invalid QR code"


# ---------- BUSINESS RULES ----------

class BusinessRuleViolation(ServiceError):
    status_code = 400
    default_message = "Operation not allowed"


class InsufficientBalance(BusinessRuleViolation):
    default_message = "Insufficient contract balance"


class ItemUnavailable(BusinessRuleViolation):
    default_message = "Food item is not available"


class AlreadyDelivered(BusinessRuleViolation):
    default_message = "Order already delivered"


class ContractAlreadyActive(BusinessRuleViolation):
    default_message = "You already have an active contract with this lounge"


class InvalidStatusTransition(BusinessRuleViolation):
    default_message = "Invalid status transition"


# ---------- UPSTREAM ----------

class UpstreamFailure(ServiceError):
    """Gateway unreachable or erroring; safe to retry."""
    status_code = 503
    default_message = "Payment provider unavailable, please retry"


class UpstreamRejected(ServiceError):
    """Gateway explicitly declined the request."""
    status_code = 502
    default_message = "Payment provider rejected the request"
