"""Custom exceptions for the RestroFlow billing service.

Every exception carries a machine-readable ``kind`` and the HTTP status the
API layer answers with, so callers never have to string-match messages.
"""


class RestroFlowException(Exception):
    """Base exception for RestroFlow application."""

    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str = "", kind: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class ValidationError(RestroFlowException):
    """Raised when validation fails."""

    kind = "validation_error"
    status_code = 400


class NotFoundError(RestroFlowException):
    """Raised when a resource is not found."""

    kind = "not_found"
    status_code = 404


class InvoiceNotFoundError(NotFoundError):
    kind = "invoice_not_found"


class RestaurantNotFoundError(NotFoundError):
    kind = "restaurant_not_found"


class ConflictError(RestroFlowException):
    """Raised when the target resource is not in a state that allows the operation."""

    kind = "conflict"
    status_code = 409


class InvoiceAlreadyProcessedError(ConflictError):
    """Raised when an invoice has already left PENDING."""

    kind = "invoice_already_processed"


class PaymentAlreadyUsedError(ConflictError):
    """Raised when a gateway payment id has already settled another invoice."""

    kind = "payment_already_used"


class InvalidPaymentSignatureError(RestroFlowException):
    """Raised after a payment callback fails signature verification."""

    kind = "invalid_payment_signature"
    status_code = 400


class PaymentOrderMismatchError(RestroFlowException):
    """Raised when a callback references a gateway order other than the invoice's."""

    kind = "payment_order_mismatch"
    status_code = 400


class PaymentGatewayError(RestroFlowException):
    """Raised when the payment gateway cannot be reached or rejects a request."""

    kind = "payment_gateway_error"
    status_code = 502


class DatabaseError(RestroFlowException):
    """Raised when a database operation fails."""

    kind = "database_error"


class ServiceError(RestroFlowException):
    """Raised when a service operation fails."""

    kind = "service_error"


class ConfigurationError(RestroFlowException):
    """Raised when configuration is invalid."""

    kind = "configuration_error"


class AuthenticationError(RestroFlowException):
    """Raised when authentication fails."""

    kind = "authentication_error"
    status_code = 401


class AuthorizationError(RestroFlowException):
    """Raised when an authenticated caller lacks permission."""

    kind = "authorization_error"
    status_code = 403
