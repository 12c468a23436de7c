"""Custom exceptions for storefront."""

from enum import Enum


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    pass


# --- Domain errors ---


class OrderNotFoundError(StorefrontError):
    """Raised when an order ID doesn't exist."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class ProductNotFoundError(StorefrontError):
    """Raised when a product ID doesn't exist."""

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class DuplicateOrderError(StorefrontError):
    """Raised when creating an order whose ID is already stored."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order already exists: {order_id}")


class EmptyCartError(StorefrontError):
    """Raised when placing an order with no items."""

    def __init__(self):
        super().__init__("Cannot place an order with an empty cart")


class InvalidQuantityError(StorefrontError):
    """Raised when a cart line has a quantity below one."""

    def __init__(self, product_id: str, quantity: int):
        self.product_id = product_id
        self.quantity = quantity
        super().__init__(
            f"Invalid quantity {quantity} for product {product_id}: must be at least 1"
        )


class InvalidAmountError(StorefrontError):
    """Raised when a dispatch amount or weight is not a finite number."""

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field}: {value!r} is not a finite number")


class InvalidPaymentStatusError(StorefrontError):
    """Raised when a payment status is not one of the known values."""

    def __init__(self, status: str, allowed: tuple[str, ...]):
        self.status = status
        super().__init__(
            f"Invalid payment status '{status}'. Allowed: {', '.join(allowed)}"
        )


class InvalidTransitionError(StorefrontError):
    """Raised when an order status change is not allowed."""

    def __init__(self, order_id: str, current: str, target: str):
        self.order_id = order_id
        self.current = current
        self.target = target
        super().__init__(
            f"Order {order_id} cannot move from {current} to {target}"
        )


class DispatchInProgressError(StorefrontError):
    """Raised when an order is already being dispatched."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order {order_id} is already being dispatched")


class UnknownCourierError(StorefrontError):
    """Raised when a courier name has no registered adapter."""

    def __init__(self, courier: str, supported: list[str]):
        self.courier = courier
        self.supported = supported
        super().__init__(
            f"Unknown courier '{courier}'. Supported: {', '.join(supported)}"
        )


# --- Courier / HTTP errors ---


class ErrorKind(str, Enum):
    """Coarse category of a failed provider call."""

    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    RATE_LIMITED = "rate_limited"
    SERVER_FAULT = "server_fault"
    SERVICE_UNAVAILABLE = "service_unavailable"
    NETWORK_TIMEOUT = "network_timeout"
    NETWORK_ERROR = "network_error"
    PROVIDER_REJECTION = "provider_rejection"
    UNKNOWN = "unknown"


class CourierError(StorefrontError):
    """A failed call to an external provider, carrying one display message."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        provider: str | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.provider = provider
        super().__init__(message)


class AuthenticationError(CourierError):
    """Provider rejected the credentials (401)."""

    kind = ErrorKind.AUTHENTICATION


class AuthorizationError(CourierError):
    """Credentials lack permission for the operation (403)."""

    kind = ErrorKind.AUTHORIZATION


class CourierValidationError(CourierError):
    """Provider rejected one or more fields (422)."""

    kind = ErrorKind.VALIDATION


class RateLimitedError(CourierError):
    """Too many requests (429)."""

    kind = ErrorKind.RATE_LIMITED


class ServerFaultError(CourierError):
    """Provider-side failure (5xx)."""

    kind = ErrorKind.SERVER_FAULT


class ServiceUnavailableError(CourierError):
    """Provider is down for maintenance (503)."""

    kind = ErrorKind.SERVICE_UNAVAILABLE


class NetworkTimeoutError(CourierError):
    """No response within the deadline."""

    kind = ErrorKind.NETWORK_TIMEOUT


class NetworkError(CourierError):
    """Transport failure before a response arrived."""

    kind = ErrorKind.NETWORK_ERROR


class ProviderRejectionError(CourierError):
    """Transport succeeded but the provider reported a failure in the body."""

    kind = ErrorKind.PROVIDER_REJECTION
