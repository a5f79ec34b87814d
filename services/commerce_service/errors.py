"""Commerce error taxonomy.

Service functions raise these; ``libs.common.error_handler`` renders them.
The HTTP status of every kind is declared once, in ``STATUS_BY_KIND``.
"""

import enum
from typing import Any, Optional

from libs.common.error_handler import AppError


class ErrorKind(str, enum.Enum):
    VALIDATION_ERROR = "validation_error"
    STORE_NOT_FOUND = "store_not_found"
    PRODUCT_NOT_FOUND = "product_not_found"
    PRODUCT_UNAVAILABLE = "product_unavailable"
    SPECIFICATION_NOT_FOUND = "specification_not_found"
    INSUFFICIENT_GENERAL_STOCK = "insufficient_general_stock"
    INSUFFICIENT_SPECIFICATION_STOCK = "insufficient_specification_stock"
    ORDER_NOT_FOUND = "order_not_found"
    INVALID_STATUS_TRANSITION = "invalid_status_transition"
    ORDER_ACCESS_DENIED = "order_access_denied"
    CART_ITEM_NOT_FOUND = "cart_item_not_found"
    WHOLESALER_NOT_FOUND = "wholesaler_not_found"
    PERSISTENCE_ERROR = "persistence_error"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.STORE_NOT_FOUND: 404,
    ErrorKind.PRODUCT_NOT_FOUND: 404,
    ErrorKind.PRODUCT_UNAVAILABLE: 400,
    ErrorKind.SPECIFICATION_NOT_FOUND: 400,
    ErrorKind.INSUFFICIENT_GENERAL_STOCK: 400,
    ErrorKind.INSUFFICIENT_SPECIFICATION_STOCK: 400,
    ErrorKind.ORDER_NOT_FOUND: 404,
    ErrorKind.INVALID_STATUS_TRANSITION: 400,
    ErrorKind.ORDER_ACCESS_DENIED: 403,
    ErrorKind.CART_ITEM_NOT_FOUND: 404,
    ErrorKind.WHOLESALER_NOT_FOUND: 404,
    ErrorKind.PERSISTENCE_ERROR: 500,
}


class CommerceError(AppError):
    error_kind: ErrorKind = ErrorKind.VALIDATION_ERROR

    @property
    def kind(self) -> str:  # type: ignore[override]
        return self.error_kind.value

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return STATUS_BY_KIND[self.error_kind]


class RequestValidationFailed(CommerceError):
    """Malformed order or cart request that passed schema validation."""

    error_kind = ErrorKind.VALIDATION_ERROR


class StoreNotFound(CommerceError):
    error_kind = ErrorKind.STORE_NOT_FOUND

    def __init__(self, store_id: Any):
        super().__init__("Store not found", {"store_id": str(store_id)})


class ProductNotFound(CommerceError):
    error_kind = ErrorKind.PRODUCT_NOT_FOUND

    def __init__(self, product_id: Any):
        super().__init__(
            f"Product {product_id} not found", {"product_id": str(product_id)}
        )


class ProductUnavailable(CommerceError):
    error_kind = ErrorKind.PRODUCT_UNAVAILABLE

    def __init__(self, product_id: Any, name: str):
        super().__init__(
            f"{name} is not available for purchase",
            {"product_id": str(product_id), "product_name": name},
        )


class SpecificationNotFound(CommerceError):
    error_kind = ErrorKind.SPECIFICATION_NOT_FOUND

    def __init__(self, product_id: Any, specification_id: str, value_id: str):
        super().__init__(
            f"Specification {specification_id}/{value_id} not found "
            f"for product {product_id}",
            {
                "product_id": str(product_id),
                "specification_id": specification_id,
                "value_id": value_id,
            },
        )


class InsufficientGeneralStock(CommerceError):
    error_kind = ErrorKind.INSUFFICIENT_GENERAL_STOCK

    def __init__(
        self,
        product_id: Any,
        name: str,
        requested: int,
        available: Optional[int] = None,
    ):
        if available is None:
            message = f"Insufficient stock for {name}"
        else:
            message = (
                f"Insufficient stock for {name}: only {available} left, "
                f"{requested} requested"
            )
        super().__init__(
            message,
            {
                "product_id": str(product_id),
                "product_name": name,
                "requested": requested,
                "available": available,
            },
        )


class InsufficientSpecificationStock(CommerceError):
    error_kind = ErrorKind.INSUFFICIENT_SPECIFICATION_STOCK

    def __init__(
        self,
        product_id: Any,
        specification_id: str,
        value_id: str,
        label: str,
        requested: int,
        available: Optional[int] = None,
    ):
        if available is None:
            message = f"Insufficient stock in {label}"
        else:
            message = (
                f"Insufficient stock: only {available} left in {label}, "
                f"{requested} requested"
            )
        super().__init__(
            message,
            {
                "product_id": str(product_id),
                "specification_id": specification_id,
                "value_id": value_id,
                "specification": label,
                "requested": requested,
                "available": available,
            },
        )


class OrderNotFound(CommerceError):
    error_kind = ErrorKind.ORDER_NOT_FOUND

    def __init__(self, reference: Any):
        super().__init__("Order not found", {"order": str(reference)})


class InvalidStatusTransition(CommerceError):
    error_kind = ErrorKind.INVALID_STATUS_TRANSITION

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot move order from {current} to {requested}",
            {"current_status": current, "requested_status": requested},
        )


class OrderAccessDenied(CommerceError):
    error_kind = ErrorKind.ORDER_ACCESS_DENIED

    def __init__(self, order_id: Any):
        super().__init__(
            "Order does not belong to this buyer", {"order_id": str(order_id)}
        )


class CartItemNotFound(CommerceError):
    error_kind = ErrorKind.CART_ITEM_NOT_FOUND

    def __init__(self, item_id: Any):
        super().__init__("Cart item not found", {"item_id": str(item_id)})


class WholesalerNotFound(CommerceError):
    """Raised only by the discount lookup endpoints; pricing never raises it."""

    error_kind = ErrorKind.WHOLESALER_NOT_FOUND

    def __init__(self, reference: str):
        super().__init__(
            "No eligible wholesaler found", {"wholesaler": reference}
        )


class PersistenceError(CommerceError):
    error_kind = ErrorKind.PERSISTENCE_ERROR

    def __init__(self, message: str = "Could not save the order, please try again"):
        super().__init__(message)
