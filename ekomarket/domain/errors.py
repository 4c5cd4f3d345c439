"""Domain errors carried in the kungfu Result returned by every use case"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from kungfu import Error, Ok, Result


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    AUTHORIZATION = "authorization"
    UPSTREAM_FAILURE = "upstream_failure"
    INTERNAL = "internal"


@dataclass(frozen=True)
class DomainError:
    kind: ErrorKind
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ConcurrentModificationError(Exception):
    """Raised by repositories when a conditional write finds the record changed"""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} {entity_id} was modified concurrently")
        self.entity = entity
        self.entity_id = entity_id


class Errors:
    """Factories for the stable error codes"""

    @staticmethod
    def validation(code: str, message: str, **details: Any) -> Error:
        return Error(DomainError(ErrorKind.VALIDATION, code, message, details))

    @staticmethod
    def empty_order() -> Error:
        return Errors.validation("EMPTY_ORDER", "Order must have at least one item")

    @staticmethod
    def invalid_quantity(product_id: str, quantity: int) -> Error:
        return Errors.validation(
            "INVALID_QUANTITY",
            f"Quantity for product {product_id} must be a positive integer",
            product_id=product_id,
            requested=quantity,
        )

    @staticmethod
    def invalid_amount(amount: Any) -> Error:
        return Errors.validation("INVALID_AMOUNT", "Invalid amount.", amount=str(amount))

    @staticmethod
    def invalid_status(value: Any) -> Error:
        return Errors.validation("INVALID_STATUS", "Invalid order status.", status=str(value))

    @staticmethod
    def not_found(code: str, message: str, **details: Any) -> Error:
        return Error(DomainError(ErrorKind.NOT_FOUND, code, message, details))

    @staticmethod
    def product_not_found(product_id: str) -> Error:
        return Errors.not_found(
            "PRODUCT_NOT_FOUND", f"Product with ID {product_id} not found.", product_id=product_id
        )

    @staticmethod
    def order_not_found(order_id: str) -> Error:
        return Errors.not_found("ORDER_NOT_FOUND", "Order not found.", order_id=order_id)

    @staticmethod
    def payment_not_found(payment_id: str) -> Error:
        return Errors.not_found("PAYMENT_NOT_FOUND", "Payment not found.", payment_id=payment_id)

    @staticmethod
    def escrow_not_found(escrow_id: str) -> Error:
        return Errors.not_found("ESCROW_NOT_FOUND", "Escrow not found.", escrow_id=escrow_id)

    @staticmethod
    def conflict(code: str, message: str, **details: Any) -> Error:
        return Error(DomainError(ErrorKind.CONFLICT, code, message, details))

    @staticmethod
    def product_unavailable(product_id: str, name: str) -> Error:
        return Errors.conflict(
            "PRODUCT_UNAVAILABLE", f"Product {name} is not available.", product_id=product_id
        )

    @staticmethod
    def insufficient_stock(product_id: str, name: str, available: int, requested: int) -> Error:
        return Errors.conflict(
            "INSUFFICIENT_STOCK",
            f"Insufficient quantity for product {name}. "
            f"Available: {available}, Requested: {requested}.",
            product_id=product_id,
            available=available,
            requested=requested,
        )

    @staticmethod
    def invalid_transition(current: str, requested: str) -> Error:
        return Errors.conflict(
            "INVALID_TRANSITION",
            f"Cannot change order status from {current} to {requested}.",
            current=current,
            requested=requested,
        )

    @staticmethod
    def concurrent_modification(entity: str, entity_id: str) -> Error:
        return Errors.conflict(
            "CONCURRENT_MODIFICATION",
            f"{entity} {entity_id} was modified by another request, retry.",
            entity=entity,
            entity_id=entity_id,
        )

    @staticmethod
    def forbidden(message: str) -> Error:
        return Error(DomainError(ErrorKind.AUTHORIZATION, "FORBIDDEN", message))

    @staticmethod
    def upstream(code: str, message: str, **details: Any) -> Error:
        return Error(DomainError(ErrorKind.UPSTREAM_FAILURE, code, message, details))

    @staticmethod
    def invalid_signature() -> Error:
        return Errors.upstream("INVALID_SIGNATURE", "Webhook signature verification failed.")

    @staticmethod
    def internal(message: Optional[str] = None) -> Error:
        return Error(DomainError(
            ErrorKind.INTERNAL,
            "INTERNAL_ERROR",
            message or "An internal error occurred. Please try again later.",
        ))

    @staticmethod
    def invalid_payload(message: str = "Webhook payload could not be decoded.") -> Error:
        return Errors.upstream("INVALID_PAYLOAD", message)

    @staticmethod
    def gateway_timeout() -> Error:
        return Errors.upstream(
            "GATEWAY_TIMEOUT", "Payment gateway did not respond in time, retry later.", retryable=True
        )

    @staticmethod
    def gateway_error(message: str) -> Error:
        return Errors.upstream("GATEWAY_ERROR", message, retryable=True)

    @staticmethod
    def already_released(escrow_id: str) -> Error:
        return Errors.conflict("ALREADY_RELEASED", "Escrow funds were already released.", escrow_id=escrow_id)

    @staticmethod
    def already_refunded(entity_id: str) -> Error:
        return Errors.conflict("ALREADY_REFUNDED", "Funds were already refunded.", id=entity_id)

    @staticmethod
    def escrow_exists(order_id: str) -> Error:
        return Errors.conflict("ESCROW_EXISTS", "Escrow already exists for this order.", order_id=order_id)

    @staticmethod
    def payment_not_completed(status: str) -> Error:
        return Errors.conflict(
            "PAYMENT_NOT_COMPLETED", f"Payment is not completed (status: {status}).", status=status
        )
