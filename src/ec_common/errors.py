"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth
  2xxx: Angel ledger
  4xxx: Order lifecycle / request validation
  5xxx: Payment gateway
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired token", 401)


# --- 2xxx: Angel ledger ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required} cents, available {available} cents",
            422,
        )


# --- 4xxx: Order lifecycle ---

class ValidationFailedError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4000, detail, 400)


class ForbiddenError(AppError):
    def __init__(self, detail: str = "Not allowed to operate on this order") -> None:
        super().__init__(4030, detail, 403)


class OrderNotFoundError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4004, f"Order not found: {order_id}", 404)


class EntityNotFoundError(AppError):
    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(4040, f"{kind} not found: {entity_id}", 404)


class InvalidOrderStateError(AppError):
    def __init__(
        self,
        order_id: str,
        status: str,
        action: str,
        code: int = 4006,
        detail: str | None = None,
    ) -> None:
        self.order_id = order_id
        self.status = status
        self.action = action
        super().__init__(
            code,
            detail or f"Order {order_id} in status {status} does not allow {action}",
            400,
        )


class OrderAlreadyClaimedError(InvalidOrderStateError):
    def __init__(self, order_id: str, status: str) -> None:
        super().__init__(
            order_id,
            status,
            "accept",
            code=4007,
            detail=f"Order {order_id} has already been taken by another angel",
        )


# --- 5xxx: Payment gateway ---

class PaymentGatewayError(AppError):
    """Provider call failed or timed out — safe to retry, order state untouched."""

    def __init__(self, detail: str) -> None:
        super().__init__(5002, f"Payment gateway error: {detail}", 502)


class InvalidSignatureError(AppError):
    def __init__(self, detail: str = "Callback signature verification failed") -> None:
        super().__init__(5003, detail, 401)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
