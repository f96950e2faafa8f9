"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth / authorization
  2xxx: Account / custody
  3xxx: Market
  5xxx: Position / settlement
  9xxx: System

Every error is an expected outcome returned to the caller; none is retried
by the engine, and each aborts the transaction that raised it.
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

class UnauthorizedError(AppError):
    def __init__(self, action: str) -> None:
        super().__init__(1001, f"Caller is not authorized to {action}", 403)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Invalid or expired token", 401)


# --- 2xxx: Account ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required}, available {available}",
            422,
        )


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: int) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)


class MarketClosedError(AppError):
    def __init__(
        self, market_id: int, phase: str, code: int = 3002, detail: str | None = None
    ) -> None:
        self.phase = phase
        super().__init__(code, detail or f"Market {market_id} is {phase}", 422)


class MarketStillOpenError(MarketClosedError):
    """Resolution attempted before the market's end block."""

    def __init__(self, market_id: int, current_block: int, end_block: int) -> None:
        super().__init__(
            market_id,
            "OPEN",
            code=3003,
            detail=(
                f"Market {market_id} is still open: "
                f"block {current_block} < end block {end_block}"
            ),
        )


class AlreadyResolvedError(AppError):
    def __init__(self, market_id: int) -> None:
        super().__init__(3004, f"Market already resolved: {market_id}", 409)


class InvalidParameterError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3005, f"Invalid parameter: {detail}", 422)


# --- 5xxx: Position ---

class PositionNotFoundError(AppError):
    def __init__(self, market_id: int, user_id: str) -> None:
        super().__init__(5001, f"No position for {user_id} in market {market_id}", 404)


class InvalidSideError(AppError):
    def __init__(self, side: str) -> None:
        super().__init__(5002, f"Invalid side: {side}", 422)


class InvalidStakeError(AppError):
    def __init__(self, amount: int, minimum: int, maximum: int | None = None) -> None:
        if maximum is not None and amount > maximum:
            message = f"Stake {amount} exceeds the maximum of {maximum}"
        else:
            message = f"Stake {amount} is below the minimum of {minimum}"
        super().__init__(5003, message, 422)


class DuplicatePositionError(AppError):
    def __init__(self, market_id: int, user_id: str) -> None:
        super().__init__(
            5004, f"{user_id} already holds a position in market {market_id}", 409
        )


class AlreadyClaimedError(AppError):
    def __init__(self, market_id: int, user_id: str) -> None:
        super().__init__(5005, f"Position already claimed: {user_id} in market {market_id}", 409)


class NotAWinnerError(AppError):
    def __init__(self, market_id: int, winning_side: str) -> None:
        super().__init__(
            5006, f"Position is not on the winning side ({winning_side}) of market {market_id}", 422
        )


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self, retry_after: int = 60) -> None:
        self.retry_after = retry_after
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
