"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth / principal
  2xxx: Account / ledger / wallet
  3xxx: Market / option game
  4xxx: Bet
  5xxx: Settlement
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

class UnauthorizedError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Invalid or expired token", 401)


class ForbiddenError(AppError):
    def __init__(self, detail: str = "Access denied") -> None:
        super().__init__(1002, detail, 403)


# --- 2xxx: Account / ledger ---

class InsufficientFundsError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient funds: required {required} cents, available {available} cents",
            422,
        )


class AccountNotFoundError(AppError):
    def __init__(self, account_id: str) -> None:
        super().__init__(2002, f"Account not found: {account_id}", 404)


class InvalidAmountError(AppError):
    def __init__(self, amount: int) -> None:
        super().__init__(2003, f"Amount must be a positive number of cents, got {amount}", 422)


class TransactionNotFoundError(AppError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(2004, f"Transaction not found: {transaction_id}", 404)


class AlreadySettledError(AppError):
    def __init__(self, transaction_id: str, status: str) -> None:
        super().__init__(
            2005, f"Transaction {transaction_id} already settled (status={status})", 409
        )


class SelfApprovalForbiddenError(AppError):
    def __init__(self) -> None:
        super().__init__(2006, "Cannot approve or reject a transaction on your own account", 403)


class InvalidTransactionKindError(AppError):
    def __init__(self, kind: str, detail: str) -> None:
        super().__init__(2007, f"Invalid transaction kind {kind}: {detail}", 422)


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)


class MarketClosedError(AppError):
    def __init__(self, target_id: str) -> None:
        super().__init__(3002, f"Not open for betting: {target_id}", 422)


class InvalidMarketConfigError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3003, f"Invalid market configuration: {detail}", 422)


class OptionGameNotFoundError(AppError):
    def __init__(self, option_game_id: str) -> None:
        super().__init__(3004, f"Option game not found: {option_game_id}", 404)


# --- 4xxx: Bet ---

class InvalidSelectionError(AppError):
    def __init__(self, game_type: str, selection: str) -> None:
        super().__init__(4001, f"Invalid {game_type} selection: {selection!r}", 422)


class GameTypeUnavailableError(InvalidSelectionError):
    """Subclass so callers catching InvalidSelectionError see this too."""

    def __init__(self, game_type: str, market_id: str) -> None:
        AppError.__init__(
            self, 4002, f"Game type {game_type} is not offered on market {market_id}", 422
        )


class BetNotFoundError(AppError):
    def __init__(self, bet_id: str) -> None:
        super().__init__(4003, f"Bet not found: {bet_id}", 404)


# --- 5xxx: Settlement ---

class InvalidResultError(AppError):
    def __init__(self, result_value: str, detail: str = "") -> None:
        suffix = f" ({detail})" if detail else ""
        super().__init__(5001, f"Invalid result value: {result_value!r}{suffix}", 422)


class AlreadyDeclaredError(AppError):
    def __init__(self, target_id: str) -> None:
        super().__init__(5002, f"Result already declared for {target_id}", 409)


class NotClosedError(AppError):
    def __init__(self, target_id: str) -> None:
        super().__init__(5003, f"{target_id} must be closed before declaring a result", 422)


class ResultNotDeclaredError(AppError):
    def __init__(self, target_id: str) -> None:
        super().__init__(5004, f"No result declared yet for {target_id}", 422)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class LockContentionError(AppError):
    def __init__(self, key: str) -> None:
        super().__init__(9003, f"Resource busy, retry later: {key}", 503)
