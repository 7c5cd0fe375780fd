"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class MarketStatus(str, Enum):
    UPCOMING = "UPCOMING"
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class ResultStatus(str, Enum):
    PENDING = "PENDING"
    DECLARED = "DECLARED"


class TargetType(str, Enum):
    """What a bet is placed on."""
    MARKET = "MARKET"
    OPTION_GAME = "OPTION_GAME"


class GameType(str, Enum):
    JODI = "JODI"
    HURF = "HURF"
    CROSS = "CROSS"
    ODD_EVEN = "ODD_EVEN"
    # Option-game bets carry this game type; never configured on a market
    OPTION = "OPTION"


MARKET_GAME_TYPES: tuple[GameType, ...] = (
    GameType.JODI,
    GameType.HURF,
    GameType.CROSS,
    GameType.ODD_EVEN,
)


class TransactionKind(str, Enum):
    # External money, goes through the approval workflow
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    # Internal money, applied at creation
    BET_DEBIT = "BET_DEBIT"
    WINNING_CREDIT = "WINNING_CREDIT"
    ADJUSTMENT = "ADJUSTMENT"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ApprovalOutcome(str, Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class BetStatus(str, Enum):
    PENDING = "PENDING"
    WON = "WON"
    LOST = "LOST"


class UserRole(str, Enum):
    ADMIN = "admin"
    SUBADMIN = "subadmin"
    PLAYER = "player"


class Team(str, Enum):
    A = "A"
    B = "B"
