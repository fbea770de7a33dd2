"""
Booster Ball - tournament leaderboard gateway for the CrossFi arcade contract

Reads tournament and player state from the contract, submits server-signed
score and reset transactions, and builds unsigned purchase transactions for
players' own wallets.
"""

__version__ = "0.1.0"

from .errors import (
    GatewayError,
    InvalidRequestError,
    InvalidAddressError,
    NotFoundError,
    ChainReadError,
    TransactionTimeoutError,
    NonceConflictError,
    ContractStateError,
    NumericRangeError,
    TransactionRevertedError,
    ConfigError,
)

from .models import (
    Tournament,
    LeaderboardEntry,
    PlayerStats,
    PlayerScore,
    PurchaseTransactionRequest,
    TournamentLeaderboardView,
    TransactionConfirmation,
    CurrentTournament,
    HistoricalTournament,
)

from .config import GatewayConfig, load_config
from .contract import ContractGateway, Web3Gateway
from .tournament import TournamentResolver, parse_tournament_id
from .purchase import build_purchase_transaction

__all__ = [
    # Version
    "__version__",
    # Errors
    "GatewayError",
    "InvalidRequestError",
    "InvalidAddressError",
    "NotFoundError",
    "ChainReadError",
    "TransactionTimeoutError",
    "NonceConflictError",
    "ContractStateError",
    "NumericRangeError",
    "TransactionRevertedError",
    "ConfigError",
    # Data types
    "Tournament",
    "LeaderboardEntry",
    "PlayerStats",
    "PlayerScore",
    "PurchaseTransactionRequest",
    "TournamentLeaderboardView",
    "TransactionConfirmation",
    "CurrentTournament",
    "HistoricalTournament",
    # Gateway
    "GatewayConfig",
    "load_config",
    "ContractGateway",
    "Web3Gateway",
    "TournamentResolver",
    "parse_tournament_id",
    "build_purchase_transaction",
]
