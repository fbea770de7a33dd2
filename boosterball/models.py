"""
boosterball/models.py - Read-side projections of contract state.

Nothing here is persisted. Each value is built from a fresh contract read
(or, for PurchaseTransactionRequest, built fresh per request) and serialized
with to_dict() into the camelCase shape the front-end consumes.
"""

from dataclasses import dataclass, field
from typing import Any

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


# ============================================================================
# Tournament state
# ============================================================================


@dataclass
class Tournament:
    """One tournament as reported by the contract."""

    id: int
    start_time: int
    end_time: int
    time_remaining: int  # contract-reported, never recomputed locally

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "timeRemaining": self.time_remaining,
        }


@dataclass
class LeaderboardEntry:
    player: str  # checksummed
    score: int

    def to_dict(self) -> dict[str, Any]:
        return {"player": self.player, "score": self.score}


@dataclass
class TournamentLeaderboardView:
    """A tournament plus its leaderboard, live or historical."""

    tournament: Tournament
    leaderboard: list[LeaderboardEntry] = field(default_factory=list)
    is_current_tournament: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "tournament": self.tournament.to_dict(),
            "leaderboard": [entry.to_dict() for entry in self.leaderboard],
            "isCurrentTournament": self.is_current_tournament,
        }


# Tagged reference produced once by the resolver: which leaderboard to serve.


@dataclass(frozen=True)
class CurrentTournament:
    id: int


@dataclass(frozen=True)
class HistoricalTournament:
    id: int


TournamentRef = CurrentTournament | HistoricalTournament


# ============================================================================
# Players
# ============================================================================


@dataclass
class PlayerStats:
    score: int
    booster_balls: int
    is_active: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "boosterBalls": self.booster_balls,
            "isActive": self.is_active,
        }


@dataclass
class PlayerScore:
    """One row of the all-players listing."""

    address: str
    score: int

    def to_dict(self) -> dict[str, Any]:
        return {"address": self.address, "score": self.score}


# ============================================================================
# Transactions
# ============================================================================


@dataclass(frozen=True)
class PurchaseTransactionRequest:
    """Unsigned transaction the caller's own wallet signs and submits.

    value and gas_limit are decimal strings so no JSON consumer ever rounds
    them through a float.
    """

    to: str
    from_address: str
    data: str
    value: str
    chain_id: int
    gas_limit: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "to": self.to,
            "from": self.from_address,
            "data": self.data,
            "value": self.value,
            "chainId": self.chain_id,
            "gasLimit": self.gas_limit,
        }


@dataclass
class TransactionConfirmation:
    """A server-signed write that has been included in a block."""

    transaction_hash: str
    block_number: int
    status: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "transactionHash": self.transaction_hash,
            "blockNumber": self.block_number,
            "status": self.status,
        }
