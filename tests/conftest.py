"""Shared fixtures: a deterministic in-memory stand-in for the contract gateway."""

import pytest

from boosterball.contract import ContractGateway
from boosterball.errors import InvalidRequestError, NotFoundError
from boosterball.models import (
    LeaderboardEntry,
    PlayerScore,
    PlayerStats,
    Tournament,
    TournamentLeaderboardView,
    TransactionConfirmation,
)
from boosterball.wallet import validate_address

# Hardhat's well-known dev accounts (valid EIP-55 checksums)
ALICE = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
BOB = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"
CAROL = "0x90F79bf6EB2c4f870365E785982E1f101E93b906"
CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
CHAIN_ID = 4157

TX_HASH = "0x" + "ab" * 32


class FakeGateway(ContractGateway):
    """Deterministic gateway double. Records every call in ``calls``.

    Set ``failures[method_name] = exception`` to make a method raise.
    """

    def __init__(self, current_id: int = 5):
        self.calls: list[str] = []
        self.failures: dict[str, Exception] = {}
        self.current = Tournament(id=current_id, start_time=1_700_000_000, end_time=1_700_604_800, time_remaining=3600)
        self.leaderboard = [
            LeaderboardEntry(player=ALICE, score=900),
            LeaderboardEntry(player=BOB, score=450),
        ]
        self.history = {
            3: TournamentLeaderboardView(
                tournament=Tournament(id=3, start_time=1_698_000_000, end_time=1_698_604_800, time_remaining=0),
                leaderboard=[LeaderboardEntry(player=CAROL, score=1200)],
                is_current_tournament=False,
            ),
        }
        self.stats = {ALICE: PlayerStats(score=900, booster_balls=3, is_active=True)}
        self.mpx = {ALICE: 90}
        self.increments: list[tuple[int, int, str]] = []
        self.resets = 0

    def _record(self, name: str):
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    @property
    def contract_address(self) -> str:
        return CONTRACT

    @property
    def chain_id(self) -> int:
        return CHAIN_ID

    def read_current_tournament(self) -> Tournament:
        self._record("read_current_tournament")
        return self.current

    def read_current_leaderboard(self) -> list[LeaderboardEntry]:
        self._record("read_current_leaderboard")
        return list(self.leaderboard)

    def read_historical_leaderboard(self, tournament_id: int) -> TournamentLeaderboardView:
        self._record("read_historical_leaderboard")
        if tournament_id not in self.history:
            raise NotFoundError(f"Tournament {tournament_id} not found")
        return self.history[tournament_id]

    def read_player_stats(self, address: str) -> PlayerStats:
        player = validate_address(address)
        self._record("read_player_stats")
        return self.stats.get(player, PlayerStats(score=0, booster_balls=0, is_active=False))

    def read_all_players(self) -> list[PlayerScore]:
        self._record("read_all_players")
        return [PlayerScore(address=e.player, score=e.score) for e in self.leaderboard]

    def read_mpx_conversion(self, address: str) -> int | str:
        player = validate_address(address)
        self._record("read_mpx_conversion")
        return self.mpx.get(player, 0)

    def submit_score_increment(self, points, booster_balls_used, player_address) -> TransactionConfirmation:
        if points < 0 or booster_balls_used < 0:
            raise InvalidRequestError("amounts must be non-negative")
        player = validate_address(player_address)
        self._record("submit_score_increment")
        self.increments.append((points, booster_balls_used, player))
        return TransactionConfirmation(transaction_hash=TX_HASH, block_number=100)

    def submit_tournament_reset(self) -> TransactionConfirmation:
        self._record("submit_tournament_reset")
        self.resets += 1
        return TransactionConfirmation(transaction_hash=TX_HASH, block_number=101)

    def encode_purchase_call(self) -> str:
        self._record("encode_purchase_call")
        return "0x1234abcd"

    def health(self):
        self._record("health")
        return {"chainId": CHAIN_ID, "configuredChainId": CHAIN_ID, "blockNumber": 123, "contract": CONTRACT}


@pytest.fixture
def gateway():
    """Fresh fake gateway for each test (current tournament id 5)."""
    return FakeGateway()
