"""
boosterball/tournament.py - Live vs historical tournament resolution.

The contract is the only authority on which tournament is current. A
tournament whose end time has passed is still current until a reset lands
on-chain; nothing here compares against the server clock.
"""

import logging
import re

from .contract import ContractGateway
from .errors import InvalidRequestError
from .models import (
    CurrentTournament,
    HistoricalTournament,
    Tournament,
    TournamentLeaderboardView,
    TournamentRef,
)

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"[0-9]+")


def parse_tournament_id(raw) -> int:
    """Validate a requested tournament id. Positive integers only.

    Accepts an int or a string of ASCII digits (path parameters arrive as
    strings). Raises InvalidRequestError for anything else, including 0.
    """
    if isinstance(raw, bool):
        raise InvalidRequestError(f"Tournament id must be a positive integer, got {raw!r}")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and _DIGITS.fullmatch(raw):
        value = int(raw)
    else:
        raise InvalidRequestError(f"Tournament id must be a positive integer, got {raw!r}")

    if value <= 0:
        raise InvalidRequestError(f"Tournament id must be a positive integer, got {raw!r}")
    return value


class TournamentResolver:
    """Serve a uniform leaderboard view for any tournament id."""

    def __init__(self, gateway: ContractGateway):
        self.gateway = gateway

    def current(self) -> Tournament:
        return self.gateway.read_current_tournament()

    def _resolve(self, requested) -> tuple[TournamentRef, Tournament]:
        tournament_id = parse_tournament_id(requested)
        current = self.gateway.read_current_tournament()
        if tournament_id == current.id:
            return CurrentTournament(current.id), current
        return HistoricalTournament(tournament_id), current

    def resolve_ref(self, requested) -> TournamentRef:
        """Decide once whether ``requested`` is the live tournament."""
        ref, _ = self._resolve(requested)
        return ref

    def resolve(self, requested) -> TournamentLeaderboardView:
        ref, current = self._resolve(requested)

        if isinstance(ref, CurrentTournament):
            return TournamentLeaderboardView(
                tournament=current,
                leaderboard=self.gateway.read_current_leaderboard(),
                is_current_tournament=True,
            )

        logger.debug(f"Tournament {ref.id} is historical (current is {current.id})")
        return self.gateway.read_historical_leaderboard(ref.id)
