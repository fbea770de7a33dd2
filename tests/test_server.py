"""
tests/test_server.py - API endpoint tests.

Uses FastAPI's TestClient with the fake gateway injected. No chain node
and no server process needed.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.server import app, register_error_handlers
from boosterball.errors import (
    ChainReadError,
    NonceConflictError,
    TransactionRevertedError,
    TransactionTimeoutError,
)

from conftest import ALICE, BOB, CAROL, CHAIN_ID, CONTRACT, TX_HASH


@pytest.fixture
def client(gateway):
    """Test client backed by the fake gateway."""
    import api.server as srv

    # Bare app without lifespan so it doesn't build a live gateway
    test_app = FastAPI()
    for route in app.routes:
        test_app.routes.append(route)
    register_error_handlers(test_app)

    srv._gateway = gateway
    with TestClient(test_app) as c:
        yield c
    srv._gateway = None


# ======================================================================
# Tournament
# ======================================================================


class TestCurrentTournament:
    def test_envelope(self, client):
        resp = client.get("/api/tournament/current")
        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "data": {"id": 5, "startTime": 1_700_000_000, "endTime": 1_700_604_800, "timeRemaining": 3600},
        }

    def test_failure_envelope(self, client, gateway):
        gateway.failures["read_current_tournament"] = ChainReadError("node down")
        resp = client.get("/api/tournament/current")
        assert resp.status_code == 503
        assert resp.json() == {"success": False, "error": "node down"}


class TestLeaderboard:
    def test_live_leaderboard_is_a_list(self, client):
        resp = client.get("/api/leaderboard")
        assert resp.status_code == 200
        assert resp.json() == [
            {"player": ALICE, "score": 900},
            {"player": BOB, "score": 450},
        ]

    def test_error_shape(self, client, gateway):
        gateway.failures["read_current_leaderboard"] = ChainReadError("node down")
        resp = client.get("/api/leaderboard")
        assert resp.status_code == 503
        assert resp.json() == {"error": "node down"}


class TestTournamentLeaderboard:
    def test_past_tournament(self, client, gateway):
        resp = client.get("/api/leaderboard/3")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["isCurrentTournament"] is False
        assert body["data"]["tournament"]["id"] == 3
        assert body["data"]["leaderboard"] == [{"player": CAROL, "score": 1200}]

    def test_current_tournament(self, client, gateway):
        resp = client.get("/api/leaderboard/5")
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["isCurrentTournament"] is True
        assert body["data"]["tournament"]["id"] == 5
        assert body["data"]["leaderboard"] == client.get("/api/leaderboard").json()

    def test_unknown_tournament(self, client):
        resp = client.get("/api/leaderboard/99")
        assert resp.status_code == 404
        assert resp.json()["success"] is False

    @pytest.mark.parametrize("bad", ["0", "-1", "abc"])
    def test_invalid_id(self, client, gateway, bad):
        resp = client.get(f"/api/leaderboard/{bad}")
        assert resp.status_code == 400
        assert resp.json()["success"] is False
        assert gateway.calls == []


# ======================================================================
# Players
# ======================================================================


class TestPlayer:
    def test_stats(self, client):
        resp = client.get(f"/api/player/{ALICE}")
        assert resp.status_code == 200
        assert resp.json() == {"score": 900, "boosterBalls": 3, "isActive": True}

    def test_unknown_player_is_zeroed(self, client):
        resp = client.get(f"/api/player/{BOB}")
        assert resp.json() == {"score": 0, "boosterBalls": 0, "isActive": False}

    def test_invalid_address(self, client, gateway):
        resp = client.get("/api/player/0xnotanaddress")
        assert resp.status_code == 400
        assert "error" in resp.json()
        assert gateway.calls == []

    def test_bad_checksum_is_rejected(self, client, gateway):
        resp = client.get("/api/player/0x70997970c51812dc3A010C7d01b50e0d17dc79C8")
        assert resp.status_code == 400
        assert "checksum" in resp.json()["error"]
        assert gateway.calls == []

    def test_mpx(self, client):
        resp = client.get(f"/api/player/{ALICE}/mpx")
        assert resp.json() == {"mpxScore": 90}

    def test_mpx_large_value_stays_exact(self, client, gateway):
        gateway.mpx[ALICE] = str(2**64)
        resp = client.get(f"/api/player/{ALICE}/mpx")
        assert resp.json() == {"mpxScore": str(2**64)}

    def test_all_players(self, client):
        resp = client.get("/api/players")
        assert resp.json() == [
            {"address": ALICE, "score": 900},
            {"address": BOB, "score": 450},
        ]


# ======================================================================
# Server-signed writes
# ======================================================================


class TestScoreIncrement:
    def test_success(self, client, gateway):
        resp = client.post(
            "/api/score/increment",
            json={"points": 10, "boosterBallsUsed": 1, "userAddress": ALICE},
        )
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "transactionHash": TX_HASH}
        assert gateway.increments == [(10, 1, ALICE)]

    def test_revert_reason_in_error(self, client, gateway):
        gateway.failures["submit_score_increment"] = TransactionRevertedError("tournament ended")
        resp = client.post(
            "/api/score/increment",
            json={"points": 10, "boosterBallsUsed": 0, "userAddress": ALICE},
        )
        assert resp.status_code == 422
        assert "tournament ended" in resp.json()["error"]

    def test_timeout(self, client, gateway):
        gateway.failures["submit_score_increment"] = TransactionTimeoutError("not confirmed")
        resp = client.post(
            "/api/score/increment",
            json={"points": 10, "boosterBallsUsed": 0, "userAddress": ALICE},
        )
        assert resp.status_code == 504

    def test_nonce_conflict(self, client, gateway):
        gateway.failures["submit_score_increment"] = NonceConflictError("nonce 3 already used")
        resp = client.post(
            "/api/score/increment",
            json={"points": 10, "boosterBallsUsed": 0, "userAddress": ALICE},
        )
        assert resp.status_code == 409

    def test_missing_fields(self, client, gateway):
        resp = client.post("/api/score/increment", json={"points": 10})
        assert resp.status_code == 400
        assert "userAddress" in resp.json()["error"]
        assert gateway.increments == []

    def test_negative_points(self, client, gateway):
        resp = client.post(
            "/api/score/increment",
            json={"points": -5, "boosterBallsUsed": 0, "userAddress": ALICE},
        )
        assert resp.status_code == 400
        assert gateway.increments == []


class TestTournamentReset:
    def test_success(self, client, gateway):
        resp = client.post("/api/tournament/reset")
        assert resp.json() == {"success": True, "transactionHash": TX_HASH}
        assert gateway.resets == 1

    def test_contract_rejection(self, client, gateway):
        gateway.failures["submit_tournament_reset"] = TransactionRevertedError("Tournament still active")
        resp = client.post("/api/tournament/reset")
        assert resp.status_code == 422
        assert resp.json() == {"error": "Transaction reverted: Tournament still active"}


# ======================================================================
# Purchases
# ======================================================================


class TestPurchaseData:
    def test_unsigned_transaction(self, client):
        resp = client.post("/api/boosterball/purchase-data", json={"userAddress": ALICE})
        assert resp.status_code == 200
        tx = resp.json()["transaction"]
        assert tx["to"] == CONTRACT
        assert tx["from"] == ALICE
        assert tx["value"] == "10000000000000000000"
        assert tx["chainId"] == CHAIN_ID
        assert tx["gasLimit"] == "300000"

    def test_missing_address(self, client):
        resp = client.post("/api/boosterball/purchase-data", json={})
        assert resp.status_code == 400
        assert resp.json() == {"error": "userAddress is required"}

    def test_no_body(self, client):
        resp = client.post("/api/boosterball/purchase-data")
        assert resp.status_code == 400

    def test_bad_address(self, client):
        resp = client.post("/api/boosterball/purchase-data", json={"userAddress": "0x1"})
        assert resp.status_code == 400


# ======================================================================
# Health
# ======================================================================


class TestHealth:
    def test_ok(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["chainId"] == CHAIN_ID
        assert data["blockNumber"] == 123

    def test_degraded(self, client, gateway):
        gateway.failures["health"] = ChainReadError("node down")
        resp = client.get("/health")
        assert resp.status_code == 503
        assert resp.json()["status"] == "degraded"
