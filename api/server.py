"""
api/server.py - FastAPI front for the tournament contract.

Endpoints (all under /api):
    GET    /tournament/current            Current tournament
    GET    /leaderboard                   Live top-N leaderboard
    GET    /leaderboard/{tournament_id}   Live or historical leaderboard view
    GET    /player/{address}              Player stats
    GET    /player/{address}/mpx          Player score converted to MPX
    GET    /players                       All players and scores
    POST   /score/increment               Server-signed score increment
    POST   /tournament/reset              Server-signed tournament reset
    POST   /boosterball/purchase-data     Unsigned purchase tx for the player's wallet

Plus:
    GET    /health                        Node reachability and chain id

Nothing is stored here. Every request is answered from a fresh contract read.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.middleware.cors import CORSMiddleware

from boosterball.config import load_config
from boosterball.contract import ContractGateway, Web3Gateway
from boosterball.errors import GatewayError
from boosterball.purchase import build_purchase_transaction
from boosterball.tournament import TournamentResolver

logger = logging.getLogger(__name__)

# =============================================================================
# Gateway
# =============================================================================
# One gateway per process, built in the lifespan from validated config and
# shared by every request. It holds the server's signing key; concurrent
# writes are not serialized here (the node's nonce check is the arbiter).

_gateway: ContractGateway | None = None


def get_gateway() -> ContractGateway:
    assert _gateway is not None, "Gateway not initialized"
    return _gateway


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _gateway
    config = getattr(app.state, "config", None) or load_config()
    # ConfigError here aborts startup: no contract address, no server
    _gateway = Web3Gateway.from_config(config)
    _log_startup_config(_gateway)

    yield
    _gateway = None


def _log_startup_config(gateway: ContractGateway):
    """Log gateway configuration on startup so operators can verify env vars."""
    logger.info("=" * 50)
    logger.info("Gateway startup config:")
    logger.info(f"  Chain: {gateway.chain_id}")
    logger.info(f"  Contract: {gateway.contract_address}")

    account = getattr(gateway, "account", None)
    if account is not None:
        logger.info(f"  Server wallet: {account.address}")

    try:
        status = gateway.health()
        logger.info(f"  Node: chain {status['chainId']}, block {status['blockNumber']}")
        if status["chainId"] != gateway.chain_id:
            logger.error(
                f"  CHAIN_ID is {gateway.chain_id} but the node is on chain {status['chainId']}! "
                "Purchase transactions will target the wrong network."
            )
    except GatewayError as e:
        logger.warning(f"  Node: NOT reachable ({e})")

    logger.info("=" * 50)


def _allowed_origins() -> list[str]:
    raw = os.environ.get("ALLOWED_ORIGINS", "")
    return [o.strip() for o in raw.split(",") if o.strip()] or ["*"]


app = FastAPI(title="Booster Ball Tournament Gateway", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(),
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    allow_credentials=True,
)


# ======================================================================
# Error envelopes
# ======================================================================


async def _gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        where = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        problems.append(f"{where}: {err.get('msg')}" if where else str(err.get("msg")))
    return JSONResponse(status_code=400, content={"error": "; ".join(problems) or "Invalid request"})


def register_error_handlers(target: FastAPI) -> None:
    """Turn gateway and validation failures into JSON error envelopes."""
    target.add_exception_handler(GatewayError, _gateway_error_handler)
    target.add_exception_handler(RequestValidationError, _validation_error_handler)


register_error_handlers(app)


def _envelope_failure(exc: GatewayError) -> JSONResponse:
    """Failure shape for the routes that answer {success, data}."""
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


# ======================================================================
# Request/Response Models
# ======================================================================


class ScoreIncrementRequest(BaseModel):
    points: int
    boosterBallsUsed: int = 0
    userAddress: str


class PurchaseDataRequest(BaseModel):
    userAddress: str | None = None


class TransactionResponse(BaseModel):
    success: bool
    transactionHash: str


class MpxResponse(BaseModel):
    mpxScore: int | str  # decimal string when above the JSON-safe range


# ======================================================================
# Endpoints
# ======================================================================

router = APIRouter(prefix="/api")


@router.get("/tournament/current")
def get_current_tournament() -> Any:
    """Current tournament as the contract reports it."""
    try:
        tournament = TournamentResolver(get_gateway()).current()
    except GatewayError as e:
        return _envelope_failure(e)
    return {"success": True, "data": tournament.to_dict()}


@router.get("/leaderboard")
def get_leaderboard() -> list[dict[str, Any]]:
    """Live leaderboard, empty slots removed, contract order preserved."""
    return [entry.to_dict() for entry in get_gateway().read_current_leaderboard()]


@router.get("/leaderboard/{tournament_id}")
def get_tournament_leaderboard(tournament_id: str) -> Any:
    """Leaderboard for any tournament; live data when it is the current one."""
    try:
        view = TournamentResolver(get_gateway()).resolve(tournament_id)
    except GatewayError as e:
        return _envelope_failure(e)
    return {"success": True, "data": view.to_dict()}


@router.get("/player/{address}")
def get_player_stats(address: str) -> dict[str, Any]:
    return get_gateway().read_player_stats(address).to_dict()


@router.get("/player/{address}/mpx", response_model=MpxResponse)
def get_mpx_score(address: str) -> dict[str, Any]:
    return {"mpxScore": get_gateway().read_mpx_conversion(address)}


@router.get("/players")
def get_all_players() -> list[dict[str, Any]]:
    return [player.to_dict() for player in get_gateway().read_all_players()]


@router.post("/score/increment", response_model=TransactionResponse)
def increment_score(req: ScoreIncrementRequest) -> dict[str, Any]:
    """Add points for a player. Blocks until the transaction is confirmed."""
    # Not deduplicated: a client retry after a timeout can count twice.
    confirmation = get_gateway().submit_score_increment(
        req.points, req.boosterBallsUsed, req.userAddress
    )
    logger.info(f"Score +{req.points} for {req.userAddress}: tx={confirmation.transaction_hash}")
    return {"success": True, "transactionHash": confirmation.transaction_hash}


@router.post("/tournament/reset", response_model=TransactionResponse)
def reset_tournament() -> dict[str, Any]:
    """End the current tournament and start the next one."""
    confirmation = get_gateway().submit_tournament_reset()
    logger.info(f"Tournament reset: tx={confirmation.transaction_hash}")
    return {"success": True, "transactionHash": confirmation.transaction_hash}


@router.post("/boosterball/purchase-data")
def purchase_data(req: PurchaseDataRequest | None = None) -> dict[str, Any]:
    """Unsigned purchase transaction for the player's own wallet to sign."""
    user_address = req.userAddress if req is not None else None
    tx = build_purchase_transaction(get_gateway(), user_address)
    return {"transaction": tx.to_dict()}


app.include_router(router)


@app.get("/health")
def health() -> Any:
    """Node reachability, chain id and latest block."""
    try:
        status = get_gateway().health()
    except GatewayError as e:
        return JSONResponse(status_code=503, content={"status": "degraded", "error": e.message})
    return {"status": "ok", **status}
