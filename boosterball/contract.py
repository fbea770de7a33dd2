"""
boosterball/contract.py - Tournament contract interaction via web3.py.

ContractGateway is the interface the rest of the package talks to.
Web3Gateway is the live implementation: one HTTP provider, one contract
handle and the server's single signing account, built once at startup and
passed to whoever needs it.

Reads are fresh round trips every time (no caching) and are retried once on
transport failure. Writes are signed by the server account, wait for one
confirmation with a bounded timeout, and are never retried. Nonces come
from the node's pending count; no lock is taken here, so concurrent writes
either land with increasing nonces or one is rejected with
NonceConflictError.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from web3 import Web3
from web3.exceptions import (
    BadFunctionCallOutput,
    ContractLogicError,
    ProviderConnectionError,
    TimeExhausted,
    Web3Exception,
    Web3RPCError,
)

from .config import DEFAULT_RECEIPT_TIMEOUT, GatewayConfig
from .errors import (
    ChainReadError,
    ConfigError,
    ContractStateError,
    InvalidRequestError,
    NonceConflictError,
    NotFoundError,
    TransactionRevertedError,
    TransactionTimeoutError,
)
from .models import (
    ZERO_ADDRESS,
    LeaderboardEntry,
    PlayerScore,
    PlayerStats,
    Tournament,
    TournamentLeaderboardView,
    TransactionConfirmation,
)
from .numeric import to_json_number, to_safe_int
from .wallet import load_server_account, validate_address

logger = logging.getLogger(__name__)

# Tournament contract ABI, the subset this gateway calls.
LEADERBOARD_ABI = [
    {
        "type": "function",
        "name": "getCurrentTournamentInfo",
        "inputs": [],
        "outputs": [
            {"name": "tournamentId", "type": "uint256"},
            {"name": "startTime", "type": "uint256"},
            {"name": "endTime", "type": "uint256"},
            {"name": "timeRemaining", "type": "uint256"},
        ],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "getCurrentLeaderboard",
        "inputs": [],
        "outputs": [
            {"name": "players", "type": "address[10]"},
            {"name": "scores", "type": "uint256[10]"},
        ],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "getTournamentLeaderboard",
        "inputs": [{"name": "tournamentId", "type": "uint256"}],
        "outputs": [
            {"name": "startTime", "type": "uint256"},
            {"name": "endTime", "type": "uint256"},
            {"name": "players", "type": "address[10]"},
            {"name": "scores", "type": "uint256[10]"},
        ],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "getPlayerStats",
        "inputs": [{"name": "player", "type": "address"}],
        "outputs": [
            {"name": "score", "type": "uint256"},
            {"name": "boosterBalls", "type": "uint256"},
            {"name": "isActive", "type": "bool"},
        ],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "getAllPlayers",
        "inputs": [],
        "outputs": [
            {"name": "players", "type": "address[]"},
            {"name": "scores", "type": "uint256[]"},
        ],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "convertScoresToMPX",
        "inputs": [{"name": "player", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "incrementScore",
        "inputs": [
            {"name": "player", "type": "address"},
            {"name": "points", "type": "uint256"},
            {"name": "boosterBallsUsed", "type": "uint256"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "resetTournament",
        "inputs": [],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "purchaseBoosterBalls",
        "inputs": [],
        "outputs": [],
        "stateMutability": "payable",
    },
]

PURCHASE_FUNCTION = "purchaseBoosterBalls"

GAS_ESTIMATE_MULTIPLIER = 1.2
READ_ATTEMPTS = 2  # first try + one retry

UINT256_MAX = 2**256 - 1

# Solidity Error(string) selector
ERROR_STRING_SELECTOR = "0x08c379a0"

# Node messages meaning "this nonce is taken", across geth-style clients
NONCE_CONFLICT_MARKERS = (
    "nonce too low",
    "already known",
    "replacement transaction underpriced",
    "nonce has already been used",
    "invalid nonce",
)

# Failures worth one retry on reads: the node was unreachable or errored
TRANSIENT_ERRORS = (ProviderConnectionError, Web3RPCError, OSError)


# ============================================================================
# Error decoding
# ============================================================================


def revert_reason(exc: Exception) -> str | None:
    """Best-effort revert string from a ContractLogicError.

    Prefers decoding Error(string) revert data; falls back to the message
    with web3's "execution reverted: " prefix removed.
    """
    data = getattr(exc, "data", None)
    if isinstance(data, str) and data.startswith(ERROR_STRING_SELECTOR):
        try:
            (reason,) = abi_decode(["string"], bytes.fromhex(data[len(ERROR_STRING_SELECTOR):]))
            return reason
        except (ValueError, DecodingError):
            pass

    message = getattr(exc, "message", None)
    if not isinstance(message, str):
        message = str(exc.args[0]) if exc.args else ""
    if message.startswith("execution reverted"):
        message = message[len("execution reverted"):].lstrip(": ")
    return message.strip() or None


def _rpc_message(exc: Exception) -> str:
    """Pull the node's message out of an RPC error (web3 v7 or dict-style)."""
    message = getattr(exc, "message", None)
    if isinstance(message, str):
        return message
    if exc.args and isinstance(exc.args[0], dict):
        return str(exc.args[0].get("message", exc.args[0]))
    return str(exc)


def _is_nonce_conflict(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in NONCE_CONFLICT_MARKERS)


def _require_uint(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRequestError(f"{name} must be an integer, got {value!r}")
    if value < 0 or value > UINT256_MAX:
        raise InvalidRequestError(f"{name} must be a non-negative uint256, got {value}")
    return value


# ============================================================================
# Interface
# ============================================================================


class ContractGateway(ABC):
    """Typed access to the tournament contract.

    Implementations hold no state beyond their connection. Writes are
    signed by a single server key; implementations do not serialize them.
    """

    @property
    @abstractmethod
    def contract_address(self) -> str:
        """Checksummed address of the deployed contract."""

    @property
    @abstractmethod
    def chain_id(self) -> int:
        """Chain id every transaction is built for."""

    @abstractmethod
    def read_current_tournament(self) -> Tournament: ...

    @abstractmethod
    def read_current_leaderboard(self) -> list[LeaderboardEntry]: ...

    @abstractmethod
    def read_historical_leaderboard(self, tournament_id: int) -> TournamentLeaderboardView: ...

    @abstractmethod
    def read_player_stats(self, address: str) -> PlayerStats: ...

    @abstractmethod
    def read_all_players(self) -> list[PlayerScore]: ...

    @abstractmethod
    def read_mpx_conversion(self, address: str) -> int | str: ...

    @abstractmethod
    def submit_score_increment(
        self, points: int, booster_balls_used: int, player_address: str
    ) -> TransactionConfirmation: ...

    @abstractmethod
    def submit_tournament_reset(self) -> TransactionConfirmation: ...

    @abstractmethod
    def encode_purchase_call(self) -> str:
        """ABI-encoded calldata for the zero-argument purchase function."""

    @abstractmethod
    def health(self) -> dict[str, Any]: ...


# ============================================================================
# web3.py implementation
# ============================================================================


def build_contract(w3: Web3, contract_address: str):
    """Bind the tournament ABI to a deployed address."""
    try:
        address = Web3.to_checksum_address(contract_address)
    except (ValueError, TypeError):
        raise ConfigError(f"CONTRACT_ADDRESS is not a valid address: {contract_address!r}") from None
    return w3.eth.contract(address=address, abi=LEADERBOARD_ABI)


class Web3Gateway(ContractGateway):
    """Live gateway over a JSON-RPC chain node."""

    def __init__(
        self,
        w3: Web3,
        contract,
        account,
        chain_id: int,
        receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT,
    ):
        self.w3 = w3
        self.contract = contract
        self.account = account
        self._chain_id = chain_id
        self.receipt_timeout = receipt_timeout

    @classmethod
    def from_config(cls, config: GatewayConfig) -> "Web3Gateway":
        """Validate config and open the provider. Makes no network calls."""
        config.validate()
        w3 = Web3(Web3.HTTPProvider(config.rpc_url, request_kwargs={"timeout": config.rpc_timeout}))
        contract = build_contract(w3, config.contract_address)
        account = load_server_account(config.private_key)
        return cls(
            w3,
            contract,
            account,
            chain_id=config.chain_id,
            receipt_timeout=config.receipt_timeout,
        )

    @property
    def contract_address(self) -> str:
        return self.contract.address

    @property
    def chain_id(self) -> int:
        return self._chain_id

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _read(self, label: str, call: Callable[[], Any], revert_error=ContractStateError):
        """Run a view call, retrying once if the node could not be reached."""
        for attempt in range(1, READ_ATTEMPTS + 1):
            try:
                return call()
            except ContractLogicError as e:
                raise revert_error(f"{label} reverted: {revert_reason(e) or 'no reason'}") from e
            except BadFunctionCallOutput as e:
                logger.error(f"{label} returned no data; is the contract deployed at {self.contract_address}?")
                raise ContractStateError(f"{label} returned no data: {e}") from e
            except TRANSIENT_ERRORS as e:
                if attempt == READ_ATTEMPTS:
                    raise ChainReadError(f"{label} failed: {_rpc_message(e)}") from e
                logger.warning(f"{label} failed ({_rpc_message(e)}), retrying once")
            except Web3Exception as e:
                raise ChainReadError(f"{label} failed: {e}") from e

    def _parse_leaderboard(self, label: str, players, scores) -> list[LeaderboardEntry]:
        if len(players) != len(scores):
            logger.error(f"{label}: {len(players)} players but {len(scores)} scores")
            raise ContractStateError(f"{label} returned mismatched players/scores")

        entries = []
        for player, score in zip(players, scores):
            # Empty top-N slots come back as the zero address
            if int(player, 16) == 0:
                continue
            entries.append(
                LeaderboardEntry(
                    player=Web3.to_checksum_address(player),
                    score=to_safe_int(score, "score"),
                )
            )
        return entries

    def _tournament(self, label: str, tournament_id, start, end, remaining) -> Tournament:
        tournament = Tournament(
            id=to_safe_int(tournament_id, "tournamentId"),
            start_time=to_safe_int(start, "startTime"),
            end_time=to_safe_int(end, "endTime"),
            time_remaining=to_safe_int(remaining, "timeRemaining"),
        )
        if tournament.start_time >= tournament.end_time:
            logger.error(f"{label}: startTime {start} >= endTime {end}")
            raise ContractStateError(
                f"{label}: tournament {tournament.id} has startTime >= endTime"
            )
        return tournament

    def read_current_tournament(self) -> Tournament:
        label = "getCurrentTournamentInfo"
        raw = self._read(label, self.contract.functions.getCurrentTournamentInfo().call)
        if len(raw) != 4:
            raise ContractStateError(f"{label} returned {len(raw)} fields, expected 4")
        return self._tournament(label, *raw)

    def read_current_leaderboard(self) -> list[LeaderboardEntry]:
        label = "getCurrentLeaderboard"
        players, scores = self._read(label, self.contract.functions.getCurrentLeaderboard().call)
        return self._parse_leaderboard(label, players, scores)

    def read_historical_leaderboard(self, tournament_id: int) -> TournamentLeaderboardView:
        label = f"getTournamentLeaderboard({tournament_id})"
        tournament_id = _require_uint("tournamentId", tournament_id)
        raw = self._read(
            label,
            self.contract.functions.getTournamentLeaderboard(tournament_id).call,
            revert_error=NotFoundError,
        )
        if len(raw) != 4:
            raise ContractStateError(f"{label} returned {len(raw)} fields, expected 4")

        start, end, players, scores = raw
        # Unwritten mapping slot: the tournament never existed
        if start == 0 and end == 0:
            raise NotFoundError(f"Tournament {tournament_id} not found")

        # A finished tournament has nothing remaining; the contract does not report it
        tournament = self._tournament(label, tournament_id, start, end, 0)
        return TournamentLeaderboardView(
            tournament=tournament,
            leaderboard=self._parse_leaderboard(label, players, scores),
            is_current_tournament=False,
        )

    def read_player_stats(self, address: str) -> PlayerStats:
        player = validate_address(address)
        label = f"getPlayerStats({player})"
        raw = self._read(label, self.contract.functions.getPlayerStats(player).call)
        if len(raw) != 3:
            raise ContractStateError(f"{label} returned {len(raw)} fields, expected 3")

        score, booster_balls, is_active = raw
        if not isinstance(is_active, bool):
            raise ContractStateError(f"{label}: isActive is not a bool: {is_active!r}")
        return PlayerStats(
            score=to_safe_int(score, "score"),
            booster_balls=to_safe_int(booster_balls, "boosterBalls"),
            is_active=is_active,
        )

    def read_all_players(self) -> list[PlayerScore]:
        label = "getAllPlayers"
        addresses, scores = self._read(label, self.contract.functions.getAllPlayers().call)
        return [
            PlayerScore(address=entry.player, score=entry.score)
            for entry in self._parse_leaderboard(label, addresses, scores)
        ]

    def read_mpx_conversion(self, address: str) -> int | str:
        player = validate_address(address)
        label = f"convertScoresToMPX({player})"
        raw = self._read(label, self.contract.functions.convertScoresToMPX(player).call)
        return to_json_number(raw, "mpxScore")

    def encode_purchase_call(self) -> str:
        # Encoded from the same ABI the deployed contract was built from
        return self.contract.encode_abi(PURCHASE_FUNCTION, args=[])

    def health(self) -> dict[str, Any]:
        node_chain_id = self._read("eth_chainId", lambda: self.w3.eth.chain_id)
        block_number = self._read("eth_blockNumber", lambda: self.w3.eth.block_number)
        if node_chain_id != self.chain_id:
            logger.warning(f"Node reports chain {node_chain_id}, configured for {self.chain_id}")
        return {
            "chainId": node_chain_id,
            "configuredChainId": self.chain_id,
            "blockNumber": block_number,
            "contract": self.contract_address,
        }

    # ------------------------------------------------------------------
    # Server-signed writes
    # ------------------------------------------------------------------

    def submit_score_increment(
        self, points: int, booster_balls_used: int, player_address: str
    ) -> TransactionConfirmation:
        points = _require_uint("points", points)
        booster_balls_used = _require_uint("boosterBallsUsed", booster_balls_used)
        player = validate_address(player_address)
        fn = self.contract.functions.incrementScore(player, points, booster_balls_used)
        return self._transact(f"incrementScore({player}, {points}, {booster_balls_used})", fn)

    def submit_tournament_reset(self) -> TransactionConfirmation:
        return self._transact("resetTournament", self.contract.functions.resetTournament())

    def _transact(self, label: str, fn) -> TransactionConfirmation:
        """Estimate, sign, send and wait for one confirmation.

        A revert during estimation is reported before anything is sent.
        Nothing here retries: a revert is final and a timeout is reported
        with the hash so the caller can check it later.
        """
        sender = self.account.address

        try:
            gas_estimate = fn.estimate_gas({"from": sender})
            tx = fn.build_transaction(
                {
                    "from": sender,
                    "nonce": self.w3.eth.get_transaction_count(sender, "pending"),
                    "gas": int(gas_estimate * GAS_ESTIMATE_MULTIPLIER),
                    "gasPrice": self.w3.eth.gas_price,
                    "chainId": self.chain_id,
                }
            )
        except ContractLogicError as e:
            reason = revert_reason(e)
            logger.warning(f"{label} rejected by contract: {reason}")
            raise TransactionRevertedError(reason) from e
        except TRANSIENT_ERRORS + (ValueError,) as e:
            raise ChainReadError(f"{label}: could not prepare transaction: {_rpc_message(e)}") from e
        except Web3Exception as e:
            raise ChainReadError(f"{label}: could not prepare transaction: {e}") from e

        signed = self.account.sign_transaction(tx)

        try:
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except ContractLogicError as e:
            reason = revert_reason(e)
            logger.warning(f"{label} rejected by contract: {reason}")
            raise TransactionRevertedError(reason) from e
        except (Web3RPCError, ValueError) as e:
            message = _rpc_message(e)
            if _is_nonce_conflict(message):
                logger.warning(f"{label} nonce {tx['nonce']} conflict: {message}")
                raise NonceConflictError(f"{label}: nonce {tx['nonce']} already used ({message})") from e
            raise ChainReadError(f"{label}: node rejected transaction: {message}") from e
        except (ProviderConnectionError, OSError) as e:
            raise ChainReadError(f"{label}: could not send transaction: {e}") from e
        except Web3Exception as e:
            raise ChainReadError(f"{label}: could not send transaction: {e}") from e

        tx_hex = Web3.to_hex(tx_hash)
        logger.info(f"{label} tx sent: {tx_hex} (nonce {tx['nonce']})")

        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        except TimeExhausted as e:
            logger.warning(f"{label} not confirmed after {self.receipt_timeout}s: {tx_hex}")
            raise TransactionTimeoutError(
                f"{label} not confirmed within {self.receipt_timeout}s: {tx_hex}", tx_hash=tx_hex
            ) from e
        except TRANSIENT_ERRORS as e:
            raise TransactionTimeoutError(
                f"{label} sent as {tx_hex} but confirmation could not be observed: {_rpc_message(e)}",
                tx_hash=tx_hex,
            ) from e
        except Web3Exception as e:
            raise TransactionTimeoutError(
                f"{label} sent as {tx_hex} but confirmation could not be observed: {e}",
                tx_hash=tx_hex,
            ) from e

        if receipt["status"] != 1:
            reason = self._replay_for_reason(fn, sender, receipt["blockNumber"])
            logger.warning(f"{label} reverted in block {receipt['blockNumber']}: {reason}")
            raise TransactionRevertedError(reason, tx_hash=tx_hex)

        logger.info(f"{label} confirmed in block {receipt['blockNumber']}")
        return TransactionConfirmation(
            transaction_hash=tx_hex,
            block_number=receipt["blockNumber"],
            status=receipt["status"],
        )

    def _replay_for_reason(self, fn, sender: str, block_number: int) -> str | None:
        """Re-run a mined-but-reverted call as eth_call to recover its reason."""
        try:
            fn.call({"from": sender}, block_identifier=block_number)
        except ContractLogicError as e:
            return revert_reason(e)
        except (Web3Exception, OSError) as e:
            logger.debug(f"Could not replay reverted call at block {block_number}: {e}")
        return None
