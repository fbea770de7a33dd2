"""
boosterball/config.py - Gateway configuration

Settings come from two places, later wins:
  1. An optional TOML file (``--config``), for non-secret settings
  2. Environment variables (a .env file is loaded into the environment by
     the CLI before this runs)

The private key is read from the environment only. It never belongs in a
file that might be committed.

Example:
    [chain]
    rpc_url = "https://rpc.testnet.ms"
    chain_id = 4157
    contract_address = "0x..."
    receipt_timeout = 120

    [server]
    port = 3000
    allowed_origins = ["https://game.example.com"]
"""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .errors import ConfigError

logger = logging.getLogger(__name__)

# ============================================================================
# Constants
# ============================================================================

DEFAULT_RECEIPT_TIMEOUT = 120  # seconds to wait for one confirmation
DEFAULT_RPC_TIMEOUT = 10  # seconds per JSON-RPC request
DEFAULT_PORT = 3000


# ============================================================================
# Data Types
# ============================================================================


@dataclass
class GatewayConfig:
    """Everything needed to talk to the chain node and serve HTTP."""

    rpc_url: str | None = None
    chain_id: int | None = None
    private_key: str | None = None
    contract_address: str | None = None
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    rpc_timeout: float = DEFAULT_RPC_TIMEOUT
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    port: int = DEFAULT_PORT

    def validate(self) -> None:
        """Raise ConfigError listing every missing required setting."""
        missing = []
        if not self.contract_address:
            missing.append("CONTRACT_ADDRESS")
        if not self.rpc_url:
            missing.append("RPC_URL")
        if self.chain_id is None:
            missing.append("CHAIN_ID")
        if not self.private_key:
            missing.append("PRIVATE_KEY")
        if missing:
            raise ConfigError(f"Missing required configuration: {', '.join(missing)}")
        if self.receipt_timeout <= 0:
            raise ConfigError(f"RECEIPT_TIMEOUT must be positive, got {self.receipt_timeout}")

    def __repr__(self) -> str:
        key = "set" if self.private_key else None
        return (
            f"GatewayConfig(rpc_url={self.rpc_url!r}, chain_id={self.chain_id!r}, "
            f"contract_address={self.contract_address!r}, private_key={key!r}, "
            f"receipt_timeout={self.receipt_timeout!r}, port={self.port!r})"
        )


# ============================================================================
# Parsing
# ============================================================================


def _parse_int(name: str, raw) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _parse_float(name: str, raw) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def _parse_origins(raw) -> list[str]:
    if isinstance(raw, list):
        return [str(o).strip() for o in raw if str(o).strip()]
    origins = [o.strip() for o in str(raw).split(",") if o.strip()]
    return origins or ["*"]


def _read_toml(path: Path) -> dict:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}") from None
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from None


def load_config(path: Path | None = None, env: Mapping[str, str] | None = None) -> GatewayConfig:
    """
    Build a GatewayConfig from an optional TOML file plus the environment.

    Args:
        path: TOML file to read first. None skips the file.
        env: Environment mapping (default: os.environ).

    Returns:
        GatewayConfig. Not validated; call validate() before connecting.
    """
    env = os.environ if env is None else env
    config = GatewayConfig()

    if path is not None:
        raw = _read_toml(Path(path))
        chain = raw.get("chain", {})
        server = raw.get("server", {})
        if not isinstance(chain, dict) or not isinstance(server, dict):
            raise ConfigError(f"{path}: [chain] and [server] must be tables")

        if "private_key" in chain:
            logger.warning(f"{path}: private_key in config file is ignored, set PRIVATE_KEY instead")

        config.rpc_url = chain.get("rpc_url", config.rpc_url)
        if "chain_id" in chain:
            config.chain_id = _parse_int("chain.chain_id", chain["chain_id"])
        config.contract_address = chain.get("contract_address", config.contract_address)
        if "receipt_timeout" in chain:
            config.receipt_timeout = _parse_float("chain.receipt_timeout", chain["receipt_timeout"])
        if "rpc_timeout" in chain:
            config.rpc_timeout = _parse_float("chain.rpc_timeout", chain["rpc_timeout"])
        if "allowed_origins" in server:
            config.allowed_origins = _parse_origins(server["allowed_origins"])
        if "port" in server:
            config.port = _parse_int("server.port", server["port"])

    # Environment overrides the file
    if env.get("RPC_URL"):
        config.rpc_url = env["RPC_URL"]
    if env.get("CHAIN_ID"):
        config.chain_id = _parse_int("CHAIN_ID", env["CHAIN_ID"])
    if env.get("PRIVATE_KEY"):
        config.private_key = env["PRIVATE_KEY"]
    if env.get("CONTRACT_ADDRESS"):
        config.contract_address = env["CONTRACT_ADDRESS"]
    if env.get("RECEIPT_TIMEOUT"):
        config.receipt_timeout = _parse_float("RECEIPT_TIMEOUT", env["RECEIPT_TIMEOUT"])
    if env.get("RPC_TIMEOUT"):
        config.rpc_timeout = _parse_float("RPC_TIMEOUT", env["RPC_TIMEOUT"])
    if env.get("ALLOWED_ORIGINS"):
        config.allowed_origins = _parse_origins(env["ALLOWED_ORIGINS"])
    if env.get("PORT"):
        config.port = _parse_int("PORT", env["PORT"])

    return config
