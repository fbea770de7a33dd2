#!/usr/bin/env python3
"""
boosterball/cli.py - Command line interface for the tournament gateway

Usage:
    boosterball serve [--port PORT] [--config FILE] [--env-file FILE]
    boosterball tournament [--config FILE]
    boosterball purchase-data <address> [--config FILE]
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from .config import load_config
from .errors import ConfigError, GatewayError

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def _load(args):
    """Load .env into the environment, then build config from file + env."""
    if args.env_file:
        if not Path(args.env_file).exists():
            raise ConfigError(f"Env file not found: {args.env_file}")
        load_dotenv(args.env_file)
    else:
        load_dotenv(find_dotenv(usecwd=True))
    return load_config(Path(args.config) if args.config else None)


def _gateway(args):
    from .contract import Web3Gateway

    return Web3Gateway.from_config(_load(args))


def cmd_serve(args):
    """Start the HTTP API."""
    import uvicorn

    config = _load(args)
    config.validate()
    if args.port is not None:
        config.port = args.port

    # CORS is configured when the server module is imported
    os.environ.setdefault("ALLOWED_ORIGINS", ",".join(config.allowed_origins))

    from api.server import app

    # Lifespan picks this up instead of re-reading the environment
    app.state.config = config
    logger.info(f"Starting gateway on {args.host}:{config.port}")
    uvicorn.run(app, host=args.host, port=config.port, log_level="info")
    return 0


def cmd_tournament(args):
    """Print the current tournament."""
    tournament = _gateway(args).read_current_tournament()
    print(json.dumps(tournament.to_dict(), indent=2))
    return 0


def cmd_purchase_data(args):
    """Print the unsigned purchase transaction for an address."""
    from .purchase import build_purchase_transaction

    tx = build_purchase_transaction(_gateway(args), args.address)
    print(json.dumps(tx.to_dict(), indent=2))
    return 0


def main():
    parser = argparse.ArgumentParser(
        prog="boosterball",
        description="Booster ball tournament gateway",
    )
    parser.add_argument("--config", "-c", default=None, help="TOML config file")
    parser.add_argument("--env-file", default=None, help=".env file to load (default: ./.env if present)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--port", "-p", type=int, default=None, help="Server port (default: PORT or 3000)")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    serve_parser.set_defaults(func=cmd_serve)

    # tournament command
    tournament_parser = subparsers.add_parser("tournament", help="Show the current tournament")
    tournament_parser.set_defaults(func=cmd_tournament)

    # purchase-data command
    purchase_parser = subparsers.add_parser("purchase-data", help="Build an unsigned booster ball purchase")
    purchase_parser.add_argument("address", help="Buyer's wallet address")
    purchase_parser.set_defaults(func=cmd_purchase_data)

    args = parser.parse_args()
    try:
        sys.exit(args.func(args))
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(2)
    except GatewayError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
