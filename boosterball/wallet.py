"""
boosterball/wallet.py - Server signing account and address validation.

The server holds exactly one key: the administrative account that signs
score increments and tournament resets. Players' keys never pass through
here. Purchases are built unsigned and signed in the player's own wallet.
"""

import logging

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from .errors import ConfigError, InvalidAddressError

logger = logging.getLogger(__name__)


def validate_address(address) -> str:
    """Validate an account address and return its checksummed form.

    All-lowercase and all-uppercase hex are accepted (they carry no
    checksum). Mixed-case input must match its EIP-55 checksum.

    Raises:
        InvalidAddressError: Not a string, wrong length/characters, or a
            mixed-case address whose checksum does not match.
    """
    if not isinstance(address, str) or not address.startswith("0x"):
        raise InvalidAddressError(address)
    if not Web3.is_address(address):
        raise InvalidAddressError(address)

    digits = address[2:]
    if digits != digits.lower() and digits != digits.upper():
        if not Web3.is_checksum_address(address):
            raise InvalidAddressError(address, "Address checksum does not match")
    return Web3.to_checksum_address(address)


def load_server_account(private_key: str | None) -> LocalAccount:
    """Load the server's signing account from a hex private key.

    Args:
        private_key: Hex key, with or without the 0x prefix.

    Raises:
        ConfigError: Key missing or unparseable. The key itself is never
            included in the message.
    """
    if not private_key:
        raise ConfigError("PRIVATE_KEY is not set")

    key = private_key.strip()
    # Ensure 0x prefix
    if not key.startswith("0x"):
        key = "0x" + key

    try:
        account = Account.from_key(key)
    except (ValueError, TypeError):
        raise ConfigError("PRIVATE_KEY is not a valid private key (key not shown)") from None

    logger.info(f"Server wallet loaded: {account.address}")
    return account
