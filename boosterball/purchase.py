"""
boosterball/purchase.py - Unsigned booster-ball purchase transactions.

Buying booster balls moves the player's own XFI, so the server only
describes the transaction. The player's wallet signs and submits it; the
server never holds or spends player funds.
"""

import logging

from .contract import ContractGateway
from .errors import InvalidAddressError, InvalidRequestError
from .models import PurchaseTransactionRequest
from .numeric import to_decimal_string, units_to_wei
from .wallet import validate_address

logger = logging.getLogger(__name__)

BOOSTER_BALL_PRICE_XFI = 10  # whole XFI per purchase

# Set explicitly so the wallet doesn't pick its own
PURCHASE_GAS_LIMIT = 300_000


def purchase_value_wei() -> int:
    """Purchase price in wei, computed with integer arithmetic only."""
    return units_to_wei(BOOSTER_BALL_PRICE_XFI)


def build_purchase_transaction(gateway: ContractGateway, user_address) -> PurchaseTransactionRequest:
    """Describe a purchaseBoosterBalls() call for the player to sign.

    Args:
        gateway: Supplies the contract address, chain id and calldata.
        user_address: The buyer's address (becomes ``from``).

    Raises:
        InvalidRequestError: user_address missing, blank or malformed.
    """
    if user_address is None or (isinstance(user_address, str) and not user_address.strip()):
        raise InvalidRequestError("userAddress is required")

    try:
        buyer = validate_address(user_address.strip() if isinstance(user_address, str) else user_address)
    except InvalidAddressError as e:
        raise InvalidRequestError(f"userAddress is not a valid address: {user_address!r}") from e

    tx = PurchaseTransactionRequest(
        to=gateway.contract_address,
        from_address=buyer,
        data=gateway.encode_purchase_call(),
        value=to_decimal_string(purchase_value_wei()),
        chain_id=gateway.chain_id,
        gas_limit=str(PURCHASE_GAS_LIMIT),
    )
    logger.info(f"Built purchase transaction for {buyer}: {tx.value} wei on chain {tx.chain_id}")
    return tx
