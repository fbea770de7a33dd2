"""
boosterball/errors.py - Failure taxonomy for the contract gateway.

Every failure the gateway can surface is one of these. Raw web3 / transport
exceptions are re-raised as the matching class (with the original chained
via ``raise ... from``), so callers and the HTTP layer only ever deal with
this module.
"""


class GatewayError(Exception):
    """Base class for all gateway failures.

    Attributes:
        status_code: HTTP status the API surface maps this failure to.
        retryable: Whether the caller may safely re-issue the same request.
    """

    status_code = 500
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequestError(GatewayError):
    """Caller input is malformed."""

    status_code = 400


class InvalidAddressError(InvalidRequestError):
    """An account address failed format or checksum validation."""

    def __init__(self, address, message: str | None = None):
        super().__init__(message or f"Invalid address: {address!r}")
        self.address = address


class NotFoundError(GatewayError):
    """The contract holds no record for the requested tournament."""

    status_code = 404


class ChainReadError(GatewayError):
    """The chain node could not be reached or answered with an RPC error."""

    status_code = 503
    retryable = True


class TransactionTimeoutError(GatewayError):
    """A submitted transaction was not confirmed within the bounded wait."""

    status_code = 504
    retryable = True

    def __init__(self, message: str, tx_hash: str | None = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class NonceConflictError(GatewayError):
    """The node rejected a write because its nonce was already used."""

    status_code = 409
    retryable = True


class ContractStateError(GatewayError):
    """The contract returned data that violates its own invariants."""

    status_code = 502


class NumericRangeError(ContractStateError):
    """A chain integer cannot be narrowed without losing precision."""

    def __init__(self, field: str, value):
        super().__init__(f"{field} out of safe integer range: {value!r}")
        self.field = field
        self.value = value


class TransactionRevertedError(ContractStateError):
    """The contract rejected a transaction. State is unchanged.

    ``reason`` is the contract's revert string when it could be decoded.
    """

    status_code = 422

    def __init__(self, reason: str | None, tx_hash: str | None = None):
        message = f"Transaction reverted: {reason}" if reason else "Transaction reverted"
        super().__init__(message)
        self.reason = reason
        self.tx_hash = tx_hash


class ConfigError(RuntimeError):
    """Raised at startup when required configuration is missing or invalid."""
