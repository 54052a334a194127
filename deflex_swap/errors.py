"""Error taxonomy for the swap pipeline.

Every error carries a ``broadcast`` flag. ``False`` means nothing reached the
ledger during the failing step; ``True`` means a transaction group was sent
and its fate is unknown or negative.
"""

from __future__ import annotations


class SwapError(Exception):
    """Base class for all swap pipeline failures."""

    broadcast = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ConfigurationError(SwapError):
    def __init__(self, missing: list[str] | None = None, message: str | None = None):
        self.missing = list(missing or [])
        if message is None:
            message = "Missing required configuration: " + ", ".join(self.missing)
        super().__init__(message)


class QuoteUnavailableError(SwapError):
    """The aggregator returned no usable route."""


class DecodeError(SwapError):
    def __init__(self, index: int, reason: str = ""):
        self.index = index
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Failed to decode transaction {index}{detail}")


class UnrecognizedSignatureFormatError(SwapError):
    def __init__(self, index: int, reason: str = ""):
        self.index = index
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Signature format unrecognized at transaction {index}{detail}")


class GroupSizeExceededError(SwapError):
    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"Atomic group would hold {size} transactions, "
            f"the ledger allows at most {limit}"
        )


class UngroupedSigningError(SwapError):
    """A transaction was handed to the user signer without the group id stamped."""

    def __init__(self, index: int):
        self.index = index
        super().__init__(
            f"Transaction {index} must carry the group id before it is signed"
        )


class OptInFailedError(SwapError):
    def __init__(self, asset_id: int, reason: str = ""):
        self.asset_id = asset_id
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Failed to opt into asset {asset_id}{detail}")


class MissingTransactionIdError(SwapError):
    """Submission was accepted but the response carried no transaction id."""

    broadcast = True

    def __init__(self, response: object):
        self.response = response
        super().__init__("Transaction submitted but no ID returned")


class NotConfirmedError(SwapError):
    """Confirmation polling ran out of rounds. The group may still confirm."""

    broadcast = True

    def __init__(self, transaction_id: str, rounds: int):
        self.transaction_id = transaction_id
        self.rounds = rounds
        super().__init__(
            f"Transaction {transaction_id} not confirmed after {rounds} rounds"
        )


class TransactionRejectedError(SwapError):
    broadcast = True

    def __init__(self, transaction_id: str, pool_error: str):
        self.transaction_id = transaction_id
        self.pool_error = pool_error
        super().__init__(f"Transaction {transaction_id} rejected: {pool_error}")


__all__ = [
    "ConfigurationError",
    "DecodeError",
    "GroupSizeExceededError",
    "MissingTransactionIdError",
    "NotConfirmedError",
    "OptInFailedError",
    "QuoteUnavailableError",
    "SwapError",
    "TransactionRejectedError",
    "UngroupedSigningError",
    "UnrecognizedSignatureFormatError",
]
