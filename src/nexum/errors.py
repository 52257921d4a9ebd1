"""
Error hierarchy for nexum.

Every failure surfaced by the SDK is a subclass of ``NexumError`` so callers
can catch the whole family at once, or a single leaf when they care about a
specific condition (e.g. ``NoSmartContractResult``).
"""

from __future__ import annotations

from typing import Any, Optional


class NexumError(Exception):
    pass


# ---------------------------------------------------------------------------
# Data / encoding
# ---------------------------------------------------------------------------

class AddressFormatError(NexumError, ValueError):
    pass


class CodecError(NexumError):
    pass


class CodecEncodeError(CodecError):
    pass


class CodecDecodeError(CodecError):
    pass


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

class NormalizationError(NexumError):
    pass


class EgldAndEsdtPaymentsDetected(NormalizationError):
    """Native amount and token transfers were both attached to one call."""

    def __init__(self) -> None:
        super().__init__(
            "EGLD and ESDT payments cannot be sent in the same transaction"
        )


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------

class GatewayError(NexumError):
    pass


class GatewayTransportError(GatewayError):
    """The HTTP round trip failed or returned a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GatewayParseError(GatewayError):
    pass


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class NoSmartContractResult(NexumError):
    def __init__(self) -> None:
        super().__init__("No smart contract result in the transaction receipt")


class NoSCDeployLogInTheResponse(NexumError):
    def __init__(self) -> None:
        super().__init__("No SCDeploy event in the transaction receipt")


class SmartContractExecutionError(NexumError):
    """The contract signalled an error (``signalError`` event)."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"Smart contract execution failed ({status}): {message}")
        self.status = status
        self.message = message


# ---------------------------------------------------------------------------
# Executors
# ---------------------------------------------------------------------------

class QueryError(NexumError):
    pass


class SimulationError(NexumError):
    def __init__(self, code: str, error: str) -> None:
        super().__init__(f"Simulation failed ({code}): {error}")
        self.code = code
        self.error = error


class TransactionTimeoutError(NexumError, TimeoutError):
    def __init__(self, tx_hash: str, timeout: float) -> None:
        super().__init__(f"Transaction {tx_hash} not final within {timeout}s")
        self.tx_hash = tx_hash
        self.timeout = timeout


class PostSubmissionError(NexumError):
    """
    A failure that happened after the transaction was accepted by the network.

    State may have changed on chain. The receipt (when one was fetched) and the
    transaction hash are attached so the caller can reconcile.
    """

    def __init__(self, tx_hash: str, receipt: Any, cause: Exception) -> None:
        super().__init__(f"Transaction {tx_hash} was submitted but failed afterwards: {cause}")
        self.tx_hash = tx_hash
        self.receipt = receipt
        self.cause = cause


class MockExecutionError(NexumError):
    pass


class WorldSnapshotError(MockExecutionError):
    """A world snapshot could not be read, fetched or written."""


class WalletError(NexumError):
    pass


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

class TokenError(NexumError):
    pass


class TokenNotFoundError(TokenError):
    def __init__(self, token_identifier: str) -> None:
        super().__init__(f"Token {token_identifier} not found")
        self.token_identifier = token_identifier


class TokenParseError(TokenError):
    def __init__(self, token_identifier: str, reason: str) -> None:
        super().__init__(f"Cannot parse properties of {token_identifier}: {reason}")
        self.token_identifier = token_identifier
        self.reason = reason


# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------

class CacheError(NexumError):
    pass


class CacheSerializeError(CacheError):
    pass


class CacheDeserializeError(CacheError):
    pass


class CacheBackendError(CacheError):
    """The cache server could not be reached or rejected a command."""


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

class EventQueryError(NexumError):
    pass


class ResponseMissingHitsError(EventQueryError):
    def __init__(self) -> None:
        super().__init__("Search response does not contain hits.hits")


class EventQueryMalformedHitError(EventQueryError):
    def __init__(self, reason: str, hit: Any = None) -> None:
        super().__init__(f"Malformed event hit: {reason}")
        self.reason = reason
        self.hit = hit
