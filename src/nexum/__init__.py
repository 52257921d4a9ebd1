"""
nexum: async smart-contract client.

Build calls, normalize token payments into built-in transfer encodings,
execute them on a mock ledger, a live gateway or a dry-run endpoint, extract
results from receipts and cache repeated queries.
"""

__all__ = [
    # Addresses and signing
    "Address",
    "Wallet",
    # Calls
    "TokenTransfer",
    "CanonicalCall",
    "SendableTransaction",
    "build_call",
    "CodeMetadata",
    # Receipts and results
    "TransactionReceipt",
    "is_success",
    "find_smart_contract_result",
    "find_deployed_address",
    "find_sc_error",
    # Executors
    "CallResult",
    "MockWorld",
    "MockContract",
    "WorldSnapshot",
    "MockExecutor",
    "NetworkExecutor",
    "NetworkQueryExecutor",
    "SimulationExecutor",
    "DummyExecutor",
    "CachedQueryExecutor",
    "GatewayClient",
    # Events
    "EventQueryExecutor",
    "EventQueryOptions",
    "EventQueryResult",
    "FilterTerm",
    "TimestampOption",
    "SortOrder",
    "ElasticSearchClient",
    # Caching
    "CachingStrategy",
    "CachingNone",
    "LocalCache",
    "LockedCache",
    "MultiCache",
    "RedisCache",
    # Accounts and tokens
    "AccountInfo",
    "fetch_account",
    "TokenProperties",
    "TokenBalance",
    "fetch_token_properties",
    "fetch_token_balances",
    # Config
    "Settings",
    # Errors
    "NexumError",
    "AddressFormatError",
    "CodecDecodeError",
    "GatewayTransportError",
    "GatewayParseError",
    "EgldAndEsdtPaymentsDetected",
    "NoSmartContractResult",
    "NoSCDeployLogInTheResponse",
    "SmartContractExecutionError",
    "PostSubmissionError",
    "TransactionTimeoutError",
    "SimulationError",
    "TokenNotFoundError",
    "CacheSerializeError",
    "CacheDeserializeError",
    "EventQueryMalformedHitError",
]

from .caching import CachingNone, CachingStrategy, LocalCache, LockedCache, MultiCache, RedisCache
from .config import Settings
from .errors import (
    AddressFormatError,
    CacheDeserializeError,
    CacheSerializeError,
    CodecDecodeError,
    EgldAndEsdtPaymentsDetected,
    EventQueryMalformedHitError,
    GatewayParseError,
    GatewayTransportError,
    NexumError,
    NoSCDeployLogInTheResponse,
    NoSmartContractResult,
    PostSubmissionError,
    SimulationError,
    SmartContractExecutionError,
    TokenNotFoundError,
    TransactionTimeoutError,
)
from .pneuma.deploy import CodeMetadata
from .pneuma.events import (
    ElasticSearchClient,
    EventQueryExecutor,
    EventQueryOptions,
    EventQueryResult,
    FilterTerm,
    SortOrder,
    TimestampOption,
)
from .pneuma.executors import (
    CachedQueryExecutor,
    CallResult,
    DummyExecutor,
    MockContract,
    MockExecutor,
    MockWorld,
    NetworkExecutor,
    NetworkQueryExecutor,
    SimulationExecutor,
    WorldSnapshot,
)
from .pneuma.gateway import GatewayClient
from .pneuma.receipt import TransactionReceipt
from .pneuma.results import find_deployed_address, find_sc_error, find_smart_contract_result, is_success
from .pneuma.rpc import AccountInfo, fetch_account
from .pneuma.token import TokenBalance, TokenProperties, fetch_token_balances, fetch_token_properties
from .pneuma.transfers import CanonicalCall, SendableTransaction, TokenTransfer, build_call
from .sigil.address import Address
from .sigil.wallet import Wallet
