"""Execution backends."""

from .base import CallResult, DeployExecutor, QueryExecutor, TransactionExecutor
from .cached import CachedQueryExecutor
from .dummy import DummyExecutor
from .mock import MockExecutor
from .network import NetworkExecutor, NetworkQueryExecutor
from .simulation import SimulationExecutor
from .snapshot import WorldSnapshot
from .world import CallContext, ContractSignal, MockAccount, MockContract, MockWorld, endpoint

__all__ = [
    "CallResult",
    "QueryExecutor",
    "TransactionExecutor",
    "DeployExecutor",
    "CachedQueryExecutor",
    "DummyExecutor",
    "MockExecutor",
    "NetworkExecutor",
    "NetworkQueryExecutor",
    "SimulationExecutor",
    "MockWorld",
    "MockAccount",
    "WorldSnapshot",
    "MockContract",
    "CallContext",
    "ContractSignal",
    "endpoint",
]
