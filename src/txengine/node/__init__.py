"""
Node Integration Layer.

Provides abstracted access to a Solana cluster: blockhashes, fee samples,
simulation, submission and confirmation.
"""

from txengine.node.interface import (
    NodeConnectionError,
    NodeInterface,
    NodeRpcError,
    RecentPrioritizationFee,
    SignatureResult,
    SimulationError,
    SimulationResult,
    TransactionExecutionError,
    TransactionExpiredError,
    TransactionSubmitError,
)
from txengine.node.rpc import SolanaRpcAdapter

__all__ = [
    "NodeConnectionError",
    "NodeInterface",
    "NodeRpcError",
    "RecentPrioritizationFee",
    "SignatureResult",
    "SimulationError",
    "SimulationResult",
    "TransactionExecutionError",
    "TransactionExpiredError",
    "TransactionSubmitError",
    "SolanaRpcAdapter",
]
