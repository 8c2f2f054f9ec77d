"""
Solana Transaction Engine

Turns ordered operation bundles into fee-budgeted, size-checked transactions
in the legacy or v0 format, and signs, submits and confirms them with
per-transaction settled results.
"""

__version__ = "0.1.0"

from txengine.core.operation import OperationBundle
from txengine.core.options import (
    LEGACY,
    AutoComputeBudget,
    BuildOptions,
    Commitment,
    FixedComputeBudget,
    NoComputeBudget,
)
from txengine.core.payload import SettledResult, TransactionPayload
from txengine.tx.builder import TransactionBuilder
from txengine.tx.processor import TransactionProcessor

__all__ = [
    "OperationBundle",
    "LEGACY",
    "AutoComputeBudget",
    "BuildOptions",
    "Commitment",
    "FixedComputeBudget",
    "NoComputeBudget",
    "SettledResult",
    "TransactionPayload",
    "TransactionBuilder",
    "TransactionProcessor",
]
