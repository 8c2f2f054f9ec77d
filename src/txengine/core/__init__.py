"""
Core data model.

Operation bundles, the accumulator that compresses them, build/send options
and the payload types passed between the builder and the processor.
"""

from txengine.core.accumulator import OperationAccumulator
from txengine.core.operation import EMPTY_BUNDLE, OperationBundle
from txengine.core.options import (
    LEGACY,
    AutoComputeBudget,
    BlockhashWithExpiry,
    BuildOptions,
    BuildOptionsError,
    Commitment,
    FixedComputeBudget,
    NoComputeBudget,
    SendOptions,
    TransactionBuilderOptions,
)
from txengine.core.payload import SettledResult, SettledStatus, TransactionPayload

__all__ = [
    "OperationAccumulator",
    "OperationBundle",
    "EMPTY_BUNDLE",
    "LEGACY",
    "AutoComputeBudget",
    "BlockhashWithExpiry",
    "BuildOptions",
    "BuildOptionsError",
    "Commitment",
    "FixedComputeBudget",
    "NoComputeBudget",
    "SendOptions",
    "TransactionBuilderOptions",
    "SettledResult",
    "SettledStatus",
    "TransactionPayload",
]
