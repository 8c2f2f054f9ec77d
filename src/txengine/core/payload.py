"""
Transaction payload and settled execution results.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from solders.keypair import Keypair
from solders.transaction import Transaction, VersionedTransaction

from txengine.core.options import BlockhashWithExpiry

AnyTransaction = Union[Transaction, VersionedTransaction]


@dataclass(frozen=True)
class TransactionPayload:
    """
    An unsigned transaction ready for signing.

    The ``recent_blockhash`` pair is the one the transaction was built
    against; confirmation must use this exact pair.
    """

    transaction: AnyTransaction
    signers: Tuple[Keypair, ...]
    recent_blockhash: BlockhashWithExpiry

    def __post_init__(self):
        object.__setattr__(self, "signers", tuple(self.signers))

    @property
    def is_versioned(self) -> bool:
        return isinstance(self.transaction, VersionedTransaction)


class SettledStatus(str, Enum):
    """Outcome of one transaction in a batch."""
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


@dataclass(frozen=True)
class SettledResult:
    """
    Either a fulfilled signature or the exception that rejected it.

    Batch execution collects one of these per transaction instead of
    raising, so one failure never hides the others.
    """

    status: SettledStatus
    value: Optional[str] = None
    reason: Optional[Exception] = None

    @classmethod
    def fulfilled(cls, value: str) -> "SettledResult":
        return cls(status=SettledStatus.FULFILLED, value=value)

    @classmethod
    def rejected(cls, reason: Exception) -> "SettledResult":
        return cls(status=SettledStatus.REJECTED, reason=reason)

    @property
    def is_fulfilled(self) -> bool:
        return self.status == SettledStatus.FULFILLED

    @property
    def is_rejected(self) -> bool:
        return self.status == SettledStatus.REJECTED

    def unwrap(self) -> str:
        """Return the signature or raise the rejection reason."""
        if self.is_rejected:
            raise self.reason
        return self.value
