"""
Abstract interface for Solana RPC access.

Defines the network capabilities the transaction engine consumes: blockhash
retrieval, submission, blockhash-bounded confirmation, fee sampling and
simulation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from txengine.core.options import BlockhashWithExpiry, Commitment, SendOptions


@dataclass(frozen=True)
class RecentPrioritizationFee:
    """A per-compute-unit fee (micro-lamports) observed in a recent slot."""
    slot: int
    prioritization_fee: int


@dataclass(frozen=True)
class SimulationResult:
    """Outcome of a transaction simulation."""
    err: Optional[Any] = None
    units_consumed: Optional[int] = None
    logs: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class SignatureResult:
    """Confirmation outcome; ``err`` is set when the transaction landed but failed."""
    err: Optional[Any] = None


class NodeInterface(ABC):
    """
    Abstract interface for Solana network access.

    Every method is a suspension point; implementations must not block the
    event loop.
    """

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connection to the RPC endpoint.

        Raises:
            NodeConnectionError: If connection cannot be established
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to the RPC endpoint."""
        pass

    @abstractmethod
    async def get_latest_blockhash(
        self,
        commitment: Commitment = Commitment.CONFIRMED,
    ) -> BlockhashWithExpiry:
        """
        Get the latest blockhash and its last valid block height.

        Args:
            commitment: Commitment level for the query

        Returns:
            The blockhash/expiry pair
        """
        pass

    @abstractmethod
    async def get_block_height(
        self,
        commitment: Commitment = Commitment.CONFIRMED,
    ) -> int:
        """Get the current block height."""
        pass

    @abstractmethod
    async def send_raw_transaction(
        self,
        raw_transaction: bytes,
        opts: SendOptions,
    ) -> str:
        """
        Submit a serialized, signed transaction.

        Args:
            raw_transaction: Wire bytes of the signed transaction
            opts: Preflight and retry options

        Returns:
            Transaction signature (base58)

        Raises:
            TransactionSubmitError: If submission fails
        """
        pass

    @abstractmethod
    async def confirm_transaction(
        self,
        signature: str,
        recent_blockhash: BlockhashWithExpiry,
        commitment: Commitment = Commitment.CONFIRMED,
    ) -> SignatureResult:
        """
        Wait until a transaction reaches the commitment level.

        The wait is bounded by ``recent_blockhash.last_valid_block_height``:
        once the ledger passes it without the transaction landing, the wait
        ends with TransactionExpiredError.

        Args:
            signature: Signature returned by submission
            recent_blockhash: The pair the transaction was built against
            commitment: Commitment level to wait for

        Returns:
            SignatureResult with ``err`` set if the transaction failed on-chain

        Raises:
            TransactionExpiredError: If the blockhash expired first
        """
        pass

    @abstractmethod
    async def get_recent_prioritization_fees(
        self,
        locked_writable_accounts: Sequence[Pubkey],
    ) -> List[RecentPrioritizationFee]:
        """
        Get recent per-compute-unit fees paid to lock the given accounts.

        Args:
            locked_writable_accounts: Accounts the transaction will write

        Returns:
            Fee samples, one per recent slot
        """
        pass

    @abstractmethod
    async def simulate_transaction(
        self,
        transaction: VersionedTransaction,
        sig_verify: bool = False,
        replace_recent_blockhash: bool = True,
    ) -> SimulationResult:
        """
        Simulate a transaction without submitting it.

        Args:
            transaction: Transaction to simulate (signatures may be placeholders)
            sig_verify: Verify signatures during simulation
            replace_recent_blockhash: Let the node substitute a fresh blockhash

        Returns:
            SimulationResult with consumed compute units and logs
        """
        pass

    async def send_transaction(self, transaction: Any, opts: SendOptions) -> str:
        """Serialize a signed transaction and submit it."""
        return await self.send_raw_transaction(bytes(transaction), opts)


class NodeConnectionError(Exception):
    """Raised when connection to the RPC endpoint fails."""
    pass


class NodeRpcError(Exception):
    """Raised when the RPC endpoint answers with a JSON-RPC error object."""

    def __init__(self, message: str, code: Optional[int] = None, data: Optional[Any] = None):
        super().__init__(message)
        self.code = code
        self.data = data


class SimulationError(Exception):
    """Raised when a simulation reports an execution error."""

    def __init__(self, message: str, err: Optional[Any] = None, logs: Optional[List[str]] = None):
        super().__init__(message)
        self.err = err
        self.logs = logs or []


class TransactionSubmitError(Exception):
    """Raised when transaction submission fails."""

    def __init__(self, message: str, error_code: Optional[int] = None, data: Optional[Any] = None):
        super().__init__(message)
        self.error_code = error_code
        self.data = data


class TransactionExecutionError(Exception):
    """Raised when a transaction landed on-chain but failed to execute."""

    def __init__(self, signature: str, err: Any):
        super().__init__(f"Transaction {signature} failed: {err}")
        self.signature = signature
        self.err = err


class TransactionExpiredError(Exception):
    """Raised when the blockhash window elapsed before the transaction landed."""

    def __init__(self, signature: str, last_valid_block_height: int):
        super().__init__(
            f"Transaction {signature} expired: block height exceeded {last_valid_block_height}"
        )
        self.signature = signature
        self.last_valid_block_height = last_valid_block_height
