"""
Build, send and confirmation options.

Options are immutable values. Each TransactionBuilder owns one
TransactionBuilderOptions instance holding its defaults, and every call
merges keyword overrides on top of them.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Awaitable, Callable, ClassVar, List, Optional, Tuple, Union

from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.pubkey import Pubkey

LEGACY = "legacy"

# Versions the extensible (v0 message) format can be built with.
SUPPORTED_TRANSACTION_VERSIONS = (0,)


class BuildOptionsError(ValueError):
    """Raised when build options are invalid or contradict each other."""
    pass


class Commitment(str, Enum):
    """Ledger commitment levels, weakest first."""
    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"

    @property
    def rank(self) -> int:
        return _COMMITMENT_RANK[self]

    def is_reached_by(self, status: Optional[str]) -> bool:
        """Check whether a reported confirmation status satisfies this level."""
        if status is None:
            return False
        try:
            return Commitment(status).rank >= self.rank
        except ValueError:
            return False


_COMMITMENT_RANK = {
    Commitment.PROCESSED: 0,
    Commitment.CONFIRMED: 1,
    Commitment.FINALIZED: 2,
}


@dataclass(frozen=True)
class BlockhashWithExpiry:
    """
    A recent blockhash and the last block height at which a transaction
    referencing it can still be included.
    """
    blockhash: str
    last_valid_block_height: int


# Fee sampler seam: takes the locked writable accounts and returns the recent
# prioritization fee samples (node.interface.RecentPrioritizationFee).
PriorityFeeSampler = Callable[[List[Pubkey]], Awaitable[List[Any]]]


@dataclass(frozen=True)
class NoComputeBudget:
    """Do not inject any compute budget instructions."""
    type: ClassVar[str] = "none"


@dataclass(frozen=True)
class FixedComputeBudget:
    """
    Explicit priority fee and compute unit limit.

    Attributes:
        priority_fee_lamports: Total priority fee to pay, spread over the limit
        compute_budget_limit: Compute unit limit (estimated or defaulted when None)
        jito_tip_lamports: Tip transferred to a Jito tip account (0 disables)
        account_data_size_limit: Loaded accounts data size limit in bytes
    """
    type: ClassVar[str] = "fixed"

    priority_fee_lamports: Union[int, float] = 0
    compute_budget_limit: Optional[int] = None
    jito_tip_lamports: int = 0
    account_data_size_limit: Optional[int] = None

    def __post_init__(self):
        if self.priority_fee_lamports < 0:
            raise BuildOptionsError("priority_fee_lamports must not be negative")
        if self.compute_budget_limit is not None and self.compute_budget_limit <= 0:
            raise BuildOptionsError("compute_budget_limit must be positive")
        if self.jito_tip_lamports < 0:
            raise BuildOptionsError("jito_tip_lamports must not be negative")


@dataclass(frozen=True)
class AutoComputeBudget:
    """
    Discover the compute limit by simulation and the priority fee from the
    recent fee market.

    Attributes:
        max_priority_fee_lamports: Upper clamp for the total priority fee
        min_priority_fee_lamports: Lower clamp for the total priority fee
        jito_tip_lamports: Tip transferred to a Jito tip account (0 disables)
        account_data_size_limit: Loaded accounts data size limit in bytes
        compute_limit_margin: Fraction added on top of simulated consumption
        compute_price_percentile: Fraction (0..1) selecting the fee sample
        get_priority_fee_per_unit: Replacement fee sampler
    """
    type: ClassVar[str] = "auto"

    max_priority_fee_lamports: Optional[Union[int, float]] = None
    min_priority_fee_lamports: Optional[Union[int, float]] = None
    jito_tip_lamports: int = 0
    account_data_size_limit: Optional[int] = None
    compute_limit_margin: Optional[float] = None
    compute_price_percentile: Optional[float] = None
    get_priority_fee_per_unit: Optional[PriorityFeeSampler] = None

    def __post_init__(self):
        if self.compute_price_percentile is not None and not 0 <= self.compute_price_percentile <= 1:
            raise BuildOptionsError("compute_price_percentile must be between 0 and 1")
        if self.compute_limit_margin is not None and self.compute_limit_margin < 0:
            raise BuildOptionsError("compute_limit_margin must not be negative")
        if (
            self.max_priority_fee_lamports is not None
            and self.min_priority_fee_lamports is not None
            and self.min_priority_fee_lamports > self.max_priority_fee_lamports
        ):
            raise BuildOptionsError("min_priority_fee_lamports exceeds max_priority_fee_lamports")


ComputeBudgetOption = Union[NoComputeBudget, FixedComputeBudget, AutoComputeBudget]


@dataclass(frozen=True)
class BuildOptions:
    """
    Options controlling how a TransactionBuilder assembles a transaction.

    ``max_supported_transaction_version`` selects the wire format: the
    ``"legacy"`` literal builds a fixed-format transaction, a number builds a
    versioned transaction that may reference address lookup tables.
    """

    blockhash_commitment: Commitment = Commitment.CONFIRMED
    max_supported_transaction_version: Union[str, int] = 0
    latest_blockhash: Optional[BlockhashWithExpiry] = None
    compute_budget_option: ComputeBudgetOption = field(default_factory=NoComputeBudget)
    lookup_table_accounts: Tuple[AddressLookupTableAccount, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "blockhash_commitment", Commitment(self.blockhash_commitment))
        object.__setattr__(self, "lookup_table_accounts", tuple(self.lookup_table_accounts or ()))

        version = self.max_supported_transaction_version
        if version != LEGACY and version not in SUPPORTED_TRANSACTION_VERSIONS:
            raise BuildOptionsError(f"Unsupported transaction version: {version!r}")

        if version == LEGACY and self.lookup_table_accounts:
            raise BuildOptionsError(
                "Lookup table accounts cannot be used with legacy transactions"
            )

    @property
    def is_legacy(self) -> bool:
        return self.max_supported_transaction_version == LEGACY

    def merge(self, **overrides: Any) -> "BuildOptions":
        """Return a copy with the given fields replaced."""
        if not overrides:
            return self
        return replace(self, **overrides)


@dataclass(frozen=True)
class SendOptions:
    """Options passed to the network when submitting a transaction."""

    skip_preflight: bool = False
    preflight_commitment: Commitment = Commitment.CONFIRMED
    max_retries: Optional[int] = 3

    def __post_init__(self):
        object.__setattr__(self, "preflight_commitment", Commitment(self.preflight_commitment))
        if self.max_retries is not None and self.max_retries < 0:
            raise BuildOptionsError("max_retries must not be negative")

    def merge(self, **overrides: Any) -> "SendOptions":
        if not overrides:
            return self
        return replace(self, **overrides)


@dataclass(frozen=True)
class TransactionBuilderOptions:
    """Defaults used by a TransactionBuilder unless overridden per call."""

    default_build_option: BuildOptions = field(default_factory=BuildOptions)
    default_send_option: SendOptions = field(default_factory=SendOptions)
    default_confirmation_commitment: Commitment = Commitment.CONFIRMED

    def __post_init__(self):
        object.__setattr__(
            self,
            "default_confirmation_commitment",
            Commitment(self.default_confirmation_commitment),
        )


DEFAULT_TRANSACTION_BUILDER_OPTIONS = TransactionBuilderOptions()
