"""
Transaction Builder - constructs fee-budgeted transactions.

Accumulates operation bundles, resolves the compute budget, assembles the
transaction in the requested format and optionally signs, submits and
confirms it.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

import structlog

from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from txengine.budget.compute_budget import (
    DEFAULT_COMPUTE_LIMIT_MARGIN,
    DEFAULT_PRIORITY_FEE_PERCENTILE,
    MICROLAMPORTS_PER_LAMPORT,
    build_budget_instructions,
    estimate_compute_budget_limit,
    get_lock_writable_accounts,
    get_priority_fee_suggestion,
    get_recent_priority_fees,
    resolve_compute_budget_option,
)
from txengine.core.accumulator import OperationAccumulator
from txengine.core.operation import OperationBundle
from txengine.core.options import (
    DEFAULT_TRANSACTION_BUILDER_OPTIONS,
    BlockhashWithExpiry,
    BuildOptions,
    Commitment,
    PriorityFeeSampler,
    TransactionBuilderOptions,
)
from txengine.core.payload import TransactionPayload
from txengine.node.interface import (
    NodeInterface,
    RecentPrioritizationFee,
    TransactionExecutionError,
)
from txengine.tx.assembler import MessageCompileError, TransactionBuildError, get_assembler
from txengine.tx.measure import TooManyAccountKeysError, check_legacy_unique_keys
from txengine.tx.signer import Wallet, partial_sign

logger = structlog.get_logger(__name__)

# Deterministic blockhash used when only the size of a transaction matters
MEASUREMENT_BLOCKHASH = BlockhashWithExpiry(
    blockhash=str(Hash.default()),
    last_valid_block_height=0,
)


@dataclass(frozen=True)
class FeeEstimate:
    """
    Fee estimate for the accumulated instructions.

    Attributes:
        est_consumed_compute_units: Simulated compute units including margin
        est_priority_fee_per_unit: Recent fee samples (micro-lamports per unit)
        est_priority_fee_lamports: Total priority fee at the selected percentile
    """
    est_consumed_compute_units: int
    est_priority_fee_per_unit: List[RecentPrioritizationFee]
    est_priority_fee_lamports: float


class TransactionBuilder:
    """
    Builds transactions from accumulated operation bundles.

    Each builder owns an immutable TransactionBuilderOptions value holding
    its default build, send and confirmation options; every call merges its
    keyword overrides on top of those defaults.

    Usage:
        builder = TransactionBuilder(node, wallet)
        builder.add_operation(OperationBundle(instructions=[ix]))
        signature = await builder.build_and_execute()
    """

    def __init__(
        self,
        node: NodeInterface,
        wallet: Wallet,
        options: TransactionBuilderOptions = DEFAULT_TRANSACTION_BUILDER_OPTIONS,
    ):
        """
        Initialize the transaction builder.

        Args:
            node: Network capability
            wallet: Fee payer and primary signer
            options: Default options for this builder
        """
        self.node = node
        self.wallet = wallet
        self.options = options
        self._accumulator = OperationAccumulator()

    @property
    def accumulator(self) -> OperationAccumulator:
        return self._accumulator

    @property
    def payer(self) -> Pubkey:
        return self.wallet.public_key

    @property
    def bundles(self) -> Sequence[OperationBundle]:
        return self._accumulator.bundles

    @property
    def signers(self) -> Sequence[Keypair]:
        return self._accumulator.signers

    # Accumulation

    def add_operation(self, bundle: OperationBundle) -> "TransactionBuilder":
        self._accumulator.add_operation(bundle)
        return self

    def add_operations(self, bundles: Iterable[OperationBundle]) -> "TransactionBuilder":
        self._accumulator.add_operations(bundles)
        return self

    def prepend_operation(self, bundle: OperationBundle) -> "TransactionBuilder":
        self._accumulator.prepend_operation(bundle)
        return self

    def prepend_operations(self, bundles: Iterable[OperationBundle]) -> "TransactionBuilder":
        self._accumulator.prepend_operations(bundles)
        return self

    def add_signer(self, signer: Keypair) -> "TransactionBuilder":
        self._accumulator.add_signer(signer)
        return self

    def is_empty(self) -> bool:
        return self._accumulator.is_empty()

    def compress(self, compress_post: bool) -> OperationBundle:
        """Compress the accumulated bundles (see OperationAccumulator.compress)."""
        return self._accumulator.compress(compress_post)

    # Building

    def build_sync(self, options: BuildOptions) -> TransactionPayload:
        """
        Build a transaction without any network access.

        The blockhash must already be resolved. An auto compute budget is
        replaced by a placeholder of the same byte width, so the result is
        only suitable for measuring.

        Args:
            options: Fully merged build options

        Returns:
            TransactionPayload with an unsigned transaction

        Raises:
            TransactionBuildError: If no blockhash is set
        """
        if options.latest_blockhash is None:
            raise TransactionBuildError("build_sync requires latest_blockhash")

        compressed = self.compress(True)
        budget_instructions = build_budget_instructions(options.compute_budget_option, self.payer)

        transaction = get_assembler(options).assemble(
            compressed.instructions,
            budget_instructions,
            self.payer,
            options.latest_blockhash,
        )

        return TransactionPayload(
            transaction=transaction,
            signers=compressed.signers,
            recent_blockhash=options.latest_blockhash,
        )

    async def build(self, **overrides: Any) -> TransactionPayload:
        """
        Build a transaction, resolving the blockhash and compute budget.

        Args:
            **overrides: BuildOptions fields overriding the builder defaults

        Returns:
            TransactionPayload bound to the fetched (or given) blockhash

        Raises:
            BuildOptionsError: If the merged options are invalid
            SimulationError: If compute estimation fails
        """
        options = self.options.default_build_option.merge(**overrides)

        recent_blockhash = options.latest_blockhash
        if recent_blockhash is None:
            recent_blockhash = await self.node.get_latest_blockhash(options.blockhash_commitment)

        lookup_tables = None if options.is_legacy else options.lookup_table_accounts

        compute_budget_option = await resolve_compute_budget_option(
            self.node,
            options.compute_budget_option,
            self.bundles,
            self.payer,
            lookup_tables,
        )

        payload = self.build_sync(
            options.merge(
                latest_blockhash=recent_blockhash,
                compute_budget_option=compute_budget_option,
            )
        )

        logger.info(
            "transaction_built",
            version=options.max_supported_transaction_version,
            budget=compute_budget_option.type,
            blockhash=recent_blockhash.blockhash[:16] + "...",
            last_valid_block_height=recent_blockhash.last_valid_block_height,
            signers=len(payload.signers),
        )
        return payload

    def measure_size(self, **overrides: Any) -> int:
        """
        Measure the signed size of the transaction this builder would build.

        A placeholder blockhash is used so the measurement needs no network.
        For legacy transactions the unique key ceiling is checked on the raw
        instructions before anything is compiled.

        Args:
            **overrides: BuildOptions fields overriding the builder defaults

        Returns:
            Size in bytes, or 0 if nothing has been accumulated

        Raises:
            TransactionSizeError: If the transaction cannot fit
        """
        if self.is_empty():
            return 0

        options = self.options.default_build_option.merge(**overrides).merge(
            latest_blockhash=MEASUREMENT_BLOCKHASH
        )

        if options.is_legacy:
            check_legacy_unique_keys([
                *build_budget_instructions(options.compute_budget_option, self.payer),
                *self.compress(True).instructions,
            ])

        try:
            payload = self.build_sync(options)
        except MessageCompileError as e:
            raise TooManyAccountKeysError() from e
        return get_assembler(options).measure(payload.transaction)

    async def estimate_fee(
        self,
        get_priority_fee_per_unit: Optional[PriorityFeeSampler] = None,
        compute_limit_margin: Optional[float] = None,
        selection_percentile: Optional[float] = None,
        lookup_table_accounts: Optional[Sequence[AddressLookupTableAccount]] = None,
    ) -> FeeEstimate:
        """
        Estimate compute units and priority fee for the accumulated instructions.

        Args:
            get_priority_fee_per_unit: Replacement fee sampler
            compute_limit_margin: Margin added to simulated consumption
            selection_percentile: Fraction selecting the fee sample
            lookup_table_accounts: Lookup tables for the simulated message

        Returns:
            FeeEstimate
        """
        margin = DEFAULT_COMPUTE_LIMIT_MARGIN if compute_limit_margin is None else compute_limit_margin
        percentile = (
            DEFAULT_PRIORITY_FEE_PERCENTILE if selection_percentile is None else selection_percentile
        )

        compute_units = await estimate_compute_budget_limit(
            self.node, self.bundles, self.payer, lookup_table_accounts, margin
        )

        fees = await get_recent_priority_fees(
            self.node,
            get_lock_writable_accounts(self.bundles),
            get_priority_fee_per_unit,
        )
        fee_per_unit = get_priority_fee_suggestion(fees, percentile)
        priority_fee_lamports = fee_per_unit * compute_units / MICROLAMPORTS_PER_LAMPORT

        logger.info(
            "fee_estimated",
            compute_units=compute_units,
            samples=len(fees),
            priority_fee_lamports=priority_fee_lamports,
        )
        return FeeEstimate(
            est_consumed_compute_units=compute_units,
            est_priority_fee_per_unit=fees,
            est_priority_fee_lamports=priority_fee_lamports,
        )

    # Execution

    async def build_and_execute(
        self,
        build_options: Optional[Dict[str, Any]] = None,
        send_options: Optional[Dict[str, Any]] = None,
        confirm_commitment: Optional[Commitment] = None,
    ) -> str:
        """
        Build, sign, submit and confirm the transaction.

        Args:
            build_options: BuildOptions overrides
            send_options: SendOptions overrides
            confirm_commitment: Commitment to wait for (builder default if None)

        Returns:
            Transaction signature

        Raises:
            TransactionSubmitError: If submission fails
            TransactionExecutionError: If the transaction landed with an error
            TransactionExpiredError: If the blockhash expired before landing
        """
        send_opts = self.options.default_send_option.merge(**(send_options or {}))
        commitment = Commitment(confirm_commitment or self.options.default_confirmation_commitment)

        payload = await self.build(**(build_options or {}))

        signed = await self.wallet.sign_transaction(payload.transaction)
        signed = partial_sign(signed, payload.signers)

        signature = await self.node.send_transaction(signed, send_opts)
        result = await self.node.confirm_transaction(
            signature,
            payload.recent_blockhash,
            commitment,
        )
        if result.err is not None:
            raise TransactionExecutionError(signature, result.err)

        logger.info("transaction_confirmed", signature=signature[:16] + "...", commitment=commitment.value)
        return signature
