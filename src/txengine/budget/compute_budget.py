"""
Compute budget and priority fee estimation.

Turns a compute budget option into the instructions that are placed in front
of the caller's instructions: a compute unit limit, a compute unit price, an
optional loaded-accounts data size limit and an optional Jito tip.
"""

import math
import struct
from typing import List, Optional, Sequence

import structlog

from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from txengine.budget.jito_tip import build_jito_tip_instruction
from txengine.core.operation import OperationBundle
from txengine.core.options import (
    AutoComputeBudget,
    ComputeBudgetOption,
    FixedComputeBudget,
    NoComputeBudget,
    PriorityFeeSampler,
)
from txengine.node.interface import NodeInterface, RecentPrioritizationFee, SimulationError

logger = structlog.get_logger(__name__)

COMPUTE_BUDGET_PROGRAM_ID = Pubkey.from_string("ComputeBudget111111111111111111111111111111")

MICROLAMPORTS_PER_LAMPORT = 1_000_000
DEFAULT_PRIORITY_FEE_PERCENTILE = 0.9
DEFAULT_MAX_PRIORITY_FEE_LAMPORTS = 1_000_000  # 0.001 SOL
DEFAULT_MIN_PRIORITY_FEE_LAMPORTS = 0
DEFAULT_MAX_COMPUTE_UNIT_LIMIT = 1_400_000
DEFAULT_COMPUTE_LIMIT_MARGIN = 0.1

_SET_LOADED_ACCOUNTS_DATA_SIZE_LIMIT = 4


def set_loaded_accounts_data_size_limit_instruction(data_size_limit: int) -> Instruction:
    """Build the compute budget instruction capping loaded account data (bytes)."""
    data = struct.pack("<BI", _SET_LOADED_ACCOUNTS_DATA_SIZE_LIMIT, data_size_limit)
    return Instruction(COMPUTE_BUDGET_PROGRAM_ID, data, [])


def compute_unit_price_micro_lamports(priority_fee_lamports, compute_unit_limit: int) -> int:
    """
    Spread a total priority fee over the compute unit limit.

    Args:
        priority_fee_lamports: Total priority fee in lamports
        compute_unit_limit: Declared compute unit limit

    Returns:
        Price per compute unit in micro-lamports, rounded down
    """
    return int((priority_fee_lamports * MICROLAMPORTS_PER_LAMPORT) // compute_unit_limit)


def get_lock_writable_accounts(bundles: Sequence[OperationBundle]) -> List[Pubkey]:
    """Collect writable account keys across all instructions, first-seen order."""
    seen = set()
    accounts = []
    for bundle in bundles:
        for ix in bundle.all_instructions:
            for meta in ix.accounts:
                if meta.is_writable and meta.pubkey not in seen:
                    seen.add(meta.pubkey)
                    accounts.append(meta.pubkey)
    return accounts


def get_priority_fee_suggestion(
    fees: Sequence[RecentPrioritizationFee],
    percentile: float,
) -> int:
    """
    Select a per-unit fee (micro-lamports) from recent samples.

    Args:
        fees: Recent prioritization fee samples
        percentile: Fraction between 0 and 1

    Returns:
        The fee at the percentile of the ascending samples, or 0 with no samples
    """
    if not fees:
        return 0

    sorted_fees = sorted(fee.prioritization_fee for fee in fees)
    index = min(max(math.floor(len(sorted_fees) * percentile), 0), len(sorted_fees) - 1)
    return sorted_fees[index]


async def get_recent_priority_fees(
    node: NodeInterface,
    locked_writable_accounts: List[Pubkey],
    get_priority_fee_per_unit: Optional[PriorityFeeSampler] = None,
) -> List[RecentPrioritizationFee]:
    """Sample the fee market, preferring a caller-supplied sampler."""
    if get_priority_fee_per_unit is not None:
        return list(await get_priority_fee_per_unit(locked_writable_accounts))
    return await node.get_recent_prioritization_fees(locked_writable_accounts)


async def get_priority_fee_in_lamports(
    node: NodeInterface,
    compute_budget_limit: int,
    locked_writable_accounts: List[Pubkey],
    percentile: float = DEFAULT_PRIORITY_FEE_PERCENTILE,
    get_priority_fee_per_unit: Optional[PriorityFeeSampler] = None,
) -> float:
    """
    Estimate the total priority fee for a transaction.

    Args:
        node: Network capability used when no sampler is supplied
        compute_budget_limit: Compute unit limit the fee is spread over
        locked_writable_accounts: Accounts the transaction writes
        percentile: Fraction selecting the fee sample
        get_priority_fee_per_unit: Replacement fee sampler

    Returns:
        Total priority fee in lamports
    """
    fees = await get_recent_priority_fees(
        node, locked_writable_accounts, get_priority_fee_per_unit
    )
    fee_per_unit = get_priority_fee_suggestion(fees, percentile)
    total = fee_per_unit * compute_budget_limit / MICROLAMPORTS_PER_LAMPORT

    logger.debug(
        "priority_fee_sampled",
        samples=len(fees),
        percentile=percentile,
        fee_per_unit_micro_lamports=fee_per_unit,
        priority_fee_lamports=total,
    )
    return total


async def estimate_compute_budget_limit(
    node: NodeInterface,
    bundles: Sequence[OperationBundle],
    payer: Pubkey,
    lookup_table_accounts: Optional[Sequence[AddressLookupTableAccount]] = None,
    margin: float = DEFAULT_COMPUTE_LIMIT_MARGIN,
) -> int:
    """
    Estimate the compute unit limit by simulating the instructions.

    The simulation runs with placeholder signatures and lets the node
    substitute a fresh blockhash.

    Args:
        node: Network capability providing simulation
        bundles: Accumulated operation bundles
        payer: Fee payer
        lookup_table_accounts: Lookup tables for compiling the message
        margin: Fraction added on top of the consumed units

    Returns:
        Padded compute units, never above DEFAULT_MAX_COMPUTE_UNIT_LIMIT

    Raises:
        SimulationError: If the simulation reports an error
    """
    instructions = []
    for bundle in bundles:
        instructions.extend(bundle.instructions)
    for bundle in bundles:
        instructions.extend(bundle.cleanup_instructions)

    message = MessageV0.try_compile(
        payer,
        instructions,
        list(lookup_table_accounts or []),
        Hash.default(),
    )
    placeholder_signatures = [Signature.default()] * message.header.num_required_signatures
    transaction = VersionedTransaction.populate(message, placeholder_signatures)

    simulation = await node.simulate_transaction(
        transaction,
        sig_verify=False,
        replace_recent_blockhash=True,
    )

    if simulation.err is not None:
        logger.warning("compute_simulation_failed", err=simulation.err)
        raise SimulationError(
            f"Simulation failed: {simulation.err}",
            err=simulation.err,
            logs=simulation.logs,
        )

    if not simulation.units_consumed:
        return DEFAULT_MAX_COMPUTE_UNIT_LIMIT

    consumed = simulation.units_consumed
    estimated = math.ceil(consumed + consumed * margin)
    limit = min(estimated, DEFAULT_MAX_COMPUTE_UNIT_LIMIT)

    logger.debug(
        "compute_limit_estimated",
        units_consumed=simulation.units_consumed,
        margin=margin,
        compute_unit_limit=limit,
    )
    return limit


def build_budget_instructions(option: ComputeBudgetOption, payer: Pubkey) -> List[Instruction]:
    """
    Build the instructions placed ahead of the caller's instructions.

    An auto option is treated as a placeholder here (default limit, zero
    price) since resolving it needs the network; the result has the same
    byte width as a resolved budget and is only suitable for measuring.

    Args:
        option: Compute budget option
        payer: Fee payer, source of the Jito tip

    Returns:
        Budget instructions in execution order
    """
    if isinstance(option, NoComputeBudget):
        return []

    if isinstance(option, FixedComputeBudget):
        limit = option.compute_budget_limit or DEFAULT_MAX_COMPUTE_UNIT_LIMIT
        micro_lamports = compute_unit_price_micro_lamports(option.priority_fee_lamports, limit)
        instructions = [set_compute_unit_limit(limit)]
        if micro_lamports > 0:
            instructions.append(set_compute_unit_price(micro_lamports))
    elif isinstance(option, AutoComputeBudget):
        instructions = [
            set_compute_unit_limit(DEFAULT_MAX_COMPUTE_UNIT_LIMIT),
            set_compute_unit_price(0),
        ]
    else:
        raise TypeError(f"Unknown compute budget option: {option!r}")

    if option.account_data_size_limit:
        instructions.append(
            set_loaded_accounts_data_size_limit_instruction(option.account_data_size_limit)
        )
    if option.jito_tip_lamports > 0:
        instructions.append(build_jito_tip_instruction(payer, option.jito_tip_lamports))

    return instructions


async def resolve_compute_budget_option(
    node: NodeInterface,
    option: ComputeBudgetOption,
    bundles: Sequence[OperationBundle],
    payer: Pubkey,
    lookup_table_accounts: Optional[Sequence[AddressLookupTableAccount]] = None,
) -> ComputeBudgetOption:
    """
    Resolve network-dependent budget fields into a fixed budget.

    Auto options are converted to fixed ones using a simulated limit and a
    percentile fee clamped between the configured bounds. Fixed options
    without a limit get a simulated one. Anything else is returned as is.
    """
    if isinstance(option, AutoComputeBudget):
        margin = option.compute_limit_margin
        if margin is None:
            margin = DEFAULT_COMPUTE_LIMIT_MARGIN
        compute_budget_limit = await estimate_compute_budget_limit(
            node, bundles, payer, lookup_table_accounts, margin
        )

        percentile = option.compute_price_percentile
        if percentile is None:
            percentile = DEFAULT_PRIORITY_FEE_PERCENTILE
        priority_fee = await get_priority_fee_in_lamports(
            node,
            compute_budget_limit,
            get_lock_writable_accounts(bundles),
            percentile,
            option.get_priority_fee_per_unit,
        )

        max_fee = option.max_priority_fee_lamports
        if max_fee is None:
            max_fee = DEFAULT_MAX_PRIORITY_FEE_LAMPORTS
        min_fee = option.min_priority_fee_lamports
        if min_fee is None:
            min_fee = DEFAULT_MIN_PRIORITY_FEE_LAMPORTS
        priority_fee_lamports = max(min(priority_fee, max_fee), min_fee)

        logger.info(
            "priority_fee_estimated",
            compute_unit_limit=compute_budget_limit,
            sampled_fee_lamports=priority_fee,
            priority_fee_lamports=priority_fee_lamports,
        )
        return FixedComputeBudget(
            priority_fee_lamports=priority_fee_lamports,
            compute_budget_limit=compute_budget_limit,
            jito_tip_lamports=option.jito_tip_lamports,
            account_data_size_limit=option.account_data_size_limit,
        )

    if isinstance(option, FixedComputeBudget) and option.compute_budget_limit is None:
        compute_budget_limit = await estimate_compute_budget_limit(
            node, bundles, payer, lookup_table_accounts, DEFAULT_COMPUTE_LIMIT_MARGIN
        )
        return FixedComputeBudget(
            priority_fee_lamports=option.priority_fee_lamports,
            compute_budget_limit=compute_budget_limit,
            jito_tip_lamports=option.jito_tip_lamports,
            account_data_size_limit=option.account_data_size_limit,
        )

    return option
