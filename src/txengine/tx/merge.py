"""
Builder merging - packs consecutive builders into as few transactions as fit.
"""

from typing import Any, List, Sequence

import structlog

from txengine.tx.builder import TransactionBuilder
from txengine.tx.measure import TransactionSizeError

logger = structlog.get_logger(__name__)


def _combine(builders: Sequence[TransactionBuilder]) -> TransactionBuilder:
    base = builders[0]
    merged = TransactionBuilder(base.node, base.wallet, base.options)
    for builder in builders:
        merged.add_operations(builder.bundles)
        for signer in builder.signers:
            merged.add_signer(signer)
    return merged


def _fits(builder: TransactionBuilder, **overrides: Any) -> bool:
    try:
        builder.measure_size(**overrides)
    except TransactionSizeError:
        return False
    return True


def merge_transaction_builders(
    builders: Sequence[TransactionBuilder],
    **overrides: Any,
) -> List[TransactionBuilder]:
    """
    Greedily merge consecutive builders while the result still fits.

    Order is preserved: bundles of an earlier builder always precede those
    of a later one. The node, wallet and options of the first builder in
    each group are used for the merged builder.

    Args:
        builders: Builders to merge, in execution order
        **overrides: BuildOptions overrides used when measuring

    Returns:
        Merged builders

    Raises:
        TransactionSizeError: If a single builder does not fit on its own
    """
    results: List[TransactionBuilder] = []
    group: List[TransactionBuilder] = []

    for builder in builders:
        if builder.is_empty():
            continue

        if group and _fits(_combine(group + [builder]), **overrides):
            group.append(builder)
            continue

        if group:
            results.append(_combine(group))

        # Surfaces the size error of a builder that is too large by itself
        builder.measure_size(**overrides)
        group = [builder]

    if group:
        results.append(_combine(group))

    logger.debug("builders_merged", input_builders=len(builders), merged_builders=len(results))
    return results
