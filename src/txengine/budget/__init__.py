"""
Resource budget estimation: compute limits, priority fees and tips.
"""

from txengine.budget.compute_budget import (
    COMPUTE_BUDGET_PROGRAM_ID,
    DEFAULT_COMPUTE_LIMIT_MARGIN,
    DEFAULT_MAX_COMPUTE_UNIT_LIMIT,
    DEFAULT_MAX_PRIORITY_FEE_LAMPORTS,
    DEFAULT_MIN_PRIORITY_FEE_LAMPORTS,
    DEFAULT_PRIORITY_FEE_PERCENTILE,
    MICROLAMPORTS_PER_LAMPORT,
    build_budget_instructions,
    compute_unit_price_micro_lamports,
    estimate_compute_budget_limit,
    get_lock_writable_accounts,
    get_priority_fee_in_lamports,
    get_priority_fee_suggestion,
    get_recent_priority_fees,
    resolve_compute_budget_option,
    set_loaded_accounts_data_size_limit_instruction,
)
from txengine.budget.jito_tip import JITO_TIP_ACCOUNTS, get_jito_tip_address

__all__ = [
    "COMPUTE_BUDGET_PROGRAM_ID",
    "DEFAULT_COMPUTE_LIMIT_MARGIN",
    "DEFAULT_MAX_COMPUTE_UNIT_LIMIT",
    "DEFAULT_MAX_PRIORITY_FEE_LAMPORTS",
    "DEFAULT_MIN_PRIORITY_FEE_LAMPORTS",
    "DEFAULT_PRIORITY_FEE_PERCENTILE",
    "MICROLAMPORTS_PER_LAMPORT",
    "JITO_TIP_ACCOUNTS",
    "build_budget_instructions",
    "compute_unit_price_micro_lamports",
    "estimate_compute_budget_limit",
    "get_jito_tip_address",
    "get_lock_writable_accounts",
    "get_priority_fee_in_lamports",
    "get_priority_fee_suggestion",
    "get_recent_priority_fees",
    "resolve_compute_budget_option",
    "set_loaded_accounts_data_size_limit_instruction",
]
