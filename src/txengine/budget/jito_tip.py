"""
Jito tip transfers.
"""

import random

from solders.instruction import Instruction
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer

JITO_TIP_ACCOUNTS = tuple(
    Pubkey.from_string(address)
    for address in (
        "96gYZGLnJYVFmbjzopPSU6QiEV5fGqZNyN9nmNhvrZU5",
        "HFqU5x63VTqvQss8hp11i4wVV8bD44PvwucfZ2bU7gRe",
        "Cw8CFyM9FkoMi7K7Crf6HNQqf4uEMzpKw6QNghXLvLkY",
        "ADaUMid9yfUytqMBgopwjb2DTLSokTSzL1zt6iGPaS49",
        "DfXygSm4jCyNCybVYYK6DwvWqjKee8pbDmJGcLWNDXjh",
        "ADuUkR4vqLUMWXxW9gh6D6L8pMSawimctcNZ5pGwDcEt",
        "DttWaMuVvTiduZRnguLF7jNxTgiMBZ1hyAumKUiL2KRL",
        "3AVi9Tg9Uo68tJfuvoKvqKNWKkC5wPdSSdeBnizKZ6jT",
    )
)


def get_jito_tip_address() -> Pubkey:
    """Pick one of the published tip accounts at random to spread contention."""
    return random.choice(JITO_TIP_ACCOUNTS)


def build_jito_tip_instruction(payer: Pubkey, lamports: int) -> Instruction:
    """Transfer ``lamports`` from the fee payer to a tip account."""
    return transfer(
        TransferParams(
            from_pubkey=payer,
            to_pubkey=get_jito_tip_address(),
            lamports=lamports,
        )
    )
