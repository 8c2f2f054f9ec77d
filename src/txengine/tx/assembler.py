"""
Transaction Assembler - turns instructions into unsigned transactions.

Two wire formats are supported: the legacy format and the versioned (v0)
format that can reference address lookup tables. Each format has its own
assembler with a matching size measurement strategy.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple

import structlog

from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import Message, MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction, VersionedTransaction

from txengine.core.options import BlockhashWithExpiry, BuildOptions
from txengine.core.payload import AnyTransaction
from txengine.tx.measure import (
    MAX_ACCOUNT_KEYS,
    collect_instruction_keys,
    measure_legacy_transaction,
    measure_versioned_transaction,
)

logger = structlog.get_logger(__name__)


class TransactionBuildError(Exception):
    """Raised when transaction construction fails."""
    pass


class MessageCompileError(TransactionBuildError):
    """Raised when the instructions cannot be compiled into a message."""
    pass


class TransactionAssembler(ABC):
    """Shared interface of the two transaction formats."""

    @abstractmethod
    def assemble(
        self,
        instructions: Sequence[Instruction],
        budget_instructions: Sequence[Instruction],
        payer: Pubkey,
        recent_blockhash: BlockhashWithExpiry,
    ) -> AnyTransaction:
        """
        Build an unsigned transaction.

        Budget instructions are placed before the caller's instructions so
        the compute limit is in effect before anything consumes compute.

        Args:
            instructions: Compressed caller instructions
            budget_instructions: Resolved compute budget instructions
            payer: Fee payer
            recent_blockhash: Blockhash the transaction is bound to

        Returns:
            Unsigned transaction with placeholder signatures
        """
        pass

    @abstractmethod
    def measure(self, transaction: AnyTransaction) -> int:
        """Return the signed wire size of a transaction built by this assembler."""
        pass


class LegacyTransactionAssembler(TransactionAssembler):
    """Assembler for the legacy wire format."""

    def assemble(
        self,
        instructions: Sequence[Instruction],
        budget_instructions: Sequence[Instruction],
        payer: Pubkey,
        recent_blockhash: BlockhashWithExpiry,
    ) -> Transaction:
        # The legacy compiler panics instead of raising on index overflow
        account_keys = collect_instruction_keys([*budget_instructions, *instructions]) | {payer}
        if len(account_keys) > MAX_ACCOUNT_KEYS:
            raise MessageCompileError("Too many account keys for a legacy message")

        message = Message.new_with_blockhash(
            [*budget_instructions, *instructions],
            payer,
            Hash.from_string(recent_blockhash.blockhash),
        )
        _ensure_fee_payer(message.account_keys, payer)
        logger.debug(
            "transaction_assembled",
            version="legacy",
            account_keys=len(message.account_keys),
            instructions=len(message.instructions),
        )
        return Transaction.new_unsigned(message)

    def measure(self, transaction: Transaction) -> int:
        return measure_legacy_transaction(transaction)


class VersionedTransactionAssembler(TransactionAssembler):
    """Assembler for the v0 wire format, compiled against lookup tables."""

    def __init__(self, lookup_table_accounts: Sequence[AddressLookupTableAccount] = ()):
        self.lookup_table_accounts: Tuple[AddressLookupTableAccount, ...] = tuple(
            lookup_table_accounts
        )

    def assemble(
        self,
        instructions: Sequence[Instruction],
        budget_instructions: Sequence[Instruction],
        payer: Pubkey,
        recent_blockhash: BlockhashWithExpiry,
    ) -> VersionedTransaction:
        try:
            message = MessageV0.try_compile(
                payer,
                [*budget_instructions, *instructions],
                list(self.lookup_table_accounts),
                Hash.from_string(recent_blockhash.blockhash),
            )
        except Exception as e:
            raise MessageCompileError(f"Failed to compile v0 message: {e}") from e

        _ensure_fee_payer(message.account_keys, payer)
        logger.debug(
            "transaction_assembled",
            version=0,
            account_keys=len(message.account_keys),
            lookup_tables=len(self.lookup_table_accounts),
        )
        signatures = [Signature.default()] * message.header.num_required_signatures
        return VersionedTransaction.populate(message, signatures)

    def measure(self, transaction: VersionedTransaction) -> int:
        return measure_versioned_transaction(transaction)


def _ensure_fee_payer(account_keys: List[Pubkey], payer: Pubkey) -> None:
    if not account_keys or account_keys[0] != payer:
        raise TransactionBuildError(f"Fee payer {payer} is not the first account key")


def get_assembler(options: BuildOptions) -> TransactionAssembler:
    """Select the assembler matching the requested transaction version."""
    if options.is_legacy:
        return LegacyTransactionAssembler()
    return VersionedTransactionAssembler(options.lookup_table_accounts)
