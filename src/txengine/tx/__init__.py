"""
Transaction module.

Handles transaction assembly, size measurement, signing, and execution.
"""

from txengine.tx.assembler import (
    LegacyTransactionAssembler,
    MessageCompileError,
    TransactionAssembler,
    TransactionBuildError,
    VersionedTransactionAssembler,
    get_assembler,
)
from txengine.tx.builder import MEASUREMENT_BLOCKHASH, FeeEstimate, TransactionBuilder
from txengine.tx.measure import (
    LEGACY_TX_UNIQUE_KEYS_LIMIT,
    PACKET_DATA_SIZE,
    TooManyAccountKeysError,
    TooManyUniqueKeysError,
    TransactionSerializationError,
    TransactionSizeError,
    TransactionTooLargeError,
    measure_transaction,
)
from txengine.tx.merge import merge_transaction_builders
from txengine.tx.processor import TransactionProcessor
from txengine.tx.signer import (
    KeypairWallet,
    ReadOnlyWallet,
    SigningError,
    Wallet,
    generate_test_wallet,
    partial_sign,
)

__all__ = [
    "LegacyTransactionAssembler",
    "MessageCompileError",
    "TransactionAssembler",
    "TransactionBuildError",
    "VersionedTransactionAssembler",
    "get_assembler",
    "MEASUREMENT_BLOCKHASH",
    "FeeEstimate",
    "TransactionBuilder",
    "LEGACY_TX_UNIQUE_KEYS_LIMIT",
    "PACKET_DATA_SIZE",
    "TooManyAccountKeysError",
    "TooManyUniqueKeysError",
    "TransactionSerializationError",
    "TransactionSizeError",
    "TransactionTooLargeError",
    "measure_transaction",
    "merge_transaction_builders",
    "TransactionProcessor",
    "KeypairWallet",
    "ReadOnlyWallet",
    "SigningError",
    "Wallet",
    "generate_test_wallet",
    "partial_sign",
]
