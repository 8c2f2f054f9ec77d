"""
Transaction size measurement.

Predicts the signed wire size of a transaction before real signatures are
acquired. Placeholder signatures occupy the same 64 bytes as real ones, so
the unsigned serialization has the same length as the signed one.
"""

from typing import Iterable, Sequence, Set, Union

import structlog

from solders.instruction import Instruction
from solders.pubkey import Pubkey
from solders.transaction import Transaction, VersionedTransaction

logger = structlog.get_logger(__name__)

# Maximum number of distinct accounts a legacy transaction can reference
LEGACY_TX_UNIQUE_KEYS_LIMIT = 35

# Maximum wire size of a transaction (IPv6 MTU minus headers)
PACKET_DATA_SIZE = 1232

# Compiled messages address accounts with a single byte
MAX_ACCOUNT_KEYS = 256

_MEASURE_ERROR_PREFIX = "Unable to measure transaction size."


class TransactionSizeError(Exception):
    """Base class for size measurement failures."""

    def __init__(self, detail: str):
        super().__init__(f"{_MEASURE_ERROR_PREFIX} {detail}")
        self.detail = detail


class TooManyUniqueKeysError(TransactionSizeError):
    """Raised when a legacy transaction references too many distinct accounts."""

    def __init__(self, unique_keys: int):
        super().__init__("Too many unique keys in transaction.")
        self.unique_keys = unique_keys


class TooManyAccountKeysError(TransactionSizeError):
    """Raised when a message references more accounts than it can index."""

    def __init__(self):
        super().__init__("Too many account keys to compile transaction.")


class TransactionSerializationError(TransactionSizeError):
    """Raised when the transaction cannot be serialized."""

    def __init__(self):
        super().__init__("Unable to serialize transaction.")


class TransactionTooLargeError(TransactionSizeError):
    """Raised when the serialized transaction exceeds the packet size."""

    def __init__(self, size: int):
        super().__init__(f"Transaction too large ({size} > {PACKET_DATA_SIZE} bytes).")
        self.size = size


def count_unique_keys(transaction: Transaction) -> int:
    """Count distinct accounts and programs referenced by the instructions."""
    indexes = set()
    for ix in transaction.message.instructions:
        indexes.add(ix.program_id_index)
        indexes.update(ix.accounts)
    return len(indexes)


def collect_instruction_keys(instructions: Iterable[Instruction]) -> Set[Pubkey]:
    """Collect distinct accounts and programs referenced by raw instructions."""
    keys = set()
    for ix in instructions:
        keys.add(ix.program_id)
        keys.update(meta.pubkey for meta in ix.accounts)
    return keys


def check_legacy_unique_keys(instructions: Sequence[Instruction]) -> None:
    """
    Fail fast on an oversized legacy account set, before any compilation.

    Raises:
        TooManyUniqueKeysError: Above LEGACY_TX_UNIQUE_KEYS_LIMIT
    """
    unique_keys = len(collect_instruction_keys(instructions))
    if unique_keys > LEGACY_TX_UNIQUE_KEYS_LIMIT:
        raise TooManyUniqueKeysError(unique_keys)


def _serialize(transaction: Union[Transaction, VersionedTransaction]) -> bytes:
    try:
        return bytes(transaction)
    except Exception as e:
        logger.debug("transaction_serialize_failed", error=str(e))
        raise TransactionSerializationError() from e


def _check_packet_size(size: int) -> int:
    if size > PACKET_DATA_SIZE:
        raise TransactionTooLargeError(size)
    return size


def measure_legacy_transaction(transaction: Transaction) -> int:
    """
    Measure a legacy transaction.

    The unique key count is checked before serializing, so an oversized
    account set fails with TooManyUniqueKeysError and is never serialized.

    Raises:
        TooManyUniqueKeysError: Above LEGACY_TX_UNIQUE_KEYS_LIMIT
        TransactionSerializationError: Serialization failed
        TransactionTooLargeError: Serialized size above PACKET_DATA_SIZE
    """
    unique_keys = count_unique_keys(transaction)
    if unique_keys > LEGACY_TX_UNIQUE_KEYS_LIMIT:
        raise TooManyUniqueKeysError(unique_keys)

    return _check_packet_size(len(_serialize(transaction)))


def measure_versioned_transaction(transaction: VersionedTransaction) -> int:
    """
    Measure a versioned transaction.

    Accounts resolved through lookup tables do not count against the legacy
    key limit, so the only reliable check is the serialized length.

    Raises:
        TransactionSerializationError: Serialization failed
        TransactionTooLargeError: Serialized size above PACKET_DATA_SIZE
    """
    return _check_packet_size(len(_serialize(transaction)))


def measure_transaction(transaction: Union[Transaction, VersionedTransaction]) -> int:
    """Measure either transaction format."""
    if isinstance(transaction, VersionedTransaction):
        return measure_versioned_transaction(transaction)
    return measure_legacy_transaction(transaction)
