"""
Test suite for transaction size measurement.
"""

from unittest.mock import patch

import pytest
from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.pubkey import Pubkey

from txengine.core.operation import OperationBundle
from txengine.core.options import LEGACY, AutoComputeBudget, BuildOptions, FixedComputeBudget
from txengine.tx.assembler import MessageCompileError
from txengine.tx.builder import MEASUREMENT_BLOCKHASH
from txengine.tx.measure import (
    LEGACY_TX_UNIQUE_KEYS_LIMIT,
    PACKET_DATA_SIZE,
    TooManyAccountKeysError,
    TooManyUniqueKeysError,
    TransactionSerializationError,
    TransactionSizeError,
    TransactionTooLargeError,
    count_unique_keys,
    measure_legacy_transaction,
)

from conftest import make_instruction


def many_accounts_bundle(count: int) -> OperationBundle:
    """One instruction referencing ``count`` distinct read-only accounts."""
    accounts = [Pubkey.new_unique() for _ in range(count)]
    return OperationBundle(instructions=[make_instruction(readonly=accounts)])


# ============================================================================
# Test Measurement
# ============================================================================

class TestMeasureSize:
    """Tests for pre-signature size prediction."""

    def test_empty_builder_measures_zero(self, builder):
        assert builder.measure_size() == 0

    def test_measurement_matches_serialized_length(self, builder, transfer_bundle):
        """Test the measured size equals the placeholder-signed wire size."""
        builder.add_operation(transfer_bundle)

        for version in (LEGACY, 0):
            payload = builder.build_sync(
                BuildOptions(
                    latest_blockhash=MEASUREMENT_BLOCKHASH,
                    max_supported_transaction_version=version,
                )
            )
            size = builder.measure_size(max_supported_transaction_version=version)

            assert size == len(bytes(payload.transaction))
            assert 0 < size <= PACKET_DATA_SIZE

    @pytest.mark.asyncio
    async def test_measurement_predicts_signed_size(self, builder, test_wallet, transfer_bundle):
        """Test placeholder signatures occupy the same bytes as real ones."""
        builder.add_operation(transfer_bundle)
        payload = await builder.build()

        signed = await test_wallet.sign_transaction(payload.transaction)

        assert builder.measure_size() == len(bytes(signed))

    def test_measurement_needs_no_network(self, builder, mock_node, transfer_bundle):
        """Test measuring never fetches a blockhash or fee data."""
        builder.add_operation(transfer_bundle)

        builder.measure_size(compute_budget_option=AutoComputeBudget())

        assert mock_node.blockhash_requests == []
        assert mock_node.simulations == []
        assert mock_node.fee_requests == []

    def test_auto_budget_measures_as_upper_bound(self, builder, transfer_bundle):
        """Test auto mode measures like a fixed budget with a price instruction."""
        builder.add_operation(transfer_bundle)

        auto_size = builder.measure_size(compute_budget_option=AutoComputeBudget())
        fixed_size = builder.measure_size(
            compute_budget_option=FixedComputeBudget(
                priority_fee_lamports=10_000,
                compute_budget_limit=200_000,
            )
        )
        unpriced_size = builder.measure_size(
            compute_budget_option=FixedComputeBudget(
                priority_fee_lamports=0,
                compute_budget_limit=200_000,
            )
        )

        assert auto_size == fixed_size
        assert auto_size > unpriced_size

    def test_budget_instructions_add_size(self, builder, transfer_bundle):
        builder.add_operation(transfer_bundle)

        plain = builder.measure_size()
        budgeted = builder.measure_size(
            compute_budget_option=FixedComputeBudget(
                priority_fee_lamports=1000,
                compute_budget_limit=200_000,
            )
        )

        assert budgeted > plain


# ============================================================================
# Test Legacy Limits
# ============================================================================

class TestLegacySizeLimits:
    """Tests for the legacy format's unique key ceiling."""

    def test_count_unique_keys(self, builder):
        """Test accounts and program ids are counted once each."""
        shared = Pubkey.new_unique()
        program = Pubkey.new_unique()
        builder.add_operation(
            OperationBundle(
                instructions=[
                    make_instruction(writable=[shared], program_id=program),
                    make_instruction(readonly=[shared], program_id=program),
                ]
            )
        )
        payload = builder.build_sync(
            BuildOptions(latest_blockhash=MEASUREMENT_BLOCKHASH, max_supported_transaction_version=LEGACY)
        )

        assert count_unique_keys(payload.transaction) == 2

    def test_under_limit_is_measured(self, builder):
        builder.add_operation(many_accounts_bundle(20))

        size = builder.measure_size(max_supported_transaction_version=LEGACY)

        assert size > 0

    def test_too_many_unique_keys(self, builder):
        """Test the key ceiling fails fast without serializing."""
        builder.add_operation(many_accounts_bundle(LEGACY_TX_UNIQUE_KEYS_LIMIT))

        with patch("txengine.tx.measure._serialize") as serialize:
            with pytest.raises(TooManyUniqueKeysError) as exc_info:
                builder.measure_size(max_supported_transaction_version=LEGACY)

        serialize.assert_not_called()
        message = str(exc_info.value)
        assert message.startswith("Unable to measure transaction size.")
        assert "Too many unique keys" in message
        assert "Unable to serialize" not in message
        assert exc_info.value.unique_keys == LEGACY_TX_UNIQUE_KEYS_LIMIT + 1

    def test_key_ceiling_checked_before_compiling(self, builder):
        """Test an account set the message compiler cannot index still fails cleanly."""
        builder.add_operation(many_accounts_bundle(300))

        with patch("txengine.tx.assembler.Message") as message:
            with pytest.raises(TooManyUniqueKeysError) as exc_info:
                builder.measure_size(max_supported_transaction_version=LEGACY)

        message.new_with_blockhash.assert_not_called()
        assert exc_info.value.unique_keys == 301

    def test_legacy_build_rejects_unindexable_accounts(self, builder):
        builder.add_operation(many_accounts_bundle(300))

        with pytest.raises(MessageCompileError):
            builder.build_sync(
                BuildOptions(latest_blockhash=MEASUREMENT_BLOCKHASH, max_supported_transaction_version=LEGACY)
            )

    def test_serialization_failure_is_wrapped(self):
        """Test a serializer failure becomes a generic size error."""

        class _Message:
            instructions = []

        class _Unserializable:
            message = _Message()

            def __bytes__(self):
                raise ValueError("bad account index")

        with pytest.raises(TransactionSerializationError, match="Unable to serialize transaction"):
            measure_legacy_transaction(_Unserializable())

    def test_legacy_packet_ceiling(self, builder):
        """Test an oversized legacy transaction is rejected."""
        builder.add_operation(OperationBundle(instructions=[make_instruction(data=bytes(1300))]))

        with pytest.raises(TransactionTooLargeError):
            builder.measure_size(max_supported_transaction_version=LEGACY)


# ============================================================================
# Test Versioned Limits
# ============================================================================

class TestVersionedSizeLimits:
    """Tests for the v0 format's explicit packet size check."""

    def test_oversize_detected_after_serialization(self, builder):
        """Test a transaction that serializes fine can still be too large."""
        builder.add_operation(OperationBundle(instructions=[make_instruction(data=bytes(1300))]))

        with pytest.raises(TransactionTooLargeError) as exc_info:
            builder.measure_size()

        assert exc_info.value.size > PACKET_DATA_SIZE
        assert isinstance(exc_info.value, TransactionSizeError)
        assert "Transaction too large" in str(exc_info.value)

    def test_unindexable_accounts_are_a_size_error(self, builder):
        """Test a v0 message with more accounts than it can index fails as a size error."""
        accounts = [Pubkey.new_unique() for _ in range(300)]
        tables = [
            AddressLookupTableAccount(Pubkey.new_unique(), accounts[:150]),
            AddressLookupTableAccount(Pubkey.new_unique(), accounts[150:]),
        ]
        builder.add_operation(OperationBundle(instructions=[make_instruction(readonly=accounts)]))

        with pytest.raises(TooManyAccountKeysError) as exc_info:
            builder.measure_size(lookup_table_accounts=tables)

        assert isinstance(exc_info.value, TransactionSizeError)
        assert isinstance(exc_info.value.__cause__, MessageCompileError)

    def test_lookup_tables_exceed_legacy_ceiling(self, builder):
        """Test table-resolved accounts lift the legacy key limit."""
        accounts = [Pubkey.new_unique() for _ in range(40)]
        table = AddressLookupTableAccount(Pubkey.new_unique(), accounts)
        builder.add_operation(OperationBundle(instructions=[make_instruction(readonly=accounts)]))

        with pytest.raises(TooManyUniqueKeysError):
            builder.measure_size(max_supported_transaction_version=LEGACY)

        size = builder.measure_size(lookup_table_accounts=[table])

        assert 0 < size <= PACKET_DATA_SIZE
        with pytest.raises(TransactionTooLargeError):
            builder.measure_size()
