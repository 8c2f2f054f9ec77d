"""
Pytest configuration and shared fixtures for the test suite.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer

from txengine.config import EngineConfig
from txengine.core.operation import OperationBundle
from txengine.core.options import BlockhashWithExpiry, Commitment, SendOptions
from txengine.node.interface import (
    NodeInterface,
    RecentPrioritizationFee,
    SignatureResult,
    SimulationResult,
    TransactionSubmitError,
)
from txengine.tx.builder import TransactionBuilder
from txengine.tx.signer import KeypairWallet, generate_test_wallet


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_config() -> EngineConfig:
    """Create a test configuration."""
    return EngineConfig(
        rpc_url="http://rpc.test",
        confirm_poll_interval_seconds=0.01,
        log_level="DEBUG",
    )


# ============================================================================
# Test Data Generators
# ============================================================================

def generate_test_blockhash(last_valid_block_height: int = 1_000) -> BlockhashWithExpiry:
    """Generate a unique blockhash/expiry pair."""
    return BlockhashWithExpiry(
        blockhash=str(Hash.new_unique()),
        last_valid_block_height=last_valid_block_height,
    )


def make_instruction(
    writable: Sequence[Pubkey] = (),
    readonly: Sequence[Pubkey] = (),
    signers: Sequence[Pubkey] = (),
    data: bytes = b"\x01",
    program_id: Optional[Pubkey] = None,
) -> Instruction:
    """Create an opaque instruction for an arbitrary program."""
    accounts = (
        [AccountMeta(pubkey=k, is_signer=True, is_writable=True) for k in signers]
        + [AccountMeta(pubkey=k, is_signer=False, is_writable=True) for k in writable]
        + [AccountMeta(pubkey=k, is_signer=False, is_writable=False) for k in readonly]
    )
    return Instruction(program_id or Pubkey.new_unique(), data, accounts)


def make_transfer(payer: Pubkey, lamports: int = 1_000) -> Instruction:
    """Create a system transfer to a fresh account."""
    return transfer(
        TransferParams(from_pubkey=payer, to_pubkey=Pubkey.new_unique(), lamports=lamports)
    )


def signature_of(raw_transaction: bytes) -> str:
    """Read the fee payer signature from wire bytes (single-byte signature count)."""
    return str(Signature.from_bytes(raw_transaction[1:65]))


# ============================================================================
# Mock Node Interface
# ============================================================================

class MockNodeInterface(NodeInterface):
    """Mock node interface recording every call."""

    def __init__(self):
        self.latest_blockhash = generate_test_blockhash()
        self.block_height = 500
        self.priority_fees: List[RecentPrioritizationFee] = []
        self.simulation_result = SimulationResult(units_consumed=100_000)

        # Signature -> exception raised at submission / error reported at confirmation
        self.send_errors: Dict[str, Exception] = {}
        self.confirm_errors: Dict[str, Any] = {}

        self.blockhash_requests: List[Commitment] = []
        self.sent: List[Tuple[bytes, SendOptions]] = []
        self.send_attempts: List[str] = []
        self.confirmations: List[Tuple[str, BlockhashWithExpiry, Commitment]] = []
        self.fee_requests: List[List[Pubkey]] = []
        self.simulations: List[Tuple[Any, bool, bool]] = []
        self._connected = False

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    async def get_latest_blockhash(
        self,
        commitment: Commitment = Commitment.CONFIRMED,
    ) -> BlockhashWithExpiry:
        self.blockhash_requests.append(commitment)
        return self.latest_blockhash

    async def get_block_height(
        self,
        commitment: Commitment = Commitment.CONFIRMED,
    ) -> int:
        return self.block_height

    async def send_raw_transaction(self, raw_transaction: bytes, opts: SendOptions) -> str:
        signature = signature_of(raw_transaction)
        self.send_attempts.append(signature)
        if signature in self.send_errors:
            raise self.send_errors[signature]
        self.sent.append((raw_transaction, opts))
        return signature

    async def confirm_transaction(
        self,
        signature: str,
        recent_blockhash: BlockhashWithExpiry,
        commitment: Commitment = Commitment.CONFIRMED,
    ) -> SignatureResult:
        self.confirmations.append((signature, recent_blockhash, commitment))
        error = self.confirm_errors.get(signature)
        if isinstance(error, Exception):
            raise error
        return SignatureResult(err=error)

    async def get_recent_prioritization_fees(
        self,
        locked_writable_accounts: Sequence[Pubkey],
    ) -> List[RecentPrioritizationFee]:
        self.fee_requests.append(list(locked_writable_accounts))
        return list(self.priority_fees)

    async def simulate_transaction(
        self,
        transaction,
        sig_verify: bool = False,
        replace_recent_blockhash: bool = True,
    ) -> SimulationResult:
        self.simulations.append((transaction, sig_verify, replace_recent_blockhash))
        return self.simulation_result

    def reject_submission(self, signature: str, message: str = "Transaction malformed") -> None:
        """Make submission of the given signature fail."""
        self.send_errors[signature] = TransactionSubmitError(message, error_code=-32602)


@pytest.fixture
def mock_node() -> MockNodeInterface:
    """Create a mock node interface."""
    return MockNodeInterface()


@pytest.fixture
def fee_samples() -> List[RecentPrioritizationFee]:
    """Ten fee samples, 100..1000 micro-lamports per unit, out of order."""
    fees = [100, 700, 300, 1000, 200, 900, 400, 600, 500, 800]
    return [
        RecentPrioritizationFee(slot=1_000 + i, prioritization_fee=fee)
        for i, fee in enumerate(fees)
    ]


# ============================================================================
# Wallet and Builder Fixtures
# ============================================================================

@pytest.fixture
def test_wallet() -> KeypairWallet:
    """Create a test wallet with a random key."""
    return generate_test_wallet()


@pytest.fixture
def builder(mock_node, test_wallet) -> TransactionBuilder:
    """Create an empty builder over the mock node."""
    return TransactionBuilder(mock_node, test_wallet)


@pytest.fixture
def transfer_bundle(test_wallet) -> OperationBundle:
    """A bundle with a single transfer from the wallet."""
    return OperationBundle(instructions=[make_transfer(test_wallet.public_key)])


@pytest.fixture
def extra_signer() -> Keypair:
    """A keypair required by an operation besides the fee payer."""
    return Keypair()
