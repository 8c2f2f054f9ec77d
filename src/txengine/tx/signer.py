"""
Transaction Signer - wallets and partial signing.

A wallet exposes the fee payer identity and signs whole transactions. Extra
signers required by individual operations are applied with partial_sign.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

import structlog

from solders.keypair import Keypair
from solders.message import to_bytes_versioned
from solders.pubkey import Pubkey
from solders.transaction import Transaction, VersionedTransaction

from txengine.config import EngineConfig, load_config
from txengine.core.payload import AnyTransaction

logger = structlog.get_logger(__name__)


class SigningError(Exception):
    """Raised when a transaction cannot be signed."""
    pass


def partial_sign(transaction: AnyTransaction, signers: Sequence[Keypair]) -> AnyTransaction:
    """
    Add signatures for the given keypairs, keeping any existing ones.

    Each keypair fills the signature slot matching its position among the
    message's required signers.

    Args:
        transaction: Legacy or versioned transaction
        signers: Keypairs to sign with

    Returns:
        A new transaction carrying the added signatures

    Raises:
        SigningError: If a keypair is not a required signer of the message
    """
    if not signers:
        return transaction

    message = transaction.message
    signer_keys = list(message.account_keys[: message.header.num_required_signatures])
    signatures = list(transaction.signatures)

    if isinstance(transaction, VersionedTransaction):
        message_bytes = to_bytes_versioned(message)
    else:
        message_bytes = bytes(message)

    for signer in signers:
        pubkey = signer.pubkey()
        try:
            index = signer_keys.index(pubkey)
        except ValueError:
            raise SigningError(f"{pubkey} is not a required signer of this transaction") from None
        signatures[index] = signer.sign_message(message_bytes)

    if isinstance(transaction, VersionedTransaction):
        return VersionedTransaction.populate(message, signatures)
    return Transaction.populate(message, signatures)


class Wallet(ABC):
    """Signing capability holding the fee payer identity."""

    @property
    @abstractmethod
    def public_key(self) -> Pubkey:
        """Public key used as the default fee payer."""
        pass

    @abstractmethod
    async def sign_transaction(self, transaction: AnyTransaction) -> AnyTransaction:
        """
        Sign a transaction with the wallet key.

        Args:
            transaction: Transaction to sign

        Returns:
            The signed transaction

        Raises:
            SigningError: If the wallet cannot sign
        """
        pass

    async def sign_all_transactions(
        self,
        transactions: Sequence[AnyTransaction],
    ) -> List[AnyTransaction]:
        """Sign several transactions, keeping their order."""
        return [await self.sign_transaction(tx) for tx in transactions]


class KeypairWallet(Wallet):
    """
    Wallet backed by an in-memory keypair.

    Supports loading keys from:
    - JSON keypair file (64-byte array, as written by solana-keygen)
    - Base58-encoded secret key
    """

    def __init__(self, keypair: Keypair):
        self._keypair = keypair

    @classmethod
    def from_file(cls, key_path: str) -> "KeypairWallet":
        """
        Load a keypair from a JSON keypair file.

        Args:
            key_path: Path to the keypair file

        Raises:
            FileNotFoundError: If the file does not exist
        """
        path = Path(key_path)
        if not path.exists():
            raise FileNotFoundError(f"Keypair file not found: {key_path}")

        secret = json.loads(path.read_text())
        keypair = Keypair.from_bytes(bytes(secret))

        logger.info("keypair_loaded", path=key_path, public_key=str(keypair.pubkey()))
        return cls(keypair)

    @classmethod
    def from_base58(cls, secret: str) -> "KeypairWallet":
        """Load a keypair from a base58-encoded 64-byte secret key."""
        keypair = Keypair.from_base58_string(secret)
        logger.info("keypair_loaded_from_base58", public_key=str(keypair.pubkey()))
        return cls(keypair)

    @classmethod
    def from_config(cls, config: Optional[EngineConfig] = None) -> "KeypairWallet":
        """Load the keypair configured by ``wallet_keypair_path``."""
        config = config or load_config()
        if not config.wallet_keypair_path:
            raise ValueError("No wallet keypair configured")
        return cls.from_file(config.wallet_keypair_path)

    @property
    def keypair(self) -> Keypair:
        return self._keypair

    @property
    def public_key(self) -> Pubkey:
        return self._keypair.pubkey()

    async def sign_transaction(self, transaction: AnyTransaction) -> AnyTransaction:
        signed = partial_sign(transaction, [self._keypair])
        logger.debug("transaction_signed", signature=str(signed.signatures[0])[:16] + "...")
        return signed


class ReadOnlyWallet(Wallet):
    """
    Wallet that knows the fee payer but cannot sign.

    Useful for building and measuring transactions, and for fee estimation.
    """

    def __init__(self, public_key: Optional[Pubkey] = None):
        self._public_key = public_key or Pubkey.default()

    @property
    def public_key(self) -> Pubkey:
        return self._public_key

    async def sign_transaction(self, transaction: AnyTransaction) -> AnyTransaction:
        raise SigningError("Read-only wallet cannot sign transactions")

    async def sign_all_transactions(
        self,
        transactions: Sequence[AnyTransaction],
    ) -> List[AnyTransaction]:
        raise SigningError("Read-only wallet cannot sign transactions")


def generate_test_wallet() -> KeypairWallet:
    """
    Generate a wallet with a new random keypair for testing.

    WARNING: Do not use in production. The key is not persisted.
    """
    wallet = KeypairWallet(Keypair())
    logger.warning("test_wallet_generated", public_key=str(wallet.public_key))
    return wallet
