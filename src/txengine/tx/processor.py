"""
Transaction Processor - signs, submits and confirms transactions.

Batches are executed with settled-result semantics: every transaction ends
up either fulfilled with its signature or rejected with its failure, and one
failure never stops the others.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

import structlog

from txengine.core.options import BlockhashWithExpiry, Commitment, SendOptions
from txengine.core.payload import AnyTransaction, SettledResult, TransactionPayload
from txengine.node.interface import NodeInterface, TransactionExecutionError
from txengine.tx.assembler import TransactionBuildError
from txengine.tx.signer import Wallet, partial_sign

logger = structlog.get_logger(__name__)

SendExecutor = Callable[[], Awaitable[List[SettledResult]]]


class TransactionProcessor:
    """
    Executes signed transactions against the network.

    Confirmation is always scoped to the blockhash pair the transactions were
    built against, never to a freshly fetched one.
    """

    def __init__(
        self,
        node: NodeInterface,
        wallet: Wallet,
        commitment: Commitment = Commitment.CONFIRMED,
        send_options: Optional[SendOptions] = None,
    ):
        """
        Initialize the processor.

        Args:
            node: Network capability
            wallet: Fee payer wallet
            commitment: Commitment level to confirm with and preflight against
            send_options: Submission options (derived from commitment if None)
        """
        self.node = node
        self.wallet = wallet
        self.commitment = Commitment(commitment)
        self.send_options = send_options or SendOptions(
            preflight_commitment=self.commitment,
            max_retries=None,
        )

    async def sign_transaction(
        self,
        payload: TransactionPayload,
    ) -> Tuple[AnyTransaction, BlockhashWithExpiry]:
        """
        Sign a payload with the wallet and its extra signers.

        Returns:
            The signed transaction and the blockhash pair it was built against
        """
        signed = await self.wallet.sign_transaction(payload.transaction)
        signed = partial_sign(signed, payload.signers)
        return signed, payload.recent_blockhash

    async def sign_transactions(
        self,
        payloads: Sequence[TransactionPayload],
    ) -> Tuple[List[AnyTransaction], BlockhashWithExpiry]:
        """
        Sign several payloads with one wallet call.

        All payloads must share one blockhash pair, since the batch is
        confirmed against a single expiry.

        Raises:
            TransactionBuildError: If the payloads were built against different blockhashes
        """
        if not payloads:
            raise TransactionBuildError("No transactions to sign")

        recent_blockhash = payloads[0].recent_blockhash
        if any(payload.recent_blockhash != recent_blockhash for payload in payloads):
            raise TransactionBuildError("Transactions were built against different blockhashes")

        signed = await self.wallet.sign_all_transactions([p.transaction for p in payloads])
        signed = [partial_sign(tx, payload.signers) for tx, payload in zip(signed, payloads)]
        return signed, recent_blockhash

    async def _send_and_confirm(
        self,
        transaction: AnyTransaction,
        recent_blockhash: BlockhashWithExpiry,
    ) -> str:
        signature = await self.node.send_transaction(transaction, self.send_options)
        result = await self.node.confirm_transaction(signature, recent_blockhash, self.commitment)
        if result.err is not None:
            raise TransactionExecutionError(signature, result.err)
        return signature

    async def _settle(
        self,
        transaction: AnyTransaction,
        recent_blockhash: BlockhashWithExpiry,
    ) -> SettledResult:
        try:
            signature = await self._send_and_confirm(transaction, recent_blockhash)
        except Exception as e:
            logger.warning("transaction_rejected", error=str(e), error_type=type(e).__name__)
            return SettledResult.rejected(e)

        logger.info("transaction_fulfilled", signature=signature[:16] + "...")
        return SettledResult.fulfilled(signature)

    def construct_send_transactions(
        self,
        transactions: Sequence[AnyTransaction],
        last_valid_block_height: int,
        blockhash: str,
        parallel: bool = True,
    ) -> SendExecutor:
        """
        Create a deferred executor for a batch of signed transactions.

        Nothing is submitted until the returned coroutine function is
        awaited. In parallel mode every submit/confirm sequence runs
        concurrently; otherwise they run one at a time in list order.

        Args:
            transactions: Signed transactions
            last_valid_block_height: Expiry of the shared blockhash
            blockhash: Blockhash the transactions were built against
            parallel: Run the sequences concurrently

        Returns:
            Coroutine function returning one SettledResult per transaction,
            in list order
        """
        recent_blockhash = BlockhashWithExpiry(
            blockhash=blockhash,
            last_valid_block_height=last_valid_block_height,
        )
        transactions = list(transactions)

        async def execute() -> List[SettledResult]:
            logger.info(
                "batch_execution_started",
                transactions=len(transactions),
                parallel=parallel,
                last_valid_block_height=last_valid_block_height,
            )

            if parallel:
                results = list(
                    await asyncio.gather(
                        *(self._settle(tx, recent_blockhash) for tx in transactions)
                    )
                )
            else:
                results = []
                for tx in transactions:
                    results.append(await self._settle(tx, recent_blockhash))

            logger.info(
                "batch_execution_completed",
                fulfilled=sum(1 for r in results if r.is_fulfilled),
                rejected=sum(1 for r in results if r.is_rejected),
            )
            return results

        return execute

    async def send_transaction(
        self,
        transaction: AnyTransaction,
        last_valid_block_height: int,
        blockhash: str,
    ) -> str:
        """
        Submit and confirm one signed transaction.

        Returns:
            Transaction signature

        Raises:
            Whatever the submission or confirmation raised
        """
        execute = self.construct_send_transactions(
            [transaction], last_valid_block_height, blockhash
        )
        results = await execute()
        return results[0].unwrap()

    async def sign_and_construct_transaction(
        self,
        payload: TransactionPayload,
    ) -> Tuple[str, Callable[[], Awaitable[str]]]:
        """
        Sign a payload and prepare its execution.

        Returns:
            The transaction signature (known once signed) and a coroutine
            function that submits and confirms it
        """
        signed, recent_blockhash = await self.sign_transaction(payload)

        async def execute() -> str:
            return await self.send_transaction(
                signed,
                recent_blockhash.last_valid_block_height,
                recent_blockhash.blockhash,
            )

        return str(signed.signatures[0]), execute

    async def sign_and_construct_transactions(
        self,
        payloads: Sequence[TransactionPayload],
        parallel: bool = True,
    ) -> Tuple[List[str], SendExecutor]:
        """
        Sign several payloads and prepare their batch execution.

        Returns:
            The transaction signatures and the deferred batch executor
        """
        signed, recent_blockhash = await self.sign_transactions(payloads)
        execute = self.construct_send_transactions(
            signed,
            recent_blockhash.last_valid_block_height,
            recent_blockhash.blockhash,
            parallel=parallel,
        )
        return [str(tx.signatures[0]) for tx in signed], execute
