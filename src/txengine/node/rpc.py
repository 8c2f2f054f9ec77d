"""
Solana JSON-RPC adapter for node integration.

Provides network access over HTTP JSON-RPC.
"""

import asyncio
import base64
from typing import Any, List, Optional, Sequence

import httpx
import structlog

from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from txengine.config import EngineConfig, load_config
from txengine.core.options import BlockhashWithExpiry, Commitment, SendOptions
from txengine.node.interface import (
    NodeConnectionError,
    NodeInterface,
    NodeRpcError,
    RecentPrioritizationFee,
    SignatureResult,
    SimulationResult,
    TransactionExpiredError,
    TransactionSubmitError,
)

logger = structlog.get_logger(__name__)


class SolanaRpcAdapter(NodeInterface):
    """
    JSON-RPC adapter.

    Implements the NodeInterface using a Solana RPC endpoint.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the RPC adapter.

        Args:
            config: Engine configuration. Loaded from the environment if not provided.
            http_client: Pre-built HTTP client (the adapter will not close it)
        """
        self.config = config or load_config()
        self.rpc_url = self.config.endpoint
        self.poll_interval = self.config.confirm_poll_interval_seconds
        self._client: Optional[httpx.AsyncClient] = http_client
        self._owns_client = http_client is None
        self._request_id = 0

    @property
    def headers(self) -> dict:
        return {"Content-Type": "application/json"}

    async def connect(self) -> None:
        """Establish connection (create HTTP client)."""
        if self._client is not None:
            return

        self._client = httpx.AsyncClient(
            headers=self.headers,
            timeout=self.config.request_timeout_seconds,
        )
        self._owns_client = True
        logger.info("rpc_connected", rpc_url=self.rpc_url)

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None
            logger.info("rpc_disconnected")

    async def _request(self, method: str, params: Optional[list] = None) -> Any:
        """Make a JSON-RPC call and return its ``result``."""
        if not self._client:
            await self.connect()

        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }

        try:
            response = await self._client.post(self.rpc_url, json=payload)
        except httpx.RequestError as e:
            logger.error("rpc_request_error", method=method, error=str(e))
            raise NodeConnectionError(f"RPC request failed: {e}") from e

        if response.status_code != 200:
            logger.error(
                "rpc_request_failed",
                method=method,
                status=response.status_code,
                error=response.text,
            )
            raise NodeConnectionError(f"RPC HTTP error {response.status_code}: {response.text}")

        data = response.json()
        error = data.get("error")
        if error:
            logger.debug("rpc_error_response", method=method, code=error.get("code"))
            raise NodeRpcError(
                error.get("message", "Unknown RPC error"),
                code=error.get("code"),
                data=error.get("data"),
            )

        return data.get("result")

    async def get_health(self) -> bool:
        """Check whether the node reports itself healthy."""
        try:
            return await self._request("getHealth") == "ok"
        except NodeRpcError:
            return False

    async def get_latest_blockhash(
        self,
        commitment: Commitment = Commitment.CONFIRMED,
    ) -> BlockhashWithExpiry:
        """Get the latest blockhash."""
        result = await self._request(
            "getLatestBlockhash",
            [{"commitment": Commitment(commitment).value}],
        )
        value = result["value"]
        return BlockhashWithExpiry(
            blockhash=value["blockhash"],
            last_valid_block_height=int(value["lastValidBlockHeight"]),
        )

    async def get_block_height(
        self,
        commitment: Commitment = Commitment.CONFIRMED,
    ) -> int:
        """Get the current block height."""
        result = await self._request(
            "getBlockHeight",
            [{"commitment": Commitment(commitment).value}],
        )
        return int(result)

    async def send_raw_transaction(
        self,
        raw_transaction: bytes,
        opts: SendOptions,
    ) -> str:
        """Submit a signed transaction."""
        send_config = {
            "encoding": "base64",
            "skipPreflight": opts.skip_preflight,
            "preflightCommitment": opts.preflight_commitment.value,
        }
        if opts.max_retries is not None:
            send_config["maxRetries"] = opts.max_retries

        encoded = base64.b64encode(raw_transaction).decode("ascii")

        try:
            signature = await self._request("sendTransaction", [encoded, send_config])
        except NodeRpcError as e:
            logger.error("tx_submit_failed", error=str(e), code=e.code)
            raise TransactionSubmitError(
                f"Transaction submission failed: {e}",
                error_code=e.code,
                data=e.data,
            ) from e
        except NodeConnectionError as e:
            raise TransactionSubmitError(f"Transaction submission request failed: {e}") from e

        logger.info("tx_submitted", signature=signature[:16] + "...")
        return signature

    async def get_signature_status(self, signature: str) -> Optional[dict]:
        """Get the status of one signature, or None if the node has not seen it."""
        result = await self._request(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": False}],
        )
        statuses = result.get("value") or [None]
        return statuses[0]

    async def confirm_transaction(
        self,
        signature: str,
        recent_blockhash: BlockhashWithExpiry,
        commitment: Commitment = Commitment.CONFIRMED,
    ) -> SignatureResult:
        """Poll until the signature reaches the commitment or the blockhash expires."""
        commitment = Commitment(commitment)
        last_valid = recent_blockhash.last_valid_block_height

        while True:
            status = await self.get_signature_status(signature)
            if status and commitment.is_reached_by(status.get("confirmationStatus")):
                return self._signature_result(signature, status)

            block_height = await self.get_block_height(commitment)
            if block_height > last_valid:
                # The transaction may have landed between the two queries
                status = await self.get_signature_status(signature)
                if status and commitment.is_reached_by(status.get("confirmationStatus")):
                    return self._signature_result(signature, status)

                logger.warning(
                    "tx_expired",
                    signature=signature[:16] + "...",
                    block_height=block_height,
                    last_valid_block_height=last_valid,
                )
                raise TransactionExpiredError(signature, last_valid)

            await asyncio.sleep(self.poll_interval)

    def _signature_result(self, signature: str, status: dict) -> SignatureResult:
        err = status.get("err")
        if err is None:
            logger.info(
                "tx_confirmed",
                signature=signature[:16] + "...",
                status=status.get("confirmationStatus"),
            )
        else:
            logger.warning("tx_landed_with_error", signature=signature[:16] + "...", err=err)
        return SignatureResult(err=err)

    async def get_recent_prioritization_fees(
        self,
        locked_writable_accounts: Sequence[Pubkey],
    ) -> List[RecentPrioritizationFee]:
        """Get recent prioritization fees for the given writable accounts."""
        result = await self._request(
            "getRecentPrioritizationFees",
            [[str(account) for account in locked_writable_accounts]],
        )
        return [
            RecentPrioritizationFee(
                slot=int(item["slot"]),
                prioritization_fee=int(item["prioritizationFee"]),
            )
            for item in result or []
        ]

    async def simulate_transaction(
        self,
        transaction: VersionedTransaction,
        sig_verify: bool = False,
        replace_recent_blockhash: bool = True,
    ) -> SimulationResult:
        """Simulate a transaction."""
        encoded = base64.b64encode(bytes(transaction)).decode("ascii")
        result = await self._request(
            "simulateTransaction",
            [
                encoded,
                {
                    "encoding": "base64",
                    "sigVerify": sig_verify,
                    "replaceRecentBlockhash": replace_recent_blockhash,
                    "commitment": Commitment.CONFIRMED.value,
                },
            ],
        )
        value = result["value"]
        return SimulationResult(
            err=value.get("err"),
            units_consumed=value.get("unitsConsumed"),
            logs=value.get("logs") or [],
        )
