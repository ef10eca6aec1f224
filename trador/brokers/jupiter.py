"""Jupiter aggregator settlement for live trading on Solana."""

import asyncio
import logging
import math
from typing import Optional

import httpx

from trador.brokers.base import BaseSettlement, Direction, SettlementResult, WalletSigner

logger = logging.getLogger(__name__)

SOL_MINT = "So11111111111111111111111111111111111111112"
SOL_DECIMALS = 9
# Most SPL tokens use 6 decimals
DEFAULT_TOKEN_DECIMALS = 6

JUPITER_BASE = "https://quote-api.jup.ag/v6"


def friendly_error(message: str) -> str:
    """Map common wallet and RPC errors to operator friendly text."""
    if "User rejected" in message:
        return "User rejected request"
    if "insufficient funds" in message.lower():
        return "Insufficient funds for transaction"
    return message or "Unknown error"


class JupiterSettlement(BaseSettlement):
    """Settles swaps between SOL and SPL tokens through Jupiter v6.

    Quotes and swap transactions come from the Jupiter HTTP API; signing,
    submission and confirmation are delegated to a ``WalletSigner``.
    """

    def __init__(
        self,
        signer: WalletSigner,
        client: Optional[httpx.AsyncClient] = None,
        slippage_bps: int = 100,
        confirm_timeout: float = 60.0,
    ):
        """Initialize Jupiter settlement.

        Args:
            signer: Wallet that signs and submits transactions.
            client: HTTP client. A new one is created when omitted.
            slippage_bps: Allowed slippage in basis points.
            confirm_timeout: Seconds to wait for confirmation.
        """
        self._signer = signer
        self._client = client or httpx.AsyncClient(base_url=JUPITER_BASE, timeout=15.0)
        self._slippage_bps = slippage_bps
        self._confirm_timeout = confirm_timeout

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_balance(self) -> float:
        return await self._signer.get_balance()

    async def _decimals(self, mint: str) -> int:
        if mint == SOL_MINT:
            return SOL_DECIMALS
        try:
            decimals = await self._signer.get_token_decimals(mint)
        except Exception as e:
            logger.warning("Error fetching mint info for %s: %s", mint, e)
            return DEFAULT_TOKEN_DECIMALS
        if decimals is None:
            logger.warning("Could not fetch decimals for %s, defaulting to %d", mint, DEFAULT_TOKEN_DECIMALS)
            return DEFAULT_TOKEN_DECIMALS
        return decimals

    async def _get_quote(self, input_mint: str, output_mint: str, amount_atomic: int) -> dict:
        response = await self._client.get(
            "/quote",
            params={
                "inputMint": input_mint,
                "outputMint": output_mint,
                "amount": amount_atomic,
                "slippageBps": self._slippage_bps,
            },
        )
        quote = response.json()
        if not quote or "error" in quote:
            raise RuntimeError((quote or {}).get("error") or "Failed to get quote from Jupiter")
        return quote

    async def _get_swap_transaction(self, quote: dict) -> str:
        response = await self._client.post(
            "/swap",
            json={
                "quoteResponse": quote,
                "userPublicKey": self._signer.public_key,
                "wrapAndUnwrapSol": True,
                "prioritizationFeeLamports": "auto",
            },
        )
        payload = response.json()
        transaction = payload.get("swapTransaction") if isinstance(payload, dict) else None
        if not transaction:
            raise RuntimeError("Failed to generate swap transaction")
        return transaction

    async def execute(self, direction: Direction, address: str, amount: float) -> SettlementResult:
        """Execute a swap through Jupiter.

        Args:
            direction: BUY swaps SOL into the token, SELL swaps the token into SOL.
            address: Token mint address.
            amount: SOL to spend for BUY, tokens to sell for SELL.

        Returns:
            CONFIRMED with the signature, UNCONFIRMED when the transaction was
            submitted but not confirmed in time, FAILED otherwise.
        """
        input_mint, output_mint = (SOL_MINT, address) if direction == "BUY" else (address, SOL_MINT)

        try:
            decimals = await self._decimals(input_mint)
            amount_atomic = math.floor(amount * 10 ** decimals)
            if amount_atomic <= 0:
                return SettlementResult.failed("Amount too small for transaction")

            quote = await self._get_quote(input_mint, output_mint, amount_atomic)
            transaction = await self._get_swap_transaction(quote)
            signature = await self._signer.send_transaction(transaction)
        except Exception as e:
            logger.error("Jupiter swap execution failed: %s", e)
            return SettlementResult.failed(friendly_error(str(e)))

        try:
            confirmed = await asyncio.wait_for(
                self._signer.confirm_transaction(signature), timeout=self._confirm_timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Transaction %s not confirmed within %.0fs", signature, self._confirm_timeout)
            return SettlementResult(
                status="UNCONFIRMED",
                signature=signature,
                message="Submitted but not confirmed; reconcile manually",
            )
        except Exception as e:
            logger.error("Confirmation of %s failed: %s", signature, e)
            return SettlementResult(
                status="UNCONFIRMED",
                signature=signature,
                message=f"Confirmation error ({friendly_error(str(e))}); reconcile manually",
            )

        if not confirmed:
            return SettlementResult(status="FAILED", signature=signature, message="Transaction failed on chain")
        return SettlementResult(status="CONFIRMED", signature=signature, message="Swap confirmed")
