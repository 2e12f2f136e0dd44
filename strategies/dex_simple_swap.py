from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from connectors.dex.uniswap_v3 import BalanceSnapshot, UniswapV3Connector
from connectors.dex.uniswap_v3_client import NATIVE_DECIMALS, QuoteParams, SwapParams, TokenInfo
from core.config import SwapSettings
from core.errors import SwapError, SwapFailed
from core.log import log, log_error, set_debug
from strategies.utils import compute_deadline, compute_min_amount_out, scale_amount


EXACT_INPUT = "exactInputSingle"
EXACT_OUTPUT = "exactOutputSingle"

# share of the original quote requested when falling back to exact-output
EXACT_OUTPUT_TARGET_PERCENT = 90


@dataclass
class SwapResult:
    success: bool
    tx_hash: str
    amount_in: str
    amount_out: str
    method: str = EXACT_INPUT
    explorer_url: Optional[str] = None


class DexSimpleSwap:
    """
    Executes one swap on a Uniswap V3 pool, top to bottom:

    token info -> amount check -> (wrap) -> balances -> approve -> pool -> quote -> swap -> balances

    If exactInputSingle fails and ``try_exact_output`` is set, a single
    exactOutputSingle attempt for 90% of the quoted output follows.
    """

    def __init__(self, settings: SwapSettings, connector: Optional[UniswapV3Connector] = None) -> None:
        settings.validate()
        self.settings = settings
        set_debug(settings.debug_mode)
        self.connector = connector or UniswapV3Connector(settings)

    def _report_changes(self, title: str, before: BalanceSnapshot, after: BalanceSnapshot, token_in: TokenInfo, token_out: TokenInfo):
        spent = before.token_in - after.token_in
        received = after.token_out - before.token_out
        fmt = self.connector.format_amount
        log(title, {
            f"{token_in.symbol}Change": f"-{fmt(spent, token_in.decimals)} {token_in.symbol}",
            f"{token_out.symbol}Change": f"+{fmt(received, token_out.decimals)} {token_out.symbol}",
        })
        return fmt(spent, token_in.decimals), fmt(received, token_out.decimals)

    def run(self) -> SwapResult:
        cfg = self.settings
        conn = self.connector
        try:
            token_in = conn.fetch_token_info(cfg.token_in_address)
            token_out = conn.fetch_token_info(cfg.token_out_address)
            log(f"Starting swap process for {cfg.amount} {token_in.symbol} to {token_out.symbol}...")

            # checked before the wrap so nothing is sent for an unusable amount
            amount_in = conn.client.to_wei(cfg.amount, token_in.decimals)
            if amount_in <= 0:
                raise ValueError(f"amount {cfg.amount} rounds to zero at {token_in.decimals} decimals")
            log(f"Swap amount in smallest units: {amount_in}")

            if cfg.wrap_amount > 0:
                conn.wrap_native(conn.client.to_wei(cfg.wrap_amount, NATIVE_DECIMALS))

            initial = conn.log_balances(token_in, token_out)

            conn.ensure_approval(token_in, amount_in)

            pool = conn.locate_pool(token_in, token_out)
            log(f"Fetching quote for: {token_in.symbol} to {token_out.symbol} with fee {pool.fee}")
            quoted_out = conn.get_quote(
                QuoteParams(token_in=token_in.address, token_out=token_out.address, fee=pool.fee, amount=amount_in),
                token_out,
            )

            min_out = compute_min_amount_out(quoted_out, cfg.slippage_tolerance)
            log("Quote details:", {
                "amountIn": conn.format_amount(amount_in, token_in.decimals),
                "quotedAmountOut": conn.format_amount(quoted_out, token_out.decimals),
                "slippageTolerance": f"{cfg.slippage_tolerance * 100:g}%",
                "amountOutMinimum": conn.format_amount(min_out, token_out.decimals),
            })

            params = SwapParams(
                token_in=token_in.address,
                token_out=token_out.address,
                fee=pool.fee,
                recipient=conn.wallet_address,
                deadline=compute_deadline(cfg.deadline_seconds),
                amount_in=amount_in,
                amount_out_minimum=min_out,
            )
            log("Final swap parameters:", {
                "tokenIn": params.token_in,
                "tokenOut": params.token_out,
                "fee": params.fee,
                "recipient": params.recipient,
                "deadline": datetime.fromtimestamp(params.deadline, tz=timezone.utc).isoformat(),
                "amountIn": conn.format_amount(amount_in, token_in.decimals),
                "amountOutMinimum": conn.format_amount(min_out, token_out.decimals),
            })

            try:
                tx_hash = conn.execute_swap(params, token_in, token_out)
                method = EXACT_INPUT
            except SwapFailed as swap_error:
                log_error("ExactInputSingle swap failed, trying alternative approach", swap_error)
                if not cfg.try_exact_output:
                    raise SwapFailed("Swap failed and exact-output fallback is disabled", swap_error) from swap_error
                desired_out = scale_amount(quoted_out, EXACT_OUTPUT_TARGET_PERCENT)
                log(f"Attempting alternative approach: exactOutputSingle for {conn.format_amount(desired_out, token_out.decimals)} {token_out.symbol}")
                try:
                    tx_hash = conn.try_exact_output_swap(pool.fee, desired_out, token_in, token_out)
                except SwapError as alternate_error:
                    raise SwapFailed(
                        "Swap failed on both exactInputSingle and exactOutputSingle",
                        swap_error,
                        alternate_error=alternate_error,
                    ) from alternate_error
                method = EXACT_OUTPUT

            final = conn.log_balances(token_in, token_out)
            title = "Swap Results:" if method == EXACT_INPUT else "Swap Results (using exactOutputSingle):"
            spent, received = self._report_changes(title, initial, final, token_in, token_out)
            log("Swap completed successfully!" if method == EXACT_INPUT else "Swap completed successfully using exactOutputSingle!")
            return SwapResult(
                success=True,
                tx_hash=tx_hash,
                amount_in=conn.format_amount(amount_in, token_in.decimals) if method == EXACT_INPUT else spent,
                amount_out=received,
                method=method,
                explorer_url=conn.tx_explorer_url(tx_hash),
            )
        except Exception as e:
            log_error("An error occurred during swap execution", e)
            raise
