from __future__ import annotations

import argparse
from typing import List, Optional

from core.config import SwapSettings
from core.errors import SwapError
from core.log import log, log_error
from cli.utils import confirm
from strategies.dex_simple_swap import DexSimpleSwap


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="v3-swap",
        description="Swap one token for another on a Uniswap V3 pool (settings from environment / .env).",
    )
    parser.add_argument("--amount", type=float, help="amount of the input token to swap")
    parser.add_argument("--slippage", type=float, help="slippage tolerance as a fraction, e.g. 0.05")
    parser.add_argument("--token-in", help="input token contract address")
    parser.add_argument("--token-out", help="output token contract address")
    parser.add_argument("--rpc-url", help="JSON-RPC endpoint")
    parser.add_argument("--wrap", type=float, metavar="AMOUNT", help="wrap this much native currency before swapping")
    parser.add_argument("--no-exact-output", action="store_true", help="do not retry with exactOutputSingle on failure")
    parser.add_argument("--reset-allowance", action="store_true", help="set allowance to zero before re-approving")
    parser.add_argument("--debug", action="store_true", help="print extra diagnostics")
    parser.add_argument("--confirm", action="store_true", help="ask before sending any transaction")
    parser.add_argument("--env-file", help="path to a .env file (default: ./.env)")
    return parser


def load_settings(args: argparse.Namespace) -> SwapSettings:
    settings = SwapSettings.from_env(dotenv_path=args.env_file)
    return settings.with_overrides(
        amount=args.amount,
        slippage_tolerance=args.slippage,
        token_in_address=args.token_in,
        token_out_address=args.token_out,
        rpc_url=args.rpc_url,
        wrap_amount=args.wrap,
        try_exact_output=False if args.no_exact_output else None,
        reset_allowance_first=True if args.reset_allowance else None,
        debug_mode=True if args.debug else None,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(args)
        settings.validate()
    except ValueError as e:
        log_error("Invalid configuration", e)
        return 1
    if not settings.private_key:
        log_error("PRIVATE_KEY is not set in the environment")
        return 1

    log(f"Starting script with swap amount: {settings.amount}")
    if args.confirm and not confirm(f"Swap {settings.amount} of {settings.token_in_address} for {settings.token_out_address}? (yes/no): "):
        print("Cancelled.")
        return 1

    try:
        result = DexSimpleSwap(settings).run()
    except (SwapError, RuntimeError, ValueError) as e:
        log_error("Script failed", e)
        return 1
    log("Result:", {
        "success": result.success,
        "txHash": result.tx_hash,
        "explorer": result.explorer_url,
        "amountIn": result.amount_in,
        "amountOut": result.amount_out,
        "method": result.method,
    })
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
