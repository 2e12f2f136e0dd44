from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv


# Sepolia deployment used by the test node (forked from Sepolia)
SEPOLIA_CHAIN_ID = 11155111
DEFAULT_RPC_URL = "http://127.0.0.1:8545"
DEFAULT_EXPLORER_URL = "https://sepolia.etherscan.io"

POOL_FACTORY_ADDRESS = "0x0227628f3F023bb0B980b67D528571c95c6DaC1c"
QUOTER_ADDRESS = "0xEd1f6473345F45b75F8179591dd5bA1888cf2FB3"
SWAP_ROUTER_ADDRESS = "0x3bFA4769FB09eefC5a80d6E87c3B9C650f7Ae48E"

WETH_ADDRESS = "0xfFf9976782d46CC05630D1f6eBAb18b2324d6B14"
USDC_ADDRESS = "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"

FEE_TIERS: Tuple[int, ...] = (500, 3000, 10000)

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class SwapSettings:
    """Everything one swap run needs. Built from the environment by ``from_env``."""

    private_key: str = field(default="", repr=False)
    rpc_url: str = DEFAULT_RPC_URL
    chain_id: int = SEPOLIA_CHAIN_ID
    explorer_url: str = DEFAULT_EXPLORER_URL
    factory_address: str = POOL_FACTORY_ADDRESS
    quoter_address: str = QUOTER_ADDRESS
    router_address: str = SWAP_ROUTER_ADDRESS
    token_in_address: str = WETH_ADDRESS
    token_out_address: str = USDC_ADDRESS
    wrapped_native_address: str = WETH_ADDRESS
    amount: float = 0.1
    slippage_tolerance: float = 0.05
    # native amount to wrap before swapping; 0 skips the wrap step
    wrap_amount: float = 0.0
    try_exact_output: bool = True
    reset_allowance_first: bool = False
    debug_mode: bool = False
    fee_tiers: Tuple[int, ...] = FEE_TIERS
    deadline_seconds: int = 600
    gas_buffer_percent: int = 130
    fallback_gas_limit: int = 1_000_000
    wrap_gas_limit: int = 200_000
    approve_gas_limit: int = 100_000
    receipt_timeout: int = 120
    request_timeout: int = 15

    def validate(self) -> None:
        if self.amount <= 0:
            raise ValueError(f"amount must be positive: {self.amount}")
        if not 0 < self.slippage_tolerance < 1:
            raise ValueError(f"slippage_tolerance must be between 0 and 1: {self.slippage_tolerance}")
        if self.wrap_amount < 0:
            raise ValueError(f"wrap_amount must not be negative: {self.wrap_amount}")
        if not self.fee_tiers:
            raise ValueError("at least one fee tier is required")

    def tx_explorer_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url.rstrip('/')}/tx/{tx_hash}"

    def with_overrides(self, **changes) -> "SwapSettings":
        """Return a copy with the non-None values of ``changes`` applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, dotenv_path: Optional[str] = None) -> "SwapSettings":
        """Load settings from ``environ`` (default: ``os.environ`` after reading ``.env``)."""
        if environ is None:
            load_dotenv(dotenv_path)
            environ = os.environ
        defaults = cls()
        return cls(
            private_key=environ.get("PRIVATE_KEY", "").strip(),
            rpc_url=environ.get("RPC_URL") or defaults.rpc_url,
            chain_id=int(environ.get("CHAIN_ID") or defaults.chain_id),
            explorer_url=environ.get("EXPLORER_URL") or defaults.explorer_url,
            factory_address=environ.get("POOL_FACTORY_ADDRESS") or defaults.factory_address,
            quoter_address=environ.get("QUOTER_ADDRESS") or defaults.quoter_address,
            router_address=environ.get("SWAP_ROUTER_ADDRESS") or defaults.router_address,
            token_in_address=environ.get("TOKEN_IN_ADDRESS") or defaults.token_in_address,
            token_out_address=environ.get("TOKEN_OUT_ADDRESS") or defaults.token_out_address,
            wrapped_native_address=environ.get("WRAPPED_NATIVE_ADDRESS") or defaults.wrapped_native_address,
            amount=float(environ.get("SWAP_AMOUNT") or defaults.amount),
            slippage_tolerance=float(environ.get("SLIPPAGE_TOLERANCE") or defaults.slippage_tolerance),
            wrap_amount=float(environ.get("WRAP_AMOUNT") or defaults.wrap_amount),
            try_exact_output=_env_bool(environ.get("TRY_EXACT_OUTPUT"), defaults.try_exact_output),
            reset_allowance_first=_env_bool(environ.get("RESET_ALLOWANCE_FIRST"), defaults.reset_allowance_first),
            debug_mode=_env_bool(environ.get("DEBUG_MODE"), defaults.debug_mode),
        )
