"""In-memory stand-in for UniswapV3Client used across the test suite."""
from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

from web3.exceptions import ContractLogicError

from connectors.dex.uniswap_v3_client import (
    ZERO_ADDRESS,
    ExactOutputParams,
    QuoteParams,
    UniswapV3Client,
)
from core.config import SwapSettings
from core.errors import TransactionReverted


WALLET = "0x000000000000000000000000000000000000bEEF"
WETH = "0xfFf9976782d46CC05630D1f6eBAb18b2324d6B14"
USDC = "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"
POOL_3000 = "0x00000000000000000000000000000000000C0FFE"
ROUTER = "0x3bFA4769FB09eefC5a80d6E87c3B9C650f7Ae48E"

# 150.25 USDC for 0.1 WETH
QUOTED_OUT = 150_250_000


def make_settings(**overrides) -> SwapSettings:
    base = SwapSettings(private_key="0x" + "11" * 32, token_in_address=WETH, token_out_address=USDC, wrapped_native_address=WETH)
    return base.with_overrides(**overrides)


class FakeClient:
    gather = staticmethod(UniswapV3Client.gather)
    to_wei = staticmethod(UniswapV3Client.to_wei)
    from_wei = staticmethod(UniswapV3Client.from_wei)

    def __init__(self) -> None:
        self.address = WALLET
        self.router_address = ROUTER
        self.tokens: Dict[str, Tuple[str, str, int]] = {
            WETH: ("WETH", "Wrapped Ether", 18),
            USDC: ("USDC", "USDC", 6),
        }
        self.native = 5 * 10**18
        self.balances: Dict[str, int] = {WETH: 10**18, USDC: 0}
        self.allowances: Dict[Tuple[str, str], int] = {}
        self.pools: Dict[Tuple[str, str, int], str] = {(WETH, USDC, 3000): POOL_3000}
        self.pool_state = {
            "token0": USDC,
            "token1": WETH,
            "fee": 3000,
            "liquidity": 10**20,
            "sqrt_price_x96": 2**96,
            "tick": 0,
        }
        self.quote_fn: Callable[[QuoteParams], int] = lambda p: QUOTED_OUT
        self.exact_output_in = 9 * 10**16
        self.estimate_error: Optional[Exception] = None
        self.swap_errors: Dict[str, Exception] = {}
        self.approve_error: Optional[Exception] = None
        self.reverted: List[str] = []
        self.revert_kinds: set = set()
        self.pool_probes: List[Tuple[str, str, int]] = []
        self.quotes: List[QuoteParams] = []
        self.txs: List[Tuple] = []

    # reads
    def _meta(self, token: str) -> Tuple[str, str, int]:
        if token not in self.tokens:
            raise ContractLogicError("execution reverted")
        return self.tokens[token]

    def get_symbol(self, token):
        return self._meta(token)[0]

    def get_name(self, token):
        return self._meta(token)[1]

    def get_decimals(self, token):
        return self._meta(token)[2]

    def get_balance(self, token, owner=None):
        return self.balances.get(token, 0)

    def get_native_balance(self, owner=None):
        return self.native

    def get_allowance(self, token, spender=None, owner=None):
        return self.allowances.get((token, spender or ROUTER), 0)

    def get_pool(self, token_a, token_b, fee):
        self.pool_probes.append((token_a, token_b, fee))
        return self.pools.get((token_a, token_b, fee), ZERO_ADDRESS)

    def get_pool_state(self, pool_address):
        return dict(self.pool_state)

    def get_pool_liquidity(self, pool_address):
        return self.pool_state["liquidity"]

    def quote_exact_input_single(self, params):
        self.quotes.append(params)
        return self.quote_fn(params)

    def quote_exact_output_single(self, params):
        self.quotes.append(params)
        return self.exact_output_in

    # writes
    def _tx(self, *record) -> str:
        tx_hash = "0x" + f"{len(self.txs):064x}"
        self.txs.append(record + (tx_hash,))
        return tx_hash

    def deposit(self, weth_address, amount_wei, gas_limit):
        self.native -= amount_wei
        self.balances[weth_address] = self.balances.get(weth_address, 0) + amount_wei
        return self._tx("deposit", amount_wei, gas_limit)

    def approve(self, token, amount, spender=None, gas_limit=None):
        if self.approve_error is not None:
            raise self.approve_error
        self.allowances[(token, spender or ROUTER)] = int(amount)
        return self._tx("approve", token, int(amount), gas_limit)

    def estimate_swap_gas(self, params):
        if self.estimate_error is not None:
            raise self.estimate_error
        return 200_000

    def swap(self, params, gas_limit):
        kind = "exactOutputSingle" if isinstance(params, ExactOutputParams) else "exactInputSingle"
        if kind in self.swap_errors:
            raise self.swap_errors[kind]
        if kind in self.revert_kinds:
            tx_hash = self._tx(kind, params, gas_limit)
            self.reverted.append(tx_hash)
            return tx_hash
        if kind == "exactInputSingle":
            self.balances[params.token_in] -= params.amount_in
            self.balances[params.token_out] = self.balances.get(params.token_out, 0) + QUOTED_OUT
        else:
            self.balances[params.token_in] -= self.exact_output_in
            self.balances[params.token_out] = self.balances.get(params.token_out, 0) + params.amount_out
        return self._tx(kind, params, gas_limit)

    def wait_for_receipt(self, tx_hash):
        if tx_hash in self.reverted:
            raise TransactionReverted(tx_hash)
        return {"status": 1, "transactionHash": tx_hash}

    def kinds(self) -> List[str]:
        return [t[0] for t in self.txs]
