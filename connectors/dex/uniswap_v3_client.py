from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN, localcontext
from typing import Any, Callable, Dict, List, Optional, Tuple

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.contract import Contract

from connectors.dex.abis import ERC20_ABI, FACTORY_ABI, POOL_ABI, QUOTER_V2_ABI, SWAP_ROUTER_ABI, WETH_ABI
from core.errors import TransactionReverted
from strategies.utils import DECIMAL_PRECISION


ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
NATIVE_DECIMALS = 18


@dataclass(frozen=True)
class TokenInfo:
    chain_id: int
    address: str
    decimals: int
    symbol: str
    name: str


@dataclass(frozen=True)
class PoolInfo:
    address: str
    token0: str
    token1: str
    fee: int
    liquidity: int
    sqrt_price_x96: int
    tick: int
    token_in_is_token0: bool


@dataclass(frozen=True)
class QuoteParams:
    token_in: str
    token_out: str
    fee: int
    amount: int
    sqrt_price_limit_x96: int = 0

    def as_struct(self) -> Tuple:
        # QuoterV2 struct order: tokenIn, tokenOut, amount, fee, sqrtPriceLimitX96
        return (self.token_in, self.token_out, int(self.amount), int(self.fee), int(self.sqrt_price_limit_x96))


@dataclass(frozen=True)
class SwapParams:
    token_in: str
    token_out: str
    fee: int
    recipient: str
    deadline: int
    amount_in: int
    amount_out_minimum: int
    sqrt_price_limit_x96: int = 0

    def as_struct(self) -> Tuple:
        return (
            self.token_in,
            self.token_out,
            int(self.fee),
            self.recipient,
            int(self.deadline),
            int(self.amount_in),
            int(self.amount_out_minimum),
            int(self.sqrt_price_limit_x96),
        )


@dataclass(frozen=True)
class ExactOutputParams:
    token_in: str
    token_out: str
    fee: int
    recipient: str
    deadline: int
    amount_out: int
    amount_in_maximum: int
    sqrt_price_limit_x96: int = 0

    def as_struct(self) -> Tuple:
        return (
            self.token_in,
            self.token_out,
            int(self.fee),
            self.recipient,
            int(self.deadline),
            int(self.amount_out),
            int(self.amount_in_maximum),
            int(self.sqrt_price_limit_x96),
        )


class UniswapV3Client:
    """
    Low-level access to a Uniswap V3 deployment through web3.

    Reads go straight to eth_call; writes are built, signed locally with the
    configured key and pushed with eth_sendRawTransaction. Amounts are always
    integers in the token's smallest unit here.
    """

    def __init__(
        self,
        rpc_url: str,
        private_key: Optional[str] = None,
        chain_id: int = 11155111,
        factory_address: Optional[str] = None,
        quoter_address: Optional[str] = None,
        router_address: Optional[str] = None,
        request_timeout: int = 15,
        receipt_timeout: int = 120,
    ) -> None:
        # Request timeout keeps a dead node from hanging the run
        self.web3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout}))
        if not self.web3.is_connected():
            raise RuntimeError(f"Failed to connect to RPC provider at {rpc_url}")
        self.chain_id: int = chain_id
        self.receipt_timeout = receipt_timeout
        self._account: Optional[LocalAccount] = Account.from_key(private_key) if private_key else None
        self.factory_address: Optional[str] = self.to_checksum(factory_address) if factory_address else None
        self.quoter_address: Optional[str] = self.to_checksum(quoter_address) if quoter_address else None
        self.router_address: Optional[str] = self.to_checksum(router_address) if router_address else None
        self._factory: Optional[Contract] = self.web3.eth.contract(address=self.factory_address, abi=FACTORY_ABI) if self.factory_address else None
        self._quoter: Optional[Contract] = self.web3.eth.contract(address=self.quoter_address, abi=QUOTER_V2_ABI) if self.quoter_address else None
        self._router: Optional[Contract] = self.web3.eth.contract(address=self.router_address, abi=SWAP_ROUTER_ABI) if self.router_address else None

    def to_checksum(self, address: str) -> str:
        return self.web3.to_checksum_address(address)

    @property
    def address(self) -> Optional[str]:
        return self._account.address if self._account else None

    def erc20(self, token: str) -> Contract:
        return self.web3.eth.contract(address=self.to_checksum(token), abi=ERC20_ABI)

    def weth(self, token: str) -> Contract:
        return self.web3.eth.contract(address=self.to_checksum(token), abi=WETH_ABI)

    def pool(self, pool_address: str) -> Contract:
        return self.web3.eth.contract(address=self.to_checksum(pool_address), abi=POOL_ABI)

    @staticmethod
    def gather(*calls: Callable[[], Any]) -> List[Any]:
        """Run independent read calls together and return results in call order.

        The first exception raised by any call propagates after all are joined.
        """
        if not calls:
            return []
        with ThreadPoolExecutor(max_workers=len(calls)) as pool:
            futures = [pool.submit(call) for call in calls]
            return [f.result() for f in futures]

    # ----------------------------
    # amount helpers
    # ----------------------------
    @staticmethod
    def to_wei(amount_decimal: Any, decimals: int) -> int:
        # Round down so we never ask for more than the user typed
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            value = (Decimal(str(amount_decimal)) * (Decimal(10) ** int(decimals))).to_integral_value(rounding=ROUND_DOWN)
        return int(value)

    @staticmethod
    def from_wei(amount_wei: int, decimals: int) -> Decimal:
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            return Decimal(int(amount_wei)) / (Decimal(10) ** int(decimals))

    # ----------------------------
    # reads
    # ----------------------------
    def _owner(self, owner: Optional[str]) -> str:
        return self.to_checksum(owner or self.address or ZERO_ADDRESS)

    def get_symbol(self, token: str) -> str:
        return str(self.erc20(token).functions.symbol().call())

    def get_name(self, token: str) -> str:
        return str(self.erc20(token).functions.name().call())

    def get_decimals(self, token: str) -> int:
        return int(self.erc20(token).functions.decimals().call())

    def get_balance(self, token: str, owner: Optional[str] = None) -> int:
        return int(self.erc20(token).functions.balanceOf(self._owner(owner)).call())

    def get_native_balance(self, owner: Optional[str] = None) -> int:
        return int(self.web3.eth.get_balance(self._owner(owner)))

    def get_allowance(self, token: str, spender: Optional[str] = None, owner: Optional[str] = None) -> int:
        spender_addr = self.to_checksum(spender or self._require(self.router_address, "SwapRouter"))
        return int(self.erc20(token).functions.allowance(self._owner(owner), spender_addr).call())

    def get_pool(self, token_a: str, token_b: str, fee: int) -> str:
        factory = self._require(self._factory, "Pool factory")
        return str(factory.functions.getPool(self.to_checksum(token_a), self.to_checksum(token_b), int(fee)).call())

    def get_pool_state(self, pool_address: str) -> Dict[str, Any]:
        contract = self.pool(pool_address)
        token0, token1, fee, liquidity, slot0 = self.gather(
            contract.functions.token0().call,
            contract.functions.token1().call,
            contract.functions.fee().call,
            contract.functions.liquidity().call,
            contract.functions.slot0().call,
        )
        return {
            "token0": str(token0),
            "token1": str(token1),
            "fee": int(fee),
            "liquidity": int(liquidity),
            "sqrt_price_x96": int(slot0[0]),
            "tick": int(slot0[1]),
        }

    def get_pool_liquidity(self, pool_address: str) -> int:
        return int(self.pool(pool_address).functions.liquidity().call())

    def quote_exact_input_single(self, params: QuoteParams) -> int:
        quoter = self._require(self._quoter, "Quoter")
        amount_out, _, _, _ = quoter.functions.quoteExactInputSingle(self._checksum_quote(params)).call()
        return int(amount_out)

    def quote_exact_output_single(self, params: QuoteParams) -> int:
        quoter = self._require(self._quoter, "Quoter")
        amount_in, _, _, _ = quoter.functions.quoteExactOutputSingle(self._checksum_quote(params)).call()
        return int(amount_in)

    def _checksum_quote(self, params: QuoteParams) -> Tuple:
        struct = params.as_struct()
        return (self.to_checksum(struct[0]), self.to_checksum(struct[1])) + struct[2:]

    # ----------------------------
    # writes
    # ----------------------------
    @staticmethod
    def _require(value: Any, what: str) -> Any:
        if value is None:
            raise RuntimeError(f"{what} not configured for this client")
        return value

    def _require_account(self) -> LocalAccount:
        if self._account is None:
            raise RuntimeError("Private key is required for this operation")
        return self._account

    def _default_tx_params(self, gas_limit: Optional[int] = None, value: int = 0) -> Dict:
        # 'pending' nonce so back-to-back transactions (approve then swap) do not collide
        params: Dict[str, Any] = {
            "chainId": self.chain_id,
            "from": self.address,
            "nonce": self.web3.eth.get_transaction_count(self.address, "pending"),
        }
        if value:
            params["value"] = int(value)
        if gas_limit is not None:
            params["gas"] = int(gas_limit)
        return params

    def _sign_and_send(self, tx: Dict) -> str:
        account = self._require_account()
        signed = self.web3.eth.account.sign_transaction(tx, private_key=account.key)
        raw_tx = getattr(signed, "raw_transaction", None) or getattr(signed, "rawTransaction", None)
        if raw_tx is None:
            raise RuntimeError("SignedTransaction missing raw transaction bytes")
        tx_hash = self.web3.eth.send_raw_transaction(raw_tx)
        return self.web3.to_hex(tx_hash)

    def wait_for_receipt(self, tx_hash: str) -> Dict[str, Any]:
        receipt = self.web3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        if int(receipt["status"]) != 1:
            raise TransactionReverted(tx_hash)
        return dict(receipt)

    def deposit(self, weth_address: str, amount_wei: int, gas_limit: int) -> str:
        self._require_account()
        fn = self.weth(weth_address).functions.deposit()
        tx = fn.build_transaction(self._default_tx_params(gas_limit, value=int(amount_wei)))
        return self._sign_and_send(tx)

    def approve(self, token: str, amount: int, spender: Optional[str] = None, gas_limit: Optional[int] = None) -> str:
        self._require_account()
        spender_addr = self.to_checksum(spender or self._require(self.router_address, "SwapRouter"))
        fn = self.erc20(token).functions.approve(spender_addr, int(amount))
        tx = fn.build_transaction(self._default_tx_params(gas_limit))
        if gas_limit is None:
            tx["gas"] = int(self.web3.eth.estimate_gas(tx))
        return self._sign_and_send(tx)

    def _swap_function(self, params: Any):
        router = self._require(self._router, "SwapRouter")
        struct = params.as_struct()
        struct = (self.to_checksum(struct[0]), self.to_checksum(struct[1]), struct[2], self.to_checksum(struct[3])) + struct[4:]
        if isinstance(params, ExactOutputParams):
            return router.functions.exactOutputSingle(struct)
        return router.functions.exactInputSingle(struct)

    def estimate_swap_gas(self, params: Any) -> int:
        self._require_account()
        return int(self._swap_function(params).estimate_gas({"from": self.address}))

    def swap(self, params: Any, gas_limit: int) -> str:
        """Submit exactInputSingle (SwapParams) or exactOutputSingle (ExactOutputParams)."""
        self._require_account()
        tx = self._swap_function(params).build_transaction(self._default_tx_params(gas_limit))
        return self._sign_and_send(tx)
