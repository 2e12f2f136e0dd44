from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Optional

from connectors.base import ExchangeConnector
from connectors.dex.uniswap_v3_client import (
    NATIVE_DECIMALS,
    ZERO_ADDRESS,
    ExactOutputParams,
    PoolInfo,
    QuoteParams,
    SwapParams,
    TokenInfo,
    UniswapV3Client,
)
from core.config import SwapSettings
from core.errors import (
    ApprovalFailed,
    BalanceCheckFailed,
    InsufficientBalance,
    MetadataUnavailable,
    NoPoolFound,
    QuoteFailed,
    SwapError,
    SwapFailed,
    TransactionReverted,
    WrapFailed,
    describe_error,
)
from core.log import debug, log, log_error
from strategies.utils import compute_deadline, compute_max_amount_in, scale_amount


LIKELY_REVERT_CAUSES = """
LIKELY ISSUES:
1. Insufficient liquidity for swap amount
2. Price impact too high (try smaller amount)
3. Pool configuration issue - check token ordering and fee
4. Router configuration issue - check router address and permissions
"""


@dataclass(frozen=True)
class BalanceSnapshot:
    native: int
    token_in: int
    token_out: int


@dataclass(frozen=True)
class ApprovalResult:
    already_approved: bool
    tx_hash: Optional[str] = None
    allowance: int = 0


def is_silent_revert(error: BaseException) -> bool:
    """True for reverts that carry no reason string."""
    if isinstance(error, TransactionReverted):
        return True
    message = str(describe_error(error)["message"]).strip().lower()
    return "without a reason" in message or message.rstrip(":") == "execution reverted"


class UniswapV3Connector(ExchangeConnector):
    """
    Step-by-step swap operations on one Uniswap V3 deployment.

    Wraps UniswapV3Client with the logging and error taxonomy of the swap
    pipeline: each method logs what it reads or sends, and any failed chain
    call is logged and re-raised as a SwapError subclass.
    """

    def __init__(self, settings: SwapSettings, client: Optional[UniswapV3Client] = None) -> None:
        self.settings = settings
        self.chain_id = settings.chain_id
        self.client = client or UniswapV3Client(
            rpc_url=settings.rpc_url,
            private_key=settings.private_key,
            chain_id=settings.chain_id,
            factory_address=settings.factory_address,
            quoter_address=settings.quoter_address,
            router_address=settings.router_address,
            request_timeout=settings.request_timeout,
            receipt_timeout=settings.receipt_timeout,
        )

    @property
    def wallet_address(self) -> str:
        return str(self.client.address)

    def tx_explorer_url(self, tx_hash: str) -> str:
        return self.settings.tx_explorer_url(tx_hash)

    def format_amount(self, amount: int, decimals: int) -> str:
        return str(self.client.from_wei(amount, decimals))

    # ----------------------------
    # token metadata and balances
    # ----------------------------
    def fetch_token_info(self, address: str) -> TokenInfo:
        log(f"Fetching token info for address: {address}")
        try:
            symbol, name, decimals = self.client.gather(
                lambda: self.client.get_symbol(address),
                lambda: self.client.get_name(address),
                lambda: self.client.get_decimals(address),
            )
        except Exception as e:
            log_error(f"Error fetching token info for {address}", e)
            raise MetadataUnavailable(f"Failed to retrieve token info for {address}", e) from e
        info = TokenInfo(chain_id=self.chain_id, address=address, decimals=int(decimals), symbol=str(symbol), name=str(name))
        log("Token info retrieved:", asdict(info))
        return info

    def check_balance(self, token: TokenInfo) -> int:
        try:
            balance = self.client.get_balance(token.address)
        except Exception as e:
            log_error(f"Error checking {token.symbol} balance", e)
            raise BalanceCheckFailed(f"Failed to check {token.symbol} balance", e) from e
        log(f"{token.symbol} Balance: {self.format_amount(balance, token.decimals)} {token.symbol}")
        return balance

    def fetch_balances(self, token_in: TokenInfo, token_out: TokenInfo) -> BalanceSnapshot:
        log(f"Checking wallet balances for {self.wallet_address}...")
        try:
            in_balance, out_balance, native = self.client.gather(
                lambda: self.client.get_balance(token_in.address),
                lambda: self.client.get_balance(token_out.address),
                self.client.get_native_balance,
            )
        except Exception as e:
            log_error("Error fetching balances", e)
            raise BalanceCheckFailed("Failed to check balances", e) from e
        return BalanceSnapshot(native=int(native), token_in=int(in_balance), token_out=int(out_balance))

    def log_balances(self, token_in: TokenInfo, token_out: TokenInfo) -> BalanceSnapshot:
        snapshot = self.fetch_balances(token_in, token_out)
        balances: Dict[str, str] = {
            "ETH": self.format_amount(snapshot.native, NATIVE_DECIMALS),
            token_in.symbol: self.format_amount(snapshot.token_in, token_in.decimals),
            token_out.symbol: self.format_amount(snapshot.token_out, token_out.decimals),
        }
        log(f"Wallet Balances for {self.wallet_address}:", balances)
        return snapshot

    # ----------------------------
    # wrap / approve
    # ----------------------------
    def wrap_native(self, amount_wei: int, wrapped_address: Optional[str] = None) -> str:
        """Deposit native currency into the wrapped-token contract. Returns the tx hash."""
        weth = wrapped_address or self.settings.wrapped_native_address
        log(f"Wrapping {self.format_amount(amount_wei, NATIVE_DECIMALS)} ETH to WETH...")
        try:
            native = self.client.get_native_balance()
        except Exception as e:
            log_error("Error wrapping ETH to WETH", e)
            raise WrapFailed("ETH wrapping failed", e) from e
        log(f"Current ETH balance: {self.format_amount(native, NATIVE_DECIMALS)} ETH")
        if native < amount_wei:
            raise InsufficientBalance(
                "ETH",
                self.format_amount(native, NATIVE_DECIMALS),
                self.format_amount(amount_wei, NATIVE_DECIMALS),
            )
        try:
            tx_hash = self.client.deposit(weth, int(amount_wei), self.settings.wrap_gas_limit)
            log(f"Transaction Sent: {self.tx_explorer_url(tx_hash)}")
            self.client.wait_for_receipt(tx_hash)
            log(f"Wrap Transaction Confirmed: {self.tx_explorer_url(tx_hash)}")
            wrapped_balance = self.client.get_balance(weth)
        except Exception as e:
            log_error("Error wrapping ETH to WETH", e)
            raise WrapFailed("ETH wrapping failed", e) from e
        log(f"New WETH Balance: {self.format_amount(wrapped_balance, NATIVE_DECIMALS)} WETH")
        return tx_hash

    def _send_approval(self, token: TokenInfo, amount: int, spender: str) -> str:
        tx_hash = self.client.approve(token.address, int(amount), spender=spender, gas_limit=self.settings.approve_gas_limit)
        log(f"Approval Transaction Sent: {self.tx_explorer_url(tx_hash)}")
        self.client.wait_for_receipt(tx_hash)
        log(f"Approval Transaction Confirmed: {self.tx_explorer_url(tx_hash)}")
        return tx_hash

    def ensure_approval(self, token: TokenInfo, amount: int, spender: Optional[str] = None) -> ApprovalResult:
        """Approve ``spender`` (default: swap router) for ``amount`` unless the allowance already covers it.

        The balance is checked first so an unfunded wallet never sends an
        approval. With ``reset_allowance_first`` a nonzero allowance is set to
        zero before the new value, for tokens that reject nonzero-to-nonzero
        approvals.
        """
        spender = spender or self.settings.router_address
        log(f"Approving {self.format_amount(amount, token.decimals)} {token.symbol} for spending...")
        balance = self.check_balance(token)
        if balance < amount:
            raise InsufficientBalance(
                token.symbol,
                self.format_amount(balance, token.decimals),
                self.format_amount(amount, token.decimals),
            )
        try:
            allowance = self.client.get_allowance(token.address, spender=spender)
            log(f"Current allowance: {self.format_amount(allowance, token.decimals)} {token.symbol}")
            if allowance >= amount:
                log(f"Sufficient allowance already exists for {token.symbol}")
                return ApprovalResult(already_approved=True, allowance=int(allowance))
            if self.settings.reset_allowance_first and allowance > 0:
                log(f"Resetting {token.symbol} allowance to zero before re-approving")
                self._send_approval(token, 0, spender)
            tx_hash = self._send_approval(token, amount, spender)
            new_allowance = self.client.get_allowance(token.address, spender=spender)
        except Exception as e:
            log_error("Error during token approval", e)
            raise ApprovalFailed("Token approval failed", e) from e
        log(f"New allowance: {self.format_amount(new_allowance, token.decimals)} {token.symbol}")
        return ApprovalResult(already_approved=False, tx_hash=tx_hash, allowance=int(new_allowance))

    # ----------------------------
    # pool / quote
    # ----------------------------
    def _find_pool_address(self, token_in: TokenInfo, token_out: TokenInfo):
        for fee in self.settings.fee_tiers:
            debug(f"Checking for pool with fee tier {fee}...")
            address = self.client.get_pool(token_in.address, token_out.address, fee)
            if address and int(address, 16) != 0:
                log(f"Found pool with fee {fee}: {address}")
                return address, fee
        log("No pool found with standard ordering. Trying reverse token order...")
        for fee in self.settings.fee_tiers:
            address = self.client.get_pool(token_out.address, token_in.address, fee)
            if address and int(address, 16) != 0:
                log(f"Found pool with reverse token order and fee {fee}: {address}")
                return address, fee
        return ZERO_ADDRESS, None

    def locate_pool(self, token_in: TokenInfo, token_out: TokenInfo) -> PoolInfo:
        log(f"Checking pool for {token_in.symbol}/{token_out.symbol}...")
        try:
            pool_address, _ = self._find_pool_address(token_in, token_out)
        except Exception as e:
            log_error("Error retrieving pool information", e)
            raise SwapError("Failed to retrieve pool information", e) from e
        if int(pool_address, 16) == 0:
            error = NoPoolFound(f"No pool exists for {token_in.symbol}/{token_out.symbol} with any standard fee tier")
            log_error("Error retrieving pool information", error)
            raise error
        log(f"Getting pool details for {pool_address}...")
        try:
            state = self.client.get_pool_state(pool_address)
        except Exception as e:
            log_error("Error retrieving pool information", e)
            raise SwapError(f"Failed to read pool state for {pool_address}", e) from e
        token_in_is_token0 = state["token0"].lower() == token_in.address.lower()
        pool = PoolInfo(
            address=pool_address,
            token0=state["token0"],
            token1=state["token1"],
            fee=int(state["fee"]),
            liquidity=int(state["liquidity"]),
            sqrt_price_x96=int(state["sqrt_price_x96"]),
            tick=int(state["tick"]),
            token_in_is_token0=token_in_is_token0,
        )
        ordering = (
            f"{token_in.symbol} is token0, {token_out.symbol} is token1"
            if token_in_is_token0
            else f"{token_out.symbol} is token0, {token_in.symbol} is token1"
        )
        log("Pool Details:", dict(asdict(pool), token_ordering=ordering))
        if pool.liquidity == 0:
            log("WARNING: Pool has ZERO liquidity! Swap may fail.")
        else:
            log(f"Pool has liquidity: {pool.liquidity}")
        return pool

    def get_quote(self, params: QuoteParams, token_out: TokenInfo) -> int:
        """Simulated exactInputSingle. Valid only for the block it was read at."""
        log("Getting quote for swap...", asdict(params))
        try:
            amount_out = self.client.quote_exact_input_single(params)
        except Exception as e:
            log_error("Error getting quote", e)
            details = describe_error(e)
            if "data" in details:
                log(f"Error data: {details['data']}")
            raise QuoteFailed("Failed to get quote for swap", e) from e
        log(f"Quote received: {self.format_amount(amount_out, token_out.decimals)} {token_out.symbol}")
        return amount_out

    def get_exact_output_quote(self, params: QuoteParams, token_in: TokenInfo) -> int:
        """Required input for exactly ``params.amount`` of output."""
        try:
            amount_in = self.client.quote_exact_output_single(params)
        except Exception as e:
            log_error("Error getting exact-output quote", e)
            raise QuoteFailed("Failed to get exact-output quote", e) from e
        log(f"Exact-output quote: {self.format_amount(amount_in, token_in.decimals)} {token_in.symbol} required")
        return amount_in

    # ----------------------------
    # swaps
    # ----------------------------
    def _send_swap(self, params, label: str, estimate_gas: bool = True) -> str:
        gas_limit = self.settings.fallback_gas_limit
        if estimate_gas:
            try:
                log(f"Estimating gas for {label} transaction...")
                gas_estimate = self.client.estimate_swap_gas(params)
                gas_limit = gas_estimate * self.settings.gas_buffer_percent // 100
                log(f"Gas estimate: {gas_estimate}, using gas limit: {gas_limit}")
            except Exception as e:
                log_error("Gas estimation failed, using fixed gas limit", e)
                gas_limit = self.settings.fallback_gas_limit
        log(f"Sending {label} transaction...")
        tx_hash = self.client.swap(params, gas_limit)
        log(f"{label} Transaction Sent: {self.tx_explorer_url(tx_hash)}")
        log("Waiting for transaction confirmation...")
        self.client.wait_for_receipt(tx_hash)
        log(f"{label} Transaction Confirmed: {self.tx_explorer_url(tx_hash)}")
        return tx_hash

    def execute_swap(self, params: SwapParams, token_in: TokenInfo, token_out: TokenInfo) -> str:
        """Submit exactInputSingle and wait for it to be mined. Returns the tx hash."""
        log("Preparing swap transaction...", asdict(params))
        try:
            return self._send_swap(params, "Swap")
        except Exception as e:
            log_error("Swap execution failed", e)
            if isinstance(e, TransactionReverted):
                log(f"Failed Transaction: {self.tx_explorer_url(e.tx_hash)}")
            if is_silent_revert(e):
                self.run_revert_diagnostics(params, token_in, token_out)
            raise SwapFailed("Swap transaction failed", e) from e

    def run_revert_diagnostics(self, params: SwapParams, token_in: TokenInfo, token_out: TokenInfo) -> Optional[bool]:
        """Probe why a swap reverted silently.

        Re-reads pool liquidity and re-quotes at 10% of the amount. Returns True
        when the smaller quote succeeds (price impact is the likely cause),
        False when it fails too, None when the probes themselves could not run.
        Never raises.
        """
        log('Detected "Transaction reverted without a reason" error. Performing additional diagnostics...')
        outcome: Optional[bool] = None
        try:
            pool_address = self.client.get_pool(params.token_in, params.token_out, params.fee)
            liquidity = self.client.get_pool_liquidity(pool_address)
            log(f"Current pool liquidity: {liquidity}")
            smaller_amount = scale_amount(params.amount_in, 10)
            log(f"Trying to get quote for smaller amount: {self.format_amount(smaller_amount, token_in.decimals)} {token_in.symbol}")
            try:
                smaller_quote = self.client.quote_exact_input_single(
                    QuoteParams(token_in=params.token_in, token_out=params.token_out, fee=params.fee, amount=smaller_amount)
                )
                log(f"Quote for smaller amount: {self.format_amount(smaller_quote, token_out.decimals)} {token_out.symbol}")
                log("DIAGNOSTIC: Smaller amount quote successful, likely issue is with swap amount/price impact")
                outcome = True
            except Exception as quote_error:
                log_error("Even smaller quote failed", quote_error)
                log("DIAGNOSTIC: Both large and small quotes failing, likely issue with pool configuration")
                outcome = False
        except Exception as diagnostic_error:
            log_error("Diagnostic checks failed", diagnostic_error)
        log(LIKELY_REVERT_CAUSES)
        return outcome

    def try_exact_output_swap(self, fee: int, desired_amount_out: int, token_in: TokenInfo, token_out: TokenInfo) -> str:
        """Single-shot exactOutputSingle for ``desired_amount_out``. Returns the tx hash.

        The required input is quoted, widened by the slippage tolerance and
        approved before sending with the fixed fallback gas limit.
        """
        log("Trying exactOutputSingle swap instead...")
        try:
            quote = QuoteParams(token_in=token_in.address, token_out=token_out.address, fee=fee, amount=int(desired_amount_out))
            amount_in_quoted = self.get_exact_output_quote(quote, token_in)
            amount_in_maximum = compute_max_amount_in(amount_in_quoted, self.settings.slippage_tolerance)
            log("Quote for exactOutputSingle:", {
                "amountOut": self.format_amount(desired_amount_out, token_out.decimals),
                "amountInMaximum": self.format_amount(amount_in_quoted, token_in.decimals),
                "adjustedAmountInMaximum": self.format_amount(amount_in_maximum, token_in.decimals),
            })
            params = ExactOutputParams(
                token_in=token_in.address,
                token_out=token_out.address,
                fee=int(fee),
                recipient=self.wallet_address,
                deadline=compute_deadline(self.settings.deadline_seconds),
                amount_out=int(desired_amount_out),
                amount_in_maximum=amount_in_maximum,
            )
            self.ensure_approval(token_in, amount_in_maximum)
            log("Preparing exactOutputSingle transaction...")
            return self._send_swap(params, "ExactOutputSingle", estimate_gas=False)
        except Exception as e:
            log_error("ExactOutputSingle swap failed", e)
            raise SwapFailed("ExactOutputSingle swap failed", e) from e
