"""
Error kinds raised by the swap pipeline.

Every failed chain call is logged where it happens and re-raised as one of
these. None of them are retried; the run ends on the first one that escapes.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class SwapError(Exception):
    """Base class for pipeline failures. Keeps the underlying web3 error as ``cause``."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        details = describe_error(cause) if cause is not None else {}
        self.code = details.get("code")
        self.data = details.get("data")


class MetadataUnavailable(SwapError):
    """symbol/name/decimals could not be read (usually not an ERC-20 contract)."""


class BalanceCheckFailed(SwapError):
    pass


class InsufficientBalance(SwapError):
    def __init__(self, symbol: str, available: Any, required: Any) -> None:
        super().__init__(f"Insufficient {symbol} balance: {available} < {required}")
        self.symbol = symbol
        self.available = available
        self.required = required


class WrapFailed(SwapError):
    pass


class ApprovalFailed(SwapError):
    pass


class NoPoolFound(SwapError):
    pass


class QuoteFailed(SwapError):
    pass


class TransactionReverted(SwapError):
    """A mined transaction came back with status 0."""

    def __init__(self, tx_hash: str) -> None:
        super().__init__(f"Transaction reverted without a reason string: {tx_hash}")
        self.tx_hash = tx_hash


class SwapFailed(SwapError):
    """The swap did not land. ``alternate_error`` is set when the exact-output retry also failed."""

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        alternate_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, cause)
        self.alternate_error = alternate_error


def describe_error(error: BaseException) -> Dict[str, Any]:
    """Pull message, code and revert data out of web3/RPC exceptions.

    web3 raises ContractLogicError with ``.message``/``.data``; JSON-RPC
    failures arrive either as an exception carrying ``rpc_response`` or as a
    ValueError whose first argument is the error dict.
    """
    info: Dict[str, Any] = {"message": getattr(error, "message", None) or str(error) or type(error).__name__}
    code = getattr(error, "code", None)
    data = getattr(error, "data", None)
    rpc_response = getattr(error, "rpc_response", None)
    if isinstance(rpc_response, dict) and isinstance(rpc_response.get("error"), dict):
        rpc_error = rpc_response["error"]
        code = code if code is not None else rpc_error.get("code")
        data = data if data is not None else rpc_error.get("data")
    if error.args and isinstance(error.args[0], dict):
        payload = error.args[0]
        info["message"] = payload.get("message", info["message"])
        code = code if code is not None else payload.get("code")
        data = data if data is not None else payload.get("data")
    if code is not None:
        info["code"] = code
    if data is not None:
        info["data"] = data
    return info
