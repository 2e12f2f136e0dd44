from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ExchangeConnector(ABC):
    """
    Abstract connector API for single-pool DEX swaps.

    Amounts crossing this interface are integers in the token's smallest
    unit; tokens are identified by contract address, not symbol.
    """

    @abstractmethod
    def fetch_token_info(self, address: str) -> Any:
        """Return the token descriptor (symbol, name, decimals) for a contract address."""

    @abstractmethod
    def ensure_approval(self, token: Any, amount: int) -> Any:
        """Make sure the router may spend ``amount`` of ``token``; approve only if needed."""

    @abstractmethod
    def locate_pool(self, token_in: Any, token_out: Any) -> Any:
        """Return the first pool found for the pair across the configured fee tiers."""

    @abstractmethod
    def get_quote(self, params: Any, token_out: Any) -> int:
        """Return the expected output for an exact-input swap without submitting anything."""

    @abstractmethod
    def execute_swap(self, params: Any, token_in: Any, token_out: Any) -> Any:
        """Submit the swap, wait for it to be mined and return the transaction hash."""

    @abstractmethod
    def tx_explorer_url(self, tx_hash: str) -> str:
        """Return a block explorer URL for a transaction."""
