"""Pytest configuration: keep web3's plugin out and make sure no test touches a real node."""

import pytest

from core import log as log_module

# Disable web3.tools.pytest_ethereum plugin which has compatibility issues
pytest_plugins = []

SETTINGS_ENV_VARS = (
    "PRIVATE_KEY", "RPC_URL", "CHAIN_ID", "EXPLORER_URL", "TOKEN_IN_ADDRESS", "TOKEN_OUT_ADDRESS",
    "SWAP_AMOUNT", "SLIPPAGE_TOLERANCE", "WRAP_AMOUNT", "TRY_EXACT_OUTPUT", "DEBUG_MODE",
    "RESET_ALLOWANCE_FIRST", "POOL_FACTORY_ADDRESS", "QUOTER_ADDRESS", "SWAP_ROUTER_ADDRESS",
    "WRAPPED_NATIVE_ADDRESS",
)


def pytest_configure(config):
    """Configure pytest to skip problematic plugins."""
    config.pluginmanager.set_blocked("web3.tools.pytest_ethereum")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Strip swap settings from the environment so .env files on the machine do not leak in.

    setenv before delenv makes monkeypatch remember every variable, so values a
    test loads from a .env file are removed again afterwards.
    """
    for var in SETTINGS_ENV_VARS:
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    yield
    log_module.set_debug(False)
