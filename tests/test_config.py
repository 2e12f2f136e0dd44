from __future__ import annotations

import pytest

from core.config import FEE_TIERS, SWAP_ROUTER_ADDRESS, SwapSettings, USDC_ADDRESS, WETH_ADDRESS


def test_defaults_target_sepolia_weth_usdc():
    s = SwapSettings.from_env(environ={"PRIVATE_KEY": "0xabc"})
    assert s.chain_id == 11155111
    assert s.token_in_address == WETH_ADDRESS
    assert s.token_out_address == USDC_ADDRESS
    assert s.router_address == SWAP_ROUTER_ADDRESS
    assert s.amount == 0.1
    assert s.slippage_tolerance == 0.05
    assert s.fee_tiers == FEE_TIERS == (500, 3000, 10000)
    assert s.try_exact_output is True
    assert s.reset_allowance_first is False


def test_environment_values_are_parsed():
    s = SwapSettings.from_env(environ={
        "PRIVATE_KEY": " 0xabc ",
        "RPC_URL": "http://node:8545",
        "CHAIN_ID": "1",
        "SWAP_AMOUNT": "2.5",
        "SLIPPAGE_TOLERANCE": "0.01",
        "WRAP_AMOUNT": "0.2",
        "TRY_EXACT_OUTPUT": "false",
        "RESET_ALLOWANCE_FIRST": "yes",
        "DEBUG_MODE": "1",
    })
    assert s.private_key == "0xabc"
    assert s.rpc_url == "http://node:8545"
    assert s.chain_id == 1
    assert s.amount == 2.5
    assert s.slippage_tolerance == 0.01
    assert s.wrap_amount == 0.2
    assert s.try_exact_output is False
    assert s.reset_allowance_first is True
    assert s.debug_mode is True


def test_private_key_not_in_repr():
    s = SwapSettings(private_key="0xsecret")
    assert "0xsecret" not in repr(s)


def test_dotenv_file_is_read(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("PRIVATE_KEY=0xfromfile\nSWAP_AMOUNT=0.3\n")
    s = SwapSettings.from_env(dotenv_path=str(env_file))
    assert s.private_key == "0xfromfile"
    assert s.amount == 0.3


def test_process_environment_wins_over_dotenv(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("SWAP_AMOUNT=0.3\n")
    monkeypatch.setenv("SWAP_AMOUNT", "0.7")
    assert SwapSettings.from_env(dotenv_path=str(env_file)).amount == 0.7


@pytest.mark.parametrize("changes", [
    {"amount": 0},
    {"amount": -1},
    {"slippage_tolerance": 0},
    {"slippage_tolerance": 1},
    {"wrap_amount": -0.1},
    {"fee_tiers": ()},
])
def test_validate_rejects(changes):
    with pytest.raises(ValueError):
        SwapSettings(**changes).validate()


def test_with_overrides_skips_none():
    s = SwapSettings(amount=1.0).with_overrides(amount=None, slippage_tolerance=0.02)
    assert s.amount == 1.0
    assert s.slippage_tolerance == 0.02


def test_tx_explorer_url_trims_slash():
    s = SwapSettings(explorer_url="https://explorer.example/")
    assert s.tx_explorer_url("0x1") == "https://explorer.example/tx/0x1"
