from __future__ import annotations

from decimal import Decimal, getcontext, localcontext

import pytest

from connectors.dex.uniswap_v3_client import UniswapV3Client
from strategies.utils import compute_deadline, compute_max_amount_in, compute_min_amount_out, scale_amount


def test_min_out_example_five_percent():
    # 0.1 WETH quoted at 150.25 USDC (6 decimals), 5% slippage
    min_out = compute_min_amount_out(150_250_000, 0.05)
    assert min_out == 142_737_500
    assert UniswapV3Client.from_wei(min_out, 6) == Decimal("142.7375")


@pytest.mark.parametrize("quoted,slippage,expected", [
    (1_000, 0.005, 995),
    (999, 0.01, 989),  # 989.01 floors
    (7, 0.333, 4),  # 4.669 floors
    (10**30, 0.05, 95 * 10**28),
    (10**30 - 1, 0.05, (10**30 - 1) * 95 // 100),
    (2**256 - 1, 0.005, (2**256 - 1) * 995 // 1000),
])
def test_min_out_is_floor(quoted, slippage, expected):
    assert compute_min_amount_out(quoted, slippage) == expected


def test_min_out_clamped_to_one_unit():
    assert compute_min_amount_out(1, 0.5) == 1
    assert compute_min_amount_out(100, 0.999999) == 1
    assert compute_min_amount_out(0, 0.05) == 1


@pytest.mark.parametrize("bad", [0, 1, -0.1, 1.5])
def test_slippage_outside_open_interval_rejected(bad):
    with pytest.raises(ValueError):
        compute_min_amount_out(1_000, bad)
    with pytest.raises(ValueError):
        compute_max_amount_in(1_000, bad)


def test_max_in_widened_by_slippage():
    assert compute_max_amount_in(9 * 10**16, 0.05) == 94_500_000_000_000_000
    assert compute_max_amount_in(999, 0.01) == 1008  # 1008.99 floors


def test_deadline_is_ten_minutes_ahead_by_default():
    assert compute_deadline(now=1_700_000_000.7) == 1_700_000_600
    assert compute_deadline(60, now=100) == 160


def test_scale_amount_rounds_down():
    assert scale_amount(10**17, 10) == 10**16
    assert scale_amount(150_250_001, 90) == 135_225_000


def test_bounds_exact_for_huge_quotes_under_default_precision():
    quoted = 10**30 - 1
    with localcontext() as ctx:
        ctx.prec = 28
        assert compute_min_amount_out(quoted, 0.05) == 949_999_999_999_999_999_999_999_999_999
        assert compute_max_amount_in(quoted, 0.05) == 1_049_999_999_999_999_999_999_999_999_998


def test_amount_helpers_leave_global_precision_alone():
    before = getcontext().prec
    UniswapV3Client.to_wei("123456789.123456789123456789", 18)
    UniswapV3Client.from_wei(10**40 + 1, 18)
    compute_min_amount_out(10**40 + 1, 0.05)
    assert getcontext().prec == before


def test_max_in_exact_at_uint256_scale():
    quoted = 2**256 - 1
    assert compute_max_amount_in(quoted, 0.01) == quoted * 101 // 100
