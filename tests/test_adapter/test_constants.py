"""
Tests for the chain table and amount <-> value conversions.
"""
from decimal import Decimal

import pytest

from jpyc_relay.adapters.evm.constants import (
    JPYC_ADDRESS,
    amount_to_value,
    get_chain_config,
    value_to_amount,
)


@pytest.mark.parametrize("amount, expected", [
    (1100, 1100 * 10 ** 18),
    ("0.5", 5 * 10 ** 17),
    (Decimal("123456789.000000000000000001"), 123456789 * 10 ** 18 + 1),
    (0, 0),
])
def test_amount_to_value(amount, expected):
    assert amount_to_value(amount=amount, decimals=18) == expected


def test_amount_to_value_handles_float_without_binary_noise():
    assert amount_to_value(amount=0.1, decimals=18) == 10 ** 17


@pytest.mark.parametrize("amount", ["-1", "abc", "NaN", "Infinity", "0.0000000000000000001"])
def test_amount_to_value_rejects(amount):
    with pytest.raises(ValueError):
        amount_to_value(amount=amount, decimals=18)


def test_value_to_amount_is_exact():
    assert value_to_amount(value=1100 * 10 ** 18, decimals=18) == Decimal(1100)
    assert value_to_amount(value=1, decimals=18) == Decimal("1E-18")
    assert f"{value_to_amount(value=15 * 10 ** 17, decimals=18):f}" == "1.5"


@pytest.mark.parametrize("value", [-1, "1.5", "x"])
def test_value_to_amount_rejects(value):
    with pytest.raises(ValueError):
        value_to_amount(value=value, decimals=18)


def test_sepolia_chain_config():
    chain = get_chain_config(11155111)

    assert chain.caip2 == "eip155:11155111"
    assert chain.explorer_url == "https://sepolia.etherscan.io"
    jpyc = chain.assets["JPYC"]
    assert jpyc.address == JPYC_ADDRESS
    assert (jpyc.name, jpyc.version, jpyc.decimals) == ("JPY Coin", "1", 18)


def test_unknown_chain_raises():
    with pytest.raises(ValueError, match="Unsupported chain id"):
        get_chain_config(999999)
