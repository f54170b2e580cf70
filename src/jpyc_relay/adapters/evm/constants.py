"""
EVM Chain Configuration for JPYC

Provides the chain table the relay can run against (RPC fallback, explorer,
JPYC deployment), environment accessors for the relay's secrets, and the
canonical amount <-> value conversions used by signing, checkout and the CLI.
"""

import os
from typing import Dict, Optional
from decimal import Decimal, InvalidOperation, localcontext
from pydantic import BaseModel, Field

import dotenv

dotenv.load_dotenv()


class EvmAssetConfig(BaseModel):
    """Token asset configuration."""
    symbol: str
    address: str = Field(..., description="Token contract address")
    name: str = Field(..., description="EIP-712 domain name")
    decimals: int = Field(..., description="Token decimals")
    version: str = Field(..., description="EIP-712 domain version")


class EvmChainConfig(BaseModel):
    """EVM blockchain network configuration."""
    caip2: str
    chain_id: int
    name: str = Field(..., description="Human-readable network name")
    public_rpc_url: str = Field(..., description="Public RPC endpoint used when RPC_ENDPOINT is unset")
    explorer_url: str = Field(..., description="Block explorer URL")
    assets: Dict[str, EvmAssetConfig] = Field(default_factory=dict, description="Supported assets")


#: Default network for the relay and the CLI (Ethereum Sepolia).
DEFAULT_CHAIN_ID: int = 11155111

#: JPYC (v2) is deployed at the same address on every supported network.
JPYC_ADDRESS: str = "0x431D5dfF03120AFA4bDf332c61A6e1766eF37BDB"

JPYC_DOMAIN_NAME: str = "JPY Coin"
JPYC_DOMAIN_VERSION: str = "1"
JPYC_DECIMALS: int = 18


_JPYC_ASSET: Dict = {
    "address": JPYC_ADDRESS,
    "name": JPYC_DOMAIN_NAME,
    "decimals": JPYC_DECIMALS,
    "version": JPYC_DOMAIN_VERSION,
}

# Raw chain configuration data
_EVM_CHAINS_DATA: Dict = {
    "eip155:11155111": {
      "name": "Sepolia Testnet",
      "public_rpc_url": "https://ethereum-sepolia-rpc.publicnode.com",
      "explorer_url": "https://sepolia.etherscan.io",
      "assets": {"JPYC": _JPYC_ASSET},
    },
    "eip155:1": {
      "name": "Ethereum Mainnet",
      "public_rpc_url": "https://ethereum-rpc.publicnode.com",
      "explorer_url": "https://etherscan.io",
      "assets": {"JPYC": _JPYC_ASSET},
    },
    "eip155:137": {
      "name": "Polygon Mainnet",
      "public_rpc_url": "https://polygon-rpc.com",
      "explorer_url": "https://polygonscan.com",
      "assets": {"JPYC": _JPYC_ASSET},
    },
}


def get_chain_config(chain_id: int) -> EvmChainConfig:
    """
    Look up a supported chain by its EIP-155 id.

    Args:
        chain_id: Numeric chain id (e.g. 11155111 for Sepolia).

    Returns:
        EvmChainConfig: Parsed configuration including the JPYC asset.

    Raises:
        ValueError: If the chain is not in the table.
    """
    caip2 = f"eip155:{chain_id}"
    raw = _EVM_CHAINS_DATA.get(caip2)
    if raw is None:
        supported = ", ".join(sorted(_EVM_CHAINS_DATA))
        raise ValueError(f"Unsupported chain id {chain_id}; supported: {supported}")

    assets = {
        symbol: EvmAssetConfig(symbol=symbol, **asset)
        for symbol, asset in raw["assets"].items()
    }
    return EvmChainConfig(
        caip2=caip2,
        chain_id=chain_id,
        name=raw["name"],
        public_rpc_url=raw["public_rpc_url"],
        explorer_url=raw["explorer_url"],
        assets=assets,
    )


def get_rpc_endpoint_from_env() -> Optional[str]:
    """
    Load the JSON-RPC endpoint from ``RPC_ENDPOINT``.

    Returns:
        str: Endpoint URL, or None when unset (the chain table's public RPC is
        used instead).
    """
    return os.getenv("RPC_ENDPOINT") or None


def get_relayer_private_key_from_env() -> Optional[str]:
    """
    Load the relayer's private key from ``RELAYER_PRIVATE_KEY``.

    The relayer submits every transaction and pays its gas; in the checkout
    flow it is also the forced recipient of the customer's tokens.

    Keep it in ``.env`` or the process environment only.
    """
    return os.getenv("RELAYER_PRIVATE_KEY") or None


def get_user_private_key_from_env() -> Optional[str]:
    """
    Load the token holder's private key from ``USER_PRIVATE_KEY``.

    Only the CLI needs it: it signs authorizations and permits on behalf of
    the holder.  The HTTP server never sees a user key.
    """
    return os.getenv("USER_PRIVATE_KEY") or None


def amount_to_value(*, amount: float | int | str | Decimal, decimals: int) -> int:
    """Scale a display amount (e.g. 1100 JPYC) to the on-chain integer.

    This is the canonical conversion used by authorization signing, permit
    signing and the checkout total check.

    Args:
        amount: Human-readable amount (e.g. 1100 for 1,100 JPYC). Accepts float/int/str/Decimal.
        decimals: Token decimals (18 for JPYC).

    Raises:
        ValueError: On negative, non-finite or unparsable input, or when the
            amount has more fractional digits than ``decimals`` allows.
    """
    if not isinstance(decimals, int) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")

    try:
        # via str so 0.1 stays 0.1
        dec_amount = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Invalid amount: {amount!r}") from e

    if not dec_amount.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")

    if dec_amount < 0:
        raise ValueError("amount must be non-negative")

    with localcontext() as ctx:
        # uint256 needs 78 significant digits
        ctx.prec = 78
        scaled = dec_amount * (Decimal(10) ** decimals)

    if scaled != scaled.to_integral_value():
        raise ValueError(f"amount {amount!r} has more than {decimals} fractional digits")

    return int(scaled)


def value_to_amount(*, value: int | str | Decimal, decimals: int) -> Decimal:
    """Inverse of ``amount_to_value``.

    Returns a ``Decimal`` rather than a float: at 18 decimals a float cannot
    hold a realistic balance exactly.

    Args:
        value: Smallest-unit integer value. Accepts int/str/Decimal.
        decimals: Token decimals (18 for JPYC).

    Raises:
        ValueError: On negative, fractional or unparsable input.
    """
    if not isinstance(decimals, int) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")

    try:
        dec_value = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Invalid value: {value!r}") from e

    if dec_value < 0:
        raise ValueError("value must be non-negative")

    if dec_value != dec_value.to_integral_value():
        raise ValueError("value must be an integer in smallest units")

    with localcontext() as ctx:
        ctx.prec = 78
        return dec_value / (Decimal(10) ** decimals)
