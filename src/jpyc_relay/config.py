"""
Relay Configuration

Typed settings for the chain connection and the relay process.  Values come
from explicit arguments first, then environment variables (a ``.env`` file
is loaded by ``adapters.evm.constants``), then the chain table.

Environment Variables:
    - RPC_ENDPOINT: JSON-RPC URL (defaults to the chain table's public RPC)
    - CHAIN_ID: EIP-155 chain id (default 11155111, Sepolia)
    - JPYC_ADDRESS: Token contract override
    - RECEIPT_TIMEOUT: Seconds to wait for a receipt (default 120)
    - RELAYER_PRIVATE_KEY: Submitting account (required)
    - USER_PRIVATE_KEY: Token holder key, CLI only
    - CHECKOUT_METHOD: ``receive`` (default) or ``transfer``
    - LOG_LEVEL: loguru level (default INFO)
"""

import os
from typing import Literal, Optional

from eth_account import Account
from pydantic import BaseModel, Field, ValidationError, field_validator
from web3 import Web3

from .adapters.evm.constants import (
    DEFAULT_CHAIN_ID,
    JPYC_DECIMALS,
    JPYC_DOMAIN_NAME,
    JPYC_DOMAIN_VERSION,
    get_chain_config,
    get_relayer_private_key_from_env,
    get_rpc_endpoint_from_env,
    get_user_private_key_from_env,
)
from .engine.exceptions import ConfigurationError


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _describe(error: ValidationError) -> str:
    # Input values are left out so private keys never reach a log line.
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in error.errors()
    )


class ChainSettings(BaseModel):
    """
    Connection and token parameters for one EVM network.

    Attributes:
        rpc_url: JSON-RPC endpoint.
        chain_id: EIP-155 chain id; also the EIP-712 ``chainId``.
        token_address: JPYC contract (checksummed); the EIP-712 ``verifyingContract``.
        token_name: EIP-712 domain name.
        token_version: EIP-712 domain version.
        decimals: Token decimals.
        request_timeout: HTTP timeout for each RPC request (seconds).
        receipt_timeout: Maximum wait for a transaction receipt (seconds).
    """

    rpc_url: str = Field(..., description="JSON-RPC endpoint URL")
    chain_id: int = Field(DEFAULT_CHAIN_ID, ge=1, description="EIP-155 chain id")
    token_address: str = Field(..., description="Token contract address")
    token_name: str = Field(JPYC_DOMAIN_NAME, description="EIP-712 domain name")
    token_version: str = Field(JPYC_DOMAIN_VERSION, description="EIP-712 domain version")
    decimals: int = Field(JPYC_DECIMALS, ge=0, description="Token decimals")
    request_timeout: int = Field(60, gt=0, description="RPC request timeout (seconds)")
    receipt_timeout: int = Field(120, gt=0, description="Receipt wait (seconds)")

    @field_validator("token_address")
    @classmethod
    def _checksum_token(cls, value: str) -> str:
        if not Web3.is_address(value):
            raise ValueError(f"Invalid token address: {value!r}")
        return Web3.to_checksum_address(value)

    @classmethod
    def from_env(
        cls,
        *,
        rpc_url: Optional[str] = None,
        chain_id: Optional[int] = None,
    ) -> "ChainSettings":
        """
        Resolve chain settings from arguments, the environment and the chain table.

        Raises:
            ConfigurationError: If the chain is unknown and no RPC endpoint is
                given, or a value fails validation.
        """
        resolved_chain_id = chain_id if chain_id is not None else _env_int("CHAIN_ID", DEFAULT_CHAIN_ID)
        resolved_rpc = rpc_url or get_rpc_endpoint_from_env()
        token_address = os.getenv("JPYC_ADDRESS") or None

        try:
            chain = get_chain_config(resolved_chain_id)
        except ValueError:
            chain = None
            if not resolved_rpc or not token_address:
                raise ConfigurationError(
                    f"Chain {resolved_chain_id} is not in the chain table; "
                    "set RPC_ENDPOINT and JPYC_ADDRESS explicitly"
                )

        if chain is not None:
            asset = chain.assets["JPYC"]
            resolved_rpc = resolved_rpc or chain.public_rpc_url
            token_address = token_address or asset.address

        try:
            return cls(
                rpc_url=resolved_rpc,
                chain_id=resolved_chain_id,
                token_address=token_address,
                receipt_timeout=_env_int("RECEIPT_TIMEOUT", 120),
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid chain settings: {_describe(e)}") from e


class RelaySettings(BaseModel):
    """
    Process-wide settings for the relay server and the CLI.

    Attributes:
        chain: Chain connection parameters.
        relayer_private_key: Key of the submitting account (never logged).
        user_private_key: Token holder key used by the CLI to sign.
        checkout_method: ERC-3009 entry point used by ``POST /purchase``.
        authorization_ttl: Seconds an authorization or permit signed by the
            CLI stays valid.
        log_level: loguru level for ``setup_logger``.
    """

    chain: ChainSettings
    relayer_private_key: str = Field(..., repr=False)
    user_private_key: Optional[str] = Field(None, repr=False)
    checkout_method: Literal["receive", "transfer"] = "receive"
    authorization_ttl: int = Field(3600, gt=0)
    log_level: str = "INFO"

    @field_validator("relayer_private_key", "user_private_key")
    @classmethod
    def _valid_key(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        try:
            Account.from_key(value)
        except Exception as e:
            # never echo the key itself
            raise ValueError(f"malformed private key ({type(e).__name__})") from None
        return value

    @property
    def relayer_address(self) -> str:
        return Account.from_key(self.relayer_private_key).address

    @property
    def user_address(self) -> Optional[str]:
        if not self.user_private_key:
            return None
        return Account.from_key(self.user_private_key).address

    def require_user_key(self) -> str:
        """
        Return the user key or fail.

        Raises:
            ConfigurationError: If ``USER_PRIVATE_KEY`` is not set.
        """
        if not self.user_private_key:
            raise ConfigurationError("USER_PRIVATE_KEY is not set")
        return self.user_private_key

    @classmethod
    def from_env(cls, chain: Optional[ChainSettings] = None) -> "RelaySettings":
        """
        Build settings from the environment.

        Raises:
            ConfigurationError: If ``RELAYER_PRIVATE_KEY`` is missing or any
                value fails validation.
        """
        relayer_key = get_relayer_private_key_from_env()
        if not relayer_key:
            raise ConfigurationError("RELAYER_PRIVATE_KEY is not set")

        try:
            return cls(
                chain=chain or ChainSettings.from_env(),
                relayer_private_key=relayer_key,
                user_private_key=get_user_private_key_from_env(),
                checkout_method=(os.getenv("CHECKOUT_METHOD") or "receive").strip().lower(),
                log_level=os.getenv("LOG_LEVEL") or "INFO",
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid relay settings: {_describe(e)}") from e
