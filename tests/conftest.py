"""
Shared test mocks for the JPYC relay.

Provides mock chain objects, well-known keys and signed purchase payloads so
the adapter, checkout server and CLI can be exercised without an RPC node.

Key Components:
    - Test keys for the user (token holder) and the relayer
    - MockContract: records every contract call and answers reads
    - MockWeb3Provider: AsyncWeb3 stand-in with gas, nonce, broadcast and receipt
    - make_purchase: builds a signed ``POST /purchase`` body

Usage:
    def test_something(adapter, mock_web3):
        ...
        assert mock_web3.jpyc.calls[-1].name == "receiveWithAuthorization"
"""

import time
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest
from eth_account import Account
from web3 import AsyncWeb3

from jpyc_relay.adapters.evm.adapter import EVMAdapter
from jpyc_relay.adapters.evm.constants import JPYC_ADDRESS
from jpyc_relay.adapters.evm.signatures import sign_erc3009_authorization
from jpyc_relay.config import ChainSettings, RelaySettings


# ========================================================================
# Test constants
# ========================================================================

# Test private keys (do not use in production!)
USER_PRIVATE_KEY = "0x1234567890123456789012345678901234567890123456789012345678901234"
RELAYER_PRIVATE_KEY = "0xabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcd"

USER_ADDRESS = AsyncWeb3.to_checksum_address(Account.from_key(USER_PRIVATE_KEY).address)
RELAYER_ADDRESS = AsyncWeb3.to_checksum_address(Account.from_key(RELAYER_PRIVATE_KEY).address)
MERCHANT_ADDRESS = "0x1234567890123456789012345678901234567890"

CHAIN_ID = 11155111
RPC_URL = "http://localhost:8545"

JPYC = 10 ** 18
MOCK_BALANCE = 1_000 * JPYC
MOCK_TOTAL_SUPPLY = 5_000_000 * JPYC

MOCK_BLOCK_NUMBER = 12345678
MOCK_GAS_PRICE = 20_000_000_000  # 20 Gwei
MOCK_GAS_ESTIMATE = 100_000
MOCK_GAS_USED = 61_234
MOCK_TX_HASH = "0x" + "ab" * 32

_ENV_VARS = (
    "RPC_ENDPOINT",
    "CHAIN_ID",
    "JPYC_ADDRESS",
    "RECEIPT_TIMEOUT",
    "RELAYER_PRIVATE_KEY",
    "USER_PRIVATE_KEY",
    "CHECKOUT_METHOD",
    "LOG_LEVEL",
)


# ========================================================================
# Mock contract
# ========================================================================

class MockFunctionCall:
    """One ``contract.functions.<name>(*args)`` invocation."""

    def __init__(self, contract: "MockContract", name: str, args: tuple):
        self.contract = contract
        self.name = name
        self.args = args
        self.call = AsyncMock(side_effect=self._call)
        self.estimate_gas = AsyncMock(side_effect=self._estimate_gas)
        self.build_transaction = AsyncMock(side_effect=self._build_transaction)

    async def _call(self, *args, **kwargs):
        return self.contract.call_results[self.name]

    async def _estimate_gas(self, tx_params=None):
        if self.contract.estimate_gas_error is not None:
            raise self.contract.estimate_gas_error
        return MOCK_GAS_ESTIMATE

    async def _build_transaction(self, tx_params: Dict[str, Any]) -> Dict[str, Any]:
        # "from" is left out: eth_account only accepts it when it matches the signer
        return {
            "to": self.contract.address,
            "value": 0,
            "data": "0x" + "ab" * 68,
            "gas": tx_params["gas"],
            "gasPrice": tx_params["gasPrice"],
            "nonce": tx_params["nonce"],
            "chainId": tx_params["chainId"],
        }


class _MockFunctions:
    def __init__(self, contract: "MockContract"):
        self._contract = contract

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)

        def factory(*args):
            call = MockFunctionCall(self._contract, name, args)
            self._contract.calls.append(call)
            return call

        return factory


class MockContract:
    """
    Mock JPYC contract.

    Attributes:
        address: Contract address passed to ``eth.contract``.
        call_results: Return value of ``.call()`` per function name.
        estimate_gas_error: Raised from ``estimate_gas`` when set (simulates a revert).
        calls: Every function call built through ``functions``, in order.
    """

    def __init__(self, address: str):
        self.address = address
        self.call_results: Dict[str, Any] = {
            "balanceOf": MOCK_BALANCE,
            "nonces": 0,
            "name": "JPY Coin",
            "totalSupply": MOCK_TOTAL_SUPPLY,
        }
        self.estimate_gas_error: Optional[Exception] = None
        self.calls: List[MockFunctionCall] = []
        self.functions = _MockFunctions(self)

    def calls_named(self, name: str) -> List[MockFunctionCall]:
        return [call for call in self.calls if call.name == name]


# ========================================================================
# Mock Web3
# ========================================================================

class MockEth:
    """``web3.eth`` stand-in covering what the adapter touches."""

    def __init__(self, owner: "MockWeb3Provider"):
        self._owner = owner
        self.get_transaction_count = AsyncMock(return_value=7)
        self.send_raw_transaction = AsyncMock(return_value=bytes.fromhex(MOCK_TX_HASH[2:]))
        self.wait_for_transaction_receipt = AsyncMock(side_effect=self._receipt)

    @property
    def gas_price(self):
        async def _gas_price():
            return self._owner.gas_price
        return _gas_price()

    async def _receipt(self, tx_hash, timeout=None):
        return {
            "transactionHash": tx_hash,
            "blockNumber": MOCK_BLOCK_NUMBER,
            "status": self._owner.receipt_status,
            "gasUsed": MOCK_GAS_USED,
            "effectiveGasPrice": self._owner.gas_price,
            "from": RELAYER_ADDRESS,
            "to": JPYC_ADDRESS,
            "logs": [],
        }

    def contract(self, address: str, abi: list) -> MockContract:
        if address not in self._owner.contracts:
            self._owner.contracts[address] = MockContract(address)
        return self._owner.contracts[address]


class MockWeb3Provider:
    """
    Mock AsyncWeb3 instance.

    Attributes:
        gas_price: Value of ``eth.gas_price`` (wei).
        receipt_status: ``status`` field of every receipt (1 success, 0 revert).
        contracts: Contracts created via ``eth.contract``, by address.
        provider: Object exposing an awaitable ``disconnect``.
    """

    def __init__(self, gas_price: int = MOCK_GAS_PRICE, receipt_status: int = 1):
        self.gas_price = gas_price
        self.receipt_status = receipt_status
        self.contracts: Dict[str, MockContract] = {}
        self.eth = MockEth(self)
        self.provider = AsyncMock()
        self.provider.disconnect = AsyncMock()

    @property
    def jpyc(self) -> MockContract:
        return self.eth.contract(JPYC_ADDRESS, [])


# ========================================================================
# Payload helpers
# ========================================================================

def make_purchase(
    cart: List[Dict[str, Any]],
    *,
    value: Optional[int] = None,
    recipient: str = RELAYER_ADDRESS,
    authorization_type: str = "receive",
    private_key: str = USER_PRIVATE_KEY,
) -> Dict[str, Any]:
    """
    Build a ``POST /purchase`` body signed by the test user.

    ``value`` defaults to the cart total; pass another value to sign a
    mismatching amount.
    """
    if value is None:
        value = sum(item["price"] * item["quantity"] for item in cart) * JPYC

    authorization = sign_erc3009_authorization(
        private_key=private_key,
        token=JPYC_ADDRESS,
        chain_id=CHAIN_ID,
        authorizer=Account.from_key(private_key).address,
        recipient=recipient,
        value=value,
        valid_after=0,
        valid_before=int(time.time()) + 3600,
        authorization_type=authorization_type,
    )
    return {
        "cart": cart,
        "transferData": {
            "from": authorization.authorizer,
            "to": authorization.recipient,
            "value": str(authorization.value),
            "validAfter": str(authorization.validAfter),
            "validBefore": str(authorization.validBefore),
            "nonce": authorization.nonce,
        },
        "signature": authorization.signature.to_packed_hex(),
    }


SAMPLE_CART = [
    {"id": 1, "name": "Coffee", "price": 500, "quantity": 2, "image": "☕"},
    {"id": 2, "name": "Croissant", "price": 100, "quantity": 1},
]
SAMPLE_CART_TOTAL = 1_100


# ========================================================================
# Fixtures
# ========================================================================

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep a developer's .env or shell exports out of the tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def chain_settings() -> ChainSettings:
    return ChainSettings(rpc_url=RPC_URL, chain_id=CHAIN_ID, token_address=JPYC_ADDRESS)


@pytest.fixture
def relay_settings(chain_settings) -> RelaySettings:
    return RelaySettings(
        chain=chain_settings,
        relayer_private_key=RELAYER_PRIVATE_KEY,
        user_private_key=USER_PRIVATE_KEY,
    )


@pytest.fixture
def mock_web3() -> MockWeb3Provider:
    return MockWeb3Provider()


@pytest.fixture
def adapter(chain_settings, mock_web3) -> EVMAdapter:
    return EVMAdapter(chain_settings, RELAYER_PRIVATE_KEY, web3=mock_web3)


@pytest.fixture
def sample_cart() -> List[Dict[str, Any]]:
    return [dict(item) for item in SAMPLE_CART]
