"""
EVM Chain Client Adapter for JPYC

Submits JPYC meta-transactions from a single relayer account and reads token
state.  Every write follows the same path: build the contract call, estimate
gas (+10%), sign locally, broadcast, then wait for the receipt.

Key Features:
    - ERC-3009 ``transferWithAuthorization`` / ``receiveWithAuthorization``
    - EIP-2612 ``permit`` and the follow-up ``transferFrom``
    - Balance, permit nonce, name and total supply reads

Dependencies:
    - web3.py: For blockchain RPC interaction
    - eth_account: For transaction signing
"""

from typing import Optional, Any, TYPE_CHECKING
import time

from web3 import AsyncWeb3
from web3.exceptions import TimeExhausted
from eth_account import Account

from ...schemas.bases import TransactionStatus
from ...utils import logger, hex_to_bytes32
from .schemas import EVMTransactionConfirmation, ERC3009Authorization, EVMTokenPermit
from .ERC20_ABI import get_jpyc_abi

if TYPE_CHECKING:
    from ...config import ChainSettings


class EVMAdapter:
    """
    EVM Chain Client Adapter.

    Wraps one ``AsyncWeb3`` connection and one signing account (the relayer).
    Write methods never raise for chain-side failures: they return an
    :class:`EVMTransactionConfirmation` whose ``status`` tells the caller what
    happened.

    * ``SUCCESS``: mined with receipt status 1.
    * ``FAILED``: mined but reverted ("Transaction reverted on-chain").
    * ``INVALID_TRANSACTION``: rejected before broadcast (gas estimation
      revert, bad arguments); ``error_message`` holds the node's text.
    * ``NETWORK_ERROR``: ``eth_sendRawTransaction`` failed.
    * ``TIMEOUT``: no receipt within ``receipt_timeout``.

    Attributes:
        settings: Chain connection parameters.
        account: Relayer account (signs and pays gas).
        wallet_address: Checksum address of ``account``.
        web3: The ``AsyncWeb3`` instance in use.

    Example:
        async with EVMAdapter(settings, private_key=relayer_key) as adapter:
            confirmation = await adapter.receive_with_authorization(authorization)
            if confirmation.is_success():
                print(confirmation.tx_hash)
    """

    def __init__(
        self,
        settings: "ChainSettings",
        private_key: str,
        web3: Optional[AsyncWeb3] = None,
    ):
        """
        Initialize the adapter.

        Args:
            settings: Chain settings (RPC, token, timeouts).
            private_key: Key of the submitting account.
            web3: Optional pre-built ``AsyncWeb3`` (tests inject a mock here).

        Raises:
            ValueError: If the private key is missing or malformed.
        """
        if not private_key:
            raise ValueError("Private key not provided")

        self.settings = settings
        self.account = Account.from_key(private_key)
        self.wallet_address = AsyncWeb3.to_checksum_address(self.account.address)
        self.web3 = web3 or AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
            settings.rpc_url,
            request_kwargs={"timeout": settings.request_timeout},
        ))
        self.token_address = AsyncWeb3.to_checksum_address(settings.token_address)
        self.contract = self.web3.eth.contract(address=self.token_address, abi=get_jpyc_abi())

    async def __aenter__(self) -> "EVMAdapter":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Disconnect the underlying provider, if it holds a session."""
        provider = getattr(self.web3, "provider", None)
        disconnect = getattr(provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()

    def get_wallet_address(self) -> str:
        """
        Get the relayer's address.

        Returns:
            str: Checksum address of the submitting account.
        """
        return self.wallet_address

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_balance(self, address: str) -> int:
        """
        Query the JPYC balance of *address* in smallest units.

        Raises:
            ValueError: If *address* is not a valid EVM address.
        """
        if not AsyncWeb3.is_address(address):
            raise ValueError(f"Invalid address: {address!r}")
        balance = await self.contract.functions.balanceOf(
            AsyncWeb3.to_checksum_address(address)
        ).call()
        return int(balance)

    async def get_permit_nonce(self, owner: str) -> int:
        """Read ``nonces(owner)``, the next EIP-2612 nonce for *owner*."""
        nonce = await self.contract.functions.nonces(AsyncWeb3.to_checksum_address(owner)).call()
        return int(nonce)

    async def get_token_name(self) -> str:
        """Read the token's ``name()``."""
        return await self.contract.functions.name().call()

    async def get_total_supply(self) -> int:
        """Read ``totalSupply()`` in smallest units."""
        return int(await self.contract.functions.totalSupply().call())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def transfer_with_authorization(
        self, authorization: ERC3009Authorization
    ) -> EVMTransactionConfirmation:
        """
        Submit ``transferWithAuthorization`` for a signed ERC-3009 authorization.

        Args:
            authorization: Authorization with ``signature`` populated.

        Returns:
            :class:`EVMTransactionConfirmation`; never raises for chain errors.
        """
        return await self._submit_authorization("transferWithAuthorization", authorization)

    async def receive_with_authorization(
        self, authorization: ERC3009Authorization
    ) -> EVMTransactionConfirmation:
        """
        Submit ``receiveWithAuthorization`` for a signed ERC-3009 authorization.

        The contract requires ``msg.sender == to``, so ``authorization.recipient``
        must be this adapter's wallet address.

        Args:
            authorization: Authorization with ``signature`` populated.

        Returns:
            :class:`EVMTransactionConfirmation`; never raises for chain errors.
        """
        return await self._submit_authorization("receiveWithAuthorization", authorization)

    async def permit(self, permit: EVMTokenPermit) -> EVMTransactionConfirmation:
        """
        Submit ``permit(owner, spender, value, deadline, v, r, s)``.

        Args:
            permit: EIP-2612 permit with ``signature`` populated.

        Returns:
            :class:`EVMTransactionConfirmation`; never raises for chain errors.
        """
        if permit.signature is None:
            return self._rejected("EVMTokenPermit is missing signature")

        try:
            permit.validate_structure()
            sig = permit.signature
            tx_fn = self.contract.functions.permit(
                AsyncWeb3.to_checksum_address(permit.owner),
                AsyncWeb3.to_checksum_address(permit.spender),
                permit.value,
                permit.deadline,
                sig.v,
                hex_to_bytes32(sig.r),
                hex_to_bytes32(sig.s),
            )
        except Exception as e:
            return self._rejected(str(e))

        logger.info(f"Submitting permit owner={permit.owner} spender={permit.spender} value={permit.value}")
        return await self._execute(tx_fn)

    async def transfer_from(self, sender: str, recipient: str, value: int) -> EVMTransactionConfirmation:
        """
        Submit ``transferFrom(sender, recipient, value)`` from the relayer.

        Spends an allowance previously granted to the relayer (typically via
        :meth:`permit`).

        Returns:
            :class:`EVMTransactionConfirmation`; never raises for chain errors.
        """
        try:
            tx_fn = self.contract.functions.transferFrom(
                AsyncWeb3.to_checksum_address(sender),
                AsyncWeb3.to_checksum_address(recipient),
                value,
            )
        except Exception as e:
            return self._rejected(str(e))

        logger.info(f"Submitting transferFrom from={sender} to={recipient} value={value}")
        return await self._execute(tx_fn)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _submit_authorization(
        self, function_name: str, authorization: ERC3009Authorization
    ) -> EVMTransactionConfirmation:
        if authorization.signature is None:
            return self._rejected("ERC3009Authorization is missing signature")

        try:
            authorization.validate_structure()
            sig = authorization.signature
            tx_fn = getattr(self.contract.functions, function_name)(
                AsyncWeb3.to_checksum_address(authorization.authorizer),
                AsyncWeb3.to_checksum_address(authorization.recipient),
                authorization.value,
                authorization.validAfter,
                authorization.validBefore,
                hex_to_bytes32(authorization.nonce),
                sig.v,
                hex_to_bytes32(sig.r),
                hex_to_bytes32(sig.s),
            )
        except Exception as e:
            return self._rejected(str(e))

        logger.info(
            f"Submitting {function_name} from={authorization.authorizer} "
            f"to={authorization.recipient} value={authorization.value}"
        )
        return await self._execute(tx_fn)

    @staticmethod
    def _rejected(error: str) -> EVMTransactionConfirmation:
        return EVMTransactionConfirmation(
            status=TransactionStatus.INVALID_TRANSACTION,
            error_message=error,
        )

    async def _build_signed_transaction(self, tx_fn: Any) -> bytes:
        gas_estimate = await tx_fn.estimate_gas({"from": self.wallet_address})
        gas_price = await self.web3.eth.gas_price
        tx_nonce = await self.web3.eth.get_transaction_count(self.wallet_address)

        tx_dict = await tx_fn.build_transaction({
            "from": self.wallet_address,
            "gas": int(gas_estimate * 1.1),
            "gasPrice": gas_price,
            "nonce": tx_nonce,
            "chainId": self.settings.chain_id,
        })

        signed_tx = self.account.sign_transaction(tx_dict)
        return signed_tx.raw_transaction

    async def _execute(self, tx_fn: Any) -> EVMTransactionConfirmation:
        """
        Build, sign, broadcast and confirm one contract call.

        Returns:
            :class:`EVMTransactionConfirmation` with receipt data on success,
            or an ``INVALID_TRANSACTION`` / ``NETWORK_ERROR`` / ``TIMEOUT`` /
            ``FAILED`` result.
        """
        try:
            raw_transaction = await self._build_signed_transaction(tx_fn)
        except Exception as e:
            logger.warning(f"Transaction rejected before broadcast: {e}")
            return self._rejected(str(e))

        try:
            tx_hash = await self.web3.eth.send_raw_transaction(raw_transaction)
            tx_hash_hex = AsyncWeb3.to_hex(tx_hash)
        except Exception as e:
            logger.error(f"Failed to broadcast transaction: {e}")
            return EVMTransactionConfirmation(
                status=TransactionStatus.NETWORK_ERROR,
                error_message=f"Failed to broadcast transaction: {str(e)}",
            )

        logger.info(f"Transaction submitted: {tx_hash_hex}")
        started = time.monotonic()

        try:
            receipt = await self.web3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.settings.receipt_timeout
            )
        except TimeExhausted:
            logger.warning(f"Transaction confirmation timed out: {tx_hash_hex}")
            return EVMTransactionConfirmation(
                status=TransactionStatus.TIMEOUT,
                tx_hash=tx_hash_hex,
                error_message="Transaction confirmation timed out",
            )
        except Exception as e:
            logger.error(f"Failed to fetch receipt for {tx_hash_hex}: {e}")
            return EVMTransactionConfirmation(
                status=TransactionStatus.NETWORK_ERROR,
                tx_hash=tx_hash_hex,
                error_message=f"Failed to fetch receipt: {str(e)}",
            )

        execution_time = time.monotonic() - started
        gas_used = receipt.get("gasUsed")
        effective_gas_price = receipt.get("effectiveGasPrice")
        transaction_fee = (
            gas_used * effective_gas_price
            if gas_used is not None and effective_gas_price is not None
            else None
        )

        if receipt.get("status") == 1:
            logger.info(f"Transaction confirmed: {tx_hash_hex} block={receipt.get('blockNumber')}")
            return EVMTransactionConfirmation(
                status=TransactionStatus.SUCCESS,
                tx_hash=tx_hash_hex,
                execution_time=execution_time,
                block_number=receipt.get("blockNumber"),
                gas_used=gas_used,
                gas_limit=receipt.get("gas"),
                transaction_fee=transaction_fee,
                from_address=receipt.get("from"),
                to_address=receipt.get("to"),
            )

        logger.warning(f"Transaction reverted: {tx_hash_hex}")
        return EVMTransactionConfirmation(
            status=TransactionStatus.FAILED,
            tx_hash=tx_hash_hex,
            execution_time=execution_time,
            block_number=receipt.get("blockNumber"),
            gas_used=gas_used,
            transaction_fee=transaction_fee,
            error_message="Transaction reverted on-chain",
        )
