"""
Checkout relay service.

Turns a storefront purchase (cart + customer-signed ERC-3009 authorization)
into one on-chain ``receiveWithAuthorization`` (or ``transferWithAuthorization``)
submitted and paid for by the relayer, and reports the outcome as either a
``PurchaseResponse`` or a ``CheckoutError`` carrying the HTTP status.
"""

from datetime import datetime, timezone
from typing import List, Literal

from pydantic import ValidationError
from web3 import Web3

from ..adapters.evm.adapter import EVMAdapter
from ..adapters.evm.constants import amount_to_value
from ..adapters.evm.schemas import ERC3009Authorization, EVMTransactionConfirmation
from ..adapters.evm.signatures import split_signature
from ..engine.exceptions import (
    AmountMismatchError,
    AuthorizationRejectedError,
    ChainError,
    CheckoutError,
    EmptyCartError,
    InsufficientFundsError,
    InvalidPurchaseRequestError,
    InvalidSignatureError,
    MissingAuthorizationError,
    TransactionFailedError,
)
from ..schemas.bases import TransactionStatus
from ..schemas.https import CartItem, OrderDetails, PurchaseRequest, PurchaseResponse, TransferData
from ..utils import logger

_INSUFFICIENT_FUNDS_MARKERS = ("insufficient funds", "exceeds balance")
_AUTHORIZATION_MARKERS = ("authorization", "signature")


def cart_total(cart: List[CartItem]) -> int:
    """Sum of ``price * quantity`` in whole JPYC."""
    return sum(item.price * item.quantity for item in cart)


def classify_failure(confirmation: EVMTransactionConfirmation) -> CheckoutError:
    """
    Map a non-successful confirmation to the error the client should see.

    A mined-but-reverted transaction is always "Transaction failed".  Anything
    else is classified by the node's error text, case-insensitively:

    * "insufficient funds" / "exceeds balance" -> ``InsufficientFundsError`` (400)
    * "authorization" / "signature" -> ``AuthorizationRejectedError`` (400)
    * otherwise -> ``ChainError`` (500)
    """
    if confirmation.status == TransactionStatus.FAILED:
        return TransactionFailedError(confirmation.tx_hash or "")

    error_text = confirmation.error_message or confirmation.status.value
    lowered = error_text.lower()
    if any(marker in lowered for marker in _INSUFFICIENT_FUNDS_MARKERS):
        return InsufficientFundsError(detail=error_text)
    if any(marker in lowered for marker in _AUTHORIZATION_MARKERS):
        return AuthorizationRejectedError(detail=error_text)
    return ChainError(detail=error_text)


class CheckoutService:
    """
    Validates purchase requests and relays the customer's authorization.

    Stateless apart from the adapter it wraps; each call to
    :meth:`process_purchase` is independent and nothing is persisted.

    Attributes:
        adapter: Chain client that submits as (and pays gas for) the relayer.
        method: ``"receive"`` submits ``receiveWithAuthorization`` (the
            relayer must be ``to``), ``"transfer"`` submits
            ``transferWithAuthorization``.
    """

    def __init__(self, adapter: EVMAdapter, method: Literal["receive", "transfer"] = "receive"):
        if method not in ("receive", "transfer"):
            raise ValueError(f"Unsupported checkout method: {method!r}")
        self.adapter = adapter
        self.method = method

    def expected_value(self, cart: List[CartItem]) -> int:
        """Cart total scaled to the token's smallest unit."""
        return amount_to_value(amount=cart_total(cart), decimals=self.adapter.settings.decimals)

    async def process_purchase(self, request: PurchaseRequest) -> PurchaseResponse:
        """
        Validate, submit and confirm one purchase.

        Args:
            request: Parsed ``POST /purchase`` body.

        Returns:
            ``PurchaseResponse`` once the transaction is mined successfully.

        Raises:
            CheckoutError: Subclass carrying the HTTP status and message for
                every rejection or failure.  Checks run in a fixed order:
                cart, presence, transfer fields, amount, address, signature,
                authorization structure.  None of them touches the chain.
        """
        if not request.cart:
            raise EmptyCartError()

        if request.transferData is None or not request.signature:
            raise MissingAuthorizationError()

        try:
            transfer = TransferData.model_validate(request.transferData)
        except ValidationError as e:
            raise InvalidPurchaseRequestError(detail=str(e)) from e

        total = cart_total(request.cart)
        expected = self.expected_value(request.cart)
        if transfer.value != expected:
            raise AmountMismatchError(expected=expected, signed=transfer.value)

        if not Web3.is_address(transfer.from_):
            raise InvalidPurchaseRequestError(detail=f"invalid from address {transfer.from_!r}")

        if not isinstance(request.signature, str):
            raise InvalidSignatureError(detail=f"expected a hex string, got {type(request.signature).__name__}")
        try:
            signature = split_signature(request.signature, "ERC3009")
        except ValueError as e:
            raise InvalidSignatureError(detail=str(e)) from e

        # The customer may have signed for any recipient; only the relayer is
        # ever submitted, so a mismatched signature fails on-chain instead.
        recipient = self.adapter.get_wallet_address()

        try:
            authorization = ERC3009Authorization(
                authorization_type=self.method,
                token=self.adapter.token_address,
                chain_id=self.adapter.settings.chain_id,
                authorizer=Web3.to_checksum_address(transfer.from_),
                recipient=recipient,
                value=transfer.value,
                validAfter=transfer.validAfter,
                validBefore=transfer.validBefore,
                nonce=transfer.nonce,
                signature=signature,
            )
            authorization.validate_structure()
        except ValueError as e:
            raise InvalidPurchaseRequestError(detail=str(e)) from e

        logger.info(
            f"Processing purchase: from={authorization.authorizer} to={recipient} "
            f"value={transfer.value} cart={[f'{item.name} x{item.quantity}' for item in request.cart]}"
        )

        if self.method == "receive":
            confirmation = await self.adapter.receive_with_authorization(authorization)
        else:
            confirmation = await self.adapter.transfer_with_authorization(authorization)

        if not confirmation.is_success():
            error = classify_failure(confirmation)
            logger.warning(
                f"Purchase failed: status={confirmation.status.value} "
                f"tx_hash={confirmation.tx_hash} reason={error.detail}"
            )
            raise error

        order = OrderDetails(
            tx_hash=confirmation.tx_hash,
            customer=authorization.authorizer,
            total=total,
            items=request.cart,
            timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        )
        logger.info(f"Purchase completed: {order.model_dump_json(by_alias=True)}")

        return PurchaseResponse(tx_hash=confirmation.tx_hash, order_details=order)
