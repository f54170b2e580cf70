"""
Test suite for CheckoutService.
Tests: 1) request validation order 2) relayer-as-recipient submission 3) failure classification
"""
import pytest

from jpyc_relay.adapters.evm.schemas import EVMTransactionConfirmation
from jpyc_relay.engine.exceptions import (
    AmountMismatchError,
    AuthorizationRejectedError,
    ChainError,
    EmptyCartError,
    InsufficientFundsError,
    InvalidPurchaseRequestError,
    InvalidSignatureError,
    MissingAuthorizationError,
    TransactionFailedError,
)
from jpyc_relay.schemas.bases import TransactionStatus
from jpyc_relay.schemas.https import CartItem, PurchaseRequest
from jpyc_relay.servers.checkout import CheckoutService, cart_total, classify_failure

from conftest import (
    JPYC,
    MERCHANT_ADDRESS,
    MOCK_TX_HASH,
    RELAYER_ADDRESS,
    SAMPLE_CART_TOTAL,
    USER_ADDRESS,
    make_purchase,
)


def _request(body) -> PurchaseRequest:
    return PurchaseRequest.model_validate(body)


def test_cart_total(sample_cart):
    assert cart_total([CartItem(**item) for item in sample_cart]) == SAMPLE_CART_TOTAL
    assert cart_total([]) == 0


def test_unknown_method_is_rejected(adapter):
    with pytest.raises(ValueError):
        CheckoutService(adapter, method="permit")


class TestClassifyFailure:

    def test_reverted_receipt(self):
        error = classify_failure(EVMTransactionConfirmation(
            status=TransactionStatus.FAILED, tx_hash=MOCK_TX_HASH, error_message="Transaction reverted on-chain",
        ))
        assert isinstance(error, TransactionFailedError)
        assert error.status_code == 500
        assert error.message == "Transaction failed"
        assert error.tx_hash == MOCK_TX_HASH

    @pytest.mark.parametrize("text", [
        "execution reverted: FiatToken: transfer amount exceeds balance",
        "insufficient funds for gas * price + value",
    ])
    def test_insufficient_funds(self, text):
        error = classify_failure(EVMTransactionConfirmation(
            status=TransactionStatus.INVALID_TRANSACTION, error_message=text,
        ))
        assert isinstance(error, InsufficientFundsError)
        assert (error.status_code, error.message) == (400, "Insufficient JPYC balance")
        assert error.detail == text

    @pytest.mark.parametrize("text", [
        "execution reverted: FiatTokenV1: invalid signature",
        "execution reverted: FiatTokenV1: authorization is expired",
        "execution reverted: FiatTokenV1: AUTHORIZATION is used or canceled",
    ])
    def test_authorization_rejected(self, text):
        error = classify_failure(EVMTransactionConfirmation(
            status=TransactionStatus.INVALID_TRANSACTION, error_message=text,
        ))
        assert isinstance(error, AuthorizationRejectedError)
        assert error.message == "Invalid signature or authorization expired"

    def test_other_errors_are_internal(self):
        error = classify_failure(EVMTransactionConfirmation(
            status=TransactionStatus.NETWORK_ERROR, error_message="Failed to broadcast transaction: timeout",
        ))
        assert isinstance(error, ChainError)
        assert (error.status_code, error.message) == (500, "Internal server error")

    def test_timeout_without_message(self):
        error = classify_failure(EVMTransactionConfirmation(status=TransactionStatus.TIMEOUT))
        assert isinstance(error, ChainError)
        assert error.detail == "timeout"


class TestProcessPurchase:

    @pytest.mark.asyncio
    async def test_success_submits_receive_with_relayer_as_recipient(self, adapter, mock_web3, sample_cart):
        service = CheckoutService(adapter)
        body = make_purchase(sample_cart)

        response = await service.process_purchase(_request(body))

        assert response.success is True
        assert response.tx_hash == MOCK_TX_HASH
        order = response.order_details
        assert order.tx_hash == MOCK_TX_HASH
        assert order.customer == USER_ADDRESS
        assert order.total == SAMPLE_CART_TOTAL
        assert [item.name for item in order.items] == ["Coffee", "Croissant"]
        assert order.timestamp.endswith("Z")

        (call,) = mock_web3.jpyc.calls_named("receiveWithAuthorization")
        assert call.args[0] == USER_ADDRESS
        assert call.args[1] == RELAYER_ADDRESS
        assert call.args[2] == SAMPLE_CART_TOTAL * JPYC
        assert call.args[5] == bytes.fromhex(body["transferData"]["nonce"][2:])

    @pytest.mark.asyncio
    async def test_signed_recipient_is_replaced_by_relayer(self, adapter, mock_web3, sample_cart):
        service = CheckoutService(adapter)
        body = make_purchase(sample_cart, recipient=MERCHANT_ADDRESS)

        await service.process_purchase(_request(body))

        (call,) = mock_web3.jpyc.calls_named("receiveWithAuthorization")
        assert call.args[1] == RELAYER_ADDRESS

    @pytest.mark.asyncio
    async def test_transfer_method(self, adapter, mock_web3, sample_cart):
        service = CheckoutService(adapter, method="transfer")

        await service.process_purchase(_request(make_purchase(sample_cart, authorization_type="transfer")))

        assert len(mock_web3.jpyc.calls_named("transferWithAuthorization")) == 1
        assert mock_web3.jpyc.calls_named("receiveWithAuthorization") == []

    @pytest.mark.asyncio
    async def test_empty_cart(self, adapter, mock_web3, sample_cart):
        body = make_purchase(sample_cart)
        body["cart"] = []

        with pytest.raises(EmptyCartError):
            await CheckoutService(adapter).process_purchase(_request(body))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"cart": None},
        {"cart": [], "transferData": {"from": "0x1"}, "signature": "0x"},
        {"transferData": "not-an-object", "signature": 12},
    ])
    async def test_cart_is_checked_before_anything_else(self, adapter, body):
        with pytest.raises(EmptyCartError):
            await CheckoutService(adapter).process_purchase(_request(body))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["transferData", "signature"])
    async def test_missing_authorization(self, adapter, sample_cart, missing):
        body = make_purchase(sample_cart)
        del body[missing]

        with pytest.raises(MissingAuthorizationError):
            await CheckoutService(adapter).process_purchase(_request(body))

    @pytest.mark.asyncio
    async def test_amount_mismatch_never_reaches_chain(self, adapter, mock_web3, sample_cart):
        body = make_purchase(sample_cart, value=SAMPLE_CART_TOTAL * JPYC - 1)

        with pytest.raises(AmountMismatchError) as exc_info:
            await CheckoutService(adapter).process_purchase(_request(body))

        assert exc_info.value.expected == SAMPLE_CART_TOTAL * JPYC
        assert exc_info.value.signed == SAMPLE_CART_TOTAL * JPYC - 1
        assert mock_web3.jpyc.calls == []
        mock_web3.eth.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_signature(self, adapter, mock_web3, sample_cart):
        body = make_purchase(sample_cart)
        body["signature"] = body["signature"][:-2]

        with pytest.raises(InvalidSignatureError):
            await CheckoutService(adapter).process_purchase(_request(body))
        assert mock_web3.jpyc.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("transfer_data", [
        "not-an-object",
        {"from": USER_ADDRESS},
    ])
    async def test_malformed_transfer_data(self, adapter, mock_web3, sample_cart, transfer_data):
        body = make_purchase(sample_cart)
        body["transferData"] = transfer_data

        with pytest.raises(InvalidPurchaseRequestError):
            await CheckoutService(adapter).process_purchase(_request(body))
        assert mock_web3.jpyc.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("nonce", ["0xzz", "0x" + "zz" * 32, "0x" + "00" * 31])
    async def test_malformed_nonce_is_a_client_error(self, adapter, mock_web3, sample_cart, nonce):
        body = make_purchase(sample_cart)
        body["transferData"]["nonce"] = nonce

        with pytest.raises(InvalidPurchaseRequestError) as exc_info:
            await CheckoutService(adapter).process_purchase(_request(body))

        assert exc_info.value.status_code == 400
        assert mock_web3.jpyc.calls == []

    @pytest.mark.asyncio
    async def test_empty_validity_window_is_rejected(self, adapter, mock_web3, sample_cart):
        body = make_purchase(sample_cart)
        body["transferData"]["validAfter"] = body["transferData"]["validBefore"]

        with pytest.raises(InvalidPurchaseRequestError):
            await CheckoutService(adapter).process_purchase(_request(body))
        assert mock_web3.jpyc.calls == []

    @pytest.mark.asyncio
    async def test_non_string_signature(self, adapter, sample_cart):
        body = make_purchase(sample_cart)
        body["signature"] = 65

        with pytest.raises(InvalidSignatureError):
            await CheckoutService(adapter).process_purchase(_request(body))

    @pytest.mark.asyncio
    async def test_bare_recovery_id_is_submitted_as_27_or_28(self, adapter, mock_web3, sample_cart):
        body = make_purchase(sample_cart)
        v = int(body["signature"][-2:], 16)
        body["signature"] = body["signature"][:-2] + format(v - 27, "02x")

        response = await CheckoutService(adapter).process_purchase(_request(body))

        assert response.success is True
        (call,) = mock_web3.jpyc.calls_named("receiveWithAuthorization")
        assert call.args[6] == v

    @pytest.mark.asyncio
    async def test_invalid_from_address(self, adapter, sample_cart):
        body = make_purchase(sample_cart)
        body["transferData"]["from"] = "0xnot-an-address"

        with pytest.raises(InvalidPurchaseRequestError):
            await CheckoutService(adapter).process_purchase(_request(body))

    @pytest.mark.asyncio
    async def test_balance_revert_maps_to_insufficient_funds(self, adapter, mock_web3, sample_cart):
        mock_web3.jpyc.estimate_gas_error = Exception("execution reverted: FiatToken: transfer amount exceeds balance")

        with pytest.raises(InsufficientFundsError):
            await CheckoutService(adapter).process_purchase(_request(make_purchase(sample_cart)))

    @pytest.mark.asyncio
    async def test_reverted_transaction(self, adapter, mock_web3, sample_cart):
        mock_web3.receipt_status = 0

        with pytest.raises(TransactionFailedError) as exc_info:
            await CheckoutService(adapter).process_purchase(_request(make_purchase(sample_cart)))

        assert exc_info.value.tx_hash == MOCK_TX_HASH


@pytest.mark.asyncio
async def test_cart_total_example_rejects_short_authorization(adapter, mock_web3):
    cart = [
        {"id": 1, "name": "Tea", "price": 500, "quantity": 1},
        {"id": 2, "name": "Scone", "price": 300, "quantity": 2},
    ]
    service = CheckoutService(adapter)

    assert service.expected_value([CartItem(**item) for item in cart]) == 1100 * JPYC
    with pytest.raises(AmountMismatchError):
        await service.process_purchase(_request(make_purchase(cart, value=1000 * JPYC)))
    assert mock_web3.jpyc.calls == []
