"""
HTTP Request/Response Schema Models for the JPYC checkout relay

This module defines the Pydantic models exchanged between the storefront
(or any HTTP client) and the relay server.

The checkout flow consists of:
1. Client builds a ``ReceiveWithAuthorization`` for the cart total and has
   the customer's wallet sign it
2. Client POSTs ``{cart, transferData, signature}`` to ``/purchase``
3. Server validates, submits the authorization and waits for the receipt
4. Server answers with the transaction hash and order details

Integers that may exceed 2**53 (``value``, ``validAfter``, ``validBefore``)
travel as decimal strings; numeric JSON values are accepted too.
"""

from typing import Any, Optional, List

from pydantic import BaseModel, Field, ConfigDict, field_validator


# ============================================================================
# Step 2: Client's purchase request (POST /purchase)
# ============================================================================

class CartItem(BaseModel):
    """A line in the customer's cart.

    Attributes:
        id: Catalog id.
        name: Display name.
        price: Unit price in whole JPYC.
        quantity: Number of units (at least 1).
        image: Optional image URL or emoji.
    """
    id: int = Field(..., description="Catalog item id")
    name: str = Field(..., description="Display name")
    price: int = Field(..., ge=0, description="Unit price in whole JPYC")
    quantity: int = Field(..., ge=1, description="Number of units")
    image: Optional[str] = Field(default=None, description="Image URL or emoji")


class TransferData(BaseModel):
    """ERC-3009 authorization fields as signed by the customer.

    ``from`` is a Python keyword, so the attribute is ``from_`` with the
    wire alias ``from``.

    Attributes:
        from_: Customer address (the signer).
        to: Recipient the client signed for; replaced by the relayer on submission.
        value: Amount in smallest units (18 decimals).
        validAfter: Unix timestamp after which the authorization is valid.
        validBefore: Unix timestamp before which it must be submitted.
        nonce: bytes32 hex nonce.
    """
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(..., alias="from", description="Customer address")
    to: str = Field(..., description="Recipient address")
    value: int = Field(..., ge=0, description="Amount in smallest units")
    validAfter: int = Field(..., ge=0, description="Validity start (unix)")
    validBefore: int = Field(..., ge=0, description="Validity end (unix)")
    nonce: str = Field(..., description="bytes32 hex nonce")

    @field_validator("value", "validAfter", "validBefore", mode="before")
    @classmethod
    def _parse_decimal_string(cls, value):
        if isinstance(value, str):
            try:
                return int(value.strip(), 10)
            except ValueError:
                raise ValueError(f"expected a decimal integer string, got {value!r}")
        return value

    @field_validator("nonce")
    @classmethod
    def _check_nonce(cls, value: str) -> str:
        raw = value[2:] if value.startswith(("0x", "0X")) else value
        if len(raw) != 64:
            raise ValueError(f"nonce must be 32 bytes of hex, got {len(raw)} chars")
        try:
            bytes.fromhex(raw)
        except ValueError:
            raise ValueError(f"nonce is not valid hex: {value!r}")
        return value


class PurchaseRequest(BaseModel):
    """Body of ``POST /purchase``.

    Only the cart is parsed here.  ``transferData`` and ``signature`` are kept
    as sent and checked by the checkout after the cart and presence checks,
    so an empty cart or a missing authorization always gets its own 400
    message.

    Attributes:
        cart: Items being purchased.
        transferData: Signed authorization fields, unparsed.
        signature: Packed 65-byte ``r || s || v`` hex signature, unparsed.
    """
    cart: Optional[List[CartItem]] = Field(default=None, description="Cart items")
    transferData: Any = Field(default=None, description="Signed authorization fields")
    signature: Any = Field(default=None, description="0x-prefixed 65-byte signature")


# ============================================================================
# Step 4: Server's purchase response
# ============================================================================

class OrderDetails(BaseModel):
    """Order summary echoed back after a confirmed purchase.

    Attributes:
        tx_hash: Transaction hash (``txHash`` on the wire).
        customer: Customer address (authorization ``from``).
        total: Cart total in whole JPYC.
        items: The purchased cart.
        timestamp: ISO-8601 UTC time of confirmation.
    """
    model_config = ConfigDict(populate_by_name=True)

    tx_hash: str = Field(..., alias="txHash", description="Transaction hash")
    customer: str = Field(..., description="Customer address")
    total: int = Field(..., ge=0, description="Cart total in whole JPYC")
    items: List[CartItem] = Field(..., description="Purchased items")
    timestamp: str = Field(..., description="ISO-8601 confirmation time")


class PurchaseResponse(BaseModel):
    """200 response of ``POST /purchase``."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(default=True, description="Always true on 200")
    tx_hash: str = Field(..., alias="txHash", description="Transaction hash")
    order_details: OrderDetails = Field(..., alias="orderDetails", description="Order summary")
    message: str = Field(default="Purchase completed successfully!", description="Human-readable result")


class ErrorResponse(BaseModel):
    """4xx/5xx body: ``{"message": ...}``."""
    message: str = Field(..., description="Human-readable error")


class BalanceResponse(BaseModel):
    """Response of ``GET /balance/{address}``.

    Attributes:
        address: Checksummed address queried.
        value: Balance in smallest units, as a decimal string.
        amount: Balance in whole JPYC, as a decimal string.
    """
    address: str = Field(..., description="Checksummed address")
    value: str = Field(..., description="Balance in smallest units")
    amount: str = Field(..., description="Balance in JPYC")
