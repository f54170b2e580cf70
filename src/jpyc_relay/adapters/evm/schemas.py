"""
EVM Adapter Schema Models

Pydantic models for JPYC authorizations, permits and the transactions that
settle them.  All classes inherit from the base schema hierarchy in
``schemas.bases``.

Signature classes:
    - EVMECDSASignature: Unified v/r/s signature for EIP-2612 and ERC-3009
      (use ``signature_type`` to distinguish).

Permit / authorization classes:
    - EVMTokenPermit: EIP-2612 ``permit()`` authorization (owner, spender,
      value, nonce, deadline).
    - ERC3009Authorization: ERC-3009 transfer/receive authorization payload
      (distinct field structure, kept separate).

Result / confirmation classes:
    - EVMTransactionConfirmation: Transaction receipt summary returned by
      every adapter write.
"""

from typing import Optional, Literal

from pydantic import Field

from ...schemas.bases import (
    BaseSignature,
    BasePermit,
    BaseTransactionConfirmation,
)
from .standards import TRANSFER_WITH_AUTHORIZATION, RECEIVE_WITH_AUTHORIZATION


def _check_address(field_name: str, value: str) -> None:
    if not value.startswith("0x"):
        raise ValueError(f"{field_name} must be a 0x-prefixed address")
    if len(value) != 42:
        raise ValueError(f"{field_name} must be 42 characters (0x + 40 hex), got {len(value)}")
    try:
        int(value[2:], 16)
    except ValueError:
        raise ValueError(f"{field_name} contains non-hex characters: {value!r}")


def _check_bytes32(field_name: str, value: str) -> None:
    raw = value[2:] if value.startswith(("0x", "0X")) else value
    if len(raw) != 64:
        raise ValueError(f"{field_name} must be 32 bytes (64 hex chars), got {len(raw)}")
    try:
        bytes.fromhex(raw)
    except ValueError:
        raise ValueError(f"{field_name} contains non-hex characters: {value!r}")


class EVMECDSASignature(BaseSignature):
    """
    Unified EVM ECDSA signature (v, r, s).

    Shared by both standards that produce a three-component ECDSA signature.
    Use ``signature_type`` to identify the signing standard:

    * ``"EIP2612"``: EIP-2612 ``permit()`` calls.
    * ``"ERC3009"``: ERC-3009 ``transferWithAuthorization`` /
      ``receiveWithAuthorization`` calls.

    Attributes:
        signature_type: One of ``"EIP2612"``, ``"ERC3009"``.
        v: ECDSA recovery ID (27 or 28).
        r: r component, 32 bytes as a 64-char hex string (0x prefix optional).
        s: s component, 32 bytes as a 64-char hex string (0x prefix optional).

    Example::

        sig = EVMECDSASignature(signature_type="ERC3009", v=27, r="0x" + "a" * 64, s="0x" + "b" * 64)
        sig.validate_format()
    """

    signature_type: Literal["EIP2612", "ERC3009"] = Field(
        ..., description="Signing standard: 'EIP2612' or 'ERC3009'"
    )
    v: int = Field(..., ge=27, le=28, description="Recovery id, 27 or 28")
    r: str = Field(..., description="r as 64 hex chars")
    s: str = Field(..., description="s as 64 hex chars")

    def validate_format(self) -> bool:
        """
        Validate v/r/s components.

        Checks v is 27 or 28 and that r/s are valid 64-character hex strings
        (0x prefix stripped before length check).

        Returns:
            True when all components pass.

        Raises:
            ValueError: Descriptive message on the first failed check.
        """
        if self.v not in (27, 28):
            raise ValueError(f"Invalid recovery ID: {self.v}. Must be 27 or 28")

        for name, val in [("r", self.r), ("s", self.s)]:
            hex_str = val[2:] if val.startswith(("0x", "0X")) else val
            if len(hex_str) != 64:
                raise ValueError(f"Invalid {name}: expected 64 hex chars, got {len(hex_str)}")
            try:
                int(hex_str, 16)
            except ValueError:
                raise ValueError(f"Invalid {name}: not valid hexadecimal")

        return True

    def to_packed_hex(self) -> str:
        """
        Encode v/r/s into a packed 65-byte hex string (``r || s || v``).

        This is the wire format a wallet's ``signTypedData`` returns and the
        ``signature`` field of ``POST /purchase`` carries.

        Returns:
            0x-prefixed 132-character hex string.

        Raises:
            ValueError: If components do not pass ``validate_format()``.
        """
        self.validate_format()
        r = self.r[2:] if self.r.startswith(("0x", "0X")) else self.r
        s = self.s[2:] if self.s.startswith(("0x", "0X")) else self.s
        return "0x" + r.lower() + s.lower() + format(self.v, "02x")


class EVMTokenPermit(BasePermit):
    """
    Signed EIP-2612 allowance for JPYC.

    The holder (``owner``) signs off-chain; anyone, in practice the relayer,
    submits it with ``EVMAdapter.permit()`` and the spender can then call
    ``transferFrom``.  ``nonce`` must equal ``nonces(owner)`` when the permit
    is mined, so read it right before signing.

    Example::

        permit = EVMTokenPermit(
            owner="0x1234...5678",
            spender="0x8765...4321",
            token="0x431D5dfF03120AFA4bDf332c61A6e1766eF37BDB",
            value=100 * 10**18,
            nonce=0,
            deadline=1_900_000_000,
            chain_id=11155111,
        )
    """

    permit_type: Literal["EIP2612"] = Field(default="EIP2612", description="Always EIP2612")
    owner: str = Field(..., description="Holder granting the allowance")
    spender: str = Field(..., description="Account allowed to call transferFrom")
    token: str = Field(..., description="JPYC contract (EIP-712 verifyingContract)")
    value: int = Field(..., ge=0, description="Allowance in smallest units")
    nonce: int = Field(..., ge=0, description="nonces(owner) at signing time")
    deadline: int = Field(..., ge=0, description="Last valid unix timestamp")
    chain_id: int = Field(..., ge=1, description="EIP-155 chain id")
    signature: Optional[EVMECDSASignature] = Field(
        None, description="EIP-2612 ECDSA signature (signature_type='EIP2612')"
    )

    def validate_structure(self) -> bool:
        """
        Validate permit fields and embedded signature.

        Returns:
            True when all checks pass.

        Raises:
            ValueError: With a descriptive message on the first failed check.
        """
        for field_name, value in [("owner", self.owner), ("spender", self.spender), ("token", self.token)]:
            _check_address(field_name, value)

        if not self.signature:
            raise ValueError("signature is required")

        try:
            self.signature.validate_format()
        except ValueError as e:
            raise ValueError(f"Signature validation failed: {e}")

        return True


class ERC3009Authorization(BasePermit):
    """
    ERC-3009 Authorization container.

    Captures the canonical fields of an ERC-3009 authorization.  The same
    fields serve both on-chain entry points; ``authorization_type`` selects
    which one (and therefore which EIP-712 primary type) applies:

    * ``"transfer"``: ``transferWithAuthorization``, any caller may submit.
    * ``"receive"``: ``receiveWithAuthorization``, only ``recipient`` may submit.

    Nothing here recovers the signer.  The JPYC contract does that, and it
    also enforces the ``validAfter``/``validBefore`` window and one-time use
    of ``nonce``.  ``authorizer`` and ``recipient`` are the EIP's ``from``
    and ``to``, renamed because ``from`` is a Python keyword.
    """

    permit_type: Literal["ERC3009"] = Field(default="ERC3009", description="Always ERC3009")
    authorization_type: Literal["transfer", "receive"] = Field(
        default="transfer", description="Which ERC-3009 entry point the authorization targets"
    )
    token: str = Field(..., description="JPYC contract (EIP-712 verifyingContract)")
    chain_id: int = Field(..., ge=1, description="EIP-155 chain id")
    authorizer: str = Field(..., description="Payer; signed as `from`")
    recipient: str = Field(..., description="Payee; signed as `to`")
    value: int = Field(..., ge=0, description="Amount in smallest units")
    validAfter: int = Field(..., ge=0, description="Valid strictly after this unix time")
    validBefore: int = Field(..., ge=0, description="Valid strictly before this unix time")
    nonce: str = Field(..., description="Random bytes32, 0x-hex")
    signature: Optional[EVMECDSASignature] = Field(None, description="v/r/s once signed")

    @property
    def primary_type(self) -> str:
        """EIP-712 primary type for this authorization."""
        if self.authorization_type == "receive":
            return RECEIVE_WITH_AUTHORIZATION
        return TRANSFER_WITH_AUTHORIZATION

    def validate_structure(self) -> bool:
        """
        Validate addresses, the validity window and the nonce.

        Returns:
            True when all checks pass.

        Raises:
            ValueError: With a descriptive message on the first failed check.
        """
        for field_name, value in [
            ("authorizer", self.authorizer),
            ("recipient", self.recipient),
            ("token", self.token),
        ]:
            _check_address(field_name, value)

        if self.validAfter >= self.validBefore:
            raise ValueError(
                f"validAfter ({self.validAfter}) must be earlier than validBefore ({self.validBefore})"
            )

        _check_bytes32("nonce", self.nonce)

        if self.signature is not None:
            try:
                self.signature.validate_format()
            except ValueError as e:
                raise ValueError(f"Signature validation failed: {e}")

        return True


class EVMTransactionConfirmation(BaseTransactionConfirmation):
    """
    Outcome of one ``EVMAdapter`` write, with receipt data when mined.

    Chain failures are reported through ``status`` and ``error_message``
    instead of being raised.  ``tx_hash`` is ``None`` only when nothing was
    broadcast (``INVALID_TRANSACTION`` and broadcast ``NETWORK_ERROR``).

    Example:
        confirmation = await adapter.receive_with_authorization(authorization)
        if confirmation.is_success():
            print(f"Confirmed: {confirmation.tx_hash}")
        else:
            print(f"Failed: {confirmation.error_message}")
    """

    confirmation_type: Literal["evm"] = Field(default="evm", description="Always evm")
    tx_hash: Optional[str] = Field(None, description="Transaction hash (0x-prefixed hex string on EVM)")
    block_number: Optional[int] = Field(None, ge=0, description="Block the transaction was mined in")
    gas_used: Optional[int] = Field(None, ge=0, description="Gas used per the receipt")
    gas_limit: Optional[int] = Field(None, ge=0, description="Gas limit from the receipt, when reported")
    transaction_fee: Optional[int] = Field(None, ge=0, description="gasUsed * effectiveGasPrice (wei)")
    from_address: Optional[str] = Field(None, description="Submitting account (the relayer)")
    to_address: Optional[str] = Field(None, description="Contract called")
