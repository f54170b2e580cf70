"""
JPYC authorization builder

Local EIP-712 helpers for JPYC's ERC-3009 ``transferWithAuthorization`` /
``receiveWithAuthorization`` and EIP-2612 ``permit``.  All cryptographic
operations are performed in-process using ``eth_account``; no RPC calls or
on-chain state queries are made (the permit nonce is read by the caller).

Helpers:

generate_nonce
    32 cryptographically random bytes as a 0x-prefixed hex string.

build_erc3009_typed_data / build_permit_typed_data
    Wrap an authorization or permit in its EIP-712 envelope without signing.
    Useful when the signing step is handled by a browser wallet.

sign_typed_data
    Sign any envelope with a private key and return the split signature.

split_signature
    Split a packed 65-byte ``r || s || v`` signature into ``EVMECDSASignature``.

sign_erc3009_authorization / sign_permit
    Build + sign in one call; return the model with ``signature`` attached.
"""

import os
from typing import Literal, Optional, Union

from eth_account import Account
from eth_utils import to_bytes

from .standards import (
    EIP712Domain,
    AuthorizationMessage,
    ERC3009TypedData,
    PermitMessage,
    PermitTypedData,
)
from .schemas import ERC3009Authorization, EVMECDSASignature, EVMTokenPermit
from .constants import JPYC_DOMAIN_NAME, JPYC_DOMAIN_VERSION

SignatureType = Literal["EIP2612", "ERC3009"]


def generate_nonce() -> str:
    """
    Generate a random ERC-3009 nonce.

    Returns:
        0x-prefixed 64-character hex string (bytes32).
    """
    return "0x" + os.urandom(32).hex()


# Typed-data envelopes

def build_erc3009_typed_data(
    authorization: ERC3009Authorization,
    *,
    domain_name: str = JPYC_DOMAIN_NAME,
    domain_version: str = JPYC_DOMAIN_VERSION,
) -> ERC3009TypedData:
    """
    Build the EIP-712 envelope for an authorization, leaving it unsigned.

    The primary type follows ``authorization.authorization_type``:
    ``TransferWithAuthorization`` for ``"transfer"``,
    ``ReceiveWithAuthorization`` for ``"receive"``.  The result is a pure
    function of its inputs.

    Args:
        authorization:  Authorization to wrap; its ``signature`` is ignored.
        domain_name:    EIP-712 domain ``name`` as stored in the token contract.
        domain_version: EIP-712 domain ``version`` string.

    Returns:
        ``ERC3009TypedData`` whose ``to_dict()`` is compatible with
        ``eth_account.Account.sign_typed_data`` and ``eth_signTypedData_v4``.

    Example::

        typed_data = build_erc3009_typed_data(authorization)
        payload = typed_data.to_dict()   # hand off to a browser wallet
    """
    domain = EIP712Domain(
        name=domain_name,
        version=domain_version,
        chainId=authorization.chain_id,
        verifyingContract=authorization.token,
    )
    message = AuthorizationMessage(
        authorizer=authorization.authorizer,
        recipient=authorization.recipient,
        value=authorization.value,
        validAfter=authorization.validAfter,
        validBefore=authorization.validBefore,
        nonce=authorization.nonce,
    )
    return ERC3009TypedData(domain=domain, message=message, primary_type=authorization.primary_type)


def build_permit_typed_data(
    permit: EVMTokenPermit,
    *,
    domain_name: str = JPYC_DOMAIN_NAME,
    domain_version: str = JPYC_DOMAIN_VERSION,
) -> PermitTypedData:
    """
    Wrap an ``EVMTokenPermit`` in an EIP-2612 ``Permit`` envelope without signing.

    Args:
        permit:         An ``EVMTokenPermit`` instance (unsigned is fine).
        domain_name:    EIP-712 domain ``name`` as stored in the token contract.
        domain_version: EIP-712 domain ``version`` string.

    Returns:
        ``PermitTypedData`` ready for ``to_dict()``.
    """
    domain = EIP712Domain(
        name=domain_name,
        version=domain_version,
        chainId=permit.chain_id,
        verifyingContract=permit.token,
    )
    message = PermitMessage(
        owner=permit.owner,
        spender=permit.spender,
        value=permit.value,
        nonce=permit.nonce,
        deadline=permit.deadline,
    )
    return PermitTypedData(domain=domain, message=message)


# Packed signatures

def split_signature(
    signature: Union[str, bytes],
    signature_type: SignatureType = "ERC3009",
) -> EVMECDSASignature:
    """
    Split a packed 65-byte signature into its (r, s, v) components.

    Positional split: r = bytes[0:32], s = bytes[32:64], v = byte[64].
    Some wallets emit the bare recovery id (0 or 1); it is shifted to
    27/28 so the contract's ``ecrecover`` accepts it.

    Args:
        signature:      0x-prefixed hex string or raw bytes.
        signature_type: Standard the signature was produced for.

    Returns:
        ``EVMECDSASignature`` with zero-padded 64-char ``r`` and ``s``.

    Raises:
        ValueError: If the input is not hex, not exactly 65 bytes, or ``v``
            is not one of 0, 1, 27, 28.
    """
    if isinstance(signature, str):
        try:
            raw = to_bytes(hexstr=signature)
        except (ValueError, TypeError) as e:
            raise ValueError(f"Signature is not valid hex: {e}") from e
    else:
        raw = bytes(signature)

    if len(raw) != 65:
        raise ValueError(f"Signature must be 65 bytes, got {len(raw)}")

    v = raw[64]
    if v in (0, 1):
        v += 27
    if v not in (27, 28):
        raise ValueError(f"Invalid recovery ID: {raw[64]}. Must be 0, 1, 27 or 28")

    return EVMECDSASignature(
        signature_type=signature_type,
        v=v,
        r="0x" + raw[0:32].hex(),
        s="0x" + raw[32:64].hex(),
    )


def sign_typed_data(
    private_key: str,
    typed_data: Union[ERC3009TypedData, PermitTypedData],
    signature_type: SignatureType,
) -> EVMECDSASignature:
    """
    Sign an EIP-712 envelope locally and return the split signature.

    Args:
        private_key:    Hex-encoded secp256k1 private key (with or without ``0x``).
        typed_data:     Envelope built by one of the ``build_*`` helpers.
        signature_type: ``"ERC3009"`` or ``"EIP2612"``.

    Returns:
        ``EVMECDSASignature`` (v is 27 or 28).
    """
    signed = Account.sign_typed_data(private_key, full_message=typed_data.to_dict())
    return split_signature(bytes(signed.signature), signature_type)


# One-call signers

def sign_erc3009_authorization(
    *,
    private_key: str,
    token: str,
    chain_id: int,
    authorizer: str,
    recipient: str,
    value: int,
    valid_after: int,
    valid_before: int,
    authorization_type: Literal["transfer", "receive"] = "transfer",
    domain_name: str = JPYC_DOMAIN_NAME,
    domain_version: str = JPYC_DOMAIN_VERSION,
    nonce: Optional[str] = None,
) -> ERC3009Authorization:
    """
    Create and sign an ERC-3009 authorization in one step.

    Works offline.  The returned model carries the split signature and can
    be passed straight to ``EVMAdapter.transfer_with_authorization`` or
    ``receive_with_authorization``.

    Args:
        private_key:        Hex-encoded private key of the authorizer.
        token:              Token contract address; also the EIP-712
                            ``verifyingContract``.
        chain_id:           EVM network ID (e.g. ``11155111`` Sepolia).
        authorizer:         Address that owns the tokens (``from``).  Must
                            match the address derived from ``private_key``.
        recipient:          Address that will receive the tokens (``to``).
                            For ``"receive"`` this must be the submitter.
        value:              Amount to transfer in the token's smallest unit.
        valid_after:        Unix timestamp after which the authorization is
                            valid.  Pass ``0`` for immediate validity.
        valid_before:       Unix timestamp before which it must be submitted.
        authorization_type: ``"transfer"`` or ``"receive"``.
        domain_name:        EIP-712 domain ``name`` (``"JPY Coin"`` for JPYC).
        domain_version:     EIP-712 domain ``version`` (``"1"`` for JPYC).
        nonce:              Optional bytes32 hex string; generated when omitted.

    Returns:
        The signed ``ERC3009Authorization``.

    Raises:
        ValueError: If ``valid_after >= valid_before``.

    Example::

        auth = sign_erc3009_authorization(
            private_key=customer_key,
            token="0x431D5dfF03120AFA4bDf332c61A6e1766eF37BDB",
            chain_id=11155111,
            authorizer=customer_address,
            recipient=relayer_address,
            value=100 * 10**18,
            valid_after=0,
            valid_before=int(time.time()) + 3600,
            authorization_type="receive",
        )
    """
    if valid_after >= valid_before:
        raise ValueError(
            f"validity window is empty: valid_after={valid_after}, valid_before={valid_before}"
        )

    authorization = ERC3009Authorization(
        authorization_type=authorization_type,
        token=token,
        chain_id=chain_id,
        authorizer=authorizer,
        recipient=recipient,
        value=value,
        validAfter=valid_after,
        validBefore=valid_before,
        nonce=nonce if nonce is not None else generate_nonce(),
    )

    typed_data = build_erc3009_typed_data(
        authorization,
        domain_name=domain_name,
        domain_version=domain_version,
    )
    authorization.signature = sign_typed_data(private_key, typed_data, "ERC3009")

    return authorization


def sign_permit(
    *,
    private_key: str,
    token: str,
    chain_id: int,
    owner: str,
    spender: str,
    value: int,
    nonce: int,
    deadline: int,
    domain_name: str = JPYC_DOMAIN_NAME,
    domain_version: str = JPYC_DOMAIN_VERSION,
) -> EVMTokenPermit:
    """
    Sign an EIP-2612 permit and return an ``EVMTokenPermit`` with v, r, s attached.

    Args:
        private_key:    Hex-encoded private key of the token owner.
        token:          Token contract address (EIP-712 ``verifyingContract``).
        chain_id:       EVM network ID.
        owner:          Token owner address; must match ``private_key``.
        spender:        Address granted the allowance.
        value:          Allowance in the token's smallest unit.
        nonce:          Current ``nonces(owner)`` value read from the contract.
        deadline:       Unix timestamp after which the permit is invalid.
        domain_name:    EIP-712 domain ``name``.
        domain_version: EIP-712 domain ``version``.

    Returns:
        ``EVMTokenPermit`` with ``signature`` populated.
    """
    permit = EVMTokenPermit(
        owner=owner,
        spender=spender,
        token=token,
        value=value,
        nonce=nonce,
        deadline=deadline,
        chain_id=chain_id,
    )
    typed_data = build_permit_typed_data(
        permit,
        domain_name=domain_name,
        domain_version=domain_version,
    )
    permit.signature = sign_typed_data(private_key, typed_data, "EIP2612")
    return permit
