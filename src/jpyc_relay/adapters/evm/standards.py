from dataclasses import dataclass, field
from typing import Dict, Any, List


TRANSFER_WITH_AUTHORIZATION = "TransferWithAuthorization"
RECEIVE_WITH_AUTHORIZATION = "ReceiveWithAuthorization"

# Both ERC-3009 primary types share one field layout.
_AUTHORIZATION_FIELDS: List[Dict[str, str]] = [
    {"name": "from", "type": "address"},
    {"name": "to", "type": "address"},
    {"name": "value", "type": "uint256"},
    {"name": "validAfter", "type": "uint256"},
    {"name": "validBefore", "type": "uint256"},
    {"name": "nonce", "type": "bytes32"},
]

_DOMAIN_FIELDS: List[Dict[str, str]] = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]


# -----------------------------
# EIP-712 Domain
# -----------------------------

@dataclass
class EIP712Domain:
    """Signing domain; binds a signature to one token contract on one chain."""
    name: str
    version: str
    chainId: int
    verifyingContract: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chainId,
            "verifyingContract": self.verifyingContract,
        }


# -----------------------------
# EIP-3009: Transfer / Receive With Authorization
# -----------------------------


@dataclass
class AuthorizationMessage:
    """
    Message payload shared by EIP-3009 "TransferWithAuthorization" and
    "ReceiveWithAuthorization".

    The EIP defines the field name `from`, which is a Python reserved word;
    this class uses `authorizer` as the attribute name and maps it to `from`
    in `to_dict()`.

    All integers are uint256; `nonce` is a 0x-prefixed bytes32 hex string.
    """
    authorizer: str
    recipient: str
    value: int
    validAfter: int
    validBefore: int
    nonce: str

    def to_dict(self) -> Dict[str, Any]:
        """Return a dictionary representation compatible with EIP-712 signing.

        Keys follow the EIP-3009 typed definition, in declaration order:
        `from`, `to`, `value`, `validAfter`, `validBefore`, `nonce`.
        """
        return {
            "from": self.authorizer,
            "to": self.recipient,
            "value": self.value,
            "validAfter": self.validAfter,
            "validBefore": self.validBefore,
            "nonce": self.nonce,
        }


@dataclass
class ERC3009TypedData:
    """
    ERC-3009 envelope for either the transfer or the receive variant.

    ``primary_type`` selects the EIP-3009 variant; the ``types`` mapping is
    derived from it in ``__post_init__`` so the primary type always has a
    definition.  ``to_dict()`` yields the ``{types, primaryType, domain,
    message}`` layout consumed by ``eth_account.Account.sign_typed_data``.

    """
    domain: EIP712Domain
    message: AuthorizationMessage

    primary_type: str = TRANSFER_WITH_AUTHORIZATION

    types: Dict[str, List[Dict[str, str]]] = field(default_factory=dict)

    def __post_init__(self):
        if self.primary_type not in (TRANSFER_WITH_AUTHORIZATION, RECEIVE_WITH_AUTHORIZATION):
            raise ValueError(f"Unsupported ERC-3009 primary type: {self.primary_type!r}")
        if not self.types:
            self.types = {
                "EIP712Domain": list(_DOMAIN_FIELDS),
                self.primary_type: list(_AUTHORIZATION_FIELDS),
            }

    def to_dict(self) -> Dict[str, Any]:
        """Full typed-data payload, ready for signing."""
        return {
            "types": self.types,
            "primaryType": self.primary_type,
            "domain": self.domain.to_dict(),
            "message": self.message.to_dict(),
        }


# -----------------------------
# EIP-2612: Permit
# -----------------------------

@dataclass
class PermitMessage:
    """EIP-2612 `Permit` struct: owner lets spender move up to `value` until `deadline`."""
    owner: str
    spender: str
    value: int
    nonce: int
    deadline: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "spender": self.spender,
            "value": self.value,
            "nonce": self.nonce,
            "deadline": self.deadline,
        }


@dataclass
class PermitTypedData:
    """`Permit` envelope; `to_dict()` is what a wallet signs."""
    domain: EIP712Domain
    message: PermitMessage

    primary_type: str = "Permit"

    types: Dict[str, List[Dict[str, str]]] = field(
        default_factory=lambda: {
            "EIP712Domain": list(_DOMAIN_FIELDS),
            "Permit": [
                {"name": "owner", "type": "address"},
                {"name": "spender", "type": "address"},
                {"name": "value", "type": "uint256"},
                {"name": "nonce", "type": "uint256"},
                {"name": "deadline", "type": "uint256"},
            ],
        }
    )

    def to_dict(self) -> Dict[str, Any]:
        """Full typed-data payload, ready for signing."""
        return {
            "types": self.types,
            "primaryType": self.primary_type,
            "domain": self.domain.to_dict(),
            "message": self.message.to_dict(),
        }
