from .adapter import EVMAdapter
from .schemas import (
    EVMECDSASignature,
    EVMTokenPermit,
    ERC3009Authorization,
    EVMTransactionConfirmation,
)
from .signatures import (
    generate_nonce,
    build_erc3009_typed_data,
    build_permit_typed_data,
    sign_typed_data,
    split_signature,
    sign_erc3009_authorization,
    sign_permit,
)

__all__ = [
    "EVMECDSASignature",
    "EVMAdapter",
    "EVMTokenPermit",
    "ERC3009Authorization",
    "EVMTransactionConfirmation",
    "generate_nonce",
    "build_erc3009_typed_data",
    "build_permit_typed_data",
    "sign_typed_data",
    "split_signature",
    "sign_erc3009_authorization",
    "sign_permit",
]
