from .evm import (
    EVMAdapter,
    EVMECDSASignature,
    EVMTokenPermit,
    ERC3009Authorization,
    EVMTransactionConfirmation,
)

__all__ = [
    "EVMAdapter",
    "EVMECDSASignature",
    "EVMTokenPermit",
    "ERC3009Authorization",
    "EVMTransactionConfirmation",
]
