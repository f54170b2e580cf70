from .bases import CanonicalModel, BaseSignature, BasePermit, TransactionStatus, BaseTransactionConfirmation
from .https import CartItem, TransferData, PurchaseRequest, OrderDetails, PurchaseResponse, ErrorResponse, BalanceResponse

__all__ = [
    "CanonicalModel",
    "BaseSignature",
    "BasePermit",
    "TransactionStatus",
    "BaseTransactionConfirmation",
    "CartItem",
    "TransferData",
    "PurchaseRequest",
    "OrderDetails",
    "PurchaseResponse",
    "ErrorResponse",
    "BalanceResponse",
]
