"""
Exception and Error Definitions Module

Defines the exception hierarchy for checkout validation, configuration and
blockchain interaction.  All exceptions inherit from ``RelayError`` for
unified exception handling.

Exception Hierarchy:
    RelayError (root)
    ├── ConfigurationError
    └── CheckoutError                  (carries status_code + message)
        ├── EmptyCartError             400
        ├── MissingAuthorizationError  400
        ├── InvalidPurchaseRequestError 400
        ├── AmountMismatchError        400
        ├── InvalidSignatureError      400
        ├── InsufficientFundsError     400
        ├── AuthorizationRejectedError 400
        ├── TransactionFailedError     500
        └── ChainError                 500
"""


class RelayError(Exception):
    """
    Root exception class for all project-specific exceptions.
    """
    pass


class ConfigurationError(RelayError):
    """
    Raised when configuration is missing or invalid.

    This includes scenarios such as:
    - Missing relayer / user private key
    - Malformed private key or contract address
    - Unsupported chain id with no explicit RPC endpoint
    """
    pass


class CheckoutError(RelayError):
    """
    Base exception for a purchase that cannot be completed.

    Every subclass fixes the HTTP status and the user-facing message returned
    by ``POST /purchase``; ``detail`` keeps the underlying cause for logs only.

    Attributes:
        status_code: HTTP status to respond with.
        message: User-facing message (``{"message": ...}`` body).
        detail: Optional internal detail (node error text, validation errors).
    """

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, detail: str | None = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class EmptyCartError(CheckoutError):
    """Raised when the purchase request carries no cart items."""

    status_code = 400
    default_message = "Cart is empty"


class MissingAuthorizationError(CheckoutError):
    """Raised when transferData or signature is absent."""

    status_code = 400
    default_message = "Missing transfer data or signature"


class InvalidPurchaseRequestError(CheckoutError):
    """Raised when the request body is not valid JSON or fails validation."""

    status_code = 400
    default_message = "Invalid purchase request"


class AmountMismatchError(CheckoutError):
    """
    Raised when the signed value differs from the cart total.

    Attributes:
        expected: Cart total in the token's smallest unit.
        signed: Value carried by the authorization.
    """

    status_code = 400
    default_message = "Transfer amount does not match cart total"

    def __init__(self, expected: int, signed: int):
        self.expected = expected
        self.signed = signed
        super().__init__(detail=f"expected={expected} signed={signed}")


class InvalidSignatureError(CheckoutError):
    """Raised when the signature blob cannot be split into (r, s, v)."""

    status_code = 400
    default_message = "Invalid signature format"


class InsufficientFundsError(CheckoutError):
    """Raised when the payer's JPYC balance cannot cover the transfer."""

    status_code = 400
    default_message = "Insufficient JPYC balance"


class AuthorizationRejectedError(CheckoutError):
    """
    Raised when the contract rejects the authorization.

    Covers a signature that does not recover to ``from``, an expired or
    not-yet-valid window, and a nonce that was already used.
    """

    status_code = 400
    default_message = "Invalid signature or authorization expired"


class TransactionFailedError(CheckoutError):
    """
    Raised when the transaction was mined but reverted.

    Attributes:
        tx_hash: Hash of the reverted transaction.
    """

    status_code = 500
    default_message = "Transaction failed"

    def __init__(self, tx_hash: str):
        self.tx_hash = tx_hash
        super().__init__(detail=f"tx_hash={tx_hash}")


class ChainError(CheckoutError):
    """Raised for any other RPC or contract failure."""

    status_code = 500
    default_message = "Internal server error"
