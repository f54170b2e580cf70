from .apps import CheckoutServer
from .checkout import CheckoutService, cart_total, classify_failure

__all__ = [
    "CheckoutServer",
    "CheckoutService",
    "cart_total",
    "classify_failure",
]
