"""
JPYC Checkout Server - FastAPI wrapper around the checkout relay.

Exposes ``POST /purchase`` for the storefront and ``GET /balance/{address}``
for wallet balance display.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from web3 import Web3

from ..adapters.evm.adapter import EVMAdapter
from ..adapters.evm.constants import value_to_amount
from ..config import RelaySettings
from ..engine.exceptions import CheckoutError, InvalidPurchaseRequestError
from ..schemas.https import BalanceResponse, ErrorResponse, PurchaseRequest
from ..utils import logger
from .checkout import CheckoutService


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(message=message).model_dump())


class CheckoutServer(FastAPI):
    """FastAPI server relaying signed JPYC authorizations for checkout."""

    def __init__(
        self,
        settings: RelaySettings,
        adapter: Optional[EVMAdapter] = None,
        purchase_endpoint: str = "/purchase",
        **fastapi_kwargs
    ):
        """Initialize the checkout server.

        Args:
            settings: Relay settings (chain, relayer key, checkout method)
            adapter: Chain adapter (default: built from ``settings``)
            purchase_endpoint: Purchase endpoint path (default: /purchase)
            **fastapi_kwargs: FastAPI arguments (title, version, etc.)
        """
        self.settings = settings
        self.adapter = adapter or EVMAdapter(settings.chain, settings.relayer_private_key)
        self.checkout = CheckoutService(self.adapter, method=settings.checkout_method)

        fastapi_kwargs.setdefault("title", "JPYC Checkout Relay")
        fastapi_kwargs.setdefault("lifespan", self._lifespan)
        super().__init__(**fastapi_kwargs)

        self.purchase_endpoint = purchase_endpoint
        self._setup_purchase_endpoint(purchase_endpoint)
        self._setup_balance_endpoint()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        logger.info(
            f"Checkout relay ready: relayer={self.adapter.get_wallet_address()} "
            f"chain_id={self.settings.chain.chain_id} method={self.checkout.method}"
        )
        yield
        await self.adapter.close()

    def _setup_purchase_endpoint(self, path: str = "/purchase") -> None:
        """Setup purchase endpoint.

        Args:
            path: Endpoint path (default: /purchase)
        """
        @self.post(path)
        async def purchase(request: Request):
            """Validate a signed authorization and settle it on-chain."""
            try:
                payload = await request.json()
                purchase_request = PurchaseRequest.model_validate(payload)
            except ValueError as e:
                # covers malformed JSON and pydantic.ValidationError
                error = InvalidPurchaseRequestError(detail=str(e))
                logger.warning(f"Rejected purchase request: {error.detail}")
                return _error_response(error.status_code, error.message)

            try:
                response = await self.checkout.process_purchase(purchase_request)
            except CheckoutError as e:
                logger.warning(f"Purchase rejected ({e.status_code}): {e.message}")
                return _error_response(e.status_code, e.message)
            except Exception:
                logger.exception("Purchase processing error")
                return _error_response(500, "Internal server error")

            return JSONResponse(
                status_code=200,
                content=response.model_dump(mode="json", by_alias=True),
            )

    def _setup_balance_endpoint(self, path: str = "/balance/{address}") -> None:
        """Setup balance lookup endpoint."""
        @self.get(path)
        async def balance(address: str):
            """Return the JPYC balance of ``address``."""
            if not Web3.is_address(address):
                return _error_response(400, "Invalid address")

            try:
                value = await self.adapter.get_balance(address)
            except Exception:
                logger.exception("Balance lookup error")
                return _error_response(500, "Internal server error")

            amount = value_to_amount(value=value, decimals=self.settings.chain.decimals)
            body = BalanceResponse(
                address=Web3.to_checksum_address(address),
                value=str(value),
                amount=f"{amount:f}",
            )
            return JSONResponse(status_code=200, content=body.model_dump(mode="json"))
