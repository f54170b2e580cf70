from jpyc_relay.config import RelaySettings
from jpyc_relay.servers import CheckoutServer
from jpyc_relay.utils import setup_logger


# Reads RELAYER_PRIVATE_KEY, RPC_ENDPOINT, CHAIN_ID, CHECKOUT_METHOD from .env
settings = RelaySettings.from_env()
setup_logger(settings.log_level)

# ✨ POST /purchase and GET /balance/{address} are added automatically
app = CheckoutServer(
    settings,
    title="JPYC Shop Checkout",
)

print(f"Relayer (receives payments, pays gas): {settings.relayer_address}")


# Regular FastAPI routes can sit next to the checkout endpoints
@app.get("/products")
async def list_products():
    """Catalog served to the storefront."""
    return [
        {"id": 1, "name": "Coffee", "price": 500, "image": "☕"},
        {"id": 2, "name": "Croissant", "price": 100, "image": "🥐"},
        {"id": 3, "name": "Matcha Latte", "price": 650, "image": "🍵"},
    ]


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="localhost", port=8000, log_level="debug")
