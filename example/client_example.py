import time

import httpx

from jpyc_relay.adapters.evm.constants import JPYC_ADDRESS, amount_to_value
from jpyc_relay.adapters.evm.signatures import sign_erc3009_authorization
from eth_account import Account

wpk = "0xxxx"  # Replace with the customer's private key
relayer = "0xxxx"  # Replace with the server's relayer address (printed at startup)

cart = [
    {"id": 1, "name": "Coffee", "price": 500, "quantity": 2},
    {"id": 2, "name": "Croissant", "price": 100, "quantity": 1},
]


async def main():
    total = sum(item["price"] * item["quantity"] for item in cart)
    customer = Account.from_key(wpk).address

    # What a browser wallet does with eth_signTypedData_v4
    authorization = sign_erc3009_authorization(
        private_key=wpk,
        token=JPYC_ADDRESS,
        chain_id=11155111,
        authorizer=customer,
        recipient=relayer,
        value=amount_to_value(amount=total, decimals=18),
        valid_after=0,
        valid_before=int(time.time()) + 3600,
        authorization_type="receive",
    )

    async with httpx.AsyncClient(timeout=httpx.Timeout(60.0, read=180.0)) as client:
        return await client.post(
            "http://localhost:8000/purchase",
            json={
                "cart": cart,
                "transferData": {
                    "from": authorization.authorizer,
                    "to": authorization.recipient,
                    "value": str(authorization.value),
                    "validAfter": str(authorization.validAfter),
                    "validBefore": str(authorization.validBefore),
                    "nonce": authorization.nonce,
                },
                "signature": authorization.signature.to_packed_hex(),
            },
        )


if __name__ == "__main__":
    import asyncio
    response = asyncio.run(main())
    print("Response:", response.status_code, response.json())
