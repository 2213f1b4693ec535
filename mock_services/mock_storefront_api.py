"""
mock_storefront_api.py — Mock Implementation of the Storefront Backend (REST API)

This module provides a simulated storefront backend for testing the cart and
checkout client. It exposes a FastAPI application that keeps carts, addresses
and orders in memory and mimics the real backend's answers.

Simulation Scenarios:
    • Bearer tokens "token-<user>" authenticate a user; anything else → HTTP 401
    • Quantities above the product's stock → HTTP 400
    • Product ids starting with "prod-error" → HTTP 503 (server failure)
    • Address names starting with "fail" → HTTP 400 (server-side validation)
    • Order totals that do not match the cart → HTTP 400

Endpoints (all under /api):
    GET/POST /cart, PUT/DELETE /cart/{cartItemId}, DELETE /cart/clear
    GET/POST /users/addresses, DELETE /users/addresses/{id}
    POST /orders, GET /orders/my

Port:
    Default: 5000 (HTTP)
"""

import itertools
import logging
import time

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel, Field

logging.basicConfig(level=logging.INFO)

DEFAULT_PRODUCTS = {
    "p1": {"name": "Desk Lamp", "price": 100.0, "stock": 5},
    "p2": {"name": "Bookshelf", "price": 300.0, "stock": 10},
    "p3": {"name": "Armchair", "price": 600.0, "stock": 2},
}


class AddItemRequest(BaseModel):
    """
    Represents an add-to-cart request payload.

    Attributes:
        productId (str): The product to add.
        quantity (int): Units to add. Must be greater than zero.
    """
    productId: str
    quantity: int = Field(..., gt=0)


class UpdateItemRequest(BaseModel):
    quantity: int = Field(..., gt=0)


class AddressRequest(BaseModel):
    fullName: str
    addressLine1: str
    city: str
    state: str
    pincode: str
    phone: str


class PlaceOrderRequest(BaseModel):
    items: list
    totalAmount: float
    shippingAddress: dict


def _reject(status_code: int, message: str):
    raise HTTPException(status_code=status_code, detail={"message": message})


def create_app(products: dict | None = None) -> FastAPI:
    """
    Builds a fresh mock backend with its own in-memory state.

    Args:
        products (dict): Catalog as {productId: {"name", "price", "stock"}}.
    """
    app = FastAPI(title="Mock Storefront Service")
    router = APIRouter(prefix="/api")

    catalog = {pid: dict(p) for pid, p in (products or DEFAULT_PRODUCTS).items()}
    carts, addresses, orders = {}, {}, {}
    ids = itertools.count(1)

    def current_user(authorization: str | None = Header(None)) -> str:
        if not authorization or not authorization.startswith("Bearer token-"):
            _reject(401, "Not authorized, token missing or invalid.")
        return authorization[len("Bearer token-"):]

    def _cart_view(user: str) -> list:
        view = []
        for line in carts.get(user, []):
            product = catalog[line["productId"]]
            view.append({
                "cartItemId": line["cartItemId"],
                "productId": line["productId"],
                "name": product["name"],
                "unitPrice": product["price"],
                "quantity": line["quantity"],
                "stockQuantity": product["stock"],
            })
        return view

    def _find_line(user: str, cart_item_id: str) -> dict:
        for line in carts.get(user, []):
            if line["cartItemId"] == cart_item_id:
                return line
        _reject(404, "Cart item not found.")

    @router.get("/cart")
    def get_cart(user: str = Depends(current_user)):
        return _cart_view(user)

    @router.post("/cart")
    def add_item(request: AddItemRequest, user: str = Depends(current_user)):
        if request.productId.startswith("prod-error"):
            logging.error(f"[MOCK] Simulierter Serverfehler für {request.productId}.")
            _reject(503, "Service temporarily unavailable.")
        product = catalog.get(request.productId)
        if product is None:
            _reject(404, "Product not found.")

        lines = carts.setdefault(user, [])
        line = next((l for l in lines if l["productId"] == request.productId), None)
        new_quantity = request.quantity + (line["quantity"] if line else 0)
        if new_quantity > product["stock"]:
            _reject(400, f"Only {product['stock']} in stock.")
        if line:
            line["quantity"] = new_quantity
        else:
            lines.append({"cartItemId": f"ci-{next(ids)}", "productId": request.productId, "quantity": new_quantity})
        return {"message": "Product added to cart!"}

    # Must be registered before /cart/{cart_item_id}.
    @router.delete("/cart/clear")
    def clear_cart(user: str = Depends(current_user)):
        carts[user] = []
        return {"message": "Cart cleared successfully."}

    @router.put("/cart/{cart_item_id}")
    def update_item(cart_item_id: str, request: UpdateItemRequest, user: str = Depends(current_user)):
        line = _find_line(user, cart_item_id)
        if request.quantity > catalog[line["productId"]]["stock"]:
            _reject(400, "Not enough stock.")
        line["quantity"] = request.quantity
        return {"message": "Cart item quantity updated!"}

    @router.delete("/cart/{cart_item_id}")
    def remove_item(cart_item_id: str, user: str = Depends(current_user)):
        line = _find_line(user, cart_item_id)
        carts[user].remove(line)
        return {"message": "Product removed from cart."}

    @router.get("/users/addresses")
    def list_addresses(user: str = Depends(current_user)):
        return addresses.get(user, [])

    @router.post("/users/addresses", status_code=201)
    def add_address(request: AddressRequest, user: str = Depends(current_user)):
        if request.fullName.lower().startswith("fail"):
            _reject(400, "Invalid address.")
        address_id = next(ids)
        addresses.setdefault(user, []).append({"id": address_id, **request.model_dump()})
        return {"addressId": address_id, "message": "Address added successfully!"}

    @router.delete("/users/addresses/{address_id}")
    def delete_address(address_id: int, user: str = Depends(current_user)):
        saved = addresses.get(user, [])
        if not any(a["id"] == address_id for a in saved):
            _reject(404, "Address not found.")
        addresses[user] = [a for a in saved if a["id"] != address_id]
        return {"message": "Address deleted."}

    @router.post("/orders", status_code=201)
    def place_order(request: PlaceOrderRequest, user: str = Depends(current_user)):
        cart = _cart_view(user)
        if not cart:
            _reject(400, "Cart is empty.")
        subtotal = sum(line["unitPrice"] * line["quantity"] for line in cart)
        expected = subtotal + (0 if subtotal > 500 else 50)
        if abs(expected - request.totalAmount) > 0.005:
            _reject(400, f"Order total mismatch (expected {expected}).")

        order_id = next(ids)
        # Stored and reported in the backend's own column names.
        orders.setdefault(user, []).append({
            "order_id": order_id,
            "items": [
                {"product_name": line["name"], "quantity": line["quantity"], "item_price": line["unitPrice"]}
                for line in cart
            ],
            "shipping_address": request.shippingAddress,
            "total_amount": request.totalAmount,
            "status": "Pending",
            "order_date": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        })
        logging.info(f"[MOCK] Bestellung {order_id} für {user} angelegt.")
        return {"orderId": order_id, "message": "Order placed successfully!"}

    @router.get("/orders/my")
    def my_orders(user: str = Depends(current_user)):
        return orders.get(user, [])

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=5000)
