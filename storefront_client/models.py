"""
models.py — Data Models for the Cart and Checkout Subsystem

This module defines the wire-level data structures exchanged with the storefront
backend, plus the derived values computed from them. Pydantic models validate
every payload the backend returns, so the rest of the client works on typed data.

Models:
    - CartItem: One line of the shopper's cart.
    - ShippingAddress: A saved shipping address.
    - AddressDraft: The editable form of a new address before it is saved.
    - OrderLine: One line of a placed order.
    - Order: A placed order as reported by "list my orders".
    - CartTotals: Derived subtotal, shipping cost and total.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field

FREE_SHIPPING_THRESHOLD = 500
FLAT_SHIPPING_COST = 50

# Backend ids arrive as numbers or strings; the client compares them as strings.
Identifier = Annotated[str, BeforeValidator(str)]


class PaymentMethod(str, Enum):
    COD = "COD"
    UPI = "UPI"

    @classmethod
    def parse(cls, value) -> "PaymentMethod":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().upper())


class CheckoutStep(str, Enum):
    SHIPPING = "SHIPPING"
    PAYMENT = "PAYMENT"
    REVIEW = "REVIEW"
    PLACED = "PLACED"
    # Left the flow because the cart emptied underneath it.
    CART_EMPTY = "CART_EMPTY"


class CartItem(BaseModel):
    """
    Represents a single line in the shopper's cart.

    Attributes:
        cartItemId (str): Server-assigned key of the line, distinct from the product id.
        productId (str): The product this line refers to.
        name (str): Display name of the product.
        unitPrice (float): Price per unit. Must not be negative.
        quantity (int): Units in the cart. Must be greater than zero.
        stockQuantity (int): Units the store has available; the client-side ceiling for `quantity`.
    """
    cartItemId: Identifier = Field(validation_alias=AliasChoices("cartItemId", "cart_item_id", "id"))
    productId: Identifier = Field(validation_alias=AliasChoices("productId", "product_id"))
    name: str = Field("", validation_alias=AliasChoices("name", "product_name"))
    unitPrice: float = Field(..., ge=0, validation_alias=AliasChoices("unitPrice", "product_price"))
    quantity: int = Field(..., gt=0)
    stockQuantity: int = Field(..., ge=0, validation_alias=AliasChoices("stockQuantity", "stock_quantity", "product_stock_quantity"))

    @property
    def line_total(self) -> float:
        return self.unitPrice * self.quantity


class AddressDraft(BaseModel):
    """
    A new shipping address as typed by the shopper, not yet persisted.

    All six fields are required before the address may be saved; whitespace-only
    values count as empty.
    """
    fullName: str = ""
    addressLine1: str = Field("", validation_alias=AliasChoices("addressLine1", "address1"))
    city: str = ""
    state: str = ""
    pincode: str = ""
    phone: str = ""

    def missing_fields(self) -> List[str]:
        return [name for name, value in self.model_dump().items() if not str(value).strip()]

    def is_complete(self) -> bool:
        return not self.missing_fields()


class ShippingAddress(AddressDraft):
    """A saved shipping address. Its `id` is assigned by the backend."""
    id: Identifier


class OrderLine(BaseModel):
    """
    One line of a placed order. The backend reports only name, quantity and the
    price paid; product and cart ids are kept when present.
    """
    name: str = Field("", validation_alias=AliasChoices("name", "product_name"))
    quantity: int = Field(..., gt=0)
    unitPrice: float = Field(..., ge=0, validation_alias=AliasChoices("unitPrice", "item_price", "product_price"))
    productId: Optional[Identifier] = Field(None, validation_alias=AliasChoices("productId", "product_id"))
    cartItemId: Optional[Identifier] = Field(None, validation_alias=AliasChoices("cartItemId", "cart_item_id"))
    stockQuantity: Optional[int] = Field(
        None, ge=0, validation_alias=AliasChoices("stockQuantity", "stock_quantity", "product_stock_quantity")
    )

    @property
    def line_total(self) -> float:
        return self.unitPrice * self.quantity


class Order(BaseModel):
    """
    A placed order, read-only from the client's perspective.

    Attributes:
        orderId (str): Opaque id returned when the order was placed.
        items (List[OrderLine]): Snapshot of the cart lines at placement time.
        shippingAddress (Optional[ShippingAddress]): Snapshot of the address used.
        totalAmount (float): Subtotal of `items` plus shipping.
        status (str): Backend order status.
        createdAt (Optional[str]): Backend timestamp.
    """
    orderId: Identifier = Field(validation_alias=AliasChoices("orderId", "order_id"))
    items: List[OrderLine] = Field(default_factory=list)
    shippingAddress: Optional[ShippingAddress] = Field(
        None, validation_alias=AliasChoices("shippingAddress", "shipping_address")
    )
    totalAmount: float = Field(..., validation_alias=AliasChoices("totalAmount", "total_amount"))
    status: str = "Pending"
    createdAt: Optional[str] = Field(None, validation_alias=AliasChoices("createdAt", "created_at", "order_date"))


class CheckoutState(BaseModel):
    """Read-only view of a checkout in progress. Holds ids only, never cart data."""
    step: CheckoutStep = CheckoutStep.SHIPPING
    selectedAddressId: Optional[str] = None
    newAddressDraft: Optional[AddressDraft] = None
    paymentMethod: PaymentMethod = PaymentMethod.COD


class CartTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    subtotal: float
    shippingCost: float
    totalAmount: float
    itemCount: int


def shipping_cost_for(subtotal: float) -> float:
    return 0 if subtotal > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING_COST


def compute_totals(items) -> CartTotals:
    """
    Derives the cart totals from the given items. Never cached by callers.

    Args:
        items (Iterable[CartItem]): The current cart lines.

    Returns:
        CartTotals: subtotal = Σ quantity·unitPrice, shipping is free above the
        threshold and flat otherwise, total = subtotal + shipping.
    """
    items = list(items)
    subtotal = sum(item.unitPrice * item.quantity for item in items)
    shipping = shipping_cost_for(subtotal)
    return CartTotals(
        subtotal=subtotal,
        shippingCost=shipping,
        totalAmount=subtotal + shipping,
        itemCount=sum(item.quantity for item in items),
    )


def order_payload(items, total_amount: float, address: ShippingAddress) -> Dict[str, Any]:
    """Request body for POST /orders."""
    return {
        "items": [item.model_dump() for item in items],
        "totalAmount": total_amount,
        "shippingAddress": address.model_dump(),
    }
