"""Firestore document type definitions using Pydantic.

These describe the documents written by the transaction recipes. Timestamps
are not part of the models: recipes stamp ``created_at``/``updated_at`` with
the server timestamp sentinel after dumping.
"""

from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt

# Stored numbers are copied as-is: ints stay ints, floats stay floats
StoredNumber = Union[StrictInt, StrictFloat]


class BidDoc(BaseModel):
    """Bid placed on an auction."""

    auction_id: str
    user_id: str
    amount: Union[int, float]
    is_winning: bool = True


class CartItemDoc(BaseModel):
    """Item sitting in a user's cart."""

    model_config = ConfigDict(extra="allow")

    user_id: Optional[str] = None
    product_id: Optional[str] = None
    shop_id: Optional[str] = None
    quantity: Optional[StoredNumber] = None
    price: Optional[StoredNumber] = None


class OrderItemDoc(BaseModel):
    """Line item belonging to an order."""

    model_config = ConfigDict(extra="allow")

    order_id: str
    product_id: Optional[str] = None
    shop_id: Optional[str] = None
    quantity: Optional[StoredNumber] = None
    price: Optional[StoredNumber] = None

    @classmethod
    def from_cart_item(cls, order_id: str, cart_item: CartItemDoc) -> "OrderItemDoc":
        """Copy a cart item into an order item, dropping the cart owner."""
        data = cart_item.model_dump(exclude_none=True, exclude={"user_id"})
        data.pop("id", None)
        data.pop("created_at", None)
        data.pop("updated_at", None)
        return cls(**{**data, "order_id": order_id})


class RefundDoc(BaseModel):
    """Refund issued against a return request."""

    model_config = ConfigDict(extra="allow")

    return_id: str
    amount: Union[int, float]
    status: str = "processing"
