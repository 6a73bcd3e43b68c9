"""Atomic multi-document operations.

Every recipe follows the same shape inside one Firestore transaction: read
what it needs, validate the invariant against those reads, then write. No
read happens after a write, and nothing outside the transaction handle is
touched, so the client can safely re-execute a body on contention. This
layer adds no retry of its own.
"""

import math
from numbers import Number, Real
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, TypeVar

import pydantic
from google.cloud import firestore

from marketplace.apis.Db import Db
from marketplace.constants import collections
from marketplace.exceptions import (
    NotFoundError,
    InsufficientStockError,
    BidTooLowError,
    ValidationError,
)
from marketplace.models.firestore_types import BidDoc, CartItemDoc, OrderItemDoc, RefundDoc
from marketplace.models.util_types import RefundStatus, ReturnStatus
from marketplace.util.logger import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


# Field value helpers
def increment(value: Number):
    return firestore.Increment(value)


def decrement(value: Number):
    return increment(-value)


def array_union(*values):
    return firestore.ArrayUnion(list(values))


def array_remove(*values):
    return firestore.ArrayRemove(list(values))


def server_timestamp():
    return firestore.SERVER_TIMESTAMP


def delete_field():
    return firestore.DELETE_FIELD


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def bid_threshold(auction: Mapping[str, Any]) -> Number:
    """Amount a new bid has to exceed: current_bid, else starting_bid, else 0."""
    if auction.get("current_bid") is not None:
        return auction["current_bid"]
    if auction.get("starting_bid") is not None:
        return auction["starting_bid"]
    return 0


class TransactionCoordinator:
    """Named all-or-nothing operations over orders, stock, bids and refunds."""

    def __init__(self, db: Db):
        """Initialize TransactionCoordinator.

        Args:
            db: Store adapter providing run_transaction
        """
        self.db = db

    def run_transaction(self, body: Callable[[Any], T]) -> T:
        """Run an arbitrary transaction body and return its result."""
        return self.db.run_transaction(body)

    def create_batch(self):
        """Fresh write batch for unconditional multi-document writes."""
        return self.db.create_batch()

    def create_order_with_items(self, order_data: Mapping[str, Any], items: Iterable[Mapping[str, Any]]) -> str:
        """Create an order and its line items together.

        Args:
            order_data: Order fields
            items: Line item fields; each item gets order_id set to the new order

        Returns:
            ID of the created order
        """
        if not isinstance(order_data, Mapping):
            raise ValidationError("Order data must be a mapping", field="order_data")
        items = list(items)
        for item in items:
            if not isinstance(item, Mapping):
                raise ValidationError("Every order item must be a mapping", field="items")

        order_id = self.db.run_transaction(
            lambda transaction: self._create_order_with_items(transaction, order_data, items))
        logger.info(f"Created order {order_id} with {len(items)} items")
        return order_id

    def _create_order_with_items(self, transaction, order_data, items) -> str:
        now = self.db.server_timestamp
        order_ref = self.db.document(collections.ORDERS)

        transaction.set(order_ref, {
            **order_data,
            "created_at": now,
            "updated_at": now,
        })

        for item in items:
            item_ref = self.db.document(collections.ORDER_ITEMS)
            transaction.set(item_ref, {
                **item,
                "order_id": order_ref.id,
                "created_at": now,
                "updated_at": now,
            })

        return order_ref.id

    def update_product_stock(self, product_id: str, delta: int) -> None:
        """Adjust a product's stock by delta, refusing to go below zero.

        Args:
            product_id: Product to adjust
            delta: Positive to restock, negative for a sale

        Raises:
            NotFoundError: If the product does not exist
            InsufficientStockError: If stock + delta would be negative; stock is left untouched
        """
        if not isinstance(delta, int) or isinstance(delta, bool):
            raise ValidationError("Stock delta must be an integer", field="delta")

        new_stock = self.db.run_transaction(
            lambda transaction: self._update_product_stock(transaction, product_id, delta))
        logger.info(f"Updated stock of product {product_id} by {delta} to {new_stock}")

    def _update_product_stock(self, transaction, product_id: str, delta: int) -> int:
        product_ref = self.db.document(collections.PRODUCTS, product_id)
        snapshot = self.db.get_snapshot(product_ref, transaction=transaction)

        if not snapshot.exists:
            raise NotFoundError("Product", product_id)

        current_stock = (snapshot.to_dict() or {}).get("stock") or 0
        new_stock = current_stock + delta

        if new_stock < 0:
            raise InsufficientStockError(product_id, current_stock, delta)

        transaction.update(product_ref, {
            "stock": new_stock,
            "updated_at": self.db.server_timestamp,
        })
        return new_stock

    def place_bid(self, auction_id: str, user_id: str, amount: Number) -> str:
        """Place a bid that becomes the auction's only winning bid.

        Args:
            auction_id: Auction to bid on
            user_id: Bidder
            amount: Bid amount; must be strictly greater than the current threshold

        Returns:
            ID of the new bid

        Raises:
            NotFoundError: If the auction does not exist
            BidTooLowError: If amount <= current_bid (or starting_bid when no bid exists yet)
        """
        if not _is_number(amount):
            raise ValidationError("Bid amount must be a finite number", field="amount")

        bid_id = self.db.run_transaction(
            lambda transaction: self._place_bid(transaction, auction_id, user_id, amount))
        logger.info(f"Placed bid {bid_id} of {amount} on auction {auction_id} for user {user_id}")
        return bid_id

    def _place_bid(self, transaction, auction_id: str, user_id: str, amount: Number) -> str:
        auction_ref = self.db.document(collections.AUCTIONS, auction_id)
        snapshot = self.db.get_snapshot(auction_ref, transaction=transaction)

        if not snapshot.exists:
            raise NotFoundError("Auction", auction_id)

        threshold = bid_threshold(snapshot.to_dict() or {})
        if amount <= threshold:
            raise BidTooLowError(auction_id, amount, threshold)

        # Normally a single bid, but every flagged bid is cleared
        winning_bids = self.db.stream(
            self.db.query(collections.BIDS, {"auction_id": auction_id, "is_winning": True}),
            transaction=transaction,
        )

        now = self.db.server_timestamp
        for bid in winning_bids:
            transaction.update(bid.reference, {"is_winning": False})

        bid_ref = self.db.document(collections.BIDS)
        bid = BidDoc(auction_id=auction_id, user_id=user_id, amount=amount, is_winning=True)
        transaction.set(bid_ref, {
            **bid.model_dump(),
            "created_at": now,
        })

        transaction.update(auction_ref, {
            "current_bid": amount,
            "bid_count": increment(1),
            "updated_at": now,
        })

        return bid_ref.id

    def transfer_cart_to_order(self, user_id: str, order_id: str) -> int:
        """Move every cart item of a user into order items of order_id.

        Args:
            user_id: Owner of the cart
            order_id: Order the new items reference

        Returns:
            Number of items moved; 0 for an empty cart
        """
        moved = self.db.run_transaction(
            lambda transaction: self._transfer_cart_to_order(transaction, user_id, order_id))
        logger.info(f"Moved {moved} cart items of user {user_id} to order {order_id}")
        return moved

    def _transfer_cart_to_order(self, transaction, user_id: str, order_id: str) -> int:
        cart_snapshots = self.db.stream(
            self.db.query(collections.CART, {"user_id": user_id}),
            transaction=transaction,
        )

        order_items: List[OrderItemDoc] = []
        for snapshot in cart_snapshots:
            try:
                cart_item = CartItemDoc(**(snapshot.to_dict() or {}))
            except pydantic.ValidationError as e:
                raise ValidationError(
                    f"Cart item {snapshot.id} is malformed: {e}", field="cart") from e
            order_items.append(OrderItemDoc.from_cart_item(order_id, cart_item))

        now = self.db.server_timestamp
        for snapshot, order_item in zip(cart_snapshots, order_items):
            item_ref = self.db.document(collections.ORDER_ITEMS)
            transaction.set(item_ref, {
                **order_item.model_dump(exclude_none=True),
                "created_at": now,
                "updated_at": now,
            })
            transaction.delete(snapshot.reference)

        return len(order_items)

    def process_refund(self, return_id: str, amount: Number, refund_data: Optional[Dict[str, Any]] = None) -> str:
        """Create a refund for a return request and mark the return as refunding.

        Args:
            return_id: Return request being refunded
            amount: Refund amount, zero or more
            refund_data: Extra refund fields, e.g. payment_method

        Returns:
            ID of the created refund

        Raises:
            NotFoundError: If the return does not exist
        """
        if not _is_number(amount) or amount < 0:
            raise ValidationError("Refund amount must be a finite non-negative number", field="amount")

        refund_id = self.db.run_transaction(
            lambda transaction: self._process_refund(transaction, return_id, amount, refund_data or {}))
        logger.info(f"Created refund {refund_id} of {amount} for return {return_id}")
        return refund_id

    def _process_refund(self, transaction, return_id: str, amount: Number, refund_data: Dict[str, Any]) -> str:
        return_ref = self.db.document(collections.RETURNS, return_id)
        snapshot = self.db.get_snapshot(return_ref, transaction=transaction)

        if not snapshot.exists:
            raise NotFoundError("Return", return_id)

        now = self.db.server_timestamp
        refund_ref = self.db.document(collections.REFUNDS)
        refund = RefundDoc(**{
            **refund_data,
            "return_id": return_id,
            "amount": amount,
            "status": RefundStatus.PROCESSING.value,
        })
        transaction.set(refund_ref, {
            **refund.model_dump(),
            "created_at": now,
            "updated_at": now,
        })

        transaction.update(return_ref, {
            "status": ReturnStatus.REFUND_PROCESSING.value,
            "refund_amount": amount,
            "refund_id": refund_ref.id,
            "updated_at": now,
        })

        return refund_ref.id
