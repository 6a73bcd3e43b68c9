"""Firestore collection names used by the marketplace core.

Collections are created on first write, so these constants are the single
source of truth for where each entity lives.
"""

PRODUCTS = "products"
SHOPS = "shops"
CATEGORIES = "categories"
USERS = "users"
COUPONS = "coupons"

# Orders
ORDERS = "orders"
ORDER_ITEMS = "order_items"
CART = "cart"
RETURNS = "returns"
REFUNDS = "refunds"

# Auctions
AUCTIONS = "auctions"
BIDS = "bids"

# Maximum number of ids a single "document id in [...]" read accepts
BATCH_FETCH_LIMIT = 10
