ROLES = {
    "BUYER": "Buyer",
    "SELLER": "Seller",
}

DEFAULT_ROLE = "BUYER"

# list keys; mutations name the ones they invalidate
ALL_BOOKS = "books"
AVAILABLE_BOOKS = "books.available"
SELLER_BOOKS = "books.seller"
BUYER_ORDERS = "orders.buyer"
SELLER_ORDERS = "orders.seller"

CATALOG_FORM_FIELDS = ("title", "author", "isbn")
SELLER_FORM_FIELDS = ("title", "author", "isbn", "price", "quantity")

AUTH_FAILED = "Authentication failed"
PURCHASE_FAILED = "Purchase failed"
SAVE_BOOK_FAILED = "Could not save book"
DELETE_BOOK_FAILED = "Could not delete book"
