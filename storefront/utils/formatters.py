from storefront.config import settings
from storefront.models import Book, Order

def money(v: float) -> str:
    return f"{v:.{settings.decimals}f} {settings.currency}"

def order_date(order: Order) -> str:
    if order.orderDate is None:
        return "-"
    return order.orderDate.strftime("%Y-%m-%d")

def book_line(book: Book, in_cart: int = 0) -> str:
    price = money(book.price) if book.price is not None else "-"
    stock = book.quantity if book.quantity is not None else "-"
    line = f"#{book.id} {book.title} by {book.author} | ISBN {book.isbn} | {price} | stock: {stock}"
    if book.status is not None:
        line += f" | {book.status.value}"
    if in_cart:
        line += f" | in cart: {in_cart}"
    return line

def order_line(order: Order) -> str:
    return (
        f"Order #{order.id} | Book ID: {order.bookId} | Qty: {order.quantity} | "
        f"Total: {money(order.totalPrice)} | {order.status.value} | {order_date(order)}"
    )
