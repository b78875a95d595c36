# app/services/cart_reducer.py
"""
Pure cart transitions.

Each function returns a new Cart and never touches its input, so the
visible cart stays intact until the caller commits the candidate.
"""

from app.schemas.cart import Cart, CartItem
from app.schemas.product import ProductSnapshot


def add_item(cart: Cart, product: ProductSnapshot, quantity: int = 1) -> Cart:
    if quantity < 1:
        raise ValueError("quantity must be >= 1")

    items: list[CartItem] = []
    found = False
    for item in cart.items:
        if item.product_id == product.id:
            items.append(item.model_copy(update={"quantity": item.quantity + quantity}))
            found = True
        else:
            items.append(item)

    if not found:
        items.append(CartItem(product=product, quantity=quantity))

    return Cart(items=items)


def set_quantity(cart: Cart, product_id: str, quantity: int) -> Cart:
    """Absolute set. Below 1 means remove."""
    if quantity < 1:
        return remove_item(cart, product_id)

    return Cart(
        items=[
            item.model_copy(update={"quantity": quantity})
            if item.product_id == product_id
            else item
            for item in cart.items
        ]
    )


def remove_item(cart: Cart, product_id: str) -> Cart:
    return Cart(items=[item for item in cart.items if item.product_id != product_id])


def empty() -> Cart:
    return Cart()
