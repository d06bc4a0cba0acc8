"""
Shopping cart: in-memory, one entry per product.
"""

from typing import List, Optional

from pydantic import Field

from schemas import Product

ADDED = "added"
UPDATED = "updated"


class CartItem(Product):
    quantity: int = Field(1, ge=1)


class Cart:
    def __init__(self):
        self._items: List[CartItem] = []

    def _find(self, product_id) -> Optional[CartItem]:
        for item in self._items:
            if item.id == product_id:
                return item
        return None

    @property
    def items(self) -> List[CartItem]:
        """Deep copies; mutating them does not touch the cart."""
        return [item.model_copy(deep=True) for item in self._items]

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def count(self) -> int:
        return sum(item.quantity for item in self._items)

    def add(self, product: Product) -> str:
        """Add one unit. Returns ADDED for a new entry, UPDATED otherwise."""
        existing = self._find(product.id)
        if existing is not None:
            existing.quantity += 1
            return UPDATED
        self._items.append(CartItem(**{**product.model_dump(), "quantity": 1}))
        return ADDED

    def update_quantity(self, product_id, delta: int) -> Optional[CartItem]:
        item = self._find(product_id)
        if item is None:
            return None
        item.quantity = max(1, item.quantity + delta)
        return item.model_copy()

    def remove(self, product_id) -> Optional[CartItem]:
        item = self._find(product_id)
        if item is not None:
            self._items.remove(item)
        return item

    def total(self) -> float:
        return sum(item.price * item.quantity for item in self._items)

    def clear(self) -> None:
        self._items = []
