"""
Application state store.

Holds everything a storefront UI renders (cart, session user, current view,
favorites, toasts, open dialogs) and exposes one method per user action.
Views read `store.state` and call commands; nothing else mutates state.
"""

import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from cart import ADDED, Cart
from config import TOAST_TIMEOUT_SECONDS
from errors import StoreError
from kvstore import MemoryKV
from schemas import Order, Product, User
from services import (
    AuthService, CategoryService, ForumService, OrderService, ProductService,
    SettingsService, SlideService, StatsService,
)
from storage import StoragePort

logger = logging.getLogger(__name__)

VIEWS = {
    "home", "shop", "favorites", "product_detail", "cart", "ai_assistant",
    "profile", "about", "forum", "admin_panel", "ride_mode",
}


@dataclass
class Toast:
    id: int
    type: str
    message: str
    expires_at: float


@dataclass
class AppState:
    view: str = "home"
    user: Optional[User] = None
    favorites: List[str] = field(default_factory=list)
    toasts: List[Toast] = field(default_factory=list)
    selected_product: Optional[Product] = None
    cart_open: bool = False
    auth_open: bool = False
    auth_mode: str = "login"
    payment_open: bool = False


class Store:
    def __init__(self, storage: StoragePort, persistent_kv, session_kv=None,
                 clock: Callable[[], float] = time.time):
        self.storage = storage
        self.clock = clock
        self.cart = Cart()
        self.state = AppState()

        self.products = ProductService(storage)
        self.categories = CategoryService(storage)
        self.slides = SlideService(storage)
        self.orders = OrderService(storage)
        self.forum = ForumService(storage)
        self.stats = StatsService(storage)
        self.auth = AuthService(storage, persistent_kv, session_kv if session_kv is not None else MemoryKV())
        self.settings = SettingsService(persistent_kv)

        self._toast_ids = itertools.count(1)
        self._session_started = clock()

    # -- lifecycle --

    def start(self) -> None:
        try:
            self.stats.record_visit()
        except StoreError as e:
            logger.warning("Visit not recorded: %s", e.message)
        self.state.user = self.auth.current_user()
        self.state.favorites = self.settings.favorites()

    def end_session(self) -> Optional[int]:
        """Report how long this session lasted, in whole seconds."""
        duration = round(self.clock() - self._session_started)
        if duration <= 0:
            return None
        self._track("session_duration", duration=duration)
        return duration

    # -- toasts --

    def notify(self, kind: str, message: str) -> Toast:
        toast = Toast(next(self._toast_ids), kind, message, self.clock() + TOAST_TIMEOUT_SECONDS)
        self.state.toasts.append(toast)
        return toast

    def dismiss_toast(self, toast_id: int) -> None:
        self.state.toasts = [t for t in self.state.toasts if t.id != toast_id]

    def expire_toasts(self, now: Optional[float] = None) -> None:
        now = self.clock() if now is None else now
        self.state.toasts = [t for t in self.state.toasts if t.expires_at > now]

    # -- navigation --

    def navigate(self, view: str) -> None:
        if view not in VIEWS:
            raise ValueError(f"Unknown view: {view}")
        if view == "profile" and self.state.user is None:
            view = "home"
        self.state.view = view

    def open_product(self, product: Product) -> None:
        self._track("view_product", product_id=product.id, product_name=product.name)
        self.state.selected_product = product
        self.state.view = "product_detail"

    def open_auth(self, mode: str = "login") -> None:
        self.state.auth_mode = mode
        self.state.auth_open = True

    # -- cart --

    def add_to_cart(self, product: Product) -> None:
        self._track("add_to_cart", product_id=product.id, product_name=product.name)
        if self.cart.add(product) == ADDED:
            self.notify("success", f"{product.name} added to cart.")
        else:
            self.notify("success", "Cart updated.")

    def update_quantity(self, product_id: str, delta: int) -> None:
        self.cart.update_quantity(product_id, delta)

    def remove_from_cart(self, product_id: str) -> None:
        if self.cart.remove(product_id) is not None:
            self.notify("info", "Item removed from cart.")

    # -- checkout --

    def start_checkout(self) -> bool:
        """Open the payment step. Returns False when checkout cannot begin."""
        self._track("checkout_start")
        if self.state.user is None:
            self.state.cart_open = False
            self.open_auth("login")
            self.notify("info", "Please log in to complete your purchase.")
            return False
        if self.cart.is_empty:
            return False
        self.state.cart_open = False
        self.state.payment_open = True
        return True

    def complete_checkout(self) -> Optional[Order]:
        """Turn the cart into an order once payment has succeeded."""
        user = self.state.user
        if user is None:
            self.open_auth("login")
            return None
        if self.cart.is_empty:
            return None
        try:
            order = self.orders.create_order(user, self.cart.items, self.cart.total())
        except StoreError as e:
            logger.error("Checkout failed: %s", e.message)
            self.notify("error", f"Your order could not be placed: {e.message}")
            return None
        self.cart.clear()
        self.state.payment_open = False
        self.state.view = "profile"
        self.notify("success", "Your order has been placed!")
        return order

    # -- session --

    def login(self, email: str, password: str, remember: bool = False) -> Optional[User]:
        try:
            user = self.auth.login(email, password, remember)
        except StoreError as e:
            self.notify("error", e.message)
            return None
        self.state.user = user
        self.state.auth_open = False
        self.notify("success", f"Welcome back, {user.name}.")
        return user

    def register(self, name: str, email: str, password: str, **extra) -> Optional[User]:
        try:
            user = self.auth.register(name, email, password, **extra)
        except StoreError as e:
            self.notify("error", e.message)
            return None
        self.state.user = user
        self.state.auth_open = False
        self.notify("success", f"Welcome, {user.name}.")
        return user

    def logout(self) -> None:
        self.auth.logout()
        self.state.user = None
        self.state.view = "home"
        self.notify("info", "Logged out.")

    # -- favorites --

    def toggle_favorite(self, product: Product) -> None:
        if self.state.user is None:
            self.open_auth("login")
            return
        if product.id in self.state.favorites:
            self.state.favorites = [pid for pid in self.state.favorites if pid != product.id]
            self.notify("info", "Removed from favorites.")
        else:
            self.state.favorites = self.state.favorites + [product.id]
            self.notify("success", "Added to favorites.")
        self.settings.save_favorites(self.state.favorites)

    # -- analytics --

    def _track(self, event_type: str, **fields) -> None:
        user = self.state.user
        if user is not None:
            fields.setdefault("user_id", user.id)
            fields.setdefault("user_name", user.name)
        try:
            self.stats.track_event(event_type, **fields)
        except StoreError as e:
            logger.warning("Analytics event %s dropped: %s", event_type, e.message)
