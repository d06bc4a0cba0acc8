"""
Domain services: the client's view of each resource.

Every service talks only to a StoragePort, so the same code runs against
the local store (mock mode) and the REST API.
"""

import copy
import logging
import random
from datetime import datetime, timezone
from typing import List, Optional

import pydantic

from analytics import to_millis
from errors import ApplicationError, TransportError, ValidationError
from schemas import (
    AnalyticsDashboard, AnalyticsEvent, CategoryItem, CommentIn, ForumComment,
    ForumTopic, ForumTopicIn, Order, OrderItem, OrderStatusUpdate, Product,
    Slide, User, UserRegister, LoginReq, VisitorStats,
)
from seed import DEFAULT_PRODUCTS, DEFAULT_SLIDES, DEFAULT_CATEGORIES, DEFAULT_TOPICS
from storage import StoragePort

logger = logging.getLogger(__name__)

SESSION_KEY = "mv_session"
SETTINGS_KEY = "mv_settings"


def _validate(model, data):
    """Build a model from user input, turning pydantic errors into ValidationError."""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or "input"
        raise ValidationError(f"Invalid {field}: {first.get('msg')}") from e


class CollectionService:
    """List/read/create/update/delete for one collection.

    A failed list read returns the built-in defaults so views stay usable;
    writes always raise.
    """

    collection: str = ""
    model = None
    defaults: List[dict] = []

    def __init__(self, storage: StoragePort):
        self.storage = storage

    def list(self):
        try:
            docs = self.storage.list(self.collection)
        except (TransportError, ApplicationError) as e:
            logger.warning("Falling back to default %s: %s", self.collection, e.message)
            docs = copy.deepcopy(self.defaults)
        return [self.model.model_validate(d) for d in docs]

    def get(self, item_id: str):
        return self.model.model_validate(self.storage.get(self.collection, item_id))

    def add(self, item):
        data = item.model_dump(exclude={"id"})
        return self.model.model_validate(self.storage.create(self.collection, data))

    def update(self, item):
        if not item.id:
            raise ValidationError(f"Cannot update {self.collection} without an id")
        data = item.model_dump(exclude={"id"})
        return self.model.model_validate(self.storage.update(self.collection, item.id, data))

    def delete(self, item_id: str) -> None:
        self.storage.delete(self.collection, item_id)


class ProductService(CollectionService):
    collection = "products"
    model = Product
    defaults = DEFAULT_PRODUCTS

    SORTS = {
        "price-asc": (lambda p: p.price, False),
        "price-desc": (lambda p: p.price, True),
        "rating": (lambda p: p.rating, True),
    }

    def browse(self, category: Optional[str] = None, query: str = "",
               sort: str = "default") -> List[Product]:
        products = self.list()
        if category and category != "ALL":
            products = [p for p in products if p.category == category]
        if query:
            q = query.lower()
            products = [p for p in products if q in p.name.lower()]
        if sort in self.SORTS:
            key, reverse = self.SORTS[sort]
            products = sorted(products, key=key, reverse=reverse)
        return products


class CategoryService(CollectionService):
    collection = "categories"
    model = CategoryItem
    defaults = DEFAULT_CATEGORIES


class SlideService(CollectionService):
    collection = "slides"
    model = Slide
    defaults = DEFAULT_SLIDES


def order_code(now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> str:
    """Human readable display code, e.g. MV-2024-4821. Not unique."""
    now = now or datetime.now(timezone.utc)
    rng = rng or random
    return f"MV-{now.year}-{rng.randint(1000, 9999)}"


class OrderService:
    def __init__(self, storage: StoragePort):
        self.storage = storage

    def create_order(self, user: User, items, total: float) -> Order:
        """Persist a new order. Line items are frozen copies of `items`."""
        if not items:
            raise ValidationError("Cart is empty")
        line_items = [
            OrderItem(
                product_id=str(item.id),
                name=item.name,
                price=item.price,
                quantity=item.quantity,
                image=item.image,
            ).model_dump()
            for item in items
        ]
        payload = {
            "user_id": user.id,
            "code": order_code(),
            "items": line_items,
            "total": total,
        }
        created = self.storage.create_order(payload)
        logger.info("Order %s placed by %s", created.get("id"), user.id)
        return Order.model_validate(created)

    def user_orders(self, user_id: str) -> List[Order]:
        return [Order.model_validate(o) for o in self.storage.list("orders", user_id=user_id)]

    def all_orders(self) -> List[Order]:
        return [Order.model_validate(o) for o in self.storage.list("orders")]

    def get(self, order_id: str) -> Order:
        return Order.model_validate(self.storage.get("orders", order_id))

    def update_status(self, order_id: str, status: str) -> Order:
        update = _validate(OrderStatusUpdate, {"status": status})
        return Order.model_validate(self.storage.update_order_status(order_id, update.status))


class ForumService:
    collection = "forum_topics"

    def __init__(self, storage: StoragePort):
        self.storage = storage

    def topics(self) -> List[ForumTopic]:
        try:
            docs = self.storage.list(self.collection)
        except (TransportError, ApplicationError) as e:
            logger.warning("Falling back to default forum topics: %s", e.message)
            docs = copy.deepcopy(DEFAULT_TOPICS)
        return [ForumTopic.model_validate(d) for d in docs]

    def create_topic(self, user: User, title: str, content: str,
                     category: str = "Genel", tags: Optional[List[str]] = None) -> ForumTopic:
        topic = _validate(ForumTopicIn, {
            "author_id": user.id,
            "author_name": user.name,
            "title": title,
            "content": content,
            "category": category,
            "tags": tags or [],
        })
        doc = {
            **topic.model_dump(),
            "date": datetime.now(timezone.utc).date().isoformat(),
            "likes": 0,
            "views": 0,
            "comments": [],
        }
        return ForumTopic.model_validate(self.storage.create(self.collection, doc))

    def add_comment(self, topic_id: str, user: User, content: str) -> ForumComment:
        comment = _validate(CommentIn, {
            "author_id": user.id,
            "author_name": user.name,
            "content": content,
        })
        doc = {
            **comment.model_dump(),
            "date": datetime.now(timezone.utc).date().isoformat(),
            "likes": 0,
        }
        return ForumComment.model_validate(self.storage.append(self.collection, topic_id, "comments", doc))

    def like(self, topic_id: str) -> ForumTopic:
        # Increment-only: the same user may like a topic any number of times.
        return ForumTopic.model_validate(self.storage.increment(self.collection, topic_id, "likes"))

    def view(self, topic_id: str) -> ForumTopic:
        return ForumTopic.model_validate(self.storage.increment(self.collection, topic_id, "views"))


class AuthService:
    """Register/login plus the session record.

    With "remember me" the session goes to the persistent store, otherwise to
    the tab-scoped one.
    """

    def __init__(self, storage: StoragePort, persistent_kv, session_kv):
        self.storage = storage
        self.persistent = persistent_kv
        self.session = session_kv

    def register(self, name: str, email: str, password: str,
                 phone: Optional[str] = None, address: Optional[str] = None) -> User:
        data = _validate(UserRegister, {
            "name": name, "email": email, "password": password,
            "phone": phone, "address": address,
        })
        user = User.model_validate(self.storage.register(data.model_dump()))
        self.set_session(user, remember=True)
        logger.info("Registered %s", user.email)
        return user

    def login(self, email: str, password: str, remember: bool = False) -> User:
        creds = _validate(LoginReq, {"email": email, "password": password})
        user = User.model_validate(self.storage.login(creds.email, creds.password))
        self.set_session(user, remember)
        return user

    def logout(self) -> None:
        self.persistent.remove(SESSION_KEY)
        self.session.remove(SESSION_KEY)
        self.storage.set_actor(None)

    def current_user(self) -> Optional[User]:
        raw = self.persistent.get(SESSION_KEY) or self.session.get(SESSION_KEY)
        if not raw:
            return None
        try:
            user = User.model_validate(raw)
        except pydantic.ValidationError:
            logger.warning("Discarding unreadable session record")
            return None
        self.storage.set_actor(user.id)
        return user

    def set_session(self, user: User, remember: bool) -> None:
        record = user.model_dump()
        if remember:
            self.persistent.set(SESSION_KEY, record)
        else:
            self.session.set(SESSION_KEY, record)
        self.storage.set_actor(user.id)


class StatsService:
    def __init__(self, storage: StoragePort):
        self.storage = storage

    def record_visit(self, now: Optional[datetime] = None) -> None:
        now = now or datetime.now(timezone.utc)
        self.storage.record_visit(now.date().isoformat())

    def visitor_stats(self, now: Optional[datetime] = None) -> VisitorStats:
        now = now or datetime.now(timezone.utc)
        return VisitorStats.model_validate(self.storage.visitor_stats(now.date().isoformat()))

    def track_event(self, event_type: str, now: Optional[datetime] = None, **fields) -> AnalyticsEvent:
        now = now or datetime.now(timezone.utc)
        event = _validate(AnalyticsEvent, {"type": event_type, "timestamp": to_millis(now), **fields})
        created = self.storage.create("analytics_events", event.model_dump(exclude={"id"}))
        return AnalyticsEvent.model_validate(created)

    def dashboard(self, time_range: str = "7d", now: Optional[datetime] = None) -> AnalyticsDashboard:
        return AnalyticsDashboard.model_validate(self.storage.analytics_dashboard(time_range, now=now))


class SettingsService:
    """Client settings record (favorites) in the persistent store."""

    def __init__(self, kv):
        self.kv = kv

    def favorites(self) -> List[str]:
        return list((self.kv.get(SETTINGS_KEY) or {}).get("favorites", []))

    def save_favorites(self, ids: List[str]) -> None:
        settings = self.kv.get(SETTINGS_KEY) or {}
        settings["favorites"] = list(ids)
        self.kv.set(SETTINGS_KEY, settings)
