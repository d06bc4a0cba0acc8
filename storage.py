"""
Storage port: one interface, two interchangeable backends.

LocalStorage keeps every collection in a key/value store (mock mode);
RemoteStorage talks to the MotoVibe REST API over HTTP. Which one is used is
decided once at startup by `make_storage`; there is no runtime fallback.
"""

import copy
import logging
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from analytics import aggregate
from config import USE_MOCK_API, API_URL, DATA_DIR, HTTP_TIMEOUT, ADMIN_EMAIL, ADMIN_PASSWORD
from errors import (
    ApplicationError, AuthError, ConflictError, NotFoundError, TransportError, from_status,
)
from kvstore import FileKV
from schemas import can_transition
from seed import DEFAULT_PRODUCTS, DEFAULT_SLIDES, DEFAULT_CATEGORIES, DEFAULT_TOPICS

logger = logging.getLogger(__name__)


def new_id() -> str:
    return str(uuid.uuid4())


def _public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in user.items() if k != "password"}


class StoragePort:
    """Operations every backend provides. Ids are opaque strings."""

    actor_id: Optional[str] = None

    def set_actor(self, user_id: Optional[str]) -> None:
        """User on whose behalf later calls are made (None when logged out)."""
        self.actor_id = user_id

    def list(self, collection: str, **filters) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def get(self, collection: str, item_id: str) -> Dict[str, Any]:
        raise NotImplementedError

    def create(self, collection: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def update(self, collection: str, item_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def delete(self, collection: str, item_id: str) -> None:
        raise NotImplementedError

    def append(self, collection: str, item_id: str, field: str, item: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def increment(self, collection: str, item_id: str, field: str) -> Dict[str, Any]:
        raise NotImplementedError

    def create_order(self, order: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def update_order_status(self, order_id: str, status: str) -> Dict[str, Any]:
        raise NotImplementedError

    def register(self, user: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def login(self, email: str, password: str) -> Dict[str, Any]:
        raise NotImplementedError

    def record_visit(self, day: str) -> None:
        raise NotImplementedError

    def visitor_stats(self, day: str) -> Dict[str, Any]:
        raise NotImplementedError

    def analytics_dashboard(self, time_range: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        raise NotImplementedError

    def close(self) -> None:
        pass


# ---------------------- Local (mock mode) ----------------------

class LocalStorage(StoragePort):
    KEYS = {
        "users": "mv_users",
        "orders": "mv_orders",
        "products": "mv_products",
        "slides": "mv_slides",
        "categories": "mv_categories",
        "forum_topics": "mv_forum_topics",
        "analytics_events": "mv_analytics_events",
    }
    VISITS_KEY = "mv_visitor_stats"
    SEEDS = {
        "products": DEFAULT_PRODUCTS,
        "slides": DEFAULT_SLIDES,
        "categories": DEFAULT_CATEGORIES,
        "forum_topics": DEFAULT_TOPICS,
    }
    NEWEST_FIRST = {"orders", "forum_topics"}
    ADMIN_ONLY = {"products", "slides", "categories"}
    NOT_FOUND = {
        "products": "Product not found",
        "orders": "Order not found",
        "slides": "Slide not found",
        "categories": "Category not found",
        "forum_topics": "Topic not found",
        "users": "User not found",
    }

    def __init__(self, kv, admin_email: Optional[str] = ADMIN_EMAIL,
                 admin_password: Optional[str] = ADMIN_PASSWORD):
        self.kv = kv
        if admin_email:
            self._ensure_admin(admin_email.lower(), admin_password)

    def _ensure_admin(self, email: str, password: Optional[str]) -> None:
        users = self._load("users")
        if any(u.get("email") == email for u in users):
            return
        users.append({
            "id": new_id(),
            "name": "MotoVibe Admin",
            "email": email,
            "password": password,
            "is_admin": True,
            "join_date": datetime.now(timezone.utc).date().isoformat(),
        })
        self._save("users", users)

    # -- helpers --

    def _key(self, collection: str) -> str:
        try:
            return self.KEYS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}")

    def _load(self, collection: str) -> List[Dict[str, Any]]:
        items = self.kv.get(self._key(collection))
        if items is None:
            items = copy.deepcopy(self.SEEDS.get(collection, []))
            if items:
                self.kv.set(self._key(collection), items)
        return items

    def _save(self, collection: str, items: List[Dict[str, Any]]) -> None:
        self.kv.set(self._key(collection), items)

    def _find(self, items: List[Dict[str, Any]], collection: str, item_id: str) -> Dict[str, Any]:
        for item in items:
            if str(item.get("id")) == str(item_id):
                return item
        raise NotFoundError(self.NOT_FOUND.get(collection, "Not found"), 404)

    def _require_admin(self) -> None:
        if not self.actor_id:
            raise AuthError("Login required", 401)
        user = next((u for u in self._load("users") if u.get("id") == self.actor_id), None)
        if not user or not user.get("is_admin"):
            raise AuthError("Admin access required", 403)

    # -- generic CRUD --

    def list(self, collection, **filters):
        wanted = {k: v for k, v in filters.items() if v is not None}
        if collection == "orders" and "user_id" not in wanted:
            self._require_admin()
        items = self._load(collection)
        return [copy.deepcopy(i) for i in items if all(i.get(k) == v for k, v in wanted.items())]

    def get(self, collection, item_id):
        return copy.deepcopy(self._find(self._load(collection), collection, item_id))

    def create(self, collection, doc):
        if collection in self.ADMIN_ONLY:
            self._require_admin()
        items = self._load(collection)
        created = {**copy.deepcopy(doc), "id": new_id()}
        if collection in self.NEWEST_FIRST:
            items.insert(0, created)
        else:
            items.append(created)
        self._save(collection, items)
        return copy.deepcopy(created)

    def update(self, collection, item_id, changes):
        if collection in self.ADMIN_ONLY:
            self._require_admin()
        items = self._load(collection)
        item = self._find(items, collection, item_id)
        item.update({k: copy.deepcopy(v) for k, v in changes.items() if k != "id"})
        self._save(collection, items)
        return copy.deepcopy(item)

    def delete(self, collection, item_id):
        if collection in self.ADMIN_ONLY:
            self._require_admin()
        items = self._load(collection)
        item = self._find(items, collection, item_id)
        items.remove(item)
        self._save(collection, items)

    def append(self, collection, item_id, field, item):
        items = self._load(collection)
        parent = self._find(items, collection, item_id)
        created = {**copy.deepcopy(item), "id": new_id()}
        parent.setdefault(field, []).append(created)
        self._save(collection, items)
        return copy.deepcopy(created)

    def increment(self, collection, item_id, field):
        items = self._load(collection)
        parent = self._find(items, collection, item_id)
        parent[field] = int(parent.get(field) or 0) + 1
        self._save(collection, items)
        return copy.deepcopy(parent)

    # -- orders --

    def create_order(self, order):
        if not any(u.get("id") == order.get("user_id") for u in self._load("users")):
            raise ApplicationError("Unknown user", 400)
        products = self._load("products")
        by_id = {str(p["id"]): p for p in products}
        needed: Counter = Counter()
        for item in order["items"]:
            if str(item["product_id"]) not in by_id:
                raise NotFoundError(f"Product {item.get('name', item['product_id'])} not found", 404)
            needed[str(item["product_id"])] += int(item["quantity"])
        for pid, qty in needed.items():
            if int(by_id[pid].get("stock") or 0) < qty:
                raise ConflictError(f"Insufficient stock for {by_id[pid].get('name', 'item')}", 409)

        orders = self._load("orders")
        created = {
            **copy.deepcopy(order),
            "id": new_id(),
            "date": datetime.now(timezone.utc).isoformat(),
            "status": "preparing",
        }
        orders.insert(0, created)
        self._save("orders", orders)

        for pid, qty in needed.items():
            by_id[pid]["stock"] = int(by_id[pid].get("stock") or 0) - qty
        self._save("products", products)
        logger.info("Order %s created locally (total %s)", created.get("code"), created.get("total"))
        return copy.deepcopy(created)

    def update_order_status(self, order_id, status):
        self._require_admin()
        orders = self._load("orders")
        order = self._find(orders, "orders", order_id)
        if not can_transition(order.get("status", "preparing"), status):
            raise ConflictError(f"Cannot change status from {order.get('status')} to {status}", 409)
        order["status"] = status
        self._save("orders", orders)
        return copy.deepcopy(order)

    # -- auth --

    def register(self, user):
        users = self._load("users")
        email = user["email"].lower()
        if any(u.get("email") == email for u in users):
            raise ConflictError("Email already registered", 409)
        created = {
            **copy.deepcopy(user),
            "id": new_id(),
            "email": email,
            "is_admin": False,
            "join_date": datetime.now(timezone.utc).date().isoformat(),
        }
        users.append(created)
        self._save("users", users)
        return _public_user(created)

    def login(self, email, password):
        email = email.lower()
        for u in self._load("users"):
            if u.get("email") == email and u.get("password") == password:
                return _public_user(u)
        raise AuthError("Invalid credentials", 401)

    # -- stats & analytics --

    def record_visit(self, day):
        visits = self.kv.get(self.VISITS_KEY) or {}
        visits[day] = int(visits.get(day, 0)) + 1
        self.kv.set(self.VISITS_KEY, visits)

    def visitor_stats(self, day):
        visits = self.kv.get(self.VISITS_KEY) or {}
        return {"total_visits": sum(visits.values()), "today_visits": visits.get(day, 0)}

    def analytics_dashboard(self, time_range, now=None):
        self._require_admin()
        events = self._load("analytics_events")
        return aggregate(events, time_range, now=now).model_dump()


# ---------------------- Remote (REST API) ----------------------

class RemoteStorage(StoragePort):
    PATHS = {
        "products": "/products",
        "orders": "/orders",
        "slides": "/slides",
        "categories": "/categories",
        "forum_topics": "/forum/topics",
        "analytics_events": "/analytics/event",
    }
    FIELD_ACTIONS = {"comments": "comments", "likes": "like", "views": "view"}
    QUERY_PARAMS = {"user_id": "userId"}

    def __init__(self, client: httpx.Client):
        self.client = client

    def _path(self, collection: str) -> str:
        try:
            return self.PATHS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}")

    def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = {"X-User-Id": self.actor_id} if self.actor_id else {}
        try:
            resp = self.client.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise TransportError("Could not reach the server") from e
        if resp.status_code >= 400:
            raise from_status(resp.status_code, _error_message(resp))
        if not resp.content:
            return None
        return resp.json()

    def list(self, collection, **filters):
        params = {self.QUERY_PARAMS.get(k, k): v for k, v in filters.items() if v is not None}
        return self._request("GET", self._path(collection), params=params)

    def get(self, collection, item_id):
        return self._request("GET", f"{self._path(collection)}/{item_id}")

    def create(self, collection, doc):
        return self._request("POST", self._path(collection), json=doc)

    def update(self, collection, item_id, changes):
        return self._request("PUT", f"{self._path(collection)}/{item_id}", json=changes)

    def delete(self, collection, item_id):
        self._request("DELETE", f"{self._path(collection)}/{item_id}")

    def append(self, collection, item_id, field, item):
        action = self.FIELD_ACTIONS[field]
        return self._request("POST", f"{self._path(collection)}/{item_id}/{action}", json=item)

    def increment(self, collection, item_id, field):
        action = self.FIELD_ACTIONS[field]
        return self._request("POST", f"{self._path(collection)}/{item_id}/{action}")

    def create_order(self, order):
        return self._request("POST", "/orders", json=order)

    def update_order_status(self, order_id, status):
        return self._request("PUT", f"/orders/{order_id}", json={"status": status})

    def register(self, user):
        return self._request("POST", "/auth/register", json=user)

    def login(self, email, password):
        return self._request("POST", "/auth/login", json={"email": email, "password": password})

    def record_visit(self, day):
        self._request("POST", "/stats/visit")

    def visitor_stats(self, day):
        return self._request("GET", "/stats")

    def analytics_dashboard(self, time_range, now=None):
        return self._request("GET", "/analytics/dashboard", params={"range": time_range})

    def close(self):
        self.client.close()


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"Request failed ({resp.status_code})"
    detail = (body.get("detail") or body.get("message")) if isinstance(body, dict) else None
    if isinstance(detail, list):
        return "; ".join(str(d.get("msg", d)) if isinstance(d, dict) else str(d) for d in detail)
    return str(detail) if detail else f"Request failed ({resp.status_code})"


def make_storage(use_mock: bool = USE_MOCK_API, data_dir: str = DATA_DIR,
                 api_url: str = API_URL) -> StoragePort:
    if use_mock:
        logger.info("Using local storage in %s", data_dir)
        return LocalStorage(FileKV(data_dir))
    logger.info("Using remote API at %s", api_url)
    return RemoteStorage(httpx.Client(base_url=api_url, timeout=HTTP_TIMEOUT))
