import pytest

from app_state import Store
from kvstore import MemoryKV
from seed import seed_id
from services import SESSION_KEY
from storage import LocalStorage
from tests.conftest import ADMIN_EMAIL, ADMIN_PASSWORD, make_product


class CountingStorage(LocalStorage):
    def __init__(self, kv):
        super().__init__(kv, admin_email=ADMIN_EMAIL, admin_password=ADMIN_PASSWORD)
        self.order_requests = 0

    def create_order(self, order):
        self.order_requests += 1
        return super().create_order(order)


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def storage():
    return CountingStorage(MemoryKV())


@pytest.fixture
def store(storage, clock):
    s = Store(storage, MemoryKV(), MemoryKV(), clock=clock)
    s.start()
    return s


def catalog(store):
    return {p.id: p for p in store.products.list()}


def logged_in(store):
    store.register("Rider", "rider@motovibe.com", "pw")
    return store


def test_checkout_while_logged_out_prompts_login(store, storage):
    helmet = catalog(store)[seed_id("product", 1)]
    store.add_to_cart(helmet)
    store.state.cart_open = True

    assert store.start_checkout() is False
    assert store.state.auth_open and store.state.auth_mode == "login"
    assert not store.state.cart_open
    assert store.complete_checkout() is None
    assert storage.order_requests == 0
    assert store.cart.count == 1


def test_checkout_with_empty_cart_is_noop(store, storage):
    logged_in(store)
    toasts_before = list(store.state.toasts)

    assert store.start_checkout() is False
    assert store.complete_checkout() is None
    assert storage.order_requests == 0
    assert not store.state.payment_open
    assert store.state.toasts == toasts_before


def test_successful_checkout(store, storage):
    logged_in(store)
    products = catalog(store)
    helmet, gloves = products[seed_id("product", 1)], products[seed_id("product", 3)]
    store.add_to_cart(helmet)
    store.add_to_cart(helmet)
    store.add_to_cart(gloves)

    assert store.start_checkout() is True
    assert store.state.payment_open
    order = store.complete_checkout()

    assert order.total == 18800
    assert order.status == "preparing"
    assert order.code.startswith("MV-")
    assert [(i.product_id, i.quantity) for i in order.items] == [(helmet.id, 2), (gloves.id, 1)]
    assert store.cart.is_empty
    assert not store.state.payment_open
    assert store.state.view == "profile"
    assert store.state.toasts[-1].type == "success"


def test_orders_keep_their_own_totals(store):
    user = logged_in(store).state.user
    products = catalog(store)
    helmet, gloves = products[seed_id("product", 1)], products[seed_id("product", 3)]

    store.add_to_cart(helmet)
    first = store.complete_checkout()
    store.add_to_cart(gloves)
    store.add_to_cart(gloves)
    second = store.complete_checkout()

    assert first.id != second.id
    totals = {o.id: o.total for o in store.orders.user_orders(user.id)}
    assert totals == {first.id: 8500, second.id: 3600}


def test_failed_checkout_keeps_cart_and_payment_open(store):
    logged_in(store)
    store.add_to_cart(make_product("not-in-catalog", "Ghost Kask", 500))
    store.start_checkout()

    assert store.complete_checkout() is None
    assert store.cart.count == 1
    assert store.state.payment_open
    assert store.state.toasts[-1].type == "error"


def test_cart_actions_raise_toasts_and_events(store, storage):
    logged_in(store)
    helmet = catalog(store)[seed_id("product", 1)]

    store.add_to_cart(helmet)
    store.add_to_cart(helmet)
    messages = [t.message for t in store.state.toasts[-2:]]
    assert messages == [f"{helmet.name} added to cart.", "Cart updated."]

    events = storage.kv.get("mv_analytics_events")
    adds = [e for e in events if e["type"] == "add_to_cart"]
    assert len(adds) == 2
    assert adds[0]["user_id"] == store.state.user.id
    assert adds[0]["product_name"] == helmet.name

    store.update_quantity(helmet.id, -10)
    assert store.cart.items[0].quantity == 1
    store.remove_from_cart(helmet.id)
    assert store.cart.is_empty
    assert store.state.toasts[-1].type == "info"


def test_toasts_expire(store, clock):
    store.notify("info", "hello")
    clock.now += 3.9
    store.expire_toasts()
    assert [t.message for t in store.state.toasts] == ["hello"]
    clock.now += 0.2
    store.expire_toasts()
    assert store.state.toasts == []


def test_favorites_need_login_and_persist(storage, clock):
    persistent = MemoryKV()
    store = Store(storage, persistent, MemoryKV(), clock=clock)
    store.start()
    helmet = catalog(store)[seed_id("product", 1)]

    store.toggle_favorite(helmet)
    assert store.state.favorites == [] and store.state.auth_open

    logged_in(store)
    store.toggle_favorite(helmet)
    assert store.state.favorites == [helmet.id]

    again = Store(storage, persistent, MemoryKV(), clock=clock)
    again.start()
    assert again.state.favorites == [helmet.id]

    again.toggle_favorite(helmet)
    assert again.state.favorites == []


def test_remember_me_controls_session_scope(storage, clock):
    persistent, tab = MemoryKV(), MemoryKV()
    store = Store(storage, persistent, tab, clock=clock)
    store.register("Rider", "rider@motovibe.com", "pw")
    store.logout()
    assert store.state.user is None and store.state.view == "home"

    store.login("rider@motovibe.com", "pw", remember=False)
    assert tab.get(SESSION_KEY)["email"] == "rider@motovibe.com"
    assert persistent.get(SESSION_KEY) is None
    assert "password" not in tab.get(SESSION_KEY)

    # a new tab shares only the persistent store
    other_tab = Store(storage, persistent, MemoryKV(), clock=clock)
    other_tab.start()
    assert other_tab.state.user is None

    store.login("rider@motovibe.com", "pw", remember=True)
    restored = Store(storage, persistent, MemoryKV(), clock=clock)
    restored.start()
    assert restored.state.user.email == "rider@motovibe.com"


def test_bad_login_shows_error(store):
    assert store.login("nobody@motovibe.com", "x") is None
    assert store.state.toasts[-1].type == "error"
    assert store.state.user is None


def test_profile_requires_user(store):
    store.navigate("profile")
    assert store.state.view == "home"
    with pytest.raises(ValueError):
        store.navigate("nowhere")


def test_session_duration_event(store, storage, clock):
    assert store.end_session() is None
    clock.now += 42
    assert store.end_session() == 42
    events = storage.kv.get("mv_analytics_events")
    assert events[-1]["type"] == "session_duration" and events[-1]["duration"] == 42


def test_admin_dashboard_through_store(store, storage):
    helmet = catalog(store)[seed_id("product", 1)]
    store.open_product(helmet)
    store.add_to_cart(helmet)
    assert store.state.view == "product_detail"

    store.login(ADMIN_EMAIL, ADMIN_PASSWORD)
    dash = store.stats.dashboard("24h")
    assert dash.total_product_views == 1
    assert dash.top_added_products[0].name == helmet.name
