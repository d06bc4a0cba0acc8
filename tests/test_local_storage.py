import pytest

from errors import ApplicationError, AuthError, ConflictError, NotFoundError, StoreError
from kvstore import FileKV, MemoryKV
from seed import DEFAULT_PRODUCTS, seed_id
from storage import LocalStorage
from tests.conftest import ADMIN_EMAIL, ADMIN_PASSWORD

HELMET = seed_id("product", 1)


def as_admin(storage):
    admin = storage.login(ADMIN_EMAIL, ADMIN_PASSWORD)
    storage.set_actor(admin["id"])
    return admin


def new_user(storage, email="rider@motovibe.com"):
    return storage.register({"name": "Rider", "email": email, "password": "pw"})


def test_collections_seed_once(local):
    assert len(local.list("products")) == len(DEFAULT_PRODUCTS)

    as_admin(local)
    for p in local.list("products"):
        local.delete("products", p["id"])

    assert local.list("products") == []


def test_catalog_writes_check_stored_admin_flag(local):
    product = {"name": "Kask", "price": 10, "category": "Kask"}

    with pytest.raises(AuthError) as exc:
        local.create("products", product)
    assert exc.value.status == 401

    user = new_user(local)
    local.set_actor(user["id"])
    with pytest.raises(AuthError) as exc:
        local.create("products", product)
    assert exc.value.status == 403

    as_admin(local)
    created = local.create("products", product)
    assert local.get("products", created["id"])["name"] == "Kask"


def test_register_rejects_duplicate_email(local):
    new_user(local)
    with pytest.raises(ConflictError):
        new_user(local, email="RIDER@motovibe.com")
    assert sum(1 for u in local.kv.get("mv_users") if u["email"] == "rider@motovibe.com") == 1


def test_login_returns_user_without_password(local):
    created = new_user(local)
    assert "password" not in created
    assert local.login("rider@motovibe.com", "pw")["id"] == created["id"]
    with pytest.raises(AuthError):
        local.login("rider@motovibe.com", "wrong")


def order(user_id, quantity, product_id=HELMET):
    return {
        "user_id": user_id,
        "code": "MV-2024-0001",
        "items": [{"product_id": product_id, "name": "Kask", "price": 8500, "quantity": quantity, "image": ""}],
        "total": 8500 * quantity,
    }


def test_create_order_takes_stock(local):
    user = new_user(local)
    created = local.create_order(order(user["id"], 3))

    assert created["status"] == "preparing"
    assert created["id"] != created["code"]
    assert local.get("products", HELMET)["stock"] == 12
    assert [o["id"] for o in local.list("orders", user_id=user["id"])] == [created["id"]]


def test_create_order_out_of_stock_changes_nothing(local):
    user = new_user(local)
    with pytest.raises(ConflictError):
        local.create_order(order(user["id"], 16))
    assert local.get("products", HELMET)["stock"] == 15
    assert local.list("orders", user_id=user["id"]) == []


def test_create_order_unknown_product(local):
    user = new_user(local)
    with pytest.raises(NotFoundError):
        local.create_order(order(user["id"], 1, product_id="ghost"))


def test_create_order_unknown_user(local):
    with pytest.raises(ApplicationError) as exc:
        local.create_order(order("nobody", 1))
    assert exc.value.status == 400
    assert local.get("products", HELMET)["stock"] == 15


def test_order_status_rules(local):
    user = new_user(local)
    created = local.create_order(order(user["id"], 1))

    local.set_actor(user["id"])
    with pytest.raises(AuthError):
        local.update_order_status(created["id"], "shipped")

    as_admin(local)
    assert local.update_order_status(created["id"], "cancelled")["status"] == "cancelled"
    with pytest.raises(ConflictError):
        local.update_order_status(created["id"], "shipped")


def test_listing_every_order_needs_admin(local):
    with pytest.raises(AuthError):
        local.list("orders")
    as_admin(local)
    assert local.list("orders") == []


def test_forum_append_and_increment(local):
    topic = local.list("forum_topics")[0]
    comment = local.append("forum_topics", topic["id"], "comments", {"content": "hi"})
    local.increment("forum_topics", topic["id"], "likes")
    liked = local.increment("forum_topics", topic["id"], "likes")

    assert liked["likes"] == topic["likes"] + 2
    assert liked["comments"][-1]["id"] == comment["id"]
    with pytest.raises(NotFoundError):
        local.increment("forum_topics", "missing", "likes")


def test_visits_keyed_by_date(local):
    local.record_visit("2024-05-09")
    local.record_visit("2024-05-10")
    local.record_visit("2024-05-10")
    assert local.visitor_stats("2024-05-10") == {"total_visits": 3, "today_visits": 2}


def test_file_store_survives_restart(tmp_path):
    first = LocalStorage(FileKV(str(tmp_path)), admin_email=None)
    user = new_user(first)

    second = LocalStorage(FileKV(str(tmp_path)), admin_email=None)
    assert second.login("rider@motovibe.com", "pw")["id"] == user["id"]


def test_file_store_ignores_corrupt_value(tmp_path):
    kv = FileKV(str(tmp_path))
    (tmp_path / "mv_users.json").write_text("{not json", encoding="utf-8")
    assert kv.get("mv_users", []) == []


@pytest.mark.parametrize("make_kv", [lambda d: FileKV(str(d)), lambda d: MemoryKV()])
def test_unserialisable_value_is_a_store_error(tmp_path, make_kv):
    kv = make_kv(tmp_path)
    kv.set("mv_settings", {"favorites": ["1"]})

    with pytest.raises(StoreError):
        kv.set("mv_settings", {"favorites": {object()}})

    assert kv.get("mv_settings") == {"favorites": ["1"]}
    assert not list(tmp_path.glob("*.tmp"))
