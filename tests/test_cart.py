import pytest

from cart import ADDED, UPDATED, Cart
from tests.conftest import make_product


@pytest.fixture
def helmet():
    return make_product("helmet-1", "AeroSpeed Carbon Pro Kask", 8500)


@pytest.fixture
def gloves():
    return make_product("gloves-1", "StormChaser Eldiven", 1800, category="Eldiven")


def test_repeated_add_keeps_single_entry(helmet):
    cart = Cart()
    results = [cart.add(helmet) for _ in range(5)]

    assert results == [ADDED] + [UPDATED] * 4
    assert len(cart.items) == 1
    assert cart.items[0].quantity == 5
    assert cart.count == 5


@pytest.mark.parametrize("start,delta,expected", [
    (2, -5, 1),
    (2, -1, 1),
    (1, 0, 1),
    (3, 2, 5),
])
def test_update_quantity_never_drops_below_one(helmet, start, delta, expected):
    cart = Cart()
    for _ in range(start):
        cart.add(helmet)

    cart.update_quantity(helmet.id, delta)

    assert cart.items[0].quantity == expected


def test_update_quantity_unknown_id_is_noop(helmet):
    cart = Cart()
    cart.add(helmet)
    assert cart.update_quantity("nope", 3) is None
    assert cart.items[0].quantity == 1


def test_total_and_remove_scenario(helmet, gloves):
    cart = Cart()
    cart.add(helmet)
    cart.add(helmet)
    cart.add(gloves)

    assert cart.total() == 18800

    removed = cart.remove(gloves.id)

    assert removed.name == gloves.name
    assert cart.total() == 17000
    assert [i.id for i in cart.items] == [helmet.id]


def test_items_are_copies(helmet):
    cart = Cart()
    cart.add(helmet)

    snapshot = cart.items
    snapshot[0].quantity = 99
    snapshot[0].price = 1

    assert cart.items[0].quantity == 1
    assert cart.total() == 8500


def test_clear_empties_cart(helmet, gloves):
    cart = Cart()
    cart.add(helmet)
    cart.add(gloves)
    cart.clear()

    assert cart.is_empty
    assert cart.total() == 0
