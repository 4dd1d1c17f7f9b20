import json

import pytest

from cart import (
    CART_STORAGE_KEY,
    Cart,
    EmptyCartError,
    InvalidCouponError,
    LocalStorage,
    order_summary,
)
from schemas import Product

SOFA = Product(id=1, name="Modern Luxe Sofa", price=1000, sale_price=1400, image="sofa.jpg", category_id=1)
LAMP = Product(id=8, name="Pendant Ceiling Light", price=2999, image="lamp.jpg", category_id=4)


@pytest.fixture
def notes():
    return []


@pytest.fixture
def cart(notes):
    return Cart(LocalStorage(), notify=notes.append)


def test_add_uses_sale_price_for_total(cart):
    cart.add_item(SOFA, 2)
    assert cart.item_count == 2
    assert cart.total_price == 2800


def test_adding_same_product_merges_lines(cart, notes):
    cart.add_item(SOFA)
    cart.add_item(SOFA, 3)
    assert len(cart.items) == 1
    assert cart.items[0].quantity == 4
    assert [n.title for n in notes] == ["Item added to cart", "Cart updated"]
    assert notes[1].description == "Modern Luxe Sofa quantity increased to 4"


def test_totals_follow_every_mutation(cart):
    cart.add_item(SOFA, 2)
    cart.add_item(LAMP)
    assert cart.item_count == 3
    assert cart.total_price == 2 * 1400 + 2999
    cart.update_quantity(LAMP.id, 3)
    assert cart.total_price == 2 * 1400 + 3 * 2999
    cart.remove_item(SOFA.id)
    assert cart.item_count == 3
    assert cart.total_price == 3 * 2999


def test_quantity_below_one_removes_line(cart, notes):
    cart.add_item(SOFA)
    cart.update_quantity(SOFA.id, 0)
    assert cart.items == []
    assert notes[-1].title == "Item removed"


def test_update_quantity_notifies(cart, notes):
    cart.add_item(SOFA)
    cart.update_quantity(SOFA.id, 5)
    assert notes[-1].title == "Cart updated"
    assert cart.items[0].quantity == 5


def test_add_rejects_non_positive_quantity(cart):
    with pytest.raises(ValueError):
        cart.add_item(SOFA, 0)
    assert cart.items == []


def test_remove_unknown_product_is_silent(cart, notes):
    cart.remove_item(99)
    assert notes == []


def test_clear(cart, notes):
    cart.add_item(SOFA)
    cart.add_item(LAMP)
    cart.clear()
    assert cart.items == []
    assert cart.item_count == 0
    assert cart.total_price == 0
    assert notes[-1].title == "Cart cleared"


def test_cart_is_persisted_and_reloaded(tmp_path, notes):
    path = tmp_path / "local_storage.json"
    cart = Cart(LocalStorage(path), notify=notes.append)
    cart.add_item(SOFA, 2)

    saved = json.loads(json.loads(path.read_text())[CART_STORAGE_KEY])
    assert saved[0]["quantity"] == 2
    assert saved[0]["product"]["salePrice"] == 1400

    reloaded = Cart(LocalStorage(path), notify=notes.append)
    assert reloaded.items == cart.items
    assert reloaded.total_price == 2800


def test_corrupt_cart_data_is_discarded():
    storage = LocalStorage()
    storage.set_item(CART_STORAGE_KEY, "{not json")
    cart = Cart(storage, notify=lambda n: None)
    assert cart.items == []
    assert storage.get_item(CART_STORAGE_KEY) is None


def test_order_summary_shipping_threshold():
    assert order_summary(5000).shipping == 250
    assert order_summary(5000).total == 5250
    assert order_summary(5001).shipping == 0
    assert order_summary(5001).total == 5001


def test_order_summary_coupon():
    summary = order_summary(2805, "Welcome10")
    assert summary.discount == 281
    assert summary.total == 2805 + 250 - 281
    with pytest.raises(InvalidCouponError):
        order_summary(2805, "SAVE50")
    with pytest.raises(InvalidCouponError):
        order_summary(2805, "  ")


def test_checkout_payload(cart):
    cart.add_item(SOFA, 2)
    cart.add_item(LAMP)
    payload = cart.checkout_payload("12 Perundurai Road", "Erode", "Tamil Nadu", "638001", "upi")
    assert payload == {
        "total": 2800 + 2999,
        "items": [
            {"productId": 1, "quantity": 2, "price": 1400},
            {"productId": 8, "quantity": 1, "price": 2999},
        ],
        "address": "12 Perundurai Road",
        "city": "Erode",
        "state": "Tamil Nadu",
        "zipCode": "638001",
        "paymentMethod": "upi",
    }


def test_checkout_payload_validation(cart):
    with pytest.raises(EmptyCartError):
        cart.checkout_payload("12 Perundurai Road", "Erode", "Tamil Nadu", "638001")
    cart.add_item(SOFA)
    with pytest.raises(ValueError):
        cart.checkout_payload("12 Perundurai Road", "Erode", "Tamil Nadu", "638001", "cheque")
    with pytest.raises(ValueError):
        cart.checkout_payload(" ", "Erode", "Tamil Nadu", "638001")
