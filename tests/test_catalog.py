from catalog import effective_price, filter_products, sort_products
from schemas import Product


def product(pid, price, **flags):
    data = {
        "id": pid,
        "name": f"Product {pid}",
        "price": price,
        "image": f"{pid}.jpg",
        "category_id": flags.pop("category_id", 1),
    }
    data.update(flags)
    return Product(**data)


PRODUCTS = [
    product(1, 300, is_featured=False, is_new=True, rating=4.1),
    product(2, 100, is_featured=True, is_new=False, rating=4.8, category_id=2),
    product(3, 200, is_featured=False, is_new=False, rating=3.9, in_stock=False),
    product(4, 100, is_featured=True, is_new=True, rating=4.5, is_sale=True),
]


def ids(products):
    return [p.id for p in products]


def test_effective_price_prefers_sale_price():
    assert effective_price(product(1, 1000, sale_price=1400)) == 1400
    assert effective_price(product(1, 1000)) == 1000


def test_price_sorts_are_stable():
    assert ids(sort_products(PRODUCTS, "price_low")) == [2, 4, 3, 1]
    assert ids(sort_products(PRODUCTS, "price_high")) == [1, 3, 2, 4]


def test_newest_moves_new_products_first_keeping_order():
    assert ids(sort_products(PRODUCTS, "newest")) == [1, 4, 2, 3]


def test_rating_sorts_descending():
    assert ids(sort_products(PRODUCTS, "rating")) == [2, 4, 1, 3]


def test_featured_is_default_and_fallback():
    assert ids(sort_products(PRODUCTS)) == [2, 4, 1, 3]
    assert ids(sort_products(PRODUCTS, "popularity")) == [2, 4, 1, 3]


def test_sort_does_not_mutate_input():
    before = ids(PRODUCTS)
    sort_products(PRODUCTS, "price_low")
    assert ids(PRODUCTS) == before


def test_filters():
    assert ids(filter_products(PRODUCTS, in_stock=True)) == [1, 2, 4]
    assert ids(filter_products(PRODUCTS, is_sale=True)) == [4]
    assert ids(filter_products(PRODUCTS, is_new=True)) == [1, 4]
    assert ids(filter_products(PRODUCTS, category_id=2)) == [2]
    assert ids(filter_products(PRODUCTS, min_price=150, max_price=250)) == [3]
    assert ids(filter_products(PRODUCTS)) == [1, 2, 3, 4]
