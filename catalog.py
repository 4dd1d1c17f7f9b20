"""Product list views applied on the browsing side: filter panel and sort menu."""
from typing import Iterable, List, Optional

from schemas import Product


def effective_price(product: Product) -> float:
    """Price actually charged: ``sale_price`` when set, otherwise ``price``."""
    return product.sale_price or product.price


def filter_products(
    products: Iterable[Product],
    in_stock: bool = False,
    is_sale: bool = False,
    is_new: bool = False,
    is_bestseller: bool = False,
    min_price: float = 0,
    max_price: float = 50000,
    category_id: Optional[int] = None,
) -> List[Product]:
    result = list(products)
    if category_id is not None:
        result = [p for p in result if p.category_id == category_id]
    if in_stock:
        result = [p for p in result if p.in_stock]
    if is_sale:
        result = [p for p in result if p.is_sale]
    if is_new:
        result = [p for p in result if p.is_new]
    if is_bestseller:
        result = [p for p in result if p.is_bestseller]
    # the price bounds look at the list price, not the charged one
    return [p for p in result if min_price <= p.price <= max_price]


def _flag_first(products: List[Product], flag: str) -> List[Product]:
    return [p for p in products if getattr(p, flag)] + [p for p in products if not getattr(p, flag)]


def sort_products(products: Iterable[Product], sort_by: str = "featured") -> List[Product]:
    """Order a product list for display.

    ``newest`` and ``featured`` do not sort by a timestamp or a score: they move
    products carrying the ``is_new`` / ``is_featured`` flag to the front and keep
    the incoming order inside each group. Unknown keys behave like ``featured``.
    """
    items = list(products)
    if sort_by == "price_low":
        return sorted(items, key=lambda p: p.price)
    if sort_by == "price_high":
        return sorted(items, key=lambda p: p.price, reverse=True)
    if sort_by == "newest":
        return _flag_first(items, "is_new")
    if sort_by == "rating":
        return sorted(items, key=lambda p: p.rating, reverse=True)
    return _flag_first(items, "is_featured")
