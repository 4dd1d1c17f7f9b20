"""Shopper-side cart.

The cart never talks to the API. It keeps (product snapshot, quantity) lines in
a local key/value store, rewrites that store after every change and is only
turned into an order payload at checkout.
"""
import json
import logging
import math
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from catalog import effective_price
from schemas import PaymentMethod, Product

logger = logging.getLogger(__name__)

CART_STORAGE_KEY = "homestyleerode_cart"
SHIPPING_FEE = 250
FREE_SHIPPING_THRESHOLD = 5000
COUPON_CODE = "welcome10"
COUPON_RATE = 0.1


class InvalidCouponError(ValueError):
    pass


class EmptyCartError(ValueError):
    pass


class Notification(BaseModel):
    title: str
    description: str


class CartItem(BaseModel):
    product: Product
    quantity: int = Field(1, ge=1)


_cart_items = TypeAdapter(List[CartItem])


def log_notification(notification: Notification) -> None:
    logger.info("%s: %s", notification.title, notification.description)


class LocalStorage:
    """String key/value store kept in a JSON file, or in memory when ``path`` is None."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        self._data: Dict[str, str] = {}
        if self.path is not None and self.path.exists():
            try:
                loaded = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.warning("Ignoring unreadable local storage file %s: %s", self.path, e)
                loaded = {}
            self._data = {str(k): str(v) for k, v in loaded.items()} if isinstance(loaded, dict) else {}

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data), encoding="utf-8")

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    def remove_item(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()


class OrderSummary(BaseModel):
    subtotal: float
    shipping: float
    discount: float = 0
    total: float


def order_summary(subtotal: float, coupon_code: Optional[str] = None) -> OrderSummary:
    """Shipping, coupon discount and grand total for a cart subtotal.

    Shipping is a flat fee unless the subtotal is above the free-shipping
    threshold. The only accepted coupon is WELCOME10 (10%, rounded half up).
    """
    shipping = 0 if subtotal > FREE_SHIPPING_THRESHOLD else SHIPPING_FEE
    discount = 0
    if coupon_code is not None:
        code = coupon_code.strip()
        if not code:
            raise InvalidCouponError("Please enter a coupon code")
        if code.lower() != COUPON_CODE:
            raise InvalidCouponError("Invalid or expired coupon code")
        discount = math.floor(subtotal * COUPON_RATE + 0.5)
    return OrderSummary(
        subtotal=subtotal,
        shipping=shipping,
        discount=discount,
        total=subtotal + shipping - discount,
    )


class CheckoutAddress(BaseModel):
    address: str
    city: str
    state: str
    zip_code: str
    payment_method: PaymentMethod = "cod"

    @field_validator("address", "city", "state", "zip_code")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class Cart:
    """Cart state container.

    Every transition replaces ``items`` and then writes the whole list back to
    local storage. ``item_count`` and ``total_price`` are computed on read.
    """

    def __init__(
        self,
        storage: Optional[LocalStorage] = None,
        notify: Callable[[Notification], None] = log_notification,
    ):
        self.storage = storage if storage is not None else LocalStorage()
        self.notify = notify
        self.items: List[CartItem] = self._load()

    def _load(self) -> List[CartItem]:
        saved = self.storage.get_item(CART_STORAGE_KEY)
        if not saved:
            return []
        try:
            return _cart_items.validate_json(saved)
        except ValidationError as e:
            logger.error("Failed to parse cart data: %s", e)
            self.storage.remove_item(CART_STORAGE_KEY)
            return []

    def _save(self) -> None:
        payload = _cart_items.dump_json(self.items, by_alias=True).decode("utf-8")
        self.storage.set_item(CART_STORAGE_KEY, payload)

    def _find(self, product_id: int) -> Optional[CartItem]:
        return next((item for item in self.items if item.product.id == product_id), None)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total_price(self) -> float:
        return sum(effective_price(item.product) * item.quantity for item in self.items)

    def add_item(self, product: Product, quantity: int = 1) -> None:
        if quantity < 1:
            raise ValueError("quantity must be at least 1")
        existing = self._find(product.id)
        if existing is not None:
            new_quantity = existing.quantity + quantity
            self.items = [
                CartItem(product=item.product, quantity=new_quantity) if item is existing else item
                for item in self.items
            ]
            self.notify(Notification(
                title="Cart updated",
                description=f"{product.name} quantity increased to {new_quantity}",
            ))
        else:
            self.items = self.items + [CartItem(product=product, quantity=quantity)]
            self.notify(Notification(
                title="Item added to cart",
                description=f"{product.name} added to your cart",
            ))
        self._save()

    def remove_item(self, product_id: int) -> None:
        removed = self._find(product_id)
        if removed is not None:
            self.notify(Notification(
                title="Item removed",
                description=f"{removed.product.name} removed from your cart",
            ))
        self.items = [item for item in self.items if item.product.id != product_id]
        self._save()

    def update_quantity(self, product_id: int, quantity: int) -> None:
        if quantity < 1:
            self.remove_item(product_id)
            return
        existing = self._find(product_id)
        self.items = [
            CartItem(product=item.product, quantity=quantity) if item.product.id == product_id else item
            for item in self.items
        ]
        if existing is not None:
            self.notify(Notification(
                title="Cart updated",
                description=f"{existing.product.name} quantity updated to {quantity}",
            ))
        self._save()

    def clear(self) -> None:
        self.items = []
        self.notify(Notification(
            title="Cart cleared",
            description="All items have been removed from your cart",
        ))
        self._save()

    def summary(self, coupon_code: Optional[str] = None) -> OrderSummary:
        return order_summary(self.total_price, coupon_code)

    def checkout_payload(
        self,
        address: str,
        city: str,
        state: str,
        zip_code: str,
        payment_method: str = "cod",
        coupon_code: Optional[str] = None,
    ) -> dict:
        """Body for ``POST /api/orders`` built from the current cart snapshot."""
        if not self.items:
            raise EmptyCartError("Your cart is empty")
        shipping_to = CheckoutAddress(
            address=address,
            city=city,
            state=state,
            zip_code=zip_code,
            payment_method=payment_method,
        )
        summary = self.summary(coupon_code)
        return {
            "total": summary.total,
            "items": [
                {
                    "productId": item.product.id,
                    "quantity": item.quantity,
                    "price": effective_price(item.product),
                }
                for item in self.items
            ],
            "address": shipping_to.address,
            "city": shipping_to.city,
            "state": shipping_to.state,
            "zipCode": shipping_to.zip_code,
            "paymentMethod": shipping_to.payment_method,
        }
