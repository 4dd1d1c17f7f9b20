"""Storage layer for the storefront.

``Storage`` is the contract every backend implements. Route handlers only ever
talk to that contract; which backend is active is decided once at startup by
``create_storage``.

Lookups return ``None`` (or an empty list) for missing records. Only real
infrastructure failures raise.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import TypeAdapter
from sqlalchemy import or_, select
from sqlalchemy.engine import Engine

from config import Settings
from database import (
    CategoryRow,
    OrderItemRow,
    OrderRow,
    ProductRow,
    ReviewRow,
    UserRow,
    init_db,
    make_engine,
    make_session_factory,
)
from schemas import (
    Category,
    CategoryCreate,
    Order,
    OrderCreate,
    OrderDetail,
    OrderItem,
    OrderItemCreate,
    OrderLine,
    OrderStatus,
    Product,
    ProductCreate,
    Review,
    ReviewCreate,
    User,
    UserCreate,
)
from sessions import DatabaseSessionStore, MemorySessionStore, SessionStore

logger = logging.getLogger(__name__)

USER_FIELDS = frozenset(User.model_fields) - {"id"}


def _user_changes(data: Mapping[str, Any]) -> Dict[str, Any]:
    unknown = set(data) - USER_FIELDS
    if unknown:
        raise ValueError(f"Unknown user fields: {', '.join(sorted(unknown))}")
    return dict(data)


_ORDER_STATUS = TypeAdapter(OrderStatus)


def _order_status(status: str) -> str:
    # checked before any write so a rejected status never reaches a stored order
    return _ORDER_STATUS.validate_python(status)


class Storage(ABC):
    session_store: SessionStore
    name = "abstract"

    # Users
    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[User]: ...

    @abstractmethod
    def create_user(self, data: UserCreate) -> User: ...

    @abstractmethod
    def update_user(self, user_id: int, data: Mapping[str, Any]) -> Optional[User]:
        """Merge ``data`` onto the stored user. Keys absent from ``data`` keep their value."""

    # Categories
    @abstractmethod
    def get_categories(self) -> List[Category]: ...

    @abstractmethod
    def get_category_by_id(self, category_id: int) -> Optional[Category]: ...

    @abstractmethod
    def create_category(self, data: CategoryCreate) -> Category: ...

    # Products
    @abstractmethod
    def get_products(self) -> List[Product]: ...

    @abstractmethod
    def get_product_by_id(self, product_id: int) -> Optional[Product]: ...

    @abstractmethod
    def get_products_by_category(self, category_id: int) -> List[Product]: ...

    @abstractmethod
    def get_featured_products(self) -> List[Product]: ...

    @abstractmethod
    def get_new_products(self) -> List[Product]: ...

    @abstractmethod
    def get_bestseller_products(self) -> List[Product]: ...

    @abstractmethod
    def get_sale_products(self) -> List[Product]: ...

    @abstractmethod
    def search_products(self, query: str) -> List[Product]:
        """Case-insensitive substring match on name or description."""

    @abstractmethod
    def create_product(self, data: ProductCreate) -> Product: ...

    # Orders
    @abstractmethod
    def get_orders(self, user_id: int) -> List[Order]: ...

    @abstractmethod
    def get_order_by_id(self, order_id: int) -> Optional[Order]: ...

    @abstractmethod
    def create_order(self, data: OrderCreate) -> Order: ...

    @abstractmethod
    def update_order_status(self, order_id: int, status: OrderStatus) -> Optional[Order]:
        """Set the order status. Values outside ``OrderStatus`` raise ``ValidationError``."""

    @abstractmethod
    def get_order_items(self, order_id: int) -> List[OrderItem]: ...

    @abstractmethod
    def create_order_item(self, data: OrderItemCreate) -> OrderItem: ...

    @abstractmethod
    def place_order(self, order: OrderCreate, lines: Sequence[OrderLine]) -> OrderDetail:
        """Create an order together with its items."""

    # Reviews
    @abstractmethod
    def get_reviews(self, product_id: int) -> List[Review]: ...

    @abstractmethod
    def create_review(self, data: ReviewCreate) -> Review: ...


class MemStorage(Storage):
    """Dict-backed storage with per-kind counters. State ends with the process."""

    name = "memory"

    def __init__(self):
        self.users: Dict[int, User] = {}
        self.categories: Dict[int, Category] = {}
        self.products: Dict[int, Product] = {}
        self.orders: Dict[int, Order] = {}
        self.order_items: Dict[int, OrderItem] = {}
        self.reviews: Dict[int, Review] = {}
        self._counters = {
            "user": 1,
            "category": 1,
            "product": 1,
            "order": 1,
            "order_item": 1,
            "review": 1,
        }
        self.session_store = MemorySessionStore()

    def _next_id(self, kind: str) -> int:
        value = self._counters[kind]
        self._counters[kind] = value + 1
        return value

    # Users
    def get_user(self, user_id):
        return self.users.get(user_id)

    def get_user_by_username(self, username):
        return next((u for u in self.users.values() if u.username == username), None)

    def get_user_by_email(self, email):
        return next((u for u in self.users.values() if u.email == email), None)

    def create_user(self, data):
        user = User(id=self._next_id("user"), **data.model_dump())
        self.users[user.id] = user
        return user

    def update_user(self, user_id, data):
        existing = self.users.get(user_id)
        if existing is None:
            return None
        updated = User.model_validate({**existing.model_dump(), **_user_changes(data)})
        self.users[user_id] = updated
        return updated

    # Categories
    def get_categories(self):
        return list(self.categories.values())

    def get_category_by_id(self, category_id):
        return self.categories.get(category_id)

    def create_category(self, data):
        category = Category(id=self._next_id("category"), **data.model_dump())
        self.categories[category.id] = category
        return category

    # Products
    def _filter_products(self, predicate) -> List[Product]:
        return [p for p in self.products.values() if predicate(p)]

    def get_products(self):
        return list(self.products.values())

    def get_product_by_id(self, product_id):
        return self.products.get(product_id)

    def get_products_by_category(self, category_id):
        return self._filter_products(lambda p: p.category_id == category_id)

    def get_featured_products(self):
        return self._filter_products(lambda p: p.is_featured)

    def get_new_products(self):
        return self._filter_products(lambda p: p.is_new)

    def get_bestseller_products(self):
        return self._filter_products(lambda p: p.is_bestseller)

    def get_sale_products(self):
        return self._filter_products(lambda p: p.is_sale)

    def search_products(self, query):
        needle = query.lower()
        return self._filter_products(
            lambda p: needle in p.name.lower()
            or (p.description is not None and needle in p.description.lower())
        )

    def create_product(self, data):
        product = Product(id=self._next_id("product"), **data.model_dump())
        self.products[product.id] = product
        return product

    # Orders
    def get_orders(self, user_id):
        return [o for o in self.orders.values() if o.user_id == user_id]

    def get_order_by_id(self, order_id):
        return self.orders.get(order_id)

    def create_order(self, data):
        order = Order(
            id=self._next_id("order"),
            created_at=datetime.now(timezone.utc),
            **data.model_dump(),
        )
        self.orders[order.id] = order
        return order

    def update_order_status(self, order_id, status):
        status = _order_status(status)
        existing = self.orders.get(order_id)
        if existing is None:
            return None
        updated = Order.model_validate({**existing.model_dump(), "status": status})
        self.orders[order_id] = updated
        return updated

    def get_order_items(self, order_id):
        return [i for i in self.order_items.values() if i.order_id == order_id]

    def create_order_item(self, data):
        item = OrderItem(id=self._next_id("order_item"), **data.model_dump())
        self.order_items[item.id] = item
        return item

    def place_order(self, order, lines):
        created = self.create_order(order)
        items = [
            self.create_order_item(OrderItemCreate(order_id=created.id, **line.model_dump()))
            for line in lines
        ]
        return OrderDetail(**created.model_dump(), items=items)

    # Reviews
    def get_reviews(self, product_id):
        return [r for r in self.reviews.values() if r.product_id == product_id]

    def create_review(self, data):
        review = Review(
            id=self._next_id("review"),
            created_at=datetime.now(timezone.utc),
            **data.model_dump(),
        )
        self.reviews[review.id] = review
        return review


class DatabaseStorage(Storage):
    """SQLAlchemy-backed storage. Every call opens a short-lived ORM session."""

    name = "database"

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = make_session_factory(engine)
        init_db(engine)
        self.session_store = DatabaseSessionStore(self._session_factory)

    def _one(self, model, row_type, *criteria):
        with self._session_factory() as db:
            row = db.scalars(select(row_type).where(*criteria)).first()
            return model.model_validate(row) if row is not None else None

    def _many(self, model, row_type, *criteria) -> list:
        stmt = select(row_type).order_by(row_type.id)
        if criteria:
            stmt = stmt.where(*criteria)
        with self._session_factory() as db:
            return [model.model_validate(row) for row in db.scalars(stmt)]

    def _insert(self, model, row):
        with self._session_factory() as db:
            db.add(row)
            db.commit()
            db.refresh(row)
            return model.model_validate(row)

    # Users
    def get_user(self, user_id):
        return self._one(User, UserRow, UserRow.id == user_id)

    def get_user_by_username(self, username):
        return self._one(User, UserRow, UserRow.username == username)

    def get_user_by_email(self, email):
        return self._one(User, UserRow, UserRow.email == email)

    def create_user(self, data):
        return self._insert(User, UserRow(**data.model_dump()))

    def update_user(self, user_id, data):
        changes = _user_changes(data)
        with self._session_factory() as db:
            row = db.get(UserRow, user_id)
            if row is None:
                return None
            for key, value in changes.items():
                setattr(row, key, value)
            db.commit()
            db.refresh(row)
            return User.model_validate(row)

    # Categories
    def get_categories(self):
        return self._many(Category, CategoryRow)

    def get_category_by_id(self, category_id):
        return self._one(Category, CategoryRow, CategoryRow.id == category_id)

    def create_category(self, data):
        return self._insert(Category, CategoryRow(**data.model_dump()))

    # Products
    def get_products(self):
        return self._many(Product, ProductRow)

    def get_product_by_id(self, product_id):
        return self._one(Product, ProductRow, ProductRow.id == product_id)

    def get_products_by_category(self, category_id):
        return self._many(Product, ProductRow, ProductRow.category_id == category_id)

    def get_featured_products(self):
        return self._many(Product, ProductRow, ProductRow.is_featured.is_(True))

    def get_new_products(self):
        return self._many(Product, ProductRow, ProductRow.is_new.is_(True))

    def get_bestseller_products(self):
        return self._many(Product, ProductRow, ProductRow.is_bestseller.is_(True))

    def get_sale_products(self):
        return self._many(Product, ProductRow, ProductRow.is_sale.is_(True))

    def search_products(self, query):
        needle = query.lower()
        return self._many(
            Product,
            ProductRow,
            or_(
                ProductRow.name.icontains(needle, autoescape=True),
                ProductRow.description.icontains(needle, autoescape=True),
            ),
        )

    def create_product(self, data):
        return self._insert(Product, ProductRow(**data.model_dump()))

    # Orders
    def get_orders(self, user_id):
        return self._many(Order, OrderRow, OrderRow.user_id == user_id)

    def get_order_by_id(self, order_id):
        return self._one(Order, OrderRow, OrderRow.id == order_id)

    def create_order(self, data):
        row = OrderRow(created_at=datetime.now(timezone.utc), **data.model_dump())
        return self._insert(Order, row)

    def update_order_status(self, order_id, status):
        status = _order_status(status)
        with self._session_factory() as db:
            row = db.get(OrderRow, order_id)
            if row is None:
                return None
            row.status = status
            db.commit()
            db.refresh(row)
            return Order.model_validate(row)

    def get_order_items(self, order_id):
        return self._many(OrderItem, OrderItemRow, OrderItemRow.order_id == order_id)

    def create_order_item(self, data):
        return self._insert(OrderItem, OrderItemRow(**data.model_dump()))

    def place_order(self, order, lines):
        with self._session_factory() as db:
            with db.begin():
                order_row = OrderRow(created_at=datetime.now(timezone.utc), **order.model_dump())
                db.add(order_row)
                db.flush()
                item_rows = [OrderItemRow(order_id=order_row.id, **line.model_dump()) for line in lines]
                db.add_all(item_rows)
                db.flush()
                detail = OrderDetail.model_validate(
                    {
                        **Order.model_validate(order_row).model_dump(),
                        "items": [OrderItem.model_validate(row) for row in item_rows],
                    }
                )
        return detail

    # Reviews
    def get_reviews(self, product_id):
        return self._many(Review, ReviewRow, ReviewRow.product_id == product_id)

    def create_review(self, data):
        row = ReviewRow(created_at=datetime.now(timezone.utc), **data.model_dump())
        return self._insert(Review, row)


def create_storage(settings: Settings) -> Storage:
    """Instantiate the backend named by ``settings.storage_backend``."""
    backend = settings.storage_backend
    if backend == "memory":
        storage: Storage = MemStorage()
    elif backend in ("database", "db", "sql"):
        storage = DatabaseStorage(make_engine(settings.database_url))
    else:
        raise ValueError(f"Unknown storage backend: {backend!r}")
    logger.info("Using %s storage backend", storage.name)
    return storage
