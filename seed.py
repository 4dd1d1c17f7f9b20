"""Sample catalog and demo account for a fresh store."""
import logging

from auth import get_password_hash
from schemas import CategoryCreate, ProductCreate, UserCreate
from storage import Storage

logger = logging.getLogger(__name__)

_IMG = "https://images.unsplash.com/photo-{}?ixlib=rb-4.0.3&auto=format&fit=crop&w=500&h={}&q=80"

CATEGORIES = [
    {"name": "Furniture", "description": "Quality furniture for your home",
     "image": _IMG.format("1555041469-a586c61ea9bc", 500)},
    {"name": "Mattresses", "description": "Premium mattresses for better sleep",
     "image": _IMG.format("1505693416388-ac5ce068fe85", 500)},
    {"name": "Home Decor", "description": "Beautiful decorative items for your home",
     "image": _IMG.format("1513519245088-0e12902e5a38", 500)},
    {"name": "Lighting", "description": "Illuminate your space with our lighting collection",
     "image": _IMG.format("1507473885765-e6ed057f782c", 500)},
]

# sale_price is the charged figure and sits above price in this catalog
PRODUCTS = [
    {
        "name": "Modern Luxe Sofa",
        "description": "Premium comfort with elegant design",
        "price": 29999, "sale_price": 34999,
        "image": _IMG.format("1555041469-a586c61ea9bc", 500),
        "category_id": 1, "rating": 4.5, "review_count": 24, "in_stock": True,
        "is_featured": True, "is_new": True, "is_bestseller": False, "is_sale": False,
    },
    {
        "name": "Orthopedic Memory Foam Mattress",
        "description": "Superior support for better sleep",
        "price": 12499, "sale_price": 15999,
        "image": _IMG.format("1505693416388-ac5ce068fe85", 500),
        "category_id": 2, "rating": 5.0, "review_count": 36, "in_stock": True,
        "is_featured": True, "is_new": False, "is_bestseller": False, "is_sale": True,
    },
    {
        "name": "Wooden Coffee Table",
        "description": "Handcrafted solid wood design",
        "price": 8999, "sale_price": 10499,
        "image": _IMG.format("1538688525198-9b88f6f53126", 500),
        "category_id": 1, "rating": 4.0, "review_count": 18, "in_stock": True,
        "is_featured": True, "is_new": False, "is_bestseller": False, "is_sale": False,
    },
    {
        "name": "Decorative Ceramic Vase",
        "description": "Elegant addition to any home",
        "price": 1299, "sale_price": 1899,
        "image": _IMG.format("1513519245088-0e12902e5a38", 500),
        "category_id": 3, "rating": 4.5, "review_count": 42, "in_stock": True,
        "is_featured": True, "is_new": False, "is_bestseller": True, "is_sale": False,
    },
    {
        "name": "Premium Spring Mattress",
        "description": "Luxurious comfort with pocket springs",
        "price": 18999, "sale_price": 22999,
        "image": _IMG.format("1631046263435-ef4dc319cca8", 300),
        "category_id": 2, "rating": 4.7, "review_count": 29, "in_stock": True,
        "is_featured": False, "is_new": False, "is_bestseller": True, "is_sale": True,
    },
    {
        "name": "Natural Latex Mattress",
        "description": "Eco-friendly and sustainable comfort",
        "price": 21999, "sale_price": 25999,
        "image": _IMG.format("1567016432779-094069958ea5", 300),
        "category_id": 2, "rating": 4.8, "review_count": 31, "in_stock": True,
        "is_featured": False, "is_new": True, "is_bestseller": False, "is_sale": True,
    },
    {
        "name": "Gel Memory Foam Mattress",
        "description": "Cooling technology for better sleep",
        "price": 19999, "sale_price": 23999,
        "image": _IMG.format("1592229505726-ca121723b8ef", 300),
        "category_id": 2, "rating": 4.6, "review_count": 24, "in_stock": True,
        "is_featured": True, "is_new": False, "is_bestseller": False, "is_sale": False,
    },
    {
        "name": "Pendant Ceiling Light",
        "description": "Modern design with warm illumination",
        "price": 2999, "sale_price": 4299,
        "image": _IMG.format("1507473885765-e6ed057f782c", 500),
        "category_id": 4, "rating": 4.3, "review_count": 15, "in_stock": True,
        "is_featured": False, "is_new": True, "is_bestseller": False, "is_sale": True,
    },
]

TEST_USER = {
    "username": "testuser",
    "email": "test@example.com",
    "password": "password123",
    "first_name": "Test",
    "last_name": "User",
}


def seed_storage(storage: Storage, with_test_user: bool = True) -> bool:
    """Load the sample data unless the store already has categories.

    Returns True when anything was inserted.
    """
    if storage.get_categories():
        logger.info("Storage already contains data, skipping seed")
        return False

    logger.info("Adding categories...")
    for category in CATEGORIES:
        storage.create_category(CategoryCreate(**category))

    logger.info("Adding products...")
    for product in PRODUCTS:
        storage.create_product(ProductCreate(**product))

    if with_test_user and storage.get_user_by_username(TEST_USER["username"]) is None:
        logger.info("Adding test user...")
        storage.create_user(UserCreate(**{**TEST_USER, "password": get_password_hash(TEST_USER["password"])}))

    logger.info("Seeding completed: %d categories, %d products", len(CATEGORIES), len(PRODUCTS))
    return True


if __name__ == "__main__":
    from config import get_settings
    from storage import create_storage

    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    seed_storage(create_storage(settings))
