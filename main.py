import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import Field
from starlette.exceptions import HTTPException as StarletteHTTPException

import auth
from config import Settings, get_settings
from dependencies import get_storage
from schemas import (
    CamelModel,
    Category,
    Order,
    OrderCreate,
    OrderDetail,
    OrderLine,
    Product,
    Review,
    ReviewCreate,
    User,
    UserProfile,
    UserUpdate,
)
from seed import seed_storage
from storage import Storage, create_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# Request bodies
class OrderRequest(CamelModel):
    total: float
    items: Optional[List[OrderLine]] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    payment_method: Optional[str] = None


class ReviewRequest(CamelModel):
    product_id: Optional[int] = None
    rating: Optional[float] = Field(None, ge=1, le=5)
    comment: Optional[str] = None


# Catalog
@router.get("/categories", response_model=List[Category])
def list_categories(storage: Storage = Depends(get_storage)):
    return storage.get_categories()


@router.get("/categories/{category_id}", response_model=Category)
def get_category(category_id: int, storage: Storage = Depends(get_storage)):
    category = storage.get_category_by_id(category_id)
    if not category:
        raise HTTPException(404, "Category not found")
    return category


@router.get("/products", response_model=List[Product])
def list_products(storage: Storage = Depends(get_storage)):
    return storage.get_products()


# Fixed product paths are registered before /products/{product_id} so the
# integer route never sees "featured", "new", ...
@router.get("/products/featured", response_model=List[Product])
def featured_products(storage: Storage = Depends(get_storage)):
    return storage.get_featured_products()


@router.get("/products/new", response_model=List[Product])
def new_products(storage: Storage = Depends(get_storage)):
    return storage.get_new_products()


@router.get("/products/bestseller", response_model=List[Product])
def bestseller_products(storage: Storage = Depends(get_storage)):
    return storage.get_bestseller_products()


@router.get("/products/sale", response_model=List[Product])
def sale_products(storage: Storage = Depends(get_storage)):
    return storage.get_sale_products()


@router.get("/products/category/{category_id}", response_model=List[Product])
def products_by_category(category_id: int, storage: Storage = Depends(get_storage)):
    return storage.get_products_by_category(category_id)


@router.get("/products/{product_id}", response_model=Product)
def get_product(product_id: int, storage: Storage = Depends(get_storage)):
    product = storage.get_product_by_id(product_id)
    if not product:
        raise HTTPException(404, "Product not found")
    return product


@router.get("/search", response_model=List[Product])
def search_products(q: Optional[str] = None, storage: Storage = Depends(get_storage)):
    if not q or not q.strip():
        raise HTTPException(400, "Search query is required")
    return storage.search_products(q)


# Orders
@router.get("/orders", response_model=List[Order])
def list_orders(user: User = Depends(auth.require_user), storage: Storage = Depends(get_storage)):
    return storage.get_orders(user.id)


@router.get("/orders/{order_id}", response_model=OrderDetail)
def get_order(order_id: int, user: User = Depends(auth.require_user), storage: Storage = Depends(get_storage)):
    order = storage.get_order_by_id(order_id)
    if not order:
        raise HTTPException(404, "Order not found")
    if order.user_id != user.id:
        raise HTTPException(403, "Forbidden")
    items = storage.get_order_items(order_id)
    return OrderDetail(**order.model_dump(), items=items)


@router.post("/orders", response_model=OrderDetail, status_code=201)
def create_order(
    payload: OrderRequest,
    user: User = Depends(auth.require_user),
    storage: Storage = Depends(get_storage),
):
    if not payload.items:
        raise HTTPException(400, "Order must contain at least one item")
    order = OrderCreate(
        user_id=user.id,
        total=payload.total,
        status="pending",
        address=payload.address,
        city=payload.city,
        state=payload.state,
        zip_code=payload.zip_code,
        payment_method=payload.payment_method,
    )
    detail = storage.place_order(order, payload.items)
    logger.info("Order %d placed by user %d with %d items", detail.id, user.id, len(detail.items))
    return detail


# Reviews
@router.get("/products/{product_id}/reviews", response_model=List[Review])
def list_reviews(product_id: int, storage: Storage = Depends(get_storage)):
    return storage.get_reviews(product_id)


@router.post("/reviews", response_model=Review, status_code=201)
def add_review(
    payload: ReviewRequest,
    user: User = Depends(auth.require_user),
    storage: Storage = Depends(get_storage),
):
    if not payload.product_id or not payload.rating:
        raise HTTPException(400, "Product ID and rating are required")
    return storage.create_review(
        ReviewCreate(
            user_id=user.id,
            product_id=payload.product_id,
            rating=payload.rating,
            comment=payload.comment,
        )
    )


# Profile
@router.get("/profile", response_model=UserProfile)
def get_profile(user: User = Depends(auth.require_user)):
    return user


@router.put("/profile", response_model=UserProfile)
def update_profile(
    payload: UserUpdate,
    user: User = Depends(auth.require_user),
    storage: Storage = Depends(get_storage),
):
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        return user
    updated = storage.update_user(user.id, changes)
    if not updated:
        raise HTTPException(404, "User not found")
    return updated


# Errors
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


async def validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        {"error": f"{location}: {message}" if location else message, "details": jsonable_encoder(errors)},
        status_code=400,
    )


async def unhandled_error(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"error": str(exc)}, status_code=500)


def create_app(settings: Optional[Settings] = None, storage: Optional[Storage] = None) -> FastAPI:
    """Build the API around one storage instance.

    When no storage is passed one is created from ``settings`` and, if
    ``settings.seed_data`` is set, filled with the sample catalog.
    """
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)
    if storage is None:
        storage = create_storage(settings)
        if settings.seed_data:
            seed_storage(storage)

    app = FastAPI(title="HomeStyle Store API")
    app.state.settings = settings
    app.state.storage = storage

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, http_error)
    app.add_exception_handler(RequestValidationError, validation_error)
    app.add_exception_handler(Exception, unhandled_error)

    @app.get("/")
    def read_root():
        return {"message": "HomeStyle store backend is running"}

    @app.get("/test")
    def test_storage(storage: Storage = Depends(get_storage)):
        response = {
            "backend": "✅ Running",
            "storage": storage.name,
            "database": "❌ Not Available",
            "categories": None,
            "products": None,
        }
        try:
            response["categories"] = len(storage.get_categories())
            response["products"] = len(storage.get_products())
            response["database"] = "✅ Connected & Working"
        except Exception as e:
            response["database"] = f"⚠️ Connected but Error: {str(e)[:50]}"
        return response

    app.include_router(auth.router)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
