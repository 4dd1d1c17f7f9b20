import pytest
from fastapi.testclient import TestClient

from auth import get_password_hash
from config import Settings
from database import make_engine
from main import create_app
from schemas import CategoryCreate, ProductCreate, UserCreate
from seed import seed_storage
from storage import DatabaseStorage, MemStorage

PASSWORD = "s3cret-pass"


def make_storage(kind):
    if kind == "memory":
        return MemStorage()
    return DatabaseStorage(make_engine("sqlite://"))


@pytest.fixture(params=["memory", "database"])
def any_storage(request):
    return make_storage(request.param)


@pytest.fixture
def storage(any_storage):
    return any_storage


@pytest.fixture
def seeded_storage(storage):
    seed_storage(storage)
    return storage


@pytest.fixture
def settings():
    return Settings(seed_data=False, secret_key="test-secret")


@pytest.fixture
def app(settings, seeded_storage):
    return create_app(settings=settings, storage=seeded_storage)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def add_user(storage, username, email=None, **profile):
    return storage.create_user(
        UserCreate(
            username=username,
            email=email or f"{username}@homestyle.in",
            password=get_password_hash(PASSWORD),
            **profile,
        )
    )


def login(client, username, password=PASSWORD):
    response = client.post("/api/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response


@pytest.fixture
def alice(seeded_storage):
    return add_user(seeded_storage, "alice", first_name="Alice", last_name="Rao", city="Erode")


@pytest.fixture
def bob(seeded_storage):
    return add_user(seeded_storage, "bob")


@pytest.fixture
def alice_client(app, alice):
    with TestClient(app) as c:
        login(c, "alice")
        yield c


@pytest.fixture
def bob_client(app, bob):
    with TestClient(app) as c:
        login(c, "bob")
        yield c


def sample_product(**overrides):
    data = {
        "name": "Sample Bed",
        "description": "Solid teak frame",
        "price": 1000,
        "sale_price": 1400,
        "image": "bed.jpg",
        "category_id": 1,
    }
    data.update(overrides)
    return ProductCreate(**data)


def sample_category(name="Furniture"):
    return CategoryCreate(name=name, description=f"{name} for your home")
