import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["AWS_S3_BUCKET"] = "test-bucket"

import itertools

import pytest
from fastapi.testclient import TestClient

from database import Base, engine
from main import app
from storage import StorageError, build_key, get_storage, get_subscriber


class FakeStorage:
    bucket = "test-bucket"
    region = "us-east-1"

    def __init__(self):
        self.objects = {}
        self.deleted = []
        self.fail_delete = False

    def public_url(self, key):
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def upload(self, data, content_type, folder="products", filename="upload"):
        key = build_key(folder, filename)
        self.objects[key] = data
        return {"key": key, "url": self.public_url(key), "size": len(data), "mimetype": content_type}

    def delete(self, key):
        if self.fail_delete:
            raise StorageError(f"Delete of {key} failed")
        self.objects.pop(key, None)
        self.deleted.append(key)

    def presign(self, key, operation="put", expires_in=3600, content_type=None):
        return f"{self.public_url(key)}?X-Amz-Expires={expires_in}&op={operation}"


class FakeSubscriber:
    def __init__(self):
        self.emails = []

    def subscribe(self, email):
        self.emails.append(email)


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def subscriber():
    return FakeSubscriber()


@pytest.fixture
def client(storage, subscriber):
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_subscriber] = lambda: subscriber
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


_emails = itertools.count(1)


def register(client, is_seller=False, **fields):
    body = {
        "email": fields.pop("email", f"user{next(_emails)}@example.com"),
        "password": fields.pop("password", "secret123"),
        "first_name": "Test",
        "last_name": "User",
        "is_seller": is_seller,
    }
    body.update(fields)
    response = client.post("/api/users/register", json=body)
    assert response.status_code == 201, response.text
    data = response.json()
    return {"Authorization": f"Bearer {data['token']}"}, data["user"]


def create_product(client, headers, **fields):
    body = {"name": "Widget", "description": "A useful widget", "category": "Tools", "price": 29.99, "stock": 10}
    body.update(fields)
    response = client.post("/api/products", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["product"]


@pytest.fixture
def buyer(client):
    return register(client, first_name="Bea", last_name="Buyer")


@pytest.fixture
def seller(client):
    return register(client, is_seller=True, first_name="Sam", last_name="Seller")


@pytest.fixture
def product(client, seller):
    headers, _ = seller
    return create_product(client, headers)
