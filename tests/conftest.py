"""Pytest fixtures for the storefront API tests."""

import httpx
import mongomock
import pytest
from mongoengine import disconnect

from app import create_app
from Models.cartModel import Cart
from Models.orderModel import Order
from Models.productModel import Product
from Models.userModel import User, Role
from Utils.config import Config
from Utils.jwt_utils import create_access_token
from Utils.payment_gateway import PortOneVerifier

TEST_SETTINGS = {
    "MONGODB_URI": "mongodb://localhost:27017/shop-test",
    "JWT_SECRET": "test-secret-that-is-long-enough-for-hs256",
    "PORTONE_API_KEY": "imp-key",
    "PORTONE_API_SECRET": "imp-secret",
    "RATELIMIT_ENABLED": False,
}


class FakeGateway:
    """In-memory stand-in for the PortOne REST API, served through httpx.MockTransport."""

    def __init__(self):
        self.payments = {}
        self.requests = []
        self.token = "gateway-token"

    def add_payment(self, imp_uid, merchant_uid, amount, status="paid", pay_method="card", paid_at=1700000000):
        self.payments[imp_uid] = {
            "imp_uid": imp_uid,
            "merchant_uid": merchant_uid,
            "amount": amount,
            "status": status,
            "pay_method": pay_method,
            "paid_at": paid_at,
        }

    @property
    def lookups(self):
        return [r for r in self.requests if r.url.path.startswith("/payments/")]

    def handler(self, request):
        self.requests.append(request)
        if request.url.path == "/users/getToken":
            return httpx.Response(200, json={"code": 0, "response": {"access_token": self.token}})

        if request.url.path.startswith("/payments/"):
            if request.headers.get("Authorization") != self.token:
                return httpx.Response(401, json={"code": -1, "message": "Unauthorized"})
            payment = self.payments.get(request.url.path.rsplit("/", 1)[-1])
            if payment is None:
                return httpx.Response(404, json={"code": 1, "message": "Not found", "response": None})
            return httpx.Response(200, json={"code": 0, "response": payment})

        return httpx.Response(404)

    def client(self):
        return httpx.Client(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def config(tmp_path):
    settings = dict(TEST_SETTINGS, LOG_DIR=str(tmp_path / "logs"))
    return Config.from_mapping(settings)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def app(config, gateway):
    verifier = PortOneVerifier.from_config(config, client=gateway.client())
    application = create_app(config, payment_verifier=verifier, mongo_client_class=mongomock.MongoClient)
    application.config["TESTING"] = True

    yield application

    application.extensions["cart_reconciler"].shutdown()
    for document in (Order, Cart, Product, User):
        document.drop_collection()
    disconnect(alias="default")


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def reconciler(app):
    return app.extensions["cart_reconciler"]


@pytest.fixture
def make_user():
    def _make(email="buyer@example.com", name="Buyer", password="secret123", role=Role.CUSTOMER):
        user = User(email=email, name=name, password=password, role=role)
        user.save()
        return user
    return _make


@pytest.fixture
def customer(app, make_user):
    return make_user()


@pytest.fixture
def admin(app, make_user):
    return make_user(email="admin@example.com", name="Admin", role=Role.ADMIN)


@pytest.fixture
def auth_headers(config):
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user, config)}"}
    return _headers


@pytest.fixture
def make_product(app):
    def _make(sku="TEE-001", name="Basic Tee", price=10000, category="top"):
        product = Product(sku=sku, name=name, price=price, category=category, image="https://img.example/tee.png")
        product.save()
        return product
    return _make


@pytest.fixture
def product(make_product):
    return make_product()
