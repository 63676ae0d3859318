"""
Pytest configuration and fixtures for testing
"""
import base64
import json
from datetime import datetime, timedelta

import httpx
import pytest
from mongomock_motor import AsyncMongoMockClient
from pymongo.errors import ServerSelectionTimeoutError

from sitfit.app import create_app
from sitfit.security import Identity, get_current_identity
from sitfit.services.credits import CreditLedger
from sitfit.services.miragic import MiragicClient
from sitfit.services.payments import PaymentService
from sitfit.services.razorpay import RazorpayClient
from sitfit.services.tryon import TryOnGate, TryOnResultRepository
from sitfit.services.weather import WeatherClient

RAZORPAY_KEY_ID = "rzp_test_key"
RAZORPAY_SECRET = "test_secret"
USER_ID = "6650f1c2a1b2c3d4e5f60718"


def image_data_url(payload: bytes = b"\x89PNG\r\n\x1a\nfake-image", kind: str = "png") -> str:
    return f"data:image/{kind};base64,{base64.b64encode(payload).decode()}"


class FakeClock:
    """Controllable replacement for the ledger's clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class ScriptedTransport:
    """Answers HTTP requests from a queue of canned responses and records them."""

    def __init__(self):
        self.responses = []
        self.requests = []

    def queue(self, status_code: int, payload=None) -> None:
        self.responses.append(httpx.Response(status_code, json=payload))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        return self.responses.pop(0)


class UnreachableCollection:
    """Collection whose server can never be selected."""

    async def find_one(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("No servers available")

    async def update_one(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("No servers available")


@pytest.fixture
def clock():
    # April has 30 days, so a monthly plan bought now ends 30 days later
    return FakeClock(datetime(2025, 4, 10, 12, 0, 0))


@pytest.fixture
def database():
    return AsyncMongoMockClient()["sitfit_test"]


@pytest.fixture
def users(database):
    return database["users"]


@pytest.fixture
def ledger(users, clock):
    return CreditLedger(users, clock=clock)


@pytest.fixture
def razorpay_requests():
    return []


@pytest.fixture
def razorpay_orders():
    """Orders known to the fake provider, by id."""
    return {}


@pytest.fixture
def razorpay(razorpay_requests, razorpay_orders):
    def handler(request: httpx.Request) -> httpx.Response:
        razorpay_requests.append(request)
        if request.method == "GET":
            order_id = request.url.path.rsplit("/", 1)[-1]
            if order_id not in razorpay_orders:
                return httpx.Response(
                    400, json={"error": {"code": "BAD_REQUEST_ERROR", "description": "The id provided does not exist"}}
                )
            return httpx.Response(200, json=razorpay_orders[order_id])

        body = json.loads(request.content)
        order_id = "order_TEST123" if not razorpay_orders else f"order_TEST{123 + len(razorpay_orders)}"
        razorpay_orders[order_id] = {
            "id": order_id,
            "entity": "order",
            "amount": body["amount"],
            "currency": body["currency"],
            "receipt": body["receipt"],
            "status": "created",
            # Razorpay sends an empty list for an order without notes
            "notes": body["notes"] or [],
        }
        return httpx.Response(200, json=razorpay_orders[order_id])

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RazorpayClient(RAZORPAY_KEY_ID, RAZORPAY_SECRET, client=client)


@pytest.fixture
def payment_service(ledger, razorpay):
    return PaymentService(ledger, razorpay)


@pytest.fixture
def miragic_transport():
    return ScriptedTransport()


@pytest.fixture
def miragic(miragic_transport):
    client = httpx.AsyncClient(transport=httpx.MockTransport(miragic_transport))
    return MiragicClient("test-miragic-key", poll_interval=0, max_poll_attempts=3, client=client)


@pytest.fixture
def tryon_gate(ledger, miragic, database, clock):
    return TryOnGate(ledger, miragic, TryOnResultRepository(database["tryon_results"], clock=clock))


@pytest.fixture
def weather_transport():
    return ScriptedTransport()


@pytest.fixture
def weather(weather_transport):
    client = httpx.AsyncClient(transport=httpx.MockTransport(weather_transport))
    return WeatherClient("test-weather-key", client=client)


@pytest.fixture
def weather_transport():
    return ScriptedTransport()


@pytest.fixture
def weather(weather_transport):
    client = httpx.AsyncClient(transport=httpx.MockTransport(weather_transport))
    return WeatherClient("test-weather-key", client=client)


@pytest.fixture
def identity():
    return Identity(user_id=USER_ID, email="shopper@example.com")


@pytest.fixture
def app(ledger, payment_service, tryon_gate, weather, identity):
    application = create_app(use_lifespan=False)
    application.state.ledger = ledger
    application.state.payments = payment_service
    application.state.tryon = tryon_gate
    application.state.weather = weather
    application.dependency_overrides[get_current_identity] = lambda: identity
    return application


@pytest.fixture
async def client(app):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client
