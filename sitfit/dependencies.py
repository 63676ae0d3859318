"""FastAPI dependencies that hand out the services built at startup."""

from fastapi import Request

from sitfit.services.credits import CreditLedger
from sitfit.services.payments import PaymentService
from sitfit.services.tryon import TryOnGate
from sitfit.services.weather import WeatherClient


def get_ledger(request: Request) -> CreditLedger:
    return request.app.state.ledger


def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.payments


def get_tryon_gate(request: Request) -> TryOnGate:
    return request.app.state.tryon


def get_weather_client(request: Request) -> WeatherClient:
    return request.app.state.weather
