"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sitfit.auth import auth_backend, fastapi_users
from sitfit.config import Settings, settings
from sitfit.db import create_client, init_db
from sitfit.routers import credits, health, payments, tryon, weather
from sitfit.schemas.users import UserCreate, UserRead, UserUpdate
from sitfit.services.credits import CreditLedger
from sitfit.services.miragic import MiragicClient
from sitfit.services.payments import PaymentService
from sitfit.services.razorpay import RazorpayClient
from sitfit.services.tryon import TryOnGate, TryOnResultRepository
from sitfit.services.weather import WeatherClient
from sitfit.utils.middleware import setup_middleware

logger = logging.getLogger(__name__)


def build_services(app: FastAPI, database, config: Settings) -> None:
    """Wire the ledger, payment workflow, try-on gate and weather client onto ``app.state``."""
    ledger = CreditLedger(
        database[config.database.users_collection],
        free_allotment=config.credits.free_allotment,
        reset_period_days=config.credits.reset_period_days,
    )
    razorpay = RazorpayClient(
        key_id=config.payments.key_id,
        key_secret=config.payments.key_secret.get_secret_value(),
        base_url=config.payments.base_url,
        timeout=config.payments.request_timeout,
    )
    miragic = MiragicClient(
        api_key=config.tryon.api_key.get_secret_value(),
        base_url=config.tryon.base_url,
        request_timeout=config.tryon.request_timeout,
        poll_timeout=config.tryon.poll_timeout,
        poll_interval=config.tryon.poll_interval,
        max_poll_attempts=config.tryon.max_poll_attempts,
        max_image_bytes=config.tryon.max_image_bytes,
    )

    app.state.ledger = ledger
    app.state.payments = PaymentService(
        ledger,
        razorpay,
        currency=config.payments.currency,
        plan_prices=config.payments.plan_prices,
    )
    app.state.tryon = TryOnGate(
        ledger,
        miragic,
        TryOnResultRepository(database[config.database.tryon_results_collection]),
    )
    app.state.weather = WeatherClient(
        api_key=config.weather.api_key.get_secret_value(),
        base_url=config.weather.base_url,
        timeout=config.weather.request_timeout,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application")
    config: Settings = app.state.settings

    client = create_client(config.database)
    database = await init_db(client, config.database)
    app.state.mongo_client = client
    build_services(app, database, config)

    yield

    logger.info("Shutting down application")
    await app.state.payments.provider.close()
    await app.state.tryon.provider.close()
    await app.state.weather.close()
    client.close()


def create_app(config: Optional[Settings] = None, use_lifespan: bool = True) -> FastAPI:
    """Create the application.

    Args:
        config: Settings to use, defaults to the environment
        use_lifespan: Whether to connect to the database on startup; tests
            disable it and populate ``app.state`` themselves
    """
    config = config or settings
    # Interactive docs are only served outside production
    show_docs = config.api.environment != "production"

    app = FastAPI(
        title="SitFit",
        version="0.1.0",
        lifespan=lifespan if use_lifespan else None,
        docs_url="/docs" if show_docs else None,
        redoc_url="/redoc" if show_docs else None,
        openapi_url="/openapi.json" if show_docs else None,
    )
    app.state.settings = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_middleware(app, request_logging=config.logging.enable_request_logging)

    app.include_router(health.router)
    app.include_router(credits.router)
    app.include_router(payments.router)
    app.include_router(tryon.router)
    app.include_router(weather.router)

    # Include FastAPI Users routers
    ## /login /logout
    app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"])
    ## /register
    app.include_router(
        fastapi_users.get_register_router(UserRead, UserCreate),
        prefix="/auth",
        tags=["auth"],
    )
    app.include_router(
        fastapi_users.get_users_router(UserRead, UserUpdate),
        prefix="/users",
        tags=["users"],
    )

    return app
