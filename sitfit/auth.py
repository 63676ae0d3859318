from logging import getLogger
from typing import Optional

from beanie import PydanticObjectId
from fastapi import Depends, Request
from fastapi_users import BaseUserManager, FastAPIUsers
from fastapi_users.authentication import AuthenticationBackend, BearerTransport, JWTStrategy
from fastapi_users_db_beanie import ObjectIDIDMixin

from sitfit.config import settings
from sitfit.db import get_user_db
from sitfit.schemas.users import Account

logger = getLogger(__name__)

AUTH_SECRET = settings.auth.secret_key.get_secret_value()

if not AUTH_SECRET:
    logger.warning("AUTH_SECRET_KEY is not set. Issued tokens will not be secure.")


class UserManager(ObjectIDIDMixin, BaseUserManager[Account, PydanticObjectId]):
    reset_password_token_secret = AUTH_SECRET
    verification_token_secret = AUTH_SECRET

    async def on_after_register(self, user: Account, request: Optional[Request] = None):
        logger.info(f"User {user.id} has registered.")

    async def on_after_forgot_password(self, user: Account, token: str, request: Optional[Request] = None):
        logger.info(f"User {user.id} has forgot their password.")

    async def on_after_request_verify(self, user: Account, token: str, request: Optional[Request] = None):
        logger.info(f"Verification requested for user {user.id}.")


async def get_user_manager(user_db=Depends(get_user_db)):
    yield UserManager(user_db)


bearer_transport = BearerTransport(tokenUrl="auth/jwt/login")


def get_jwt_strategy() -> JWTStrategy:
    return JWTStrategy(secret=AUTH_SECRET, lifetime_seconds=settings.auth.token_lifetime_seconds)


auth_backend = AuthenticationBackend(
    name="jwt",
    transport=bearer_transport,
    get_strategy=get_jwt_strategy,
)

fastapi_users = FastAPIUsers[Account, PydanticObjectId](
    get_user_manager,
    [auth_backend],
)

# Define dependencies for route protection
current_active_user = fastapi_users.current_user(active=True)
