from datetime import datetime

from beanie import Document, PydanticObjectId
from fastapi_users import schemas
from fastapi_users_db_beanie import BeanieBaseUser
from pydantic import Field

from sitfit.utils.utils import utcnow


class Account(BeanieBaseUser, Document):
    """Identity record managed by fastapi-users. Its id is the ledger's user id."""

    display_name: str | None = None
    created_at: datetime = Field(default_factory=utcnow)

    class Settings(BeanieBaseUser.Settings):
        name = "accounts"


class UserRead(schemas.BaseUser[PydanticObjectId]):
    display_name: str | None = None


class UserCreate(schemas.BaseUserCreate):
    display_name: str | None = Field(default=None, min_length=2, max_length=50)


class UserUpdate(schemas.BaseUserUpdate):
    display_name: str | None = Field(default=None, min_length=2, max_length=50)
