from fastapi import Depends
from pydantic import BaseModel

from sitfit.auth import current_active_user
from sitfit.schemas.users import Account


class Identity(BaseModel):
    """The authenticated caller. ``user_id`` is opaque to the rest of the app."""

    user_id: str
    email: str


async def get_current_identity(user: Account = Depends(current_active_user)) -> Identity:
    """Resolves the bearer token into the caller's identity.

    Invalid or expired tokens are rejected with 401 by fastapi-users before this runs.
    """
    return Identity(user_id=str(user.id), email=user.email)
