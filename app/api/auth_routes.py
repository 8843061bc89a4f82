"""Pulseboard — Account Registration Routes.

Credential checks and sessions belong to the auth provider; these routes
only create the account record and read it back.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field

from app.api.deps import get_current_user_id, get_user_service, to_http_error
from app.core.errors import DuplicateEntityError, PulseboardError
from app.core.logging import get_logger
from app.models.entity_models import CamelModel, User
from app.services.user_service import UserService

logger = get_logger("api.auth")

router = APIRouter(prefix="/api/auth", tags=["Auth"])

MIN_PASSWORD_LENGTH = 8


class RegisterRequest(CamelModel):
    email: str
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    name: Optional[str] = None


class RegisterResponse(CamelModel):
    user: User
    message: str = "User created successfully"


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(body: RegisterRequest, users: UserService = Depends(get_user_service)):
    """Create an account. Returns the user without its password."""
    try:
        if await users.get_user_by_email(body.email):
            raise HTTPException(status_code=409, detail="User with this email already exists")
        user = await users.create_user(
            {
                "name": body.name or body.email.split("@")[0],
                "email": body.email,
                "password": body.password,
            }
        )
    except DuplicateEntityError as e:
        # lost a race with a concurrent registration
        raise HTTPException(status_code=409, detail="User with this email already exists") from e
    except PulseboardError as e:
        raise to_http_error(e) from e
    return RegisterResponse(user=user)


@router.get("/me", response_model=User)
async def me(
    user_id: str = Depends(get_current_user_id),
    users: UserService = Depends(get_user_service),
):
    try:
        user = await users.get_user_by_id(user_id)
    except PulseboardError as e:
        raise to_http_error(e) from e
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user
