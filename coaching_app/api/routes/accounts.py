"""
Client account endpoints.

Clients get their own sign-in so they can see their progress and plans.
Registration creates the identity account and the client record together;
login resolves the account back to the client record.
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, status
from pydantic import Field

from ...core.clients.accounts import (
    AuthenticationError,
    DuplicateAccountError,
    IdentityError,
    RegistrationError,
)
from ..dependencies import AccountServiceDep, AuthenticatedUser
from ..schemas import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class RegisterRequest(CamelModel):
    """Sign-up form for a new client."""
    email: str = Field(description="Sign-in email, also the client's contact email")
    password: str = Field(description="Sign-in password")
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    goals: list[str] = Field(default_factory=list)
    trainer: str = ""


class LoginRequest(CamelModel):
    email: str
    password: str


class AccountResponse(CamelModel):
    """The signed-in (or newly registered) client."""
    uid: str = Field(description="Identity provider user id")
    client: dict[str, Any] = Field(description="Full client record")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/register",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register client account",
)
async def register(
    request: RegisterRequest,
    api_key: AuthenticatedUser,
    accounts: AccountServiceDep,
) -> AccountResponse:
    profile = request.model_dump(by_alias=True, exclude={"email", "password"})

    try:
        registered = accounts.register(request.email, request.password, profile)
    except RegistrationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.errors)
    except DuplicateAccountError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except IdentityError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return AccountResponse(uid=registered.uid, client=registered.client.to_dict())


@router.post(
    "/login",
    response_model=AccountResponse,
    summary="Sign in as a client",
)
async def login(
    request: LoginRequest,
    api_key: AuthenticatedUser,
    accounts: AccountServiceDep,
) -> AccountResponse:
    try:
        client = accounts.sign_in(request.email, request.password)
    except AuthenticationError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    if client is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No client record for this account"
        )

    uid = accounts.client_key(client.id) or ""
    logger.info("Client signed in", extra={"client_id": client.id})
    return AccountResponse(uid=uid, client=client.to_dict())
