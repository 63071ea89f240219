"""
FastAPI dependency injection.

Dependencies provide instances of services and configuration to route
handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden for testing
- Configuration is centralized

The repository and the account service are built once by the application
factory and kept on ``app.state``; the functions here just hand them out.
There are no module-level instances.
"""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings
from ..core.clients.accounts import ClientAccountService
from ..core.clients.repository import ClientRepository

logger = logging.getLogger(__name__)

# API Key security scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_api_key(
    request: Request,
    api_key: str = Security(api_key_header),
) -> str:
    """
    Validate API key from request header.

    Coaches' tools call the API with a shared key; client sign-in goes
    through the accounts endpoints instead.

    Raises 403 if key is invalid or missing.
    """
    settings = get_app_settings(request)

    if not api_key:
        logger.warning("Request missing API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="API key required. Provide X-API-Key header.",
        )

    if api_key not in settings.api_keys_list:
        logger.warning(
            "Invalid API key attempt",
            extra={"key_prefix": api_key[:8] if api_key else ""}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_app_settings(request: Request) -> Settings:
    """Provide the settings the application was created with."""
    return request.app.state.settings


def get_client_repository(request: Request) -> ClientRepository:
    """Provide the application's client repository."""
    return request.app.state.client_repository


def get_account_service(request: Request) -> ClientAccountService:
    """Provide the account service bound to the same repository."""
    return request.app.state.account_service


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
AuthenticatedUser = Annotated[str, Depends(verify_api_key)]
ClientRepositoryDep = Annotated[ClientRepository, Depends(get_client_repository)]
AccountServiceDep = Annotated[ClientAccountService, Depends(get_account_service)]
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
