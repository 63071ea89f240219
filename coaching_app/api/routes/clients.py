"""
Client management API endpoints.

Coaches register clients, update their profiles and memberships, log
progress and pull the dashboards (search, expiring memberships,
statistics). Snapshots can be exported and imported for backups.

The repository reports failures as None/False; this module turns those
into HTTP status codes.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, HTTPException, Query, Request, Response, status
from pydantic import Field

from ...core.clients.models import MembershipStatus, MembershipType, ProgressLog
from ...core.clients.validation import validate_client_data
from ..dependencies import (
    AccountServiceDep,
    AuthenticatedUser,
    ClientRepositoryDep,
    SettingsDep,
)
from ..schemas import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class ClientCreateRequest(CamelModel):
    """Flat client details, as entered on the intake form."""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    date_of_birth: str = ""
    emergency_contact: dict[str, str] = Field(default_factory=dict)
    address: dict[str, str] = Field(default_factory=dict)
    height: str = ""
    weight: str = ""
    fitness_level: Optional[str] = Field(None, description="beginner, intermediate or advanced")
    goals: list[str] = Field(default_factory=list)
    medical_conditions: list[str] = Field(default_factory=list)
    injuries: list[str] = Field(default_factory=list)
    preferences: dict[str, Any] = Field(default_factory=dict)
    membership_type: Optional[str] = Field(None, description="basic, premium or elite")
    start_date: Optional[str] = Field(None, description="Defaults to today")
    end_date: str = ""
    status: Optional[str] = Field(None, description="active, inactive or suspended")
    trainer: str = ""


class ClientCreatedResponse(CamelModel):
    """The new client plus any advisory validation warnings."""
    client: dict[str, Any] = Field(description="Full client record")
    warnings: list[str] = Field(default_factory=list, description="Advisory validation messages")


class ClientUpdateRequest(CamelModel):
    """Partial update; each section is merged key by key."""
    personal_info: Optional[dict[str, Any]] = None
    fitness_profile: Optional[dict[str, Any]] = None
    membership: Optional[dict[str, Any]] = None


class ClientListResponse(CamelModel):
    clients: list[dict[str, Any]] = Field(description="Client records in creation order")
    total: int = Field(description="Number of clients returned")


class StatisticsResponse(CamelModel):
    """Counts over the current client collection."""
    total_clients: int
    active_clients: int
    membership_types: dict[str, int]
    fitness_levels: dict[str, int]


class ImportResponse(CamelModel):
    imported: int = Field(description="Number of clients now in the repository")


# ---------------------------------------------------------------------------
# Collection Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=ClientCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create client",
    description="Register a client. Missing fields fall back to defaults; validation problems are returned as warnings.",
)
async def create_client(
    request: ClientCreateRequest,
    api_key: AuthenticatedUser,
    repository: ClientRepositoryDep,
) -> ClientCreatedResponse:
    data = request.model_dump(by_alias=True, exclude_none=True)
    validation = validate_client_data(data)
    client = repository.create(data)

    if not validation.is_valid:
        logger.info(
            "Client created with validation warnings",
            extra={"client_id": client.id, "warnings": validation.errors}
        )

    return ClientCreatedResponse(client=client.to_dict(), warnings=validation.errors)


@router.get(
    "",
    response_model=ClientListResponse,
    summary="List clients",
    description="List clients, optionally filtered by membership status, trainer and membership type",
)
async def list_clients(
    api_key: AuthenticatedUser,
    repository: ClientRepositoryDep,
    status_filter: Optional[MembershipStatus] = Query(None, alias="status"),
    trainer: Optional[str] = None,
    membership_type: Optional[MembershipType] = Query(None, alias="membershipType"),
) -> ClientListResponse:
    clients = repository.list_clients(
        status=status_filter,
        trainer=trainer,
        membership_type=membership_type,
    )
    return ClientListResponse(clients=[c.to_dict() for c in clients], total=len(clients))


@router.get(
    "/search",
    response_model=ClientListResponse,
    summary="Search clients",
    description="Case-insensitive match on first name, last name or email",
)
async def search_clients(
    api_key: AuthenticatedUser,
    repository: ClientRepositoryDep,
    q: str = "",
) -> ClientListResponse:
    clients = repository.search(q)
    return ClientListResponse(clients=[c.to_dict() for c in clients], total=len(clients))


@router.get(
    "/expiring",
    response_model=ClientListResponse,
    summary="Expiring memberships",
    description="Active clients whose membership ends within the look-ahead window",
)
async def expiring_memberships(
    api_key: AuthenticatedUser,
    repository: ClientRepositoryDep,
    settings: SettingsDep,
    days_ahead: Optional[int] = Query(None, alias="daysAhead", ge=0),
) -> ClientListResponse:
    window = settings.expiring_days_default if days_ahead is None else days_ahead
    clients = repository.expiring_memberships(window)
    return ClientListResponse(clients=[c.to_dict() for c in clients], total=len(clients))


@router.get(
    "/statistics",
    response_model=StatisticsResponse,
    summary="Client statistics",
)
async def client_statistics(
    api_key: AuthenticatedUser,
    repository: ClientRepositoryDep,
) -> StatisticsResponse:
    stats = repository.statistics()
    return StatisticsResponse(
        total_clients=stats.total_clients,
        active_clients=stats.active_clients,
        membership_types=stats.membership_types,
        fitness_levels=stats.fitness_levels,
    )


@router.get(
    "/export",
    summary="Export all clients",
    description="Indented JSON snapshot of every client, suitable for import",
    response_class=Response,
)
async def export_clients(
    api_key: AuthenticatedUser,
    repository: ClientRepositoryDep,
) -> Response:
    return Response(content=repository.export_all(), media_type="application/json")


@router.post(
    "/import",
    response_model=ImportResponse,
    summary="Import clients",
    description="Replace every client with the snapshot in the request body and re-link client accounts",
)
async def import_clients(
    request: Request,
    api_key: AuthenticatedUser,
    repository: ClientRepositoryDep,
    accounts: AccountServiceDep,
) -> ImportResponse:
    body = await request.body()
    try:
        snapshot = body.decode("utf-8")
    except UnicodeDecodeError:
        snapshot = ""

    if not accounts.import_clients(snapshot):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Snapshot is not a valid client export"
        )

    logger.info("Clients imported via API", extra={"client_count": len(repository)})
    return ImportResponse(imported=len(repository))


# ---------------------------------------------------------------------------
# Single Client Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/{client_id}",
    summary="Get client",
)
async def get_client(
    client_id: int,
    api_key: AuthenticatedUser,
    repository: ClientRepositoryDep,
) -> dict[str, Any]:
    client = repository.get_by_id(client_id)
    if client is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    return client.to_dict()


@router.patch(
    "/{client_id}",
    summary="Update client",
    description="Merge personalInfo, fitnessProfile and membership changes into the client",
)
async def update_client(
    client_id: int,
    request: ClientUpdateRequest,
    api_key: AuthenticatedUser,
    repository: ClientRepositoryDep,
    accounts: AccountServiceDep,
) -> dict[str, Any]:
    client = repository.update(client_id, request.model_dump(by_alias=True, exclude_none=True))
    if client is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

    accounts.sync_client(client_id)
    return client.to_dict()


@router.delete(
    "/{client_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete client",
    description="Delete a client together with their progress history",
)
async def delete_client(
    client_id: int,
    api_key: AuthenticatedUser,
    accounts: AccountServiceDep,
) -> Response:
    if not accounts.remove_client(client_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Progress Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/{client_id}/progress/{category}",
    status_code=status.HTTP_201_CREATED,
    summary="Add progress entry",
    description="Record a measurement, workout, assessment or note for a client",
)
async def add_progress(
    client_id: int,
    category: str,
    api_key: AuthenticatedUser,
    repository: ClientRepositoryDep,
    accounts: AccountServiceDep,
    data: Optional[dict[str, Any]] = Body(None),
) -> dict[str, Any]:
    if repository.get_by_id(client_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

    if not accounts.record_progress(client_id, category, data or {}):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Category must be one of: measurement, workout, assessment, note"
        )

    entries = repository.get_progress(client_id, category)
    return entries[-1].to_dict()


@router.get(
    "/{client_id}/progress",
    summary="Get progress",
    description="All progress sequences, or a single one with ?category=",
)
async def get_progress(
    client_id: int,
    api_key: AuthenticatedUser,
    repository: ClientRepositoryDep,
    category: str = "all",
) -> Any:
    progress = repository.get_progress(client_id, category)
    if progress is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

    if isinstance(progress, ProgressLog):
        return progress.to_dict()
    return [entry.to_dict() for entry in progress]
