"""
Workout plan endpoints.

Coaches assign plans to clients; clients (and their coaches) list them.
Plans live in the document store, keyed to the client by ``clientId``.
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, status
from pydantic import Field

from ...core.clients.models import WorkoutPlan
from ..dependencies import AccountServiceDep, AuthenticatedUser
from ..schemas import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter()


class WorkoutPlanRequest(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    exercises: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Exercises, e.g. {\"name\": \"Squat\", \"sets\": 5, \"reps\": 5}",
    )
    notes: str = ""


class WorkoutPlanResponse(CamelModel):
    id: str
    client_id: int
    title: str
    exercises: list[dict[str, Any]]
    notes: str
    assigned_at: str = Field(description="When the plan was assigned (ISO format)")

    @classmethod
    def from_plan(cls, plan: WorkoutPlan) -> "WorkoutPlanResponse":
        return cls(
            id=plan.id,
            client_id=plan.client_id,
            title=plan.title,
            exercises=plan.exercises,
            notes=plan.notes,
            assigned_at=plan.assigned_at.isoformat(),
        )


@router.post(
    "/{client_id}/plans",
    response_model=WorkoutPlanResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Assign workout plan",
)
async def assign_plan(
    client_id: int,
    request: WorkoutPlanRequest,
    api_key: AuthenticatedUser,
    accounts: AccountServiceDep,
) -> WorkoutPlanResponse:
    plan = accounts.assign_workout_plan(
        client_id,
        title=request.title,
        exercises=request.exercises,
        notes=request.notes,
    )
    if plan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    return WorkoutPlanResponse.from_plan(plan)


@router.get(
    "/{client_id}/plans",
    response_model=list[WorkoutPlanResponse],
    summary="List workout plans",
)
async def list_plans(
    client_id: int,
    api_key: AuthenticatedUser,
    accounts: AccountServiceDep,
) -> list[WorkoutPlanResponse]:
    return [WorkoutPlanResponse.from_plan(plan) for plan in accounts.workout_plans(client_id)]
