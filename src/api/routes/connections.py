"""
Coach/athlete connection endpoints.

A connection starts as a pending request sent by user code and becomes
active when the other side approves it. The rules about who may connect
and who may answer live in core.connections; these handlers load rows,
apply the rules, and write the result.
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from ...core.connections.codes import format_user_code, validate_user_code_format
from ...core.connections.models import (
    ConnectionAction,
    ConnectionPermissionError,
    ConnectionStateError,
    ConnectionStatus,
    InvalidConnectionError,
    resolve_pair,
    respond,
    response_message,
)
from ...infrastructure.supabase.client import BackendError, RecordNotFoundError
from ...infrastructure.supabase.schemas import BackendResponseError, ConnectionRow, ProfileRow
from ..dependencies import ConnectionRepositoryDep, CurrentUser, ProfileRepositoryDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class CreateConnectionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_code: str = Field(min_length=1, alias="userCode", description="Code of the user to connect with")
    message: Optional[str] = Field(None, max_length=500)


class RespondRequest(BaseModel):
    action: ConnectionAction


class PartySummary(BaseModel):
    id: str
    first_name: str = ""
    last_name: Optional[str] = None
    role: Optional[str] = None
    user_code: Optional[str] = None


class ConnectionItem(BaseModel):
    id: str
    status: str
    coach: PartySummary
    athlete: PartySummary
    initiated_by: Optional[str] = None
    request_message: Optional[str] = None
    created_at: Optional[str] = None
    responded_at: Optional[str] = None


class ConnectionListResponse(BaseModel):
    connections: list[ConnectionItem]


class ConnectionResponse(BaseModel):
    success: bool = True
    message: str
    connection: ConnectionItem


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=ConnectionListResponse,
    summary="List my connections",
)
async def list_connections(
    user: CurrentUser,
    connections: ConnectionRepositoryDep,
    profiles: ProfileRepositoryDep,
    status_filter: Optional[ConnectionStatus] = Query(None, alias="status"),
    role: Optional[Literal["coach", "athlete"]] = Query(
        None, description="Only connections where I am on this side"
    ),
) -> ConnectionListResponse:
    try:
        rows = connections.list_for_user(user.id, role=role, status=status_filter)
        people = profiles.find_many(
            [row.coach_id for row in rows] + [row.athlete_id for row in rows]
        )
    except (BackendError, BackendResponseError) as e:
        logger.error(
            "Error fetching connections",
            extra={"user_id": user.id, "error": str(e)}
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch connections",
        )

    return ConnectionListResponse(connections=[_to_item(row, people) for row in rows])


@router.post(
    "",
    response_model=ConnectionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a connection request",
)
async def create_connection(
    request: CreateConnectionRequest,
    user: CurrentUser,
    connections: ConnectionRepositoryDep,
    profiles: ProfileRepositoryDep,
) -> ConnectionResponse:
    """
    Request a connection with the owner of a user code.

    Coaches connect with athletes and athletes with coaches. A pair may
    have at most one pending or active connection.
    """
    if not validate_user_code_format(request.user_code):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid code format. Expected format: ATH-XXXX, COA-XXXX, or PAR-XXXX",
        )

    try:
        requester = profiles.get(user.id)
        target = profiles.find_by_user_code(format_user_code(request.user_code))
        if target is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found with this code",
            )

        try:
            coach_id, athlete_id = resolve_pair(requester.id, requester.role, target.id, target.role)
        except InvalidConnectionError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e),
            )

        if connections.find_open(coach_id, athlete_id) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A connection with this user already exists or is pending",
            )

        row = connections.create_request(coach_id, athlete_id, initiated_by=user.id, message=request.message)
    except RecordNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found",
        )
    except (BackendError, BackendResponseError) as e:
        logger.error(
            "Error creating connection",
            extra={"user_id": user.id, "error": str(e)}
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create connection request",
        )

    people = {requester.id: requester, target.id: target}
    return ConnectionResponse(
        message=f"Connection request sent to {target.full_name}",
        connection=_to_item(row, people),
    )


@router.post(
    "/{connection_id}/respond",
    response_model=ConnectionResponse,
    summary="Answer a connection request",
    description="Recipient approves or rejects; initiator cancels",
)
async def respond_to_connection(
    connection_id: str,
    request: RespondRequest,
    user: CurrentUser,
    connections: ConnectionRepositoryDep,
    profiles: ProfileRepositoryDep,
) -> ConnectionResponse:
    try:
        row = connections.get(connection_id)
        connection = row.to_connection()

        if user.id not in (connection.coach_id, connection.athlete_id):
            raise RecordNotFoundError("Connection not found")

        try:
            new_status = respond(connection, request.action, user.id)
        except ConnectionStateError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except ConnectionPermissionError as e:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

        updated = connections.set_status(connection_id, new_status)
        people = profiles.find_many([row.coach_id, row.athlete_id])
    except RecordNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Connection not found",
        )
    except (BackendError, BackendResponseError) as e:
        logger.error(
            "Error responding to connection",
            extra={"connection_id": connection_id, "error": str(e)}
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update connection",
        )

    other = people.get(connection.other_party(user.id))
    logger.info(
        "Connection answered",
        extra={"connection_id": connection_id, "action": request.action.value, "user_id": user.id}
    )

    return ConnectionResponse(
        message=response_message(request.action, other.full_name if other else None),
        connection=_to_item(updated, people),
    )


def _to_item(row: ConnectionRow, people: dict[str, ProfileRow]) -> ConnectionItem:
    return ConnectionItem(
        id=row.id,
        status=row.status.value,
        coach=_party(row.coach_id, people),
        athlete=_party(row.athlete_id, people),
        initiated_by=row.initiated_by,
        request_message=row.request_message,
        created_at=row.created_at,
        responded_at=row.responded_at,
    )


def _party(user_id: str, people: dict[str, ProfileRow]) -> PartySummary:
    profile = people.get(user_id)
    if profile is None:
        return PartySummary(id=user_id)
    return PartySummary(
        id=profile.id,
        first_name=profile.first_name,
        last_name=profile.last_name,
        role=profile.role.value,
        user_code=profile.user_code,
    )
