"""
Coach/athlete connection rules.

A connection starts as a pending request from one side and is answered by
the other. These functions hold the rules; persistence lives in
ConnectionRepository.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Role(Enum):
    ATHLETE = "athlete"
    COACH = "coach"
    PARENT = "parent"


class ConnectionStatus(Enum):
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"
    INACTIVE = "inactive"


class ConnectionAction(Enum):
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"


class InvalidConnectionError(ValueError):
    """Raised when two profiles can't be connected."""
    pass


class ConnectionStateError(ValueError):
    """Raised when responding to a request that is no longer pending."""
    pass


class ConnectionPermissionError(Exception):
    """Raised when the wrong side of a request tries to act on it."""
    pass


@dataclass(frozen=True)
class Connection:
    """The parts of a connection request the rules need."""
    id: str
    coach_id: str
    athlete_id: str
    status: ConnectionStatus
    initiated_by: Optional[str] = None

    def other_party(self, user_id: str) -> str:
        return self.athlete_id if user_id == self.coach_id else self.coach_id

    def is_recipient(self, user_id: str) -> bool:
        """The recipient is whichever side did not initiate."""
        if user_id == self.coach_id:
            return self.initiated_by == self.athlete_id
        if user_id == self.athlete_id:
            return self.initiated_by == self.coach_id
        return False

    def is_initiator(self, user_id: str) -> bool:
        return self.initiated_by == user_id


_STATUS_AFTER = {
    ConnectionAction.APPROVE: ConnectionStatus.ACTIVE,
    ConnectionAction.REJECT: ConnectionStatus.REJECTED,
    ConnectionAction.CANCEL: ConnectionStatus.INACTIVE,
}


def resolve_pair(
    requester_id: str,
    requester_role: Role,
    target_id: str,
    target_role: Role,
) -> tuple[str, str]:
    """
    Work out (coach_id, athlete_id) for a new request.

    Only coach -> athlete and athlete -> coach requests make sense.
    """
    if requester_id == target_id:
        raise InvalidConnectionError("You cannot connect with yourself")

    if requester_role is Role.COACH and target_role is Role.ATHLETE:
        return requester_id, target_id
    if requester_role is Role.ATHLETE and target_role is Role.COACH:
        return target_id, requester_id

    raise InvalidConnectionError(
        "Invalid connection: Coaches can only connect with athletes and vice versa"
    )


def respond(connection: Connection, action: ConnectionAction, user_id: str) -> ConnectionStatus:
    """
    Validate a response to a pending request and return the new status.

    The initiator may only cancel; the recipient may only approve or reject.
    """
    if connection.status is not ConnectionStatus.PENDING:
        raise ConnectionStateError("This request has already been responded to")

    if action is ConnectionAction.CANCEL:
        if not connection.is_initiator(user_id):
            raise ConnectionPermissionError("Only the initiator can cancel a pending request")
    elif not connection.is_recipient(user_id):
        raise ConnectionPermissionError("Only the recipient can approve or reject this request")

    return _STATUS_AFTER[action]


def response_message(action: ConnectionAction, other_name: Optional[str]) -> str:
    """Human-readable confirmation for the responder."""
    name = other_name or "User"
    if action is ConnectionAction.APPROVE:
        return f"You are now connected with {name}!"
    if action is ConnectionAction.REJECT:
        return f"Connection request from {name} has been declined"
    return "Connection request has been cancelled"
