"""
Connection repository.

Persists coach/athlete connection requests in the coach_athletes table.
The rules for who may create or answer a request live in
src.core.connections; this module only reads and writes rows.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from src.core.connections.models import ConnectionStatus
from ..client import BackendClient, Filter, RecordNotFoundError
from ..schemas import ConnectionRow, decode_row, decode_rows

logger = logging.getLogger(__name__)

TABLE = "coach_athletes"


class ConnectionRepository:

    def __init__(self, client: BackendClient) -> None:
        self._client = client

    def get(self, connection_id: str) -> ConnectionRow:
        rows = self._client.select(TABLE, [Filter.eq("id", connection_id)], limit=1)
        connections = decode_rows(ConnectionRow, rows, TABLE)
        if not connections:
            raise RecordNotFoundError("Connection not found")
        return connections[0]

    def list_for_user(
        self,
        user_id: str,
        role: Optional[str] = None,
        status: Optional[ConnectionStatus] = None,
    ) -> list[ConnectionRow]:
        """
        Connections the user takes part in, newest first.

        role narrows to the side the user is on ("coach" or "athlete").
        """
        if role == "coach":
            filters = [Filter.eq("coach_id", user_id)]
        elif role == "athlete":
            filters = [Filter.eq("athlete_id", user_id)]
        else:
            filters = [Filter.any_of(Filter.eq("coach_id", user_id), Filter.eq("athlete_id", user_id))]

        if status is not None:
            filters.append(Filter.eq("status", status.value))

        rows = self._client.select(TABLE, filters, order="created_at", ascending=False)
        return decode_rows(ConnectionRow, rows, TABLE)

    def find_open(self, coach_id: str, athlete_id: str) -> Optional[ConnectionRow]:
        """A pending or active connection between the pair, if any."""
        rows = self._client.select(TABLE, [
            Filter.eq("coach_id", coach_id),
            Filter.eq("athlete_id", athlete_id),
            Filter.is_in("status", [ConnectionStatus.PENDING.value, ConnectionStatus.ACTIVE.value]),
        ], limit=1)
        connections = decode_rows(ConnectionRow, rows, TABLE)
        return connections[0] if connections else None

    def create_request(
        self,
        coach_id: str,
        athlete_id: str,
        initiated_by: str,
        message: Optional[str] = None,
    ) -> ConnectionRow:
        rows = self._client.insert(TABLE, [{
            "coach_id": coach_id,
            "athlete_id": athlete_id,
            "status": ConnectionStatus.PENDING.value,
            "initiated_by": initiated_by,
            "request_message": message or None,
            "is_active": False,
        }])
        if not rows:
            raise RecordNotFoundError("Connection insert returned no row")

        logger.info(
            "Created connection request",
            extra={"coach_id": coach_id, "athlete_id": athlete_id, "initiated_by": initiated_by}
        )
        return decode_row(ConnectionRow, rows[0], TABLE)

    def set_status(self, connection_id: str, status: ConnectionStatus) -> ConnectionRow:
        rows = self._client.update(TABLE, {
            "status": status.value,
            "responded_at": datetime.now(timezone.utc).isoformat(),
            # Older dashboards still read is_active
            "is_active": status is ConnectionStatus.ACTIVE,
        }, [Filter.eq("id", connection_id)])
        if not rows:
            raise RecordNotFoundError("Connection not found")
        return decode_row(ConnectionRow, rows[0], TABLE)
